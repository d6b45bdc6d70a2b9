"""Two-variable ceteris paribus grids for pairwise interaction surfaces.

Each pair of variables is scored on the full cross product of its grids, so
the number of rows grows with ``grid_points ** 2`` per pair: the default of
101 grid points gives about 10 000 rows for every pair. Keep ``grid_points``
modest when many variables are requested.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Union

import numpy as np
import pandas as pd

from model_profiles.exceptions import InvalidInputError
from model_profiles.explainer import (
    ModelExplainer,
    PredictFunction,
    predict_checked,
    resolve_explainer,
)
from model_profiles.profiles.ceteris_paribus import (
    IDS,
    LABEL,
    YHAT,
    as_observation_frame,
    set_grid_column,
    widen_categories,
)
from model_profiles.profiles.splits import VariableSplit, calculate_variable_splits
from model_profiles.schema import Schema, check_not_empty

logger = logging.getLogger("model_profiles.profiles")

V1NAME = "_v1name_"
V2NAME = "_v2name_"
V1VALUE = "_v1value_"
V2VALUE = "_v2value_"


@dataclass
class ProfileTable2D:
    """Scored cross-product grid for every pair of variables of one observation."""

    profiles: pd.DataFrame
    observation: pd.DataFrame
    variable_splits: VariableSplit
    label: str

    @property
    def pairs(self) -> List[tuple]:
        return list(itertools.combinations(self.variable_splits, 2))


def build_profiles_2d(
    predict_function: PredictFunction,
    observation: Any,
    variable_splits: VariableSplit,
    label: str = "model",
) -> ProfileTable2D:
    """Score the cross product of grids for each unordered variable pair.

    All pairs are scored in one call to *predict_function*.
    """
    observation = as_observation_frame(observation)
    if len(observation) != 1:
        raise InvalidInputError(
            f"2D profiles need exactly one observation, got {len(observation)}."
        )
    features = list(observation.columns)
    variables = Schema.from_frame(observation).validate(list(variable_splits))
    if len(variables) < 2:
        raise InvalidInputError("2D profiles need at least two variables.")
    observation = widen_categories(observation, variable_splits)

    obs_id = observation.index[0]
    blocks = []
    for v1, v2 in itertools.combinations(variables, 2):
        g1 = np.asarray(variable_splits[v1])
        g2 = np.asarray(variable_splits[v2])
        if len(g1) == 0 or len(g2) == 0:
            raise InvalidInputError(f"Empty grid for pair ('{v1}', '{v2}').")
        n = len(g1) * len(g2)
        block = observation.iloc[np.zeros(n, dtype=int)].reset_index(drop=True)
        values1 = np.repeat(g1, len(g2))
        values2 = np.tile(g2, len(g1))
        set_grid_column(block, v1, values1, observation[v1])
        set_grid_column(block, v2, values2, observation[v2])
        block[V1NAME] = v1
        block[V2NAME] = v2
        block[V1VALUE] = values1
        block[V2VALUE] = values2
        blocks.append(block)

    profiles = pd.concat(blocks, ignore_index=True)
    logger.info(
        "Scoring %d rows for %d variable pairs (%s).",
        len(profiles),
        len(blocks),
        label,
    )
    profiles[YHAT] = predict_checked(predict_function, profiles[features])
    profiles[IDS] = obs_id
    profiles[LABEL] = label
    profiles = profiles[features + [YHAT, V1NAME, V2NAME, V1VALUE, V2VALUE, IDS, LABEL]]

    return ProfileTable2D(
        profiles=profiles,
        observation=observation.copy(),
        variable_splits={v: np.asarray(variable_splits[v]) for v in variables},
        label=label,
    )


def ceteris_paribus_2d(
    explainer: Union[ModelExplainer, PredictFunction],
    observation: Any,
    grid_points: int = 101,
    variables: Optional[List[str]] = None,
    data: Optional[pd.DataFrame] = None,
    label: Optional[str] = None,
) -> ProfileTable2D:
    """2D ceteris paribus profiles for a single observation.

    Parameters
    ----------
    explainer : ModelExplainer | callable
        Explainer, or a bare ``f(X) -> predictions`` used with *data*.
    observation : pd.DataFrame | pd.Series | mapping
        Exactly one row.
    grid_points : int
        Grid size per variable; cost is quadratic in it.
    variables : list[str] | None
        Variables to pair up. If *None*, every column of the reference data.
    """
    predict, data, _, label = resolve_explainer(explainer, data=data, label=label)
    if data is None:
        raise InvalidInputError("Reference data is required to compute variable splits.")
    check_not_empty(data)
    observation = as_observation_frame(observation)
    Schema.from_frame(observation).validate(list(data.columns))
    observation = observation[list(data.columns)]

    variable_splits = calculate_variable_splits(data, variables, grid_points)
    return build_profiles_2d(predict, observation, variable_splits, label=label)
