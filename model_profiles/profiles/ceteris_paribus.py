"""Ceteris paribus (what-if) profiles."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Union

import numpy as np
import pandas as pd

from model_profiles.exceptions import InvalidInputError, NoApplicableVariablesError
from model_profiles.explainer import (
    ModelExplainer,
    PredictFunction,
    predict_checked,
    resolve_explainer,
)
from model_profiles.profiles.splits import VariableSplit, calculate_variable_splits
from model_profiles.schema import NUMERICAL, Schema, check_not_empty, column_kind

logger = logging.getLogger("model_profiles.profiles")

YHAT = "_yhat_"
VNAME = "_vname_"
IDS = "_ids_"
LABEL = "_label_"
X = "_x_"
GRID = "_grid_"

RESERVED_COLUMNS = (YHAT, VNAME, IDS, LABEL, X, GRID)


@dataclass
class ProfileTable:
    """Scored what-if rows for one model.

    Attributes
    ----------
    profiles : pd.DataFrame
        One row per (observation, variable, grid value): every feature,
        ``_yhat_``, ``_vname_``, ``_ids_``, ``_label_``, ``_x_`` (the value
        the variable was set to) and ``_grid_`` (its position in the grid).
    observations : pd.DataFrame
        The explained observations with their own ``_yhat_``, ``_ids_`` and
        ``_label_``.
    variable_splits : dict[str, np.ndarray]
        Grid used for every profiled variable.
    label : str
        Model label.
    """

    profiles: pd.DataFrame
    observations: pd.DataFrame
    variable_splits: VariableSplit
    label: str

    @property
    def variables(self) -> List[str]:
        return list(self.variable_splits)

    def __len__(self) -> int:
        return len(self.profiles)


def as_observation_frame(observations: Any) -> pd.DataFrame:
    """Coerce a DataFrame, Series or mapping into a frame with unique ids."""
    if isinstance(observations, pd.Series):
        frame = observations.to_frame().T.infer_objects()
    elif isinstance(observations, Mapping):
        frame = pd.DataFrame([dict(observations)])
    elif isinstance(observations, pd.DataFrame):
        frame = observations
    else:
        raise InvalidInputError(
            f"observations must be a DataFrame, Series or mapping, "
            f"got {type(observations).__name__}."
        )
    check_not_empty(frame, "observations")
    frame = frame.drop(columns=[c for c in RESERVED_COLUMNS if c in frame.columns])
    if not frame.index.is_unique:
        logger.warning("Observation index is not unique; using positional ids.")
        frame = frame.reset_index(drop=True)
    return frame


def widen_categories(
    frame: pd.DataFrame, variable_splits: VariableSplit
) -> pd.DataFrame:
    """Add grid levels missing from the categorical columns of *frame*."""
    frame = frame.copy()
    for var, grid in variable_splits.items():
        if var not in frame.columns:
            continue
        if not isinstance(frame[var].dtype, pd.CategoricalDtype):
            continue
        known = set(frame[var].cat.categories)
        levels = pd.unique(pd.Series(grid, dtype=object))
        extra = [level for level in levels if level not in known]
        if extra:
            frame[var] = frame[var].cat.add_categories(extra)
    return frame


def set_grid_column(
    block: pd.DataFrame,
    var: str,
    values: np.ndarray,
    template: pd.Series,
) -> None:
    """Assign grid *values* to *var*, keeping a categorical dtype if any."""
    if isinstance(template.dtype, pd.CategoricalDtype):
        block[var] = pd.Categorical(values, categories=template.cat.categories)
    else:
        block[var] = values


def build_profiles(
    predict_function: PredictFunction,
    observations: Any,
    variable_splits: VariableSplit,
    label: str = "model",
) -> ProfileTable:
    """Score every observation with each variable swept across its grid.

    All synthetic rows, together with the observations themselves, are sent
    to *predict_function* in a single call. Rows are ordered by observation,
    then variable, then grid value.

    Raises
    ------
    InvalidInputError
        If a split variable is missing from *observations* or a grid is empty.
    """
    observations = as_observation_frame(observations)
    features = list(observations.columns)
    variables = Schema.from_frame(observations).validate(list(variable_splits))
    if not variables:
        raise InvalidInputError("variable_splits is empty.")
    for var in variables:
        if len(variable_splits[var]) == 0:
            raise InvalidInputError(f"Grid for variable '{var}' is empty.")
    observations = widen_categories(observations, variable_splits)

    n_obs = len(observations)
    obs_pos = np.arange(n_obs)
    ids = observations.index.to_numpy()

    blocks = []
    for var_pos, var in enumerate(variables):
        grid = np.asarray(variable_splits[var])
        k = len(grid)
        block = observations.iloc[np.repeat(obs_pos, k)].reset_index(drop=True)
        values = np.tile(grid, n_obs)
        set_grid_column(block, var, values, observations[var])
        block[VNAME] = var
        block[IDS] = np.repeat(ids, k)
        block[X] = values
        block[GRID] = np.tile(np.arange(k), n_obs)
        block["__order__"] = np.repeat(obs_pos, k) * len(variables) + var_pos
        blocks.append(block)

    profiles = pd.concat(blocks, ignore_index=True)
    profiles = profiles.sort_values("__order__", kind="mergesort")
    profiles = profiles.drop(columns="__order__").reset_index(drop=True)

    batch = pd.concat([profiles[features], observations[features]], ignore_index=True)
    logger.info(
        "Scoring %d what-if rows for %d observations and %d variables (%s).",
        len(profiles),
        n_obs,
        len(variables),
        label,
    )
    preds = predict_checked(predict_function, batch)

    profiles[YHAT] = preds[: len(profiles)]
    profiles[LABEL] = label
    profiles = profiles[features + [YHAT, VNAME, IDS, LABEL, X, GRID]]

    obs_out = observations.copy()
    obs_out[YHAT] = preds[len(profiles):]
    obs_out[IDS] = ids
    obs_out[LABEL] = label

    return ProfileTable(
        profiles=profiles,
        observations=obs_out,
        variable_splits={v: np.asarray(variable_splits[v]) for v in variables},
        label=label,
    )


def ceteris_paribus(
    explainer: Union[ModelExplainer, PredictFunction],
    observations: Any,
    variables: Optional[List[str]] = None,
    grid_points: int = 101,
    variable_splits: Optional[VariableSplit] = None,
    data: Optional[pd.DataFrame] = None,
    label: Optional[str] = None,
) -> ProfileTable:
    """Ceteris paribus profiles for *observations*.

    Parameters
    ----------
    explainer : ModelExplainer | callable
        Explainer, or a bare ``f(X) -> predictions`` used with *data*.
    observations : pd.DataFrame | pd.Series | mapping
        Rows to explain.
    variables : list[str] | None
        Variables to profile. If *None*, every column of the reference data.
    grid_points : int
        Passed to :func:`calculate_variable_splits`.
    variable_splits : dict | None
        Precomputed grids; computed from the reference data when *None*.
    data : pd.DataFrame | None
        Reference data, overriding the explainer's.
    label : str | None
        Model label, overriding the explainer's.
    """
    predict, data, _, label = resolve_explainer(explainer, data=data, label=label)
    observations = as_observation_frame(observations)

    if data is not None:
        check_not_empty(data)
        Schema.from_frame(observations).validate(list(data.columns))
        observations = observations[list(data.columns)]

    if variable_splits is None:
        if data is None:
            raise InvalidInputError(
                "Reference data is required to compute variable splits."
            )
        variable_splits = calculate_variable_splits(data, variables, grid_points)
    elif variables is not None:
        if isinstance(variables, str):
            variables = [variables]
        missing = [v for v in variables if v not in variable_splits]
        if missing:
            raise InvalidInputError(
                f"Variables not found in variable_splits: {', '.join(missing)}"
            )
        variable_splits = {v: variable_splits[v] for v in variables}

    return build_profiles(predict, observations, variable_splits, label=label)


def select_profiles(
    *tables: ProfileTable,
    variables: Optional[List[str]] = None,
    only_numerical: bool = True,
) -> pd.DataFrame:
    """Merge profiles of several models and keep variables of one kind.

    Parameters
    ----------
    *tables : ProfileTable
        Profiles, typically one per model.
    variables : list[str] | None
        Restrict to these variables.
    only_numerical : bool
        Keep numerical variables if True, categorical ones otherwise. When
        True, no profiled variable is numerical and *variables* was given,
        the requested variables are returned as they are.

    Raises
    ------
    InvalidInputError
        When *variables* does not overlap the profiled variables.
    NoApplicableVariablesError
        When no variable of the requested kind is left.
    """
    if not tables:
        raise InvalidInputError("At least one ProfileTable is required.")
    all_profiles = pd.concat([t.profiles for t in tables], ignore_index=True)

    all_variables: List[str] = []
    for t in tables:
        all_variables.extend(v for v in t.variables if v not in all_variables)
    if variables is not None:
        all_variables = [v for v in all_variables if v in variables]
        if not all_variables:
            raise InvalidInputError(
                f"variables do not overlap with {', '.join(map(str, variables))}"
            )

    kinds: Dict[str, str] = {v: column_kind(all_profiles[v]) for v in all_variables}
    if only_numerical:
        vnames = [v for v in all_variables if kinds[v] == NUMERICAL]
        if not vnames:
            if variables is not None:
                vnames = all_variables
            else:
                raise NoApplicableVariablesError("There are no numerical variables")
    else:
        vnames = [v for v in all_variables if kinds[v] != NUMERICAL]
        if not vnames:
            raise NoApplicableVariablesError("There are no non-numerical variables")

    return all_profiles[all_profiles[VNAME].isin(vnames)].reset_index(drop=True)
