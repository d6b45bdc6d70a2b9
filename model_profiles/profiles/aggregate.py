"""Aggregation of ceteris paribus profiles into one curve per variable.

Three policies are supported:

``partial``
    Mean prediction over all observations at each grid value.
``conditional``
    Kernel-weighted mean; each observation is weighted by how close its
    actual value of the variable is to the grid value.
``accumulated``
    Accumulated local effects: mean first differences of the prediction
    inside each grid interval, summed along the grid and centred so that
    the occupancy-weighted mean of the curve is zero.

Grid values that no observation supports are omitted from partial and
conditional curves. Accumulated curves keep every grid value: an interval
without observations contributes no local effect, so the curve carries the
previous accumulated value forward. Both cases are logged.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Union

import numpy as np
import pandas as pd
from scipy import stats

from model_profiles.config import BaseExplanation
from model_profiles.exceptions import InvalidInputError
from model_profiles.explainer import ModelExplainer, PredictFunction, resolve_explainer
from model_profiles.profiles.ceteris_paribus import (
    GRID,
    IDS,
    LABEL,
    VNAME,
    X,
    YHAT,
    ProfileTable,
    ceteris_paribus,
)
from model_profiles.profiles.splits import VariableSplit
from model_profiles.schema import Schema
from model_profiles.utils.sampling import select_sample

logger = logging.getLogger("model_profiles.profiles")

N = "_n_"
AGGREGATED_COLUMNS = [VNAME, LABEL, X, YHAT, IDS, N]
AGGREGATION_TYPES = ("partial", "conditional", "accumulated")


def _check_options(type: str, span: float) -> None:
    if type not in AGGREGATION_TYPES:
        raise InvalidInputError(
            f"type must be one of {AGGREGATION_TYPES}, got {type!r}",
            details={"type": type},
        )
    if type == "conditional" and not span > 0:
        raise InvalidInputError(f"span must be positive, got {span!r}")


def _prediction_matrix(table: ProfileTable, variable: str) -> pd.DataFrame:
    """Predictions as an (observation x grid position) frame."""
    rows = table.profiles[table.profiles[VNAME] == variable]
    n_grid = len(table.variable_splits[variable])
    wide = rows.pivot(index=IDS, columns=GRID, values=YHAT)
    return wide.reindex(index=table.observations[IDS].to_numpy(), columns=range(n_grid))


def _actual_values(table: ProfileTable, variable: str, ids: pd.Index) -> pd.Series:
    return table.observations.set_index(IDS)[variable].reindex(ids)


def _curve(
    table: ProfileTable,
    variable: str,
    values: np.ndarray,
    counts: np.ndarray,
    keep: Optional[np.ndarray] = None,
) -> pd.DataFrame:
    grid = table.variable_splits[variable]
    if keep is None:
        keep = counts > 0
    if not keep.all():
        logger.info(
            "Variable '%s' (%s): omitting %d of %d grid values with no supporting observations.",
            variable,
            table.label,
            int((~keep).sum()),
            len(grid),
        )
    return pd.DataFrame(
        {
            VNAME: variable,
            LABEL: table.label,
            X: grid[keep],
            YHAT: values[keep],
            IDS: 0,
            N: counts[keep].astype(int),
        }
    )


def _weighted_mean(yhat: np.ndarray, weights: np.ndarray):
    weights = np.where(np.isnan(yhat) | np.isnan(weights), 0.0, weights)
    total = weights.sum(axis=0)
    sums = np.nansum(yhat * weights, axis=0)
    with np.errstate(invalid="ignore", divide="ignore"):
        values = sums / total
    return values, total, (weights > 0).sum(axis=0)


def _partial(table: ProfileTable, variable: str, span: float) -> pd.DataFrame:
    yhat = _prediction_matrix(table, variable).to_numpy(dtype=float)
    values, _, counts = _weighted_mean(yhat, np.ones_like(yhat))
    return _curve(table, variable, values, counts)


def _conditional(table: ProfileTable, variable: str, span: float) -> pd.DataFrame:
    wide = _prediction_matrix(table, variable)
    yhat = wide.to_numpy(dtype=float)
    actual = _actual_values(table, variable, wide.index)
    grid = table.variable_splits[variable]

    if Schema.from_frame(table.observations[[variable]])[variable].is_numerical:
        x = actual.to_numpy(dtype=float)
        sd = np.nanstd(x, ddof=1) if np.sum(~np.isnan(x)) > 1 else 0.0
        if not np.isfinite(sd) or sd == 0:
            sd = 1.0
        distance = (grid.astype(float)[None, :] - x[:, None]) / sd
        weights = stats.norm.pdf(distance, loc=0.0, scale=span)
    else:
        x = actual.to_numpy(dtype=object)
        weights = (x[:, None] == grid[None, :]).astype(float)

    values, total, counts = _weighted_mean(yhat, weights)
    return _curve(table, variable, values, counts, keep=total > 0)


def _interval_positions(
    table: ProfileTable, variable: str, ids: pd.Index
) -> np.ndarray:
    """Grid interval (1..K-1) holding each observation's actual value, -1 if none.

    Interval ``k`` spans ``(grid[k-1], grid[k]]``; values at or below the first
    grid value fall into interval 1 and values above the last into K-1.
    Categorical observations fall into the interval ending at their level.
    """
    grid = table.variable_splits[variable]
    k_max = len(grid) - 1
    actual = _actual_values(table, variable, ids)

    if Schema.from_frame(table.observations[[variable]])[variable].is_numerical:
        x = actual.to_numpy(dtype=float)
        pos = np.searchsorted(grid.astype(float), x, side="left")
        pos = np.clip(pos, 1, k_max)
        pos[np.isnan(x)] = -1
    else:
        lookup = {level: i for i, level in enumerate(grid)}
        pos = np.array([lookup.get(v, -1) for v in actual.to_numpy(dtype=object)])
        pos = np.where(pos >= 0, np.clip(pos, 1, k_max), -1)

    n_unplaced = int((pos < 0).sum())
    if n_unplaced:
        logger.warning(
            "Variable '%s' (%s): %d observations have no value on the grid.",
            variable,
            table.label,
            n_unplaced,
        )
    return pos


def _accumulated(table: ProfileTable, variable: str, span: float) -> pd.DataFrame:
    wide = _prediction_matrix(table, variable)
    yhat = wide.to_numpy(dtype=float)
    n_grid = yhat.shape[1]

    if n_grid == 1:
        counts = np.array([np.sum(~np.isnan(yhat[:, 0]))])
        return _curve(table, variable, np.zeros(1), counts, keep=np.ones(1, dtype=bool))

    positions = _interval_positions(table, variable, wide.index)
    diffs = yhat[:, 1:] - yhat[:, :-1]

    effects = np.zeros(n_grid)
    occupancy = np.zeros(n_grid, dtype=int)
    for k in range(1, n_grid):
        local = diffs[positions == k, k - 1]
        local = local[~np.isnan(local)]
        occupancy[k] = len(local)
        if len(local):
            effects[k] = local.mean()

    empty = int((occupancy[1:] == 0).sum())
    if empty:
        logger.info(
            "Variable '%s' (%s): %d of %d grid intervals are empty; "
            "carrying the accumulated value forward.",
            variable,
            table.label,
            empty,
            n_grid - 1,
        )

    accumulated = np.cumsum(effects)
    total = occupancy.sum()
    if total > 0:
        accumulated = accumulated - np.sum(occupancy * accumulated) / total
    else:
        accumulated = accumulated - accumulated.mean()
    return _curve(
        table, variable, accumulated, occupancy, keep=np.ones(n_grid, dtype=bool)
    )


_AGGREGATORS: Dict[str, Callable[[ProfileTable, str, float], pd.DataFrame]] = {
    "partial": _partial,
    "conditional": _conditional,
    "accumulated": _accumulated,
}


def aggregate_profiles(
    profile_table: ProfileTable,
    *others: ProfileTable,
    type: str = "partial",
    variables: Optional[List[str]] = None,
    variable_type: Optional[str] = None,
    span: float = 0.25,
) -> pd.DataFrame:
    """Collapse ceteris paribus profiles into one curve per variable and model.

    Parameters
    ----------
    profile_table, *others : ProfileTable
        Profiles to aggregate, typically one per model.
    type : str
        ``"partial"``, ``"conditional"`` or ``"accumulated"``.
    variables : list[str] | None
        Variables to aggregate. If *None*, every profiled variable.
    variable_type : str | None
        ``"numerical"`` or ``"categorical"`` to restrict to one kind.
    span : float
        Bandwidth of the conditional kernel, in standard deviations of the
        variable.

    Returns
    -------
    pd.DataFrame
        Columns ``_vname_``, ``_label_``, ``_x_``, ``_yhat_``, ``_ids_`` and
        ``_n_`` (number of observations behind each value), ordered by
        model, variable and grid position.

    Raises
    ------
    InvalidInputError
        Unknown *type* or variables, or a non-positive *span*.
    NoApplicableVariablesError
        When no variable of *variable_type* was profiled.
    """
    _check_options(type, span)

    tables = (profile_table,) + others
    for table in tables:
        if not isinstance(table, ProfileTable):
            raise InvalidInputError(
                f"Expected ProfileTable, got {table.__class__.__name__}."
            )

    selected = []
    for table in tables:
        schema = Schema.from_frame(table.observations[table.variables])
        selected.append(schema.select(variable_type, variables))

    aggregator = _AGGREGATORS[type]
    curves = []
    for table, table_variables in zip(tables, selected):
        for variable in table_variables:
            curves.append(aggregator(table, variable, span))
    result = pd.concat(curves, ignore_index=True)
    logger.info(
        "Aggregated %d curve points (%s) for %d model(s).",
        len(result),
        type,
        len(tables),
    )
    return result[AGGREGATED_COLUMNS]


def aggregated_dependency(
    type: str,
    explainer: Union[ModelExplainer, PredictFunction],
    variables: Optional[List[str]] = None,
    n_observations: int = 500,
    variable_splits: Optional[VariableSplit] = None,
    grid_points: int = 101,
    variable_type: Optional[str] = None,
    span: float = 0.25,
    random_state: Optional[int] = 42,
    data: Optional[pd.DataFrame] = None,
    label: Optional[str] = None,
) -> pd.DataFrame:
    """Sample observations, build their profiles and aggregate them by *type*.

    All validation happens before the model is called.
    """
    _check_options(type, span)
    predict, data, _, label = resolve_explainer(explainer, data=data, label=label)
    if data is None:
        raise InvalidInputError("Reference data is required for aggregated profiles.")
    if variable_splits is not None and variables is None:
        variables = list(variable_splits)
    variables = Schema.from_frame(data).select(variable_type, variables)

    sample = select_sample(data, n_observations, seed=random_state)
    profiles = ceteris_paribus(
        predict,
        sample,
        variables=variables,
        grid_points=grid_points,
        variable_splits=variable_splits,
        data=data,
        label=label,
    )
    return aggregate_profiles(profiles, type=type, span=span)


def partial_dependency(explainer, **kwargs: Any) -> pd.DataFrame:
    """Partial dependency profiles: ceteris paribus on a sample, then the mean.

    Keyword arguments are those of :func:`conditional_dependency`.
    """
    return aggregated_dependency("partial", explainer, **kwargs)


def conditional_dependency(
    explainer: Union[ModelExplainer, PredictFunction],
    variables: Optional[List[str]] = None,
    n_observations: int = 500,
    variable_splits: Optional[VariableSplit] = None,
    grid_points: int = 101,
    variable_type: Optional[str] = None,
    span: float = 0.25,
    random_state: Optional[int] = 42,
    data: Optional[pd.DataFrame] = None,
    label: Optional[str] = None,
) -> pd.DataFrame:
    """Conditional dependency (local dependency) profiles.

    Parameters
    ----------
    explainer : ModelExplainer | callable
        Explainer, or a bare ``f(X) -> predictions`` used with *data*.
    variables : list[str] | None
        Variables to profile. If *None*, every column of the reference data.
    n_observations : int
        Number of reference rows sampled (without replacement) as
        observations.
    variable_splits : dict | None
        Precomputed grids.
    grid_points : int
        Maximum grid size per variable.
    variable_type : str | None
        ``"numerical"`` or ``"categorical"``.
    span : float
        Kernel bandwidth.
    random_state : int | None
        Seed for the row sample.
    """
    return aggregated_dependency(
        "conditional",
        explainer,
        variables=variables,
        n_observations=n_observations,
        variable_splits=variable_splits,
        grid_points=grid_points,
        variable_type=variable_type,
        span=span,
        random_state=random_state,
        data=data,
        label=label,
    )


def accumulated_dependency(explainer, **kwargs: Any) -> pd.DataFrame:
    """Accumulated local effects profiles.

    Keyword arguments are those of :func:`conditional_dependency`.
    """
    return aggregated_dependency("accumulated", explainer, **kwargs)


# ---------------------------------------------------------------------------
# Estimator-style wrappers
# ---------------------------------------------------------------------------

class AggregatedProfile(BaseExplanation):
    """Compute aggregated profiles for a fitted model.

    Parameters
    ----------
    variables : list[str] | None
        Variables to profile.
    grid_points : int
        Number of grid points.
    n_observations : int
        Number of rows sampled from ``X`` as observations.
    span : float
        Conditional kernel bandwidth.
    variable_type : str | None
        Restrict to ``"numerical"`` or ``"categorical"`` variables.
    """

    aggregation_type = "partial"

    def __init__(
        self,
        variables: Optional[List[str]] = None,
        grid_points: int = 101,
        n_observations: int = 500,
        span: float = 0.25,
        variable_type: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.variables = variables
        self.grid_points = grid_points
        self.n_observations = n_observations
        self.span = span
        self.variable_type = variable_type
        self.profiles_: Optional[pd.DataFrame] = None

    def fit(
        self,
        X: pd.DataFrame,
        y: Any = None,
        model: Any = None,
        predict_function: Optional[PredictFunction] = None,
        **kw: Any,
    ) -> "AggregatedProfile":
        if model is None and predict_function is None:
            raise InvalidInputError(
                f"{self.__class__.__name__} requires a fitted model."
            )
        explainer = ModelExplainer(
            model, X, y, predict_function=predict_function, label=self.label
        )
        self.profiles_ = aggregated_dependency(
            self.aggregation_type,
            explainer,
            variables=self.variables,
            n_observations=self.n_observations,
            grid_points=self.grid_points,
            variable_type=self.variable_type,
            span=self.span,
            random_state=self.random_state,
        )
        self._fitted = True
        return self

    def get_curve(self, variable: str) -> pd.DataFrame:
        """Grid values and aggregated predictions for one variable."""
        self._check_fitted()
        curve = self.profiles_[self.profiles_[VNAME] == variable]
        if curve.empty:
            raise InvalidInputError(f"Variable '{variable}' was not profiled.")
        return curve[[X, YHAT]].reset_index(drop=True)


class PartialDependence(AggregatedProfile):
    aggregation_type = "partial"


class ConditionalDependence(AggregatedProfile):
    aggregation_type = "conditional"


class AccumulatedDependence(AggregatedProfile):
    aggregation_type = "accumulated"
