"""Grid values for every explanatory variable."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from model_profiles.exceptions import InvalidInputError
from model_profiles.schema import Schema, check_not_empty

logger = logging.getLogger("model_profiles.profiles")

VariableSplit = Dict[str, np.ndarray]


def calculate_variable_splits(
    data: pd.DataFrame,
    variables: Optional[List[str]] = None,
    grid_points: int = 101,
) -> VariableSplit:
    """Compute a grid of values for each variable.

    Parameters
    ----------
    data : pd.DataFrame
        Reference data.
    variables : list[str] | None
        Variables to split. If *None*, every column of *data*.
    grid_points : int
        Maximum number of grid values for numerical variables.

    Returns
    -------
    dict[str, np.ndarray]
        Numerical variables map to sorted unique quantiles spanning
        ``[min, max]``, or to the distinct observed values when there are at
        most ``grid_points`` of them. Categorical variables map to their
        observed levels in category order (first-seen order for plain
        object columns).
    """
    check_not_empty(data)
    if isinstance(grid_points, bool) or not isinstance(grid_points, (int, np.integer)) or grid_points < 1:
        raise InvalidInputError(f"grid_points must be a positive integer, got {grid_points!r}.")

    schema = Schema.from_frame(data)
    variables = schema.validate(variables)

    splits: VariableSplit = {}
    for var in variables:
        col = data[var].dropna()
        if len(col) == 0:
            raise InvalidInputError(f"Variable '{var}' has no non-missing values.")
        if schema[var].is_numerical:
            splits[var] = _numerical_split(col, int(grid_points))
        else:
            splits[var] = _categorical_split(col)
        logger.debug("Split '%s': %d grid values.", var, len(splits[var]))
    return splits


def _numerical_split(col: pd.Series, grid_points: int) -> np.ndarray:
    values = col.to_numpy(dtype=float)
    distinct = np.unique(values)
    if len(distinct) <= grid_points:
        return distinct
    probs = np.linspace(0.0, 1.0, grid_points)
    return np.unique(np.quantile(values, probs))


def _categorical_split(col: pd.Series) -> np.ndarray:
    if isinstance(col.dtype, pd.CategoricalDtype):
        observed = set(col.unique())
        levels = [lvl for lvl in col.cat.categories if lvl in observed]
    else:
        levels = list(pd.unique(col))
    return np.asarray(levels, dtype=object)
