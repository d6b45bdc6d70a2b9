"""Row sampling helpers."""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np
import pandas as pd

from model_profiles.exceptions import InvalidInputError
from model_profiles.schema import check_not_empty

logger = logging.getLogger("model_profiles")


def select_sample(
    data: pd.DataFrame,
    n: int = 100,
    seed: Optional[int] = 1313,
) -> pd.DataFrame:
    """Sample *n* rows without replacement, keeping their original order.

    All rows are returned when ``n >= len(data)``.
    """
    check_not_empty(data)
    if n < 1:
        raise InvalidInputError(f"n must be a positive integer, got {n!r}.")
    if n >= len(data):
        return data
    rng = np.random.default_rng(seed)
    positions = np.sort(rng.choice(len(data), size=n, replace=False))
    logger.debug("Sampled %d of %d rows.", n, len(data))
    return data.iloc[positions]
