"""Loss functions for permutation importance.

Every loss takes ``(y_true, y_pred)`` and returns a float where lower is
better.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict

import numpy as np
from sklearn.metrics import accuracy_score, roc_auc_score

from model_profiles.exceptions import InvalidInputError

logger = logging.getLogger("model_profiles.metrics")

LossFunction = Callable[[np.ndarray, np.ndarray], float]


def loss_sum_of_squares(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """Sum of squared residuals."""
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)
    return float(np.sum((y_true - y_pred) ** 2))


def loss_root_mean_square(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """Root mean squared error."""
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)
    return float(np.sqrt(np.mean((y_true - y_pred) ** 2)))


def loss_accuracy(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """One minus accuracy, thresholding scores at 0.5."""
    y_true = np.asarray(y_true).astype(int)
    labels = (np.asarray(y_pred, dtype=float) >= 0.5).astype(int)
    return float(1.0 - accuracy_score(y_true, labels))


def loss_one_minus_auc(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """One minus the area under the ROC curve."""
    return float(1.0 - roc_auc_score(np.asarray(y_true), np.asarray(y_pred, dtype=float)))


LOSS_FUNCTIONS: Dict[str, LossFunction] = {
    "sum_of_squares": loss_sum_of_squares,
    "root_mean_square": loss_root_mean_square,
    "accuracy": loss_accuracy,
    "one_minus_auc": loss_one_minus_auc,
}


def get_loss_function(name: str) -> LossFunction:
    """Look up a loss by name (``"rmse"`` and ``"auc"`` are accepted aliases)."""
    aliases = {"rmse": "root_mean_square", "auc": "one_minus_auc"}
    key = aliases.get(name.lower(), name.lower())
    try:
        return LOSS_FUNCTIONS[key]
    except KeyError:
        raise InvalidInputError(
            f"Unknown loss function '{name}'. Available: {', '.join(LOSS_FUNCTIONS)}"
        ) from None
