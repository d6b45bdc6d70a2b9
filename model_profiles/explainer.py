"""Model wrapper exposing a uniform batch predict capability."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Tuple, Union

import numpy as np
import pandas as pd

from model_profiles.exceptions import InvalidInputError
from model_profiles.schema import Schema, check_not_empty

logger = logging.getLogger("model_profiles")

PredictFunction = Callable[[pd.DataFrame], Any]


class ModelExplainer:
    """Bundle a fitted model with its reference data.

    Parameters
    ----------
    model : Any
        Fitted model. Only used through ``predict_function`` or, when that is
        not given, through ``predict_proba`` / ``predict``.
    data : pd.DataFrame
        Reference data (features only) used to derive grids and to permute.
    y : array-like | None
        Target values aligned with *data*; required for importance.
    predict_function : callable | None
        ``f(X) -> predictions`` returning one value per row of *X*.
    label : str | None
        Model label carried into every result table.
    """

    def __init__(
        self,
        model: Any = None,
        data: Optional[pd.DataFrame] = None,
        y: Any = None,
        predict_function: Optional[PredictFunction] = None,
        label: Optional[str] = None,
    ) -> None:
        if model is None and predict_function is None:
            raise InvalidInputError("Either model or predict_function is required.")
        if data is not None:
            check_not_empty(data)
        if y is not None and data is not None and len(y) != len(data):
            raise InvalidInputError(
                f"y has {len(y)} values but data has {len(data)} rows."
            )
        self.model = model
        self.data = data
        self.y = y
        self.predict_function = predict_function
        self.label = label or (
            model.__class__.__name__ if model is not None else "model"
        )
        self._schema: Optional[Schema] = None

    @property
    def schema(self) -> Schema:
        if self.data is None:
            raise InvalidInputError(f"Explainer '{self.label}' has no reference data.")
        if self._schema is None:
            self._schema = Schema.from_frame(self.data)
        return self._schema

    def predict(self, X: pd.DataFrame) -> np.ndarray:
        """Score a batch of rows, returning a flat array."""
        if self.predict_function is not None:
            preds = self.predict_function(X)
        else:
            try:
                preds = np.asarray(self.model.predict_proba(X))[:, 1]
            except (AttributeError, IndexError):
                preds = self.model.predict(X)
        return as_prediction_array(preds)

    def __repr__(self) -> str:  # pragma: no cover
        n = 0 if self.data is None else len(self.data)
        return f"ModelExplainer(label={self.label!r}, n_rows={n})"


def as_prediction_array(preds: Any) -> np.ndarray:
    arr = np.asarray(preds)
    if arr.ndim == 2 and 1 in arr.shape:
        arr = arr.ravel()
    return arr


def predict_checked(predict: PredictFunction, X: pd.DataFrame) -> np.ndarray:
    """Call *predict* once on *X* and check one prediction per row came back."""
    preds = as_prediction_array(predict(X))
    if preds.ndim != 1 or len(preds) != len(X):
        raise InvalidInputError(
            f"predict_function returned {preds.shape} predictions for {len(X)} rows."
        )
    return preds


def resolve_explainer(
    explainer: Union[ModelExplainer, PredictFunction],
    data: Optional[pd.DataFrame] = None,
    y: Any = None,
    label: Optional[str] = None,
) -> Tuple[PredictFunction, Optional[pd.DataFrame], Any, str]:
    """Unpack an explainer or a bare predict function into its parts.

    Explicit *data*, *y* and *label* override the explainer's own.
    """
    if isinstance(explainer, ModelExplainer):
        return (
            explainer.predict,
            explainer.data if data is None else data,
            explainer.y if y is None else y,
            label or explainer.label,
        )
    if callable(explainer):
        name = getattr(explainer, "__name__", "model")
        if name == "<lambda>":
            name = "model"
        return explainer, data, y, label or name
    raise InvalidInputError(
        "Expected a ModelExplainer or a predict function, "
        f"got {type(explainer).__name__}."
    )
