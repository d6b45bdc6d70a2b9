"""Permutation-based variable importance for any model."""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Union

import numpy as np
import pandas as pd

from model_profiles.config import BaseExplanation
from model_profiles.exceptions import InvalidInputError
from model_profiles.explainer import (
    ModelExplainer,
    PredictFunction,
    predict_checked,
    resolve_explainer,
)
from model_profiles.schema import Schema, check_not_empty
from model_profiles.utils.metrics import (
    LossFunction,
    get_loss_function,
    loss_root_mean_square,
)

logger = logging.getLogger("model_profiles.importance")

FULL_MODEL = "_full_model_"
BASELINE = "_baseline_"
IMPORTANCE_COLUMNS = ["variable", "dropout_loss", "importance", "std", "label"]


def feature_importance(
    explainer: Union[ModelExplainer, PredictFunction],
    data: Optional[pd.DataFrame] = None,
    y: Any = None,
    loss_function: Union[LossFunction, str] = loss_root_mean_square,
    variables: Optional[List[str]] = None,
    n_permutations: int = 10,
    random_state: Optional[int] = None,
    label: Optional[str] = None,
) -> pd.DataFrame:
    """Loss increase caused by permuting each variable.

    Parameters
    ----------
    explainer : ModelExplainer | callable
        Explainer, or a bare ``f(X) -> predictions`` used with *data*.
    data : pd.DataFrame | None
        Data to permute; defaults to the explainer's reference data.
    y : array-like | None
        True target values aligned with *data*.
    loss_function : callable | str
        ``loss(y_true, y_pred) -> float``, lower is better, or the name of
        one of the losses in :mod:`model_profiles.utils.metrics`.
    variables : list[str] | None
        Variables to permute. If *None*, every column of *data*.
    n_permutations : int
        Number of independent shuffles per variable; losses are averaged.
    random_state : int | None
        Seed for the shuffles.
    label : str | None
        Model label.

    Returns
    -------
    pd.DataFrame
        Columns ``variable``, ``dropout_loss`` (mean loss after permuting),
        ``importance`` (``dropout_loss`` minus the full model loss), ``std``
        (spread of the permuted losses) and ``label``. The first row is
        ``_full_model_`` (loss on unpermuted data), the last ``_baseline_``
        (loss of a constant prediction: the mean of a numeric *y*, else its
        most frequent value); variables in between are sorted by increasing
        dropout loss.
    """
    predict, data, y, label = resolve_explainer(explainer, data=data, y=y, label=label)
    if data is None or y is None:
        raise InvalidInputError("feature_importance requires data and y.")
    check_not_empty(data)
    y = np.asarray(y)
    if len(y) != len(data):
        raise InvalidInputError(
            f"y has {len(y)} values but data has {len(data)} rows."
        )
    if n_permutations < 1:
        raise InvalidInputError(
            f"n_permutations must be a positive integer, got {n_permutations!r}."
        )
    if isinstance(loss_function, str):
        loss_function = get_loss_function(loss_function)
    variables = Schema.from_frame(data).validate(variables)

    rng = np.random.default_rng(random_state)
    n_rows = len(data)

    baseline_loss = float(loss_function(y, constant_prediction(y)))
    full_loss = float(loss_function(y, predict_checked(predict, data)))
    logger.info(
        "Full model loss %.6g, baseline loss %.6g (%s).", full_loss, baseline_loss, label
    )

    records = []
    for var in variables:
        batch = pd.concat([data] * n_permutations, ignore_index=True)
        column = data[var].to_numpy()
        permuted = np.concatenate([rng.permutation(column) for _ in range(n_permutations)])
        if isinstance(data[var].dtype, pd.CategoricalDtype):
            batch[var] = pd.Categorical(permuted, categories=data[var].cat.categories)
        else:
            batch[var] = permuted
        preds = predict_checked(predict, batch)
        losses = np.array(
            [
                loss_function(y, preds[i * n_rows:(i + 1) * n_rows])
                for i in range(n_permutations)
            ],
            dtype=float,
        )
        logger.debug("Variable '%s': mean permuted loss %.6g.", var, losses.mean())
        records.append(
            {
                "variable": var,
                "dropout_loss": float(losses.mean()),
                "importance": float(losses.mean() - full_loss),
                "std": float(losses.std(ddof=1)) if n_permutations > 1 else 0.0,
                "label": label,
            }
        )

    body = pd.DataFrame(records, columns=IMPORTANCE_COLUMNS)
    body = body.sort_values("dropout_loss", kind="mergesort")
    head = pd.DataFrame(
        [
            {"variable": FULL_MODEL, "dropout_loss": full_loss, "importance": 0.0,
             "std": 0.0, "label": label},
        ],
        columns=IMPORTANCE_COLUMNS,
    )
    tail = pd.DataFrame(
        [
            {"variable": BASELINE, "dropout_loss": baseline_loss,
             "importance": baseline_loss - full_loss, "std": 0.0, "label": label},
        ],
        columns=IMPORTANCE_COLUMNS,
    )
    return pd.concat([head, body, tail], ignore_index=True)


def constant_prediction(y: np.ndarray) -> np.ndarray:
    """Best constant guess for *y*: the mean of a numeric target, else its mode."""
    if y.dtype.kind in "biuf":
        return np.full(len(y), np.mean(y.astype(float)))
    modes = pd.Series(y).mode(dropna=True)
    if modes.empty:
        raise InvalidInputError("y has no non-missing values.")
    return np.full(len(y), modes.iloc[0], dtype=object)


def importance_summary(
    *tables: pd.DataFrame,
    max_vars: Optional[int] = None,
    split: str = "model",
) -> pd.DataFrame:
    """Arrange importance results of one or more models for display.

    Sentinel rows are removed and each row gets its model's ``full_model``
    loss. Variables are ordered by their mean dropout loss across models,
    most important first.

    Parameters
    ----------
    *tables : pd.DataFrame
        Outputs of :func:`feature_importance`.
    max_vars : int | None
        With ``split="model"``, keep the *max_vars* variables with the
        largest dropout loss within each model. With ``split="feature"``,
        keep the *max_vars* variables that are most important on average.
    split : str
        ``"model"`` groups rows by model, ``"feature"`` by variable.
    """
    if split not in ("model", "feature"):
        raise InvalidInputError(f"split must be 'model' or 'feature', got {split!r}.")
    if not tables:
        raise InvalidInputError("At least one importance table is required.")

    df = pd.concat(tables, ignore_index=True)
    full = df[df["variable"] == FULL_MODEL][["label", "dropout_loss"]]
    full = full.rename(columns={"dropout_loss": "full_model"})
    df = df[~df["variable"].astype(str).str.startswith("_")]
    df = df.merge(full, on="label", how="left")

    order = (
        df.groupby("variable", sort=False)["dropout_loss"]
        .mean()
        .sort_values(ascending=False, kind="mergesort")
    )
    ranked = list(order.index)

    if max_vars is not None and max_vars < len(ranked):
        if split == "model":
            df = (
                df.sort_values("dropout_loss", ascending=False, kind="mergesort")
                .groupby("label", sort=False)
                .head(max_vars)
            )
        else:
            ranked = ranked[:max_vars]
            df = df[df["variable"].isin(ranked)]

    df = df.assign(_rank=df["variable"].map({v: i for i, v in enumerate(ranked)}))
    keys = ["label", "_rank"] if split == "model" else ["_rank", "label"]
    df = df.sort_values(keys, kind="mergesort").drop(columns="_rank")
    return df[["label", "variable", "dropout_loss", "full_model"]].reset_index(drop=True)


class PermutationImportance(BaseExplanation):
    """Permutation-based feature importance.

    Parameters
    ----------
    n_permutations : int
        Number of permutation repeats.
    loss_function : str | callable
        Loss (lower is better), e.g. ``"root_mean_square"``.
    variables : list[str] | None
        Variables to permute.
    """

    def __init__(
        self,
        n_permutations: int = 10,
        loss_function: Union[str, LossFunction] = "root_mean_square",
        variables: Optional[List[str]] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.n_permutations = n_permutations
        self.loss_function = loss_function
        self.variables = variables
        self.importances_: Optional[pd.DataFrame] = None

    def fit(
        self,
        X: pd.DataFrame,
        y: Any = None,
        model: Any = None,
        predict_function: Optional[PredictFunction] = None,
        **kw: Any,
    ) -> "PermutationImportance":
        if (model is None and predict_function is None) or y is None:
            raise InvalidInputError("PermutationImportance requires model and y.")
        explainer = ModelExplainer(
            model, X, y, predict_function=predict_function, label=self.label
        )
        self.importances_ = feature_importance(
            explainer,
            loss_function=self.loss_function,
            variables=self.variables,
            n_permutations=self.n_permutations,
            random_state=self.random_state,
        )
        self._fitted = True
        return self

    def get_top_features(self, n: int = 10) -> List[str]:
        self._check_fitted()
        body = self.importances_[~self.importances_["variable"].isin([FULL_MODEL, BASELINE])]
        return body.sort_values("importance", ascending=False).head(n)["variable"].tolist()
