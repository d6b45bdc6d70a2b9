"""Shared fixtures for model_profiles tests."""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest
from sklearn.linear_model import LinearRegression

from model_profiles.utils.data_gen import make_profile_dataset

NUMERIC_FEATURES = ["age", "fare", "noise_feat"]


class CountingPredict:
    """Predict function that records how often and on how many rows it ran."""

    def __init__(self, fn):
        self.fn = fn
        self.calls = 0
        self.rows = []

    def __call__(self, X: pd.DataFrame) -> np.ndarray:
        self.calls += 1
        self.rows.append(len(X))
        return self.fn(X)


def linear_fn(X: pd.DataFrame) -> np.ndarray:
    return 2.0 * X["age"].to_numpy(dtype=float) + X["fare"].to_numpy(dtype=float)


@pytest.fixture(scope="session")
def profile_df() -> pd.DataFrame:
    """Synthetic dataset: 300 rows, numeric and categorical features."""
    return make_profile_dataset(n_samples=300, random_state=42)


@pytest.fixture(scope="session")
def X_y(profile_df: pd.DataFrame):
    """Split profile_df into X and y."""
    y = profile_df["target"]
    X = profile_df.drop(columns=["target"])
    return X, y


@pytest.fixture
def linear_predict() -> CountingPredict:
    return CountingPredict(linear_fn)


@pytest.fixture
def age_data() -> pd.DataFrame:
    return pd.DataFrame({"age": [5, 10, 40, 70], "fare": [1.0, 2.0, 3.0, 4.0]})


@pytest.fixture(scope="session")
def fitted_linear(X_y):
    """LinearRegression fitted on the numeric features."""
    X, y = X_y
    X_num = X[NUMERIC_FEATURES]
    model = LinearRegression().fit(X_num, y)
    return model, X_num, y


@pytest.fixture
def counting():
    """Factory wrapping a predict function in a call counter."""
    return CountingPredict
