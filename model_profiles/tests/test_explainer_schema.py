"""Tests for the model wrapper and the column schema."""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest
from sklearn.linear_model import LogisticRegression

from model_profiles.exceptions import InvalidInputError, NoApplicableVariablesError
from model_profiles.explainer import ModelExplainer, resolve_explainer
from model_profiles.schema import CATEGORICAL, NUMERICAL, Schema
from model_profiles.utils.sampling import select_sample


class TestModelExplainer:
    def test_uses_positive_class_probability(self, fitted_linear):
        _, X_num, y = fitted_linear
        labels = (np.asarray(y) > np.median(y)).astype(int)
        model = LogisticRegression().fit(X_num, labels)
        explainer = ModelExplainer(model, X_num, labels)
        np.testing.assert_allclose(
            explainer.predict(X_num.head(5)), model.predict_proba(X_num.head(5))[:, 1]
        )
        assert explainer.label == "LogisticRegression"

    def test_falls_back_to_predict(self, fitted_linear):
        model, X_num, y = fitted_linear
        explainer = ModelExplainer(model, X_num, y)
        np.testing.assert_allclose(explainer.predict(X_num), model.predict(X_num))

    def test_column_vector_is_flattened(self, age_data):
        explainer = ModelExplainer(
            predict_function=lambda X: X[["age"]].to_numpy(), data=age_data
        )
        assert explainer.predict(age_data).shape == (4,)

    def test_requires_model_or_function(self, age_data):
        with pytest.raises(InvalidInputError):
            ModelExplainer(data=age_data)

    def test_y_length_checked(self, age_data):
        with pytest.raises(InvalidInputError):
            ModelExplainer(predict_function=len, data=age_data, y=[1, 2])

    def test_resolve_overrides(self, age_data):
        explainer = ModelExplainer(predict_function=len, data=age_data, label="m")
        _, data, _, label = resolve_explainer(explainer, data=age_data.head(2), label="n")
        assert len(data) == 2 and label == "n"

    def test_resolve_rejects_other_objects(self):
        with pytest.raises(InvalidInputError):
            resolve_explainer(42)


class TestSchema:
    def test_kinds(self, X_y):
        X, _ = X_y
        schema = Schema.from_frame(X.assign(flag=True))
        assert schema["age"].kind == NUMERICAL
        assert schema["class"].kind == CATEGORICAL
        assert schema["gender"].kind == CATEGORICAL
        assert schema["flag"].kind == CATEGORICAL
        assert schema.names == list(X.columns) + ["flag"]

    def test_validate_lists_all_missing(self, age_data):
        schema = Schema.from_frame(age_data)
        with pytest.raises(InvalidInputError) as exc:
            schema.validate(["age", "x", "y"])
        assert exc.value.details["missing"] == ["x", "y"]

    def test_validate_accepts_single_name(self, age_data):
        assert Schema.from_frame(age_data).validate("age") == ["age"]

    def test_select(self, X_y):
        X, _ = X_y
        schema = Schema.from_frame(X)
        assert schema.select("categorical") == ["gender", "class"]
        assert schema.select("numerical", ["age", "gender"]) == ["age"]
        with pytest.raises(NoApplicableVariablesError):
            schema.select("numerical", ["gender"])
        with pytest.raises(InvalidInputError):
            schema.select("ordinal")


class TestSelectSample:
    def test_sample_size_and_order(self, profile_df):
        sample = select_sample(profile_df, n=25, seed=3)
        assert len(sample) == 25
        assert sample.index.is_monotonic_increasing
        pd.testing.assert_frame_equal(sample, select_sample(profile_df, n=25, seed=3))

    def test_small_data_returned_whole(self, age_data):
        assert select_sample(age_data, n=100) is age_data
