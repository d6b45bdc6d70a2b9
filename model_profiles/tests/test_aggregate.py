"""Tests for partial, conditional and accumulated dependency."""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from model_profiles.config import ProfileConfig
from model_profiles.exceptions import InvalidInputError, NoApplicableVariablesError
from model_profiles.explainer import ModelExplainer
from model_profiles.profiles.aggregate import (
    AccumulatedDependence,
    PartialDependence,
    accumulated_dependency,
    aggregate_profiles,
    conditional_dependency,
    partial_dependency,
)
from model_profiles.profiles.ceteris_paribus import ceteris_paribus


def doubled_age(X: pd.DataFrame) -> np.ndarray:
    return X["age"].to_numpy(dtype=float) * 2


class TestPartialDependency:
    def test_doubled_age_curve(self, age_data):
        curve = partial_dependency(doubled_age, data=age_data, grid_points=4, variables=["age"])
        np.testing.assert_array_equal(curve["_x_"].astype(float), [5, 10, 40, 70])
        np.testing.assert_allclose(curve["_yhat_"], [10, 20, 80, 140])
        assert (curve["_n_"] == 4).all()

    def test_constant_model(self, X_y):
        X, _ = X_y
        table = ceteris_paribus(lambda d: np.full(len(d), 3.5), X.iloc[:20], grid_points=11, data=X)
        curve = aggregate_profiles(table, type="partial")
        assert set(curve["_vname_"]) == set(X.columns)
        np.testing.assert_allclose(curve["_yhat_"], 3.5)

    def test_output_order(self, X_y, linear_predict):
        X, _ = X_y
        table = ceteris_paribus(linear_predict, X.iloc[:10], ["fare", "age"], grid_points=6, data=X)
        curve = aggregate_profiles(table)
        assert list(curve["_vname_"].unique()) == ["fare", "age"]
        for var, grid in table.variable_splits.items():
            np.testing.assert_array_equal(
                curve.loc[curve["_vname_"] == var, "_x_"].astype(float), grid
            )
        assert list(curve.columns) == ["_vname_", "_label_", "_x_", "_yhat_", "_ids_", "_n_"]

    def test_several_models(self, age_data):
        a = ceteris_paribus(doubled_age, age_data, ["age"], data=age_data, label="a")
        b = ceteris_paribus(lambda d: d["age"] * 3.0, age_data, ["age"], data=age_data, label="b")
        curve = aggregate_profiles(a, b)
        assert list(curve["_label_"]) == ["a"] * 4 + ["b"] * 4
        np.testing.assert_allclose(curve["_yhat_"][4:], [15, 30, 120, 210])

    def test_samples_observations(self, X_y, linear_predict):
        X, _ = X_y
        partial_dependency(
            linear_predict, data=X, variables=["age"], grid_points=5, n_observations=10
        )
        assert linear_predict.rows == [10 * 5 + 10]


class TestConditionalDependency:
    def test_tracks_correlated_feature(self):
        data = pd.DataFrame({"age": [10.0, 20.0, 30.0, 40.0, 50.0]})
        data["fare"] = data["age"]
        predict = lambda d: d["age"].to_numpy() + d["fare"].to_numpy()  # noqa: E731
        partial = partial_dependency(predict, data=data, variables=["age"])
        conditional = conditional_dependency(predict, data=data, variables=["age"], span=0.01)
        np.testing.assert_allclose(partial["_yhat_"], data["age"] + 30.0)
        np.testing.assert_allclose(conditional["_yhat_"], 2 * data["age"])

    def test_categorical_uses_matching_level(self, X_y):
        X, _ = X_y
        obs = X.iloc[:40]

        def predict(d):
            return d["age"].to_numpy(dtype=float) + (d["gender"] == "female").to_numpy()

        table = ceteris_paribus(predict, obs, ["gender"], data=X)
        curve = aggregate_profiles(table, type="conditional")
        female = curve[curve["_x_"] == "female"]
        expected = obs.loc[obs["gender"] == "female", "age"].mean() + 1.0
        assert female["_yhat_"].iloc[0] == pytest.approx(expected)
        assert female["_n_"].iloc[0] == (obs["gender"] == "female").sum()

    def test_unobserved_level_is_omitted(self, age_data):
        data = age_data.assign(gender=["m", "f", "m", "f"])
        splits = {"gender": np.array(["m", "f", "x"], dtype=object)}
        table = ceteris_paribus(doubled_age, data, variable_splits=splits)
        curve = aggregate_profiles(table, type="conditional")
        assert list(curve["_x_"]) == ["m", "f"]
        partial = aggregate_profiles(table, type="partial")
        assert list(partial["_x_"]) == ["m", "f", "x"]

    def test_bad_span(self, age_data):
        table = ceteris_paribus(doubled_age, age_data, data=age_data)
        with pytest.raises(InvalidInputError):
            aggregate_profiles(table, type="conditional", span=0)


class TestAccumulatedDependency:
    def test_linear_model_curve(self, age_data):
        curve = accumulated_dependency(doubled_age, data=age_data, variables=["age"], grid_points=4)
        np.testing.assert_allclose(curve["_yhat_"], [-55.0, -45.0, 15.0, 75.0])
        assert list(curve["_n_"]) == [0, 2, 1, 1]

    def test_centering(self, X_y, linear_predict):
        X, _ = X_y
        table = ceteris_paribus(linear_predict, X.iloc[:60], grid_points=15, data=X)
        curve = aggregate_profiles(table, type="accumulated")
        for var, group in curve.groupby("_vname_"):
            weighted = np.sum(group["_yhat_"] * group["_n_"])
            assert weighted == pytest.approx(0.0, abs=1e-8), var

    def test_empty_interval_carries_forward(self):
        obs = pd.DataFrame({"age": [0.0, 20.0]})
        splits = {"age": np.array([0.0, 5.0, 10.0, 20.0])}
        table = ceteris_paribus(doubled_age, obs, variable_splits=splits)
        curve = aggregate_profiles(table, type="accumulated")
        np.testing.assert_allclose(curve["_yhat_"], [-20.0, -10.0, -10.0, 10.0])
        assert list(curve["_n_"]) == [0, 1, 0, 1]

    def test_single_grid_value(self):
        obs = pd.DataFrame({"age": [3.0, 3.0], "fare": [1.0, 2.0]})
        table = ceteris_paribus(doubled_age, obs, ["age"], data=obs)
        curve = aggregate_profiles(table, type="accumulated")
        assert list(curve["_yhat_"]) == [0.0]


class TestAggregateErrors:
    def test_unknown_type(self, age_data):
        table = ceteris_paribus(doubled_age, age_data, data=age_data)
        with pytest.raises(InvalidInputError):
            aggregate_profiles(table, type="median")

    def test_unknown_type_fails_before_model_call(self, age_data, linear_predict):
        from model_profiles.profiles.aggregate import aggregated_dependency

        with pytest.raises(InvalidInputError):
            aggregated_dependency("median", linear_predict, data=age_data)
        assert linear_predict.calls == 0

    def test_no_numerical_variables(self, linear_predict):
        data = pd.DataFrame({"gender": ["m", "f"], "city": ["a", "b"]})
        with pytest.raises(NoApplicableVariablesError):
            partial_dependency(linear_predict, data=data, variable_type="numerical")
        assert linear_predict.calls == 0

    def test_unknown_variable(self, age_data):
        table = ceteris_paribus(doubled_age, age_data, ["age"], data=age_data)
        with pytest.raises(InvalidInputError):
            aggregate_profiles(table, variables=["fare"])

    def test_not_a_profile_table(self):
        with pytest.raises(InvalidInputError):
            aggregate_profiles(pd.DataFrame({"a": [1]}))


class TestAggregatedProfileSteps:
    def test_partial_dependence_fit(self, fitted_linear):
        model, X_num, y = fitted_linear
        pdp = PartialDependence(variables=["age"], grid_points=10, n_observations=50)
        pdp.fit(X_num, y, model=model)
        curve = pdp.get_curve("age")
        assert len(curve) == 10
        slope = np.diff(curve["_yhat_"]) / np.diff(curve["_x_"].astype(float))
        np.testing.assert_allclose(slope, model.coef_[0])
        assert (pdp.profiles_["_label_"] == "LinearRegression").all()

    def test_from_config(self, fitted_linear):
        model, X_num, y = fitted_linear
        config = ProfileConfig(grid_points=5, n_observations=30, label="lm")
        ale = AccumulatedDependence.from_config(config, variables=["fare"])
        assert ale.grid_points == 5 and ale.label == "lm"
        ale.fit(X_num, y, model=model)
        assert set(ale.profiles_["_label_"]) == {"lm"}

    def test_requires_model(self, fitted_linear):
        _, X_num, y = fitted_linear
        with pytest.raises(InvalidInputError):
            PartialDependence().fit(X_num, y)

    def test_get_curve_before_fit(self):
        with pytest.raises(RuntimeError):
            PartialDependence().get_curve("age")

    def test_explainer_input(self, fitted_linear):
        model, X_num, y = fitted_linear
        explainer = ModelExplainer(model, X_num, y)
        curve = partial_dependency(explainer, variables=["age"], grid_points=5, n_observations=20)
        assert len(curve) == 5
