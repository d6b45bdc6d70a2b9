"""
model_profiles — model-agnostic explanations built from what-if predictions:
ceteris paribus profiles, partial, conditional and accumulated dependency,
and permutation variable importance.

Works with any model exposed through a batch predict function.
"""

__version__ = "0.1.0"

from model_profiles.config import ProfileConfig
from model_profiles.exceptions import (
    InvalidInputError,
    NoApplicableVariablesError,
    ProfileError,
)
from model_profiles.explainer import ModelExplainer
from model_profiles.importance import feature_importance
from model_profiles.profiles import (
    accumulated_dependency,
    aggregate_profiles,
    calculate_variable_splits,
    ceteris_paribus,
    ceteris_paribus_2d,
    conditional_dependency,
    partial_dependency,
)

__all__ = [
    "ProfileConfig",
    "ProfileError",
    "InvalidInputError",
    "NoApplicableVariablesError",
    "ModelExplainer",
    "calculate_variable_splits",
    "ceteris_paribus",
    "ceteris_paribus_2d",
    "aggregate_profiles",
    "partial_dependency",
    "conditional_dependency",
    "accumulated_dependency",
    "feature_importance",
]
