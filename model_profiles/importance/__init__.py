"""Permutation variable importance."""

from model_profiles.importance.feature_importance import (
    PermutationImportance,
    feature_importance,
    importance_summary,
)

__all__ = [
    "PermutationImportance",
    "feature_importance",
    "importance_summary",
]
