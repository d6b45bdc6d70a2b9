"""Ceteris paribus profiles, 2D grids and their aggregations."""

from model_profiles.profiles.splits import calculate_variable_splits
from model_profiles.profiles.ceteris_paribus import (
    ProfileTable,
    build_profiles,
    ceteris_paribus,
    select_profiles,
)
from model_profiles.profiles.ceteris_paribus_2d import (
    ProfileTable2D,
    build_profiles_2d,
    ceteris_paribus_2d,
)
from model_profiles.profiles.aggregate import (
    AccumulatedDependence,
    ConditionalDependence,
    PartialDependence,
    accumulated_dependency,
    aggregate_profiles,
    aggregated_dependency,
    conditional_dependency,
    partial_dependency,
)

__all__ = [
    "calculate_variable_splits",
    "ProfileTable",
    "build_profiles",
    "ceteris_paribus",
    "select_profiles",
    "ProfileTable2D",
    "build_profiles_2d",
    "ceteris_paribus_2d",
    "aggregate_profiles",
    "aggregated_dependency",
    "partial_dependency",
    "conditional_dependency",
    "accumulated_dependency",
    "PartialDependence",
    "ConditionalDependence",
    "AccumulatedDependence",
]
