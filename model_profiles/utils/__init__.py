"""Utility helpers shared across model_profiles modules."""

from model_profiles.utils.metrics import (
    get_loss_function,
    loss_accuracy,
    loss_one_minus_auc,
    loss_root_mean_square,
    loss_sum_of_squares,
)
from model_profiles.utils.sampling import select_sample
from model_profiles.utils.data_gen import make_profile_dataset

__all__ = [
    "get_loss_function",
    "loss_accuracy",
    "loss_one_minus_auc",
    "loss_root_mean_square",
    "loss_sum_of_squares",
    "select_sample",
    "make_profile_dataset",
]
