"""Synthetic datasets for testing and demos."""

from __future__ import annotations

import numpy as np
import pandas as pd


def make_profile_dataset(
    n_samples: int = 500,
    noise: float = 0.1,
    random_state: int = 42,
    target_col: str = "target",
    task: str = "regression",
) -> pd.DataFrame:
    """Generate a mixed numeric/categorical dataset with a known response.

    The response is ``0.05 * age + 0.02 * fare + class effect + gender
    effect`` plus Gaussian noise; ``noise_feat`` carries no signal.

    Parameters
    ----------
    n_samples : int
        Number of rows.
    noise : float
        Standard deviation of the additive noise.
    random_state : int
        Random seed.
    target_col : str
        Name for the target column.
    task : str
        ``"regression"`` for a continuous target or ``"classification"``
        for a binary one drawn from the logistic of the response.

    Returns
    -------
    pd.DataFrame
        Columns ``age`` (int), ``fare`` (float), ``gender`` (object),
        ``class`` (ordered categorical), ``noise_feat`` (float) and
        ``target_col``.
    """
    rng = np.random.RandomState(random_state)

    age = rng.randint(1, 80, size=n_samples)
    fare = np.round(rng.gamma(2.0, 15.0, size=n_samples), 2)
    gender = rng.choice(["male", "female"], size=n_samples)
    klass = pd.Categorical(
        rng.choice(["1st", "2nd", "3rd"], size=n_samples, p=[0.25, 0.25, 0.5]),
        categories=["1st", "2nd", "3rd"],
        ordered=True,
    )
    noise_feat = rng.randn(n_samples)

    class_effect = pd.Series(klass).map({"1st": 1.0, "2nd": 0.5, "3rd": 0.0}).to_numpy(dtype=float)
    gender_effect = np.where(gender == "female", 1.0, 0.0)
    response = 0.05 * age + 0.02 * fare + class_effect + gender_effect - 2.5

    df = pd.DataFrame(
        {
            "age": age,
            "fare": fare,
            "gender": gender,
            "class": klass,
            "noise_feat": noise_feat,
        }
    )
    if task == "classification":
        prob = 1.0 / (1.0 + np.exp(-response))
        df[target_col] = (rng.rand(n_samples) < prob).astype(int)
    else:
        df[target_col] = response + rng.randn(n_samples) * noise
    return df
