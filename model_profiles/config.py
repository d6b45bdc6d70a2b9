"""Configuration for profile and importance computations."""

from __future__ import annotations

import inspect
import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

logger = logging.getLogger("model_profiles")


@dataclass
class ProfileConfig:
    """Parameters shared by the profile and importance entry points.

    Parameters
    ----------
    grid_points : int
        Maximum number of grid values per variable.
    n_observations : int
        Number of reference rows sampled for aggregated profiles.
    span : float
        Bandwidth of the conditional-dependency kernel, in units of the
        variable's standard deviation.
    n_permutations : int
        Number of shuffles per variable in permutation importance.
    loss_function : str
        Name of the loss used by permutation importance.
    random_state : int
        Seed for row sampling and permutations.
    label : str | None
        Model label; defaults to the model's class name.
    """

    grid_points: int = 101
    n_observations: int = 500
    span: float = 0.25
    n_permutations: int = 10
    loss_function: str = "root_mean_square"
    random_state: int = 42
    label: Optional[str] = None

    # -- serialisation helpers ------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ProfileConfig":
        return cls(**{k: v for k, v in d.items() if k in cls.__dataclass_fields__})

    def save(self, path: Union[str, Path]) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2, default=str)
        logger.info("Saved ProfileConfig to %s", path)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "ProfileConfig":
        with open(path) as f:
            return cls.from_dict(json.load(f))


# ---------------------------------------------------------------------------
# Abstract base explanation
# ---------------------------------------------------------------------------

class BaseExplanation:
    """Base class for estimator-style explanation objects.

    Mirrors the scikit-learn ``fit`` convention: parameters go to the
    constructor, ``fit`` computes results and stores them in attributes with
    a trailing underscore.

    Sub-classes **must** override ``fit``.
    """

    _fitted: bool = False

    def __init__(
        self,
        random_state: Optional[int] = 42,
        label: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        self.random_state = random_state
        self.label = label

    def fit(self, X: Any, y: Any = None, **kwargs: Any) -> "BaseExplanation":
        raise NotImplementedError

    @classmethod
    def from_config(cls, config: ProfileConfig, **kwargs: Any) -> "BaseExplanation":
        """Build an instance from the matching fields of *config*."""
        accepted = set()
        for klass in cls.__mro__:
            if "__init__" in vars(klass) and klass is not object:
                accepted.update(inspect.signature(klass.__init__).parameters)
        params = {k: v for k, v in config.to_dict().items() if k in accepted}
        params.update(kwargs)
        return cls(**params)

    # -- helpers --------------------------------------------------------------

    def _check_fitted(self) -> None:
        if not self._fitted:
            raise RuntimeError(
                f"{self.__class__.__name__} has not been fitted yet. "
                "Call .fit() first."
            )

    def get_params(self) -> Dict[str, Any]:
        """Return constructor parameters (sklearn convention)."""
        return {
            k: v
            for k, v in self.__dict__.items()
            if not k.startswith("_") and not k.endswith("_")
        }

    def __repr__(self) -> str:  # pragma: no cover
        params = ", ".join(f"{k}={v!r}" for k, v in self.get_params().items())
        return f"{self.__class__.__name__}({params})"
