"""Explicit column schema for reference data."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

import pandas as pd
from pandas.api import types as ptypes

from model_profiles.exceptions import InvalidInputError, NoApplicableVariablesError

logger = logging.getLogger("model_profiles")

NUMERICAL = "numerical"
CATEGORICAL = "categorical"
VARIABLE_TYPES = (NUMERICAL, CATEGORICAL)


def column_kind(series: pd.Series) -> str:
    """Return ``"numerical"`` for numeric non-boolean data, else ``"categorical"``."""
    if ptypes.is_bool_dtype(series) or not ptypes.is_numeric_dtype(series):
        return CATEGORICAL
    return NUMERICAL


@dataclass(frozen=True)
class Column:
    name: str
    kind: str

    @property
    def is_numerical(self) -> bool:
        return self.kind == NUMERICAL


class Schema:
    """Ordered list of named, typed columns.

    Built once from the reference data and used to validate every variable
    list before any prediction is requested.
    """

    def __init__(self, columns: Iterable[Column]) -> None:
        self.columns: List[Column] = list(columns)
        self._by_name = {c.name: c for c in self.columns}

    @classmethod
    def from_frame(cls, data: pd.DataFrame) -> "Schema":
        return cls(Column(name, column_kind(data[name])) for name in data.columns)

    @property
    def names(self) -> List[str]:
        return [c.name for c in self.columns]

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __getitem__(self, name: str) -> Column:
        return self._by_name[name]

    def __len__(self) -> int:
        return len(self.columns)

    def validate(self, variables: Optional[Iterable[str]] = None) -> List[str]:
        """Return *variables* (all columns when None) after checking they exist."""
        if variables is None:
            return self.names
        if isinstance(variables, str):
            variables = [variables]
        variables = list(variables)
        missing = [v for v in variables if v not in self._by_name]
        if missing:
            raise InvalidInputError(
                f"Variables not found in data: {', '.join(map(str, missing))}",
                details={"missing": missing, "available": self.names},
            )
        return variables

    def select(
        self,
        variable_type: Optional[str] = None,
        variables: Optional[Iterable[str]] = None,
    ) -> List[str]:
        """Validate *variables* and keep those of *variable_type*.

        Raises
        ------
        NoApplicableVariablesError
            When no variable of the requested type remains.
        """
        names = self.validate(variables)
        if variable_type is None:
            return names
        if variable_type not in VARIABLE_TYPES:
            raise InvalidInputError(
                f"variable_type must be one of {VARIABLE_TYPES}, got {variable_type!r}"
            )
        selected = [n for n in names if self._by_name[n].kind == variable_type]
        if not selected:
            raise NoApplicableVariablesError(
                f"There are no {variable_type} variables among: {', '.join(names)}",
                details={"variable_type": variable_type, "variables": names},
            )
        return selected

    def __repr__(self) -> str:  # pragma: no cover
        cols = ", ".join(f"{c.name}:{c.kind}" for c in self.columns)
        return f"Schema({cols})"


def check_not_empty(data: pd.DataFrame, what: str = "data") -> None:
    if data is None or len(data) == 0 or data.shape[1] == 0:
        raise InvalidInputError(f"{what} must be a non-empty table.")
