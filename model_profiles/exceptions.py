"""Exception hierarchy for model_profiles.

Errors raised by the user-supplied model or loss function are never wrapped:
they reach the caller unchanged.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class ProfileError(Exception):
    """Base exception for all model_profiles errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidInputError(ProfileError, ValueError):
    """Raised for unknown variables, empty data or unsupported options."""


class NoApplicableVariablesError(ProfileError, ValueError):
    """Raised when no variable of the requested kind is available."""
