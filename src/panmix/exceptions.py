from __future__ import annotations


class PanMixError(Exception):
    """Base class for PanMix exceptions."""

    exit_code: int = 1


class PanMixUsageError(PanMixError):
    """Raised when command arguments or inputs are invalid."""

    exit_code = 2


class InvalidComponentRange(PanMixUsageError):
    """Raised when a mixture is requested with fewer than two components."""


class BoundaryOptimumWarning(UserWarning):
    """Minimum BIC was reached at the largest number of components tried."""
