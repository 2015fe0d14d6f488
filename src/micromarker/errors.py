"""Exception and warning types raised by micromarker."""

from __future__ import annotations


class MicromarkerError(Exception):
    """Base class for all micromarker errors."""


class ConfigurationError(MicromarkerError, ValueError):
    """Invalid run configuration (rank, method, correction, cutoffs).

    Raised before any computation starts.
    """


class InvalidGroupError(ConfigurationError):
    """Group field is missing or does not define exactly two groups."""


class ComputationTimeoutError(MicromarkerError, TimeoutError):
    """The computation deadline expired before the run finished."""


class DegenerateStatisticWarning(RuntimeWarning):
    """Both groups have zero variance; a fixed denominator was substituted."""


class NoSignificantFeaturesWarning(UserWarning):
    """Filtering removed every feature; all features are returned instead."""
