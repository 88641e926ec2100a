"""Exception hierarchy for incubation-metrics."""

from .analysis import (
    AnalysisError,
    CheckoutFailure,
    DiffComputationFailure,
    ExternalCollaboratorFailure,
    RepositoryAccessError,
    WindowAssignmentError,
)
from .base import IncubationMetricsError
from .config import (
    ConfigurationError,
    InvalidConfigError,
    InvalidDateError,
    InvalidDateRange,
)

__all__ = [
    "IncubationMetricsError",
    "AnalysisError",
    "RepositoryAccessError",
    "CheckoutFailure",
    "DiffComputationFailure",
    "ExternalCollaboratorFailure",
    "WindowAssignmentError",
    "ConfigurationError",
    "InvalidConfigError",
    "InvalidDateError",
    "InvalidDateRange",
]
