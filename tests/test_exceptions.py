"""Tests for the exception hierarchy."""

import pytest

from incubation_metrics.exceptions import (
    AnalysisError,
    CheckoutFailure,
    ConfigurationError,
    DiffComputationFailure,
    ExternalCollaboratorFailure,
    IncubationMetricsError,
    InvalidConfigError,
    InvalidDateError,
    InvalidDateRange,
    RepositoryAccessError,
    WindowAssignmentError,
)


class TestHierarchy:
    """Fatal configuration errors and per-repository analysis errors."""

    @pytest.mark.parametrize(
        "error",
        [
            InvalidDateError("2010-13-01", "month must be in 1..12"),
            InvalidDateRange("2010-02-01", "2010-01-01"),
            InvalidConfigError("time_window", 0, "must be at least 1 day"),
        ],
    )
    def test_configuration_errors(self, error):
        assert isinstance(error, ConfigurationError)
        assert isinstance(error, IncubationMetricsError)

    @pytest.mark.parametrize(
        "error",
        [
            RepositoryAccessError("/repo", "not a git repository"),
            CheckoutFailure("abc123", "conflict"),
            DiffComputationFailure("abc123", "bad object"),
            ExternalCollaboratorFailure("emails", "mbox missing"),
            WindowAssignmentError("abc123", "2010-01-01"),
        ],
    )
    def test_analysis_errors(self, error):
        assert isinstance(error, AnalysisError)
        assert not isinstance(error, ConfigurationError)


class TestFormatting:
    def test_details_rendered(self):
        error = CheckoutFailure("abc123", "conflict")
        assert str(error) == "Cannot checkout abc123 (ref=abc123, reason=conflict)"
        assert error.details == {"ref": "abc123", "reason": "conflict"}

    def test_no_details(self):
        assert str(IncubationMetricsError("plain")) == "plain"

    def test_optional_reason(self):
        error = WindowAssignmentError("abc", "2010-01-01")
        assert "reason" not in error.details
        error = WindowAssignmentError("abc", "2010-01-01", "no windows")
        assert error.details["reason"] == "no windows"
