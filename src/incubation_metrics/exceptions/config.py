"""Configuration exceptions: dates, ranges, settings. All of these are fatal."""

from typing import Any

from .base import IncubationMetricsError


class ConfigurationError(IncubationMetricsError):
    """Base class for configuration-related errors."""

    pass


class InvalidDateError(ConfigurationError):
    """Raised when a date string cannot be parsed as YYYY-MM-DD."""

    def __init__(self, value: str, reason: str):
        super().__init__(
            f"Invalid date: {value!r}", details={"value": str(value), "reason": reason}
        )
        self.value = value
        self.reason = reason


class InvalidDateRange(ConfigurationError):
    """Raised when an analysis window ends before it starts."""

    def __init__(self, start: Any, end: Any):
        super().__init__(
            f"End date {end} is before start date {start}",
            details={"start": str(start), "end": str(end)},
        )
        self.start = start
        self.end = end


class InvalidConfigError(ConfigurationError):
    """Raised when configuration values are invalid."""

    def __init__(self, key: str, value: Any, reason: str):
        super().__init__(
            f"Invalid configuration for {key}: {value}",
            details={"key": key, "value": str(value), "reason": reason},
        )
        self.key = key
        self.value = value
        self.reason = reason
