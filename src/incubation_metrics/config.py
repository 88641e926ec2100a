"""Configuration loading and management for incubation-metrics.

Configuration sources are merged in priority order:
    1. Defaults (defined in AnalysisConfig)
    2. Global config (~/.incubation-metrics.toml)
    3. Project config (./incubation-metrics.toml)
    4. Explicit config file
    5. Environment variables (INCUBATION_* prefix)
    6. CLI overrides (passed as kwargs)

Example:
    >>> config = load_config(time_window=30)
    >>> config.time_window
    30
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, get_type_hints

from .exceptions import InvalidConfigError

ENV_PREFIX = "INCUBATION_"

# Projects whose primary line of development is not on a conventional branch name
DEFAULT_BRANCH_OVERRIDES = {
    "FreeMarker": "2.3-gae",
    "Dubbo": "3.0",
    "DolphinScheduler": "dev",
}


@dataclass(frozen=True)
class AnalysisConfig:
    """Configuration for one analysis run.

    Attributes:
        Segmentation:
            time_window: Fixed window length in days (None = calendar months)
            ignore_start_end_dates: Use the first and last commit dates as the range

        Commit selection:
            restrict_languages: Keep only commits touching an allow-listed extension
            language_extensions: Extra extensions for the allow-list (no leading dot)
            extensions_file: TOML file listing the language types to keep
            languages_file: JSON catalog mapping language types to extensions

        Diff aggregation:
            rename_threshold: Similarity percentage for rename detection
            minor_contributor_ratio: Share of a window's commits at or below which
                an author counts as a minor contributor

        Collaborators:
            skip_code_metrics: Do not checkout windows or run source-tree collaborators
            skip_email_metrics: Do not request out-of-band metrics

        Repository state:
            default_branches: Branches tried, in order, when restoring the repository
            branch_overrides: Project name -> branch restored instead of the defaults

        Execution:
            workers: Parallel repositories (None = auto-detect)
            git_timeout_seconds: Timeout for a single git invocation
    """

    # Segmentation
    time_window: Optional[int] = None
    ignore_start_end_dates: bool = False

    # Commit selection
    restrict_languages: bool = False
    language_extensions: list[str] = field(default_factory=list)
    extensions_file: Optional[str] = None
    languages_file: Optional[str] = None

    # Diff aggregation
    rename_threshold: int = 50
    minor_contributor_ratio: float = 0.05

    # Collaborators
    skip_code_metrics: bool = False
    skip_email_metrics: bool = False

    # Repository state
    default_branches: list[str] = field(
        default_factory=lambda: ["master", "main", "trunk", "develop"]
    )
    branch_overrides: dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_BRANCH_OVERRIDES)
    )

    # Execution
    workers: Optional[int] = None
    git_timeout_seconds: int = 300

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.time_window is not None and self.time_window < 1:
            raise InvalidConfigError("time_window", self.time_window, "must be at least 1 day")
        if not 0 <= self.rename_threshold <= 100:
            raise InvalidConfigError(
                "rename_threshold", self.rename_threshold, "must be between 0 and 100"
            )
        if not 0.0 <= self.minor_contributor_ratio <= 1.0:
            raise InvalidConfigError(
                "minor_contributor_ratio",
                self.minor_contributor_ratio,
                "must be between 0.0 and 1.0",
            )
        if self.workers is not None and self.workers < 1:
            raise InvalidConfigError("workers", self.workers, "must be at least 1")
        if self.git_timeout_seconds < 1:
            raise InvalidConfigError(
                "git_timeout_seconds", self.git_timeout_seconds, "must be at least 1"
            )
        if not self.default_branches:
            raise InvalidConfigError("default_branches", self.default_branches, "cannot be empty")

    def branch_candidates(self, project: str) -> list[str]:
        """Branches to try, in order, when restoring ``project`` to its main line."""
        override = self.branch_overrides.get(project)
        if override:
            return [override]
        return list(self.default_branches)


def load_config(config_file: Optional[Path] = None, **overrides: Any) -> AnalysisConfig:
    """Load configuration with auto-discovery and merging.

    Args:
        config_file: Optional explicit config file path
        **overrides: Direct overrides (typically from CLI flags); ``None``
            values are ignored so unset CLI options do not mask file settings

    Returns:
        Validated AnalysisConfig instance

    Raises:
        InvalidConfigError: If a config file is invalid or missing, or a key is unknown
    """
    merged: dict[str, Any] = {}

    global_config = Path.home() / ".incubation-metrics.toml"
    if global_config.exists():
        merged.update(_load_config_file(global_config))

    project_config = Path.cwd() / "incubation-metrics.toml"
    if project_config.exists():
        merged.update(_load_config_file(project_config))

    if config_file is not None:
        if not config_file.exists():
            raise InvalidConfigError("config_file", str(config_file), "file not found")
        merged.update(_load_config_file(config_file))

    merged.update(_load_env_vars())
    merged.update({k: v for k, v in overrides.items() if v is not None})

    # TOML tables come back as plain dicts; branch_overrides merges on top of the defaults
    if "branch_overrides" in merged:
        value = merged["branch_overrides"]
        if not isinstance(value, dict):
            raise InvalidConfigError("branch_overrides", value, "expected a table")
        merged["branch_overrides"] = {**DEFAULT_BRANCH_OVERRIDES, **value}

    unknown = set(merged) - set(AnalysisConfig.__dataclass_fields__)
    if unknown:
        key = sorted(unknown)[0]
        raise InvalidConfigError(key, merged[key], "unknown configuration key")

    return AnalysisConfig(**merged)


def _load_config_file(path: Path) -> dict[str, Any]:
    try:
        data = _load_toml_file(path)
    except InvalidConfigError:
        raise
    except Exception as e:
        raise InvalidConfigError("config_file", str(path), f"cannot parse TOML: {e}")

    # Settings may live at the top level or under an [analysis] table
    section = data.get("analysis", data)
    if not isinstance(section, dict):
        raise InvalidConfigError("analysis", section, "expected a table")
    return dict(section)


def _load_env_vars() -> dict[str, Any]:
    """Load configuration from INCUBATION_* environment variables.

    Supported environment variables:
        INCUBATION_TIME_WINDOW: int
        INCUBATION_IGNORE_START_END_DATES: bool (true/false/1/0)
        INCUBATION_RESTRICT_LANGUAGES: bool
        INCUBATION_EXTENSIONS_FILE: path
        INCUBATION_LANGUAGES_FILE: path
        INCUBATION_RENAME_THRESHOLD: int
        INCUBATION_MINOR_CONTRIBUTOR_RATIO: float
        INCUBATION_SKIP_CODE_METRICS: bool
        INCUBATION_SKIP_EMAIL_METRICS: bool
        INCUBATION_WORKERS: int
        INCUBATION_GIT_TIMEOUT_SECONDS: int
    """
    type_hints = get_type_hints(AnalysisConfig)

    result: dict[str, Any] = {}

    for field_name in AnalysisConfig.__dataclass_fields__:
        env_key = f"{ENV_PREFIX}{field_name.upper()}"
        env_value = os.environ.get(env_key)

        if env_value is None:
            continue

        type_hint = type_hints.get(field_name)
        if type_hint is None:
            continue

        try:
            parsed = _parse_env_value(env_value, type_hint)
        except ValueError as e:
            raise InvalidConfigError(env_key, env_value, str(e))
        if parsed is not None:
            result[field_name] = parsed

    return result


def _parse_env_value(value: str, type_hint: Any) -> Any:
    """Parse an environment variable string to the field's type.

    Returns None for types that cannot be expressed as a single string
    (lists, dicts).
    """
    origin = getattr(type_hint, "__origin__", None)

    # Optional[X] is Union[X, None]
    args = getattr(type_hint, "__args__", ())
    if type(None) in args:
        non_none_types = [t for t in args if t is not type(None)]
        if non_none_types:
            type_hint = non_none_types[0]
            origin = getattr(type_hint, "__origin__", None)

    if origin in (list, dict) or type_hint in (list, dict):
        return None

    if type_hint is bool:
        lower = value.lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        elif lower in ("false", "0", "no", "off"):
            return False
        else:
            raise ValueError(f"expected true/false, got '{value}'")

    if type_hint is int:
        return int(value)

    if type_hint is float:
        return float(value)

    if type_hint is str:
        return value

    return None


def _load_toml_file(path: Path) -> dict:
    """Load a TOML file and return the parsed dict.

    Raises:
        InvalidConfigError: If neither tomllib nor tomli is available
    """
    try:
        # Python 3.11+ has tomllib in stdlib
        import tomllib
    except ModuleNotFoundError:
        try:
            import tomli as tomllib  # type: ignore
        except ImportError:
            raise InvalidConfigError(
                "config_file",
                str(path),
                "TOML support requires Python 3.11+ or the 'tomli' package",
            )

    with open(path, "rb") as f:
        return tomllib.load(f)
