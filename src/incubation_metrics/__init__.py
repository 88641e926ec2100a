"""
Incubation Metrics - time-segmented activity metrics mined from git history

Splits a project's observation period into calendar-month or fixed-day
measurement windows, assigns every non-merge commit to its window, and
reduces the commits' diffs to per-window process metrics (commits, active
days, line churn, file actions, author and committer counts, contributor
tiers, newcomers).
"""

__version__ = "0.1.0"

from .config import AnalysisConfig, load_config
from .projects import ProjectResult, analyze_projects, discover_projects
from .temporal import (
    MeasurementWindow,
    Project,
    WindowMetrics,
    WindowRecord,
    analyze_phases,
    analyze_repository,
    commit_file_records,
    commit_messages,
    segment,
)

__all__ = [
    "AnalysisConfig",
    "load_config",
    "Project",
    "ProjectResult",
    "MeasurementWindow",
    "WindowMetrics",
    "WindowRecord",
    "analyze_phases",
    "analyze_repository",  # Main entry point for one repository
    "analyze_projects",
    "discover_projects",
    "commit_file_records",
    "commit_messages",
    "segment",
]
