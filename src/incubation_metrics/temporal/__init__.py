"""Temporal analysis: window segmentation, commit selection and diff aggregation."""

from .assigner import assign_commits
from .diff import aggregate, contributor_tiers, parse_patch, window_metrics
from .git_extractor import GitRepository
from .models import (
    ChangeType,
    CommitFileRecord,
    CommitMessage,
    CommitRef,
    ContributorLedger,
    DiffStats,
    FileDiffRecord,
    IncubationPhase,
    MeasurementWindow,
    Person,
    PhaseRange,
    Project,
    WindowMetrics,
    WindowRecord,
)
from .rollup import (
    WindowRollup,
    analyze_phases,
    analyze_repository,
    commit_file_records,
    commit_messages,
    phase_ranges,
    plan_analysis,
    restore_default_branch,
)
from .selector import filter_commits, select_commits
from .windows import month_labels, parse_date, segment, window_month_label

__all__ = [
    "ChangeType",
    "CommitFileRecord",
    "CommitMessage",
    "CommitRef",
    "ContributorLedger",
    "DiffStats",
    "FileDiffRecord",
    "IncubationPhase",
    "GitRepository",
    "MeasurementWindow",
    "Person",
    "PhaseRange",
    "Project",
    "WindowMetrics",
    "WindowRecord",
    "WindowRollup",
    "aggregate",
    "analyze_phases",
    "analyze_repository",
    "assign_commits",
    "commit_file_records",
    "commit_messages",
    "contributor_tiers",
    "filter_commits",
    "month_labels",
    "parse_date",
    "parse_patch",
    "phase_ranges",
    "plan_analysis",
    "restore_default_branch",
    "segment",
    "select_commits",
    "window_metrics",
    "window_month_label",
]
