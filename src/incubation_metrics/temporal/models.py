"""Data models for window-segmented (git-based) analysis."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Iterable, Optional


@dataclass(frozen=True)
class MeasurementWindow:
    """One contiguous, inclusive date segment of the observation period."""

    index: int  # 1-based, gapless
    start_date: date  # inclusive
    end_date: date  # inclusive

    @property
    def days(self) -> int:
        return (self.end_date - self.start_date).days + 1

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


@dataclass(frozen=True)
class Person:
    name: str
    email: str


@dataclass(frozen=True)
class CommitRef:
    """Immutable snapshot of a commit, detached from the repository handle."""

    sha: str
    parents: tuple[str, ...]
    author: Person
    committer: Person
    committed_at: datetime  # aware, in the committer's recorded offset
    authored_at: Optional[datetime] = None
    message: str = ""

    @property
    def parent_count(self) -> int:
        return len(self.parents)

    @property
    def committed_at_utc(self) -> datetime:
        return self.committed_at.astimezone(timezone.utc)

    @property
    def commit_date(self) -> date:
        """Calendar date of the commit, normalized to UTC."""
        return self.committed_at_utc.date()

    @property
    def timestamp(self) -> int:
        return int(self.committed_at.timestamp())


class ChangeType(str, Enum):
    """File-level change classification, derived from the diff delta status."""

    ADDED = "A"
    DELETED = "D"
    MODIFIED = "M"
    RENAMED = "R"
    UNKNOWN = "U"


@dataclass
class FileDiffRecord:
    filename: str
    lines_added: int = 0
    lines_deleted: int = 0
    change_type: ChangeType = ChangeType.UNKNOWN
    old_path: Optional[str] = None  # None for added files
    new_path: Optional[str] = None  # None for deleted files


@dataclass
class DiffStats:
    """Reduced diff of a single commit against its parent."""

    added_lines: int = 0
    deleted_lines: int = 0
    files_added: int = 0
    files_deleted: int = 0
    files_modified: int = 0
    files_renamed: int = 0
    files: list[FileDiffRecord] = field(default_factory=list)


@dataclass(frozen=True)
class WindowMetrics:
    """Commit-derived (process) metrics of one measurement window."""

    window_index: int
    commit_count: int = 0
    active_days: int = 0
    added_lines: int = 0
    deleted_lines: int = 0
    files_added: int = 0
    files_deleted: int = 0
    files_modified: int = 0
    files_renamed: int = 0
    authors: int = 0  # distinct author emails
    committers: int = 0  # distinct committer emails
    minor_contributors: int = 0
    major_contributors: int = 0
    new_contributors: int = 0
    avg_files_modified_commit: float = 0.0

    @classmethod
    def empty(cls, window_index: int) -> "WindowMetrics":
        """Zeroed process metrics for a window without commits."""
        return cls(window_index=window_index)


class ContributorLedger:
    """Append-only set of every author email seen so far in one analysis run."""

    def __init__(self) -> None:
        self._seen: set[str] = set()

    def register(self, emails: Iterable[str]) -> int:
        """Record ``emails`` and return how many of them were not seen before."""
        new = 0
        for email in emails:
            if email not in self._seen:
                self._seen.add(email)
                new += 1
        return new

    def __contains__(self, email: object) -> bool:
        return email in self._seen

    def __len__(self) -> int:
        return len(self._seen)


@dataclass(frozen=True)
class WindowRecord:
    """One output row: a window's process metrics merged with external metrics."""

    project: str
    status: str
    start_date: str  # analysis range, not the window
    end_date: str
    window: MeasurementWindow
    metrics: WindowMetrics
    email_metrics: dict[str, Any] = field(default_factory=dict)
    code_metrics: dict[str, Any] = field(default_factory=dict)
    last_commit: Optional[str] = None

    @property
    def active(self) -> bool:
        return self.metrics.commit_count > 0

    def to_dict(self) -> dict[str, Any]:
        """Flatten into a single mapping, the shape serializers write per row."""
        row: dict[str, Any] = {
            "project": self.project,
            "status": self.status,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "measurement_month": self.window.index,
            "window_start_date": self.window.start_date.isoformat(),
            "window_end_date": self.window.end_date.isoformat(),
        }
        metrics = asdict(self.metrics)
        metrics.pop("window_index")
        metrics["commits"] = metrics.pop("commit_count")
        row.update(metrics)
        row.update(self.email_metrics)
        row.update(self.code_metrics)
        return row


@dataclass(frozen=True)
class CommitFileRecord:
    """Per-file attribution of one commit, tagged with its window."""

    window_index: int
    commit_sha: str
    name: str
    email: str
    date: str
    timestamp: int
    filename: str
    change_type: str
    lines_added: int
    lines_deleted: int
    commit_message: str = ""


@dataclass(frozen=True)
class CommitMessage:
    project: str
    status: str
    window_index: int
    sha: str
    message: str


@dataclass(frozen=True)
class Project:
    """Read-only project metadata driving one repository analysis.

    Empty ``start_date``/``end_date`` mean "use the repository's own history".
    """

    name: str
    repository_path: str
    start_date: str = ""
    end_date: str = ""
    status: str = ""


class IncubationPhase(str, Enum):
    """Period of a project's history relative to its incubation dates."""

    PRE = "pre-incubation"
    DURING = "during-incubation"
    POST = "post-incubation"


@dataclass(frozen=True)
class PhaseRange:
    phase: IncubationPhase
    start_date: date
    end_date: date
