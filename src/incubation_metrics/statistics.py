"""Summary statistics over a run's window records."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .temporal.models import WindowRecord

# Process metrics summarized per window
SUMMARY_FIELDS = (
    "commit_count",
    "active_days",
    "added_lines",
    "deleted_lines",
    "files_added",
    "files_deleted",
    "files_modified",
    "files_renamed",
    "authors",
    "committers",
    "new_contributors",
)


@dataclass(frozen=True)
class MetricSummary:
    name: str
    total: float
    mean: float
    median: float
    maximum: float


@dataclass(frozen=True)
class RunSummary:
    windows: int
    active_windows: int
    metrics: list[MetricSummary]

    @property
    def active_share(self) -> float:
        """Fraction of windows with at least one commit."""
        if self.windows == 0:
            return 0.0
        return self.active_windows / self.windows

    def get(self, name: str) -> MetricSummary:
        for m in self.metrics:
            if m.name == name:
                return m
        raise KeyError(name)


def summarize(records: Sequence[WindowRecord]) -> RunSummary:
    """Totals, per-window mean and median, and maximum of each process metric.

    Every window counts, including inactive ones, so means are per window of
    the observation period rather than per active window.
    """
    if not records:
        return RunSummary(
            windows=0,
            active_windows=0,
            metrics=[MetricSummary(name, 0.0, 0.0, 0.0, 0.0) for name in SUMMARY_FIELDS],
        )

    matrix = np.array(
        [[getattr(r.metrics, name) for name in SUMMARY_FIELDS] for r in records],
        dtype=np.float64,
    )
    totals = matrix.sum(axis=0)
    means = matrix.mean(axis=0)
    medians = np.median(matrix, axis=0)
    maxima = matrix.max(axis=0)

    metrics = [
        MetricSummary(
            name=name,
            total=float(totals[i]),
            mean=float(means[i]),
            median=float(medians[i]),
            maximum=float(maxima[i]),
        )
        for i, name in enumerate(SUMMARY_FIELDS)
    ]
    active = int(np.count_nonzero(matrix[:, SUMMARY_FIELDS.index("commit_count")]))
    return RunSummary(windows=len(records), active_windows=active, metrics=metrics)
