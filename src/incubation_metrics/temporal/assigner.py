"""Bucket selected commits into measurement windows."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from ..exceptions import WindowAssignmentError
from .models import CommitRef, MeasurementWindow


def assign_commits(
    commits: Sequence[CommitRef], windows: Sequence[MeasurementWindow]
) -> dict[int, list[CommitRef]]:
    """Map every window index to the commits whose UTC committer date it contains.

    Every window is present in the result, in window order, possibly with an
    empty list. Commits keep their input order inside a window.

    Raises:
        WindowAssignmentError: If a commit falls outside every window
    """
    assigned: dict[int, list[CommitRef]] = {w.index: [] for w in windows}
    if not commits:
        return assigned

    if not windows:
        first = commits[0]
        raise WindowAssignmentError(first.sha, first.commit_date.isoformat(), "no windows")

    # Windows are ordered and gapless, so the first window ending on or after
    # the commit date is the only candidate
    starts = np.fromiter((w.start_date.toordinal() for w in windows), dtype=np.int64)
    ends = np.fromiter((w.end_date.toordinal() for w in windows), dtype=np.int64)
    days = np.fromiter((c.commit_date.toordinal() for c in commits), dtype=np.int64)
    positions = np.searchsorted(ends, days, side="left")

    for commit, day, pos in zip(commits, days, positions):
        if pos >= len(windows) or starts[pos] > day:
            raise WindowAssignmentError(commit.sha, commit.commit_date.isoformat())
        assigned[windows[pos].index].append(commit)

    return assigned
