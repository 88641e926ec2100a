"""Select the commits of a repository that belong to an analysis range."""

from __future__ import annotations

import datetime as dt
from pathlib import PurePosixPath
from typing import AbstractSet, Iterable, Optional

from ..exceptions import DiffComputationFailure
from ..logging_config import get_logger
from .git_extractor import GitRepository
from .models import CommitRef

logger = get_logger(__name__)

# Bounds used when a project carries no start or end date
OPEN_START = dt.date(1970, 1, 1)
OPEN_END = dt.date(2100, 1, 1)


def select_commits(
    repo: GitRepository,
    effective_start: Optional[dt.date],
    effective_end: Optional[dt.date],
    restrict_to_extensions: Optional[AbstractSet[str]] = None,
) -> list[CommitRef]:
    """Chronologically ordered, non-merge commits committed inside the range.

    The first commit of the walk may be a root (0 parents); every later
    commit must have exactly one parent. Committer timestamps are compared
    in UTC against ``[start 00:00:00, end 23:59:59]``.

    When ``restrict_to_extensions`` is given, only commits changing at least
    one file (old or new path) with an allow-listed extension are kept.
    """
    commits = filter_commits(
        repo.iter_commits(),
        effective_start or OPEN_START,
        effective_end or OPEN_END,
    )
    if restrict_to_extensions is None:
        return commits
    return [c for c in commits if _touches_extensions(repo, c, restrict_to_extensions)]


def filter_commits(
    commits: Iterable[CommitRef], start: dt.date, end: dt.date
) -> list[CommitRef]:
    """Apply the merge and date-range exclusion rules to an ordered walk."""
    lower = dt.datetime.combine(start, dt.time.min, tzinfo=dt.timezone.utc)
    upper = dt.datetime.combine(end, dt.time(23, 59, 59), tzinfo=dt.timezone.utc)

    selected: list[CommitRef] = []
    first_commit = True
    for commit in commits:
        if first_commit:
            first_commit = False
            keep = commit.parent_count in (0, 1)
        else:
            keep = commit.parent_count == 1
        if not keep:
            logger.debug("skipping merge commit %s", commit.sha)
            continue
        if lower <= commit.committed_at_utc <= upper:
            selected.append(commit)
    return selected


def has_extension(path: str, extensions: AbstractSet[str]) -> bool:
    suffix = PurePosixPath(path).suffix
    return bool(suffix) and suffix[1:] in extensions


def _touches_extensions(
    repo: GitRepository, commit: CommitRef, extensions: AbstractSet[str]
) -> bool:
    try:
        paths = repo.changed_paths(commit)
    except DiffComputationFailure as e:
        logger.warning("%s: dropping commit under language restriction: %s", repo.repo_path, e)
        return False
    return any(has_extension(p, extensions) for p in paths)
