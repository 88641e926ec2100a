"""Reduce commit diffs to line and file change counts, per commit and per window."""

from __future__ import annotations

import codecs
import re
from collections import Counter
from typing import Optional, Sequence

from ..exceptions import DiffComputationFailure
from ..logging_config import get_logger
from .git_extractor import GitRepository
from .models import ChangeType, CommitRef, DiffStats, FileDiffRecord, WindowMetrics

logger = get_logger(__name__)

DEFAULT_RENAME_THRESHOLD = 50
DEFAULT_MINOR_RATIO = 0.05

_QUOTED_OR_BARE = re.compile(r'"((?:[^"\\]|\\.)*)"|(\S+)')


class _FileState:
    """Header and line counts of the file currently being streamed."""

    def __init__(self, old_path: Optional[str], new_path: Optional[str]):
        self.old_path = old_path
        self.new_path = new_path
        self.status = ChangeType.MODIFIED
        self.added = 0
        self.deleted = 0

    def to_record(self) -> FileDiffRecord:
        if self.status is ChangeType.ADDED:
            self.old_path = None
        elif self.status is ChangeType.DELETED:
            self.new_path = None
        return FileDiffRecord(
            filename=self.new_path or self.old_path or "",
            lines_added=self.added,
            lines_deleted=self.deleted,
            change_type=self.status,
            old_path=self.old_path,
            new_path=self.new_path,
        )


def parse_patch(patch: str) -> DiffStats:
    """Stream a ``git diff-tree -p`` patch into a ``DiffStats``.

    Every ``+``/``-`` hunk line counts towards the commit totals and the
    current file. A ``diff --git`` header starts a new file; its name is the
    new path, or the old path when the file was deleted. The change type of
    each file comes from the extended headers (new/deleted file, rename), not
    from its line counts, so a pure rename is still classified.
    """
    stats = DiffStats()
    current: Optional[_FileState] = None
    in_hunk = False

    def flush() -> None:
        if current is None:
            return
        record = current.to_record()
        stats.files.append(record)
        if record.change_type is ChangeType.ADDED:
            stats.files_added += 1
        elif record.change_type is ChangeType.DELETED:
            stats.files_deleted += 1
        elif record.change_type is ChangeType.MODIFIED:
            stats.files_modified += 1
        elif record.change_type is ChangeType.RENAMED:
            stats.files_renamed += 1

    # split("\n") rather than splitlines(): content may hold \r, \f and friends
    for line in patch.split("\n"):
        if line.startswith("diff --git "):
            flush()
            old_path, new_path = _paths_from_header(line[len("diff --git ") :])
            current = _FileState(old_path, new_path)
            in_hunk = False
            continue
        if current is None:
            continue

        if in_hunk:
            if line.startswith("+"):
                current.added += 1
                stats.added_lines += 1
                continue
            if line.startswith("-"):
                current.deleted += 1
                stats.deleted_lines += 1
                continue
            if line.startswith((" ", "\\", "@@")):
                continue
            in_hunk = False

        if line.startswith("@@"):
            in_hunk = True
        elif line.startswith("new file mode"):
            current.status = ChangeType.ADDED
        elif line.startswith("deleted file mode"):
            current.status = ChangeType.DELETED
        elif line.startswith("rename from "):
            current.status = ChangeType.RENAMED
            current.old_path = _unquote(line[len("rename from ") :])
        elif line.startswith("rename to "):
            current.new_path = _unquote(line[len("rename to ") :])
        elif line.startswith(("copy from ", "copy to ")):
            current.status = ChangeType.UNKNOWN
        elif line.startswith("--- "):
            path = _strip_prefix(_unquote(line[4:]), "a/")
            if path is not None:
                current.old_path = path
        elif line.startswith("+++ "):
            path = _strip_prefix(_unquote(line[4:]), "b/")
            if path is not None:
                current.new_path = path

    flush()
    return stats


def _paths_from_header(rest: str) -> tuple[Optional[str], Optional[str]]:
    rest = rest.rstrip()
    if rest.startswith('"') or rest.endswith('"'):
        tokens = [
            _unquote(f'"{m.group(1)}"') if m.group(1) is not None else m.group(2)
            for m in _QUOTED_OR_BARE.finditer(rest)
        ]
        if len(tokens) == 2:
            return _strip_prefix(tokens[0], "a/"), _strip_prefix(tokens[1], "b/")

    # Unquoted "a/<path> b/<path>": both halves are equal unless renamed,
    # and renames carry their own "rename from/to" headers
    length = (len(rest) - 5) // 2
    if length > 0 and rest.startswith("a/") and rest[2 + length : 5 + length] == " b/":
        path = rest[2 : 2 + length]
        if rest[5 + length :] == path:
            return path, path
    if " b/" in rest:
        old, new = rest.split(" b/", 1)
        return _strip_prefix(old, "a/"), new
    return None, None


def _unquote(value: str) -> str:
    """Undo git's C-style quoting of unusual path names."""
    value = value.rstrip("\t")
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        raw = codecs.escape_decode(value[1:-1].encode("utf-8"))[0]
        return raw.decode("utf-8", errors="replace")
    return value


def _strip_prefix(path: Optional[str], prefix: str) -> Optional[str]:
    if path is None or path == "/dev/null":
        return None
    if path.startswith(prefix):
        return path[len(prefix) :]
    return path


def aggregate(
    repo: GitRepository,
    commit: CommitRef,
    rename_threshold: int = DEFAULT_RENAME_THRESHOLD,
) -> tuple[DiffStats, list[FileDiffRecord]]:
    """Diff ``commit`` against its parent and reduce it.

    A diff that cannot be computed is logged and contributes nothing.
    """
    try:
        patch = repo.diff_patch(commit, rename_threshold=rename_threshold)
    except DiffComputationFailure as e:
        logger.error("%s: %s", repo.repo_path, e)
        return DiffStats(), []
    stats = parse_patch(patch)
    return stats, stats.files


def active_days(commits: Sequence[CommitRef]) -> int:
    """Distinct UTC calendar dates with at least one commit."""
    return len({c.commit_date for c in commits})


def author_emails(commits: Sequence[CommitRef]) -> list[str]:
    """Distinct author emails, in first-seen order."""
    return list(dict.fromkeys(c.author.email for c in commits))


def committer_emails(commits: Sequence[CommitRef]) -> list[str]:
    return list(dict.fromkeys(c.committer.email for c in commits))


def contributor_tiers(
    commits: Sequence[CommitRef], ratio: float = DEFAULT_MINOR_RATIO
) -> tuple[int, int]:
    """Split the authors of ``commits`` into (minor, major) contributors.

    The basis is the commits passed in (one window), not the whole history:
    an author with at most ``int(ratio * len(commits))`` commits is minor.
    Authors are keyed by name.
    """
    per_author = Counter(c.author.name for c in commits)
    return tier_counts(per_author.values(), len(commits), ratio)


def tier_counts(
    commit_counts, total_commits: int, ratio: float = DEFAULT_MINOR_RATIO
) -> tuple[int, int]:
    threshold = int(total_commits * ratio)
    minor = sum(1 for n in commit_counts if n <= threshold)
    major = sum(1 for n in commit_counts if n > threshold)
    return minor, major


def window_metrics(
    window_index: int,
    commits: Sequence[CommitRef],
    diffs: Sequence[DiffStats],
    minor_ratio: float = DEFAULT_MINOR_RATIO,
) -> WindowMetrics:
    """Sum per-commit diffs and derive the set-based metrics of a window."""
    if not commits:
        return WindowMetrics.empty(window_index)

    files_modified = sum(d.files_modified for d in diffs)
    minor, major = contributor_tiers(commits, minor_ratio)
    return WindowMetrics(
        window_index=window_index,
        commit_count=len(commits),
        active_days=active_days(commits),
        added_lines=sum(d.added_lines for d in diffs),
        deleted_lines=sum(d.deleted_lines for d in diffs),
        files_added=sum(d.files_added for d in diffs),
        files_deleted=sum(d.files_deleted for d in diffs),
        files_modified=files_modified,
        files_renamed=sum(d.files_renamed for d in diffs),
        authors=len(author_emails(commits)),
        committers=len(committer_emails(commits)),
        minor_contributors=minor,
        major_contributors=major,
        avg_files_modified_commit=files_modified / len(commits),
    )
