"""Read commits, diffs and branches of a local repository via the git executable."""

from __future__ import annotations

import subprocess
import tempfile
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from ..exceptions import CheckoutFailure, DiffComputationFailure, RepositoryAccessError
from ..logging_config import get_logger
from .models import CommitRef, Person

logger = get_logger(__name__)

_RECORD_SEP = "\x1e"
_FIELD_SEP = "\x1f"
# sha | parents | author name | author email | author date | committer name |
# committer email | committer date | raw body
_LOG_FORMAT = _RECORD_SEP + _FIELD_SEP.join(
    ["%H", "%P", "%an", "%ae", "%aI", "%cn", "%ce", "%cI", "%B"]
)
_LOG_FIELDS = 9

# Options that make patch output independent of the user's git config
_PLUMBING_CONFIG = ["-c", "core.quotePath=false", "-c", "diff.noprefix=false"]


class GitRepository:
    """Handle on a local git checkout.

    Commit history is returned as immutable ``CommitRef`` values; the live
    repository is only touched again by diff and checkout calls.
    """

    def __init__(self, repo_path: str, timeout_s: int = 300):
        self.repo_path = str(Path(repo_path).resolve())
        self.timeout_s = timeout_s

        if not Path(self.repo_path).is_dir():
            raise RepositoryAccessError(self.repo_path, "directory does not exist")

        code, out, err = self._git(["rev-parse", "--show-toplevel"])
        if code != 0:
            raise RepositoryAccessError(self.repo_path, err.strip() or "not a git repository")
        self.worktree = Path(out.strip())

    def _git(self, args: list[str], timeout_s: Optional[int] = None) -> tuple[int, str, str]:
        try:
            proc = subprocess.run(
                ["git", "-C", self.repo_path, *_PLUMBING_CONFIG, *args],
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=timeout_s or self.timeout_s,
            )
        except FileNotFoundError:
            raise RepositoryAccessError(self.repo_path, "git executable not found")
        except subprocess.TimeoutExpired:
            logger.warning("%s: git %s timed out", self.repo_path, args[0])
            return -1, "", f"git {args[0]} timed out"
        return proc.returncode, proc.stdout, proc.stderr

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def iter_commits(self) -> Iterator[CommitRef]:
        """Walk every commit reachable from HEAD, oldest first.

        Topology is respected (a parent always precedes its children) and
        ties are broken by commit date. Records that cannot be parsed are
        logged and skipped.

        Raises:
            RepositoryAccessError: If the walk itself fails (e.g. no HEAD)
        """
        cmd = [
            "git",
            "-C",
            self.repo_path,
            *_PLUMBING_CONFIG,
            "log",
            "--reverse",
            "--date-order",
            f"--format={_LOG_FORMAT}",
            "HEAD",
        ]
        # stderr goes to a file so a chatty git cannot block on a full pipe
        stderr = tempfile.TemporaryFile(mode="w+", encoding="utf-8", errors="replace")
        try:
            proc = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=stderr,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except FileNotFoundError:
            stderr.close()
            raise RepositoryAccessError(self.repo_path, "git executable not found")

        stdout = proc.stdout
        try:
            buffer = ""
            if stdout is not None:
                while True:
                    chunk = stdout.read(1024 * 1024)
                    if not chunk:
                        break
                    buffer += chunk
                    *records, buffer = buffer.split(_RECORD_SEP)
                    for record in records:
                        commit = self._parse_record(record)
                        if commit is not None:
                            yield commit
            returncode = proc.wait(timeout=self.timeout_s)
            stderr.seek(0)
            err = stderr.read()
            if returncode != 0:
                raise RepositoryAccessError(self.repo_path, err.strip() or "git log failed")
            commit = self._parse_record(buffer)
            if commit is not None:
                yield commit
        finally:
            if proc.poll() is None:
                proc.kill()
                proc.wait()
            if stdout is not None:
                stdout.close()
            stderr.close()

    def _parse_record(self, record: str) -> Optional[CommitRef]:
        if not record.strip():
            return None
        parts = record.split(_FIELD_SEP, _LOG_FIELDS - 1)
        if len(parts) != _LOG_FIELDS:
            logger.warning("%s: malformed git log record skipped", self.repo_path)
            return None
        sha, parents, a_name, a_email, a_date, c_name, c_email, c_date, body = parts
        sha = sha.strip()
        try:
            committed_at = _parse_iso(c_date)
            authored_at = _parse_iso(a_date)
        except ValueError as e:
            logger.warning("%s: commit %s has a malformed timestamp (%s), dropped", self.repo_path, sha, e)
            return None
        return CommitRef(
            sha=sha,
            parents=tuple(parents.split()),
            author=Person(name=a_name, email=a_email),
            committer=Person(name=c_name, email=c_email),
            committed_at=committed_at,
            authored_at=authored_at,
            message=body.rstrip("\n"),
        )

    def first_commit_date(self) -> Optional[date]:
        """UTC committer date of the first commit in the history walk."""
        code, out, err = self._git(["log", "--reverse", "--date-order", "--format=%ct", "HEAD"])
        if code != 0:
            logger.error("%s: cannot find the first commit: %s", self.repo_path, err.strip())
            return None
        first = next((line for line in out.splitlines() if line.strip()), None)
        return _epoch_to_date(first)

    def last_commit_date(self) -> Optional[date]:
        """UTC committer date of HEAD."""
        code, out, err = self._git(["log", "-1", "--format=%ct", "HEAD"])
        if code != 0:
            logger.error("%s: cannot find the last commit: %s", self.repo_path, err.strip())
            return None
        return _epoch_to_date(out.strip() or None)

    # ------------------------------------------------------------------
    # Diffs
    # ------------------------------------------------------------------

    def _revisions(self, commit: CommitRef) -> list[str]:
        # --root diffs a parentless commit against the empty tree of the
        # repository's own object format
        if commit.parents:
            return [commit.parents[0], commit.sha]
        return ["--root", commit.sha]

    def diff_patch(self, commit: CommitRef, rename_threshold: int = 50) -> str:
        """Unified patch of ``commit`` against its first parent, or the empty tree if it has none.

        Raises:
            DiffComputationFailure: If git cannot produce the patch
        """
        code, out, err = self._git(
            [
                "diff-tree",
                "-r",
                "-p",
                f"-M{rename_threshold}%",
                "--src-prefix=a/",
                "--dst-prefix=b/",
                "--no-commit-id",
                *self._revisions(commit),
            ]
        )
        if code != 0:
            raise DiffComputationFailure(commit.sha, err.strip() or "git diff-tree failed")
        return out

    def changed_paths(self, commit: CommitRef) -> list[str]:
        """Every old and new path touched by ``commit``, without rename pairing.

        Raises:
            DiffComputationFailure: If git cannot list the changes
        """
        code, out, err = self._git(
            [
                "diff-tree",
                "-r",
                "-z",
                "--name-only",
                "--no-renames",
                "--no-commit-id",
                *self._revisions(commit),
            ]
        )
        if code != 0:
            raise DiffComputationFailure(commit.sha, err.strip() or "git diff-tree failed")
        return [p for p in out.split("\0") if p]

    # ------------------------------------------------------------------
    # Working tree
    # ------------------------------------------------------------------

    def checkout(self, ref: str) -> None:
        """Move the working tree to ``ref``; branches are attached, anything else detached.

        Raises:
            CheckoutFailure: If git refuses the checkout
        """
        if ref in self.local_branches():
            args = ["checkout", "--quiet", ref]
        else:
            args = ["checkout", "--quiet", "--detach", ref]
        code, _, err = self._git(args)
        if code != 0:
            raise CheckoutFailure(ref, err.strip() or "git checkout failed")
        logger.info("%s: checked out at %s", self.repo_path, ref)

    def local_branches(self) -> list[str]:
        code, out, _ = self._git(["for-each-ref", "--format=%(refname:short)", "refs/heads"])
        if code != 0:
            return []
        return [line.strip() for line in out.splitlines() if line.strip()]

    def current_branch(self) -> Optional[str]:
        """Name of the checked-out branch, or None when HEAD is detached."""
        code, out, _ = self._git(["symbolic-ref", "--quiet", "--short", "HEAD"])
        return out.strip() if code == 0 and out.strip() else None


def _parse_iso(value: str) -> datetime:
    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        raise ValueError(f"timestamp without UTC offset: {value!r}")
    return parsed


def _epoch_to_date(value: Optional[str]) -> Optional[date]:
    if value is None:
        return None
    try:
        return datetime.fromtimestamp(int(value.strip()), tz=timezone.utc).date()
    except (ValueError, OverflowError, OSError):
        return None
