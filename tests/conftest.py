"""Shared fixtures: synthetic commits and throwaway git repositories."""

import datetime as dt
import os
import shutil
import subprocess
from pathlib import Path
from typing import Optional

import pytest

from incubation_metrics.temporal.models import CommitRef, Person

GIT = shutil.which("git")

requires_git = pytest.mark.skipif(GIT is None, reason="git not found")


def make_commit(
    sha: str,
    when: str,
    parents: tuple = ("p",),
    author: str = "Alice",
    email: Optional[str] = None,
    committer_email: Optional[str] = None,
    message: str = "change",
) -> CommitRef:
    """Build a CommitRef from an ISO-8601 timestamp with offset."""
    email = email or f"{author.lower()}@example.com"
    return CommitRef(
        sha=sha,
        parents=tuple(parents),
        author=Person(author, email),
        committer=Person(author, committer_email or email),
        committed_at=dt.datetime.fromisoformat(when),
        message=message,
    )


class GitRepoBuilder:
    """Create commits with fixed author and committer dates in a fresh repository."""

    def __init__(self, path: Path, *init_args: str):
        self.path = Path(path)
        self.path.mkdir(parents=True, exist_ok=True)
        self.git("init", "-q", *init_args)
        self.git("symbolic-ref", "HEAD", "refs/heads/master")
        self.git("config", "user.name", "Test")
        self.git("config", "user.email", "test@example.com")
        self.git("config", "commit.gpgsign", "false")

    def git(self, *args: str, env: Optional[dict] = None) -> str:
        result = subprocess.run(
            ["git", "-C", str(self.path), *args],
            capture_output=True,
            text=True,
            env={**os.environ, **(env or {})},
            check=True,
        )
        return result.stdout.strip()

    def write(self, rel: str, content: str) -> None:
        target = self.path / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")

    def remove(self, rel: str) -> None:
        self.git("rm", "-q", rel)

    def move(self, old: str, new: str) -> None:
        (self.path / new).parent.mkdir(parents=True, exist_ok=True)
        self.git("mv", old, new)

    @staticmethod
    def _env(when: str, author: str, email: str, committer_email: Optional[str]) -> dict:
        return {
            "GIT_AUTHOR_NAME": author,
            "GIT_AUTHOR_EMAIL": email,
            "GIT_AUTHOR_DATE": when,
            "GIT_COMMITTER_NAME": author,
            "GIT_COMMITTER_EMAIL": committer_email or email,
            "GIT_COMMITTER_DATE": when,
        }

    def commit(
        self,
        message: str,
        when: str = "2010-01-05 12:00:00 +0000",
        author: str = "Alice",
        email: Optional[str] = None,
        committer_email: Optional[str] = None,
    ) -> str:
        """Stage everything and commit; returns the new sha."""
        email = email or f"{author.lower()}@example.com"
        self.git("add", "-A")
        self.git(
            "commit",
            "-q",
            "--allow-empty",
            "-m",
            message,
            env=self._env(when, author, email, committer_email),
        )
        return self.git("rev-parse", "HEAD")

    def merge(self, branch: str, when: str, message: str = "merge") -> str:
        self.git(
            "merge",
            "-q",
            "--no-ff",
            "-m",
            message,
            branch,
            env=self._env(when, "Alice", "alice@example.com", None),
        )
        return self.git("rev-parse", "HEAD")


@pytest.fixture
def git_repo(tmp_path):
    """An empty repository on branch ``master``."""
    if GIT is None:
        pytest.skip("git not found")
    return GitRepoBuilder(tmp_path / "repo")
