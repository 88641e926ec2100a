"""Narrow interfaces to the metric sources that live outside the commit history.

Two kinds of collaborators are merged into each window record:

- out-of-band providers (mailing lists, issue trackers) are asked for the
  metrics of a window's date span, whether or not the window has commits;
- code providers (line counters, quality tools) inspect the working tree
  after it has been checked out at the window's last commit.

A provider signals failure by raising ``ExternalCollaboratorFailure``; the
orchestrator then substitutes the provider's ``defaults()``.
"""

from __future__ import annotations

import os
from datetime import date
from pathlib import Path
from typing import Any, Protocol, Sequence, runtime_checkable

from .exceptions import ExternalCollaboratorFailure
from .logging_config import get_logger

logger = get_logger(__name__)


@runtime_checkable
class OutOfBandMetricsProvider(Protocol):
    name: str

    def window_metrics(self, start: date, end: date) -> dict[str, Any]:
        """Metrics for ``[start, end]`` (both inclusive)."""
        ...

    def defaults(self) -> dict[str, Any]:
        ...


@runtime_checkable
class CodeMetricsProvider(Protocol):
    name: str

    def collect(self, worktree: Path) -> dict[str, Any]:
        """Metrics of the working tree as currently checked out."""
        ...

    def defaults(self) -> dict[str, Any]:
        ...


class NullEmailMetrics:
    """Out-of-band provider used when no mailing-list data is configured."""

    name = "emails"

    def window_metrics(self, start: date, end: date) -> dict[str, Any]:
        return self.defaults()

    def defaults(self) -> dict[str, Any]:
        return {}


class DirectoryMetrics:
    """Count the directories of a working tree.

    ``directories`` counts every non-hidden directory below the root (the
    root itself excluded); ``top_level_dirs`` counts only its direct children.
    Hidden directories are pruned together with everything below them.
    """

    name = "directories"

    def collect(self, worktree: Path) -> dict[str, Any]:
        root = Path(worktree)
        if not root.is_dir():
            raise ExternalCollaboratorFailure(self.name, f"{root} is not a directory")

        def on_error(err: OSError) -> None:
            logger.error(f"{root} - directory entry is not readable: {err}")

        directories = 0
        top_level = 0
        for current, dirnames, _ in os.walk(root, onerror=on_error):
            dirnames[:] = [
                d
                for d in dirnames
                if not d.startswith(".") and not os.path.islink(os.path.join(current, d))
            ]
            directories += len(dirnames)
            if Path(current) == root:
                top_level = len(dirnames)
        return {"directories": directories, "top_level_dirs": top_level}

    def defaults(self) -> dict[str, Any]:
        return {"directories": 0, "top_level_dirs": 0}


def merged_defaults(providers: Sequence[Any]) -> dict[str, Any]:
    """Union of every provider's default block, in provider order."""
    result: dict[str, Any] = {}
    for provider in providers:
        result.update(provider.defaults())
    return result


def default_code_providers() -> list[CodeMetricsProvider]:
    return [DirectoryMetrics()]
