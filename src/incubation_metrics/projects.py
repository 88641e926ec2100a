"""Run window analyses over many repositories, one repository per worker."""

from __future__ import annotations

import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Sequence

from .collaborators import CodeMetricsProvider, OutOfBandMetricsProvider
from .config import AnalysisConfig
from .exceptions import IncubationMetricsError
from .logging_config import get_logger
from .temporal.models import Project, WindowRecord
from .temporal.rollup import analyze_repository

logger = get_logger(__name__)


@dataclass
class ProjectResult:
    """Outcome of one project's analysis; ``error`` is set when it aborted."""

    project: Project
    records: list[WindowRecord] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def discover_projects(folder: Path) -> list[Project]:
    """Every git checkout directly below ``folder``, as a project without dates."""
    root = Path(folder)
    projects = []
    for entry in sorted(root.iterdir()):
        if not entry.is_dir():
            continue
        if not (entry / ".git").exists():
            logger.debug(f"{entry} is not a git checkout, skipped")
            continue
        projects.append(Project(name=entry.name, repository_path=str(entry)))
    return projects


def analyze_projects(
    projects: Sequence[Project],
    config: Optional[AnalysisConfig] = None,
    email_metrics: Optional[Callable[[Project], Sequence[OutOfBandMetricsProvider]]] = None,
    code_metrics: Optional[Callable[[Project], Sequence[CodeMetricsProvider]]] = None,
) -> list[ProjectResult]:
    """Analyze ``projects`` in parallel and return results in input order.

    A project that fails, whether with an ``IncubationMetricsError`` or any
    other exception, is logged and reported through ``ProjectResult.error``;
    sibling projects are unaffected.
    Collaborator factories are called once per project so that no provider
    instance is shared between workers.
    """
    config = config or AnalysisConfig()
    max_workers = config.workers or min(4, os.cpu_count() or 1)

    def _run(project: Project) -> ProjectResult:
        try:
            records = analyze_repository(
                project,
                config,
                email_metrics(project) if email_metrics else None,
                code_metrics(project) if code_metrics else None,
            )
        except IncubationMetricsError as e:
            logger.error(f"{project.name} - analysis aborted: {e}")
            return ProjectResult(project=project, error=str(e))
        except Exception as e:
            logger.exception(f"{project.name} - analysis failed unexpectedly")
            return ProjectResult(project=project, error=f"{e.__class__.__name__}: {e}")
        logger.info(f"{project.name} - {len(records)} windows analyzed")
        return ProjectResult(project=project, records=records)

    results: dict[int, ProjectResult] = {}
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {executor.submit(_run, p): i for i, p in enumerate(projects)}
        for future in as_completed(futures):
            results[futures[future]] = future.result()

    return [results[i] for i in range(len(projects))]
