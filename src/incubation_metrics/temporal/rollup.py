"""Window rollup: turn one repository's history into one record per window.

Windows are processed strictly in index order. An active window is diffed
commit by commit, then (unless code metrics are skipped) the working tree is
checked out at the window's last commit and handed to the code collaborators.
Because every checkout mutates the shared working tree, nothing here runs in
parallel; parallelism happens one level up, across repositories.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, replace
from typing import Any, Optional, Sequence

from ..collaborators import (
    CodeMetricsProvider,
    NullEmailMetrics,
    OutOfBandMetricsProvider,
    default_code_providers,
    merged_defaults,
)
from ..config import AnalysisConfig
from ..exceptions import CheckoutFailure, ExternalCollaboratorFailure, RepositoryAccessError
from ..languages import allowed_extensions
from ..logging_config import get_logger
from .assigner import assign_commits
from .diff import aggregate, author_emails, window_metrics
from .git_extractor import GitRepository
from .models import (
    CommitFileRecord,
    CommitMessage,
    CommitRef,
    ContributorLedger,
    IncubationPhase,
    MeasurementWindow,
    PhaseRange,
    Project,
    WindowMetrics,
    WindowRecord,
)
from .selector import select_commits
from .windows import parse_date, segment

logger = get_logger(__name__)

NEWLINE_MARKER = " _nl_ "


@dataclass(frozen=True)
class AnalysisPlan:
    """Effective range, windows and per-window commits of one repository."""

    start: dt.date
    end: dt.date
    windows: list[MeasurementWindow]
    assigned: dict[int, list[CommitRef]]

    @property
    def commit_count(self) -> int:
        return sum(len(commits) for commits in self.assigned.values())


def resolve_range(
    repo: GitRepository, project: Project, config: AnalysisConfig
) -> tuple[dt.date, dt.date]:
    """The analysis range of ``project``.

    Project dates are used unless ``ignore_start_end_dates`` is set or a
    date is missing; the repository's first and last commit dates fill in.

    Raises:
        InvalidDateError: If a project date cannot be parsed
        RepositoryAccessError: If a date must come from a repository without commits
    """
    use_history = config.ignore_start_end_dates
    start: Optional[dt.date] = None
    end: Optional[dt.date] = None
    if not use_history:
        if project.start_date.strip():
            start = parse_date(project.start_date)
        if project.end_date.strip():
            end = parse_date(project.end_date)

    if start is None:
        start = repo.first_commit_date()
    if end is None:
        end = repo.last_commit_date()
    if start is None or end is None:
        raise RepositoryAccessError(repo.repo_path, "cannot derive dates from an empty history")
    return start, end


def plan_analysis(
    repo: GitRepository, project: Project, config: AnalysisConfig
) -> AnalysisPlan:
    """Segment the range, select the commits and bucket them into windows."""
    start, end = resolve_range(repo, project, config)
    windows = segment(start, end, config.time_window)
    commits = select_commits(repo, start, end, allowed_extensions(config))
    assigned = assign_commits(commits, windows)
    logger.info(
        f"{project.name} - found {len(commits)} commits split across {len(windows)} windows"
    )
    return AnalysisPlan(start=start, end=end, windows=windows, assigned=assigned)


class WindowRollup:
    """Produce the ordered window records of one repository.

    Args:
        repo: Open repository handle
        project: Project metadata (name, status, dates)
        config: Analysis configuration
        email_metrics: Out-of-band providers asked for every window's date span
        code_metrics: Source-tree providers run after each active window's checkout
    """

    def __init__(
        self,
        repo: GitRepository,
        project: Project,
        config: Optional[AnalysisConfig] = None,
        email_metrics: Optional[Sequence[OutOfBandMetricsProvider]] = None,
        code_metrics: Optional[Sequence[CodeMetricsProvider]] = None,
    ):
        self.repo = repo
        self.project = project
        self.config = config or AnalysisConfig()
        self.email_providers = list(email_metrics) if email_metrics is not None else [NullEmailMetrics()]
        self.code_providers = (
            list(code_metrics) if code_metrics is not None else default_code_providers()
        )

    def run(self, plan: Optional[AnalysisPlan] = None) -> list[WindowRecord]:
        """Analyze every window and restore the default branch afterwards."""
        plan = plan or plan_analysis(self.repo, self.project, self.config)
        try:
            return self._rollup(plan)
        finally:
            if not self.config.skip_code_metrics:
                restore_default_branch(self.repo, self.project.name, self.config)

    def _rollup(self, plan: AnalysisPlan) -> list[WindowRecord]:
        ledger = ContributorLedger()
        previous: Optional[WindowRecord] = None
        records: list[WindowRecord] = []

        for window in plan.windows:
            commits = plan.assigned[window.index]
            logger.info(
                f"{self.project.name} window: {window.index} - analyzing {len(commits)} commits"
            )
            email = self._email_metrics(window)

            if not commits:
                # No activity: zero the process metrics, keep the last known tree metrics
                metrics = WindowMetrics.empty(window.index)
                code = dict(previous.code_metrics) if previous else self._code_defaults()
                last_commit = None
            else:
                metrics = self._process_metrics(window, commits)
                metrics = replace(
                    metrics, new_contributors=ledger.register(author_emails(commits))
                )
                last_commit = commits[-1].sha
                code = self._code_metrics(window, last_commit)

            record = WindowRecord(
                project=self.project.name,
                status=self.project.status,
                start_date=plan.start.isoformat(),
                end_date=plan.end.isoformat(),
                window=window,
                metrics=metrics,
                email_metrics=email,
                code_metrics=code,
                last_commit=last_commit,
            )
            records.append(record)
            previous = record

        return records

    def _process_metrics(
        self, window: MeasurementWindow, commits: Sequence[CommitRef]
    ) -> WindowMetrics:
        diffs = [
            aggregate(self.repo, c, rename_threshold=self.config.rename_threshold)[0]
            for c in commits
        ]
        return window_metrics(
            window.index, commits, diffs, minor_ratio=self.config.minor_contributor_ratio
        )

    def _email_metrics(self, window: MeasurementWindow) -> dict[str, Any]:
        if self.config.skip_email_metrics:
            return merged_defaults(self.email_providers)

        result: dict[str, Any] = {}
        for provider in self.email_providers:
            try:
                result.update(provider.window_metrics(window.start_date, window.end_date))
            except ExternalCollaboratorFailure as e:
                logger.error(f"{self.project.name} window: {window.index} - {e}")
                result.update(provider.defaults())
            except Exception as e:
                logger.exception(
                    f"{self.project.name} window: {window.index} - "
                    f"{_provider_name(provider)} failed unexpectedly: {e}"
                )
                result.update(provider.defaults())
        return result

    def _code_defaults(self) -> dict[str, Any]:
        return merged_defaults(self.code_providers)

    def _code_metrics(self, window: MeasurementWindow, sha: str) -> dict[str, Any]:
        if self.config.skip_code_metrics:
            return self._code_defaults()

        try:
            self.repo.checkout(sha)
        except CheckoutFailure as e:
            logger.error(
                f"{self.project.name} window: {window.index} - cannot do a checkout at hash {sha}: {e}"
            )
            return self._code_defaults()

        result: dict[str, Any] = {}
        for provider in self.code_providers:
            try:
                result.update(provider.collect(self.repo.worktree))
            except ExternalCollaboratorFailure as e:
                logger.error(f"{self.project.name} window: {window.index} - {e}")
                result.update(provider.defaults())
            except Exception as e:
                logger.exception(
                    f"{self.project.name} window: {window.index} - "
                    f"{_provider_name(provider)} failed unexpectedly: {e}"
                )
                result.update(provider.defaults())
        return result


def _provider_name(provider: object) -> str:
    return getattr(provider, "name", None) or type(provider).__name__


def restore_default_branch(repo: GitRepository, project: str, config: AnalysisConfig) -> Optional[str]:
    """Check out the first existing branch among the project's candidates.

    Nothing is checked out when that branch is already current. Returns the
    branch name, or None (logged) when no candidate exists or the checkout
    fails.
    """
    local = set(repo.local_branches())
    for branch in config.branch_candidates(project):
        if branch not in local:
            continue
        if repo.current_branch() == branch:
            return branch
        try:
            repo.checkout(branch)
        except CheckoutFailure as e:
            logger.error(f"{project} - cannot restore branch {branch}: {e}")
            return None
        return branch

    logger.error(
        f"{project} - no branch among {', '.join(config.branch_candidates(project))} "
        "exists; the working tree is left where it is"
    )
    return None


def analyze_repository(
    project: Project,
    config: Optional[AnalysisConfig] = None,
    email_metrics: Optional[Sequence[OutOfBandMetricsProvider]] = None,
    code_metrics: Optional[Sequence[CodeMetricsProvider]] = None,
) -> list[WindowRecord]:
    """Open ``project``'s repository and return one record per window.

    Raises:
        ConfigurationError: Invalid dates or language settings
        RepositoryAccessError: The repository cannot be opened or walked
        WindowAssignmentError: A selected commit matches no window
    """
    config = config or AnalysisConfig()
    repo = GitRepository(project.repository_path, timeout_s=config.git_timeout_seconds)
    rollup = WindowRollup(repo, project, config, email_metrics, code_metrics)
    return rollup.run()


def phase_ranges(
    repo: GitRepository, project: Project, force: bool = False
) -> list[PhaseRange]:
    """Split a repository's history around the project's incubation dates.

    The pre-incubation phase runs from the first commit to the day before
    ``project.start_date``; the during phase covers the project dates; the
    post phase runs from the day after ``project.end_date`` to the last
    commit. Only repositories with commits before the start date are split,
    unless ``force`` is set, in which case they get the during and post
    phases. A post phase exists only when the last commit falls after the
    end date.

    Raises:
        InvalidDateError: If a project date is missing or malformed
        RepositoryAccessError: If the repository has no commits
    """
    start = parse_date(project.start_date)
    end = parse_date(project.end_date)
    first = repo.first_commit_date()
    last = repo.last_commit_date()
    if first is None or last is None:
        raise RepositoryAccessError(repo.repo_path, "cannot derive dates from an empty history")

    has_prior_commits = first < start
    if not has_prior_commits and not force:
        logger.info(f"{project.name} - no commits before {start}, phases skipped")
        return []

    phases = []
    if has_prior_commits:
        phases.append(PhaseRange(IncubationPhase.PRE, first, start - dt.timedelta(days=1)))
    phases.append(PhaseRange(IncubationPhase.DURING, start, end))
    if last > end:
        phases.append(PhaseRange(IncubationPhase.POST, end + dt.timedelta(days=1), last))
    return phases


def analyze_phases(
    project: Project,
    config: Optional[AnalysisConfig] = None,
    email_metrics: Optional[Sequence[OutOfBandMetricsProvider]] = None,
    code_metrics: Optional[Sequence[CodeMetricsProvider]] = None,
    force: bool = False,
) -> dict[IncubationPhase, list[WindowRecord]]:
    """Run the window analysis separately for each phase of ``project``.

    Each phase gets its own windows, numbered from 1, and its own
    new-contributor ledger. The result is empty when the repository has
    nothing to split (see ``phase_ranges``).
    """
    config = replace(config or AnalysisConfig(), ignore_start_end_dates=False)
    repo = GitRepository(project.repository_path, timeout_s=config.git_timeout_seconds)

    results: dict[IncubationPhase, list[WindowRecord]] = {}
    for phase in phase_ranges(repo, project, force=force):
        logger.info(
            f"{project.name} - analyzing {phase.phase.value}: {phase.start_date} to {phase.end_date}"
        )
        phase_project = replace(
            project,
            start_date=phase.start_date.isoformat(),
            end_date=phase.end_date.isoformat(),
        )
        rollup = WindowRollup(repo, phase_project, config, email_metrics, code_metrics)
        results[phase.phase] = rollup.run()
    return results


def commit_file_records(
    project: Project,
    config: Optional[AnalysisConfig] = None,
    include_messages: bool = True,
) -> list[CommitFileRecord]:
    """One row per file touched by every selected commit, tagged with its window.

    Commit messages are flattened to a single line (newlines become ``_nl_``);
    ``include_messages=False`` blanks them.
    """
    config = config or AnalysisConfig()
    repo = GitRepository(project.repository_path, timeout_s=config.git_timeout_seconds)
    plan = plan_analysis(repo, project, config)

    rows: list[CommitFileRecord] = []
    for window in plan.windows:
        for commit in plan.assigned[window.index]:
            _, files = aggregate(repo, commit, rename_threshold=config.rename_threshold)
            message = commit.message.replace("\n", NEWLINE_MARKER) if include_messages else ""
            for f in files:
                rows.append(
                    CommitFileRecord(
                        window_index=window.index,
                        commit_sha=commit.sha,
                        name=commit.author.name,
                        email=commit.author.email,
                        date=commit.committed_at_utc.strftime("%Y-%m-%d %H:%M:%S UTC"),
                        timestamp=commit.timestamp,
                        filename=f.filename,
                        change_type=f.change_type.value,
                        lines_added=f.lines_added,
                        lines_deleted=f.lines_deleted,
                        commit_message=message,
                    )
                )
    return rows


def commit_messages(
    project: Project, config: Optional[AnalysisConfig] = None
) -> list[CommitMessage]:
    """The message of every selected commit, in window then commit order."""
    config = config or AnalysisConfig()
    repo = GitRepository(project.repository_path, timeout_s=config.git_timeout_seconds)
    plan = plan_analysis(repo, project, config)
    return [
        CommitMessage(
            project=project.name,
            status=project.status,
            window_index=window.index,
            sha=commit.sha,
            message=commit.message,
        )
        for window in plan.windows
        for commit in plan.assigned[window.index]
    ]
