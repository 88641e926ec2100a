"""Tests for the window rollup: carry-forward, newcomers, checkouts, collaborators."""

import datetime as dt
import logging
from pathlib import Path

import pytest

from conftest import make_commit, requires_git
from incubation_metrics.config import AnalysisConfig
from incubation_metrics.exceptions import (
    CheckoutFailure,
    DiffComputationFailure,
    ExternalCollaboratorFailure,
)
from incubation_metrics.temporal.models import Project
from incubation_metrics.temporal.rollup import (
    AnalysisPlan,
    WindowRollup,
    analyze_repository,
    commit_file_records,
    commit_messages,
    restore_default_branch,
)
from incubation_metrics.temporal.windows import segment

PATCH = """\
diff --git a/f.txt b/f.txt
index 1111111..2222222 100644
--- a/f.txt
+++ b/f.txt
@@ -1 +1,2 @@
-old
+new
+more
"""


class FakeRepo:
    """Stands in for GitRepository: canned patches, recorded checkouts."""

    repo_path = "/fake/repo"
    worktree = Path("/fake/repo")

    def __init__(self, branches=("master",), failing_checkouts=(), failing_diffs=()):
        self.branches = list(branches)
        self.failing_checkouts = set(failing_checkouts)
        self.failing_diffs = set(failing_diffs)
        self.checkouts = []
        self.current = None

    def diff_patch(self, commit, rename_threshold=50):
        if commit.sha in self.failing_diffs:
            raise DiffComputationFailure(commit.sha, "broken object")
        return PATCH

    def checkout(self, ref):
        if ref in self.failing_checkouts:
            raise CheckoutFailure(ref, "conflict")
        self.checkouts.append(ref)
        self.current = ref if ref in self.branches else None

    def current_branch(self):
        return self.current

    def local_branches(self):
        return list(self.branches)


class CountingCode:
    """Code provider returning an increasing counter per collected tree."""

    name = "counter"

    def __init__(self):
        self.calls = 0

    def collect(self, worktree):
        self.calls += 1
        return {"code": self.calls * 100}

    def defaults(self):
        return {"code": 0}


class RecordingEmails:
    name = "emails"

    def __init__(self, fail_on=()):
        self.spans = []
        self.fail_on = set(fail_on)

    def window_metrics(self, start, end):
        self.spans.append((start, end))
        if start in self.fail_on:
            raise ExternalCollaboratorFailure(self.name, "mbox missing")
        return {"emails": 7}

    def defaults(self):
        return {"emails": 0}


def make_plan(start, end, commits, length=None):
    windows = segment(start, end, length)
    assigned = {w.index: [] for w in windows}
    for c in commits:
        for w in windows:
            if w.contains(c.commit_date):
                assigned[w.index].append(c)
    return AnalysisPlan(
        start=dt.date.fromisoformat(start),
        end=dt.date.fromisoformat(end),
        windows=windows,
        assigned=assigned,
    )


PROJECT = Project(name="Demo", repository_path="/fake/repo", status="graduated")

COMMITS = [
    make_commit("a1", "2010-01-05T10:00:00+00:00", author="Ann"),
    make_commit("b1", "2010-01-20T10:00:00+00:00", author="Bob"),
    make_commit("a2", "2010-03-02T10:00:00+00:00", author="Ann"),
    make_commit("c1", "2010-03-03T10:00:00+00:00", author="Cyd"),
]


def run(repo=None, config=None, emails=None, code=None, commits=COMMITS):
    rollup = WindowRollup(
        repo or FakeRepo(),
        PROJECT,
        config or AnalysisConfig(),
        email_metrics=[emails or RecordingEmails()],
        code_metrics=[code or CountingCode()],
    )
    return rollup.run(make_plan("2010-01-01", "2010-03-31", commits))


class TestCarryForward:
    """Windows without commits still produce a record."""

    def test_one_record_per_window_in_order(self):
        records = run()
        assert [r.window.index for r in records] == [1, 2, 3]

    def test_empty_window_has_zero_process_metrics(self):
        records = run()
        empty = records[1]
        assert not empty.active
        assert empty.metrics.commit_count == 0
        assert empty.metrics.added_lines == 0
        assert empty.metrics.authors == 0
        assert empty.metrics.new_contributors == 0
        assert empty.last_commit is None

    def test_empty_window_keeps_previous_tree_metrics(self):
        code = CountingCode()
        records = run(code=code)
        assert records[0].code_metrics == {"code": 100}
        assert records[1].code_metrics == {"code": 100}
        assert records[2].code_metrics == {"code": 200}
        assert code.calls == 2

    def test_leading_empty_window_uses_defaults(self):
        commits = [make_commit("late", "2010-02-10T10:00:00+00:00")]
        records = run(commits=commits)
        assert records[0].code_metrics == {"code": 0}

    def test_out_of_band_metrics_requested_for_every_window(self):
        emails = RecordingEmails()
        records = run(emails=emails)
        assert emails.spans == [(w.window.start_date, w.window.end_date) for w in records]
        assert all(r.email_metrics == {"emails": 7} for r in records)


class TestProcessMetrics:
    def test_active_window_metrics(self):
        records = run()
        first = records[0].metrics
        assert first.commit_count == 2
        assert first.added_lines == 4
        assert first.deleted_lines == 2
        assert first.files_modified == 2
        assert first.avg_files_modified_commit == pytest.approx(1.0)
        assert records[0].last_commit == "b1"

    def test_new_contributors_counted_once(self):
        """Ann returns in March; only Cyd is new there."""
        records = run()
        assert records[0].metrics.new_contributors == 2
        assert records[2].metrics.new_contributors == 1

    def test_failed_diff_contributes_zero(self, caplog):
        repo = FakeRepo(failing_diffs={"a1"})
        with caplog.at_level(logging.ERROR):
            records = run(repo=repo)
        first = records[0].metrics
        assert first.commit_count == 2
        assert first.added_lines == 2
        assert "a1" in caplog.text


class TestCheckouts:
    def test_checkout_at_last_commit_then_restore(self):
        repo = FakeRepo()
        run(repo=repo)
        assert repo.checkouts == ["b1", "c1", "master"]

    def test_checkout_failure_degrades_tree_metrics_only(self, caplog):
        repo = FakeRepo(failing_checkouts={"c1"})
        code = CountingCode()
        with caplog.at_level(logging.ERROR):
            records = run(repo=repo, code=code)
        assert len(records) == 3
        assert records[2].code_metrics == {"code": 0}
        assert records[2].metrics.commit_count == 2
        assert "Demo window: 3" in caplog.text

    def test_skip_code_metrics_never_checks_out(self):
        repo = FakeRepo()
        code = CountingCode()
        records = run(repo=repo, code=code, config=AnalysisConfig(skip_code_metrics=True))
        assert repo.checkouts == []
        assert code.calls == 0
        assert all(r.code_metrics == {"code": 0} for r in records)


class TestCollaboratorFailures:
    def test_out_of_band_failure_uses_defaults(self):
        emails = RecordingEmails(fail_on={dt.date(2010, 2, 1)})
        records = run(emails=emails)
        assert records[1].email_metrics == {"emails": 0}
        assert records[2].email_metrics == {"emails": 7}

    def test_skip_email_metrics(self):
        emails = RecordingEmails()
        records = run(emails=emails, config=AnalysisConfig(skip_email_metrics=True))
        assert emails.spans == []
        assert records[0].email_metrics == {"emails": 0}

    def test_code_failure_uses_defaults(self):
        class Broken(CountingCode):
            def collect(self, worktree):
                raise ExternalCollaboratorFailure(self.name, "tool crashed")

        records = run(code=Broken())
        assert records[0].code_metrics == {"code": 0}

    def test_unexpected_out_of_band_error_uses_defaults(self, caplog):
        """Any provider error degrades the window; the run still completes."""

        class Unreadable(RecordingEmails):
            def window_metrics(self, start, end):
                raise OSError("mbox unreadable")

        with caplog.at_level(logging.ERROR):
            records = run(emails=Unreadable())
        assert len(records) == 3
        assert all(r.email_metrics == {"emails": 0} for r in records)
        assert "Demo window: 1" in caplog.text
        assert "mbox unreadable" in caplog.text

    def test_unexpected_code_error_uses_defaults(self, caplog):
        class Crashing(CountingCode):
            def collect(self, worktree):
                raise ValueError("bad tool output")

        with caplog.at_level(logging.ERROR):
            records = run(code=Crashing())
        assert [r.code_metrics for r in records] == [{"code": 0}] * 3
        assert [r.metrics.commit_count for r in records] == [2, 0, 2]
        assert "counter failed unexpectedly" in caplog.text


class TestRestoreDefaultBranch:
    def test_first_existing_candidate(self):
        repo = FakeRepo(branches=("develop", "main"))
        assert restore_default_branch(repo, "Demo", AnalysisConfig()) == "main"
        assert repo.checkouts == ["main"]

    def test_project_override(self):
        repo = FakeRepo(branches=("master", "3.0"))
        assert restore_default_branch(repo, "Dubbo", AnalysisConfig()) == "3.0"

    def test_current_branch_not_checked_out_again(self):
        repo = FakeRepo(branches=("master",))
        repo.current = "master"
        assert restore_default_branch(repo, "Demo", AnalysisConfig()) == "master"
        assert repo.checkouts == []

    def test_no_candidate_logged(self, caplog):
        repo = FakeRepo(branches=("feature",))
        with caplog.at_level(logging.ERROR):
            assert restore_default_branch(repo, "Demo", AnalysisConfig()) is None
        assert repo.checkouts == []
        assert "Demo" in caplog.text


class TestRecordShape:
    def test_to_dict_flattens_everything(self):
        row = run()[0].to_dict()
        assert row["project"] == "Demo"
        assert row["status"] == "graduated"
        assert row["start_date"] == "2010-01-01"
        assert row["measurement_month"] == 1
        assert row["window_start_date"] == "2010-01-01"
        assert row["window_end_date"] == "2010-01-31"
        assert row["commits"] == 2
        assert row["emails"] == 7
        assert row["code"] == 100
        assert "window_index" not in row


@requires_git
class TestAnalyzeRepository:
    """End to end against a real repository."""

    def build(self, git_repo):
        git_repo.write("src/main.py", "print('hi')\n")
        git_repo.commit("init", when="2010-01-05 10:00:00 +0000", author="Ann")
        git_repo.write("src/main.py", "print('hi')\nprint('there')\n")
        git_repo.write("docs/readme.md", "docs\n")
        git_repo.commit("more", when="2010-01-06 10:00:00 +0000", author="Bob")
        git_repo.move("docs/readme.md", "manual/readme.md")
        git_repo.commit("move docs", when="2010-03-10 10:00:00 +0000", author="Ann")
        return Project(
            name="demo",
            repository_path=str(git_repo.path),
            start_date="2010-01-01",
            end_date="2010-03-31",
        )

    def test_monthly_records(self, git_repo):
        project = self.build(git_repo)
        records = analyze_repository(project, AnalysisConfig())

        assert [r.metrics.commit_count for r in records] == [2, 0, 1]
        jan, feb, mar = records
        assert jan.metrics.files_added == 2
        assert jan.metrics.added_lines == 3
        assert jan.metrics.new_contributors == 2
        assert mar.metrics.files_renamed == 1
        assert mar.metrics.new_contributors == 0
        assert jan.code_metrics == {"directories": 2, "top_level_dirs": 2}
        assert feb.code_metrics == jan.code_metrics
        assert mar.code_metrics == {"directories": 2, "top_level_dirs": 2}
        assert git_repo.git("symbolic-ref", "--short", "HEAD") == "master"

    def test_ignore_dates_uses_history(self, git_repo):
        project = self.build(git_repo)
        config = AnalysisConfig(ignore_start_end_dates=True, skip_code_metrics=True)
        records = analyze_repository(project, config)
        assert records[0].window.start_date == dt.date(2010, 1, 5)
        assert records[-1].window.end_date == dt.date(2010, 3, 10)

    def test_commit_file_records(self, git_repo):
        git_repo.write("a.py", "x\n")
        git_repo.commit("first\nwith body", when="2010-01-05 10:00:00 +0000", author="Ann")
        project = Project(name="demo", repository_path=str(git_repo.path))
        rows = commit_file_records(project, AnalysisConfig(ignore_start_end_dates=True))

        [row] = rows
        assert row.filename == "a.py"
        assert row.change_type == "A"
        assert row.lines_added == 1
        assert row.window_index == 1
        assert row.email == "ann@example.com"
        assert row.date == "2010-01-05 10:00:00 UTC"
        assert row.commit_message == "first _nl_ with body"

    def test_commit_messages(self, git_repo):
        git_repo.write("a.py", "x\n")
        git_repo.commit("hello", when="2010-01-05 10:00:00 +0000")
        project = Project(name="demo", repository_path=str(git_repo.path), status="retired")
        [message] = commit_messages(project, AnalysisConfig(ignore_start_end_dates=True))
        assert message.message == "hello"
        assert message.status == "retired"
