"""Tests for bucketing commits into measurement windows."""

import pytest

from conftest import make_commit
from incubation_metrics.exceptions import WindowAssignmentError
from incubation_metrics.temporal.assigner import assign_commits
from incubation_metrics.temporal.windows import segment


class TestAssignCommits:
    """Test assign_commits."""

    def test_every_window_present(self):
        """Windows without commits map to empty lists."""
        windows = segment("2010-01-01", "2010-03-31")
        commits = [make_commit("a", "2010-01-05T10:00:00+00:00")]
        result = assign_commits(commits, windows)
        assert list(result) == [1, 2, 3]
        assert [c.sha for c in result[1]] == ["a"]
        assert result[2] == []
        assert result[3] == []

    def test_commits_partitioned_exactly_once(self):
        """Each commit lands in exactly one window and none are lost."""
        windows = segment("2010-01-01", "2010-03-31", 10)
        commits = [
            make_commit(f"c{i}", f"2010-{m:02d}-{d:02d}T12:00:00+00:00")
            for i, (m, d) in enumerate([(1, 1), (1, 10), (1, 11), (2, 15), (3, 31), (3, 31)])
        ]
        result = assign_commits(commits, windows)

        flattened = [c.sha for lst in result.values() for c in lst]
        assert sorted(flattened) == sorted(c.sha for c in commits)
        assert len(flattened) == len(set(flattened))
        for index, assigned in result.items():
            window = windows[index - 1]
            for c in assigned:
                assert window.contains(c.commit_date)

    def test_boundary_days(self):
        """The last day of a window belongs to it, the next day to the next window."""
        windows = segment("2022-01-01", "2022-01-11", 10)
        commits = [
            make_commit("end", "2022-01-10T23:59:59+00:00"),
            make_commit("next", "2022-01-11T00:00:00+00:00"),
        ]
        result = assign_commits(commits, windows)
        assert [c.sha for c in result[1]] == ["end"]
        assert [c.sha for c in result[2]] == ["next"]

    def test_dates_normalized_to_utc(self):
        """A late-evening commit west of UTC belongs to the next UTC day."""
        windows = segment("2010-01-01", "2010-02-28")
        commit = make_commit("tz", "2010-01-31T23:30:00-02:00")
        result = assign_commits([commit], windows)
        assert result[1] == []
        assert result[2] == [commit]

    def test_input_order_preserved(self):
        windows = segment("2010-01-01", "2010-01-31")
        commits = [
            make_commit("first", "2010-01-03T00:00:00+00:00"),
            make_commit("second", "2010-01-02T00:00:00+00:00"),
            make_commit("third", "2010-01-03T00:00:00+00:00"),
        ]
        result = assign_commits(commits, windows)
        assert [c.sha for c in result[1]] == ["first", "second", "third"]

    def test_commit_outside_every_window(self):
        """A commit no window contains is an invariant violation."""
        windows = segment("2010-01-01", "2010-01-31")
        with pytest.raises(WindowAssignmentError):
            assign_commits([make_commit("late", "2010-02-01T00:00:00+00:00")], windows)
        with pytest.raises(WindowAssignmentError):
            assign_commits([make_commit("early", "2009-12-31T00:00:00+00:00")], windows)

    def test_no_commits(self):
        windows = segment("2010-01-01", "2010-02-28")
        assert assign_commits([], windows) == {1: [], 2: []}

    def test_commits_without_windows(self):
        with pytest.raises(WindowAssignmentError):
            assign_commits([make_commit("a", "2010-01-01T00:00:00+00:00")], [])
