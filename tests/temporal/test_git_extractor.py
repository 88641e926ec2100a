"""Tests for the git executable wrapper."""

import datetime as dt
import subprocess

import pytest

from conftest import GitRepoBuilder, requires_git
from incubation_metrics.exceptions import CheckoutFailure, RepositoryAccessError
from incubation_metrics.temporal.diff import parse_patch
from incubation_metrics.temporal.git_extractor import GitRepository
from incubation_metrics.temporal.models import ChangeType


class TestOpenRepository:
    def test_missing_directory(self, tmp_path):
        with pytest.raises(RepositoryAccessError):
            GitRepository(str(tmp_path / "nope"))

    @requires_git
    def test_not_a_repository(self, tmp_path):
        plain = tmp_path / "plain"
        plain.mkdir()
        with pytest.raises(RepositoryAccessError):
            GitRepository(str(plain))


@requires_git
class TestHistory:
    """iter_commits and commit date helpers."""

    def test_commits_oldest_first(self, git_repo):
        git_repo.write("a.txt", "1\n")
        first = git_repo.commit("one", when="2010-01-01 10:00:00 +0000", author="Ann")
        git_repo.write("a.txt", "2\n")
        second = git_repo.commit("two", when="2010-01-02 10:00:00 +0200", author="Bob")

        commits = list(GitRepository(str(git_repo.path)).iter_commits())
        assert [c.sha for c in commits] == [first, second]
        assert commits[0].parents == ()
        assert commits[1].parents == (first,)
        assert commits[1].author.name == "Bob"
        assert commits[1].author.email == "bob@example.com"
        assert commits[1].committed_at.utcoffset() == dt.timedelta(hours=2)
        assert commits[1].committed_at_utc.hour == 8

    def test_multiline_message_kept(self, git_repo):
        git_repo.write("a.txt", "1\n")
        git_repo.commit("subject\n\nbody line", when="2010-01-01 10:00:00 +0000")
        [commit] = GitRepository(str(git_repo.path)).iter_commits()
        assert commit.message == "subject\n\nbody line"

    def test_empty_repository_fails_walk(self, git_repo):
        repo = GitRepository(str(git_repo.path))
        with pytest.raises(RepositoryAccessError):
            list(repo.iter_commits())
        assert repo.first_commit_date() is None

    def test_first_and_last_commit_dates(self, git_repo):
        git_repo.write("a.txt", "1\n")
        git_repo.commit("one", when="2010-01-01 23:30:00 -0300")
        git_repo.write("a.txt", "2\n")
        git_repo.commit("two", when="2010-05-01 10:00:00 +0000")
        repo = GitRepository(str(git_repo.path))
        assert repo.first_commit_date() == dt.date(2010, 1, 2)
        assert repo.last_commit_date() == dt.date(2010, 5, 1)


@requires_git
class TestDiffs:
    def test_root_commit_diffed_against_empty_tree(self, git_repo):
        git_repo.write("a.txt", "1\n2\n")
        git_repo.commit("root")
        repo = GitRepository(str(git_repo.path))
        [commit] = repo.iter_commits()
        stats = parse_patch(repo.diff_patch(commit))
        assert stats.files_added == 1
        assert stats.added_lines == 2

    def test_root_commit_in_sha256_repository(self, tmp_path):
        try:
            builder = GitRepoBuilder(tmp_path / "sha256", "--object-format=sha256")
        except subprocess.CalledProcessError:
            pytest.skip("git without SHA-256 repository support")
        builder.write("a.txt", "1\n2\n3\n")
        builder.commit("root")

        repo = GitRepository(str(builder.path))
        [commit] = repo.iter_commits()
        assert len(commit.sha) == 64
        stats = parse_patch(repo.diff_patch(commit))
        assert (stats.files_added, stats.added_lines) == (1, 3)
        assert repo.changed_paths(commit) == ["a.txt"]

    def test_rename_detected(self, git_repo):
        git_repo.write("old_name.py", "".join(f"line {i}\n" for i in range(20)))
        git_repo.commit("init", when="2010-01-01 10:00:00 +0000")
        git_repo.move("old_name.py", "pkg/new_name.py")
        git_repo.commit("rename", when="2010-01-02 10:00:00 +0000")

        repo = GitRepository(str(git_repo.path))
        rename = list(repo.iter_commits())[-1]
        stats = parse_patch(repo.diff_patch(rename))
        [record] = stats.files
        assert record.change_type is ChangeType.RENAMED
        assert record.filename == "pkg/new_name.py"
        assert record.old_path == "old_name.py"

    def test_rename_below_threshold_is_add_and_delete(self, git_repo):
        git_repo.write("old.txt", "".join(f"line {i}\n" for i in range(10)))
        git_repo.commit("init", when="2010-01-01 10:00:00 +0000")
        git_repo.move("old.txt", "new.txt")
        git_repo.write("new.txt", "".join(f"other {i}\n" for i in range(10)))
        git_repo.commit("rewrite", when="2010-01-02 10:00:00 +0000")

        repo = GitRepository(str(git_repo.path))
        commit = list(repo.iter_commits())[-1]
        stats = parse_patch(repo.diff_patch(commit, rename_threshold=50))
        assert (stats.files_added, stats.files_deleted, stats.files_renamed) == (1, 1, 0)

    def test_changed_paths_lists_both_sides_of_a_rename(self, git_repo):
        git_repo.write("Main.java", "class Main {}\n" * 5)
        git_repo.commit("init", when="2010-01-01 10:00:00 +0000")
        git_repo.move("Main.java", "Main.kt")
        git_repo.commit("port", when="2010-01-02 10:00:00 +0000")

        repo = GitRepository(str(git_repo.path))
        commit = list(repo.iter_commits())[-1]
        assert sorted(repo.changed_paths(commit)) == ["Main.java", "Main.kt"]


@requires_git
class TestCheckout:
    def test_checkout_commit_and_branch(self, git_repo):
        git_repo.write("a.txt", "1\n")
        first = git_repo.commit("one")
        git_repo.write("b.txt", "2\n")
        git_repo.commit("two")

        repo = GitRepository(str(git_repo.path))
        repo.checkout(first)
        assert git_repo.git("rev-parse", "HEAD") == first
        assert repo.current_branch() is None
        assert not (git_repo.path / "b.txt").exists()

        repo.checkout("master")
        assert repo.current_branch() == "master"
        assert "master" in repo.local_branches()

    def test_unknown_ref(self, git_repo):
        git_repo.write("a.txt", "1\n")
        git_repo.commit("one")
        with pytest.raises(CheckoutFailure):
            GitRepository(str(git_repo.path)).checkout("no-such-ref")
