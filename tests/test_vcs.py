"""Tests for version control sinks."""

import subprocess

import pytest

from reg_index._internal.vcs import GitSink, NullSink, _identity_env
from reg_index.errors import CommitFailed


def _git(root, *args):
    return subprocess.run(
        ["git", *args], cwd=str(root), capture_output=True, text=True, check=True
    ).stdout


def test_identity_env_fills_missing_half():
    env = _identity_env({"GIT_AUTHOR_NAME": "A", "GIT_COMMITTER_EMAIL": "c@example.org"})
    assert env["GIT_COMMITTER_NAME"] == "A"
    assert env["GIT_AUTHOR_EMAIL"] == "c@example.org"


def test_identity_env_keeps_explicit_values():
    env = _identity_env({"GIT_AUTHOR_NAME": "A", "GIT_COMMITTER_NAME": "C"})
    assert env["GIT_AUTHOR_NAME"] == "A"
    assert env["GIT_COMMITTER_NAME"] == "C"


def test_null_sink_does_nothing(tmp_path):
    sink = NullSink()
    sink.init_repository()
    sink.commit("3/a/abc", "message")
    assert list(tmp_path.iterdir()) == []


def test_missing_git_binary(tmp_path):
    sink = GitSink(tmp_path, git=str(tmp_path / "no-such-git"))
    with pytest.raises(CommitFailed, match="Could not run"):
        sink.init_repository()


@pytest.mark.git
def test_git_sink_commits_one_path(tmp_path, git_env):
    sink = GitSink(tmp_path)
    sink.init_repository()
    (tmp_path / "config.json").write_text("{}", encoding="utf-8")
    (tmp_path / "untracked").write_text("x", encoding="utf-8")
    sink.commit("config.json", "Initial commit")

    assert _git(tmp_path, "log", "--format=%s").strip() == "Initial commit"
    assert _git(tmp_path, "log", "--format=%an <%ae>").strip() == "Index Bot <index-bot@example.org>"
    assert _git(tmp_path, "ls-files").split() == ["config.json"]


@pytest.mark.git
def test_git_commit_without_changes_fails(tmp_path, git_env):
    sink = GitSink(tmp_path)
    sink.init_repository()
    (tmp_path / "config.json").write_text("{}", encoding="utf-8")
    sink.commit("config.json", "Initial commit")
    with pytest.raises(CommitFailed) as excinfo:
        sink.commit("config.json", "again")
    assert excinfo.value.path == "config.json"
