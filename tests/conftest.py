"""Pytest configuration for tests.

No sys.path hacks - tests should import from installed reg_index package.
"""

import shutil
from pathlib import Path
from typing import List, Tuple

import pytest

from reg_index._internal.store import IndexStore, init_index
from reg_index.errors import CommitFailed
from reg_index.kernel.record import DependencyRecord, PackageRecord

DL_TEMPLATE = "https://dl.example.org/{crate}/{version}/download"
CKSUM = "a" * 64


def pytest_addoption(parser):
    """Add gated perf test option."""
    parser.addoption(
        "--run-perf",
        action="store_true",
        default=False,
        help="Run performance sentinel benchmarks (gated)."
    )


def pytest_configure(config):
    config.addinivalue_line("markers", "perf: performance sentinel (gated by --run-perf)")
    config.addinivalue_line("markers", "git: needs the git executable")


def pytest_collection_modifyitems(config, items):
    """Skip perf-marked tests unless --run-perf is set, git-marked tests without git."""
    skip_perf = pytest.mark.skip(reason="perf tests gated; pass --run-perf")
    skip_git = pytest.mark.skip(reason="git executable not found")
    has_git = shutil.which("git") is not None
    for item in items:
        if "perf" in item.keywords and not config.getoption("--run-perf"):
            item.add_marker(skip_perf)
        if "git" in item.keywords and not has_git:
            item.add_marker(skip_git)


class RecordingSink:
    """Version control sink that remembers commits instead of running git."""

    def __init__(self):
        self.initialized = False
        self.commits: List[Tuple[str, str]] = []
        self.fail = False

    def init_repository(self) -> None:
        self.initialized = True

    def commit(self, relative_path, message: str) -> None:
        if self.fail:
            raise CommitFailed("simulated failure", path=str(relative_path))
        self.commits.append((Path(str(relative_path)).as_posix(), message))


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def index_root(tmp_path, sink):
    """An initialized, empty index using the recording sink."""
    root = tmp_path / "index"
    init_index(root, DL_TEMPLATE, sink=sink)
    sink.commits.clear()
    return root


@pytest.fixture
def store(index_root, sink):
    return IndexStore(index_root, sink=sink)


@pytest.fixture
def make_record():
    """Factory for PackageRecord with sensible defaults.

    deps may be given as (name, req) tuples or DependencyRecord objects.
    """
    def _make(name, vers, deps=(), **fields):
        dependencies = [
            d if isinstance(d, DependencyRecord) else DependencyRecord(name=d[0], req=d[1])
            for d in deps
        ]
        fields.setdefault("cksum", CKSUM)
        return PackageRecord(name=name, vers=vers, deps=dependencies, **fields)

    return _make


@pytest.fixture
def git_env(monkeypatch):
    """Deterministic git identity, independent of the user's git config."""
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Index Bot")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "index-bot@example.org")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", "/dev/null")
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
