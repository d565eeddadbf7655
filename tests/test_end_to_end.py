"""End-to-end publish, yank and list runs."""

import subprocess

import pytest

from reg_index import api
from reg_index.errors import UnresolvedDependency


def _log(root):
    out = subprocess.run(
        ["git", "log", "--format=%s"], cwd=str(root), capture_output=True, text=True, check=True
    ).stdout
    return out.splitlines()


@pytest.mark.git
def test_publish_yank_validate(tmp_path, git_env):
    root = tmp_path / "index"
    api.init(root, "https://dl.example/{crate}/{version}", api="https://api.example/")
    cksum = "c" * 64

    api.add(root, {"name": "libfoo", "vers": "1.0.0", "cksum": cksum})
    api.add(
        root,
        {"name": "app", "vers": "0.1.0", "cksum": cksum, "deps": [{"name": "libfoo", "req": "^1"}]},
    )
    api.yank(root, "libfoo", "1.0.0")
    api.unyank(root, "libfoo", "1.0.0")

    assert _log(root) == [
        "Unyanking crate `libfoo:1.0.0`",
        "Yanking crate `libfoo:1.0.0`",
        "Updating crate 'app#0.1.0'",
        "Updating crate 'libfoo#1.0.0'",
        "Initial commit",
    ]
    status = subprocess.run(
        ["git", "status", "--porcelain"], cwd=str(root), capture_output=True, text=True, check=True
    ).stdout
    # Only the lock file is left untracked
    assert status.strip() == "?? .cargo-index-lock"

    result = api.validate(root)
    assert result.ok
    assert result.records_checked == 2


def test_publish_with_dependency_then_yank(store, index_root, make_record):
    store.add(make_record("foo", "0.1.0"))
    shard = index_root / "3" / "f" / "foo"
    first = shard.read_bytes()
    assert [r.yanked for r in store.list("foo")] == [False]

    with_dep = make_record("foo", "0.1.0", deps=[("bar", "^0.1")])
    with pytest.raises(UnresolvedDependency):
        store.add(with_dep, force=True)
    assert shard.read_bytes() == first

    store.add(make_record("bar", "0.1.0"))
    store.add(with_dep, force=True)
    store.yank("foo", "0.1.0")

    listed = store.list("foo", "^0.1")
    assert len(listed) == 1
    assert listed[0].yanked
    assert [dep.name for dep in listed[0].deps] == ["bar"]
