"""Tests for single-package and whole-index listings."""

import pytest

from reg_index.errors import IndexNotFound, InvalidRequirement


@pytest.fixture
def populated(store, make_record):
    for name, versions in (
        ("serde", ("0.9.0", "1.0.0", "1.0.5")),
        ("a", ("0.1.0",)),
        ("log", ("0.4.0",)),
    ):
        for v in versions:
            store.add(make_record(name, v))
    return store


def test_list_one_package(populated):
    assert [r.vers for r in populated.list("serde")] == ["0.9.0", "1.0.0", "1.0.5"]


def test_list_with_requirement(populated):
    assert [r.vers for r in populated.list("serde", "^1.0")] == ["1.0.0", "1.0.5"]
    assert populated.list("serde", ">=2") == []


def test_list_unknown_package_is_empty(populated):
    assert populated.list("nothing") == []


def test_list_name_lookup_is_case_insensitive(populated):
    assert len(populated.list("SERDE")) == 3


def test_list_invalid_requirement(populated):
    with pytest.raises(InvalidRequirement):
        populated.list("serde", "not a req")


def test_list_all_walks_every_file(populated):
    seen = []
    count = populated.list_all(seen.append)
    assert count == 5
    # Sorted walk: 1/a, 3/l/log, se/rd/serde
    assert [r.key for r in seen] == [
        "a:0.1.0",
        "log:0.4.0",
        "serde:0.9.0",
        "serde:1.0.0",
        "serde:1.0.5",
    ]


def test_list_all_filtered(populated):
    seen = []
    assert populated.list_all(seen.append, requirement="^0.4") == 1
    assert seen[0].key == "log:0.4.0"

    seen.clear()
    assert populated.list_all(seen.append, name="serde", requirement="=1.0.0") == 1


def test_list_all_empty_index(store):
    assert store.list_all(lambda record: None) == 0


def test_list_missing_index(tmp_path, sink):
    from reg_index._internal.store import IndexStore

    with pytest.raises(IndexNotFound):
        IndexStore(tmp_path / "nope", sink=sink).list("abc")
