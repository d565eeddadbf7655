"""Tests for artifact location, checksums and upload."""

import hashlib

import pytest

from reg_index._internal.artifacts import (
    ArtifactStore,
    artifact_file_name,
    file_checksum,
    render_template,
)
from reg_index.errors import MissingArtifact


def test_render_template():
    assert render_template("/srv/{crate}/{version}", "serde", "1.0.0") == "/srv/serde/1.0.0"
    assert render_template("/srv/flat", "serde", "1.0.0") == "/srv/flat"


def test_artifact_file_name():
    assert artifact_file_name("serde", "1.0.0") == "serde-1.0.0.crate"


def test_file_checksum(tmp_path):
    path = tmp_path / "x.crate"
    path.write_bytes(b"\x00" * 200000)
    assert file_checksum(path) == hashlib.sha256(b"\x00" * 200000).hexdigest()


def test_file_checksum_missing(tmp_path):
    with pytest.raises(MissingArtifact):
        file_checksum(tmp_path / "missing.crate")


def test_store_paths_and_checksum(tmp_path):
    store = ArtifactStore(str(tmp_path / "{crate}"))
    path = store.path_for("abc", "0.1.0")
    assert path == tmp_path / "abc" / "abc-0.1.0.crate"
    assert not store.exists("abc", "0.1.0")

    path.parent.mkdir()
    path.write_bytes(b"payload")
    assert store.exists("abc", "0.1.0")
    assert store.checksum("abc", "0.1.0") == hashlib.sha256(b"payload").hexdigest()
    with store.open("abc", "0.1.0") as f:
        assert f.read() == b"payload"


def test_store_open_missing(tmp_path):
    with pytest.raises(MissingArtifact, match="Could not find artifact file"):
        ArtifactStore(str(tmp_path)).open("abc", "0.1.0")


def test_upload(tmp_path):
    source = tmp_path / "abc-0.1.0.crate"
    source.write_bytes(b"payload")
    store = ArtifactStore(str(tmp_path / "out" / "{crate}" / "{version}"))
    target = store.upload(source, "abc", "0.1.0")
    assert target == tmp_path / "out" / "abc" / "0.1.0" / "abc-0.1.0.crate"
    assert target.read_bytes() == b"payload"


def test_upload_missing_source(tmp_path):
    with pytest.raises(MissingArtifact):
        ArtifactStore(str(tmp_path / "out")).upload(tmp_path / "nope.crate", "abc", "0.1.0")
