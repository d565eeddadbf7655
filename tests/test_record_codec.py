"""Tests for entry models and the single-line codec."""

import json

import pytest
from pydantic import ValidationError

from reg_index._internal.codec import decode_record, encode_record, record_to_dict
from reg_index.errors import CorruptRecord
from reg_index.kernel.record import DependencyRecord, IndexConfig, PackageRecord

CKSUM = "0123456789abcdef" * 4

FULL_LINE = (
    '{"name":"foo","vers":"1.0.0","deps":[{"name":"bar","req":"^0.1","features":[],'
    '"optional":false,"default_features":true,"target":null,"kind":"normal",'
    '"registry":null,"package":null}],"features":{},"cksum":"' + CKSUM + '",'
    '"yanked":false,"links":null}'
)


def test_new_record_encodes_every_field_in_wire_order():
    record = PackageRecord(
        name="foo",
        vers="1.0.0",
        deps=[DependencyRecord(name="bar", req="^0.1")],
        cksum=CKSUM,
    )
    assert encode_record(record) == FULL_LINE


def test_decode_full_line_round_trips_byte_for_byte():
    assert encode_record(decode_record(FULL_LINE)) == FULL_LINE


def test_absent_keys_stay_absent():
    line = '{"name":"foo","vers":"0.1.0","deps":[{"name":"bar","req":"*"}],"cksum":"' + CKSUM + '"}'
    record = decode_record(line)
    assert record.features == {}
    assert record.yanked is False
    assert record.deps[0].kind == "normal"
    assert encode_record(record) == line


def test_features_are_sorted():
    record = PackageRecord(
        name="foo",
        vers="1.0.0",
        cksum=CKSUM,
        features={"zeta": [], "alpha": ["dep:bar"]},
    )
    assert list(record_to_dict(record)["features"]) == ["alpha", "zeta"]


def test_null_kind_reads_as_normal():
    dep = DependencyRecord.model_validate({"name": "bar", "req": "1", "kind": None})
    assert dep.kind == "normal"


def test_non_ascii_is_not_escaped():
    record = PackageRecord(name="café", vers="1.0.0", cksum=CKSUM)
    assert '"name":"café"' in encode_record(record)


def test_dependency_properties():
    renamed = DependencyRecord(name="alias", req="^1", package="real")
    assert renamed.resolved_name == "real"
    assert renamed.original_package == "real"
    assert renamed.requirement == "^1"
    assert renamed.is_same_registry

    foreign = DependencyRecord(name="x", req="1", registry="https://other.example/index")
    assert foreign.resolved_name == "x"
    assert not foreign.is_same_registry


def test_record_properties():
    record = PackageRecord(name="foo", vers="1.2.3+meta", cksum=CKSUM)
    assert record.key == "foo:1.2.3+meta"
    assert record.version.build == ("meta",)
    assert record.checksum == CKSUM
    assert record.dependencies == []


@pytest.mark.parametrize(
    "line",
    [
        "not json",
        "[1, 2]",
        '{"name":"foo","vers":"1.0.0"}',  # missing cksum
        '{"name":"foo","vers":"1.0","cksum":"' + CKSUM + '"}',  # bad version
        '{"name":"foo","vers":"1.0.0","cksum":"ABC"}',
        '{"name":"foo","vers":"1.0.0","cksum":"' + CKSUM + '","extra":1}',
        '{"name":"foo","vers":"1.0.0","cksum":"' + CKSUM + '","deps":[{"name":"b","req":"!!"}]}',
        '{"name":"foo","vers":"1.0.0","cksum":"' + CKSUM + '","deps":[{"name":"b","req":"1","kind":"weird"}]}',
        '{"name":"foo","vers":"1.0.0","cksum":"' + CKSUM + '","yanked":"false"}',
        '{"name":"foo","vers":"1.0.0","cksum":"' + CKSUM + '","yanked":0}',
        '{"name":"foo","vers":"1.0.0","cksum":"' + CKSUM + '","deps":[{"name":"b","req":"1","optional":"yes"}]}',
        '{"name":"foo","vers":"1.0.0","cksum":"' + CKSUM + '","deps":[{"name":"b","req":"1","default_features":1}]}',
    ],
)
def test_decode_rejects(line):
    with pytest.raises(CorruptRecord) as excinfo:
        decode_record(line, path="3/f/foo")
    assert "Could not deserialize `3/f/foo` line:" in str(excinfo.value)
    assert excinfo.value.line == line


def test_checksum_must_be_lowercase_hex():
    with pytest.raises(ValidationError):
        PackageRecord(name="foo", vers="1.0.0", cksum=CKSUM.upper())


def test_empty_name_rejected():
    with pytest.raises(ValidationError):
        PackageRecord(name="", vers="1.0.0", cksum=CKSUM)


def test_index_config_ignores_unknown_keys():
    config = IndexConfig.model_validate(json.loads('{"dl": "https://x/{crate}", "auth-required": true}'))
    assert config.dl == "https://x/{crate}"
    assert config.api is None


@pytest.mark.parametrize("config", ['{"dl": "not a url"}', '{"dl": "https://dl.example", "api": "::"}'])
def test_index_config_rejects_malformed_urls(config):
    with pytest.raises(ValidationError):
        IndexConfig.model_validate_json(config)
