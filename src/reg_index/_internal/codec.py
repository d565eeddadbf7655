"""Encode and decode single record lines.

A line is one JSON object. Decoding is strict: malformed JSON, unknown keys
and invalid field values all raise CorruptRecord with the offending line.

Presence is part of the format: a key that was absent from a decoded line
stays absent when that record is encoded again, while records built in
Python emit every key (`"links":null`, `"registry":null`, ...).
"""

import json
from typing import Any, Dict, Optional

from pydantic import ValidationError

from reg_index.errors import CorruptRecord
from reg_index.kernel.record import DependencyRecord, PackageRecord

from .canonical_json import compact_dumps


def _corrupt(path: Optional[str], line: str, reason: str) -> CorruptRecord:
    where = f"`{path}`" if path else "record"
    return CorruptRecord(
        f"Could not deserialize {where} line:\n{line}\n{reason}",
        path=path,
        line=line,
    )


def decode_record(line: str, path: Optional[str] = None) -> PackageRecord:
    """
    Parse one shard line into a PackageRecord.

    Args:
        line: Line text without its terminator
        path: Shard path, only used in error messages

    Raises:
        CorruptRecord: If the line is not a valid record
    """
    try:
        data = json.loads(line)
    except json.JSONDecodeError as e:
        raise _corrupt(path, line, str(e)) from e
    if not isinstance(data, dict):
        raise _corrupt(path, line, f"expected a JSON object, got {type(data).__name__}")

    try:
        record = PackageRecord.model_validate(data)
    except ValidationError as e:
        raise _corrupt(path, line, str(e)) from e

    record._omitted = frozenset(PackageRecord.model_fields) - data.keys()
    for dep, raw_dep in zip(record.deps, data.get("deps") or []):
        dep._omitted = frozenset(DependencyRecord.model_fields) - raw_dep.keys()
    return record


def record_to_dict(record: PackageRecord) -> Dict[str, Any]:
    """Wire-ordered dict for a record, honoring remembered absent keys."""
    data = record.model_dump(mode="json")
    for key in record._omitted:
        data.pop(key, None)
    if "features" in data:
        data["features"] = {k: data["features"][k] for k in sorted(data["features"])}
    if "deps" in data:
        for dep, dep_data in zip(record.deps, data["deps"]):
            for key in dep._omitted:
                dep_data.pop(key, None)
    return data


def encode_record(record: PackageRecord) -> str:
    """Serialize a record to a single line (no terminator)."""
    return compact_dumps(record_to_dict(record))
