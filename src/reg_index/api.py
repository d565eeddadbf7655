"""Public API for reg_index.

High-level functions over an index directory. Callers should use these
instead of importing from _internal.
"""

import json
import os
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import ValidationError

from reg_index._internal.artifacts import file_checksum
from reg_index._internal.store import IndexStore, init_index, load_config as _load_config
from reg_index._internal.validator import validate_index
from reg_index._internal.vcs import GitSink, NullSink, VersionControlSink
from reg_index.contracts import ValidationIssue, ValidationResult
from reg_index.errors import CorruptRecord
from reg_index.kernel.record import IndexConfig, PackageRecord

PathLike = Union[str, os.PathLike, Path]


def _normalize_path(path: PathLike) -> Path:
    """Normalize path input to Path object."""
    return Path(path) if not isinstance(path, Path) else path


def _store(index: PathLike, sink: Optional[VersionControlSink]) -> IndexStore:
    return IndexStore(_normalize_path(index), sink=sink)


def load_entry(
    entry: Union[PackageRecord, Dict[str, Any], str],
    source: str = "entry",
    artifact: Optional[PathLike] = None,
) -> PackageRecord:
    """
    Build a PackageRecord from a model, a dict or JSON text.

    Entries built here are complete: every field is written when stored,
    even if the input left it out. When `artifact` is given and the input
    has no `cksum`, it is filled in from the artifact's sha256.

    Raises:
        CorruptRecord: If the input is not a valid entry
        MissingArtifact: If `artifact` is needed but does not exist
    """
    if isinstance(entry, PackageRecord):
        return entry
    if isinstance(entry, str):
        try:
            data = json.loads(entry)
        except json.JSONDecodeError as e:
            raise CorruptRecord(f"Could not parse {source}: {e}", path=source, line=entry) from e
    else:
        data = entry
    if not isinstance(data, dict):
        raise CorruptRecord(
            f"Could not parse {source}: expected a JSON object, got {type(data).__name__}",
            path=source,
        )
    if artifact is not None and "cksum" not in data:
        data = dict(data, cksum=file_checksum(artifact))
    try:
        return PackageRecord.model_validate(data)
    except ValidationError as e:
        raise CorruptRecord(f"Could not parse {source}: {e}", path=source) from e


def load_entry_file(path: PathLike, artifact: Optional[PathLike] = None) -> PackageRecord:
    """Read one entry from a JSON file."""
    path = _normalize_path(path)
    with open(path, "r", encoding="utf-8") as f:
        return load_entry(f.read(), source=f"`{path}`", artifact=artifact)


def init(
    index: PathLike,
    dl: str,
    api: Optional[str] = None,
    sink: Optional[VersionControlSink] = None,
) -> IndexConfig:
    """
    Create a new index with its config.json and an initial commit.

    Args:
        index: Directory to create (must not exist)
        dl: Download URL template written to config.json
        api: Optional API URL written to config.json
        sink: Version control sink (defaults to git)
    """
    return init_index(_normalize_path(index), dl, api=api, sink=sink)


def load_config(index: PathLike) -> IndexConfig:
    return _load_config(_normalize_path(index))


def add(
    index: PathLike,
    entry: Union[PackageRecord, Dict[str, Any], str],
    force: bool = False,
    artifact: Optional[PathLike] = None,
    upload: Optional[str] = None,
    sink: Optional[VersionControlSink] = None,
) -> PackageRecord:
    """
    Add an entry to the index.

    Args:
        index: Index root
        entry: The entry as a PackageRecord, a dict or a JSON line
        force: Replace an existing entry with the same version
        artifact: Optional artifact file to check against the entry's cksum
        upload: Optional directory template to copy the artifact into
        sink: Version control sink (defaults to git)

    Returns:
        The stored PackageRecord
    """
    record = load_entry(entry, artifact=artifact)
    return _store(index, sink).add(record, force=force, artifact=artifact, upload=upload)


def yank(
    index: PathLike,
    name: str,
    version: str,
    sink: Optional[VersionControlSink] = None,
) -> PackageRecord:
    return _store(index, sink).yank(name, version)


def unyank(
    index: PathLike,
    name: str,
    version: str,
    sink: Optional[VersionControlSink] = None,
) -> PackageRecord:
    return _store(index, sink).unyank(name, version)


def list_packages(
    index: PathLike,
    name: str,
    requirement: Optional[str] = None,
) -> List[PackageRecord]:
    """Entries of one package whose version matches `requirement` (all if None)."""
    return _store(index, NullSink()).list(name, requirement)


def list_all(
    index: PathLike,
    consumer: Callable[[PackageRecord], None],
    name: Optional[str] = None,
    requirement: Optional[str] = None,
) -> int:
    """Stream matching entries of the whole index (or one package) to `consumer`.

    Returns the number of entries delivered.
    """
    return _store(index, NullSink()).list_all(consumer, name=name, requirement=requirement)


def validate(index: PathLike, artifacts: Optional[str] = None) -> ValidationResult:
    """
    Check the whole index for consistency.

    Args:
        index: Index root
        artifacts: Optional artifact directory template; enables checksum checks

    Returns:
        ValidationResult with errors and warnings.

    Takes the exclusive lock so no writer runs meanwhile, but never writes.
    """
    return validate_index(_normalize_path(index), artifacts=artifacts)


__all__ = [
    "GitSink",
    "IndexConfig",
    "NullSink",
    "PackageRecord",
    "ValidationIssue",
    "ValidationResult",
    "VersionControlSink",
    "add",
    "init",
    "list_all",
    "list_packages",
    "load_config",
    "load_entry",
    "load_entry_file",
    "unyank",
    "validate",
    "yank",
]
