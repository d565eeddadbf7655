"""Index mutations and listings.

Every operation follows the same shape: take the index lock, re-read the
shard files it needs from disk, check invariants, and for mutations rewrite
the one shard file and commit it through the sink before unlocking. A failed
check raises before anything is written.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Callable, List, Optional, Union

from pydantic import ValidationError

from reg_index.errors import (
    AlreadyInState,
    ChecksumMismatch,
    CommitFailed,
    ConfigError,
    DuplicateVersion,
    IndexCorrupt,
    IndexExists,
    IndexNotFound,
    MissingArtifact,
    PackageNotFound,
    UnresolvedDependency,
    VersionNotFound,
)
from reg_index.kernel.record import IndexConfig, PackageRecord
from reg_index.kernel.shard import validate_package_name
from reg_index.kernel.versions import parse_requirement, parse_version, versions_equal

from .artifacts import ArtifactStore, file_checksum
from .io.record_file import CONFIG_FILE_NAME, RecordFile, StoredLine, iter_shard_files
from .lock import exclusive_lock, shared_lock
from .vcs import GitSink, VersionControlSink

logger = logging.getLogger(__name__)

RecordConsumer = Callable[[PackageRecord], None]


def config_json(dl: str, api: Optional[str] = None) -> str:
    """Text of a new config.json."""
    if api is not None:
        return "{\n  \"dl\": %s,\n  \"api\": %s\n}" % (json.dumps(dl), json.dumps(api.rstrip("/")))
    return "{\n  \"dl\": %s\n}" % json.dumps(dl)


def init_index(
    index_root: Union[str, Path],
    dl: str,
    api: Optional[str] = None,
    sink: Optional[VersionControlSink] = None,
) -> IndexConfig:
    """
    Create a new, empty index.

    Args:
        index_root: Directory to create; must not exist yet
        dl: Download URL template (may contain `{crate}` and `{version}`)
        api: Optional API base URL; a trailing `/` is dropped
        sink: History sink, defaults to a new git repository at index_root

    Raises:
        IndexExists: If index_root already exists
        ConfigError: If `dl` or `api` is not a URL
    """
    root = Path(index_root)
    if root.exists():
        raise IndexExists(
            f"Path `{root}` already exists. This command requires a non-existent path to create."
        )
    try:
        IndexConfig(dl=dl, api=api)
    except ValidationError as e:
        raise ConfigError(f"Invalid index configuration: {e}") from e
    root.mkdir(parents=True)
    if sink is None:
        sink = GitSink(root)
    sink.init_repository()
    (root / CONFIG_FILE_NAME).write_text(config_json(dl, api), encoding="utf-8")
    sink.commit(CONFIG_FILE_NAME, "Initial commit")
    logger.info("Created index at %s", root)
    return load_config(root)


def load_config(index_root: Union[str, Path]) -> IndexConfig:
    """Read config.json. Raises ConfigError if it is missing or invalid."""
    path = Path(index_root) / CONFIG_FILE_NAME
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to open `{path}`: {e}") from e
    try:
        return IndexConfig.model_validate_json(text)
    except ValidationError as e:
        raise ConfigError(f"Failed to deserialize `{path}`: {e}") from e


class IndexStore:
    """Add, yank, unyank and list entries of one index."""

    def __init__(self, index_root: Union[str, Path], sink: Optional[VersionControlSink] = None):
        self.index_root = Path(index_root)
        self.sink = sink if sink is not None else GitSink(self.index_root)

    def _require_root(self) -> None:
        if not self.index_root.is_dir():
            raise IndexNotFound(f"Index does not exist at `{self.index_root}`.")

    def record_file(self, name: str) -> RecordFile:
        return RecordFile(self.index_root, name)

    def load_config(self) -> IndexConfig:
        return load_config(self.index_root)

    def _commit(self, record_file: RecordFile, message: str) -> None:
        relative = record_file.relative_path.as_posix()
        try:
            self.sink.commit(relative, message)
        except CommitFailed as e:
            raise CommitFailed(
                f"`{relative}` was written but not committed; reconcile the history by hand. {e}",
                path=relative,
            ) from e

    def _check_dependencies(self, candidate: PackageRecord) -> None:
        for dep in candidate.deps:
            if not dep.is_same_registry:
                continue
            dep_name = dep.resolved_name
            if not self.record_file(dep_name).read_matching(dep.req):
                raise UnresolvedDependency(
                    f"Package `{candidate.name}` dependency `{dep_name}:{dep.req}` not found in index.",
                    dependency=dep_name,
                    requirement=dep.req,
                )

    def add(
        self,
        candidate: PackageRecord,
        force: bool = False,
        artifact: Optional[Union[str, Path]] = None,
        upload: Optional[str] = None,
    ) -> PackageRecord:
        """
        Publish a new entry.

        Args:
            candidate: Fully formed record to add
            force: Replace an existing entry with the same version in place
            artifact: Optional artifact file; its sha256 must equal candidate.cksum
            upload: Optional directory template the artifact is copied into

        Returns:
            The stored record

        Raises:
            DuplicateVersion: Version already present and force is False
            UnresolvedDependency: A same-index dependency has no matching entry
            IndexCorrupt: The version is already present more than once
        """
        validate_package_name(candidate.name)
        for dep in candidate.deps:
            validate_package_name(dep.name, f"dependency of `{candidate.key}`")
            if dep.package is not None:
                validate_package_name(dep.package, f"package of dependency `{dep.name}` of `{candidate.key}`")
        if artifact is not None:
            actual = file_checksum(artifact)
            if actual != candidate.cksum:
                raise ChecksumMismatch(
                    f"Checksum did not match for package `{candidate.key}`:\n"
                    f"entry:  {candidate.cksum}\nactual: {actual}"
                )
        if upload is not None and artifact is None:
            raise MissingArtifact("An artifact file is required to upload.")
        self._require_root()

        version = candidate.version
        record_file = self.record_file(candidate.name)
        with exclusive_lock(self.index_root):
            existing = record_file.read_lines()
            positions = [
                i for i, stored in enumerate(existing)
                if versions_equal(stored.record.version, version)
            ]
            if len(positions) > 1:
                raise IndexCorrupt(
                    f"Version `{candidate.vers}` for package `{candidate.name}` found multiple times, "
                    f"is the index corrupt?"
                )
            if positions and not force:
                raise DuplicateVersion(
                    f"Package `{candidate.name}` version `{candidate.vers}` is already in the index."
                )
            self._check_dependencies(candidate)

            entries: List[Union[StoredLine, PackageRecord]] = list(existing)
            if positions:
                entries[positions[0]] = candidate
            else:
                entries.append(candidate)
            record_file.write_all(entries)

            if upload is not None:
                ArtifactStore(upload).upload(artifact, candidate.name, candidate.vers)
            self._commit(record_file, f"Updating crate '{candidate.name}#{candidate.vers}'")
        logger.info("%s %s", "Replaced" if positions else "Added", candidate.key)
        return candidate

    def set_yank(self, name: str, version: str, yank: bool) -> PackageRecord:
        """
        Set the `yanked` flag of one entry.

        Raises:
            PackageNotFound: No shard file for the package
            VersionNotFound: No entry with that version
            IndexCorrupt: More than one entry with that version
            AlreadyInState: The flag already has the requested value
        """
        validate_package_name(name)
        target = parse_version(version)
        self._require_root()
        record_file = self.record_file(name)
        with exclusive_lock(self.index_root):
            if not record_file.exists():
                raise PackageNotFound(f"Package `{name}` is not in the index.")
            stored = record_file.read_lines()
            positions = [
                i for i, line in enumerate(stored)
                if versions_equal(line.record.version, target)
            ]
            if not positions:
                raise VersionNotFound(f"Version `{version}` for package `{name}` not found.")
            if len(positions) > 1:
                raise IndexCorrupt(
                    f"Version `{version}` for package `{name}` found multiple times, is the index corrupt?"
                )
            record = stored[positions[0]].record
            if record.yanked == yank:
                state = "already yanked" if yank else "not yanked"
                raise AlreadyInState(f"`{name}:{version}` is {state}!", yanked=record.yanked)

            updated = record.model_copy(update={"yanked": yank})
            entries: List[Union[StoredLine, PackageRecord]] = list(stored)
            entries[positions[0]] = updated
            record_file.write_all(entries)

            what = "Yanking" if yank else "Unyanking"
            self._commit(record_file, f"{what} crate `{name}:{version}`")
        logger.info("%s %s:%s", "Yanked" if yank else "Unyanked", name, version)
        return updated

    def yank(self, name: str, version: str) -> PackageRecord:
        return self.set_yank(name, version, True)

    def unyank(self, name: str, version: str) -> PackageRecord:
        return self.set_yank(name, version, False)

    def list(self, name: str, requirement: Optional[str] = None) -> List[PackageRecord]:
        """Entries of one package matching `requirement`, in file order.

        An unknown package and a package with no matching entry both give [].
        """
        validate_package_name(name)
        wanted = parse_requirement(requirement) if requirement is not None else None
        self._require_root()
        with shared_lock(self.index_root):
            return self.record_file(name).read_matching(wanted)

    def list_all(
        self,
        consumer: RecordConsumer,
        name: Optional[str] = None,
        requirement: Optional[str] = None,
    ) -> int:
        """
        Feed matching entries to `consumer` one at a time.

        With a name, lists that package; without, walks every shard file under
        a single shared lock without loading the whole index in memory.

        Returns:
            Number of entries delivered
        """
        if name is not None:
            validate_package_name(name)
        wanted = parse_requirement(requirement) if requirement is not None else None
        self._require_root()
        count = 0
        with shared_lock(self.index_root):
            if name is not None:
                names = [name]
            else:
                names = (path.name for path in iter_shard_files(self.index_root))
            for pkg_name in names:
                for record in self.record_file(pkg_name).read_matching(wanted):
                    consumer(record)
                    count += 1
        return count
