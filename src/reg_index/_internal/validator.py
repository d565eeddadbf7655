"""Whole-index validation.

Runs under the exclusive lock so it sees one consistent snapshot. Two passes:

1. Per file: location, parse, duplicate versions, name character sets,
   name/file agreement and optionally artifact checksums. Every parsed
   entry is collected into a name -> entries map.
2. Whole index: every same-index dependency must be satisfied by some entry
   in that map.

Problems are accumulated rather than raised so one run reports all of them.
Only a missing index or an unreadable config.json stops the run.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from pathlib import Path, PurePosixPath
from typing import Dict, List, Optional, Set, Union

from reg_index.codes import ValidationCode
from reg_index.contracts import ValidationIssue, ValidationResult
from reg_index.errors import CorruptRecord, IndexNotFound, InvalidName, MissingArtifact
from reg_index.kernel.record import PackageRecord
from reg_index.kernel.shard import shard_path, validate_package_name
from reg_index.kernel.versions import VersionKey, parse_requirement, version_key

from .artifacts import ArtifactStore
from .codec import decode_record
from .io.record_file import iter_shard_files, split_lines
from .lock import exclusive_lock
from .store import load_config

logger = logging.getLogger(__name__)


class _IndexChecker:
    """Accumulates issues over one validation run."""

    def __init__(self, index_root: Path, artifacts: Optional[ArtifactStore]):
        self.index_root = index_root
        self.artifacts = artifacts
        self.errors: List[ValidationIssue] = []
        self.warnings: List[ValidationIssue] = []
        # Keyed by lower-cased name, the same way shard lookups resolve names
        self.packages: Dict[str, List[PackageRecord]] = defaultdict(list)
        self.files_checked = 0
        self.records_checked = 0

    def error(self, code: ValidationCode, message: str, **fields) -> None:
        logger.warning("%s: %s", code.value, message)
        self.errors.append(ValidationIssue(code=code.value, message=message, **fields))

    def warning(self, code: ValidationCode, message: str, **fields) -> None:
        logger.info("%s: %s", code.value, message)
        self.warnings.append(ValidationIssue(code=code.value, message=message, **fields))

    def check_files(self) -> None:
        for path in iter_shard_files(self.index_root):
            self.check_file(path)

    def check_file(self, path: Path) -> None:
        relative = PurePosixPath(path.relative_to(self.index_root).as_posix())
        rel = relative.as_posix()
        file_name = path.name
        if shard_path(file_name) != relative:
            self.error(
                ValidationCode.MISPLACED_FILE,
                f"File `{path}` is not in the correct location.",
                path=rel,
            )
            return

        try:
            contents = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            self.error(ValidationCode.UNREADABLE_FILE, f"Failed to read `{path}`: {e}", path=rel)
            return
        self.files_checked += 1

        lines = split_lines(contents)
        if not lines:
            self.warning(ValidationCode.EMPTY_FILE, f"File `{path}` has no entries.", path=rel)
            return

        seen: Set[VersionKey] = set()
        for lineno, line in enumerate(lines, start=1):
            try:
                record = decode_record(line, path=str(path))
            except CorruptRecord as e:
                self.error(ValidationCode.CORRUPT_RECORD, str(e), path=rel, line=lineno)
                continue
            self.records_checked += 1
            self.packages[record.name.lower()].append(record)
            self.check_record(record, rel, lineno, file_name, seen)

    def check_record(
        self,
        record: PackageRecord,
        rel: str,
        lineno: int,
        file_name: str,
        seen: Set[VersionKey],
    ) -> None:
        where = dict(path=rel, package=record.key, line=lineno)

        key = version_key(record.version)
        if key in seen:
            self.error(
                ValidationCode.DUPLICATE_VERSION,
                f"Version `{record.vers}` appears multiple times in `{record.name}`.",
                **where,
            )
        seen.add(key)

        try:
            validate_package_name(record.name, "package name")
        except InvalidName as e:
            self.error(ValidationCode.INVALID_NAME, str(e), **where)

        if record.name.lower() != file_name:
            self.error(
                ValidationCode.NAME_MISMATCH,
                f"Package `{record.key}` does not match file name `{rel}`.",
                **where,
            )

        for dep in record.deps:
            try:
                validate_package_name(dep.name, f"dependency of `{record.key}`")
                if dep.package is not None:
                    validate_package_name(dep.package, f"package of dependency `{dep.name}` of `{record.key}`")
            except InvalidName as e:
                self.error(ValidationCode.INVALID_NAME, str(e), dependency=dep.name, **where)

        if self.artifacts is not None:
            self.check_artifact(record, where)

    def check_artifact(self, record: PackageRecord, where: dict) -> None:
        artifact_path = self.artifacts.path_for(record.name, record.vers)
        try:
            actual = self.artifacts.checksum(record.name, record.vers)
        except MissingArtifact:
            self.error(
                ValidationCode.MISSING_ARTIFACT,
                f"Could not find artifact file: {artifact_path}",
                **where,
            )
            return
        if actual != record.cksum:
            self.error(
                ValidationCode.CHECKSUM_MISMATCH,
                f"Checksum did not match for package `{record.key}`:\n"
                f"index:  {record.cksum}\nactual: {actual}",
                **where,
            )

    def check_dependencies(self) -> None:
        for name in sorted(self.packages):
            for record in self.packages[name]:
                for dep in record.deps:
                    if not dep.is_same_registry:
                        continue
                    dep_name = dep.resolved_name
                    candidates = self.packages.get(dep_name.lower())
                    if not candidates:
                        self.error(
                            ValidationCode.MISSING_DEPENDENCY,
                            f"Could not find dependency name `{dep_name}` from package `{record.key}`.",
                            package=record.key,
                            dependency=dep_name,
                        )
                        continue
                    wanted = parse_requirement(dep.req)
                    if not any(wanted.match(candidate.version) for candidate in candidates):
                        self.error(
                            ValidationCode.UNSATISFIED_REQUIREMENT,
                            f"Could not find dependency `{dep_name}` matching requirement "
                            f"`{dep.req}` from package `{record.key}`.",
                            package=record.key,
                            dependency=dep_name,
                        )

    def result(self) -> ValidationResult:
        return ValidationResult(
            ok=not self.errors,
            errors=self.errors,
            warnings=self.warnings,
            files_checked=self.files_checked,
            records_checked=self.records_checked,
        )


def validate_index(
    index_root: Union[str, Path],
    artifacts: Optional[str] = None,
) -> ValidationResult:
    """
    Check every shard file and the dependency graph of an index.

    Args:
        index_root: Path to the index
        artifacts: Optional artifact directory template (`{crate}`, `{version}`);
                   when set, each entry's artifact must exist and match its cksum

    Returns:
        ValidationResult with ok=False if any error was found

    Raises:
        IndexNotFound: If index_root does not exist
        ConfigError: If config.json is missing or invalid
    """
    root = Path(index_root)
    if not root.exists():
        raise IndexNotFound(f"Index does not exist at `{root}`.")
    store = ArtifactStore(artifacts) if artifacts is not None else None
    checker = _IndexChecker(root, store)
    with exclusive_lock(root):
        load_config(root)
        checker.check_files()
        checker.check_dependencies()
    result = checker.result()
    logger.info(
        "Validated %d file(s), %d entr%s: %d error(s), %d warning(s)",
        result.files_checked,
        result.records_checked,
        "y" if result.records_checked == 1 else "ies",
        len(result.errors),
        len(result.warnings),
    )
    return result
