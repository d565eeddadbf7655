"""Exceptions raised by reg_index operations.

Mutating operations (add, yank, unyank) and listing are fail-fast: the first
violated invariant raises one of these and nothing is written. The validator
never raises these for per-record problems; it reports them as
ValidationIssue entries instead (see reg_index.codes).
"""

from typing import Optional


class RegIndexError(Exception):
    """Base class for all reg_index errors."""


class IndexExists(RegIndexError):
    """Raised by init when the target path already exists."""


class IndexNotFound(RegIndexError):
    """Raised when the index root does not exist."""


class ConfigError(RegIndexError):
    """Raised when config.json is missing or cannot be parsed."""


class InvalidName(RegIndexError, ValueError):
    """A package or dependency name contains a disallowed character."""


class InvalidVersion(RegIndexError, ValueError):
    """A version string is not a valid semantic version."""


class InvalidRequirement(RegIndexError, ValueError):
    """A version requirement string cannot be parsed."""


class CorruptRecord(RegIndexError):
    """A line in a shard file could not be decoded."""

    def __init__(self, message: str, path: Optional[str] = None, line: Optional[str] = None):
        super().__init__(message)
        self.path = path
        self.line = line


class DuplicateVersion(RegIndexError):
    """The (name, version) pair is already in the index."""


class UnresolvedDependency(RegIndexError):
    """A same-index dependency has no matching record in the index."""

    def __init__(self, message: str, dependency: str, requirement: str):
        super().__init__(message)
        self.dependency = dependency
        self.requirement = requirement


class PackageNotFound(RegIndexError):
    """No shard file exists for the package."""


class VersionNotFound(RegIndexError):
    """The package exists but the requested version does not."""


class AlreadyInState(RegIndexError):
    """Yank/unyank requested for a record already in that state."""

    def __init__(self, message: str, yanked: bool):
        super().__init__(message)
        self.yanked = yanked


class IndexCorrupt(RegIndexError):
    """A version appears more than once in a shard file."""


class LockFailed(RegIndexError):
    """The index lock file could not be opened or locked."""


class CommitFailed(RegIndexError):
    """The version control sink failed after the shard file was written.

    The file on disk already holds the new content at this point; the
    history does not. Reconcile by committing (or reverting) the path by hand.
    """

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class ChecksumMismatch(RegIndexError):
    """An artifact's sha256 does not match the record's checksum."""


class MissingArtifact(RegIndexError):
    """An artifact file expected by add or upload does not exist."""
