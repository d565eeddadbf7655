"""Pure index semantics: shard layout, versions, record models. No I/O."""

from .record import DependencyRecord, IndexConfig, PackageRecord
from .shard import is_valid_package_name, shard_path, validate_package_name
from .versions import Requirement, parse_requirement, parse_version, requirement_matches, versions_equal

__all__ = [
    "DependencyRecord",
    "IndexConfig",
    "PackageRecord",
    "Requirement",
    "is_valid_package_name",
    "shard_path",
    "validate_package_name",
    "parse_requirement",
    "parse_version",
    "requirement_matches",
    "versions_equal",
]
