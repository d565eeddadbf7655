"""reg_index: sharded, git-backed package registry index."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("reg-index")
except PackageNotFoundError:
    __version__ = "dev"

# Public API exports
# Note: list_packages and validate live in reg_index.api; only the result
# models and codes are re-exported here
from reg_index.api import validate, ValidationResult
from reg_index.contracts import ValidationIssue
from reg_index.codes import ValidationCode
from reg_index.kernel.record import DependencyRecord, IndexConfig, PackageRecord

__all__ = [
    "__version__",
    "validate",
    "ValidationResult",
    "ValidationIssue",
    "ValidationCode",
    "DependencyRecord",
    "IndexConfig",
    "PackageRecord",
]
