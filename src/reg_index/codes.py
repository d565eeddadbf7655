"""Validation code constants for reg_index.api.validate().

These constants prevent stringly-typed issue codes and ensure
client code uses the correct validation codes.
"""

from enum import Enum


class ValidationCode(str, Enum):
    """Validation error and warning codes."""

    # Per-file errors
    MISPLACED_FILE = "MISPLACED_FILE"
    UNREADABLE_FILE = "UNREADABLE_FILE"
    CORRUPT_RECORD = "CORRUPT_RECORD"
    DUPLICATE_VERSION = "DUPLICATE_VERSION"
    INVALID_NAME = "INVALID_NAME"
    NAME_MISMATCH = "NAME_MISMATCH"

    # Artifact checks (only with an artifact template)
    MISSING_ARTIFACT = "MISSING_ARTIFACT"
    CHECKSUM_MISMATCH = "CHECKSUM_MISMATCH"

    # Whole-index dependency graph
    MISSING_DEPENDENCY = "MISSING_DEPENDENCY"
    UNSATISFIED_REQUIREMENT = "UNSATISFIED_REQUIREMENT"

    # Warnings (non-blocking)
    EMPTY_FILE = "EMPTY_FILE"
