"""Public result models for index validation."""

from typing import List, Optional

from pydantic import BaseModel


class ValidationIssue(BaseModel):
    """A single validation issue (error or warning)."""
    code: str  # A reg_index.codes.ValidationCode value
    message: str
    path: Optional[str] = None  # Index-relative shard path the issue was found in
    package: Optional[str] = None  # "name:vers" of the offending entry, when known
    dependency: Optional[str] = None  # For MISSING_DEPENDENCY / UNSATISFIED_REQUIREMENT
    line: Optional[int] = None  # 1-based line number within the shard file


class ValidationResult(BaseModel):
    """Result of a whole-index validation run."""
    ok: bool  # True if no errors (warnings don't block)
    errors: List[ValidationIssue]
    warnings: List[ValidationIssue]
    files_checked: int = 0
    records_checked: int = 0
