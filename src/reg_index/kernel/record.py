"""Pydantic models for index entries and the index configuration.

Field names are the on-disk JSON keys. Entry models reject unknown keys so a
record written by a newer, incompatible schema fails to parse instead of
being silently rewritten without its extra data. Flags are strict booleans:
`"yanked": "false"` or `"optional": 0` is a corrupt record, not a coerced value.
"""

from typing import Dict, FrozenSet, List, Literal, Optional

import semantic_version
from pydantic import (
    AnyUrl,
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    TypeAdapter,
    ValidationError,
    field_validator,
)

from .versions import parse_requirement, parse_version

DependencyKind = Literal["normal", "dev", "build"]

CHECKSUM_LENGTH = 64  # sha256 hex digest
_HEX_DIGITS = frozenset("0123456789abcdef")
_URL = TypeAdapter(AnyUrl)


class DependencyRecord(BaseModel):
    """A dependency of one package version."""
    name: str  # May be a rename; see `package`
    req: str  # Cargo-style requirement, e.g. "^0.1"
    features: List[str] = Field(default_factory=list)
    optional: bool = Field(default=False, strict=True)
    default_features: bool = Field(default=True, strict=True)
    target: Optional[str] = None  # Platform qualifier, e.g. "cfg(unix)"
    kind: DependencyKind = "normal"
    registry: Optional[str] = None  # Foreign index URL; None means this index
    package: Optional[str] = None  # Real package name when `name` is a rename

    model_config = ConfigDict(extra="forbid")

    # Keys that were absent in the decoded line, so re-encoding can omit them again
    _omitted: FrozenSet[str] = PrivateAttr(default_factory=frozenset)

    @field_validator("kind", mode="before")
    @classmethod
    def default_kind(cls, v):
        # Some published indexes carry `"kind": null`
        return "normal" if v is None else v

    @field_validator("req")
    @classmethod
    def validate_req(cls, v: str) -> str:
        parse_requirement(v)
        return v

    @property
    def requirement(self) -> str:
        return self.req

    @property
    def original_package(self) -> Optional[str]:
        return self.package

    @property
    def resolved_name(self) -> str:
        """Name to look up in the index (the real package name for renames)."""
        return self.package or self.name

    @property
    def is_same_registry(self) -> bool:
        return self.registry is None


class PackageRecord(BaseModel):
    """One version of one package, stored as one line of a shard file."""
    name: str
    vers: str
    deps: List[DependencyRecord] = Field(default_factory=list)
    features: Dict[str, List[str]] = Field(default_factory=dict)
    cksum: str
    yanked: bool = Field(default=False, strict=True)
    links: Optional[str] = None  # Native library this package links exclusively

    model_config = ConfigDict(extra="forbid")

    _omitted: FrozenSet[str] = PrivateAttr(default_factory=frozenset)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        # Character set is checked by callers (add rejects, validator reports)
        if not v:
            raise ValueError("name must not be empty")
        return v

    @field_validator("vers")
    @classmethod
    def validate_vers(cls, v: str) -> str:
        parse_version(v)
        return v

    @field_validator("cksum")
    @classmethod
    def validate_cksum(cls, v: str) -> str:
        if len(v) != CHECKSUM_LENGTH or not set(v) <= _HEX_DIGITS:
            raise ValueError(
                f"cksum must be {CHECKSUM_LENGTH} lowercase hex characters (sha256), got '{v}'"
            )
        return v

    @property
    def version(self) -> semantic_version.Version:
        return parse_version(self.vers)

    @property
    def dependencies(self) -> List[DependencyRecord]:
        return self.deps

    @property
    def checksum(self) -> str:
        return self.cksum

    @property
    def key(self) -> str:
        """Display form `name:vers` used in messages."""
        return f"{self.name}:{self.vers}"


class IndexConfig(BaseModel):
    """config.json at the index root.

    `dl` may contain `{crate}` and `{version}` markers; when absent, clients
    append `/{crate}/{version}/download`. Both URLs are checked but kept as
    written.
    """
    dl: str
    api: Optional[str] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("dl", "api")
    @classmethod
    def validate_url(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        try:
            _URL.validate_python(v)
        except ValidationError as e:
            raise ValueError(f"invalid URL `{v}`: {e.errors()[0]['msg']}") from e
        return v
