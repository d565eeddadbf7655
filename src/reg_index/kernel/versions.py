"""Version and requirement semantics.

Versions are SemVer 2.0 strings parsed with semantic_version. Requirements use
Cargo's syntax: comma-separated comparators, all of which must match, where a
bare version means caret. A pre-release version only satisfies a requirement
when one of its comparators names a pre-release of the same major.minor.patch.

Identity of a record's version is build-sensitive: 1.0.0+a and 1.0.0+b are
two different entries even though SemVer precedence treats them as equal.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

import semantic_version

from reg_index.errors import InvalidRequirement, InvalidVersion

_COMPARATOR = re.compile(
    r"^(?P<op>>=|<=|=|>|<|\^|~)?\s*"
    r"(?P<major>[0-9]+|[*xX])"
    r"(?:\.(?P<minor>[0-9]+|[*xX]))?"
    r"(?:\.(?P<patch>[0-9]+|[*xX]))?"
    r"(?:-(?P<pre>[0-9A-Za-z.-]+))?"
    r"(?:\+(?P<build>[0-9A-Za-z.-]+))?$"
)
_WILDCARDS = ("*", "x", "X")


def parse_version(text: str) -> semantic_version.Version:
    try:
        return semantic_version.Version(text)
    except (TypeError, ValueError) as e:
        raise InvalidVersion(f"Invalid version `{text}`: {e}") from e


VersionKey = Tuple[int, int, int, Tuple[str, ...], Tuple[str, ...]]


def version_key(version: Union[str, semantic_version.Version]) -> VersionKey:
    """Hashable identity of a version, build metadata included."""
    if isinstance(version, str):
        version = parse_version(version)
    return (
        version.major,
        version.minor,
        version.patch,
        tuple(version.prerelease),
        tuple(version.build),
    )


def versions_equal(
    a: Union[str, semantic_version.Version],
    b: Union[str, semantic_version.Version],
) -> bool:
    """Equality used for "is this the same entry": compares build metadata too."""
    return version_key(a) == version_key(b)


@dataclass(frozen=True)
class Comparator:
    """One clause of a requirement, e.g. `>=1.2` or `~0.3.1-beta`.

    `minor` and `patch` are None when the clause leaves them out (or uses a
    wildcard). Only a clause with all three numbers may carry a pre-release.
    """
    op: str  # one of = > >= < <= ~ ^
    major: int
    minor: Optional[int] = None
    patch: Optional[int] = None
    pre: Tuple[str, ...] = ()

    @property
    def version(self) -> semantic_version.Version:
        return semantic_version.Version(
            major=self.major,
            minor=self.minor or 0,
            patch=self.patch or 0,
            prerelease=self.pre,
        )

    def _exact(self, v: semantic_version.Version) -> bool:
        if v.major != self.major:
            return False
        if self.minor is not None and v.minor != self.minor:
            return False
        if self.patch is not None and v.patch != self.patch:
            return False
        return tuple(v.prerelease) == self.pre

    def _greater(self, v: semantic_version.Version) -> bool:
        if v.major != self.major:
            return v.major > self.major
        if self.minor is None:
            return False
        if v.minor != self.minor:
            return v.minor > self.minor
        if self.patch is None:
            return False
        if v.patch != self.patch:
            return v.patch > self.patch
        return v > self.version

    def _less(self, v: semantic_version.Version) -> bool:
        if v.major != self.major:
            return v.major < self.major
        if self.minor is None:
            return False
        if v.minor != self.minor:
            return v.minor < self.minor
        if self.patch is None:
            return False
        if v.patch != self.patch:
            return v.patch < self.patch
        return v < self.version

    def _tilde(self, v: semantic_version.Version) -> bool:
        if v.major != self.major:
            return False
        if self.minor is not None and v.minor != self.minor:
            return False
        if self.patch is not None and v.patch != self.patch:
            return v.patch > self.patch
        return v >= self.version

    def _caret(self, v: semantic_version.Version) -> bool:
        if v.major != self.major:
            return False
        if self.minor is None:
            return True
        if self.patch is None:
            if self.major > 0:
                return v.minor >= self.minor
            return v.minor == self.minor
        if self.major > 0:
            if v.minor != self.minor:
                return v.minor > self.minor
            if v.patch != self.patch:
                return v.patch > self.patch
        elif self.minor > 0:
            if v.minor != self.minor:
                return False
            if v.patch != self.patch:
                return v.patch > self.patch
        elif v.minor != self.minor or v.patch != self.patch:
            return False
        return v >= self.version

    def matches(self, v: semantic_version.Version) -> bool:
        """Match ignoring the pre-release gate; `v` must carry no build metadata."""
        if self.op == "=":
            return self._exact(v)
        if self.op == ">":
            return self._greater(v)
        if self.op == ">=":
            return self._exact(v) or self._greater(v)
        if self.op == "<":
            return self._less(v)
        if self.op == "<=":
            return self._exact(v) or self._less(v)
        if self.op == "~":
            return self._tilde(v)
        return self._caret(v)

    def admits_prerelease_of(self, v: semantic_version.Version) -> bool:
        return (
            bool(self.pre)
            and self.major == v.major
            and self.minor == v.minor
            and self.patch == v.patch
        )

    def __str__(self) -> str:
        text = ".".join(str(p) for p in (self.major, self.minor, self.patch) if p is not None)
        if self.pre:
            text += "-" + ".".join(self.pre)
        return f"{self.op}{text}"


class Requirement:
    """A parsed Cargo-style version requirement."""

    def __init__(self, expression: str, comparators: List[Comparator]):
        self.expression = expression
        self.comparators = comparators

    def match(self, version: Union[str, semantic_version.Version]) -> bool:
        if isinstance(version, str):
            version = parse_version(version)
        version = version.truncate("prerelease")
        if not all(c.matches(version) for c in self.comparators):
            return False
        if not version.prerelease:
            return True
        return any(c.admits_prerelease_of(version) for c in self.comparators)

    def __str__(self) -> str:
        return self.expression

    def __repr__(self) -> str:
        return f"Requirement({self.expression!r})"


def _parse_comparator(clause: str, expression: str) -> Optional[Comparator]:
    """Parse one clause; a bare `*` gives None (no constraint)."""
    match = _COMPARATOR.match(clause)
    if not match:
        raise InvalidRequirement(f"Invalid version requirement `{expression}`")
    op = match.group("op")
    parts = [match.group("major"), match.group("minor"), match.group("patch")]

    numbers: List[Optional[int]] = []
    wildcard = False
    for part in parts:
        if part is None or part in _WILDCARDS:
            wildcard = wildcard or part is not None
            numbers.append(None)
        elif numbers and numbers[-1] is None:
            # 1.*.3
            raise InvalidRequirement(f"Invalid version requirement `{expression}`")
        else:
            numbers.append(int(part))
    major, minor, patch = numbers

    pre = match.group("pre")
    if pre is not None and patch is None:
        raise InvalidRequirement(
            f"Invalid version requirement `{expression}`: pre-release needs a full version"
        )
    if major is None:
        if op is not None or pre is not None:
            raise InvalidRequirement(f"Invalid version requirement `{expression}`")
        return None
    if op is None:
        # Cargo reads a bare version as a caret requirement
        op = "=" if wildcard else "^"
    return Comparator(
        op=op,
        major=major,
        minor=minor,
        patch=patch,
        pre=tuple(pre.split(".")) if pre else (),
    )


def parse_requirement(expression: str) -> Requirement:
    if not isinstance(expression, str):
        raise InvalidRequirement(f"Invalid version requirement `{expression}`")
    clauses = [c.strip() for c in expression.split(",")]
    if any(not c for c in clauses):
        raise InvalidRequirement(f"Invalid version requirement `{expression}`")
    comparators = []
    for clause in clauses:
        comparator = _parse_comparator(clause, expression)
        if comparator is not None:
            comparators.append(comparator)
    return Requirement(expression, comparators)


def normalize_requirement(expression: str) -> str:
    """Canonical comma-joined form with explicit operators, e.g. `^1.2, <2`."""
    comparators = parse_requirement(expression).comparators
    return ", ".join(str(c) for c in comparators) or "*"


def requirement_matches(
    requirement: Union[str, Requirement],
    version: Union[str, semantic_version.Version],
) -> bool:
    if isinstance(requirement, str):
        requirement = parse_requirement(requirement)
    return requirement.match(version)
