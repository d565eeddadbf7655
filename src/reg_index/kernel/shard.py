"""Shard layout: where a package's record file lives inside the index.

The mapping is a durable on-disk contract shared with every other tool that
reads the index, so it must not change:

- 1 char:   1/<name>
- 2 chars:  2/<name>
- 3 chars:  3/<first char>/<name>
- 4+ chars: <chars 0-1>/<chars 2-3>/<name>

Names are lower-cased before sharding. Nothing else is normalized; callers
reject path-hostile names with validate_package_name() first.
"""

from pathlib import PurePosixPath

from reg_index.errors import InvalidName


def shard_path(name: str) -> PurePosixPath:
    """Index-relative path of the record file for `name`."""
    name = name.lower()
    if len(name) == 1:
        return PurePosixPath("1", name)
    if len(name) == 2:
        return PurePosixPath("2", name)
    if len(name) == 3:
        return PurePosixPath("3", name[0], name)
    return PurePosixPath(name[0:2], name[2:4], name)


def _is_name_char(ch: str) -> bool:
    return ch.isalnum() or ch in ("_", "-")


def validate_package_name(name: str, what: str = "package name") -> None:
    """Raise InvalidName if `name` has a character other than alphanumerics, `_` or `-`.

    Args:
        name: Name to check
        what: Describes the name in the error message, e.g. "dependency of `foo:0.1.0`"
    """
    if not name:
        raise InvalidName(f"Empty {what}")
    for ch in name:
        if not _is_name_char(ch):
            raise InvalidName(f"Invalid character `{ch}` in {what}: `{name}`")


def is_valid_package_name(name: str) -> bool:
    return bool(name) and all(_is_name_char(ch) for ch in name)
