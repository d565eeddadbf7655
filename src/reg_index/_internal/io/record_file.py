"""Shard file I/O: the ordered records stored for one package name.

Callers hold the index lock; nothing here locks or caches. Every read goes to
disk so each operation sees the state left by the last writer.
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Union

from reg_index.errors import CorruptRecord
from reg_index.kernel.record import PackageRecord
from reg_index.kernel.shard import shard_path
from reg_index.kernel.versions import Requirement, parse_requirement

from ..codec import decode_record, encode_record
from ..lock import LOCK_FILE_NAME

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "config.json"
VCS_DIR_NAME = ".git"
TEMP_PREFIX = ".tmp-"

_SKIPPED_NAMES = frozenset({CONFIG_FILE_NAME, VCS_DIR_NAME, LOCK_FILE_NAME})


@dataclass(frozen=True)
class StoredLine:
    """A record together with the exact text it was read from."""
    text: str  # Without line terminator
    record: PackageRecord


def split_lines(contents: str) -> List[str]:
    # Not str.splitlines(): U+2028 and friends may appear unescaped inside JSON strings
    lines = contents.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


class RecordFile:
    """Records for one package, at its shard path under the index root."""

    def __init__(self, index_root: Union[str, Path], name: str):
        self.index_root = Path(index_root)
        self.name = name
        self.relative_path = shard_path(name)
        self.path = self.index_root.joinpath(*self.relative_path.parts)

    def exists(self) -> bool:
        return self.path.is_file()

    def _read_text(self) -> Optional[str]:
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            raise CorruptRecord(
                f"`{self.path}` contains invalid UTF-8 data", path=str(self.path)
            ) from e

    def read_lines(self) -> List[StoredLine]:
        """All records with their raw text, in file order. Empty if the file is missing."""
        contents = self._read_text()
        if contents is None:
            return []
        return [
            StoredLine(text=line, record=decode_record(line, path=str(self.path)))
            for line in split_lines(contents)
        ]

    def read_all(self) -> List[PackageRecord]:
        return [stored.record for stored in self.read_lines()]

    def read_matching(
        self,
        requirement: Optional[Union[str, Requirement]] = None,
    ) -> List[PackageRecord]:
        """Records whose version satisfies `requirement` (all if None), in file order."""
        records = self.read_all()
        if requirement is None:
            return records
        if isinstance(requirement, str):
            requirement = parse_requirement(requirement)
        return [r for r in records if requirement.match(r.version)]

    def write_all(self, entries: Iterable[Union[StoredLine, PackageRecord]]) -> None:
        """
        Replace the file with `entries`, one per line, atomically.

        StoredLine entries are written back verbatim; PackageRecord entries
        are encoded. The new content goes to a temporary file in the same
        directory which is then renamed over the shard file, so a reader never
        observes a partial record set.
        """
        lines = []
        for entry in entries:
            if isinstance(entry, StoredLine):
                lines.append(entry.text)
            else:
                lines.append(encode_record(entry))
        content = "".join(line + "\n" for line in lines)

        self.path.parent.mkdir(parents=True, exist_ok=True)
        mode = self.path.stat().st_mode & 0o777 if self.path.exists() else 0o644
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self.path.parent),
            prefix=f"{TEMP_PREFIX}{self.path.name}.",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as tmp_handle:
                tmp_handle.write(content)
            os.chmod(tmp_path, mode)
            os.replace(tmp_path, self.path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
        logger.debug("Wrote %d record(s) to %s", len(lines), self.path)

    def append(self, record: PackageRecord) -> None:
        """Add one line at the end without touching existing lines."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8", newline="") as f:
            f.write(encode_record(record) + "\n")
        logger.debug("Appended %s to %s", record.key, self.path)


def iter_shard_files(index_root: Union[str, Path]) -> Iterator[Path]:
    """
    Yield every shard file under the index root in sorted walk order.

    Skips config.json, the lock file, the .git directory and leftover
    temporary files from interrupted rewrites.
    """
    root = Path(index_root)
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in _SKIPPED_NAMES)
        for filename in sorted(filenames):
            if filename in _SKIPPED_NAMES or filename.startswith(TEMP_PREFIX):
                continue
            yield Path(dirpath) / filename
