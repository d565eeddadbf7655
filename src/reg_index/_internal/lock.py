"""Advisory whole-index lock.

All operations lock the single file `<index>/.cargo-index-lock` with
fcntl.flock: writers and the validator take it exclusively, listings take it
shared. Acquisition blocks with no timeout. The lock is released when the
context exits, whatever the exit path.
"""

import fcntl
import logging
from pathlib import Path
from typing import IO, Optional, Union

from reg_index.errors import LockFailed

logger = logging.getLogger(__name__)

LOCK_FILE_NAME = ".cargo-index-lock"


class IndexLock:
    """Context manager holding a shared or exclusive lock on an index."""

    def __init__(self, index_root: Union[str, Path], shared: bool = False):
        self.path = Path(index_root) / LOCK_FILE_NAME
        self.shared = shared
        self._handle: Optional[IO[str]] = None

    @property
    def mode(self) -> str:
        return "shared" if self.shared else "exclusive"

    def acquire(self) -> "IndexLock":
        try:
            handle = open(self.path, "a+", encoding="utf-8")
        except OSError as e:
            raise LockFailed(f"Failed to open lock file `{self.path}`: {e}") from e
        try:
            fcntl.flock(handle.fileno(), fcntl.LOCK_SH if self.shared else fcntl.LOCK_EX)
        except OSError as e:
            handle.close()
            raise LockFailed(f"Failed to acquire {self.mode} lock on `{self.path}`: {e}") from e
        self._handle = handle
        logger.debug("Acquired %s lock on %s", self.mode, self.path)
        return self

    def release(self) -> None:
        if self._handle is None:
            return
        try:
            fcntl.flock(self._handle.fileno(), fcntl.LOCK_UN)
        finally:
            self._handle.close()
            self._handle = None
            logger.debug("Released %s lock on %s", self.mode, self.path)

    @property
    def held(self) -> bool:
        return self._handle is not None

    def __enter__(self) -> "IndexLock":
        return self.acquire()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


def exclusive_lock(index_root: Union[str, Path]) -> IndexLock:
    return IndexLock(index_root, shared=False)


def shared_lock(index_root: Union[str, Path]) -> IndexLock:
    return IndexLock(index_root, shared=True)
