"""Version control sinks: record each index change in a history.

The store calls `commit` exactly once per successful mutation, after the
shard file has been written and before the lock is released. A failure there
leaves the new file content on disk without a matching commit; it surfaces as
CommitFailed and needs manual reconciliation.
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path, PurePath
from typing import Dict, List, Optional, Protocol, Tuple, Union

from reg_index.errors import CommitFailed

logger = logging.getLogger(__name__)


class VersionControlSink(Protocol):
    """Where index changes are committed."""

    def init_repository(self) -> None:
        """Prepare an empty history at the index root."""
        ...

    def commit(self, relative_path: Union[str, PurePath], message: str) -> None:
        """Commit one changed file. Raises CommitFailed."""
        ...


class NullSink:
    """Sink for indexes that are not under version control."""

    def init_repository(self) -> None:
        pass

    def commit(self, relative_path: Union[str, PurePath], message: str) -> None:
        logger.debug("Not committing %s (no version control): %s", relative_path, message)


@dataclass
class CommandResult:
    """Outcome of one git invocation."""

    returncode: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.returncode == 0


def _identity_env(environ: Dict[str, str]) -> Dict[str, str]:
    """Fill in git author/committer identity from whichever pair is set.

    git reads GIT_AUTHOR_* and GIT_COMMITTER_* separately; when only one
    pair is configured, use it for both.
    """
    env = dict(environ)
    pairs: List[Tuple[str, str]] = [
        ("GIT_AUTHOR_NAME", "GIT_COMMITTER_NAME"),
        ("GIT_AUTHOR_EMAIL", "GIT_COMMITTER_EMAIL"),
    ]
    for author_key, committer_key in pairs:
        if author_key in env and committer_key not in env:
            env[committer_key] = env[author_key]
        elif committer_key in env and author_key not in env:
            env[author_key] = env[committer_key]
    return env


class GitSink:
    """Commits index changes to a git repository at the index root."""

    def __init__(self, index_root: Union[str, Path], git: str = "git"):
        self.index_root = Path(index_root)
        self.git = git

    def _run(self, *args: str) -> CommandResult:
        cmd = [self.git, *args]
        logger.debug("Running %s (cwd=%s)", " ".join(cmd), self.index_root)
        try:
            r = subprocess.run(
                cmd,
                cwd=str(self.index_root),
                env=_identity_env(dict(os.environ)),
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            raise CommitFailed(f"Could not run `{self.git}`: {e}") from e
        return CommandResult(returncode=r.returncode, stdout=r.stdout, stderr=r.stderr)

    def _check(self, result: CommandResult, what: str, path: Optional[str] = None) -> None:
        if not result.success:
            detail = (result.stderr or result.stdout).strip()[:500]
            raise CommitFailed(f"{what} failed (rc={result.returncode}): {detail}", path=path)

    def init_repository(self) -> None:
        self._check(self._run("init", "-q"), f"git init of `{self.index_root}`")

    def commit(self, relative_path: Union[str, PurePath], message: str) -> None:
        path = PurePath(relative_path).as_posix()
        self._check(self._run("add", "--", path), f"git add `{path}`", path=path)
        self._check(self._run("commit", "-q", "-m", message), f"git commit `{path}`", path=path)
        logger.info("Committed %s: %s", path, message)
