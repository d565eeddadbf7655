"""Artifact files (`<name>-<vers>.crate`) and their sha256 checksums.

Artifact directories are given as templates that may contain `{crate}` and
`{version}` markers, e.g. `/srv/crates/{crate}/{version}`.
"""

import hashlib
import logging
import shutil
from pathlib import Path
from typing import BinaryIO, Union

from reg_index.errors import MissingArtifact

logger = logging.getLogger(__name__)

ARTIFACT_SUFFIX = ".crate"
_CHUNK_SIZE = 1 << 16


def render_template(template: str, name: str, vers: str) -> str:
    return template.replace("{crate}", name).replace("{version}", vers)


def artifact_file_name(name: str, vers: str) -> str:
    return f"{name}-{vers}{ARTIFACT_SUFFIX}"


def stream_checksum(stream: BinaryIO) -> str:
    hasher = hashlib.sha256()
    for chunk in iter(lambda: stream.read(_CHUNK_SIZE), b""):
        hasher.update(chunk)
    return hasher.hexdigest()


def file_checksum(path: Union[str, Path]) -> str:
    """Lowercase hex sha256 of a file's content."""
    path = Path(path)
    try:
        with open(path, "rb") as f:
            return stream_checksum(f)
    except FileNotFoundError as e:
        raise MissingArtifact(f"Could not find artifact file: {path}") from e


class ArtifactStore:
    """Locates artifacts under a directory template."""

    def __init__(self, template: str):
        self.template = template

    def directory_for(self, name: str, vers: str) -> Path:
        return Path(render_template(self.template, name, vers))

    def path_for(self, name: str, vers: str) -> Path:
        return self.directory_for(name, vers) / artifact_file_name(name, vers)

    def exists(self, name: str, vers: str) -> bool:
        return self.path_for(name, vers).is_file()

    def open(self, name: str, vers: str) -> BinaryIO:
        path = self.path_for(name, vers)
        try:
            return open(path, "rb")
        except FileNotFoundError as e:
            raise MissingArtifact(f"Could not find artifact file: {path}") from e

    def checksum(self, name: str, vers: str) -> str:
        with self.open(name, vers) as f:
            return stream_checksum(f)

    def upload(self, source: Union[str, Path], name: str, vers: str) -> Path:
        """Copy an artifact into its directory, keeping the source file name."""
        source = Path(source)
        if not source.is_file():
            raise MissingArtifact(f"Could not find artifact file: {source}")
        target_dir = self.directory_for(name, vers)
        target_dir.mkdir(parents=True, exist_ok=True)
        target = target_dir / source.name
        shutil.copyfile(source, target)
        logger.info("Uploaded %s to %s", source, target)
        return target
