# Copyright 2025 Canonical Ltd.
# See LICENSE file for licensing details.

"""Snapshot directory layout and file persistence."""

import json
import logging
import os
import shutil
import tempfile
from typing import List

from constants import DEPENDENTS_DIR, FILTERS_FILE, OBJECT_FILE_SUFFIX, OWNERS_DIR

from .errors import LayoutError, WriteError
from .models import Filter, ObjectPlacement, ResourceType

logger = logging.getLogger(__name__)


def _current_umask() -> int:
    umask = os.umask(0o022)
    os.umask(umask)
    return umask


class SnapshotWriter:
    """Owns the directory tree of one snapshot.

    The tree is built in a hidden staging directory next to the destination and
    moved into place by `publish`, so the destination only ever holds complete
    snapshots. Directory and file modes follow the process umask.
    """

    def __init__(self, destination: str, staging: str, umask: int = 0o022) -> None:
        self._destination = destination
        self._staging = staging
        self._umask = umask

    @classmethod
    def create(cls, destination: str) -> "SnapshotWriter":
        """Create the staging directory and the partition layout for a destination.

        Raises:
            LayoutError: If the directories cannot be created.
        """
        destination = os.path.abspath(destination)
        parent, base = os.path.split(destination)
        try:
            staging = tempfile.mkdtemp(prefix=f".{base}.", suffix=".staging", dir=parent)
        except OSError as e:
            logger.error("Failed to create staging directory in '%s': %s", parent, e)
            raise LayoutError(f"Failed to create staging directory for '{destination}'") from e

        umask = _current_umask()
        writer = cls(destination, staging, umask)
        try:
            os.chmod(staging, 0o777 & ~umask)
            writer.ensure_dir(os.path.join(staging, OWNERS_DIR))
            writer.ensure_dir(os.path.join(staging, DEPENDENTS_DIR))
        except OSError as e:
            writer.discard()
            raise LayoutError(f"Failed to set up staging directory '{staging}'") from e
        except LayoutError:
            writer.discard()
            raise
        return writer

    # PROPERTIES

    @property
    def destination(self) -> str:
        """Return the path the snapshot is published to."""
        return self._destination

    @property
    def staging(self) -> str:
        """Return the path the snapshot is built in."""
        return self._staging

    # METHODS

    @staticmethod
    def ensure_dir(path: str) -> None:
        """Create a directory if absent, leaving an existing one untouched.

        Raises:
            LayoutError: If the directory cannot be created.
        """
        try:
            os.makedirs(path, exist_ok=True)
        except OSError as e:
            logger.error("Failed to create directory '%s': %s", path, e)
            raise LayoutError(f"Failed to create directory '{path}'") from e

    def placement_paths(
        self, placement: ObjectPlacement, resource_type: ResourceType
    ) -> List[str]:
        """Return the directories an object of the type is written to."""
        paths = []
        if placement.privileged:
            paths.append(os.path.join(self._staging, resource_type.name))
        paths.append(
            os.path.join(self._staging, placement.partition.value, resource_type.directory_name)
        )
        return paths

    def write(self, data: bytes, directory: str, name: str) -> str:
        """Write one object file atomically.

        The content goes to a temporary file in the target directory which then
        replaces '<name>.json'.

        Returns:
            str: The path of the written file.

        Raises:
            LayoutError: If the target directory cannot be created.
            WriteError: If the file cannot be written.
        """
        self.ensure_dir(directory)
        path = os.path.join(directory, os.path.basename(name + OBJECT_FILE_SUFFIX))
        if os.path.exists(path):
            logger.warning("Overwriting '%s' with another object of the same name", path)
        self._write_file(data, path)
        return path

    def write_filters(self, filters: List[Filter]) -> str:
        """Write the realized filters to the snapshot root.

        Raises:
            WriteError: If the file cannot be written.
        """
        path = os.path.join(self._staging, FILTERS_FILE)
        self._write_file(json.dumps([f.to_dict() for f in filters]).encode("utf-8"), path)
        return path

    def _write_file(self, data: bytes, path: str) -> None:
        directory = os.path.dirname(path)
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(prefix=".", suffix=".tmp", dir=directory)
            with os.fdopen(fd, "wb") as f:
                os.fchmod(f.fileno(), 0o666 & ~self._umask)
                f.write(data)
            os.replace(tmp_path, path)
        except OSError as e:
            logger.error("Failed to write '%s': %s", path, e)
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise WriteError(f"Failed to write '{path}'") from e

    def publish(self) -> None:
        """Move the staging directory to the destination.

        Raises:
            LayoutError: If the destination exists or the move fails.
        """
        if os.path.exists(self._destination):
            logger.error("Snapshot '%s' appeared while backing up", self._destination)
            raise LayoutError(f"Snapshot '{self._destination}' already exists")
        try:
            os.rename(self._staging, self._destination)
        except OSError as e:
            logger.error("Failed to publish snapshot '%s': %s", self._destination, e)
            raise LayoutError(f"Failed to publish snapshot '{self._destination}'") from e
        logger.info("Published snapshot '%s'", self._destination)

    def discard(self) -> None:
        """Remove the staging directory and everything written to it."""
        logger.info("Discarding staging directory '%s'", self._staging)
        shutil.rmtree(self._staging, ignore_errors=True)
