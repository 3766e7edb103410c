"""Local filesystem disk.

Archives live under ``<root>/<backup name>/`` as .zip files.
"""

from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, List

from .base import ARCHIVE_EXTENSION, RawArchive, StorageBackend
from ..core.errors import ArchiveNotFound, StorageError


class LocalDiskBackend(StorageBackend):
    """Backup disk backed by a local (or locally mounted) directory."""

    def __init__(self, disk_name: str, backup_name: str, root: str):
        super().__init__(disk_name, backup_name)
        self.root = Path(root).expanduser()

    @property
    def driver(self) -> str:
        return "local"

    @property
    def backup_dir(self) -> Path:
        return self.root / self.backup_name

    def probe(self) -> bool:
        """Reachable when the disk root exists and can be listed."""
        try:
            if not self.root.is_dir():
                return False
            os.listdir(self.root)
            return True
        except OSError:
            return False

    def list_archives(self) -> List[RawArchive]:
        """List archives newest first."""
        if not self.probe():
            raise StorageError(self.disk_name, f"Disk root {self.root} is not reachable")
        if not self.backup_dir.is_dir():
            return []

        archives = []
        try:
            for entry in os.scandir(self.backup_dir):
                if not entry.is_file() or not entry.name.lower().endswith(ARCHIVE_EXTENSION):
                    continue
                stat = entry.stat()
                archives.append(RawArchive(
                    path=f"{self.backup_name}/{entry.name}",
                    date=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                    size=stat.st_size,
                ))
        except OSError as e:
            raise StorageError(self.disk_name, f"Unable to list {self.backup_dir}: {e}", e)

        return sorted(archives, key=lambda a: a.date, reverse=True)

    def open_read_stream(self, path: str) -> BinaryIO:
        target = self._resolve(path)
        try:
            return open(target, "rb")
        except FileNotFoundError:
            raise ArchiveNotFound(self.disk_name, path)
        except OSError as e:
            raise StorageError(self.disk_name, f"Unable to read {path}: {e}", e)

    def delete(self, path: str) -> None:
        target = self._resolve(path)
        try:
            target.unlink()
        except FileNotFoundError:
            raise ArchiveNotFound(self.disk_name, path)
        except OSError as e:
            raise StorageError(self.disk_name, f"Unable to delete {path}: {e}", e)

    def _resolve(self, path: str) -> Path:
        """Map a disk-relative path to the filesystem, refusing escapes from the root."""
        root = self.root.resolve()
        candidate = (root / path.lstrip("/")).resolve()
        try:
            candidate.relative_to(root)
        except ValueError:
            raise StorageError(self.disk_name, f"Path {path!r} is outside the disk")
        return candidate
