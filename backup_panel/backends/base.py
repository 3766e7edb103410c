"""Base storage backend interface for backup disks."""

from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import BinaryIO, List

ARCHIVE_EXTENSION = ".zip"


class SizedArchive(ABC):
    """An archive representation that can report its size in bytes."""

    path: str
    date: datetime

    @abstractmethod
    def size_bytes(self) -> int:
        """Size of the stored object in bytes."""
        pass


@dataclass(frozen=True)
class RawArchive(SizedArchive):
    """Archive descriptor as returned by a backend listing."""

    path: str  # Relative to the disk root, e.g. 'my-app/2026-01-22-12-00-00.zip'
    date: datetime  # Timezone-aware UTC
    size: int  # Unit: bytes

    def size_bytes(self) -> int:
        return self.size


class StorageBackend(ABC):
    """Abstract base class for backup disks.

    All backends must implement this interface so the catalog can list,
    stream and delete archives without knowing where they live (local
    directory, HTTP file server, etc.).
    """

    def __init__(self, disk_name: str, backup_name: str):
        self.disk_name = disk_name
        self.backup_name = backup_name

    @property
    @abstractmethod
    def driver(self) -> str:
        """Short identifier of the backend type (e.g., 'local', 'http')."""
        pass

    @abstractmethod
    def probe(self) -> bool:
        """Check whether the disk can be reached.

        Returns:
            True if the disk answered, False otherwise. Never raises.
        """
        pass

    @abstractmethod
    def list_archives(self) -> List[SizedArchive]:
        """List the archives stored under the backup name.

        Raises:
            StorageError: If the disk cannot be listed.
        """
        pass

    @abstractmethod
    def open_read_stream(self, path: str) -> BinaryIO:
        """Open a binary stream over the archive at ``path``.

        The caller owns the stream and must close it.

        Raises:
            StorageError: If the archive cannot be opened.
        """
        pass

    @abstractmethod
    def delete(self, path: str) -> None:
        """Remove the archive at ``path``.

        Raises:
            StorageError: If the backend rejects the deletion.
        """
        pass

    def for_backup(self, backup_name: str) -> "StorageBackend":
        """Return a view of this disk scoped to another backup name."""
        if backup_name == self.backup_name:
            return self
        scoped = copy.copy(self)
        scoped.backup_name = backup_name
        return scoped

    def used_storage_bytes(self) -> int:
        """Total size of all archives in bytes."""
        return sum(archive.size_bytes() for archive in self.list_archives())

    def close(self) -> None:
        """Release any held resources (sessions, pools)."""
