"""Data models for the backup inventory.

Semantic principles:

1. SNAPSHOTS ARE IMMUTABLE
   - DiskStatus and ArchiveEntry are frozen; a refresh replaces them wholesale
   - Listings are tuples so a cached listing cannot be mutated by a reader

2. EXPLICIT UNITS
   - Sizes: bytes (integers) plus a display string
   - Times: timezone-aware UTC datetimes plus a display string
   - Cache expiry: monotonic clock seconds

3. IDENTITY
   - A disk is identified by its configured name (DiskID)
   - An archive is identified by its path within a disk
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Generic, Optional, Tuple, TypeVar

from .formatting import NO_BACKUPS_TEXT, format_timestamp

T = TypeVar("T")

DEFAULT_MAX_AGE_IN_DAYS = 1
DEFAULT_MAX_STORAGE_IN_MEGABYTES = 5000


@dataclass(frozen=True)
class MonitoredDisk:
    """A (backup name, disk) pair whose health is reported.

    Health thresholds:
    - max_age_in_days: newest archive must be younger than this
    - max_storage_in_megabytes: total archive size must not exceed this
    """

    name: str  # Backup name, also the directory holding archives
    disk: str  # DiskID
    max_age_in_days: float = DEFAULT_MAX_AGE_IN_DAYS
    max_storage_in_megabytes: float = DEFAULT_MAX_STORAGE_IN_MEGABYTES


@dataclass(frozen=True)
class DiskStatus:
    """Health snapshot of one monitored disk."""

    name: str
    disk: str
    reachable: bool
    healthy: bool
    archive_count: int = 0
    newest_archive_age: Optional[str] = None  # e.g. "3 hours ago"
    used_storage: str = "0 KB"
    used_storage_bytes: int = 0  # Unit: bytes

    @classmethod
    def unreachable(cls, monitored: MonitoredDisk) -> "DiskStatus":
        return cls(name=monitored.name, disk=monitored.disk, reachable=False, healthy=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "disk": self.disk,
            "reachable": self.reachable,
            "healthy": self.healthy,
            "amount": self.archive_count,
            "newest": self.newest_archive_age or NO_BACKUPS_TEXT,
            "used_storage": self.used_storage,
        }


@dataclass(frozen=True)
class ArchiveEntry:
    """A single archive as shown in a disk's file listing."""

    path: str
    created_at: datetime
    size_bytes: int  # Unit: bytes
    size_human: str  # e.g. "1.5 MB"

    @property
    def date(self) -> str:
        """Creation time as YYYY-MM-DD HH:MM:SS."""
        return format_timestamp(self.created_at)

    @property
    def identity(self) -> Tuple[str, str, int]:
        """(path, date, size) triple used to reconcile listings after a delete."""
        return self.path, self.date, self.size_bytes

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "date": self.date,
            "size": self.size_human,
            "size_bytes": self.size_bytes,
        }


FileListing = Tuple[ArchiveEntry, ...]


@dataclass
class ActiveSelection:
    """Operator-facing selection state owned by InventoryManager."""

    active_disk: Optional[str] = None
    pending_delete: Optional[ArchiveEntry] = None

    def switch_disk(self, disk: str) -> None:
        """Make ``disk`` active; any pending deletion belongs to the old disk."""
        self.active_disk = disk
        self.pending_delete = None

    def take_pending_delete(self) -> Optional[ArchiveEntry]:
        """Return and clear the pending deletion."""
        entry, self.pending_delete = self.pending_delete, None
        return entry


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A cached value and the monotonic time after which it is absent."""

    value: T
    expires_at: float  # Unit: seconds on the cache clock

    def is_fresh(self, now: float) -> bool:
        return now < self.expires_at


@dataclass
class InventorySnapshot:
    """Serializable view of the manager state for the presentation layer."""

    statuses: Tuple[DiskStatus, ...] = ()
    disks: Tuple[str, ...] = ()
    active_disk: Optional[str] = None
    files: Tuple[ArchiveEntry, ...] = ()
    pending_delete: Optional[ArchiveEntry] = None
    error: Optional[str] = None  # Last listing failure shown to the operator

    def to_dict(self) -> Dict[str, Any]:
        return {
            "statuses": [status.to_dict() for status in self.statuses],
            "disks": list(self.disks),
            "active_disk": self.active_disk,
            "files": [entry.to_dict() for entry in self.files],
            "pending_delete": self.pending_delete.to_dict() if self.pending_delete else None,
            "error": self.error,
        }
