"""Pytest configuration and shared fixtures."""

import io
import os
import threading
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

import pytest

from backup_panel.backends.base import RawArchive, StorageBackend
from backup_panel.core.catalog import ArchiveCatalog
from backup_panel.core.errors import ArchiveNotFound, StorageError
from backup_panel.core.inventory import InventoryManager
from backup_panel.core.transfer import ArchiveTransferService
from backup_panel.core.trigger import BackupJobTrigger
from backup_panel.data.cache import ResultCache
from backup_panel.data.models import MonitoredDisk

NOW = datetime(2026, 1, 22, 12, 0, 0, tzinfo=timezone.utc)


class MemoryBackend(StorageBackend):
    """In-memory disk for tests.

    Objects are kept in listing order; counters record backend traffic.
    """

    def __init__(self, disk_name: str, backup_name: str = "my-app", reachable: bool = True):
        super().__init__(disk_name, backup_name)
        self.reachable = reachable
        self.objects: Dict[str, Tuple[bytes, datetime]] = {}
        self.list_calls = 0
        self.delete_error: Optional[Exception] = None
        self.probe_gate: Optional[threading.Event] = None
        self.opened: List["TrackingStream"] = []

    @property
    def driver(self) -> str:
        return "memory"

    def add(self, name: str, data: bytes, date: datetime) -> str:
        path = f"{self.backup_name}/{name}"
        self.objects[path] = (data, date)
        return path

    def probe(self) -> bool:
        if self.probe_gate is not None:
            self.probe_gate.wait()
        return self.reachable

    def list_archives(self) -> List[RawArchive]:
        self.list_calls += 1
        if not self.reachable:
            raise StorageError(self.disk_name, "unreachable")
        prefix = f"{self.backup_name}/"
        return [
            RawArchive(path=path, date=date, size=len(data))
            for path, (data, date) in self.objects.items()
            if path.startswith(prefix)
        ]

    def open_read_stream(self, path: str):
        if path not in self.objects:
            raise ArchiveNotFound(self.disk_name, path)
        stream = TrackingStream(self.objects[path][0])
        self.opened.append(stream)
        return stream

    def delete(self, path: str) -> None:
        if self.delete_error is not None:
            raise self.delete_error
        if path not in self.objects:
            raise ArchiveNotFound(self.disk_name, path)
        del self.objects[path]


class TrackingStream(io.BytesIO):
    """BytesIO that remembers whether it was closed."""

    was_closed = False

    def close(self):
        self.was_closed = True
        super().close()


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingTrigger(BackupJobTrigger):
    """Trigger that records requests."""

    def __init__(self):
        self.requests: List[Tuple[str, str]] = []

    def enqueue(self, option: str, queue_name: str) -> None:
        self.requests.append((option, queue_name))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def primary_disk():
    """Disk 'local' holding three archives, newest first."""
    backend = MemoryBackend("local")
    backend.add("2026-01-22-10-00-00.zip", b"newest archive bytes", NOW - timedelta(hours=2))
    backend.add("2026-01-21-10-00-00.zip", b"x" * 2048, NOW - timedelta(days=1, hours=2))
    backend.add("2026-01-20-10-00-00.zip", b"oldest", NOW - timedelta(days=2, hours=2))
    return backend


@pytest.fixture
def secondary_disk():
    """Disk 'offsite' with a single archive."""
    backend = MemoryBackend("offsite")
    backend.add("2026-01-22-11-00-00.zip", b"offsite copy", NOW - timedelta(hours=1))
    return backend


@pytest.fixture
def catalog(primary_disk, secondary_disk):
    return ArchiveCatalog(
        {"local": primary_disk, "offsite": secondary_disk},
        probe_timeout=2,
        now=lambda: NOW,
    )


@pytest.fixture
def trigger():
    return RecordingTrigger()


@pytest.fixture
def manager(catalog, clock, trigger):
    return InventoryManager(
        catalog=catalog,
        cache=ResultCache(clock=clock),
        transfer=ArchiveTransferService(catalog),
        trigger=trigger,
        monitored=[MonitoredDisk("my-app", "local"), MonitoredDisk("my-app", "offsite")],
        queue_name="backups",
    )


@pytest.fixture
def local_disk_root(tmp_path):
    """A local disk root with three archives and one non-archive file."""
    backup_dir = tmp_path / "my-app"
    backup_dir.mkdir()
    base = NOW.timestamp()
    for offset_hours, name, size in [
        (2, "2026-01-22-10-00-00.zip", 1500),
        (26, "2026-01-21-10-00-00.zip", 3 * 1024 * 1024),
        (50, "2026-01-20-10-00-00.zip", 10),
    ]:
        archive = backup_dir / name
        archive.write_bytes(b"z" * size)
        mtime = base - offset_hours * 3600
        os.utime(archive, (mtime, mtime))
    (backup_dir / "notes.txt").write_text("not a backup")
    return tmp_path


@pytest.fixture
def now():
    """Fixed 'current time' shared by the catalog fixtures."""
    return NOW


@pytest.fixture
def make_disk():
    """Factory for extra in-memory disks."""
    def _make(disk_name: str, backup_name: str = "my-app", reachable: bool = True) -> MemoryBackend:
        return MemoryBackend(disk_name, backup_name=backup_name, reachable=reachable)
    return _make
