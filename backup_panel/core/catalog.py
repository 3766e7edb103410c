"""Archive catalog - disk health and file listings from storage backends."""

from __future__ import annotations

import concurrent.futures
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Sequence

from ..backends.base import SizedArchive, StorageBackend
from ..data.formatting import format_age, human_readable_size
from ..data.models import ArchiveEntry, DiskStatus, FileListing, MonitoredDisk
from .errors import DiskUnavailable

DEFAULT_PROBE_TIMEOUT = 10  # seconds
MAX_PROBE_WORKERS = 8


def _log(msg: str) -> None:
    print(msg, flush=True)


class ArchiveCatalog:
    """Read-only view over the configured backup disks.

    Args:
        backends: Backend per disk name
        probe_timeout: Seconds to wait for all disks during a status refresh
        now: UTC clock (injectable for tests)
    """

    def __init__(
        self,
        backends: Dict[str, StorageBackend],
        probe_timeout: float = DEFAULT_PROBE_TIMEOUT,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self._backends = dict(backends)
        self.probe_timeout = probe_timeout
        self._now = now

    @property
    def disk_names(self) -> List[str]:
        return list(self._backends)

    def backend(self, disk: str) -> StorageBackend:
        """Return the backend for ``disk``.

        Raises:
            DiskUnavailable: If the disk is not configured.
        """
        backend = self._backends.get(disk)
        if backend is None:
            raise DiskUnavailable(disk, "Disk is not configured")
        return backend

    def fetch_all_disk_statuses(self, monitored: Sequence[MonitoredDisk]) -> List[DiskStatus]:
        """Probe every monitored disk in parallel.

        Returns exactly one DiskStatus per entry, in input order. A disk that
        fails or does not answer within ``probe_timeout`` is reported as
        unreachable and unhealthy.
        """
        if not monitored:
            return []

        executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=min(MAX_PROBE_WORKERS, len(monitored)),
            thread_name_prefix="disk-probe",
        )
        try:
            futures = [executor.submit(self._disk_status, item) for item in monitored]
            concurrent.futures.wait(futures, timeout=self.probe_timeout)

            statuses = []
            for item, future in zip(monitored, futures):
                if not future.done():
                    future.cancel()
                    _log(f"[catalog] Disk {item.disk} timed out after {self.probe_timeout}s")
                    statuses.append(DiskStatus.unreachable(item))
                    continue
                try:
                    statuses.append(future.result())
                except Exception as e:
                    _log(f"[catalog] Disk {item.disk} status failed: {e}")
                    statuses.append(DiskStatus.unreachable(item))
            return statuses
        finally:
            # Do not block on a hung probe; its thread finishes in the background
            executor.shutdown(wait=False)

    def _disk_status(self, item: MonitoredDisk) -> DiskStatus:
        backend = self.backend(item.disk).for_backup(item.name)
        if not backend.probe():
            _log(f"[catalog] Disk {item.disk} unreachable")
            return DiskStatus.unreachable(item)

        archives = backend.list_archives()
        used_bytes = backend.used_storage_bytes()
        newest = self._newest(archives)
        now = self._now()

        return DiskStatus(
            name=item.name,
            disk=item.disk,
            reachable=True,
            healthy=self._is_healthy(item, newest, used_bytes, now),
            archive_count=len(archives),
            newest_archive_age=format_age(newest.date, now) if newest else None,
            used_storage=human_readable_size(used_bytes),
            used_storage_bytes=used_bytes,
        )

    def _newest(self, archives: Sequence[SizedArchive]) -> Optional[SizedArchive]:
        if not archives:
            return None
        return max(archives, key=lambda a: a.date)

    def _is_healthy(
        self,
        item: MonitoredDisk,
        newest: Optional[SizedArchive],
        used_bytes: int,
        now: datetime,
    ) -> bool:
        """Healthy means a recent-enough newest archive and storage under the limit."""
        if newest is None:
            return False
        if now - newest.date > timedelta(days=item.max_age_in_days):
            return False
        return used_bytes <= item.max_storage_in_megabytes * 1024 * 1024

    def fetch_file_listing(self, disk: str) -> FileListing:
        """List the archives on ``disk`` in backend order.

        Raises:
            DiskUnavailable: If the disk is unknown or unreachable.
            StorageError: If listing fails.
        """
        backend = self.backend(disk)
        if not backend.probe():
            raise DiskUnavailable(disk, "Disk is not reachable")
        return tuple(self._to_entry(archive) for archive in backend.list_archives())

    def _to_entry(self, archive: SizedArchive) -> ArchiveEntry:
        size = archive.size_bytes()
        return ArchiveEntry(
            path=archive.path,
            created_at=archive.date,
            size_bytes=size,
            size_human=human_readable_size(size),
        )

    def close(self) -> None:
        for backend in self._backends.values():
            backend.close()
