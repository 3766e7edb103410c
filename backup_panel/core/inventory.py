"""Inventory manager - operator actions over disks and their archives.

Owns the active-disk and pending-delete selection, serves statuses and
listings through the result cache, and validates every selection against
the last fetched inventory before touching a backend.
"""

from __future__ import annotations

import threading
from typing import Callable, List, Optional, Sequence, Tuple

from ..data.cache import DEFAULT_TTL_SECONDS, STATUSES_CACHE_KEY, ResultCache, files_cache_key
from ..data.models import (
    ActiveSelection,
    ArchiveEntry,
    DiskStatus,
    FileListing,
    InventorySnapshot,
    MonitoredDisk,
)
from .catalog import ArchiveCatalog
from .errors import ArchiveNotFound, BackupPanelError, IndexOutOfRange
from .transfer import ArchiveTransferService, DownloadResponse
from .trigger import CREATE_MESSAGE_TEMPLATE, BackupJobTrigger
from .validation import validate_disk, validate_file_path

StatusListener = Callable[[Tuple[DiskStatus, ...]], None]


def _log(msg: str) -> None:
    print(msg, flush=True)


class InventoryManager:
    """Serves the operator-facing backup operations.

    Args:
        catalog: Source of disk statuses and file listings
        cache: Shared result cache
        transfer: Download/delete executor
        trigger: Job runner for new backups
        monitored: Disks whose status is reported, in display order
        queue_name: Queue that receives backup jobs
        ttl_seconds: Cache lifetime for statuses and listings
    """

    def __init__(
        self,
        catalog: ArchiveCatalog,
        cache: ResultCache,
        transfer: ArchiveTransferService,
        trigger: BackupJobTrigger,
        monitored: Sequence[MonitoredDisk],
        queue_name: str = "default",
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
    ):
        self.catalog = catalog
        self.cache = cache
        self.transfer = transfer
        self.trigger = trigger
        self.monitored = tuple(monitored)
        self.queue_name = queue_name
        self.ttl_seconds = ttl_seconds

        self.selection = ActiveSelection()
        self.statuses: Tuple[DiskStatus, ...] = ()
        self.disks: Tuple[str, ...] = ()
        self.files: List[ArchiveEntry] = []
        self.last_error: Optional[str] = None

        self._lock = threading.RLock()
        self._listing_version = 0  # Bumped by each successful delete
        self._listeners: List[StatusListener] = [self._refresh_active_listing]

    @property
    def active_disk(self) -> Optional[str]:
        return self.selection.active_disk

    @property
    def pending_delete(self) -> Optional[ArchiveEntry]:
        return self.selection.pending_delete

    def add_listener(self, listener: StatusListener) -> None:
        """Register a callback invoked with the statuses after each refresh."""
        self._listeners.append(listener)

    # --- Operations ---
    #
    # self._lock guards selection, statuses, disks, files and last_error only;
    # cache lookups and backend I/O run outside it.

    def refresh_statuses(self) -> Tuple[DiskStatus, ...]:
        """Refresh disk statuses and the listing of the active disk."""
        statuses = self.cache.get_or_compute(
            STATUSES_CACHE_KEY,
            self.ttl_seconds,
            lambda: tuple(self.catalog.fetch_all_disk_statuses(self.monitored)),
        )
        with self._lock:
            self.statuses = statuses
            if not self.selection.active_disk and statuses:
                self.selection.active_disk = statuses[0].disk
            self.disks = tuple(status.disk for status in statuses)
            listeners = list(self._listeners)

        for listener in listeners:
            listener(statuses)
        return statuses

    def _refresh_active_listing(self, statuses: Tuple[DiskStatus, ...]) -> None:
        """Follow a status refresh with the active disk's listing.

        A failing listing is recorded for display; the statuses stay valid.
        """
        if not self.selection.active_disk:
            return
        try:
            self.refresh_files()
        except BackupPanelError as e:
            _log(f"[inventory] Listing refresh for {self.selection.active_disk} failed: {e.message}")
            with self._lock:
                self.files = []
                self.last_error = e.message

    def refresh_files(self, disk: Optional[str] = None) -> FileListing:
        """List the archives on the active disk, switching to ``disk`` if given.

        Raises:
            InvalidDisk: If no disk is selected or it is not a known disk.
            StorageError: If the disk cannot be listed.
        """
        with self._lock:
            if disk:
                self.selection.switch_disk(disk)
            active = validate_disk(self.selection.active_disk, self.disks)
            version = self._listing_version

        files = self.cache.get_or_compute(
            files_cache_key(active),
            self.ttl_seconds,
            lambda: self.catalog.fetch_file_listing(active),
        )

        with self._lock:
            # Drop the result if the disk changed or a delete landed meanwhile
            if self.selection.active_disk == active and self._listing_version == version:
                self.files = list(files)
                self.last_error = None
                return tuple(self.files)
            return tuple(files)

    def select_for_deletion(self, index: int) -> ArchiveEntry:
        """Mark ``files[index]`` for deletion.

        Raises:
            IndexOutOfRange: If ``index`` is outside the current listing.
        """
        with self._lock:
            if not 0 <= index < len(self.files):
                raise IndexOutOfRange(index, len(self.files))
            self.selection.pending_delete = self.files[index]
            return self.selection.pending_delete

    def confirm_delete(self) -> ArchiveEntry:
        """Delete the pending archive from the active disk.

        The pending selection is cleared before anything else so a failed
        attempt never leaves it set.

        Raises:
            InvalidDisk, InvalidFilePath: On invalid selections.
            ArchiveNotFound: If the archive is no longer on the backend.
            StorageError: If the backend rejects the deletion.
        """
        with self._lock:
            pending = self.selection.take_pending_delete()
            disk = validate_disk(self.selection.active_disk, self.disks)
            path = validate_file_path(pending.path if pending else "")

        if self.transfer.find_archive(disk, path) is None:
            raise ArchiveNotFound(disk, path)

        self.transfer.delete(disk, pending)

        with self._lock:
            self._listing_version += 1
            self.files = [entry for entry in self.files if entry.identity != pending.identity]
        self.cache.invalidate(files_cache_key(disk))
        self.cache.invalidate(STATUSES_CACHE_KEY)
        return pending

    def download(self, path: str) -> DownloadResponse:
        """Stream the archive at ``path`` from the active disk.

        Raises:
            InvalidDisk, InvalidFilePath: On invalid selections.
        """
        with self._lock:
            disk = validate_disk(self.selection.active_disk, self.disks)
            validate_file_path(path)
        return self.transfer.download(disk, path)

    def trigger_create(self, option: str = "") -> str:
        """Queue a new backup and return the notification text."""
        self.trigger.enqueue(option, self.queue_name)
        _log(f"[inventory] Queued backup (option={option!r}) on {self.queue_name}")
        return CREATE_MESSAGE_TEMPLATE.format(option=option)

    def snapshot(self) -> InventorySnapshot:
        with self._lock:
            return InventorySnapshot(
                statuses=self.statuses,
                disks=self.disks,
                active_disk=self.selection.active_disk,
                files=tuple(self.files),
                pending_delete=self.selection.pending_delete,
                error=self.last_error,
            )
