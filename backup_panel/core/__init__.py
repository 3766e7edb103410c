"""Core inventory - catalog, validation, transfer and the inventory manager."""

from .catalog import ArchiveCatalog
from .errors import (
    ArchiveNotFound,
    BackupPanelError,
    DiskUnavailable,
    IndexOutOfRange,
    InvalidDisk,
    InvalidFilePath,
    StorageError,
)
from .inventory import InventoryManager
from .transfer import ArchiveTransferService, DownloadResponse
from .trigger import BackupJobTrigger

__all__ = [
    "ArchiveCatalog",
    "ArchiveNotFound",
    "BackupPanelError",
    "DiskUnavailable",
    "IndexOutOfRange",
    "InvalidDisk",
    "InvalidFilePath",
    "StorageError",
    "InventoryManager",
    "ArchiveTransferService",
    "DownloadResponse",
    "BackupJobTrigger",
]
