"""Storage backends - local directories and HTTP file servers."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .base import ARCHIVE_EXTENSION, RawArchive, SizedArchive, StorageBackend
from .http import HttpDirectoryBackend
from .local import LocalDiskBackend

if TYPE_CHECKING:
    from ..server.config import DiskConfig

__all__ = [
    "ARCHIVE_EXTENSION",
    "RawArchive",
    "SizedArchive",
    "StorageBackend",
    "HttpDirectoryBackend",
    "LocalDiskBackend",
    "build_backend",
]


def build_backend(disk_name: str, disk_config: "DiskConfig", backup_name: str) -> StorageBackend:
    """Create the backend for a configured disk.

    Raises:
        ValueError: If the driver is unknown or a required setting is missing.
    """
    driver = (disk_config.driver or "local").lower()
    if driver == "local":
        if not disk_config.root:
            raise ValueError(f"Disk {disk_name!r}: 'root' is required for the local driver")
        return LocalDiskBackend(disk_name, backup_name, root=disk_config.root)
    if driver == "http":
        if not disk_config.url:
            raise ValueError(f"Disk {disk_name!r}: 'url' is required for the http driver")
        auth = None
        if disk_config.username:
            auth = (disk_config.username, disk_config.password or "")
        return HttpDirectoryBackend(
            disk_name,
            backup_name,
            url=disk_config.url,
            timeout=disk_config.timeout,
            verify=disk_config.verify,
            auth=auth,
        )
    raise ValueError(f"Disk {disk_name!r}: unknown driver {disk_config.driver!r}")
