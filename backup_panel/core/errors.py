"""Error taxonomy for inventory operations.

Every error carries a user-facing ``message`` that the presentation layer
shows as a notification. The exception itself aborts the operation.
"""

from __future__ import annotations

from typing import Optional

DISK_REQUIRED_MESSAGE = "Select a disk"
DISK_UNKNOWN_MESSAGE = "The active disk must be a valid backup disk."
FILE_REQUIRED_MESSAGE = "Select a file"
FILE_FORMAT_MESSAGE = "The file must be a path to a zip file."
ARCHIVE_NOT_FOUND_MESSAGE = "Backup not found"


class BackupPanelError(Exception):
    """Base class for recoverable, single-operation failures."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        self.message = message
        self.cause = cause
        super().__init__(message)


class InvalidDisk(BackupPanelError):
    """No active disk selected, or the selected disk is not a known disk."""

    def __init__(self, reason: str, disk: Optional[str] = None):
        self.reason = reason  # 'required' or 'unknown'
        self.disk = disk
        message = DISK_REQUIRED_MESSAGE if reason == "required" else DISK_UNKNOWN_MESSAGE
        super().__init__(message)


class InvalidFilePath(BackupPanelError):
    """Empty path, or a path that does not point at an archive."""

    def __init__(self, reason: str, path: Optional[str] = None):
        self.reason = reason  # 'required' or 'format'
        self.path = path
        message = FILE_REQUIRED_MESSAGE if reason == "required" else FILE_FORMAT_MESSAGE
        super().__init__(message)


class ArchiveNotFound(BackupPanelError):
    """The live backend listing has no archive at the requested path."""

    def __init__(self, disk: str, path: str):
        self.disk = disk
        self.path = path
        super().__init__(ARCHIVE_NOT_FOUND_MESSAGE)


class IndexOutOfRange(BackupPanelError):
    """Selection index outside the current listing."""

    def __init__(self, index: int, size: int):
        self.index = index
        self.size = size
        super().__init__(f"No backup at position {index} (listing has {size} entries).")


class StorageError(BackupPanelError):
    """Backend I/O failure during list, read or delete."""

    def __init__(self, disk: str, message: str, cause: Optional[Exception] = None):
        self.disk = disk
        super().__init__(f"[{disk}] {message}", cause)


class DiskUnavailable(StorageError):
    """The disk could not be reached or is not configured."""
