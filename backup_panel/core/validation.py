"""Validation of operator-supplied disk and file selections."""

from __future__ import annotations

from typing import Iterable, Optional

from ..backends.base import ARCHIVE_EXTENSION
from .errors import InvalidDisk, InvalidFilePath


def validate_disk(disk: Optional[str], known_disks: Iterable[str]) -> str:
    """Return ``disk`` if it is set and one of ``known_disks``.

    Raises:
        InvalidDisk: reason 'required' when empty, 'unknown' otherwise.
    """
    if not disk:
        raise InvalidDisk("required")
    if disk not in set(known_disks):
        raise InvalidDisk("unknown", disk)
    return disk


def validate_file_path(path: Optional[str]) -> str:
    """Return ``path`` if it is non-empty and names a zip archive.

    Raises:
        InvalidFilePath: reason 'required' when empty, 'format' otherwise.
    """
    if not path or not path.strip():
        raise InvalidFilePath("required")
    if not path.lower().endswith(ARCHIVE_EXTENSION):
        raise InvalidFilePath("format", path)
    return path
