"""Data layer - models, result caching and display formatting."""

from .cache import ResultCache, STATUSES_CACHE_KEY, files_cache_key
from .formatting import format_age, format_timestamp, human_readable_size
from .models import (
    ActiveSelection,
    ArchiveEntry,
    CacheEntry,
    DiskStatus,
    FileListing,
    InventorySnapshot,
    MonitoredDisk,
)

__all__ = [
    "ResultCache",
    "STATUSES_CACHE_KEY",
    "files_cache_key",
    "format_age",
    "format_timestamp",
    "human_readable_size",
    "ActiveSelection",
    "ArchiveEntry",
    "CacheEntry",
    "DiskStatus",
    "FileListing",
    "InventorySnapshot",
    "MonitoredDisk",
]
