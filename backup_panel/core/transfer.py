"""Archive transfer - streaming downloads and deletion on a backend."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import BinaryIO, Callable, Dict, Optional

from ..backends.base import SizedArchive
from ..data.models import ArchiveEntry
from .catalog import ArchiveCatalog
from .errors import ARCHIVE_NOT_FOUND_MESSAGE, StorageError

CHUNK_SIZE = 64 * 1024


def _log(msg: str) -> None:
    print(msg, flush=True)


@dataclass
class DownloadResponse:
    """HTTP-shaped download result.

    Either ``body`` (small, fully formed payload) or ``stream`` (a callable
    that copies the archive into a sink and returns the byte count) is set.
    """

    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None
    stream: Optional[Callable[[BinaryIO], int]] = None

    @property
    def ok(self) -> bool:
        return self.status == HTTPStatus.OK

    def write_to(self, sink: BinaryIO) -> int:
        """Write the response body to ``sink`` and return the number of bytes."""
        if self.stream is not None:
            return self.stream(sink)
        if self.body:
            sink.write(self.body)
            return len(self.body)
        return 0


def copy_stream(source: BinaryIO, sink: BinaryIO, chunk_size: int = CHUNK_SIZE) -> int:
    """Forward ``source`` to ``sink`` chunk by chunk."""
    total = 0
    while True:
        chunk = source.read(chunk_size)
        if not chunk:
            break
        sink.write(chunk)
        total += len(chunk)
    return total


class ArchiveTransferService:
    """Streams and deletes archives, always against the live backend listing."""

    def __init__(self, catalog: ArchiveCatalog):
        self.catalog = catalog

    def find_archive(self, disk: str, path: str) -> Optional[SizedArchive]:
        """Look ``path`` up in a fresh listing of ``disk`` (never the cache)."""
        for archive in self.catalog.backend(disk).list_archives():
            if archive.path == path:
                return archive
        return None

    def download(self, disk: str, path: str) -> DownloadResponse:
        """Build a streaming response for the archive at ``path``.

        A missing archive yields a 422 response instead of an exception.
        """
        archive = self.find_archive(disk, path)
        if archive is None:
            return DownloadResponse(
                status=HTTPStatus.UNPROCESSABLE_ENTITY,
                headers={"Content-Type": "text/plain; charset=utf-8"},
                body=ARCHIVE_NOT_FOUND_MESSAGE.encode("utf-8"),
            )

        file_name = posixpath.basename(archive.path)
        headers = {
            "Cache-Control": "must-revalidate, post-check=0, pre-check=0",
            "Content-Type": "application/zip",
            "Content-Length": str(archive.size_bytes()),
            "Content-Disposition": f'attachment; filename="{file_name}"',
            "Pragma": "public",
        }

        def stream(sink: BinaryIO) -> int:
            source = self.catalog.backend(disk).open_read_stream(archive.path)
            try:
                return copy_stream(source, sink)
            finally:
                source.close()

        return DownloadResponse(status=HTTPStatus.OK, headers=headers, stream=stream)

    def delete(self, disk: str, entry: ArchiveEntry) -> None:
        """Remove ``entry`` from ``disk``.

        Raises:
            StorageError: If the backend rejects the deletion.
        """
        try:
            self.catalog.backend(disk).delete(entry.path)
        except StorageError as e:
            _log(f"[transfer] Delete of {entry.path} on {disk} failed: {e}")
            raise
        _log(f"[transfer] Deleted {entry.path} from {disk}")
