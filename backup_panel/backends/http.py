"""Remote disk served over HTTP.

Expects a file server that renders a directory index page (nginx/Apache
autoindex style) for ``<url>/<backup name>/`` and accepts DELETE on archive
URLs (WebDAV). Sizes and dates come from HEAD responses.
"""

from __future__ import annotations

import re
import threading
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import BinaryIO, List, Optional
from urllib.parse import unquote, urljoin, urlparse

import requests
import urllib3
from bs4 import BeautifulSoup
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .base import ARCHIVE_EXTENSION, RawArchive, StorageBackend
from ..core.errors import ArchiveNotFound, StorageError

STREAM_CHUNK_SIZE = 64 * 1024

# Default archive names look like 2026-01-22-12-00-00.zip
_NAME_TIMESTAMP = re.compile(r"(\d{4})-(\d{2})-(\d{2})-(\d{2})-(\d{2})-(\d{2})")


class _ResponseStream:
    """File-like view over a streaming response body; closing releases the connection."""

    def __init__(self, response: requests.Response):
        self._response = response
        self._chunks = response.iter_content(chunk_size=STREAM_CHUNK_SIZE)
        self._buffer = b""

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            data = self._buffer + b"".join(self._chunks)
            self._buffer = b""
            return data
        while len(self._buffer) < size:
            chunk = next(self._chunks, None)
            if chunk is None:
                break
            self._buffer += chunk
        data, self._buffer = self._buffer[:size], self._buffer[size:]
        return data

    def close(self) -> None:
        self._response.close()


class HttpDirectoryBackend(StorageBackend):
    """Backup disk exposed by an HTTP file server."""

    def __init__(
        self,
        disk_name: str,
        backup_name: str,
        url: str,
        timeout: int = 20,
        verify: bool = True,
        auth: Optional[tuple] = None,
    ):
        super().__init__(disk_name, backup_name)
        self.url = url if url.endswith("/") else url + "/"
        self.timeout = timeout
        self._verify = verify
        self._auth = auth
        self._session: Optional[requests.Session] = None
        self._session_lock = threading.Lock()

        if self._verify is False:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    @property
    def driver(self) -> str:
        return "http"

    @property
    def backup_url(self) -> str:
        return urljoin(self.url, f"{self.backup_name}/")

    def _get_session(self) -> requests.Session:
        """Get or create a requests session with retry configuration.

        Only idempotent reads are retried; DELETE is sent once.
        """
        with self._session_lock:
            if self._session is None:
                session = requests.Session()
                retry = Retry(
                    total=3,
                    connect=3,
                    read=3,
                    backoff_factor=0.5,
                    status_forcelist=(429, 500, 502, 503, 504),
                    allowed_methods=("GET", "HEAD"),
                )
                adapter = HTTPAdapter(
                    max_retries=retry,
                    pool_connections=5,
                    pool_maxsize=10,
                )
                session.mount("https://", adapter)
                session.mount("http://", adapter)
                session.verify = self._verify
                if self._auth:
                    session.auth = self._auth
                session.headers.update({"User-Agent": "backup-panel/1.0"})
                self._session = session
            return self._session

    def for_backup(self, backup_name: str) -> "HttpDirectoryBackend":
        """Scoped views share this disk's session and are never closed themselves."""
        if backup_name != self.backup_name:
            self._get_session()
        return super().for_backup(backup_name)

    def close(self) -> None:
        """Close the session and release pooled connections."""
        with self._session_lock:
            if self._session is not None:
                self._session.close()
                self._session = None

    def probe(self) -> bool:
        try:
            resp = self._get_session().head(self.url, timeout=self.timeout, allow_redirects=True)
            return resp.status_code < 400
        except requests.RequestException:
            return False

    def list_archives(self) -> List[RawArchive]:
        """List archives newest first."""
        session = self._get_session()
        try:
            resp = session.get(self.backup_url, timeout=self.timeout)
            if resp.status_code == 404:
                return []
            resp.raise_for_status()
        except requests.RequestException as e:
            raise StorageError(self.disk_name, f"Unable to list {self.backup_url}: {e}", e)

        archives = []
        for name in self._parse_index(resp.text):
            archives.append(self._describe(name))
        return sorted(archives, key=lambda a: a.date, reverse=True)

    def _parse_index(self, html: str) -> List[str]:
        """Extract archive file names linked from a directory index page."""
        soup = BeautifulSoup(html, "html.parser")
        base_path = urlparse(self.backup_url).path
        names: List[str] = []
        for link in soup.find_all("a", href=True):
            target = urlparse(urljoin(self.backup_url, link["href"]))
            if not target.path.startswith(base_path):
                continue
            name = unquote(target.path[len(base_path):])
            if not name or "/" in name or not name.lower().endswith(ARCHIVE_EXTENSION):
                continue
            if name not in names:
                names.append(name)
        return names

    def _describe(self, name: str) -> RawArchive:
        """HEAD an archive for its size and modification date."""
        path = f"{self.backup_name}/{name}"
        try:
            resp = self._get_session().head(self._object_url(path), timeout=self.timeout, allow_redirects=True)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise StorageError(self.disk_name, f"Unable to stat {path}: {e}", e)

        # Downloads send this value as Content-Length
        length = resp.headers.get("Content-Length")
        try:
            size = int(length)
        except (TypeError, ValueError):
            raise StorageError(self.disk_name, f"Unable to stat {path}: missing or invalid Content-Length")
        if size < 0:
            raise StorageError(self.disk_name, f"Unable to stat {path}: invalid Content-Length {length!r}")
        date = self._parse_last_modified(resp.headers.get("Last-Modified")) or _date_from_name(name)
        return RawArchive(path=path, date=date, size=size)

    def _parse_last_modified(self, value: Optional[str]) -> Optional[datetime]:
        if not value:
            return None
        try:
            parsed = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)

    def _object_url(self, path: str) -> str:
        return urljoin(self.url, path.lstrip("/"))

    def open_read_stream(self, path: str) -> BinaryIO:
        try:
            resp = self._get_session().get(self._object_url(path), timeout=self.timeout, stream=True)
        except requests.RequestException as e:
            raise StorageError(self.disk_name, f"Unable to read {path}: {e}", e)
        if resp.status_code == 404:
            resp.close()
            raise ArchiveNotFound(self.disk_name, path)
        if resp.status_code >= 400:
            resp.close()
            raise StorageError(self.disk_name, f"Unable to read {path}: HTTP {resp.status_code}")
        return _ResponseStream(resp)

    def delete(self, path: str) -> None:
        try:
            resp = self._get_session().delete(self._object_url(path), timeout=self.timeout)
        except requests.RequestException as e:
            raise StorageError(self.disk_name, f"Unable to delete {path}: {e}", e)
        if resp.status_code == 404:
            raise ArchiveNotFound(self.disk_name, path)
        if resp.status_code >= 400:
            raise StorageError(self.disk_name, f"Unable to delete {path}: HTTP {resp.status_code}")


def _date_from_name(name: str) -> datetime:
    """Fall back to the timestamp embedded in default archive names."""
    match = _NAME_TIMESTAMP.search(name)
    if match:
        try:
            return datetime(*map(int, match.groups()), tzinfo=timezone.utc)
        except ValueError:
            pass
    return datetime.fromtimestamp(0, tz=timezone.utc)
