"""HTTP request handlers for the backup panel API.

Thin glue between HTTP and the InventoryManager operations.
"""

from __future__ import annotations

import json
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler
from typing import Any, Dict, Optional, TYPE_CHECKING
from urllib.parse import parse_qs, urlparse

from ..core.errors import BackupPanelError, StorageError

if TYPE_CHECKING:
    from ..core.inventory import InventoryManager
    from ..core.transfer import DownloadResponse
    from .jobs import JobQueue


class BackupPanelRequestHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the backup panel.

    Serves:
    - Disk statuses and file listings
    - Delete, download and create-backup actions
    - Configuration
    """

    # These will be set by the server
    manager: Optional["InventoryManager"] = None
    job_queue: Optional["JobQueue"] = None
    url_prefix: str = ""
    config: Optional[Dict] = None

    def do_GET(self):
        target = self._route()
        if target is None:
            return
        query = parse_qs(target.query)

        if target.path == "/api/statuses":
            return self._handle(lambda m: self._state(m, m.refresh_statuses()))
        if target.path == "/api/files":
            disk = (query.get("disk") or [""])[0]
            return self._handle(lambda m: self._state(m, m.refresh_files(disk or None)))
        if target.path == "/api/download":
            path = (query.get("path") or [""])[0]
            return self._handle_download(path)
        if target.path == "/api/config":
            return self._handle_config()
        self.send_error(HTTPStatus.NOT_FOUND, "Unknown endpoint")

    def do_POST(self):
        target = self._route()
        if target is None:
            return
        body = self._read_json()
        if body is None:
            self._send_json({"ok": False, "error": "Invalid JSON body."}, status_code=HTTPStatus.BAD_REQUEST)
            return

        if target.path == "/api/files/select":
            try:
                index = int(body.get("index"))
            except (TypeError, ValueError):
                self._send_json({"ok": False, "error": "Index must be an integer."}, status_code=HTTPStatus.BAD_REQUEST)
                return
            return self._handle(lambda m: self._state(m, m.select_for_deletion(index)))
        if target.path == "/api/files/delete":
            return self._handle(lambda m: self._state(m, m.confirm_delete()))
        if target.path == "/api/backups":
            option = str(body.get("option") or "")
            return self._handle(lambda m: {"ok": True, "message": m.trigger_create(option)})
        self.send_error(HTTPStatus.NOT_FOUND, "Unknown endpoint")

    def do_OPTIONS(self):
        target = self._route()
        if target is None:
            return
        self.send_response(HTTPStatus.NO_CONTENT)
        self._send_cors_headers()
        self.send_header("Access-Control-Allow-Methods", "GET,POST,OPTIONS")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")
        self.end_headers()

    # --- API Handlers ---

    def _handle(self, operation):
        manager = self.manager
        if not manager:
            self.send_error(HTTPStatus.SERVICE_UNAVAILABLE, "Server not initialized.")
            return
        try:
            payload = operation(manager)
        except BackupPanelError as e:
            self._send_error_json(e)
            return
        self._send_json(payload)

    def _state(self, manager: "InventoryManager", _result: Any) -> Dict[str, Any]:
        return {"ok": True, **manager.snapshot().to_dict()}

    def _handle_download(self, path: str):
        manager = self.manager
        if not manager:
            self.send_error(HTTPStatus.SERVICE_UNAVAILABLE, "Server not initialized.")
            return
        try:
            response = manager.download(path)
        except BackupPanelError as e:
            self._send_error_json(e)
            return
        self._send_download(response)

    def _send_download(self, response: "DownloadResponse"):
        self.send_response(response.status)
        for name, value in response.headers.items():
            self.send_header(name, value)
        if response.stream is None and response.body is not None and "Content-Length" not in response.headers:
            self.send_header("Content-Length", str(len(response.body)))
        self._send_cors_headers()
        self.end_headers()
        try:
            response.write_to(self.wfile)
        except (BackupPanelError, OSError) as e:
            # Headers are already sent; drop the connection so the client sees a short body
            self.log_error("Download aborted: %s", e)
            self.close_connection = True

    def _handle_config(self):
        payload = {"config": self.config or {}}
        if self.job_queue:
            payload["jobs"] = self.job_queue.get_all_status()
        self._send_json(payload)

    # --- Helper Methods ---

    def _route(self):
        parsed = urlparse(self.path)
        stripped = self._strip_prefix(parsed.path)
        if stripped is None:
            self.send_error(HTTPStatus.NOT_FOUND, "Invalid prefix")
            return None
        return urlparse(stripped + (f"?{parsed.query}" if parsed.query else ""))

    def _read_json(self) -> Optional[Dict[str, Any]]:
        try:
            length = int(self.headers.get("Content-Length") or 0)
        except ValueError:
            return None
        if length < 0:
            return None
        if not length:
            return {}
        try:
            data = json.loads(self.rfile.read(length).decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            return None
        return data if isinstance(data, dict) else None

    def _send_error_json(self, error: BackupPanelError):
        status = HTTPStatus.SERVICE_UNAVAILABLE if isinstance(error, StorageError) else HTTPStatus.UNPROCESSABLE_ENTITY
        self._send_json(
            {"ok": False, "error": error.message, "type": type(error).__name__},
            status_code=status,
        )

    def _send_json(self, data: Any, *, status_code: HTTPStatus = HTTPStatus.OK):
        body = json.dumps(data).encode("utf-8")
        self.send_response(status_code)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.send_header("Cache-Control", "no-store, max-age=0")
        self._send_cors_headers()
        self.end_headers()
        self.wfile.write(body)

    def _send_cors_headers(self):
        self.send_header("Access-Control-Allow-Origin", "*")

    def _strip_prefix(self, path: str) -> Optional[str]:
        norm_prefix = (self.url_prefix or "").rstrip("/")
        if not norm_prefix:
            return path or "/"
        if not norm_prefix.startswith("/"):
            norm_prefix = f"/{norm_prefix}"
        if not path.startswith(norm_prefix):
            return None
        stripped = path[len(norm_prefix):] or "/"
        if not stripped.startswith("/"):
            stripped = "/" + stripped
        return stripped
