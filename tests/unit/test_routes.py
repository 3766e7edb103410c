"""Tests for the HTTP API."""

import http.client
import threading
from http.server import ThreadingHTTPServer
from urllib.parse import urlparse

import pytest
import requests

from backup_panel.core.errors import StorageError
from backup_panel.server.routes import BackupPanelRequestHandler


@pytest.fixture
def server_url(manager):
    handler = type("Handler", (BackupPanelRequestHandler,), {
        "manager": manager,
        "url_prefix": "/panel",
        "config": {"deployment": {"name": "Test Panel"}},
        "log_message": lambda self, *args: None,
    })
    server = ThreadingHTTPServer(("127.0.0.1", 0), handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}/panel"
    server.shutdown()
    server.server_close()


class TestStatusesAndFiles:
    def test_statuses(self, server_url):
        resp = requests.get(f"{server_url}/api/statuses", timeout=5)

        assert resp.status_code == 200
        data = resp.json()
        assert data["ok"] is True
        assert data["active_disk"] == "local"
        assert [s["disk"] for s in data["statuses"]] == ["local", "offsite"]
        assert len(data["files"]) == 3

    def test_files_requires_disk(self, server_url):
        resp = requests.get(f"{server_url}/api/files", timeout=5)

        assert resp.status_code == 422
        assert resp.json()["error"] == "Select a disk"

    def test_switch_disk(self, server_url):
        requests.get(f"{server_url}/api/statuses", timeout=5)

        resp = requests.get(f"{server_url}/api/files", params={"disk": "offsite"}, timeout=5)

        assert resp.json()["active_disk"] == "offsite"
        assert len(resp.json()["files"]) == 1

    def test_unknown_prefix(self, server_url):
        resp = requests.get(server_url.replace("/panel", "/other") + "/api/statuses", timeout=5)
        assert resp.status_code == 404


class TestDelete:
    def test_select_and_delete(self, server_url, primary_disk):
        requests.get(f"{server_url}/api/statuses", timeout=5)

        selected = requests.post(f"{server_url}/api/files/select", json={"index": 0}, timeout=5)
        assert selected.json()["pending_delete"]["path"] == "my-app/2026-01-22-10-00-00.zip"

        resp = requests.post(f"{server_url}/api/files/delete", json={}, timeout=5)

        assert resp.status_code == 200
        assert len(resp.json()["files"]) == 2
        assert resp.json()["pending_delete"] is None
        assert "my-app/2026-01-22-10-00-00.zip" not in primary_disk.objects

    def test_select_rejects_non_integer(self, server_url):
        resp = requests.post(f"{server_url}/api/files/select", json={"index": "first"}, timeout=5)
        assert resp.status_code == 400

    def test_backend_failure_is_503(self, server_url, primary_disk):
        requests.get(f"{server_url}/api/statuses", timeout=5)
        requests.post(f"{server_url}/api/files/select", json={"index": 0}, timeout=5)
        primary_disk.delete_error = StorageError("local", "permission denied")

        resp = requests.post(f"{server_url}/api/files/delete", json={}, timeout=5)

        assert resp.status_code == 503
        assert resp.json()["type"] == "StorageError"


class TestDownload:
    def test_streams_archive(self, server_url):
        requests.get(f"{server_url}/api/statuses", timeout=5)

        resp = requests.get(
            f"{server_url}/api/download",
            params={"path": "my-app/2026-01-21-10-00-00.zip"},
            timeout=5,
        )

        assert resp.status_code == 200
        assert resp.content == b"x" * 2048
        assert resp.headers["Content-Type"] == "application/zip"
        assert resp.headers["Content-Length"] == "2048"
        assert resp.headers["Content-Disposition"] == 'attachment; filename="2026-01-21-10-00-00.zip"'
        assert resp.headers["Pragma"] == "public"
        assert resp.headers["Access-Control-Allow-Origin"] == "*"

    def test_missing_archive(self, server_url):
        requests.get(f"{server_url}/api/statuses", timeout=5)

        resp = requests.get(f"{server_url}/api/download", params={"path": "my-app/gone.zip"}, timeout=5)

        assert resp.status_code == 422
        assert resp.text == "Backup not found"
        assert resp.headers["Access-Control-Allow-Origin"] == "*"

    def test_invalid_path(self, server_url):
        requests.get(f"{server_url}/api/statuses", timeout=5)

        resp = requests.get(f"{server_url}/api/download", params={"path": "my-app/notes.txt"}, timeout=5)

        assert resp.status_code == 422
        assert resp.json()["error"] == "The file must be a path to a zip file."


class TestCreateBackup:
    def test_queues_backup(self, server_url, trigger):
        resp = requests.post(f"{server_url}/api/backups", json={"option": "only-files"}, timeout=5)

        assert resp.json() == {
            "ok": True,
            "message": "Creating a new backup in the background... (only-files)",
        }
        assert trigger.requests == [("only-files", "backups")]

    def test_invalid_json(self, server_url):
        resp = requests.post(
            f"{server_url}/api/backups",
            data=b"{not json",
            headers={"Content-Type": "application/json"},
            timeout=5,
        )
        assert resp.status_code == 400

    @pytest.mark.parametrize("length", ["abc", "-5"])
    def test_malformed_content_length(self, server_url, trigger, length):
        target = urlparse(server_url)
        conn = http.client.HTTPConnection(target.hostname, target.port, timeout=5)
        try:
            conn.putrequest("POST", f"{target.path}/api/backups")
            conn.putheader("Content-Type", "application/json")
            conn.putheader("Content-Length", length)
            conn.endheaders()
            resp = conn.getresponse()
            body = resp.read()
        finally:
            conn.close()

        assert resp.status == 400
        assert b"Invalid JSON body." in body
        assert trigger.requests == []


class TestConfigEndpoint:
    def test_config(self, server_url):
        resp = requests.get(f"{server_url}/api/config", timeout=5)
        assert resp.json() == {"config": {"deployment": {"name": "Test Panel"}}}
