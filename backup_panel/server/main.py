#!/usr/bin/env python3
"""
Backup Panel - Main entry point.

Serves the backup inventory API and runs the backup job worker.
"""

from __future__ import annotations

import argparse
from http.server import ThreadingHTTPServer
from typing import Dict

from .config import Config
from .jobs import JobQueue
from .routes import BackupPanelRequestHandler
from ..backends import StorageBackend, build_backend
from ..core.catalog import ArchiveCatalog
from ..core.inventory import InventoryManager
from ..core.transfer import ArchiveTransferService
from ..core.trigger import BackupJobTrigger
from ..data.cache import ResultCache


def build_backends(config: Config) -> Dict[str, StorageBackend]:
    """Create one backend per configured disk."""
    return {
        name: build_backend(name, disk_config, config.backup.name)
        for name, disk_config in config.disks.items()
    }


def create_manager(config: Config, job_queue: BackupJobTrigger) -> InventoryManager:
    """Wire catalog, cache, transfer service and job queue into a manager."""
    catalog = ArchiveCatalog(build_backends(config), probe_timeout=config.backup.probe_timeout)
    return InventoryManager(
        catalog=catalog,
        cache=ResultCache(),
        transfer=ArchiveTransferService(catalog),
        trigger=job_queue,
        monitored=config.monitored_disks(),
        queue_name=config.backup.queue,
        ttl_seconds=config.backup.cache_ttl,
    )


def run_server(args) -> None:
    """Run the backup panel server."""
    config = Config.load(args.config)
    print(f"[config] Loaded: deployment={config.deployment_name!r}, disks={list(config.disks)}")

    # Override config with CLI args
    if args.host:
        config.server.host = args.host
    if args.port:
        config.server.port = args.port
    if args.url_prefix:
        config.server.url_prefix = args.url_prefix

    job_queue = JobQueue(config.backup.command, timeout=args.job_timeout)
    manager = create_manager(config, job_queue)

    print("[backup-panel] Loading disk statuses...")
    for status in manager.refresh_statuses():
        state = "healthy" if status.healthy else ("unhealthy" if status.reachable else "unreachable")
        print(f"[backup-panel] {status.disk}: {state}, {status.archive_count} backups, {status.used_storage}")

    # Configure the request handler
    BackupPanelRequestHandler.manager = manager
    BackupPanelRequestHandler.job_queue = job_queue
    BackupPanelRequestHandler.url_prefix = config.server.url_prefix
    BackupPanelRequestHandler.config = config.to_dict()

    server = ThreadingHTTPServer((config.server.host, config.server.port), BackupPanelRequestHandler)

    print(f"[backup-panel] Serving on http://{config.server.host}:{config.server.port}")
    if config.server.url_prefix:
        print(f"[backup-panel] URL prefix: {config.server.url_prefix}")

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        print("\n[backup-panel] Shutting down...")
    finally:
        job_queue.stop_all(timeout=5)
        manager.catalog.close()
        server.server_close()


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Backup archive panel",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument("--host", default=None, help="Bind address (overrides config)")
    parser.add_argument("--port", type=int, default=None, help="Port to listen on (overrides config)")
    parser.add_argument("--config", type=str, help="Path to config YAML file")
    parser.add_argument(
        "--url-prefix",
        default="",
        help="Path prefix for reverse proxy setup",
    )
    parser.add_argument(
        "--job-timeout",
        type=int,
        default=None,
        help="Seconds before a backup run is abandoned (default: no limit)",
    )

    return parser.parse_args(argv)


def main():
    """Entry point for the backup-panel command."""
    args = parse_args()
    run_server(args)


if __name__ == "__main__":
    main()
