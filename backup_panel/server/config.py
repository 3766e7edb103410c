"""Configuration management for the backup panel.

Supports YAML-based configuration of disks, monitored backups and the job queue.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from ..data.cache import DEFAULT_TTL_SECONDS
from ..data.models import DEFAULT_MAX_AGE_IN_DAYS, DEFAULT_MAX_STORAGE_IN_MEGABYTES, MonitoredDisk


@dataclass
class DiskConfig:
    """Configuration for one backup disk."""

    driver: str = "local"  # 'local' or 'http'
    root: Optional[str] = None  # local driver
    url: Optional[str] = None  # http driver
    timeout: int = 20  # seconds
    verify: bool = True
    username: Optional[str] = None
    password: Optional[str] = None


@dataclass
class HealthCheckConfig:
    """Thresholds a disk must meet to be reported healthy."""

    max_age_in_days: float = DEFAULT_MAX_AGE_IN_DAYS
    max_storage_in_megabytes: float = DEFAULT_MAX_STORAGE_IN_MEGABYTES


@dataclass
class MonitoredBackupConfig:
    """A backup name watched on one or more disks."""

    name: str
    disks: List[str] = field(default_factory=list)
    health_checks: HealthCheckConfig = field(default_factory=HealthCheckConfig)


@dataclass
class BackupConfig:
    """Backup and job settings."""

    name: str = "backups"
    queue: str = "default"
    command: List[str] = field(default_factory=lambda: ["backup-run"])
    cache_ttl: float = DEFAULT_TTL_SECONDS  # seconds
    probe_timeout: float = 10  # seconds


@dataclass
class ServerConfig:
    """Server configuration."""

    host: str = "0.0.0.0"
    port: int = 8080
    url_prefix: str = ""


@dataclass
class Config:
    """Main configuration container."""

    deployment_name: str = "Backup Panel"

    server: ServerConfig = field(default_factory=ServerConfig)
    backup: BackupConfig = field(default_factory=BackupConfig)
    disks: Dict[str, DiskConfig] = field(default_factory=dict)
    monitor_backups: List[MonitoredBackupConfig] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create config from dictionary."""
        deployment = data.get("deployment", {})

        # Parse server config
        server_data = data.get("server", {})
        server = ServerConfig(
            host=server_data.get("host", "0.0.0.0"),
            port=server_data.get("port", 8080),
            url_prefix=server_data.get("url_prefix", ""),
        )

        # Parse backup config
        backup_data = data.get("backup", {})
        command = backup_data.get("command", ["backup-run"])
        if isinstance(command, str):
            command = command.split()
        backup = BackupConfig(
            name=backup_data.get("name", "backups"),
            queue=backup_data.get("queue", "default"),
            command=list(command),
            cache_ttl=backup_data.get("cache_ttl", DEFAULT_TTL_SECONDS),
            probe_timeout=backup_data.get("probe_timeout", 10),
        )

        # Parse disk configs
        disks = {}
        for name, disk_data in (data.get("disks") or {}).items():
            if isinstance(disk_data, dict):
                disks[name] = DiskConfig(
                    driver=disk_data.get("driver", "local"),
                    root=disk_data.get("root"),
                    url=disk_data.get("url"),
                    timeout=disk_data.get("timeout", 20),
                    verify=disk_data.get("verify", True),
                    username=disk_data.get("username"),
                    password=disk_data.get("password"),
                )

        # Parse monitored backups
        monitor_backups = []
        for entry in data.get("monitor_backups") or []:
            if not isinstance(entry, dict):
                continue
            checks = entry.get("health_checks", {})
            monitor_backups.append(MonitoredBackupConfig(
                name=entry.get("name", backup.name),
                disks=list(entry.get("disks", [])),
                health_checks=HealthCheckConfig(
                    max_age_in_days=checks.get("max_age_in_days", DEFAULT_MAX_AGE_IN_DAYS),
                    max_storage_in_megabytes=checks.get(
                        "max_storage_in_megabytes", DEFAULT_MAX_STORAGE_IN_MEGABYTES
                    ),
                ),
            ))

        return cls(
            deployment_name=deployment.get("name", "Backup Panel"),
            server=server,
            backup=backup,
            disks=disks,
            monitor_backups=monitor_backups,
        )

    @classmethod
    def from_yaml(cls, path: Path) -> "Config":
        """Load config from YAML file."""
        if not path.exists():
            return cls()
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "Config":
        """Load config from path or defaults.

        Checks in order:
        1. Provided path
        2. BACKUP_PANEL_CONFIG env var
        3. ./configs/config.yaml
        4. ./config.yaml
        5. ~/.backup_panel/config.yaml
        6. Default config
        """
        paths_to_try = []

        if config_path:
            paths_to_try.append(Path(config_path))

        if env_path := os.environ.get("BACKUP_PANEL_CONFIG"):
            paths_to_try.append(Path(env_path))

        paths_to_try.extend([
            Path("./configs/config.yaml"),
            Path("./config.yaml"),
            Path.home() / ".backup_panel" / "config.yaml",
        ])

        for path in paths_to_try:
            if path.exists():
                return cls.from_yaml(path)

        return cls()

    def monitored_disks(self) -> List[MonitoredDisk]:
        """Flatten monitored backups into (backup name, disk) pairs.

        Without a monitor_backups section every configured disk is monitored
        under the backup name with default health checks.
        """
        if not self.monitor_backups:
            return [MonitoredDisk(name=self.backup.name, disk=disk) for disk in self.disks]

        monitored = []
        for backup in self.monitor_backups:
            for disk in backup.disks:
                monitored.append(MonitoredDisk(
                    name=backup.name,
                    disk=disk,
                    max_age_in_days=backup.health_checks.max_age_in_days,
                    max_storage_in_megabytes=backup.health_checks.max_storage_in_megabytes,
                ))
        return monitored

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary (without credentials)."""
        return {
            "deployment": {
                "name": self.deployment_name,
            },
            "server": {
                "host": self.server.host,
                "port": self.server.port,
                "url_prefix": self.server.url_prefix,
            },
            "backup": {
                "name": self.backup.name,
                "queue": self.backup.queue,
                "cache_ttl": self.backup.cache_ttl,
            },
            "disks": {
                name: {"driver": disk.driver}
                for name, disk in self.disks.items()
            },
            "monitor_backups": [
                {"name": backup.name, "disks": list(backup.disks)}
                for backup in self.monitor_backups
            ],
        }
