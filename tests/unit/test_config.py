"""Tests for configuration management."""

import pytest

from backup_panel.server.config import Config, DiskConfig


class TestConfig:
    def test_default_config(self):
        config = Config()
        assert config.deployment_name == "Backup Panel"
        assert config.server.host == "0.0.0.0"
        assert config.server.port == 8080
        assert config.backup.name == "backups"
        assert config.backup.queue == "default"
        assert config.backup.cache_ttl == 4
        assert config.disks == {}

    def test_from_dict(self):
        data = {
            "deployment": {"name": "Test Panel"},
            "server": {"host": "localhost", "port": 9000, "url_prefix": "/panel"},
            "backup": {
                "name": "my-app",
                "queue": "backups",
                "command": "php artisan backup:run",
                "cache_ttl": 10,
            },
            "disks": {
                "local": {"driver": "local", "root": "/var/backups"},
                "offsite": {
                    "driver": "http",
                    "url": "https://files.example.com/backups",
                    "verify": False,
                    "username": "panel",
                    "password": "secret",
                },
            },
            "monitor_backups": [
                {
                    "name": "my-app",
                    "disks": ["local", "offsite"],
                    "health_checks": {"max_age_in_days": 2, "max_storage_in_megabytes": 100},
                },
            ],
        }
        config = Config.from_dict(data)

        assert config.deployment_name == "Test Panel"
        assert config.server.port == 9000
        assert config.server.url_prefix == "/panel"
        assert config.backup.name == "my-app"
        assert config.backup.queue == "backups"
        assert config.backup.command == ["php", "artisan", "backup:run"]
        assert config.backup.cache_ttl == 10
        assert config.disks["local"].root == "/var/backups"
        assert config.disks["offsite"].driver == "http"
        assert config.disks["offsite"].verify is False
        assert config.monitor_backups[0].health_checks.max_age_in_days == 2

    def test_from_yaml(self, tmp_path):
        yaml_content = """
deployment:
  name: "YAML Panel"
backup:
  name: site
  command: ["backup-run", "--disable-notifications"]
disks:
  local:
    root: /srv/backups
"""
        config_path = tmp_path / "config.yaml"
        config_path.write_text(yaml_content)

        config = Config.from_yaml(config_path)

        assert config.deployment_name == "YAML Panel"
        assert config.backup.command == ["backup-run", "--disable-notifications"]
        assert config.disks["local"] == DiskConfig(root="/srv/backups")

    def test_from_yaml_missing_file(self, tmp_path):
        config = Config.from_yaml(tmp_path / "missing.yaml")
        assert config.deployment_name == "Backup Panel"

    def test_from_yaml_empty_file(self, tmp_path):
        config_path = tmp_path / "config.yaml"
        config_path.write_text("")
        assert Config.from_yaml(config_path).disks == {}

    def test_load_prefers_explicit_path(self, tmp_path, monkeypatch):
        explicit = tmp_path / "explicit.yaml"
        explicit.write_text("deployment:\n  name: Explicit\n")
        env = tmp_path / "env.yaml"
        env.write_text("deployment:\n  name: FromEnv\n")
        monkeypatch.setenv("BACKUP_PANEL_CONFIG", str(env))

        assert Config.load(str(explicit)).deployment_name == "Explicit"
        assert Config.load().deployment_name == "FromEnv"

    def test_load_defaults(self, tmp_path, monkeypatch):
        monkeypatch.delenv("BACKUP_PANEL_CONFIG", raising=False)
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path))

        assert Config.load().deployment_name == "Backup Panel"


class TestMonitoredDisks:
    def test_defaults_to_every_disk(self):
        config = Config.from_dict({
            "backup": {"name": "my-app"},
            "disks": {"local": {"root": "/a"}, "offsite": {"root": "/b"}},
        })

        monitored = config.monitored_disks()

        assert [(m.name, m.disk) for m in monitored] == [("my-app", "local"), ("my-app", "offsite")]
        assert monitored[0].max_age_in_days == 1
        assert monitored[0].max_storage_in_megabytes == 5000

    def test_flattens_monitor_backups(self):
        config = Config.from_dict({
            "disks": {"local": {"root": "/a"}, "offsite": {"root": "/b"}},
            "monitor_backups": [
                {"name": "site", "disks": ["local", "offsite"], "health_checks": {"max_age_in_days": 3}},
                {"name": "api", "disks": ["offsite"]},
            ],
        })

        monitored = config.monitored_disks()

        assert [(m.name, m.disk) for m in monitored] == [
            ("site", "local"),
            ("site", "offsite"),
            ("api", "offsite"),
        ]
        assert monitored[0].max_age_in_days == 3
        assert monitored[2].max_age_in_days == 1


class TestToDict:
    def test_excludes_credentials(self):
        config = Config.from_dict({
            "disks": {"offsite": {"driver": "http", "url": "https://x", "username": "panel-user", "password": "s3cret-pw"}},
        })

        data = config.to_dict()

        assert data["disks"] == {"offsite": {"driver": "http"}}
        assert "s3cret-pw" not in str(data)
        assert "panel-user" not in str(data)

    @pytest.mark.parametrize("key", ["deployment", "server", "backup", "disks", "monitor_backups"])
    def test_sections(self, key):
        assert key in Config().to_dict()
