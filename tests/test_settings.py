"""Tests for settings.py: layered configuration loading.

针对配置加载（YAML 文件、命令行覆盖、字段校验）的测试。
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from settings import Settings, flatten_yaml_config, load_settings, settings_to_env


class TestFlattenYamlConfig:
    def test_section_and_key_map_to_fields(self):
        flat = flatten_yaml_config(
            {
                "sync": {"interval_minutes": 5, "max_parallel_users": 8},
                "database": {"url": "sqlite+aiosqlite:///x.db"},
                "app": {"debug": True, "port": 9000},
                "auth": {"allow_registration": False},
                "unknown": {"whatever": 1},
            }
        )
        assert flat == {
            "sync_interval_minutes": 5,
            "sync_max_parallel_users": 8,
            "database_url": "sqlite+aiosqlite:///x.db",
            "debug": True,
            "app_port": 9000,
            "allow_registration": False,
        }

    def test_top_level_scalars(self):
        assert flatten_yaml_config({"debug": True, "nonsense": 1}) == {"debug": True}


class TestLoadSettings:
    """Verify precedence between the config file and explicit overrides.

    命令行覆盖优先于 --config 文件，None 值不覆盖。
    """

    def test_config_file(self, tmp_path):
        config = tmp_path / "feedpulse.yaml"
        config.write_text(
            "sync:\n  interval_minutes: 2\n  max_parallel_users: 7\n"
            "jwt:\n  access_token_expire_minutes: 30\n",
            encoding="utf-8",
        )

        loaded = load_settings(config)

        assert loaded.sync_interval_minutes == 2
        assert loaded.sync_max_parallel_users == 7
        assert loaded.jwt_access_token_expire_minutes == 30

    def test_overrides_win(self, tmp_path):
        config = tmp_path / "feedpulse.yaml"
        config.write_text("database:\n  url: sqlite+aiosqlite:///file.db\n", encoding="utf-8")

        loaded = load_settings(
            config,
            database_url="sqlite+aiosqlite:///cli.db",
            app_port=None,
            jwt_secret_key="from-cli",
        )

        assert loaded.database_url == "sqlite+aiosqlite:///cli.db"
        assert loaded.jwt_secret_key == "from-cli"
        assert isinstance(loaded.app_port, int)

    def test_missing_config_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "absent.yaml")

    @pytest.mark.parametrize(
        "overrides",
        [
            {"sync_max_parallel_users": 0},
            {"sync_interval_minutes": -1},
            {"http_timeout": 0},
            {"log_level": "LOUD"},
        ],
    )
    def test_invalid_values(self, overrides):
        with pytest.raises(ValidationError):
            load_settings(**overrides)


class TestSettingsFields:
    def test_empty_jwt_secret_is_generated(self):
        first = Settings(jwt_secret_key="")
        second = Settings(jwt_secret_key="")
        assert first.jwt_secret_key
        assert first.jwt_secret_key != second.jwt_secret_key

    def test_log_level_is_normalized(self):
        assert Settings(log_level="debug").log_level == "DEBUG"

    @pytest.mark.parametrize(
        "origins,expected",
        [
            ("*", ["*"]),
            ("http://a.example, http://b.example,", ["http://a.example", "http://b.example"]),
        ],
    )
    def test_cors_origins_list(self, origins, expected):
        assert Settings(cors_origins=origins).cors_origins_list == expected


class TestSettingsToEnv:
    def test_environment_rebuilds_resolved_settings(self, monkeypatch):
        """Settings exported for the reloader read back unchanged.

        导出的环境变量在子进程中应还原出完全相同的配置。
        """
        resolved = load_settings(
            database_url="sqlite+aiosqlite:///reload.db",
            sync_interval_minutes=2.5,
            jwt_secret_key="s3cret",
            allow_registration=False,
        )

        env = settings_to_env(resolved)
        for name, value in env.items():
            monkeypatch.setenv(name, value)

        assert env["DATABASE_URL"] == "sqlite+aiosqlite:///reload.db"
        assert Settings().model_dump() == resolved.model_dump()
