"""Tests for main.py: application factory and command line entry point.

针对应用工厂与命令行入口的测试用例集合。
"""

from __future__ import annotations

import argparse
import os
from unittest.mock import patch

import pytest


class TestAppConfiguration:
    """Test FastAPI application configuration.

    验证 FastAPI 应用基础配置是否正确。
    """

    def test_app_title(self):
        """Verify the application title.

        Returns:
            None: This test does not return a value.
        """
        from main import app

        assert app.title == "FeedPulse"

    def test_routes_are_versioned(self):
        from main import API_PREFIX, app

        paths = set(app.openapi()["paths"])
        for path in (
            "/v1/auth/login",
            "/v1/feeds",
            "/v1/categories/{category_id}/mark",
            "/v1/entries/{entry_id}/save",
            "/v1/tags/entries",
            "/v1/users",
            "/v1/users/{user_id}",
            "/v1/import",
            "/v1/export",
            "/health",
        ):
            assert path in paths
        assert API_PREFIX == "/v1"

    def test_global_exception_handler_configured(self):
        """Verify global exception handler registration.

        验证全局异常处理器已注册。

        Returns:
            None: This test does not return a value.
        """
        from core.exceptions import FeedPulseError
        from main import app

        assert Exception in app.exception_handlers
        assert FeedPulseError in app.exception_handlers


class TestParseListen:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("127.0.0.1:8080", ("127.0.0.1", 8080)),
            (":9000", ("0.0.0.0", 9000)),
            ("[::1]:8443", ("::1", 8443)),
        ],
    )
    def test_valid(self, value, expected):
        from main import _parse_listen

        assert _parse_listen(value) == expected

    @pytest.mark.parametrize("value", ["localhost", "host:port", ""])
    def test_invalid(self, value):
        from main import _parse_listen

        with pytest.raises(argparse.ArgumentTypeError):
            _parse_listen(value)


class TestRun:
    """Verify the ``feedpulse`` command.

    验证命令行参数解析、配置错误退出码与服务启动参数。
    """

    def test_flags(self):
        from main import build_parser

        args = build_parser().parse_args(
            [
                "--db", "sqlite+aiosqlite:///x.db",
                "--listen", "127.0.0.1:9999",
                "--sync-interval", "5",
                "--jwt-secret", "s3cret",
                "--sync-now",
            ]
        )
        assert args.db == "sqlite+aiosqlite:///x.db"
        assert args.listen == ("127.0.0.1", 9999)
        assert args.sync_interval == 5.0
        assert args.jwt_secret == "s3cret"
        assert args.sync_now is True

    def test_invalid_config_exits_with_code_2(self, capsys):
        from main import run

        with patch("uvicorn.run") as mock_run, pytest.raises(SystemExit) as exc_info:
            run(["--sync-interval", "-5"])

        assert exc_info.value.code == 2
        mock_run.assert_not_called()
        assert "Invalid configuration" in capsys.readouterr().err

    def test_missing_config_file_exits_with_code_2(self, tmp_path):
        from main import run

        with patch("uvicorn.run") as mock_run, pytest.raises(SystemExit) as exc_info:
            run(["--config", str(tmp_path / "missing.yaml")])

        assert exc_info.value.code == 2
        mock_run.assert_not_called()

    def test_bad_listen_address_exits_with_code_2(self):
        from main import run

        with patch("uvicorn.run"), pytest.raises(SystemExit) as exc_info:
            run(["--listen", "nowhere"])

        assert exc_info.value.code == 2

    def test_serves_configured_address(self, tmp_path):
        from main import run

        db_url = f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}"
        with patch("uvicorn.run") as mock_run, patch("main.setup_logging"):
            run(["--db", db_url, "--listen", "127.0.0.1:9999", "--jwt-secret", "s3cret"])

        mock_run.assert_called_once()
        app = mock_run.call_args.args[0]
        assert app.state.settings.database_url == db_url
        assert app.state.settings.jwt_secret_key == "s3cret"
        assert mock_run.call_args.kwargs["host"] == "127.0.0.1"
        assert mock_run.call_args.kwargs["port"] == 9999

    def test_reload_keeps_command_line_settings(self, tmp_path):
        """``--reload`` serves an app built from the resolved settings.

        热重载模式下命令行参数经环境变量传给应用工厂，不能退回默认配置。
        """
        from main import SYNC_NOW_ENV, create_reload_app, run

        db_url = f"sqlite+aiosqlite:///{tmp_path / 'reload.db'}"
        with patch.dict(os.environ), patch("uvicorn.run") as mock_run, patch("main.setup_logging"):
            run(
                [
                    "--db", db_url,
                    "--jwt-secret", "s3cret",
                    "--sync-interval", "5",
                    "--sync-now",
                    "--reload",
                ]
            )
            assert os.environ[SYNC_NOW_ENV] == "1"
            app = create_reload_app()

        mock_run.assert_called_once()
        assert mock_run.call_args.args[0] == "main:create_reload_app"
        assert mock_run.call_args.kwargs["factory"] is True
        assert mock_run.call_args.kwargs["reload"] is True
        assert app.state.settings.database_url == db_url
        assert app.state.settings.jwt_secret_key == "s3cret"
        assert app.state.settings.sync_interval_minutes == 5
