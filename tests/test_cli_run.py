"""Tests for warbler.cli — ``warbler run``."""

import types
from unittest.mock import MagicMock, patch

import pytest

from warbler.app import App
from warbler.cli import main
from warbler.cli._resolve import resolve_app
from warbler.config import AppConfig


@pytest.fixture(autouse=True)
def _no_log_handlers(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    configure = MagicMock()
    monkeypatch.setattr("warbler.cli._run.configure_logging", configure)
    return configure


def _register(monkeypatch: pytest.MonkeyPatch, app: object, name: str = "_run_test_app") -> None:
    mod = types.ModuleType(name)
    mod.app = app  # type: ignore[attr-defined]
    monkeypatch.setitem(__import__("sys").modules, name, mod)


@pytest.fixture
def dev_app(monkeypatch: pytest.MonkeyPatch) -> App:
    app = App(config=AppConfig(host="127.0.0.1", port=3000, debug=True))
    _register(monkeypatch, app)
    return app


@pytest.fixture
def prod_app(monkeypatch: pytest.MonkeyPatch) -> App:
    app = App(config=AppConfig(host="0.0.0.0", port=8080))
    _register(monkeypatch, app)
    return app


class TestResolveApp:
    def test_module_and_attribute(self, dev_app: App) -> None:
        assert resolve_app("_run_test_app:app") is dev_app

    def test_bare_module_means_app(self, dev_app: App) -> None:
        assert resolve_app("_run_test_app") is dev_app

    def test_factory(self, monkeypatch: pytest.MonkeyPatch) -> None:
        app = App()
        _register(monkeypatch, lambda: app, "_factory_app")
        assert resolve_app("_factory_app:app") is app

    def test_not_an_app(self, monkeypatch: pytest.MonkeyPatch) -> None:
        _register(monkeypatch, 42, "_not_app")
        with pytest.raises(TypeError, match="not a warbler.App"):
            resolve_app("_not_app:app")


class TestDevRun:
    @patch("warbler.server.dev.run_dev_server")
    def test_defaults_from_config(self, mock_server: MagicMock, dev_app: App) -> None:
        main(["run", "_run_test_app:app"])
        args, kwargs = mock_server.call_args
        assert args == (dev_app, "127.0.0.1", 3000)
        assert kwargs["reload"] is True
        assert kwargs["app_path"] == "_run_test_app:app"

    @patch("warbler.server.dev.run_dev_server")
    def test_host_and_port_override(self, mock_server: MagicMock, dev_app: App) -> None:
        main(["run", "_run_test_app:app", "--host", "0.0.0.0", "--port", "9000"])
        args = mock_server.call_args[0]
        assert args[1:] == ("0.0.0.0", 9000)


class TestProductionRun:
    @patch("warbler.server.production.serve")
    def test_serve(self, mock_serve: MagicMock, prod_app: App) -> None:
        main(["run", "_run_test_app:app"])
        mock_serve.assert_called_once_with(prod_app, "0.0.0.0", 8080)
        assert prod_app.config.clustered is False

    @patch("warbler.server.production.serve")
    def test_cluster_flags(self, mock_serve: MagicMock, prod_app: App) -> None:
        main(["run", "_run_test_app:app", "--cluster", "--workers", "3"])
        app = mock_serve.call_args[0][0]
        assert app.config.clustered is True
        assert app.config.workers == 3

    @patch("warbler.server.production.serve")
    def test_logging_flags(
        self, mock_serve: MagicMock, prod_app: App, _no_log_handlers: MagicMock
    ) -> None:
        main(["run", "_run_test_app:app", "--log-format", "json", "--log-level", "debug"])
        _no_log_handlers.assert_called_once_with("debug", "json")


class TestErrors:
    def test_invalid_import_string(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["run", "nonexistent_module_xyz:app"])
        assert exc_info.value.code == 1
        assert "Error:" in capsys.readouterr().err

    def test_no_command_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 0
        assert "warbler" in capsys.readouterr().out
