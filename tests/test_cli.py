"""
Test Suite: Command Line
========================

`campeiro serve` binds where the settings say unless told otherwise.
"""

import pytest
import uvicorn
from typer.testing import CliRunner

from campeiro import cli
from campeiro.core import settings as settings_module

from conftest import make_settings

runner = CliRunner()


@pytest.fixture
def served(monkeypatch):
    calls = []
    monkeypatch.setattr(uvicorn, "run", lambda app, **kw: calls.append((app, kw)))
    monkeypatch.setattr(
        settings_module, "get_settings", lambda: make_settings(host="127.0.0.1", port=9001)
    )
    return calls


class TestServe:

    def test_defaults_come_from_settings(self, served):
        result = runner.invoke(cli.app, ["serve"])

        assert result.exit_code == 0, result.output
        ((target, options),) = served
        assert target == "campeiro.gateway.app:create_app"
        assert options["factory"] is True
        assert options["host"] == "127.0.0.1"
        assert options["port"] == 9001

    def test_flags_override_settings(self, served):
        result = runner.invoke(cli.app, ["serve", "--host", "0.0.0.0", "--port", "8080"])

        assert result.exit_code == 0, result.output
        ((_, options),) = served
        assert options["host"] == "0.0.0.0"
        assert options["port"] == 8080

    def test_reload_forces_single_worker(self, served):
        runner.invoke(cli.app, ["serve", "--workers", "4", "--reload"])

        ((_, options),) = served
        assert options["workers"] == 1
        assert options["reload"] is True
