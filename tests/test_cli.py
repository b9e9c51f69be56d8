"""
Tests for CLI commands.

Uses typer's CliRunner to test CLI commands without actual execution.
"""

import pytest
from typer.testing import CliRunner

from strata.cli.main import app

runner = CliRunner()

SCHEMA_SOURCE = '''
from dataclasses import dataclass, field


@dataclass
class Server:
    host: str = "localhost"
    port: int = 8080


@dataclass
class Settings:
    name: str = "demo"
    server: Server = field(default_factory=Server)


class NotASchema:
    pass
'''


@pytest.fixture
def schema_file(tmp_path):
    path = tmp_path / "cli_settings.py"
    path.write_text(SCHEMA_SOURCE)
    return path


class TestVersion:
    """Tests for --version flag."""

    def test_version_flag(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "strata version" in result.output


class TestHelp:
    """Tests for help output."""

    def test_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "keys" in result.output
        assert "show" in result.output

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert result.exit_code == 0
        assert "strata" in result.output.lower()

    def test_show_help(self):
        result = runner.invoke(app, ["show", "--help"])
        assert result.exit_code == 0
        assert "--env-prefix" in result.output


class TestKeys:
    """Tests for keys command."""

    def test_lists_keys_and_env_vars(self, schema_file):
        result = runner.invoke(app, ["keys", f"{schema_file}:Settings", "--env-prefix", "APP"])
        assert result.exit_code == 0
        assert "server.port" in result.output
        assert "APP_SERVER_PORT" in result.output
        assert "APP_NAME" in result.output

    def test_bad_reference(self):
        result = runner.invoke(app, ["keys", "no-colon"])
        assert result.exit_code != 0

    def test_not_a_dataclass(self, schema_file):
        result = runner.invoke(app, ["keys", f"{schema_file}:NotASchema"])
        assert result.exit_code != 0


class TestShow:
    """Tests for show command."""

    def test_sources(self, schema_file, tmp_path, monkeypatch):
        (tmp_path / "config.yaml").write_text("server:\n  host: filehost\n")
        monkeypatch.setenv("APP_SERVER_PORT", "9090")
        result = runner.invoke(
            app,
            ["show", f"{schema_file}:Settings", "--env-prefix", "APP", "--config-path", str(tmp_path)],
        )
        assert result.exit_code == 0
        assert "9090" in result.output
        assert "ENVIRONMENT" in result.output
        assert "filehost" in result.output
        assert "FILE" in result.output
        assert "DEFAULT" in result.output

    def test_parse_error_exits_with_error(self, schema_file, tmp_path):
        (tmp_path / "config.yaml").write_text(":\n  invalid: [")
        result = runner.invoke(app, ["show", f"{schema_file}:Settings", "--config-path", str(tmp_path)])
        assert result.exit_code == 1
        assert "Error parsing" in result.output

    def test_decode_error_exits_with_error(self, schema_file, tmp_path, monkeypatch):
        monkeypatch.setenv("APP_SERVER_PORT", "not-a-number")
        result = runner.invoke(
            app,
            ["show", f"{schema_file}:Settings", "--env-prefix", "APP", "--config-path", str(tmp_path)],
        )
        assert result.exit_code == 1
        assert "server.port" in result.output
