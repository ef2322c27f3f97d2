"""Tests for CLI commands."""

import json
import os
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from pidscope.cli import main
from pidscope.inspector import Inspector


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    """A config path that does not exist, so defaults are used."""
    return tmp_path / "config.toml"


@pytest.fixture
def fake_inspector(provider):
    with patch("pidscope.cli._make_inspector", return_value=Inspector(provider)) as mock:
        yield mock


class TestReportCommand:
    """Tests for the report command."""

    def test_report_all_sections(self, runner, config_path, fake_inspector):
        result = runner.invoke(main, ["report", "4242", "--config", str(config_path)])
        assert result.exit_code == 0
        assert "PROCESS INFORMATION" in result.output
        assert "THREAD INFORMATION" in result.output
        assert "SOCKET INFORMATION" in result.output

    def test_report_single_section(self, runner, config_path, fake_inspector):
        result = runner.invoke(
            main, ["report", "4242", "-s", "threads", "--config", str(config_path)]
        )
        assert result.exit_code == 0
        assert "THREAD INFORMATION" in result.output
        assert "PROCESS INFORMATION" not in result.output

    def test_report_json(self, runner, config_path, fake_inspector):
        result = runner.invoke(main, ["report", "4242", "--json", "--config", str(config_path)])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["process"]["name"] == "worker"
        assert data["threads"]["threads"][1]["affinity"] == "0,2,4,6"

    def test_report_unknown_pid_is_not_an_error(self, runner, config_path, fake_inspector):
        result = runner.invoke(main, ["report", "99999", "--config", str(config_path)])
        assert result.exit_code == 0
        assert "Invalid PID or process has no memory context" in result.output

    def test_report_invalid_pid(self, runner, config_path, fake_inspector):
        """Unparsable PIDs are reported and never reach the provider."""
        result = runner.invoke(main, ["report", "abc", "--config", str(config_path)])
        assert result.exit_code == 1
        assert "Invalid PID: 'abc'" in result.output
        fake_inspector.assert_not_called()

    def test_report_current_process(self, runner, config_path):
        """End to end against the real provider."""
        result = runner.invoke(main, ["report", str(os.getpid()), "--config", str(config_path)])
        assert result.exit_code == 0
        assert f"PID:            {os.getpid()}" in result.output
        assert "Total threads:" in result.output

    def test_report_bad_config(self, runner, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text("[report\n")
        result = runner.invoke(main, ["report", "1", "--config", str(path)])
        assert result.exit_code != 0
        assert "Failed to parse config file" in result.output


class TestInteractiveCommand:
    """Tests for the interactive command."""

    def test_repeats_until_end_of_input(self, runner, config_path, fake_inspector):
        result = runner.invoke(
            main, ["interactive", "--config", str(config_path)], input="4242\nabc\n4242\n"
        )
        assert result.exit_code == 0
        assert result.output.count("PROCESS INFORMATION") == 2
        assert result.output.count("Enter the process id:") == 4
        assert "Invalid PID: 'abc'" in result.output

    def test_long_input_is_bounded(self, runner, config_path, fake_inspector):
        result = runner.invoke(
            main, ["interactive", "--config", str(config_path)], input="4242" + "0" * 30 + "\n"
        )
        assert result.exit_code == 0
        assert "PID:            4242000000000000000" not in result.output
        assert "Invalid PID or process has no memory context" in result.output


class TestConfigInitCommand:
    """Tests for the config-init command."""

    def test_creates_config(self, runner, config_path):
        result = runner.invoke(main, ["config-init", "--config", str(config_path)])
        assert result.exit_code == 0
        assert config_path.exists()
        assert "Created config" in result.output

    def test_does_not_overwrite(self, runner, config_path):
        config_path.write_text("# mine\n")
        result = runner.invoke(main, ["config-init", "--config", str(config_path)])
        assert "already exists" in result.output
        assert config_path.read_text() == "# mine\n"

    def test_force_overwrites(self, runner, config_path):
        config_path.write_text("# mine\n")
        result = runner.invoke(main, ["config-init", "--force", "--config", str(config_path)])
        assert result.exit_code == 0
        assert "[report]" in config_path.read_text()
