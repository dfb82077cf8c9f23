"""
Tests for the CLI module.

Commands run through click's CliRunner against files written to tmp_path.
"""

import json
import logging

import pytest
import yaml
from click.testing import CliRunner

from launch_visibility.cli import main
from launch_visibility.utils import LOG_LEVEL_ENV_VAR


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_logging(monkeypatch):
    monkeypatch.delenv(LOG_LEVEL_ENV_VAR, raising=False)
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "visibility.yaml"
    path.write_text(yaml.safe_dump({"cache": {"backend": "memory"}}))
    return str(path)


@pytest.fixture
def sqlite_config_file(tmp_path):
    path = tmp_path / "sqlite.yaml"
    path.write_text(yaml.safe_dump({
        "cache": {"backend": "sqlite", "path": str(tmp_path / "cache.db")}
    }))
    return str(path)


@pytest.fixture
def launches_file(tmp_path, launch_descriptor):
    path = tmp_path / "launches.json"
    path.write_text(json.dumps({"count": 1, "results": [launch_descriptor]}))
    return str(path)


@pytest.fixture
def telemetry_dir(tmp_path, frames):
    directory = tmp_path / "telemetry"
    directory.mkdir()
    (directory / "crew-10.json").write_text(json.dumps(frames))
    return str(directory)


def _invoke(runner, config_path, *args):
    return runner.invoke(main, ["--log-level", "ERROR", "--config", config_path, *args])


class TestMainGroup:
    """Tests for the main CLI group."""

    def test_main_help(self, cli_runner) -> None:
        result = cli_runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "Launch Visibility" in result.output
        for command in ("assess", "trajectory", "sun", "clear-cache"):
            assert command in result.output

    def test_invalid_log_level(self, cli_runner) -> None:
        result = cli_runner.invoke(main, ["--log-level", "LOUD", "sun"])
        assert result.exit_code != 0


class TestAssessCommand:
    def test_json_output(self, cli_runner, config_file, launches_file, telemetry_dir) -> None:
        result = _invoke(
            cli_runner, config_file, "assess", launches_file,
            "--telemetry-dir", telemetry_dir, "--format", "json",
        )
        assert result.exit_code == 0, result.output
        payload = json.loads(result.output)
        assert len(payload) == 1
        assert payload[0]["launchId"] == "f1b2c3d4"
        assert payload[0]["source"] == "telemetry"
        assert payload[0]["confidence"] == "confirmed"
        assert payload[0]["likelihood"] in ("high", "medium", "low", "none")

    def test_table_output(self, cli_runner, config_file, launches_file) -> None:
        result = _invoke(cli_runner, config_file, "assess", launches_file)
        assert result.exit_code == 0, result.output
        assert "Likelihood" in result.output
        assert "Falcon 9 Block 5 | Crew-10" in result.output
        assert "Observer: Bermuda" in result.output

    def test_invalid_records_skipped(self, cli_runner, config_file, tmp_path, launch_descriptor) -> None:
        path = tmp_path / "mixed.json"
        path.write_text(json.dumps([{"id": "broken"}, launch_descriptor]))
        result = _invoke(cli_runner, config_file, "assess", str(path))
        assert result.exit_code == 0
        assert "Skipping launch broken" in result.output
        assert "Crew-10" in result.output

    def test_no_valid_launches(self, cli_runner, config_file, tmp_path) -> None:
        path = tmp_path / "empty.json"
        path.write_text("[]")
        result = _invoke(cli_runner, config_file, "assess", str(path))
        assert result.exit_code == 1
        assert "No valid launches found" in result.output

    def test_bad_config(self, cli_runner, tmp_path, launches_file) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text(yaml.safe_dump({"cache": {"backend": "redis"}}))
        result = _invoke(cli_runner, str(path), "assess", launches_file)
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_missing_file(self, cli_runner, config_file) -> None:
        result = _invoke(cli_runner, config_file, "assess", "does-not-exist.json")
        assert result.exit_code != 0


class TestTrajectoryCommand:
    def test_json_output(self, cli_runner, config_file, launches_file, telemetry_dir) -> None:
        result = _invoke(
            cli_runner, config_file, "trajectory", launches_file,
            "--telemetry-dir", telemetry_dir, "--format", "json",
        )
        assert result.exit_code == 0, result.output
        payload = json.loads(result.output)
        assert payload["source"] == "telemetry"
        assert payload["mission_ref"] == "crew-10"
        assert len(payload["points"]) == 21

    def test_table_output(self, cli_runner, config_file, launches_file) -> None:
        result = _invoke(cli_runner, config_file, "trajectory", launches_file)
        assert result.exit_code == 0, result.output
        assert "Source: orbital_mechanics" in result.output
        assert "Direction:" in result.output

    def test_visible_only(self, cli_runner, config_file, launches_file, telemetry_dir) -> None:
        result = _invoke(
            cli_runner, config_file, "trajectory", launches_file,
            "--telemetry-dir", telemetry_dir, "--visible-only",
        )
        assert result.exit_code == 0, result.output
        assert "Visible T+" in result.output
        assert " no\n" not in result.output


class TestSunCommand:
    def test_night_at_bermuda(self, cli_runner, config_file) -> None:
        result = _invoke(cli_runner, config_file, "sun", "--time", "2025-03-15T04:00:00Z")
        assert result.exit_code == 0, result.output
        assert "Solar elevation:" in result.output
        assert "Twilight: Night" in result.output

    def test_daytime_elsewhere(self, cli_runner, config_file) -> None:
        result = _invoke(
            cli_runner, config_file, "sun",
            "--lat", "28.56", "--lng", "-80.58", "--time", "2025-06-21 17:00:00",
        )
        assert result.exit_code == 0, result.output
        assert "Twilight: Daytime" in result.output

    def test_invalid_coordinates(self, cli_runner, config_file) -> None:
        result = _invoke(cli_runner, config_file, "sun", "--lat", "95")
        assert result.exit_code == 1
        assert "Invalid coordinates" in result.output

    def test_invalid_time(self, cli_runner, config_file) -> None:
        result = _invoke(cli_runner, config_file, "sun", "--time", "soon")
        assert result.exit_code == 1
        assert "Error:" in result.output


class TestClearCacheCommand:
    def test_memory_backend(self, cli_runner, config_file) -> None:
        result = _invoke(cli_runner, config_file, "clear-cache")
        assert result.exit_code == 0
        assert "in-memory" in result.output

    def test_sqlite_backend(self, cli_runner, sqlite_config_file, launches_file) -> None:
        assessed = _invoke(cli_runner, sqlite_config_file, "assess", launches_file)
        assert assessed.exit_code == 0, assessed.output

        result = _invoke(cli_runner, sqlite_config_file, "clear-cache", "--launch-id", "f1b2c3d4")
        assert result.exit_code == 0, result.output
        assert "Removed 2 cache entries" in result.output

        again = _invoke(cli_runner, sqlite_config_file, "clear-cache")
        assert "Removed 0 cache entries" in again.output
