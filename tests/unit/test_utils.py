"""
Tests for utility functions.
"""

import json
import logging
from datetime import datetime, timezone

import pytest

from launch_visibility.utils import (
    LOG_LEVEL_ENV_VAR,
    load_json_records,
    parse_datetime,
    setup_logging,
    validate_coordinates,
)


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestParseDatetime:
    @pytest.mark.parametrize("text", [
        "2025-03-15T04:00:00Z",
        "2025-03-15T04:00:00+00:00",
        "2025-03-15T00:00:00-04:00",
        "2025-03-15 04:00:00",
        "2025-03-15 04:00",
        "  2025-03-15T04:00:00Z  ",
    ])
    def test_formats(self, text) -> None:
        assert parse_datetime(text) == datetime(2025, 3, 15, 4, 0, tzinfo=timezone.utc)

    def test_date_only(self) -> None:
        assert parse_datetime("2025-03-15") == datetime(2025, 3, 15, tzinfo=timezone.utc)

    def test_result_is_utc(self) -> None:
        assert parse_datetime("2025-03-15T00:00:00-04:00").tzinfo == timezone.utc

    def test_invalid(self) -> None:
        with pytest.raises(ValueError, match="Could not parse"):
            parse_datetime("next tuesday")


class TestValidateCoordinates:
    @pytest.mark.parametrize("lat,lng,expected", [
        (32.3, -64.7, True),
        (90, 180, True),
        (-90, -180, True),
        (91, 0, False),
        (0, -181, False),
    ])
    def test_ranges(self, lat, lng, expected) -> None:
        assert validate_coordinates(lat, lng) is expected


class TestSetupLogging:
    def test_level(self, restore_root_logger, monkeypatch) -> None:
        monkeypatch.delenv(LOG_LEVEL_ENV_VAR, raising=False)
        setup_logging("ERROR")
        assert restore_root_logger.level == logging.ERROR
        assert len(restore_root_logger.handlers) == 1

    def test_env_override(self, restore_root_logger, monkeypatch) -> None:
        monkeypatch.setenv(LOG_LEVEL_ENV_VAR, "DEBUG")
        setup_logging("ERROR")
        assert restore_root_logger.level == logging.DEBUG

    def test_log_file(self, restore_root_logger, monkeypatch, tmp_path) -> None:
        monkeypatch.delenv(LOG_LEVEL_ENV_VAR, raising=False)
        log_file = tmp_path / "visibility.log"
        setup_logging("INFO", str(log_file))
        assert len(restore_root_logger.handlers) == 2
        for handler in restore_root_logger.handlers:
            handler.flush()
        assert "Logging configured" in log_file.read_text()
        for handler in restore_root_logger.handlers:
            handler.close()


class TestLoadJsonRecords:
    def test_list(self, tmp_path) -> None:
        path = tmp_path / "l.json"
        path.write_text(json.dumps([{"id": "a"}, {"id": "b"}]))
        assert [r["id"] for r in load_json_records(path)] == ["a", "b"]

    def test_single_record(self, tmp_path) -> None:
        path = tmp_path / "one.json"
        path.write_text(json.dumps({"id": "a"}))
        assert load_json_records(path) == [{"id": "a"}]

    def test_results_page(self, tmp_path) -> None:
        path = tmp_path / "page.json"
        path.write_text(json.dumps({"count": 1, "results": [{"id": "a"}]}))
        assert load_json_records(path) == [{"id": "a"}]
