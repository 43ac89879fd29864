"""
Tests for YAML configuration loading.
"""

from datetime import time
from pathlib import Path

import pytest
from pydantic import ValidationError

from slotengine.config import AppConfig, OperatingHoursConfig, SearchConfig, parse_clock


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestOperatingHoursConfig:

    def test_defaults_are_monday_to_saturday(self):
        hours = OperatingHoursConfig().to_operating_hours()

        assert hours.start == time(8, 0)
        assert hours.end == time(18, 0)
        assert hours.business_days == frozenset({0, 1, 2, 3, 4, 5})
        assert hours.step_minutes == 15

    def test_business_days_are_deduplicated(self):
        config = OperatingHoursConfig(business_days=[0, 1, 1, 4, 0])

        assert config.business_days == [0, 1, 4]

    def test_invalid_weekday_is_rejected(self):
        with pytest.raises(ValidationError):
            OperatingHoursConfig(business_days=[0, 7])

    def test_step_is_limited_to_an_hour(self):
        with pytest.raises(ValidationError):
            OperatingHoursConfig(step_minutes=90)

    def test_end_before_start_is_rejected(self):
        with pytest.raises(ValidationError):
            OperatingHoursConfig(start="18:00", end="08:00")

    def test_break_outside_hours_is_rejected(self):
        with pytest.raises(ValidationError):
            OperatingHoursConfig(breaks=[{"start": "07:00", "end": "08:30"}])

    def test_weekday_breaks(self):
        config = OperatingHoursConfig(
            breaks=[
                {"start": "13:00", "end": "14:00", "note": "Lunch"},
                {"start": "10:00", "end": "10:30", "day": 5},
            ]
        )

        breaks = config.to_operating_hours().breaks

        assert breaks[0].weekday is None
        assert breaks[0].note == "Lunch"
        assert breaks[1].weekday == 5

    def test_bad_clock_value(self):
        with pytest.raises(ValueError, match="HH:MM"):
            parse_clock("noon")


class TestAppConfig:

    def test_load_from_yaml(self, tmp_path):
        path = _write(
            tmp_path,
            """
timezone: Europe/Berlin
operating_hours:
  start: "09:00"
  end: "17:00"
  business_days: [0, 1, 2, 3, 4]
  step_minutes: 30
booking_store:
  base_url: https://store.example.com/api/
  organization_id: org-1
search:
  max_candidates: 100
snapshot_file: data/snapshot.yaml
""",
        )

        config = AppConfig.load_from_yaml(path)

        assert config.timezone == "Europe/Berlin"
        assert config.get_operating_hours().step_minutes == 30
        assert config.booking_store.base_url == "https://store.example.com/api"
        assert config.get_search_budget().max_candidates == 100
        assert config.snapshot_file == tmp_path / "data" / "snapshot.yaml"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            AppConfig.load_from_yaml(tmp_path / "missing.yaml")

    def test_non_mapping_root(self, tmp_path):
        path = _write(tmp_path, "- just\n- a list\n")

        with pytest.raises(ValueError, match="mapping"):
            AppConfig.load_from_yaml(path)

    def test_no_search_limits_means_no_budget(self):
        assert SearchConfig().to_budget() is None
        assert AppConfig().get_search_budget() is None
