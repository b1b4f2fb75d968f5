"""Tests for configuration loading and validation."""

from dataclasses import replace
from datetime import time

import pytest

from salon_scheduler.config import (
    AppConfig,
    CapabilityConfig,
    SchedulingConfig,
    _csv_tuple,
    _safe_int,
    _safe_time,
    _validate_config,
)


def _with_scheduling(**changes) -> AppConfig:
    return replace(AppConfig(), scheduling=replace(SchedulingConfig(), **changes))


class TestConfigValidation:
    def test_default_config_passes_validation(self):
        _validate_config(AppConfig())  # should not raise

    def test_zero_granularity(self):
        with pytest.raises(ValueError, match="SLOT_GRANULARITY_MINUTES"):
            _validate_config(_with_scheduling(slot_granularity_minutes=0))

    def test_open_after_close(self):
        config = _with_scheduling(default_open_time=time(18, 0), default_close_time=time(8, 0))
        with pytest.raises(ValueError, match="DEFAULT_OPEN_TIME"):
            _validate_config(config)

    def test_zero_max_duration(self):
        with pytest.raises(ValueError, match="MAX_APPOINTMENT_MINUTES"):
            _validate_config(_with_scheduling(max_appointment_minutes=0))

    def test_zero_range_days(self):
        with pytest.raises(ValueError, match="RANGE_DAYS"):
            _validate_config(_with_scheduling(range_days=0))

    def test_unknown_timezone(self):
        with pytest.raises(ValueError, match="DEFAULT_TIMEZONE"):
            _validate_config(_with_scheduling(default_timezone="Mars/Olympus_Mons"))

    def test_unknown_baseline_category(self):
        config = replace(AppConfig(), capability=CapabilityConfig(baseline_categories=("laser",)))
        with pytest.raises(ValueError, match="BASELINE_CATEGORIES"):
            _validate_config(config)


class TestEnvParsing:
    def test_safe_int_reads_env(self, monkeypatch):
        monkeypatch.setenv("TEST_SLOT_MINUTES", "15")
        assert _safe_int("TEST_SLOT_MINUTES", "30") == 15

    def test_safe_int_default(self, monkeypatch):
        monkeypatch.delenv("TEST_SLOT_MINUTES", raising=False)
        assert _safe_int("TEST_SLOT_MINUTES", "30") == 30

    def test_safe_int_rejects_garbage(self, monkeypatch):
        monkeypatch.setenv("TEST_SLOT_MINUTES", "half-hour")
        with pytest.raises(ValueError, match="Invalid integer for TEST_SLOT_MINUTES"):
            _safe_int("TEST_SLOT_MINUTES", "30")

    def test_safe_time(self, monkeypatch):
        monkeypatch.setenv("TEST_OPEN", " 07:30 ")
        assert _safe_time("TEST_OPEN", "08:00") == time(7, 30)

    def test_safe_time_rejects_garbage(self, monkeypatch):
        monkeypatch.setenv("TEST_OPEN", "seven")
        with pytest.raises(ValueError, match="Invalid HH:MM time"):
            _safe_time("TEST_OPEN", "08:00")

    def test_csv_tuple(self, monkeypatch):
        monkeypatch.setenv("TEST_CATEGORIES", "bath, nail,,")
        assert _csv_tuple("TEST_CATEGORIES", "") == ("bath", "nail")
