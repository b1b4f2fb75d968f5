"""
Centralized configuration with environment variable overrides.

Scheduling constants (slot granularity, fallback business hours, the
maximum appointment length) live here so the engines never hardcode them.
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import time
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from salon_scheduler.logging_context import RequestIdFilter

load_dotenv()

logger = logging.getLogger(__name__)

KNOWN_CATEGORIES = ("bath", "haircut", "nail", "specialty", "package")


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_time(env_var: str, default: str) -> time:
    """Parse an HH:MM wall-clock time from an env var."""
    raw = os.getenv(env_var, default)
    try:
        return time.fromisoformat(raw.strip())
    except (ValueError, TypeError, AttributeError):
        raise ValueError(
            f"Invalid HH:MM time for {env_var}: {raw!r}"
        ) from None


def _csv_tuple(env_var: str, default: str) -> tuple[str, ...]:
    raw = os.getenv(env_var, default)
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class SchedulingConfig:
    """Slot grid and fallback business-hours settings."""

    slot_granularity_minutes: int = _safe_int("SLOT_GRANULARITY_MINUTES", "30")
    default_open_time: time = _safe_time("DEFAULT_OPEN_TIME", "08:00")
    default_close_time: time = _safe_time("DEFAULT_CLOSE_TIME", "18:00")
    default_timezone: str = os.getenv("DEFAULT_TIMEZONE", "UTC")
    max_appointment_minutes: int = _safe_int("MAX_APPOINTMENT_MINUTES", "480")
    range_days: int = _safe_int("RANGE_DAYS", "7")


@dataclass(frozen=True)
class CapabilityConfig:
    """Service categories every active groomer may take without a matching specialty."""

    baseline_categories: tuple[str, ...] = _csv_tuple(
        "BASELINE_CATEGORIES", "bath,haircut,nail"
    )


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    scheduling: SchedulingConfig = field(default_factory=SchedulingConfig)
    capability: CapabilityConfig = field(default_factory=CapabilityConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    service_name: str = os.getenv("SERVICE_NAME", "salon-scheduler")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    scheduling = config.scheduling
    if scheduling.slot_granularity_minutes < 1:
        raise ValueError(
            "SLOT_GRANULARITY_MINUTES must be >= 1, "
            f"got {scheduling.slot_granularity_minutes}"
        )
    if scheduling.default_open_time >= scheduling.default_close_time:
        raise ValueError(
            "DEFAULT_OPEN_TIME must be before DEFAULT_CLOSE_TIME, got "
            f"{scheduling.default_open_time} - {scheduling.default_close_time}"
        )
    if scheduling.max_appointment_minutes < 1:
        raise ValueError(
            "MAX_APPOINTMENT_MINUTES must be >= 1, "
            f"got {scheduling.max_appointment_minutes}"
        )
    if scheduling.range_days < 1:
        raise ValueError(f"RANGE_DAYS must be >= 1, got {scheduling.range_days}")
    try:
        ZoneInfo(scheduling.default_timezone)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(
            f"DEFAULT_TIMEZONE is not a known IANA zone: {scheduling.default_timezone!r}"
        ) from None

    unknown = [c for c in config.capability.baseline_categories if c not in KNOWN_CATEGORIES]
    if unknown:
        raise ValueError(f"BASELINE_CATEGORIES contains unknown categories: {unknown}")


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s [%(request_id)s]: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, RequestIdFilter) for f in handler.filters):
            handler.addFilter(RequestIdFilter())
    logger.info("Configuration loaded for '%s'", config.service_name)
    return config


# Singleton instance
settings = load_config()
