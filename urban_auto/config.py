"""
Centralized configuration with environment variable overrides.

Backend endpoints, session and location tuning, and booking defaults are
all configurable here. Components receive these values through their
constructors; nothing reads the environment directly.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from urban_auto.logging_context import UserIdFilter

load_dotenv()

logger = logging.getLogger(__name__)


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class BackendConfig:
    """Hosted backend (auth, tables) and server endpoint settings."""

    url: str = os.getenv("SUPABASE_URL", "http://localhost:54321").rstrip("/")
    anon_key: str = os.getenv("SUPABASE_ANON_KEY", "")
    service_role_key: str = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")
    signup_endpoint_url: str = os.getenv(
        "SIGNUP_ENDPOINT_URL", "http://localhost:3000/api/auth/signup"
    )
    profiles_table: str = os.getenv("PROFILES_TABLE", "profiles")
    bookings_table: str = os.getenv("BOOKINGS_TABLE", "bookings")
    http_timeout_sec: float = _safe_float("HTTP_TIMEOUT", "15.0")


@dataclass(frozen=True)
class SessionConfig:
    """Session bootstrap settings."""

    bootstrap_timeout_sec: float = _safe_float("SESSION_BOOTSTRAP_TIMEOUT", "5.0")


@dataclass(frozen=True)
class LocationConfig:
    """Geolocation sampling and reverse-geocoding settings."""

    sample_count: int = _safe_int("LOCATION_SAMPLE_COUNT", "5")
    fix_timeout_sec: float = _safe_float("LOCATION_FIX_TIMEOUT", "10.0")
    sample_pause_sec: float = _safe_float("LOCATION_SAMPLE_PAUSE", "1.0")
    advisory_accuracy: float = _safe_float("LOCATION_ADVISORY_ACCURACY", "100.0")
    nominatim_url: str = os.getenv(
        "NOMINATIM_BASE_URL", "https://nominatim.openstreetmap.org"
    ).rstrip("/")
    nominatim_user_agent: str = os.getenv("NOMINATIM_USER_AGENT", "UrbanAuto-App")
    geocode_language: str = os.getenv("GEOCODE_LANGUAGE", "en")
    mappls_token: str = os.getenv("MAPPLS_TOKEN", "")


@dataclass(frozen=True)
class BookingConfig:
    """Booking defaults applied when the caller leaves a value unset."""

    default_total_amount: float = _safe_float("BOOKING_DEFAULT_TOTAL", "0")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    backend: BackendConfig = field(default_factory=BackendConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    location: LocationConfig = field(default_factory=LocationConfig)
    booking: BookingConfig = field(default_factory=BookingConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    app_name: str = os.getenv("APP_NAME", "Urban Auto")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if config.session.bootstrap_timeout_sec <= 0:
        raise ValueError(
            "SESSION_BOOTSTRAP_TIMEOUT must be > 0, "
            f"got {config.session.bootstrap_timeout_sec}"
        )
    if config.location.sample_count < 1:
        raise ValueError(
            f"LOCATION_SAMPLE_COUNT must be >= 1, got {config.location.sample_count}"
        )
    if config.location.fix_timeout_sec <= 0:
        raise ValueError(
            f"LOCATION_FIX_TIMEOUT must be > 0, got {config.location.fix_timeout_sec}"
        )
    if config.location.sample_pause_sec < 0:
        raise ValueError(
            f"LOCATION_SAMPLE_PAUSE must be >= 0, got {config.location.sample_pause_sec}"
        )
    if config.location.advisory_accuracy <= 0:
        raise ValueError(
            "LOCATION_ADVISORY_ACCURACY must be > 0, "
            f"got {config.location.advisory_accuracy}"
        )
    if config.booking.default_total_amount < 0:
        raise ValueError(
            f"BOOKING_DEFAULT_TOTAL must be >= 0, got {config.booking.default_total_amount}"
        )
    if config.backend.http_timeout_sec <= 0:
        raise ValueError(
            f"HTTP_TIMEOUT must be > 0, got {config.backend.http_timeout_sec}"
        )
    if not config.backend.url.startswith(("http://", "https://")):
        raise ValueError(f"SUPABASE_URL must be an http(s) URL, got {config.backend.url!r}")


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s [user=%(user_id)s]: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, UserIdFilter) for f in handler.filters):
            handler.addFilter(UserIdFilter())
    logger.info("Configuration loaded for '%s'", config.app_name)
    return config


# Singleton instance
settings = load_config()
