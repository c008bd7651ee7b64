"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from speaksync.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)


@dataclass(frozen=True)
class Settings:
  """Typed settings for the SpeakSync service."""

  environment: str
  debug: bool
  allowed_origins: tuple[str, ...]
  log_max_bytes: int
  log_backup_count: int
  pg_dsn: str | None
  pg_connect_timeout: int
  gemini_api_key: str | None
  script_model: str
  extraction_model: str
  local_mirror_dir: Path
  user_id: str
  throttle_cooldown_seconds: float
  listing_ttl_minutes: int
  producer_timeout_seconds: float
  history_limit: int


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None
  pg_connect_timeout: int


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  if not raw:
    return ("http://localhost:3000",)

  origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

  if not origins:
    raise ValueError("SPEAKSYNC_ALLOWED_ORIGINS must include at least one origin.")

  if "*" in origins:
    raise ValueError("SPEAKSYNC_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value


def _positive_float(name: str, default: str) -> float:
  value = float(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive number.")
  return value


def _positive_int(name: str, default: str) -> int:
  value = int(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive integer.")
  return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("SPEAKSYNC_ENV", "development").lower()
  debug = _parse_bool(os.getenv("SPEAKSYNC_DEBUG"))

  log_max_bytes = _positive_int("SPEAKSYNC_LOG_MAX_BYTES", "5242880")  # 5MB default
  log_backup_count = int(os.getenv("SPEAKSYNC_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("SPEAKSYNC_LOG_BACKUP_COUNT must be zero or a positive integer.")

  # Cooldown and freshness windows mirror what the mobile client shipped with.
  throttle_cooldown_seconds = _positive_float("SPEAKSYNC_THROTTLE_COOLDOWN_SECONDS", "30")
  listing_ttl_minutes = _positive_int("SPEAKSYNC_LISTING_TTL_MINUTES", "10")
  producer_timeout_seconds = _positive_float("SPEAKSYNC_PRODUCER_TIMEOUT_SECONDS", "60")
  history_limit = _positive_int("SPEAKSYNC_HISTORY_LIMIT", "50")

  user_id = _optional_str(os.getenv("SPEAKSYNC_USER_ID")) or "user_dev_001"
  local_mirror_dir = Path(os.getenv("SPEAKSYNC_LOCAL_MIRROR_DIR", "./.speaksync/mirror")).expanduser()

  return Settings(
    environment=environment,
    debug=debug,
    allowed_origins=_parse_origins(os.getenv("SPEAKSYNC_ALLOWED_ORIGINS")),
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    pg_dsn=_optional_str(os.getenv("SPEAKSYNC_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL")),
    pg_connect_timeout=_positive_int("SPEAKSYNC_PG_CONNECT_TIMEOUT", "5"),
    gemini_api_key=_optional_str(os.getenv("GEMINI_API_KEY")),
    script_model=os.getenv("SPEAKSYNC_SCRIPT_MODEL", "gemini-2.5-flash"),
    extraction_model=os.getenv("SPEAKSYNC_EXTRACTION_MODEL", "gemini-2.0-flash-lite"),
    local_mirror_dir=local_mirror_dir,
    user_id=user_id,
    throttle_cooldown_seconds=throttle_cooldown_seconds,
    listing_ttl_minutes=listing_ttl_minutes,
    producer_timeout_seconds=producer_timeout_seconds,
    history_limit=history_limit,
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load database settings without requiring the rest of the service configuration."""
  # Migrations and scripts only need the DSN, so keep them off the full settings path.
  pg_connect_timeout = _positive_int("SPEAKSYNC_PG_CONNECT_TIMEOUT", "5")
  pg_dsn = _optional_str(os.getenv("SPEAKSYNC_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL"))
  return DatabaseSettings(debug=_parse_bool(os.getenv("SPEAKSYNC_DEBUG")), pg_dsn=pg_dsn, pg_connect_timeout=pg_connect_timeout)
