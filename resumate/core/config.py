from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _get_env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


def _get_env_bool(name: str, default: bool) -> bool:
    raw = _get_env(name, None)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _get_env_int(name: str, default: int) -> int:
    raw = _get_env(name, None)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_env_list(name: str, default: list[str]) -> tuple[str, ...]:
    raw = _get_env(name, None)
    if raw is None:
        return tuple(default)
    values = [item.strip() for item in raw.split(",")]
    clean = [item for item in values if item]
    return tuple(clean) if clean else tuple(default)


@dataclass(frozen=True)
class Settings:
    api_key: str | None
    log_level: str
    sentry_dsn: str | None
    rate_limit: str
    rate_limit_enabled: bool
    cors_allowed_origins: tuple[str, ...]
    cors_allow_origin_regex: str | None
    records_db_path: str
    object_store_dir: str
    object_store_public_base_url: str
    analytics_enabled: bool
    analytics_db_path: str
    analytics_retention_days: int
    job_description_max_chars: int
    feedback_max_chars: int
    max_upload_mb: int
    raster_dpi: int


settings = Settings(
    api_key=_get_env("API_KEY"),
    log_level=_get_env("LOG_LEVEL", "INFO") or "INFO",
    sentry_dsn=_get_env("SENTRY_DSN"),
    rate_limit=_get_env("RATE_LIMIT", "30/minute") or "30/minute",
    rate_limit_enabled=_get_env_bool("RATE_LIMIT_ENABLED", True),
    cors_allowed_origins=_get_env_list(
        "CORS_ALLOWED_ORIGINS",
        [
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:3000",
        ],
    ),
    cors_allow_origin_regex=_get_env("CORS_ALLOW_ORIGIN_REGEX"),
    records_db_path=_get_env("RECORDS_DB_PATH", "data/resumes.db") or "data/resumes.db",
    object_store_dir=_get_env("OBJECT_STORE_DIR", "data/objects") or "data/objects",
    object_store_public_base_url=(_get_env("OBJECT_STORE_PUBLIC_BASE_URL", "/files") or "/files").rstrip("/"),
    analytics_enabled=_get_env_bool("ANALYTICS_ENABLED", True),
    analytics_db_path=_get_env("ANALYTICS_DB_PATH", "data/analytics.db") or "data/analytics.db",
    analytics_retention_days=_get_env_int("ANALYTICS_RETENTION_DAYS", 180),
    job_description_max_chars=_get_env_int("JOB_DESCRIPTION_MAX_CHARS", 2000),
    feedback_max_chars=_get_env_int("FEEDBACK_MAX_CHARS", 10000),
    max_upload_mb=_get_env_int("MAX_UPLOAD_MB", 10),
    raster_dpi=_get_env_int("RASTER_DPI", 150),
)

if settings.job_description_max_chars < 1 or settings.feedback_max_chars < 1:
    raise RuntimeError("JOB_DESCRIPTION_MAX_CHARS and FEEDBACK_MAX_CHARS must be positive.")

if settings.raster_dpi < 36 or settings.raster_dpi > 600:
    raise RuntimeError("RASTER_DPI must be between 36 and 600.")
