"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from app.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)

DEFAULT_TEXT_MODEL = "claude-sonnet-4-20250514"
DEFAULT_IMAGE_MODEL = "gemini-3-pro-image-preview"


@dataclass(frozen=True)
class Settings:
  """Typed settings for the SAT generation service."""

  environment: str
  allowed_origins: tuple[str, ...]
  debug: bool
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool
  pg_dsn: str | None
  pg_connect_timeout: int
  anthropic_api_key: str | None
  gemini_api_key: str | None
  text_model: str
  image_model: str
  image_bucket: str
  image_object_prefix: str
  gcs_storage_host: str | None
  gcp_project_id: str | None
  upload_url_ttl_seconds: int
  dlq_max_retries: int
  reading_data_batch_pacing_seconds: float
  reading_data_retry_pacing_seconds: float
  reading_question_batch_pacing_seconds: float
  reading_question_retry_pacing_seconds: float
  admin_token: str | None


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None
  pg_connect_timeout: int


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  if not raw:
    raise ValueError("SATGEN_ALLOWED_ORIGINS must be set to one or more origins.")

  origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

  if not origins:
    raise ValueError("SATGEN_ALLOWED_ORIGINS must include at least one origin.")

  if "*" in origins:
    raise ValueError("SATGEN_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _parse_pacing(name: str, default: str) -> float:
  """Parse a non-negative pacing delay in seconds."""
  try:
    value = float(os.getenv(name, default))
  except ValueError as exc:
    raise ValueError(f"{name} must be a number of seconds.") from exc
  if value < 0:
    raise ValueError(f"{name} must be zero or a positive number of seconds.")
  return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("SATGEN_ENV", "development").lower()

  # Toggle verbose error output and diagnostics in non-production environments.
  debug = _parse_bool(os.getenv("SATGEN_DEBUG"))

  log_max_bytes = int(os.getenv("SATGEN_LOG_MAX_BYTES", "5242880"))  # 5MB default
  if log_max_bytes <= 0:
    raise ValueError("SATGEN_LOG_MAX_BYTES must be a positive integer.")

  log_backup_count = int(os.getenv("SATGEN_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("SATGEN_LOG_BACKUP_COUNT must be zero or a positive integer.")

  upload_url_ttl_seconds = int(os.getenv("SATGEN_UPLOAD_URL_TTL_SECONDS", "900"))
  if upload_url_ttl_seconds <= 0:
    raise ValueError("SATGEN_UPLOAD_URL_TTL_SECONDS must be a positive integer.")

  # The retry budget is stamped onto each DLQ row at creation time.
  dlq_max_retries = int(os.getenv("SATGEN_DLQ_MAX_RETRIES", "3"))
  if dlq_max_retries <= 0:
    raise ValueError("SATGEN_DLQ_MAX_RETRIES must be a positive integer.")

  database = get_database_settings()

  return Settings(
    environment=environment,
    allowed_origins=_parse_origins(os.getenv("SATGEN_ALLOWED_ORIGINS")),
    debug=debug,
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    log_http_4xx=_parse_bool(os.getenv("SATGEN_LOG_HTTP_4XX")),
    pg_dsn=database.pg_dsn,
    pg_connect_timeout=database.pg_connect_timeout,
    anthropic_api_key=_optional_str(os.getenv("ANTHROPIC_API_KEY")),
    gemini_api_key=_optional_str(os.getenv("GEMINI_API_KEY")),
    text_model=(os.getenv("SATGEN_TEXT_MODEL") or DEFAULT_TEXT_MODEL).strip(),
    image_model=(os.getenv("SATGEN_IMAGE_MODEL") or DEFAULT_IMAGE_MODEL).strip(),
    image_bucket=os.getenv("SATGEN_IMAGE_BUCKET", "satgen-figures"),
    image_object_prefix=(os.getenv("SATGEN_IMAGE_OBJECT_PREFIX") or "figures").strip().strip("/"),
    gcs_storage_host=_optional_str(os.getenv("GCS_STORAGE_HOST")),
    gcp_project_id=_optional_str(os.getenv("GCP_PROJECT_ID")),
    upload_url_ttl_seconds=upload_url_ttl_seconds,
    dlq_max_retries=dlq_max_retries,
    reading_data_batch_pacing_seconds=_parse_pacing("SATGEN_READING_DATA_BATCH_PACING_SECONDS", "3"),
    reading_data_retry_pacing_seconds=_parse_pacing("SATGEN_READING_DATA_RETRY_PACING_SECONDS", "3"),
    reading_question_batch_pacing_seconds=_parse_pacing("SATGEN_READING_QUESTION_BATCH_PACING_SECONDS", "0.5"),
    reading_question_retry_pacing_seconds=_parse_pacing("SATGEN_READING_QUESTION_RETRY_PACING_SECONDS", "2"),
    admin_token=_optional_str(os.getenv("SATGEN_ADMIN_TOKEN")),
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load database settings without requiring web-runtime configuration like CORS."""
  # Keep database configuration isolated so offline scripts don't require unrelated env vars.
  debug = _parse_bool(os.getenv("SATGEN_DEBUG"))
  pg_connect_timeout = int(os.getenv("SATGEN_PG_CONNECT_TIMEOUT", "5"))
  if pg_connect_timeout <= 0:
    raise ValueError("SATGEN_PG_CONNECT_TIMEOUT must be a positive integer.")

  # Support fallback to DATABASE_URL for hosted platforms.
  pg_dsn = os.getenv("SATGEN_PG_DSN") or os.getenv("DATABASE_URL")

  return DatabaseSettings(debug=debug, pg_dsn=pg_dsn, pg_connect_timeout=pg_connect_timeout)


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value
