"""Application configuration loaded from environment variables."""

from __future__ import annotations

import datetime
import math
import os
import urllib.parse
from dataclasses import dataclass
from functools import lru_cache

from devicepush.utils.env import load_env_file, resolve_env_path


def load_local_env() -> list[str]:
  """Apply the optional .env file; variables already in the environment take precedence."""
  return load_env_file(resolve_env_path(), override=False)


load_local_env()

FCM_MESSAGING_SCOPE = "https://www.googleapis.com/auth/firebase.messaging"
FCM_SEND_URL_TEMPLATE = "https://fcm.googleapis.com/v1/projects/{project_id}/messages:send"
# Google issues service-account access tokens with a one hour lifetime.
PROVIDER_TOKEN_VALIDITY = datetime.timedelta(minutes=60)


@dataclass(frozen=True)
class Settings:
  """Typed settings for push delivery."""

  environment: str
  debug: bool
  log_dir: str
  log_max_bytes: int
  log_backup_count: int
  fcm_endpoint: str | None
  fcm_project_id: str | None
  service_account_json_path: str | None
  http_timeout_seconds: float
  credential_timeout_seconds: float
  token_cache_ttl_seconds: int
  concurrent_delivery: bool
  pg_dsn: str | None
  pg_connect_timeout: int

  @property
  def token_cache_ttl(self) -> datetime.timedelta:
    """Return the access token cache lifetime as a timedelta."""
    return datetime.timedelta(seconds=self.token_cache_ttl_seconds)


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


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value


def _first_env(*names: str) -> str | None:
  """Return the first non-empty value across a list of fallback variables."""
  for name in names:
    value = _optional_str(os.getenv(name))
    if value is not None:
      return value
  return None


def _env_int(name: str, default: str) -> int:
  raw = os.getenv(name, default).strip()
  try:
    return int(raw)
  except ValueError as exc:
    raise ValueError(f"{name} must be an integer, got {raw!r}.") from exc


def _positive_int(name: str, default: str) -> int:
  value = _env_int(name, default)
  if value <= 0:
    raise ValueError(f"{name} must be a positive integer.")
  return value


def _positive_float(name: str, default: str) -> float:
  raw = os.getenv(name, default).strip()
  try:
    value = float(raw)
  except ValueError as exc:
    raise ValueError(f"{name} must be a number, got {raw!r}.") from exc
  if not math.isfinite(value) or value <= 0:
    raise ValueError(f"{name} must be a positive number.")
  return value


def _resolve_endpoint(raw_endpoint: str | None, project_id: str | None) -> str | None:
  """Pick the explicit endpoint or derive the project-scoped FCM v1 URL."""
  endpoint = raw_endpoint
  if endpoint is None and project_id:
    endpoint = FCM_SEND_URL_TEMPLATE.format(project_id=project_id)

  if endpoint is None:
    return None

  parsed = urllib.parse.urlparse(endpoint)
  if parsed.scheme.lower() != "https" or not parsed.hostname:
    raise ValueError("DEVICEPUSH_FCM_ENDPOINT must be an absolute https URL.")

  return endpoint


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("DEVICEPUSH_ENV", "development").strip().lower()
  debug = _parse_bool(os.getenv("DEVICEPUSH_DEBUG"))
  log_dir = (os.getenv("DEVICEPUSH_LOG_DIR") or "./logs").strip()

  log_max_bytes = _positive_int("DEVICEPUSH_LOG_MAX_BYTES", "5242880")  # 5MB default
  log_backup_count = _env_int("DEVICEPUSH_LOG_BACKUP_COUNT", "10")
  if log_backup_count < 0:
    raise ValueError("DEVICEPUSH_LOG_BACKUP_COUNT must be zero or a positive integer.")

  fcm_project_id = _first_env("DEVICEPUSH_FCM_PROJECT_ID", "FIREBASE_PROJECT_ID")
  fcm_endpoint = _resolve_endpoint(_optional_str(os.getenv("DEVICEPUSH_FCM_ENDPOINT")), fcm_project_id)
  service_account_json_path = _first_env("DEVICEPUSH_SERVICE_ACCOUNT_JSON_PATH", "FIREBASE_SERVICE_ACCOUNT_JSON_PATH", "GOOGLE_APPLICATION_CREDENTIALS")

  http_timeout_seconds = _positive_float("DEVICEPUSH_HTTP_TIMEOUT_SECONDS", "10")
  credential_timeout_seconds = _positive_float("DEVICEPUSH_CREDENTIAL_TIMEOUT_SECONDS", "10")

  # The cached token must expire before the provider-issued token does.
  token_cache_ttl_seconds = _positive_int("DEVICEPUSH_TOKEN_CACHE_TTL_SECONDS", "3300")
  if token_cache_ttl_seconds >= PROVIDER_TOKEN_VALIDITY.total_seconds():
    raise ValueError("DEVICEPUSH_TOKEN_CACHE_TTL_SECONDS must be shorter than the 3600 second provider token lifetime.")

  database = get_database_settings()

  return Settings(
    environment=environment,
    debug=debug,
    log_dir=log_dir,
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    fcm_endpoint=fcm_endpoint,
    fcm_project_id=fcm_project_id,
    service_account_json_path=service_account_json_path,
    http_timeout_seconds=http_timeout_seconds,
    credential_timeout_seconds=credential_timeout_seconds,
    token_cache_ttl_seconds=token_cache_ttl_seconds,
    concurrent_delivery=_parse_bool(os.getenv("DEVICEPUSH_CONCURRENT_DELIVERY")),
    pg_dsn=database.pg_dsn,
    pg_connect_timeout=database.pg_connect_timeout,
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load database settings without requiring push delivery configuration."""
  debug = _parse_bool(os.getenv("DEVICEPUSH_DEBUG"))
  pg_connect_timeout = _positive_int("DEVICEPUSH_PG_CONNECT_TIMEOUT", "5")

  # Support fallback to DATABASE_URL for hosted environments.
  pg_dsn = _optional_str(os.getenv("DEVICEPUSH_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL"))

  return DatabaseSettings(debug=debug, pg_dsn=pg_dsn, pg_connect_timeout=pg_connect_timeout)


def require_delivery_settings(settings: Settings) -> tuple[str, str]:
  """Return the endpoint and key path, failing fast when either is missing."""
  if not settings.fcm_endpoint:
    raise ValueError("DEVICEPUSH_FCM_ENDPOINT or DEVICEPUSH_FCM_PROJECT_ID must be set to deliver push notifications.")

  if not settings.service_account_json_path:
    raise ValueError("DEVICEPUSH_SERVICE_ACCOUNT_JSON_PATH must be set to deliver push notifications.")

  return settings.fcm_endpoint, settings.service_account_json_path
