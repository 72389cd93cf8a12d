"""Factory helpers for push notification dispatch."""

from __future__ import annotations

import httpx

from devicepush.config import FCM_MESSAGING_SCOPE, Settings, require_delivery_settings
from devicepush.notifications.contracts import CredentialProvider, DeviceDirectory, TokenCache
from devicepush.notifications.credentials import ServiceAccountCredentialProvider
from devicepush.notifications.device_repo import DeviceRepository
from devicepush.notifications.dispatcher import DispatcherConfig, NotificationDispatcher
from devicepush.notifications.token_cache import get_token_cache


def build_dispatcher_config(settings: Settings) -> DispatcherConfig:
  """Translate environment settings into dispatcher configuration."""
  endpoint, secret_path = require_delivery_settings(settings)
  return DispatcherConfig(
    endpoint=endpoint,
    secret_path=secret_path,
    scope=FCM_MESSAGING_SCOPE,
    token_cache_ttl=settings.token_cache_ttl,
    request_timeout_seconds=settings.http_timeout_seconds,
    concurrent_delivery=settings.concurrent_delivery,
  )


def build_notification_dispatcher(
  settings: Settings,
  *,
  http_client: httpx.AsyncClient,
  token_cache: TokenCache | None = None,
  device_directory: DeviceDirectory | None = None,
  credential_provider: CredentialProvider | None = None,
) -> NotificationDispatcher:
  """Construct a dispatcher wired to the production collaborators unless overrides are given."""
  config = build_dispatcher_config(settings)

  # Share one token slot per process so every dispatcher reuses the same bearer token.
  effective_cache = token_cache if token_cache is not None else get_token_cache()
  effective_directory = device_directory if device_directory is not None else DeviceRepository()
  effective_provider = credential_provider if credential_provider is not None else ServiceAccountCredentialProvider(timeout_seconds=settings.credential_timeout_seconds)

  return NotificationDispatcher(credential_provider=effective_provider, token_cache=effective_cache, device_directory=effective_directory, http_client=http_client, config=config)
