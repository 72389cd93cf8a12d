"""Credential-cached push notification dispatch."""

from __future__ import annotations

import asyncio
import datetime
import logging
import uuid
from dataclasses import dataclass
from http import HTTPStatus

import anyio.to_thread
import httpx

from devicepush.config import FCM_MESSAGING_SCOPE
from devicepush.notifications.contracts import AccessToken, CredentialProvider, DeliveryError, DeliveryOutcome, Device, DeviceDirectory, NotificationRequest, TokenCache
from devicepush.notifications.envelope import build_envelope, redact_token, serialize_envelope
from devicepush.notifications.token_cache import Clock, utc_now

logger = logging.getLogger(__name__)

ACCESS_TOKEN_CACHE_KEY = "fcm_access_token"
DEFAULT_TOKEN_CACHE_TTL = datetime.timedelta(minutes=55)


@dataclass(frozen=True)
class DispatcherConfig:
  """Endpoint, credential location and timing knobs for a dispatcher."""

  endpoint: str
  secret_path: str
  scope: str = FCM_MESSAGING_SCOPE
  token_cache_ttl: datetime.timedelta = DEFAULT_TOKEN_CACHE_TTL
  request_timeout_seconds: float = 10.0
  concurrent_delivery: bool = False


class NotificationDispatcher:
  """Resolves a cached bearer token and delivers a notification to each of a user's devices.

  A credential failure aborts the whole call. Device failures are recorded per device and never stop
  delivery to the remaining devices. Nothing is retried.
  """

  def __init__(
    self, *, credential_provider: CredentialProvider, token_cache: TokenCache, device_directory: DeviceDirectory, http_client: httpx.AsyncClient, config: DispatcherConfig, clock: Clock = utc_now
  ) -> None:
    self._credential_provider = credential_provider
    self._token_cache = token_cache
    self._device_directory = device_directory
    self._http_client = http_client
    self._config = config
    self._clock = clock

  async def resolve_access_token(self) -> AccessToken:
    """Return the cached token when still valid, otherwise mint and cache a new one."""
    cached = self._token_cache.get(ACCESS_TOKEN_CACHE_KEY)
    if cached is not None and not cached.is_expired(self._clock()):
      return cached

    # Minting blocks on file and network I/O; keep it off the event loop.
    minted = await anyio.to_thread.run_sync(self._credential_provider.mint, self._config.scope, self._config.secret_path)

    now = self._clock()
    token = AccessToken(value=minted.value, expiry=min(minted.expiry, now + self._config.token_cache_ttl))
    self._token_cache.put(ACCESS_TOKEN_CACHE_KEY, token, self._config.token_cache_ttl)
    logger.debug("Cached FCM access token until %s", token.expiry.isoformat())
    return token

  async def dispatch(self, user_id: uuid.UUID, title: str, body: str) -> list[DeliveryOutcome]:
    """Deliver title/body to every registered device of a user and report per-device outcomes."""
    # Token first, even for users without devices; CredentialError aborts before any POST.
    token = await self.resolve_access_token()
    devices = await self._device_directory.list_for(user_id)

    if not devices:
      logger.info("No registered devices for user_id=%s; nothing to deliver", user_id)
      return []

    if self._config.concurrent_delivery:
      outcomes = list(await asyncio.gather(*(self._deliver(device=device, token=token, title=title, body=body) for device in devices)))
    else:
      outcomes = [await self._deliver(device=device, token=token, title=title, body=body) for device in devices]

    delivered = sum(1 for outcome in outcomes if outcome.success)
    logger.info("Push dispatch finished user_id=%s devices=%d delivered=%d failed=%d", user_id, len(outcomes), delivered, len(outcomes) - delivered)
    return outcomes

  async def dispatch_request(self, request: NotificationRequest) -> list[DeliveryOutcome]:
    """Dispatch a NotificationRequest value object."""
    return await self.dispatch(request.user_id, request.title, request.body)

  async def _deliver(self, *, device: Device, token: AccessToken, title: str, body: str) -> DeliveryOutcome:
    try:
      status_code = await self._post(device=device, token=token, title=title, body=body)
    except DeliveryError as exc:
      logger.warning("Push delivery failed device=%s type=%s status=%s reason=%s", redact_token(device.token), device.device_type, exc.provider_status, exc)
      return DeliveryOutcome(device=device, success=False, provider_status=exc.provider_status, failure_reason=str(exc))
    except Exception as exc:  # noqa: BLE001
      # One device must never cost the others their outcome, in either delivery mode.
      logger.error("Push delivery failed unexpectedly device=%s type=%s", redact_token(device.token), device.device_type, exc_info=True)
      return DeliveryOutcome(device=device, success=False, failure_reason=f"Unexpected failure: {type(exc).__name__}: {exc}")

    logger.info("Push delivered device=%s type=%s status=%s", redact_token(device.token), device.device_type, status_code)
    return DeliveryOutcome(device=device, success=True, provider_status=status_code)

  async def _post(self, *, device: Device, token: AccessToken, title: str, body: str) -> int:
    payload = serialize_envelope(build_envelope(device.token, title, body))
    headers = {"Authorization": f"Bearer {token.value}", "Content-Type": "application/json"}

    try:
      response = await self._http_client.post(self._config.endpoint, content=payload.encode("utf-8"), headers=headers, timeout=self._config.request_timeout_seconds)
    except httpx.HTTPError as exc:
      raise DeliveryError(f"Transport failure: {type(exc).__name__}: {exc}") from exc

    if response.status_code != HTTPStatus.OK:
      if response.status_code == HTTPStatus.UNAUTHORIZED:
        # The provider no longer accepts this token; force a re-mint on the next call.
        self._token_cache.forget(ACCESS_TOKEN_CACHE_KEY)
      raise DeliveryError(f"Provider returned status={response.status_code} {_provider_error_detail(response)}".rstrip(), provider_status=response.status_code)

    return response.status_code


def _provider_error_detail(response: httpx.Response) -> str:
  """Extract the FCM error status/message from a failed response when available."""
  try:
    payload = response.json()
  except ValueError:
    return ""

  error = payload.get("error") if isinstance(payload, dict) else None
  if not isinstance(error, dict):
    return ""

  parts = [str(error[key]) for key in ("status", "message") if error.get(key)]
  return ": ".join(parts)
