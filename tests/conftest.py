"""Shared fixtures for the devicepush test suite."""

from __future__ import annotations

import datetime
import uuid

import httpx
import pytest

from devicepush.config import get_database_settings, get_settings
from devicepush.notifications.contracts import AccessToken, CredentialError, Device
from devicepush.notifications.dispatcher import DispatcherConfig, NotificationDispatcher
from devicepush.notifications.token_cache import InMemoryTokenCache

FCM_ENDPOINT = "https://fcm.googleapis.com/v1/projects/demo-project/messages:send"
START = datetime.datetime(2026, 1, 1, 12, 0, tzinfo=datetime.UTC)


# Force anyio to use asyncio
@pytest.fixture
def anyio_backend():
  return "asyncio"


@pytest.fixture(autouse=True)
def _reset_settings_cache():
  get_settings.cache_clear()
  get_database_settings.cache_clear()
  yield
  get_settings.cache_clear()
  get_database_settings.cache_clear()


class FakeClock:
  def __init__(self, now: datetime.datetime = START) -> None:
    self.now = now

  def __call__(self) -> datetime.datetime:
    return self.now

  def advance(self, delta: datetime.timedelta) -> None:
    self.now = self.now + delta


class FakeCredentialProvider:
  def __init__(self, clock: FakeClock, *, fail: bool = False) -> None:
    self._clock = clock
    self._fail = fail
    self.calls: list[tuple[str, str]] = []

  def mint(self, scope: str, secret_path: str) -> AccessToken:
    self.calls.append((scope, secret_path))
    if self._fail:
      raise CredentialError("service account key is malformed")
    return AccessToken(value=f"token-{len(self.calls)}", expiry=self._clock() + datetime.timedelta(minutes=60))


class FakeDeviceDirectory:
  def __init__(self, devices: list[Device] | None = None) -> None:
    self.devices = devices or []
    self.calls: list[uuid.UUID] = []

  async def list_for(self, user_id: uuid.UUID) -> list[Device]:
    self.calls.append(user_id)
    return [device for device in self.devices if device.user_id == user_id]


@pytest.fixture
def clock() -> FakeClock:
  return FakeClock()


@pytest.fixture
def token_cache(clock) -> InMemoryTokenCache:
  return InMemoryTokenCache(clock=clock)


@pytest.fixture
def credential_provider(clock) -> FakeCredentialProvider:
  return FakeCredentialProvider(clock)


@pytest.fixture
def user_id() -> uuid.UUID:
  return uuid.uuid4()


@pytest.fixture
def build_dispatcher(clock, token_cache, credential_provider):
  """Return a builder that wires a dispatcher around an httpx mock handler."""

  def _build(handler, *, devices: list[Device] | None = None, provider=None, concurrent_delivery: bool = False, request_timeout_seconds: float = 10.0) -> tuple[NotificationDispatcher, FakeDeviceDirectory]:
    directory = FakeDeviceDirectory(devices)
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    config = DispatcherConfig(endpoint=FCM_ENDPOINT, secret_path="/secrets/service-account.json", concurrent_delivery=concurrent_delivery, request_timeout_seconds=request_timeout_seconds)
    dispatcher = NotificationDispatcher(credential_provider=provider or credential_provider, token_cache=token_cache, device_directory=directory, http_client=client, config=config, clock=clock)
    return dispatcher, directory

  return _build
