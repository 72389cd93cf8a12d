"""Contracts for push notification delivery."""

from __future__ import annotations

import datetime
import uuid
from dataclasses import dataclass
from http import HTTPStatus
from typing import Protocol


@dataclass(frozen=True)
class AccessToken:
  """Bearer token used to authenticate provider calls."""

  value: str
  expiry: datetime.datetime

  def is_expired(self, now: datetime.datetime) -> bool:
    """Return True once the token must no longer be sent."""
    return now >= self.expiry


@dataclass(frozen=True)
class Device:
  """A push-addressable endpoint registered by a user."""

  user_id: uuid.UUID
  token: str
  device_type: str


@dataclass(frozen=True)
class NotificationRequest:
  """Title and body to deliver to every device of one user."""

  user_id: uuid.UUID
  title: str
  body: str


@dataclass(frozen=True)
class DeliveryOutcome:
  """Result of a single device delivery attempt."""

  device: Device
  success: bool
  provider_status: int | None = None
  failure_reason: str | None = None

  @property
  def is_unregistered(self) -> bool:
    """Return True when the provider no longer recognizes the device token."""
    return self.provider_status == HTTPStatus.NOT_FOUND


class NotificationError(Exception):
  """Base class for all notification delivery failures."""


class CredentialError(NotificationError):
  """Exception raised when an access token cannot be minted; fatal for a dispatch call."""


class DeliveryError(NotificationError):
  """Exception raised when a single device delivery fails."""

  def __init__(self, message: str, *, provider_status: int | None = None) -> None:
    super().__init__(message)
    self.provider_status = provider_status


class CredentialProvider(Protocol):
  """Mints bearer tokens from a service-account secret."""

  def mint(self, scope: str, secret_path: str) -> AccessToken:
    """Mint a fresh access token synchronously."""


class TokenCache(Protocol):
  """Generic key-value store with per-entry expiry."""

  def has(self, key: str) -> bool:
    """Return True when an unexpired value is stored under key."""

  def get(self, key: str) -> AccessToken | None:
    """Return the unexpired value stored under key, if any."""

  def put(self, key: str, value: AccessToken, ttl: datetime.timedelta) -> None:
    """Store value under key for ttl."""

  def forget(self, key: str) -> None:
    """Evict key immediately."""


class DeviceDirectory(Protocol):
  """Lookup contract for a user's registered devices."""

  async def list_for(self, user_id: uuid.UUID) -> list[Device]:
    """Return the user's devices, most recently registered first."""
