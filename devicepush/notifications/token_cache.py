"""Process-local access token cache."""

from __future__ import annotations

import datetime
from collections.abc import Callable
from functools import lru_cache

from devicepush.notifications.contracts import AccessToken, TokenCache

Clock = Callable[[], datetime.datetime]


def utc_now() -> datetime.datetime:
  return datetime.datetime.now(datetime.UTC)


class InMemoryTokenCache(TokenCache):
  """Dictionary-backed cache with absolute per-entry expiry.

  Concurrent writers are not serialized; the last `put` for a key wins.
  """

  def __init__(self, *, clock: Clock = utc_now) -> None:
    self._clock = clock
    self._entries: dict[str, tuple[AccessToken, datetime.datetime]] = {}

  def has(self, key: str) -> bool:
    return self.get(key) is not None

  def get(self, key: str) -> AccessToken | None:
    entry = self._entries.get(key)
    if entry is None:
      return None

    value, expires_at = entry
    if self._clock() >= expires_at:
      # Evict lazily so stale tokens never leak to callers.
      self._entries.pop(key, None)
      return None

    return value

  def put(self, key: str, value: AccessToken, ttl: datetime.timedelta) -> None:
    if ttl <= datetime.timedelta(0):
      raise ValueError("Token cache TTL must be positive.")
    self._entries[key] = (value, self._clock() + ttl)

  def forget(self, key: str) -> None:
    self._entries.pop(key, None)

  def expires_at(self, key: str) -> datetime.datetime | None:
    """Return the absolute expiry of an entry, if one is stored."""
    entry = self._entries.get(key)
    return entry[1] if entry else None


@lru_cache(maxsize=1)
def get_token_cache() -> InMemoryTokenCache:
  """Return the process-wide token cache shared by all dispatchers."""
  return InMemoryTokenCache()
