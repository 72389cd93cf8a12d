from __future__ import annotations

import datetime

import pytest

from devicepush.notifications.contracts import AccessToken
from devicepush.notifications.token_cache import InMemoryTokenCache, get_token_cache


def _token(clock, minutes: int = 60) -> AccessToken:
  return AccessToken(value="bearer", expiry=clock() + datetime.timedelta(minutes=minutes))


def test_get_returns_value_until_ttl_elapses(clock):
  cache = InMemoryTokenCache(clock=clock)
  token = _token(clock)
  cache.put("slot", token, datetime.timedelta(minutes=55))

  clock.advance(datetime.timedelta(minutes=54, seconds=59))
  assert cache.get("slot") == token
  assert cache.has("slot")

  clock.advance(datetime.timedelta(seconds=1))
  assert cache.get("slot") is None
  assert not cache.has("slot")
  assert cache.expires_at("slot") is None


def test_put_overwrites_existing_entry(clock):
  cache = InMemoryTokenCache(clock=clock)
  cache.put("slot", AccessToken(value="first", expiry=clock()), datetime.timedelta(minutes=1))
  cache.put("slot", AccessToken(value="second", expiry=clock()), datetime.timedelta(minutes=5))

  assert cache.get("slot").value == "second"
  assert cache.expires_at("slot") == clock() + datetime.timedelta(minutes=5)


def test_forget_evicts_entry(clock):
  cache = InMemoryTokenCache(clock=clock)
  cache.put("slot", _token(clock), datetime.timedelta(minutes=55))

  cache.forget("slot")
  cache.forget("missing")

  assert cache.get("slot") is None


def test_put_rejects_non_positive_ttl(clock):
  cache = InMemoryTokenCache(clock=clock)

  with pytest.raises(ValueError):
    cache.put("slot", _token(clock), datetime.timedelta(0))


def test_access_token_is_expired_at_boundary(clock):
  token = AccessToken(value="bearer", expiry=clock())

  assert token.is_expired(clock())
  assert not token.is_expired(clock() - datetime.timedelta(seconds=1))


def test_get_token_cache_is_process_wide():
  assert get_token_cache() is get_token_cache()
