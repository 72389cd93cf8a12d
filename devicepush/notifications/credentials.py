"""Service-account backed access token minting."""

from __future__ import annotations

import datetime
import functools
import logging

from google.auth import exceptions as google_auth_exceptions
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from devicepush.config import PROVIDER_TOKEN_VALIDITY
from devicepush.notifications.contracts import AccessToken, CredentialError, CredentialProvider
from devicepush.notifications.token_cache import Clock, utc_now

logger = logging.getLogger(__name__)


class ServiceAccountCredentialProvider(CredentialProvider):
  """`google-auth` backed provider that exchanges a service-account key for a bearer token."""

  def __init__(self, *, timeout_seconds: float = 10.0, clock: Clock = utc_now) -> None:
    self._timeout_seconds = timeout_seconds
    self._clock = clock

  def mint(self, scope: str, secret_path: str) -> AccessToken:
    """Load the key file and perform a blocking token refresh."""
    # Valid JSON that is not an object surfaces from google-auth as AttributeError/TypeError.
    try:
      credentials = service_account.Credentials.from_service_account_file(secret_path, scopes=[scope])
    except (OSError, ValueError, KeyError, AttributeError, TypeError) as exc:
      raise CredentialError(f"Service account key at {secret_path} is unreadable or malformed: {exc}") from exc

    # Bound the token endpoint call; google-auth otherwise waits up to two minutes.
    request = functools.partial(Request(), timeout=self._timeout_seconds)
    try:
      credentials.refresh(request)
    except google_auth_exceptions.GoogleAuthError as exc:
      raise CredentialError(f"Access token request was rejected or failed: {exc}") from exc

    if not credentials.token:
      raise CredentialError("Access token response did not include a token.")

    expiry = _aware_expiry(credentials.expiry, now=self._clock())
    logger.info("Minted FCM access token expiry=%s", expiry.isoformat())
    return AccessToken(value=credentials.token, expiry=expiry)


def _aware_expiry(expiry: datetime.datetime | None, *, now: datetime.datetime) -> datetime.datetime:
  """Normalize google-auth's naive UTC expiry into an aware datetime, assuming the provider lifetime when absent."""
  if expiry is None:
    return now + PROVIDER_TOKEN_VALIDITY

  if expiry.tzinfo is None:
    return expiry.replace(tzinfo=datetime.UTC)

  return expiry
