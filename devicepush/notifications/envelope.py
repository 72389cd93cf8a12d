"""Provider wire format for FCM v1 send requests."""

from __future__ import annotations

import json
from typing import Any


def build_envelope(device_token: str, title: str, body: str) -> dict[str, Any]:
  """Build the FCM v1 message envelope for a single device."""
  # Key order is part of the wire contract; dicts preserve insertion order.
  return {"message": {"token": device_token, "notification": {"title": title, "body": body}}}


def serialize_envelope(envelope: dict[str, Any]) -> str:
  """Serialize an envelope as compact JSON."""
  return json.dumps(envelope, separators=(",", ":"), ensure_ascii=False)


def redact_token(token: str, *, keep: int = 8) -> str:
  """Return a log-safe prefix of a device token."""
  if len(token) <= keep:
    return "*" * len(token)
  return f"{token[:keep]}..."
