"""Optional .env support so local runs can carry FCM and database settings in a file."""

from __future__ import annotations

import os
from pathlib import Path

# Must be set in the real process environment; the .env file cannot point at itself.
ENV_FILE_VARIABLE = "DEVICEPUSH_ENV_FILE"
_QUOTES = ('"', "'")


def default_env_path() -> Path:
  return Path(__file__).resolve().parents[2] / ".env"


def resolve_env_path() -> Path:
  """Return the .env file named by DEVICEPUSH_ENV_FILE, falling back to the project root."""
  explicit = (os.getenv(ENV_FILE_VARIABLE) or "").strip()
  if explicit:
    return Path(explicit).expanduser()
  return default_env_path()


def parse_env_line(raw_line: str) -> tuple[str, str] | None:
  """Split one `KEY=value` line, or return None for blanks, comments and junk."""
  line = raw_line.strip()
  if line.startswith("export "):
    line = line.removeprefix("export ").lstrip()

  if not line or line.startswith("#") or "=" not in line:
    return None

  key, _, value = line.partition("=")
  key = key.strip()
  if not key:
    return None

  value = value.strip()
  if len(value) >= 2 and value[0] in _QUOTES and value[-1] == value[0]:
    value = value[1:-1]
  return key, value


def load_env_file(path: Path, *, override: bool = False) -> list[str]:
  """Copy the file's pairs into os.environ and return the keys that were applied.

  Existing variables win unless override is set. A missing file applies nothing.
  """
  if not path.is_file():
    return []

  applied: list[str] = []
  for raw_line in path.read_text(encoding="utf-8").splitlines():
    pair = parse_env_line(raw_line)
    if pair is None:
      continue

    key, value = pair
    if key in os.environ and not override:
      continue

    os.environ[key] = value
    applied.append(key)

  return applied
