from __future__ import annotations

import datetime
import uuid
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql

from devicepush.notifications.contracts import Device
from devicepush.notifications.device_repo import DeviceRepository


def _session_with_rows(rows: list) -> AsyncMock:
  session = AsyncMock()
  result = MagicMock()
  result.scalars.return_value.all.return_value = rows
  session.execute.return_value = result
  return session


@pytest.mark.anyio
async def test_list_for_maps_rows_in_query_order():
  user_id = uuid.uuid4()
  rows = [
    SimpleNamespace(user_id=user_id, token="newest", device_type="ios", created_at=datetime.datetime(2026, 1, 2, tzinfo=datetime.UTC)),
    SimpleNamespace(user_id=user_id, token="oldest", device_type="android", created_at=datetime.datetime(2026, 1, 1, tzinfo=datetime.UTC)),
  ]
  session = _session_with_rows(rows)

  devices = await DeviceRepository()._list_for_with_session(session=session, user_id=user_id)

  assert devices == [Device(user_id=user_id, token="newest", device_type="ios"), Device(user_id=user_id, token="oldest", device_type="android")]
  stmt = session.execute.await_args.args[0]
  compiled = str(stmt.compile(dialect=postgresql.dialect()))
  assert "ORDER BY push_devices.created_at DESC" in compiled
  assert "push_devices.user_id = " in compiled


@pytest.mark.anyio
async def test_register_upserts_by_token_and_commits():
  session = _session_with_rows([])
  device = Device(user_id=uuid.uuid4(), token="device-token", device_type="web")

  await DeviceRepository()._register_with_session(session=session, device=device)

  stmt = session.execute.await_args.args[0]
  compiled = str(stmt.compile(dialect=postgresql.dialect()))
  assert "ON CONFLICT (token) DO UPDATE" in compiled
  session.commit.assert_awaited_once()


@pytest.mark.anyio
async def test_delete_for_user_token_is_scoped_to_owner():
  session = _session_with_rows([])

  await DeviceRepository()._delete_for_user_token_with_session(session=session, user_id=uuid.uuid4(), token="device-token")

  compiled = str(session.execute.await_args.args[0].compile(dialect=postgresql.dialect()))
  assert "push_devices.user_id = " in compiled
  assert "push_devices.token = " in compiled
  session.commit.assert_awaited_once()


@pytest.mark.anyio
async def test_repository_without_database_is_a_no_op(monkeypatch):
  monkeypatch.setattr("devicepush.notifications.device_repo.get_session_factory", lambda: None)
  repo = DeviceRepository()

  assert await repo.list_for(uuid.uuid4()) == []
  await repo.register(Device(user_id=uuid.uuid4(), token="device-token", device_type="web"))
  await repo.delete_by_token(token="device-token")
  await repo.delete_for_user_token(user_id=uuid.uuid4(), token="device-token")
