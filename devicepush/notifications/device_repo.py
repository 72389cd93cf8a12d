"""Repository helpers for push device persistence."""

from __future__ import annotations

import uuid

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from devicepush.core.database import get_session_factory
from devicepush.notifications.contracts import Device, DeviceDirectory
from devicepush.schema.devices import PushDevice


class DeviceRepository(DeviceDirectory):
  """Persist and look up push devices in Postgres."""

  async def register(self, device: Device) -> None:
    """Insert or refresh a device row keyed by its token."""
    session_factory = get_session_factory()
    if session_factory is None:
      return

    async with session_factory() as session:
      await self._register_with_session(session=session, device=device)

  async def _register_with_session(self, *, session: AsyncSession, device: Device) -> None:
    # Re-registering a token moves it to the front of the recency ordering.
    stmt = insert(PushDevice).values(user_id=device.user_id, token=device.token, device_type=device.device_type)
    stmt = stmt.on_conflict_do_update(index_elements=["token"], set_={"user_id": device.user_id, "device_type": device.device_type, "created_at": func.now()})
    await session.execute(stmt)
    await session.commit()

  async def list_for(self, user_id: uuid.UUID) -> list[Device]:
    """List a user's devices, most recently registered first."""
    session_factory = get_session_factory()
    if session_factory is None:
      return []

    async with session_factory() as session:
      return await self._list_for_with_session(session=session, user_id=user_id)

  async def _list_for_with_session(self, *, session: AsyncSession, user_id: uuid.UUID) -> list[Device]:
    stmt = select(PushDevice).where(PushDevice.user_id == user_id).order_by(PushDevice.created_at.desc(), PushDevice.id.desc())
    result = await session.execute(stmt)
    rows = result.scalars().all()
    return [Device(user_id=row.user_id, token=row.token, device_type=row.device_type) for row in rows]

  async def delete_for_user_token(self, *, user_id: uuid.UUID, token: str) -> None:
    """Delete a device for a specific user and token."""
    session_factory = get_session_factory()
    if session_factory is None:
      return

    async with session_factory() as session:
      await self._delete_for_user_token_with_session(session=session, user_id=user_id, token=token)

  async def _delete_for_user_token_with_session(self, *, session: AsyncSession, user_id: uuid.UUID, token: str) -> None:
    # Constrain delete by user ownership so users cannot remove other devices.
    stmt = delete(PushDevice).where(PushDevice.user_id == user_id, PushDevice.token == token)
    await session.execute(stmt)
    await session.commit()

  async def delete_by_token(self, *, token: str) -> None:
    """Delete a device by token regardless of owner."""
    session_factory = get_session_factory()
    if session_factory is None:
      return

    async with session_factory() as session:
      await self._delete_by_token_with_session(session=session, token=token)

  async def _delete_by_token_with_session(self, *, session: AsyncSession, token: str) -> None:
    stmt = delete(PushDevice).where(PushDevice.token == token)
    await session.execute(stmt)
    await session.commit()
