"""SQLAlchemy model for registered push devices."""

from __future__ import annotations

import datetime
import uuid

from sqlalchemy import DateTime, Index, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from devicepush.core.database import Base


class PushDevice(Base):
  """Persist a single push-addressable device token for a user."""

  __tablename__ = "push_devices"
  __table_args__ = (Index("ux_push_devices_token", "token", unique=True), Index("ix_push_devices_user_id_created_at", "user_id", "created_at"))

  id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
  user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
  token: Mapped[str] = mapped_column(Text, nullable=False)
  device_type: Mapped[str] = mapped_column(Text, nullable=False)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
