# app/models/notification.py
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String, DateTime, Boolean, Uuid, Index, text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


def _now():
    return datetime.now(timezone.utc)


class Notification(Base):
    """
    In-app notification keyed by recipient email.
    Only read_status changes after creation.
    """

    __tablename__ = "notifications"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    recipient_email: Mapped[str] = mapped_column(String(320), nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    message: Mapped[str] = mapped_column(String(2000), nullable=False)
    link: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    priority: Mapped[str] = mapped_column(String(16), nullable=False, default="normal", server_default=text("'normal'"))

    read_status: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text("false"))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)

    __table_args__ = (Index("ix_notifications_recipient_read", "recipient_email", "read_status"),)
