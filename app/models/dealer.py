# app/models/dealer.py
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String, DateTime, Boolean, Integer, Float, Uuid, Index, text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


def _now():
    return datetime.now(timezone.utc)


class Dealer(Base):
    """
    A dealership that lists vehicles and negotiates deals.
    rating is the running average of ratings received (rating_count of them).
    """

    __tablename__ = "dealers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    business_name: Mapped[str] = mapped_column(String(256), nullable=False)
    # login identity of the dealership owner
    owner_email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)

    email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    state: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    verification_status: Mapped[str] = mapped_column(
        String(32), nullable=False, default="provisional", server_default=text("'provisional'")
    )

    rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, server_default=text("0"))
    rating_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    completed_deals: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))

    # payout display only
    bank_name: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    account_number: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    ifsc_code: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=text("true"))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)

    __table_args__ = (Index("ix_dealers_city", "city"),)
