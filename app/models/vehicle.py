# app/models/vehicle.py
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String, DateTime, Integer, Uuid, ForeignKey, Index, text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


def _now():
    return datetime.now(timezone.utc)


class Vehicle(Base):
    __tablename__ = "vehicles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    dealer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("dealers.id", ondelete="CASCADE"), nullable=False
    )

    make: Mapped[str] = mapped_column(String(64), nullable=False)
    model: Mapped[str] = mapped_column(String(64), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)

    # listed asking price in rupees; reference point for negotiation deltas
    price: Mapped[int] = mapped_column(Integer, nullable=False)

    # denormalized from the active transaction; Transaction.status is the source of truth
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="draft", server_default=text("'draft'"))

    vin: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    kilometers: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    fuel_type: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    transmission: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    date_listed: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    date_sold: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)

    __table_args__ = (
        Index("ix_vehicles_dealer", "dealer_id"),
        Index("ix_vehicles_make_model_status", "make", "model", "status"),
    )
