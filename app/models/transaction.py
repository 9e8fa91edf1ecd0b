# app/models/transaction.py
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import String, DateTime, Integer, Boolean, Uuid, ForeignKey, Index, text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, JSONType


def _now():
    return datetime.now(timezone.utc)


class Transaction(Base):
    """
    A negotiation between a seller and a buyer dealer over one vehicle.

    Write rules:
      - status only moves along the deal state machine edges.
      - final_amount is written once, on acceptance.
      - messages is append-only (structured deal events).
      - seller_rating / buyer_rating are each written at most once.
      - every write bumps version; writers must present the version they read.
    """

    __tablename__ = "transactions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    vehicle_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("vehicles.id", ondelete="RESTRICT"), nullable=False
    )
    # dealer references are deliberately not foreign keys: dealer rows may disappear
    seller_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    buyer_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)

    status: Mapped[str] = mapped_column(String(32), nullable=False, default="offer_made")

    offer_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    final_amount: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # escrow
    escrow_status: Mapped[str] = mapped_column(String(16), nullable=False, default="none", server_default=text("'none'"))
    payment_method: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    payment_reference: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    payment_confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    funds_released_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # logistics
    transport_status: Mapped[str] = mapped_column(String(16), nullable=False, default="none", server_default=text("'none'"))
    logistics_partner: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    transport_booking_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    pickup_address: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    delivery_address: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    pickup_eta: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    delivery_eta: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    delivery_confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    messages: Mapped[List[Dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)

    seller_rating: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONType, nullable=True)
    buyer_rating: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONType, nullable=True)

    deal_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text("false"))
    archived_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default=text("1"))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)

    __table_args__ = (
        Index("ix_transactions_vehicle", "vehicle_id"),
        Index("ix_transactions_seller", "seller_id"),
        Index("ix_transactions_buyer", "buyer_id"),
        Index("ix_transactions_status", "status"),
    )
