# app/models/rto_application.py
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import String, DateTime, Integer, Uuid, ForeignKey, Index, text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, JSONType


def _now():
    return datetime.now(timezone.utc)


class RTOApplication(Base):
    """
    Ownership-transfer paperwork filed for a deal.
    Party names/addresses are copied at filing time.
    """

    __tablename__ = "rto_applications"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    transaction_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False
    )
    vehicle_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    seller_name: Mapped[str] = mapped_column(String(256), nullable=False)
    seller_address: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    buyer_name: Mapped[str] = mapped_column(String(256), nullable=False)
    buyer_address: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)

    application_fee: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    document_urls: Mapped[List[Dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)

    status: Mapped[str] = mapped_column(String(32), nullable=False, default="submitted")

    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)

    __table_args__ = (Index("ix_rto_transaction", "transaction_id"),)
