from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import String, DateTime, Uuid, UniqueConstraint, Index, text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, JSONType


def _now():
    return datetime.now(timezone.utc)


class IdempotencyKeyRecord(Base):
    """
    Stores the response for a deal action sent with an Idempotency-Key header.

    Scope is strict:
      (transaction_id, actor_email, endpoint_key, idem_key) must be unique.
    """
    __tablename__ = "idempotency_key_records"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    transaction_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    actor_email: Mapped[str] = mapped_column(String(320), nullable=False)

    endpoint_key: Mapped[str] = mapped_column(String(128), nullable=False)  # e.g. "POST:/api/v1/deals/{id}/actions"
    idem_key: Mapped[str] = mapped_column(String(128), nullable=False)

    request_hash: Mapped[str] = mapped_column(String(128), nullable=False)

    response_status: Mapped[str] = mapped_column(String(16), nullable=False, server_default=text("'200'"))
    response_json: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)

    __table_args__ = (
        UniqueConstraint("transaction_id", "actor_email", "endpoint_key", "idem_key", name="uq_idem_scope"),
        Index("ix_idem_lookup", "transaction_id", "actor_email", "endpoint_key"),
    )
