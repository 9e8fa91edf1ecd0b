from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.hashing import canonical_dumps, sha256_hex
from app.models.idempotency_key import IdempotencyKeyRecord


def stable_hash(payload: Dict[str, Any]) -> str:
    # Deterministic hash for request payload
    return sha256_hex(canonical_dumps(payload))


@dataclass(frozen=True)
class IdempotencyScope:
    """
    One deal action attempt as seen by a client retry.

    A key is only meaningful within a single transaction, for the dealer
    user who sent it, on the endpoint it was sent to. The same key reused on
    another deal or by the counterpart is a different request.
    """

    transaction_id: uuid.UUID
    actor_email: str
    endpoint_key: str
    idem_key: str

    def clause(self):
        return (
            IdempotencyKeyRecord.transaction_id == self.transaction_id,
            IdempotencyKeyRecord.actor_email == self.actor_email,
            IdempotencyKeyRecord.endpoint_key == self.endpoint_key,
            IdempotencyKeyRecord.idem_key == self.idem_key,
        )


class IdempotencyService:
    """
    Replays deal-room responses for retried actions.

    A deal action is applied at most once per key: the first successful
    response is stored, and a retry carrying the same key and body gets that
    response back without touching the transaction again (so a retried
    counter-offer or payment does not append a second message event).
    """

    def get_existing(self, db: Session, scope: IdempotencyScope) -> Optional[IdempotencyKeyRecord]:
        return db.execute(select(IdempotencyKeyRecord).where(*scope.clause())).scalar_one_or_none()

    def reserve_or_replay(
        self,
        db: Session,
        scope: IdempotencyScope,
        request_payload: Dict[str, Any],
    ) -> Tuple[Optional[Dict[str, Any]], Optional[int], str]:
        """
        Returns (replay_json, replay_status_code, request_hash).

        Nothing stored yet: no replay, the action should run.
        Stored with the same body hash: the earlier deal-room response.
        Stored with a different body: ValueError, the key was reused for a
        different action on this transaction.
        """
        req_hash = stable_hash(request_payload)
        existing = self.get_existing(db, scope)
        if not existing:
            return None, None, req_hash

        if existing.request_hash != req_hash:
            raise ValueError("Idempotency-Key reuse with different payload is not allowed.")
        return existing.response_json, int(existing.response_status), req_hash

    def store_response(
        self,
        db: Session,
        scope: IdempotencyScope,
        *,
        request_hash: str,
        response_json: Dict[str, Any],
        response_status: int,
    ) -> None:
        """Record the response of an applied action. The first stored response wins."""
        if self.get_existing(db, scope):
            return

        db.add(
            IdempotencyKeyRecord(
                transaction_id=scope.transaction_id,
                actor_email=scope.actor_email,
                endpoint_key=scope.endpoint_key,
                idem_key=scope.idem_key,
                request_hash=request_hash,
                response_status=str(response_status),
                response_json=response_json,
            )
        )
        try:
            db.commit()
        except IntegrityError:
            # a concurrent retry stored the same key first
            db.rollback()
