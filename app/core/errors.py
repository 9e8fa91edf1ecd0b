# app/core/errors.py
from __future__ import annotations

from typing import Any, Optional


class DealRoomError(Exception):
    """Base class for deal room business errors."""

    code = "DEAL_ROOM_ERROR"
    retryable = False

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(DealRoomError):
    """Referenced transaction, vehicle, dealer or RTO application cannot be resolved."""

    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(
            message=f"{entity} not found: {entity_id}",
            details={"entity": entity, "id": str(entity_id)},
        )
        self.entity = entity
        self.entity_id = entity_id


class ValidationError(DealRoomError):
    """Invalid amount, missing identity, or an action the current state does not permit."""

    code = "VALIDATION_ERROR"


class PermissionDenied(ValidationError):
    """Actor is not allowed to perform the action in their role."""

    code = "FORBIDDEN"


class TransientIOError(DealRoomError):
    """Store read/write failed; nothing was applied and the action can be retried."""

    code = "TRANSIENT_IO"
    retryable = True


class ConcurrencyConflict(DealRoomError):
    """The record changed between read and write."""

    code = "CONFLICT"
    retryable = True

    def __init__(self, entity: str, entity_id: Any, expected_version: Optional[int] = None):
        super().__init__(
            message=f"{entity} {entity_id} was modified concurrently.",
            details={"entity": entity, "id": str(entity_id), "expected_version": expected_version},
        )
