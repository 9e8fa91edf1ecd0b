# app/services/entity_store.py
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Type, TypeVar

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import ConcurrencyConflict, NotFoundError, TransientIOError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _now():
    return datetime.now(timezone.utc)


def _as_uuid(value: Any) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        raise NotFoundError("Record", value)


class EntityStore:
    """
    get / filter / create / update over the ORM session.

    Writes are flushed but not committed; the caller decides the unit of work
    and calls commit() once per action. Any database failure rolls the session
    back and surfaces as TransientIOError.
    """

    def __init__(self, db: Session):
        self.db = db

    # ---------------------------
    # READS
    # ---------------------------

    def find(self, model: Type[T], record_id: Any) -> Optional[T]:
        if record_id is None:
            return None
        try:
            rid = _as_uuid(record_id)
        except NotFoundError:
            return None
        try:
            return self.db.execute(
                select(model).where(model.id == rid).execution_options(populate_existing=True)
            ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            self._fail("read", model, exc)

    def get(self, model: Type[T], record_id: Any) -> T:
        row = self.find(model, record_id)
        if row is None:
            raise NotFoundError(model.__name__, record_id)
        return row

    def filter(self, model: Type[T], order_by=None, **criteria: Any) -> List[T]:
        stmt = select(model).filter_by(**criteria)
        if order_by is not None:
            stmt = stmt.order_by(order_by)
        try:
            return list(self.db.execute(stmt).scalars().all())
        except SQLAlchemyError as exc:
            self._fail("read", model, exc)

    # ---------------------------
    # MUTATIONS
    # ---------------------------

    def create(self, model: Type[T], **fields: Any) -> T:
        row = model(**fields)
        try:
            self.db.add(row)
            self.db.flush()
        except SQLAlchemyError as exc:
            self._fail("create", model, exc)
        return row

    def update(
        self,
        model: Type[T],
        record_id: Any,
        fields: Dict[str, Any],
        *,
        expected_version: Optional[int] = None,
    ) -> T:
        """
        Write `fields` to one row.

        With expected_version the write only lands if the stored version still
        matches, and the version is bumped; otherwise ConcurrencyConflict.
        """
        rid = _as_uuid(record_id)
        values = dict(fields)
        if hasattr(model, "updated_at"):
            values.setdefault("updated_at", _now())

        stmt = update(model).where(model.id == rid)
        if expected_version is not None:
            stmt = stmt.where(model.version == expected_version)
            values["version"] = expected_version + 1

        try:
            result = self.db.execute(
                stmt.values(**values).execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as exc:
            self._fail("update", model, exc)

        if result.rowcount == 0:
            if expected_version is not None and self.find(model, rid) is not None:
                raise ConcurrencyConflict(model.__name__, rid, expected_version)
            raise NotFoundError(model.__name__, rid)

        return self.get(model, rid)

    # ---------------------------
    # UNIT OF WORK
    # ---------------------------

    def commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self._fail("commit", None, exc)

    def rollback(self) -> None:
        self.db.rollback()

    def _fail(self, op: str, model, exc: Exception):
        name = model.__name__ if model is not None else "session"
        logger.error("entity store %s failed", op, extra={"entity": name}, exc_info=exc)
        self.db.rollback()
        raise TransientIOError(
            f"Storage {op} failed for {name}; no changes were applied. Please retry.",
            details={"operation": op, "entity": name},
        ) from exc
