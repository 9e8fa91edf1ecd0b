# app/api/v1/notifications.py
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.auth_deps import get_current_principal
from app.db.session import get_db
from app.models.notification import Notification
from app.policies.rbac import Principal
from app.schemas.notifications import MarkAllReadResponse, NotificationListResponse, NotificationOut
from app.services.notification_service import NotificationDispatcher

router = APIRouter(prefix="/notifications")


@router.get("", response_model=NotificationListResponse)
def list_notifications(
    unread_only: bool = Query(default=False, alias="unreadOnly"),
    limit: int = Query(default=50, ge=1, le=200),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    items = NotificationDispatcher(db).list_for(principal.email, unread_only=unread_only, limit=limit)
    unread = db.execute(
        select(func.count())
        .select_from(Notification)
        .where(Notification.recipient_email == principal.email, Notification.read_status.is_(False))
    ).scalar_one()
    return NotificationListResponse(
        unreadCount=int(unread),
        items=[NotificationOut.model_validate(n) for n in items],
    )


@router.post("/read-all", response_model=MarkAllReadResponse)
def mark_all_read(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return MarkAllReadResponse(updated=NotificationDispatcher(db).mark_all_read(principal.email))


@router.post("/{notification_id}/read", response_model=NotificationOut)
def mark_read(
    notification_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    try:
        nid = uuid.UUID(notification_id)
    except Exception:
        raise HTTPException(status_code=400, detail="notification id must be UUID.")
    row = NotificationDispatcher(db).mark_read(nid, principal.email)
    return NotificationOut.model_validate(row)
