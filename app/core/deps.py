# /app/core/deps.py
from fastapi import Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.db.session import get_db
from app.services.deal_room_service import DealRoomService
from app.services.notification_service import EmailDispatcher, NotificationDispatcher, Notifier
from app.services.rto_service import RTOService


def get_notifier(db: Session = Depends(get_db)) -> Notifier:
    settings = get_settings()
    return Notifier(NotificationDispatcher(db), EmailDispatcher(settings), settings)


def get_deal_room_service(
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> DealRoomService:
    return DealRoomService(db, notifier=notifier)


def get_rto_service(
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> RTOService:
    return RTOService(db, notifier=notifier)


async def require_transaction_id(transactionId: str | None = Query(default=None)) -> str:
    """
    The deal room is addressed by ?transactionId=; without it there is nothing to show.
    """
    if not transactionId or not transactionId.strip():
        raise HTTPException(status_code=400, detail="Missing required parameter: transactionId")
    return transactionId.strip()
