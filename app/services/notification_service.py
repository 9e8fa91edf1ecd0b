# app/services/notification_service.py
from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import List, Optional

import httpx
from jinja2 import Environment, FileSystemLoader, select_autoescape
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.errors import NotFoundError
from app.models.notification import Notification
from app.services.notification_copy import NotificationCopy

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"


class NotificationDispatcher:
    """
    In-app notifications.

    create_notification is fire-and-forget and never raises. Callers commit
    the deal transition first, so a failed notification rolls back nothing else.
    """

    def __init__(self, db: Session):
        self.db = db

    def create_notification(
        self,
        *,
        recipient_email: str,
        type: str,
        title: str,
        message: str,
        link: Optional[str] = None,
        priority: str = "normal",
    ) -> Optional[Notification]:
        try:
            row = Notification(
                recipient_email=recipient_email,
                type=type,
                title=title,
                message=message,
                link=link,
                priority=priority,
            )
            self.db.add(row)
            self.db.commit()
            return row
        except Exception:
            logger.warning(
                "notification create failed",
                extra={"recipient": recipient_email, "type": type},
                exc_info=True,
            )
            try:
                self.db.rollback()
            except SQLAlchemyError:
                logger.warning("rollback after notification failure failed", exc_info=True)
            return None

    # ---------------------------
    # READ SIDE (notification center)
    # ---------------------------

    def list_for(self, email: str, *, unread_only: bool = False, limit: int = 50) -> List[Notification]:
        stmt = select(Notification).where(Notification.recipient_email == email)
        if unread_only:
            stmt = stmt.where(Notification.read_status.is_(False))
        stmt = stmt.order_by(Notification.created_at.desc()).limit(limit)
        return list(self.db.execute(stmt).scalars().all())

    def mark_read(self, notification_id: uuid.UUID, email: str) -> Notification:
        row = self.db.execute(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.recipient_email == email,
            )
        ).scalar_one_or_none()
        if not row:
            raise NotFoundError("Notification", notification_id)
        row.read_status = True
        self.db.commit()
        return row

    def mark_all_read(self, email: str) -> int:
        res = self.db.execute(
            update(Notification)
            .where(Notification.recipient_email == email, Notification.read_status.is_(False))
            .values(read_status=True)
        )
        self.db.commit()
        return int(res.rowcount or 0)


class EmailDispatcher:
    """
    Transactional email through an HTTP email API.
    Best-effort: failures are logged and swallowed.
    """

    def __init__(self, settings: Optional[Settings] = None, client: Optional[httpx.Client] = None):
        self.settings = settings or get_settings()
        self._client = client

    @property
    def enabled(self) -> bool:
        return bool(self.settings.email_api_url)

    def send_email(self, *, to: str, subject: str, body_html: str) -> bool:
        if not self.enabled:
            logger.info("email disabled; skipping send", extra={"to": to, "subject": subject})
            return False

        headers = {}
        if self.settings.email_api_key:
            headers["Authorization"] = f"Bearer {self.settings.email_api_key}"
        payload = {
            "from": self.settings.email_sender,
            "to": to,
            "subject": subject,
            "html": body_html,
        }
        try:
            if self._client is not None:
                resp = self._client.post(self.settings.email_api_url, json=payload, headers=headers)
            else:
                with httpx.Client(timeout=self.settings.email_timeout_seconds) as client:
                    resp = client.post(self.settings.email_api_url, json=payload, headers=headers)
            resp.raise_for_status()
            return True
        except Exception:
            logger.warning("email send failed", extra={"to": to, "subject": subject}, exc_info=True)
            return False


class Notifier:
    """
    One notification plus one email per deal event, addressed to one recipient.
    """

    def __init__(
        self,
        notifications: NotificationDispatcher,
        email: EmailDispatcher,
        settings: Optional[Settings] = None,
    ):
        self.notifications = notifications
        self.email = email
        self.settings = settings or get_settings()
        self.env = Environment(
            loader=FileSystemLoader(str(TEMPLATES_DIR)),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def deal_link(self, transaction_id) -> str:
        return f"{self.settings.app_base_url.rstrip('/')}/DealRoom?transactionId={transaction_id}"

    def render_email(self, copy: NotificationCopy, *, recipient_name: str, link: str) -> str:
        template = self.env.get_template("email/deal_update.html")
        return template.render(
            recipient_name=recipient_name,
            message=copy.message,
            call_to_action=copy.call_to_action,
            link=link,
            app_name=self.settings.app_name,
        )

    def notify(self, *, recipient, transaction_id, copy: NotificationCopy) -> None:
        """`recipient` is a Dealer; None (unresolved dealer) means nobody to tell."""
        if recipient is None or not recipient.owner_email:
            logger.info(
                "no recipient for deal notification",
                extra={"transaction_id": str(transaction_id), "type": copy.type},
            )
            return

        link = self.deal_link(transaction_id)
        self.notifications.create_notification(
            recipient_email=recipient.owner_email,
            type=copy.type,
            title=copy.title,
            message=copy.message,
            link=link,
        )
        try:
            body = self.render_email(copy, recipient_name=recipient.business_name, link=link)
        except Exception:
            logger.warning("email render failed", extra={"type": copy.type}, exc_info=True)
            return
        self.email.send_email(to=recipient.owner_email, subject=copy.subject, body_html=body)
