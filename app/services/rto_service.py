# app/services/rto_service.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from app.core.errors import NotFoundError, PermissionDenied, ValidationError
from app.models.dealer import Dealer
from app.models.enums import DealRole, DealStatus, RTOStatus
from app.models.rto_application import RTOApplication
from app.models.transaction import Transaction
from app.models.vehicle import Vehicle
from app.policies.rbac import ActorContext, require_dealer
from app.services.deal_state_machine import role_for
from app.services.entity_store import EntityStore
from app.services.notification_copy import copy_for

logger = logging.getLogger(__name__)

FILING_STATES = frozenset({DealStatus.in_escrow.value, DealStatus.completed.value})
TERMINAL = frozenset({RTOStatus.completed.value, RTOStatus.rejected.value})

# forward path; rejected is reachable from any non-terminal status
NEXT_STATUS = {
    RTOStatus.submitted.value: RTOStatus.in_process.value,
    RTOStatus.in_process.value: RTOStatus.dispatch.value,
    RTOStatus.dispatch.value: RTOStatus.completed.value,
}

DOCUMENT_KEYS = ("type", "url")


def _now():
    return datetime.now(timezone.utc)


def _clean_documents(document_urls: Optional[List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    docs = []
    for doc in document_urls or []:
        if not isinstance(doc, dict) or any(not doc.get(k) for k in DOCUMENT_KEYS):
            raise ValidationError("Each document needs a type and a url.", details={"document": doc})
        docs.append({"type": str(doc["type"]), "url": str(doc["url"]), "name": doc.get("name")})
    return docs


class RTOService:
    """
    Ownership-transfer (RTO) filings for paid deals.
    """

    def __init__(self, db, notifier=None):
        self.store = EntityStore(db)
        self.notifier = notifier

    # ─────────────────────────────────────────────
    # INITIATE
    # ─────────────────────────────────────────────

    def initiate(
        self,
        transaction_id: Any,
        actor: ActorContext,
        *,
        application_fee: int = 0,
        document_urls: Optional[List[Dict[str, Any]]] = None,
    ) -> RTOApplication:
        require_dealer(actor)
        deal = self.store.get(Transaction, transaction_id)
        role = role_for(deal, actor.dealer_id)
        if role is None:
            raise PermissionDenied("Only the seller or buyer of this deal can file the RTO transfer.")
        if deal.status not in FILING_STATES:
            raise ValidationError(
                f"RTO transfer can be filed once payment is in escrow (status {deal.status})."
            )
        if isinstance(application_fee, bool) or not isinstance(application_fee, int) or application_fee < 0:
            raise ValidationError("Application fee must be a non-negative whole number of rupees.")

        seller = self.store.find(Dealer, deal.seller_id)
        buyer = self.store.find(Dealer, deal.buyer_id)
        if seller is None or buyer is None:
            raise NotFoundError("Dealer", deal.seller_id if seller is None else deal.buyer_id)

        for existing in self.store.filter(RTOApplication, transaction_id=deal.id):
            if existing.status != RTOStatus.rejected.value:
                raise ValidationError(
                    "An RTO application is already in progress for this deal.",
                    details={"application_id": str(existing.id), "status": existing.status},
                )

        app_row = self.store.create(
            RTOApplication,
            transaction_id=deal.id,
            vehicle_id=deal.vehicle_id,
            seller_name=seller.business_name,
            seller_address=seller.address,
            buyer_name=buyer.business_name,
            buyer_address=buyer.address,
            application_fee=application_fee,
            document_urls=_clean_documents(document_urls),
            status=RTOStatus.submitted.value,
        )
        self.store.commit()

        logger.info(
            "rto application submitted",
            extra={"transaction_id": str(deal.id), "application_id": str(app_row.id), "role": role.value},
        )

        self._notify(buyer if role == DealRole.SELLER else seller, deal, actor)
        return app_row

    def _notify(self, recipient: Dealer, deal: Transaction, actor: ActorContext) -> None:
        if self.notifier is None:
            return
        try:
            vehicle = self.store.find(Vehicle, deal.vehicle_id)
            copy = copy_for("rto_initiated", actor_name=actor.display_name, vehicle=vehicle, deal=deal)
            self.notifier.notify(recipient=recipient, transaction_id=deal.id, copy=copy)
        except Exception:
            logger.warning(
                "rto notification failed",
                extra={"transaction_id": str(deal.id)},
                exc_info=True,
            )

    # ─────────────────────────────────────────────
    # ADVANCE
    # ─────────────────────────────────────────────

    def advance(self, application_id: Any, actor: ActorContext, new_status: str) -> RTOApplication:
        require_dealer(actor)
        row = self.store.get(RTOApplication, application_id)
        deal = self.store.get(Transaction, row.transaction_id)
        if role_for(deal, actor.dealer_id) is None:
            raise PermissionDenied("Only the seller or buyer of this deal can update the RTO application.")

        try:
            target = RTOStatus(new_status).value
        except ValueError:
            raise ValidationError(f"Unknown RTO status {new_status!r}.")

        if row.status in TERMINAL:
            raise ValidationError(f"RTO application is already {row.status}.")
        if target != RTOStatus.rejected.value and NEXT_STATUS.get(row.status) != target:
            raise ValidationError(
                f"RTO application cannot move from {row.status} to {target}.",
                details={"allowed": [NEXT_STATUS[row.status], RTOStatus.rejected.value]},
            )

        previous = row.status
        updated = self.store.update(RTOApplication, row.id, {"status": target, "updated_at": _now()})
        self.store.commit()
        logger.info(
            "rto application advanced",
            extra={"application_id": str(row.id), "from": previous, "to": target},
        )
        return updated
