# app/services/deal_room_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import Float, cast
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.errors import ConcurrencyConflict, DealRoomError, NotFoundError, PermissionDenied
from app.models.dealer import Dealer
from app.models.enums import DealRole, DealStatus, EscrowStatus, PAYMENT_PENDING_STAGE, VehicleStatus
from app.models.rto_application import RTOApplication
from app.models.transaction import Transaction
from app.models.vehicle import Vehicle
from app.policies.rbac import ActorContext, require_dealer
from app.services.deal_state_machine import (
    DealStateMachine,
    RatingEffect,
    TransitionResult,
    is_closed_and_delivered,
    rating_field,
    role_for,
)
from app.services.entity_store import EntityStore
from app.services.market_insights_service import MarketInsightsService
from app.services.notification_copy import copy_for
from app.services.offer_history import UNKNOWN_DEALER, negotiation_history
from app.services.rating_prompt import RatingPromptTracker, rating_prompts

logger = logging.getLogger(__name__)

ACTIVE_STATES = frozenset({
    DealStatus.offer_made.value,
    DealStatus.negotiating.value,
    DealStatus.accepted.value,
    DealStatus.in_escrow.value,
})
PAYOUT_VISIBLE_STATES = frozenset({
    DealStatus.accepted.value,
    DealStatus.in_escrow.value,
    DealStatus.completed.value,
})


def _now():
    return datetime.now(timezone.utc)


def display_stage(deal) -> str:
    if deal.status == DealStatus.accepted.value and deal.escrow_status != EscrowStatus.paid.value:
        return PAYMENT_PENDING_STAGE
    return deal.status


def expected_vehicle_status(deal) -> Optional[str]:
    """Vehicle status implied by the deal; Transaction.status is the source of truth."""
    if deal.status in ACTIVE_STATES:
        return VehicleStatus.in_transaction.value
    if deal.status == DealStatus.completed.value:
        return VehicleStatus.sold.value
    if deal.status == DealStatus.cancelled.value:
        return VehicleStatus.live.value
    return None


@dataclass
class DealRoomView:
    transaction: Transaction
    vehicle: Vehicle
    seller: Optional[Dealer]
    buyer: Optional[Dealer]
    seller_name: str
    buyer_name: str
    current_dealer: Optional[Dealer]
    rto_application: Optional[RTOApplication]
    is_seller_view: bool
    is_buyer_view: bool
    role: Optional[str]
    stage: str
    allowed_actions: List[str] = field(default_factory=list)
    negotiation_history: List[Dict[str, Any]] = field(default_factory=list)
    market_insights: Optional[Dict[str, Any]] = None
    payout_details: Optional[Dict[str, Any]] = None
    show_rating_prompt: bool = False


class DealRoomService:
    """
    Runs deal actions end to end.

    One action = re-read, state machine, one conditional write of the
    transaction plus its vehicle/dealer side effects, one commit, then a
    single fire-and-forget notification to the other party.
    """

    def __init__(
        self,
        db: Session,
        notifier=None,
        prompts: Optional[RatingPromptTracker] = None,
        settings: Optional[Settings] = None,
        machine: Optional[DealStateMachine] = None,
        insights: Optional[MarketInsightsService] = None,
    ):
        self.db = db
        self.store = EntityStore(db)
        self.notifier = notifier
        self.prompts = prompts if prompts is not None else rating_prompts
        self.settings = settings or get_settings()
        self.machine = machine or DealStateMachine()
        self.insights = insights or MarketInsightsService()

    # ─────────────────────────────────────────────
    # OPEN
    # ─────────────────────────────────────────────

    def open_deal(self, actor: ActorContext, vehicle_id: Any, amount: int) -> DealRoomView:
        require_dealer(actor)
        vehicle = self.store.get(Vehicle, vehicle_id)

        result = self.machine.open_offer(vehicle, buyer_dealer_id=actor.dealer_id, amount=amount)
        if not result.ok:
            self._log_rejected(None, result, actor)
            result.raise_for_error()

        try:
            deal = self.store.create(Transaction, **result.changes)
            self.store.update(Vehicle, vehicle.id, {"status": result.vehicle_status})
            self.store.commit()
        except DealRoomError:
            self.store.rollback()
            raise

        logger.info(
            "deal opened",
            extra={
                "transaction_id": str(deal.id),
                "vehicle_id": str(vehicle.id),
                "actor_dealer_id": str(actor.dealer_id),
                "offer_amount": deal.offer_amount,
            },
        )

        self._notify(deal.seller_id, deal, vehicle, "make_offer", actor, {})
        return self.load_deal_room(deal.id, actor)

    # ─────────────────────────────────────────────
    # VIEW
    # ─────────────────────────────────────────────

    def load_deal_room(
        self, transaction_id: Any, actor: ActorContext, *, claim_prompt: bool = True
    ) -> DealRoomView:
        """`claim_prompt=False` reads the view without spending the session's rating prompt."""
        deal = self.store.get(Transaction, transaction_id)
        vehicle = self.store.find(Vehicle, deal.vehicle_id)
        if vehicle is None:
            raise NotFoundError("Vehicle", deal.vehicle_id)

        # a missing dealer degrades the view instead of failing it
        seller = self.store.find(Dealer, deal.seller_id)
        buyer = self.store.find(Dealer, deal.buyer_id)
        if seller is None or buyer is None:
            logger.warning(
                "deal party not found",
                extra={
                    "transaction_id": str(deal.id),
                    "seller_missing": seller is None,
                    "buyer_missing": buyer is None,
                },
            )

        vehicle = self._reconcile_vehicle(deal, vehicle)

        role = role_for(deal, actor.dealer_id)
        rto_rows = self.store.filter(
            RTOApplication, order_by=RTOApplication.submitted_at, transaction_id=deal.id
        )

        return DealRoomView(
            transaction=deal,
            vehicle=vehicle,
            seller=seller,
            buyer=buyer,
            seller_name=seller.business_name if seller else UNKNOWN_DEALER,
            buyer_name=buyer.business_name if buyer else UNKNOWN_DEALER,
            current_dealer=actor.dealer,
            rto_application=rto_rows[0] if rto_rows else None,
            is_seller_view=role == DealRole.SELLER,
            is_buyer_view=role == DealRole.BUYER,
            role=role.value if role else None,
            stage=display_stage(deal),
            allowed_actions=self.machine.allowed_actions(deal, role),
            negotiation_history=negotiation_history(
                deal.messages, viewer_dealer_id=actor.dealer_id, seller=seller, buyer=buyer
            ),
            market_insights=self._market_insights(vehicle, deal),
            payout_details=self._payout_details(deal, role, seller),
            show_rating_prompt=self._claim_rating_prompt(deal, role, actor) if claim_prompt else False,
        )

    def _market_insights(self, vehicle: Vehicle, deal: Transaction) -> Optional[Dict[str, Any]]:
        try:
            return self.insights.insights(self.db, vehicle, offer_amount=deal.offer_amount)
        except Exception:
            logger.warning("market insights unavailable", extra={"vehicle_id": str(vehicle.id)}, exc_info=True)
            self.db.rollback()
            return None

    def _payout_details(self, deal, role: Optional[DealRole], seller: Optional[Dealer]) -> Optional[Dict[str, Any]]:
        if role is None or seller is None or deal.status not in PAYOUT_VISIBLE_STATES:
            return None
        return {
            "account_holder": seller.business_name,
            "bank_name": seller.bank_name,
            "account_number": seller.account_number,
            "ifsc_code": seller.ifsc_code,
        }

    def _claim_rating_prompt(self, deal, role: Optional[DealRole], actor: ActorContext) -> bool:
        if role is None or not is_closed_and_delivered(deal):
            return False
        if getattr(deal, rating_field(role)):
            return False
        return self.prompts.claim(actor.session_id, deal.id, actor.dealer_id)

    def _reconcile_vehicle(self, deal: Transaction, vehicle: Vehicle) -> Vehicle:
        expected = expected_vehicle_status(deal)
        if expected is None or vehicle.status == expected:
            return vehicle

        if deal.status == DealStatus.cancelled.value:
            # the vehicle may already be in a newer deal
            if vehicle.status != VehicleStatus.in_transaction.value:
                return vehicle
            others = self.store.filter(Transaction, vehicle_id=vehicle.id)
            if any(o.id != deal.id and o.status in ACTIVE_STATES for o in others):
                return vehicle

        logger.warning(
            "vehicle status out of sync with deal",
            extra={
                "transaction_id": str(deal.id),
                "vehicle_id": str(vehicle.id),
                "vehicle_status": vehicle.status,
                "expected": expected,
            },
        )
        fields: Dict[str, Any] = {"status": expected}
        if expected == VehicleStatus.sold.value and vehicle.date_sold is None:
            fields["date_sold"] = deal.funds_released_at or _now()
        try:
            vehicle = self.store.update(Vehicle, vehicle.id, fields)
            self.store.commit()
        except DealRoomError:
            logger.warning("vehicle status reconciliation failed", extra={"vehicle_id": str(vehicle.id)})
            self.store.rollback()
            return self.store.find(Vehicle, vehicle.id) or vehicle
        return vehicle

    # ─────────────────────────────────────────────
    # ACTIONS
    # ─────────────────────────────────────────────

    def perform_action(
        self,
        transaction_id: Any,
        action: str,
        payload: Optional[Dict[str, Any]],
        actor: ActorContext,
    ) -> DealRoomView:
        require_dealer(actor)
        payload = payload or {}
        retries = self.settings.max_conflict_retries

        attempt = 0
        while True:
            # always act on fresh state
            deal = self.store.get(Transaction, transaction_id)
            vehicle = self.store.find(Vehicle, deal.vehicle_id)
            if vehicle is None:
                raise NotFoundError("Vehicle", deal.vehicle_id)

            result = self.machine.apply(
                action, deal, actor_dealer_id=actor.dealer_id, payload=payload, vehicle=vehicle
            )
            if not result.ok:
                self._log_rejected(deal, result, actor)
                result.raise_for_error()

            try:
                self._write(deal, vehicle, result)
                self.store.commit()
                break
            except ConcurrencyConflict:
                self.store.rollback()
                if attempt >= retries:
                    logger.warning(
                        "deal action gave up after conflicts",
                        extra={"transaction_id": str(deal.id), "action": result.action, "attempts": attempt + 1},
                    )
                    raise
                attempt += 1
                logger.info(
                    "deal action conflict; retrying",
                    extra={"transaction_id": str(deal.id), "action": result.action, "attempt": attempt},
                )
            except DealRoomError:
                self.store.rollback()
                raise

        deal = self.store.get(Transaction, transaction_id)
        logger.info(
            "deal transition applied",
            extra={
                "transaction_id": str(deal.id),
                "action": result.action,
                "actor_dealer_id": str(actor.dealer_id),
                "status": deal.status,
                "version": deal.version,
            },
        )

        role = role_for(deal, actor.dealer_id)
        if result.rating is not None:
            self.prompts.settle(actor.session_id, deal.id, actor.dealer_id)

        other_id = deal.buyer_id if role == DealRole.SELLER else deal.seller_id
        self._notify(other_id, deal, vehicle, result.action, actor, payload)

        return self.load_deal_room(deal.id, actor)

    def skip_rating(self, transaction_id: Any, actor: ActorContext) -> None:
        require_dealer(actor)
        deal = self.store.get(Transaction, transaction_id)
        if role_for(deal, actor.dealer_id) is None:
            raise PermissionDenied("Only the seller or buyer of this deal can dismiss its rating prompt.")
        self.prompts.settle(actor.session_id, deal.id, actor.dealer_id)

    # ─────────────────────────────────────────────
    # WRITES
    # ─────────────────────────────────────────────

    def _write(self, deal: Transaction, vehicle: Optional[Vehicle], result: TransitionResult) -> None:
        self.store.update(Transaction, deal.id, result.changes, expected_version=deal.version)

        if result.vehicle_status and vehicle is not None and vehicle.status != result.vehicle_status:
            fields: Dict[str, Any] = {"status": result.vehicle_status}
            if result.vehicle_status == VehicleStatus.sold.value and vehicle.date_sold is None:
                fields["date_sold"] = _now()
            self.store.update(Vehicle, vehicle.id, fields)

        if result.rating is not None:
            self._apply_rating(result.rating)

    def _apply_rating(self, effect: RatingEffect) -> None:
        # SQL-side arithmetic so concurrent ratings of the same dealer cannot lose updates
        rated_fields: Dict[str, Any] = {
            "rating": (cast(Dealer.rating, Float) * Dealer.rating_count + effect.score)
            / (Dealer.rating_count + 1.0),
            "rating_count": Dealer.rating_count + 1,
        }
        if effect.count_completed_deal:
            rated_fields["completed_deals"] = Dealer.completed_deals + 1

        if self.store.find(Dealer, effect.rated_dealer_id) is not None:
            self.store.update(Dealer, effect.rated_dealer_id, rated_fields)
        else:
            logger.warning("rated dealer not found", extra={"dealer_id": str(effect.rated_dealer_id)})

        if effect.count_completed_deal and self.store.find(Dealer, effect.rater_dealer_id) is not None:
            self.store.update(Dealer, effect.rater_dealer_id, {"completed_deals": Dealer.completed_deals + 1})

    # ─────────────────────────────────────────────
    # SIDE CHANNELS
    # ─────────────────────────────────────────────

    def _notify(self, recipient_id, deal, vehicle, action: str, actor: ActorContext, payload: Dict[str, Any]) -> None:
        if self.notifier is None:
            return
        try:
            recipient = self.store.find(Dealer, recipient_id)
            copy = copy_for(action, actor_name=actor.display_name, vehicle=vehicle, deal=deal, payload=payload)
            self.notifier.notify(recipient=recipient, transaction_id=deal.id, copy=copy)
        except Exception:
            logger.warning(
                "deal notification failed",
                extra={"transaction_id": str(deal.id), "action": action},
                exc_info=True,
            )

    def _log_rejected(self, deal, result: TransitionResult, actor: ActorContext) -> None:
        logger.info(
            "deal action rejected",
            extra={
                "transaction_id": str(deal.id) if deal is not None else None,
                "action": result.action,
                "actor_dealer_id": str(actor.dealer_id),
                "reason": result.error.code if result.error else None,
            },
        )
