# app/services/deal_state_machine.py
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from app.core.errors import PermissionDenied, ValidationError
from app.core.money import format_lakhs, require_positive_rupees
from app.models.enums import (
    DealAction,
    DealEventType,
    DealRole,
    DealStatus,
    EscrowStatus,
    TransportStatus,
    VehicleStatus,
)
from app.services.logistics_catalog import delivery_eta, get_partner, new_booking_id, TRANSPORT_PARTNERS


OPEN_STATES = frozenset({DealStatus.offer_made.value, DealStatus.negotiating.value})
TRANSPORT_STATES = frozenset({DealStatus.in_escrow.value, DealStatus.completed.value})

MAX_MESSAGE_LENGTH = 2000
MAX_REVIEW_LENGTH = 2000


def _now():
    return datetime.now(timezone.utc)


def _same_id(a: Any, b: Any) -> bool:
    return a is not None and b is not None and str(a) == str(b)


def role_for(deal, dealer_id: Any) -> Optional[DealRole]:
    """Derive the actor's role by comparing ids with the deal parties."""
    if _same_id(dealer_id, deal.seller_id):
        return DealRole.SELLER
    if _same_id(dealer_id, deal.buyer_id):
        return DealRole.BUYER
    return None


def is_closed_and_delivered(deal) -> bool:
    return (
        deal.status == DealStatus.completed.value
        and deal.transport_status == TransportStatus.delivered.value
    )


def rating_field(role: DealRole) -> str:
    return "seller_rating" if role == DealRole.SELLER else "buyer_rating"


@dataclass(frozen=True)
class RatingEffect:
    rater_dealer_id: Any
    rated_dealer_id: Any
    score: int
    # true only for the first rating on the deal: both parties get +1 completed deal
    count_completed_deal: bool


@dataclass(frozen=True)
class TransitionResult:
    """
    Outcome of one state machine step. On success `changes` holds every
    Transaction field to write in one update; nothing has been persisted yet.
    """

    ok: bool
    action: str
    changes: Dict[str, Any] = field(default_factory=dict)
    event: Optional[Dict[str, Any]] = None
    vehicle_status: Optional[str] = None
    rating: Optional[RatingEffect] = None
    error: Optional[ValidationError] = None

    @classmethod
    def success(cls, action: str, **kwargs: Any) -> "TransitionResult":
        return cls(ok=True, action=action, **kwargs)

    @classmethod
    def failure(cls, action: str, error: ValidationError) -> "TransitionResult":
        return cls(ok=False, action=action, error=error)

    def raise_for_error(self) -> "TransitionResult":
        if not self.ok:
            raise self.error
        return self


def make_event(
    event_type: DealEventType,
    sender_id: Any,
    text: str,
    now: datetime,
    *,
    amount: Optional[int] = None,
) -> Dict[str, Any]:
    event: Dict[str, Any] = {
        "id": uuid.uuid4().hex,
        "sender_id": str(sender_id) if sender_id is not None else None,
        "type": event_type.value,
        "text": text,
        "timestamp": now.isoformat(),
    }
    if amount is not None:
        event["amount"] = amount
    return event


class DealStateMachine:
    """
    Legal transitions of a Transaction.

    Pure: reads the deal (and vehicle where relevant) and returns a
    TransitionResult describing the write. Guards are split in two:
      - state/role guards (`guard`), independent of payload, also used to
        list the actions available to a party;
      - payload validation inside each handler.
    """

    # ─────────────────────────────────────────────
    # INITIAL OFFER
    # ─────────────────────────────────────────────

    def open_offer(
        self,
        vehicle,
        *,
        buyer_dealer_id: Any,
        amount: int,
        now: Optional[datetime] = None,
    ) -> TransitionResult:
        action = "make_offer"
        now = now or _now()

        if buyer_dealer_id is None:
            return TransitionResult.failure(action, ValidationError("A dealer profile is required to make offers."))
        if vehicle.status != VehicleStatus.live.value:
            return TransitionResult.failure(
                action, ValidationError(f"Vehicle is not available for offers (status {vehicle.status}).")
            )
        if _same_id(vehicle.dealer_id, buyer_dealer_id):
            return TransitionResult.failure(action, PermissionDenied("You cannot make an offer on your own vehicle."))
        try:
            amount = require_positive_rupees(amount)
        except ValidationError as e:
            return TransitionResult.failure(action, e)

        event = make_event(
            DealEventType.offer_made,
            buyer_dealer_id,
            f"Initial offer of {format_lakhs(amount)} for your {vehicle.year} {vehicle.make} {vehicle.model}",
            now,
            amount=amount,
        )
        changes = {
            "vehicle_id": vehicle.id,
            "seller_id": vehicle.dealer_id,
            "buyer_id": buyer_dealer_id,
            "status": DealStatus.offer_made.value,
            "offer_amount": amount,
            "escrow_status": EscrowStatus.none.value,
            "transport_status": TransportStatus.none.value,
            "messages": [event],
            "deal_archived": False,
        }
        return TransitionResult.success(
            action,
            changes=changes,
            event=event,
            vehicle_status=VehicleStatus.in_transaction.value,
        )

    # ─────────────────────────────────────────────
    # GUARDS
    # ─────────────────────────────────────────────

    def guard(self, action: DealAction, deal, role: Optional[DealRole]) -> Optional[ValidationError]:
        """State and role preconditions for `action`; None when allowed."""
        if role is None:
            return PermissionDenied("Only the seller or buyer of this deal can act on it.")

        status = deal.status
        escrow = deal.escrow_status or EscrowStatus.none.value
        transport = deal.transport_status or TransportStatus.none.value

        if action == DealAction.counter_offer:
            if status not in OPEN_STATES:
                return ValidationError(f"Counter-offers are not possible once a deal is {status}.")
            if status == DealStatus.offer_made.value and role != DealRole.SELLER:
                return PermissionDenied("Only the seller can respond to the initial offer.")
            return None

        if action in (DealAction.accept, DealAction.reject):
            if status not in OPEN_STATES:
                return ValidationError(f"Cannot {action.value} a deal in status {status}.")
            if role != DealRole.SELLER:
                return PermissionDenied(f"Only the seller can {action.value} an offer.")
            return None

        if action == DealAction.payment_success:
            if status != DealStatus.accepted.value:
                return ValidationError(f"Payment is only possible for accepted deals (status {status}).")
            if role != DealRole.BUYER:
                return PermissionDenied("Only the buyer can pay into escrow.")
            if escrow == EscrowStatus.paid.value:
                return ValidationError("Escrow is already paid.")
            return None

        if action == DealAction.release_funds:
            if status != DealStatus.in_escrow.value:
                return ValidationError(f"Funds can only be released from escrow (status {status}).")
            if role != DealRole.SELLER:
                return PermissionDenied("Only the seller can release escrow funds.")
            if escrow != EscrowStatus.paid.value:
                return ValidationError(f"Escrow must be paid before release (escrow {escrow}).")
            return None

        if action == DealAction.book_transport:
            if status not in TRANSPORT_STATES:
                return ValidationError("Transport can be booked once payment is in escrow.")
            if transport != TransportStatus.none.value:
                return ValidationError(f"Transport is already booked ({transport}).")
            return None

        if action == DealAction.confirm_delivery:
            if status not in TRANSPORT_STATES:
                return ValidationError("Delivery can only be confirmed once payment is in escrow.")
            if transport != TransportStatus.in_transit.value:
                return ValidationError(f"Vehicle is not in transit (transport {transport}).")
            return None

        if action == DealAction.submit_rating:
            if not is_closed_and_delivered(deal):
                return ValidationError("Ratings open once the deal is completed and delivery is confirmed.")
            if getattr(deal, rating_field(role)):
                return ValidationError("You have already rated this deal.")
            return None

        if action == DealAction.archive:
            if not is_closed_and_delivered(deal):
                return ValidationError("Only completed and delivered deals can be archived.")
            if deal.deal_archived:
                return ValidationError("Deal is already archived.")
            return None

        if action == DealAction.restore:
            if not deal.deal_archived:
                return ValidationError("Deal is not archived.")
            return None

        if action == DealAction.send_message:
            return None

        return ValidationError(f"Unknown action {action}.")

    def allowed_actions(self, deal, role: Optional[DealRole]) -> List[str]:
        if role is None:
            return []
        return [a.value for a in DealAction if self.guard(a, deal, role) is None]

    # ─────────────────────────────────────────────
    # APPLY
    # ─────────────────────────────────────────────

    def apply(
        self,
        action: DealAction,
        deal,
        *,
        actor_dealer_id: Any,
        payload: Optional[Dict[str, Any]] = None,
        vehicle=None,
        now: Optional[datetime] = None,
    ) -> TransitionResult:
        try:
            action = DealAction(action)
        except ValueError:
            return TransitionResult.failure(str(action), ValidationError(f"Unknown action {action!r}."))

        payload = payload or {}
        now = now or _now()
        role = role_for(deal, actor_dealer_id)

        err = self.guard(action, deal, role)
        if err is not None:
            return TransitionResult.failure(action.value, err)

        handler: Callable[..., TransitionResult] = getattr(self, f"_{action.value}")
        try:
            return handler(deal, role, actor_dealer_id, payload, vehicle, now)
        except ValidationError as e:
            return TransitionResult.failure(action.value, e)

    # ─────────────────────────────────────────────
    # HANDLERS
    # ─────────────────────────────────────────────

    def _append(self, deal, event: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [*(deal.messages or []), event]

    def _counter_offer(self, deal, role, actor_id, payload, vehicle, now) -> TransitionResult:
        amount = require_positive_rupees(payload.get("amount"))
        event = make_event(
            DealEventType.counter_offer, actor_id, f"Counter-offer: {format_lakhs(amount)}", now, amount=amount
        )
        return TransitionResult.success(
            DealAction.counter_offer.value,
            changes={
                "status": DealStatus.negotiating.value,
                "offer_amount": amount,
                "messages": self._append(deal, event),
            },
            event=event,
        )

    def _accept(self, deal, role, actor_id, payload, vehicle, now) -> TransitionResult:
        event = make_event(
            DealEventType.accepted,
            actor_id,
            f"Offer of {format_lakhs(deal.offer_amount)} has been accepted!",
            now,
            amount=deal.offer_amount,
        )
        return TransitionResult.success(
            DealAction.accept.value,
            changes={
                "status": DealStatus.accepted.value,
                "final_amount": deal.offer_amount,
                "messages": self._append(deal, event),
            },
            event=event,
        )

    def _reject(self, deal, role, actor_id, payload, vehicle, now) -> TransitionResult:
        event = make_event(
            DealEventType.rejected,
            actor_id,
            f"Offer of {format_lakhs(deal.offer_amount)} has been rejected.",
            now,
            amount=deal.offer_amount,
        )
        return TransitionResult.success(
            DealAction.reject.value,
            changes={
                "status": DealStatus.cancelled.value,
                "messages": self._append(deal, event),
            },
            event=event,
            vehicle_status=VehicleStatus.live.value,
        )

    def _payment_success(self, deal, role, actor_id, payload, vehicle, now) -> TransitionResult:
        reference = (payload.get("payment_reference") or "").strip()
        if not reference:
            raise ValidationError("Payment gateway confirmation reference is required.")

        paid = payload.get("amount")
        if paid is not None and paid != deal.final_amount:
            raise ValidationError(
                f"Paid amount {paid} does not match the agreed amount {deal.final_amount}."
            )

        event = make_event(
            DealEventType.payment,
            actor_id,
            f"Payment of {format_lakhs(deal.final_amount)} completed successfully. Funds secured in escrow.",
            now,
            amount=deal.final_amount,
        )
        return TransitionResult.success(
            DealAction.payment_success.value,
            changes={
                "status": DealStatus.in_escrow.value,
                "escrow_status": EscrowStatus.paid.value,
                "payment_method": payload.get("payment_method"),
                "payment_reference": reference,
                "payment_confirmed_at": now,
                "messages": self._append(deal, event),
            },
            event=event,
        )

    def _release_funds(self, deal, role, actor_id, payload, vehicle, now) -> TransitionResult:
        event = make_event(
            DealEventType.funds_released,
            actor_id,
            f"Funds have been released. Deal completed successfully! "
            f"{format_lakhs(deal.final_amount)} transferred to seller.",
            now,
            amount=deal.final_amount,
        )
        return TransitionResult.success(
            DealAction.release_funds.value,
            changes={
                "status": DealStatus.completed.value,
                "escrow_status": EscrowStatus.released.value,
                "funds_released_at": now,
                "messages": self._append(deal, event),
            },
            event=event,
            vehicle_status=VehicleStatus.sold.value,
        )

    def _book_transport(self, deal, role, actor_id, payload, vehicle, now) -> TransitionResult:
        partner = get_partner(payload.get("partner"))
        if partner is None:
            raise ValidationError(
                f"Unknown transport partner {payload.get('partner')!r}; "
                f"choose one of {sorted(TRANSPORT_PARTNERS)}."
            )
        pickup = payload.get("pickup_date")
        if not isinstance(pickup, datetime):
            raise ValidationError("A pickup date is required to book transport.")
        if pickup.tzinfo is None:
            pickup = pickup.replace(tzinfo=timezone.utc)

        booking_id = new_booking_id(now)
        event = make_event(
            DealEventType.transport_booked,
            actor_id,
            f"Transport booked with {partner.name} (booking {booking_id}). "
            f"Pickup on {pickup.date().isoformat()}.",
            now,
        )
        return TransitionResult.success(
            DealAction.book_transport.value,
            changes={
                "transport_status": TransportStatus.in_transit.value,
                "logistics_partner": partner.id,
                "transport_booking_id": booking_id,
                "pickup_address": payload.get("pickup_address"),
                "delivery_address": payload.get("delivery_address"),
                "pickup_eta": pickup,
                "delivery_eta": delivery_eta(partner, pickup),
                "messages": self._append(deal, event),
            },
            event=event,
        )

    def _confirm_delivery(self, deal, role, actor_id, payload, vehicle, now) -> TransitionResult:
        event = make_event(
            DealEventType.delivery_confirmed,
            actor_id,
            f"Vehicle delivery confirmed by {role.value}. Transport completed successfully.",
            now,
        )
        return TransitionResult.success(
            DealAction.confirm_delivery.value,
            changes={
                "transport_status": TransportStatus.delivered.value,
                "delivery_confirmed_at": now,
                "messages": self._append(deal, event),
            },
            event=event,
        )

    def _submit_rating(self, deal, role, actor_id, payload, vehicle, now) -> TransitionResult:
        score = payload.get("rating")
        if isinstance(score, bool) or not isinstance(score, int) or not 1 <= score <= 5:
            raise ValidationError("Rating must be a whole number of stars from 1 to 5.")
        review = payload.get("review")
        if review is not None and len(review) > MAX_REVIEW_LENGTH:
            raise ValidationError(f"Review must be at most {MAX_REVIEW_LENGTH} characters.")

        rated_id = deal.buyer_id if role == DealRole.SELLER else deal.seller_id
        first_rating = not deal.seller_rating and not deal.buyer_rating

        event = make_event(
            DealEventType.rating,
            actor_id,
            f"Deal completed successfully! The {role.value} rated the deal {score} stars.",
            now,
        )
        rating = {
            "rating": score,
            "review": review or None,
            "rated_by": str(actor_id),
            "rated_at": now.isoformat(),
        }
        return TransitionResult.success(
            DealAction.submit_rating.value,
            changes={
                rating_field(role): rating,
                "messages": self._append(deal, event),
            },
            event=event,
            vehicle_status=VehicleStatus.sold.value,
            rating=RatingEffect(
                rater_dealer_id=actor_id,
                rated_dealer_id=rated_id,
                score=score,
                count_completed_deal=first_rating,
            ),
        )

    def _archive(self, deal, role, actor_id, payload, vehicle, now) -> TransitionResult:
        return TransitionResult.success(
            DealAction.archive.value,
            changes={"deal_archived": True, "archived_at": now},
        )

    def _restore(self, deal, role, actor_id, payload, vehicle, now) -> TransitionResult:
        return TransitionResult.success(
            DealAction.restore.value,
            changes={"deal_archived": False, "archived_at": None},
        )

    def _send_message(self, deal, role, actor_id, payload, vehicle, now) -> TransitionResult:
        text = (payload.get("text") or "").strip()
        if not text:
            raise ValidationError("Message cannot be empty.")
        if len(text) > MAX_MESSAGE_LENGTH:
            raise ValidationError(f"Message must be at most {MAX_MESSAGE_LENGTH} characters.")
        event = make_event(DealEventType.chat, actor_id, text, now)
        return TransitionResult.success(
            DealAction.send_message.value,
            changes={"messages": self._append(deal, event)},
            event=event,
        )
