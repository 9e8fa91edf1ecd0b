# app/services/notification_copy.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from app.core.money import format_lakhs
from app.models.enums import NotificationType


@dataclass(frozen=True)
class NotificationCopy:
    type: str
    title: str
    message: str
    subject: str
    call_to_action: Optional[str] = None


def vehicle_label(vehicle) -> str:
    if vehicle is None:
        return "your vehicle"
    return f"{vehicle.year} {vehicle.make} {vehicle.model}"


def copy_for(action: str, *, actor_name: str, vehicle, deal, payload: Optional[dict] = None) -> NotificationCopy:
    """
    Copy for the party on the other side of `action`.
    """
    label = vehicle_label(vehicle)
    payload = payload or {}

    if action == "make_offer":
        msg = f"{actor_name} made an offer of {format_lakhs(deal.offer_amount)} on your {label}."
        return NotificationCopy(
            NotificationType.offer.value, "New Offer Received", msg,
            f"New Offer Received: {label}", "You can review the offer and respond in the Deal Room.",
        )

    if action == "counter_offer":
        msg = f"{actor_name} sent a counter-offer of {format_lakhs(deal.offer_amount)} for {label}."
        return NotificationCopy(
            NotificationType.deal_update.value, "Counter-offer Received", msg,
            f"Counter-offer received for {label}", "You can review and respond in the Deal Room.",
        )

    if action == "accept":
        msg = f"Your offer for the {label} has been accepted!"
        return NotificationCopy(
            NotificationType.deal_update.value, "Offer Accepted!", msg,
            "Offer Accepted!", "Please proceed to payment to secure the deal.",
        )

    if action == "reject":
        msg = f"Your offer of {format_lakhs(deal.offer_amount)} for the {label} was declined."
        return NotificationCopy(
            NotificationType.deal_update.value, "Offer Declined", msg,
            f"Offer declined for {label}", "The vehicle is back on the marketplace.",
        )

    if action == "payment_success":
        msg = (
            f"Buyer has completed payment of {format_lakhs(deal.final_amount)}. "
            f"Funds are now in secure escrow."
        )
        return NotificationCopy(
            NotificationType.payment.value, "Payment Received!", msg,
            f"Payment Received in Escrow for {label}", "Please proceed with logistics arrangements.",
        )

    if action == "release_funds":
        msg = f"Funds for the {label} have been released to the seller."
        return NotificationCopy(
            NotificationType.payment.value, "Deal Completed", msg,
            f"Funds Released for {label}", "Thank you for completing the deal.",
        )

    if action == "book_transport":
        msg = f"{actor_name} booked transport for the {label}."
        return NotificationCopy(
            NotificationType.logistics.value, "Transport Booked", msg,
            f"Transport booked for {label}", "Track the shipment in the Deal Room.",
        )

    if action == "confirm_delivery":
        msg = f"Delivery of the {label} has been confirmed."
        return NotificationCopy(
            NotificationType.logistics.value, "Delivery Confirmed", msg,
            f"Delivery confirmed for {label}", "You can now rate the deal.",
        )

    if action == "submit_rating":
        msg = f"{actor_name} rated your deal on the {label} {payload.get('rating')} stars."
        return NotificationCopy(
            NotificationType.rating.value, "New Rating", msg, f"You received a rating for {label}",
        )

    if action == "archive":
        msg = f"{actor_name} archived the completed deal for the {label}."
        return NotificationCopy(
            NotificationType.deal_update.value, "Deal Archived", msg, f"Deal archived: {label}",
            "You can restore it anytime.",
        )

    if action == "restore":
        msg = f"{actor_name} restored the deal for the {label} from the archive."
        return NotificationCopy(
            NotificationType.deal_update.value, "Deal Restored", msg, f"Deal restored: {label}",
        )

    if action == "send_message":
        msg = f"{actor_name} sent you a message about the {label}."
        return NotificationCopy(
            NotificationType.message.value, "New Message", msg, f"New message about {label}",
        )

    if action == "rto_initiated":
        msg = f"{actor_name} filed the RTO transfer application for the {label}."
        return NotificationCopy(
            NotificationType.rto.value, "RTO Application Submitted", msg, f"RTO transfer filed for {label}",
        )

    msg = f"There is an update on your deal for the {label}."
    return NotificationCopy(NotificationType.deal_update.value, "Deal Update", msg, f"Deal update: {label}")
