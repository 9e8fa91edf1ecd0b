#app/models/enums.py
from __future__ import annotations
from enum import Enum


class DealRole(str, Enum):
    SELLER = "seller"
    BUYER = "buyer"


class DealStatus(str, Enum):
    offer_made = "offer_made"
    negotiating = "negotiating"
    accepted = "accepted"
    in_escrow = "in_escrow"
    completed = "completed"
    cancelled = "cancelled"


# display-only stage for accepted deals that are not yet paid; never persisted
PAYMENT_PENDING_STAGE = "payment_pending"


class EscrowStatus(str, Enum):
    none = "none"
    paid = "paid"
    released = "released"


class TransportStatus(str, Enum):
    none = "none"
    in_transit = "in_transit"
    delivered = "delivered"


class VehicleStatus(str, Enum):
    draft = "draft"
    live = "live"
    in_transaction = "in_transaction"
    sold = "sold"


class DealAction(str, Enum):
    counter_offer = "counter_offer"
    accept = "accept"
    reject = "reject"
    payment_success = "payment_success"
    release_funds = "release_funds"
    book_transport = "book_transport"
    confirm_delivery = "confirm_delivery"
    submit_rating = "submit_rating"
    archive = "archive"
    restore = "restore"
    send_message = "send_message"


class DealEventType(str, Enum):
    offer_made = "offer_made"
    counter_offer = "counter_offer"
    accepted = "accepted"
    rejected = "rejected"
    payment = "payment"
    funds_released = "funds_released"
    transport_booked = "transport_booked"
    delivery_confirmed = "delivery_confirmed"
    rating = "rating"
    chat = "chat"


NEGOTIATION_EVENTS = frozenset({
    DealEventType.offer_made.value,
    DealEventType.counter_offer.value,
    DealEventType.accepted.value,
    DealEventType.rejected.value,
})


class RTOStatus(str, Enum):
    submitted = "submitted"
    in_process = "in_process"
    dispatch = "dispatch"
    completed = "completed"
    rejected = "rejected"


class NotificationType(str, Enum):
    offer = "offer"
    deal_update = "deal_update"
    payment = "payment"
    logistics = "logistics"
    rating = "rating"
    message = "message"
    rto = "rto"
