# app/services/offer_history.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from app.models.enums import NEGOTIATION_EVENTS

UNKNOWN_DEALER = "Unknown Dealer"
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _sort_key(event: Dict[str, Any]):
    ts = event.get("timestamp")
    try:
        dt = datetime.fromisoformat(ts)
    except (TypeError, ValueError):
        return _EPOCH
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def negotiation_history(
    messages: Optional[Iterable[Dict[str, Any]]],
    *,
    viewer_dealer_id: Any = None,
    seller=None,
    buyer=None,
) -> List[Dict[str, Any]]:
    """
    Offers, counter-offers and decisions, oldest first.

    Reads the structured event fields only (type/amount/sender_id).
    """
    names = {}
    if seller is not None:
        names[str(seller.id)] = seller.business_name
    if buyer is not None:
        names[str(buyer.id)] = buyer.business_name

    out: List[Dict[str, Any]] = []
    for event in messages or []:
        if event.get("type") not in NEGOTIATION_EVENTS:
            continue
        sender = event.get("sender_id")
        is_viewer = viewer_dealer_id is not None and sender == str(viewer_dealer_id)
        out.append({
            "id": event.get("id"),
            "type": event["type"],
            "amount": event.get("amount"),
            "sender_id": sender,
            "sender": "You" if is_viewer else names.get(sender, UNKNOWN_DEALER),
            "is_current_user": is_viewer,
            "timestamp": event.get("timestamp"),
            "text": event.get("text"),
        })

    # stable sort keeps append order for equal timestamps
    return sorted(out, key=_sort_key)
