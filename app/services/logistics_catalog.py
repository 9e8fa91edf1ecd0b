# app/services/logistics_catalog.py
from __future__ import annotations

import secrets
import string
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional


@dataclass(frozen=True)
class TransportPartner:
    id: str
    name: str
    price_inr: int
    rating: float
    eta_min_days: int
    eta_max_days: int
    phone: str
    contact: str

    @property
    def eta_label(self) -> str:
        return f"{self.eta_min_days}-{self.eta_max_days} days"


TRANSPORT_PARTNERS: Dict[str, TransportPartner] = {
    p.id: p
    for p in (
        TransportPartner("aura_logistics", "Aura Express Logistics", 8500, 4.8, 2, 3, "+91-8800-2872-01", "Rajesh Kumar"),
        TransportPartner("swift_transport", "Swift Vehicle Transport", 7200, 4.6, 3, 4, "+91-9900-7943-82", "Amit Sharma"),
        TransportPartner("secure_movers", "Secure Auto Movers", 9200, 4.9, 1, 2, "+91-7700-7328-73", "Priya Singh"),
    )
}


def get_partner(partner_id: Optional[str]) -> Optional[TransportPartner]:
    if not partner_id:
        return None
    return TRANSPORT_PARTNERS.get(partner_id)


def delivery_eta(partner: TransportPartner, pickup: datetime) -> datetime:
    # plan against the slow end of the partner's range
    return pickup + timedelta(days=partner.eta_max_days)


def new_booking_id(now: datetime) -> str:
    suffix = "".join(secrets.choice(string.ascii_uppercase + string.digits) for _ in range(5))
    return f"TRK{int(now.timestamp() * 1000)}{suffix}"
