# app/core/money.py
from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Union

from app.core.config import get_settings
from app.core.errors import ValidationError

AmountInput = Union[Decimal, int, float, str]

# transactions.offer_amount / final_amount are 32-bit INTEGER columns
MAX_AMOUNT_RUPEES = 2_147_483_647


def _unit(unit_rupees: Optional[int]) -> int:
    return unit_rupees or get_settings().amount_unit_rupees


def lakhs_to_rupees(value: AmountInput, unit_rupees: Optional[int] = None) -> int:
    """
    Convert an amount entered in display units (lakhs) into stored integer rupees.
    """
    try:
        dec = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Amount must be numeric, got {value!r}.")
    if not dec.is_finite():
        raise ValidationError("Amount must be a finite number.")

    try:
        rupees = (dec * _unit(unit_rupees)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError(f"Amount is out of range, got {value!r}.")
    if rupees <= 0:
        raise ValidationError("Amount must be greater than zero.")
    if rupees > MAX_AMOUNT_RUPEES:
        raise ValidationError("Amount exceeds the maximum allowed deal value.")
    return int(rupees)


def require_positive_rupees(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("Amount must be an integer number of rupees.")
    if value <= 0:
        raise ValidationError("Amount must be greater than zero.")
    if value > MAX_AMOUNT_RUPEES:
        raise ValidationError("Amount exceeds the maximum allowed deal value.")
    return value


def format_lakhs(rupees: Optional[int], unit_rupees: Optional[int] = None) -> str:
    if not rupees:
        return "N/A"
    lakhs = Decimal(rupees) / _unit(unit_rupees)
    return f"₹{lakhs.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP).normalize():f}L"
