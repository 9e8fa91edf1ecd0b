from decimal import Decimal

import pytest

from app.core.errors import ValidationError
from app.core.money import MAX_AMOUNT_RUPEES, format_lakhs, lakhs_to_rupees, require_positive_rupees


@pytest.mark.parametrize("value,expected", [
    ("9.5", 950_000),
    (9.5, 950_000),
    (Decimal("10"), 1_000_000),
    ("0.000005", 1),
    (" 12.345675 ", 1_234_568),
])
def test_lakhs_to_rupees(value, expected):
    assert lakhs_to_rupees(value) == expected


@pytest.mark.parametrize(
    "value", ["abc", "", None, "0", "-1", 0, "NaN", "Infinity", "1e30", "-1e30", "21475"]
)
def test_lakhs_to_rupees_rejects_bad_amounts(value):
    with pytest.raises(ValidationError):
        lakhs_to_rupees(value)


def test_custom_unit():
    assert lakhs_to_rupees("2", unit_rupees=1) == 2


def test_require_positive_rupees():
    assert require_positive_rupees(5) == 5
    for bad in (0, -1, 1.5, True, "5", None, MAX_AMOUNT_RUPEES + 1):
        with pytest.raises(ValidationError):
            require_positive_rupees(bad)


def test_format_lakhs():
    assert format_lakhs(950_000) == "₹9.5L"
    assert format_lakhs(1_000_000) == "₹10L"
    assert format_lakhs(1_234_567) == "₹12.35L"
    assert format_lakhs(0) == "N/A"
    assert format_lakhs(None) == "N/A"
