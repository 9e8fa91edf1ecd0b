import uuid
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from app.core.errors import PermissionDenied, ValidationError
from app.models.enums import DealAction, DealRole, DealStatus, VehicleStatus
from app.services.deal_state_machine import DealStateMachine, role_for

SELLER = uuid.uuid4()
BUYER = uuid.uuid4()
OUTSIDER = uuid.uuid4()
NOW = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)


def make_deal(**kw):
    base = dict(
        id=uuid.uuid4(),
        seller_id=SELLER,
        buyer_id=BUYER,
        status=DealStatus.offer_made.value,
        offer_amount=900_000,
        final_amount=None,
        escrow_status="none",
        transport_status="none",
        messages=[{"id": "m0", "type": "offer_made", "sender_id": str(BUYER), "text": "offer",
                   "timestamp": NOW.isoformat(), "amount": 900_000}],
        seller_rating=None,
        buyer_rating=None,
        deal_archived=False,
    )
    base.update(kw)
    return SimpleNamespace(**base)


def apply(deal, action, actor, **payload):
    return DealStateMachine().apply(action, deal, actor_dealer_id=actor, payload=payload, now=NOW)


def commit(deal, result):
    """Apply changes in memory like the store would."""
    assert result.ok, result.error
    for k, v in result.changes.items():
        setattr(deal, k, v)
    return deal


def test_role_for_compares_ids_as_strings():
    deal = make_deal()
    assert role_for(deal, str(SELLER)) == DealRole.SELLER
    assert role_for(deal, BUYER) == DealRole.BUYER
    assert role_for(deal, OUTSIDER) is None
    assert role_for(deal, None) is None


def test_open_offer_on_live_vehicle():
    vehicle = SimpleNamespace(id=uuid.uuid4(), dealer_id=SELLER, status="live", year=2020, make="Honda", model="City")
    r = DealStateMachine().open_offer(vehicle, buyer_dealer_id=BUYER, amount=900_000, now=NOW)
    assert r.ok
    assert r.changes["status"] == DealStatus.offer_made.value
    assert r.changes["offer_amount"] == 900_000
    assert r.changes["messages"][0]["type"] == "offer_made"
    assert r.vehicle_status == VehicleStatus.in_transaction.value


def test_open_offer_rejects_own_vehicle_and_unlisted():
    own = SimpleNamespace(id=uuid.uuid4(), dealer_id=BUYER, status="live", year=2020, make="Honda", model="City")
    r = DealStateMachine().open_offer(own, buyer_dealer_id=BUYER, amount=900_000)
    assert not r.ok and isinstance(r.error, PermissionDenied)

    sold = SimpleNamespace(id=uuid.uuid4(), dealer_id=SELLER, status="sold", year=2020, make="Honda", model="City")
    r = DealStateMachine().open_offer(sold, buyer_dealer_id=BUYER, amount=900_000)
    assert not r.ok and isinstance(r.error, ValidationError)


@pytest.mark.parametrize("amount", [0, -5, None, "950000", True])
def test_counter_offer_requires_positive_integer_amount(amount):
    r = apply(make_deal(), "counter_offer", SELLER, amount=amount)
    assert not r.ok
    assert isinstance(r.error, ValidationError)


def test_only_seller_may_answer_initial_offer():
    deal = make_deal()
    r = apply(deal, "counter_offer", BUYER, amount=950_000)
    assert not r.ok and isinstance(r.error, PermissionDenied)

    commit(deal, apply(deal, "counter_offer", SELLER, amount=950_000))
    assert deal.status == DealStatus.negotiating.value

    # once negotiating, either side may counter
    commit(deal, apply(deal, "counter_offer", BUYER, amount=930_000))
    assert deal.offer_amount == 930_000


@pytest.mark.parametrize("action", ["accept", "reject"])
@pytest.mark.parametrize("status", ["offer_made", "negotiating"])
def test_accept_and_reject_are_seller_only(action, status):
    deal = make_deal(status=status)
    for actor in (BUYER, OUTSIDER):
        r = apply(deal, action, actor)
        assert not r.ok
        assert isinstance(r.error, ValidationError)
    assert apply(deal, action, SELLER).ok


def test_accept_freezes_final_amount_for_the_rest_of_the_deal():
    deal = make_deal(status="negotiating", offer_amount=950_000)
    commit(deal, apply(deal, "accept", SELLER))
    assert deal.final_amount == 950_000

    # no later action writes final_amount, and counters are closed
    assert not apply(deal, "counter_offer", BUYER, amount=800_000).ok
    for action, actor, payload in [
        ("payment_success", BUYER, {"payment_reference": "pay_123"}),
        ("release_funds", SELLER, {}),
        ("book_transport", BUYER, {"partner": "aura_logistics", "pickup_date": NOW}),
        ("confirm_delivery", SELLER, {}),
        ("submit_rating", BUYER, {"rating": 5}),
        ("archive", SELLER, {}),
    ]:
        r = apply(deal, action, actor, **payload)
        assert r.ok, (action, r.error)
        assert "final_amount" not in r.changes
        commit(deal, r)
    assert deal.final_amount == 950_000


def test_reject_returns_vehicle_to_market():
    r = apply(make_deal(status="negotiating"), "reject", SELLER)
    assert r.ok
    assert r.changes["status"] == DealStatus.cancelled.value
    assert r.vehicle_status == VehicleStatus.live.value


def test_payment_requires_reference_and_matching_amount():
    deal = make_deal(status="accepted", final_amount=950_000)
    assert not apply(deal, "payment_success", BUYER).ok
    assert not apply(deal, "payment_success", BUYER, payment_reference="pay_1", amount=900_000).ok
    assert not apply(deal, "payment_success", SELLER, payment_reference="pay_1").ok

    r = apply(deal, "payment_success", BUYER, payment_reference="pay_1", amount=950_000, payment_method="upi")
    assert r.ok
    assert r.changes["status"] == DealStatus.in_escrow.value
    assert r.changes["escrow_status"] == "paid"
    assert r.changes["payment_confirmed_at"] == NOW


def test_release_requires_paid_escrow():
    deal = make_deal(status="in_escrow", final_amount=950_000, escrow_status="none")
    r = apply(deal, "release_funds", SELLER)
    assert not r.ok and isinstance(r.error, ValidationError)

    deal.escrow_status = "paid"
    assert not apply(deal, "release_funds", BUYER).ok
    r = apply(deal, "release_funds", SELLER)
    assert r.ok
    assert r.changes["escrow_status"] == "released"
    assert r.vehicle_status == VehicleStatus.sold.value


def test_book_transport_sets_partner_and_eta():
    deal = make_deal(status="in_escrow", final_amount=950_000, escrow_status="paid")
    assert not apply(deal, "book_transport", BUYER, partner="nobody", pickup_date=NOW).ok
    assert not apply(deal, "book_transport", BUYER, partner="aura_logistics").ok

    r = apply(deal, "book_transport", BUYER, partner="secure_movers", pickup_date=NOW,
              pickup_address="Pune", delivery_address="Mumbai")
    assert r.ok
    assert r.changes["transport_status"] == "in_transit"
    assert r.changes["transport_booking_id"].startswith("TRK")
    assert (r.changes["delivery_eta"] - r.changes["pickup_eta"]).days == 2
    commit(deal, r)
    assert not apply(deal, "book_transport", SELLER, partner="aura_logistics", pickup_date=NOW).ok


def test_confirm_delivery_needs_transport_in_transit():
    deal = make_deal(status="completed", final_amount=950_000, escrow_status="released")
    assert not apply(deal, "confirm_delivery", SELLER).ok
    deal.transport_status = "in_transit"
    r = apply(deal, "confirm_delivery", SELLER)
    assert r.ok
    assert r.changes["transport_status"] == "delivered"


def delivered_deal(**kw):
    return make_deal(status="completed", final_amount=950_000, escrow_status="released",
                     transport_status="delivered", **kw)


def test_rating_once_per_role_and_first_rating_counts_the_deal():
    deal = delivered_deal()
    first = apply(deal, "submit_rating", BUYER, rating=5, review="Smooth deal")
    assert first.ok
    assert first.rating.rated_dealer_id == SELLER
    assert first.rating.count_completed_deal is True
    commit(deal, first)
    assert deal.buyer_rating["rating"] == 5

    again = apply(deal, "submit_rating", BUYER, rating=1)
    assert not again.ok

    second = apply(deal, "submit_rating", SELLER, rating=4)
    assert second.ok
    assert second.rating.rated_dealer_id == BUYER
    assert second.rating.count_completed_deal is False


@pytest.mark.parametrize("score", [0, 6, 4.5, "5", None, True])
def test_rating_score_must_be_one_to_five(score):
    assert not apply(delivered_deal(), "submit_rating", SELLER, rating=score).ok


def test_rating_not_open_before_delivery():
    deal = make_deal(status="completed", final_amount=950_000, escrow_status="released", transport_status="in_transit")
    assert not apply(deal, "submit_rating", BUYER, rating=5).ok


@pytest.mark.parametrize("status,transport", [
    ("offer_made", "none"),
    ("accepted", "none"),
    ("in_escrow", "delivered"),
    ("completed", "in_transit"),
    ("cancelled", "none"),
])
def test_archive_only_completed_and_delivered(status, transport):
    deal = make_deal(status=status, transport_status=transport)
    r = apply(deal, "archive", SELLER)
    assert not r.ok


def test_archive_then_restore():
    deal = delivered_deal()
    commit(deal, apply(deal, "archive", BUYER))
    assert deal.deal_archived is True
    assert not apply(deal, "archive", SELLER).ok
    commit(deal, apply(deal, "restore", SELLER))
    assert deal.deal_archived is False
    assert deal.archived_at is None


def test_messages_are_append_only():
    deal = make_deal()
    snapshots = [list(deal.messages)]
    steps = [
        ("counter_offer", SELLER, {"amount": 950_000}),
        ("send_message", BUYER, {"text": "Can you include the spare key?"}),
        ("counter_offer", BUYER, {"amount": 940_000}),
        ("accept", SELLER, {}),
    ]
    for action, actor, payload in steps:
        commit(deal, apply(deal, action, actor, **payload))
        prev = snapshots[-1]
        assert len(deal.messages) == len(prev) + 1
        assert deal.messages[: len(prev)] == prev
        snapshots.append(list(deal.messages))


def test_send_message_validation():
    deal = make_deal()
    assert not apply(deal, "send_message", BUYER, text="   ").ok
    assert not apply(deal, "send_message", BUYER, text="x" * 2001).ok
    assert not apply(deal, "send_message", OUTSIDER, text="hello").ok


def test_unknown_action_is_a_validation_failure():
    r = apply(make_deal(), "teleport", SELLER)
    assert not r.ok
    assert isinstance(r.error, ValidationError)


def test_allowed_actions_follow_role_and_status():
    m = DealStateMachine()
    deal = make_deal()
    assert set(m.allowed_actions(deal, DealRole.SELLER)) >= {"counter_offer", "accept", "reject", "send_message"}
    assert "accept" not in m.allowed_actions(deal, DealRole.BUYER)
    assert m.allowed_actions(deal, None) == []

    accepted = make_deal(status="accepted", final_amount=900_000)
    assert "payment_success" in m.allowed_actions(accepted, DealRole.BUYER)
    assert "payment_success" not in m.allowed_actions(accepted, DealRole.SELLER)
    assert DealAction.archive.value not in m.allowed_actions(accepted, DealRole.SELLER)
