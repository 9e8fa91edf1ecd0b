import pytest

from app.core.errors import PermissionDenied, TransientIOError, ValidationError
from app.models.rto_application import RTOApplication
from app.models.vehicle import Vehicle
from app.services.deal_room_service import DealRoomService
from app.services.rating_prompt import RatingPromptTracker
from app.services.rto_service import RTOService
from app.tests.factories import RecordingNotifier, actor_for

DOCS = [
    {"type": "form_29", "url": "https://files.example.com/f29.pdf", "name": "Form 29"},
    {"type": "form_30", "url": "https://files.example.com/f30.pdf"},
]


def paid_deal(db, seller, buyer, vehicle):
    svc = DealRoomService(db, notifier=RecordingNotifier(), prompts=RatingPromptTracker())
    tx = svc.open_deal(actor_for(buyer), vehicle.id, 900_000).transaction.id
    svc.perform_action(tx, "accept", {}, actor_for(seller))
    svc.perform_action(tx, "payment_success", {"payment_reference": "pay_1"}, actor_for(buyer))
    return svc, tx


def test_initiate_copies_party_details_and_notifies_other_side(db, seller, buyer, vehicle):
    _, tx = paid_deal(db, seller, buyer, vehicle)
    notifier = RecordingNotifier()
    row = RTOService(db, notifier).initiate(tx, actor_for(buyer), application_fee=1500, document_urls=DOCS)

    assert row.status == "submitted"
    assert row.seller_name == seller.business_name
    assert row.buyer_address == buyer.address
    assert row.application_fee == 1500
    assert row.document_urls[1]["name"] is None
    assert notifier.sent[0]["recipient"].id == seller.id
    assert notifier.sent[0]["copy"].type == "rto"


def test_initiate_survives_post_commit_lookup_failure(db, seller, buyer, vehicle, monkeypatch):
    _, tx = paid_deal(db, seller, buyer, vehicle)
    notifier = RecordingNotifier()
    rto = RTOService(db, notifier)
    real_find = rto.store.find

    def flaky_find(model, record_id):
        if model is Vehicle:
            raise TransientIOError("vehicle read failed")
        return real_find(model, record_id)

    monkeypatch.setattr(rto.store, "find", flaky_find)
    row = rto.initiate(tx, actor_for(buyer))

    assert db.get(RTOApplication, row.id) is not None
    assert notifier.sent == []


def test_initiate_requires_paid_deal_and_party(db, seller, buyer, outsider, vehicle):
    svc = DealRoomService(db, notifier=RecordingNotifier(), prompts=RatingPromptTracker())
    tx = svc.open_deal(actor_for(buyer), vehicle.id, 900_000).transaction.id
    with pytest.raises(ValidationError):
        RTOService(db).initiate(tx, actor_for(seller))

    svc.perform_action(tx, "accept", {}, actor_for(seller))
    svc.perform_action(tx, "payment_success", {"payment_reference": "pay_1"}, actor_for(buyer))
    with pytest.raises(PermissionDenied):
        RTOService(db).initiate(tx, actor_for(outsider))
    with pytest.raises(ValidationError):
        RTOService(db).initiate(tx, actor_for(seller), document_urls=[{"type": "form_29"}])


def test_only_one_open_application_per_deal(db, seller, buyer, vehicle):
    _, tx = paid_deal(db, seller, buyer, vehicle)
    rto = RTOService(db)
    first = rto.initiate(tx, actor_for(seller))
    with pytest.raises(ValidationError):
        rto.initiate(tx, actor_for(buyer))

    rto.advance(first.id, actor_for(seller), "rejected")
    second = rto.initiate(tx, actor_for(buyer))
    assert second.id != first.id


def test_advance_follows_the_pipeline(db, seller, buyer, vehicle):
    svc, tx = paid_deal(db, seller, buyer, vehicle)
    rto = RTOService(db)
    row = rto.initiate(tx, actor_for(seller))

    with pytest.raises(ValidationError):
        rto.advance(row.id, actor_for(seller), "completed")
    with pytest.raises(ValidationError):
        rto.advance(row.id, actor_for(seller), "lost_in_post")

    for status in ("in_process", "dispatch", "completed"):
        row = rto.advance(row.id, actor_for(buyer), status)
        assert row.status == status

    with pytest.raises(ValidationError):
        rto.advance(row.id, actor_for(buyer), "rejected")

    view = svc.load_deal_room(tx, actor_for(buyer))
    assert view.rto_application.status == "completed"
