import uuid

import pytest

from app.services.idempotency_service import IdempotencyScope, IdempotencyService


def scope(tx, email="owner@kapoorcars.in", key="k-1"):
    return IdempotencyScope(
        transaction_id=tx, actor_email=email, endpoint_key=f"POST:/api/v1/deals/{tx}/actions", idem_key=key
    )


def test_replay_is_scoped_to_transaction_and_actor(db):
    svc = IdempotencyService()
    tx = uuid.uuid4()
    body = {"action": "counter_offer", "amountLakhs": "9.5"}

    replay, status, req_hash = svc.reserve_or_replay(db, scope(tx), body)
    assert replay is None and status is None
    svc.store_response(db, scope(tx), request_hash=req_hash, response_json={"stage": "negotiating"},
                       response_status=200)

    assert svc.reserve_or_replay(db, scope(tx), body)[:2] == ({"stage": "negotiating"}, 200)
    # same key on another deal or from the counterpart is a fresh request
    assert svc.reserve_or_replay(db, scope(uuid.uuid4()), body)[0] is None
    assert svc.reserve_or_replay(db, scope(tx, email="owner@sharmamotors.in"), body)[0] is None

    with pytest.raises(ValueError):
        svc.reserve_or_replay(db, scope(tx), {"action": "counter_offer", "amountLakhs": "9.7"})


def test_first_stored_response_wins(db):
    svc = IdempotencyService()
    tx = uuid.uuid4()
    _, _, req_hash = svc.reserve_or_replay(db, scope(tx), {"action": "accept"})
    svc.store_response(db, scope(tx), request_hash=req_hash, response_json={"n": 1}, response_status=200)
    svc.store_response(db, scope(tx), request_hash=req_hash, response_json={"n": 2}, response_status=200)

    assert svc.get_existing(db, scope(tx)).response_json == {"n": 1}
