# app/api/v1/deals.py
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.core.auth_deps import get_actor
from app.core.deps import get_deal_room_service, require_transaction_id
from app.core.deps_idempotency import idempotency_guard
from app.core.money import lakhs_to_rupees
from app.db.session import get_db
from app.models.enums import DealAction
from app.policies.rbac import ActorContext
from app.schemas.deals import (
    DealActionRequest,
    DealerOut,
    DealRoomResponse,
    MakeOfferRequest,
    NegotiationEventOut,
    NegotiationHistoryResponse,
    RTOApplicationOut,
    TransactionOut,
    VehicleOut,
)
from app.services.deal_room_service import DealRoomService, DealRoomView
from app.services.idempotency_service import IdempotencyService

router = APIRouter(prefix="/deals")


# ─────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────

def _dealer(d) -> Optional[DealerOut]:
    return DealerOut.model_validate(d) if d is not None else None


def view_to_schema(view: DealRoomView) -> DealRoomResponse:
    return DealRoomResponse(
        transaction=TransactionOut.model_validate(view.transaction),
        vehicle=VehicleOut.model_validate(view.vehicle),
        seller=_dealer(view.seller),
        buyer=_dealer(view.buyer),
        sellerName=view.seller_name,
        buyerName=view.buyer_name,
        currentDealer=_dealer(view.current_dealer),
        rtoApplication=(
            RTOApplicationOut.model_validate(view.rto_application) if view.rto_application else None
        ),
        isSellerView=view.is_seller_view,
        isBuyerView=view.is_buyer_view,
        role=view.role,
        stage=view.stage,
        allowedActions=view.allowed_actions,
        negotiationHistory=[NegotiationEventOut(**e) for e in view.negotiation_history],
        marketInsights=view.market_insights,
        payoutDetails=view.payout_details,
        showRatingPrompt=view.show_rating_prompt,
    )


def action_payload(body: DealActionRequest) -> Dict[str, Any]:
    """
    Request body -> state machine payload. Amounts arrive in lakhs, leave in rupees.
    """
    payload: Dict[str, Any] = {}
    if body.action == DealAction.counter_offer:
        payload["amount"] = lakhs_to_rupees(body.amountLakhs)
    elif body.action == DealAction.payment_success:
        payload["payment_reference"] = body.paymentReference
        payload["payment_method"] = body.paymentMethod
        if body.paidAmountLakhs is not None:
            payload["amount"] = lakhs_to_rupees(body.paidAmountLakhs)
    elif body.action == DealAction.book_transport:
        payload["partner"] = body.partner
        payload["pickup_date"] = body.pickupDate
        payload["pickup_address"] = body.pickupAddress
        payload["delivery_address"] = body.deliveryAddress
    elif body.action == DealAction.submit_rating:
        payload["rating"] = body.rating
        payload["review"] = body.review
    elif body.action == DealAction.send_message:
        payload["text"] = body.text
    return payload


# ─────────────────────────────────────────────────────────────
# OPEN DEAL (initial offer)
# ─────────────────────────────────────────────────────────────

@router.post("", response_model=DealRoomResponse, status_code=201)
def make_offer(
    body: MakeOfferRequest,
    actor: ActorContext = Depends(get_actor),
    svc: DealRoomService = Depends(get_deal_room_service),
):
    amount = lakhs_to_rupees(body.amountLakhs)
    view = svc.open_deal(actor, body.vehicleId, amount)
    return view_to_schema(view)


# ─────────────────────────────────────────────────────────────
# DEAL ROOM VIEW
# ─────────────────────────────────────────────────────────────

@router.get("/room", response_model=DealRoomResponse)
def get_deal_room(
    transaction_id: str = Depends(require_transaction_id),
    actor: ActorContext = Depends(get_actor),
    svc: DealRoomService = Depends(get_deal_room_service),
):
    return view_to_schema(svc.load_deal_room(transaction_id, actor))


@router.get("/{transaction_id}/history", response_model=NegotiationHistoryResponse)
def get_negotiation_history(
    transaction_id: str,
    actor: ActorContext = Depends(get_actor),
    svc: DealRoomService = Depends(get_deal_room_service),
):
    view = svc.load_deal_room(transaction_id, actor, claim_prompt=False)
    return NegotiationHistoryResponse(
        transactionId=str(view.transaction.id),
        events=[NegotiationEventOut(**e) for e in view.negotiation_history],
    )


# ─────────────────────────────────────────────────────────────
# ACTIONS
# ─────────────────────────────────────────────────────────────

@router.post("/{transaction_id}/actions", response_model=DealRoomResponse)
def perform_action(
    transaction_id: str,
    body: DealActionRequest,
    request: Request,
    idem_key: Optional[str] = Depends(idempotency_guard),
    actor: ActorContext = Depends(get_actor),
    svc: DealRoomService = Depends(get_deal_room_service),
    db: Session = Depends(get_db),
):
    if request.state.idempotency_replay_json is not None:
        return JSONResponse(
            content=request.state.idempotency_replay_json,
            status_code=request.state.idempotency_replay_status or 200,
        )

    view = svc.perform_action(transaction_id, body.action.value, action_payload(body), actor)
    response = view_to_schema(view)

    if idem_key is not None:
        IdempotencyService().store_response(
            db,
            request.state.idempotency_scope,
            request_hash=request.state.idempotency_request_hash,
            response_json=jsonable_encoder(response),
            response_status=200,
        )
    return response


@router.post("/{transaction_id}/rating-prompt/skip", status_code=204)
def skip_rating_prompt(
    transaction_id: str,
    actor: ActorContext = Depends(get_actor),
    svc: DealRoomService = Depends(get_deal_room_service),
):
    svc.skip_rating(transaction_id, actor)
