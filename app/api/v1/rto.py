# app/api/v1/rto.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from app.core.auth_deps import get_actor
from app.core.deps import get_rto_service
from app.policies.rbac import ActorContext
from app.schemas.deals import RTOApplicationOut
from app.schemas.rto import RTOInitiateRequest, RTOStatusRequest
from app.services.rto_service import RTOService

router = APIRouter(prefix="/rto")


@router.post("", response_model=RTOApplicationOut, status_code=201)
def initiate_rto(
    body: RTOInitiateRequest,
    actor: ActorContext = Depends(get_actor),
    svc: RTOService = Depends(get_rto_service),
):
    row = svc.initiate(
        body.transactionId,
        actor,
        application_fee=body.applicationFee,
        document_urls=[d.model_dump() for d in body.documents],
    )
    return RTOApplicationOut.model_validate(row)


@router.post("/{application_id}/status", response_model=RTOApplicationOut)
def advance_rto(
    application_id: str,
    body: RTOStatusRequest,
    actor: ActorContext = Depends(get_actor),
    svc: RTOService = Depends(get_rto_service),
):
    return RTOApplicationOut.model_validate(svc.advance(application_id, actor, body.status.value))
