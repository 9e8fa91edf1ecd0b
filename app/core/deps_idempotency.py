from __future__ import annotations

import uuid
from typing import Optional

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.core.auth_deps import get_current_principal
from app.policies.rbac import Principal
from app.services.idempotency_service import IdempotencyScope, IdempotencyService


async def optional_idempotency_key(request: Request) -> Optional[str]:
    key = request.headers.get("Idempotency-Key")
    if not key:
        return None
    if len(key) > 128:
        raise HTTPException(status_code=400, detail="Idempotency-Key too long.")
    return key


async def idempotency_guard(
    request: Request,
    idem_key: Optional[str] = Depends(optional_idempotency_key),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> Optional[str]:
    """
    Use on POST deal action endpoints. No-op without an Idempotency-Key header.

    Stores in request.state:
      - idempotency_key
      - idempotency_request_hash
      - idempotency_replay_json (optional)
      - idempotency_replay_status (optional)
    """
    request.state.idempotency_key = idem_key
    request.state.idempotency_replay_json = None
    request.state.idempotency_replay_status = None
    if idem_key is None:
        return None

    raw_tid = request.path_params.get("transaction_id")
    try:
        tid = uuid.UUID(str(raw_tid))
    except Exception:
        raise HTTPException(status_code=400, detail="transactionId must be UUID.")

    endpoint_key = f"{request.method}:{request.url.path}"

    # Read JSON body once and cache it
    try:
        payload = await request.json()
    except Exception:
        payload = {}

    scope = IdempotencyScope(
        transaction_id=tid,
        actor_email=principal.email,
        endpoint_key=endpoint_key,
        idem_key=idem_key,
    )
    try:
        replay_json, replay_status, req_hash = IdempotencyService().reserve_or_replay(
            db,
            scope,
            payload if isinstance(payload, dict) else {"_": payload},
        )
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))

    request.state.idempotency_scope = scope
    request.state.idempotency_request_hash = req_hash
    request.state.idempotency_replay_json = replay_json
    request.state.idempotency_replay_status = replay_status

    return idem_key
