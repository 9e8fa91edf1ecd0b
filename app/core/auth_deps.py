#app/core/auth_deps.py
from __future__ import annotations

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.hashing import sha256_hex
from app.core.security import decode_token
from app.db.session import get_db
from app.policies.rbac import ActorContext, Principal, resolve_actor
from app.services.entity_store import EntityStore

bearer = HTTPBearer(auto_error=True)


def get_current_principal(
    request: Request,
    creds: HTTPAuthorizationCredentials = Depends(bearer),
) -> Principal:
    """
    Canonical authentication dependency.

    Guarantees:
    - JWT is valid
    - email is present
    - session_id is stable for the token (sid claim, else token hash)
    """

    try:
        payload = decode_token(creds.credentials)
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid or expired token.")

    email = payload.get("email") or payload.get("sub")
    if not email or "@" not in str(email):
        raise HTTPException(status_code=401, detail="Token missing required claims.")

    display_name = payload.get("display_name") or payload.get("full_name") or str(email)
    session_id = payload.get("sid") or sha256_hex(creds.credentials)[:32]

    principal = Principal(
        email=str(email).lower(),
        display_name=str(display_name),
        session_id=str(session_id),
    )

    # Make principal available to downstream middleware / handlers
    request.state.principal = principal

    return principal


def get_actor(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> ActorContext:
    return resolve_actor(EntityStore(db), principal)
