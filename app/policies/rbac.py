#app/policies/rbac.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from app.core.errors import TransientIOError, ValidationError
from app.models.dealer import Dealer


@dataclass(frozen=True)
class Principal:
    """Authenticated user as carried by the bearer token."""

    email: str
    display_name: str
    session_id: str


@dataclass(frozen=True)
class ActorContext:
    """
    Who is acting, passed explicitly into every deal room call.
    dealer_id is None when the user has no dealer profile.
    """

    email: str
    display_name: str
    session_id: str
    dealer_id: Optional[Any] = None
    dealer: Optional[Dealer] = None

    @property
    def has_dealer(self) -> bool:
        return self.dealer_id is not None


def resolve_actor(store, principal: Principal) -> ActorContext:
    """
    Map the principal to the dealer profile it owns (by owner email).
    """
    try:
        dealer = store.db.execute(
            select(Dealer).where(Dealer.owner_email == principal.email)
        ).scalar_one_or_none()
    except SQLAlchemyError as exc:
        store.db.rollback()
        raise TransientIOError("Could not load your dealer profile. Please retry.") from exc

    return ActorContext(
        email=principal.email,
        display_name=dealer.business_name if dealer else principal.display_name,
        session_id=principal.session_id,
        dealer_id=dealer.id if dealer else None,
        dealer=dealer,
    )


def require_dealer(actor: ActorContext) -> None:
    if not actor.has_dealer:
        raise ValidationError(
            "A dealer profile is required for deal actions.",
            details={"email": actor.email},
        )
