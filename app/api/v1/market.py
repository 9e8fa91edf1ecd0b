# app/api/v1/market.py
from __future__ import annotations

from decimal import Decimal
from typing import Optional, Union

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.auth_deps import get_current_principal
from app.core.money import lakhs_to_rupees
from app.db.session import get_db
from app.models.vehicle import Vehicle
from app.schemas.market import MarketInsightsResponse
from app.services.entity_store import EntityStore
from app.services.market_insights_service import MarketInsightsService

router = APIRouter(prefix="/market", dependencies=[Depends(get_current_principal)])


@router.get("/insights", response_model=MarketInsightsResponse)
def market_insights(
    vehicle_id: str = Query(..., alias="vehicleId"),
    offer_lakhs: Optional[Union[Decimal, str]] = Query(default=None, alias="offerLakhs"),
    db: Session = Depends(get_db),
):
    vehicle = EntityStore(db).get(Vehicle, vehicle_id)
    offer = lakhs_to_rupees(offer_lakhs) if offer_lakhs is not None else None
    data = MarketInsightsService().insights(db, vehicle, offer_amount=offer)
    return MarketInsightsResponse(vehicleId=str(vehicle.id), **data)
