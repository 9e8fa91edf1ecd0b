# app/services/market_insights_service.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.enums import VehicleStatus
from app.models.vehicle import Vehicle

YEAR_RANGE = 2
SIGNIFICANT_PCT = 10.0


def confidence_for(sample_size: int) -> str:
    if sample_size >= 10:
        return "high"
    if sample_size >= 5:
        return "medium"
    return "low"


def price_analysis(price: Optional[int], average_price: Optional[int]) -> Optional[Dict[str, Any]]:
    if not price or not average_price:
        return None
    difference = price - average_price
    percentage = difference / average_price * 100
    return {
        "difference": abs(difference),
        "percentage": round(abs(percentage), 2),
        "is_above_market": difference > 0,
        "is_significant": abs(percentage) > SIGNIFICANT_PCT,
    }


def summarize_prices(prices: List[int], year: int) -> Dict[str, Any]:
    if not prices:
        return {
            "average_price": None,
            "total_similar_sales": 0,
            "price_range": {"min": 0, "max": 0},
            "confidence": "low",
            "year_range": f"{year - YEAR_RANGE}-{year + YEAR_RANGE}",
        }
    return {
        "average_price": round(sum(prices) / len(prices)),
        "total_similar_sales": len(prices),
        "price_range": {"min": min(prices), "max": max(prices)},
        "confidence": confidence_for(len(prices)),
        "year_range": f"{year - YEAR_RANGE}-{year + YEAR_RANGE}",
    }


class MarketInsightsService:
    """
    Read-only pricing context from historical sales of similar vehicles.
    """

    def similar_sold_prices(self, db: Session, vehicle: Vehicle) -> List[int]:
        return list(
            db.execute(
                select(Vehicle.price).where(
                    Vehicle.make == vehicle.make,
                    Vehicle.model == vehicle.model,
                    Vehicle.status == VehicleStatus.sold.value,
                    Vehicle.year >= vehicle.year - YEAR_RANGE,
                    Vehicle.year <= vehicle.year + YEAR_RANGE,
                    Vehicle.price > 0,
                    Vehicle.id != vehicle.id,
                )
            ).scalars().all()
        )

    def insights(self, db: Session, vehicle: Vehicle, *, offer_amount: Optional[int] = None) -> Dict[str, Any]:
        summary = summarize_prices(self.similar_sold_prices(db, vehicle), vehicle.year)
        avg = summary["average_price"]
        return {
            **summary,
            "listed_price": vehicle.price,
            "offer_amount": offer_amount,
            "offer_analysis": price_analysis(offer_amount, avg),
            "listed_price_analysis": price_analysis(vehicle.price, avg),
        }
