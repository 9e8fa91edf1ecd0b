from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class PriceRange(BaseModel):
    min: int
    max: int


class PriceAnalysis(BaseModel):
    difference: int
    percentage: float
    is_above_market: bool
    is_significant: bool


class MarketInsightsResponse(BaseModel):
    vehicleId: str
    average_price: Optional[int] = None
    total_similar_sales: int
    price_range: PriceRange
    confidence: str
    year_range: str
    listed_price: Optional[int] = None
    offer_amount: Optional[int] = None
    offer_analysis: Optional[PriceAnalysis] = None
    listed_price_analysis: Optional[PriceAnalysis] = None
