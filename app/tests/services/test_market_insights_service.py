from app.services.market_insights_service import (
    MarketInsightsService,
    confidence_for,
    price_analysis,
    summarize_prices,
)
from app.tests.factories import make_vehicle


def test_confidence_thresholds():
    assert confidence_for(0) == "low"
    assert confidence_for(4) == "low"
    assert confidence_for(5) == "medium"
    assert confidence_for(9) == "medium"
    assert confidence_for(10) == "high"


def test_price_analysis():
    a = price_analysis(1_200_000, 1_000_000)
    assert a == {"difference": 200_000, "percentage": 20.0, "is_above_market": True, "is_significant": True}

    b = price_analysis(950_000, 1_000_000)
    assert b["is_above_market"] is False
    assert b["is_significant"] is False

    assert price_analysis(None, 1_000_000) is None
    assert price_analysis(900_000, None) is None


def test_summary_without_sales():
    s = summarize_prices([], 2020)
    assert s["average_price"] is None
    assert s["total_similar_sales"] == 0
    assert s["year_range"] == "2018-2022"


def test_insights_from_similar_sold_vehicles(db, seller):
    subject = make_vehicle(db, seller, year=2020, price=1_000_000)
    for year, price in [(2018, 800_000), (2021, 900_000), (2022, 1_000_000), (2019, 700_000)]:
        make_vehicle(db, seller, year=year, price=price, status="sold")
    # outside the comparable set
    make_vehicle(db, seller, year=2016, price=300_000, status="sold")
    make_vehicle(db, seller, year=2020, price=2_000_000, status="live")
    make_vehicle(db, seller, year=2020, price=5_000_000, status="sold", model="Civic")
    make_vehicle(db, seller, year=2020, price=0, status="sold")

    out = MarketInsightsService().insights(db, subject, offer_amount=700_000)
    assert out["total_similar_sales"] == 4
    assert out["average_price"] == 850_000
    assert out["price_range"] == {"min": 700_000, "max": 1_000_000}
    assert out["confidence"] == "low"
    assert out["offer_analysis"]["is_above_market"] is False
    assert out["offer_analysis"]["is_significant"] is True
    assert out["listed_price_analysis"]["is_above_market"] is True
