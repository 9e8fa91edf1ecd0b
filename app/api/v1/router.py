from fastapi import APIRouter

from app.api.v1.health import router as health_router
from app.api.v1.deals import router as deals_router
from app.api.v1.market import router as market_router
from app.api.v1.notifications import router as notifications_router
from app.api.v1.rto import router as rto_router

v1_router = APIRouter()

v1_router.include_router(health_router, tags=["health"])
v1_router.include_router(deals_router, tags=["deals"])
v1_router.include_router(market_router, tags=["market"])
v1_router.include_router(notifications_router, tags=["notifications"])
v1_router.include_router(rto_router, tags=["rto"])
