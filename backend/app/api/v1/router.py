from fastapi import APIRouter

from backend.app.api.v1.endpoints.health import router as health_router
from backend.app.api.v1.endpoints.reservations import router as reservations_router
from backend.app.api.v1.endpoints.stock import router as stock_router
from backend.app.api.v1.endpoints.jobs import router as jobs_router

router = APIRouter()
router.include_router(health_router, tags=["health"])
router.include_router(reservations_router, tags=["reservations"])
router.include_router(stock_router, tags=["stock"])
router.include_router(jobs_router, tags=["jobs"])
