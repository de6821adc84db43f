"""
API Router - versioned JSON endpoints
"""
from fastapi import APIRouter

from app.api.stock_movement import router as stock_movement_router
from app.api.stock_balance import router as stock_balance_router
from app.api.stock_movement_history import router as stock_movement_history_router

# Authenticated endpoints for business operations
internal_router = APIRouter(prefix="/internal")
internal_router.include_router(stock_movement_router)
internal_router.include_router(stock_balance_router)
internal_router.include_router(stock_movement_history_router)

v1_router = APIRouter(prefix="/v1")
v1_router.include_router(internal_router)

api_router = APIRouter(tags=["API"])
api_router.include_router(v1_router)
