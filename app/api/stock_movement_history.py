"""
Stock Movement History API
"""
from fastapi import APIRouter, Request

from app.api.crud import CrudController, SecurityRule, success_response
from app.schemas.stock import StockMovementHistoryParams
from app.services import StockService

router = APIRouter(prefix="/stock-movement-history", tags=["stock-movement-history"])

SECURABLE = "STOCK_MOVEMENT_HISTORY"


@router.get("/{idProduct}")
async def get_stock_movement_history(request: Request):
    operation = CrudController([SecurityRule(SECURABLE, "READ")])
    validated, error = await operation.read(request, StockMovementHistoryParams)
    if not validated:
        raise error

    data = await operation.invoke(StockService.get_history, validated)
    return success_response(data)
