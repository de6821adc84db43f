"""
Stock Balance API
"""
from fastapi import APIRouter, Request

from app.api.crud import CrudController, SecurityRule, success_response
from app.schemas.stock import StockBalanceParams
from app.services import StockService

router = APIRouter(prefix="/stock-balance", tags=["stock-balance"])

SECURABLE = "STOCK_BALANCE"


@router.get("/{idProduct}")
async def get_stock_balance(request: Request):
    """Current balance of a product, optionally as of referenceDate"""
    operation = CrudController([SecurityRule(SECURABLE, "READ")])
    validated, error = await operation.read(request, StockBalanceParams)
    if not validated:
        raise error

    data = await operation.invoke(StockService.get_balance, validated)
    return success_response(data)
