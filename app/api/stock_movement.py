"""
Stock Movement API - create and list stock movements
"""
from fastapi import APIRouter, Request

from app.api.crud import CrudController, SecurityRule, success_response
from app.schemas.stock import StockMovementCreate, StockMovementListParams
from app.services import StockService

router = APIRouter(prefix="/stock-movement", tags=["stock-movement"])

SECURABLE = "STOCK_MOVEMENT"


@router.post("")
async def create_stock_movement(request: Request):
    """
    Create a stock movement.
    movementType: 0=ENTRADA, 1=SAIDA, 2=AJUSTE, 3=CRIACAO, 4=EXCLUSAO
    """
    operation = CrudController([SecurityRule(SECURABLE, "CREATE")])
    validated, error = await operation.create(request, StockMovementCreate)
    if not validated:
        raise error

    data = await operation.invoke(StockService.create_movement, validated)
    return success_response(data)


@router.get("")
async def list_stock_movements(request: Request):
    """List stock movements (filters: startDate, endDate, movementType, idProduct, idUser, orderBy, limitRecords)"""
    operation = CrudController([SecurityRule(SECURABLE, "READ")])
    validated, error = await operation.list(request, StockMovementListParams)
    if not validated:
        raise error

    data = await operation.invoke(StockService.list_movements, validated)
    return success_response(data)
