"""
Stock Service - Stored procedure adapters for stock movements
"""
from typing import Any, Dict, List, Optional

from app.core.database import ExpectedReturn, db_request
from app.core.security import Credential
from app.schemas.stock import (
    StockMovementCreate,
    StockMovementListParams,
    StockBalanceParams,
    StockMovementHistoryParams,
    DEFAULT_ORDER_BY,
    DEFAULT_LIMIT_RECORDS,
)

SP_STOCK_MOVEMENT_CREATE = "[functional].[spStockMovementCreate]"
SP_STOCK_MOVEMENT_LIST = "[functional].[spStockMovementList]"
SP_STOCK_BALANCE_GET = "[functional].[spStockBalanceGet]"
SP_STOCK_MOVEMENT_HISTORY_GET = "[functional].[spStockMovementHistoryGet]"


def _or_none(value: Any) -> Any:
    """Absent or blank values are sent as NULL; numeric zero is kept"""
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _first_result_set(result_sets: Optional[List[List[Dict]]]) -> List[Dict]:
    if not result_sets:
        return []
    return result_sets[0]


class StockService:
    """Stock movement operations. Business rules live in the stored procedures."""

    @staticmethod
    def create_movement(credential: Credential, params: StockMovementCreate) -> Dict:
        """Create a stock movement, returns {idStockMovement}"""
        row = db_request(
            SP_STOCK_MOVEMENT_CREATE,
            {
                "idAccount": credential.idAccount,
                "idUser": credential.idUser,
                "idProduct": params.idProduct,
                "movementType": int(params.movementType),
                "quantity": params.quantity,
                "unitCost": _or_none(params.unitCost),
                "reason": _or_none(params.reason),
                "referenceDocument": _or_none(params.referenceDocument),
                "batchNumber": _or_none(params.batchNumber),
                "expirationDate": _or_none(params.expirationDate),
                "location": _or_none(params.location),
            },
            ExpectedReturn.SINGLE,
        )
        return {"idStockMovement": row.get("idStockMovement") if row else None}

    @staticmethod
    def list_movements(credential: Credential, params: StockMovementListParams) -> List[Dict]:
        """List stock movements with filters"""
        result_sets = db_request(
            SP_STOCK_MOVEMENT_LIST,
            {
                "idAccount": credential.idAccount,
                "startDate": _or_none(params.startDate),
                "endDate": _or_none(params.endDate),
                "movementType": _or_none(params.movementType),
                "idProduct": _or_none(params.idProduct),
                "idUser": _or_none(params.idUser),
                "orderBy": params.orderBy or DEFAULT_ORDER_BY,
                "limitRecords": params.limitRecords or DEFAULT_LIMIT_RECORDS,
            },
            ExpectedReturn.MULTI,
        )
        return _first_result_set(result_sets)

    @staticmethod
    def get_balance(credential: Credential, params: StockBalanceParams) -> Optional[Dict]:
        """Current balance snapshot for a product, None if the procedure returns no row"""
        return db_request(
            SP_STOCK_BALANCE_GET,
            {
                "idAccount": credential.idAccount,
                "idProduct": params.idProduct,
                "referenceDate": _or_none(params.referenceDate),
            },
            ExpectedReturn.SINGLE,
        )

    @staticmethod
    def get_history(credential: Credential, params: StockMovementHistoryParams) -> List[Dict]:
        """Full movement history for a product"""
        result_sets = db_request(
            SP_STOCK_MOVEMENT_HISTORY_GET,
            {
                "idAccount": credential.idAccount,
                "idProduct": params.idProduct,
                "startDate": _or_none(params.startDate),
                "endDate": _or_none(params.endDate),
                "movementType": _or_none(params.movementType),
            },
            ExpectedReturn.MULTI,
        )
        return _first_result_set(result_sets)
