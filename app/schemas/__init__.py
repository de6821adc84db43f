# Pydantic Schemas Package
from .stock import (
    MovementType,
    StockMovementCreate,
    StockMovementListParams,
    StockBalanceParams,
    StockMovementHistoryParams,
    StockMovement,
    StockBalance,
)

__all__ = [
    "MovementType",
    "StockMovementCreate", "StockMovementListParams",
    "StockBalanceParams", "StockMovementHistoryParams",
    "StockMovement", "StockBalance",
]
