"""
Stock Schemas
"""
from datetime import datetime
from enum import IntEnum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict

from .fields import (
    ID, NullableID, MovementTypeValue, DateValue, FiniteNumber, NonNegativeNumber,
    LimitRecords, nullable_string,
)


class MovementType(IntEnum):
    ENTRADA = 0
    SAIDA = 1
    AJUSTE = 2
    CRIACAO = 3
    EXCLUSAO = 4


MOVEMENT_TYPE_LABELS = {
    MovementType.ENTRADA: "Entrada",
    MovementType.SAIDA: "Saída",
    MovementType.AJUSTE: "Ajuste",
    MovementType.CRIACAO: "Criação",
    MovementType.EXCLUSAO: "Exclusão",
}

# Types that must carry a reason (enforced by the web form only)
REASON_REQUIRED_TYPES = (MovementType.AJUSTE, MovementType.EXCLUSAO)

OrderBy = Literal["DATE_DESC", "DATE_ASC", "PRODUCT", "TYPE", "QUANTITY"]
DEFAULT_ORDER_BY = "DATE_DESC"
DEFAULT_LIMIT_RECORDS = 100

Number = FiniteNumber


class RequestParams(BaseModel):
    # Unknown keys (e.g. a stray query param) are ignored, like the merged request object
    model_config = ConfigDict(extra="ignore")


# ===================== Requests =====================

class StockMovementCreate(RequestParams):
    idProduct: ID
    movementType: MovementTypeValue
    quantity: Number
    unitCost: Optional[NonNegativeNumber] = None
    reason: nullable_string(255) = None
    referenceDocument: nullable_string(50) = None
    batchNumber: nullable_string(30) = None
    expirationDate: Optional[DateValue] = None
    location: nullable_string(100) = None


class StockMovementListParams(RequestParams):
    startDate: Optional[DateValue] = None
    endDate: Optional[DateValue] = None
    movementType: Optional[MovementTypeValue] = None
    idProduct: NullableID = None
    idUser: NullableID = None
    orderBy: Optional[OrderBy] = None
    limitRecords: Optional[LimitRecords] = None


class StockBalanceParams(RequestParams):
    idProduct: ID
    referenceDate: Optional[DateValue] = None


class StockMovementHistoryParams(RequestParams):
    idProduct: ID
    startDate: Optional[DateValue] = None
    endDate: Optional[DateValue] = None
    movementType: Optional[MovementTypeValue] = None


# ===================== Entities =====================

class StockMovement(BaseModel):
    """One inventory transaction as returned by the list/history procedures"""
    model_config = ConfigDict(extra="allow")

    idStockMovement: int
    idProduct: int
    movementType: int
    quantity: Number
    idUser: Optional[int] = None
    idAccount: Optional[int] = None
    unitCost: Optional[Number] = None
    reason: Optional[str] = None
    referenceDocument: Optional[str] = None
    batchNumber: Optional[str] = None
    expirationDate: Optional[DateValue] = None
    location: Optional[str] = None
    movementDate: Optional[datetime] = None
    dateCreated: Optional[datetime] = None
    productName: Optional[str] = None
    userName: Optional[str] = None
    resultingBalance: Optional[Number] = None


class StockBalance(BaseModel):
    model_config = ConfigDict(extra="allow")

    idProduct: int
    currentQuantity: Number
    totalValue: Number
    averageCost: Number
    lastMovementDate: Optional[datetime] = None
    referenceDate: Optional[DateValue] = None
