"""
Stock movement form - client-side rules checked before calling the API
"""
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError, field_validator

from app.schemas.fields import DateValue, MovementTypeValue, NonNegativeNumber, nullable_string
from app.schemas.stock import MovementType, REASON_REQUIRED_TYPES, Number

FIELD_MESSAGES = {
    "idProduct": "Produto é obrigatório",
    "movementType": "Tipo de movimentação inválido",
    "quantity": "Quantidade inválida",
    "unitCost": "Custo unitário não pode ser negativo",
    "expirationDate": "Data de validade inválida",
}
REASON_REQUIRED_MESSAGE = "Motivo é obrigatório para ajustes e exclusões"
QUANTITY_ZERO_MESSAGE = "Quantidade não pode ser zero"
QUANTITY_REQUIRED_MESSAGE = "Quantidade é obrigatória"


class StockMovementForm(BaseModel):
    idProduct: int = Field(gt=0)
    movementType: MovementTypeValue = MovementType.ENTRADA
    quantity: Number
    unitCost: Optional[NonNegativeNumber] = None
    reason: nullable_string(255) = None
    referenceDocument: nullable_string(50) = None
    batchNumber: nullable_string(30) = None
    expirationDate: Optional[DateValue] = None
    location: nullable_string(100) = None

    @field_validator("*", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("quantity")
    @classmethod
    def quantity_not_zero(cls, value):
        if value == 0:
            raise ValueError(QUANTITY_ZERO_MESSAGE)
        return value

    @property
    def requires_reason(self) -> bool:
        return self.movementType in REASON_REQUIRED_TYPES

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump()


def requires_reason(movement_type: Any) -> bool:
    try:
        return int(movement_type) in REASON_REQUIRED_TYPES
    except (TypeError, ValueError):
        return False


def parse_movement_form(data: Dict[str, Any]) -> Tuple[Optional[StockMovementForm], Dict[str, str]]:
    """Returns (form, {}) when valid, (None, {field: message}) otherwise"""
    errors: Dict[str, str] = {}
    form = None
    try:
        form = StockMovementForm.model_validate(data)
    except ValidationError as e:
        for err in e.errors():
            name = str(err["loc"][0]) if err["loc"] else "form"
            if name in errors:
                continue
            if name == "quantity":
                if err["type"] == "value_error":
                    errors[name] = QUANTITY_ZERO_MESSAGE
                elif data.get("quantity") in (None, ""):
                    errors[name] = QUANTITY_REQUIRED_MESSAGE
                else:
                    errors[name] = FIELD_MESSAGES[name]
            else:
                errors[name] = FIELD_MESSAGES.get(name, err["msg"])

    # Checked on raw input as well so the message shows next to other errors
    reason = data.get("reason")
    if requires_reason(data.get("movementType")) and not (isinstance(reason, str) and reason.strip()):
        errors.setdefault("reason", REASON_REQUIRED_MESSAGE)

    if errors:
        return None, errors
    return form, {}
