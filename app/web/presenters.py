"""
Display helpers for stock movement tables
"""
from datetime import date, datetime
from typing import Any, Dict, Optional

from app.schemas.stock import MOVEMENT_TYPE_LABELS, MovementType

DATE_TIME_FORMAT = "%d/%m/%Y %H:%M"
DATE_FORMAT = "%d/%m/%Y"
EMPTY = "-"


def movement_type_label(value: Any) -> str:
    try:
        return MOVEMENT_TYPE_LABELS[MovementType(int(value))]
    except (TypeError, ValueError):
        return EMPTY


def _parse_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def format_datetime(value: Any) -> str:
    parsed = _parse_datetime(value)
    return parsed.strftime(DATE_TIME_FORMAT) if parsed else EMPTY


def format_date(value: Any) -> str:
    parsed = _parse_datetime(value)
    return parsed.strftime(DATE_FORMAT) if parsed else EMPTY


def format_number(value: Any) -> str:
    if value is None:
        return EMPTY
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


def format_quantity(value: Any) -> str:
    """Signed quantity, positive values prefixed with +"""
    if value is None:
        return EMPTY
    text = format_number(value)
    return f"+{text}" if value > 0 else text


def format_money(value: Any) -> str:
    if value is None:
        return EMPTY
    return f"R$ {float(value):,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")


def movement_row(movement: Dict[str, Any]) -> Dict[str, Any]:
    """Table row for one movement, with fallbacks for absent joined fields"""
    id_product = movement.get("idProduct")
    id_user = movement.get("idUser")
    return {
        "id": movement.get("idStockMovement"),
        "date": format_datetime(movement.get("movementDate") or movement.get("dateCreated")),
        "type": movement.get("movementType"),
        "type_label": movement_type_label(movement.get("movementType")),
        "product": movement.get("productName") or f"Produto #{id_product}",
        "quantity": format_quantity(movement.get("quantity")),
        "balance": format_number(movement.get("resultingBalance")),
        "user": movement.get("userName") or f"Usuário #{id_user}",
        "reason": movement.get("reason") or EMPTY,
    }


def balance_view(balance: Optional[Dict[str, Any]]) -> Optional[Dict[str, str]]:
    if not balance:
        return None
    return {
        "current_quantity": format_number(balance.get("currentQuantity")),
        "total_value": format_money(balance.get("totalValue")),
        "average_cost": format_money(balance.get("averageCost")),
        "last_movement": format_datetime(balance.get("lastMovementDate")),
        "reference_date": format_date(balance.get("referenceDate")),
    }
