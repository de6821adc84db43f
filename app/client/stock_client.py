"""
Stock Movement REST Client
Mirrors the /api/v1/internal stock endpoints
"""
import httpx
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from app.core.config import settings

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Non-successful API response (status 0 when the API could not be reached)"""

    def __init__(self, status_code: int, message: str, code: Optional[str] = None, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.code = code
        self.details = details


def _serialize(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return value


def _clean(params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Drop unset values so they are not sent as empty strings"""
    if not params:
        return {}
    return {key: _serialize(value) for key, value in params.items() if value is not None}


class StockMovementClient:
    """
    Async client for the stock movement API

    Sends the caller's bearer token and unwraps the `data` field of the
    success envelope.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self.token = token
        self.timeout = timeout
        self.transport = transport

    def _build_headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.request(
                    method,
                    url,
                    params=_clean(params),
                    json=_clean(json) if json is not None else None,
                    headers=self._build_headers(),
                )
        except httpx.RequestError as e:
            logger.error(f"Stock API request error: {method} {endpoint} - {e}")
            raise ApiError(0, f"Could not reach stock API: {e}") from e

        logger.debug(f"Stock API {method} {endpoint} -> {response.status_code}")

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if response.status_code >= 400:
            error = payload.get("error") if isinstance(payload, dict) else None
            if not isinstance(error, dict):
                error = {}
            raise ApiError(
                response.status_code,
                error.get("message") or response.reason_phrase or "Request failed",
                code=error.get("code"),
                details=error.get("details"),
            )

        return payload.get("data") if isinstance(payload, dict) else None

    # ========== Stock Movement ==========

    async def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """POST /stock-movement"""
        return await self._request("POST", "stock-movement", json=data)

    async def list(self, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """GET /stock-movement"""
        return await self._request("GET", "stock-movement", params=params) or []

    # ========== Balance & History ==========

    async def get_balance(self, id_product: int, reference_date: Optional[date] = None) -> Optional[Dict[str, Any]]:
        """GET /stock-balance/{idProduct}"""
        return await self._request(
            "GET",
            f"stock-balance/{id_product}",
            params={"referenceDate": reference_date},
        )

    async def get_history(
        self,
        id_product: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        movement_type: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """GET /stock-movement-history/{idProduct}"""
        return await self._request(
            "GET",
            f"stock-movement-history/{id_product}",
            params={"startDate": start_date, "endDate": end_date, "movementType": movement_type},
        ) or []
