"""
CRUD controller - request validation, authorization and service dispatch
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple, Type
import json
import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError
from starlette.concurrency import run_in_threadpool

from app.core.errors import AppError, BusinessRuleError, DatabaseError, GeneralError
from app.core.security import Credential, authorize, resolve_credential

logger = logging.getLogger(__name__)

# Merge order of request sources; a later source overrides an earlier one
PARAM_SOURCES = ("path", "query", "body")


@dataclass(frozen=True)
class SecurityRule:
    securable: str
    permission: str


@dataclass
class ValidatedRequest:
    credential: Credential
    params: Any


def success_response(data: Any) -> dict:
    return {
        "success": True,
        "data": data,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


async def read_body(request: Request) -> Dict[str, Any]:
    """JSON object body; empty when there is no body"""
    raw = await request.body()
    if not raw:
        return {}
    content_type = request.headers.get("content-type", "")
    if not content_type.startswith("application/json"):
        raise RequestValidationError([{
            "loc": ("body",), "msg": "Body must be application/json", "type": "content_type",
        }])
    try:
        body = json.loads(raw)
    except ValueError:
        raise RequestValidationError([{
            "loc": ("body",), "msg": "Malformed JSON body", "type": "json_invalid",
        }])
    if not isinstance(body, dict):
        raise RequestValidationError([{
            "loc": ("body",), "msg": "Body must be a JSON object", "type": "dict_type",
        }])
    return body


async def merge_params(request: Request) -> Dict[str, Any]:
    sources = {
        "path": dict(request.path_params),
        "query": dict(request.query_params),
        "body": await read_body(request),
    }
    merged: Dict[str, Any] = {}
    for name in PARAM_SOURCES:
        merged.update(sources[name])
    return merged


class CrudController:
    """Validates requests for one securable and dispatches to the service layer"""

    def __init__(self, security_rules: List[SecurityRule]):
        self.security_rules = security_rules

    async def create(self, request: Request, schema: Type[BaseModel]):
        return await self._validate(request, schema, "CREATE")

    async def read(self, request: Request, schema: Type[BaseModel]):
        return await self._validate(request, schema, "READ")

    async def update(self, request: Request, schema: Type[BaseModel]):
        return await self._validate(request, schema, "UPDATE")

    async def delete(self, request: Request, schema: Type[BaseModel]):
        return await self._validate(request, schema, "DELETE")

    async def list(self, request: Request, schema: Type[BaseModel]):
        return await self._validate(request, schema, "READ")

    async def _validate(
        self,
        request: Request,
        schema: Type[BaseModel],
        operation: str,
    ) -> Tuple[Optional[ValidatedRequest], Optional[Exception]]:
        """
        Returns (ValidatedRequest, None) on success, (None, error) otherwise.

        Parameters are validated first, then the caller is resolved and checked
        against every security rule of the controller.
        """
        try:
            params = schema.model_validate(await merge_params(request))
        except ValidationError as e:
            return None, RequestValidationError(e.errors())
        except RequestValidationError as e:
            return None, e

        try:
            credential = resolve_credential(request)
            authorize(credential, self.security_rules)
        except AppError as e:
            logger.info(f"{operation} rejected for {request.url.path}: {e.message}")
            return None, e

        return ValidatedRequest(credential=credential, params=params), None

    async def invoke(self, service_call: Callable, validated: ValidatedRequest) -> Any:
        """Run a blocking service call, mapping database errors to HTTP errors"""
        name = getattr(service_call, "__name__", "service call")
        try:
            return await run_in_threadpool(service_call, validated.credential, validated.params)
        except DatabaseError as e:
            if e.is_business_rule:
                raise BusinessRuleError(e.message) from e
            logger.error(f"Database error in {name}: [{e.number}] {e.message}")
            raise GeneralError() from e
        except AppError:
            raise
        except Exception as e:
            logger.exception(f"Unexpected error in {name}")
            raise GeneralError() from e
