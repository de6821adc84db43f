"""
Web Router - HTML Page Routes
"""
from fastapi import APIRouter, Request, Depends
from fastapi.templating import Jinja2Templates
from fastapi.responses import RedirectResponse
from datetime import datetime
from typing import Optional
import hashlib
import logging
import os

from app.client import ApiError, QueryCache, StockMovementClient, StockQueries
from app.core.security import extract_token
from app.schemas.stock import MOVEMENT_TYPE_LABELS, StockMovementListParams
from app.web.forms import parse_movement_form, requires_reason
from app.web.presenters import balance_view, movement_row
from pydantic import ValidationError

logger = logging.getLogger(__name__)

web_router = APIRouter(tags=["Web"])

# Setup templates
templates_path = os.path.join(os.path.dirname(__file__), "..", "templates")
templates = Jinja2Templates(directory=templates_path)

# Shared across requests; keys are scoped per caller token
query_cache = QueryCache()

ORDER_BY_OPTIONS = ["DATE_DESC", "DATE_ASC", "PRODUCT", "TYPE", "QUANTITY"]


def get_stock_queries(request: Request) -> StockQueries:
    token = extract_token(request)
    scope = hashlib.sha256(token.encode("utf-8")).hexdigest()[:16] if token else "anonymous"
    return StockQueries(StockMovementClient(token=token), cache=query_cache, scope=scope)


# Add datetime and movement types to all templates
def get_template_context(request: Request, **kwargs):
    return {
        "request": request,
        "now": datetime.now,
        "movement_types": MOVEMENT_TYPE_LABELS,
        **kwargs,
    }


def _list_filters(request: Request):
    """Filters from the page query string, invalid values are dropped"""
    raw = {k: v for k, v in request.query_params.items() if v != ""}
    try:
        params = StockMovementListParams.model_validate(raw)
    except ValidationError as e:
        invalid = {str(err["loc"][0]) for err in e.errors() if err["loc"]}
        params = StockMovementListParams.model_validate(
            {k: v for k, v in raw.items() if k not in invalid}
        )
    return params.model_dump(exclude_none=True)


async def _render_movements_page(
    request: Request,
    queries: StockQueries,
    form_values: Optional[dict] = None,
    form_errors: Optional[dict] = None,
    form_message: Optional[str] = None,
    show_form: bool = False,
    status_code: int = 200,
):
    filters = _list_filters(request)
    result = await queries.use_stock_movement_list(filters)
    form_values = form_values or {}

    return templates.TemplateResponse(
        request,
        "stock/movements.html",
        get_template_context(
            request,
            title="Movimentações de Estoque",
            rows=[movement_row(m) for m in result.data],
            list_error=result.error,
            filters=filters,
            order_by_options=ORDER_BY_OPTIONS,
            show_form=show_form or bool(form_errors) or bool(form_message),
            form_values=form_values,
            form_errors=form_errors or {},
            form_message=form_message,
            requires_reason=requires_reason(form_values.get("movementType")),
            created_id=request.query_params.get("created"),
        ),
        status_code=status_code,
    )


@web_router.get("/")
async def root():
    return RedirectResponse(url="/stock-movements")


@web_router.get("/stock-movements")
async def stock_movements_page(request: Request, queries: StockQueries = Depends(get_stock_queries)):
    """Stock movements page - registration form and movement table"""
    return await _render_movements_page(
        request,
        queries,
        show_form=request.query_params.get("form") == "1",
    )


@web_router.post("/stock-movements")
async def stock_movements_submit(request: Request, queries: StockQueries = Depends(get_stock_queries)):
    """Register a movement from the page form"""
    form_data = await request.form()
    values = {key: value for key, value in form_data.items()}

    form, errors = parse_movement_form(values)
    if errors:
        return await _render_movements_page(
            request, queries, form_values=values, form_errors=errors, status_code=400
        )

    try:
        created = await queries.use_stock_movement_create(form.to_payload())
    except ApiError as e:
        logger.warning(f"Stock movement submit failed: {e.status_code} {e.message}")
        field_errors = {d["field"]: d["message"] for d in (e.details or []) if isinstance(d, dict) and d.get("field")}
        return await _render_movements_page(
            request,
            queries,
            form_values=values,
            form_errors=field_errors,
            form_message=e.message,
            status_code=e.status_code if 400 <= e.status_code < 500 else 502,
        )

    created_id = (created or {}).get("idStockMovement")
    return RedirectResponse(url=f"/stock-movements?created={created_id}", status_code=303)


@web_router.get("/products/{id_product}/stock")
async def product_stock_page(
    request: Request,
    id_product: int,
    referenceDate: Optional[str] = None,
    queries: StockQueries = Depends(get_stock_queries),
):
    """Product stock page - balance snapshot and movement history"""
    balance = await queries.use_stock_balance(id_product, referenceDate or None)
    history = await queries.use_stock_history(id_product)

    return templates.TemplateResponse(
        request,
        "stock/product.html",
        get_template_context(
            request,
            title=f"Estoque do Produto #{id_product}",
            id_product=id_product,
            reference_date=referenceDate,
            balance=balance_view(balance.data),
            balance_error=balance.error,
            rows=[movement_row(m) for m in history.data],
            history_error=history.error,
        ),
    )
