# REST client and cached queries over the internal API
from .stock_client import StockMovementClient, ApiError
from .queries import QueryCache, QueryResult, StockQueries

__all__ = [
    "StockMovementClient",
    "ApiError",
    "QueryCache",
    "QueryResult",
    "StockQueries",
]
