"""
Cached queries over the stock API

Each use_* call resolves one client request behind a cache key built from its
filters. Entries stay fresh for a staleness window (2 minutes by default);
concurrent calls for the same key share one in-flight request.
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Hashable, Optional, Tuple

from app.core.config import settings
from .stock_client import ApiError, StockMovementClient

logger = logging.getLogger(__name__)

STOCK_MOVEMENTS_KEY = "stock-movements"
STOCK_BALANCE_KEY = "stock-balance"
STOCK_HISTORY_KEY = "stock-history"


def make_key(name: str, *parts: Any) -> Tuple[Hashable, ...]:
    """Hashable cache key; dict parts are reduced to their set values"""
    normalized = []
    for part in parts:
        if isinstance(part, dict):
            part = tuple(sorted((k, v) for k, v in part.items() if v is not None))
        normalized.append(part)
    return (name, *normalized)


@dataclass
class CacheEntry:
    data: Any
    fetched_at: float


class QueryCache:
    """In-memory query cache with a staleness window"""

    def __init__(self, stale_seconds: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self.stale_seconds = settings.QUERY_STALE_SECONDS if stale_seconds is None else stale_seconds
        self.clock = clock
        self._entries: Dict[Tuple, CacheEntry] = {}
        self._inflight: Dict[Tuple, asyncio.Future] = {}

    def is_fresh(self, entry: CacheEntry) -> bool:
        return self.clock() - entry.fetched_at < self.stale_seconds

    def get(self, key: Tuple) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def get_fresh(self, key: Tuple) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry and self.is_fresh(entry):
            return entry
        return None

    def set(self, key: Tuple, data: Any) -> None:
        self._purge_stale()
        self._entries[key] = CacheEntry(data=data, fetched_at=self.clock())

    def is_fetching(self, key: Tuple) -> bool:
        return key in self._inflight

    def invalidate(self, *prefix: Hashable) -> int:
        """Drop every entry whose key starts with prefix"""
        size = len(prefix)
        stale = [key for key in self._entries if key[:size] == prefix]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()

    async def fetch(self, key: Tuple, fetcher: Callable[[], Awaitable[Any]]) -> Any:
        """Run fetcher once per key at a time and store its result"""
        future = self._inflight.get(key)
        if future is None:
            future = asyncio.ensure_future(fetcher())
            self._inflight[key] = future
            try:
                data = await future
            finally:
                self._inflight.pop(key, None)
            self.set(key, data)
            return data
        return await future

    def _purge_stale(self) -> None:
        for key in [k for k, entry in self._entries.items() if not self.is_fresh(entry)]:
            del self._entries[key]


@dataclass
class QueryResult:
    data: Any
    is_loading: bool = False
    error: Optional[Exception] = None
    refetch: Optional[Callable[[], Awaitable["QueryResult"]]] = field(default=None, repr=False)


class StockQueries:
    """
    Query layer used by the web pages.

    scope namespaces the cache per caller so one user's results are never
    served to another.
    """

    def __init__(self, client: StockMovementClient, cache: Optional[QueryCache] = None, scope: str = ""):
        self.client = client
        self.cache = cache or QueryCache()
        self.scope = scope

    def _key(self, name: str, *parts: Any) -> Tuple:
        return make_key(name, self.scope, *parts)

    def peek(self, name: str, *parts: Any, default: Any = None) -> QueryResult:
        """Current state of a query without triggering a request"""
        key = self._key(name, *parts)
        entry = self.cache.get(key)
        return QueryResult(
            data=entry.data if entry else default,
            is_loading=self.cache.is_fetching(key),
        )

    async def _query(
        self,
        key: Tuple,
        fetcher: Callable[[], Awaitable[Any]],
        enabled: bool = True,
        default: Any = None,
        force: bool = False,
    ) -> QueryResult:
        async def refetch() -> QueryResult:
            return await self._query(key, fetcher, enabled=enabled, default=default, force=True)

        if not enabled:
            return QueryResult(data=default, refetch=refetch)

        if not force:
            entry = self.cache.get_fresh(key)
            if entry is not None:
                return QueryResult(data=entry.data, refetch=refetch)

        try:
            data = await self.cache.fetch(key, fetcher)
        except ApiError as e:
            logger.warning(f"Query {key[0]} failed: {e.message}")
            stale = self.cache.get(key)
            return QueryResult(data=stale.data if stale else default, error=e, refetch=refetch)

        return QueryResult(data=data if data is not None else default, refetch=refetch)

    async def use_stock_movement_list(self, filters: Optional[Dict[str, Any]] = None, enabled: bool = True) -> QueryResult:
        filters = dict(filters or {})
        return await self._query(
            self._key(STOCK_MOVEMENTS_KEY, filters),
            lambda: self.client.list(filters),
            enabled=enabled,
            default=[],
        )

    async def use_stock_balance(self, id_product: Optional[int], reference_date=None, enabled: bool = True) -> QueryResult:
        return await self._query(
            self._key(STOCK_BALANCE_KEY, id_product, reference_date),
            lambda: self.client.get_balance(id_product, reference_date),
            enabled=enabled and bool(id_product),
            default=None,
        )

    async def use_stock_history(
        self,
        id_product: Optional[int],
        start_date=None,
        end_date=None,
        movement_type: Optional[int] = None,
        enabled: bool = True,
    ) -> QueryResult:
        return await self._query(
            self._key(STOCK_HISTORY_KEY, id_product, start_date, end_date, movement_type),
            lambda: self.client.get_history(id_product, start_date, end_date, movement_type),
            enabled=enabled and bool(id_product),
            default=[],
        )

    async def use_stock_movement_create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Create a movement and drop cached lists, balances and histories for this caller"""
        result = await self.client.create(data)
        self.cache.invalidate(STOCK_MOVEMENTS_KEY, self.scope)
        self.cache.invalidate(STOCK_BALANCE_KEY, self.scope)
        self.cache.invalidate(STOCK_HISTORY_KEY, self.scope)
        return result
