"""
CatalogEngine - the one object the orchestrator builds at startup and hands
to request handlers. Owns the catalog store, the memoization cache and the
model-call rate limiter; exposes the engine's external operations.
"""

from pathlib import Path
from typing import Optional, Sequence

from loguru import logger

from catalog_engine.caching.ttl_cache import TTLCache
from catalog_engine.catalog import matcher
from catalog_engine.catalog.line_resolver import resolve_order
from catalog_engine.catalog.store import CatalogStore
from catalog_engine.catalog.validator import validate
from catalog_engine.ratelimit.rate_limiter import SlidingWindowRateLimiter
from catalog_engine.shared.config import (
    CATALOG_PATH,
    CATEGORY_DEFAULT_LIMIT,
    SEARCH_DEFAULT_LIMIT,
    SUGGESTION_DEFAULT_LIMIT,
)
from catalog_engine.shared.schemas_pydantic import (
    Category,
    CatalogStats,
    OrderLine,
    OrderResolution,
    Product,
    SearchResult,
    ValidationOutcome,
)


class CatalogEngine:
    def __init__(
        self,
        catalog_path: str | Path = CATALOG_PATH,
        cache: Optional[TTLCache] = None,
        rate_limiter: Optional[SlidingWindowRateLimiter] = None,
        store: Optional[CatalogStore] = None,
    ):
        self.cache = cache if cache is not None else TTLCache()
        self.store = store if store is not None else CatalogStore(catalog_path, cache=self.cache)
        self.rate_limiter = rate_limiter if rate_limiter is not None else SlidingWindowRateLimiter()

    def load(self) -> None:
        self.store.load()

    def close(self) -> None:
        self.store.close()
        self.cache.close()
        self.rate_limiter.cleanup()
        logger.info("[CatalogEngine.close] Engine shut down")

    def __enter__(self) -> "CatalogEngine":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ---------------- Operations ----------------

    def search(self, query: str, limit: int = SEARCH_DEFAULT_LIMIT) -> SearchResult:
        """Ranked products for query. Results are memoized per (query, limit)."""
        products = self.store.all_products()
        key = f"search:{query.lower()}:{limit}"
        result = self.cache.get_or_compute(key, lambda: matcher.search(products, query, limit))
        if result.query != query:
            # cached under a different casing; the ranking is identical
            result = result.model_copy(update={"query": query})
        return result

    def find_by_code(self, code: str) -> Optional[Product]:
        return self.store.find_by_code(code)

    def validate(self, code: Optional[str], quantity: Optional[int]) -> ValidationOutcome:
        return validate(self.store, code, quantity)

    def suggestions(self, fragment: str, limit: int = SUGGESTION_DEFAULT_LIMIT) -> list[Product]:
        return matcher.suggest(self.store.all_products(), fragment, limit)

    def categories(self) -> tuple[Category, ...]:
        return self.store.categories()

    def products_in_category(self, code: str, limit: int = CATEGORY_DEFAULT_LIMIT) -> tuple[Product, ...]:
        return self.store.by_category(code, limit)

    def stats(self) -> CatalogStats:
        return self.store.stats()

    def resolve_order(self, lines: Sequence[OrderLine]) -> OrderResolution:
        return resolve_order(self.store, lines)
