from catalog_engine.caching.ttl_cache import TTLCache
from catalog_engine.catalog.store import CatalogStore
from catalog_engine.ratelimit.rate_limiter import SlidingWindowRateLimiter, rate_limited
from catalog_engine.service import CatalogEngine
from catalog_engine.shared.errors import (
    CatalogEngineError,
    CatalogUnavailable,
    InvalidInput,
    MalformedRecord,
    ProductNotFound,
    RateLimitExceeded,
)


__all__ = [
    "CatalogEngine",
    "CatalogStore",
    "TTLCache",
    "SlidingWindowRateLimiter",
    "rate_limited",
    "CatalogEngineError",
    "CatalogUnavailable",
    "InvalidInput",
    "MalformedRecord",
    "ProductNotFound",
    "RateLimitExceeded",
]
