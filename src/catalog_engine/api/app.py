# src/catalog_engine/api/app.py
from contextlib import asynccontextmanager
import math
from typing import Optional

from fastapi import FastAPI, Query, Request, Response
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel, Field

from catalog_engine.service import CatalogEngine
from catalog_engine.shared.config import (
    CATEGORY_DEFAULT_LIMIT,
    SEARCH_DEFAULT_LIMIT,
    SUGGESTION_DEFAULT_LIMIT,
)
from catalog_engine.shared.errors import InvalidInput, ProductNotFound, RateLimitExceeded
from catalog_engine.shared.logging_config import configure_logging
from catalog_engine.shared.schemas_pydantic import OrderLine


# ---------------------------
# Request schemas
# ---------------------------
class ValidateRequest(BaseModel):
    code: Optional[str] = Field(None, description="Product SKU")
    quantity: Optional[int] = Field(None, description="Requested quantity")


class ResolveOrderRequest(BaseModel):
    order_lines: list[OrderLine] = Field(..., min_length=1)


def _client_identity(request: Request) -> str:
    return request.client.host if request.client else "default"


def _rate_headers(engine: CatalogEngine, identity: str) -> dict[str, str]:
    limiter = engine.rate_limiter
    return {
        "X-RateLimit-Limit": str(limiter.max_requests),
        "X-RateLimit-Remaining": str(limiter.remaining(identity)),
        "X-RateLimit-Reset": str(math.ceil(limiter.reset_in(identity))),
    }


def create_app(engine: Optional[CatalogEngine] = None) -> FastAPI:
    """Build the HTTP surface around one engine instance (created here if not given)."""
    engine = engine if engine is not None else CatalogEngine()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging()
        try:
            engine.load()  # CatalogUnavailable aborts startup
            yield
        finally:
            engine.close()

    app = FastAPI(title="catalog-engine", lifespan=lifespan)
    app.state.engine = engine

    # ---------------------------
    # Error mapping
    # ---------------------------
    @app.exception_handler(InvalidInput)
    async def _invalid_input(request: Request, exc: InvalidInput):
        return JSONResponse(status_code=422, content={"error": {"code": "INVALID_INPUT", "message": str(exc)}})

    @app.exception_handler(ProductNotFound)
    async def _not_found(request: Request, exc: ProductNotFound):
        return JSONResponse(status_code=404, content={"error": {"code": "PRODUCT_NOT_FOUND", "message": str(exc)}})

    @app.exception_handler(RateLimitExceeded)
    async def _rate_limited(request: Request, exc: RateLimitExceeded):
        return JSONResponse(
            status_code=429,
            content={"error": {"code": "RATE_LIMITED", "message": str(exc)}},
            headers=_rate_headers(engine, exc.identity),
        )

    # ---------------------------
    # Health / stats
    # ---------------------------
    @app.get("/health")
    def health():
        return {"status": "healthy", "catalog": engine.stats().model_dump(mode="json")}

    @app.get("/api/stats")
    def stats():
        return engine.stats().model_dump(mode="json")

    # ---------------------------
    # Product endpoints
    # ---------------------------
    @app.get("/api/products/search")
    def search_products(q: str = Query(..., min_length=1), limit: int = Query(SEARCH_DEFAULT_LIMIT, ge=1)):
        return engine.search(q, limit).model_dump(mode="json")

    @app.get("/api/products/suggestions")
    def product_suggestions(q: str = Query(..., min_length=1), limit: int = Query(SUGGESTION_DEFAULT_LIMIT, ge=1)):
        products = engine.suggestions(q, limit)
        return {"query": q, "products": [p.model_dump(mode="json") for p in products]}

    @app.post("/api/products/validate")
    def validate_product(payload: ValidateRequest):
        return engine.validate(payload.code, payload.quantity).model_dump(mode="json")

    @app.get("/api/products/{code}")
    def get_product(code: str):
        return engine.store.require_by_code(code).model_dump(mode="json")

    # ---------------------------
    # Category endpoints
    # ---------------------------
    @app.get("/api/categories")
    def list_categories():
        return [c.model_dump(mode="json") for c in engine.categories()]

    @app.get("/api/categories/{code}/products")
    def category_products(code: str, limit: int = Query(CATEGORY_DEFAULT_LIMIT, ge=1)):
        return [p.model_dump(mode="json") for p in engine.products_in_category(code, limit)]

    # ---------------------------
    # Order line resolution (rate limited per client)
    # ---------------------------
    @app.post("/api/orders/resolve")
    def resolve_order(payload: ResolveOrderRequest, request: Request, response: Response):
        identity = _client_identity(request)
        if not engine.rate_limiter.check_limit(identity):
            logger.warning("[API resolve_order] Rate limit hit for '{}'", identity)
            raise RateLimitExceeded(identity, retry_after=engine.rate_limiter.reset_in(identity))

        response.headers.update(_rate_headers(engine, identity))
        return engine.resolve_order(payload.order_lines).model_dump(mode="json")

    return app
