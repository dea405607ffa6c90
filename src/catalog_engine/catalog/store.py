"""
Catalog Store - loads the product file once and serves an immutable snapshot.

Load is single-flight: many request threads may call ensure_loaded() before
the catalog is ready, exactly one of them parses the file and the rest wait
for it. After that every read goes straight to the published snapshot.
"""

import threading
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Mapping, Optional

from loguru import logger

from catalog_engine.caching.ttl_cache import TTLCache
from catalog_engine.catalog.records import iter_rows, parse_record
from catalog_engine.shared.config import (
    CATALOG_DELIMITER,
    CATALOG_PATH,
    CATEGORY_DEFAULT_LIMIT,
    CATEGORY_SEPARATOR,
    LOW_STOCK_THRESHOLD,
    TAG_KEYWORDS,
    load_category_names,
)
from catalog_engine.shared.errors import CatalogUnavailable, MalformedRecord, ProductNotFound
from catalog_engine.shared.schemas_pydantic import Category, CatalogStats, Product


@dataclass(frozen=True)
class _Snapshot:
    products: tuple[Product, ...]
    index: Mapping[str, Product]  # lowercased code -> product
    categories: tuple[Category, ...]
    skipped: int


class CatalogStore:
    """In-memory product catalog, read-only once loaded."""

    def __init__(
        self,
        path: str | Path = CATALOG_PATH,
        cache: Optional[TTLCache] = None,
        category_names: Optional[Mapping[str, str]] = None,
        delimiter: str = CATALOG_DELIMITER,
        separator: str = CATEGORY_SEPARATOR,
        tag_keywords: tuple[str, ...] = TAG_KEYWORDS,
        low_stock_threshold: int = LOW_STOCK_THRESHOLD,
    ):
        self.path = Path(path)
        # a store that builds its own cache also owns its sweeper and must be closed
        self._owns_cache = cache is None
        self.cache = cache if cache is not None else TTLCache()
        self.category_names = dict(category_names) if category_names is not None else load_category_names()
        self.delimiter = delimiter
        self.separator = separator
        self.tag_keywords = tag_keywords
        self.low_stock_threshold = low_stock_threshold

        self._load_lock = threading.Lock()
        self._snapshot: Optional[_Snapshot] = None
        self.load_count = 0  # how many times the file was actually parsed

    # ---------------- Loading ----------------

    @property
    def loaded(self) -> bool:
        return self._snapshot is not None

    def load(self) -> None:
        """Parse the catalog file. Runs once; later (and concurrent) calls reuse the result."""
        if self._snapshot is not None:
            return

        with self._load_lock:
            if self._snapshot is not None:  # another thread finished while we waited
                return
            self._snapshot = self._parse()

    ensure_loaded = load

    def close(self) -> None:
        """Stop the cache sweeper if this store created the cache itself."""
        if self._owns_cache:
            self.cache.close()

    def _parse(self) -> _Snapshot:
        if not self.path.is_file():
            logger.error("[CatalogStore.load] Product catalog not found at {}", self.path)
            raise CatalogUnavailable(f"Product catalog not found at {self.path}")

        by_code: dict[str, Product] = {}
        categories: dict[str, Category] = {}
        skipped = 0

        try:
            for row in iter_rows(self.path, self.delimiter):
                line_number = row.line_number
                try:
                    if row.problem:
                        raise MalformedRecord(line_number, row.problem)
                    product = parse_record(
                        row.fields,
                        line_number,
                        self.category_names,
                        self.separator,
                        self.tag_keywords,
                    )
                except MalformedRecord as e:
                    skipped += 1
                    logger.warning("[CatalogStore.load] Skipping malformed record ({})", e)
                    continue

                key = product.code.lower()
                if key in by_code:
                    # last occurrence wins; most likely a data-quality problem upstream
                    logger.warning(
                        "[CatalogStore.load] Duplicate product code '{}' at line {} overwrites earlier entry",
                        product.code, line_number,
                    )
                by_code[key] = product

                categories.setdefault(product.category.code.upper(), product.category)

        except OSError as e:
            logger.error("[CatalogStore.load] Failed to read product catalog {}: {}", self.path, e)
            raise CatalogUnavailable(f"Product catalog unreadable at {self.path}: {e}") from e

        self.load_count += 1
        logger.info(
            "[CatalogStore.load] Loaded {} products in {} categories from {} ({} skipped)",
            len(by_code), len(categories), self.path, skipped,
        )
        return _Snapshot(
            products=tuple(by_code.values()),
            index=by_code,
            categories=tuple(categories.values()),
            skipped=skipped,
        )

    def _ready(self) -> _Snapshot:
        self.load()
        return self._snapshot

    # ---------------- Queries ----------------

    def find_by_code(self, code: str) -> Optional[Product]:
        """Case-insensitive exact lookup; None when the code is unknown."""
        if not code:
            return None
        return self._ready().index.get(code.lower())

    def require_by_code(self, code: str) -> Product:
        product = self.find_by_code(code)
        if product is None:
            raise ProductNotFound(code)
        return product

    def all_products(self) -> tuple[Product, ...]:
        return self._ready().products

    def categories(self) -> tuple[Category, ...]:
        return self._ready().categories

    def by_category(self, code: str, limit: int = CATEGORY_DEFAULT_LIMIT) -> tuple[Product, ...]:
        """Products of one category, capped at limit. Memoized."""
        snapshot = self._ready()
        wanted = code.lower()

        def _compute() -> tuple[Product, ...]:
            matching = [p for p in snapshot.products if p.category.code.lower() == wanted]
            return tuple(matching[:max(limit, 0)])

        return self.cache.get_or_compute(f"category:{wanted}:{limit}", _compute)

    def stats(self) -> CatalogStats:
        """Aggregate counts plus live cache counters."""
        snapshot = self._ready()
        base = self.cache.get_or_compute("catalog:stats", lambda: self._compute_stats(snapshot))
        return base.model_copy(update={"cache": self.cache.stats()})

    def _compute_stats(self, snapshot: _Snapshot) -> CatalogStats:
        products = snapshot.products
        total = len(products)
        out_of_stock = sum(1 for p in products if p.stock_quantity == 0)
        low_stock = sum(1 for p in products if 0 < p.stock_quantity < self.low_stock_threshold)
        average = (
            (sum((p.price for p in products), Decimal(0)) / total).quantize(Decimal("0.01"))
            if total else Decimal(0)
        )
        return CatalogStats(
            total_products=total,
            categories=len(snapshot.categories),
            in_stock=total - out_of_stock,
            low_stock=low_stock,
            out_of_stock=out_of_stock,
            average_price=average,
        )
