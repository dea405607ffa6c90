"""Shared fixtures: a small on-disk catalog, fake clocks and a loguru capture sink."""

import sys
from pathlib import Path

import pytest
from loguru import logger

# Add src to path so the tests run without an editable install
PROJECT_SRC = Path(__file__).resolve().parents[1] / "src"
sys.path.insert(0, str(PROJECT_SRC))

from catalog_engine.caching.ttl_cache import TTLCache  # noqa: E402
from catalog_engine.catalog.store import CatalogStore  # noqa: E402
from catalog_engine.shared.config import DEFAULT_CATEGORY_NAMES  # noqa: E402
from catalog_engine.shared.schemas_pydantic import Category, Product  # noqa: E402


CATALOG_CSV = """Product_Code,Product_Name,Price,Available_In_Stock,Min_Order_Quantity,Description
DSK-0001,Desk Oak,249.00,5,2,"Solid wood writing desk, classic oak finish"
DSK-0002,Standing Desk Pro,499.90,12,1,"Height-adjustable desk with metal frame"
DSK-0003,Compact Desk,129.50,0,1,Minimalist white desk
CHR-0001,Ergo Office Chair,189.00,40,1,"Mesh back, black"
CHR-0002,Desk Chair Basic,89.00,25,,Simple chair for any desk
CHR-0003,Bar Stool,59.00,3,5,Tall stool sold in packs
XYZ-0001,Mystery Item,10.00,1,1,Uncategorised item
"""


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def write_catalog(tmp_path):
    """Write CSV text to a temp file and return its path."""
    def _write(content: str, name: str = "catalog.csv") -> Path:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path
    return _write


@pytest.fixture
def catalog_file(write_catalog):
    return write_catalog(CATALOG_CSV)


@pytest.fixture
def cache():
    c = TTLCache(start_sweeper=False)
    yield c
    c.close()


@pytest.fixture
def store(catalog_file, cache):
    s = CatalogStore(catalog_file, cache=cache, category_names=DEFAULT_CATEGORY_NAMES)
    s.load()
    return s


@pytest.fixture
def make_product():
    """Build a Product directly, bypassing the CSV loader."""
    def _make(code, name="", description="", stock=10, moq=1, price="1.00"):
        return Product(
            code=code,
            name=name,
            price=price,
            stock_quantity=stock,
            min_order_quantity=moq,
            description=description,
            category=Category(code=code.split("-")[0], name="Test"),
        )
    return _make


@pytest.fixture
def log_records():
    """Collect loguru records emitted during the test."""
    records = []
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    yield records
    logger.remove(handler_id)
