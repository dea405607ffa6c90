"""Catalog loading, lookups, categories and stats."""

import threading
from decimal import Decimal

import pytest
from pydantic import ValidationError

from catalog_engine.catalog import records
from catalog_engine.catalog.store import CatalogStore
from catalog_engine.shared.config import DEFAULT_CATEGORY_NAMES
from catalog_engine.shared.errors import CatalogUnavailable, ProductNotFound

HEADER = "Product_Code,Product_Name,Price,Available_In_Stock,Min_Order_Quantity,Description\n"


def test_every_product_found_by_code_in_any_case(store):
    products = store.all_products()
    assert len(products) == 7

    for product in products:
        assert store.find_by_code(product.code) is product
        assert store.find_by_code(product.code.lower()) is product
        assert store.find_by_code(product.code.swapcase()) is product


def test_unknown_code_is_none_and_strict_lookup_raises(store):
    assert store.find_by_code("NOPE-0000") is None
    assert store.find_by_code("") is None

    with pytest.raises(ProductNotFound):
        store.require_by_code("NOPE-0000")


def test_quoted_description_keeps_embedded_delimiter(store):
    desk = store.find_by_code("DSK-0001")
    assert desk.description == "Solid wood writing desk, classic oak finish"
    assert desk.price == Decimal("249.00")
    assert desk.stock_quantity == 5
    assert desk.min_order_quantity == 2


def test_empty_moq_defaults_to_one(store):
    assert store.find_by_code("CHR-0002").min_order_quantity == 1


def test_category_and_tags_derived_from_record(store):
    desk = store.find_by_code("DSK-0001")
    assert desk.category.code == "DSK"
    assert desk.category.name == "Desks"
    assert {"wood", "classic"} <= desk.tags

    assert store.find_by_code("XYZ-0001").category.name == "Unknown"


def test_categories_deduplicated_in_first_seen_order(store):
    assert [c.code for c in store.categories()] == ["DSK", "CHR", "XYZ"]


def test_category_table_is_swappable(catalog_file):
    names = dict(DEFAULT_CATEGORY_NAMES, DSK="Writing Desks")
    store = CatalogStore(catalog_file, category_names=names)
    assert store.find_by_code("DSK-0002").category.name == "Writing Desks"


def test_snapshot_cannot_be_mutated_through_reads(store):
    products = store.all_products()
    assert isinstance(products, tuple)

    with pytest.raises(ValidationError):
        products[0].stock_quantity = 999

    assert store.find_by_code(products[0].code).stock_quantity != 999


def test_malformed_records_are_skipped_with_warning(write_catalog, log_records):
    path = write_catalog(
        HEADER
        + "DSK-0001,Desk Oak,249.00,5,2,Oak desk\n"
        + "BAD-0001,Too,Few\n"
        + "BAD-0002,Bad Price,abc,1,1,desc\n"
        + "\n"
        + "BAD-0003,Negative Stock,1.00,-4,1,desc\n"
        + "BAD-0004,Zero MOQ,1.00,4,0,desc\n"
        + "CHR-0001,Chair,10.00,3,1,Plain chair\n"
    )
    store = CatalogStore(path, category_names=DEFAULT_CATEGORY_NAMES)
    store.load()

    assert [p.code for p in store.all_products()] == ["DSK-0001", "CHR-0001"]
    warnings = [r for r in log_records if r["level"].name == "WARNING"]
    assert len(warnings) == 4
    assert any("line 3" in r["message"] for r in warnings)


def test_oversized_field_skips_only_its_record(write_catalog, log_records):
    path = write_catalog(
        HEADER
        + "DSK-0001,Desk Oak,249.00,5,2,Oak desk\n"
        + "BIG-0001,Huge,1.00,1,1," + "x" * 200_000 + "\n"
        + "CHR-0001,Chair,10.00,3,1,Plain chair\n"
    )
    store = CatalogStore(path, category_names=DEFAULT_CATEGORY_NAMES)
    store.load()

    assert [p.code for p in store.all_products()] == ["DSK-0001", "CHR-0001"]
    assert any("line 3" in r["message"] and r["level"].name == "WARNING" for r in log_records)


def test_non_utf8_bytes_skip_only_their_record(tmp_path, log_records):
    path = tmp_path / "catalog.csv"
    path.write_bytes(
        HEADER.encode("utf-8")
        + b"DSK-0001,Desk Oak,249.00,5,2,Oak desk\n"
        + b"BAD-0001,Caf\xe9 Table,10.00,1,1,broken encoding\n"
        + "CHR-0001,Chaise Longue,10.00,3,1,Velours côtelé\n".encode("utf-8")
    )
    store = CatalogStore(path, category_names=DEFAULT_CATEGORY_NAMES)
    store.load()

    assert [p.code for p in store.all_products()] == ["DSK-0001", "CHR-0001"]
    assert store.find_by_code("CHR-0001").description == "Velours côtelé"
    assert any("UTF-8" in r["message"] and "line 3" in r["message"] for r in log_records)


def test_duplicate_code_last_occurrence_wins(write_catalog, log_records):
    path = write_catalog(
        HEADER
        + "DSK-0001,First Desk,100.00,1,1,first\n"
        + "CHR-0001,Chair,10.00,3,1,chair\n"
        + "dsk-0001,Second Desk,200.00,2,1,second\n"
    )
    store = CatalogStore(path, category_names=DEFAULT_CATEGORY_NAMES)

    products = store.all_products()
    assert len(products) == 2
    assert store.find_by_code("DSK-0001").name == "Second Desk"
    assert any("Duplicate" in r["message"] for r in log_records)


def test_missing_file_raises_catalog_unavailable(tmp_path):
    store = CatalogStore(tmp_path / "missing.csv", category_names=DEFAULT_CATEGORY_NAMES)

    with pytest.raises(CatalogUnavailable):
        store.load()
    assert not store.loaded

    # no catalog-dependent read may succeed either
    with pytest.raises(CatalogUnavailable):
        store.find_by_code("DSK-0001")


def test_unreadable_file_raises_catalog_unavailable(catalog_file, monkeypatch):
    def _denied(*args, **kwargs):
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr(records, "open", _denied, raising=False)
    store = CatalogStore(catalog_file, category_names=DEFAULT_CATEGORY_NAMES)

    with pytest.raises(CatalogUnavailable, match="unreadable"):
        store.load()
    assert not store.loaded


def test_store_closes_only_the_cache_it_created(catalog_file, cache):
    own = CatalogStore(catalog_file, category_names=DEFAULT_CATEGORY_NAMES)
    assert own.cache.running
    own.close()
    assert not own.cache.running

    shared = CatalogStore(catalog_file, cache=cache, category_names=DEFAULT_CATEGORY_NAMES)
    cache.set("k", "v")
    shared.close()
    assert cache.get("k") == "v"


def test_load_is_idempotent(store):
    first = store.all_products()
    store.load()
    store.load()
    assert store.load_count == 1
    assert store.all_products() is first


def test_concurrent_first_access_parses_once(catalog_file):
    store = CatalogStore(catalog_file, category_names=DEFAULT_CATEGORY_NAMES)
    barrier = threading.Barrier(16)
    seen = []

    def worker():
        barrier.wait()
        seen.append(store.all_products())  # lazy load on first read

    threads = [threading.Thread(target=worker) for _ in range(16)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert store.load_count == 1
    assert len(seen) == 16
    assert all(products is seen[0] for products in seen)


def test_by_category_is_capped_and_cached(store, cache):
    desks = store.by_category("DSK", limit=2)
    assert [p.code for p in desks] == ["DSK-0001", "DSK-0002"]

    hits_before = cache.stats().hits
    again = store.by_category("DSK", limit=2)
    assert again == desks
    assert cache.stats().hits == hits_before + 1

    assert store.by_category("NONE") == ()


def test_stats_counts(store):
    stats = store.stats()

    assert stats.total_products == 7
    assert stats.categories == 3
    assert stats.out_of_stock == 1
    assert stats.in_stock == 6
    assert stats.low_stock == 3
    assert stats.average_price == Decimal("175.06")
    assert stats.cache is not None


def test_stats_on_empty_catalog(write_catalog):
    store = CatalogStore(write_catalog(HEADER), category_names=DEFAULT_CATEGORY_NAMES)
    stats = store.stats()

    assert stats.total_products == 0
    assert stats.average_price == Decimal(0)
