"""Order line validation verdicts."""

import pytest

from catalog_engine.catalog.validator import validate
from catalog_engine.shared.errors import InvalidInput


def test_below_moq(store):
    outcome = validate(store, "DSK-0001", 1)

    assert outcome.is_valid is False
    assert outcome.product.code == "DSK-0001"
    assert outcome.issues == ["below minimum order quantity (1 < 2)"]
    assert outcome.suggestions == ["increase to at least 2"]


def test_insufficient_stock(store):
    outcome = validate(store, "DSK-0001", 10)

    assert outcome.is_valid is False
    assert outcome.issues == ["insufficient stock (10 requested, 5 available)"]
    assert outcome.suggestions == ["reduce quantity to 5 or less"]


def test_valid_line(store):
    outcome = validate(store, "DSK-0001", 3)

    assert outcome.is_valid is True
    assert outcome.issues == []
    assert outcome.suggestions == []


def test_code_is_case_insensitive(store):
    assert validate(store, "dsk-0001", 3).is_valid


def test_out_of_stock_excludes_insufficient_stock(store):
    outcome = validate(store, "DSK-0003", 4)

    assert outcome.issues == ["out of stock"]
    assert outcome.suggestions == []


def test_insufficient_stock_and_moq_both_reported_in_order(store):
    # CHR-0003: stock 3, MOQ 5
    outcome = validate(store, "CHR-0003", 4)

    assert outcome.issues == [
        "insufficient stock (4 requested, 3 available)",
        "below minimum order quantity (4 < 5)",
    ]
    assert outcome.suggestions == ["reduce quantity to 3 or less", "increase to at least 5"]


def test_unknown_sku_without_overlap_has_no_suggestions(store):
    outcome = validate(store, "XXX-9999", 1)

    assert outcome.is_valid is False
    assert outcome.product is None
    assert outcome.issues == ["SKU not found"]
    assert outcome.suggestions == []
    assert outcome.alternatives == []


def test_unknown_sku_gets_top_three_did_you_mean(store):
    outcome = validate(store, "DSK-00", 1)

    assert outcome.issues == ["SKU not found"]
    assert outcome.suggestions == ["did you mean: DSK-0003, DSK-0001, DSK-0002?"]
    assert [p.code for p in outcome.alternatives] == ["DSK-0003", "DSK-0001", "DSK-0002"]


def test_blank_sku_is_not_found(store):
    outcome = validate(store, "   ", 1)
    assert outcome.issues == ["SKU not found"]
    assert outcome.suggestions == []


def test_validation_is_idempotent(store):
    assert validate(store, "CHR-0003", 4) == validate(store, "CHR-0003", 4)
    assert validate(store, "NOPE", 1) == validate(store, "NOPE", 1)


@pytest.mark.parametrize(
    "code, quantity",
    [
        ("DSK-0001", None),
        (None, 1),
        ("DSK-0001", True),
        ("DSK-0001", 2.5),
        ("DSK-0001", -1),
    ],
)
def test_caller_errors_rejected_before_catalog_access(tmp_path, code, quantity):
    from catalog_engine.catalog.store import CatalogStore

    # the file does not exist: reaching the catalog would raise CatalogUnavailable instead
    store = CatalogStore(tmp_path / "missing.csv", category_names={})

    with pytest.raises(InvalidInput):
        validate(store, code, quantity)
