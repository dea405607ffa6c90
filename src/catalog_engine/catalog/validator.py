"""
Order Line Validator - is this SKU purchasable in this quantity?

Checks run in a fixed order and every failing check adds an issue:
  not found -> out of stock | insufficient stock -> below MOQ
Out-of-stock and insufficient-stock are exclusive; the MOQ check is independent.
"""

from typing import Optional

from loguru import logger

from catalog_engine.catalog import matcher
from catalog_engine.catalog.store import CatalogStore
from catalog_engine.shared.config import DID_YOU_MEAN_LIMIT
from catalog_engine.shared.errors import InvalidInput
from catalog_engine.shared.schemas_pydantic import ValidationOutcome

SKU_NOT_FOUND = "SKU not found"
OUT_OF_STOCK = "out of stock"


def _check_inputs(code: Optional[str], quantity: Optional[int]) -> None:
    if code is None:
        raise InvalidInput("SKU is required")
    if not isinstance(code, str):
        raise InvalidInput(f"SKU must be a string, got {code!r}")
    if quantity is None:
        raise InvalidInput("quantity is required")
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidInput(f"quantity must be an integer, got {quantity!r}")
    if quantity < 0:
        raise InvalidInput(f"quantity must not be negative, got {quantity}")


def validate(store: CatalogStore, code: Optional[str], quantity: Optional[int]) -> ValidationOutcome:
    """Validate one SKU + quantity against the catalog. Raises InvalidInput on caller errors only."""
    _check_inputs(code, quantity)

    product = store.find_by_code(code.strip())
    issues: list[str] = []
    suggestions: list[str] = []

    if product is None:
        similar = matcher.suggest(store.all_products(), code.strip(), limit=DID_YOU_MEAN_LIMIT)
        if similar:
            suggestions.append(f"did you mean: {', '.join(p.code for p in similar)}?")

        logger.debug("[FUNCTION validate] SKU '{}' not found ({} suggestions)", code, len(similar))
        return ValidationOutcome(
            is_valid=False,
            requested_code=code,
            requested_quantity=quantity,
            issues=[SKU_NOT_FOUND],
            suggestions=suggestions,
            alternatives=similar,
        )

    if product.stock_quantity == 0:
        issues.append(OUT_OF_STOCK)
    elif quantity > product.stock_quantity:
        issues.append(
            f"insufficient stock ({quantity} requested, {product.stock_quantity} available)"
        )
        suggestions.append(f"reduce quantity to {product.stock_quantity} or less")

    if quantity < product.min_order_quantity:
        issues.append(
            f"below minimum order quantity ({quantity} < {product.min_order_quantity})"
        )
        suggestions.append(f"increase to at least {product.min_order_quantity}")

    return ValidationOutcome(
        is_valid=not issues,
        requested_code=code,
        requested_quantity=quantity,
        product=product,
        issues=issues,
        suggestions=suggestions,
    )
