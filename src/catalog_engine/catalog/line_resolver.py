"""
Line Resolver - turns an extracted (error-prone) order line into a catalog
SKU plus a validation verdict, and summarises a whole order.
"""

from typing import Optional, Sequence

from loguru import logger

from catalog_engine.catalog import matcher
from catalog_engine.catalog.store import CatalogStore
from catalog_engine.catalog.validator import validate
from catalog_engine.shared.config import NEEDS_REVIEW_THRESHOLD
from catalog_engine.shared.errors import InvalidInput
from catalog_engine.shared.schemas_pydantic import (
    LineResolution,
    MatchCandidate,
    MatchingSummary,
    MatchKind,
    OrderLine,
    OrderResolution,
)


def _best_candidate(store: CatalogStore, line: OrderLine) -> Optional[MatchCandidate]:
    """Try the given code first, then the description; first query with a hit wins."""
    products = store.all_products()
    for query in (line.product_code, line.product_description):
        query = (query or "").strip()
        if not query:
            continue
        result = matcher.search(products, query, limit=1)
        if result.matches:
            return result.matches[0]
    return None


def resolve_line(
    store: CatalogStore,
    line: OrderLine,
    line_index: int = 0,
    review_threshold: float = NEEDS_REVIEW_THRESHOLD,
) -> LineResolution:
    if line.quantity is None:
        raise InvalidInput(f"order line {line_index} has no quantity")

    code = (line.product_code or "").strip()
    exact = store.find_by_code(code) if code else None

    if exact is not None:
        resolved_code, confidence, kind = exact.code, 1.0, MatchKind.EXACT_CODE
    else:
        candidate = _best_candidate(store, line)
        if candidate is None:
            resolved_code, confidence, kind = None, 0.0, None
        else:
            resolved_code = candidate.product.code
            confidence, kind = candidate.confidence, candidate.match_kind

    # unresolved lines still go through validate() so they get "did you mean" hints
    outcome = validate(store, resolved_code if resolved_code else code, line.quantity)

    resolution = LineResolution(
        line_index=line_index,
        line=line,
        resolved_code=resolved_code,
        match_confidence=confidence,
        match_kind=kind,
        needs_review=confidence < review_threshold or not outcome.is_valid,
        outcome=outcome,
    )
    logger.debug(
        "[FUNCTION resolve_line] line={} | code={!r} -> {} | confidence={} | valid={}",
        line_index, line.product_code, resolved_code, confidence, outcome.is_valid,
    )
    return resolution


def resolve_order(
    store: CatalogStore,
    lines: Sequence[OrderLine],
    review_threshold: float = NEEDS_REVIEW_THRESHOLD,
) -> OrderResolution:
    """Resolve every line; any line missing a quantity rejects the whole order."""
    missing = [i for i, line in enumerate(lines) if line.quantity is None]
    if missing:
        raise InvalidInput(f"order lines without quantity: {missing}")

    resolutions = [
        resolve_line(store, line, index, review_threshold) for index, line in enumerate(lines)
    ]

    total = len(resolutions)
    summary = MatchingSummary(
        total_lines=total,
        matched_lines=sum(1 for r in resolutions if r.resolved_code),
        valid_lines=sum(1 for r in resolutions if r.outcome.is_valid),
        avg_confidence=sum(r.match_confidence for r in resolutions) / total if total else 0.0,
        needs_review=any(r.needs_review for r in resolutions),
    )
    logger.info(
        "[FUNCTION resolve_order] {} lines | {} matched | {} valid | needs_review={}",
        summary.total_lines, summary.matched_lines, summary.valid_lines, summary.needs_review,
    )
    return OrderResolution(lines=resolutions, summary=summary)
