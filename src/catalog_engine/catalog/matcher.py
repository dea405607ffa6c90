"""
Matcher - ranks catalog products against a free-text query.

Two rankings live here and are deliberately separate:
  search():  general confidence ranking (code > partial code > name > description)
  suggest(): "did you mean" ranking (any code hit before name hits, then by name)
Both are pure functions of the product sequence and the query.
"""

from typing import Iterable, Optional

from catalog_engine.shared.config import SEARCH_DEFAULT_LIMIT, SUGGESTION_DEFAULT_LIMIT
from catalog_engine.shared.schemas_pydantic import MatchCandidate, MatchKind, Product, SearchResult

# Confidence per rule, highest applicable rule wins
RULE_CONFIDENCE: dict[MatchKind, float] = {
    MatchKind.EXACT_CODE: 1.0,
    MatchKind.PARTIAL_CODE: 0.8,
    MatchKind.NAME_SUBSTRING: 0.6,
    MatchKind.DESCRIPTION_SUBSTRING: 0.4,
}


def classify(product: Product, query: str) -> Optional[MatchKind]:
    """Best rule the query satisfies for this product, or None."""
    if not query:
        return None

    needle = query.lower()
    code = product.code.lower()

    if code == needle:
        return MatchKind.EXACT_CODE
    if needle in code:
        return MatchKind.PARTIAL_CODE
    if needle in product.name.lower():
        return MatchKind.NAME_SUBSTRING
    if needle in product.description.lower():
        return MatchKind.DESCRIPTION_SUBSTRING
    return None


def score(product: Product, query: str) -> float:
    kind = classify(product, query)
    return 0.0 if kind is None else RULE_CONFIDENCE[kind]


def search(
    products: Iterable[Product],
    query: str,
    limit: int = SEARCH_DEFAULT_LIMIT,
) -> SearchResult:
    """Every product with a non-zero score, best first, ties in catalog order."""
    candidates = []
    for product in products:
        kind = classify(product, query)
        if kind is None:
            continue
        candidates.append(
            MatchCandidate(product=product, confidence=RULE_CONFIDENCE[kind], match_kind=kind)
        )

    candidates.sort(key=lambda c: c.confidence, reverse=True)  # stable
    return SearchResult(query=query, matches=candidates[:max(limit, 0)])


def suggest(
    products: Iterable[Product],
    fragment: str,
    limit: int = SUGGESTION_DEFAULT_LIMIT,
) -> list[Product]:
    """
    "Did you mean" candidates for a partial code or name.

    A code hit always outranks a name-only hit; inside each group products
    are ordered by name, then catalog order. Descriptions are not searched.
    """
    if not fragment:
        return []

    needle = fragment.lower()
    ranked = []
    for position, product in enumerate(products):
        code_hit = needle in product.code.lower()
        if not code_hit and needle not in product.name.lower():
            continue
        ranked.append((not code_hit, product.name.casefold(), position, product))

    ranked.sort(key=lambda row: row[:3])
    return [row[3] for row in ranked[:max(limit, 0)]]
