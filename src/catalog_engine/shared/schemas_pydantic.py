"""
Pydantic Schemas for the Catalog Matching & Order Validation Engine

Organized by engine stage: Catalog records → Matching → Validation →
Line resolution → Reporting.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field


# ============================================================================
# 1. CATALOG RECORDS
# Built once by the catalog store at load time, never mutated afterwards.
# ============================================================================

class Category(BaseModel):
    """Product category derived from the product code prefix."""
    model_config = ConfigDict(frozen=True)

    code: str = Field(..., description="Category code, e.g. DSK")
    name: str = Field(..., description="Display name from the category table")
    parent_code: Optional[str] = Field(None, description="Parent category code, if any")


class Product(BaseModel):
    """Immutable catalog product. Owned by the catalog store."""
    model_config = ConfigDict(frozen=True)

    code: str = Field(..., min_length=1, description="Unique product code / SKU")
    name: str = Field(..., description="Product name")
    price: Decimal = Field(..., ge=0, description="Unit price")
    stock_quantity: int = Field(..., ge=0, description="Units available in stock")
    min_order_quantity: int = Field(1, ge=1, description="Minimum order quantity (MOQ)")
    description: str = Field("", description="Free-text product description")
    category: Category = Field(..., description="Category derived from the code prefix")
    tags: frozenset[str] = Field(default_factory=frozenset, description="Lowercase keywords from name/description")


# ============================================================================
# 2. MATCHING
# Transient, produced and consumed within a single search call.
# ============================================================================

class MatchKind(str, Enum):
    """Which matching rule produced a candidate's confidence."""
    EXACT_CODE = "exact_code"
    PARTIAL_CODE = "partial_code"
    NAME_SUBSTRING = "name_substring"
    DESCRIPTION_SUBSTRING = "description_substring"


class MatchCandidate(BaseModel):
    """Catalog product scored against one query."""
    model_config = ConfigDict(frozen=True)

    product: Product
    confidence: float = Field(..., ge=0.0, le=1.0, description="Match confidence 0-1")
    match_kind: MatchKind


class SearchResult(BaseModel):
    """Ranked candidates for a query, best first."""
    query: str
    matches: list[MatchCandidate] = Field(default_factory=list)

    @computed_field
    @property
    def total(self) -> int:
        return len(self.matches)

    @computed_field
    @property
    def products(self) -> list[Product]:
        return [m.product for m in self.matches]

    @computed_field
    @property
    def confidence_scores(self) -> list[float]:
        return [m.confidence for m in self.matches]


# ============================================================================
# 3. VALIDATION
# One fresh outcome per validate() call; logical failures live here, not in exceptions.
# ============================================================================

class ValidationOutcome(BaseModel):
    """Purchasability verdict for one SKU + quantity."""
    is_valid: bool = Field(..., description="True when no issues were found")
    requested_code: Optional[str] = Field(None, description="SKU as supplied by the caller")
    requested_quantity: int = Field(..., ge=0, description="Quantity as supplied by the caller")
    product: Optional[Product] = Field(None, description="Resolved product, absent if the SKU did not resolve")
    issues: list[str] = Field(default_factory=list, description="Human-readable problems, in evaluation order")
    suggestions: list[str] = Field(default_factory=list, description="Corrective actions for the issues")
    alternatives: list[Product] = Field(default_factory=list, description="'Did you mean' products for unknown SKUs")


# ============================================================================
# 4. LINE RESOLUTION
# Extracted order lines (best-effort model output) resolved against the catalog.
# ============================================================================

class OrderLine(BaseModel):
    """Individual line item as extracted from an order e-mail."""
    product_code: Optional[str] = Field(None, description="Product SKU if the sender gave one")
    product_description: str = Field("", description="Product description from the e-mail")
    quantity: Optional[int] = Field(None, ge=0, description="Quantity ordered")
    unit: Optional[str] = Field(None, description="Unit of measure if mentioned")


class LineResolution(BaseModel):
    """Order line with its matched SKU and validation verdict."""
    line_index: int = Field(..., ge=0, description="Zero-based index of the line in the order")
    line: OrderLine
    resolved_code: Optional[str] = Field(None, description="Catalog SKU the line resolved to")
    match_confidence: float = Field(0.0, ge=0.0, le=1.0, description="Confidence of the SKU match")
    match_kind: Optional[MatchKind] = None
    needs_review: bool = Field(False, description="True if a human should check this line")
    outcome: ValidationOutcome


class MatchingSummary(BaseModel):
    """Aggregate SKU matching statistics for one order."""
    total_lines: int = Field(..., ge=0)
    matched_lines: int = Field(..., ge=0, description="Lines that resolved to a catalog SKU")
    valid_lines: int = Field(..., ge=0, description="Lines that passed validation")
    avg_confidence: float = Field(..., ge=0.0, le=1.0)
    needs_review: bool = Field(..., description="True if any line needs review")


class OrderResolution(BaseModel):
    lines: list[LineResolution]
    summary: MatchingSummary


# ============================================================================
# 5. REPORTING
# ============================================================================

class CacheStats(BaseModel):
    """Cache counters. All monotonic except size."""
    hits: int = 0
    misses: int = 0
    sets: int = 0
    deletes: int = 0
    size: int = 0
    size_bytes: int = Field(0, description="Approximate memory held by live entries (keys plus JSON-encoded values)")


class CatalogStats(BaseModel):
    """Aggregate catalog numbers used for health reporting."""
    total_products: int
    categories: int
    in_stock: int
    low_stock: int = Field(..., description="Products with 0 < stock < low-stock threshold")
    out_of_stock: int
    average_price: Decimal
    cache: Optional[CacheStats] = None
