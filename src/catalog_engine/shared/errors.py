"""
Custom errors for the catalog engine.
Logical misses (unknown SKU, not enough stock) are NOT errors: they come back
as ValidationOutcome values. These classes cover structural and caller faults.
"""


class CatalogEngineError(Exception):
    """Base error for the engine."""


class CatalogUnavailable(CatalogEngineError):
    """Catalog source file missing or unreadable. Fatal at startup."""


class MalformedRecord(CatalogEngineError):
    """One catalog line could not be parsed. Logged and skipped by the store."""

    def __init__(self, line_number: int, reason: str):
        super().__init__(f"line {line_number}: {reason}")
        self.line_number = line_number
        self.reason = reason


class ProductNotFound(CatalogEngineError, LookupError):
    """Raised only by strict lookups; normal lookups return None."""

    def __init__(self, code: str):
        super().__init__(f"Product {code} not found")
        self.code = code


class InvalidInput(CatalogEngineError, ValueError):
    """Caller error: required identifier or quantity missing or unusable."""


class RateLimitExceeded(CatalogEngineError):
    """No call slot available for an identity within the allowed wait."""

    def __init__(self, identity: str, retry_after: float = 0.0):
        super().__init__(f"Rate limit exceeded for '{identity}'")
        self.identity = identity
        self.retry_after = retry_after
