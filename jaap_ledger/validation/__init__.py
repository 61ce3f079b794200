"""Input validation package."""

from jaap_ledger.validation.validator import SeedValidator, coerce_count, is_blank

__all__ = ["SeedValidator", "coerce_count", "is_blank"]
