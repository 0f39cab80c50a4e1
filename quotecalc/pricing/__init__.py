"""Pricing snapshots and quotation generation."""

from quotecalc.pricing.quotation import (
    PricingNotConfiguredError,
    QuotationResolver,
    generate_quotation_preview,
    round2,
)
from quotecalc.pricing.snapshots import SnapshotLifecycle
from quotecalc.pricing.store import (
    InMemoryPricingStore,
    PricingStore,
    SnapshotNotFoundError,
)

__all__ = [
    "PricingStore",
    "InMemoryPricingStore",
    "SnapshotNotFoundError",
    "SnapshotLifecycle",
    "QuotationResolver",
    "PricingNotConfiguredError",
    "generate_quotation_preview",
    "round2",
]
