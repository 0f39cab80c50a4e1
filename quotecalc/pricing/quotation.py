"""Quotation preview generation against the current pricing snapshot.

Resolves requested items by SKU (exact) and then by normalized name,
prices each match, and reports what could not be resolved. The snapshot is
read once per call and never modified.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Any

from quotecalc.canonical.normalize import (
    DEFAULT_UNIT,
    coerce_price,
    coerce_quantity,
    normalize_name,
    to_number,
)
from quotecalc.models import (
    PriceItem,
    PricingSnapshot,
    QuoteInputItem,
    QuoteLineItem,
    QuotePreview,
    UnresolvedItem,
)
from quotecalc.pricing.store import PricingStore

logger = logging.getLogger(__name__)

INVALID_QUANTITY = "Invalid quantity"
ITEM_NOT_FOUND = "Item not found in current snapshot"
MIXED_CURRENCY_WARNING = (
    "Mixed currencies detected across line items. "
    "Totals are computed without currency conversion."
)

_CENT = Decimal("0.01")


class PricingNotConfiguredError(RuntimeError):
    """No pricing snapshot has been promoted to current."""

    def __init__(self, message: str | None = None):
        super().__init__(
            message
            or "No current pricing snapshot configured. Please refresh pricing."
        )


def _decimal(value: float | int | Decimal) -> Decimal:
    # str() gives the shortest repr, so 12.005 stays 12.005 rather than its binary expansion
    return value if isinstance(value, Decimal) else Decimal(str(value))


def round2(value: float | int | Decimal) -> float:
    """Round to 2 decimal places, halves away from zero.

    Precision is widened to the value's magnitude so very large totals
    round instead of raising InvalidOperation.
    """
    number = _decimal(value)
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, number.adjusted() + 3)
        return float(number.quantize(_CENT, rounding=ROUND_HALF_UP))


@dataclass
class SnapshotIndex:
    """SKU and normalized-name lookup tables; later snapshot items win on duplicates."""

    by_sku: dict[str, PriceItem] = field(default_factory=dict)
    by_name: dict[str, PriceItem] = field(default_factory=dict)

    @classmethod
    def build(cls, snapshot: PricingSnapshot) -> SnapshotIndex:
        index = cls()
        for item in snapshot.items:
            if item.sku:
                index.by_sku[item.sku] = item
            if item.normalized_name:
                index.by_name[item.normalized_name] = item
        return index

    def resolve(self, request: QuoteInputItem) -> PriceItem | None:
        match = None
        if request.sku:
            match = self.by_sku.get(request.sku)
        if match is None and request.name:
            match = self.by_name.get(normalize_name(request.name))
        return match


def _as_input(raw: Any) -> QuoteInputItem:
    if isinstance(raw, QuoteInputItem):
        return raw
    if isinstance(raw, Mapping):
        return QuoteInputItem.model_validate(raw)
    # Not an object at all: nothing to resolve, reported as an invalid quantity
    return QuoteInputItem()


def price_line(match: PriceItem, quantity: float) -> QuoteLineItem:
    """Price one resolved request."""
    unit_price = coerce_price(match.unit_price)
    return QuoteLineItem(
        sku=match.sku,
        name=match.name,
        unit=match.unit or DEFAULT_UNIT,
        unit_price=round2(unit_price),
        quantity=quantity,
        total_price=round2(_decimal(unit_price) * _decimal(quantity)),
        currency=match.currency or None,
    )


def build_preview(
    snapshot: PricingSnapshot, items: Iterable[QuoteInputItem | Mapping[str, Any]]
) -> QuotePreview:
    """Resolve `items` against an already-fetched snapshot (pure, no I/O)."""
    index = SnapshotIndex.build(snapshot)

    line_items: list[QuoteLineItem] = []
    unresolved: list[UnresolvedItem] = []
    warnings: list[str] = []

    for raw in items:
        request = _as_input(raw)

        quantity = coerce_quantity(request.quantity)
        if quantity is None:
            unresolved.append(
                UnresolvedItem(
                    sku=request.sku,
                    name=request.name,
                    quantity=to_number(request.quantity),
                    reason=INVALID_QUANTITY,
                )
            )
            continue

        match = index.resolve(request)
        if match is None:
            unresolved.append(
                UnresolvedItem(
                    sku=request.sku,
                    name=request.name,
                    quantity=quantity,
                    reason=ITEM_NOT_FOUND,
                )
            )
            continue

        line_items.append(price_line(match, quantity))

    currencies = {li.currency for li in line_items if li.currency}
    currency = None
    if len(currencies) == 1:
        currency = next(iter(currencies))
    elif len(currencies) > 1:
        warnings.append(MIXED_CURRENCY_WARNING)

    subtotal = round2(sum((_decimal(li.total_price) for li in line_items), Decimal(0)))

    return QuotePreview(
        line_items=line_items,
        subtotal=subtotal,
        currency=currency,
        warnings=warnings or None,
        unresolved=unresolved or None,
    )


class QuotationResolver:
    """Stateless per call; safe to share across concurrent requests."""

    def __init__(self, store: PricingStore):
        self.store = store

    async def generate_quotation_preview(
        self, items: Iterable[QuoteInputItem | Mapping[str, Any]] | None
    ) -> QuotePreview:
        """Price `items` against the current snapshot.

        An empty or missing list returns an empty preview without touching
        the store.

        Raises:
            PricingNotConfiguredError: If no snapshot is current
        """
        items = list(items or [])
        if not items:
            return QuotePreview(line_items=[], subtotal=0.0)

        snapshot = await self.store.get_current_snapshot()
        if snapshot is None:
            logger.warning("Quotation requested but no pricing snapshot is current")
            raise PricingNotConfiguredError()

        preview = build_preview(snapshot, items)
        logger.info(
            "Generated quotation preview from snapshot %s: %d resolved, %d unresolved, currency=%s",
            snapshot.id,
            len(preview.line_items),
            len(preview.unresolved or []),
            preview.currency,
        )
        return preview


async def generate_quotation_preview(
    store: PricingStore,
    items: Iterable[QuoteInputItem | Mapping[str, Any]] | None,
) -> QuotePreview:
    """Convenience function: one-off resolver call."""
    return await QuotationResolver(store).generate_quotation_preview(items)
