"""Build a pricing snapshot from a spreadsheet grid.

The first row is the header. Each following row becomes a PriceItem, or a
SnapshotRowError when a required field is missing. A bad row never fails
the capture as a whole.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timezone

from quotecalc.canonical.normalize import clean_text, infer_unit, normalize_name, to_number
from quotecalc.models import PriceItem, PricingSnapshot, SnapshotRowError, SnapshotSource
from quotecalc.pricing.headers import HeaderIndices, cell, map_headers_to_indices

logger = logging.getLogger(__name__)


def _is_blank(row: Sequence[object]) -> bool:
    return all(clean_text(value) is None for value in row)


def parse_row(row: Sequence[object], indices: HeaderIndices) -> PriceItem:
    """Map one data row to a PriceItem.

    Raises:
        ValueError: If item number, description or a valid unit price is missing
    """
    sku = clean_text(cell(row, indices.sku_idx))
    name = clean_text(cell(row, indices.name_idx))
    raw_price = cell(row, indices.unit_price_idx)

    if not sku:
        raise ValueError("Missing item number")
    if not name:
        raise ValueError("Missing item description")
    if clean_text(raw_price) is None:
        raise ValueError("Missing unit price")

    unit_price = to_number(raw_price, thousands=True)
    if unit_price is None:
        raise ValueError(f"Invalid unit price: {raw_price!r}")
    if unit_price < 0:
        raise ValueError("Negative unit price")

    currency = clean_text(cell(row, indices.currency_idx))

    return PriceItem(
        sku=sku,
        name=name,
        normalized_name=normalize_name(name),
        unit=infer_unit(name),
        currency=currency.upper() if currency else None,
        unit_price=unit_price,
        price_list=clean_text(cell(row, indices.price_list_idx)),
    )


def build_snapshot(
    rows: Sequence[Sequence[object]],
    source: SnapshotSource,
    sheet_version: str | None = None,
    fetched_at: datetime | None = None,
) -> PricingSnapshot:
    """Capture a snapshot (not yet persisted, `current=False`) from grid rows.

    Error rows are reported with their 1-based sheet row number, so the
    first data row under the header is row 2. Entirely blank rows are
    skipped without an error.

    Args:
        rows: 2-D grid of cells, header row first
        source: Spreadsheet id and tab the grid was read from
        sheet_version: Optional upstream version/etag
        fetched_at: When the source was read (defaults to now)

    Returns:
        PricingSnapshot with items in source order and per-row errors
    """
    items: list[PriceItem] = []
    errors: list[SnapshotRowError] = []

    if rows:
        indices = map_headers_to_indices(rows[0])
        if indices.missing_headers:
            logger.warning(
                "Pricing sheet is missing expected headers: %s",
                ", ".join(indices.missing_headers),
            )

        for offset, row in enumerate(rows[1:], start=2):
            if _is_blank(row):
                continue
            try:
                items.append(parse_row(row, indices))
            except ValueError as e:
                errors.append(SnapshotRowError(row=offset, reason=str(e)))

    logger.info(
        "Captured pricing snapshot from %s/%s: %d items, %d row errors",
        source.spreadsheet_id,
        source.tab,
        len(items),
        len(errors),
    )

    return PricingSnapshot(
        fetched_at=fetched_at or datetime.now(timezone.utc),
        source=source,
        sheet_version=sheet_version,
        item_count=len(items),
        current=False,
        items=items,
        errors=errors,
    )
