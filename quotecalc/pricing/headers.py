"""Spreadsheet header label to column index mapping.

Header labels are matched case-insensitively and exactly (after trimming).
A renamed upstream header maps to -1, which capture treats as missing data
on every row rather than a fatal error.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

SKU_HEADER = "Item No."
NAME_HEADER = "Item Description"
PRICE_LIST_HEADER = "Base Price List"
CURRENCY_HEADER = "Primary Currency - Base Price (currency)"
UNIT_PRICE_HEADER = "Primary Currency - Base Price"

EXPECTED_HEADERS = (
    SKU_HEADER,
    NAME_HEADER,
    PRICE_LIST_HEADER,
    CURRENCY_HEADER,
    UNIT_PRICE_HEADER,
)

MISSING = -1


@dataclass(frozen=True)
class HeaderIndices:
    sku_idx: int
    name_idx: int
    price_list_idx: int
    currency_idx: int
    unit_price_idx: int

    @property
    def missing_headers(self) -> list[str]:
        """Expected labels that were not found in the header row."""
        pairs = zip(
            EXPECTED_HEADERS,
            (
                self.sku_idx,
                self.name_idx,
                self.price_list_idx,
                self.currency_idx,
                self.unit_price_idx,
            ),
        )
        return [label for label, idx in pairs if idx == MISSING]


def _find(headers: Sequence[object], target: str) -> int:
    wanted = target.lower()
    for idx, header in enumerate(headers):
        if header is not None and str(header).strip().lower() == wanted:
            return idx
    return MISSING


def map_headers_to_indices(headers: Sequence[object]) -> HeaderIndices:
    """Resolve the expected pricing columns in a header row."""
    return HeaderIndices(
        sku_idx=_find(headers, SKU_HEADER),
        name_idx=_find(headers, NAME_HEADER),
        price_list_idx=_find(headers, PRICE_LIST_HEADER),
        currency_idx=_find(headers, CURRENCY_HEADER),
        unit_price_idx=_find(headers, UNIT_PRICE_HEADER),
    )


def cell(row: Sequence[object], idx: int) -> object | None:
    """Value at `idx`, or None for a missing column or a short row."""
    if idx == MISSING or idx >= len(row):
        return None
    return row[idx]
