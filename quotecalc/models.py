"""QuoteCalc Pydantic models for type-safe data validation.

Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from quotecalc.canonical.normalize import DEFAULT_UNIT, clean_text


class CamelModel(BaseModel):
    """Base model serialising to camelCase and accepting either spelling."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_response(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase keys and unset optionals omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class PriceItem(CamelModel):
    """Catalog entry embedded in a pricing snapshot."""

    sku: str
    name: str
    normalized_name: str
    unit: str = DEFAULT_UNIT
    currency: str | None = None
    unit_price: float = 0.0
    price_list: str | None = None

    @field_validator("unit_price")
    @classmethod
    def validate_unit_price(cls, v: float) -> float:
        if v < 0:
            raise ValueError("unit_price must be non-negative")
        return v


class SnapshotSource(CamelModel):
    """Origin of a snapshot: spreadsheet id plus tab/sheet name."""

    spreadsheet_id: str
    tab: str


class SnapshotRowError(CamelModel):
    """A source row that failed required-field extraction."""

    row: int
    reason: str


class PricingSnapshot(CamelModel):
    """Immutable, versioned price list captured from the upstream sheet."""

    id: str | None = None
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    source: SnapshotSource
    sheet_version: str | None = None
    item_count: int = 0
    current: bool = False
    items: list[PriceItem] = Field(default_factory=list)
    errors: list[SnapshotRowError] = Field(default_factory=list)


class FlipResult(CamelModel):
    """Outcome of promoting a snapshot to current."""

    previous_current_id: str | None = None
    current_id: str


class QuoteInputItem(CamelModel):
    """Caller-supplied requested line (not persisted).

    `quantity` is kept as given; it is validated by the resolver so that an
    invalid quantity becomes an unresolved entry rather than a request error.
    """

    sku: str | None = None
    name: str | None = None
    quantity: Any = None

    @field_validator("sku", "name", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> str | None:
        return clean_text(v)


class QuoteLineItem(CamelModel):
    sku: str
    name: str
    unit: str
    unit_price: float
    quantity: float
    total_price: float
    currency: str | None = None


class UnresolvedItem(CamelModel):
    sku: str | None = None
    name: str | None = None
    quantity: float | None = None
    reason: str


class QuotePreview(CamelModel):
    """Resolver output.

    `currency`, `warnings` and `unresolved` are None when they would be
    unset or empty, so they drop out of `to_response()`.
    """

    line_items: list[QuoteLineItem] = Field(default_factory=list)
    subtotal: float = 0.0
    currency: str | None = None
    warnings: list[str] | None = None
    unresolved: list[UnresolvedItem] | None = None
