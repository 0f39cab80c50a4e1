"""Pytest configuration and fixtures for QuoteCalc tests.

Provides common fixtures for testing.
"""

from __future__ import annotations

import pytest

from quotecalc.canonical.normalize import normalize_name
from quotecalc.config import reset_config
from quotecalc.models import PriceItem, PricingSnapshot, SnapshotSource
from quotecalc.pricing.headers import EXPECTED_HEADERS
from quotecalc.pricing.snapshots import SnapshotLifecycle
from quotecalc.pricing.store import InMemoryPricingStore


@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch):
    """Set up test environment variables."""
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.delenv("SHEETS_SPREADSHEET_ID", raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def sheet_source() -> SnapshotSource:
    return SnapshotSource(spreadsheet_id="sheet-123", tab="Pricing")


@pytest.fixture
def pricing_rows() -> list[list[str]]:
    """Pricing sheet grid as returned by the values API."""
    return [
        list(EXPECTED_HEADERS),
        ["SKU1", "Blue Widget", "List1", "USD", "10.00"],
        ["SKU2", "Red Widget", "List1", "USD", "12.50"],
        ["FISH-1", "Fresh Fish, Grade-A (KGS)", "List1", "USD", "7.25"],
        ["", "Nameless SKU", "List1", "USD", "1.00"],
        ["SKU3", "Green Widget", "List1", "USD", "n/a"],
    ]


@pytest.fixture
def memory_store() -> InMemoryPricingStore:
    return InMemoryPricingStore()


@pytest.fixture
def lifecycle(memory_store: InMemoryPricingStore) -> SnapshotLifecycle:
    return SnapshotLifecycle(memory_store)


def _make_item(
    sku: str,
    name: str,
    unit_price: float,
    currency: str | None = "USD",
    unit: str = "unit",
) -> PriceItem:
    return PriceItem(
        sku=sku,
        name=name,
        normalized_name=normalize_name(name),
        unit=unit,
        currency=currency,
        unit_price=unit_price,
    )


@pytest.fixture
def widget_snapshot(sheet_source: SnapshotSource) -> PricingSnapshot:
    """Two items whose names collide after normalization."""
    return PricingSnapshot(
        source=sheet_source,
        items=[
            _make_item("A1", "Widget", 4.0),
            _make_item("A2", "widget", 5.0),
            _make_item("B1", "Steel Bar 10Kgs", 12.005, unit="kg"),
        ],
        item_count=3,
    )


@pytest.fixture
def make_item():
    """Factory for PriceItem with a consistent normalized name."""
    return _make_item


@pytest.fixture
def promote(memory_store: InMemoryPricingStore):
    """Store a snapshot in the in-memory store and make it current."""

    async def _promote(snapshot: PricingSnapshot) -> str:
        snapshot_id = await memory_store.create_pricing_snapshot(snapshot)
        await memory_store.flip_current_snapshot(snapshot_id)
        return snapshot_id

    return _promote
