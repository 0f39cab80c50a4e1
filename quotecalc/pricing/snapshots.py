"""Pricing snapshot lifecycle.

captured (current=False) -> promoted (current=True) -> demoted (current=False).
Snapshots are never mutated apart from the current flag and are kept
indefinitely; only the current one is read for pricing.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime

from quotecalc.models import FlipResult, PriceItem, PricingSnapshot, SnapshotSource
from quotecalc.pricing.capture import build_snapshot
from quotecalc.pricing.store import PricingStore

logger = logging.getLogger(__name__)


class SnapshotLifecycle:
    """Capture, promote and read pricing snapshots through a PricingStore."""

    def __init__(self, store: PricingStore):
        """Initialize lifecycle with a storage port.

        Args:
            store: Any PricingStore implementation (SQL or in-memory)
        """
        self.store = store

    async def capture_snapshot(
        self,
        rows: Sequence[Sequence[object]],
        source: SnapshotSource,
        sheet_version: str | None = None,
        fetched_at: datetime | None = None,
    ) -> PricingSnapshot:
        """Build a snapshot from sheet rows and persist it as not-current.

        Per-row failures are recorded in `errors`; the capture itself only
        fails if the store write fails.

        Returns:
            The stored snapshot, with its id assigned
        """
        snapshot = build_snapshot(rows, source, sheet_version, fetched_at)
        snapshot_id = await self.store.create_pricing_snapshot(snapshot)
        logger.info(
            "Stored pricing snapshot %s (%d items, %d errors)",
            snapshot_id,
            snapshot.item_count,
            len(snapshot.errors),
        )
        return snapshot.model_copy(update={"id": snapshot_id})

    async def promote_to_current(self, snapshot_id: str) -> FlipResult:
        """Make `snapshot_id` the single current snapshot.

        Raises:
            SnapshotNotFoundError: If the snapshot does not exist
        """
        result = await self.store.flip_current_snapshot(snapshot_id)
        logger.info(
            "Promoted pricing snapshot %s (previous: %s)",
            result.current_id,
            result.previous_current_id,
        )
        return result

    async def get_current(self) -> PricingSnapshot | None:
        return await self.store.get_current_snapshot()

    async def lookup(
        self, sku: str | None = None, name: str | None = None
    ) -> PriceItem | None:
        """Single price check: SKU first, then normalized name, current snapshot only."""
        return await self.store.lookup_price(sku=sku, name=name)
