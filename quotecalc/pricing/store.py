"""Persistence port for pricing snapshots.

The core needs exactly four operations from storage: read the current
snapshot, create a snapshot, flip the current flag, and look up a single
price. `flip_current_snapshot` must be one atomic read-modify-write: no
reader may ever observe zero or two current snapshots mid-flip.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from uuid import uuid4

from quotecalc.canonical.normalize import clean_text, normalize_name
from quotecalc.models import FlipResult, PriceItem, PricingSnapshot


class SnapshotNotFoundError(LookupError):
    """Raised when promoting a snapshot id that does not exist."""

    def __init__(self, snapshot_id: str):
        super().__init__(f"Pricing snapshot not found: {snapshot_id}")
        self.snapshot_id = snapshot_id


class PricingStore(ABC):
    """Storage port consumed by the snapshot lifecycle and quotation resolver."""

    @abstractmethod
    async def get_current_snapshot(self) -> PricingSnapshot | None: ...

    @abstractmethod
    async def create_pricing_snapshot(self, snapshot: PricingSnapshot) -> str:
        """Persist a new snapshot with `current=False` and return its id."""

    @abstractmethod
    async def flip_current_snapshot(self, snapshot_id: str) -> FlipResult:
        """Atomically demote the current snapshot and promote `snapshot_id`.

        Raises:
            SnapshotNotFoundError: If `snapshot_id` does not exist
        """

    @abstractmethod
    async def get_snapshot(self, snapshot_id: str) -> PricingSnapshot | None: ...

    @abstractmethod
    async def list_snapshots(self, limit: int = 20) -> list[PricingSnapshot]:
        """Most recently fetched snapshots first."""

    async def lookup_price(
        self, sku: str | None = None, name: str | None = None
    ) -> PriceItem | None:
        """Single-item price check against the current snapshot only."""
        current = await self.get_current_snapshot()
        if current is None:
            return None
        return find_price(current, sku, name)


def find_price(
    snapshot: PricingSnapshot, sku: str | None = None, name: str | None = None
) -> PriceItem | None:
    """First item matching `sku` exactly, else first matching normalized name."""
    sku = clean_text(sku)
    if sku:
        for item in snapshot.items:
            if item.sku == sku:
                return item

    key = normalize_name(name)
    if key:
        for item in snapshot.items:
            if item.normalized_name == key:
                return item

    return None


class InMemoryPricingStore(PricingStore):
    """Dict-backed store; flips are serialized with an asyncio.Lock."""

    def __init__(self) -> None:
        self._snapshots: dict[str, PricingSnapshot] = {}
        self._current_id: str | None = None
        self._flip_lock = asyncio.Lock()

    async def get_current_snapshot(self) -> PricingSnapshot | None:
        if self._current_id is None:
            return None
        return self._snapshots[self._current_id]

    async def create_pricing_snapshot(self, snapshot: PricingSnapshot) -> str:
        snapshot_id = str(uuid4())
        self._snapshots[snapshot_id] = snapshot.model_copy(
            update={"id": snapshot_id, "current": False, "item_count": len(snapshot.items)}
        )
        return snapshot_id

    async def flip_current_snapshot(self, snapshot_id: str) -> FlipResult:
        async with self._flip_lock:
            if snapshot_id not in self._snapshots:
                raise SnapshotNotFoundError(snapshot_id)

            previous_id = self._current_id
            # Swap both flags and the pointer with no await in between
            if previous_id is not None:
                self._snapshots[previous_id] = self._snapshots[previous_id].model_copy(
                    update={"current": False}
                )
            self._snapshots[snapshot_id] = self._snapshots[snapshot_id].model_copy(
                update={"current": True}
            )
            self._current_id = snapshot_id

        return FlipResult(previous_current_id=previous_id, current_id=snapshot_id)

    async def get_snapshot(self, snapshot_id: str) -> PricingSnapshot | None:
        return self._snapshots.get(snapshot_id)

    async def list_snapshots(self, limit: int = 20) -> list[PricingSnapshot]:
        ordered = sorted(
            self._snapshots.values(), key=lambda s: s.fetched_at, reverse=True
        )
        return ordered[:limit]
