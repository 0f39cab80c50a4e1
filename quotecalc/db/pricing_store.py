"""SQLAlchemy implementation of the PricingStore port.

Enforces invariant: at most one row with is_current = true.
- In-process: flips are serialized with an asyncio.Lock.
- In the database: demote and promote run in one transaction (rows locked
  FOR UPDATE where supported) and a partial unique index rejects a second
  current row, so a cross-process race fails loudly instead of corrupting
  state. Such a rejected flip is retried.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker

from quotecalc.db.models import PricingSnapshotModel
from quotecalc.models import (
    FlipResult,
    PriceItem,
    PricingSnapshot,
    SnapshotRowError,
    SnapshotSource,
)
from quotecalc.pricing.store import PricingStore, SnapshotNotFoundError

logger = logging.getLogger(__name__)

FLIP_ATTEMPTS = 3


def to_snapshot(row: PricingSnapshotModel) -> PricingSnapshot:
    """Convert a database row to the PricingSnapshot value type."""
    return PricingSnapshot(
        id=row.id,
        fetched_at=row.fetched_at,
        source=SnapshotSource(spreadsheet_id=row.source_spreadsheet_id, tab=row.source_tab),
        sheet_version=row.sheet_version,
        item_count=row.item_count,
        current=row.is_current,
        items=[PriceItem.model_validate(item) for item in row.items or []],
        errors=[SnapshotRowError.model_validate(err) for err in row.errors or []],
    )


class SqlAlchemyPricingStore(PricingStore):
    """Pricing snapshots in a relational table via async SQLAlchemy."""

    def __init__(self, session_factory: sessionmaker | None = None):
        """Initialize store.

        Args:
            session_factory: AsyncSession factory; defaults to the app-wide one
        """
        if session_factory is None:
            from quotecalc.db.connection import get_session_factory

            session_factory = get_session_factory()
        self.session_factory = session_factory
        self._flip_lock = asyncio.Lock()

    async def get_current_snapshot(self) -> PricingSnapshot | None:
        async with self.session_factory() as session:
            stmt = (
                select(PricingSnapshotModel)
                .where(PricingSnapshotModel.is_current.is_(True))
                .limit(1)
            )
            result = await session.execute(stmt)
            row = result.scalars().first()
            return to_snapshot(row) if row else None

    async def create_pricing_snapshot(self, snapshot: PricingSnapshot) -> str:
        snapshot_id = str(uuid4())
        row = PricingSnapshotModel(
            id=snapshot_id,
            fetched_at=snapshot.fetched_at,
            source_spreadsheet_id=snapshot.source.spreadsheet_id,
            source_tab=snapshot.source.tab,
            sheet_version=snapshot.sheet_version,
            item_count=len(snapshot.items),
            items=[item.model_dump(mode="json") for item in snapshot.items],
            errors=[err.model_dump(mode="json") for err in snapshot.errors],
            is_current=False,
        )
        async with self.session_factory() as session:
            async with session.begin():
                session.add(row)
        return snapshot_id

    async def flip_current_snapshot(self, snapshot_id: str) -> FlipResult:
        async with self._flip_lock:
            attempt = 0
            while True:
                attempt += 1
                try:
                    async with self.session_factory() as session:
                        async with session.begin():
                            return await self._flip(session, snapshot_id)
                except IntegrityError:
                    if attempt >= FLIP_ATTEMPTS:
                        raise
                    logger.warning(
                        "Concurrent promotion detected for snapshot %s, retrying (attempt %d)",
                        snapshot_id,
                        attempt,
                    )

    async def _flip(self, session: AsyncSession, snapshot_id: str) -> FlipResult:
        target = await session.execute(
            select(PricingSnapshotModel.is_current)
            .where(PricingSnapshotModel.id == snapshot_id)
            .with_for_update()
        )
        target_is_current = target.scalar_one_or_none()
        if target_is_current is None:
            raise SnapshotNotFoundError(snapshot_id)

        # Step 1: demote whatever is current (if it is not the target).
        # The demoted id comes from the UPDATE itself, so a row promoted by a
        # concurrent writer after our snapshot was taken is still reported.
        demoted = await session.execute(
            update(PricingSnapshotModel)
            .where(
                PricingSnapshotModel.is_current.is_(True),
                PricingSnapshotModel.id != snapshot_id,
            )
            .values(is_current=False)
            .returning(PricingSnapshotModel.id)
        )
        previous_id = demoted.scalars().first()
        if previous_id is None and target_is_current:
            previous_id = snapshot_id

        # Step 2: promote target
        await session.execute(
            update(PricingSnapshotModel)
            .where(PricingSnapshotModel.id == snapshot_id)
            .values(is_current=True, promoted_at=datetime.now(timezone.utc))
        )

        return FlipResult(previous_current_id=previous_id, current_id=snapshot_id)

    async def get_snapshot(self, snapshot_id: str) -> PricingSnapshot | None:
        async with self.session_factory() as session:
            row = await session.get(PricingSnapshotModel, snapshot_id)
            return to_snapshot(row) if row else None

    async def list_snapshots(self, limit: int = 20) -> list[PricingSnapshot]:
        async with self.session_factory() as session:
            stmt = (
                select(PricingSnapshotModel)
                .order_by(PricingSnapshotModel.fetched_at.desc())
                .limit(limit)
            )
            result = await session.execute(stmt)
            return [to_snapshot(row) for row in result.scalars().all()]
