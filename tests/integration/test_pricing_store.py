"""Integration tests for SqlAlchemyPricingStore against SQLite.

Covers the single-current invariant both through the store (flip) and at
the database level (partial unique index).
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from quotecalc.db.models import Base, PricingSnapshotModel
from quotecalc.db.pricing_store import SqlAlchemyPricingStore
from quotecalc.models import PricingSnapshot, SnapshotRowError
from quotecalc.pricing.snapshots import SnapshotLifecycle
from quotecalc.pricing.store import SnapshotNotFoundError


@pytest_asyncio.fixture()
async def session_factory(tmp_path):
    """File-backed SQLite database with the schema created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    try:
        yield factory
    finally:
        await engine.dispose()


@pytest.fixture
def sql_store(session_factory) -> SqlAlchemyPricingStore:
    return SqlAlchemyPricingStore(session_factory)


@pytest.fixture
def snapshot(sheet_source, make_item) -> PricingSnapshot:
    return PricingSnapshot(
        source=sheet_source,
        sheet_version='"v1"',
        items=[
            make_item("SKU1", "Blue Widget", 10.0),
            make_item("FISH-1", "Fresh Fish (KGS)", 7.25, currency=None, unit="kg"),
        ],
        errors=[SnapshotRowError(row=5, reason="Missing item number")],
    )


async def _current_count(session_factory) -> int:
    async with session_factory() as session:
        result = await session.execute(
            select(func.count())
            .select_from(PricingSnapshotModel)
            .where(PricingSnapshotModel.is_current.is_(True))
        )
        return result.scalar_one()


@pytest.mark.asyncio
async def test_create_and_read_back(sql_store, snapshot):
    snapshot_id = await sql_store.create_pricing_snapshot(snapshot)

    stored = await sql_store.get_snapshot(snapshot_id)

    assert stored is not None
    assert stored.id == snapshot_id
    assert stored.current is False
    assert stored.item_count == 2
    assert stored.sheet_version == '"v1"'
    assert stored.source == snapshot.source
    assert stored.items == snapshot.items
    assert stored.errors == snapshot.errors
    assert await sql_store.get_current_snapshot() is None


@pytest.mark.asyncio
async def test_get_unknown_snapshot(sql_store):
    assert await sql_store.get_snapshot("missing") is None


@pytest.mark.asyncio
async def test_flip_demotes_previous(sql_store, snapshot, session_factory):
    first = await sql_store.create_pricing_snapshot(snapshot)
    second = await sql_store.create_pricing_snapshot(snapshot)

    flip1 = await sql_store.flip_current_snapshot(first)
    flip2 = await sql_store.flip_current_snapshot(second)

    assert flip1.previous_current_id is None
    assert flip2.previous_current_id == first
    assert flip2.current_id == second
    assert (await sql_store.get_current_snapshot()).id == second
    assert (await sql_store.get_snapshot(first)).current is False
    assert await _current_count(session_factory) == 1


@pytest.mark.asyncio
async def test_flip_unknown_snapshot_leaves_state(sql_store, snapshot):
    first = await sql_store.create_pricing_snapshot(snapshot)
    await sql_store.flip_current_snapshot(first)

    with pytest.raises(SnapshotNotFoundError):
        await sql_store.flip_current_snapshot("missing")

    assert (await sql_store.get_current_snapshot()).id == first


@pytest.mark.asyncio
async def test_repromote_current_is_noop(sql_store, snapshot, session_factory):
    snapshot_id = await sql_store.create_pricing_snapshot(snapshot)
    await sql_store.flip_current_snapshot(snapshot_id)

    result = await sql_store.flip_current_snapshot(snapshot_id)

    assert result.previous_current_id == snapshot_id
    assert result.current_id == snapshot_id
    assert await _current_count(session_factory) == 1


@pytest.mark.asyncio
async def test_concurrent_flips_leave_one_current(sql_store, snapshot, session_factory):
    ids = [await sql_store.create_pricing_snapshot(snapshot) for _ in range(5)]

    results = await asyncio.gather(*(sql_store.flip_current_snapshot(i) for i in ids))

    current = await sql_store.get_current_snapshot()
    assert current.id in ids
    assert current.id in {r.current_id for r in results}
    assert await _current_count(session_factory) == 1


@pytest.mark.asyncio
async def test_unique_index_rejects_second_current_row(session_factory):
    now = datetime.now(timezone.utc)
    async with session_factory() as session:
        session.add(
            PricingSnapshotModel(
                id="a",
                fetched_at=now,
                source_spreadsheet_id="sheet",
                source_tab="Pricing",
                is_current=True,
            )
        )
        await session.commit()

        session.add(
            PricingSnapshotModel(
                id="b",
                fetched_at=now,
                source_spreadsheet_id="sheet",
                source_tab="Pricing",
                is_current=True,
            )
        )
        with pytest.raises(IntegrityError):
            await session.commit()


@pytest.mark.asyncio
async def test_list_snapshots_newest_first(sql_store, snapshot):
    base = datetime(2025, 1, 1, tzinfo=timezone.utc)
    ids = []
    for offset in range(3):
        ids.append(
            await sql_store.create_pricing_snapshot(
                snapshot.model_copy(update={"fetched_at": base + timedelta(days=offset)})
            )
        )

    listed = await sql_store.list_snapshots(limit=2)

    assert [s.id for s in listed] == [ids[2], ids[1]]


@pytest.mark.asyncio
async def test_lifecycle_lookup_over_sql_store(sql_store, pricing_rows, sheet_source):
    lifecycle = SnapshotLifecycle(sql_store)
    snapshot = await lifecycle.capture_snapshot(pricing_rows, sheet_source)
    await lifecycle.promote_to_current(snapshot.id)

    item = await lifecycle.lookup(name="fresh fish grade a kgs")

    assert item is not None
    assert item.sku == "FISH-1"
    assert item.unit == "kg"
    assert await lifecycle.lookup(sku="SKU3") is None


@pytest.mark.asyncio
async def test_flip_reports_row_it_actually_demoted(sql_store, snapshot, session_factory):
    first = await sql_store.create_pricing_snapshot(snapshot)
    second = await sql_store.create_pricing_snapshot(snapshot)
    await sql_store.flip_current_snapshot(first)

    # Another writer moves the flag to `second` without going through this store
    async with session_factory() as session:
        async with session.begin():
            await session.execute(
                update(PricingSnapshotModel)
                .where(PricingSnapshotModel.id == first)
                .values(is_current=False)
            )
            await session.execute(
                update(PricingSnapshotModel)
                .where(PricingSnapshotModel.id == second)
                .values(is_current=True)
            )

    result = await sql_store.flip_current_snapshot(first)

    assert result.previous_current_id == second
    assert result.current_id == first
    assert (await sql_store.get_snapshot(second)).current is False
    assert await _current_count(session_factory) == 1

