"""Tests for quotecalc.web.routes.pricing - lookup, refresh and snapshot history."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from quotecalc.config import AppConfig, DBConfig, QueueConfig, SheetsConfig
from quotecalc.models import PricingSnapshot
from quotecalc.pricing.store import InMemoryPricingStore
from quotecalc.web.dependencies import get_app_config, get_job_queue, get_pricing_store
from quotecalc.web.routes import pricing


@pytest.fixture
def store() -> InMemoryPricingStore:
    return InMemoryPricingStore()


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig(
        db=DBConfig(url="sqlite+aiosqlite:///:memory:"),
        sheets=SheetsConfig(spreadsheet_id="sheet-123", pricing_tab="Pricing"),
        queue=QueueConfig(refresh_job_id="pricing-refresh"),
    )


@pytest.fixture
def queue():
    queue = AsyncMock()
    queue.enqueue_job.return_value = MagicMock(job_id="pricing-refresh")
    return queue


@pytest.fixture
def app(store, app_config, queue):
    """Create test FastAPI app with pricing router."""
    test_app = FastAPI()
    test_app.include_router(pricing.router)
    test_app.dependency_overrides[get_pricing_store] = lambda: store
    test_app.dependency_overrides[get_app_config] = lambda: app_config
    test_app.dependency_overrides[get_job_queue] = lambda: queue
    return test_app


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def seeded(store, sheet_source, make_item):
    """Two stored snapshots; the second one is current."""
    older = PricingSnapshot(
        source=sheet_source,
        items=[make_item("SKU1", "Blue Widget", 9.0)],
        item_count=1,
    )
    newer = PricingSnapshot(
        source=sheet_source,
        sheet_version='"v2"',
        items=[
            make_item("SKU1", "Blue Widget", 10.0),
            make_item("SKU2", "Red Widget", 12.5),
        ],
        item_count=2,
    )

    async def _seed():
        older_id = await store.create_pricing_snapshot(older)
        await store.flip_current_snapshot(older_id)
        newer_id = await store.create_pricing_snapshot(newer)
        await store.flip_current_snapshot(newer_id)
        return older_id, newer_id

    return asyncio.run(_seed())


class TestLookup:
    def test_lookup_by_sku(self, client, seeded):
        response = client.post("/api/pricing/lookup", json={"sku": "SKU1"})

        assert response.status_code == 200
        result = response.json()["result"]
        assert result["sku"] == "SKU1"
        assert result["unitPrice"] == 10.0
        assert result["normalizedName"] == "blue widget"

    def test_lookup_by_name(self, client, seeded):
        response = client.post("/api/pricing/lookup", json={"name": "RED widget"})

        assert response.json()["result"]["sku"] == "SKU2"

    def test_lookup_without_current_snapshot(self, client):
        response = client.post("/api/pricing/lookup", json={"sku": "SKU1"})

        assert response.status_code == 200
        assert response.json() == {"result": None}


class TestRefresh:
    def test_refresh_enqueues_fixed_job(self, client, queue):
        response = client.post("/api/pricing/refresh")

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "jobId": "pricing-refresh",
            "alreadyQueued": False,
        }
        queue.enqueue_job.assert_awaited_once_with(
            "run_pricing_refresh", _job_id="pricing-refresh"
        )

    def test_refresh_already_queued(self, client, queue):
        queue.enqueue_job.return_value = None

        response = client.post("/api/pricing/refresh")

        assert response.json()["alreadyQueued"] is True

    def test_refresh_enqueue_failure_is_500(self, client, queue):
        queue.enqueue_job.side_effect = ConnectionError("redis unavailable")

        response = client.post("/api/pricing/refresh")

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "redis unavailable"}


class TestStatusAndHistory:
    def test_status_without_snapshot(self, client):
        response = client.get("/api/pricing/status")

        body = response.json()
        assert body["configured"] is True
        assert body["sheet"] == {"spreadsheetIdPresent": True, "pricingTab": "Pricing"}
        assert body["currentSnapshot"] is None

    def test_status_with_current_snapshot(self, client, seeded):
        _, newer_id = seeded

        current = client.get("/api/pricing/status").json()["currentSnapshot"]

        assert current["id"] == newer_id
        assert current["itemCount"] == 2
        assert current["sheetVersion"] == '"v2"'
        assert current["current"] is True
        assert current["errorCount"] == 0

    def test_status_survives_store_failure(self, app, client):
        broken = AsyncMock(spec=InMemoryPricingStore)
        broken.get_current_snapshot.side_effect = RuntimeError("db down")
        app.dependency_overrides[get_pricing_store] = lambda: broken

        response = client.get("/api/pricing/status")

        assert response.status_code == 200
        assert response.json()["currentSnapshot"] is None

    def test_list_snapshots(self, client, seeded):
        older_id, newer_id = seeded

        snapshots = client.get("/api/pricing/snapshots").json()["snapshots"]

        assert {s["id"] for s in snapshots} == {older_id, newer_id}
        assert [s["id"] for s in snapshots if s["current"]] == [newer_id]

    def test_list_snapshots_limit_is_validated(self, client):
        assert client.get("/api/pricing/snapshots?limit=0").status_code == 422


class TestPromote:
    def test_promote_older_snapshot(self, client, store, seeded):
        older_id, newer_id = seeded

        response = client.post(f"/api/pricing/snapshots/{older_id}/promote")

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "previousCurrentId": newer_id,
            "currentId": older_id,
        }
        assert asyncio.run(store.get_current_snapshot()).id == older_id

    def test_promote_unknown_snapshot_is_404(self, client, seeded):
        response = client.post("/api/pricing/snapshots/missing/promote")

        assert response.status_code == 404
        assert response.json()["success"] is False
