"""Shared dependencies for QuoteCalc web routes.

Dependencies are injected using FastAPI's Depends() system, so tests can
swap the storage port with `app.dependency_overrides`.

Usage:
    @router.post("/api/quotes/preview")
    async def preview(resolver: QuotationResolver = Depends(get_quotation_resolver)):
        ...
"""

from __future__ import annotations

from arq.connections import ArqRedis
from fastapi import Depends

from quotecalc.config import AppConfig, get_config
from quotecalc.core.queue import get_queue
from quotecalc.pricing.quotation import QuotationResolver
from quotecalc.pricing.snapshots import SnapshotLifecycle
from quotecalc.pricing.store import PricingStore

# Global singletons
_store: PricingStore | None = None
_queue: ArqRedis | None = None


def get_app_config() -> AppConfig:
    return get_config()


def get_pricing_store() -> PricingStore:
    """Get the process-wide SQL-backed pricing store."""
    global _store
    if _store is None:
        from quotecalc.db.pricing_store import SqlAlchemyPricingStore

        _store = SqlAlchemyPricingStore()
    return _store


def get_snapshot_lifecycle(
    store: PricingStore = Depends(get_pricing_store),
) -> SnapshotLifecycle:
    return SnapshotLifecycle(store)


def get_quotation_resolver(
    store: PricingStore = Depends(get_pricing_store),
) -> QuotationResolver:
    return QuotationResolver(store)


async def get_job_queue() -> ArqRedis:
    """Lazily created arq pool shared by all requests."""
    global _queue
    if _queue is None:
        _queue = await get_queue(get_config().queue.redis_url)
    return _queue
