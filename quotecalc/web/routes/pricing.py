"""Pricing snapshot routes.

Routes:
- POST /api/pricing/lookup                    - Single price check (current snapshot)
- POST /api/pricing/refresh                   - Enqueue a sheet refresh job
- GET  /api/pricing/status                    - Sheet configuration and current snapshot
- GET  /api/pricing/snapshots                 - Recent snapshots (history)
- POST /api/pricing/snapshots/{id}/promote    - Make a snapshot current
"""

from __future__ import annotations

import structlog
from arq.connections import ArqRedis
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from quotecalc.config import AppConfig
from quotecalc.models import CamelModel, PricingSnapshot
from quotecalc.pricing.snapshots import SnapshotLifecycle
from quotecalc.pricing.store import PricingStore, SnapshotNotFoundError
from quotecalc.web.dependencies import (
    get_app_config,
    get_job_queue,
    get_pricing_store,
    get_snapshot_lifecycle,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/api/pricing", tags=["pricing"])


class LookupRequest(CamelModel):
    sku: str | None = None
    name: str | None = None


def _summary(snapshot: PricingSnapshot) -> dict:
    return {
        "id": snapshot.id,
        "itemCount": snapshot.item_count,
        "sheetVersion": snapshot.sheet_version,
        "fetchedAt": snapshot.fetched_at.isoformat(),
        "current": snapshot.current,
        "errorCount": len(snapshot.errors),
    }


@router.post("/lookup")
async def lookup_price(
    payload: LookupRequest,
    lifecycle: SnapshotLifecycle = Depends(get_snapshot_lifecycle),
):
    """Look up one price by SKU, falling back to normalized name."""
    item = await lifecycle.lookup(sku=payload.sku, name=payload.name)
    return {"result": item.to_response() if item else None}


@router.post("/refresh")
async def refresh_pricing(
    config: AppConfig = Depends(get_app_config),
    queue: ArqRedis = Depends(get_job_queue),
):
    """Enqueue the pricing refresh job.

    The fixed job id collapses concurrent refresh requests into one job.
    """
    job_id = config.queue.refresh_job_id
    try:
        job = await queue.enqueue_job("run_pricing_refresh", _job_id=job_id)
    except Exception as e:
        logger.error("pricing_refresh_enqueue_failed", error=str(e))
        return JSONResponse(status_code=500, content={"success": False, "error": str(e)})

    already_queued = job is None
    logger.info("pricing_refresh_enqueued", job_id=job_id, already_queued=already_queued)
    return {"success": True, "jobId": job_id, "alreadyQueued": already_queued}


@router.get("/status")
async def pricing_status(
    config: AppConfig = Depends(get_app_config),
    store: PricingStore = Depends(get_pricing_store),
):
    """Report sheet configuration and the current snapshot (if any)."""
    current = None
    try:
        current = await store.get_current_snapshot()
    except Exception as e:
        # Status stays available while the database is down
        logger.warning("pricing_status_store_unavailable", error=str(e))

    return {
        "success": True,
        "configured": config.sheets.is_configured,
        "sheet": {
            "spreadsheetIdPresent": bool(config.sheets.spreadsheet_id),
            "pricingTab": config.sheets.pricing_tab,
        },
        "currentSnapshot": _summary(current) if current else None,
    }


@router.get("/snapshots")
async def list_snapshots(
    limit: int = Query(default=20, ge=1, le=200),
    store: PricingStore = Depends(get_pricing_store),
):
    """List recent snapshots, newest first (items omitted)."""
    snapshots = await store.list_snapshots(limit=limit)
    return {"success": True, "snapshots": [_summary(s) for s in snapshots]}


@router.post("/snapshots/{snapshot_id}/promote")
async def promote_snapshot(
    snapshot_id: str,
    lifecycle: SnapshotLifecycle = Depends(get_snapshot_lifecycle),
):
    """Flip the current flag to `snapshot_id`."""
    try:
        result = await lifecycle.promote_to_current(snapshot_id)
    except SnapshotNotFoundError as e:
        return JSONResponse(status_code=404, content={"success": False, "error": str(e)})

    logger.info(
        "pricing_snapshot_promoted",
        current_id=result.current_id,
        previous_current_id=result.previous_current_id,
    )
    return {"success": True, **result.model_dump(mode="json", by_alias=True)}
