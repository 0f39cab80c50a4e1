"""arq worker running the pricing refresh job.

Run with: arq quotecalc.worker.WorkerSettings
"""

from __future__ import annotations

import logging
from typing import Any

from quotecalc.config import get_config
from quotecalc.core.logging import configure_logging
from quotecalc.core.queue import get_redis_settings
from quotecalc.db.connection import close_db
from quotecalc.db.pricing_store import SqlAlchemyPricingStore
from quotecalc.integration.sheets_client import GoogleSheetsClient
from quotecalc.pricing.refresh import refresh_pricing
from quotecalc.pricing.snapshots import SnapshotLifecycle

logger = logging.getLogger(__name__)


async def startup(ctx: dict[str, Any]) -> None:
    """Initialize resources when worker starts."""
    config = get_config()
    configure_logging(config.log_level, config.log_format)
    ctx["lifecycle"] = SnapshotLifecycle(SqlAlchemyPricingStore())
    logger.info("Worker started. Pricing store initialized.")


async def shutdown(ctx: dict[str, Any]) -> None:
    """Cleanup resources when worker stops."""
    await close_db()
    logger.info("Worker stopped. Database connection closed.")


async def run_pricing_refresh(ctx: dict[str, Any]) -> dict[str, Any]:
    """Fetch the pricing sheet, store it as a snapshot and promote it."""
    lifecycle: SnapshotLifecycle = ctx["lifecycle"]
    logger.info("Starting pricing refresh job %s", ctx.get("job_id"))

    async with GoogleSheetsClient(get_config().sheets) as client:
        result = await refresh_pricing(lifecycle, client)

    return result.to_dict()


class WorkerSettings:
    functions = [run_pricing_refresh]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = get_redis_settings()
