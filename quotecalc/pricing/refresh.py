"""Pricing refresh pipeline: read the sheet, capture a snapshot, promote it."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass

from quotecalc.integration.sheets_client import GoogleSheetsClient
from quotecalc.models import SnapshotSource
from quotecalc.pricing.snapshots import SnapshotLifecycle

logger = logging.getLogger(__name__)


@dataclass
class RefreshResult:
    snapshot_id: str
    previous_current_id: str | None
    item_count: int
    error_count: int
    sheet_version: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


async def refresh_pricing(
    lifecycle: SnapshotLifecycle,
    client: GoogleSheetsClient,
) -> RefreshResult:
    """Fetch the configured pricing tab and make it the current snapshot.

    The new snapshot is stored before it is promoted, so a failed promotion
    leaves the previous current snapshot in place.

    Raises:
        SheetsNotConfiguredError: If no spreadsheet id is configured
        SheetsFetchError: If the sheet cannot be read
    """
    sheet = await client.fetch_pricing_values()
    source = SnapshotSource(
        spreadsheet_id=client.config.spreadsheet_id,
        tab=client.config.pricing_tab,
    )

    snapshot = await lifecycle.capture_snapshot(
        sheet.values, source, sheet_version=sheet.etag
    )
    flip = await lifecycle.promote_to_current(snapshot.id)

    result = RefreshResult(
        snapshot_id=flip.current_id,
        previous_current_id=flip.previous_current_id,
        item_count=snapshot.item_count,
        error_count=len(snapshot.errors),
        sheet_version=snapshot.sheet_version,
    )
    logger.info("Pricing refresh completed: %s", result)
    return result
