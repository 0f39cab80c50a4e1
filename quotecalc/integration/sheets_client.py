"""Google Sheets values API client for the pricing spreadsheet."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from urllib.parse import quote

import httpx

from quotecalc.config import SheetsConfig

logger = logging.getLogger(__name__)

SHEETS_API_BASE = "https://sheets.googleapis.com/v4/spreadsheets"


class SheetsNotConfiguredError(RuntimeError):
    """Raised when no spreadsheet id is configured."""


class SheetsFetchError(RuntimeError):
    """Raised when the pricing sheet cannot be read."""


@dataclass
class SheetValues:
    """Raw grid read from a sheet tab."""

    values: list[list[str]] = field(default_factory=list)
    etag: str | None = None


class GoogleSheetsClient:
    """Read-only client for the pricing tab (range A1:Z)."""

    def __init__(
        self,
        config: SheetsConfig,
        base_url: str = SHEETS_API_BASE,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config
        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(
            timeout=config.timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> GoogleSheetsClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self.client.aclose()

    def _range(self) -> str:
        return f"{self.config.pricing_tab}!A1:Z"

    async def fetch_pricing_values(self) -> SheetValues:
        """Fetch every row of the pricing tab.

        Raises:
            SheetsNotConfiguredError: If no spreadsheet id is set
            SheetsFetchError: On transport errors or a non-2xx response
        """
        if not self.config.is_configured:
            raise SheetsNotConfiguredError(
                "SHEETS_SPREADSHEET_ID environment variable is not set"
            )

        url = (
            f"{self.base_url}/{quote(self.config.spreadsheet_id, safe='')}"
            f"/values/{quote(self._range(), safe='!:')}"
        )
        params = {}
        headers = {}
        if self.config.access_token:
            headers["Authorization"] = f"Bearer {self.config.access_token}"
        elif self.config.api_key:
            params["key"] = self.config.api_key

        try:
            response = await self.client.get(url, params=params, headers=headers)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Error fetching pricing sheet: %s", e)
            raise SheetsFetchError(f"Failed to fetch pricing sheet: {e}") from e

        data = response.json()
        values = [
            ["" if value is None else str(value) for value in row]
            for row in data.get("values", [])
        ]
        logger.info(
            "Fetched %d rows from pricing sheet tab '%s'",
            len(values),
            self.config.pricing_tab,
        )
        return SheetValues(values=values, etag=response.headers.get("etag"))
