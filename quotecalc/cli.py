"""QuoteCalc CLI - async commands over the pricing store.

Commands:
- init: Initialize database schema
- capture-prices: Capture a snapshot from a CSV/XLSX export of the pricing sheet
- refresh: Fetch the pricing sheet, capture and promote a snapshot
- promote: Make a snapshot current
- current: Show the current snapshot
- snapshots: List recent snapshots
- lookup: Single price check
- quote: Quotation preview for a JSON request file
- web serve: Run the API
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pandas as pd
import typer
from rich.console import Console
from rich.table import Table

from quotecalc.config import get_config
from quotecalc.db.connection import close_db, init_db
from quotecalc.db.pricing_store import SqlAlchemyPricingStore
from quotecalc.integration.sheets_client import GoogleSheetsClient
from quotecalc.models import QuotePreview, SnapshotSource
from quotecalc.pricing.quotation import PricingNotConfiguredError, QuotationResolver
from quotecalc.pricing.refresh import refresh_pricing
from quotecalc.pricing.snapshots import SnapshotLifecycle
from quotecalc.pricing.store import SnapshotNotFoundError

app = typer.Typer(
    name="quotecalc",
    help="QuoteCalc - quotation previews from versioned price lists",
    no_args_is_help=True,
)

web_cli = typer.Typer(help="Web UI / API")
app.add_typer(web_cli, name="web")

console = Console()


def _run(coro):
    """Run a coroutine and dispose the engine afterwards."""

    async def _wrapped():
        try:
            return await coro
        finally:
            await close_db()

    return asyncio.run(_wrapped())


def read_grid(file_path: Path) -> list[list[str]]:
    """Read a CSV/XLSX export as a grid of strings, header row included.

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If file format is unsupported
    """
    if not file_path.exists():
        raise FileNotFoundError(f"Price sheet not found: {file_path}")

    suffix = file_path.suffix.lower()
    if suffix == ".csv":
        df = pd.read_csv(file_path, header=None, dtype=str, keep_default_na=False)
    elif suffix in (".xlsx", ".xls"):
        df = pd.read_excel(file_path, header=None, dtype=str, keep_default_na=False)
    else:
        raise ValueError(f"Unsupported file format: {file_path.suffix}")

    return df.fillna("").astype(str).values.tolist()


def _print_preview(preview: QuotePreview) -> None:
    table = Table(title="Quotation Preview")
    table.add_column("SKU", style="cyan")
    table.add_column("Name")
    table.add_column("Unit")
    table.add_column("Qty", justify="right")
    table.add_column("Unit Price", justify="right")
    table.add_column("Total", justify="right", style="green")

    for li in preview.line_items:
        table.add_row(
            li.sku,
            li.name,
            li.unit,
            f"{li.quantity:g}",
            f"{li.unit_price:.2f}",
            f"{li.total_price:.2f}",
        )

    console.print(table)
    console.print(f"[bold]Subtotal:[/bold] {preview.subtotal:.2f} {preview.currency or ''}")
    for warning in preview.warnings or []:
        console.print(f"[yellow]⚠[/yellow] {warning}")
    for item in preview.unresolved or []:
        console.print(
            f"[red]✗[/red] {item.sku or item.name or '?'} x {item.quantity}: {item.reason}"
        )


@app.command()
def init(
    drop: bool = typer.Option(False, "--drop", help="Drop existing tables"),
):
    """Initialize database schema."""
    config = get_config()
    console.print(f"[bold]Initializing database:[/bold] {config.db.url}")
    _run(init_db(drop=drop))
    console.print("[bold green]✓[/bold green] Database initialized")


@app.command(name="capture-prices")
def capture_prices_cmd(
    file: Path = typer.Argument(..., help="Pricing sheet export (CSV/XLSX)"),
    tab: str = typer.Option("Pricing", "--tab", help="Sheet/tab name recorded as source"),
    sheet_version: str | None = typer.Option(None, "--version", help="Source version/etag"),
    promote: bool = typer.Option(False, "--promote", help="Make the new snapshot current"),
):
    """Capture a pricing snapshot from a local export of the pricing sheet."""
    rows = read_grid(file)
    source = SnapshotSource(spreadsheet_id=str(file), tab=tab)

    async def _capture():
        lifecycle = SnapshotLifecycle(SqlAlchemyPricingStore())
        snapshot = await lifecycle.capture_snapshot(rows, source, sheet_version=sheet_version)
        console.print(
            f"[green]✓[/green] Snapshot {snapshot.id}: {snapshot.item_count} items"
        )
        if snapshot.errors:
            console.print(f"[yellow]⚠[/yellow] {len(snapshot.errors)} rows skipped")
            for err in snapshot.errors[:5]:  # Show first 5 errors
                console.print(f"      Row {err.row}: {err.reason}", style="dim")
        if promote:
            flip = await lifecycle.promote_to_current(snapshot.id)
            console.print(
                f"[green]✓[/green] Promoted (previous: {flip.previous_current_id or 'none'})"
            )

    _run(_capture())


@app.command()
def refresh():
    """Fetch the configured pricing sheet and promote it as the current snapshot."""
    config = get_config()

    async def _refresh():
        lifecycle = SnapshotLifecycle(SqlAlchemyPricingStore())
        async with GoogleSheetsClient(config.sheets) as client:
            return await refresh_pricing(lifecycle, client)

    result = _run(_refresh())
    console.print(
        f"[bold green]✓[/bold green] Snapshot {result.snapshot_id} is current "
        f"({result.item_count} items, {result.error_count} row errors)"
    )


@app.command()
def promote(snapshot_id: str = typer.Argument(..., help="Snapshot ID")):
    """Make a snapshot the current one."""

    async def _promote():
        return await SnapshotLifecycle(SqlAlchemyPricingStore()).promote_to_current(snapshot_id)

    try:
        flip = _run(_promote())
    except SnapshotNotFoundError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)

    console.print(
        f"[green]✓[/green] {flip.current_id} is current "
        f"(previous: {flip.previous_current_id or 'none'})"
    )


@app.command()
def current():
    """Show the current pricing snapshot."""
    snapshot = _run(SqlAlchemyPricingStore().get_current_snapshot())
    if snapshot is None:
        console.print("[yellow]No current pricing snapshot[/yellow]")
        raise typer.Exit(code=1)

    console.print(f"[bold]Snapshot:[/bold] {snapshot.id}")
    console.print(f"Source: {snapshot.source.spreadsheet_id} / {snapshot.source.tab}")
    console.print(f"Fetched: {snapshot.fetched_at.isoformat()}")
    console.print(f"Version: {snapshot.sheet_version or '-'}")
    console.print(f"Items: {snapshot.item_count}  Row errors: {len(snapshot.errors)}")


@app.command()
def snapshots(limit: int = typer.Option(10, "--limit", help="Number of snapshots")):
    """List recent pricing snapshots."""
    rows = _run(SqlAlchemyPricingStore().list_snapshots(limit=limit))

    table = Table(title="Pricing Snapshots")
    table.add_column("ID", style="cyan")
    table.add_column("Fetched")
    table.add_column("Items", justify="right")
    table.add_column("Errors", justify="right")
    table.add_column("Current")
    for snap in rows:
        table.add_row(
            snap.id,
            snap.fetched_at.isoformat(),
            str(snap.item_count),
            str(len(snap.errors)),
            "✓" if snap.current else "",
        )
    console.print(table)


@app.command()
def lookup(
    sku: str | None = typer.Option(None, "--sku", help="Catalog SKU"),
    name: str | None = typer.Option(None, "--name", help="Item name"),
):
    """Look up a single price in the current snapshot."""
    if not sku and not name:
        console.print("[red]✗[/red] Provide --sku and/or --name")
        raise typer.Exit(code=2)

    item = _run(SnapshotLifecycle(SqlAlchemyPricingStore()).lookup(sku=sku, name=name))
    if item is None:
        console.print("[yellow]No match in current snapshot[/yellow]")
        raise typer.Exit(code=1)

    console.print(json.dumps(item.to_response(), indent=2))


@app.command()
def quote(
    file: Path = typer.Argument(..., help='JSON file: {"items": [...]} or a list of items'),
):
    """Generate a quotation preview for a request file."""
    payload = json.loads(file.read_text())
    items = payload.get("items", []) if isinstance(payload, dict) else payload

    try:
        preview = _run(QuotationResolver(SqlAlchemyPricingStore()).generate_quotation_preview(items))
    except PricingNotConfiguredError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)

    _print_preview(preview)


@web_cli.command("serve")
def web_serve(
    host: str = typer.Option("0.0.0.0", help="Host to bind"),
    port: int = typer.Option(8001, help="Port to bind"),
    reload: bool = typer.Option(False, help="Enable autoreload (dev only)"),
):
    """Run the FastAPI service."""
    import uvicorn

    typer.echo(f"Starting QuoteCalc API on http://{host}:{port}")
    uvicorn.run("quotecalc.web.app:app", host=host, port=port, reload=reload, workers=1)


if __name__ == "__main__":
    app()
