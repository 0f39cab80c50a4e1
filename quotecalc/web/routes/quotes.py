"""Quotation routes.

Routes:
- POST /api/quotes/preview - Price requested items against the current snapshot
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from quotecalc.pricing.quotation import PricingNotConfiguredError, QuotationResolver
from quotecalc.web.dependencies import get_quotation_resolver

logger = structlog.get_logger()

router = APIRouter(tags=["quotes"])


@router.post("/api/quotes/preview")
async def quote_preview(
    request: Request,
    resolver: QuotationResolver = Depends(get_quotation_resolver),
):
    """Generate a quotation preview.

    Body: {"items": [{"sku"?, "name"?, "quantity"}]}

    - 200 {"success": true, "preview": {...}} (possibly with `unresolved`)
    - 400 when `items` is missing or empty
    - 409 when no pricing snapshot is current
    - 500 for anything else
    """
    try:
        body = await request.json()
    except ValueError:
        body = None

    items = body.get("items") if isinstance(body, dict) else None
    if not isinstance(items, list) or not items:
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "'items' array is required"},
        )

    try:
        preview = await resolver.generate_quotation_preview(items)
    except PricingNotConfiguredError as e:
        logger.warning("quote_preview_pricing_not_configured")
        return JSONResponse(status_code=409, content={"success": False, "error": str(e)})
    except Exception as e:
        logger.error("quote_preview_failed", error=str(e))
        return JSONResponse(status_code=500, content={"success": False, "error": str(e)})

    logger.info(
        "quote_preview_generated",
        line_items=len(preview.line_items),
        unresolved=len(preview.unresolved or []),
        subtotal=preview.subtotal,
    )
    return {"success": True, "preview": preview.to_response()}
