# batch_hub/routers/listing.py
"""
Listing Router - product feed of active batches, highest discount first.

Every request composes the feed from the database, so a sale committed by any
worker shows up on the next fetch. POST /listing/refresh is the hook for
inventory_batches change events; the search text filters the composed rows.
"""
from __future__ import annotations
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from batch_hub.database import get_session
from batch_hub.models import ListingOut, ListingRowOut, ProductOut, ShopOut
from batch_hub.services.listing import ListingComposer, ListingResult, ListingRow, filter_rows

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/listing", tags=["Listing"])


def _row_out(row: ListingRow) -> ListingRowOut:
    return ListingRowOut(
        id=row.id,
        product_id=row.product_id,
        shop_id=row.shop_id,
        quantity=row.quantity,
        status=row.status.value,
        expiry_date=row.expiry_date,
        discount_percent=row.discount_percent,
        product=ProductOut.model_validate(row.product),
        shop=ShopOut.model_validate(row.shop),
    )


def _listing_out(result: ListingResult, q: Optional[str]) -> ListingOut:
    rows = filter_rows(result.rows, q)
    return ListingOut(
        source=result.source.value,
        count=len(rows),
        error=result.error,
        rows=[_row_out(r) for r in rows],
    )


@router.get("", response_model=ListingOut)
async def get_listing(
    shop_id: Optional[int] = Query(None),
    q: Optional[str] = Query(None, description="Search product name, brand or category"),
    db: AsyncSession = Depends(get_session),
):
    result = await ListingComposer(db).compose(shop_id)
    return _listing_out(result, q)


@router.post("/refresh", response_model=ListingOut)
async def refresh_listing(
    shop_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_session),
):
    """Hook for inventory_batches change events: recompose the feed for the shop."""
    result = await ListingComposer(db).compose(shop_id)
    logger.info("Listing refreshed (shop=%s, source=%s, rows=%s)", shop_id, result.source.value, len(result.rows))
    return _listing_out(result, None)
