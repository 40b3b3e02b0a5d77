# batch_hub/services/batches.py
"""
FEFO batch selection: sell from the active batch that expires first.
"""
from __future__ import annotations
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from batch_hub.db_models import BatchStatus, InventoryBatch, Product


def fefo_order():
    """Soonest expiry first, undated batches last, id as the final tiebreak."""
    return (
        InventoryBatch.expiry_date.asc().nulls_last(),
        InventoryBatch.id.asc(),
    )


class BatchSelector:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def select_batch(self, product_id: int, shop_id: int) -> Optional[InventoryBatch]:
        """
        Best active batch of `product_id` at `shop_id`, or None when nothing is active.

        Batches with stock come first, so an emptied batch never hides a
        later one; an empty batch is returned only when all of them are empty.
        """
        stmt = (
            select(InventoryBatch)
            .where(
                InventoryBatch.product_id == product_id,
                InventoryBatch.shop_id == shop_id,
                InventoryBatch.status == BatchStatus.active,
            )
            .order_by((InventoryBatch.quantity > 0).desc(), *fefo_order())
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def sellable_with_products(self, shop_id: int) -> List[tuple[InventoryBatch, Product]]:
        """Active, in-stock batches of a shop joined to their products, FEFO ordered."""
        stmt = (
            select(InventoryBatch, Product)
            .join(Product, Product.id == InventoryBatch.product_id)
            .where(
                InventoryBatch.shop_id == shop_id,
                InventoryBatch.status == BatchStatus.active,
                InventoryBatch.quantity > 0,
            )
            .order_by(*fefo_order())
        )
        result = await self.db.execute(stmt)
        return [(batch, product) for batch, product in result.all()]
