# batch_hub/services/decrement.py
"""
Atomic single-unit stock decrement.

The write is a conditional update (compare-and-swap on the quantity that was
read), so two sessions racing for the last unit cannot both succeed: the
loser's UPDATE matches zero rows. No lock is held between the read and the
write.
"""
from __future__ import annotations
import enum
import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from batch_hub.database import transaction
from batch_hub.db_models import InventoryBatch

logger = logging.getLogger(__name__)


class DecrementResult(str, enum.Enum):
    ok = "ok"
    out_of_stock = "out_of_stock"


class StockDecrementer:

    def __init__(self, db: AsyncSession, retries: int = 1):
        self.db = db
        self.retries = max(0, retries)

    async def _read_quantity(self, batch_id: int) -> Optional[int]:
        result = await self.db.execute(
            select(InventoryBatch.quantity).where(InventoryBatch.id == batch_id)
        )
        return result.scalar_one_or_none()

    async def _conditional_update(self, batch_id: int, expected: int) -> bool:
        """Write expected - 1 only if the row still holds `expected`."""
        async with transaction(self.db):
            result = await self.db.execute(
                update(InventoryBatch)
                .where(InventoryBatch.id == batch_id, InventoryBatch.quantity == expected)
                .values(quantity=expected - 1)
                .execution_options(synchronize_session=False)
            )
        return result.rowcount == 1

    async def decrement_one(self, batch_id: int) -> DecrementResult:
        """
        Take one unit from the batch.

        Returns out_of_stock when the batch is missing, empty, or every
        attempt lost the race to a concurrent writer. Store errors propagate.
        """
        for attempt in range(self.retries + 1):
            current = await self._read_quantity(batch_id)
            if current is None or current <= 0:
                logger.info("Batch %s out of stock (quantity=%s)", batch_id, current)
                return DecrementResult.out_of_stock

            if await self._conditional_update(batch_id, current):
                logger.info("Batch %s decremented %s -> %s", batch_id, current, current - 1)
                return DecrementResult.ok

            logger.info(
                "Batch %s changed concurrently (expected quantity %s), attempt %s/%s",
                batch_id, current, attempt + 1, self.retries + 1,
            )

        return DecrementResult.out_of_stock
