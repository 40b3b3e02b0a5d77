# batch_hub/services/identifiers.py
"""
Product lookup by barcode (GTIN) and by partial name.

Codes are matched exactly as stored, without check-digit validation: shops
keep in-house codes next to EAN/UPC numbers.
"""
from __future__ import annotations
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from batch_hub.db_models import Product
from batch_hub.services.normalize import normalize, escape_like, LIKE_ESCAPE


class ProductLookupService:
    """Read-only product lookups used by the sale resolver."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_product_by_gtin(self, code: str) -> Optional[Product]:
        """
        Find product whose gtin equals the scanned code exactly.

        This is the main lookup for scanner operations.
        """
        code = (code or "").strip()
        if not code:
            return None

        stmt = select(Product).where(Product.gtin == code).limit(1)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def find_product_by_partial_name(self, name: Optional[str]) -> Optional[Product]:
        """
        Find the first product (lowest id) whose name contains `name`,
        ignoring case. Wildcards in `name` are matched literally.
        """
        needle = normalize(name)
        if not needle:
            return None

        stmt = (
            select(Product)
            .where(Product.name.ilike(f"%{escape_like(needle)}%", escape=LIKE_ESCAPE))
            .order_by(Product.id)
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()
