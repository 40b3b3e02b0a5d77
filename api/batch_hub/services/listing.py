# batch_hub/services/listing.py
"""
Listing Composer - the denormalized product feed (batch + product + shop).

The joined fetch is tried first. When it fails, or none of its rows carry
both a product and a shop, the feed is rebuilt from three plain fetches
(batches, then products and shops by id) merged in memory. Rows whose
product or shop cannot be resolved are dropped on both paths.

Change notifications are not subscribed here: whoever receives them calls
`refresh()`.
"""
from __future__ import annotations
import enum
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from batch_hub.db_models import BatchStatus, InventoryBatch, Product, Shop
from batch_hub.services.normalize import normalize

logger = logging.getLogger(__name__)


class ListingSource(str, enum.Enum):
    joined = "joined"
    fallback = "fallback"
    failed = "failed"


@dataclass(frozen=True)
class ProductInfo:
    id: int
    name: str
    brand: Optional[str]
    category: str


@dataclass(frozen=True)
class ShopInfo:
    id: int
    name: str
    address: Optional[str]


@dataclass(frozen=True)
class ListingRow:
    id: int
    product_id: int
    shop_id: int
    quantity: int
    status: BatchStatus
    expiry_date: Optional[date]
    discount_percent: Decimal
    product: ProductInfo
    shop: ShopInfo


@dataclass
class ListingResult:
    rows: List[ListingRow] = field(default_factory=list)
    source: ListingSource = ListingSource.joined
    error: Optional[str] = None


def _product_info(p: Product) -> ProductInfo:
    return ProductInfo(id=p.id, name=p.name, brand=p.brand, category=p.category or "")


def _shop_info(s: Shop) -> ShopInfo:
    return ShopInfo(id=s.id, name=s.name, address=s.address)


def _row(batch: InventoryBatch, product: Product, shop: Shop) -> ListingRow:
    return ListingRow(
        id=batch.id,
        product_id=batch.product_id,
        shop_id=batch.shop_id,
        quantity=batch.quantity,
        status=batch.status,
        expiry_date=batch.expiry_date,
        discount_percent=batch.discount_percent,
        product=_product_info(product),
        shop=_shop_info(shop),
    )


def filter_rows(rows: Iterable[ListingRow], search_text: Optional[str]) -> List[ListingRow]:
    """Keep rows whose product name, brand or category contains the search text."""
    needle = normalize(search_text)
    rows = list(rows)
    if not needle:
        return rows
    return [
        r for r in rows
        if needle in normalize(r.product.name)
        or needle in normalize(r.product.brand)
        or needle in normalize(r.product.category)
    ]


class ListingComposer:

    def __init__(self, db: AsyncSession):
        self.db = db
        self._shop_id: Optional[int] = None

    def _active_batches(self):
        stmt = select(InventoryBatch).where(InventoryBatch.status == BatchStatus.active)
        if self._shop_id is not None:
            stmt = stmt.where(InventoryBatch.shop_id == self._shop_id)
        return stmt.order_by(InventoryBatch.discount_percent.desc(), InventoryBatch.id.asc())

    async def compose(self, shop_id: Optional[int] = None) -> ListingResult:
        """Build the feed of active batches, highest discount first."""
        self._shop_id = shop_id

        try:
            rows = await self._fetch_joined()
        except SQLAlchemyError as e:
            logger.warning("Joined listing fetch failed, rebuilding from separate fetches: %s", e)
            await self.db.rollback()
        else:
            if rows:
                return ListingResult(rows=rows, source=ListingSource.joined)
            logger.info("Joined listing fetch gave no usable rows, rebuilding from separate fetches")

        try:
            rows = await self._fetch_merged()
        except SQLAlchemyError as e:
            logger.error("Listing fetch failed: %s", e)
            await self.db.rollback()
            return ListingResult(rows=[], source=ListingSource.failed, error=str(e))
        return ListingResult(rows=rows, source=ListingSource.fallback)

    async def refresh(self) -> ListingResult:
        """Recompose with the last shop filter; call this on a batch change event."""
        return await self.compose(self._shop_id)

    async def _fetch_joined(self) -> List[ListingRow]:
        stmt = self._active_batches().options(
            joinedload(InventoryBatch.product),
            joinedload(InventoryBatch.shop),
        )
        result = await self.db.execute(stmt)
        batches: Sequence[InventoryBatch] = result.scalars().unique().all()
        return [
            _row(b, b.product, b.shop)
            for b in batches
            if b.product is not None and b.shop is not None
        ]

    async def _fetch_merged(self) -> List[ListingRow]:
        result = await self.db.execute(self._active_batches())
        batches: Sequence[InventoryBatch] = result.scalars().all()
        if not batches:
            return []

        product_ids = {b.product_id for b in batches if b.product_id is not None}
        shop_ids = {b.shop_id for b in batches if b.shop_id is not None}

        products: Dict[int, Product] = {}
        if product_ids:
            res = await self.db.execute(select(Product).where(Product.id.in_(product_ids)))
            products = {p.id: p for p in res.scalars()}

        shops: Dict[int, Shop] = {}
        if shop_ids:
            res = await self.db.execute(select(Shop).where(Shop.id.in_(shop_ids)))
            shops = {s.id: s for s in res.scalars()}

        rows = [
            _row(b, products[b.product_id], shops[b.shop_id])
            for b in batches
            if b.product_id in products and b.shop_id in shops
        ]
        dropped = len(batches) - len(rows)
        if dropped:
            logger.warning("Dropped %s listing row(s) with unresolved product or shop", dropped)
        return rows
