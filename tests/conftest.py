"""Shared fixtures: a throwaway SQLite database with a small shop catalog."""

import os
import tempfile

# settings are read at import time; keep test logs out of the repo
os.environ.setdefault("DATA_ROOT", tempfile.mkdtemp(prefix="batch-hub-test-"))

from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine

from batch_hub.database import create_schema, make_session_factory
from batch_hub.db_models import BatchStatus, InventoryBatch, Product, Shop

COLGATE_GTIN = "4006381333931"
BUTTER_GTIN = "8901234567890"


@pytest.fixture
async def engine(tmp_path):
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'batch_hub_test.db'}")
    await create_schema(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


def _batch(product, shop, qty, expiry, discount, status=BatchStatus.active):
    return InventoryBatch(
        product_id=product.id,
        shop_id=shop.id,
        quantity=qty,
        status=status,
        expiry_date=expiry,
        discount_percent=Decimal(discount),
    )


@pytest.fixture
async def catalog(session_factory):
    """
    Corner Store (shop 1) and Market Hall (shop 2).

    Active at the Corner Store: two Colgate Total batches (the one expiring
    in January first), a toothpaste batch and an empty cookie batch. Amul
    Butter is only stocked as an inactive batch.
    """
    async with session_factory() as s:
        corner = Shop(name="Corner Store", address="1 High Street")
        market = Shop(name="Market Hall", address="2 Market Square")
        colgate = Product(name="Colgate Total", brand="Colgate", category="Oral Care", gtin=COLGATE_GTIN)
        paste = Product(name="Total Colgate Toothpaste", brand="Colgate", category="Oral Care")
        butter = Product(name="Amul Butter", brand="Amul", category="Dairy", gtin=BUTTER_GTIN)
        cookies = Product(name="Good Day Cookies", brand="Britannia", category="Snacks")
        s.add_all([corner, market, colgate, paste, butter, cookies])
        await s.flush()

        batches = SimpleNamespace(
            colgate_late=_batch(colgate, corner, 5, date(2027, 6, 1), "10"),
            colgate_soon=_batch(colgate, corner, 2, date(2027, 1, 15), "25"),
            colgate_inactive=_batch(colgate, corner, 9, date(2026, 12, 1), "50", BatchStatus.inactive),
            colgate_market=_batch(colgate, market, 3, date(2026, 11, 1), "5"),
            paste=_batch(paste, corner, 4, date(2027, 3, 1), "0"),
            butter_inactive=_batch(butter, corner, 6, date(2026, 11, 30), "15", BatchStatus.inactive),
            cookies_empty=_batch(cookies, corner, 0, date(2027, 2, 1), "30"),
        )
        s.add_all(list(vars(batches).values()))
        await s.commit()

        return SimpleNamespace(
            corner=corner.id,
            market=market.id,
            colgate=colgate.id,
            paste=paste.id,
            butter=butter.id,
            cookies=cookies.id,
            batch=SimpleNamespace(**{k: b.id for k, b in vars(batches).items()}),
        )


@pytest.fixture
def quantity_of(session_factory):
    async def _quantity(batch_id):
        async with session_factory() as s:
            result = await s.execute(select(InventoryBatch.quantity).where(InventoryBatch.id == batch_id))
            return result.scalar_one()
    return _quantity
