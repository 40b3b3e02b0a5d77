# Tests for the sale resolver stage machine

import httpx
import pytest
from sqlalchemy.exc import OperationalError

from batch_hub.services.ocr import OcrClient
from batch_hub.services.resolver import SaleResolver, SaleStage, SaleStatus

from conftest import BUTTER_GTIN, COLGATE_GTIN


def ocr_answering(payload, status_code=200):
    return OcrClient(
        "http://ocr.local",
        transport=httpx.MockTransport(lambda request: httpx.Response(status_code, json=payload)),
    )


class TestExactCode:

    async def test_barcode_sells_fefo_batch(self, db, catalog, quantity_of):
        outcome = await SaleResolver(db, catalog.corner).sell_by_exact_code(COLGATE_GTIN)

        assert outcome.status is SaleStatus.sold
        assert outcome.stage is SaleStage.exact_code
        assert outcome.batch_id == catalog.batch.colgate_soon
        assert outcome.product_id == catalog.colgate
        assert await quantity_of(catalog.batch.colgate_soon) == 1
        assert await quantity_of(catalog.batch.colgate_late) == 5

    async def test_barcode_is_trimmed(self, db, catalog):
        outcome = await SaleResolver(db, catalog.market).sell_by_exact_code(f"  {COLGATE_GTIN}\n")
        assert outcome.batch_id == catalog.batch.colgate_market

    async def test_known_product_without_active_batch(self, db, catalog, quantity_of):
        outcome = await SaleResolver(db, catalog.corner).sell_by_exact_code(BUTTER_GTIN)

        assert outcome.status is SaleStatus.no_active_batch
        assert outcome.product_id == catalog.butter
        assert await quantity_of(catalog.batch.butter_inactive) == 6

    async def test_unknown_barcode(self, db, catalog):
        outcome = await SaleResolver(db, catalog.corner).sell_by_exact_code("0000000000000")
        assert outcome.status is SaleStatus.not_found
        assert outcome.message == "No product with this barcode"

    async def test_blank_barcode(self, db, catalog):
        assert (await SaleResolver(db, catalog.corner).sell_by_exact_code("   ")).status is SaleStatus.not_found

    async def test_emptied_batch_moves_on_to_next_expiry(self, db, catalog, quantity_of):
        resolver = SaleResolver(db, catalog.corner)
        outcomes = [await resolver.sell_by_exact_code(COLGATE_GTIN) for _ in range(3)]

        assert [o.status for o in outcomes] == [SaleStatus.sold] * 3
        assert [o.batch_id for o in outcomes] == [
            catalog.batch.colgate_soon,
            catalog.batch.colgate_soon,
            catalog.batch.colgate_late,
        ]
        assert await quantity_of(catalog.batch.colgate_soon) == 0
        assert await quantity_of(catalog.batch.colgate_late) == 4

    async def test_all_batches_empty_is_out_of_stock(self, db, catalog, quantity_of):
        resolver = SaleResolver(db, catalog.market)
        statuses = [(await resolver.sell_by_exact_code(COLGATE_GTIN)).status for _ in range(4)]

        assert statuses == [SaleStatus.sold] * 3 + [SaleStatus.out_of_stock]
        assert await quantity_of(catalog.batch.colgate_market) == 0


class TestNameMatch:

    async def test_fuzzy_prefers_higher_score_then_earlier_expiry(self, db, catalog, quantity_of):
        outcome = await SaleResolver(db, catalog.corner).sell_by_match("Colgate Total", "Colgate")

        assert outcome.status is SaleStatus.sold
        assert outcome.stage is SaleStage.fuzzy_match
        assert outcome.score == 4
        # colgate_late scores the same but expires later
        assert outcome.batch_id == catalog.batch.colgate_soon
        assert await quantity_of(catalog.batch.colgate_soon) == 1

    async def test_fuzzy_containment(self, db, catalog):
        outcome = await SaleResolver(db, catalog.corner).sell_by_match("toothpaste")
        assert outcome.batch_id == catalog.batch.paste
        assert outcome.product_id == catalog.paste
        assert outcome.score == 2

    async def test_unmatched_name_is_not_found(self, db, catalog):
        outcome = await SaleResolver(db, catalog.corner).sell_by_match("Parle G", None)
        assert outcome.status is SaleStatus.not_found
        assert outcome.stage is None

    async def test_partial_name_without_active_batch(self, db, catalog):
        # butter is only stocked inactive, so fuzzy matching never sees it
        outcome = await SaleResolver(db, catalog.corner).sell_by_match("amul")
        assert outcome.status is SaleStatus.no_active_batch
        assert outcome.stage is SaleStage.partial_name
        assert outcome.product_id == catalog.butter

    async def test_partial_name_on_empty_batch(self, db, catalog, quantity_of):
        outcome = await SaleResolver(db, catalog.corner).sell_by_match("Good Day")
        assert outcome.status is SaleStatus.out_of_stock
        assert outcome.stage is SaleStage.partial_name
        assert outcome.batch_id == catalog.batch.cookies_empty
        assert await quantity_of(catalog.batch.cookies_empty) == 0

    async def test_nothing_to_match_on(self, db, catalog):
        outcome = await SaleResolver(db, catalog.corner).sell_by_match(" ", None)
        assert outcome.status is SaleStatus.malformed_scan

    async def test_other_shop_stock_is_not_sold(self, db, catalog):
        outcome = await SaleResolver(db, catalog.market).sell_by_match("Toothpaste")
        # the product exists but has no batch at the market
        assert outcome.status is SaleStatus.no_active_batch
        assert outcome.stage is SaleStage.partial_name


class TestScan:

    async def test_scan_with_gtin(self, db, catalog):
        resolver = SaleResolver(db, catalog.corner, ocr=ocr_answering({"gtin": COLGATE_GTIN}))
        outcome = await resolver.sell_by_scan(b"jpeg")
        assert outcome.status is SaleStatus.sold
        assert outcome.stage is SaleStage.exact_code

    async def test_unknown_gtin_falls_through_to_name(self, db, catalog):
        ocr = ocr_answering({"gtin": "1111111111111", "productName": "Total Colgate Toothpaste"})
        outcome = await SaleResolver(db, catalog.corner, ocr=ocr).sell_by_scan(b"jpeg")
        assert outcome.stage is SaleStage.fuzzy_match
        assert outcome.batch_id == catalog.batch.paste

    async def test_scan_parle_g_not_found(self, db, catalog):
        outcome = await SaleResolver(
            db, catalog.corner, ocr=ocr_answering({"productName": "Parle G"})
        ).sell_by_scan(b"jpeg")
        assert outcome.status is SaleStatus.not_found
        assert outcome.message == "Product not found from scan"

    async def test_scan_without_code_or_name(self, db, catalog):
        outcome = await SaleResolver(
            db, catalog.corner, ocr=ocr_answering({"brand": "Colgate"})
        ).sell_by_scan(b"jpeg")
        assert outcome.status is SaleStatus.malformed_scan

    async def test_ocr_failure_is_an_error(self, db, catalog):
        outcome = await SaleResolver(
            db, catalog.corner, ocr=ocr_answering({}, status_code=502)
        ).sell_by_scan(b"jpeg")
        assert outcome.status is SaleStatus.error
        assert "502" in outcome.message

    async def test_ocr_not_configured(self, db, catalog):
        outcome = await SaleResolver(db, catalog.corner).sell_by_scan(b"jpeg")
        assert outcome.status is SaleStatus.error


class TestFailuresAndNotifications:

    async def test_store_error_is_not_reported_as_not_found(self, db, catalog):
        resolver = SaleResolver(db, catalog.corner)

        async def broken_lookup(code):
            raise OperationalError("SELECT products", {}, Exception("connection lost"))

        resolver.products.find_product_by_gtin = broken_lookup
        outcome = await resolver.sell_by_exact_code(COLGATE_GTIN)

        assert outcome.status is SaleStatus.error
        assert "connection lost" in outcome.message

    async def test_on_sold_called_once_per_sale(self, db, catalog):
        sold = []
        resolver = SaleResolver(db, catalog.corner, on_sold=sold.append)

        await resolver.sell_by_exact_code(COLGATE_GTIN)
        await resolver.sell_by_exact_code(BUTTER_GTIN)

        assert [o.batch_id for o in sold] == [catalog.batch.colgate_soon]

    async def test_failing_callback_does_not_undo_sale(self, db, catalog, quantity_of):
        def explode(outcome):
            raise RuntimeError("ui gone")

        outcome = await SaleResolver(db, catalog.corner, on_sold=explode).sell_by_exact_code(COLGATE_GTIN)
        assert outcome.status is SaleStatus.sold
        assert await quantity_of(catalog.batch.colgate_soon) == 1


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
