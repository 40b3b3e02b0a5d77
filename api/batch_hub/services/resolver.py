# batch_hub/services/resolver.py
"""
Sale Resolver - turns a barcode, an OCR scan or a name/brand pair into one
sold unit of one batch at one shop.

Stages run in a fixed order and each either ends the sale with an outcome or
falls through to the next:

1. exact_code   - product by GTIN, then FEFO batch. A known product without
                  an active batch ends with no_active_batch.
2. fuzzy_match  - score the shop's in-stock batches against name/brand.
3. partial_name - product whose name contains the scanned name, then FEFO
                  batch.

If every stage falls through the sale is not_found. Store and OCR failures
end the sale with an error outcome; nothing is raised past this class.
"""
from __future__ import annotations
import enum
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from batch_hub.services.batches import BatchSelector
from batch_hub.services.decrement import DecrementResult, StockDecrementer
from batch_hub.services.identifiers import ProductLookupService
from batch_hub.services.normalize import normalize
from batch_hub.services.ocr import OcrClient, OcrError, ScanResult
from batch_hub.services.scoring import Candidate, best_match

logger = logging.getLogger(__name__)


class SaleStatus(str, enum.Enum):
    sold = "sold"
    not_found = "not_found"
    no_active_batch = "no_active_batch"
    out_of_stock = "out_of_stock"
    malformed_scan = "malformed_scan"
    error = "error"


class SaleStage(str, enum.Enum):
    exact_code = "exact_code"
    fuzzy_match = "fuzzy_match"
    partial_name = "partial_name"


@dataclass(frozen=True)
class SaleRequest:
    code: Optional[str] = None
    product_name: Optional[str] = None
    brand: Optional[str] = None

    @classmethod
    def from_scan(cls, scan: ScanResult) -> "SaleRequest":
        return cls(code=scan.gtin, product_name=scan.product_name, brand=scan.brand)


@dataclass(frozen=True)
class SaleOutcome:
    status: SaleStatus
    message: str
    batch_id: Optional[int] = None
    product_id: Optional[int] = None
    stage: Optional[SaleStage] = None
    score: Optional[float] = None


class SaleResolver:
    """One resolver per request; scoped to a single shop."""

    STAGES = (SaleStage.exact_code, SaleStage.fuzzy_match, SaleStage.partial_name)

    def __init__(
        self,
        db: AsyncSession,
        shop_id: int,
        *,
        ocr: Optional[OcrClient] = None,
        retries: int = 1,
        on_sold: Optional[Callable[[SaleOutcome], None]] = None,
    ):
        self.db = db
        self.shop_id = shop_id
        self.ocr = ocr
        self.on_sold = on_sold
        self.products = ProductLookupService(db)
        self.selector = BatchSelector(db)
        self.decrementer = StockDecrementer(db, retries=retries)
        self._stage_handlers = {
            SaleStage.exact_code: self._exact_code_stage,
            SaleStage.fuzzy_match: self._fuzzy_match_stage,
            SaleStage.partial_name: self._partial_name_stage,
        }

    # =========================================================================
    # Caller-facing operations
    # =========================================================================

    async def sell_by_exact_code(self, code: Optional[str]) -> SaleOutcome:
        code = (code or "").strip()
        if not code:
            return SaleOutcome(SaleStatus.not_found, "No barcode given")
        return await self._guarded(lambda: self.resolve(SaleRequest(code=code)))

    async def sell_by_match(self, product_name: Optional[str], brand: Optional[str] = None) -> SaleOutcome:
        request = SaleRequest(product_name=product_name, brand=brand)
        if not normalize(product_name) and not normalize(brand):
            return SaleOutcome(SaleStatus.malformed_scan, "Could not extract product info")
        return await self._guarded(lambda: self.resolve(request))

    async def sell_by_scan(self, image_bytes: bytes) -> SaleOutcome:
        async def _scan_and_resolve() -> SaleOutcome:
            if self.ocr is None:
                raise OcrError("OCR service is not configured")
            scan = await self.ocr.scan(image_bytes)
            if scan.is_empty:
                logger.info("Scan at shop %s yielded neither a code nor a name", self.shop_id)
                return SaleOutcome(SaleStatus.malformed_scan, "Could not extract product info")
            return await self.resolve(SaleRequest.from_scan(scan))

        return await self._guarded(_scan_and_resolve)

    # =========================================================================
    # Stage machine
    # =========================================================================

    async def resolve(self, request: SaleRequest) -> SaleOutcome:
        """Run the stages in order; store errors propagate to the caller."""
        for stage in self.STAGES:
            outcome = await self._stage_handlers[stage](request)
            if outcome is not None:
                return outcome
            logger.debug("Stage %s fell through for %s", stage.value, request)

        logger.info("No product matched %s at shop %s", request, self.shop_id)
        if request.code and not request.product_name:
            return SaleOutcome(SaleStatus.not_found, "No product with this barcode")
        return SaleOutcome(SaleStatus.not_found, "Product not found from scan")

    async def _exact_code_stage(self, request: SaleRequest) -> Optional[SaleOutcome]:
        if not request.code:
            return None
        product = await self.products.find_product_by_gtin(request.code)
        if product is None:
            return None
        return await self._sell_product(product.id, SaleStage.exact_code)

    async def _fuzzy_match_stage(self, request: SaleRequest) -> Optional[SaleOutcome]:
        if not normalize(request.product_name) and not normalize(request.brand):
            return None

        rows = await self.selector.sellable_with_products(self.shop_id)
        if not rows:
            return None

        product_by_batch = {batch.id: product.id for batch, product in rows}
        candidates = [
            Candidate(
                batch_id=batch.id,
                quantity=batch.quantity,
                product_name=product.name,
                product_brand=product.brand,
            )
            for batch, product in rows
        ]
        match = best_match(request.product_name, request.brand, candidates)
        if match is None:
            return None

        logger.info("Fuzzy match %r/%r -> batch %s (score %s)",
                    request.product_name, request.brand, match.batch_id, match.score)
        return await self._sell_batch(
            match.batch_id, product_by_batch.get(match.batch_id), SaleStage.fuzzy_match, match.score
        )

    async def _partial_name_stage(self, request: SaleRequest) -> Optional[SaleOutcome]:
        if not normalize(request.product_name):
            return None
        product = await self.products.find_product_by_partial_name(request.product_name)
        if product is None:
            return None
        return await self._sell_product(product.id, SaleStage.partial_name)

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _sell_product(self, product_id: int, stage: SaleStage) -> SaleOutcome:
        batch = await self.selector.select_batch(product_id, self.shop_id)
        if batch is None:
            return SaleOutcome(
                SaleStatus.no_active_batch,
                "No stock for this product",
                product_id=product_id,
                stage=stage,
            )
        return await self._sell_batch(batch.id, product_id, stage)

    async def _sell_batch(
        self,
        batch_id: int,
        product_id: Optional[int],
        stage: SaleStage,
        score: Optional[float] = None,
    ) -> SaleOutcome:
        result = await self.decrementer.decrement_one(batch_id)
        if result is DecrementResult.out_of_stock:
            return SaleOutcome(
                SaleStatus.out_of_stock, "No quantity left",
                batch_id=batch_id, product_id=product_id, stage=stage, score=score,
            )
        logger.info("Sold 1 unit of batch %s at shop %s via %s", batch_id, self.shop_id, stage.value)
        return SaleOutcome(
            SaleStatus.sold, "Quantity decremented by 1",
            batch_id=batch_id, product_id=product_id, stage=stage, score=score,
        )

    async def _guarded(self, step: Callable[[], Awaitable[SaleOutcome]]) -> SaleOutcome:
        try:
            outcome = await step()
        except OcrError as e:
            logger.warning("Scan failed at shop %s: %s", self.shop_id, e)
            return SaleOutcome(SaleStatus.error, str(e))
        except SQLAlchemyError as e:
            logger.error("Store error during sale at shop %s: %s", self.shop_id, e)
            await self._rollback()
            return SaleOutcome(SaleStatus.error, str(e))
        except Exception as e:
            logger.exception("Unexpected error during sale at shop %s", self.shop_id)
            await self._rollback()
            return SaleOutcome(SaleStatus.error, str(e))

        if outcome.status is SaleStatus.sold and self.on_sold is not None:
            try:
                self.on_sold(outcome)
            except Exception:
                logger.exception("on_sold callback failed for batch %s", outcome.batch_id)
        return outcome

    async def _rollback(self) -> None:
        try:
            await self.db.rollback()
        except SQLAlchemyError as e:
            logger.warning("Rollback failed: %s", e)
