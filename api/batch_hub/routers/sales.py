# batch_hub/routers/sales.py
"""
Sales Router - sell one unit by barcode, by image scan or by name/brand.

Every endpoint answers with the tagged sale outcome; the HTTP status mirrors
the outcome so clients can branch on either.
"""
from __future__ import annotations
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from batch_hub.database import get_session
from batch_hub.models import SaleOutcomeOut, SellByCodeIn, SellByMatchIn
from batch_hub.services.ocr import OcrClient
from batch_hub.services.resolver import SaleOutcome, SaleResolver, SaleStatus
from batch_hub.settings import settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/shops/{shop_id}/sales", tags=["Sales"])

HTTP_STATUS = {
    SaleStatus.sold: 200,
    SaleStatus.not_found: 404,
    SaleStatus.no_active_batch: 409,
    SaleStatus.out_of_stock: 409,
    SaleStatus.malformed_scan: 422,
    SaleStatus.error: 503,
}

MAX_IMAGE_BYTES = 10 * 1024 * 1024


def get_ocr_client() -> Optional[OcrClient]:
    if not settings.OCR_SERVICE_URL:
        return None
    return OcrClient(settings.OCR_SERVICE_URL, timeout=settings.OCR_TIMEOUT)


def _resolver(db: AsyncSession, shop_id: int, ocr: Optional[OcrClient] = None) -> SaleResolver:
    return SaleResolver(
        db,
        shop_id,
        ocr=ocr,
        retries=settings.SALE_CONTENTION_RETRIES,
    )


def _respond(outcome: SaleOutcome, response: Response) -> SaleOutcomeOut:
    response.status_code = HTTP_STATUS[outcome.status]
    return SaleOutcomeOut(
        status=outcome.status.value,
        message=outcome.message,
        batch_id=outcome.batch_id,
        product_id=outcome.product_id,
        stage=outcome.stage.value if outcome.stage else None,
        score=outcome.score,
    )


@router.post("/code", response_model=SaleOutcomeOut)
async def sell_by_code(
    shop_id: int,
    request: SellByCodeIn,
    response: Response,
    db: AsyncSession = Depends(get_session),
):
    """Sell one unit of the product with this barcode/GTIN."""
    outcome = await _resolver(db, shop_id).sell_by_exact_code(request.code)
    return _respond(outcome, response)


@router.post("/scan", response_model=SaleOutcomeOut)
async def sell_by_scan(
    shop_id: int,
    response: Response,
    image: UploadFile = File(...),
    db: AsyncSession = Depends(get_session),
    ocr: Optional[OcrClient] = Depends(get_ocr_client),
):
    """Scan a product photo and sell one unit of whatever it resolves to."""
    # at most one byte past the limit
    data = await image.read(MAX_IMAGE_BYTES + 1)
    if not data:
        raise HTTPException(400, detail="Empty image upload")
    if len(data) > MAX_IMAGE_BYTES:
        raise HTTPException(413, detail="Image too large")

    outcome = await _resolver(db, shop_id, ocr).sell_by_scan(data)
    return _respond(outcome, response)


@router.post("/match", response_model=SaleOutcomeOut)
async def sell_by_match(
    shop_id: int,
    request: SellByMatchIn,
    response: Response,
    db: AsyncSession = Depends(get_session),
):
    """Sell one unit by product name/brand (fuzzy, then partial name)."""
    outcome = await _resolver(db, shop_id).sell_by_match(request.product_name, request.brand)
    return _respond(outcome, response)
