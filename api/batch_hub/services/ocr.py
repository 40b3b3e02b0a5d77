# batch_hub/services/ocr.py
"""
Client for the OCR scan service.

The service receives a base64 image and answers with a best-effort
{"gtin", "productName", "brand"} object; any of the fields may be missing.
"""
from __future__ import annotations
import base64
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class OcrError(Exception):
    """OCR service unreachable or answered with an error."""


@dataclass(frozen=True)
class ScanResult:
    gtin: Optional[str] = None
    product_name: Optional[str] = None
    brand: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.gtin and not self.product_name

    @classmethod
    def from_payload(cls, data: Any) -> "ScanResult":
        if not isinstance(data, dict):
            return cls()

        def _clean(key: str) -> Optional[str]:
            val = data.get(key)
            if val is None:
                return None
            val = str(val).strip()
            return val or None

        return cls(
            gtin=_clean("gtin"),
            product_name=_clean("productName"),
            brand=_clean("brand"),
        )


class OcrClient:
    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        scan_path: str = "/ocr-scan",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.scan_path = scan_path if scan_path.startswith('/') else '/' + scan_path
        self.timeout = timeout
        self._transport = transport

    async def scan(self, image_bytes: bytes) -> ScanResult:
        """Send one image to the OCR service."""
        payload: Dict[str, str] = {"imageBase64": base64.b64encode(image_bytes).decode("ascii")}
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self._transport
            ) as client:
                resp = await client.post(self.scan_path, json=payload)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as e:
            raise OcrError(f"OCR service returned {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise OcrError(f"OCR service unavailable: {e}") from e
        except ValueError as e:
            raise OcrError("OCR service returned invalid JSON") from e

        result = ScanResult.from_payload(data)
        logger.info("OCR scan: gtin=%s name=%r brand=%r", result.gtin, result.product_name, result.brand)
        return result
