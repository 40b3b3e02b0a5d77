# batch_hub/services/__init__.py
"""
Business logic services for Batch Hub.
"""
from batch_hub.services.batches import BatchSelector
from batch_hub.services.decrement import DecrementResult, StockDecrementer
from batch_hub.services.identifiers import ProductLookupService
from batch_hub.services.listing import ListingComposer, ListingResult, ListingRow, ListingSource, filter_rows
from batch_hub.services.normalize import normalize
from batch_hub.services.ocr import OcrClient, OcrError, ScanResult
from batch_hub.services.resolver import SaleOutcome, SaleResolver, SaleStage, SaleStatus
from batch_hub.services.scoring import Candidate, ResolvedMatch, best_match, score_candidates

__all__ = [
    "BatchSelector",
    "DecrementResult",
    "StockDecrementer",
    "ProductLookupService",
    "ListingComposer",
    "ListingResult",
    "ListingRow",
    "ListingSource",
    "filter_rows",
    "normalize",
    "OcrClient",
    "OcrError",
    "ScanResult",
    "SaleOutcome",
    "SaleResolver",
    "SaleStage",
    "SaleStatus",
    "Candidate",
    "ResolvedMatch",
    "best_match",
    "score_candidates",
]
