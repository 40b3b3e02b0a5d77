# batch_hub/services/scoring.py
"""
Fuzzy Match Scorer - ranks a shop's sellable batches against an OCR'd
product name/brand.

Scoring (additive per candidate):
- name:  exact match +3, containment either direction +2
- brand: exact match +1, containment either direction +0.5

Candidates scoring 0 or with no stock never rank. Ordering is a stable sort
on score, so equal scores keep the order the caller supplied.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, List, Optional

from batch_hub.services.normalize import normalize

NAME_EXACT = 3.0
NAME_CONTAINS = 2.0
BRAND_EXACT = 1.0
BRAND_CONTAINS = 0.5


@dataclass(frozen=True)
class Candidate:
    batch_id: int
    quantity: int
    product_name: Optional[str]
    product_brand: Optional[str] = None


@dataclass(frozen=True)
class ResolvedMatch:
    batch_id: int
    quantity: int
    score: float


def _relation_score(target: str, value: str, exact: float, contains: float) -> float:
    if not target or not value:
        return 0.0
    if value == target:
        return exact
    if target in value or value in target:
        return contains
    return 0.0


def score_candidate(target_name: str, target_brand: str, candidate: Candidate) -> float:
    """Score one candidate; targets must already be normalized."""
    return (
        _relation_score(target_name, normalize(candidate.product_name), NAME_EXACT, NAME_CONTAINS)
        + _relation_score(target_brand, normalize(candidate.product_brand), BRAND_EXACT, BRAND_CONTAINS)
    )


def score_candidates(
    target_name: Optional[str],
    target_brand: Optional[str],
    candidates: Iterable[Candidate],
) -> List[ResolvedMatch]:
    """Return surviving candidates, best first."""
    name = normalize(target_name)
    brand = normalize(target_brand)

    matches: List[ResolvedMatch] = []
    for cand in candidates:
        if (cand.quantity or 0) <= 0:
            continue
        score = score_candidate(name, brand, cand)
        if score <= 0:
            continue
        matches.append(ResolvedMatch(batch_id=cand.batch_id, quantity=cand.quantity, score=score))

    # sorted() is stable: ties stay in caller order
    return sorted(matches, key=lambda m: m.score, reverse=True)


def best_match(
    target_name: Optional[str],
    target_brand: Optional[str],
    candidates: Iterable[Candidate],
) -> Optional[ResolvedMatch]:
    ranked = score_candidates(target_name, target_brand, candidates)
    return ranked[0] if ranked else None
