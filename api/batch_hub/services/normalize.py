# batch_hub/services/normalize.py
"""
Text canonicalization for comparing product names and brands.
"""
from __future__ import annotations
import re
from typing import Optional

_WS_RE = re.compile(r"\s+")

LIKE_ESCAPE = "\\"


def normalize(text: Optional[str]) -> str:
    """Lower-case, trim and collapse whitespace. None/empty -> ""."""
    if not text:
        return ""
    return _WS_RE.sub(" ", text.strip().lower())


def escape_like(text: str) -> str:
    """Escape LIKE wildcards so the text matches literally (use with escape=LIKE_ESCAPE)."""
    return (
        text.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
