from __future__ import annotations

from typing import Iterable, Optional

CONTENT_RATINGS = ("E", "T", "M", "18+")

LEGACY_RATING_MAP = {
    "Mature": "M",
    "Teen": "T",
    "Everyone": "E",
    "7+": "E",
    "12+": "T",
    "16+": "M",
}


def normalize_rating(value: object) -> Optional[str]:
    """Map a rating label onto ``CONTENT_RATINGS``; ``None`` when unrecognized."""
    cleaned = str(value or "").strip()
    if not cleaned:
        return None
    mapped = LEGACY_RATING_MAP.get(cleaned, cleaned)
    if mapped in CONTENT_RATINGS:
        return mapped
    return None


def normalize_ratings(values: Iterable[object] | None) -> list[str]:
    normalized: list[str] = []
    for value in values or []:
        rating = normalize_rating(value)
        if rating and rating not in normalized:
            normalized.append(rating)
    return normalized
