"""String helpers shared by the people pipeline."""

from __future__ import annotations

import unicodedata
from collections.abc import Iterable
from datetime import UTC, datetime

# Sentinel for sort keys when a timestamp is missing
EPOCH = datetime.min.replace(tzinfo=UTC)

EXCERPT_MAX_CHARS = 240


def normalize(value: str | None) -> str:
    """Fold a string for comparison.

    Decomposes to NFD, drops combining marks, lower-cases and trims, so
    "  Mãe " and "mae" compare equal. ``None`` becomes ``""``.
    """
    if not value:
        return ""
    decomposed = unicodedata.normalize("NFD", str(value))
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.lower().strip()


def uniq_merge(first: Iterable[str | None], second: Iterable[str | None] = ()) -> list[str]:
    """Ordered union of two string lists, de-duplicated by ``normalize``.

    The first casing seen wins. Blank entries are dropped.
    """
    seen: set[str] = set()
    merged: list[str] = []
    for item in [*first, *second]:
        if item is None:
            continue
        value = str(item).strip()
        key = normalize(value)
        if not key or key in seen:
            continue
        seen.add(key)
        merged.append(value)
    return merged


def name_tokens(value: str | None) -> set[str]:
    return set(normalize(value).split())


def token_jaccard(a: str | None, b: str | None) -> float:
    """Jaccard similarity of the whitespace-token sets of two names."""
    ta = name_tokens(a)
    tb = name_tokens(b)
    if not ta or not tb:
        return 0.0
    return len(ta & tb) / len(ta | tb)


def truncate_excerpt(text: str | None, limit: int = EXCERPT_MAX_CHARS) -> str:
    return (text or "").strip()[:limit]
