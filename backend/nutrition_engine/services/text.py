from __future__ import annotations

import re
import unicodedata

from rapidfuzz.distance import Levenshtein

_STRIP_PATTERN = re.compile(r"[\s、。，．,.！？!?・「」()（）\[\]［］]+")


def normalize_text(text: str) -> str:
    """Canonical lookup key: NFKC-folded, lowercased, no whitespace or punctuation."""
    if not text:
        return ""
    folded = unicodedata.normalize("NFKC", text).lower()
    return _STRIP_PATTERN.sub("", folded)


def name_similarity(a: str, b: str) -> float:
    """Similarity in [0, 1] between two food names.

    Normalized Levenshtein similarity (``1 - distance / max_len``) of the
    normalized strings, plus ``0.1 + 0.1 * min_len / max_len`` when one name
    contains the other.
    """
    left = normalize_text(a)
    right = normalize_text(b)
    if not left or not right:
        return 0.0
    if left == right:
        return 1.0

    similarity = Levenshtein.normalized_similarity(left, right)

    if left in right or right in left:
        shorter, longer = sorted((len(left), len(right)))
        similarity += 0.1 + (shorter / longer) * 0.1

    return max(0.0, min(1.0, similarity))


__all__ = ["name_similarity", "normalize_text"]
