"""Parse free-text quantities ("100g", "大さじ2", "五個") into value/unit pairs."""

from __future__ import annotations

import logging
import math
import re
import unicodedata
from dataclasses import dataclass
from typing import List, Mapping, Optional, Pattern, Sequence, Tuple

from .. import constants
from ..schemas import FoodQuantity

logger = logging.getLogger(__name__)

_NUMBER = r"(\d+(?:\.\d+)?)"


@dataclass(frozen=True)
class ParsedQuantity:
    quantity: FoodQuantity
    confidence: float


@dataclass(frozen=True)
class UnitPattern:
    canonical: str
    number_first: Pattern[str]
    unit_first: Pattern[str]
    confidence: float


def _alias_alternation(aliases: Sequence[str]) -> str:
    # Longest spelling first so "キログラム" wins over "キロ".
    ordered = sorted(aliases, key=len, reverse=True)
    return "|".join(re.escape(alias) for alias in ordered)


def build_unit_patterns(
    unit_aliases: Mapping[str, Sequence[str]] = constants.UNIT_ALIASES,
    confidence: float = constants.UNIT_PATTERN_CONFIDENCE,
) -> Tuple[UnitPattern, ...]:
    patterns: List[UnitPattern] = []
    for canonical, aliases in unit_aliases.items():
        alternation = _alias_alternation(aliases)
        patterns.append(
            UnitPattern(
                canonical=canonical,
                number_first=re.compile(rf"^{_NUMBER}\s*(?:{alternation})$", re.IGNORECASE),
                unit_first=re.compile(rf"^(?:{alternation})\s*{_NUMBER}$", re.IGNORECASE),
                confidence=confidence,
            )
        )
    return tuple(patterns)


UNIT_PATTERNS = build_unit_patterns()

_COUNTER_LOOKUP = {
    alias.lower(): canonical
    for canonical, aliases in constants.UNIT_ALIASES.items()
    for alias in aliases
}
_KANJI_CLASS = "".join(constants.KANJI_NUMERALS)
_KANJI_COUNTER = re.compile(rf"^([{_KANJI_CLASS}])\s*(.+)$")
_BARE_NUMBER = re.compile(rf"^{_NUMBER}$")
_BARE_KANJI = re.compile(rf"^([{_KANJI_CLASS}])$")


def default_quantity() -> ParsedQuantity:
    return ParsedQuantity(
        quantity=FoodQuantity(value=constants.DEFAULT_QUANTITY_VALUE, unit=constants.STANDARD_UNIT),
        confidence=constants.DEFAULT_QUANTITY_CONFIDENCE,
    )


def normalize_quantity_text(text: str) -> str:
    """NFKC-fold full-width digits/letters/spaces and trim surrounding whitespace."""
    return unicodedata.normalize("NFKC", text).strip()


def _match_unit_patterns(text: str) -> Optional[ParsedQuantity]:
    for pattern in UNIT_PATTERNS:
        match = pattern.number_first.match(text) or pattern.unit_first.match(text)
        if match:
            value = float(match.group(1))
            if not math.isfinite(value):
                return None
            return ParsedQuantity(
                quantity=FoodQuantity(value=value, unit=pattern.canonical),
                confidence=pattern.confidence,
            )
    return None


def _match_kanji_counter(text: str) -> Optional[ParsedQuantity]:
    match = _KANJI_COUNTER.match(text)
    if not match:
        return None
    unit = _COUNTER_LOOKUP.get(match.group(2).strip().lower())
    if unit is None:
        return None
    return ParsedQuantity(
        quantity=FoodQuantity(value=constants.KANJI_NUMERALS[match.group(1)], unit=unit),
        confidence=constants.KANJI_COUNTER_CONFIDENCE,
    )


def _match_bare_number(text: str) -> Optional[ParsedQuantity]:
    match = _BARE_NUMBER.match(text)
    if match:
        value = float(match.group(1))
        if not math.isfinite(value):
            return None
    else:
        match = _BARE_KANJI.match(text)
        if not match:
            return None
        value = constants.KANJI_NUMERALS[match.group(1)]
    return ParsedQuantity(
        quantity=FoodQuantity(value=value, unit=constants.STANDARD_UNIT),
        confidence=constants.BARE_NUMBER_CONFIDENCE,
    )


def parse_quantity(text: Optional[str]) -> ParsedQuantity:
    """Parse a quantity string.

    Resolution order:

    1. ``<number><unit>`` / ``<unit><number>`` against the unit table (0.9)
    2. a single kanji numeral followed by a known counter, e.g. ``五個`` (0.8)
    3. a bare number with no unit, mapped to ``標準量`` (0.7)
    4. anything else: ``1 標準量`` (0.5)

    Never raises; the input is not modified.
    """
    if text is None or not isinstance(text, str):
        return default_quantity()

    normalized = normalize_quantity_text(text)
    if not normalized:
        return default_quantity()

    parsed = (
        _match_unit_patterns(normalized)
        or _match_kanji_counter(normalized)
        or _match_bare_number(normalized)
    )
    if parsed is None:
        logger.debug("Unparseable quantity %r, using standard amount", text)
        return default_quantity()
    return parsed


__all__ = [
    "ParsedQuantity",
    "UNIT_PATTERNS",
    "build_unit_patterns",
    "default_quantity",
    "normalize_quantity_text",
    "parse_quantity",
]
