"""Split user-typed lines like "ほうれん草 1束" into food name and quantity text."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional

from .. import constants
from ..schemas import FoodInputItem

_NUM = r"[0-9０-９]+(?:[.．][0-9０-９]+)?"
_UNIT = r"[a-zA-Zａ-ｚＡ-Ｚ一-鿿々ぁ-ヿ]+"
_KANJI = "".join(constants.KANJI_NUMERALS)
_KNOWN_UNIT = "|".join(
    re.escape(alias)
    for alias in sorted(
        (alias for aliases in constants.UNIT_ALIASES.values() for alias in aliases), key=len, reverse=True
    )
)
_QUANTITY = rf"{_NUM}\s*{_UNIT}|{_UNIT}\s*{_NUM}|{_NUM}|[{_KANJI}]{_UNIT}"

_SPACED = re.compile(rf"^(.+?)[\s　]+({_QUANTITY})$")
_PARENTHESIZED = re.compile(rf"^(.+?)[(（]\s*({_QUANTITY})\s*[)）]$")
_TRAILING = re.compile(rf"^(.+?)(?<![0-9０-９.．])({_NUM}\s*{_UNIT})$")
_LEADING = re.compile(rf"^({_NUM}\s*(?:{_KNOWN_UNIT})?)[\s　]*([^0-9０-９\s　.．].*)$", re.IGNORECASE)

_BULK_SEPARATORS = re.compile(r"\n|、|,|，")


@dataclass(frozen=True)
class FoodInputParseResult:
    food_name: str
    quantity_text: Optional[str]
    confidence: float


def parse_food_input(text: str) -> FoodInputParseResult:
    if not text or not text.strip():
        return FoodInputParseResult(food_name="", quantity_text=None, confidence=0.0)

    line = text.strip()

    match = _SPACED.match(line)
    if match:
        return FoodInputParseResult(match.group(1).strip(), match.group(2).strip(), 0.9)

    match = _PARENTHESIZED.match(line)
    if match:
        return FoodInputParseResult(match.group(1).strip(), match.group(2).strip(), 0.9)

    # No separator between name and amount: ambiguous
    match = _TRAILING.match(line)
    if match:
        return FoodInputParseResult(match.group(1).strip(), match.group(2).strip(), 0.7)

    match = _LEADING.match(line)
    if match and match.group(2).strip():
        return FoodInputParseResult(match.group(2).strip(), match.group(1).strip(), 0.7)

    return FoodInputParseResult(food_name=line, quantity_text=None, confidence=0.8)


def parse_bulk_food_input(text: str) -> List[FoodInputParseResult]:
    if not text or not text.strip():
        return []
    lines = (line.strip() for line in _BULK_SEPARATORS.split(text))
    return [parse_food_input(line) for line in lines if line]


def to_name_quantity_pairs(results: List[FoodInputParseResult]) -> List[FoodInputItem]:
    return [
        FoodInputItem(name=result.food_name, quantity=result.quantity_text or None)
        for result in results
        if result.food_name
    ]


__all__ = [
    "FoodInputParseResult",
    "parse_bulk_food_input",
    "parse_food_input",
    "to_name_quantity_pairs",
]
