from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

from .. import constants
from ..schemas import FoodQuantity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConvertedGrams:
    grams: float
    confidence: float
    source: str


@dataclass(frozen=True)
class UnitTables:
    """Gram tables consulted by :class:`UnitConverter`, most specific first."""

    food_unit_grams: Mapping[Tuple[str, str], float] = field(default_factory=lambda: constants.FOOD_UNIT_GRAMS)
    category_unit_grams: Mapping[Tuple[str, str], float] = field(
        default_factory=lambda: constants.CATEGORY_UNIT_GRAMS
    )
    unit_grams: Mapping[str, Tuple[float, float]] = field(default_factory=lambda: constants.UNIT_GRAMS)
    food_confidence: float = constants.FOOD_UNIT_CONFIDENCE
    category_confidence: float = constants.CATEGORY_UNIT_CONFIDENCE
    fallback_grams: float = constants.FALLBACK_GRAMS_PER_UNIT
    fallback_confidence: float = constants.FALLBACK_CONFIDENCE


def _clean_value(value: object) -> float:
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        logger.warning("Non-numeric quantity value %r, using 0", value)
        return 0.0
    if not math.isfinite(number):
        logger.warning("Non-finite quantity value %r, using 0", value)
        return 0.0
    if number < 0:
        logger.warning("Negative quantity value %s clamped to 0", number)
        return 0.0
    return number


class UnitConverter:
    """Converts a parsed quantity into grams.

    Lookup order: (food name, unit) override, (category, unit) override,
    generic unit table, then ``value x 1 g`` at low confidence for
    ``標準量`` and unknown units.
    """

    def __init__(self, tables: Optional[UnitTables] = None):
        self.tables = tables or UnitTables()

    def convert_to_grams(
        self,
        quantity: FoodQuantity,
        food_name: Optional[str] = None,
        category: Optional[str] = None,
    ) -> ConvertedGrams:
        value = _clean_value(quantity.value)
        unit = quantity.unit
        tables = self.tables

        if food_name:
            per_unit = tables.food_unit_grams.get((food_name, unit))
            if per_unit is not None:
                return ConvertedGrams(value * per_unit, tables.food_confidence, "food")

        if category:
            per_unit = tables.category_unit_grams.get((category, unit))
            if per_unit is not None:
                return ConvertedGrams(value * per_unit, tables.category_confidence, "category")

        generic = tables.unit_grams.get(unit)
        if generic is not None:
            per_unit, confidence = generic
            return ConvertedGrams(value * per_unit, confidence, "unit")

        if unit != constants.STANDARD_UNIT:
            logger.debug("Unknown unit %r for %r, assuming %sg per unit", unit, food_name, tables.fallback_grams)
        return ConvertedGrams(value * tables.fallback_grams, tables.fallback_confidence, "fallback")


_DEFAULT_CONVERTER = UnitConverter()


def convert_to_grams(
    quantity: FoodQuantity,
    food_name: Optional[str] = None,
    category: Optional[str] = None,
) -> ConvertedGrams:
    """Module-level shortcut using the default tables."""
    return _DEFAULT_CONVERTER.convert_to_grams(quantity, food_name, category)


__all__ = ["ConvertedGrams", "UnitConverter", "UnitTables", "convert_to_grams"]
