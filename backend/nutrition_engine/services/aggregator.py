from __future__ import annotations

import logging
from concurrent.futures import Executor
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from .. import constants
from ..schemas import (
    Food,
    FoodInputItem,
    FoodItemNutrition,
    FoodItemSummary,
    FoodMatchResult,
    LegacyNutrition,
    Nutrient,
    NutrientDeficiency,
    NutritionCalculationResult,
    NutritionReliability,
    ResolvedFoodItem,
    ServingSize,
    StandardizedMealNutrition,
)
from .food_input import parse_bulk_food_input, to_name_quantity_pairs
from .food_matcher import FoodMatcher, MatchingOptions
from .quantity_parser import parse_quantity
from .unit_converter import UnitConverter

logger = logging.getLogger(__name__)

NUTRIENT_KEYS = tuple(constants.NUTRIENT_UNITS)
DEFAULT_BASE_GRAMS = 100.0
_MASS_UNITS = {"g", "kg", "ml", "L"}

ItemLike = Union[FoodInputItem, Mapping[str, Any]]


@dataclass
class _ItemOutcome:
    item: FoodInputItem
    match: Optional[FoodMatchResult] = None
    resolved: Optional[ResolvedFoodItem] = None
    nutrients: Dict[str, float] = field(default_factory=lambda: {key: 0.0 for key in NUTRIENT_KEYS})


def _coerce_item(item: ItemLike) -> FoodInputItem:
    if isinstance(item, FoodInputItem):
        return item
    if isinstance(item, Mapping):
        name = item.get("name")
        quantity = item.get("quantity")
        return FoodInputItem(
            name=str(name) if name is not None else "",
            quantity=str(quantity) if quantity is not None else None,
        )
    logger.warning("Ignoring unsupported input item %r", item)
    return FoodInputItem(name="")


def _percent_of_target(value: float, target: Optional[float]) -> Optional[float]:
    if not target or target <= 0:
        return None
    return value / target * 100.0


def balance_score(
    totals: Mapping[str, float],
    targets: Mapping[str, float] = constants.DAILY_TARGETS,
    weights: Mapping[str, float] = constants.BALANCE_WEIGHTS,
) -> float:
    """Weighted sum of each nutrient's percent of target, capped at 100 per nutrient."""
    score = 0.0
    for key, weight in weights.items():
        percent = _percent_of_target(totals.get(key, 0.0), targets.get(key))
        if percent is None:
            continue
        score += weight * min(100.0, percent)
    return round(max(0.0, min(100.0, score)), 1)


def _nutrient_list(
    totals: Mapping[str, float], targets: Mapping[str, float] = constants.DAILY_TARGETS
) -> List[Nutrient]:
    return [
        Nutrient(
            name=constants.NUTRIENT_DISPLAY_NAMES[key],
            value=totals.get(key, 0.0),
            unit=constants.NUTRIENT_UNITS[key],
            percent_daily_value=_percent_of_target(totals.get(key, 0.0), targets.get(key)),
        )
        for key in NUTRIENT_KEYS
    ]


def identify_deficient_nutrients(
    totals: Mapping[str, float],
    targets: Mapping[str, float] = constants.DAILY_TARGETS,
    threshold: float = constants.DEFICIENCY_THRESHOLD,
) -> List[NutrientDeficiency]:
    deficiencies: List[NutrientDeficiency] = []
    for key, target in targets.items():
        if target <= 0:
            continue
        current = totals.get(key, 0.0)
        ratio = current / target
        if ratio < threshold:
            deficiencies.append(
                NutrientDeficiency(
                    nutrient_code=key,
                    fulfillment_ratio=ratio,
                    current_value=current,
                    target_value=target,
                )
            )
    return deficiencies


def to_legacy_nutrition(
    nutrition: StandardizedMealNutrition, not_found_foods: Sequence[str] = ()
) -> LegacyNutrition:
    values = {key: nutrition.nutrient_value(constants.NUTRIENT_DISPLAY_NAMES[key]) for key in NUTRIENT_KEYS}
    if not values["calories"]:
        values["calories"] = nutrition.total_calories
    return LegacyNutrition(
        **values,
        confidence_score=nutrition.reliability.confidence,
        completeness=nutrition.reliability.completeness,
        not_found_foods=list(not_found_foods),
    )


def to_standardized_nutrition(legacy: LegacyNutrition) -> StandardizedMealNutrition:
    totals = {key: getattr(legacy, key) for key in NUTRIENT_KEYS}
    completeness = legacy.completeness
    if completeness is None:
        completeness = constants.LEGACY_DEFAULT_COMPLETENESS
    return StandardizedMealNutrition(
        total_calories=legacy.calories,
        total_nutrients=_nutrient_list(totals),
        food_items=[],
        reliability=NutritionReliability(
            confidence=legacy.confidence_score,
            completeness=completeness,
            balance_score=balance_score(totals),
        ),
    )


class NutritionAggregator:
    """Turns ``(name, quantity)`` pairs into summed nutrients plus a reliability summary.

    Each item is matched, parsed and converted independently, so the per-item
    work can be fanned out on an executor. Ambiguity never raises: an unknown
    quantity falls back to the standard amount and an unknown food contributes
    nothing and lowers completeness.
    """

    def __init__(
        self,
        matcher: FoodMatcher,
        converter: Optional[UnitConverter] = None,
        daily_targets: Optional[Mapping[str, float]] = None,
        balance_weights: Optional[Mapping[str, float]] = None,
        deficiency_threshold: float = constants.DEFICIENCY_THRESHOLD,
        matching_options: Optional[MatchingOptions] = None,
    ):
        self.matcher = matcher
        self.converter = converter or UnitConverter()
        self.daily_targets = daily_targets if daily_targets is not None else constants.DAILY_TARGETS
        self.balance_weights = balance_weights if balance_weights is not None else constants.BALANCE_WEIGHTS
        self.deficiency_threshold = deficiency_threshold
        self.matching_options = matching_options

    def base_grams(self, food: Food) -> float:
        """Grams that the food's nutrient values refer to."""
        parsed = parse_quantity(food.standard_quantity)
        if parsed.quantity.unit not in _MASS_UNITS:
            return DEFAULT_BASE_GRAMS
        grams = self.converter.convert_to_grams(parsed.quantity).grams
        return grams if grams > 0 else DEFAULT_BASE_GRAMS

    def resolve_item(self, item: ItemLike) -> _ItemOutcome:
        outcome = _ItemOutcome(item=_coerce_item(item))
        try:
            self._resolve_into(outcome)
        except Exception:
            logger.exception("Failed to resolve %r; treating it as unmatched", outcome.item.name)
            outcome.match = None
            outcome.resolved = None
            outcome.nutrients = {key: 0.0 for key in NUTRIENT_KEYS}
        return outcome

    def _resolve_into(self, outcome: _ItemOutcome) -> None:
        name = outcome.item.name
        match = self.matcher.match_food(name, self.matching_options) if name else None
        if match is None:
            return

        food = match.food
        parsed = parse_quantity(outcome.item.quantity)
        converted = self.converter.convert_to_grams(parsed.quantity, food.name, food.category)

        factor = converted.grams / self.base_grams(food)
        outcome.nutrients = {key: getattr(food, key) * factor for key in NUTRIENT_KEYS}
        outcome.match = match
        outcome.resolved = ResolvedFoodItem(
            food=food,
            quantity=parsed.quantity,
            grams=converted.grams,
            quantity_confidence=parsed.confidence,
            conversion_confidence=converted.confidence,
            match_confidence=match.confidence,
            confidence=match.confidence * parsed.confidence * converted.confidence,
            original_input=name,
        )

    def calculate_nutrition(
        self, items: Iterable[ItemLike], executor: Optional[Executor] = None
    ) -> NutritionCalculationResult:
        items = list(items)
        if executor is not None:
            outcomes = list(executor.map(self.resolve_item, items))
        else:
            outcomes = [self.resolve_item(item) for item in items]

        totals = {key: 0.0 for key in NUTRIENT_KEYS}
        for outcome in outcomes:
            for key, value in outcome.nutrients.items():
                totals[key] += value

        resolved = [outcome.resolved for outcome in outcomes if outcome.resolved is not None]
        not_found = [outcome.item.name for outcome in outcomes if outcome.resolved is None and outcome.item.name]

        total_items = len(outcomes)
        if total_items:
            completeness = len(resolved) / total_items
            confidence = sum(item.confidence for item in resolved) / total_items
        else:
            completeness = 0.0
            confidence = 0.0

        reliability = NutritionReliability(
            confidence=min(1.0, confidence),
            completeness=completeness,
            balance_score=balance_score(totals, self.daily_targets, self.balance_weights),
        )
        nutrition = StandardizedMealNutrition(
            total_calories=totals["calories"],
            total_nutrients=_nutrient_list(totals, self.daily_targets),
            food_items=[self._summarize(outcome) for outcome in outcomes if outcome.resolved is not None],
            reliability=reliability,
        )

        if not_found:
            logger.info("Unmatched foods: %s", ", ".join(not_found))

        return NutritionCalculationResult(
            nutrition=nutrition,
            reliability=reliability,
            match_results=[outcome.match for outcome in outcomes if outcome.match is not None],
            resolved_items=resolved,
            not_found_foods=not_found,
            deficiencies=identify_deficient_nutrients(totals, self.daily_targets, self.deficiency_threshold),
        )

    def _summarize(self, outcome: _ItemOutcome) -> FoodItemSummary:
        resolved = outcome.resolved
        return FoodItemSummary(
            id=resolved.food.id,
            name=resolved.food.name,
            amount=resolved.quantity.value,
            unit=resolved.quantity.unit,
            nutrition=FoodItemNutrition(
                calories=outcome.nutrients["calories"],
                nutrients=_nutrient_list(outcome.nutrients, self.daily_targets),
                serving_size=ServingSize(value=resolved.grams),
            ),
            confidence=resolved.confidence,
        )

    def calculate_nutrition_from_text(
        self, text: str, executor: Optional[Executor] = None
    ) -> NutritionCalculationResult:
        """Split free text ("ご飯 150g、納豆 1パック") into items and aggregate them."""
        items = to_name_quantity_pairs(parse_bulk_food_input(text))
        return self.calculate_nutrition(items, executor=executor)


__all__ = [
    "NutritionAggregator",
    "balance_score",
    "identify_deficient_nutrients",
    "to_legacy_nutrition",
    "to_standardized_nutrition",
]
