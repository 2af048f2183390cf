from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from nutrition_engine.schemas import FoodInputItem, LegacyNutrition
from nutrition_engine.services.aggregator import (
    NUTRIENT_KEYS,
    NutritionAggregator,
    balance_score,
    identify_deficient_nutrients,
    to_legacy_nutrition,
    to_standardized_nutrition,
)


def _items(*pairs):
    return [FoodInputItem(name=name, quantity=quantity) for name, quantity in pairs]


def test_rice_and_spinach_end_to_end(aggregator):
    result = aggregator.calculate_nutrition(_items(("ご飯", "100g"), ("ほうれん草", "50g")))
    legacy = to_legacy_nutrition(result.nutrition)

    assert legacy.calories == pytest.approx(156 + 9)
    assert legacy.protein == pytest.approx(2.5 + 1.1)
    assert legacy.folic_acid == pytest.approx(3 + 105)
    assert result.reliability.completeness == 1
    assert result.reliability.confidence == pytest.approx(0.9)
    assert result.not_found_foods == []
    assert [item.grams for item in result.resolved_items] == [100, 50]


def test_item_confidence_is_product_of_stages(aggregator):
    result = aggregator.calculate_nutrition(_items(("りんご", "1個")))
    item = result.resolved_items[0]

    assert item.grams == 200
    assert item.match_confidence == 1.0
    assert item.quantity_confidence == 0.9
    assert item.conversion_confidence == 0.95
    assert item.confidence == pytest.approx(0.855)
    assert result.nutrition.total_calories == pytest.approx(106)


def test_missing_quantity_uses_standard_amount(aggregator):
    result = aggregator.calculate_nutrition(_items(("ご飯", None)))
    item = result.resolved_items[0]

    assert item.quantity.unit == "標準量"
    assert item.grams == 1
    assert item.confidence == pytest.approx(0.25)
    assert result.nutrition.total_calories == pytest.approx(1.56)


def test_volume_standard_quantity_is_the_scaling_base(aggregator, food_database):
    assert aggregator.base_grams(food_database.get_food_by_exact_name("牛乳")) == 100
    result = aggregator.calculate_nutrition(_items(("牛乳", "200ml")))
    assert result.nutrition.total_calories == pytest.approx(122)


def test_unmatched_items_lower_completeness(aggregator):
    result = aggregator.calculate_nutrition(_items(("ご飯", "100g"), ("カレーライス", "1皿")))

    assert result.reliability.completeness == 0.5
    assert result.reliability.confidence == pytest.approx(0.45)
    assert result.not_found_foods == ["カレーライス"]
    assert len(result.match_results) == 1
    assert result.nutrition.total_calories == pytest.approx(156)


def test_empty_batch(aggregator):
    result = aggregator.calculate_nutrition([])
    assert result.reliability.completeness == 0
    assert result.reliability.confidence == 0
    assert result.nutrition.total_calories == 0
    assert result.resolved_items == []


def test_dict_items_are_accepted(aggregator):
    result = aggregator.calculate_nutrition([{"name": "納豆", "quantity": "50g"}, {"name": "鮭"}])
    assert [item.food.id for item in result.resolved_items] == ["04046", "10134"]


def test_totals_equal_sum_of_items(aggregator):
    items = _items(("ご飯", "150g"), ("鮭", "1切れ"), ("ほうれん草", "1束"), ("納豆", "大さじ2"), ("謎の食べ物", "3個"))
    result = aggregator.calculate_nutrition(items)

    item_calories = sum(summary.nutrition.calories for summary in result.nutrition.food_items)
    assert result.nutrition.total_calories == pytest.approx(item_calories)
    for nutrient in result.nutrition.total_nutrients:
        per_item = sum(
            next(n.value for n in summary.nutrition.nutrients if n.name == nutrient.name)
            for summary in result.nutrition.food_items
        )
        assert nutrient.value == pytest.approx(per_item)

    assert 0 <= result.reliability.completeness <= 1
    assert 0 <= result.reliability.confidence <= 1
    assert 0 <= result.reliability.balance_score <= 100


def test_executor_matches_sequential(aggregator):
    items = _items(("ご飯", "100g"), ("ほうれんそう", "1束"), ("サーモン", "1切れ"), ("カレーライス", None)) * 5
    sequential = aggregator.calculate_nutrition(items)
    with ThreadPoolExecutor(max_workers=4) as executor:
        parallel = aggregator.calculate_nutrition(items, executor=executor)
    assert parallel.model_dump() == sequential.model_dump()


def test_balance_score():
    totals = {"protein": 3.6, "iron": 1.1, "folic_acid": 108, "calcium": 27.5, "vitamin_d": 0}
    assert balance_score(totals) == pytest.approx(9.6, abs=0.05)

    plenty = {"protein": 600, "iron": 270, "folic_acid": 4000, "calcium": 10000, "vitamin_d": 100}
    assert balance_score(plenty) == 100
    assert balance_score({}) == 0


def test_deficiencies():
    totals = {"protein": 60, "iron": 10, "folic_acid": 400, "calcium": 699, "vitamin_d": 7}
    deficiencies = identify_deficient_nutrients(totals)

    assert {item.nutrient_code for item in deficiencies} == {"iron", "calcium"}
    iron = next(item for item in deficiencies if item.nutrient_code == "iron")
    assert iron.fulfillment_ratio == pytest.approx(10 / 27)
    assert iron.target_value == 27


def test_calculation_reports_deficiencies(aggregator):
    result = aggregator.calculate_nutrition(_items(("ご飯", "100g")))
    assert {item.nutrient_code for item in result.deficiencies} == {
        "protein",
        "iron",
        "folic_acid",
        "calcium",
        "vitamin_d",
    }


def test_custom_targets(matcher):
    aggregator = NutritionAggregator(matcher, daily_targets={"protein": 2.0}, balance_weights={"protein": 1.0})
    result = aggregator.calculate_nutrition(_items(("ご飯", "100g")))
    assert result.reliability.balance_score == 100
    assert result.deficiencies == []


def test_failures_degrade_to_unmatched(food_database):
    class BrokenMatcher:
        def match_food(self, name, options=None):
            raise RuntimeError("boom")

    result = NutritionAggregator(BrokenMatcher()).calculate_nutrition(_items(("ご飯", "100g")))
    assert result.not_found_foods == ["ご飯"]
    assert result.reliability.completeness == 0


def test_calculate_from_text(aggregator):
    result = aggregator.calculate_nutrition_from_text("ご飯 100g、ほうれん草 50g")
    assert result.nutrition.total_calories == pytest.approx(165)
    assert result.reliability.completeness == 1


def test_legacy_round_trip():
    legacy = LegacyNutrition(
        calories=520,
        protein=22.5,
        iron=6.1,
        folic_acid=310,
        calcium=420,
        vitamin_d=4.2,
        confidence_score=0.82,
    )
    standardized = to_standardized_nutrition(legacy)
    assert standardized.total_calories == 520
    assert standardized.nutrient_value("たんぱく質") == 22.5
    assert standardized.reliability.completeness == 0.5

    back = to_legacy_nutrition(standardized)
    for key in NUTRIENT_KEYS:
        assert getattr(back, key) == getattr(legacy, key)
    assert back.confidence_score == legacy.confidence_score


def test_standardized_to_legacy_keeps_reliability(aggregator):
    result = aggregator.calculate_nutrition(_items(("ご飯", "100g"), ("カレーライス", None)))
    legacy = to_legacy_nutrition(result.nutrition, result.not_found_foods)

    assert legacy.calories == pytest.approx(result.nutrition.total_calories)
    assert legacy.confidence_score == pytest.approx(result.reliability.confidence)
    assert legacy.completeness == 0.5
    assert legacy.not_found_foods == ["カレーライス"]
