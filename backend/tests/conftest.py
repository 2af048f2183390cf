from __future__ import annotations

import pytest

from nutrition_engine.services.aggregator import NutritionAggregator
from nutrition_engine.services.food_db import FoodDatabase
from nutrition_engine.services.food_matcher import FoodMatcher

FOOD_RECORDS = [
    {
        "id": "01088",
        "name": "ご飯",
        "category": "穀類-米",
        "aliases": ["白米", "ごはん"],
        "standard_quantity": "100g",
        "calories": 156,
        "protein": 2.5,
        "iron": 0.1,
        "folic_acid": 3,
        "calcium": 3,
        "vitamin_d": 0,
    },
    {
        "id": "06267",
        "name": "ほうれん草",
        "category": "野菜-葉物",
        "aliases": ["ほうれんそう"],
        "standard_quantity": "100g",
        "calories": 18,
        "protein": 2.2,
        "iron": 2.0,
        "folic_acid": 210,
        "calcium": 49,
        "vitamin_d": 0,
    },
    {
        "id": "07148",
        "name": "りんご",
        "category": "果物",
        "aliases": ["リンゴ"],
        "standard_quantity": "100g",
        "calories": 53,
        "protein": 0.1,
        "iron": 0.1,
        "folic_acid": 2,
        "calcium": 3,
        "vitamin_d": 0,
    },
    {
        "id": "11220",
        "name": "鶏むね肉",
        "category": "肉類",
        "aliases": ["鶏胸肉"],
        "standard_quantity": "100g",
        "calories": 133,
        "protein": 21.3,
        "iron": 0.3,
        "folic_acid": 12,
        "calcium": 4,
        "vitamin_d": 0.1,
    },
    {
        "id": "10134",
        "name": "鮭",
        "category": "魚介類",
        "aliases": ["さけ", "サーモン"],
        "standard_quantity": "100g",
        "calories": 124,
        "protein": 22.3,
        "iron": 0.5,
        "folic_acid": 20,
        "calcium": 14,
        "vitamin_d": 32.0,
    },
    {
        "id": "13003",
        "name": "牛乳",
        "category": "乳類",
        "aliases": ["ミルク"],
        "standard_quantity": "100ml",
        "calories": 61,
        "protein": 3.3,
        "iron": 0.02,
        "folic_acid": 5,
        "calcium": 110,
        "vitamin_d": 0.3,
    },
    {
        "id": "04046",
        "name": "納豆",
        "category": "豆類",
        "aliases": ["なっとう"],
        "standard_quantity": "100g",
        "calories": 190,
        "protein": 16.5,
        "iron": 3.3,
        "folic_acid": 120,
        "calcium": 90,
        "vitamin_d": 0,
    },
]


@pytest.fixture
def food_records():
    return [dict(record) for record in FOOD_RECORDS]


@pytest.fixture
def food_database(food_records) -> FoodDatabase:
    return FoodDatabase.from_records(food_records, source="fixture")


@pytest.fixture
def matcher(food_database) -> FoodMatcher:
    return FoodMatcher(food_database)


@pytest.fixture
def aggregator(matcher) -> NutritionAggregator:
    return NutritionAggregator(matcher)
