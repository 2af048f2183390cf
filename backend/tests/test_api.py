from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from nutrition_engine import dependencies
from nutrition_engine.main import app
from nutrition_engine.services.food_db import FoodDatabaseError


@pytest.fixture
def client(food_database):
    dependencies.set_food_database(food_database)
    try:
        yield TestClient(app)
    finally:
        dependencies.set_food_database(None)
        app.dependency_overrides.clear()


def test_health(client, food_database):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "foods": len(food_database), "rejected": 0}


def test_calculate_nutrition(client):
    response = client.post(
        "/nutrition/calculate",
        json={"items": [{"name": "ご飯", "quantity": "100g"}, {"name": "ほうれん草", "quantity": "50g"}]},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["nutrition"]["total_calories"] == pytest.approx(165)
    assert body["reliability"]["completeness"] == 1
    assert body["not_found_foods"] == []
    assert len(body["nutrition"]["food_items"]) == 2


def test_calculate_nutrition_legacy_format(client):
    response = client.post(
        "/nutrition/calculate?format=legacy",
        json={"items": [{"name": "ご飯", "quantity": "100g"}, {"name": "カレーライス"}]},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["nutrition"]["calories"] == pytest.approx(156)
    assert body["nutrition"]["not_found_foods"] == ["カレーライス"]
    assert body["nutrition"]["confidence_score"] == pytest.approx(0.45)
    assert body["matched_foods"][0]["matched"] == "ご飯"


def test_unknown_format_is_rejected(client):
    response = client.post("/nutrition/calculate?format=xml", json={"items": []})
    assert response.status_code == 422


def test_calculate_from_text(client):
    response = client.post("/nutrition/calculate-text", json={"text": "ご飯 100g\nほうれん草 50g"})
    assert response.status_code == 200
    assert response.json()["nutrition"]["total_calories"] == pytest.approx(165)


def test_parse_quantity(client):
    response = client.post("/quantity/parse", json={"quantity": "1個", "food_name": "りんご"})
    assert response.status_code == 200
    body = response.json()
    assert body["quantity"] == {"value": 1.0, "unit": "個"}
    assert body["parse_confidence"] == 0.9
    assert body["grams"] == 200
    assert body["conversion_confidence"] == 0.95
    assert body["food_id"] == "07148"


def test_parse_quantity_without_food(client):
    response = client.post("/quantity/parse", json={"quantity": "大さじ2"})
    body = response.json()
    assert body["grams"] == 30
    assert body["food_id"] is None


def test_search_foods(client):
    response = client.get("/foods/search", params={"q": "ほうれん草炒め", "limit": 3})
    assert response.status_code == 200
    results = response.json()["results"]
    assert results[0]["food"]["id"] == "06267"
    assert results[0]["match_type"] == "fuzzy"
    assert results[0]["confidence_level"] == "high"


def test_search_requires_query(client):
    assert client.get("/foods/search").status_code == 422


def test_get_food(client):
    response = client.get("/foods/01088")
    assert response.status_code == 200
    assert response.json()["name"] == "ご飯"

    assert client.get("/foods/99999").status_code == 404


def test_database_unavailable_returns_503(client, monkeypatch):
    def _unavailable():
        raise FoodDatabaseError("missing")

    dependencies.set_food_database(None)
    monkeypatch.setattr(dependencies, "load_food_database", _unavailable)

    assert client.get("/foods/01088").status_code == 503
    assert client.get("/health").json()["status"] == "loading"
