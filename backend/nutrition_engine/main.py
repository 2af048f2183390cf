from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Dict, List, Literal, Union

from fastapi import Depends, FastAPI, HTTPException, Query, status
from fastapi.middleware.cors import CORSMiddleware

from . import schemas
from .dependencies import (
    current_food_database,
    get_aggregator,
    get_food_database,
    get_food_matcher,
    get_unit_converter,
    preload_food_database,
)
from .services.aggregator import NutritionAggregator, to_legacy_nutrition
from .services.food_db import FoodDatabase
from .services.food_matcher import FoodMatcher, MatchingOptions, get_confidence_level
from .services.quantity_parser import parse_quantity
from .services.unit_converter import UnitConverter

logging.basicConfig(level=os.environ.get("NUTRITION_LOG_LEVEL", "INFO").upper())

app = FastAPI(title="Nutrition Engine API", version="0.1.0")

logger = logging.getLogger(__name__)


# Load the food table at startup so the first request does not pay for it
@app.on_event("startup")
async def _preload_food_database() -> None:
    loop = asyncio.get_running_loop()
    await loop.run_in_executor(None, preload_food_database)


DEFAULT_ALLOWED_ORIGINS = {
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
}


def _get_allowed_origins() -> list[str]:
    raw_origins = os.environ.get("CORS_ALLOW_ORIGINS")
    if not raw_origins:
        return sorted(DEFAULT_ALLOWED_ORIGINS)
    return [origin.strip() for origin in raw_origins.split(",") if origin.strip()]


app.add_middleware(
    CORSMiddleware,
    allow_origins=_get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _legacy_response(result: schemas.NutritionCalculationResult) -> schemas.LegacyNutritionResponse:
    matched_foods: List[Dict[str, Any]] = [
        {
            "original": match.original_input,
            "matched": match.food.name,
            "id": match.food.id,
            "similarity": match.similarity,
            "confidence": match.confidence,
        }
        for match in result.match_results
    ]
    return schemas.LegacyNutritionResponse(
        nutrition=to_legacy_nutrition(result.nutrition, result.not_found_foods),
        matched_foods=matched_foods,
    )


def _respond(
    result: schemas.NutritionCalculationResult, response_format: str
) -> Union[schemas.NutritionCalculationResult, schemas.LegacyNutritionResponse]:
    if response_format == "legacy":
        return _legacy_response(result)
    return result


@app.get("/health", response_model=schemas.HealthOut)
def health() -> schemas.HealthOut:
    database = current_food_database()
    if database is None:
        return schemas.HealthOut(status="loading", foods=0, rejected=0)
    return schemas.HealthOut(status="ok", foods=len(database), rejected=len(database.rejected))


@app.post(
    "/nutrition/calculate",
    response_model=Union[schemas.NutritionCalculationResult, schemas.LegacyNutritionResponse],
)
def calculate_nutrition(
    payload: schemas.NutritionCalculateRequest,
    response_format: Literal["standard", "legacy"] = Query("standard", alias="format"),
    aggregator: NutritionAggregator = Depends(get_aggregator),
):
    result = aggregator.calculate_nutrition(payload.items)
    logger.info(
        "Calculated nutrition for %d items (matched=%d, confidence=%.2f)",
        len(payload.items),
        len(result.resolved_items),
        result.reliability.confidence,
    )
    return _respond(result, response_format)


@app.post(
    "/nutrition/calculate-text",
    response_model=Union[schemas.NutritionCalculationResult, schemas.LegacyNutritionResponse],
)
def calculate_nutrition_from_text(
    payload: schemas.NutritionTextRequest,
    response_format: Literal["standard", "legacy"] = Query("standard", alias="format"),
    aggregator: NutritionAggregator = Depends(get_aggregator),
):
    result = aggregator.calculate_nutrition_from_text(payload.text)
    return _respond(result, response_format)


@app.post("/quantity/parse", response_model=schemas.QuantityParseResponse)
def parse_quantity_endpoint(
    payload: schemas.QuantityParseRequest,
    matcher: FoodMatcher = Depends(get_food_matcher),
    converter: UnitConverter = Depends(get_unit_converter),
) -> schemas.QuantityParseResponse:
    parsed = parse_quantity(payload.quantity)

    food = None
    if payload.food_name:
        match = matcher.match_food(payload.food_name)
        food = match.food if match is not None else None

    converted = converter.convert_to_grams(
        parsed.quantity,
        food.name if food is not None else payload.food_name,
        food.category if food is not None else None,
    )
    return schemas.QuantityParseResponse(
        quantity=parsed.quantity,
        parse_confidence=parsed.confidence,
        grams=converted.grams,
        conversion_confidence=converted.confidence,
        food_id=food.id if food is not None else None,
    )


@app.get("/foods/search", response_model=schemas.FoodSearchResponse)
def search_foods(
    q: str = Query(..., min_length=1),
    limit: int = Query(5, ge=1, le=50),
    category: str | None = Query(default=None),
    matcher: FoodMatcher = Depends(get_food_matcher),
) -> schemas.FoodSearchResponse:
    candidates = matcher.find_candidates(q, MatchingOptions(limit=limit, category=category))
    results = [
        schemas.FoodCandidateOut(
            food=candidate.food,
            similarity=candidate.similarity,
            confidence=candidate.confidence,
            confidence_level=get_confidence_level(candidate.confidence),
            match_type=candidate.match_type,
        )
        for candidate in candidates
    ]
    return schemas.FoodSearchResponse(query=q, results=results)


@app.get("/foods/{food_id}", response_model=schemas.Food)
def get_food(food_id: str, database: FoodDatabase = Depends(get_food_database)) -> schemas.Food:
    food = database.get_food_by_id(food_id)
    if food is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Food not found")
    return food
