from __future__ import annotations

import logging
import threading
from typing import Optional

from fastapi import Depends, HTTPException, status

from .services.aggregator import NutritionAggregator
from .services.food_db import FoodDatabase, FoodDatabaseError, load_food_database
from .services.food_matcher import FoodMatcher
from .services.unit_converter import UnitConverter

logger = logging.getLogger(__name__)

_LOCK = threading.Lock()
_READY = threading.Event()
_DATABASE: Optional[FoodDatabase] = None


def _ensure_database() -> FoodDatabase:
    global _DATABASE
    if _DATABASE is not None:
        return _DATABASE

    with _LOCK:
        if _DATABASE is not None:
            return _DATABASE
        _DATABASE = load_food_database()
        _READY.set()
        return _DATABASE


def preload_food_database() -> None:
    if _READY.is_set():
        return
    try:
        _ensure_database()
    except FoodDatabaseError as exc:
        logger.warning("Unable to preload food database: %s", exc)
    else:
        logger.info("Food database preloaded and ready")


def set_food_database(database: Optional[FoodDatabase]) -> None:
    """Replace the process-wide snapshot (tests, hot reload)."""
    global _DATABASE
    with _LOCK:
        _DATABASE = database
        if database is None:
            _READY.clear()
        else:
            _READY.set()


def current_food_database() -> Optional[FoodDatabase]:
    return _DATABASE


def get_food_database() -> FoodDatabase:
    try:
        return _ensure_database()
    except FoodDatabaseError as exc:
        logger.error("Food database unavailable: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Food database is not available"
        ) from exc


def get_food_matcher(database: FoodDatabase = Depends(get_food_database)) -> FoodMatcher:
    return FoodMatcher(database)


def get_unit_converter() -> UnitConverter:
    return UnitConverter()


def get_aggregator(
    matcher: FoodMatcher = Depends(get_food_matcher),
    converter: UnitConverter = Depends(get_unit_converter),
) -> NutritionAggregator:
    return NutritionAggregator(matcher, converter)
