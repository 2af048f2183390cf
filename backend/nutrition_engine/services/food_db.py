from __future__ import annotations

import json
import logging
import math
import os
import re
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

import pandas as pd
from pydantic import ValidationError

from .. import constants
from ..schemas import Food, MatchType
from .text import normalize_text

logger = logging.getLogger(__name__)

_BUNDLED_DATASET = Path(__file__).resolve().parents[1] / "data" / "foods.json"

_DATASET_CANDIDATES = [
    Path(__file__).resolve().parents[3] / "data" / "food_nutrition_database.json",
    Path(__file__).resolve().parents[3] / "data" / "food_nutrition_database.parquet",
    _BUNDLED_DATASET,
]

_NUTRIENT_COLUMNS = ["calories", "protein", "iron", "folic_acid", "calcium", "vitamin_d"]

# Alternate spellings accepted from upstream exports -> canonical column
_COLUMN_ALIASES = {
    "standardQuantity": "standard_quantity",
    "caloriesPer100g": "calories",
    "proteinPer100g": "protein",
    "ironPer100g": "iron",
    "folicAcidPer100g": "folic_acid",
    "folicAcid": "folic_acid",
    "calciumPer100g": "calcium",
    "vitaminDPer100g": "vitamin_d",
    "vitaminD": "vitamin_d",
}

_ALIAS_SPLIT = re.compile(r"[|、,]")

# Composition tables print trace amounts as "Tr" and "(Tr)", and "-" for not detected
_TRACE_MARKERS = {"tr", "trace", "-"}


class FoodDatabaseError(RuntimeError):
    """The food database file could not be read or held no usable records."""


def _get_series(frame: pd.DataFrame, column: str, default: Any) -> pd.Series:
    if column in frame.columns:
        series = frame[column]
        if not isinstance(series, pd.Series):
            series = pd.Series(series, index=frame.index)
    else:
        series = pd.Series(default, index=frame.index, dtype=object)
    return series.copy()


def _clean_numeric(value: Any) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        return float(value)
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    return parsed if math.isfinite(parsed) else None


def _coerce_nutrient(value: Any) -> Any:
    if isinstance(value, str):
        stripped = value.strip().replace("(", "").replace(")", "")
        if stripped.lower() in _TRACE_MARKERS:
            return 0.0
        return stripped
    return value


def _split_aliases(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, float) and math.isnan(value):
        return []
    if isinstance(value, str):
        parts = _ALIAS_SPLIT.split(value)
    elif isinstance(value, Iterable):
        parts = [str(part) for part in value if part is not None]
    else:
        parts = [str(value)]
    return [part.strip() for part in parts if part and part.strip()]


def category_group_for_id(food_id: str) -> str:
    return constants.FOOD_ID_CATEGORY_MAP.get(str(food_id)[:2], constants.OTHER_CATEGORY_GROUP)


def _prepare_dataframe(raw: pd.DataFrame) -> pd.DataFrame:
    frame = raw.copy()

    renames = {
        source: target
        for source, target in _COLUMN_ALIASES.items()
        if source in frame.columns and target not in frame.columns
    }
    if renames:
        frame = frame.rename(columns=renames)

    frame["id"] = _get_series(frame, "id", "").fillna("").astype(str).str.strip()
    frame["name"] = _get_series(frame, "name", "").fillna("").astype(str).str.strip()

    frame["category_group"] = frame["id"].map(category_group_for_id)
    category = _get_series(frame, "category", "").fillna("").astype(str).str.strip()
    frame["category"] = category.where(category != "", frame["category_group"])

    frame["aliases"] = _get_series(frame, "aliases", None).map(_split_aliases)
    frame["standard_quantity"] = (
        _get_series(frame, "standard_quantity", "100g").fillna("100g").astype(str).str.strip()
    )
    frame.loc[frame["standard_quantity"] == "", "standard_quantity"] = "100g"

    for column in _NUTRIENT_COLUMNS:
        frame[column] = pd.to_numeric(_get_series(frame, column, None).map(_coerce_nutrient), errors="coerce")

    return frame


def _validate_frame(frame: pd.DataFrame) -> Tuple[List[Food], List[Tuple[int, str]]]:
    foods: List[Food] = []
    rejected: List[Tuple[int, str]] = []
    seen_ids = set()

    for index, record in enumerate(frame.to_dict("records")):
        payload = {
            "id": record["id"],
            "name": record["name"],
            "category": record["category"],
            "category_group": record["category_group"],
            "aliases": record["aliases"],
            "standard_quantity": record["standard_quantity"],
        }
        for column in _NUTRIENT_COLUMNS:
            payload[column] = _clean_numeric(record.get(column))

        try:
            food = Food.model_validate(payload)
        except ValidationError as exc:
            reason = "; ".join(
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
            )
            logger.warning("Skipping malformed food record %d (%s): %s", index, payload["id"] or "?", reason)
            rejected.append((index, reason))
            continue

        if food.id in seen_ids:
            logger.warning("Skipping duplicate food id %s at record %d", food.id, index)
            rejected.append((index, f"duplicate id {food.id}"))
            continue
        seen_ids.add(food.id)
        foods.append(food)

    return foods, rejected


class FoodDatabase:
    """Immutable, validated snapshot of the food table.

    Safe to share between threads: nothing is mutated after construction.
    """

    def __init__(
        self,
        foods: Iterable[Food],
        rejected: Sequence[Tuple[int, str]] = (),
        source: Optional[str] = None,
    ):
        by_id: Dict[str, Food] = {}
        by_name: Dict[str, Food] = {}
        by_alias: Dict[str, Food] = {}

        for food in foods:
            by_id[food.id] = food
            key = normalize_text(food.name)
            if key in by_name:
                logger.warning("Food name %r already taken by %s; %s not indexed by name", food.name, by_name[key].id, food.id)
            else:
                by_name[key] = food

        # Aliases never shadow a canonical name.
        for food in by_id.values():
            for alias in food.aliases:
                key = normalize_text(alias)
                if not key or key in by_name:
                    continue
                if key in by_alias:
                    if by_alias[key].id != food.id:
                        logger.warning("Alias %r of %s already maps to %s", alias, food.id, by_alias[key].id)
                    continue
                by_alias[key] = food

        self._foods: Tuple[Food, ...] = tuple(by_id.values())
        self._by_id: Mapping[str, Food] = MappingProxyType(by_id)
        self._by_name: Mapping[str, Food] = MappingProxyType(by_name)
        self._by_alias: Mapping[str, Food] = MappingProxyType(by_alias)
        self.rejected: Tuple[Tuple[int, str], ...] = tuple(rejected)
        self.source = source

    @classmethod
    def from_frame(cls, raw: pd.DataFrame, source: Optional[str] = None) -> "FoodDatabase":
        frame = _prepare_dataframe(raw)
        foods, rejected = _validate_frame(frame)
        return cls(foods, rejected=rejected, source=source)

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]], source: Optional[str] = None) -> "FoodDatabase":
        return cls.from_frame(pd.DataFrame.from_records(list(records)), source=source)

    def __len__(self) -> int:
        return len(self._foods)

    def __iter__(self) -> Iterator[Food]:
        return iter(self._foods)

    def __contains__(self, food_id: object) -> bool:
        return food_id in self._by_id

    @property
    def foods(self) -> Tuple[Food, ...]:
        return self._foods

    def get_food_by_id(self, food_id: str) -> Optional[Food]:
        return self._by_id.get(food_id)

    def get_food_by_exact_name(self, name: str) -> Optional[Food]:
        return self._by_name.get(normalize_text(name))

    def get_food_by_alias(self, name: str) -> Optional[Food]:
        return self._by_alias.get(normalize_text(name))

    def search_keys(self) -> Iterator[Tuple[str, Food, MatchType]]:
        """Every normalized name and alias with the food it points to."""
        for key, food in self._by_name.items():
            yield key, food, MatchType.EXACT
        for key, food in self._by_alias.items():
            yield key, food, MatchType.ALIAS

    def search_foods_by_partial_name(self, name: str, limit: int = 10) -> List[Food]:
        query = normalize_text(name)
        if not query:
            return []

        results: List[Food] = []
        for key, food, _ in self.search_keys():
            if query in key and food not in results:
                results.append(food)
                if len(results) >= limit:
                    break
        return results

    def search_foods_by_category(self, category: str, limit: Optional[int] = 20) -> List[Food]:
        """Foods whose category or category group equals *category*."""
        results = [food for food in self._foods if category in (food.category, food.category_group)]
        return results if limit is None else results[:limit]

    def search_foods_by_id_prefix(self, prefix: str) -> List[Food]:
        return [food for food in self._foods if food.id.startswith(prefix)]


def _read_json(path: Path) -> pd.DataFrame:
    with path.open("r", encoding="utf-8") as fh:
        payload = json.load(fh)

    if isinstance(payload, dict) and "foods" in payload:
        payload = payload["foods"]

    if isinstance(payload, dict):
        records = []
        for key, entry in payload.items():
            if isinstance(entry, dict):
                record = dict(entry)
                record.setdefault("name", key)
                records.append(record)
        return pd.DataFrame.from_records(records)

    if isinstance(payload, list):
        return pd.DataFrame.from_records([entry for entry in payload if isinstance(entry, dict)])

    raise FoodDatabaseError(f"Unsupported JSON layout in {path}")


def read_food_frame(path: Path) -> pd.DataFrame:
    suffix = path.suffix.lower()
    try:
        if suffix == ".json":
            return _read_json(path)
        if suffix in {".csv", ".tsv"}:
            separator = "\t" if suffix == ".tsv" else ","
            return pd.read_csv(path, sep=separator, dtype={"id": str})
        if suffix == ".parquet":
            return pd.read_parquet(path)
    except (OSError, ValueError) as exc:
        raise FoodDatabaseError(f"Unable to read food database {path}: {exc}") from exc
    raise FoodDatabaseError(f"Unsupported food database format: {path.suffix}")


def find_dataset_path() -> Path:
    explicit = os.environ.get("FOOD_DATABASE_PATH")
    if explicit:
        path = Path(explicit)
        if not path.exists():
            raise FoodDatabaseError(f"FOOD_DATABASE_PATH does not exist: {path}")
        return path

    for candidate in _DATASET_CANDIDATES:
        if candidate.exists():
            return candidate
    joined = ", ".join(str(path) for path in _DATASET_CANDIDATES)
    raise FoodDatabaseError(f"Food database not found. Checked: {joined}")


def load_food_database(path: Optional[Path] = None) -> FoodDatabase:
    dataset_path = Path(path) if path is not None else find_dataset_path()
    if not dataset_path.exists():
        raise FoodDatabaseError(f"Food database not found: {dataset_path}")

    logger.info("Loading food database from %s", dataset_path)
    raw = read_food_frame(dataset_path)
    database = FoodDatabase.from_frame(raw, source=str(dataset_path))

    if len(database) == 0:
        raise FoodDatabaseError(f"No valid food records in {dataset_path} ({len(database.rejected)} rejected)")

    logger.info("Loaded %d foods (rejected=%d)", len(database), len(database.rejected))
    return database


__all__ = [
    "FoodDatabase",
    "FoodDatabaseError",
    "category_group_for_id",
    "find_dataset_path",
    "load_food_database",
    "read_food_frame",
]
