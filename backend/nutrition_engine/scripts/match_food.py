#!/usr/bin/env python3
"""Quick CLI to exercise food matching and quantity conversion without running the API server."""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional


# Ensure the backend package is importable when this script is run directly.
BACKEND_ROOT = Path(__file__).resolve().parents[2]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))


from nutrition_engine.services.food_db import FoodDatabaseError, load_food_database  # noqa: E402
from nutrition_engine.services.food_matcher import (  # noqa: E402
    FoodMatcher,
    MatchingOptions,
    get_confidence_level,
)
from nutrition_engine.services.quantity_parser import parse_quantity  # noqa: E402
from nutrition_engine.services.unit_converter import UnitConverter  # noqa: E402


def _describe(matcher: FoodMatcher, name: str, quantity: Optional[str], limit: int) -> List[Dict[str, Any]]:
    converter = UnitConverter()
    parsed = parse_quantity(quantity)
    results = []
    for candidate in matcher.find_candidates(name, MatchingOptions(limit=limit)):
        converted = converter.convert_to_grams(parsed.quantity, candidate.food.name, candidate.food.category)
        level = get_confidence_level(candidate.confidence)
        results.append(
            {
                "id": candidate.food.id,
                "name": candidate.food.name,
                "category": candidate.food.category,
                "match_type": candidate.match_type.value,
                "similarity": round(candidate.similarity, 3),
                "confidence": round(candidate.confidence, 3),
                "confidence_level": level.value if level else None,
                "quantity": {"value": parsed.quantity.value, "unit": parsed.quantity.unit},
                "parse_confidence": parsed.confidence,
                "grams": converted.grams,
                "conversion_confidence": converted.confidence,
            }
        )
    return results


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Match a food name against the food database without starting FastAPI.")
    parser.add_argument("name", help="Food name, e.g. 'ほうれんそう' or 'ごはん'.")
    parser.add_argument("--quantity", default=None, help="Quantity text, e.g. '100g' or '大さじ2'.")
    parser.add_argument("--limit", type=int, default=5, help="Maximum number of candidates to show (default: 5).")
    parser.add_argument("--database", default=None, help="Food database file (defaults to FOOD_DATABASE_PATH or the bundled sample).")
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print raw JSON instead of the human-friendly format.")

    args = parser.parse_args()

    try:
        database = load_food_database(Path(args.database) if args.database else None)
    except FoodDatabaseError as exc:
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(1)

    results = _describe(FoodMatcher(database), args.name, args.quantity, args.limit)

    if args.json:
        print(json.dumps(results, ensure_ascii=False, indent=2))
        return

    if not results:
        print("No foods matched:", args.name)
        return

    for idx, item in enumerate(results, start=1):
        print(f"[{idx}] {item['name']} (id={item['id']}, category={item['category']})")
        print(
            f"    Match: {item['match_type']} similarity={item['similarity']} "
            f"confidence={item['confidence']} ({item['confidence_level']})"
        )
        quantity = item["quantity"]
        print(
            f"    Quantity: {quantity['value']} {quantity['unit']} -> {item['grams']} g "
            f"(parse={item['parse_confidence']}, conversion={item['conversion_confidence']})"
        )


if __name__ == "__main__":
    main()
