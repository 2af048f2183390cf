#!/usr/bin/env python3
"""Load a food database file and report accepted and quarantined records."""

from __future__ import annotations

import argparse
import logging
import pathlib
import sys
from collections import Counter
from typing import Optional


# Ensure the backend package is importable when this script is run directly.
BACKEND_ROOT = pathlib.Path(__file__).resolve().parents[2]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))


from nutrition_engine.services.food_db import (  # noqa: E402
    FoodDatabase,
    FoodDatabaseError,
    find_dataset_path,
    read_food_frame,
)


def validate(path: pathlib.Path) -> FoodDatabase:
    return FoodDatabase.from_frame(read_food_frame(path), source=str(path))


def report(database: FoodDatabase) -> str:
    lines = [f"Source: {database.source}", f"Accepted: {len(database)}", f"Rejected: {len(database.rejected)}"]

    groups = Counter(food.category_group for food in database)
    for group, count in sorted(groups.items()):
        lines.append(f"  {group}: {count}")

    for index, reason in database.rejected:
        lines.append(f"  record {index}: {reason}")
    return "\n".join(lines)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Validate a food database file and list quarantined records")
    parser.add_argument("path", nargs="?", type=pathlib.Path, help="JSON, CSV/TSV or parquet file")
    parser.add_argument("--strict", action="store_true", help="Exit non-zero when any record is rejected")
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    logging.basicConfig(level=logging.WARNING)
    args = parse_args(argv)

    try:
        path = args.path or find_dataset_path()
        database = validate(path)
    except FoodDatabaseError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    print(report(database))
    if len(database) == 0:
        return 1
    if args.strict and database.rejected:
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
