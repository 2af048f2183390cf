from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from .. import constants
from ..schemas import ConfidenceLevel, Food, FoodMatchResult, MatchType
from .food_db import FoodDatabase
from .text import name_similarity, normalize_text

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchingOptions:
    min_similarity: float = constants.MIN_SIMILARITY
    limit: int = 5
    category: Optional[str] = None
    strict_mode: bool = False


def fuzzy_confidence(similarity: float, min_similarity: float = constants.MIN_SIMILARITY) -> float:
    """Confidence of a fuzzy hit: the similarity itself, or 0 below *min_similarity*.

    Graded with :func:`get_confidence_level`, a similarity of 0.85 or more is
    high, 0.7 or more medium and 0.5 or more low.
    """
    if similarity < min_similarity:
        return 0.0
    return similarity


def get_confidence_level(confidence: float) -> Optional[ConfidenceLevel]:
    thresholds = constants.CONFIDENCE_THRESHOLDS
    if confidence >= thresholds["high"]:
        return ConfidenceLevel.HIGH
    if confidence >= thresholds["medium"]:
        return ConfidenceLevel.MEDIUM
    if confidence >= thresholds["low"]:
        return ConfidenceLevel.LOW
    if confidence >= thresholds["very_low"]:
        return ConfidenceLevel.VERY_LOW
    return None


class FoodMatcher:
    """Resolves free-text food names against a :class:`FoodDatabase`.

    Exact canonical names win, then curated aliases, then the most similar
    name or alias above ``min_similarity``. Read-only; one instance can serve
    concurrent requests.
    """

    def __init__(self, database: FoodDatabase):
        self.database = database

    def _exact(self, name: str) -> Optional[FoodMatchResult]:
        food = self.database.get_food_by_exact_name(name)
        if food is not None:
            return FoodMatchResult(
                food=food,
                similarity=1.0,
                confidence=constants.EXACT_MATCH_CONFIDENCE,
                original_input=name,
                match_type=MatchType.EXACT,
                matched_text=food.name,
            )

        food = self.database.get_food_by_alias(name)
        if food is not None:
            return FoodMatchResult(
                food=food,
                similarity=1.0,
                confidence=constants.ALIAS_MATCH_CONFIDENCE,
                original_input=name,
                match_type=MatchType.ALIAS,
                matched_text=name,
            )
        return None

    def _allowed_ids(self, category: Optional[str]) -> Optional[set]:
        if not category:
            return None
        foods = self.database.search_foods_by_category(category, limit=None)
        if not foods:
            logger.debug("No foods in category %r, matching against all foods", category)
            return None
        return {food.id for food in foods}

    def _score_candidates(self, name: str, options: MatchingOptions) -> List[FoodMatchResult]:
        allowed = self._allowed_ids(options.category)
        best: Dict[str, Tuple[float, MatchType, str, Food]] = {}

        for key, food, kind in self.database.search_keys():
            if allowed is not None and food.id not in allowed:
                continue
            similarity = name_similarity(name, key)
            if similarity < options.min_similarity:
                continue
            current = best.get(food.id)
            # Ties keep the canonical-name hit, which is iterated first.
            if current is None or similarity > current[0]:
                best[food.id] = (similarity, kind, key, food)

        ranked = sorted(
            best.values(),
            key=lambda entry: (-entry[0], entry[1] != MatchType.EXACT, entry[3].id),
        )
        return [
            FoodMatchResult(
                food=food,
                similarity=similarity,
                confidence=fuzzy_confidence(similarity, options.min_similarity),
                original_input=name,
                match_type=MatchType.FUZZY,
                matched_text=key,
            )
            for similarity, _kind, key, food in ranked
        ]

    def find_candidates(self, name: str, options: Optional[MatchingOptions] = None) -> List[FoodMatchResult]:
        """Ranked match candidates for *name*, best first, at most ``options.limit``."""
        options = options or MatchingOptions()
        if not name or not normalize_text(name):
            return []

        exact = self._exact(name)
        if exact is not None:
            allowed = self._allowed_ids(options.category)
            if allowed is None or exact.food.id in allowed:
                return [exact]
        if options.strict_mode:
            return []

        return self._score_candidates(name, options)[: max(1, options.limit)]

    def match_food(self, name: str, options: Optional[MatchingOptions] = None) -> Optional[FoodMatchResult]:
        candidates = self.find_candidates(name, options)
        if not candidates:
            logger.info("No food match for %r", name)
            return None
        return candidates[0]

    def match_foods(
        self, names: Iterable[str], options: Optional[MatchingOptions] = None
    ) -> Dict[str, Optional[FoodMatchResult]]:
        return {name: self.match_food(name, options) for name in names}


__all__ = [
    "FoodMatcher",
    "MatchingOptions",
    "fuzzy_confidence",
    "get_confidence_level",
]
