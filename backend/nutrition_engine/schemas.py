from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ConfidenceLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    VERY_LOW = "very_low"


class MatchType(str, Enum):
    EXACT = "exact"
    ALIAS = "alias"
    FUZZY = "fuzzy"


class FoodQuantity(BaseModel):
    value: float = Field(ge=0)
    unit: str

    model_config = ConfigDict(frozen=True)


class BasicFood(BaseModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    category: str = ""
    category_group: str = ""
    aliases: List[str] = Field(default_factory=list)
    standard_quantity: str = "100g"

    model_config = ConfigDict(frozen=True)


class FoodNutrition(BaseModel):
    """Nutrient amounts per the food's standard quantity (usually 100 g)."""

    calories: float = Field(ge=0)
    protein: float = Field(ge=0)
    iron: float = Field(ge=0)
    folic_acid: float = Field(ge=0)
    calcium: float = Field(ge=0)
    vitamin_d: float = Field(ge=0)

    model_config = ConfigDict(frozen=True)


class Food(BasicFood, FoodNutrition):
    model_config = ConfigDict(frozen=True)

    def nutrition(self) -> FoodNutrition:
        return FoodNutrition(
            calories=self.calories,
            protein=self.protein,
            iron=self.iron,
            folic_acid=self.folic_acid,
            calcium=self.calcium,
            vitamin_d=self.vitamin_d,
        )


class FoodMatchResult(BaseModel):
    food: Food
    similarity: float = Field(ge=0, le=1)
    confidence: float = Field(ge=0, le=1)
    original_input: str
    match_type: MatchType
    matched_text: str


class ResolvedFoodItem(BaseModel):
    food: Food
    quantity: FoodQuantity
    grams: float = Field(ge=0)
    quantity_confidence: float = Field(ge=0, le=1)
    conversion_confidence: float = Field(ge=0, le=1)
    match_confidence: float = Field(ge=0, le=1)
    confidence: float = Field(ge=0, le=1)
    original_input: str


class NutritionReliability(BaseModel):
    confidence: float = Field(ge=0, le=1)
    completeness: float = Field(ge=0, le=1)
    balance_score: float = Field(ge=0, le=100)


class Nutrient(BaseModel):
    name: str
    value: float
    unit: str
    percent_daily_value: Optional[float] = None


class ServingSize(BaseModel):
    value: float
    unit: str = "g"


class FoodItemNutrition(BaseModel):
    calories: float
    nutrients: List[Nutrient]
    serving_size: ServingSize


class FoodItemSummary(BaseModel):
    id: str
    name: str
    amount: float
    unit: str
    nutrition: FoodItemNutrition
    confidence: float


class StandardizedMealNutrition(BaseModel):
    total_calories: float = 0.0
    total_nutrients: List[Nutrient] = Field(default_factory=list)
    food_items: List[FoodItemSummary] = Field(default_factory=list)
    reliability: NutritionReliability = Field(
        default_factory=lambda: NutritionReliability(confidence=0.0, completeness=0.0, balance_score=0.0)
    )

    def nutrient_value(self, name: str) -> float:
        for nutrient in self.total_nutrients:
            if nutrient.name == name:
                return nutrient.value
        return 0.0


class LegacyNutrition(BaseModel):
    calories: float = 0.0
    protein: float = 0.0
    iron: float = 0.0
    folic_acid: float = 0.0
    calcium: float = 0.0
    vitamin_d: float = 0.0
    confidence_score: float = Field(default=0.0, ge=0, le=1)
    completeness: Optional[float] = Field(default=None, ge=0, le=1)
    not_found_foods: List[str] = Field(default_factory=list)


class NutrientDeficiency(BaseModel):
    nutrient_code: str
    fulfillment_ratio: float
    current_value: float
    target_value: float


class NutritionCalculationResult(BaseModel):
    nutrition: StandardizedMealNutrition
    reliability: NutritionReliability
    match_results: List[FoodMatchResult]
    resolved_items: List[ResolvedFoodItem]
    not_found_foods: List[str]
    deficiencies: List[NutrientDeficiency] = Field(default_factory=list)


# ----------------------------------------------------------------------
# Request / response bodies for the HTTP surface


class FoodInputItem(BaseModel):
    name: str
    quantity: Optional[str] = None


class NutritionCalculateRequest(BaseModel):
    items: List[FoodInputItem]


class NutritionTextRequest(BaseModel):
    text: str


class LegacyNutritionResponse(BaseModel):
    nutrition: LegacyNutrition
    matched_foods: List[Dict[str, Any]]


class QuantityParseRequest(BaseModel):
    quantity: Optional[str] = None
    food_name: Optional[str] = None


class QuantityParseResponse(BaseModel):
    quantity: FoodQuantity
    parse_confidence: float
    grams: float
    conversion_confidence: float
    food_id: Optional[str] = None


class FoodCandidateOut(BaseModel):
    food: Food
    similarity: float
    confidence: float
    confidence_level: Optional[ConfidenceLevel] = None
    match_type: MatchType


class FoodSearchResponse(BaseModel):
    query: str
    results: List[FoodCandidateOut]


class HealthOut(BaseModel):
    status: Literal["ok", "loading"]
    foods: int
    rejected: int
