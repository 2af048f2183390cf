"""Tuning tables for quantity conversion, matching and nutrient scoring.

The gram values and daily targets are product defaults (pregnancy-tuned) and
are meant to be confirmed with domain stakeholders. Everything here is
read-only; services take replacement tables through their constructors.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, Tuple

STANDARD_UNIT = "標準量"

DEFAULT_QUANTITY_VALUE = 1.0
DEFAULT_QUANTITY_CONFIDENCE = 0.5

# Parser confidences by resolution step
UNIT_PATTERN_CONFIDENCE = 0.9
KANJI_COUNTER_CONFIDENCE = 0.8
BARE_NUMBER_CONFIDENCE = 0.7

# canonical unit -> spelling variants, in match precedence order
UNIT_ALIASES: Mapping[str, Tuple[str, ...]] = MappingProxyType(
    {
        "kg": ("kg", "キログラム", "キロ"),
        "g": ("g", "グラム", "gram", "grams"),
        "ml": ("ml", "cc", "ミリリットル"),
        "L": ("l", "リットル"),
        "大さじ": ("大さじ", "大匙", "おおさじ"),
        "小さじ": ("小さじ", "小匙", "こさじ"),
        "カップ": ("カップ", "cup", "cups"),
        "個": ("個",),
        "切れ": ("切れ",),
        "本": ("本",),
        "枚": ("枚",),
        "束": ("束",),
        "尾": ("尾",),
        "杯": ("杯",),
        "袋": ("袋",),
        "缶": ("缶",),
        "かけ": ("かけ",),
        "株": ("株",),
        "匹": ("匹",),
        "人前": ("人前",),
        "合": ("合",),
    }
)

KANJI_NUMERALS: Mapping[str, float] = MappingProxyType(
    {
        "一": 1.0,
        "二": 2.0,
        "三": 3.0,
        "四": 4.0,
        "五": 5.0,
        "六": 6.0,
        "七": 7.0,
        "八": 8.0,
        "九": 9.0,
        "十": 10.0,
        "半": 0.5,
    }
)

# Generic unit table: unit -> (grams per unit, confidence)
UNIT_GRAMS: Mapping[str, Tuple[float, float]] = MappingProxyType(
    {
        "g": (1.0, 1.0),
        "kg": (1000.0, 1.0),
        "ml": (1.0, 0.9),  # density approximated as water
        "L": (1000.0, 0.9),
        "大さじ": (15.0, 0.85),
        "小さじ": (5.0, 0.85),
        "カップ": (200.0, 0.8),
        "個": (50.0, 0.7),
        "切れ": (80.0, 0.7),
        "枚": (60.0, 0.7),
        "本": (40.0, 0.7),
        "袋": (100.0, 0.7),
        "缶": (100.0, 0.7),
        "かけ": (3.0, 0.7),
        "束": (100.0, 0.7),
        "尾": (80.0, 0.7),
        "杯": (150.0, 0.7),
        "人前": (100.0, 0.7),
        "合": (150.0, 0.7),
        "株": (50.0, 0.7),
        "匹": (80.0, 0.7),
    }
)

CATEGORY_UNIT_CONFIDENCE = 0.9
CATEGORY_UNIT_GRAMS: Mapping[Tuple[str, str], float] = MappingProxyType(
    {
        ("穀類-米", "杯"): 150.0,  # お茶碗1杯
        ("穀類-米", "カップ"): 150.0,
        ("穀類-米", "合"): 150.0,
        ("野菜-葉物", "束"): 80.0,
        ("野菜-葉物", "株"): 100.0,
        ("肉類", "切れ"): 100.0,
        ("肉類", "枚"): 100.0,
        ("魚介類", "切れ"): 80.0,
        ("魚介類", "尾"): 100.0,
        ("魚介類", "匹"): 100.0,
    }
)

FOOD_UNIT_CONFIDENCE = 0.95
FOOD_UNIT_GRAMS: Mapping[Tuple[str, str], float] = MappingProxyType(
    {
        ("りんご", "個"): 200.0,
        ("みかん", "個"): 80.0,
        ("バナナ", "本"): 100.0,
        ("バナナ", "個"): 100.0,
        ("鶏卵", "個"): 50.0,
    }
)

FALLBACK_GRAMS_PER_UNIT = 1.0
FALLBACK_CONFIDENCE = 0.5

# Food matching
EXACT_MATCH_CONFIDENCE = 1.0
ALIAS_MATCH_CONFIDENCE = 0.95
MIN_SIMILARITY = 0.5

CONFIDENCE_THRESHOLDS: Mapping[str, float] = MappingProxyType(
    {
        "high": 0.85,
        "medium": 0.7,
        "low": 0.5,
        "very_low": 0.35,
    }
)

# Nutrients tracked by the engine: key -> unit
NUTRIENT_UNITS: Mapping[str, str] = MappingProxyType(
    {
        "calories": "kcal",
        "protein": "g",
        "iron": "mg",
        "folic_acid": "mcg",
        "calcium": "mg",
        "vitamin_d": "mcg",
    }
)

# Labels used in the standardized (display) nutrition shape
NUTRIENT_DISPLAY_NAMES: Mapping[str, str] = MappingProxyType(
    {
        "calories": "エネルギー",
        "protein": "たんぱく質",
        "iron": "鉄",
        "folic_acid": "葉酸",
        "calcium": "カルシウム",
        "vitamin_d": "ビタミンD",
    }
)

# Applied to the legacy shape, which carries no completeness of its own
LEGACY_DEFAULT_COMPLETENESS = 0.5

DAILY_TARGETS: Mapping[str, float] = MappingProxyType(
    {
        "protein": 60.0,
        "iron": 27.0,
        "folic_acid": 400.0,
        "calcium": 1000.0,
        "vitamin_d": 10.0,
    }
)

BALANCE_WEIGHTS: Mapping[str, float] = MappingProxyType(
    {
        "protein": 0.25,
        "iron": 0.2,
        "folic_acid": 0.25,
        "calcium": 0.2,
        "vitamin_d": 0.1,
    }
)

DEFICIENCY_THRESHOLD = 0.7

# Two-digit food id prefix -> category group
FOOD_ID_CATEGORY_MAP: Mapping[str, str] = MappingProxyType(
    {
        "01": "穀物",  # 穀物類
        "02": "穀物",  # 穀物加工品
        "03": "野菜",  # いも類
        "04": "たんぱく質",  # 豆類
        "05": "たんぱく質",  # 種実類
        "06": "野菜",  # 野菜類
        "07": "果物",  # 果物類
        "08": "たんぱく質",  # きのこ類
        "09": "野菜",  # 藻類
        "10": "たんぱく質",  # 魚介類
        "11": "たんぱく質",  # 肉類
        "12": "たんぱく質",  # 卵類
        "13": "乳製品",  # 乳類
        "14": "調味料",  # 油脂類
        "15": "調味料",  # 菓子類
        "16": "調味料",  # 嗜好飲料
        "17": "調味料",  # 調味料・香辛料
        "18": "その他",  # 調理加工食品類
    }
)
OTHER_CATEGORY_GROUP = "その他"
