"""Rule-based extraction of label fields from recognized text."""

from __future__ import annotations

import re

from ..models import ExtractionResult, NutritionFacts

_SECTION_LABELS = r"nutrition|allergen|warning|best\s*before|use\s*by|expiry"

_INGREDIENTS_PATTERN = re.compile(
    r"\b(?:ingredients?|contains)\b[:\s]*"
    r"(.+?)"
    r"(?=\b(?:" + _SECTION_LABELS + r")|\.(?:\s|$)|\n[ \t]*\n|\Z)",
    re.IGNORECASE | re.DOTALL,
)

_PARENTHETICAL = re.compile(r"\([^)]*\)")

# Lines that open a label section rather than naming the product.
_LABEL_LINE = re.compile(
    r"^\s*(?:ingredients?|contains|may\s+contain|allergens?|"
    + _SECTION_LABELS + r")\b",
    re.IGNORECASE,
)

_LIST_SEPARATOR = re.compile(r"[,;]")

_NUMBER = r"(\d+(?:\.\d+)?)"

# nutrient field -> pattern capturing (value, optional unit)
_NUTRIENT_PATTERNS: dict[str, re.Pattern[str]] = {
    "calories": re.compile(
        r"\b(?:calories|calorie|energy)\b[:\s]*" + _NUMBER + r"(?:\s*(kcal|cal)\b)?",
        re.IGNORECASE,
    ),
    "total_fat": re.compile(
        r"(?<!saturated )(?<!trans )\b(?:total\s+)?fat\b[:\s]*"
        + _NUMBER + r"(?:\s*(mg|g)\b)?",
        re.IGNORECASE,
    ),
    "protein": re.compile(
        r"\bproteins?\b[:\s]*" + _NUMBER + r"(?:\s*(g)\b)?",
        re.IGNORECASE,
    ),
    "sugars": re.compile(
        r"\bsugars?\b[:\s]*" + _NUMBER + r"(?:\s*(g)\b)?",
        re.IGNORECASE,
    ),
    "carbohydrates": re.compile(
        r"\b(?:total\s+)?(?:carbohydrates?|carbs)\b[:\s]*"
        + _NUMBER + r"(?:\s*(g)\b)?",
        re.IGNORECASE,
    ),
    "sodium": re.compile(
        r"\bsodium\b[:\s]*" + _NUMBER + r"(?:\s*(mg|g)\b)?",
        re.IGNORECASE,
    ),
    "fiber": re.compile(
        r"\b(?:dietary\s+)?fib(?:er|re)\b[:\s]*" + _NUMBER + r"(?:\s*(g)\b)?",
        re.IGNORECASE,
    ),
}

_MONTH = (
    r"(?:jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?|"
    r"aug(?:ust)?|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)"
)

_EXPIRY_PATTERN = re.compile(
    r"\b(?:best\s*before(?:\s*end)?|use\s*by|expiry(?:\s*date)?|exp|bb)\b\.?[:\s]*"
    r"("
    r"\d{1,2}[/\-.]\d{1,2}[/\-.]\d{2,4}"
    r"|\d{1,2}[/\-.]\d{4}"
    r"|" + _MONTH + r"\.?\s*\d{4}"
    r"|\d{1,2}\s*" + _MONTH + r"\.?\s*\d{4}"
    r")",
    re.IGNORECASE,
)

# Checked in order; the first template that matches wins.
_USAGE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(
        r"\b(?:keep refrigerated|refrigerate|store in|keep in)\b[^.]*\.?",
        re.IGNORECASE,
    ),
    re.compile(r"\b(?:use within|consume within)\b[^.]*\.?", re.IGNORECASE),
    re.compile(r"\bafter opening\b[^.]*\.?", re.IGNORECASE),
)

_ALLERGEN_WARNING_PATTERN = re.compile(
    r"\b(?:allergens?|may\s+contain|warning)\b[:\s]*(.+?)(?=\.|$)",
    re.IGNORECASE | re.MULTILINE,
)

# (substring, reason); report order follows this table, not the text.
HARMFUL_ADDITIVES: tuple[tuple[str, str], ...] = (
    ("high fructose corn syrup", "linked to obesity and metabolic issues"),
    ("hfcs", "linked to obesity and metabolic issues"),
    ("monosodium glutamate", "may cause headaches in sensitive individuals"),
    ("msg", "may cause headaches in sensitive individuals"),
    ("sodium nitrite", "may form carcinogenic compounds"),
    ("sodium nitrate", "may form carcinogenic compounds"),
    ("bha", "possible carcinogen"),
    ("bht", "possible carcinogen"),
    ("potassium bromate", "banned in many countries, potential carcinogen"),
    ("propyl paraben", "endocrine disruptor"),
    ("artificial color", "may cause hyperactivity"),
    ("artificial flavour", "artificial additive"),
    ("artificial flavor", "artificial additive"),
    ("aspartame", "controversial artificial sweetener"),
    ("saccharin", "controversial artificial sweetener"),
    ("sucralose", "artificial sweetener with debated effects"),
    ("partially hydrogenated", "contains trans fats"),
    ("trans fat", "raises LDL cholesterol"),
)

_PRODUCT_NAME_MAX = 100


class PatternExtractor:
    """Extract structured label fields from free text using regexes.

    Every method is pure: missing patterns leave the field empty and no
    input raises.
    """

    def extract(self, text: str, front_text: str = "") -> ExtractionResult:
        text = text or ""
        return ExtractionResult(
            product_name=self.extract_product_name(front_text),
            ingredients=self.extract_ingredients(text),
            nutrition=self.extract_nutrition(text),
            allergen_warnings=self.extract_allergen_warnings(text),
            expiry=self.extract_expiry(text),
            usage_instructions=self.extract_usage_instructions(text),
            harmful_ingredients=self.detect_harmful_ingredients(text),
            raw_text=text,
        )

    @staticmethod
    def extract_product_name(front_text: str) -> str | None:
        """First non-blank front-label line that isn't a section label."""
        for line in (front_text or "").splitlines():
            if line.strip() and not _LABEL_LINE.match(line):
                return line.strip()[:_PRODUCT_NAME_MAX]
        return None

    @staticmethod
    def extract_ingredients(text: str) -> list[str]:
        # Sub-lists go first so a period inside one doesn't end the section.
        match = _INGREDIENTS_PATTERN.search(_PARENTHETICAL.sub("", text))
        if match is None:
            return []
        section = match.group(1)
        ingredients: list[str] = []
        for fragment in _LIST_SEPARATOR.split(section):
            name = " ".join(fragment.split()).rstrip(".").strip()
            if len(name) > 1:
                ingredients.append(name)
        return ingredients

    @staticmethod
    def extract_nutrition(text: str) -> NutritionFacts:
        values: dict[str, str] = {}
        for field_name, pattern in _NUTRIENT_PATTERNS.items():
            match = pattern.search(text)
            if match is None:
                continue
            number, unit = match.group(1), match.group(2)
            values[field_name] = f"{number} {unit.lower()}" if unit else number
        return NutritionFacts(**values)

    @staticmethod
    def extract_expiry(text: str) -> str | None:
        match = _EXPIRY_PATTERN.search(text)
        return match.group(1).strip() if match else None

    @staticmethod
    def extract_usage_instructions(text: str) -> str | None:
        for pattern in _USAGE_PATTERNS:
            match = pattern.search(text)
            if match:
                return " ".join(match.group(0).split())
        return None

    @staticmethod
    def extract_allergen_warnings(text: str) -> list[str]:
        match = _ALLERGEN_WARNING_PATTERN.search(text)
        if match is None:
            return []
        return [part.strip() for part in match.group(1).split(",") if part.strip()]

    @staticmethod
    def detect_harmful_ingredients(text: str) -> list[str]:
        lower = text.lower()
        return [
            f"{name}: {reason}"
            for name, reason in HARMFUL_ADDITIVES
            if name in lower
        ]
