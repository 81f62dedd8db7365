"""Open Food Facts barcode lookup.

API docs: https://openfoodfacts.github.io/openfoodfacts-server/api/
"""

from __future__ import annotations

import logging
import re
from typing import Any

import httpx

from ..extraction.allergens import AllergenProfile
from ..extraction.builder import ProductRecordBuilder
from ..models import ExtractionResult, NutritionFacts, ProductRecord

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://world.openfoodfacts.org/api/v2/product"
DEFAULT_USER_AGENT = "BlindLabel/1.0 (Python; blindlabel)"
UNKNOWN_PRODUCT = "Unknown Product"
MAX_INGREDIENTS = 30

# Database field -> (NutritionFacts field, unit, multiplier).
# Sodium and cholesterol are stored in grams and read out in milligrams.
_NUTRIMENTS: dict[str, tuple[str, str, float]] = {
    "energy-kcal_100g": ("calories", "kcal", 1.0),
    "fat_100g": ("total_fat", "g", 1.0),
    "saturated-fat_100g": ("saturated_fat", "g", 1.0),
    "trans-fat_100g": ("trans_fat", "g", 1.0),
    "cholesterol_100g": ("cholesterol", "mg", 1000.0),
    "sodium_100g": ("sodium", "mg", 1000.0),
    "carbohydrates_100g": ("carbohydrates", "g", 1.0),
    "fiber_100g": ("fiber", "g", 1.0),
    "sugars_100g": ("sugars", "g", 1.0),
    "proteins_100g": ("protein", "g", 1.0),
}

HARMFUL_PATTERNS: tuple[tuple[str, str], ...] = (
    ("high fructose corn syrup", "linked to obesity and metabolic issues"),
    ("monosodium glutamate", "may cause headaches in sensitive individuals"),
    ("msg", "may cause headaches in sensitive individuals"),
    ("sodium nitrite", "may form carcinogenic compounds"),
    ("sodium nitrate", "may form carcinogenic compounds"),
    ("bha", "possible carcinogen"),
    ("bht", "possible carcinogen"),
    ("aspartame", "controversial artificial sweetener"),
    ("sucralose", "artificial sweetener with debated effects"),
    ("red 40", "artificial color linked to hyperactivity"),
    ("yellow 5", "artificial color linked to hyperactivity"),
    ("yellow 6", "artificial color linked to hyperactivity"),
    ("blue 1", "artificial color"),
    ("partially hydrogenated", "contains trans fats"),
    ("hydrogenated oil", "may contain trans fats"),
)

_PARENTHETICAL = re.compile(r"\([^)]*\)")
_LIST_SEPARATOR = re.compile(r"[,;]")


class OpenFoodFactsClient:
    """Async client for the Open Food Facts product endpoint.

    Lookups never raise for transport or lookup failures: anything that is
    not a found product is logged and reported as None.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
        builder: ProductRecordBuilder | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            headers={"User-Agent": user_agent},
            timeout=timeout,
        )
        self._builder = builder or ProductRecordBuilder()

    async def __aenter__(self) -> OpenFoodFactsClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def lookup(
        self, barcode: str, profile: AllergenProfile
    ) -> ProductRecord | None:
        barcode = barcode.strip()
        if not barcode:
            return None

        url = f"{self._base_url}/{barcode}.json"
        logger.debug("Fetching product: %s", url)
        try:
            response = await self._client.get(url)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            logger.warning("Barcode lookup failed for %s: %s", barcode, e)
            return None
        except ValueError as e:
            logger.warning("Barcode lookup returned invalid JSON for %s: %s", barcode, e)
            return None

        if not isinstance(data, dict) or data.get("status") != 1:
            logger.info("Product %s not found in database", barcode)
            return None
        product = data.get("product")
        if not isinstance(product, dict):
            logger.info("Product %s has no product data", barcode)
            return None

        result = self.parse_product(product, profile)
        logger.info("Found product %s: %s", barcode, result.product_name)
        return self._builder.build(result, profile)

    @classmethod
    def parse_product(
        cls, product: dict[str, Any], profile: AllergenProfile
    ) -> ExtractionResult:
        product_name = (
            _text(product.get("product_name"))
            or _text(product.get("product_name_en"))
            or UNKNOWN_PRODUCT
        )
        ingredients_text = (
            _text(product.get("ingredients_text"))
            or _text(product.get("ingredients_text_en"))
        )
        db_allergens = cls.parse_allergens(product)

        return ExtractionResult(
            product_name=product_name,
            ingredients=cls.parse_ingredients(ingredients_text),
            nutrition=cls.parse_nutrition(product),
            allergen_warnings=cls.allergen_warnings(
                ingredients_text, db_allergens, profile
            ),
            harmful_ingredients=cls.harmful_ingredients(ingredients_text),
            raw_text=ingredients_text,
            reported_allergens=db_allergens,
        )

    @staticmethod
    def parse_ingredients(ingredients_text: str) -> list[str]:
        if not ingredients_text.strip():
            return []
        cleaned = _PARENTHETICAL.sub("", ingredients_text)
        parts = (p.strip() for p in _LIST_SEPARATOR.split(cleaned))
        return [p for p in parts if len(p) > 1][:MAX_INGREDIENTS]

    @staticmethod
    def parse_nutrition(product: dict[str, Any]) -> NutritionFacts:
        nutriments = product.get("nutriments")
        if not isinstance(nutriments, dict):
            return NutritionFacts()

        values: dict[str, str | None] = {
            "serving_size": NutritionFacts.clean(product.get("serving_size")),
        }
        for key, (name, unit, multiplier) in _NUTRIMENTS.items():
            raw = nutriments.get(key)
            try:
                amount = float(raw) * multiplier
            except (TypeError, ValueError):
                continue
            values[name] = format_nutrient(amount, unit)
        return NutritionFacts(**values)

    @staticmethod
    def parse_allergens(product: dict[str, Any]) -> list[str]:
        """Allergen names from ``allergens_tags`` ("en:milk") and the ingredients field."""
        allergens: list[str] = []
        for tag in product.get("allergens_tags") or []:
            name = str(tag).split(":", 1)[-1].replace("-", " ").strip()
            if name and name not in allergens:
                allergens.append(name)
        for part in _text(product.get("allergens_from_ingredients")).split(","):
            name = part.strip()
            if name and name not in allergens:
                allergens.append(name)
        return allergens

    @staticmethod
    def allergen_warnings(
        ingredients_text: str, db_allergens: list[str], profile: AllergenProfile
    ) -> list[str]:
        ingredients_lower = ingredients_text.lower()
        warnings = []
        for name in profile.names():
            needle = name.lower()
            in_database = any(needle in a.lower() for a in db_allergens)
            if in_database or needle in ingredients_lower:
                warnings.append(f"Contains {name}")
        return warnings

    @staticmethod
    def harmful_ingredients(ingredients_text: str) -> list[str]:
        lowered = ingredients_text.lower()
        return [
            f"{pattern}: {reason}"
            for pattern, reason in HARMFUL_PATTERNS
            if pattern in lowered
        ]


def format_nutrient(value: float, unit: str) -> str:
    """Render a per-100g amount: whole units, one decimal, or "<0.1"."""
    if value >= 1:
        return f"{int(value)}{unit}"
    if value >= 0.1:
        return f"{value:.1f}{unit}"
    return f"<0.1{unit}"


def _text(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()
