"""Assemble canonical product records from extraction results."""

from __future__ import annotations

from ..models import MAJOR_INGREDIENT_COUNT, ExtractionResult, ProductRecord
from .allergens import AllergenMatcher, AllergenProfile

FALLBACK_PRODUCT_NAME = "Product (advanced extraction unavailable)"


class ProductRecordBuilder:
    """Turn one source's ExtractionResult into an immutable ProductRecord.

    Allergen detection always runs against the caller's profile; warnings
    printed on the label are carried separately and never feed detection.
    """

    def __init__(self, matcher: AllergenMatcher | None = None) -> None:
        self._matcher = matcher or AllergenMatcher()

    def build(
        self, result: ExtractionResult, profile: AllergenProfile
    ) -> ProductRecord:
        ingredients = tuple(i for i in result.ingredients if i)
        return ProductRecord(
            product_name=result.product_name or None,
            ingredients=ingredients,
            major_ingredients=ingredients[:MAJOR_INGREDIENT_COUNT],
            nutrition=result.nutrition,
            allergen_warnings=tuple(result.allergen_warnings),
            detected_allergens=tuple(self.detect_allergens(result, profile)),
            expiry=result.expiry or None,
            usage_instructions=result.usage_instructions or None,
            harmful_ingredients=tuple(result.harmful_ingredients),
            raw_text=result.raw_text,
        )

    def build_minimal(
        self, raw_text: str, profile: AllergenProfile
    ) -> ProductRecord:
        """Degraded record used when no source produced structured data."""
        return ProductRecord(
            product_name=FALLBACK_PRODUCT_NAME,
            detected_allergens=tuple(self._matcher.match(raw_text, profile)),
            raw_text=raw_text,
        )

    def detect_allergens(
        self, result: ExtractionResult, profile: AllergenProfile
    ) -> list[str]:
        haystack = "\n".join([result.raw_text, ", ".join(result.ingredients)])
        found = set(self._matcher.match(haystack, profile))
        found.update(self._matcher.canonicalize(result.reported_allergens, profile))
        # Keep profile order regardless of which path found the allergen.
        return [name for name in dict.fromkeys(profile.names()) if name in found]
