"""Label text extraction: regex rules, allergen matching, record assembly."""

from .allergens import AllergenMatcher, AllergenProfile, CommonAllergen
from .builder import FALLBACK_PRODUCT_NAME, ProductRecordBuilder
from .patterns import HARMFUL_ADDITIVES, PatternExtractor

__all__ = [
    "AllergenMatcher",
    "AllergenProfile",
    "CommonAllergen",
    "ProductRecordBuilder",
    "FALLBACK_PRODUCT_NAME",
    "PatternExtractor",
    "HARMFUL_ADDITIVES",
]
