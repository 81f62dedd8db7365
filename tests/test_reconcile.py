"""Tests for source reconciliation."""

import pytest

from blindlabel.errors import InsufficientEvidenceError
from blindlabel.extraction.allergens import AllergenProfile, CommonAllergen
from blindlabel.extraction.builder import FALLBACK_PRODUCT_NAME
from blindlabel.models import NutritionFacts, ProductRecord
from blindlabel.reconcile import SourceReconciler

PROFILE = AllergenProfile(common=(CommonAllergen.MILK,))


def _barcode_record() -> ProductRecord:
    return ProductRecord(
        product_name="Database Cereal",
        ingredients=("oats", "milk powder"),
        major_ingredients=("oats", "milk powder"),
        nutrition=NutritionFacts(calories="380kcal", protein="12g", sugars="5g"),
        allergen_warnings=("Contains Milk",),
        detected_allergens=("Milk",),
        harmful_ingredients=("bht: possible carcinogen",),
        raw_text="oats, milk powder",
    )


def _text_record() -> ProductRecord:
    return ProductRecord(
        product_name="Label Cereal",
        ingredients=("oats",),
        major_ingredients=("oats",),
        nutrition=NutritionFacts(calories="150"),
        raw_text="Ingredients: oats. Calories 150",
    )


class TestSourceReconciler:
    def test_hybrid_takes_nutrition_from_text(self):
        barcode, text = _barcode_record(), _text_record()
        merged = SourceReconciler().reconcile(barcode, text, text.raw_text, PROFILE)

        assert merged.nutrition == text.nutrition
        assert merged.nutrition.protein is None
        assert merged.product_name == barcode.product_name
        assert merged.ingredients == barcode.ingredients
        assert merged.allergen_warnings == barcode.allergen_warnings
        assert merged.detected_allergens == barcode.detected_allergens
        assert merged.harmful_ingredients == barcode.harmful_ingredients
        assert merged.raw_text == barcode.raw_text

    def test_barcode_only(self):
        barcode = _barcode_record()
        assert SourceReconciler().reconcile(barcode, None, "", PROFILE) is barcode

    def test_text_only(self):
        text = _text_record()
        assert SourceReconciler().reconcile(None, text, text.raw_text, PROFILE) is text

    def test_neither_with_text(self):
        record = SourceReconciler().reconcile(None, None, "whole milk", PROFILE)
        assert record.product_name == FALLBACK_PRODUCT_NAME
        assert record.raw_text == "whole milk"
        assert record.detected_allergens == ("Milk",)

    @pytest.mark.parametrize("raw_text", ["", "   \n"])
    def test_neither_without_text(self, raw_text):
        with pytest.raises(InsufficientEvidenceError, match="No text detected"):
            SourceReconciler().reconcile(None, None, raw_text, PROFILE)
