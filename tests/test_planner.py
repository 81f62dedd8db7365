"""Tests for speech section planning."""

import pytest

from blindlabel.models import NutritionFacts, ProductRecord, SectionType
from blindlabel.speech.planner import (
    ReadingPreferences,
    SpeechSectionPlanner,
    answer_section,
    clamp_rate,
)


def _full_record() -> ProductRecord:
    ingredients = ("oats", "sugar", "honey", "salt", "milk", "vitamin e")
    return ProductRecord(
        product_name="Oat Bars",
        ingredients=ingredients,
        major_ingredients=ingredients[:5],
        nutrition=NutritionFacts(
            serving_size="40g",
            calories="190",
            total_fat="7 g",
            saturated_fat="1 g",
            sugars="12 g",
            protein="3 g",
            sodium="160 mg",
        ),
        detected_allergens=("Milk",),
        expiry="12/2025",
        usage_instructions="Store in a cool, dry place.",
        harmful_ingredients=("bht: possible carcinogen",),
    )


class TestReadingPreferences:
    def test_defaults(self):
        prefs = ReadingPreferences()
        assert prefs.allergen_alert and prefs.nutrition and prefs.auto_play
        assert prefs.speech_rate == 1.0

    @pytest.mark.parametrize("rate, expected", [(0.1, 0.5), (1.3, 1.3), (5.0, 2.0)])
    def test_rate_clamped(self, rate, expected):
        assert ReadingPreferences(speech_rate=rate).speech_rate == expected
        assert clamp_rate(rate) == expected


class TestSpeechSectionPlanner:
    def test_fixed_order(self):
        sections = SpeechSectionPlanner().plan(_full_record(), ReadingPreferences())
        assert [s.type for s in sections] == [
            SectionType.ALLERGEN_ALERT,
            SectionType.PRODUCT_NAME,
            SectionType.INGREDIENTS,
            SectionType.HARMFUL_INGREDIENTS,
            SectionType.NUTRITION,
            SectionType.EXPIRY,
            SectionType.USAGE_INSTRUCTIONS,
        ]

    def test_allergen_alert_first(self):
        sections = SpeechSectionPlanner().plan(_full_record(), ReadingPreferences())
        assert sections[0].content == "Warning! This product contains: Milk"

    def test_no_alert_without_detected_allergens(self):
        record = ProductRecord(product_name="Water")
        sections = SpeechSectionPlanner().plan(record, ReadingPreferences())
        assert [s.type for s in sections] == [SectionType.PRODUCT_NAME]

    def test_major_ingredients(self):
        sections = SpeechSectionPlanner().plan(_full_record(), ReadingPreferences())
        ingredients = next(s for s in sections if s.type is SectionType.INGREDIENTS)
        assert ingredients.content == "Main ingredients: oats, sugar, honey, salt, milk"

    def test_all_ingredients(self):
        prefs = ReadingPreferences(major_ingredients_only=False)
        sections = SpeechSectionPlanner().plan(_full_record(), prefs)
        ingredients = next(s for s in sections if s.type is SectionType.INGREDIENTS)
        assert ingredients.content.startswith("Ingredients: ")
        assert ingredients.content.endswith("vitamin e")

    def test_expiry_wording(self):
        sections = SpeechSectionPlanner().plan(_full_record(), ReadingPreferences())
        assert sections[-2].content == "Best before: 12/2025"

    def test_nutrition_gating(self):
        prefs = ReadingPreferences(calories=False, fats=False, sugars=False)
        sections = SpeechSectionPlanner().plan(_full_record(), prefs)
        nutrition = next(s for s in sections if s.type is SectionType.NUTRITION)
        assert nutrition.content == "Serving size: 40g. Protein: 3 g. Sodium: 160 mg"

    def test_nutrition_omitted_when_nothing_available(self):
        record = ProductRecord(
            product_name="Tea",
            nutrition=NutritionFacts(calories="2"),
        )
        prefs = ReadingPreferences(calories=False)
        sections = SpeechSectionPlanner().plan(record, prefs)
        assert SectionType.NUTRITION not in [s.type for s in sections]

    def test_flags_disable_sections(self):
        prefs = ReadingPreferences(
            allergen_alert=False,
            product_name=False,
            harmful_ingredients=False,
            usage_instructions=False,
        )
        sections = SpeechSectionPlanner().plan(_full_record(), prefs)
        assert [s.type for s in sections] == [
            SectionType.INGREDIENTS,
            SectionType.NUTRITION,
            SectionType.EXPIRY,
        ]

    def test_empty_record(self):
        assert SpeechSectionPlanner().plan(ProductRecord(), ReadingPreferences()) == []


def test_answer_section():
    section = answer_section("It contains 12 grams of sugar.")
    assert section.type is SectionType.ANSWER
    assert section.title == "Answer"
    assert section.content == "It contains 12 grams of sugar."
