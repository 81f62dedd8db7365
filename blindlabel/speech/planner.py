"""Turn a product record into an ordered list of speakable sections."""

from __future__ import annotations

from dataclasses import dataclass

from ..models import ProductRecord, SectionType, SpeechSection

MIN_SPEECH_RATE = 0.5
MAX_SPEECH_RATE = 2.0


def clamp_rate(rate: float) -> float:
    return max(MIN_SPEECH_RATE, min(MAX_SPEECH_RATE, rate))


@dataclass(frozen=True)
class ReadingPreferences:
    """Which parts of a record to read aloud, and how fast."""

    allergen_alert: bool = True
    product_name: bool = True
    ingredients: bool = True
    major_ingredients_only: bool = True
    nutrition: bool = True
    calories: bool = True
    protein: bool = True
    fats: bool = True
    sugars: bool = True
    expiry: bool = True
    usage_instructions: bool = True
    harmful_ingredients: bool = True
    speech_rate: float = 1.0
    auto_play: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "speech_rate", clamp_rate(self.speech_rate))


class SpeechSectionPlanner:
    """Build sections in a fixed, safety-first order.

    Allergen alerts always lead and harmful ingredients are read before
    nutrition. The order never depends on content.
    """

    def plan(
        self, record: ProductRecord, prefs: ReadingPreferences
    ) -> list[SpeechSection]:
        sections: list[SpeechSection] = []

        if prefs.allergen_alert and record.detected_allergens:
            sections.append(SpeechSection(
                type=SectionType.ALLERGEN_ALERT,
                title="Allergen Alert",
                content="Warning! This product contains: "
                + ", ".join(record.detected_allergens),
            ))

        if prefs.product_name and record.product_name:
            sections.append(SpeechSection(
                type=SectionType.PRODUCT_NAME,
                title="Product Name",
                content=f"Product: {record.product_name}",
            ))

        if prefs.ingredients:
            if prefs.major_ingredients_only:
                ingredients, label = record.major_ingredients, "Main ingredients"
            else:
                ingredients, label = record.ingredients, "Ingredients"
            if ingredients:
                sections.append(SpeechSection(
                    type=SectionType.INGREDIENTS,
                    title="Ingredients",
                    content=f"{label}: {', '.join(ingredients)}",
                ))

        if prefs.harmful_ingredients and record.harmful_ingredients:
            sections.append(SpeechSection(
                type=SectionType.HARMFUL_INGREDIENTS,
                title="Harmful Ingredients",
                content="Warning! This product contains potentially harmful "
                "ingredients: " + ". ".join(record.harmful_ingredients),
            ))

        if prefs.nutrition:
            parts = self._nutrition_parts(record, prefs)
            if parts:
                sections.append(SpeechSection(
                    type=SectionType.NUTRITION,
                    title="Nutrition Facts",
                    content=". ".join(parts),
                ))

        if prefs.expiry and record.expiry:
            sections.append(SpeechSection(
                type=SectionType.EXPIRY,
                title="Expiry Date",
                content=f"Best before: {record.expiry}",
            ))

        if prefs.usage_instructions and record.usage_instructions:
            sections.append(SpeechSection(
                type=SectionType.USAGE_INSTRUCTIONS,
                title="Storage Instructions",
                content=record.usage_instructions,
            ))

        return sections

    @staticmethod
    def _nutrition_parts(
        record: ProductRecord, prefs: ReadingPreferences
    ) -> list[str]:
        n = record.nutrition
        rows: list[tuple[str, str | None, bool]] = [
            ("Serving size", n.serving_size, True),
            ("Calories", n.calories, prefs.calories),
            ("Total fat", n.total_fat, prefs.fats),
            ("Saturated fat", n.saturated_fat, prefs.fats),
            ("Carbohydrates", n.carbohydrates, True),
            ("Sugars", n.sugars, prefs.sugars),
            ("Fiber", n.fiber, True),
            ("Protein", n.protein, prefs.protein),
            ("Sodium", n.sodium, True),
        ]
        return [f"{label}: {value}" for label, value, enabled in rows
                if enabled and value is not None]


def answer_section(text: str) -> SpeechSection:
    """Single ad hoc section used to speak a question's answer."""
    return SpeechSection(type=SectionType.ANSWER, title="Answer", content=text)
