"""Core data types shared by the extraction pipeline and the speech layer."""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field, fields, replace
from datetime import datetime, timezone
from enum import Enum

MAJOR_INGREDIENT_COUNT = 5


@dataclass(frozen=True)
class NutritionFacts:
    """Per-label nutrition values as "number + unit" strings (None = not found)."""

    serving_size: str | None = None
    calories: str | None = None
    total_fat: str | None = None
    saturated_fat: str | None = None
    trans_fat: str | None = None
    cholesterol: str | None = None
    sodium: str | None = None
    carbohydrates: str | None = None
    fiber: str | None = None
    sugars: str | None = None
    protein: str | None = None

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None and not any(c.isdigit() for c in value):
                raise ValueError(f"{f.name} must contain a digit: {value!r}")

    @staticmethod
    def clean(value: object) -> str | None:
        """Normalize a raw value; "null", blanks and digitless text become None."""
        if value is None:
            return None
        text = str(value).strip()
        if not text or text.lower() == "null":
            return None
        if not any(c.isdigit() for c in text):
            return None
        return text

    @classmethod
    def from_mapping(cls, data: dict | None) -> NutritionFacts:
        if not isinstance(data, dict):
            return cls()
        return cls(**{f.name: cls.clean(data.get(f.name)) for f in fields(cls)})

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))


@dataclass
class ExtractionResult:
    """Structured fields produced by one source, before identity is assigned."""

    product_name: str | None = None
    ingredients: list[str] = field(default_factory=list)
    nutrition: NutritionFacts = field(default_factory=NutritionFacts)
    allergen_warnings: list[str] = field(default_factory=list)
    expiry: str | None = None
    usage_instructions: str | None = None
    harmful_ingredients: list[str] = field(default_factory=list)
    raw_text: str = ""
    # Allergen names a remote source claims to have found; canonicalized
    # against the user's profile by the record builder.
    reported_allergens: list[str] = field(default_factory=list)


def _new_id() -> str:
    return uuid.uuid4().hex


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ProductRecord:
    """Canonical, reconciled description of one scanned product."""

    product_name: str | None = None
    ingredients: tuple[str, ...] = ()
    major_ingredients: tuple[str, ...] = ()
    nutrition: NutritionFacts = field(default_factory=NutritionFacts)
    allergen_warnings: tuple[str, ...] = ()
    detected_allergens: tuple[str, ...] = ()
    expiry: str | None = None
    usage_instructions: str | None = None
    harmful_ingredients: tuple[str, ...] = ()
    raw_text: str = ""
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_now)

    def has_allergen_alert(self) -> bool:
        return bool(self.detected_allergens)

    def with_nutrition(self, nutrition: NutritionFacts) -> ProductRecord:
        return replace(self, nutrition=nutrition)

    def summary(self) -> str:
        """One-paragraph spoken summary of the key facts."""
        parts: list[str] = []
        if self.has_allergen_alert():
            parts.append(
                "Warning! This product contains: "
                + ", ".join(self.detected_allergens)
            )
        if self.product_name:
            parts.append(f"Product: {self.product_name}")
        if self.major_ingredients:
            parts.append("Main ingredients: " + ", ".join(self.major_ingredients))
        if self.nutrition.calories:
            parts.append(f"Calories: {self.nutrition.calories}")
        if self.nutrition.protein:
            parts.append(f"Protein: {self.nutrition.protein}")
        if self.nutrition.sugars:
            parts.append(f"Sugars: {self.nutrition.sugars}")
        if self.expiry:
            parts.append(f"Expiry date: {self.expiry}")
        if self.usage_instructions:
            parts.append(f"Instructions: {self.usage_instructions}")
        return ". ".join(parts)

    def to_context(self) -> str:
        """Plain-text rendering handed to the question-answering model."""
        n = self.nutrition
        lines: list[str] = []
        if self.product_name:
            lines.append(f"Product: {self.product_name}")
        if self.ingredients:
            lines.append("Ingredients: " + ", ".join(self.ingredients))
        lines.append("Nutrition Facts:")
        for label, value in (
            ("Serving Size", n.serving_size),
            ("Calories", n.calories),
            ("Protein", n.protein),
            ("Total Fat", n.total_fat),
            ("Saturated Fat", n.saturated_fat),
            ("Trans Fat", n.trans_fat),
            ("Cholesterol", n.cholesterol),
            ("Carbohydrates", n.carbohydrates),
            ("Sugars", n.sugars),
            ("Fiber", n.fiber),
            ("Sodium", n.sodium),
        ):
            if value is not None:
                lines.append(f"  {label}: {value}")
        if self.allergen_warnings:
            lines.append("Allergen Warnings: " + ", ".join(self.allergen_warnings))
        if self.harmful_ingredients:
            lines.append(
                "Harmful Ingredients: " + ", ".join(self.harmful_ingredients)
            )
        if self.expiry:
            lines.append(f"Expiry: {self.expiry}")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        for key in (
            "ingredients",
            "major_ingredients",
            "allergen_warnings",
            "detected_allergens",
            "harmful_ingredients",
        ):
            data[key] = list(data[key])
        return data


class SectionType(Enum):
    ALLERGEN_ALERT = "allergen_alert"
    PRODUCT_NAME = "product_name"
    INGREDIENTS = "ingredients"
    NUTRITION = "nutrition"
    EXPIRY = "expiry"
    USAGE_INSTRUCTIONS = "usage_instructions"
    HARMFUL_INGREDIENTS = "harmful_ingredients"
    ANSWER = "answer"


@dataclass(frozen=True)
class SpeechSection:
    type: SectionType
    title: str
    content: str


@dataclass(frozen=True)
class CapturedText:
    """Recognized text for one scan, passed explicitly through the pipeline.

    ``front_text`` and ``back_text`` are the first two blocks (one per
    captured image); ``all_text`` joins every block with a blank line.
    """

    front_text: str = ""
    back_text: str = ""
    all_text: str = ""

    @classmethod
    def from_blocks(cls, blocks: list[str]) -> CapturedText:
        cleaned = [b.strip() for b in blocks]
        return cls(
            front_text=cleaned[0] if len(cleaned) > 0 else "",
            back_text=cleaned[1] if len(cleaned) > 1 else "",
            all_text="\n\n".join(cleaned).strip(),
        )

    def has_text(self) -> bool:
        return bool(self.all_text.strip())
