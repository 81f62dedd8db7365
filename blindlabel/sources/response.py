"""Prompts for the AI backends and parsing of their JSON replies."""

from __future__ import annotations

import json
import logging

from ..models import ExtractionResult, NutritionFacts, ProductRecord

logger = logging.getLogger(__name__)

PARSE_ERROR_NAME = "Parse error"
ANALYSIS_FAILED_NAME = "Could not identify product"
NO_ANSWER = "I couldn't generate a response. Please try again."

_EXTRACTION_PROMPT = """\
You are a food label analysis AI. Extract structured information from this OCR text of a food product label.

OCR TEXT:
\"\"\"
{ocr_text}
\"\"\"

USER'S ALLERGENS: {allergens}

IMPORTANT INSTRUCTIONS:
1. For ALL nutrition values, extract ONLY the NUMERIC VALUE with its unit (e.g., "150 kcal", "8g", "200mg")
2. Do NOT include labels like "per serving" or "Amount per serving" - just the number and unit
3. If a nutrition value is not found or unclear, use null
4. Look for numbers near nutrition labels (Calories, Fat, Protein, etc.)

Analyze the text and respond with ONLY a valid JSON object (no markdown, no explanation) with this exact structure:
{{
    "product_name": "extracted product name or null if not found",
    "ingredients": ["ingredient1", "ingredient2", ...],
    "nutrition": {{
        "serving_size": "numeric amount with unit, e.g., 1 cup (240ml), 30g",
        "calories": "ONLY the number, e.g., 150",
        "total_fat": "number with g, e.g., 8g",
        "saturated_fat": "number with g, e.g., 3g",
        "trans_fat": "number with g, e.g., 0g",
        "carbohydrates": "number with g, e.g., 20g",
        "sugars": "number with g, e.g., 12g",
        "fiber": "number with g, e.g., 2g",
        "protein": "number with g, e.g., 5g",
        "sodium": "number with mg, e.g., 150mg",
        "cholesterol": "number with mg, e.g., 10mg"
    }},
    "allergen_warnings": ["contains milk", "may contain nuts", ...],
    "detected_user_allergens": ["allergens from user's list found in product"],
    "harmful_ingredients": ["ingredient name: reason it's harmful", ...],
    "expiry_date": "extracted date or null",
    "storage_instructions": "extracted instructions or null"
}}

HARMFUL INGREDIENTS GUIDELINES - Flag these if found:
- High fructose corn syrup: linked to obesity and diabetes
- Artificial colors (Red 40, Yellow 5, Blue 1, etc.): may cause hyperactivity
- MSG/Monosodium glutamate: may cause headaches in sensitive individuals
- Sodium nitrite/nitrate: linked to cancer risk when processed
- BHA/BHT: potential carcinogens
- Partially hydrogenated oils: contains trans fats
- Artificial sweeteners (aspartame, sucralose, saccharin): controversial health effects
- Potassium bromate: banned in many countries, potential carcinogen
- Propyl paraben: endocrine disruptor

Be thorough in identifying ALL ingredients and ALL nutrition facts. Return ONLY the JSON.
"""

_QUESTION_PROMPT = """\
You are a helpful food nutrition assistant for visually impaired users.

PRODUCT INFORMATION:
{context}

USER QUESTION: {question}

Provide a clear, concise answer (under 100 words) suitable for text-to-speech.
If the question cannot be answered from the available information, say so clearly.
"""


def build_extraction_prompt(ocr_text: str, allergens: list[str]) -> str:
    return _EXTRACTION_PROMPT.format(
        ocr_text=ocr_text,
        allergens=", ".join(allergens) if allergens else "none specified",
    )


def build_question_prompt(question: str, record: ProductRecord) -> str:
    return _QUESTION_PROMPT.format(context=record.to_context(), question=question)


def parse_extraction_response(text: str | None, raw_text: str) -> ExtractionResult:
    """Parse the JSON object from an extraction reply.

    Never raises: an empty reply or malformed JSON yields a degraded result
    that still carries the raw text.
    """
    if not text or not text.strip():
        return ExtractionResult(
            product_name=ANALYSIS_FAILED_NAME,
            raw_text=raw_text,
            harmful_ingredients=["Analysis failed: empty response"],
        )

    logger.debug("AI response: %s", text)
    cleaned = _strip_fences(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.warning("Could not parse AI response: %s", e)
        return _parse_error(raw_text, str(e))
    if not isinstance(data, dict):
        logger.warning("AI response is not a JSON object")
        return _parse_error(raw_text, "expected a JSON object")

    return ExtractionResult(
        product_name=_scalar(data.get("product_name")),
        ingredients=_strings(data.get("ingredients")),
        nutrition=NutritionFacts.from_mapping(data.get("nutrition")),
        allergen_warnings=_strings(data.get("allergen_warnings")),
        expiry=_scalar(data.get("expiry_date")),
        usage_instructions=_scalar(data.get("storage_instructions")),
        harmful_ingredients=_strings(data.get("harmful_ingredients")),
        raw_text=raw_text,
        reported_allergens=_strings(data.get("detected_user_allergens")),
    )


def suggested_questions(record: ProductRecord) -> list[str]:
    questions = ["Is this product healthy for me?"]
    if record.harmful_ingredients:
        questions.append("Tell me more about the harmful ingredients")
    if record.nutrition.sugars is not None:
        questions.append("Is this safe for diabetics?")
    if record.ingredients:
        questions.append("Is this vegan friendly?")
        questions.append("Is this keto friendly?")
    return questions[:5]


def _strip_fences(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        lines = [l for l in lines[1:] if not l.strip().startswith("```")]
        cleaned = "\n".join(lines)
    return cleaned.strip()


def _parse_error(raw_text: str, reason: str) -> ExtractionResult:
    return ExtractionResult(
        product_name=PARSE_ERROR_NAME,
        raw_text=raw_text,
        harmful_ingredients=[f"Failed to parse: {reason}"],
    )


def _scalar(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if not text or text == "null":
        return None
    return text


def _strings(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [s for s in (_scalar(v) for v in value) if s]
