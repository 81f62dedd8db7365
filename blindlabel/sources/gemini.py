"""Gemini API backend for label extraction and product Q&A."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..extraction.builder import ProductRecordBuilder
from . import QuestionAnswerer, TextExtractor
from .response import (
    NO_ANSWER,
    build_extraction_prompt,
    build_question_prompt,
    parse_extraction_response,
)

if TYPE_CHECKING:
    from ..extraction.allergens import AllergenProfile
    from ..models import CapturedText, ProductRecord

logger = logging.getLogger(__name__)

_GENERATION_CONFIG = {
    "temperature": 0.3,
    "top_k": 40,
    "top_p": 0.95,
    "max_output_tokens": 2048,
}


async def _generate(api_key: str, model_name: str, prompt: str) -> str:
    if not api_key:
        raise ValueError(
            "Gemini API key is not set. "
            "Check the config file or the GEMINI_API_KEY environment variable."
        )

    try:
        import google.generativeai as genai
    except ImportError:
        raise ImportError(
            "google-generativeai SDK is required: pip install google-generativeai"
        ) from None

    genai.configure(api_key=api_key)
    model = genai.GenerativeModel(model_name, generation_config=_GENERATION_CONFIG)
    response = await model.generate_content_async(prompt)
    try:
        return response.text or ""
    except ValueError:
        # Raised by the SDK when the reply has no text parts (e.g. blocked).
        return ""


class GeminiExtractor(TextExtractor):
    """Extract structured product data from OCR text with Google Gemini."""

    def __init__(
        self,
        api_key: str = "",
        model: str = "gemini-2.0-flash",
        builder: ProductRecordBuilder | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._builder = builder or ProductRecordBuilder()

    async def extract(
        self, captured: CapturedText, profile: AllergenProfile
    ) -> ProductRecord | None:
        if not captured.has_text():
            return None
        prompt = build_extraction_prompt(captured.all_text, profile.names())
        logger.debug("Requesting extraction from %s", self._model)
        text = await _generate(self._api_key, self._model, prompt)
        result = parse_extraction_response(text, captured.all_text)
        return self._builder.build(result, profile)


class GeminiAnswerer(QuestionAnswerer):
    def __init__(self, api_key: str = "", model: str = "gemini-2.0-flash") -> None:
        self._api_key = api_key
        self._model = model

    async def answer(self, question: str, record: ProductRecord) -> str:
        prompt = build_question_prompt(question, record)
        text = await _generate(self._api_key, self._model, prompt)
        return text.strip() or NO_ANSWER
