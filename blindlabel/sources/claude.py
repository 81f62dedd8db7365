"""Claude API backend for label extraction and product Q&A."""

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


async def _complete(api_key: str, model: str, prompt: str, max_tokens: int) -> str:
    if not api_key:
        raise ValueError(
            "Anthropic API key is not set. "
            "Check the config file or the ANTHROPIC_API_KEY environment variable."
        )

    try:
        import anthropic
    except ImportError:
        raise ImportError(
            "anthropic SDK is required: pip install anthropic"
        ) from None

    client = anthropic.AsyncAnthropic(api_key=api_key)
    response = await client.messages.create(
        model=model,
        max_tokens=max_tokens,
        temperature=0.3,
        messages=[{"role": "user", "content": prompt}],
    )
    if not response.content:
        return ""
    return response.content[0].text


class ClaudeExtractor(TextExtractor):
    """Extract structured product data from OCR text with Claude."""

    def __init__(
        self,
        api_key: str = "",
        model: str = "claude-sonnet-4-5-20250929",
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
        text = await _complete(self._api_key, self._model, prompt, max_tokens=2048)
        result = parse_extraction_response(text, captured.all_text)
        return self._builder.build(result, profile)


class ClaudeAnswerer(QuestionAnswerer):
    def __init__(
        self, api_key: str = "", model: str = "claude-sonnet-4-5-20250929"
    ) -> None:
        self._api_key = api_key
        self._model = model

    async def answer(self, question: str, record: ProductRecord) -> str:
        prompt = build_question_prompt(question, record)
        text = await _complete(self._api_key, self._model, prompt, max_tokens=512)
        return text.strip() or NO_ANSWER
