"""Remote and local product sources, their base classes and factories."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..config import BlindLabelConfig
    from ..extraction.allergens import AllergenProfile
    from ..models import CapturedText, ProductRecord

logger = logging.getLogger(__name__)


class TextExtractor(ABC):
    """Turns captured label text into a product record."""

    @abstractmethod
    async def extract(
        self, captured: CapturedText, profile: AllergenProfile
    ) -> ProductRecord | None:
        """Return a record, or None when there is nothing to extract from."""
        ...


class QuestionAnswerer(ABC):
    """Answers free-form questions about one product record."""

    @abstractmethod
    async def answer(self, question: str, record: ProductRecord) -> str:
        ...


def create_extractor(config: BlindLabelConfig) -> TextExtractor | None:
    """Create the label text extractor named by ``extraction.backend``."""
    backend_name = config.extraction.backend

    match backend_name:
        case "gemini":
            from .gemini import GeminiExtractor

            return GeminiExtractor(
                api_key=config.extraction.gemini.api_key,
                model=config.extraction.gemini.model,
            )
        case "claude":
            from .claude import ClaudeExtractor

            return ClaudeExtractor(
                api_key=config.extraction.claude.api_key,
                model=config.extraction.claude.model,
            )
        case "pattern":
            from .pattern import PatternTextExtractor

            return PatternTextExtractor()
        case "none":
            return None
        case _:
            raise ValueError(
                f"Unknown extraction backend: {backend_name!r} "
                f"(choose one of gemini / claude / pattern / none)"
            )


def create_answerer(config: BlindLabelConfig) -> QuestionAnswerer | None:
    """Create the Q&A backend, or None when question answering is unavailable."""
    if not config.qa.enabled:
        return None

    match config.extraction.backend:
        case "gemini" if config.extraction.gemini.api_key:
            from .gemini import GeminiAnswerer

            return GeminiAnswerer(
                api_key=config.extraction.gemini.api_key,
                model=config.extraction.gemini.model,
            )
        case "claude" if config.extraction.claude.api_key:
            from .claude import ClaudeAnswerer

            return ClaudeAnswerer(
                api_key=config.extraction.claude.api_key,
                model=config.extraction.claude.model,
            )
        case _:
            logger.info("Question answering disabled: no AI backend configured")
            return None
