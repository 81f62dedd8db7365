"""Local, offline extraction backend built on the regex rules."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..extraction.builder import ProductRecordBuilder
from ..extraction.patterns import PatternExtractor
from . import TextExtractor

if TYPE_CHECKING:
    from ..extraction.allergens import AllergenProfile
    from ..models import CapturedText, ProductRecord


class PatternTextExtractor(TextExtractor):
    def __init__(
        self,
        extractor: PatternExtractor | None = None,
        builder: ProductRecordBuilder | None = None,
    ) -> None:
        self._extractor = extractor or PatternExtractor()
        self._builder = builder or ProductRecordBuilder()

    async def extract(
        self, captured: CapturedText, profile: AllergenProfile
    ) -> ProductRecord | None:
        if not captured.has_text():
            return None
        result = self._extractor.extract(captured.all_text, captured.front_text)
        return self._builder.build(result, profile)
