"""Scan pipeline: query every source concurrently, then reconcile."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import TYPE_CHECKING

from .reconcile import SourceReconciler
from .sources import TextExtractor, create_extractor
from .sources.openfoodfacts import OpenFoodFactsClient

if TYPE_CHECKING:
    from .config import BlindLabelConfig
    from .extraction.allergens import AllergenProfile
    from .models import CapturedText, ProductRecord

logger = logging.getLogger(__name__)


class ScanPipeline:
    """Turn one scan's evidence into a single product record.

    A source that fails is logged and counts as "no record"; only
    InsufficientEvidenceError from the reconciler reaches the caller.
    """

    def __init__(
        self,
        extractor: TextExtractor | None = None,
        barcode_client: OpenFoodFactsClient | None = None,
        reconciler: SourceReconciler | None = None,
    ) -> None:
        self.extractor = extractor
        self.barcode_client = barcode_client
        self.reconciler = reconciler or SourceReconciler()

    @classmethod
    def from_config(cls, config: BlindLabelConfig) -> ScanPipeline:
        barcode_client = None
        if config.barcode.enabled:
            barcode_client = OpenFoodFactsClient(
                base_url=config.barcode.base_url,
                user_agent=config.barcode.user_agent,
                timeout=config.barcode.timeout,
            )
        return cls(
            extractor=create_extractor(config),
            barcode_client=barcode_client,
        )

    async def __aenter__(self) -> ScanPipeline:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self.barcode_client is not None:
            await self.barcode_client.aclose()

    async def analyze(
        self,
        captured: CapturedText,
        barcode: str | None,
        profile: AllergenProfile,
    ) -> ProductRecord:
        """Run the barcode lookup and text extraction, then reconcile.

        Raises:
            InsufficientEvidenceError: No barcode match and no captured text.
        """
        pending: dict[str, Awaitable[ProductRecord | None]] = {}
        if barcode and barcode.strip() and self.barcode_client is not None:
            pending["barcode"] = self.barcode_client.lookup(barcode, profile)
        if captured.has_text() and self.extractor is not None:
            pending["text"] = self.extractor.extract(captured, profile)

        logger.info("Querying sources: %s", ", ".join(pending) or "none")
        outcomes = await asyncio.gather(*pending.values(), return_exceptions=True)

        records: dict[str, ProductRecord | None] = {}
        for name, outcome in zip(pending, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.error("%s source failed", name, exc_info=outcome)
                records[name] = None
            else:
                records[name] = outcome

        return self.reconciler.reconcile(
            records.get("barcode"),
            records.get("text"),
            captured.all_text,
            profile,
        )
