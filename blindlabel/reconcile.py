"""Merge barcode-database and label-text records into one canonical record."""

from __future__ import annotations

import logging

from .errors import InsufficientEvidenceError
from .extraction.allergens import AllergenProfile
from .extraction.builder import ProductRecordBuilder
from .models import ProductRecord

logger = logging.getLogger(__name__)


class SourceReconciler:
    """Apply the fixed source precedence.

    When both sources produced a record the barcode record supplies
    everything except nutrition, which comes from the label text: database
    values are normalized per 100 g and do not describe this package.
    """

    def __init__(self, builder: ProductRecordBuilder | None = None) -> None:
        self._builder = builder or ProductRecordBuilder()

    def reconcile(
        self,
        barcode_record: ProductRecord | None,
        text_record: ProductRecord | None,
        raw_text: str,
        profile: AllergenProfile,
    ) -> ProductRecord:
        """Return the single record to present.

        Raises:
            InsufficientEvidenceError: No barcode match and no raw text.
        """
        if barcode_record is not None and text_record is not None:
            logger.info("Using hybrid record: barcode fields + label nutrition")
            return barcode_record.with_nutrition(text_record.nutrition)

        if barcode_record is not None:
            logger.info("Using barcode record only")
            return barcode_record

        if text_record is not None:
            logger.info("Using label text record only")
            return text_record

        if raw_text and raw_text.strip():
            logger.warning("No structured source succeeded; using raw text only")
            return self._builder.build_minimal(raw_text, profile)

        logger.warning("No barcode match and no label text")
        raise InsufficientEvidenceError()
