"""Exceptions surfaced to callers of the scan pipeline."""

from __future__ import annotations


class InsufficientEvidenceError(Exception):
    """Neither a barcode match nor any label text was available."""

    def __init__(
        self,
        message: str = (
            "No text detected in images. Please try again with clearer images."
        ),
    ) -> None:
        super().__init__(message)
