"""Food label reading for blind and low-vision users."""

from .config import BlindLabelConfig, load_config
from .errors import InsufficientEvidenceError
from .extraction import (
    AllergenMatcher,
    AllergenProfile,
    CommonAllergen,
    PatternExtractor,
    ProductRecordBuilder,
)
from .models import (
    CapturedText,
    ExtractionResult,
    NutritionFacts,
    ProductRecord,
    SectionType,
    SpeechSection,
)
from .pipeline import ScanPipeline
from .reconcile import SourceReconciler
from .sources import QuestionAnswerer, TextExtractor, create_answerer, create_extractor
from .speech import (
    NarrationController,
    QuestionAssistant,
    ReadingPreferences,
    SpeechOutput,
    SpeechSectionPlanner,
    VoiceCaptureController,
)

__all__ = [
    "BlindLabelConfig",
    "load_config",
    "InsufficientEvidenceError",
    "AllergenMatcher",
    "AllergenProfile",
    "CommonAllergen",
    "PatternExtractor",
    "ProductRecordBuilder",
    "CapturedText",
    "ExtractionResult",
    "NutritionFacts",
    "ProductRecord",
    "SectionType",
    "SpeechSection",
    "ScanPipeline",
    "SourceReconciler",
    "TextExtractor",
    "QuestionAnswerer",
    "create_extractor",
    "create_answerer",
    "NarrationController",
    "QuestionAssistant",
    "ReadingPreferences",
    "SpeechOutput",
    "SpeechSectionPlanner",
    "VoiceCaptureController",
]
