"""Speech layer: section planning, narration, voice capture and Q&A."""

from .assistant import QuestionAssistant
from .capture import (
    CaptureFlow,
    StreamingRecognizer,
    VoiceCaptureController,
)
from .narrator import ConsoleSpeechOutput, NarrationController, SpeechOutput
from .planner import ReadingPreferences, SpeechSectionPlanner, answer_section

__all__ = [
    "QuestionAssistant",
    "CaptureFlow",
    "StreamingRecognizer",
    "VoiceCaptureController",
    "ConsoleSpeechOutput",
    "NarrationController",
    "SpeechOutput",
    "ReadingPreferences",
    "SpeechSectionPlanner",
    "answer_section",
]
