"""Spoken question answering about the current product."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from ..models import ProductRecord
    from ..sources import QuestionAnswerer
    from .capture import VoiceCaptureController
    from .narrator import NarrationController

logger = logging.getLogger(__name__)

NOT_AVAILABLE = (
    "Question answering is not available. No AI backend is configured."
)
ANSWER_FAILED = "Sorry, I couldn't answer that question."


@dataclass(frozen=True)
class QAIdle:
    pass


@dataclass(frozen=True)
class QAListening:
    pass


@dataclass(frozen=True)
class QALoading:
    pass


@dataclass(frozen=True)
class QASuccess:
    question: str
    answer: str


@dataclass(frozen=True)
class QAError:
    message: str


QAState = Union[QAIdle, QAListening, QALoading, QASuccess, QAError]


class QuestionAssistant:
    """Capture a spoken question, answer it, and speak the answer.

    Answers preempt any narration in progress.
    """

    def __init__(
        self,
        record: ProductRecord,
        capture: VoiceCaptureController,
        narrator: NarrationController,
        answerer: QuestionAnswerer | None = None,
        speech_rate: float = 1.0,
    ) -> None:
        self.record = record
        self._capture = capture
        self._narrator = narrator
        self._answerer = answerer
        self._speech_rate = speech_rate
        self.state: QAState = QAIdle()

    async def listen(self) -> str:
        """Run one capture session and return its (possibly blank) text."""
        loop = asyncio.get_running_loop()
        future: asyncio.Future[str] = loop.create_future()

        def resolve(text: str) -> None:
            if not future.done():
                future.set_result(text)

        def on_result(text: str) -> None:
            # May be called from a recognizer thread.
            loop.call_soon_threadsafe(resolve, text)

        self.state = QAListening()
        self._capture.start_listening(on_result)
        text = await future
        logger.debug("Speech recognition result: %r", text)
        return text

    def stop_listening(self) -> None:
        self._capture.stop_listening()

    async def ask(self, question: str) -> str | None:
        """Answer ``question`` and speak the reply; blank questions are ignored."""
        question = question.strip()
        if not question:
            self.state = QAIdle()
            return None

        if self._answerer is None:
            self.state = QAError(NOT_AVAILABLE)
            self._speak(NOT_AVAILABLE)
            return NOT_AVAILABLE

        self.state = QALoading()
        try:
            answer = await self._answerer.answer(question, self.record)
        except Exception:
            logger.exception("Error answering question: %s", question)
            self.state = QAError(ANSWER_FAILED)
            self._speak(ANSWER_FAILED)
            return ANSWER_FAILED

        self.state = QASuccess(question, answer)
        self._speak(answer)
        return answer

    async def listen_and_answer(self) -> str | None:
        text = await self.listen()
        if not text.strip():
            logger.debug("No transcribed text, returning to idle")
            self.state = QAIdle()
            return None
        return await self.ask(text)

    def _speak(self, text: str) -> None:
        self._narrator.speak_answer(text, self._speech_rate)
