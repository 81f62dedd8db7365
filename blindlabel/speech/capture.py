"""Voice capture for spoken questions.

Two modes exist. Direct mode drives a streaming recognizer and listens to
its partial and final results. Fallback mode hands the whole round trip to
an external capture flow (a system dialog, a prompt) and gets back one
string. The mode is chosen on first use and kept for the controller's
lifetime.
"""

from __future__ import annotations

import functools
import itertools
import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from .narrator import NarrationController

logger = logging.getLogger(__name__)


# Capture states.


@dataclass(frozen=True)
class CaptureIdle:
    pass


@dataclass(frozen=True)
class CaptureStarting:
    pass


@dataclass(frozen=True)
class CaptureListening:
    pass


@dataclass(frozen=True)
class CaptureProcessing:
    pass


@dataclass(frozen=True)
class CaptureSuccess:
    text: str


@dataclass(frozen=True)
class CaptureError:
    reason: str


CaptureState = Union[
    CaptureIdle,
    CaptureStarting,
    CaptureListening,
    CaptureProcessing,
    CaptureSuccess,
    CaptureError,
]


# Recognizer events.


class RecognitionErrorCode(Enum):
    NO_MATCH = "no_match"
    SPEECH_TIMEOUT = "speech_timeout"
    AUDIO = "audio"
    CLIENT = "client"
    INSUFFICIENT_PERMISSIONS = "insufficient_permissions"
    NETWORK = "network"
    NETWORK_TIMEOUT = "network_timeout"
    RECOGNIZER_BUSY = "recognizer_busy"
    SERVER = "server"


ERROR_REASONS: dict[RecognitionErrorCode, str] = {
    RecognitionErrorCode.NO_MATCH: "No speech detected. Please try again.",
    RecognitionErrorCode.SPEECH_TIMEOUT: "No speech detected. Please try again.",
    RecognitionErrorCode.AUDIO: "Audio recording error",
    RecognitionErrorCode.CLIENT: "Client error",
    RecognitionErrorCode.INSUFFICIENT_PERMISSIONS: "Microphone permission required",
    RecognitionErrorCode.NETWORK: "Network error",
    RecognitionErrorCode.NETWORK_TIMEOUT: "Network timeout",
    RecognitionErrorCode.RECOGNIZER_BUSY: "Recognizer busy",
    RecognitionErrorCode.SERVER: "Server error",
}


@dataclass(frozen=True)
class ReadyForSpeech:
    pass


@dataclass(frozen=True)
class SpeechEnded:
    pass


@dataclass(frozen=True)
class PartialResult:
    text: str


@dataclass(frozen=True)
class FinalResult:
    text: str


@dataclass(frozen=True)
class RecognitionError:
    code: RecognitionErrorCode | None = None

    @property
    def reason(self) -> str:
        return ERROR_REASONS.get(self.code, "Recognition error")


RecognizerEvent = Union[
    ReadyForSpeech, SpeechEnded, PartialResult, FinalResult, RecognitionError
]


# Collaborators.


class StreamingRecognizer(ABC):
    """Speech recognizer that reports results as a stream of events.

    ``start`` may be called again after ``destroy``; the recognizer must
    re-acquire whatever it released.
    """

    @abstractmethod
    def is_available(self) -> bool:
        ...

    @abstractmethod
    def start(self, listener: Callable[[RecognizerEvent], None]) -> None:
        ...

    @abstractmethod
    def stop(self) -> None:
        ...

    @abstractmethod
    def destroy(self) -> None:
        ...


class CaptureFlow(ABC):
    """External capture round trip; calls ``on_complete(None)`` when cancelled."""

    @abstractmethod
    def launch(self, on_complete: Callable[[str | None], None]) -> None:
        ...


@dataclass
class _CaptureSession:
    number: int
    on_result: Callable[[str], None]
    last_partial: str = ""
    delivered: bool = False


class CaptureMode(ABC):
    name: str = ""

    @abstractmethod
    def begin(self, controller: VoiceCaptureController, session: _CaptureSession) -> None:
        ...

    def stop(self) -> None:
        pass

    def release(self) -> None:
        pass


class DirectCaptureMode(CaptureMode):
    name = "direct"

    def __init__(self, recognizer: StreamingRecognizer) -> None:
        self.recognizer = recognizer

    def begin(self, controller: VoiceCaptureController, session: _CaptureSession) -> None:
        # Bind the listener to this session so late events from an older
        # session can be told apart.
        listener = functools.partial(controller._on_recognizer_event, session.number)
        self.recognizer.start(listener)

    def stop(self) -> None:
        self.recognizer.stop()

    def release(self) -> None:
        self.recognizer.destroy()


class FallbackCaptureMode(CaptureMode):
    name = "fallback"

    def __init__(self, flow: CaptureFlow | None) -> None:
        self.flow = flow

    def begin(self, controller: VoiceCaptureController, session: _CaptureSession) -> None:
        if self.flow is None:
            raise RuntimeError("Speech recognition not configured")
        self.flow.launch(
            functools.partial(controller._on_flow_complete, session.number)
        )
        controller._mark_listening(session.number)


class VoiceCaptureController:
    """Capture one spoken utterance per ``start_listening`` call.

    Every session delivers exactly one string to its callback. A blank
    string means nothing usable was heard.
    """

    def __init__(
        self,
        recognizer: StreamingRecognizer | None = None,
        capture_flow: CaptureFlow | None = None,
        narrator: NarrationController | None = None,
    ) -> None:
        self._recognizer = recognizer
        self._capture_flow = capture_flow
        self._narrator = narrator
        self._lock = threading.RLock()
        self._numbers = itertools.count(1)
        self._session: _CaptureSession | None = None
        self._mode: CaptureMode | None = None
        self._state: CaptureState = CaptureIdle()

    @property
    def state(self) -> CaptureState:
        with self._lock:
            return self._state

    @property
    def mode(self) -> CaptureMode:
        with self._lock:
            return self._ensure_mode()

    def start_listening(self, on_result: Callable[[str], None]) -> None:
        if self._narrator is not None:
            self._narrator.stop()

        with self._lock:
            session = _CaptureSession(number=next(self._numbers), on_result=on_result)
            self._session = session
            self._state = CaptureStarting()
            mode = self._ensure_mode()
        logger.debug("Starting capture session %d (%s)", session.number, mode.name)

        try:
            mode.begin(self, session)
        except Exception as e:
            logger.exception("Failed to start speech capture")
            self._finish(session.number, "", CaptureError(f"Failed to start: {e}"))

    def stop_listening(self) -> None:
        """Ask the recognizer to finish; the result arrives via the callback."""
        with self._lock:
            mode = self._mode
            last_partial = self._session.last_partial if self._session else ""
        logger.debug("stop_listening called, partial result: %s", last_partial)
        if mode is not None:
            mode.stop()

    def destroy(self) -> None:
        """Release the recognizer; a session still waiting receives ``""``."""
        with self._lock:
            session = self._session
            self._session = None
            claimed = session is not None and self._settle(session, CaptureIdle())
            self._state = CaptureIdle()
            mode = self._mode
        if mode is not None:
            mode.release()
        if claimed:
            logger.debug("Capture session %d ended by destroy", session.number)
            session.on_result("")

    def _ensure_mode(self) -> CaptureMode:
        if self._mode is None:
            if self._recognizer is not None and self._recognizer.is_available():
                self._mode = DirectCaptureMode(self._recognizer)
            else:
                logger.warning(
                    "Direct speech recognition not available, using fallback capture"
                )
                self._mode = FallbackCaptureMode(self._capture_flow)
        return self._mode

    def _current(self, number: int) -> _CaptureSession | None:
        session = self._session
        if session is None or session.number != number:
            return None
        return session

    def _mark_listening(self, number: int) -> None:
        with self._lock:
            if self._current(number) is not None and isinstance(
                self._state, CaptureStarting
            ):
                self._state = CaptureListening()

    def _settle(self, session: _CaptureSession, state: CaptureState) -> bool:
        """Apply a terminal state; True if the caller now owns the delivery.

        Once a session has delivered, later terminal events leave it alone.
        """
        if session.delivered:
            return False
        session.delivered = True
        self._state = state
        return True

    def _finish(self, number: int, text: str, state: CaptureState) -> None:
        with self._lock:
            session = self._current(number)
            if session is None:
                logger.debug("Ignoring result for stale capture session %d", number)
                return
            claimed = self._settle(session, state)
        if claimed:
            session.on_result(text)

    def _on_recognizer_event(self, number: int, event: RecognizerEvent) -> None:
        delivery: str | None = None
        with self._lock:
            session = self._current(number)
            if session is None:
                logger.debug("Ignoring %s from stale capture session %d", event, number)
                return

            match event:
                case ReadyForSpeech() if not session.delivered:
                    self._state = CaptureListening()
                case SpeechEnded() if not session.delivered:
                    self._state = CaptureProcessing()
                case PartialResult(text=text):
                    if text.strip():
                        session.last_partial = text
                        logger.debug("Partial: %s", text)
                case FinalResult(text=text):
                    logger.debug("Recognized: %s", text)
                    best = text if text.strip() else session.last_partial
                    if self._settle(session, CaptureSuccess(best)):
                        delivery = best
                case RecognitionError():
                    logger.error(
                        "Speech recognition error: %s - %s", event.code, event.reason
                    )
                    if self._settle(session, CaptureError(event.reason)):
                        delivery = (
                            session.last_partial
                            if session.last_partial.strip() else ""
                        )

        if delivery is not None:
            session.on_result(delivery)

    def _on_flow_complete(self, number: int, text: str | None) -> None:
        if text is None:
            logger.debug("Capture flow cancelled")
            self._finish(number, "", CaptureIdle())
        else:
            logger.debug("Capture flow result: %s", text)
            self._finish(number, text, CaptureSuccess(text))
