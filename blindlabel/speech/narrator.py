"""Sequential, interruptible narration of speech sections."""

from __future__ import annotations

import itertools
import logging
import sys
import threading
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TextIO, Union

from ..models import SpeechSection
from .planner import answer_section, clamp_rate

logger = logging.getLogger(__name__)


# Events reported by the speech output collaborator.


@dataclass(frozen=True)
class UtteranceStarted:
    utterance_id: str


@dataclass(frozen=True)
class UtteranceDone:
    utterance_id: str


@dataclass(frozen=True)
class UtteranceFailed:
    utterance_id: str
    message: str = "Speech error occurred"


NarrationEvent = Union[UtteranceStarted, UtteranceDone, UtteranceFailed]


# Narration states.


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Speaking:
    index: int
    title: str = ""


@dataclass(frozen=True)
class Paused:
    index: int


@dataclass(frozen=True)
class Ready:
    pass


@dataclass(frozen=True)
class NarrationError:
    message: str


NarrationState = Union[Idle, Speaking, Paused, Ready, NarrationError]


class SpeechOutput(ABC):
    """Text-to-speech engine driven by the narrator.

    Implementations report progress by calling the registered listener with
    UtteranceStarted / UtteranceDone / UtteranceFailed, from any thread.
    """

    @abstractmethod
    def set_listener(self, listener: Callable[[NarrationEvent], None]) -> None:
        ...

    @abstractmethod
    def set_rate(self, rate: float) -> None:
        ...

    @abstractmethod
    def speak(self, text: str, utterance_id: str) -> None:
        """Start speaking ``text``, replacing anything currently queued."""
        ...

    @abstractmethod
    def stop(self) -> None:
        ...

    @abstractmethod
    def shutdown(self) -> None:
        ...


class NarrationController:
    """Play, pause, resume and skip through a list of sections.

    There is at most one narration session: ``speak`` replaces whatever was
    playing. Each issued utterance gets a fresh id and completion events for
    any other id are ignored, so callbacks from a stopped utterance cannot
    move the current session.
    """

    def __init__(self, output: SpeechOutput) -> None:
        self._output = output
        self._lock = threading.RLock()
        self._sections: list[SpeechSection] = []
        self._index = 0
        self._state: NarrationState = Idle()
        self._utterance_id: str | None = None
        self._ids = itertools.count(1)
        self._closed = False
        output.set_listener(self.handle)

    @property
    def state(self) -> NarrationState:
        with self._lock:
            return self._state

    @property
    def index(self) -> int:
        with self._lock:
            return self._index

    @property
    def sections(self) -> list[SpeechSection]:
        with self._lock:
            return list(self._sections)

    def speak(self, sections: Sequence[SpeechSection], rate: float = 1.0) -> None:
        with self._lock:
            if self._closed:
                return
            self._cancel_output()
            self._sections = list(sections)
            self._index = 0
            self._output.set_rate(clamp_rate(rate))
            if not self._sections:
                self._state = Ready()
                return
            logger.debug("Narrating %d sections", len(self._sections))
            self._issue_current()

    def speak_answer(self, text: str, rate: float = 1.0) -> None:
        """Interrupt any narration and speak a single answer section."""
        with self._lock:
            self.stop()
            self.speak([answer_section(text)], rate)

    def pause(self) -> None:
        with self._lock:
            if not isinstance(self._state, Speaking):
                return
            self._cancel_output()
            self._state = Paused(self._index)

    def resume(self) -> None:
        with self._lock:
            if isinstance(self._state, Paused) and not self._closed:
                self._issue_current()

    def skip_next(self) -> None:
        with self._lock:
            if not self._sections or self._closed:
                return
            self._cancel_output()
            self._index = min(self._index + 1, len(self._sections) - 1)
            self._issue_current()

    def skip_previous(self) -> None:
        with self._lock:
            if not self._sections or self._closed:
                return
            self._cancel_output()
            self._index = max(self._index - 1, 0)
            self._issue_current()

    def stop(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._cancel_output()
            self._index = 0
            self._state = Ready()

    def shutdown(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._cancel_output()
            self._output.shutdown()
            self._state = Idle()

    def handle(self, event: NarrationEvent) -> None:
        """Apply one progress event from the speech output."""
        with self._lock:
            if self._closed:
                return
            if event.utterance_id != self._utterance_id:
                logger.debug("Ignoring stale narration event %s", event)
                return

            match event:
                case UtteranceStarted():
                    pass
                case UtteranceDone():
                    if self._index + 1 < len(self._sections):
                        self._index += 1
                        self._issue_current()
                    else:
                        self._utterance_id = None
                        self._state = Ready()
                        logger.debug("Narration finished")
                case UtteranceFailed(message=message):
                    self._utterance_id = None
                    self._state = NarrationError(message)
                    logger.error("Speech output failed: %s", message)

    def _issue_current(self) -> None:
        section = self._sections[self._index]
        utterance_id = f"utt-{next(self._ids)}"
        self._utterance_id = utterance_id
        self._state = Speaking(self._index, section.title)
        try:
            self._output.speak(section.content, utterance_id)
        except Exception as e:
            logger.exception("Speech output could not start an utterance")
            if self._utterance_id == utterance_id:
                self._utterance_id = None
                self._state = NarrationError(str(e) or "Speech error occurred")

    def _cancel_output(self) -> None:
        # Clear the id first so a synchronous callback from stop() is stale.
        self._utterance_id = None
        self._output.stop()


class ConsoleSpeechOutput(SpeechOutput):
    """Prints utterances instead of synthesizing them.

    Completion events are queued and delivered by ``run_until_idle`` so the
    narrator is never re-entered from inside ``speak``.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream or sys.stdout
        self._listener: Callable[[NarrationEvent], None] | None = None
        self._pending: deque[str] = deque()
        self.rate = 1.0

    def set_listener(self, listener: Callable[[NarrationEvent], None]) -> None:
        self._listener = listener

    def set_rate(self, rate: float) -> None:
        self.rate = rate

    def speak(self, text: str, utterance_id: str) -> None:
        print(f"🔊 {text}", file=self._stream)
        self._pending.append(utterance_id)

    def stop(self) -> None:
        self._pending.clear()

    def shutdown(self) -> None:
        self._pending.clear()
        self._listener = None

    def run_until_idle(self) -> None:
        while self._pending and self._listener is not None:
            utterance_id = self._pending.popleft()
            self._listener(UtteranceStarted(utterance_id))
            self._listener(UtteranceDone(utterance_id))
