"""Tests for the narration state machine."""

import io
from unittest.mock import MagicMock

import pytest

from blindlabel.models import SectionType, SpeechSection
from blindlabel.speech.narrator import (
    ConsoleSpeechOutput,
    Idle,
    NarrationController,
    NarrationError,
    Paused,
    Ready,
    Speaking,
    SpeechOutput,
    UtteranceDone,
    UtteranceFailed,
    UtteranceStarted,
)


class FakeOutput(SpeechOutput):
    """Records calls; the test drives completion events by hand."""

    def __init__(self):
        self.listener = None
        self.spoken: list[tuple[str, str]] = []
        self.rates: list[float] = []
        self.stops = 0
        self.shut_down = False

    def set_listener(self, listener):
        self.listener = listener

    def set_rate(self, rate):
        self.rates.append(rate)

    def speak(self, text, utterance_id):
        self.spoken.append((text, utterance_id))

    def stop(self):
        self.stops += 1

    def shutdown(self):
        self.shut_down = True

    @property
    def last_id(self) -> str:
        return self.spoken[-1][1]

    @property
    def last_text(self) -> str:
        return self.spoken[-1][0]

    def finish(self):
        self.listener(UtteranceDone(self.last_id))


def _sections(n: int = 3) -> list[SpeechSection]:
    return [
        SpeechSection(type=SectionType.PRODUCT_NAME, title=f"S{i}", content=f"text {i}")
        for i in range(n)
    ]


@pytest.fixture
def output():
    return FakeOutput()


@pytest.fixture
def narrator(output):
    return NarrationController(output)


class TestNarrationController:
    def test_initial_state(self, narrator, output):
        assert narrator.state == Idle()
        assert output.listener == narrator.handle

    def test_speak_starts_first_section(self, narrator, output):
        narrator.speak(_sections(), rate=1.5)
        assert narrator.state == Speaking(0, "S0")
        assert output.last_text == "text 0"
        assert output.rates == [1.5]

    def test_rate_clamped(self, narrator, output):
        narrator.speak(_sections(), rate=9.0)
        assert output.rates == [2.0]

    def test_speak_empty_goes_ready(self, narrator, output):
        narrator.speak([])
        assert narrator.state == Ready()
        assert output.spoken == []

    def test_done_advances_then_ready(self, narrator, output):
        narrator.speak(_sections(3))
        output.finish()
        assert narrator.state == Speaking(1, "S1")
        output.finish()
        assert narrator.state == Speaking(2, "S2")
        output.finish()
        assert narrator.state == Ready()
        assert [t for t, _ in output.spoken] == ["text 0", "text 1", "text 2"]

    def test_started_event_keeps_state(self, narrator, output):
        narrator.speak(_sections())
        output.listener(UtteranceStarted(output.last_id))
        assert narrator.state == Speaking(0, "S0")

    def test_failure_halts(self, narrator, output):
        narrator.speak(_sections())
        output.listener(UtteranceFailed(output.last_id, "engine died"))
        assert narrator.state == NarrationError("engine died")
        assert len(output.spoken) == 1

    def test_pause_and_resume(self, narrator, output):
        narrator.speak(_sections())
        output.finish()
        narrator.pause()
        assert narrator.state == Paused(1)
        narrator.resume()
        assert narrator.state == Speaking(1, "S1")
        assert output.last_text == "text 1"

    def test_pause_outside_speaking_is_noop(self, narrator):
        narrator.pause()
        assert narrator.state == Idle()

    def test_resume_outside_paused_is_noop(self, narrator, output):
        narrator.speak(_sections())
        narrator.resume()
        assert len(output.spoken) == 1

    def test_done_after_pause_is_ignored(self, narrator, output):
        narrator.speak(_sections())
        stale = output.last_id
        narrator.pause()
        output.listener(UtteranceDone(stale))
        assert narrator.state == Paused(0)

    def test_skip_next_clamps_to_last(self, narrator, output):
        narrator.speak(_sections(2))
        narrator.skip_next()
        assert narrator.state == Speaking(1, "S1")
        narrator.skip_next()
        assert narrator.state == Speaking(1, "S1")
        assert output.last_text == "text 1"
        assert len(output.spoken) == 3

    def test_skip_previous_clamps_at_zero(self, narrator, output):
        narrator.speak(_sections(3))
        narrator.skip_next()
        narrator.skip_previous()
        assert narrator.state == Speaking(0, "S0")
        narrator.skip_previous()
        assert narrator.state == Speaking(0, "S0")

    def test_skip_ignores_stale_done(self, narrator, output):
        narrator.speak(_sections(3))
        stale = output.last_id
        narrator.skip_next()
        output.listener(UtteranceDone(stale))
        assert narrator.state == Speaking(1, "S1")

    def test_stop_resets(self, narrator, output):
        narrator.speak(_sections(3))
        output.finish()
        narrator.stop()
        assert narrator.state == Ready()
        assert narrator.index == 0
        assert output.stops >= 1

    def test_new_session_ignores_old_callbacks(self, narrator, output):
        narrator.speak(_sections(3))
        stale = output.last_id
        narrator.speak(_sections(2))
        output.listener(UtteranceDone(stale))
        assert narrator.state == Speaking(0, "S0")

    def test_speak_answer_preempts(self, narrator, output):
        narrator.speak(_sections(3))
        output.finish()
        narrator.speak_answer("Yes, it is vegan.")
        assert narrator.sections == [
            SpeechSection(type=SectionType.ANSWER, title="Answer", content="Yes, it is vegan.")
        ]
        assert narrator.state == Speaking(0, "Answer")
        output.finish()
        assert narrator.state == Ready()

    def test_shutdown_ignores_later_events(self, narrator, output):
        narrator.speak(_sections())
        last = output.last_id
        narrator.shutdown()
        assert output.shut_down
        assert narrator.state == Idle()
        output.listener(UtteranceDone(last))
        narrator.speak(_sections())
        assert narrator.state == Idle()
        assert len(output.spoken) == 1

    def test_output_error_becomes_error_state(self):
        output = MagicMock(spec=SpeechOutput)
        output.speak.side_effect = RuntimeError("no audio device")
        narrator = NarrationController(output)
        narrator.speak(_sections())
        assert narrator.state == NarrationError("no audio device")

    def test_done_delivered_from_inside_speak(self):
        class ImmediateOutput(FakeOutput):
            def speak(self, text, utterance_id):
                super().speak(text, utterance_id)
                self.listener(UtteranceDone(utterance_id))

        output = ImmediateOutput()
        narrator = NarrationController(output)
        narrator.speak(_sections(3))
        assert narrator.state == Ready()
        assert [t for t, _ in output.spoken] == ["text 0", "text 1", "text 2"]


class TestConsoleSpeechOutput:
    def test_prints_each_section(self):
        stream = io.StringIO()
        output = ConsoleSpeechOutput(stream=stream)
        narrator = NarrationController(output)
        narrator.speak(_sections(2), rate=0.8)
        output.run_until_idle()
        assert stream.getvalue().splitlines() == ["🔊 text 0", "🔊 text 1"]
        assert output.rate == 0.8
        assert narrator.state == Ready()

    def test_stop_discards_pending(self):
        stream = io.StringIO()
        output = ConsoleSpeechOutput(stream=stream)
        narrator = NarrationController(output)
        narrator.speak(_sections(3))
        narrator.stop()
        output.run_until_idle()
        assert stream.getvalue().splitlines() == ["🔊 text 0"]
        assert narrator.state == Ready()
