"""
Tests for the voice capture state machine.

Verifies:
- Idle -> Listening -> Processing -> Idle
- Starting capture cancels speech output
- Triggers while Processing are ignored (one request in flight)
- End without a transcript returns to Idle
- Unsupported engines never leave Idle
"""
import asyncio

import pytest

from query_pipeline.capture import CaptureEvent, CaptureMessage, CaptureState, VoiceCaptureController
from query_pipeline.speech import SpeechOutput
from query_pipeline.status import ChatView, Status


class FakeCaptureEngine:
    def __init__(self, supported=True, fail_start=False):
        self.supported = supported
        self.fail_start = fail_start
        self.starts = 0
        self.stops = 0

    def is_supported(self):
        return self.supported

    async def start(self):
        self.starts += 1
        if self.fail_start:
            raise RuntimeError("microphone denied")

    async def stop(self):
        self.stops += 1


class SilentSpeechEngine:
    def __init__(self):
        self.cancel_calls = 0

    async def speak(self, text, language):
        await asyncio.Event().wait()

    def cancel(self):
        self.cancel_calls += 1


class BlockingHandler:
    """Transcript handler that holds Processing until released."""

    def __init__(self, raises=None):
        self.transcripts = []
        self.release = asyncio.Event()
        self.raises = raises

    async def __call__(self, transcript):
        self.transcripts.append(transcript)
        await self.release.wait()
        if self.raises:
            raise self.raises


def _controller(engine=None, handler=None):
    view = ChatView()
    speech_engine = SilentSpeechEngine()
    speech = SpeechOutput(speech_engine, language="hu-HU")
    handler = handler or BlockingHandler()
    controller = VoiceCaptureController(
        engine or FakeCaptureEngine(),
        speech=speech,
        status=view,
        on_transcript=handler,
    )
    return controller, view, speech, handler


@pytest.mark.asyncio
async def test_full_cycle():
    controller, view, _, handler = _controller()

    await controller.dispatch(CaptureMessage(CaptureEvent.TRIGGER))
    assert controller.state is CaptureState.LISTENING
    assert view.status is Status.LISTENING

    await controller.dispatch(CaptureMessage(CaptureEvent.RESULT, "mikor vagytok nyitva"))
    assert controller.state is CaptureState.PROCESSING
    assert view.status is Status.PROCESSING

    handler.release.set()
    await controller.wait_idle()

    assert controller.state is CaptureState.IDLE
    assert handler.transcripts == ["mikor vagytok nyitva"]


@pytest.mark.asyncio
async def test_start_cancels_speech():
    controller, _, speech, _ = _controller()
    speech.speak("previous answer")
    await asyncio.sleep(0)
    assert speech.speaking

    await controller.dispatch(CaptureMessage(CaptureEvent.TRIGGER))

    assert not speech.speaking
    assert speech.engine.cancel_calls >= 1


@pytest.mark.asyncio
async def test_trigger_ignored_while_processing():
    engine = FakeCaptureEngine()
    controller, _, _, handler = _controller(engine=engine)

    await controller.dispatch(CaptureMessage(CaptureEvent.TRIGGER))
    await controller.dispatch(CaptureMessage(CaptureEvent.RESULT, "first question"))

    await controller.dispatch(CaptureMessage(CaptureEvent.TRIGGER))
    await controller.dispatch(CaptureMessage(CaptureEvent.RESULT, "second question"))

    assert controller.state is CaptureState.PROCESSING
    assert engine.starts == 1

    handler.release.set()
    await controller.wait_idle()
    assert handler.transcripts == ["first question"]


@pytest.mark.asyncio
async def test_trigger_while_listening_requests_stop():
    engine = FakeCaptureEngine()
    controller, _, _, _ = _controller(engine=engine)

    await controller.dispatch(CaptureMessage(CaptureEvent.TRIGGER))
    await controller.dispatch(CaptureMessage(CaptureEvent.TRIGGER))

    assert engine.stops == 1
    assert controller.stop_requested
    # Still listening until the engine reports the end.
    assert controller.state is CaptureState.LISTENING


@pytest.mark.asyncio
async def test_end_without_result_returns_to_idle():
    controller, view, _, handler = _controller()

    await controller.dispatch(CaptureMessage(CaptureEvent.TRIGGER))
    await controller.dispatch(CaptureMessage(CaptureEvent.END))

    assert controller.state is CaptureState.IDLE
    assert view.status is Status.READY
    assert handler.transcripts == []


@pytest.mark.asyncio
async def test_end_after_result_keeps_processing():
    controller, _, _, handler = _controller()

    await controller.dispatch(CaptureMessage(CaptureEvent.TRIGGER))
    await controller.dispatch(CaptureMessage(CaptureEvent.RESULT, "hello"))
    await controller.dispatch(CaptureMessage(CaptureEvent.END))

    assert controller.state is CaptureState.PROCESSING
    handler.release.set()
    await controller.wait_idle()
    assert controller.state is CaptureState.IDLE


@pytest.mark.asyncio
async def test_blank_result_is_ignored():
    controller, _, _, handler = _controller()

    await controller.dispatch(CaptureMessage(CaptureEvent.TRIGGER))
    await controller.dispatch(CaptureMessage(CaptureEvent.RESULT, "   "))

    assert controller.state is CaptureState.LISTENING
    assert handler.transcripts == []


@pytest.mark.asyncio
async def test_unsupported_engine_stays_idle():
    engine = FakeCaptureEngine(supported=False)
    controller, view, _, _ = _controller(engine=engine)

    assert view.status is Status.NOT_SUPPORTED

    await controller.dispatch(CaptureMessage(CaptureEvent.TRIGGER))

    assert controller.state is CaptureState.IDLE
    assert engine.starts == 0
    assert view.status is Status.NOT_SUPPORTED


@pytest.mark.asyncio
async def test_engine_start_failure_returns_to_idle():
    controller, view, _, _ = _controller(engine=FakeCaptureEngine(fail_start=True))

    await controller.dispatch(CaptureMessage(CaptureEvent.TRIGGER))

    assert controller.state is CaptureState.IDLE
    assert view.status is Status.ERROR


@pytest.mark.asyncio
async def test_handler_exception_still_returns_to_idle():
    handler = BlockingHandler(raises=RuntimeError("unexpected"))
    controller, view, _, _ = _controller(handler=handler)

    await controller.dispatch(CaptureMessage(CaptureEvent.TRIGGER))
    await controller.dispatch(CaptureMessage(CaptureEvent.RESULT, "hello"))
    handler.release.set()
    await controller.wait_idle()

    assert controller.state is CaptureState.IDLE
    assert view.status is Status.ERROR


@pytest.mark.asyncio
async def test_queued_events_are_processed_by_run():
    controller, _, _, handler = _controller()
    runner = asyncio.create_task(controller.run())

    controller.trigger()
    controller.result("queued question")
    handler.release.set()
    await controller.close()
    await runner

    assert handler.transcripts == ["queued question"]
    assert controller.state is CaptureState.IDLE
