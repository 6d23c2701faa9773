"""
Voice capture state machine.

    Idle --trigger--> Listening --result--> Processing --query done--> Idle
                      Listening --end (no result)--> Idle

Capture-engine notifications and user triggers arrive as CaptureMessage values
on one asyncio.Queue (post() / run()), or are handled directly with
dispatch(). Triggers while Processing are dropped, which is what keeps at most
one completion request in flight.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, Protocol

from logging_setup import Component, get_logger
from .observability import PipelineObserver
from .speech import SpeechOutput
from .status import Status, StatusSink


logger = get_logger(Component.CAPTURE)


class CaptureState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    PROCESSING = "processing"


class CaptureEvent(str, Enum):
    TRIGGER = "trigger"  # user pressed the voice button
    RESULT = "result"    # engine produced a final transcript
    END = "end"          # engine stopped capturing


@dataclass(frozen=True)
class CaptureMessage:
    event: CaptureEvent
    transcript: Optional[str] = None


class CaptureEngine(Protocol):
    """Host speech-to-text capability. Only final results are delivered."""

    def is_supported(self) -> bool: ...

    async def start(self) -> None: ...

    async def stop(self) -> None: ...


TranscriptHandler = Callable[[str], Awaitable[None]]


class VoiceCaptureController:
    def __init__(
        self,
        engine: CaptureEngine,
        *,
        speech: SpeechOutput,
        status: StatusSink,
        on_transcript: TranscriptHandler,
        observer: Optional[PipelineObserver] = None,
    ):
        self.engine = engine
        self.speech = speech
        self.status = status
        self.on_transcript = on_transcript
        self._observer = observer

        self._state = CaptureState.IDLE
        self._queue: asyncio.Queue[Optional[CaptureMessage]] = asyncio.Queue()
        self._inflight: Optional[asyncio.Task] = None
        self._result_received = False
        self.stop_requested = False

        self.supported = bool(engine.is_supported())
        if not self.supported:
            logger.warning("Capture engine not supported by this host")
            self.status.set_status(Status.NOT_SUPPORTED)
            if observer:
                observer.capture_not_supported()

    @property
    def state(self) -> CaptureState:
        return self._state

    # --- Notification channel ---

    def post(self, event: CaptureEvent, transcript: Optional[str] = None) -> None:
        """Queue an event for run(). Safe to call from engine callbacks on the loop."""
        self._queue.put_nowait(CaptureMessage(event, transcript))

    def trigger(self) -> None:
        self.post(CaptureEvent.TRIGGER)

    def result(self, transcript: str) -> None:
        self.post(CaptureEvent.RESULT, transcript)

    def end(self) -> None:
        self.post(CaptureEvent.END)

    async def run(self) -> None:
        """Consume queued events until close(), then wait for the in-flight query."""
        while True:
            message = await self._queue.get()
            if message is None:
                break
            try:
                await self.dispatch(message)
            except Exception:
                logger.exception("Capture event handling failed", capture_event=message.event.value)
        await self.wait_idle()

    async def close(self) -> None:
        """Stop run() and wait for the in-flight query, if any."""
        self._queue.put_nowait(None)
        await self.wait_idle()

    async def wait_idle(self) -> None:
        task = self._inflight
        if task is not None and not task.done():
            await asyncio.wait({task})

    # --- State machine ---

    async def dispatch(self, message: CaptureMessage) -> None:
        if message.event is CaptureEvent.TRIGGER:
            await self._on_trigger()
        elif message.event is CaptureEvent.RESULT:
            self._on_result(message.transcript or "")
        elif message.event is CaptureEvent.END:
            self._on_end()

    async def _on_trigger(self) -> None:
        if not self.supported:
            self.status.set_status(Status.NOT_SUPPORTED)
            return

        if self._state is CaptureState.PROCESSING:
            logger.debug("Trigger ignored while processing")
            if self._observer:
                self._observer.capture_trigger_ignored(self._state.value)
            return

        if self._state is CaptureState.LISTENING:
            # Early stop: the state only changes once the engine reports END.
            self.stop_requested = True
            try:
                await self.engine.stop()
            except Exception as e:
                logger.error("Capture engine failed to stop", error=str(e), error_type=type(e).__name__)
                self._on_end()
            return

        # Idle: never listen over our own voice.
        self.speech.cancel()
        self._result_received = False
        self.stop_requested = False
        self._transition(CaptureState.LISTENING)
        try:
            await self.engine.start()
        except Exception as e:
            logger.error("Capture engine failed to start", error=str(e), error_type=type(e).__name__)
            self._transition(CaptureState.IDLE)
            self.status.set_status(Status.ERROR)
            return
        self.status.set_status(Status.LISTENING)

    def _on_result(self, transcript: str) -> None:
        transcript = transcript.strip()
        if self._state is not CaptureState.LISTENING or self._result_received:
            logger.debug("Transcript ignored", state=self._state.value)
            return
        if not transcript:
            return

        self._result_received = True
        self._transition(CaptureState.PROCESSING)
        self.status.set_status(Status.PROCESSING)
        self._inflight = asyncio.get_running_loop().create_task(self._process(transcript))

    def _on_end(self) -> None:
        if self._state is not CaptureState.LISTENING:
            return
        # Ended without a transcript (stopped early or silence): nothing to query.
        logger.debug("Capture ended without a transcript", stop_requested=self.stop_requested)
        self._transition(CaptureState.IDLE)
        self.status.set_status(Status.READY)

    async def _process(self, transcript: str) -> None:
        try:
            await self.on_transcript(transcript)
        except Exception:
            logger.exception("Query handling raised unexpectedly")
            self.status.set_status(Status.ERROR)
        finally:
            self._inflight = None
            self._transition(CaptureState.IDLE)

    def _transition(self, new_state: CaptureState) -> None:
        old_state = self._state
        if old_state is new_state:
            return
        self._state = new_state
        logger.debug("Capture state changed", from_state=old_state.value, to_state=new_state.value)
        if self._observer:
            self._observer.capture_state_changed(old_state.value, new_state.value)
