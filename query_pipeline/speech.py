"""
Speech output sequencing.

One utterance at a time, last call wins: speak() while Speaking cancels the
previous utterance first, nothing is queued. cancel() silences immediately and
is what the capture controller calls before every new listening session.
"""
from __future__ import annotations

import asyncio
import time
from enum import Enum
from typing import Optional, Protocol

from logging_setup import Component, get_logger
from .observability import PipelineObserver


logger = get_logger(Component.SPEECH)


class SpeechState(str, Enum):
    SILENT = "silent"
    SPEAKING = "speaking"


class SpeechEngine(Protocol):
    """Host text-to-speech capability."""

    async def speak(self, text: str, language: str) -> None:
        """Play `text`; return when playback ends naturally."""
        ...

    def cancel(self) -> None:
        """Stop playback immediately and drop anything pending."""
        ...


class SpeechOutput:
    def __init__(
        self,
        engine: SpeechEngine,
        *,
        language: str,
        observer: Optional[PipelineObserver] = None,
    ):
        self.engine = engine
        self.language = language
        self._observer = observer
        self._state = SpeechState.SILENT
        self._task: Optional[asyncio.Task] = None
        self._started_ts: Optional[float] = None

    @property
    def state(self) -> SpeechState:
        return self._state

    @property
    def speaking(self) -> bool:
        return self._state is SpeechState.SPEAKING

    def speak(self, text: str) -> Optional[asyncio.Task]:
        """
        Start speaking `text` and return immediately.

        Must be called from inside the running event loop. Returns the
        playback task, or None for blank text.
        """
        text = text.strip()
        if not text:
            return None
        if self.speaking:
            self._stop("superseded")

        self._state = SpeechState.SPEAKING
        self._started_ts = time.perf_counter()
        if self._observer:
            self._observer.speech_started(text)
        self._task = asyncio.get_running_loop().create_task(self._run(text))
        return self._task

    def cancel(self) -> None:
        """Silence now. Safe to call while Silent."""
        self._stop("cancelled")

    async def wait(self) -> None:
        """Wait for the active utterance (if any) to finish or be cancelled."""
        task = self._task
        if task is not None and not task.done():
            await asyncio.wait({task})

    async def _run(self, text: str) -> None:
        try:
            await self.engine.speak(text, self.language)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("Speech engine failed", error=str(e), error_type=type(e).__name__)
            self._finish("failed")
        else:
            self._finish("completed")

    def _finish(self, cause: str) -> None:
        # Only the active utterance may move the state back to Silent.
        if self._task is not asyncio.current_task():
            return
        self._task = None
        self._state = SpeechState.SILENT
        self._emit_stopped(cause)

    def _stop(self, cause: str) -> None:
        task, self._task = self._task, None
        was_speaking = self.speaking
        self._state = SpeechState.SILENT
        if task is not None and not task.done():
            task.cancel()
        self.engine.cancel()
        if was_speaking:
            self._emit_stopped(cause)

    def _emit_stopped(self, cause: str) -> None:
        latency_ms = None
        if self._started_ts is not None:
            latency_ms = int((time.perf_counter() - self._started_ts) * 1000)
            self._started_ts = None
        logger.debug("Speech stopped", cause=cause, latency_ms=latency_ms)
        if self._observer:
            self._observer.speech_stopped(cause, latency_ms=latency_ms)
