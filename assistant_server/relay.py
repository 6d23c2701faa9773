"""
Capture and speech engines backed by a browser client.

Recognition and synthesis happen in the browser. These engines only hold the
state the client polls for and resolve when the client reports back.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional


class RelayCaptureEngine:
    """The client records while `active` is true."""

    def __init__(self, supported: bool = True):
        self.supported = supported
        self.active = False

    def is_supported(self) -> bool:
        return self.supported

    async def start(self) -> None:
        self.active = True

    async def stop(self) -> None:
        self.active = False


@dataclass(frozen=True)
class Utterance:
    id: int
    text: str
    language: str


class RelaySpeechEngine:
    """speak() resolves when the client reports the utterance finished."""

    def __init__(self) -> None:
        self.current: Optional[Utterance] = None
        self._done: Optional[asyncio.Event] = None
        self._seq = 0

    async def speak(self, text: str, language: str) -> None:
        self._seq += 1
        utterance = Utterance(id=self._seq, text=text, language=language)
        done = asyncio.Event()
        self.current, self._done = utterance, done
        try:
            await done.wait()
        finally:
            if self.current is utterance:
                self.current, self._done = None, None

    def cancel(self) -> None:
        self.current, self._done = None, None

    def finished(self, utterance_id: int) -> bool:
        """Mark the current utterance as played. Stale ids are rejected."""
        if self.current is None or self.current.id != utterance_id or self._done is None:
            return False
        self._done.set()
        return True
