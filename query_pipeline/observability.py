"""
Per-session observability for the query pipeline.

Turn lifecycle (all events of one query share the turn's correlation_id):
    turn.started -> retrieval.completed -> llm.request -> llm.response | llm.failed -> turn.completed

Capture and speech emit their own state events under the session id.
Transcript and reply text are included, flagged in the pii envelope.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Optional

from logging_setup import Component as LogComponent, get_logger
from observability.events import Component as ObsComponent, EventEmitter, Severity, pii_fields
from .errors import error_category


class PipelineObserver:
    """Emits capture, speech and turn events for one assistant session."""

    def __init__(self, session_id: str, *, now: Callable[[], float] = time.time):
        self.session_id = session_id
        self.logger = get_logger(LogComponent.QUERY_PIPELINE, session_id=session_id)
        self._now = now

        self._pipeline = EventEmitter(ObsComponent.QUERY_PIPELINE)
        self._capture = EventEmitter(ObsComponent.CAPTURE)
        self._speech = EventEmitter(ObsComponent.SPEECH)

        self.current_turn_id: Optional[str] = None
        self._turn_seq = 0
        self._llm_request_ts: Optional[float] = None

    # --- Turn helpers ---

    def _new_turn(self) -> str:
        self._turn_seq += 1
        turn_id = f"turn_{int(self._now() * 1000)}_{self._turn_seq}"
        self.current_turn_id = turn_id
        self._llm_request_ts = None
        return turn_id

    def _turn_emit(self, event_type: str, severity: Severity = Severity.INFO, **kwargs: Any) -> None:
        self._pipeline.emit(
            event_type,
            session_id=self.session_id,
            severity=severity,
            correlation_id=self.current_turn_id or self.session_id,
            **kwargs,
        )

    def turn_started(self, transcript: str) -> str:
        turn_id = self._new_turn()
        self._turn_emit(
            "turn.started",
            pii=pii_fields("transcript_text"),
            transcript_text=transcript,
            transcript_length=len(transcript),
        )
        return turn_id

    def retrieval_completed(self, *, matches: int, context_length: int) -> None:
        self._turn_emit(
            "retrieval.completed",
            matches=matches,
            fallback=matches == 0,
            context_length=context_length,
        )

    def llm_request(self, *, model: str) -> None:
        self._llm_request_ts = self._now()
        self._turn_emit("llm.request", model=model)

    def _llm_latency_ms(self) -> Optional[int]:
        if self._llm_request_ts is None:
            return None
        latency_ms = int((self._now() - self._llm_request_ts) * 1000)
        self._llm_request_ts = None
        return latency_ms

    def llm_response(self, reply: str) -> None:
        self._turn_emit(
            "llm.response",
            pii=pii_fields("output_text"),
            output_text=reply,
            output_length=len(reply),
            latency_ms=self._llm_latency_ms(),
        )

    def llm_failed(self, error: BaseException) -> None:
        self._turn_emit(
            "llm.failed",
            severity=Severity.ERROR,
            category=error_category(error),
            error_class=type(error).__name__,
            status_code=getattr(error, "status", None),
            latency_ms=self._llm_latency_ms(),
        )

    def credential_missing(self) -> None:
        self._turn_emit("credential.missing", severity=Severity.WARN)

    def turn_completed(self, outcome: str) -> None:
        self._turn_emit("turn.completed", outcome=outcome)
        self.current_turn_id = None

    # --- Knowledge ---

    def knowledge_loaded(self, *, items: int, source: str) -> None:
        self._pipeline.emit("knowledge.loaded", session_id=self.session_id, items=items, source=source)

    def knowledge_load_failed(self, error: BaseException, *, source: str) -> None:
        self._pipeline.emit(
            "knowledge.load_failed",
            session_id=self.session_id,
            severity=Severity.ERROR,
            source=source,
            detail=str(error),
        )

    # --- Capture ---

    def capture_state_changed(self, from_state: str, to_state: str) -> None:
        self._capture.emit(
            "capture.state_changed",
            session_id=self.session_id,
            from_state=from_state,
            to_state=to_state,
        )

    def capture_trigger_ignored(self, state: str) -> None:
        self._capture.emit(
            "capture.trigger_ignored",
            session_id=self.session_id,
            severity=Severity.DEBUG,
            state=state,
        )

    def capture_not_supported(self) -> None:
        self._capture.emit("capture.not_supported", session_id=self.session_id, severity=Severity.WARN)

    # --- Speech ---

    def speech_started(self, text: str) -> None:
        self._speech.emit(
            "speech.started",
            session_id=self.session_id,
            pii=pii_fields("text"),
            text=text,
            text_length=len(text),
        )

    def speech_stopped(self, cause: str, *, latency_ms: Optional[int] = None) -> None:
        self._speech.emit(
            "speech.stopped",
            session_id=self.session_id,
            cause=cause,
            latency_ms=latency_ms,
        )
