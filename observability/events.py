"""
Structured JSON event emission (shared).

Every event carries the same envelope: ts, session_id, component, event_type,
severity, correlation_id and a pii descriptor. Events are written to stdout
(one JSON object per line) and kept in the in-memory event store so the
assistant server can serve them back.
"""

from __future__ import annotations

import json
import sys
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from .event_store import event_store


class Component(str, Enum):
    """Event-emitting components."""

    QUERY_PIPELINE = "query_pipeline"
    CAPTURE = "capture"
    SPEECH = "speech"
    ASSISTANT_SERVER = "assistant_server"


class Severity(str, Enum):
    """Event severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


DEFAULT_PII = {"contains_pii": False, "fields": [], "handling": "none"}


def pii_fields(*fields: str) -> Optional[Dict[str, Any]]:
    """Build the pii descriptor for an event that carries user text."""
    if not fields:
        return None
    return {"contains_pii": True, "fields": list(fields), "handling": "none"}


class EventEmitter:
    """Emits structured JSON events."""

    def __init__(self, component: Component, *, stream=None):
        self.component = component
        self._stream = stream

    def emit(
        self,
        event_type: str,
        session_id: str,
        severity: Severity = Severity.INFO,
        correlation_id: Optional[str] = None,
        pii: Optional[Dict[str, Any]] = None,
        **kwargs: Any,
    ) -> Dict[str, Any]:
        """
        Emit one event and return it.

        Args:
            event_type: Stable event type string (e.g. "capture.state_changed")
            session_id: Opaque assistant session identifier
            severity: Event severity level
            correlation_id: Turn identifier; defaults to the session_id
            pii: PII descriptor (contains_pii, fields, handling)
            **kwargs: Event-specific fields
        """
        event = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "session_id": session_id,
            "component": self.component.value,
            "event_type": event_type,
            "severity": severity.value,
            "correlation_id": correlation_id or session_id,
            "pii": pii or DEFAULT_PII,
        }
        event.update(kwargs)

        stream = self._stream or sys.stdout
        stream.write(json.dumps(event, ensure_ascii=False, default=str))
        stream.write("\n")
        stream.flush()

        event_store.store(event)
        return event
