"""
In-memory store for emitted events, queried by the assistant server's /events endpoint.

Bounded so a long-running assistant does not grow without limit.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


_ENVELOPE_KEYS = ("ts", "session_id", "component", "event_type", "severity", "correlation_id", "pii")


@dataclass
class StoredEvent:
    """An event kept in memory."""

    ts: datetime
    session_id: str
    component: str
    event_type: str
    severity: str
    correlation_id: str
    pii: Dict[str, Any]
    payload: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "ts": self.ts.isoformat(),
            "session_id": self.session_id,
            "component": self.component,
            "event_type": self.event_type,
            "severity": self.severity,
            "correlation_id": self.correlation_id,
            "pii": self.pii,
        }
        result.update(self.payload)
        return result


class EventStore:
    """
    FIFO event store backed by a bounded deque.

    Default max size: 10,000 events.
    """

    def __init__(self, max_events: int = 10000):
        self._events: deque[StoredEvent] = deque(maxlen=max_events)
        self._max_events = max_events

    def store(self, event: Dict[str, Any]) -> None:
        ts_raw = event.get("ts")
        if isinstance(ts_raw, str):
            ts = datetime.fromisoformat(ts_raw.replace("Z", "+00:00"))
        else:
            ts = datetime.now(timezone.utc)

        session_id = event.get("session_id", "")
        self._events.append(StoredEvent(
            ts=ts,
            session_id=session_id,
            component=event.get("component", "unknown"),
            event_type=event.get("event_type", "unknown"),
            severity=event.get("severity", "info"),
            correlation_id=event.get("correlation_id", session_id),
            pii=event.get("pii", {"contains_pii": False, "fields": [], "handling": "none"}),
            payload={k: v for k, v in event.items() if k not in _ENVELOPE_KEYS},
        ))

    def query(
        self,
        session_id: Optional[str] = None,
        event_type: Optional[str] = None,
        component: Optional[str] = None,
        correlation_id: Optional[str] = None,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Query events with optional filters, oldest first.

        `limit` keeps the most recent matching events.
        """
        results: List[StoredEvent] = []
        for event in self._events:
            if session_id and event.session_id != session_id:
                continue
            if event_type and event.event_type != event_type:
                continue
            if component and event.component != component:
                continue
            if correlation_id and event.correlation_id != correlation_id:
                continue
            if since and event.ts < since:
                continue
            results.append(event)

        if limit:
            results = results[-limit:]
        return [e.to_dict() for e in results]

    def clear(self) -> None:
        self._events.clear()

    def get_stats(self) -> Dict[str, Any]:
        return {
            "total_events": len(self._events),
            "max_events": self._max_events,
            "oldest_event_ts": self._events[0].ts.isoformat() if self._events else None,
            "newest_event_ts": self._events[-1].ts.isoformat() if self._events else None,
        }


# Global event store instance
event_store = EventStore()
