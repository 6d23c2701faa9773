"""
Shared logging infrastructure for kb-voice-assistant.

One logging setup for the query pipeline and the assistant server.

Features:
- JSON-formatted structured logs (one object per line)
- Configurable log level
- Session ID correlation across capture, retrieval, completion and speech
- Component tagging
- PII-aware helpers for transcripts and replies
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class Component(str, Enum):
    """System components for log tagging."""
    QUERY_PIPELINE = "query_pipeline"
    CAPTURE = "capture"
    SPEECH = "speech"
    RETRIEVAL = "retrieval"
    KNOWLEDGE = "knowledge"
    LLM = "llm"
    CREDENTIALS = "credentials"
    ASSISTANT_SERVER = "assistant_server"
    ERROR_HANDLER = "error_handler"


# Attributes every LogRecord carries; everything else came in via `extra`.
_RESERVED_ATTRS = frozenset({
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "taskName", "exc_info", "exc_text", "stack_info",
    "component", "session_id", "message",
})


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Output fields:
    - ISO8601 timestamp
    - severity
    - component
    - session_id (if the logger carries one)
    - message plus any keyword fields passed to StructuredLogger
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "severity": record.levelname.lower(),
            "component": getattr(record, "component", "unknown"),
            "message": record.getMessage(),
        }

        if hasattr(record, "session_id"):
            log_data["session_id"] = record.session_id

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


class StructuredLogger:
    """
    Wrapper around Python's logging with keyword fields.

    Usage:
        logger = StructuredLogger(Component.LLM, session_id="sess_123")
        logger.info("LLM call completed", latency_ms=420)
        logger.info_pii("Transcript received", transcript="milyen a nyitvatartás")
    """

    def __init__(
        self,
        component: str | Component,
        session_id: Optional[str] = None,
        logger_name: Optional[str] = None
    ):
        self.component = component.value if isinstance(component, Component) else component
        self.session_id = session_id
        self.logger = logging.getLogger(logger_name or self.component)

    def _log(
        self,
        level: int,
        message: str,
        pii: Optional[Dict[str, Any]] = None,
        **kwargs
    ):
        exc_info = kwargs.pop("exc_info", None)
        stack_info = kwargs.pop("stack_info", None)
        stacklevel = kwargs.pop("stacklevel", 1)

        extra = {
            "component": self.component,
            **kwargs
        }

        if self.session_id:
            extra["session_id"] = self.session_id

        if pii:
            # Kept in its own field so audits can find it.
            extra["pii"] = pii

        self.logger.log(
            level,
            message,
            exc_info=exc_info,
            stack_info=stack_info,
            stacklevel=stacklevel,
            extra=extra
        )

    def debug(self, message: str, **kwargs):
        self._log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs):
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs):
        self._log(logging.ERROR, message, **kwargs)

    def critical(self, message: str, **kwargs):
        self._log(logging.CRITICAL, message, **kwargs)

    def exception(self, message: str, **kwargs):
        """Log an error message with the active exception attached."""
        kwargs.setdefault("exc_info", True)
        self._log(logging.ERROR, message, **kwargs)

    def debug_pii(self, message: str, **pii_fields):
        """
        Log debug with PII fields explicitly marked.

        Example:
            logger.debug_pii("Reply spoken", reply="Kilenctől ötig vagyunk nyitva")
        """
        self._log(logging.DEBUG, message, pii=pii_fields)

    def info_pii(self, message: str, **pii_fields):
        """Log info with PII fields explicitly marked."""
        self._log(logging.INFO, message, pii=pii_fields)

    def with_session(self, session_id: str) -> "StructuredLogger":
        """Create a new logger instance bound to a session ID."""
        return StructuredLogger(
            self.component,
            session_id=session_id,
            logger_name=self.logger.name
        )


def setup_logging(
    level: str = "INFO",
    use_json: bool = True,
    include_timestamp: bool = True
) -> None:
    """
    Configure the root logger. Call once at startup.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        use_json: Use JSON formatter (True) or plain text (False)
        include_timestamp: Include timestamps in plain text logs
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)

    if use_json:
        formatter = JSONFormatter()
    else:
        format_str = "%(levelname)s - %(component)s - %(message)s"
        if include_timestamp:
            format_str = "%(asctime)s - " + format_str
        formatter = logging.Formatter(format_str, defaults={"component": "unknown"})

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    log_level = getattr(logging, level.upper(), logging.INFO)
    root_logger.setLevel(log_level)


def setup_logging_from_env() -> None:
    """Configure logging from LOG_LEVEL / LOG_FORMAT ("json" or "text")."""
    setup_logging(
        level=os.environ.get("LOG_LEVEL", "INFO"),
        use_json=os.environ.get("LOG_FORMAT", "json").strip().lower() != "text",
    )


def get_logger(
    component: str | Component,
    session_id: Optional[str] = None
) -> StructuredLogger:
    """
    Get a structured logger for a component.

    Example:
        logger = get_logger(Component.CAPTURE, session_id="sess_123")
        logger.info("Capture started")
    """
    return StructuredLogger(component, session_id=session_id)
