"""
Assistant error taxonomy.

No error is fatal: every failure degrades (empty knowledge base), prompts the
user (missing credential) or is surfaced as the locale's apology, and capture
returns to Idle afterwards. Nothing is retried automatically.
"""
from typing import Optional


class AssistantError(Exception):
    """Base class for all assistant errors."""


class LoadError(AssistantError):
    """Knowledge source unreachable or malformed. Degrade to an empty store."""


class CompletionError(AssistantError):
    """Any failure of a single completion exchange."""


class MissingCredentialError(CompletionError):
    """No bearer token available; the request was never sent."""


class TransportError(CompletionError):
    """Network failure, timeout or non-2xx response."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class MalformedResponseError(CompletionError):
    """Response body is not JSON or lacks choices[0].message.content."""


class ErrorCategory:
    """Stable error categories used in events."""

    LOAD_FAILED = "knowledge.load_failed"
    MISSING_CREDENTIAL = "credential.missing"
    TRANSPORT = "transport.error"
    MALFORMED_RESPONSE = "response.malformed"
    UNKNOWN = "unknown"


def error_category(error: BaseException) -> str:
    """Map an exception to its stable category. Never raises."""
    if isinstance(error, LoadError):
        return ErrorCategory.LOAD_FAILED
    if isinstance(error, MissingCredentialError):
        return ErrorCategory.MISSING_CREDENTIAL
    if isinstance(error, TransportError):
        return ErrorCategory.TRANSPORT
    if isinstance(error, MalformedResponseError):
        return ErrorCategory.MALFORMED_RESPONSE
    return ErrorCategory.UNKNOWN
