"""
Pipeline status values and the view-side interfaces the pipeline notifies.

The pipeline never renders anything itself: it reports a Status to a
StatusSink and hands user/assistant messages to a MessageView. ChatView is the
in-memory view used by the assistant server and the tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Protocol


class Status(str, Enum):
    """Statuses the pipeline reports; display texts live in the locale pack."""

    LISTENING = "listening"
    PROCESSING = "processing"
    READY = "ready"
    ERROR = "error"
    MISSING_CREDENTIAL = "missing_credential"
    NOT_SUPPORTED = "not_supported"


class StatusSink(Protocol):
    def set_status(self, status: Status) -> None: ...


class MessageView(Protocol):
    def show_user_message(self, text: str) -> None: ...

    def show_reply(self, text: str) -> None: ...

    def request_credential(self) -> None: ...


@dataclass(frozen=True)
class ChatMessage:
    text: str
    from_user: bool


class ChatView:
    """Records the chat transcript and the latest status, as a view would render them."""

    def __init__(self) -> None:
        self.messages: List[ChatMessage] = []
        self.status: Optional[Status] = None
        self.status_history: List[Status] = []
        self.credential_requested = False

    def set_status(self, status: Status) -> None:
        self.status = status
        self.status_history.append(status)

    def show_user_message(self, text: str) -> None:
        self.messages.append(ChatMessage(text=text, from_user=True))

    def show_reply(self, text: str) -> None:
        self.messages.append(ChatMessage(text=text, from_user=False))

    def request_credential(self) -> None:
        self.credential_requested = True

    def credential_provided(self) -> None:
        self.credential_requested = False

    @property
    def replies(self) -> List[str]:
        return [m.text for m in self.messages if not m.from_user]
