"""
Assistant wiring.

AssistantSession is the one object that carries session state (credential
store, knowledge, locale, view, speech); components receive it explicitly
instead of reading module globals.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Optional

from logging_setup import Component, get_logger
from .capture import CaptureEngine, VoiceCaptureController
from .completion import CompletionClient
from .config import AssistantConfig
from .credentials import CredentialStore, FileCredentialStore
from .knowledge import KnowledgeStore, load_knowledge_or_empty
from .locales import Locale, load_locale
from .observability import PipelineObserver
from .pipeline import QueryPipeline
from .speech import SpeechEngine, SpeechOutput
from .status import ChatView, MessageView, Status, StatusSink


logger = get_logger(Component.QUERY_PIPELINE)


@dataclass
class AssistantSession:
    session_id: str
    config: AssistantConfig
    locale: Locale
    knowledge: KnowledgeStore
    credentials: CredentialStore
    status: StatusSink
    view: MessageView
    speech: SpeechOutput
    observer: PipelineObserver


@dataclass
class Assistant:
    session: AssistantSession
    pipeline: QueryPipeline
    capture: VoiceCaptureController
    client: CompletionClient

    async def aclose(self) -> None:
        await self.capture.close()
        self.session.speech.cancel()
        await self.client.aclose()


def new_session_id() -> str:
    return f"sess_{uuid.uuid4().hex[:12]}"


def build_assistant(
    config: AssistantConfig,
    *,
    capture_engine: CaptureEngine,
    speech_engine: SpeechEngine,
    credentials: Optional[CredentialStore] = None,
    view: Optional[MessageView] = None,
    status: Optional[StatusSink] = None,
    client: Optional[CompletionClient] = None,
    knowledge: Optional[KnowledgeStore] = None,
    session_id: Optional[str] = None,
) -> Assistant:
    """
    Build a ready-to-run assistant from configuration.

    A knowledge base that fails to load degrades to an empty store. With no
    view given, a ChatView is used as both view and status sink.
    """
    session_id = session_id or new_session_id()
    observer = PipelineObserver(session_id)
    session_logger = logger.with_session(session_id)

    locale = load_locale(config.locale)

    if knowledge is None:
        knowledge, load_error = load_knowledge_or_empty(config.knowledge_path)
        if load_error is not None:
            observer.knowledge_load_failed(load_error, source=str(config.knowledge_path))
        else:
            observer.knowledge_loaded(items=len(knowledge), source=str(config.knowledge_path))

    if view is None:
        view = ChatView()
    if status is None:
        status = view if isinstance(view, ChatView) else ChatView()
    if credentials is None:
        credentials = FileCredentialStore(config.credential_path)
    if client is None:
        client = CompletionClient(
            endpoint=config.completion_endpoint,
            model=config.completion_model,
            max_tokens=config.completion_max_tokens,
            timeout_seconds=config.completion_timeout_seconds,
        )

    speech = SpeechOutput(speech_engine, language=locale.language_tag, observer=observer)
    session = AssistantSession(
        session_id=session_id,
        config=config,
        locale=locale,
        knowledge=knowledge,
        credentials=credentials,
        status=status,
        view=view,
        speech=speech,
        observer=observer,
    )
    pipeline = QueryPipeline(session, client)
    capture = VoiceCaptureController(
        capture_engine,
        speech=speech,
        status=status,
        on_transcript=pipeline.handle,
        observer=observer,
    )

    if capture.supported:
        status.set_status(Status.READY)
    if not credentials.get():
        # Same as the first-run behaviour of the settings surface: ask right away.
        view.request_credential()

    session_logger.info(
        "Assistant ready",
        locale=locale.name,
        knowledge_items=len(knowledge),
        capture_supported=capture.supported,
        credential_configured=bool(credentials.get()),
    )
    return Assistant(session=session, pipeline=pipeline, capture=capture, client=client)
