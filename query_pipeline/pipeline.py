"""
Query orchestration: transcript -> context -> request -> completion -> reply.

handle() never raises for the expected failures (missing credential,
transport, malformed response). It reports them through status and the
locale's apology; the capture controller that called it re-arms afterwards.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

from logging_setup import Component, get_logger
from .completion import CompletionClient
from .errors import CompletionError
from .prompts import build_request
from .retriever import ContextRetriever
from .status import Status

if TYPE_CHECKING:
    from .assistant import AssistantSession


logger = get_logger(Component.QUERY_PIPELINE)


class QueryPipeline:
    def __init__(self, session: "AssistantSession", client: CompletionClient):
        self.session = session
        self.client = client
        self.retriever = ContextRetriever(session.knowledge, session.locale.fallback_context)
        self.logger = logger.with_session(session.session_id)

    async def handle(self, transcript: str) -> None:
        session = self.session
        observer = session.observer

        session.view.show_user_message(transcript)
        observer.turn_started(transcript)
        self.logger.info_pii("Transcript received", transcript=transcript)

        credential = session.credentials.get()
        if not credential:
            self.logger.warning("No credential configured; asking the user for one")
            observer.credential_missing()
            session.status.set_status(Status.MISSING_CREDENTIAL)
            session.view.request_credential()
            observer.turn_completed("missing_credential")
            return

        context = self.retriever.retrieve(transcript)
        observer.retrieval_completed(matches=self.retriever.last_match_count, context_length=len(context))
        request = build_request(transcript, context, session.locale)

        observer.llm_request(model=self.client.model)
        try:
            reply = await self.client.complete(request, credential)
        except CompletionError as e:
            self.logger.error("Query failed", error=str(e), error_type=type(e).__name__)
            observer.llm_failed(e)
            session.view.show_reply(session.locale.apology)
            session.status.set_status(Status.ERROR)
            observer.turn_completed("error")
            return

        observer.llm_response(reply)
        session.view.show_reply(reply)
        session.speech.speak(reply)
        session.status.set_status(Status.READY)
        observer.turn_completed("answered")
