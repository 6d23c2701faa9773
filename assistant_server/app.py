"""
FastAPI application for the assistant server.

The lifespan builds one assistant with relay engines and runs the capture
controller's event loop for as long as the server is up.
"""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from logging_setup import Component, get_logger
from query_pipeline.assistant import build_assistant
from query_pipeline.completion import CompletionClient
from query_pipeline.config import AssistantConfig, get_config
from query_pipeline.credentials import CredentialStore
from .relay import RelayCaptureEngine, RelaySpeechEngine
from .routes import router


logger = get_logger(Component.ASSISTANT_SERVER)


def create_app(
    config: Optional[AssistantConfig] = None,
    *,
    credentials: Optional[CredentialStore] = None,
    client: Optional[CompletionClient] = None,
    capture_supported: bool = True,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        assistant = build_assistant(
            config or get_config(),
            capture_engine=RelayCaptureEngine(supported=capture_supported),
            speech_engine=RelaySpeechEngine(),
            credentials=credentials,
            client=client,
        )
        app.state.assistant = assistant
        capture_loop = asyncio.create_task(assistant.capture.run())
        logger.info("Assistant server started", session_id=assistant.session.session_id)
        try:
            yield
        finally:
            await assistant.aclose()
            await capture_loop
            app.state.assistant = None
            logger.info("Assistant server stopped", session_id=assistant.session.session_id)

    app = FastAPI(title="kb-voice-assistant", lifespan=lifespan)
    app.include_router(router)
    return app


app = create_app()
