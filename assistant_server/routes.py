"""
Assistant API.

- Settings: credential write/clear (the token itself is never returned or logged)
- View: status and chat transcript
- Voice relay: capture notifications in, utterances out
- Events: read access to the in-memory event store
"""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field

from observability.event_store import event_store
from observability.events import Component as ObsComponent, EventEmitter, Severity
from query_pipeline.assistant import Assistant
from query_pipeline.capture import CaptureEvent, CaptureMessage
from query_pipeline.status import ChatView
from .relay import RelayCaptureEngine, RelaySpeechEngine


router = APIRouter()
emitter = EventEmitter(ObsComponent.ASSISTANT_SERVER)


def get_assistant(request: Request) -> Assistant:
    assistant = getattr(request.app.state, "assistant", None)
    if assistant is None:
        raise HTTPException(status_code=503, detail="assistant_not_ready")
    return assistant


def _chat_view(assistant: Assistant) -> ChatView:
    view = assistant.session.view
    if not isinstance(view, ChatView):
        raise HTTPException(status_code=501, detail="view_not_available")
    return view


# --- Models ---


class CredentialRequest(BaseModel):
    token: str = Field(..., min_length=1, description="Bearer token for the completion service")


class SettingsResponse(BaseModel):
    locale: str
    language_tag: str
    credential_configured: bool
    credential_requested: bool


class StatusResponse(BaseModel):
    status: Optional[str] = None
    status_text: str = ""
    capture_state: str
    speech_state: str
    capture_supported: bool


class MessageOut(BaseModel):
    text: str
    from_user: bool


class TranscriptRequest(BaseModel):
    transcript: str


class UtteranceOut(BaseModel):
    id: int
    text: str
    language: str


class SpeechResponse(BaseModel):
    utterance: Optional[UtteranceOut] = None


class SpeechFinishedRequest(BaseModel):
    id: int


def _status(assistant: Assistant) -> StatusResponse:
    view = _chat_view(assistant)
    status = view.status
    return StatusResponse(
        status=status.value if status else None,
        status_text=assistant.session.locale.status_text(status) if status else "",
        capture_state=assistant.capture.state.value,
        speech_state=assistant.session.speech.state.value,
        capture_supported=assistant.capture.supported,
    )


# --- Health / settings ---


@router.get("/health")
async def health():
    return {"status": "ok", "component": "assistant_server"}


@router.get("/settings", response_model=SettingsResponse)
async def get_settings(assistant: Assistant = Depends(get_assistant)) -> SettingsResponse:
    session = assistant.session
    return SettingsResponse(
        locale=session.locale.name,
        language_tag=session.locale.language_tag,
        credential_configured=bool(session.credentials.get()),
        credential_requested=_chat_view(assistant).credential_requested,
    )


@router.put("/settings/credential")
async def put_credential(req: CredentialRequest, assistant: Assistant = Depends(get_assistant)) -> dict:
    token = req.token.strip()
    if not token:
        raise HTTPException(status_code=422, detail="empty_token")
    session = assistant.session
    session.credentials.set(token)
    _chat_view(assistant).credential_provided()
    emitter.emit("settings.credential_updated", session_id=session.session_id)
    return {"status": "ok"}


@router.delete("/settings/credential")
async def delete_credential(assistant: Assistant = Depends(get_assistant)) -> dict:
    session = assistant.session
    session.credentials.clear()
    emitter.emit("settings.credential_cleared", session_id=session.session_id, severity=Severity.WARN)
    return {"status": "ok"}


# --- View ---


@router.get("/status", response_model=StatusResponse)
async def get_status(assistant: Assistant = Depends(get_assistant)) -> StatusResponse:
    return _status(assistant)


@router.get("/messages", response_model=List[MessageOut])
async def get_messages(assistant: Assistant = Depends(get_assistant)) -> List[MessageOut]:
    return [MessageOut(text=m.text, from_user=m.from_user) for m in _chat_view(assistant).messages]


# --- Voice relay ---


def _relay_capture(assistant: Assistant) -> RelayCaptureEngine:
    engine = assistant.capture.engine
    if not isinstance(engine, RelayCaptureEngine):
        raise HTTPException(status_code=501, detail="capture_relay_not_available")
    return engine


def _relay_speech(assistant: Assistant) -> RelaySpeechEngine:
    engine = assistant.session.speech.engine
    if not isinstance(engine, RelaySpeechEngine):
        raise HTTPException(status_code=501, detail="speech_relay_not_available")
    return engine


@router.post("/voice/trigger", response_model=StatusResponse)
async def voice_trigger(assistant: Assistant = Depends(get_assistant)) -> StatusResponse:
    await assistant.capture.dispatch(CaptureMessage(CaptureEvent.TRIGGER))
    return _status(assistant)


@router.post("/voice/result", response_model=StatusResponse)
async def voice_result(req: TranscriptRequest, assistant: Assistant = Depends(get_assistant)) -> StatusResponse:
    await assistant.capture.dispatch(CaptureMessage(CaptureEvent.RESULT, req.transcript))
    return _status(assistant)


@router.post("/voice/end", response_model=StatusResponse)
async def voice_end(assistant: Assistant = Depends(get_assistant)) -> StatusResponse:
    _relay_capture(assistant).active = False
    await assistant.capture.dispatch(CaptureMessage(CaptureEvent.END))
    return _status(assistant)


@router.get("/voice/capture")
async def voice_capture(assistant: Assistant = Depends(get_assistant)) -> dict:
    engine = _relay_capture(assistant)
    return {"active": engine.active, "supported": engine.supported}


@router.get("/voice/speech", response_model=SpeechResponse)
async def voice_speech(assistant: Assistant = Depends(get_assistant)) -> SpeechResponse:
    current = _relay_speech(assistant).current
    if current is None:
        return SpeechResponse()
    return SpeechResponse(utterance=UtteranceOut(id=current.id, text=current.text, language=current.language))


@router.post("/voice/speech/finished")
async def voice_speech_finished(req: SpeechFinishedRequest, assistant: Assistant = Depends(get_assistant)) -> dict:
    return {"accepted": _relay_speech(assistant).finished(req.id)}


# --- Events ---


@router.get("/events")
async def get_events(
    event_type: Optional[str] = Query(None, description="Filter by event_type"),
    limit: Optional[int] = Query(None, ge=1, le=1000, description="Max (most recent) events to return"),
    assistant: Assistant = Depends(get_assistant),
) -> dict:
    session_id = assistant.session.session_id
    events = event_store.query(session_id=session_id, event_type=event_type, limit=limit)
    return {"session_id": session_id, "events": events, "count": len(events)}
