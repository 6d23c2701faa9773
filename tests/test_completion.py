"""
Tests for the chat-completion client.

A local aiohttp server stands in for the completion endpoint, so the real
request path (headers, JSON body, status handling) is exercised.
"""
import asyncio
import json
from contextlib import asynccontextmanager

import aiohttp
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from query_pipeline.completion import CompletionClient, extract_reply
from query_pipeline.errors import MalformedResponseError, MissingCredentialError, TransportError
from query_pipeline.prompts import PendingRequest


REQUEST = PendingRequest(query="what are the hours", context="Open 9-17", system_prompt="Rules:\nOpen 9-17")


def _ok_body(content="We are open 9-17."):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


@asynccontextmanager
async def completion_server(status=200, body=None, text=None, raw=None, delay=0.0):
    """Serve one canned response and record every request received."""
    received = []

    async def handler(request):
        received.append({"headers": dict(request.headers), "json": await request.json()})
        if delay:
            await asyncio.sleep(delay)
        if raw is not None:
            return web.Response(status=status, body=raw, content_type="application/json", charset="utf-8")
        if text is not None:
            return web.Response(status=status, text=text)
        return web.json_response(body if body is not None else _ok_body(), status=status)

    app = web.Application()
    app.router.add_post("/chat/completions", handler)
    server = TestServer(app)
    await server.start_server()
    try:
        yield str(server.make_url("/chat/completions")), received
    finally:
        await server.close()


@pytest.mark.asyncio
async def test_complete_returns_reply():
    async with completion_server() as (url, received):
        client = CompletionClient(endpoint=url)
        try:
            reply = await client.complete(REQUEST, "secret-token")
        finally:
            await client.aclose()

    assert reply == "We are open 9-17."
    assert len(received) == 1


@pytest.mark.asyncio
async def test_request_headers_and_payload():
    async with completion_server() as (url, received):
        client = CompletionClient(endpoint=url, model="gpt-4o-mini", max_tokens=200)
        try:
            await client.complete(REQUEST, "secret-token")
        finally:
            await client.aclose()

    sent = received[0]
    assert sent["headers"]["Authorization"] == "Bearer secret-token"
    assert sent["headers"]["Content-Type"].startswith("application/json")
    assert sent["json"] == {
        "messages": [
            {"role": "system", "content": "Rules:\nOpen 9-17"},
            {"role": "user", "content": "what are the hours"},
        ],
        "model": "gpt-4o-mini",
        "temperature": 0.2,
        "max_tokens": 200,
    }


@pytest.mark.asyncio
@pytest.mark.parametrize("credential", ["", "   ", None])
async def test_missing_credential_sends_nothing(credential):
    async with completion_server() as (url, received):
        client = CompletionClient(endpoint=url)
        with pytest.raises(MissingCredentialError):
            await client.complete(REQUEST, credential)
        await client.aclose()

    assert received == []


@pytest.mark.asyncio
async def test_non_2xx_is_transport_error():
    async with completion_server(status=401, body={"error": "unauthorized"}) as (url, _):
        client = CompletionClient(endpoint=url)
        try:
            with pytest.raises(TransportError) as exc_info:
                await client.complete(REQUEST, "bad-token")
        finally:
            await client.aclose()

    assert exc_info.value.status == 401


@pytest.mark.asyncio
async def test_non_json_body_is_malformed():
    async with completion_server(text="<html>oops</html>") as (url, _):
        client = CompletionClient(endpoint=url)
        try:
            with pytest.raises(MalformedResponseError):
                await client.complete(REQUEST, "token")
        finally:
            await client.aclose()


@pytest.mark.asyncio
async def test_no_choices_is_malformed():
    async with completion_server(body={"choices": []}) as (url, _):
        client = CompletionClient(endpoint=url)
        try:
            with pytest.raises(MalformedResponseError):
                await client.complete(REQUEST, "token")
        finally:
            await client.aclose()


@pytest.mark.asyncio
async def test_unreachable_endpoint_is_transport_error():
    async with completion_server() as (url, _):
        pass  # server is closed now

    client = CompletionClient(endpoint=url, timeout_seconds=2.0)
    try:
        with pytest.raises(TransportError) as exc_info:
            await client.complete(REQUEST, "token")
    finally:
        await client.aclose()
    assert exc_info.value.status is None


@pytest.mark.asyncio
async def test_session_is_reused_between_calls():
    async with completion_server() as (url, received):
        client = CompletionClient(endpoint=url)
        try:
            await client.complete(REQUEST, "token")
            first_session = client._http_session
            await client.complete(REQUEST, "token")
            assert client._http_session is first_session
        finally:
            await client.aclose()

    assert len(received) == 2
    assert client._http_session is None


@pytest.mark.asyncio
async def test_invalid_utf8_body_is_malformed():
    async with completion_server(raw=b'{"choices": "\xff\xfe"}') as (url, _):
        client = CompletionClient(endpoint=url)
        try:
            with pytest.raises(MalformedResponseError):
                await client.complete(REQUEST, "token")
        finally:
            await client.aclose()


@pytest.mark.asyncio
async def test_timeout_applies_to_borrowed_session():
    async with completion_server(delay=1.0) as (url, _):
        async with aiohttp.ClientSession() as session:
            client = CompletionClient(endpoint=url, timeout_seconds=0.1, session=session)
            with pytest.raises(TransportError):
                await client.complete(REQUEST, "token")
            await client.aclose()
            assert not session.closed


@pytest.mark.parametrize(
    "body",
    [
        [],
        {},
        {"choices": "nope"},
        {"choices": [{}]},
        {"choices": [{"message": {}}]},
        {"choices": [{"message": {"content": None}}]},
        {"choices": [{"message": {"content": "   "}}]},
    ],
)
def test_extract_reply_rejects_malformed_bodies(body):
    with pytest.raises(MalformedResponseError):
        extract_reply(body)


def test_extract_reply_strips_content():
    assert extract_reply(json.loads('{"choices": [{"message": {"content": "  Hi  "}}]}')) == "Hi"


def test_temperature_is_fixed():
    assert CompletionClient.TEMPERATURE == 0.2
    assert CompletionClient().build_payload(REQUEST)["temperature"] == 0.2
