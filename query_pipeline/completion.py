"""
Remote chat-completion client.

One POST per query, no retries. The response must carry
choices[0].message.content; anything else is a MalformedResponseError.
"""
from __future__ import annotations

import asyncio
import json
import time
from typing import Any, Optional

import aiohttp

from logging_setup import Component, get_logger
from .config import DEFAULT_COMPLETION_ENDPOINT, DEFAULT_COMPLETION_MODEL
from .errors import MalformedResponseError, MissingCredentialError, TransportError
from .prompts import PendingRequest


logger = get_logger(Component.LLM)


def extract_reply(data: Any) -> str:
    """Pull choices[0].message.content out of a parsed response body."""
    if not isinstance(data, dict):
        raise MalformedResponseError("Response body is not a JSON object")
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        raise MalformedResponseError("Response has no choices")
    first = choices[0]
    message = first.get("message") if isinstance(first, dict) else None
    content = message.get("content") if isinstance(message, dict) else None
    if not isinstance(content, str) or not content.strip():
        raise MalformedResponseError("Response has no message content")
    return content.strip()


class CompletionClient:
    """Chat-completion client over a pooled aiohttp session."""

    # Kept low to suppress hallucination; deliberately not a constructor argument.
    TEMPERATURE = 0.2

    def __init__(
        self,
        *,
        endpoint: str = DEFAULT_COMPLETION_ENDPOINT,
        model: str = DEFAULT_COMPLETION_MODEL,
        max_tokens: int = 200,
        timeout_seconds: float = 30.0,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.endpoint = endpoint
        self.model = model
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds

        # A caller-provided session is borrowed, never closed here.
        self._http_session = session
        self._owns_session = session is None

    def build_payload(self, request: PendingRequest) -> dict:
        return {
            "messages": request.messages(),
            "model": self.model,
            "temperature": self.TEMPERATURE,
            "max_tokens": self.max_tokens,
        }

    def _get_or_create_session(self) -> aiohttp.ClientSession:
        """Reuse one HTTP session so consecutive queries share TCP connections."""
        if self._http_session is None or self._http_session.closed:
            self._http_session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            )
            self._owns_session = True
            logger.debug("Completion HTTP session created", timeout_s=self.timeout_seconds)
        return self._http_session

    async def complete(self, request: PendingRequest, credential: Optional[str]) -> str:
        """
        Send the request and return the reply text.

        Raises:
            MissingCredentialError: credential empty; nothing is sent
            TransportError: network failure, timeout or non-2xx status
            MalformedResponseError: body not UTF-8 JSON or lacking choices[0].message.content
        """
        if not credential or not credential.strip():
            raise MissingCredentialError("No API credential configured")

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {credential.strip()}",
        }
        payload = self.build_payload(request)

        t_start = time.perf_counter()
        logger.info(
            "LLM call started",
            endpoint=self.endpoint,
            model=self.model,
            context_length=len(request.context),
            query_length=len(request.query),
        )

        session = self._get_or_create_session()
        try:
            async with session.post(
                self.endpoint,
                json=payload,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            ) as response:
                raw = await response.read()
                status = response.status
        except asyncio.TimeoutError as e:
            logger.error("LLM call timed out", endpoint=self.endpoint, latency_ms=_elapsed_ms(t_start))
            raise TransportError(f"Completion request timed out after {self.timeout_seconds}s") from e
        except aiohttp.ClientError as e:
            logger.error(
                "LLM call failed",
                endpoint=self.endpoint,
                error=str(e),
                error_type=type(e).__name__,
                latency_ms=_elapsed_ms(t_start),
            )
            raise TransportError(f"Completion request failed: {e}") from e

        if not 200 <= status < 300:
            logger.error(
                "LLM call returned error status",
                endpoint=self.endpoint,
                status_code=status,
                error_text=raw[:500].decode("utf-8", errors="replace"),
                latency_ms=_elapsed_ms(t_start),
            )
            raise TransportError(f"Completion endpoint returned HTTP {status}", status=status)

        try:
            data = json.loads(raw.decode("utf-8"))
        except UnicodeDecodeError as e:
            raise MalformedResponseError("Response body is not valid UTF-8") from e
        except ValueError as e:
            raise MalformedResponseError("Response body is not valid JSON") from e

        reply = extract_reply(data)
        logger.info(
            "LLM call completed",
            endpoint=self.endpoint,
            reply_length=len(reply),
            latency_ms=_elapsed_ms(t_start),
        )
        return reply

    async def aclose(self) -> None:
        """Close the pooled session if this client created it. Safe to call twice."""
        if self._http_session is not None and self._owns_session:
            try:
                await self._http_session.close()
            finally:
                self._http_session = None


def _elapsed_ms(t_start: float) -> int:
    return int((time.perf_counter() - t_start) * 1000)
