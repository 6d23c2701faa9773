"""
Prompt construction under the knowledge-base-only contract.

The request is always two messages:
- system: the locale's fixed rules with the context block interpolated verbatim
- user: the raw query, unmodified

The system template's order (role, "exclusively from the knowledge base",
knowledge block, numbered rules) lives in the locale pack and is passed
through untouched.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

from .locales import Locale


@dataclass(frozen=True)
class PendingRequest:
    """One completion request. Created per query, discarded after the response."""

    query: str
    context: str
    system_prompt: str

    def messages(self) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": self.query},
        ]


def build_system_prompt(context: str, template: str) -> str:
    # Plain replacement: braces inside the context must survive as-is.
    return template.replace("{context}", context)


def build_request(query: str, context: str, locale: Locale) -> PendingRequest:
    """Combine fixed rules, retrieved context and the user's query."""
    return PendingRequest(
        query=query,
        context=context,
        system_prompt=build_system_prompt(context, locale.system_prompt),
    )
