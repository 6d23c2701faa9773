"""Keyword-overlap context retrieval."""
from __future__ import annotations

from typing import FrozenSet, Iterable, List

from logging_setup import Component, get_logger
from .knowledge import KnowledgeItem


logger = get_logger(Component.RETRIEVAL)


def tokenize(text: str) -> FrozenSet[str]:
    """Whitespace tokens, case-folded. No stemming, punctuation is kept."""
    return frozenset(text.casefold().split())


def matches(item: KnowledgeItem, query_tokens: FrozenSet[str]) -> bool:
    """An item matches when its topic or its content shares a token with the query."""
    if not item.content:
        return False
    return bool(tokenize(item.topic) & query_tokens) or bool(tokenize(item.content) & query_tokens)


def matching_items(query: str, store: Iterable[KnowledgeItem]) -> List[KnowledgeItem]:
    """All matching items in store order."""
    query_tokens = tokenize(query)
    if not query_tokens:
        return []
    return [item for item in store if matches(item, query_tokens)]


def retrieve(query: str, store: Iterable[KnowledgeItem], fallback: str) -> str:
    """
    Return the content of every matching item, newline-joined, in store order.

    No ranking and no deduplication: all matches are included. When nothing
    matches, `fallback` is returned unchanged. Never raises.
    """
    return join_context(matching_items(query, store), fallback)


def join_context(found: List[KnowledgeItem], fallback: str) -> str:
    """Newline-join matched content, or `fallback` when nothing matched."""
    if not found:
        return fallback
    return "\n".join(item.content for item in found)


class ContextRetriever:
    """Binds a knowledge store and the locale's fallback sentence."""

    def __init__(self, store: Iterable[KnowledgeItem], fallback: str):
        self.store = store
        self.fallback = fallback
        self.last_match_count = 0

    def retrieve(self, query: str) -> str:
        found = matching_items(query, self.store)
        self.last_match_count = len(found)
        logger.debug("Context retrieved", matches=len(found), fallback=not found)
        return join_context(found, self.fallback)
