"""
Knowledge base: an ordered, read-only list of topic/content entries.

The source is a JSON (or YAML) file holding a list of {"topic", "content"}
objects. It is loaded once at startup and never mutated afterwards.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Iterator, Tuple

import yaml

from logging_setup import Component, get_logger
from .errors import LoadError


logger = get_logger(Component.KNOWLEDGE)


@dataclass(frozen=True)
class KnowledgeItem:
    topic: str
    content: str


class KnowledgeStore:
    """Immutable, order-preserving collection of KnowledgeItem."""

    __slots__ = ("_items",)

    def __init__(self, items: Iterable[KnowledgeItem] = ()):
        self._items: Tuple[KnowledgeItem, ...] = tuple(items)

    def __iter__(self) -> Iterator[KnowledgeItem]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __repr__(self) -> str:
        return f"KnowledgeStore({len(self._items)} items)"

    @property
    def items(self) -> Tuple[KnowledgeItem, ...]:
        return self._items

    @classmethod
    def from_records(cls, records: Any) -> "KnowledgeStore":
        """
        Build a store from parsed records.

        Raises LoadError unless `records` is a list of mappings. Entries whose
        content is empty are dropped; they could never contribute context.
        """
        if not isinstance(records, list):
            raise LoadError(f"Knowledge source must be a list, got {type(records).__name__}")

        items = []
        for index, record in enumerate(records):
            if not isinstance(record, dict):
                raise LoadError(f"Knowledge entry {index} is not an object")
            topic = _as_text(record.get("topic"))
            content = _as_text(record.get("content"))
            if not content:
                logger.warning("Skipping knowledge entry without content", index=index, topic=topic)
                continue
            items.append(KnowledgeItem(topic=topic, content=content))
        return cls(items)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def load_knowledge(path: Path | str) -> KnowledgeStore:
    """
    Load the knowledge base from a JSON or YAML file.

    Raises LoadError if the file is missing, unreadable or malformed.
    """
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise LoadError(f"Cannot read knowledge source {path}: {e}") from e

    try:
        if path.suffix.lower() in (".yaml", ".yml"):
            records = yaml.safe_load(raw)
        else:
            records = json.loads(raw)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise LoadError(f"Cannot parse knowledge source {path}: {e}") from e

    store = KnowledgeStore.from_records(records)
    logger.info("Knowledge base loaded", path=str(path), items=len(store))
    return store


def load_knowledge_or_empty(path: Path | str) -> Tuple[KnowledgeStore, LoadError | None]:
    """
    Load the knowledge base, degrading to an empty store on LoadError.

    Returns the store and the error that caused the degradation (if any), so
    the caller can report it. The assistant keeps working either way; with an
    empty store every query gets the fallback context.
    """
    try:
        return load_knowledge(path), None
    except LoadError as e:
        logger.error("Failed to load knowledge base, continuing with an empty one", path=str(path), error=str(e))
        return KnowledgeStore(), e
