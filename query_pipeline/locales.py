"""
Locale packs: every user-facing text of one deployment language.

Packs are stored as YAML (preferred) or JSON under query_pipeline/locale_packs/.
PyYAML's safe_load parses both, so there is a single code path.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from logging_setup import Component, get_logger
from .status import Status


DEFAULT_LOCALE = "hu"

logger = get_logger(Component.QUERY_PIPELINE)


@dataclass(frozen=True)
class Locale:
    name: str
    language_tag: str
    fallback_context: str
    system_prompt: str
    apology: str
    statuses: Dict[str, str] = field(default_factory=dict)

    def status_text(self, status: Status) -> str:
        return self.statuses.get(status.value, status.value)

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> "Locale":
        missing = [k for k in ("name", "language_tag", "fallback_context", "system_prompt", "apology") if not data.get(k)]
        if missing:
            raise ValueError(f"Locale pack is missing required keys: {', '.join(missing)}")
        if "{context}" not in data["system_prompt"]:
            raise ValueError(f"Locale pack {data['name']!r}: system_prompt has no {{context}} placeholder")
        statuses = data.get("statuses") or {}
        return cls(
            name=str(data["name"]),
            language_tag=str(data["language_tag"]),
            fallback_context=str(data["fallback_context"]).strip(),
            system_prompt=str(data["system_prompt"]).strip(),
            apology=str(data["apology"]).strip(),
            statuses={str(k): str(v) for k, v in statuses.items()},
        )


# Last resort when no pack file can be found at all.
_BUILTIN_HU = {
    "name": "hu",
    "language_tag": "hu-HU",
    "fallback_context": "Nincs specifikus információm erről a tudásbázisban.",
    "system_prompt": (
        "Te egy segítőkész asszisztens vagy.\n"
        "KIZÁRÓLAG a következő tudásbázis alapján válaszolj:\n"
        "### TUDÁSBÁZIS:\n"
        "{context}\n"
        "### SZABÁLYOK:\n"
        "1. Ha a válasz nincs benne a tudásbázisban, udvariasan mondd meg, hogy erről nincs információd.\n"
        "2. Ne találj ki adatokat (hallucináció tilos).\n"
        "3. Válaszolj tömören, beszédstílusban (mivel fel lesz olvasva).\n"
        "4. Mindig magyarul válaszolj."
    ),
    "apology": "Sajnos hiba történt a válaszadás során.",
    "statuses": {
        "listening": "Figyelek...",
        "processing": "Feldolgozás...",
        "ready": "Készen áll a kérdésre...",
        "error": "Hiba történt.",
        "missing_credential": "Hiányzó API kulcs",
        "not_supported": "A böngésző nem támogatja a beszédfelismerést.",
    },
}


def _get_locales_dir() -> Path:
    return Path(__file__).parent / "locale_packs"


def _load_file(path: Path) -> Dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Locale file {path} must contain a mapping at top-level")
    return data


def _find_pack(name: str, locales_dir: Path) -> Optional[Path]:
    for suffix in (".yaml", ".yml", ".json"):
        candidate = locales_dir / f"{name}{suffix}"
        if candidate.exists():
            return candidate
    return None


def load_locale(name: Optional[str] = None, *, locales_dir: Optional[Path] = None) -> Locale:
    """
    Load a locale pack.

    Resolution order:
    1) <name>.yaml / <name>.yml / <name>.json
    2) the default pack (hu) in the same order
    3) the built-in Hungarian texts
    """
    locales_dir = locales_dir or _get_locales_dir()
    requested = (name or DEFAULT_LOCALE).strip().lower()

    path = _find_pack(requested, locales_dir)
    if path is None:
        if requested != DEFAULT_LOCALE:
            logger.warning("Locale pack not found, using default", requested=requested, default=DEFAULT_LOCALE)
        path = _find_pack(DEFAULT_LOCALE, locales_dir)

    if path is None:
        return Locale.from_mapping(_BUILTIN_HU)
    return Locale.from_mapping(_load_file(path))
