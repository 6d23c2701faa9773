"""
Assistant configuration.

Loads settings from environment variables. `load_env_files()` reads
.env_local / .env.local for local development without overriding variables
that are already exported.
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


DEFAULT_COMPLETION_ENDPOINT = "https://models.inference.ai.azure.com/chat/completions"
DEFAULT_COMPLETION_MODEL = "gpt-4o-mini"


def _strip_comment(value: Optional[str]) -> Optional[str]:
    """
    Strip inline comments and whitespace from an env value.

    "200  # tokens" -> "200"
    """
    if not value:
        return None
    if "#" in value:
        value = value.split("#")[0]
    value = value.strip()
    return value or None


def _parse_int_env(key: str, default: int) -> int:
    value = _strip_comment(os.environ.get(key))
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _parse_float_env(key: str, default: float) -> float:
    value = _strip_comment(os.environ.get(key))
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def load_env_files(root: Optional[Path] = None) -> None:
    """Best-effort load of .env_local / .env.local from the project root."""
    root = root or Path(__file__).parent.parent
    for name in (".env_local", ".env.local"):
        p = root / name
        if p.exists():
            load_dotenv(p, override=False)


@dataclass
class AssistantConfig:
    """Assistant configuration."""

    # Deployment language: selects the locale pack (texts, prompt, speech language)
    locale: str = "hu"

    # Knowledge base source (JSON or YAML list of {topic, content})
    knowledge_path: Path = Path("knowledge.json")

    # Where the settings surface persists the bearer token
    credential_path: Path = Path(".credential.json")

    # Completion service. Temperature is fixed in CompletionClient, not configurable.
    completion_endpoint: str = DEFAULT_COMPLETION_ENDPOINT
    completion_model: str = DEFAULT_COMPLETION_MODEL
    completion_max_tokens: int = 200
    completion_timeout_seconds: float = 30.0

    # Logging
    log_level: str = "INFO"

    # Assistant server
    server_host: str = "127.0.0.1"
    server_port: int = 8000

    @classmethod
    def from_env(cls) -> "AssistantConfig":
        """Load configuration from environment variables."""
        return cls(
            locale=os.environ.get("ASSISTANT_LOCALE", "hu").strip().lower() or "hu",
            knowledge_path=Path(os.environ.get("KNOWLEDGE_PATH", "knowledge.json")),
            credential_path=Path(os.environ.get("CREDENTIAL_PATH", ".credential.json")),
            completion_endpoint=os.environ.get("COMPLETION_ENDPOINT", DEFAULT_COMPLETION_ENDPOINT),
            completion_model=os.environ.get("COMPLETION_MODEL", DEFAULT_COMPLETION_MODEL),
            completion_max_tokens=_parse_int_env("COMPLETION_MAX_TOKENS", default=200),
            completion_timeout_seconds=_parse_float_env("COMPLETION_TIMEOUT_SECONDS", default=30.0),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
            server_host=os.environ.get("SERVER_HOST", "127.0.0.1"),
            server_port=_parse_int_env("SERVER_PORT", default=8000),
        )


def get_config() -> AssistantConfig:
    """Get or create the process-wide config used by the server entry point."""
    global _config
    if _config is None:
        load_env_files()
        _config = AssistantConfig.from_env()
    return _config


# Global config instance (lazy loaded)
_config: Optional[AssistantConfig] = None
