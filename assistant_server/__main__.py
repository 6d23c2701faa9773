"""
Entry point for the assistant server.

Usage:
    python -m assistant_server

Starts the FastAPI app on SERVER_HOST:SERVER_PORT (default 127.0.0.1:8000).
LOG_LEVEL and LOG_FORMAT (json|text) control logging.
"""
import uvicorn

from logging_setup import setup_logging_from_env
from query_pipeline.config import get_config

if __name__ == "__main__":
    config = get_config()
    setup_logging_from_env()

    uvicorn.run(
        "assistant_server.app:app",
        host=config.server_host,
        port=config.server_port,
        log_level=config.log_level.lower(),
    )
