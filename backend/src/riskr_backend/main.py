"""Riskr API entrypoint."""

from __future__ import annotations

import logging

import uvicorn

from riskr_backend.api import create_api
from riskr_backend.settings import get_settings

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

app = create_api()


def configure_logging(level: str) -> None:
    """Apply the process-wide log format and level."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def _run_uvicorn(*, reload: bool) -> None:
    """Start uvicorn with a consistent configuration."""
    config = get_settings()
    configure_logging(config.log_level)
    logger.info(
        f"Starting Riskr backend on {config.api_host}:{config.api_port} (reload={reload})"
    )
    uvicorn.run(
        "riskr_backend.main:app",
        host=config.api_host,
        port=config.api_port,
        reload=reload,
        log_level=config.log_level.lower(),
    )


def run_dev() -> None:
    """Run the development ASGI server with auto-reload."""
    _run_uvicorn(reload=True)


def run_prod() -> None:
    """Run the production ASGI server without auto-reload."""
    _run_uvicorn(reload=False)
