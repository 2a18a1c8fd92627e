from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Tuple

import httpx
from fastapi import FastAPI
from loguru import logger

from ..config import config
from ..services import FedoraRepository, SolrIndex
from ..shared.exceptions import ConfigurationError


def create_http_client() -> httpx.AsyncClient:
    """
    Shared HTTP client for Fedora and Solr.

    Fedora credentials are sent as basic auth when configured; the timeout
    applies to every repository and index request.
    """
    auth: Optional[Tuple[str, str]] = None
    if config.FEDORA_USERNAME:
        auth = (config.FEDORA_USERNAME, config.FEDORA_PASSWORD or "")
    return httpx.AsyncClient(
        auth=auth,
        timeout=httpx.Timeout(config.HTTP_TIMEOUT_SECONDS),
        follow_redirects=True,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    FastAPI Lifespan Context Manager
    Creates the repository and index adapters on startup, closes the HTTP client on shutdown.
    """
    if not config.FEDORA_URL or not config.SOLR_URL:
        logger.error(
            f"Startup failed | "
            f"FEDORA_URL={'set' if config.FEDORA_URL else 'MISSING'}, "
            f"SOLR_URL={'set' if config.SOLR_URL else 'MISSING'}"
        )
        raise ConfigurationError(
            "Repository configuration missing. Set FEDORA_URL and SOLR_URL."
        )

    client = create_http_client()
    try:
        logger.info(f"Using Fedora at {config.FEDORA_URL}, Solr at {config.SOLR_URL}")
        app.state.repository = FedoraRepository(client, config.FEDORA_URL, config.PID_NAMESPACE)
        app.state.index = SolrIndex(client, config.SOLR_URL)
        yield
    finally:
        logger.info("Closing HTTP client...")
        await client.aclose()
