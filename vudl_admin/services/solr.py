"""
Solr search index adapter.
"""

from typing import Mapping

import httpx
from loguru import logger

from ..hierarchy.protocols import SearchResponse


class SolrIndex:
    """Runs select queries against a Solr server.

    Non-200 replies are returned, not raised; callers decide what an error
    status means for them.
    """

    def __init__(self, client: httpx.AsyncClient, base_url: str):
        """
        Args:
            client: Shared async HTTP client
            base_url: Solr root, e.g. http://localhost:8983/solr
        """
        self.client = client
        self.base_url = base_url.rstrip("/")

    async def query(self, index: str, query: str, params: Mapping[str, str]) -> SearchResponse:
        request_params = {"q": query, "wt": "json", **params}
        response = await self.client.get(f"{self.base_url}/{index}/select", params=request_params)
        if response.status_code != 200:
            logger.error(f"Solr query {query!r} on {index} returned {response.status_code}")
            return SearchResponse(status_code=response.status_code)
        return SearchResponse(status_code=response.status_code, body=response.json())


__all__ = ["SolrIndex"]
