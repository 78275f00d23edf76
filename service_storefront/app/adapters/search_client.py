"""
Vector search client for the Storefront Service.
"""

from typing import Any, Dict, List, Optional

import httpx

from shared.logging import get_logger
from shared.errors import ConfigurationError, ExternalServiceError

from ..domain.models import SearchHit


SERVICE_NAME = "vector_search"
SEARCH_FIELDS = ["ID", "chunk_text", "document_title", "author", "summary"]


class VectorSearchClient:
    """Client for the hosted vector index holding book summaries."""

    def __init__(
        self,
        index_host: Optional[str],
        api_key: Optional[str],
        namespace: str = "books",
        api_version: str = "2025-04",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.index_host = index_host
        self.api_key = api_key
        self.namespace = namespace
        self.api_version = api_version
        self.timeout = timeout
        self.logger = get_logger("storefront.search_client")
        self._transport = transport

    async def search(self, text: str, top_k: int = 10) -> List[SearchHit]:
        """Search records by text. Hits without an identifier are dropped."""
        body = {
            "query": {"top_k": top_k, "inputs": {"text": text}},
            "fields": SEARCH_FIELDS,
        }
        data = await self._request("POST", f"/records/namespaces/{self.namespace}/search", json=body)
        raw_hits = (data.get("result") or {}).get("hits") or []

        hits = []
        for raw in raw_hits:
            hit = SearchHit.from_record(raw)
            if hit is not None:
                hits.append(hit)

        self.logger.info("Vector search completed", top_k=top_k, raw_hits=len(raw_hits), hits=len(hits))
        return hits

    async def describe_index_stats(self) -> Dict[str, Any]:
        """Return record counts and namespace stats for the index."""
        data = await self._request("POST", "/describe_index_stats", json={})
        return {
            "totalVectors": data.get("totalVectorCount", 0),
            "dimension": data.get("dimension"),
            "namespaces": data.get("namespaces") or {},
        }

    async def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if not self.api_key or not self.index_host:
            raise ConfigurationError(
                "Vector search is not configured",
                details={"settings": ["STOREFRONT_SEARCH_API_KEY", "STOREFRONT_SEARCH_INDEX_HOST"]},
            )

        host = self.index_host if self.index_host.startswith("http") else f"https://{self.index_host}"
        url = f"{host.rstrip('/')}{path}"
        headers = {
            "Api-Key": self.api_key,
            "X-Pinecone-API-Version": self.api_version,
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.request(method, url, headers=headers, json=json)
        except httpx.HTTPError as e:
            self.logger.error("Vector search request error", path=path, error=str(e))
            raise ExternalServiceError(SERVICE_NAME, str(e), details={"path": path})

        if response.status_code != 200:
            self.logger.error(
                "Vector search request failed",
                path=path,
                status_code=response.status_code,
                response=response.text,
            )
            raise ExternalServiceError(
                SERVICE_NAME,
                f"Unexpected status {response.status_code}",
                details={"status_code": response.status_code, "body": response.text},
            )

        return response.json()
