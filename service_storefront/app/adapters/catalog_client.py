"""
Upstream catalog client for the Storefront Service.
"""

from typing import Any, Dict, List, Optional

import httpx

from shared.logging import get_logger
from shared.errors import (
    ConfigurationError,
    ExternalServiceError,
    UpstreamStatusError,
    UpstreamUnavailableError,
)
from shared.metrics import MetricsCollector
from shared.retry import retry_on_exception, RetryConfig, RetryError


SERVICE_NAME = "catalog"
INVENTORY_BATCH_SIZE = 100


class RateLimitedError(ExternalServiceError):
    """Upstream answered 429. Retried with backoff."""

    def __init__(self, body: str = ""):
        super().__init__(SERVICE_NAME, "Rate limited", details={"status_code": 429, "body": body})


class CatalogClient:
    """Bearer-token JSON client for the upstream catalog API.

    Every request goes through one retry wrapper: 429 responses and transport
    errors are retried with exponential backoff, any other error status fails
    immediately with the response body attached.
    """

    def __init__(
        self,
        base_url: str,
        access_token: Optional[str],
        api_version: str = "2025-01-09",
        retry_config: Optional[RetryConfig] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self.api_version = api_version
        self.timeout = timeout
        self.logger = get_logger("storefront.catalog_client")
        self.metrics = metrics
        self._transport = transport

        self.retry_config = retry_config or RetryConfig(
            max_attempts=4,
            base_delay=0.5,
            max_delay=30.0,
            exponential_base=2.0,
            jitter=False,
        )
        self._send_with_retry = retry_on_exception(
            (RateLimitedError, httpx.TransportError),
            config=self.retry_config,
            on_retry=self._record_retry,
        )(self._send_once)

    async def list_categories(self) -> List[Dict[str, Any]]:
        """List every CATEGORY object."""
        data = await self._send("GET", "/v2/catalog/list", params={"types": "CATEGORY"})
        return data.get("objects") or []

    async def search_items_by_category(
        self,
        category_id: str,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Search ITEM objects listed under a category."""
        body: Dict[str, Any] = {"category_ids": [category_id]}
        if limit and limit > 0:
            body["limit"] = limit
        data = await self._send("POST", "/v2/catalog/search-catalog-items", json=body)
        return data.get("items") or []

    async def retrieve_object(self, object_id: str) -> Optional[Dict[str, Any]]:
        """Retrieve one catalog object. Returns None when it does not exist."""
        try:
            data = await self._send("GET", f"/v2/catalog/object/{object_id}")
        except UpstreamStatusError as e:
            if e.status == 404:
                self.logger.info("Catalog object not found", object_id=object_id)
                return None
            raise
        return data.get("object")

    async def batch_retrieve(self, object_ids: List[str]) -> Dict[str, Any]:
        """Retrieve several catalog objects in one call."""
        data = await self._send(
            "POST",
            "/v2/catalog/batch-retrieve",
            json={"object_ids": list(object_ids), "include_related_objects": False},
        )
        return {
            "objects": data.get("objects") or [],
            "errors": data.get("errors") or [],
        }

    async def batch_retrieve_inventory_counts(
        self,
        variation_ids: List[str],
        location_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Retrieve inventory counts for item variations.

        Ids are deduplicated and sent in groups of 100; each group follows the
        pagination cursor until the upstream stops returning one.
        """
        ids = list(dict.fromkeys(each for each in variation_ids if each))
        counts: List[Dict[str, Any]] = []

        for start in range(0, len(ids), INVENTORY_BATCH_SIZE):
            body: Dict[str, Any] = {"catalog_object_ids": ids[start:start + INVENTORY_BATCH_SIZE]}
            if location_id:
                body["location_ids"] = [location_id]

            cursor: Optional[str] = None
            while True:
                page = dict(body, cursor=cursor) if cursor else body
                data = await self._send("POST", "/v2/inventory/batch-retrieve-counts", json=page)
                counts.extend(data.get("counts") or [])
                cursor = data.get("cursor")
                if not cursor:
                    break

        return counts

    async def _send(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        if not self.access_token:
            raise ConfigurationError(
                "Catalog access token is not configured",
                details={"setting": "STOREFRONT_CATALOG_ACCESS_TOKEN"},
            )

        try:
            return await self._send_with_retry(method, path, json=json, params=params)
        except RetryError as e:
            last = e.last_exception
            self.logger.error(
                "Catalog request failed after retries",
                method=method,
                path=path,
                attempts=e.attempts,
                error=str(last),
            )
            raise UpstreamUnavailableError(
                SERVICE_NAME,
                f"Request failed after {e.attempts} attempts",
                details={"path": path, "last_error": str(last)},
            )

    async def _send_once(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Square-Version": self.api_version,
            "Content-Type": "application/json",
        }

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.request(method, url, headers=headers, json=json, params=params)

        if response.status_code == 429:
            raise RateLimitedError(response.text)

        if response.is_success:
            self.logger.debug("Catalog request succeeded", method=method, path=path)
            return response.json() if response.content else {}

        self.logger.error(
            "Catalog request failed",
            method=method,
            path=path,
            status_code=response.status_code,
            response=response.text,
        )
        raise UpstreamStatusError(SERVICE_NAME, response.status_code, response.text)

    def _record_retry(self, attempt: int, error: Exception, delay: float) -> None:
        if self.metrics is None:
            return
        reason = "rate_limited" if isinstance(error, RateLimitedError) else "transport"
        self.metrics.increment_counter("upstream_retries_total", reason=reason)
