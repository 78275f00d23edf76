"""
Batch fetch orchestration for books, images and categories.

Requested ids are split into those already cached and those that must be
fetched. Exactly one upstream batch call is made for the uncached ids and
every fetched object is written back under its singleton key, so later
single-item lookups hit the cache.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from shared.errors import StorefrontException
from shared.logging import get_logger

from ..adapters.catalog_client import CatalogClient
from ..caching.cache_manager import CacheManager
from ..domain.models import Book, CatalogImage, Category


MAX_BATCH_SIZE = 1000


@dataclass
class BatchResult:
    """Merged outcome of one batch fetch.

    ``items`` is keyed by id; order relative to the request is not kept.
    """

    items: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    not_found: List[str] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)
    requested: int = 0
    cached: int = 0
    fetched: int = 0
    error: Optional[StorefrontException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self, items_field: str) -> Dict[str, Any]:
        return {
            items_field: list(self.items.values()),
            "total": len(self.items),
            "requested": self.requested,
            "notFound": list(self.not_found),
            "errors": list(self.errors),
            "cacheHits": self.cached,
        }


def _dedupe(ids: List[str]) -> List[str]:
    seen = set()
    ordered = []
    for each in ids:
        if each and each not in seen:
            seen.add(each)
            ordered.append(each)
    return ordered


class BatchFetcher:
    """Cache-aware batch retrieval against the catalog provider."""

    def __init__(self, catalog_client: CatalogClient, cache: CacheManager):
        self.catalog = catalog_client
        self.cache = cache
        self.logger = get_logger("storefront.batch")

    async def fetch_books(self, book_ids: List[str]) -> BatchResult:
        async def store(obj: Dict[str, Any]) -> Optional[Dict[str, Any]]:
            payload = Book.from_catalog_object(obj).to_dict()
            await self.cache.set_book(obj["id"], payload)
            return payload

        return await self._fetch("ITEM", book_ids, self.cache.get_book, store)

    async def fetch_images(self, image_ids: List[str]) -> BatchResult:
        async def cached_image(image_id: str) -> Optional[Dict[str, Any]]:
            url = await self.cache.get_image_url(image_id)
            return {"id": image_id, "imageUrl": url} if url else None

        async def store(obj: Dict[str, Any]) -> Optional[Dict[str, Any]]:
            image = CatalogImage.from_catalog_object(obj)
            if not image.image_url:
                return None
            await self.cache.set_image_url(image.id, image.image_url)
            return image.to_dict()

        return await self._fetch("IMAGE", image_ids, cached_image, store)

    async def fetch_categories(self, category_ids: List[str]) -> BatchResult:
        async def store(obj: Dict[str, Any]) -> Optional[Dict[str, Any]]:
            payload = Category.from_catalog_object(obj).to_dict()
            await self.cache.set_category(obj["id"], payload)
            return payload

        return await self._fetch("CATEGORY", category_ids, self.cache.get_category, store)

    async def _fetch(
        self,
        object_type: str,
        requested_ids: List[str],
        read_cached: Callable[[str], Awaitable[Optional[Dict[str, Any]]]],
        store: Callable[[Dict[str, Any]], Awaitable[Optional[Dict[str, Any]]]],
    ) -> BatchResult:
        ids = _dedupe(requested_ids)
        result = BatchResult(requested=len(ids))

        cached_values = await asyncio.gather(*(read_cached(each) for each in ids))
        uncached = []
        for object_id, value in zip(ids, cached_values):
            if value is not None:
                result.items[object_id] = value
            else:
                uncached.append(object_id)
        result.cached = len(result.items)

        if uncached:
            try:
                data = await self.catalog.batch_retrieve(uncached)
            except StorefrontException as e:
                self.logger.error(
                    "Batch retrieve failed",
                    object_type=object_type,
                    uncached=len(uncached),
                    error=e.message,
                )
                result.error = e
                result.not_found = [each for each in ids if each not in result.items]
                return result

            result.errors = data.get("errors") or []
            wanted = set(uncached)
            for obj in data.get("objects") or []:
                if obj.get("type") != object_type or obj.get("id") not in wanted:
                    continue
                payload = await store(obj)
                if payload is not None:
                    result.items[obj["id"]] = payload
                    result.fetched += 1

        result.not_found = [each for each in ids if each not in result.items]
        if result.not_found:
            self.logger.warning(
                "Batch ids not found",
                object_type=object_type,
                not_found=result.not_found,
            )

        self.logger.info(
            "Batch fetch completed",
            object_type=object_type,
            requested=result.requested,
            cached=result.cached,
            fetched=result.fetched,
        )
        return result
