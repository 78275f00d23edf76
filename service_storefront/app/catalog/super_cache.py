"""
Aggregate store snapshot ("super cache").

One blob holds the category list, the books of the default categories and
an image URL map. It is read whole and expires whole; population is an
explicit step and never happens on the read path. The snapshot is kept
independent from the per-resource cache tiers.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from shared.errors import ExternalServiceError, StorefrontException, ValidationError
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from ..adapters.catalog_client import CatalogClient
from ..caching.kv_store import KeyValueStore
from ..domain.models import Book, CatalogImage, Category


SUPER_CACHE_KEY = "store:super-cache"
SUPER_CACHE_TTL = 60 * 60
SNAPSHOT_BOOKS_PER_CATEGORY = 20
SNAPSHOT_FALLBACK_CATEGORY_COUNT = 6

STATUS_HIT = "HIT"
STATUS_MISS = "MISS"
STATUS_ERROR = "ERROR"


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class SnapshotRead:
    """Snapshot payload and the cache state it was served from."""

    payload: Dict[str, Any]
    status: str

    @property
    def hit(self) -> bool:
        return self.status == STATUS_HIT


class SuperCache:
    """Reads and populates the aggregate store snapshot."""

    def __init__(
        self,
        store: KeyValueStore,
        catalog_client: CatalogClient,
        default_categories: List[Dict[str, str]],
        *,
        ttl: int = SUPER_CACHE_TTL,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.store = store
        self.catalog = catalog_client
        self.default_categories = list(default_categories)
        self.ttl = ttl
        self.metrics = metrics
        self.logger = get_logger("storefront.super_cache")

    async def read(self) -> SnapshotRead:
        """Return the stored snapshot, or the fallback shape without blocking."""
        stored = await self.store.get(SUPER_CACHE_KEY)

        if stored is None:
            self.logger.info("Super cache miss, serving fallback")
            read = SnapshotRead(self.fallback(), STATUS_MISS)
        elif not isinstance(stored, dict) or "categories" not in stored:
            self.logger.error("Super cache holds a malformed snapshot", value_type=type(stored).__name__)
            read = SnapshotRead(self.fallback(), STATUS_ERROR)
        else:
            read = SnapshotRead(stored, STATUS_HIT)

        if self.metrics is not None:
            self.metrics.increment_counter("super_cache_reads_total", status=read.status)
        return read

    def fallback(self) -> Dict[str, Any]:
        """Snapshot built from the configured default categories only."""
        return {
            "categories": list(self.default_categories),
            "defaultBooks": {},
            "imageUrls": {},
            "metadata": {
                "totalBooks": 0,
                "categoriesCount": len(self.default_categories),
                "imagesCount": 0,
                "cacheInfo": {"cached": False, "timestamp": _now_ms(), "ttl": 0},
            },
        }

    async def populate(self, store_data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Build and store a snapshot.

        With ``store_data`` the supplied categories and books are stored as
        given; otherwise everything is fetched from the catalog provider.
        """
        started = _now_ms()

        if store_data is not None:
            categories = store_data.get("categories")
            default_books = store_data.get("defaultBooks")
            if categories is None or default_books is None:
                raise ValidationError("Invalid store data: categories and defaultBooks are required")
            image_urls = store_data.get("imageUrls") or {}
            message = "Super cache populated with provided data"
        else:
            categories, default_books, image_urls = await self._fetch_snapshot_data()
            message = "Super cache populated successfully"

        snapshot = self._build_snapshot(categories, default_books, image_urls)
        if not await self.store.set(SUPER_CACHE_KEY, snapshot, self.ttl):
            raise ExternalServiceError("cache", "Failed to store super cache snapshot")

        population_time = _now_ms() - started
        self.logger.info(
            "Super cache populated",
            total_books=snapshot["metadata"]["totalBooks"],
            images=snapshot["metadata"]["imagesCount"],
            population_time_ms=population_time,
        )
        return {
            "success": True,
            "message": message,
            "metadata": snapshot["metadata"],
            "populationTime": population_time,
        }

    def _build_snapshot(
        self,
        categories: List[Dict[str, Any]],
        default_books: Dict[str, List[Dict[str, Any]]],
        image_urls: Dict[str, str],
    ) -> Dict[str, Any]:
        return {
            "categories": categories,
            "defaultBooks": default_books,
            "imageUrls": image_urls,
            "metadata": {
                "totalBooks": sum(len(books) for books in default_books.values()),
                "categoriesCount": len(categories),
                "imagesCount": len(image_urls),
                "cacheInfo": {"cached": True, "timestamp": _now_ms(), "ttl": self.ttl},
            },
        }

    async def _fetch_snapshot_data(self):
        categories = await self._fetch_categories()

        if self.default_categories:
            target_ids = [category["id"] for category in self.default_categories]
        else:
            target_ids = [category["id"] for category in categories[:SNAPSHOT_FALLBACK_CATEGORY_COUNT]]

        book_lists = await asyncio.gather(*(self._fetch_category_books(each) for each in target_ids))
        books_by_category = dict(zip(target_ids, book_lists))

        image_ids = sorted({book.image_id for books in book_lists for book in books if book.image_id})
        image_urls = await self._fetch_image_urls(image_ids)

        default_books = {
            category_id: [book.with_image_url(image_urls.get(book.image_id)).to_dict() for book in books]
            for category_id, books in books_by_category.items()
        }
        return categories, default_books, image_urls

    async def _fetch_categories(self) -> List[Dict[str, Any]]:
        try:
            objects = await self.catalog.list_categories()
        except StorefrontException as e:
            self.logger.warning("Category fetch failed, using configured categories", error=e.message)
            return list(self.default_categories)

        if not objects:
            return list(self.default_categories)

        categories = sorted(
            (Category.from_catalog_object(obj) for obj in objects),
            key=lambda category: category.name.lower(),
        )
        return [{"id": category.id, "name": category.name} for category in categories]

    async def _fetch_category_books(self, category_id: str) -> List[Book]:
        try:
            items = await self.catalog.search_items_by_category(category_id, limit=SNAPSHOT_BOOKS_PER_CATEGORY)
        except StorefrontException as e:
            self.logger.error("Category books fetch failed", category_id=category_id, error=e.message)
            return []
        return [Book.from_catalog_object(item, category_id=category_id) for item in items]

    async def _fetch_image_urls(self, image_ids: List[str]) -> Dict[str, str]:
        if not image_ids:
            return {}
        try:
            data = await self.catalog.batch_retrieve(image_ids)
        except StorefrontException as e:
            self.logger.warning("Image fetch failed, continuing without images", error=e.message)
            return {}

        urls = {}
        for obj in data["objects"]:
            if obj.get("type", "IMAGE") != "IMAGE":
                continue
            image = CatalogImage.from_catalog_object(obj)
            if image.image_url:
                urls[image.id] = image.image_url
        return urls
