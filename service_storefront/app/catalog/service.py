"""
Read-through cache policies for catalog resources.

Every policy follows the same shape: compute a deterministic key, read the
cache, return on hit (re-applying any response-level limit), otherwise load
from the catalog provider, reshape into local records, store with the tier
TTL and return. Concurrent misses for one key share a single upstream load.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from shared.errors import ConfigurationError, StorefrontException
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from ..adapters.catalog_client import CatalogClient
from ..adapters.search_client import VectorSearchClient
from ..caching.cache_manager import (
    CacheManager,
    TIER_BOOK_DATA,
    TIER_BOOKS_BY_CATEGORY,
    TIER_CATEGORIES,
    TIER_IMAGE_URLS,
    TIER_SEARCH_RESULTS,
)
from ..caching.single_flight import SingleFlight
from ..domain.models import Book, CatalogImage, Category, CategoryBooks
from ..domain.results import FetchResult
from .batch import BatchFetcher


MAX_CATEGORY_BOOKS_BATCH = 50
DEFAULT_CATEGORY_BOOKS_LIMIT = 20


class CatalogService:
    """Coordinates cache reads and catalog lookups for storefront resources."""

    def __init__(
        self,
        catalog_client: CatalogClient,
        cache: CacheManager,
        *,
        batch: Optional[BatchFetcher] = None,
        search_client: Optional[VectorSearchClient] = None,
        single_flight: Optional[SingleFlight] = None,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self.catalog = catalog_client
        self.cache = cache
        self.batch = batch or BatchFetcher(catalog_client, cache)
        self.search_client = search_client
        self.flight = single_flight or SingleFlight(metrics)
        self.metrics = metrics
        self.logger = get_logger("storefront.catalog")

    async def _load(
        self,
        key: str,
        tier: str,
        loader: Callable[[], Awaitable[FetchResult[Any]]],
    ) -> FetchResult[Any]:
        """Run ``loader`` once per key, turning upstream errors into failures."""

        async def guarded() -> FetchResult[Any]:
            try:
                return await loader()
            except StorefrontException as e:
                self.logger.error("Upstream load failed", key=key, tier=tier, code=e.code, error=e.message)
                return FetchResult.failure(e)

        return await self.flight.do(key, guarded, tier=tier)

    # Categories

    async def get_categories(self) -> FetchResult[List[Category]]:
        cached = await self.cache.get_categories()
        if cached is not None:
            return FetchResult.hit([Category.from_dict(item) for item in cached])

        async def load() -> FetchResult[List[Category]]:
            objects = await self.catalog.list_categories()
            categories = sorted(
                (Category.from_catalog_object(obj) for obj in objects if obj.get("type", "CATEGORY") == "CATEGORY"),
                key=lambda category: category.name.lower(),
            )
            await self.cache.set_categories([category.to_dict() for category in categories])
            self.logger.info("Categories loaded from catalog", count=len(categories))
            return FetchResult.fetched(categories)

        return await self._load(self.cache.categories_key(), TIER_CATEGORIES, load)

    # Books by category

    async def get_books_by_category(
        self,
        category_id: str,
        limit: Optional[int] = None,
    ) -> FetchResult[CategoryBooks]:
        """Books under a category, images first.

        The full list is cached once; ``limit`` only slices the response.
        """
        cached = await self.cache.get_books_by_category(category_id)
        if cached is not None:
            books = CategoryBooks.from_dict(cached)
            books.category_id = books.category_id or category_id
            return FetchResult.hit(books.limited(limit))

        async def load() -> FetchResult[CategoryBooks]:
            items = await self.catalog.search_items_by_category(category_id)
            books = [Book.from_catalog_object(item, category_id=category_id) for item in items]
            books.sort(key=lambda book: book.image_id is None)
            category_books = CategoryBooks(category_id, books)
            await self.cache.set_books_by_category(category_id, category_books.to_dict())
            self.logger.info(
                "Category books loaded from catalog",
                category_id=category_id,
                total_books=len(books),
                books_with_image_ids=category_books.books_with_image_ids,
            )
            return FetchResult.fetched(category_books)

        result = await self._load(self.cache.books_by_category_key(category_id), TIER_BOOKS_BY_CATEGORY, load)
        if not result.ok:
            return result
        return FetchResult.fetched(result.value.limited(limit))

    async def get_books_for_categories(
        self,
        category_ids: List[str],
        limit: Optional[int] = DEFAULT_CATEGORY_BOOKS_LIMIT,
    ) -> Dict[str, Any]:
        """Load several categories concurrently.

        A failing category degrades to an empty entry and is listed in
        ``errors``; the rest of the response is still returned.
        """
        started = time.monotonic()
        results = await asyncio.gather(
            *(self.get_books_by_category(category_id, limit) for category_id in category_ids)
        )

        categories: Dict[str, Any] = {}
        errors = []
        cache_hits = 0
        for category_id, result in zip(category_ids, results):
            if result.ok:
                cache_hits += int(result.cached)
                payload = result.value.to_dict()
            else:
                errors.append({"categoryId": category_id, "code": result.error.code, "message": result.error.message})
                payload = CategoryBooks(category_id).to_dict()
            categories[category_id] = {"books": payload["books"], "metadata": payload["metadata"]}

        summary = {
            "categoriesLoaded": len(categories),
            "totalBooks": sum(entry["metadata"]["totalBooks"] for entry in categories.values()),
            "totalBooksWithImages": sum(entry["metadata"]["booksWithImageIds"] for entry in categories.values()),
            "cacheHits": cache_hits,
            "loadTimeMs": round((time.monotonic() - started) * 1000, 2),
        }
        self.logger.info("Multi-category load completed", **summary)
        return {"categories": categories, "summary": summary, "errors": errors}

    async def attach_images(self, books: List[Book], priority_count: int = 10) -> Tuple[List[Book], int]:
        """Resolve image URLs for the first ``priority_count`` books with images.

        A failed image lookup leaves the URLs unset.
        """
        targets = [book for book in books if book.image_id][:max(priority_count, 0)]
        if not targets:
            return books, 0

        result = await self.batch.fetch_images([book.image_id for book in targets])
        if not result.ok:
            self.logger.warning("Image resolution failed", error=result.error.message)

        urls = {image_id: item.get("imageUrl") for image_id, item in result.items.items()}
        resolved = [book.with_image_url(urls.get(book.image_id)) if book.image_id in urls else book for book in books]
        return resolved, sum(1 for book in resolved if book.image_url)

    # Single items

    async def get_book(self, book_id: str) -> FetchResult[Optional[Book]]:
        cached = await self.cache.get_book(book_id)
        if cached is not None:
            return FetchResult.hit(Book.from_dict(cached))

        async def load() -> FetchResult[Optional[Book]]:
            obj = await self.catalog.retrieve_object(book_id)
            if obj is None or obj.get("type") != "ITEM":
                return FetchResult.fetched(None)
            book = Book.from_catalog_object(obj)
            await self.cache.set_book(book_id, book.to_dict())
            return FetchResult.fetched(book)

        return await self._load(self.cache.book_key(book_id), TIER_BOOK_DATA, load)

    async def get_image_url(self, image_id: str) -> FetchResult[Optional[str]]:
        cached = await self.cache.get_image_url(image_id)
        if cached is not None:
            return FetchResult.hit(cached)

        async def load() -> FetchResult[Optional[str]]:
            obj = await self.catalog.retrieve_object(image_id)
            if obj is None or obj.get("type") != "IMAGE":
                return FetchResult.fetched(None)
            image = CatalogImage.from_catalog_object(obj)
            if image.image_url:
                await self.cache.set_image_url(image_id, image.image_url)
            return FetchResult.fetched(image.image_url)

        return await self._load(self.cache.image_url_key(image_id), TIER_IMAGE_URLS, load)

    # Search

    async def search(self, query: str, limit: int = 10) -> FetchResult[Dict[str, Any]]:
        """Vector search resolved against the catalog, cached per query and limit."""
        query = query.strip()
        cached = await self.cache.get_search_results(query, limit)
        if cached is not None:
            return FetchResult.hit(cached)

        async def load() -> FetchResult[Dict[str, Any]]:
            hits = await self._search_client().search(query, top_k=limit)
            books: List[Dict[str, Any]] = []

            if hits:
                resolved = await self.batch.fetch_books([hit.id for hit in hits])
                if not resolved.ok:
                    return FetchResult.failure(resolved.error)
                for hit in hits:
                    book = resolved.items.get(hit.id)
                    if book is None:
                        continue
                    books.append({
                        **book,
                        "author": hit.author,
                        "searchScore": hit.score,
                        "searchSnippet": hit.snippet,
                    })

            payload = {"books": books, "totalCount": len(books)}
            await self.cache.set_search_results(query, limit, payload)
            self.logger.info("Search resolved", hits=len(hits), books=len(books))
            return FetchResult.fetched(payload)

        return await self._load(self.cache.search_key(query, limit), TIER_SEARCH_RESULTS, load)

    async def search_snippets(self, query: str, limit: int = 10) -> FetchResult[List[Dict[str, Any]]]:
        """Uncached search returning only index snippets."""
        try:
            hits = await self._search_client().search(query.strip(), top_k=limit)
        except StorefrontException as e:
            self.logger.error("Snippet search failed", error=e.message)
            return FetchResult.failure(e)
        return FetchResult.fetched([hit.to_snippet() for hit in hits])

    async def search_status(self) -> Dict[str, Any]:
        try:
            client = self._search_client()
            stats = await client.describe_index_stats()
        except StorefrontException as e:
            return {"status": "error", "message": e.message}
        return {
            "status": "ready",
            "indexHost": client.index_host,
            "namespace": client.namespace,
            **stats,
        }

    async def get_inventory(
        self,
        variation_ids: List[str],
        location_id: Optional[str] = None,
    ) -> FetchResult[Dict[str, Any]]:
        """Summed IN_STOCK quantity per variation. Not cached.

        ``tracked`` marks every variation the upstream reported a count for,
        whatever its state.
        """
        try:
            counts = await self.catalog.batch_retrieve_inventory_counts(variation_ids, location_id)
        except StorefrontException as e:
            self.logger.error("Inventory lookup failed", error=e.message)
            return FetchResult.failure(e)

        available: Dict[str, float] = {}
        tracked: Dict[str, bool] = {}
        for count in counts:
            variation_id = count.get("catalog_object_id")
            if not variation_id:
                continue
            tracked[variation_id] = True
            if count.get("state") == "IN_STOCK":
                available[variation_id] = available.get(variation_id, 0.0) + _quantity(count.get("quantity"))

        return FetchResult.fetched({"available": available, "tracked": tracked})

    def _search_client(self) -> VectorSearchClient:
        if self.search_client is None:
            raise ConfigurationError("Vector search is not configured")
        return self.search_client


def _quantity(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0
