"""
Storefront cache manager for the catalog cache tiers.
"""

import hashlib
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from shared.logging import get_logger
from .kv_store import KeyValueStore

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.config import BaseConfig
    from shared.metrics import MetricsCollector


DAY = 60 * 60 * 24

TIER_CATEGORIES = "categories"
TIER_BOOKS_BY_CATEGORY = "books-by-category"
TIER_BOOK_DATA = "book-data"
TIER_SEARCH_RESULTS = "search-results"
TIER_IMAGE_URLS = "image-urls"

DEFAULT_TTLS = {
    TIER_CATEGORIES: 20 * DAY,
    TIER_BOOKS_BY_CATEGORY: 10 * DAY,
    TIER_BOOK_DATA: 10 * DAY,
    TIER_SEARCH_RESULTS: 10 * DAY,
    TIER_IMAGE_URLS: 7 * DAY,
}

CACHE_PREFIXES = {
    TIER_CATEGORIES: "categories",
    TIER_BOOKS_BY_CATEGORY: "books:category",
    TIER_BOOK_DATA: "book",
    TIER_SEARCH_RESULTS: "search",
    TIER_IMAGE_URLS: "image_urls",
}

CATEGORY_PREFIX = "category"

# Scopes cleared by an "all" invalidation, in order.
INVALIDATION_SCOPES = [
    TIER_CATEGORIES,
    TIER_BOOKS_BY_CATEGORY,
    TIER_BOOK_DATA,
    TIER_IMAGE_URLS,
]


def search_cache_key(query: str, limit: int) -> str:
    """Deterministic key for a normalized query and limit."""
    normalized = " ".join(query.lower().split())
    digest = hashlib.sha256(f"{normalized}|{limit}".encode()).hexdigest()
    return f"{CACHE_PREFIXES[TIER_SEARCH_RESULTS]}:{digest}"


class CacheManager:
    """Typed access to each cache tier on top of one ``KeyValueStore``."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        ttl_overrides: Optional[Dict[str, Optional[int]]] = None,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.store = store
        self.metrics = metrics
        self.logger = get_logger("storefront.cache_manager")

        self.ttls = dict(DEFAULT_TTLS)
        for tier, ttl in (ttl_overrides or {}).items():
            if ttl:
                self.ttls[tier] = ttl

    @classmethod
    def from_config(
        cls,
        store: KeyValueStore,
        config: "BaseConfig",
        metrics: Optional["MetricsCollector"] = None,
    ) -> "CacheManager":
        return cls(
            store,
            ttl_overrides={
                TIER_CATEGORIES: config.cache_ttl_categories,
                TIER_BOOKS_BY_CATEGORY: config.cache_ttl_books_by_category,
                TIER_BOOK_DATA: config.cache_ttl_book_data,
                TIER_SEARCH_RESULTS: config.cache_ttl_search_results,
                TIER_IMAGE_URLS: config.cache_ttl_image_urls,
            },
            metrics=metrics,
        )

    # Keys

    def categories_key(self) -> str:
        return CACHE_PREFIXES[TIER_CATEGORIES]

    def category_key(self, category_id: str) -> str:
        return f"{CATEGORY_PREFIX}:{category_id}"

    def books_by_category_key(self, category_id: str) -> str:
        return f"{CACHE_PREFIXES[TIER_BOOKS_BY_CATEGORY]}:{category_id}"

    def book_key(self, book_id: str) -> str:
        return f"{CACHE_PREFIXES[TIER_BOOK_DATA]}:{book_id}"

    def image_url_key(self, image_id: str) -> str:
        return f"{CACHE_PREFIXES[TIER_IMAGE_URLS]}:{image_id}"

    def search_key(self, query: str, limit: int) -> str:
        return search_cache_key(query, limit)

    # Generic access

    async def _safe_get(self, tier: str, key: str) -> Optional[Any]:
        """Read a key and record the hit or miss for its tier."""
        value = await self.store.get(key)
        if self.metrics is not None:
            metric = "cache_hits_total" if value is not None else "cache_misses_total"
            self.metrics.increment_counter(metric, cache_tier=tier)
        return value

    async def _set(self, tier: str, key: str, value: Any) -> bool:
        return await self.store.set(key, value, self.ttls[tier])

    # Categories

    async def get_categories(self) -> Optional[List[Dict[str, Any]]]:
        return await self._safe_get(TIER_CATEGORIES, self.categories_key())

    async def set_categories(self, categories: List[Dict[str, Any]]) -> bool:
        return await self._set(TIER_CATEGORIES, self.categories_key(), categories)

    async def get_category(self, category_id: str) -> Optional[Dict[str, Any]]:
        return await self._safe_get(TIER_CATEGORIES, self.category_key(category_id))

    async def set_category(self, category_id: str, category: Dict[str, Any]) -> bool:
        return await self._set(TIER_CATEGORIES, self.category_key(category_id), category)

    # Books

    async def get_books_by_category(self, category_id: str) -> Optional[Dict[str, Any]]:
        return await self._safe_get(TIER_BOOKS_BY_CATEGORY, self.books_by_category_key(category_id))

    async def set_books_by_category(self, category_id: str, payload: Dict[str, Any]) -> bool:
        return await self._set(TIER_BOOKS_BY_CATEGORY, self.books_by_category_key(category_id), payload)

    async def get_book(self, book_id: str) -> Optional[Dict[str, Any]]:
        return await self._safe_get(TIER_BOOK_DATA, self.book_key(book_id))

    async def set_book(self, book_id: str, book: Dict[str, Any]) -> bool:
        return await self._set(TIER_BOOK_DATA, self.book_key(book_id), book)

    # Search

    async def get_search_results(self, query: str, limit: int) -> Optional[Dict[str, Any]]:
        return await self._safe_get(TIER_SEARCH_RESULTS, self.search_key(query, limit))

    async def set_search_results(self, query: str, limit: int, payload: Dict[str, Any]) -> bool:
        return await self._set(TIER_SEARCH_RESULTS, self.search_key(query, limit), payload)

    # Images

    async def get_image_url(self, image_id: str) -> Optional[str]:
        return await self._safe_get(TIER_IMAGE_URLS, self.image_url_key(image_id))

    async def set_image_url(self, image_id: str, image_url: str) -> bool:
        return await self._set(TIER_IMAGE_URLS, self.image_url_key(image_id), image_url)

    # Invalidation

    async def invalidate(self, scope: str, identifier: Optional[str] = None) -> Dict[str, Any]:
        """Invalidate one scope, optionally narrowed to a single identifier."""
        if scope == "all":
            deleted = 0
            for each in INVALIDATION_SCOPES:
                deleted += await self._invalidate_scope(each, None)
            message = f"All cache entries invalidated ({deleted} entries)"
        elif scope in INVALIDATION_SCOPES:
            deleted = await self._invalidate_scope(scope, identifier)
            target = identifier or "all identifiers"
            message = f"Cache scope {scope} invalidated for {target} ({deleted} entries)"
        else:
            raise ValueError(f"Unknown invalidation scope: {scope}")

        self.logger.info("Cache invalidated", scope=scope, identifier=identifier, deleted_count=deleted)
        return {"scope": scope, "deleted_count": deleted, "message": message}

    async def _invalidate_scope(self, scope: str, identifier: Optional[str]) -> int:
        if scope == TIER_CATEGORIES:
            if identifier:
                return int(await self.store.delete(self.category_key(identifier)))
            deleted = int(await self.store.delete(self.categories_key()))
            if self.store.pattern_invalidation:
                deleted += await self.store.delete_prefix(f"{CATEGORY_PREFIX}:")
            return deleted

        key_for = {
            TIER_BOOKS_BY_CATEGORY: self.books_by_category_key,
            TIER_BOOK_DATA: self.book_key,
            TIER_IMAGE_URLS: self.image_url_key,
        }[scope]
        if identifier:
            return int(await self.store.delete(key_for(identifier)))
        return await self.store.delete_prefix(f"{CACHE_PREFIXES[scope]}:")

    # Health

    async def health(self) -> Dict[str, Any]:
        """Connectivity report for the remote cache."""
        connected = await self.store.ping()
        return {
            "status": "connected" if connected else "disconnected",
            "provider": "Redis",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "error": None if connected else "Cache did not answer ping",
            "patternInvalidation": self.store.pattern_invalidation,
        }

    async def status(self) -> Dict[str, Any]:
        """Health plus per-tier feature flags."""
        health = await self.health()
        connected = health["status"] == "connected"
        return {
            "redis": health,
            "application": {
                "lastChecked": datetime.now(timezone.utc).isoformat(),
                "ttls": dict(self.ttls),
                "features": {
                    "categoriesCache": connected,
                    "booksByCategory": connected,
                    "bookDataCache": connected,
                    "searchResultsCache": connected,
                    "imageCaching": connected,
                },
            },
        }
