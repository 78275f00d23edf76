"""
Storefront service for the bookstore catalog access layer.
"""

from typing import Any, Dict, Optional

import redis.asyncio as redis
from pydantic import ValidationError as PydanticValidationError
from fastapi import Query, Request, Response
from fastapi.responses import JSONResponse

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config
from shared.errors import NotFoundError, ValidationError
from shared.retry import RetryConfig

from .adapters.catalog_client import CatalogClient
from .adapters.events_client import EventsClient
from .adapters.search_client import VectorSearchClient
from .caching.cache_manager import CacheManager
from .caching.kv_store import KeyValueStore
from .caching.single_flight import SingleFlight
from .catalog.batch import BatchFetcher, BatchResult, MAX_BATCH_SIZE
from .catalog.service import CatalogService, MAX_CATEGORY_BOOKS_BATCH
from .catalog.super_cache import SuperCache
from .domain.admin_auth import AdminAuth
from .domain.results import FetchResult
from .domain.schemas import (
    BookBatchRequest,
    CategoryBatchRequest,
    CategoryBooksRequest,
    ImageBatchRequest,
    InvalidationRequest,
    InventoryBatchRequest,
    SearchRequest,
    SuperCachePopulateRequest,
)


SNAPSHOT_HIT_CACHE_CONTROL = "s-maxage=300, stale-while-revalidate=600"


class StorefrontService(BaseService):
    """Storefront service implementation."""

    def __init__(self, config: Optional[ServiceConfig] = None, redis_client: Optional[redis.Redis] = None):
        super().__init__("storefront", 8000, config)

        self.kv_store = KeyValueStore(
            self.config.redis_url,
            client=redis_client,
            pattern_invalidation=self.config.cache_pattern_invalidation,
        )
        self.cache_manager = CacheManager.from_config(self.kv_store, self.config, metrics=self.metrics)

        self.catalog_client = CatalogClient(
            self.config.resolved_catalog_base_url(),
            self.config.catalog_access_token,
            api_version=self.config.catalog_api_version,
            retry_config=RetryConfig(
                max_attempts=self.config.catalog_retry_attempts,
                base_delay=self.config.catalog_retry_base_delay,
                max_delay=30.0,
                exponential_base=2.0,
                jitter=False,
            ),
            timeout=self.config.catalog_timeout,
            metrics=self.metrics,
        )
        self.search_client = VectorSearchClient(
            self.config.search_index_host,
            self.config.search_api_key,
            namespace=self.config.search_namespace,
            api_version=self.config.search_api_version,
        )
        self.events_client = EventsClient(
            self.config.events_spreadsheet_id,
            self.config.events_api_key,
            sheet_range=self.config.events_range,
        )

        self.batch_fetcher = BatchFetcher(self.catalog_client, self.cache_manager)
        self.catalog_service = CatalogService(
            self.catalog_client,
            self.cache_manager,
            batch=self.batch_fetcher,
            search_client=self.search_client,
            single_flight=SingleFlight(self.metrics),
            metrics=self.metrics,
        )
        self.super_cache = SuperCache(
            self.kv_store,
            self.catalog_client,
            self.config.default_categories(),
            ttl=self.config.super_cache_ttl,
            metrics=self.metrics,
        )
        self.admin_auth = AdminAuth(self.config)

        self._setup_catalog_routes()
        self._setup_search_routes()
        self._setup_store_routes()
        self._setup_cache_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.storefront_service = self

    async def _on_shutdown(self) -> None:
        await self.kv_store.close()

    async def _check_dependencies(self) -> Dict[str, str]:
        connected = await self.kv_store.ping()
        return {"redis": "ok" if connected else "unavailable"}

    def _unwrap(self, result: FetchResult[Any], response: Optional[Response] = None) -> Any:
        """Return the value of a successful result or raise its error."""
        if response is not None and result.ok:
            response.headers["X-Cache"] = "HIT" if result.cached else "MISS"
        return result.unwrap()

    def _validate_ids(self, ids, label: str, maximum: int = MAX_BATCH_SIZE) -> None:
        if not ids:
            raise ValidationError(f"{label} array is required")
        if len(ids) > maximum:
            raise ValidationError(
                f"Too many {label}. Maximum is {maximum}.",
                details={"requested": len(ids), "maximum": maximum},
            )

    def _batch_payload(self, result: BatchResult, items_field: str) -> Dict[str, Any]:
        if not result.ok:
            raise result.error
        return result.to_dict(items_field)

    def _setup_catalog_routes(self):
        """Set up catalog routes."""

        @self.app.get("/api/catalog/categories")
        async def get_categories(response: Response):
            """Return every category, sorted by name."""
            categories = self._unwrap(await self.catalog_service.get_categories(), response)
            return [category.to_dict() for category in categories]

        @self.app.post("/api/catalog/categories/batch")
        async def get_categories_batch(body: CategoryBatchRequest):
            self._validate_ids(body.categoryIds, "Category IDs")
            result = await self.batch_fetcher.fetch_categories(body.categoryIds)
            return self._batch_payload(result, "categories")

        @self.app.post("/api/catalog/categories/books")
        async def get_books_for_categories(body: CategoryBooksRequest):
            """Load books for several categories at once."""
            self._validate_ids(body.categoryIds, "Category IDs", MAX_CATEGORY_BOOKS_BATCH)
            return await self.catalog_service.get_books_for_categories(body.categoryIds, body.limit)

        @self.app.get("/api/catalog/categories/{category_id}/books")
        async def get_category_books(
            category_id: str,
            response: Response,
            limit: Optional[int] = Query(None, ge=1),
            include_images: bool = Query(False),
            priority_count: int = Query(10, ge=0),
        ):
            """Books of one category, images first."""
            category_books = self._unwrap(
                await self.catalog_service.get_books_by_category(category_id, limit),
                response,
            )
            payload = category_books.to_dict()

            if include_images and category_books.books:
                books, images_loaded = await self.catalog_service.attach_images(
                    category_books.books,
                    priority_count,
                )
                payload["books"] = [book.to_dict() for book in books]
                payload["metadata"]["imagesLoaded"] = images_loaded

            return payload

        @self.app.get("/api/catalog/books/{book_id}")
        async def get_book(book_id: str, response: Response):
            book = self._unwrap(await self.catalog_service.get_book(book_id), response)
            if book is None:
                raise NotFoundError("Book not found", details={"bookId": book_id})
            return book.to_dict()

        @self.app.post("/api/catalog/books/batch")
        async def get_books_batch(body: BookBatchRequest):
            self._validate_ids(body.bookIds, "Book IDs")
            result = await self.batch_fetcher.fetch_books(body.bookIds)
            return self._batch_payload(result, "books")

        @self.app.post("/api/catalog/images/batch")
        async def get_images_batch(body: ImageBatchRequest):
            self._validate_ids(body.imageIds, "Image IDs")
            result = await self.batch_fetcher.fetch_images(body.imageIds)
            return self._batch_payload(result, "images")

        @self.app.get("/api/catalog/images/{image_id}")
        async def get_image(image_id: str, response: Response):
            image_url = self._unwrap(await self.catalog_service.get_image_url(image_id), response)
            if image_url is None:
                raise NotFoundError("Image not found", details={"imageId": image_id})
            return {"imageUrl": image_url}

        @self.app.post("/api/catalog/inventory/batch")
        async def get_inventory_batch(body: InventoryBatchRequest):
            """Available IN_STOCK quantity and tracking flag per variation."""
            self._validate_ids(body.variationIds, "Variation IDs")
            location_id = body.locationId or self.config.catalog_location_id
            if not location_id:
                self.logger.warning("No inventory location configured, counts aggregate across all locations")
            inventory = self._unwrap(
                await self.catalog_service.get_inventory(body.variationIds, location_id)
            )
            return {"success": True, **inventory}

    def _setup_search_routes(self):
        """Set up search routes."""

        @self.app.post("/api/search")
        async def search(body: SearchRequest, response: Response):
            """Search books and resolve hits against the catalog."""
            query = self._require_query(body.query)
            return self._unwrap(await self.catalog_service.search(query, body.limit), response)

        @self.app.post("/api/search/text")
        async def search_text(body: SearchRequest):
            query = self._require_query(body.query)
            results = self._unwrap(await self.catalog_service.search_snippets(query, body.limit))
            return {"success": True, "query": query, "results": results, "total": len(results)}

        @self.app.get("/api/search/status")
        async def search_status():
            return await self.catalog_service.search_status()

        @self.app.get("/api/events")
        async def get_events():
            """Active store events, or the built-in list."""
            events = await self.events_client.get_events()
            return [event.to_dict() for event in events]

    def _require_query(self, query: Optional[str]) -> str:
        if not query or not query.strip():
            raise ValidationError("Query parameter is required and must be a non-empty string")
        return query.strip()

    def _setup_store_routes(self):
        """Set up aggregate snapshot routes."""

        @self.app.get("/api/store/super-cache")
        async def read_super_cache():
            """Serve the stored snapshot or the fallback shape."""
            read = await self.super_cache.read()

            if read.hit:
                timestamp = read.payload.get("metadata", {}).get("cacheInfo", {}).get("timestamp")
                headers = {
                    "Cache-Control": SNAPSHOT_HIT_CACHE_CONTROL,
                    "X-Cache-Status": read.status,
                    "X-Cache-Timestamp": str(timestamp or ""),
                }
                return JSONResponse(content=read.payload, headers=headers)

            return JSONResponse(
                content=read.payload,
                status_code=500 if read.status == "ERROR" else 200,
                headers={"Cache-Control": "no-cache", "X-Cache-Status": read.status},
            )

        @self.app.post("/api/store/super-cache")
        async def populate_super_cache(request: Request, body: Optional[SuperCachePopulateRequest] = None):
            """Populate the snapshot from supplied data or from the catalog."""
            await self.admin_auth.require_admin_key(request)
            store_data = None
            if body is not None and body.storeData is not None:
                store_data = body.storeData.model_dump()
            return await self.super_cache.populate(store_data)

    def _invalidation_from_query(self, request: Request) -> InvalidationRequest:
        try:
            return InvalidationRequest.model_validate(dict(request.query_params))
        except PydanticValidationError as e:
            raise ValidationError(
                "Invalid invalidation parameters",
                details={"errors": [error["msg"] for error in e.errors()]},
            )

    def _setup_cache_routes(self):
        """Set up cache administration routes."""

        @self.app.get("/api/cache/health")
        async def cache_health():
            return await self.cache_manager.health()

        @self.app.api_route("/api/cache/invalidate", methods=["POST", "PUT"])
        async def invalidate_cache(request: Request, body: Optional[InvalidationRequest] = None):
            """Invalidate one cache scope, optionally for a single identifier.

            Without a JSON body the scope and identifiers are read from the
            query string, and the scope defaults to all.
            """
            await self.admin_auth.require_basic(request)
            if body is None:
                body = self._invalidation_from_query(request)
            result = await self.cache_manager.invalidate(body.scope.value, body.identifier())
            return {
                "success": True,
                "scope": result["scope"],
                "deletedCount": result["deleted_count"],
                "message": result["message"],
            }

        @self.app.get("/api/admin/cache-status")
        async def cache_status():
            return {"success": True, "data": await self.cache_manager.status()}


def create_app(config: Optional[ServiceConfig] = None):
    """Create FastAPI application."""
    service = StorefrontService(config or get_config("storefront", 8000))
    return service.app


if __name__ == "__main__":
    service = StorefrontService()
    service.run()
