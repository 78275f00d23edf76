"""
Tests for the Storefront HTTP surface.
"""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from service_storefront.app.catalog.batch import BatchResult
from service_storefront.app.domain.models import Book, Category, CategoryBooks
from service_storefront.app.domain.results import FetchResult
from service_storefront.app.main import StorefrontService
from shared.config import get_config
from shared.errors import UpstreamUnavailableError


ADMIN = ("admin", "secret")


def _config(**overrides):
    settings = {
        "catalog_access_token": "token-123",
        "cache_admin_username": "admin",
        "cache_admin_password": "secret",
        "cache_admin_key": "admin-key",
        "default_category_ids": "C1,C2",
        "default_category_names": "Fiction",
    }
    settings.update(overrides)
    return get_config("storefront", 8000, **settings)


@pytest.fixture
def service(fake_redis):
    return StorefrontService(_config(), redis_client=fake_redis)


@pytest.fixture
def client(service):
    return TestClient(service.app)


def _book(book_id: str, image_id=None) -> Book:
    return Book(id=book_id, name=f"Book {book_id}", description="", price=10.0, image_id=image_id)


class TestCatalogRoutes:

    def test_categories(self, client, service):
        service.catalog_service.get_categories = AsyncMock(
            return_value=FetchResult.hit([Category("C1", "Fiction")])
        )

        response = client.get("/api/catalog/categories")

        assert response.status_code == 200
        assert response.json() == [{"id": "C1", "name": "Fiction"}]
        assert response.headers["X-Cache"] == "HIT"

    def test_upstream_unavailable_maps_to_503(self, client, service):
        service.catalog_service.get_categories = AsyncMock(
            return_value=FetchResult.failure(UpstreamUnavailableError("catalog"))
        )

        response = client.get("/api/catalog/categories")

        assert response.status_code == 503
        assert response.json()["code"] == "UPSTREAM_UNAVAILABLE"

    def test_missing_token_is_a_500(self, fake_redis):
        service = StorefrontService(_config(catalog_access_token=None), redis_client=fake_redis)
        client = TestClient(service.app)

        response = client.get("/api/catalog/categories")

        assert response.status_code == 500
        assert response.json()["code"] == "CONFIGURATION_ERROR"

    def test_category_books_passes_limit(self, client, service):
        books = CategoryBooks("cat-1", [_book("B2", "I2"), _book("B3", "I3")])
        service.catalog_service.get_books_by_category = AsyncMock(return_value=FetchResult.fetched(books))

        response = client.get("/api/catalog/categories/cat-1/books?limit=2")

        assert response.status_code == 200
        body = response.json()
        assert [book["id"] for book in body["books"]] == ["B2", "B3"]
        assert body["metadata"] == {"totalBooks": 2, "booksWithImageIds": 2}
        assert response.headers["X-Cache"] == "MISS"
        service.catalog_service.get_books_by_category.assert_awaited_once_with("cat-1", 2)

    def test_category_books_with_images(self, client, service):
        books = CategoryBooks("cat-1", [_book("B2", "I2")])
        service.catalog_service.get_books_by_category = AsyncMock(return_value=FetchResult.hit(books))
        service.catalog_service.attach_images = AsyncMock(
            return_value=([_book("B2", "I2").with_image_url("https://img/2.jpg")], 1)
        )

        response = client.get("/api/catalog/categories/cat-1/books?include_images=true&priority_count=5")

        body = response.json()
        assert body["books"][0]["imageUrl"] == "https://img/2.jpg"
        assert body["metadata"]["imagesLoaded"] == 1

    def test_book_not_found(self, client, service):
        service.catalog_service.get_book = AsyncMock(return_value=FetchResult.fetched(None))

        response = client.get("/api/catalog/books/nope")

        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    def test_books_batch(self, client, service):
        result = BatchResult(items={"A": {"id": "A"}}, not_found=["X"], requested=2, cached=1)
        service.batch_fetcher.fetch_books = AsyncMock(return_value=result)

        response = client.post("/api/catalog/books/batch", json={"bookIds": ["A", "X"]})

        assert response.status_code == 200
        body = response.json()
        assert body["books"] == [{"id": "A"}]
        assert body["notFound"] == ["X"]

    def test_batch_validation(self, client):
        empty = client.post("/api/catalog/books/batch", json={"bookIds": []})
        too_many = client.post("/api/catalog/images/batch", json={"imageIds": [str(i) for i in range(1001)]})
        too_many_categories = client.post(
            "/api/catalog/categories/books",
            json={"categoryIds": [str(i) for i in range(51)]},
        )

        assert empty.status_code == 400
        assert too_many.status_code == 400
        assert too_many_categories.status_code == 400

    def test_batch_upstream_failure(self, client, service):
        result = BatchResult(requested=1, not_found=["A"], error=UpstreamUnavailableError("catalog"))
        service.batch_fetcher.fetch_images = AsyncMock(return_value=result)

        response = client.post("/api/catalog/images/batch", json={"imageIds": ["A"]})

        assert response.status_code == 503

    def test_inventory_batch(self, client, service):
        service.catalog_service.get_inventory = AsyncMock(
            return_value=FetchResult.fetched({"available": {"V1": 2.0}, "tracked": {"V1": True}})
        )

        response = client.post("/api/catalog/inventory/batch", json={"variationIds": ["V1"], "locationId": "L1"})

        assert response.status_code == 200
        assert response.json() == {"success": True, "available": {"V1": 2.0}, "tracked": {"V1": True}}
        service.catalog_service.get_inventory.assert_awaited_once_with(["V1"], "L1")

    def test_inventory_batch_uses_configured_location(self, fake_redis):
        service = StorefrontService(_config(catalog_location_id="L9"), redis_client=fake_redis)
        service.catalog_service.get_inventory = AsyncMock(
            return_value=FetchResult.fetched({"available": {}, "tracked": {}})
        )

        TestClient(service.app).post("/api/catalog/inventory/batch", json={"variationIds": ["V1"]})

        service.catalog_service.get_inventory.assert_awaited_once_with(["V1"], "L9")

    def test_inventory_batch_requires_ids(self, client):
        response = client.post("/api/catalog/inventory/batch", json={"variationIds": []})
        assert response.status_code == 400

    def test_inventory_batch_upstream_unavailable(self, client, service):
        service.catalog_service.get_inventory = AsyncMock(
            return_value=FetchResult.failure(UpstreamUnavailableError("catalog"))
        )

        response = client.post("/api/catalog/inventory/batch", json={"variationIds": ["V1"]})

        assert response.status_code == 503


class TestSearchRoutes:

    def test_search_requires_query(self, client):
        response = client.post("/api/search", json={"query": "   "})
        assert response.status_code == 400

    def test_search(self, client, service):
        service.catalog_service.search = AsyncMock(
            return_value=FetchResult.fetched({"books": [{"id": "B1"}], "totalCount": 1})
        )

        response = client.post("/api/search", json={"query": "dune", "limit": 3})

        assert response.json()["totalCount"] == 1
        service.catalog_service.search.assert_awaited_once_with("dune", 3)

    def test_events_fallback(self, client):
        response = client.get("/api/events")

        assert response.status_code == 200
        assert len(response.json()) == 3
        assert response.json()[0]["eventName"] == "Bonfire & Books"


class TestStoreRoutes:

    def test_super_cache_miss_then_hit(self, client):
        miss = client.get("/api/store/super-cache")

        assert miss.status_code == 200
        assert miss.headers["X-Cache-Status"] == "MISS"
        assert miss.headers["Cache-Control"] == "no-cache"
        assert miss.json()["categories"] == [
            {"id": "C1", "name": "Fiction"},
            {"id": "C2", "name": "Category 2"},
        ]

        store_data = {
            "categories": [{"id": "C1", "name": "Fiction"}],
            "defaultBooks": {"C1": [{"id": "B1"}, {"id": "B2"}]},
        }
        populated = client.post(
            "/api/store/super-cache",
            json={"storeData": store_data},
            headers={"Authorization": "Bearer admin-key"},
        )
        assert populated.status_code == 200
        assert populated.json()["metadata"]["totalBooks"] == 2

        hit = client.get("/api/store/super-cache")
        assert hit.headers["X-Cache-Status"] == "HIT"
        assert hit.headers["Cache-Control"] == "s-maxage=300, stale-while-revalidate=600"
        assert hit.json()["metadata"]["totalBooks"] == 2

    def test_populate_requires_admin_key(self, client):
        response = client.post("/api/store/super-cache", json={"storeData": {"categories": [], "defaultBooks": {}}})
        assert response.status_code == 401

    def test_populate_without_store_data(self, client, service):
        service.super_cache.populate = AsyncMock(return_value={"success": True, "metadata": {}})

        response = client.post("/api/store/super-cache", json={}, headers={"Authorization": "Bearer admin-key"})

        assert response.status_code == 200
        service.super_cache.populate.assert_awaited_once_with(None)


class TestCacheRoutes:

    def test_invalidate_requires_basic_auth(self, client):
        assert client.post("/api/cache/invalidate", json={"scope": "categories"}).status_code == 401
        wrong = client.post("/api/cache/invalidate", json={"scope": "categories"}, auth=("admin", "nope"))
        assert wrong.status_code == 401

    def test_invalidate_book(self, client, fake_redis):
        fake_redis.data["book:B1"] = "{}"

        response = client.put(
            "/api/cache/invalidate",
            json={"scope": "book-data", "bookId": "B1"},
            auth=ADMIN,
        )

        assert response.status_code == 200
        assert response.json()["deletedCount"] == 1
        assert "book:B1" not in fake_redis.data

    def test_invalidate_from_query_string(self, client, fake_redis):
        fake_redis.data["book:B1"] = "{}"

        response = client.put("/api/cache/invalidate?scope=book-data&bookId=B1", auth=ADMIN)

        assert response.status_code == 200
        assert response.json()["scope"] == "book-data"
        assert response.json()["deletedCount"] == 1
        assert "book:B1" not in fake_redis.data

    def test_invalidate_without_body_defaults_to_all(self, client, fake_redis):
        fake_redis.data["categories"] = "[]"

        response = client.post("/api/cache/invalidate", auth=ADMIN)

        assert response.status_code == 200
        assert response.json()["scope"] == "all"
        assert "categories" not in fake_redis.data

    def test_invalidate_unknown_query_scope(self, client):
        response = client.put("/api/cache/invalidate?scope=everything", auth=ADMIN)

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_invalidate_absent_key_counts_nothing(self, client):
        response = client.post(
            "/api/cache/invalidate",
            json={"scope": "book-data", "bookId": "nope"},
            auth=ADMIN,
        )

        assert response.status_code == 200
        assert response.json()["deletedCount"] == 0

    def test_non_ascii_admin_password_rejects_cleanly(self, fake_redis):
        service = StorefrontService(_config(cache_admin_password="p\u00e4sswort"), redis_client=fake_redis)
        client = TestClient(service.app)

        response = client.post("/api/cache/invalidate", json={"scope": "categories"}, auth=("admin", "wrong"))

        assert response.status_code == 401
        assert response.json()["code"] == "AUTHENTICATION_ERROR"

    def test_cache_health_and_status(self, client):
        health = client.get("/api/cache/health").json()
        status = client.get("/api/admin/cache-status").json()

        assert health["status"] == "connected"
        assert status["data"]["application"]["features"]["imageCaching"] is True

    def test_request_id_echoed(self, client):
        response = client.get("/api/cache/health", headers={"X-Request-ID": "req-1"})
        assert response.headers["X-Request-ID"] == "req-1"

    def test_service_health(self, client):
        body = client.get("/health").json()
        assert body["service"] == "storefront"
        assert body["dependencies"] == {"redis": "ok"}


def test_shutdown_closes_cache_connection(service, fake_redis):
    with TestClient(service.app) as client:
        assert client.get("/api/cache/health").status_code == 200
        assert fake_redis.closed is False

    assert fake_redis.closed is True
