"""
Tests for cache-aware batch retrieval.
"""

import pytest

from conftest import make_category, make_image, make_item
from service_storefront.app.catalog.batch import BatchFetcher
from shared.errors import UpstreamStatusError


@pytest.fixture
def fetcher(fake_catalog, cache_manager):
    return BatchFetcher(fake_catalog, cache_manager)


class TestBatchFetcher:

    @pytest.mark.asyncio
    async def test_only_uncached_ids_go_upstream(self, fetcher, fake_catalog, cache_manager):
        await cache_manager.set_book("A", {"id": "A", "name": "Cached A"})
        fake_catalog.objects.update({
            "A": make_item("A", "Upstream A"),
            "B": make_item("B", "Book B"),
            "C": make_item("C", "Book C"),
        })

        result = await fetcher.fetch_books(["A", "B", "C"])

        assert fake_catalog.calls_to("batch_retrieve") == [("batch_retrieve", ["B", "C"])]
        assert set(result.items) == {"A", "B", "C"}
        assert result.items["A"]["name"] == "Cached A"
        assert result.cached == 1
        assert result.fetched == 2
        assert result.not_found == []

    @pytest.mark.asyncio
    async def test_fetched_items_written_individually(self, fetcher, fake_catalog, cache_manager):
        fake_catalog.objects["B"] = make_item("B", "Book B")

        await fetcher.fetch_books(["B"])
        cached = await cache_manager.get_book("B")

        assert cached["name"] == "Book B"
        again = await fetcher.fetch_books(["B"])
        assert again.cached == 1
        assert len(fake_catalog.calls_to("batch_retrieve")) == 1

    @pytest.mark.asyncio
    async def test_missing_ids_reported_not_raised(self, fetcher, fake_catalog):
        fake_catalog.objects["A"] = make_item("A", "Book A")

        result = await fetcher.fetch_books(["A", "X"])

        assert result.ok
        assert set(result.items) == {"A"}
        assert result.not_found == ["X"]
        payload = result.to_dict("books")
        assert payload["notFound"] == ["X"]
        assert payload["total"] == 1
        assert payload["requested"] == 2

    @pytest.mark.asyncio
    async def test_all_cached_makes_no_upstream_call(self, fetcher, fake_catalog, cache_manager):
        await cache_manager.set_category("C1", {"id": "C1", "name": "Fiction"})

        result = await fetcher.fetch_categories(["C1", "C1"])

        assert fake_catalog.calls == []
        assert result.requested == 1
        assert result.items["C1"]["name"] == "Fiction"

    @pytest.mark.asyncio
    async def test_wrong_object_type_is_not_found(self, fetcher, fake_catalog):
        fake_catalog.objects["C1"] = make_category("C1", "Fiction")

        result = await fetcher.fetch_books(["C1"])

        assert result.items == {}
        assert result.not_found == ["C1"]

    @pytest.mark.asyncio
    async def test_images_cached_as_urls(self, fetcher, fake_catalog, cache_manager):
        fake_catalog.objects["I1"] = make_image("I1", "https://img/1.jpg")

        result = await fetcher.fetch_images(["I1"])

        assert result.items["I1"]["imageUrl"] == "https://img/1.jpg"
        assert await cache_manager.get_image_url("I1") == "https://img/1.jpg"

    @pytest.mark.asyncio
    async def test_upstream_failure_keeps_cached_items(self, fetcher, fake_catalog, cache_manager):
        await cache_manager.set_book("A", {"id": "A", "name": "Cached A"})
        fake_catalog.error = UpstreamStatusError("catalog", 500, "boom")

        result = await fetcher.fetch_books(["A", "B"])

        assert not result.ok
        assert isinstance(result.error, UpstreamStatusError)
        assert set(result.items) == {"A"}
        assert result.not_found == ["B"]
