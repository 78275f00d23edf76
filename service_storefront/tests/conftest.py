"""
Shared fixtures for Storefront Service tests.
"""

import asyncio
import fnmatch
from typing import Any, Dict, List, Optional

import pytest

from service_storefront.app.caching.cache_manager import CacheManager
from service_storefront.app.caching.kv_store import KeyValueStore


class FakeRedis:
    """In-memory stand-in for ``redis.asyncio.Redis``."""

    def __init__(self):
        self.data: Dict[str, str] = {}
        self.ttls: Dict[str, int] = {}
        self.fail = False
        self.closed = False

    def _check(self):
        if self.fail:
            raise ConnectionError("redis unavailable")

    async def get(self, key):
        self._check()
        return self.data.get(key)

    async def setex(self, key, ttl, value):
        self._check()
        self.data[key] = value
        self.ttls[key] = ttl
        return True

    async def delete(self, *keys):
        self._check()
        removed = 0
        for key in keys:
            if key in self.data:
                del self.data[key]
                self.ttls.pop(key, None)
                removed += 1
        return removed

    async def exists(self, key):
        self._check()
        return 1 if key in self.data else 0

    async def ping(self):
        self._check()
        return True

    async def scan_iter(self, match=None, count=None):
        self._check()
        for key in list(self.data):
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key

    async def aclose(self):
        self.closed = True


def make_item(item_id: str, name: str, image_id: Optional[str] = None, amount: int = 1500) -> Dict[str, Any]:
    """Upstream ITEM object."""
    item_data: Dict[str, Any] = {
        "name": name,
        "description": f"{name} description",
        "variations": [
            {
                "id": f"{item_id}-var",
                "item_variation_data": {"price_money": {"amount": amount, "currency": "USD"}},
            }
        ],
    }
    if image_id:
        item_data["image_ids"] = [image_id]
    return {"id": item_id, "type": "ITEM", "item_data": item_data}


def make_image(image_id: str, url: str) -> Dict[str, Any]:
    return {"id": image_id, "type": "IMAGE", "image_data": {"url": url, "name": image_id}}


def make_category(category_id: str, name: str) -> Dict[str, Any]:
    return {"id": category_id, "type": "CATEGORY", "category_data": {"name": name}}


class FakeCatalog:
    """Catalog client double recording every upstream call."""

    def __init__(self):
        self.categories: List[Dict[str, Any]] = []
        self.items_by_category: Dict[str, List[Dict[str, Any]]] = {}
        self.objects: Dict[str, Dict[str, Any]] = {}
        self.inventory_counts: List[Dict[str, Any]] = []
        self.calls: List[tuple] = []
        self.delay = 0.0
        self.error: Optional[Exception] = None

    async def _enter(self, *call):
        self.calls.append(call)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error

    def calls_to(self, name: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == name]

    async def list_categories(self):
        await self._enter("list_categories")
        return list(self.categories)

    async def search_items_by_category(self, category_id, limit=None):
        await self._enter("search_items_by_category", category_id, limit)
        items = list(self.items_by_category.get(category_id, []))
        return items[:limit] if limit else items

    async def retrieve_object(self, object_id):
        await self._enter("retrieve_object", object_id)
        return self.objects.get(object_id)

    async def batch_retrieve(self, object_ids):
        await self._enter("batch_retrieve", list(object_ids))
        return {
            "objects": [self.objects[each] for each in object_ids if each in self.objects],
            "errors": [],
        }

    async def batch_retrieve_inventory_counts(self, variation_ids, location_id=None):
        await self._enter("batch_retrieve_inventory_counts", list(variation_ids), location_id)
        return list(self.inventory_counts)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def kv_store(fake_redis):
    return KeyValueStore("redis://fake:6379/0", client=fake_redis)


@pytest.fixture
def cache_manager(kv_store):
    return CacheManager(kv_store)


@pytest.fixture
def fake_catalog():
    return FakeCatalog()
