"""
Tests for the vector search and events adapters.
"""

import json

import httpx
import pytest

from service_storefront.app.adapters.events_client import EventsClient, FALLBACK_EVENTS
from service_storefront.app.adapters.search_client import VectorSearchClient
from shared.errors import ConfigurationError, ExternalServiceError


class TestVectorSearchClient:

    @pytest.mark.asyncio
    async def test_search_maps_hits(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["api_key"] = request.headers["Api-Key"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"result": {"hits": [
                {"_id": "r1", "_score": 0.8, "fields": {"ID": "B1", "document_title": "Dune", "author": "Herbert"}},
                {"_score": 0.1, "fields": {}},
            ]}})

        client = VectorSearchClient("index.test", "key-1", transport=httpx.MockTransport(handler))
        hits = await client.search("sand worms", top_k=3)

        assert [hit.id for hit in hits] == ["B1"]
        assert hits[0].author == "Herbert"
        assert seen["url"] == "https://index.test/records/namespaces/books/search"
        assert seen["api_key"] == "key-1"
        assert seen["body"]["query"] == {"top_k": 3, "inputs": {"text": "sand worms"}}

    @pytest.mark.asyncio
    async def test_missing_credentials(self):
        client = VectorSearchClient(None, None)
        with pytest.raises(ConfigurationError):
            await client.search("dune")

    @pytest.mark.asyncio
    async def test_error_status(self):
        client = VectorSearchClient(
            "https://index.test",
            "key-1",
            transport=httpx.MockTransport(lambda request: httpx.Response(500, text="boom")),
        )
        with pytest.raises(ExternalServiceError):
            await client.describe_index_stats()


class TestEventsClient:

    @pytest.mark.asyncio
    async def test_unconfigured_uses_fallback(self):
        events = await EventsClient(None, None).get_events()
        assert events == FALLBACK_EVENTS

    @pytest.mark.asyncio
    async def test_active_rows_only(self):
        rows = [
            ["Poetry Night", "2025-04-01", "Open mic", "", "Stage", "", "TRUE"],
            ["Cancelled", "2025-04-02", "", "", "", "", "FALSE"],
        ]
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"values": rows}))

        events = await EventsClient("sheet-1", "key-1", transport=transport).get_events()

        assert [event.event_name for event in events] == ["Poetry Night"]
        assert events[0].image_url == "/images/events/default.jpg"

    @pytest.mark.asyncio
    async def test_no_active_rows_uses_fallback(self):
        rows = [["Cancelled", "", "", "", "", "", "FALSE"]]
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"values": rows}))

        events = await EventsClient("sheet-1", "key-1", transport=transport).get_events()

        assert events == FALLBACK_EVENTS

    @pytest.mark.asyncio
    async def test_feed_error_uses_fallback(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(403, text="denied"))

        events = await EventsClient("sheet-1", "key-1", transport=transport).get_events()

        assert events == FALLBACK_EVENTS
