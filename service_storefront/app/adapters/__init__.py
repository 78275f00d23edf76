"""
Adapters package for the Storefront Service.

Contains HTTP client wrappers for external collaborators (catalog provider,
vector search index, events feed). These adapters encapsulate:

- Base URLs, headers and request shapes
- Retry policy for the catalog provider
- Error handling that maps to shared errors

Keep adapters thin and side-effect free outside of explicit calls.
"""

from .catalog_client import CatalogClient, RateLimitedError
from .search_client import VectorSearchClient
from .events_client import EventsClient, FALLBACK_EVENTS

__all__ = [
    "CatalogClient",
    "RateLimitedError",
    "VectorSearchClient",
    "EventsClient",
    "FALLBACK_EVENTS",
]
