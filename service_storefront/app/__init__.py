"""
Storefront Service package for the bookstore catalog access layer.

The storefront fronts the shop frontend, providing:
- Read-through caching of catalog categories, books, images and search
- Batch retrieval that only asks the catalog provider for uncached ids
- An aggregate store snapshot served whole from the cache
- Retries with exponential backoff against the rate-limited catalog API

Structure:
- app.main: FastAPI app, routes, and service wiring.
- app.adapters: HTTP clients for the catalog, search index and events feed.
- app.caching: Key-value store, cache tiers and single-flight coalescing.
- app.catalog: Cache policies, batch orchestration and the store snapshot.
- app.domain: Records, request schemas, result type and admin auth.
"""
