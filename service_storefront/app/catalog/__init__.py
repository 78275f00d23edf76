"""
Catalog package for the Storefront Service.

- service: read-through cache policies per catalog resource
- batch: cache-aware batch retrieval with ``notFound`` reporting
- super_cache: aggregate store snapshot, read whole and populated explicitly
"""

from .batch import BatchFetcher, BatchResult, MAX_BATCH_SIZE
from .service import CatalogService, MAX_CATEGORY_BOOKS_BATCH
from .super_cache import SuperCache, SnapshotRead, SUPER_CACHE_KEY

__all__ = [
    "BatchFetcher",
    "BatchResult",
    "MAX_BATCH_SIZE",
    "CatalogService",
    "MAX_CATEGORY_BOOKS_BATCH",
    "SuperCache",
    "SnapshotRead",
    "SUPER_CACHE_KEY",
]
