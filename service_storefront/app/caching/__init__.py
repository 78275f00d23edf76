"""
Caching package for the Storefront Service.

- kv_store: fail-soft JSON access to the remote Redis cache
- cache_manager: cache tiers, keys, TTLs and invalidation scopes
- single_flight: per-key coalescing of concurrent cache misses
"""

from .kv_store import KeyValueStore
from .cache_manager import CacheManager, DEFAULT_TTLS, INVALIDATION_SCOPES
from .single_flight import SingleFlight

__all__ = [
    "KeyValueStore",
    "CacheManager",
    "DEFAULT_TTLS",
    "INVALIDATION_SCOPES",
    "SingleFlight",
]
