"""
Per-key coalescing of concurrent cache-miss loads.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional, TYPE_CHECKING

from shared.logging import get_logger

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


class SingleFlight:
    """Registry of in-flight loads keyed by cache key.

    The first caller for a key starts the load as a task; concurrent callers
    for the same key await that task. The entry is dropped once it settles,
    so a later miss starts a fresh load. Scope is one process.
    """

    def __init__(self, metrics: Optional["MetricsCollector"] = None):
        self.metrics = metrics
        self.logger = get_logger("storefront.single_flight")
        self._inflight: Dict[str, "asyncio.Task[Any]"] = {}

    async def do(self, key: str, loader: Callable[[], Awaitable[Any]], tier: str = "default") -> Any:
        task = self._inflight.get(key)
        if task is not None:
            self.logger.debug("Joining in-flight load", key=key)
            if self.metrics is not None:
                self.metrics.increment_counter("singleflight_coalesced_total", cache_tier=tier)
            return await asyncio.shield(task)

        task = asyncio.ensure_future(loader())
        self._inflight[key] = task
        task.add_done_callback(lambda _t: self._forget(key, task))
        return await asyncio.shield(task)

    def _forget(self, key: str, task: "asyncio.Task[Any]") -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    def in_flight(self, key: str) -> bool:
        return key in self._inflight

    def __len__(self) -> int:
        return len(self._inflight)
