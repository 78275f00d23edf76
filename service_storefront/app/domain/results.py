"""
Explicit outcome type returned by the catalog cache policies.

Callers can tell a legitimately empty answer (``ok`` with an empty value)
apart from an upstream that could not be reached (``ok`` is False).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

from shared.errors import StorefrontException


T = TypeVar("T")

SOURCE_CACHE = "cache"
SOURCE_UPSTREAM = "upstream"
SOURCE_NONE = "none"


@dataclass(frozen=True)
class FetchResult(Generic[T]):
    """Tagged success/failure variant."""

    ok: bool
    value: Optional[T] = None
    source: str = SOURCE_NONE
    error: Optional[StorefrontException] = None

    @classmethod
    def hit(cls, value: T) -> "FetchResult[T]":
        return cls(ok=True, value=value, source=SOURCE_CACHE)

    @classmethod
    def fetched(cls, value: T) -> "FetchResult[T]":
        return cls(ok=True, value=value, source=SOURCE_UPSTREAM)

    @classmethod
    def failure(cls, error: StorefrontException) -> "FetchResult[T]":
        return cls(ok=False, error=error)

    @property
    def cached(self) -> bool:
        return self.source == SOURCE_CACHE

    @property
    def is_empty(self) -> bool:
        """True for a successful result carrying nothing."""
        if not self.ok:
            return False
        value: Any = self.value
        if value is None:
            return True
        if hasattr(value, "books"):
            return len(value.books) == 0
        try:
            return len(value) == 0
        except TypeError:
            return False

    def unwrap(self) -> T:
        """Return the value or raise the carried error."""
        if not self.ok:
            raise self.error  # type: ignore[misc]
        return self.value  # type: ignore[return-value]
