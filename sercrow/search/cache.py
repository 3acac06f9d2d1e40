"""
Purpose:
- Process-local LRU cache with a TTL, keyed by the full normalized request.
- Serves repeated identical searches without touching the provider.

Notes:
- The query is canonicalized (trim, collapse whitespace, lower-case) when the key is built,
  so "Cats " and "cats" share an entry.
- No single-flight: two concurrent misses for the same key both hit the provider.
"""

from __future__ import annotations
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Generic, Optional, Tuple, TypeVar
from .schema import SearchFilter

V = TypeVar("V")

def canonical_query(query: str) -> str:
    return " ".join((query or "").split()).lower()

def clamp_page(page: Optional[int]) -> int:
    return max(1, int(page or 1))

def clamp_limit(limit: Optional[int], default: int = 10, maximum: int = 50) -> int:
    if limit is None:
        limit = default
    return min(max(1, int(limit)), maximum)

@dataclass(frozen=True)
class SearchRequestKey:
    query: str
    filter: SearchFilter
    page: int
    limit: int

    @classmethod
    def build(cls, query: str, search_filter: SearchFilter, page: Optional[int],
              limit: Optional[int], default_limit: int = 10,
              max_limit: int = 50) -> "SearchRequestKey":
        return cls(
            query=canonical_query(query),
            filter=search_filter,
            page=clamp_page(page),
            limit=clamp_limit(limit, default=default_limit, maximum=max_limit),
        )

class ResultCache(Generic[V]):
    """Bounded LRU; entries older than ttl_seconds read as absent."""

    def __init__(self, max_entries: int = 100, ttl_seconds: float = 60.0,
                 clock: Callable[[], float] = time.monotonic):
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._data: "OrderedDict[SearchRequestKey, Tuple[float, V]]" = OrderedDict()

    def _expired(self, stored_at: float, now: float) -> bool:
        return now - stored_at >= self.ttl_seconds

    def get(self, key: SearchRequestKey) -> Optional[V]:
        entry = self._data.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._expired(stored_at, self._clock()):
            del self._data[key]
            return None
        self._data.move_to_end(key)
        return value

    def set(self, key: SearchRequestKey, value: V) -> None:
        now = self._clock()
        if key in self._data:
            del self._data[key]
        self._data[key] = (now, value)
        if len(self._data) > self.max_entries:
            self._purge_expired(now)
        while len(self._data) > self.max_entries:
            self._data.popitem(last=False)

    def _purge_expired(self, now: float) -> None:
        stale = [k for k, (at, _) in self._data.items() if self._expired(at, now)]
        for k in stale:
            del self._data[k]

    def __len__(self) -> int:
        return len(self._data)
