"""Short-TTL result cache used in front of spatial search and feasibility checks."""

from __future__ import annotations

import hashlib
import json
import logging
import threading
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

logger = logging.getLogger(__name__)

NEARBY_TAG = "nearby"


def product_tag(product_id: str) -> str:
    return f"product:{product_id}"


def seller_tag(seller_id: str) -> str:
    return f"seller:{seller_id}"


def _normalize(value: Any) -> Any:
    if isinstance(value, float):
        return round(value, 4)
    if isinstance(value, dict):
        return {str(k): _normalize(v) for k, v in sorted(value.items(), key=lambda item: str(item[0]))}
    if isinstance(value, (list, tuple)):
        return [_normalize(v) for v in value]
    return value


def make_cache_key(operation: str, **arguments: Any) -> str:
    """Build "<operation>:<hash>" from normalized arguments.

    Floats are rounded to 4 decimals (~11 m for coordinates) so near-identical
    positions share an entry.
    """
    payload = json.dumps(_normalize(arguments), sort_keys=True, default=str, separators=(",", ":"))
    digest = hashlib.sha1(payload.encode("utf-8")).hexdigest()
    return f"{operation}:{digest}"


class ResultCache(ABC):
    """Contract for advisory caches. Backends raise CacheUnavailableError when unreachable."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: Any, ttl_seconds: float, tags: Iterable[str] = ()) -> None:
        raise NotImplementedError

    @abstractmethod
    def invalidate(self, key: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def invalidate_tags(self, tags: Iterable[str]) -> int:
        raise NotImplementedError

    @abstractmethod
    def clear(self) -> None:
        raise NotImplementedError

    def stats(self) -> dict:
        return {}


class NullResultCache(ResultCache):
    """Cache that never stores anything."""

    def get(self, key: str) -> Optional[Any]:
        return None

    def set(self, key: str, value: Any, ttl_seconds: float, tags: Iterable[str] = ()) -> None:
        return None

    def invalidate(self, key: str) -> None:
        return None

    def invalidate_tags(self, tags: Iterable[str]) -> int:
        return 0

    def clear(self) -> None:
        return None

    def stats(self) -> dict:
        return {"backend": "null"}


@dataclass(slots=True)
class _Entry:
    value: Any
    expires_at: float
    tags: frozenset[str] = field(default_factory=frozenset)


class InMemoryResultCache(ResultCache):
    """Thread-safe TTL cache with tag-based invalidation and bounded size."""

    def __init__(self, *, max_entries: int = 10_000, clock: Callable[[], float] = time.monotonic) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, _Entry] = OrderedDict()
        self._tag_index: dict[str, set[str]] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            if entry.expires_at <= self._clock():
                self._drop(key)
                self.misses += 1
                return None
            self.hits += 1
            return entry.value

    def set(self, key: str, value: Any, ttl_seconds: float, tags: Iterable[str] = ()) -> None:
        if ttl_seconds <= 0:
            return
        entry = _Entry(value=value, expires_at=self._clock() + ttl_seconds, tags=frozenset(tags))
        with self._lock:
            if key in self._entries:
                self._drop(key)
            self._entries[key] = entry
            for tag in entry.tags:
                self._tag_index.setdefault(tag, set()).add(key)
            while len(self._entries) > self.max_entries:
                oldest = next(iter(self._entries))
                self._drop(oldest)

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._drop(key)

    def invalidate_tags(self, tags: Iterable[str]) -> int:
        removed = 0
        with self._lock:
            for tag in tags:
                for key in list(self._tag_index.get(tag, ())):
                    if key in self._entries:
                        self._drop(key)
                        removed += 1
        return removed

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._tag_index.clear()

    def stats(self) -> dict:
        return {
            "backend": "memory",
            "entries": len(self._entries),
            "max_entries": self.max_entries,
            "hits": self.hits,
            "misses": self.misses,
        }

    def _drop(self, key: str) -> None:
        entry = self._entries.pop(key, None)
        if entry is None:
            return
        for tag in entry.tags:
            keys = self._tag_index.get(tag)
            if keys is None:
                continue
            keys.discard(key)
            if not keys:
                del self._tag_index[tag]
