from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlencode

from luxora.core.logging import get_logger

logger = get_logger("response_cache")

CACHE_DURATION_SECONDS = 15 * 60


def build_cache_key(namespace: str, **params: Any) -> str:
    """Deterministic key; every parameter is urlencoded so values can't collide."""
    normalized = {
        name: "" if value is None else str(value).strip().lower()
        for name, value in params.items()
    }
    return f"{namespace}?{urlencode(sorted(normalized.items()))}"


@dataclass
class CacheEntry:
    data: Any
    timestamp: float


class ResponseCache:
    def __init__(
        self,
        ttl_seconds: float = CACHE_DURATION_SECONDS,
        clock: Callable[[], float] = time.time,
        name: str = "responses",
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.name = name
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def _is_fresh(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.timestamp < self.ttl_seconds

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None or not self._is_fresh(entry):
            return None
        logger.debug("Cache HIT (%s) for %s", self.name, key)
        return entry.data

    def put(self, key: str, data: Any) -> None:
        self._entries[key] = CacheEntry(data=data, timestamp=self._clock())

    def clear(self) -> int:
        removed = len(self._entries)
        self._entries = {}
        logger.info("Cache %s cleared: %s entries removed", self.name, removed)
        return removed

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> Dict[str, object]:
        entries = list(self._entries.values())
        return {
            "name": self.name,
            "entries": len(entries),
            "valid_entries": sum(1 for entry in entries if self._is_fresh(entry)),
            "ttl_seconds": self.ttl_seconds,
        }
