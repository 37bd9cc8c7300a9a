"""Stock photo/video lookup for articles whose own image is missing or broken."""

from __future__ import annotations

import asyncio
import re
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from luxora.core.logging import get_logger
from luxora.models.news import MediaResult
from luxora.services.cache import ResponseCache, build_cache_key

logger = get_logger("media_enrichment")

PEXELS_PHOTOS_URL = "https://api.pexels.com/v1/search"
PEXELS_VIDEOS_URL = "https://api.pexels.com/videos/search"

STOPWORDS = frozenset(
    {
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
        "of", "with", "by", "is", "are", "was", "were", "be", "been", "being",
        "have", "has", "had", "do", "does", "did", "will", "would", "could",
        "should", "from", "into", "after", "over", "amid", "says", "new",
    }
)

CATEGORY_HINTS: Dict[str, str] = {
    "business": "business office",
    "technology": "technology computer",
    "science": "science laboratory",
    "health": "health medical",
    "entertainment": "entertainment stage",
    "sports": "sports stadium",
    "politics": "politics government",
    "general": "news",
}


def extract_keywords(title: str, category: str) -> str:
    """Category hint words followed by up to three meaningful title words."""
    words = re.sub(r"[^\w\s]", "", (title or "").lower()).split()
    title_words = [word for word in words if len(word) > 2 and word not in STOPWORDS][:3]
    category = (category or "").strip().lower()
    hint = CATEGORY_HINTS.get(category, category)
    return " ".join(part for part in [hint, *title_words] if part)


@dataclass(frozen=True)
class MediaOptions:
    enabled: bool = True
    prefer_video: bool = False
    retry_count: int = 2
    retry_delay: float = 1.0  # seconds


class HourlyQuota:
    """Simple counter + reset timestamp guarding the media upstream."""

    WINDOW_SECONDS = 60 * 60

    def __init__(self, max_requests: int, clock: Callable[[], float] = time.time) -> None:
        self.max_requests = max_requests
        self._clock = clock
        self.count = 0
        self.reset_at = clock() + self.WINDOW_SECONDS

    def _roll(self) -> None:
        now = self._clock()
        if now >= self.reset_at:
            self.count = 0
            self.reset_at = now + self.WINDOW_SECONDS

    @property
    def remaining(self) -> int:
        self._roll()
        return max(0, self.max_requests - self.count)

    def try_consume(self) -> bool:
        self._roll()
        if self.count >= self.max_requests:
            return False
        self.count += 1
        return True


class PexelsClient:
    def __init__(
        self,
        api_key: Optional[str],
        client: httpx.AsyncClient,
        timeout: float = 5.0,
    ) -> None:
        self.api_key = api_key
        self.client = client
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def _search(self, url: str, query: str, per_page: int) -> Dict[str, Any]:
        response = await self.client.get(
            url,
            params={"query": query, "per_page": per_page, "orientation": "landscape"},
            headers={"Authorization": self.api_key or ""},
            timeout=self.timeout,
        )
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected Pexels response: {type(data).__name__}")
        return data

    @staticmethod
    def _first(items: Any) -> Optional[Dict[str, Any]]:
        if not items:
            return None
        if not isinstance(items, list) or not isinstance(items[0], dict):
            raise ValueError("Unexpected Pexels media list")
        return items[0]

    async def search_photos(self, query: str, per_page: int = 1) -> Optional[Dict[str, Any]]:
        data = await self._search(PEXELS_PHOTOS_URL, query, per_page)
        return self._first(data.get("photos"))

    async def search_videos(self, query: str, per_page: int = 1) -> Optional[Dict[str, Any]]:
        data = await self._search(PEXELS_VIDEOS_URL, query, per_page)
        return self._first(data.get("videos"))


class MediaEnrichmentService:
    def __init__(
        self,
        pexels: PexelsClient,
        cache: ResponseCache,
        quota: HourlyQuota,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ) -> None:
        self.pexels = pexels
        self.cache = cache
        self.quota = quota
        self._sleep = sleep or asyncio.sleep

    async def find_media(
        self, title: str, category: str, options: Optional[MediaOptions] = None
    ) -> MediaResult:
        options = options or MediaOptions()
        query = extract_keywords(title, category)

        if not options.enabled:
            return MediaResult(query=query)
        if not self.pexels.configured:
            return MediaResult(query=query, error="not_configured")

        kinds = ("video", "photo") if options.prefer_video else ("photo",)
        result = MediaResult(query=query)
        for kind in kinds:
            result = await self._lookup(query, kind, options)
            if result.type is not None or result.error == "rate_limited":
                return result
        return result

    async def _lookup(self, query: str, kind: str, options: MediaOptions) -> MediaResult:
        key = build_cache_key("media", query=query, kind=kind)
        cached = self.cache.get(key)
        if cached is not None:
            return cached.model_copy(update={"cached": True})

        search = self.pexels.search_videos if kind == "video" else self.pexels.search_photos
        attempts = 0
        last_error: Optional[str] = None

        for attempt in range(options.retry_count + 1):
            if not self.quota.try_consume():
                logger.warning("Pexels hourly request limit reached; skipping %r", query)
                return MediaResult(query=query, error="rate_limited", attempts=attempts)

            attempts += 1
            try:
                data = await search(query)
            except (httpx.HTTPError, ValueError) as exc:
                last_error = str(exc) or exc.__class__.__name__
                logger.warning(
                    "Pexels %s search failed for %r (attempt %d): %s",
                    kind,
                    query,
                    attempts,
                    last_error,
                )
                if attempt < options.retry_count:
                    await self._sleep(options.retry_delay * (2**attempt))
                continue

            result = MediaResult(
                type=kind if data else None, data=data, query=query, attempts=attempts
            )
            self.cache.put(key, result)
            return result

        result = MediaResult(query=query, error=last_error, attempts=attempts)
        self.cache.put(key, result)
        return result
