"""Multi-source news fetching with caching, failover and static fallback.

``NewsService`` walks an ordered chain of providers for each request. The
first provider that yields articles wins; its result is tagged, deduplicated,
trimmed to the page size and cached. If the whole chain comes up empty the
caller still gets a full page of static fallback articles, so none of the
public coroutines here raise on upstream trouble.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from luxora.core.logging import get_logger
from luxora.data.fallback_articles import (
    get_fallback_articles_by_category,
    get_google_news_fallback,
    get_search_fallback,
)
from luxora.models.news import Article, ArticleBatch, SourceUsage
from luxora.services.cache import ResponseCache, build_cache_key
from luxora.services.normalizer import dedupe_articles
from luxora.services.providers import FetchRequest, NewsProvider, UpstreamSource
from luxora.services.rate_limiter import RateLimiterRegistry

logger = get_logger("news_service")

DEFAULT_GOOGLE_NEWS_TOPIC = "world news"


def _now_ms() -> float:
    return time.time() * 1000


def _tag_and_trim(articles: Iterable[Article], category: str, page_size: int) -> List[Article]:
    tagged = [article.model_copy(update={"category": category}) for article in articles]
    return dedupe_articles(tagged)[:page_size]


class NewsService:
    def __init__(
        self,
        providers: Dict[str, NewsProvider],
        limiters: RateLimiterRegistry,
        cache: ResponseCache,
        google_news_cache: Optional[ResponseCache] = None,
        headline_chain: Sequence[str] = ("newsapi", "newsdata"),
        search_chain: Sequence[str] = ("oxylabs", "newsapi", "newsdata"),
        clock: Callable[[], float] = _now_ms,
    ) -> None:
        self.providers = providers
        self.limiters = limiters
        self.cache = cache
        self.google_news_cache = google_news_cache or ResponseCache(
            ttl_seconds=5 * 60, name="google_news"
        )
        self.headline_chain = list(headline_chain)
        self.search_chain = list(search_chain)
        self._clock = clock

    @property
    def sources(self) -> Dict[str, UpstreamSource]:
        return {name: provider.source for name, provider in self.providers.items()}

    def _chain(self, names: Sequence[str]) -> List[NewsProvider]:
        chain = []
        for name in names:
            provider = self.providers.get(name)
            if provider is None:
                logger.warning("Unknown provider %r in chain, skipping", name)
                continue
            chain.append(provider)
        return chain

    async def _run_chain(
        self, names: Sequence[str], request: FetchRequest
    ) -> tuple[List[Article], Optional[str]]:
        for provider in self._chain(names):
            articles = await provider.try_fetch(request)
            if articles:
                return articles, provider.name
            logger.info("%s produced no articles, trying next source", provider.name)
        return [], None

    async def get_headlines_batch(
        self,
        category: Optional[str] = None,
        country: str = "us",
        page_size: int = 10,
    ) -> ArticleBatch:
        category = (category or "").strip().lower() or None
        country = (country or "us").strip().lower()
        key = build_cache_key(
            "headlines", category=category, country=country, page_size=page_size
        )

        cached = self.cache.get(key)
        if cached is not None:
            return ArticleBatch(articles=cached["articles"], provider=cached["provider"], cached=True)

        request = FetchRequest(
            kind="headlines", category=category, country=country, page_size=page_size
        )
        articles, provider_name = await self._run_chain(self.headline_chain, request)
        if articles:
            result = _tag_and_trim(articles, category or "general", page_size)
            self.cache.put(key, {"articles": result, "provider": provider_name})
            return ArticleBatch(articles=result, provider=provider_name)

        logger.warning(
            "All sources failed for headlines (category=%s, country=%s); using fallback data",
            category,
            country,
        )
        return ArticleBatch(
            articles=get_fallback_articles_by_category(category, page_size),
            fallback=True,
        )

    async def search_batch(self, query: str, page_size: int = 10) -> ArticleBatch:
        query = (query or "").strip()
        key = build_cache_key("search", q=query, page_size=page_size)

        cached = self.cache.get(key)
        if cached is not None:
            return ArticleBatch(articles=cached["articles"], provider=cached["provider"], cached=True)

        request = FetchRequest(kind="search", query=query, page_size=page_size)
        articles, provider_name = await self._run_chain(self.search_chain, request)
        if articles:
            result = _tag_and_trim(articles, query, page_size)
            self.cache.put(key, {"articles": result, "provider": provider_name})
            return ArticleBatch(articles=result, provider=provider_name)

        logger.warning("All sources failed for search %r; using fallback data", query)
        return ArticleBatch(articles=get_search_fallback(query, page_size), fallback=True)

    async def fetch_top_headlines(
        self,
        category: Optional[str] = None,
        country: str = "us",
        page_size: int = 10,
    ) -> List[Article]:
        batch = await self.get_headlines_batch(category, country, page_size)
        return batch.articles

    async def search_articles(self, query: str, page_size: int = 10) -> List[Article]:
        batch = await self.search_batch(query, page_size)
        return batch.articles

    async def fetch_google_news(self, topic: Optional[str] = None) -> List[Article]:
        """Google News RSS for a topic, cached separately for five minutes."""
        topic = (topic or "").strip() or DEFAULT_GOOGLE_NEWS_TOPIC
        key = build_cache_key("google_news", topic=topic)

        cached = self.google_news_cache.get(key)
        if cached is not None:
            return cached

        provider = self.providers.get("google_news")
        articles: List[Article] = []
        if provider is not None:
            articles = await provider.try_fetch(FetchRequest(kind="search", query=topic, page_size=50))

        if not articles:
            logger.warning("Google News unavailable for %r; using fallback data", topic)
            return get_google_news_fallback(topic)

        result = dedupe_articles(
            article.model_copy(update={"category": topic}) for article in articles
        )
        self.google_news_cache.put(key, result)
        return result

    def clear_cache(self) -> int:
        return self.cache.clear() + self.google_news_cache.clear()

    def cache_status(self) -> Dict[str, Any]:
        return {
            "responses": self.cache.stats(),
            "googleNews": self.google_news_cache.stats(),
        }

    def get_usage_stats(self) -> Dict[str, Dict[str, Any]]:
        now = self._clock()
        stats: Dict[str, Dict[str, Any]] = {}
        for name, provider in self.providers.items():
            source = provider.source
            source.reconcile(now)
            limiter = self.limiters.get(name)
            usage = SourceUsage(
                name=source.name,
                active=source.active,
                configured=source.configured,
                daily_limit=source.daily_limit,
                remaining_calls=source.remaining_calls,
                reset_time=int(source.reset_time),
                remaining_requests=limiter.remaining_requests,
                is_throttling=limiter.is_throttling,
                current_delay=limiter.current_delay,
                last_updated=int(now),
            )
            stats[name] = usage.model_dump(by_alias=True)
        return stats
