"""Upstream news providers sharing one fetch/limit/normalize pipeline.

Every provider exposes ``try_fetch(request)``, which returns normalized
articles or an empty list. It never raises, so the orchestrator can walk an
ordered chain of providers without nested error handling.
"""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import feedparser  # type: ignore[import-unresolved]
import httpx

from luxora.core.config import Settings
from luxora.core.logging import get_logger
from luxora.models.news import Article
from luxora.services.normalizer import map_category, normalize_many
from luxora.services.rate_limiter import ApiRateLimiter, RateLimiterRegistry

logger = get_logger("providers")

DAY_MS = 24 * 60 * 60 * 1000
USER_AGENT = "Mozilla/5.0 (compatible; LuxoraTimesBot/1.0)"
QUOTA_EXCEEDED_STATUS = 426

Sleeper = Callable[[float], Awaitable[None]]


def _now_ms() -> float:
    return time.time() * 1000


def next_local_midnight_ms(now_ms: float) -> float:
    now = datetime.fromtimestamp(now_ms / 1000)
    midnight = (now + timedelta(days=1)).replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight.timestamp() * 1000


@dataclass
class UpstreamSource:
    id: str
    name: str
    base_url: str
    api_key: Optional[str]
    endpoints: Dict[str, str]
    daily_limit: int
    active: bool = True
    remaining_calls: int = -1
    reset_time: float = 0
    requires_key: bool = True

    def __post_init__(self) -> None:
        if self.remaining_calls < 0:
            self.remaining_calls = self.daily_limit
        if not self.reset_time:
            self.reset_time = next_local_midnight_ms(_now_ms())

    @property
    def configured(self) -> bool:
        return bool(self.api_key) or not self.requires_key

    def reconcile(self, now_ms: float) -> None:
        if now_ms >= self.reset_time:
            self.remaining_calls = self.daily_limit
            while self.reset_time <= now_ms:
                self.reset_time += DAY_MS
            logger.info("%s daily quota reset (%s calls)", self.name, self.daily_limit)

    def is_available(self, now_ms: float) -> bool:
        self.reconcile(now_ms)
        return self.configured and self.active and self.remaining_calls > 0


@dataclass(frozen=True)
class FetchRequest:
    kind: str  # "headlines" or "search"
    page_size: int = 10
    category: Optional[str] = None
    country: str = "us"
    query: Optional[str] = None


@dataclass
class UpstreamCall:
    method: str
    url: str
    params: Optional[Dict[str, Any]] = None
    json: Optional[Dict[str, Any]] = None
    headers: Dict[str, str] = field(default_factory=dict)
    auth: Optional[Tuple[str, str]] = None


@dataclass(frozen=True)
class RetryPolicy:
    timeout: float = 5.0
    retries: int = 1
    backoff: float = 1.0


async def fetch_with_retry(
    client: httpx.AsyncClient,
    call: UpstreamCall,
    policy: RetryPolicy,
    sleep: Optional[Sleeper] = None,
) -> Optional[httpx.Response]:
    """Issue ``call`` with a timeout, retrying network failures with backoff.

    Non-2xx responses are returned as-is; only transport errors and timeouts
    are retried. The last failure is logged and turned into ``None``.
    """
    sleep = sleep or asyncio.sleep
    for attempt in range(policy.retries + 1):
        try:
            return await client.request(
                call.method,
                call.url,
                params=call.params,
                json=call.json,
                headers={"User-Agent": USER_AGENT, **call.headers},
                auth=call.auth,
                timeout=policy.timeout,
            )
        except httpx.HTTPError as exc:
            if attempt >= policy.retries:
                logger.warning(
                    "Request to %s failed after %d attempt(s): %s",
                    call.url,
                    attempt + 1,
                    exc.__class__.__name__,
                )
                return None
            delay = policy.backoff * (2**attempt)
            logger.debug("Retrying %s in %.1fs (%s)", call.url, delay, exc)
            await sleep(delay)
    return None


class NewsProvider(ABC):
    kind: str = ""

    def __init__(
        self,
        source: UpstreamSource,
        limiter: ApiRateLimiter,
        client: httpx.AsyncClient,
        policy: RetryPolicy,
        clock: Callable[[], float] = _now_ms,
        sleep: Optional[Sleeper] = None,
    ) -> None:
        self.source = source
        self.limiter = limiter
        self.client = client
        self.policy = policy
        self._clock = clock
        self._sleep = sleep

    @property
    def name(self) -> str:
        return self.source.name

    @abstractmethod
    def build_call(self, request: FetchRequest) -> Optional[UpstreamCall]:
        """Describe the upstream call, or ``None`` if the request isn't supported."""

    @abstractmethod
    def extract_items(self, payload: Any) -> List[Any]:
        """Pull the raw article items out of a decoded response."""

    def decode(self, response: httpx.Response) -> Any:
        return response.json()

    async def try_fetch(self, request: FetchRequest) -> List[Article]:
        try:
            return await self._fetch(request)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("%s fetch failed unexpectedly: %s", self.name, exc, exc_info=True)
            return []

    async def _fetch(self, request: FetchRequest) -> List[Article]:
        call = self.build_call(request)
        if call is None:
            return []

        if not self.source.is_available(self._clock()):
            logger.info(
                "Skipping %s (configured=%s active=%s remaining=%s)",
                self.name,
                self.source.configured,
                self.source.active,
                self.source.remaining_calls,
            )
            return []

        if not await self.limiter.acquire_permission():
            logger.warning("%s rate limit reached, request denied", self.name)
            return []

        response = await fetch_with_retry(self.client, call, self.policy, self._sleep)
        if response is None:
            return []

        if response.status_code == QUOTA_EXCEEDED_STATUS:
            self.source.active = False
            logger.warning(
                "%s returned %s (quota exceeded); disabled for this session",
                self.name,
                response.status_code,
            )
            return []

        if not response.is_success:
            logger.warning("%s error: HTTP %s", self.name, response.status_code)
            return []

        self.source.remaining_calls = max(0, self.source.remaining_calls - 1)

        try:
            items = self.extract_items(self.decode(response))
        except Exception as exc:
            logger.warning("Could not decode %s response: %s", self.name, exc)
            return []

        articles = normalize_many(items, self.name, self.kind)
        logger.info("%s returned %d articles", self.name, len(articles))
        return articles


class NewsApiProvider(NewsProvider):
    kind = "newsapi"

    def build_call(self, request: FetchRequest) -> Optional[UpstreamCall]:
        if request.kind == "search":
            params: Dict[str, Any] = {
                "q": request.query,
                "pageSize": request.page_size,
                "apiKey": self.source.api_key,
            }
            endpoint = self.source.endpoints["everything"]
        else:
            params = {
                "country": request.country,
                "pageSize": request.page_size,
                "apiKey": self.source.api_key,
            }
            category = map_category(request.category, self.kind)
            if category:
                params["category"] = category
            endpoint = self.source.endpoints["top_headlines"]
        return UpstreamCall("GET", f"{self.source.base_url}{endpoint}", params=params)

    def extract_items(self, payload: Any) -> List[Any]:
        return list(payload.get("articles") or [])


class NewsDataProvider(NewsProvider):
    kind = "newsdata"

    def build_call(self, request: FetchRequest) -> Optional[UpstreamCall]:
        params: Dict[str, Any] = {"apikey": self.source.api_key, "size": request.page_size}
        if request.kind == "search":
            params["q"] = request.query
            endpoint = self.source.endpoints["everything"]
        else:
            params["country"] = request.country
            category = map_category(request.category, self.kind)
            if category:
                params["category"] = category
            endpoint = self.source.endpoints["top_headlines"]
        return UpstreamCall("GET", f"{self.source.base_url}{endpoint}", params=params)

    def extract_items(self, payload: Any) -> List[Any]:
        return list(payload.get("results") or [])


class OxylabsProvider(NewsProvider):
    """Search-engine backed provider; only serves free-text search."""

    kind = "oxylabs"

    def __init__(self, *args: Any, username: Optional[str] = None,
                 password: Optional[str] = None, domain: str = "nl", **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.username = username
        self.password = password
        self.domain = domain

    def build_call(self, request: FetchRequest) -> Optional[UpstreamCall]:
        if request.kind != "search" or not request.query:
            return None
        payload = {
            "source": "google_search",
            "domain": self.domain,
            "query": request.query,
            "parse": True,
            "context": [{"key": "tbm", "value": "nws"}],
        }
        return UpstreamCall(
            "POST",
            f"{self.source.base_url}{self.source.endpoints['everything']}",
            json=payload,
            auth=(self.username or "", self.password or ""),
        )

    def extract_items(self, payload: Any) -> List[Any]:
        results = payload.get("results") or []
        if not results:
            return []
        content = results[0].get("content") or {}
        items = content.get("news_results")
        if items is None:
            items = (content.get("results") or {}).get("main") or []
        return list(items)


class GoogleNewsProvider(NewsProvider):
    """Google News RSS search feed, parsed with feedparser."""

    kind = "google_news"

    def build_call(self, request: FetchRequest) -> Optional[UpstreamCall]:
        topic = request.query if request.kind == "search" else request.category
        region = (request.country or "us").upper()
        params = {
            "q": topic or "top stories",
            "hl": "en-US",
            "gl": region,
            "ceid": f"{region}:en",
        }
        return UpstreamCall(
            "GET",
            f"{self.source.base_url}{self.source.endpoints['everything']}",
            params=params,
        )

    def decode(self, response: httpx.Response) -> Any:
        feed = feedparser.parse(response.text)
        if getattr(feed, "bozo", False) and not feed.entries:
            raise ValueError(f"Invalid RSS feed: {getattr(feed, 'bozo_exception', '')}")
        return feed

    def extract_items(self, payload: Any) -> List[Any]:
        return list(payload.entries)


def build_sources(app_settings: Settings) -> Dict[str, UpstreamSource]:
    """Create the upstream source table from configuration."""
    return {
        "newsapi": UpstreamSource(
            id="newsapi",
            name="NewsAPI",
            base_url="https://newsapi.org/v2",
            api_key=app_settings.news_api_key,
            endpoints={"top_headlines": "/top-headlines", "everything": "/everything"},
            daily_limit=100,
        ),
        "newsdata": UpstreamSource(
            id="newsdata",
            name="NewsData.io",
            base_url="https://newsdata.io/api/1",
            api_key=app_settings.newsdata_api_key,
            endpoints={"top_headlines": "/news", "everything": "/news"},
            daily_limit=200,
        ),
        "oxylabs": UpstreamSource(
            id="oxylabs",
            name="Oxylabs",
            base_url="https://realtime.oxylabs.io/v1",
            api_key=app_settings.oxylabs_username if app_settings.oxylabs_configured else None,
            endpoints={"everything": "/queries"},
            daily_limit=100,
        ),
        "google_news": UpstreamSource(
            id="google_news",
            name="Google News",
            base_url="https://news.google.com/rss",
            api_key=None,
            endpoints={"everything": "/search"},
            daily_limit=1000,
            requires_key=False,
        ),
    }


def build_providers(
    app_settings: Settings,
    sources: Dict[str, UpstreamSource],
    limiters: RateLimiterRegistry,
    client: httpx.AsyncClient,
    clock: Callable[[], float] = _now_ms,
    sleep: Optional[Sleeper] = None,
) -> Dict[str, NewsProvider]:
    policy = RetryPolicy(
        timeout=app_settings.upstream_timeout_seconds,
        retries=app_settings.upstream_max_retries,
        backoff=app_settings.upstream_retry_backoff_seconds,
    )

    def _common(source_id: str) -> Dict[str, Any]:
        return {
            "source": sources[source_id],
            "limiter": limiters.get(source_id),
            "client": client,
            "policy": policy,
            "clock": clock,
            "sleep": sleep,
        }

    return {
        "newsapi": NewsApiProvider(**_common("newsapi")),
        "newsdata": NewsDataProvider(**_common("newsdata")),
        "oxylabs": OxylabsProvider(
            **_common("oxylabs"),
            username=app_settings.oxylabs_username,
            password=app_settings.oxylabs_password,
            domain=app_settings.oxylabs_domain,
        ),
        "google_news": GoogleNewsProvider(**_common("google_news")),
    }
