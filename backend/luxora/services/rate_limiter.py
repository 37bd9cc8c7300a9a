"""Per-source request quota tracking with graceful throttling.

Each upstream source gets an ``ApiRateLimiter`` that enforces a daily request
budget and a minimum spacing between requests. Once more than 70% of the
budget is spent, the spacing widens linearly toward ``max_request_interval``
so the quota runs out gradually instead of hitting a wall.

State can be persisted as one JSON file per source so quotas survive restarts.
"""

from __future__ import annotations

import asyncio
import json
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Awaitable, Callable, Dict, Optional

from luxora.core.logging import get_logger

logger = get_logger("rate_limiter")

THROTTLE_THRESHOLD = 0.7

Clock = Callable[[], float]
Sleeper = Callable[[float], Awaitable[None]]


def _now_ms() -> float:
    return time.time() * 1000


@dataclass(frozen=True)
class RateLimitConfig:
    max_requests_per_day: int
    reset_interval_hours: float = 24
    min_request_interval: float = 1000  # ms
    max_request_interval: float = 10000  # ms


@dataclass
class RateLimiterState:
    remaining_requests: int
    next_reset_time: float
    last_request_time: float
    is_throttling: bool
    current_delay: float


class RateLimiterStateStore:
    """Stores limiter state as ``api-rate-limiter-<name>.json`` files."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _path(self, name: str) -> Path:
        return self.directory / f"api-rate-limiter-{name}.json"

    def load(self, name: str) -> Optional[RateLimiterState]:
        path = self._path(name)
        if not path.exists():
            return None
        try:
            raw = json.loads(path.read_text())
            return RateLimiterState(**raw)
        except Exception as exc:
            logger.error("Error loading rate limiter state for %s: %s", name, exc)
            return None

    def save(self, name: str, state: RateLimiterState) -> None:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            self._path(name).write_text(json.dumps(asdict(state)))
        except Exception as exc:
            logger.error("Error saving rate limiter state for %s: %s", name, exc)


class ApiRateLimiter:
    def __init__(
        self,
        api_name: str,
        config: RateLimitConfig,
        store: Optional[RateLimiterStateStore] = None,
        clock: Clock = _now_ms,
        sleep: Optional[Sleeper] = None,
    ) -> None:
        self.api_name = api_name
        self.config = config
        self._store = store
        self._clock = clock
        self._sleep = sleep or asyncio.sleep

        loaded = store.load(api_name) if store else None
        self.state = loaded or RateLimiterState(
            remaining_requests=config.max_requests_per_day,
            next_reset_time=self._clock() + self._reset_interval_ms,
            last_request_time=0,
            is_throttling=False,
            current_delay=config.min_request_interval,
        )
        self._check_and_reset_quota()

    @property
    def _reset_interval_ms(self) -> float:
        return self.config.reset_interval_hours * 60 * 60 * 1000

    def _save_state(self) -> None:
        if self._store is not None:
            self._store.save(self.api_name, self.state)

    def _check_and_reset_quota(self) -> None:
        now = self._clock()
        if now >= self.state.next_reset_time:
            self.state.remaining_requests = self.config.max_requests_per_day
            self.state.next_reset_time = now + self._reset_interval_ms
            self.state.is_throttling = False
            self.state.current_delay = self.config.min_request_interval
            self._save_state()

    def _update_throttling(self) -> None:
        max_requests = self.config.max_requests_per_day
        used = 1 - self.state.remaining_requests / max_requests if max_requests else 1

        if used > THROTTLE_THRESHOLD:
            intensity = min(1.0, (used - THROTTLE_THRESHOLD) / (1 - THROTTLE_THRESHOLD))
            self.state.is_throttling = True
            self.state.current_delay = self.config.min_request_interval + intensity * (
                self.config.max_request_interval - self.config.min_request_interval
            )
        else:
            self.state.is_throttling = False
            self.state.current_delay = self.config.min_request_interval

    async def acquire_permission(self) -> bool:
        """Wait for this source's turn; ``False`` means the quota is spent.

        The slot is reserved before sleeping; concurrent callers queue behind it.
        """
        try:
            self._check_and_reset_quota()

            if self.state.remaining_requests <= 0:
                logger.warning(
                    "%s rate limit exceeded. No requests remaining until reset.",
                    self.api_name,
                )
                return False

            now = self._clock()
            scheduled = max(now, self.state.last_request_time + self.state.current_delay)
            self.state.remaining_requests -= 1
            self.state.last_request_time = scheduled
            self._update_throttling()
            self._save_state()
        except Exception as exc:
            logger.error("Rate limiter for %s failed: %s", self.api_name, exc)
            return False

        time_to_wait = scheduled - now
        if time_to_wait <= 0:
            return True

        logger.debug("Throttling %s for %.0fms", self.api_name, time_to_wait)
        try:
            await self._sleep(time_to_wait / 1000)
        except asyncio.CancelledError:
            self._release()
            raise
        except Exception as exc:
            logger.error("Rate limiter for %s failed: %s", self.api_name, exc)
            self._release()
            return False
        return True

    def _release(self) -> None:
        self.state.remaining_requests = min(
            self.config.max_requests_per_day, self.state.remaining_requests + 1
        )
        self._update_throttling()
        self._save_state()

    def get_state(self) -> RateLimiterState:
        self._check_and_reset_quota()
        return RateLimiterState(**asdict(self.state))

    @property
    def remaining_requests(self) -> int:
        self._check_and_reset_quota()
        return self.state.remaining_requests

    @property
    def next_reset_time(self) -> float:
        return self.state.next_reset_time

    @property
    def is_throttling(self) -> bool:
        return self.state.is_throttling

    @property
    def current_delay(self) -> float:
        return self.state.current_delay


DEFAULT_RATE_LIMITS: Dict[str, RateLimitConfig] = {
    "newsapi": RateLimitConfig(
        max_requests_per_day=100, min_request_interval=1000, max_request_interval=10000
    ),
    "newsdata": RateLimitConfig(
        max_requests_per_day=200, min_request_interval=1000, max_request_interval=8000
    ),
    "oxylabs": RateLimitConfig(
        max_requests_per_day=100, min_request_interval=1000, max_request_interval=10000
    ),
    "google_news": RateLimitConfig(
        max_requests_per_day=1000, min_request_interval=500, max_request_interval=5000
    ),
}


class RateLimiterRegistry:
    """Owns one limiter per source; built once at startup."""

    def __init__(
        self,
        configs: Optional[Dict[str, RateLimitConfig]] = None,
        store: Optional[RateLimiterStateStore] = None,
        clock: Clock = _now_ms,
        sleep: Optional[Sleeper] = None,
    ) -> None:
        self._configs = dict(configs if configs is not None else DEFAULT_RATE_LIMITS)
        self._store = store
        self._clock = clock
        self._sleep = sleep
        self._limiters: Dict[str, ApiRateLimiter] = {}

    def get(self, name: str) -> ApiRateLimiter:
        limiter = self._limiters.get(name)
        if limiter is None:
            config = self._configs.get(name) or RateLimitConfig(max_requests_per_day=100)
            limiter = ApiRateLimiter(
                name, config, store=self._store, clock=self._clock, sleep=self._sleep
            )
            self._limiters[name] = limiter
        return limiter

    def __contains__(self, name: str) -> bool:
        return name in self._limiters

    def items(self):
        return self._limiters.items()
