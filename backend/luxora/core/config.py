import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

from dotenv import load_dotenv

load_dotenv()


def _env_enabled(name: str, default: str = "1") -> bool:
    raw = os.getenv(name, default)
    return raw not in {"0", "false", "False", ""}


def _env_float(name: str, default: str) -> float:
    return float(os.getenv(name, default).strip())


def _env_int(name: str, default: str) -> int:
    return int(os.getenv(name, default).strip())


def _env_list(name: str, default: str) -> Tuple[str, ...]:
    raw = os.getenv(name, default)
    return tuple(item.strip().lower() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    app_title: str = "Luxora Times News API"
    app_version: str = "1.0.0"
    frontend_origins: Tuple[str, ...] = (
        "http://localhost:3000",
        "http://localhost:3001",
    )

    enable_database: bool = _env_enabled("ENABLE_DATABASE")
    database_url: str = os.getenv(
        "DATABASE_URL", "sqlite+aiosqlite:///./luxora.db"
    )

    news_api_key: Optional[str] = os.getenv("NEWS_API_KEY")
    newsdata_api_key: Optional[str] = os.getenv("NEWSDATA_API_KEY")
    oxylabs_username: Optional[str] = os.getenv("OXYLABS_USERNAME")
    oxylabs_password: Optional[str] = os.getenv("OXYLABS_PASSWORD")
    oxylabs_domain: str = os.getenv("OXYLABS_DOMAIN", "nl")
    pexels_api_key: Optional[str] = os.getenv("PEXELS_API_KEY")

    supabase_url: Optional[str] = os.getenv("SUPABASE_URL")
    supabase_anon_key: Optional[str] = os.getenv("SUPABASE_ANON_KEY")

    cache_ttl_seconds: float = _env_float("CACHE_TTL_SECONDS", "900")
    google_news_cache_ttl_seconds: float = _env_float(
        "GOOGLE_NEWS_CACHE_TTL_SECONDS", "300"
    )
    upstream_timeout_seconds: float = _env_float("UPSTREAM_TIMEOUT_SECONDS", "5")
    upstream_max_retries: int = _env_int("UPSTREAM_MAX_RETRIES", "1")
    upstream_retry_backoff_seconds: float = _env_float(
        "UPSTREAM_RETRY_BACKOFF_SECONDS", "1"
    )
    rate_limit_state_dir: Optional[str] = os.getenv("RATE_LIMIT_STATE_DIR")

    headline_providers: Tuple[str, ...] = field(
        default_factory=lambda: _env_list("HEADLINE_PROVIDERS", "newsapi,newsdata")
    )
    search_providers: Tuple[str, ...] = field(
        default_factory=lambda: _env_list(
            "SEARCH_PROVIDERS", "oxylabs,newsapi,newsdata"
        )
    )

    media_cache_ttl_seconds: float = _env_float("MEDIA_CACHE_TTL_SECONDS", "21600")
    media_max_requests_per_hour: int = _env_int("MEDIA_MAX_REQUESTS_PER_HOUR", "200")

    @property
    def oxylabs_configured(self) -> bool:
        return bool(self.oxylabs_username and self.oxylabs_password)

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)


settings = Settings()
