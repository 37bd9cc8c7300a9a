from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Awaitable, Callable, Optional

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from luxora.api.routes import router as api_router
from luxora.core.config import Settings, settings
from luxora.core.errors import register_exception_handlers
from luxora.core.logging import configure_logging, get_logger
from luxora.database import build_engine, build_sessionmaker, init_db
from luxora.middleware import RequestTracingMiddleware
from luxora.services.auth import IdentityService
from luxora.services.cache import ResponseCache
from luxora.services.media_enrichment import (
    HourlyQuota,
    MediaEnrichmentService,
    PexelsClient,
)
from luxora.services.news_service import NewsService
from luxora.services.providers import build_providers, build_sources
from luxora.services.rate_limiter import RateLimiterRegistry, RateLimiterStateStore
from luxora.services.saved_articles import (
    LocalArticleStore,
    RemoteArticleStore,
    SavedArticleStore,
)
from luxora.services.supabase_client import SupabaseClient

configure_logging()
logger = get_logger("main")


def build_services(
    app: FastAPI,
    app_settings: Settings,
    client: httpx.AsyncClient,
    sleep: Optional[Callable[[float], Awaitable[None]]] = None,
) -> None:
    """Wire every service onto ``app.state``; expects ``app.state.sessionmaker``."""
    store = (
        RateLimiterStateStore(app_settings.rate_limit_state_dir)
        if app_settings.rate_limit_state_dir
        else None
    )
    limiters = RateLimiterRegistry(store=store, sleep=sleep)
    providers = build_providers(
        app_settings, build_sources(app_settings), limiters, client, sleep=sleep
    )

    app.state.news_service = NewsService(
        providers=providers,
        limiters=limiters,
        cache=ResponseCache(ttl_seconds=app_settings.cache_ttl_seconds, name="responses"),
        google_news_cache=ResponseCache(
            ttl_seconds=app_settings.google_news_cache_ttl_seconds, name="google_news"
        ),
        headline_chain=app_settings.headline_providers,
        search_chain=app_settings.search_providers,
    )

    app.state.media_service = MediaEnrichmentService(
        pexels=PexelsClient(
            app_settings.pexels_api_key, client, timeout=app_settings.upstream_timeout_seconds
        ),
        cache=ResponseCache(ttl_seconds=app_settings.media_cache_ttl_seconds, name="media"),
        quota=HourlyQuota(app_settings.media_max_requests_per_hour),
        sleep=sleep,
    )

    supabase = SupabaseClient(
        app_settings.supabase_url,
        app_settings.supabase_anon_key,
        client,
        timeout=app_settings.upstream_timeout_seconds,
    )
    app.state.identity_service = IdentityService(supabase)
    app.state.saved_store = SavedArticleStore(
        LocalArticleStore(app.state.sessionmaker), RemoteArticleStore(supabase)
    )


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    app_settings = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage application lifespan events."""
        logger.info("Starting %s...", app_settings.app_title)

        engine = None
        app.state.sessionmaker = None
        if app_settings.enable_database:
            engine = build_engine(app_settings.database_url)
            await init_db(engine)
            app.state.sessionmaker = build_sessionmaker(engine)
        else:
            logger.warning("Database disabled via ENABLE_DATABASE=0; saved articles kept in memory")

        client = httpx.AsyncClient(follow_redirects=True)
        build_services(app, app_settings, client)
        logger.info(
            "API startup complete (headlines: %s; search: %s)",
            ", ".join(app_settings.headline_providers),
            ", ".join(app_settings.search_providers),
        )

        yield

        logger.info("Shutting down %s...", app_settings.app_title)
        await client.aclose()
        if engine is not None:
            await engine.dispose()
        logger.info("Shutdown complete")

    app = FastAPI(
        title=app_settings.app_title,
        version=app_settings.app_version,
        description="Multi-source news API with quota-aware failover and saved articles",
        lifespan=lifespan,
    )
    app.state.settings = app_settings

    app.add_middleware(RequestTracingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(app_settings.frontend_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(api_router)
    return app


app = create_app()
