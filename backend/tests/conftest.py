"""
Shared fixtures for the Luxora Times API tests.

Provides a fake clock and recording sleep for time-dependent services, an
in-memory SQLite database, a scriptable fake upstream behind
``httpx.MockTransport`` and an ``AsyncClient`` wired to a freshly built app,
so no test ever touches the network.
"""

import json
from typing import Any, AsyncGenerator, Callable, Dict, List, Optional

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine

from luxora.core.config import Settings
from luxora.database import Base, build_sessionmaker

NEWSAPI_HOST = "newsapi.org"
NEWSDATA_HOST = "newsdata.io"
OXYLABS_HOST = "realtime.oxylabs.io"
GOOGLE_NEWS_HOST = "news.google.com"
PEXELS_HOST = "api.pexels.com"
SUPABASE_HOST = "project.supabase.test"


# ---------------------------------------------------------------------------
# Time
# ---------------------------------------------------------------------------


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: float = 1_700_000_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class RecordingSleep:
    """Async sleep stand-in that records delays (seconds) and advances a clock."""

    def __init__(self, clock: Optional[FakeClock] = None) -> None:
        self.clock = clock
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self.clock is not None:
            self.clock.advance(seconds * 1000)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recording_sleep(fake_clock: FakeClock) -> RecordingSleep:
    return RecordingSleep(fake_clock)


# ---------------------------------------------------------------------------
# Fake upstream HTTP
# ---------------------------------------------------------------------------

Handler = Callable[[httpx.Request], httpx.Response]


class FakeUpstream:
    """Routes requests by host; unknown hosts behave like an unreachable network."""

    def __init__(self) -> None:
        self.routes: Dict[str, Handler] = {}
        self.requests: List[httpx.Request] = []

    def on(self, host: str, handler: Handler) -> None:
        self.routes[host] = handler

    def fail(self, host: str, exc_type: type = httpx.ConnectError) -> None:
        def _raise(request: httpx.Request) -> httpx.Response:
            raise exc_type("upstream unreachable", request=request)

        self.routes[host] = _raise

    def calls_to(self, host: str) -> List[httpx.Request]:
        return [request for request in self.requests if request.url.host == host]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get(request.url.host)
        if handler is None:
            raise httpx.ConnectError("upstream unreachable", request=request)
        return handler(request)


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


class FakeSupabase:
    """In-memory stand-in for the GoTrue auth and PostgREST endpoints."""

    def __init__(self) -> None:
        self.users: Dict[str, Dict[str, Any]] = {}
        self.tokens: Dict[str, str] = {}
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.recovery_emails: List[str] = []
        self.signed_out: List[str] = []

    def add_user(self, email: str, password: str, user_id: Optional[str] = None) -> str:
        """Register a user and return a valid access token for them."""
        user_id = user_id or f"user-{len(self.users) + 1}"
        self.users[email] = {"id": user_id, "email": email, "password": password}
        token = f"token-{user_id}"
        self.tokens[token] = email
        return token

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables.setdefault(table, [])

    def _user_public(self, email: str) -> Dict[str, Any]:
        user = self.users[email]
        return {"id": user["id"], "email": email}

    def _session(self, email: str) -> Dict[str, Any]:
        token = f"token-{self.users[email]['id']}"
        self.tokens[token] = email
        return {
            "access_token": token,
            "refresh_token": f"refresh-{token}",
            "expires_in": 3600,
            "token_type": "bearer",
            "user": self._user_public(email),
        }

    def _token_email(self, request: httpx.Request) -> Optional[str]:
        _, _, token = request.headers.get("authorization", "").partition(" ")
        return self.tokens.get(token)

    def _auth(self, request: httpx.Request, action: str) -> httpx.Response:
        body = json.loads(request.content or b"{}")
        if action == "token":
            user = self.users.get(body.get("email"))
            if user is None or user["password"] != body.get("password"):
                return httpx.Response(
                    400,
                    json={"error": "invalid_grant", "error_description": "Invalid login credentials"},
                )
            return httpx.Response(200, json=self._session(body["email"]))
        if action == "signup":
            if body["email"] in self.users:
                return httpx.Response(422, json={"msg": "User already registered"})
            self.add_user(body["email"], body["password"])
            return httpx.Response(200, json=self._session(body["email"]))
        if action == "logout":
            email = self._token_email(request)
            if email is None:
                return httpx.Response(401, json={"msg": "invalid token"})
            self.signed_out.append(email)
            return httpx.Response(204)
        if action == "recover":
            self.recovery_emails.append(body["email"])
            return httpx.Response(200, json={})
        if action == "user":
            email = self._token_email(request)
            if email is None:
                return httpx.Response(401, json={"msg": "invalid JWT"})
            return httpx.Response(200, json=self._user_public(email))
        return httpx.Response(404, json={"msg": "not found"})

    @staticmethod
    def _matches(row: Dict[str, Any], filters: Dict[str, str]) -> bool:
        return all(str(row.get(column)) == value for column, value in filters.items())

    def _rest(self, request: httpx.Request, table: str) -> httpx.Response:
        params = dict(request.url.params)
        filters = {
            column: value[3:]
            for column, value in params.items()
            if value.startswith("eq.")
        }
        rows = self.rows(table)

        if request.method == "GET":
            found = [row for row in rows if self._matches(row, filters)]
            if params.get("order"):
                column, _, direction = params["order"].partition(".")
                found.sort(key=lambda row: row.get(column) or "", reverse=direction == "desc")
            if params.get("limit"):
                found = found[: int(params["limit"])]
            return httpx.Response(200, json=found)
        if request.method == "POST":
            new_rows = json.loads(request.content)
            rows.extend(new_rows)
            return httpx.Response(201, json=new_rows)
        if request.method == "PATCH":
            values = json.loads(request.content)
            updated = [row for row in rows if self._matches(row, filters)]
            for row in updated:
                row.update(values)
            return httpx.Response(200, json=updated)
        if request.method == "DELETE":
            self.tables[table] = [row for row in rows if not self._matches(row, filters)]
            return httpx.Response(204)
        return httpx.Response(405)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.startswith("/auth/v1/"):
            return self._auth(request, path[len("/auth/v1/"):])
        if path.startswith("/rest/v1/"):
            return self._rest(request, path[len("/rest/v1/"):])
        return httpx.Response(404, json={"msg": "not found"})


@pytest.fixture
def supabase(upstream: FakeUpstream) -> FakeSupabase:
    fake = FakeSupabase()
    upstream.on(SUPABASE_HOST, fake)
    return fake


@pytest_asyncio.fixture
async def http_client(upstream: FakeUpstream) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as client:
        yield client


# ---------------------------------------------------------------------------
# Upstream payload builders
# ---------------------------------------------------------------------------


class Payloads:
    @staticmethod
    def newsapi(count: int, prefix: str = "NewsAPI story") -> Dict[str, Any]:
        return {
            "status": "ok",
            "totalResults": count,
            "articles": [
                {
                    "source": {"id": None, "name": "Wire Service"},
                    "title": f"{prefix} {index}",
                    "description": f"Description {index}",
                    "content": f"Body of story {index}... [+1234 chars]",
                    "url": f"https://wire.example.com/{prefix.replace(' ', '-').lower()}/{index}",
                    "urlToImage": f"https://img.example.com/{index}.jpg",
                    "publishedAt": "2024-03-01T12:00:00Z",
                }
                for index in range(count)
            ],
        }

    @staticmethod
    def newsdata(count: int, prefix: str = "NewsData story") -> Dict[str, Any]:
        return {
            "status": "success",
            "totalResults": count,
            "results": [
                {
                    "title": f"{prefix} {index}",
                    "description": f"Summary {index}",
                    "content": None,
                    "link": f"https://daily.example.com/{prefix.replace(' ', '-').lower()}/{index}",
                    "image_url": None,
                    "pubDate": "2024-03-01 08:30:00",
                    "source_id": "dailyexample",
                    "category": ["top"],
                }
                for index in range(count)
            ],
        }

    @staticmethod
    def oxylabs(count: int, prefix: str = "Search hit") -> Dict[str, Any]:
        return {
            "results": [
                {
                    "content": {
                        "news_results": [
                            {
                                "title": f"{prefix} {index}",
                                "snippet": f"Snippet {index}",
                                "url": f"https://search.example.com/{index}",
                                "source": "Search Source",
                                "date": "2024-03-01T09:00:00Z",
                            }
                            for index in range(count)
                        ]
                    }
                }
            ]
        }

    @staticmethod
    def google_rss(count: int) -> str:
        items = "".join(
            f"""
            <item>
              <title>Headline {index} - Publisher {index}</title>
              <link>https://news.example.com/story/{index}</link>
              <pubDate>Fri, 01 Mar 2024 10:00:00 GMT</pubDate>
              <description>&lt;a href="https://news.example.com/story/{index}"&gt;Headline {index}&lt;/a&gt;&lt;img src="https://img.example.com/g{index}.png"&gt;</description>
            </item>"""
            for index in range(count)
        )
        return f"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0"><channel><title>Google News</title>{items}
</channel></rss>"""


@pytest.fixture
def payloads() -> type:
    return Payloads


# ---------------------------------------------------------------------------
# In-memory async SQLite engine
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return build_sessionmaker(db_engine)


# ---------------------------------------------------------------------------
# FastAPI app wired to the fakes
# ---------------------------------------------------------------------------


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        enable_database=True,
        database_url="sqlite+aiosqlite:///:memory:",
        news_api_key="test-newsapi-key",
        newsdata_api_key="test-newsdata-key",
        oxylabs_username="oxy-user",
        oxylabs_password="oxy-pass",
        oxylabs_domain="nl",
        pexels_api_key="test-pexels-key",
        supabase_url=f"https://{SUPABASE_HOST}",
        supabase_anon_key="anon-key",
        upstream_timeout_seconds=1,
        upstream_max_retries=1,
        upstream_retry_backoff_seconds=0.01,
        rate_limit_state_dir=None,
        headline_providers=("newsapi", "newsdata"),
        search_providers=("oxylabs", "newsapi", "newsdata"),
    )


@pytest.fixture
def api_app(
    test_settings: Settings,
    session_factory,
    http_client: httpx.AsyncClient,
    recording_sleep: RecordingSleep,
) -> FastAPI:
    """
    The real FastAPI app with services wired by hand, because ASGITransport
    does not run the lifespan.
    """
    from luxora.main import build_services, create_app

    app = create_app(test_settings)
    app.state.sessionmaker = session_factory
    build_services(app, test_settings, http_client, sleep=recording_sleep)
    return app


@pytest_asyncio.fixture
async def client(api_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=api_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
