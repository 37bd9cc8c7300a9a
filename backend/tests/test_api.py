"""Endpoint tests: envelopes, validation codes and service wiring."""

import httpx
import pytest
from httpx import AsyncClient

NEWSAPI = "newsapi.org"
NEWSDATA = "newsdata.io"
OXYLABS = "realtime.oxylabs.io"
GOOGLE_NEWS = "news.google.com"
PEXELS = "api.pexels.com"


def _json(payload):
    return lambda request: httpx.Response(200, json=payload)


@pytest.mark.asyncio
class TestNewsRoutes:
    async def test_headlines_envelope(self, client: AsyncClient, upstream, payloads):
        upstream.on(NEWSAPI, _json(payloads.newsapi(5)))

        resp = await client.get("/api/news", params={"category": "technology", "pageSize": 5})

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        data = body["data"]
        assert data["total"] == 5
        assert data["provider"] == "NewsAPI"
        assert data["cached"] is False
        assert data["fallback"] is False
        first = data["articles"][0]
        assert set(first) >= {"id", "title", "imageUrl", "publishedAt", "source", "category"}
        assert first["category"] == "technology"

    async def test_second_request_is_cached(self, client: AsyncClient, upstream, payloads):
        upstream.on(NEWSAPI, _json(payloads.newsapi(5)))

        await client.get("/api/news", params={"pageSize": 5})
        resp = await client.get("/api/news", params={"pageSize": 5})

        assert resp.json()["data"]["cached"] is True
        assert len(upstream.calls_to(NEWSAPI)) == 1

    @pytest.mark.parametrize("page_size", [0, 101, -3])
    async def test_invalid_page_size(self, client: AsyncClient, page_size):
        resp = await client.get("/api/news", params={"pageSize": page_size})

        assert resp.status_code == 400
        body = resp.json()
        assert body["success"] is False
        assert body["code"] == "INVALID_PAGE_SIZE"

    async def test_non_numeric_page_size(self, client: AsyncClient):
        resp = await client.get("/api/news", params={"pageSize": "lots"})

        assert resp.status_code == 400
        assert resp.json()["code"] == "VALIDATION_ERROR"

    async def test_everything_down_still_answers(self, client: AsyncClient):
        resp = await client.get("/api/news", params={"category": "sports", "pageSize": 4})

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["fallback"] is True
        assert data["total"] == 4
        assert all(article["category"] == "sports" for article in data["articles"])

    async def test_q_on_news_route_searches(self, client: AsyncClient, upstream, payloads):
        upstream.on(OXYLABS, _json(payloads.oxylabs(3)))

        resp = await client.get("/api/news", params={"q": "bitcoin", "pageSize": 3})

        data = resp.json()["data"]
        assert data["provider"] == "Oxylabs"
        assert all(article["category"] == "bitcoin" for article in data["articles"])

    async def test_search_requires_query(self, client: AsyncClient):
        resp = await client.get("/api/news/search", params={"q": "  "})

        assert resp.status_code == 400
        assert resp.json()["code"] == "MISSING_QUERY"

    async def test_search_strips_markup(self, client: AsyncClient, upstream, payloads):
        upstream.on(OXYLABS, _json(payloads.oxylabs(2)))

        resp = await client.get("/api/news/search", params={"q": "<b>climate</b>", "pageSize": 2})

        assert resp.status_code == 200
        request = upstream.calls_to(OXYLABS)[0]
        assert b"bclimate/b" in request.content

    async def test_google_news(self, client: AsyncClient, upstream, payloads):
        upstream.on(GOOGLE_NEWS, lambda request: httpx.Response(200, text=payloads.google_rss(3)))

        resp = await client.get("/api/google-news")

        data = resp.json()["data"]
        assert data["topic"] == "world news"
        assert data["total"] == 3
        assert upstream.calls_to(GOOGLE_NEWS)[0].url.params["q"] == "world news"


@pytest.mark.asyncio
class TestCacheAndStatus:
    async def test_clear_and_status(self, client: AsyncClient, upstream, payloads):
        upstream.on(NEWSAPI, _json(payloads.newsapi(5)))
        await client.get("/api/news", params={"pageSize": 5})

        status = (await client.get("/api/cache/status")).json()["data"]
        assert status["responses"]["valid_entries"] == 1

        resp = await client.post("/api/cache/clear")
        assert resp.json()["data"]["cleared"] == 1

        status = (await client.get("/api/cache/status")).json()["data"]
        assert status["responses"]["entries"] == 0
        assert status["googleNews"]["entries"] == 0

    async def test_usage_status(self, client: AsyncClient, upstream, payloads):
        upstream.on(NEWSAPI, _json(payloads.newsapi(5)))
        await client.get("/api/news", params={"pageSize": 5})

        data = (await client.get("/api/status")).json()["data"]

        assert set(data) == {"newsapi", "newsdata", "oxylabs", "google_news"}
        assert data["newsapi"]["remainingCalls"] == 99
        assert data["newsapi"]["active"] is True
        assert data["newsdata"]["dailyLimit"] == 200


@pytest.mark.asyncio
class TestMediaRoute:
    async def test_returns_media_result(self, client: AsyncClient, upstream):
        photo = {"id": 7, "src": {"large": "https://images.pexels.com/7.jpg"}}
        upstream.on(PEXELS, _json({"photos": [photo]}))

        resp = await client.get(
            "/api/media/fallback", params={"title": "Storm season begins", "category": "science"}
        )

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["type"] == "photo"
        assert data["data"] == photo
        assert data["query"] == "science laboratory storm season begins"

    async def test_requires_title_and_category(self, client: AsyncClient):
        resp = await client.get("/api/media/fallback", params={"title": "Only a title"})

        assert resp.status_code == 400
        assert resp.json()["code"] == "VALIDATION_ERROR"

    async def test_retry_count_bounds(self, client: AsyncClient):
        resp = await client.get(
            "/api/media/fallback",
            params={"title": "t", "category": "science", "retryCount": 9},
        )

        assert resp.status_code == 400


@pytest.mark.asyncio
class TestSavedArticleRoutes:
    article = {
        "id": "article-1",
        "title": "Saved story",
        "url": "https://example.com/saved",
        "publishedAt": "2024-03-01T12:00:00Z",
        "source": "Example",
    }

    async def test_save_then_save_again(self, client: AsyncClient):
        first = await client.post("/api/saved-articles", json={"article": self.article})
        second = await client.post("/api/saved-articles", json={"article": self.article})

        assert first.status_code == 201
        assert first.json()["data"]["created"] is True
        assert first.json()["data"]["article"]["imageUrl"].startswith("/placeholder.svg")
        assert second.status_code == 200
        assert second.json()["data"]["created"] is False

        listing = (await client.get("/api/saved-articles")).json()["data"]
        assert listing["total"] == 1
        assert listing["articles"][0]["id"] == "article-1"

    async def test_status_get_and_delete(self, client: AsyncClient):
        await client.post("/api/saved-articles", json={"article": self.article})

        status = (await client.get("/api/saved-articles/article-1/status")).json()["data"]
        assert status == {"articleId": "article-1", "saved": True}

        record = (await client.get("/api/saved-articles/article-1")).json()["data"]
        assert record["article"]["title"] == "Saved story"

        resp = await client.delete("/api/saved-articles/article-1")
        assert resp.status_code == 200

        missing = await client.get("/api/saved-articles/article-1")
        assert missing.status_code == 404
        assert missing.json()["code"] == "NOT_FOUND"

    async def test_invalid_article(self, client: AsyncClient):
        resp = await client.post("/api/saved-articles", json={"article": {"title": "no id"}})

        assert resp.status_code == 400
        assert resp.json()["code"] == "INVALID_ARTICLE"

    async def test_signed_in_user_goes_remote(self, client: AsyncClient, supabase):
        token = supabase.add_user("reader@example.com", "secret123", user_id="u-1")
        headers = {"Authorization": f"Bearer {token}"}

        resp = await client.post(
            "/api/saved-articles", json={"article": self.article}, headers=headers
        )

        assert resp.status_code == 201
        rows = supabase.rows("saved_articles")
        assert [(row["user_id"], row["article_id"]) for row in rows] == [("u-1", "article-1")]

        anonymous = (await client.get("/api/saved-articles")).json()["data"]
        assert anonymous["total"] == 0

    async def test_invalid_token_is_401(self, client: AsyncClient, supabase):
        resp = await client.get(
            "/api/saved-articles", headers={"Authorization": "Bearer expired"}
        )

        assert resp.status_code == 401
        assert resp.json()["success"] is False


@pytest.mark.asyncio
class TestAuthRoutes:
    async def test_signup_then_signin(self, client: AsyncClient, supabase):
        signup = await client.post(
            "/api/auth/signup",
            json={"email": "new@example.com", "password": "secret123", "username": "newbie"},
        )
        assert signup.status_code == 200
        assert signup.json()["data"]["message"] == "Account created successfully"

        signin = await client.post(
            "/api/auth/signin", json={"email": "new@example.com", "password": "secret123"}
        )
        assert signin.status_code == 200
        token = signin.json()["data"]["session"]["access_token"]

        session = await client.get(
            "/api/auth/session", headers={"Authorization": f"Bearer {token}"}
        )
        data = session.json()["data"]
        assert data["authenticated"] is True
        assert data["profile"]["username"] == "newbie"

    async def test_signin_validation_code(self, client: AsyncClient):
        resp = await client.post(
            "/api/auth/signin", json={"email": "nope", "password": "secret123"}
        )

        assert resp.status_code == 400
        assert resp.json()["code"] == "INVALID_EMAIL"

    async def test_signin_bad_credentials(self, client: AsyncClient, supabase):
        supabase.add_user("reader@example.com", "secret123")

        resp = await client.post(
            "/api/auth/signin", json={"email": "reader@example.com", "password": "wrong-pass"}
        )

        assert resp.status_code == 401
        assert resp.json()["code"] == "INVALID_CREDENTIALS"

    async def test_signout_and_reset(self, client: AsyncClient, supabase):
        token = supabase.add_user("reader@example.com", "secret123")

        signout = await client.post(
            "/api/auth/signout", headers={"Authorization": f"Bearer {token}"}
        )
        reset = await client.post(
            "/api/auth/reset-password", json={"email": "reader@example.com"}
        )

        assert signout.status_code == 200
        assert supabase.signed_out == ["reader@example.com"]
        assert reset.status_code == 200
        assert supabase.recovery_emails == ["reader@example.com"]

    async def test_anonymous_session(self, client: AsyncClient):
        data = (await client.get("/api/auth/session")).json()["data"]

        assert data["authenticated"] is False
        assert data["configured"] is True
