"""Map heterogeneous upstream article payloads into the canonical ``Article``."""

from __future__ import annotations

import html
import re
import uuid
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional
from urllib.parse import quote, urlparse, urlunparse

from bs4 import BeautifulSoup

from luxora.core.logging import get_logger
from luxora.models.news import Article

logger = get_logger("normalizer")

UNTITLED = "Untitled Article"
PLACEHOLDER_PATH = "/placeholder.svg"

NEWSAPI_CATEGORIES = {
    "business",
    "entertainment",
    "general",
    "health",
    "science",
    "sports",
    "technology",
}
NEWSDATA_CATEGORIES = {
    "business",
    "entertainment",
    "environment",
    "food",
    "health",
    "politics",
    "science",
    "sports",
    "technology",
    "top",
    "world",
}

TRUNCATION_MARKER = re.compile(r"\s*\[\+\d+\s*chars\]\s*$", re.IGNORECASE)
IMAGE_URL_PATTERN = re.compile(
    r"(https?://[^\s\"'<>]+\.(?:jpg|jpeg|png|gif|webp))", re.IGNORECASE
)


def placeholder_image_url(title: str = "", width: int = 600, height: int = 400) -> str:
    url = f"{PLACEHOLDER_PATH}?height={height}&width={width}"
    if title:
        url += f"&text={quote(title[:20], safe='')}"
    return url


def optimize_image_url(url: Optional[str], title: str = "") -> str:
    if not url or PLACEHOLDER_PATH in url:
        return url or placeholder_image_url(title)
    if url.startswith("/"):
        return url

    parsed = urlparse(url)
    if parsed.scheme in ("http", "https") and parsed.netloc:
        return url

    logger.debug("Invalid image URL %r, using placeholder", url[:80])
    return placeholder_image_url(title)


def extract_image_from_content(content: Optional[str]) -> Optional[str]:
    if not content:
        return None

    if "<img" in content.lower():
        soup = BeautifulSoup(content, "html.parser")
        for img in soup.find_all("img"):
            src = img.get("src")
            if src:
                return src.strip()

    match = IMAGE_URL_PATTERN.search(content)
    if match:
        return match.group(1)
    return None


def clean_text(value: Optional[str]) -> str:
    if not value:
        return ""
    text = value
    if "<" in text and ">" in text:
        text = BeautifulSoup(text, "html.parser").get_text(" ")
    text = html.unescape(text)
    return re.sub(r"\s+", " ", text).strip()


def strip_truncation_marker(content: str) -> str:
    return TRUNCATION_MARKER.sub("", content).rstrip()


def canonical_url(url: Optional[str]) -> str:
    if not url:
        return ""
    parsed = urlparse(url.strip())
    if not parsed.scheme or not parsed.netloc:
        return url.strip()
    path = parsed.path.rstrip("/") if parsed.path != "/" else ""
    return urlunparse(
        (parsed.scheme.lower(), parsed.netloc.lower(), path, parsed.params, parsed.query, "")
    )


def article_id_for(url: Optional[str]) -> str:
    canonical = canonical_url(url)
    return canonical or f"article-{uuid.uuid4().hex}"


def parse_published(value: Any) -> str:
    """Return an ISO-8601 UTC timestamp; anything unparseable becomes now."""
    dt: Optional[datetime] = None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value.strip():
        raw = value.strip()
        try:
            dt = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            try:
                dt = parsedate_to_datetime(raw)
            except (TypeError, ValueError, IndexError):
                dt = None

    if dt is None:
        dt = datetime.now(timezone.utc)
    elif dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


def map_category(category: Optional[str], source_kind: str) -> Optional[str]:
    """Translate a canonical category into the upstream's vocabulary."""
    if not category:
        return None
    category = category.lower()

    if source_kind == "newsdata":
        if category == "general":
            return "top"
        return category if category in NEWSDATA_CATEGORIES else "top"
    if source_kind == "newsapi":
        return category if category in NEWSAPI_CATEGORIES else None
    return category


def to_canonical_category(category: Optional[str]) -> str:
    if not category:
        return "general"
    if isinstance(category, (list, tuple)):
        category = category[0] if category else "general"
    category = str(category).lower()
    if category in ("top", "world"):
        return "general"
    return category


def split_google_news_title(title: str) -> tuple[str, Optional[str]]:
    """Google News titles look like ``"Headline - Publisher"``."""
    parts = title.split(" - ")
    if len(parts) > 1:
        return " - ".join(parts[:-1]).strip(), parts[-1].strip()
    return title, None


def _get(raw: Any, key: str) -> Any:
    if isinstance(raw, Mapping):
        return raw.get(key)
    return getattr(raw, key, None)


def normalize(raw: Any, source_name: str, source_kind: str) -> Article:
    """Build a canonical ``Article`` from one upstream item.

    ``source_kind`` selects the field mapping (``newsapi``, ``newsdata``,
    ``oxylabs``, ``google_news``). Missing fields fall back to safe defaults:
    an "Untitled Article" title, empty description, content taken from the
    description, "now" as the publish date and a title-derived placeholder
    image.
    """
    raw_html = ""
    category = None

    if source_kind == "newsapi":
        source_field = _get(raw, "source")
        title = _get(raw, "title")
        description = _get(raw, "description") or ""
        content = _get(raw, "content") or description
        url = _get(raw, "url")
        image = _get(raw, "urlToImage")
        published = _get(raw, "publishedAt")
        source = (_get(source_field, "name") if source_field else None) or source_name
    elif source_kind == "newsdata":
        title = _get(raw, "title")
        description = _get(raw, "description") or ""
        content = _get(raw, "content") or description
        url = _get(raw, "link")
        image = _get(raw, "image_url")
        published = _get(raw, "pubDate")
        source = _get(raw, "source_name") or _get(raw, "source_id") or source_name
        category = _get(raw, "category")
    elif source_kind == "oxylabs":
        title = _get(raw, "title")
        description = _get(raw, "snippet") or _get(raw, "desc") or ""
        content = description
        url = _get(raw, "url")
        image = _get(raw, "thumbnail")
        published = _get(raw, "date")
        source = _get(raw, "source") or source_name
    elif source_kind == "google_news":
        headline, publisher = split_google_news_title(_get(raw, "title") or "")
        title = headline
        raw_html = _get(raw, "description") or _get(raw, "summary") or ""
        description = raw_html
        content = raw_html
        url = _get(raw, "link")
        image = None
        published = _get(raw, "published") or _get(raw, "pubDate")
        source = publisher or source_name
    else:
        title = _get(raw, "title")
        description = _get(raw, "description") or ""
        content = _get(raw, "content") or description
        url = _get(raw, "url") or _get(raw, "link")
        image = _get(raw, "imageUrl") or _get(raw, "image")
        published = _get(raw, "publishedAt") or _get(raw, "published")
        source = _get(raw, "source") or source_name

    title = clean_text(title) or UNTITLED

    if not image:
        image = extract_image_from_content(raw_html or content or description)
    image_url = optimize_image_url(image, title)

    return Article(
        id=article_id_for(url),
        title=title,
        description=clean_text(description),
        content=strip_truncation_marker(clean_text(content) if raw_html else content),
        url=(url or "").strip(),
        image_url=image_url,
        published_at=parse_published(published),
        source=str(source),
        category=to_canonical_category(category),
    )


def normalize_many(
    items: Iterable[Any], source_name: str, source_kind: str
) -> List[Article]:
    articles: List[Article] = []
    for item in items:
        try:
            articles.append(normalize(item, source_name, source_kind))
        except Exception as exc:
            logger.warning("Skipping malformed %s item: %s", source_name, exc)
    return articles


def dedupe_articles(articles: Iterable[Article]) -> List[Article]:
    seen: Dict[str, Article] = {}
    for article in articles:
        seen.setdefault(article.id, article)
    return list(seen.values())
