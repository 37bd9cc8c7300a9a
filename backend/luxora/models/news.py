from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

CANONICAL_CATEGORIES = (
    "business",
    "technology",
    "science",
    "health",
    "entertainment",
    "sports",
    "politics",
    "general",
)


class Article(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    title: str
    description: str = ""
    content: str = ""
    url: str = ""
    image_url: str
    published_at: str
    source: str
    category: str = "general"

    def to_public(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class ArticleBatch(BaseModel):
    """A fetch result plus where it came from, for the UI's data banner."""

    articles: List[Article]
    provider: Optional[str] = None
    cached: bool = False
    fallback: bool = False

    def to_public(self) -> Dict[str, Any]:
        return {
            "articles": [article.to_public() for article in self.articles],
            "total": len(self.articles),
            "provider": self.provider,
            "cached": self.cached,
            "fallback": self.fallback,
        }


class SavedArticle(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    article: Article
    user_id: Optional[str] = None
    created_at: str

    def to_public(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class SaveArticleRequest(BaseModel):
    article: Dict[str, Any]


class MediaResult(BaseModel):
    type: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    query: str = ""
    error: Optional[str] = None
    attempts: int = 0
    cached: bool = False


class SourceUsage(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str
    active: bool
    configured: bool
    daily_limit: int
    remaining_calls: int
    reset_time: int
    remaining_requests: int
    is_throttling: bool
    current_delay: float
    last_updated: int = Field(default=0)
