"""Static placeholder articles served when every upstream source fails."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from luxora.models.news import Article
from luxora.services.normalizer import placeholder_image_url

FALLBACK_SOURCE = "Luxora Times"

_CURATED: List[Dict[str, str]] = [
    {
        "id": "fallback-1",
        "title": "Scientists Discover New Species in Amazon Rainforest",
        "description": (
            "A team of international researchers has discovered a new species of frog in "
            "the Amazon rainforest, highlighting the region's incredible biodiversity."
        ),
        "content": (
            "A team of international researchers has discovered a new species of frog in "
            "the Amazon rainforest. The research team spent three months in remote areas "
            "of the rainforest, documenting various species and their habitats."
        ),
        "url": "https://example.com/amazon-discovery",
        "source": "Science Daily",
        "category": "science",
    },
    {
        "id": "fallback-2",
        "title": "New AI Model Can Predict Climate Change Patterns",
        "description": (
            "Researchers have developed a new AI model that can predict climate change "
            "patterns with unprecedented accuracy."
        ),
        "content": (
            "Researchers have developed a new AI model that can predict climate change "
            "patterns with unprecedented accuracy. The model uses deep learning to analyze "
            "historical climate data and forecast temperature and precipitation changes."
        ),
        "url": "https://example.com/ai-climate-model",
        "source": "Tech Innovations",
        "category": "technology",
    },
    {
        "id": "fallback-3",
        "title": "Global Stock Markets See Record Gains",
        "description": (
            "Stock markets around the world have seen record gains this quarter, with "
            "technology and healthcare sectors leading the way."
        ),
        "content": (
            "Stock markets around the world have seen record gains this quarter. Analysts "
            "attribute the growth to strong corporate earnings and easing inflation."
        ),
        "url": "https://example.com/stock-market-gains",
        "source": "Financial Times",
        "category": "business",
    },
    {
        "id": "fallback-4",
        "title": "New Study Shows Benefits of Mediterranean Diet",
        "description": (
            "A comprehensive study has confirmed that the Mediterranean diet can "
            "significantly reduce the risk of heart disease."
        ),
        "content": (
            "A comprehensive study following 10,000 participants over 15 years found that "
            "those who adhered to the Mediterranean diet had a lower risk of heart disease."
        ),
        "url": "https://example.com/mediterranean-diet",
        "source": "Health Journal",
        "category": "health",
    },
    {
        "id": "fallback-5",
        "title": "Major Film Studio Announces New Superhero Franchise",
        "description": (
            "A major film studio has announced a new superhero franchise based on a "
            "popular comic book series."
        ),
        "content": (
            "A major film studio has announced a new superhero franchise. Production is set "
            "to begin next year with an ensemble cast."
        ),
        "url": "https://example.com/superhero-franchise",
        "source": "Entertainment Weekly",
        "category": "entertainment",
    },
]

CATEGORY_HEADLINES: Dict[str, List[str]] = {
    "business": [
        "Market Analysis: Tech Stocks Show Strong Performance",
        "Global Economy Outlook for Next Quarter",
        "Cryptocurrency Market Trends and Analysis",
        "Banking Sector Updates and Regulatory Changes",
        "Startup Funding Reaches New Heights",
    ],
    "technology": [
        "AI Breakthrough in Machine Learning Research",
        "New Smartphone Technology Revolutionizes Industry",
        "Cybersecurity Threats and Protection Strategies",
        "Cloud Computing Adoption Accelerates",
        "Tech Giants Announce Major Partnerships",
    ],
    "science": [
        "Climate Change Research Shows New Findings",
        "Space Exploration Mission Achieves Milestone",
        "Medical Research Breakthrough in Treatment",
        "Environmental Conservation Efforts Expand",
        "Scientific Discovery Changes Understanding",
    ],
    "health": [
        "New Treatment Options for Common Conditions",
        "Public Health Initiative Shows Positive Results",
        "Mental Health Awareness Campaign Launches",
        "Medical Technology Advances Patient Care",
        "Health Research Reveals Important Insights",
    ],
    "sports": [
        "Championship Finals Draw Record Viewership",
        "Athlete Breaks Long-Standing Record",
        "Sports Technology Enhances Performance",
        "International Tournament Announces Schedule",
        "Team Management Changes Announced",
    ],
    "entertainment": [
        "Film Industry Celebrates Award Season",
        "Music Festival Lineup Announced",
        "Streaming Platform Launches New Content",
        "Celebrity News and Industry Updates",
        "Entertainment Technology Innovations",
    ],
    "politics": [
        "Lawmakers Debate New Infrastructure Bill",
        "Election Commission Announces Voting Reforms",
        "International Summit Focuses on Trade Policy",
        "Local Governments Expand Public Services",
        "Policy Experts Weigh In on Budget Proposal",
    ],
    "general": [
        "Breaking News: Major Development Announced",
        "Local Community Initiative Gains Support",
        "Weather Update: Seasonal Changes Expected",
        "Transportation Updates Affect Daily Commute",
        "Educational Programs Show Positive Results",
    ],
}

GOOGLE_NEWS_HEADLINES: List[Dict[str, str]] = [
    {
        "title": "Global Markets See Significant Gains Amid Economic Recovery",
        "description": "Stock markets around the world are experiencing substantial growth as economic indicators show strong recovery trends.",
        "source": "Financial Times",
    },
    {
        "title": "Tech Giants Announce New AI Initiatives",
        "description": "Major technology companies have unveiled ambitious artificial intelligence projects aimed at transforming various industries.",
        "source": "Tech Insider",
    },
    {
        "title": "Climate Summit Produces Landmark Agreement",
        "description": "World leaders have reached a consensus on aggressive carbon reduction targets during the latest international climate conference.",
        "source": "Environmental Report",
    },
    {
        "title": "Healthcare Breakthrough: New Treatment Shows Promise",
        "description": "Researchers have developed a novel therapeutic approach that demonstrates significant efficacy in clinical trials.",
        "source": "Medical Journal",
    },
    {
        "title": "Global Supply Chain Issues Begin to Ease",
        "description": "After months of disruption, international logistics networks are showing signs of normalization and improved efficiency.",
        "source": "Business Daily",
    },
    {
        "title": "Entertainment Industry Embraces New Distribution Models",
        "description": "Major studios and production companies are adapting to changing consumer preferences with innovative content delivery strategies.",
        "source": "Entertainment Weekly",
    },
]


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _curated_article(entry: Dict[str, str]) -> Article:
    return Article(
        id=entry["id"],
        title=entry["title"],
        description=entry["description"],
        content=entry["content"],
        url=entry["url"],
        image_url=placeholder_image_url(entry["title"]),
        published_at=_now().isoformat(),
        source=entry["source"],
        category=entry["category"],
    )


def build_sample_articles(category: Optional[str], count: int) -> List[Article]:
    """Generate ``count`` sample articles cycling the category's headlines."""
    target = (category or "general").lower()
    titles = CATEGORY_HEADLINES.get(target, CATEGORY_HEADLINES["general"])
    now = _now()

    articles: List[Article] = []
    for index in range(count):
        title = titles[index % len(titles)]
        articles.append(
            Article(
                id=f"fallback-{target}-{index}",
                title=title,
                description=(
                    f"This is a sample {target} article. The full content would be "
                    "available from the original source."
                ),
                content=(
                    f"This is a sample {target} article with detailed content. Live "
                    "coverage will return once news sources are reachable again."
                ),
                url=f"https://example.com/news/{target}/{index}",
                image_url=placeholder_image_url(title),
                published_at=(now - timedelta(hours=index)).isoformat(),
                source=FALLBACK_SOURCE,
                category=target,
            )
        )
    return articles


def get_fallback_articles_by_category(category: Optional[str], count: int) -> List[Article]:
    """Curated articles for the category first, padded with generated samples."""
    if count <= 0:
        return []
    target = (category or "general").lower()
    curated = [_curated_article(entry) for entry in _CURATED if entry["category"] == target]
    if len(curated) >= count:
        return curated[:count]

    return curated + build_sample_articles(target, count - len(curated))


def get_search_fallback(query: str, count: int) -> List[Article]:
    if count <= 0:
        return []
    return [
        article.model_copy(
            update={
                "id": f"fallback-search-{index}",
                "title": f"{query} - {article.title}",
                "description": f'Search result for "{query}": {article.description}',
                "category": query,
            }
        )
        for index, article in enumerate(build_sample_articles("general", count))
    ]


def get_google_news_fallback(topic: str) -> List[Article]:
    now = _now().isoformat()
    return [
        Article(
            id=f"fallback-google-{index + 1}",
            title=entry["title"],
            description=entry["description"],
            content=entry["description"],
            url=f"https://example.com/news/{index + 1}",
            image_url=placeholder_image_url(entry["title"]),
            published_at=now,
            source=entry["source"],
            category=topic,
        )
        for index, entry in enumerate(GOOGLE_NEWS_HEADLINES)
    ]
