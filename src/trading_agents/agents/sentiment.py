"""News sentiment agent: polarity scoring with TextBlob."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Sequence

import httpx
from textblob import TextBlob

from trading_agents.agents.base import BaseAgent

logger = logging.getLogger("trading_agents.agents.sentiment")

DEFAULT_FETCH_TIMEOUT = 15.0


def analyze_text(content: str | None, title: str | None = None) -> dict[str, Any]:
    """Score one article.

    ``score`` is TextBlob polarity in [-1, 1]; ``comparative`` spreads it over
    the whitespace token count.
    """
    text = f"{title}. {content or ''}" if title else (content or "")
    sentiment = TextBlob(text).sentiment
    tokens = len(text.split())
    score = float(sentiment.polarity)

    if score > 0:
        vote = "positive"
    elif score < 0:
        vote = "negative"
    else:
        vote = "neutral"

    return {
        "score": score,
        "comparative": score / tokens if tokens else 0.0,
        "subjectivity": float(sentiment.subjectivity),
        "vote": vote,
    }


def assess(score: float) -> str:
    if score > 0.25:
        return "very positive"
    if score > 0.05:
        return "positive"
    if score > -0.05:
        return "neutral"
    if score > -0.25:
        return "negative"
    return "very negative"


def overall_sentiment(article_sentiments: Sequence[dict[str, Any]]) -> dict[str, Any] | None:
    """Unweighted mean of article scores, or None when there are no articles."""
    if not article_sentiments:
        return None
    average = sum(a["sentiment"]["score"] for a in article_sentiments) / len(article_sentiments)
    return {
        "score": average,
        "assessment": assess(average),
        "article_count": len(article_sentiments),
    }


def parse_articles(body: Any) -> list[dict[str, Any]]:
    """Extract articles from a NewsAPI-style ``{"articles": [...]}`` body."""
    if not isinstance(body, dict) or not isinstance(body.get("articles"), list):
        return []
    return [
        {
            "title": a.get("title"),
            "content": a.get("content") or a.get("description"),
            "url": a.get("url"),
            "published_at": a.get("publishedAt"),
        }
        for a in body["articles"]
        if isinstance(a, dict)
    ]


class NewsSentimentAgent(BaseAgent):
    """Scores the sentiment of news articles and aggregates an overall view.

    Inputs::

        {"articles": [{"title": ..., "content": ..., "url": ...}],
         "sources": ["https://newsapi.example/v2/everything?q=AAPL"]}

    Either key may be omitted. ``sources`` falls back to the agent config.
    A source that fails to fetch or parse is logged and skipped.
    """

    def __init__(self, id: str) -> None:
        super().__init__(
            id,
            "News Sentiment Analysis Agent",
            "Analyzes sentiment in financial news articles to gauge market sentiment",
        )

    async def initialize(self, config: dict[str, Any] | None = None) -> None:
        await super().initialize(config)
        logger.info("Initializing NewsSentimentAgent %s", self.id)

    async def execute(self, inputs: dict[str, Any]) -> dict[str, Any]:
        self.check_initialized()
        logger.info("Executing NewsSentimentAgent %s", self.id)

        articles = inputs.get("articles") or []
        sources = inputs.get("sources") or self.config.get("sources") or []

        collected = [a for a in articles if isinstance(a, dict)]
        if sources:
            collected.extend(await self.fetch_articles(sources))

        article_sentiments = [
            {
                "title": article.get("title"),
                "url": article.get("url"),
                "sentiment": analyze_text(article.get("content"), article.get("title")),
            }
            for article in collected
        ]

        logger.info(
            "NewsSentimentAgent %s completed analysis of %d articles",
            self.id,
            len(article_sentiments),
        )
        return {
            "overall_sentiment": overall_sentiment(article_sentiments),
            "article_sentiments": article_sentiments,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    async def fetch_articles(self, sources: Sequence[str]) -> list[dict[str, Any]]:
        timeout = float(self.config.get("timeout", DEFAULT_FETCH_TIMEOUT))
        articles: list[dict[str, Any]] = []
        async with httpx.AsyncClient(timeout=timeout) as client:
            for source in sources:
                try:
                    response = await client.get(source)
                    response.raise_for_status()
                    articles.extend(parse_articles(response.json()))
                except (httpx.HTTPError, ValueError) as e:
                    logger.error("Error fetching articles from %s: %s", source, e)
        return articles

    async def cleanup(self) -> None:
        logger.info("Cleaning up NewsSentimentAgent %s", self.id)
        await super().cleanup()
