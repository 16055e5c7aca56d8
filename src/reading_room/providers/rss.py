"""
RSS/Atom news feeds parsed with feedparser.

Bodies are fetched through the shared httpx client so timeouts and
headers are uniform with the JSON providers.
"""

import asyncio
import re
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

import feedparser
import httpx

from reading_room.core.exceptions import ProviderError
from reading_room.core.logging import get_logger
from reading_room.data.models import NewsArticle
from reading_room.data.tickers import base_code, company_name, looks_like_ticker
from reading_room.providers.base import NewsProvider
from reading_room.providers.http import get_text

logger = get_logger("providers.rss")

_TAG = re.compile(r"<[^>]+>")


def _entry_time(entry: Any) -> str:
    for attr in ("published_parsed", "updated_parsed"):
        parsed = entry.get(attr)
        if parsed:
            try:
                return datetime(*parsed[:6], tzinfo=timezone.utc).isoformat()
            except (TypeError, ValueError):
                continue
    return datetime.now(timezone.utc).isoformat()


def parse_feed(text: str, source: str, language: str, limit: int = 30) -> list[NewsArticle]:
    """Parse a feed body into articles; entries without title or link are skipped."""
    feed = feedparser.parse(text)
    feed_title = feed.feed.get("title") if hasattr(feed, "feed") else None

    articles = []
    for entry in feed.entries[:limit]:
        title = (entry.get("title") or "").strip()
        url = entry.get("link") or ""
        if not title or not url:
            continue
        summary = _TAG.sub("", entry.get("summary") or entry.get("description") or "").strip()
        articles.append(
            NewsArticle(
                title=title,
                url=url,
                published_at=_entry_time(entry),
                source=source or feed_title or "RSS",
                language=language,
                summary=summary or None,
            )
        )
    return articles


class RSSNewsProvider(NewsProvider):
    """
    One or more feeds under a single provider name.

    With match_query, entries mentioning the ticker or company name are
    preferred; when none match, the newest few entries are returned so
    the feed still contributes general coverage.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        name: str,
        urls: Sequence[str],
        source: str,
        language: str = "en",
        match_query: bool = True,
        unmatched_limit: int = 3,
    ):
        self.client = client
        self.name = name
        self.urls = list(urls)
        self.source = source
        self.language = language
        self.match_query = match_query
        self.unmatched_limit = unmatched_limit

    async def _fetch_feed(self, url: str) -> list[NewsArticle]:
        text = await get_text(self.client, self.name, url)
        return parse_feed(text, self.source, self.language)

    async def fetch_news(self, query: str, language: str) -> list[NewsArticle]:
        results = await asyncio.gather(
            *(self._fetch_feed(url) for url in self.urls), return_exceptions=True
        )
        articles: list[NewsArticle] = []
        errors = []
        for url, result in zip(self.urls, results):
            if isinstance(result, Exception):
                errors.append(f"{url}: {result}")
                continue
            articles.extend(result)

        if errors and not articles:
            raise ProviderError(self.name, "; ".join(errors))
        for error in errors:
            logger.debug(f"{self.name} feed failed: {error}")

        if not self.match_query or not looks_like_ticker(query):
            return articles

        ticker = query.strip().upper()
        terms = self._match_terms(ticker)
        matched = [a for a in articles if self._mentions(a, terms)]
        for article in matched:
            article.ticker = ticker
        if matched:
            return matched
        return articles[: self.unmatched_limit]

    @staticmethod
    def _match_terms(ticker: str) -> list[str]:
        terms = {base_code(ticker).lower(), company_name(ticker, "en").lower()}
        korean = company_name(ticker, "kr")
        if korean:
            terms.add(korean.lower())
        # "Apple Inc." should match "Apple"
        first_word: Optional[str] = company_name(ticker, "en").split(" ")[0].lower()
        if first_word and len(first_word) > 2:
            terms.add(first_word)
        return [t for t in terms if t]

    @staticmethod
    def _mentions(article: NewsArticle, terms: list[str]) -> bool:
        text = f"{article.title} {article.summary or ''}".lower()
        return any(re.search(rf"(?<![a-z0-9]){re.escape(t)}(?![a-z0-9])", text) for t in terms)
