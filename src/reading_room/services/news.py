"""
News aggregation: parallel collection, de-duplication and diversity.
"""

import asyncio
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

from reading_room.core.config import NewsConfig, ProvidersConfig
from reading_room.core.logging import get_logger
from reading_room.data.models import NewsArticle
from reading_room.data.tickers import TICKER_PATTERN, is_korean_ticker, normalize_ticker
from reading_room.fetch.cascade import Provider, gather_settled
from reading_room.services.registry import ProviderSet, plan
from reading_room.simulation import (
    fallback_market_news,
    fallback_stock_news,
    generated_ticker_news,
)
from reading_room.storage.base import NewsStore

logger = get_logger("services.news")

OTHER_CATEGORY = "other"
MARKET_WORDS = ("market", "시장", "경제")

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def published_sort_key(article: NewsArticle) -> datetime:
    """Timezone-aware publish time; naive stamps are local time."""
    published = article.published_datetime
    if published is None:
        return _EPOCH
    if published.tzinfo is None:
        return published.astimezone()
    return published


def remove_duplicate_news(
    articles: Sequence[NewsArticle], title_chars: int = 50
) -> list[NewsArticle]:
    """
    Drop untitled articles and repeats of the same headline from the same source.

    The first occurrence wins; the result is sorted newest first.
    """
    seen = set()
    unique = []
    for article in articles:
        if not article.title:
            continue
        key = f"{article.title.lower()[:title_chars]}-{(article.source or '').lower()}"
        if key in seen:
            continue
        seen.add(key)
        unique.append(article)

    return sorted(unique, key=published_sort_key, reverse=True)


def categorize(article: NewsArticle, categories: dict[str, list[str]]) -> str:
    """First category whose keywords appear in the title, summary or content."""
    text = f"{article.title} {article.summary or ''} {article.content or ''}".lower()
    for category, keywords in categories.items():
        if any(keyword.lower() in text for keyword in keywords):
            return category
    return OTHER_CATEGORY


def ensure_news_diversity(
    articles: Sequence[NewsArticle],
    ticker: str,
    language: str,
    now: datetime,
    config: Optional[NewsConfig] = None,
) -> list[NewsArticle]:
    """
    Limit articles per category and per source, then pad thin results.

    Each category contributes its newest `max_per_category` articles,
    categories taken in configured order with "other" last. When fewer
    than `min_articles` survive, generated headlines are appended
    (skipping ones whose title prefix matches a kept title) up to
    `target_articles`.
    """
    config = config or NewsConfig()
    if not articles:
        return generated_ticker_news(ticker, language, now)[: config.target_articles]

    grouped: dict[str, list[NewsArticle]] = {name: [] for name in config.categories}
    grouped[OTHER_CATEGORY] = []
    for article in articles:
        category = categorize(article, config.categories)
        article.category = category
        grouped.setdefault(category, []).append(article)

    per_source: dict[str, int] = {}
    kept: list[NewsArticle] = []
    for group in grouped.values():
        newest = sorted(group, key=published_sort_key, reverse=True)
        for article in newest[: config.max_per_category]:
            source = article.source or "Unknown"
            if per_source.get(source, 0) >= config.max_per_source or len(kept) >= config.max_total:
                continue
            per_source[source] = per_source.get(source, 0) + 1
            kept.append(article)

    if len(kept) < config.min_articles:
        n = config.padding_title_chars
        prefixes = {a.title.lower()[:n] for a in kept}
        for generated in generated_ticker_news(ticker, language, now):
            if len(kept) >= config.target_articles:
                break
            prefix = generated.title.lower()[:n]
            if prefix in prefixes:
                continue
            prefixes.add(prefix)
            kept.append(generated)
        logger.debug(f"Padded news for {ticker} to {len(kept)} articles")

    return kept[: config.target_articles]


def is_stock_query(query: str) -> bool:
    return bool(TICKER_PATTERN.match(normalize_ticker(query)))


class NewsService:
    """Stock and market news with fallbacks and optional persistence."""

    def __init__(
        self,
        providers: ProviderSet,
        config: Optional[NewsConfig] = None,
        provider_config: Optional[ProvidersConfig] = None,
        store: Optional[NewsStore] = None,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.providers = providers
        self.config = config or NewsConfig()
        self.provider_config = provider_config or ProvidersConfig()
        self.store = store
        self._now = now

    def _stock_plan(self, ticker: str, language: str) -> list[Provider]:
        international = language != "kr" or not is_korean_ticker(ticker)
        settings = (
            self.provider_config.international_news
            if international
            else self.provider_config.korean_news
        )
        fetchers = {
            name: (lambda p=p: p.fetch_news(ticker, language))
            for name, p in self.providers.news.items()
        }
        return plan(settings, fetchers)

    async def get_stock_news(self, ticker: str, language: str = "kr") -> list[NewsArticle]:
        """
        News for one ticker from every configured source in parallel.

        Never raises: with no articles at all, generated fallback news is
        returned.
        """
        ticker = normalize_ticker(ticker)
        results = await gather_settled(self._stock_plan(ticker, language))

        collected: list[NewsArticle] = []
        for result in results:
            if result.ok and result.value:
                logger.info(f"Got {len(result.value)} articles from {result.name}")
                collected.extend(result.value)

        if not collected:
            logger.warning(f"All news sources failed for {ticker}, using fallback")
            return fallback_stock_news(ticker, language, self._now())

        unique = remove_duplicate_news(collected, self.config.dedup_title_chars)
        diverse = ensure_news_diversity(unique, ticker, language, self._now(), self.config)
        logger.info(
            f"Returning {len(diverse)} articles for {ticker} "
            f"({len(collected)} collected, {len(unique)} unique)"
        )
        await self.persist(diverse, language)
        return diverse

    async def get_market_news(self, language: str = "kr") -> list[NewsArticle]:
        provider = self.providers.market_news.get(language)
        articles: list[NewsArticle] = []
        if provider is not None:
            try:
                articles = await asyncio.wait_for(
                    provider.fetch_news("market", language), timeout=self.config.market_timeout
                )
            except asyncio.TimeoutError:
                logger.warning(f"Market news timed out after {self.config.market_timeout:g}s")
            except Exception as e:
                logger.warning(f"Market news failed: {e}")

        if not articles:
            logger.warning(f"No market news for '{language}', using fallback")
            return fallback_market_news(language, self._now())

        unique = remove_duplicate_news(articles, self.config.dedup_title_chars)
        await self.persist(unique, language)
        return unique

    async def get_headlines(self, query: str, language: str = "kr") -> list[NewsArticle]:
        """Route a free-form query to stock or market news."""
        lowered = query.lower()
        stock_like = is_stock_query(query)
        if any(word in lowered for word in MARKET_WORDS):
            return await self.get_market_news(language)
        if stock_like:
            return await self.get_stock_news(query, language)
        return await self.get_market_news(language)

    async def persist(self, articles: Sequence[NewsArticle], language: str) -> int:
        """
        Store real articles; generated ones are never persisted.

        Failures are logged and counted, never raised.
        """
        if self.store is None:
            return 0

        saved = 0
        for article in articles:
            if article.is_generated:
                continue
            if not article.language:
                article.language = language
            try:
                await asyncio.to_thread(self.store.save_article, article)
                saved += 1
            except Exception as e:
                logger.warning(f"Could not save article '{article.title[:40]}': {e}")

        if saved:
            logger.info(f"Saved {saved}/{len(articles)} articles")
        return saved
