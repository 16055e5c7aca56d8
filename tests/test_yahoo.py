"""Tests for the yfinance-backed provider with a fake Ticker."""

import asyncio

import pandas as pd
import pytest

from reading_room.core.exceptions import DataNotFoundError, ProviderError
from reading_room.providers.fear_greed import VIXFearGreedSource
from reading_room.providers.yahoo import YahooFinanceProvider, frame_to_chart


@pytest.fixture(autouse=True)
def _config(app_config):
    return app_config


def history_frame(closes, start="2026-03-02"):
    index = pd.date_range(start, periods=len(closes), freq="B", tz="America/New_York")
    return pd.DataFrame(
        {
            "Open": closes,
            "High": [c * 1.01 for c in closes],
            "Low": [c * 0.99 for c in closes],
            "Close": closes,
            "Volume": [1_000_000] * len(closes),
        },
        index=index,
    )


class FakeTicker:
    def __init__(self, frame=None, info=None, news=None, error=None):
        self.frame = frame if frame is not None else pd.DataFrame()
        self.info = info or {}
        self.news = news or []
        self.error = error
        self.calls = []

    def history(self, period, interval, auto_adjust):
        self.calls.append(period)
        if self.error:
            raise self.error
        return self.frame


def provider_for(tickers, **kwargs):
    created = []

    def factory(symbol):
        created.append(symbol)
        return tickers[symbol]

    return YahooFinanceProvider(ticker_factory=factory, **kwargs), created


class TestFetchStock:
    def test_quote_agrees_with_chart(self):
        ticker = FakeTicker(
            history_frame([100.0, 102.0, 104.0]),
            info={
                "regularMarketPrice": 104.2, "regularMarketPreviousClose": 102.0,
                "longName": "Apple Inc.", "exchange": "NMS", "marketCap": 2.8e12,
                "trailingPE": 28.1, "beta": 1.2,
            },
        )
        provider, _ = provider_for({"AAPL": ticker})
        snapshot = asyncio.run(provider.fetch_stock("aapl"))

        assert snapshot.source == "yahoo"
        assert snapshot.stock.current_price == 104.2
        assert snapshot.stock.name == "Apple Inc."
        assert snapshot.stock.exchange == "NMS"
        assert snapshot.stock.market_cap == "2.80T"
        assert len(snapshot.chart) == 3
        assert snapshot.chart[0].date == "2026-03-02"

    def test_stale_quote_replaced_by_last_close(self):
        ticker = FakeTicker(
            history_frame([100.0, 102.0, 110.0]),
            info={"regularMarketPrice": 95.0, "regularMarketPreviousClose": 90.0},
        )
        provider, _ = provider_for({"AAPL": ticker})
        stock = asyncio.run(provider.fetch_stock("AAPL")).stock

        assert stock.current_price == 110.0
        assert stock.daily_change.value == pytest.approx(8.0)

    def test_korean_code_gets_suffix(self):
        ticker = FakeTicker(history_frame([74000.0, 75000.0]))
        provider, created = provider_for({"005930.KS": ticker})
        snapshot = asyncio.run(provider.fetch_stock("005930"))

        assert created == ["005930.KS"]
        assert snapshot.stock.ticker == "005930"
        assert snapshot.stock.exchange == "KOSPI"
        assert snapshot.stock.name == "Samsung Electronics"

    def test_no_data(self):
        provider, _ = provider_for({"NOPE": FakeTicker()})
        with pytest.raises(DataNotFoundError):
            asyncio.run(provider.fetch_stock("NOPE"))

    def test_history_error(self):
        provider, _ = provider_for({"AAPL": FakeTicker(error=RuntimeError("blocked"))})
        with pytest.raises(ProviderError, match="blocked"):
            asyncio.run(provider.fetch_stock("AAPL"))

    def test_ticker_objects_are_reused(self):
        ticker = FakeTicker(history_frame([1.0, 2.0]))
        provider, created = provider_for({"AAPL": ticker})
        asyncio.run(provider.fetch_stock("AAPL"))
        asyncio.run(provider.fetch_stock("AAPL"))
        assert created == ["AAPL"]

    def test_ticker_memo_is_bounded(self):
        tickers = {
            "AAPL": FakeTicker(history_frame([1.0, 2.0])),
            "MSFT": FakeTicker(history_frame([3.0, 4.0])),
        }
        provider, created = provider_for(tickers, ticker_cache_size=1)
        for symbol in ("AAPL", "MSFT", "AAPL"):
            asyncio.run(provider.fetch_stock(symbol))
        assert created == ["AAPL", "MSFT", "AAPL"]


class TestFetchIndices:
    def test_missing_symbols_are_omitted(self):
        provider, _ = provider_for({
            "^GSPC": FakeTicker(history_frame([5000.0, 5050.0])),
            "^IXIC": FakeTicker(error=RuntimeError("down")),
        })
        quotes = asyncio.run(provider.fetch_indices(["^GSPC", "^IXIC"]))

        assert [q.symbol for q in quotes] == ["^GSPC"]
        assert quotes[0].change == 50.0
        assert quotes[0].change_percent == 1.0

    def test_vix_source(self):
        provider, _ = provider_for({"^VIX": FakeTicker(history_frame([18.0, 16.0]))})
        assert asyncio.run(VIXFearGreedSource(provider).fetch_value()) == 60.0


class TestFetchNews:
    def test_both_payload_shapes(self):
        news = [
            {"content": {
                "title": "Apple earnings beat",
                "canonicalUrl": {"url": "https://finance.yahoo.com/a"},
                "pubDate": "2026-03-10T12:00:00Z",
                "provider": {"displayName": "Reuters"},
            }},
            {"title": "Old style", "link": "https://finance.yahoo.com/b",
             "providerPublishTime": 1773144000, "publisher": "AP"},
            {"content": {"title": "No link"}},
        ]
        provider, _ = provider_for({"AAPL": FakeTicker(news=news)})
        articles = asyncio.run(provider.fetch_news("AAPL", "en"))

        assert [a.source for a in articles] == ["Reuters", "AP"]
        assert articles[0].published_at == "2026-03-10T12:00:00Z"
        assert articles[1].published_at.startswith("2026-03-10")
        assert all(a.ticker == "AAPL" for a in articles)


def test_frame_to_chart_drops_empty_closes():
    frame = history_frame([1.0, 2.0, 3.0])
    frame.iloc[1, frame.columns.get_loc("Close")] = float("nan")
    assert [p.close for p in frame_to_chart(frame)] == [1.0, 3.0]
