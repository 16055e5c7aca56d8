"""Tests for the REST, RSS and Fear & Greed providers over a mocked transport."""

import asyncio
import json

import httpx
import pytest

from reading_room.core.exceptions import DataNotFoundError, ProviderError, RateLimitedError
from reading_room.data.cache import DataCache
from reading_room.providers.alpha_vantage import AlphaVantageProvider
from reading_room.providers.dunamu import DunamuForexProvider
from reading_room.providers.fear_greed import (
    AlternativeMeSource,
    CNNFearGreedSource,
    vix_to_fear_greed,
)
from reading_room.providers.finnhub import FinnhubProvider
from reading_room.providers.fmp import FMPProvider
from reading_room.providers.http import create_client
from reading_room.providers.kis import KISProvider
from reading_room.providers.rss import RSSNewsProvider, parse_feed


@pytest.fixture(autouse=True)
def _config(app_config):
    return app_config


def run_with(handler, scenario):
    """Run scenario(client) against a client whose requests go to handler."""

    async def main():
        async with create_client(transport=httpx.MockTransport(handler)) as client:
            return await scenario(client)

    return asyncio.run(main())


class TestFMP:
    QUOTE = [{
        "symbol": "AAPL", "name": "Apple Inc.", "exchange": "NASDAQ", "price": 190.0,
        "previousClose": 185.0, "change": 5.0, "changesPercentage": 2.7027,
        "volume": 50_000_000, "marketCap": 2.9e12, "pe": 29.5,
        "yearHigh": 199.6, "yearLow": 164.1,
    }]
    HISTORY = {"historical": [
        {"date": "2026-03-10", "open": 186, "high": 191, "low": 185, "close": 190, "volume": 5e7},
        {"date": "2026-03-09", "open": 184, "high": 186, "low": 183, "close": 185, "volume": 4e7},
    ]}

    def handler(self, request):
        assert request.url.params["apikey"] == "key"
        if "/quote/" in request.url.path:
            return httpx.Response(200, json=self.QUOTE)
        return httpx.Response(200, json=self.HISTORY)

    def test_fetch_stock(self):
        snapshot = run_with(self.handler, lambda c: FMPProvider(c, "key").fetch_stock("aapl"))

        stock = snapshot.stock
        assert snapshot.source == "fmp"
        assert stock.ticker == "AAPL"
        assert stock.current_price == 190.0
        assert stock.daily_change.value == pytest.approx(5.0)
        assert stock.daily_change.percentage == pytest.approx(2.7027)
        assert stock.market_cap == "2.90T"
        assert stock.volume == "50.0M"
        assert [p.date for p in snapshot.chart] == ["2026-03-09", "2026-03-10"]

    def test_fetch_indices_maps_symbols(self):
        def handler(request):
            assert request.url.path.endswith("/quote/^GSPC,USDKRW")
            return httpx.Response(200, json=[
                {"symbol": "^GSPC", "price": 5400.123, "change": 12.3, "changesPercentage": 0.23},
                {"symbol": "USDKRW", "price": 1330.5, "change": -2.0, "changesPercentage": -0.15},
            ])

        quotes = run_with(handler, lambda c: FMPProvider(c, "key").fetch_indices(["^GSPC", "USDKRW=X"]))
        assert [q.symbol for q in quotes] == ["^GSPC", "USDKRW=X"]
        assert quotes[0].price == 5400.12

    def test_missing_key_uses_demo(self):
        def handler(request):
            assert request.url.params["apikey"] == "demo"
            if "/quote/" in request.url.path:
                return httpx.Response(200, json=self.QUOTE)
            return httpx.Response(200, json=self.HISTORY)

        snapshot = run_with(handler, lambda c: FMPProvider(c, None).fetch_stock("AAPL"))
        assert snapshot.stock.current_price == 190.0

    def test_error_message_payload(self):
        def handler(request):
            return httpx.Response(200, json={"Error Message": "Invalid API KEY."})

        with pytest.raises(ProviderError, match="Invalid API KEY"):
            run_with(handler, lambda c: FMPProvider(c, "key").fetch_indices(["^GSPC"]))

    def test_http_error(self):
        with pytest.raises(ProviderError, match="HTTP 500"):
            run_with(
                lambda r: httpx.Response(500),
                lambda c: FMPProvider(c, "key").fetch_stock("AAPL"),
            )

    def test_http_429_is_rate_limited(self):
        with pytest.raises(RateLimitedError) as info:
            run_with(
                lambda r: httpx.Response(429),
                lambda c: FMPProvider(c, "key").fetch_indices(["^GSPC"]),
            )
        assert info.value.code == "RATE_LIMITED"


class TestFinnhub:
    def test_quote_without_chart(self):
        def handler(request):
            assert request.url.params["symbol"] == "AAPL"
            return httpx.Response(200, json={"c": 190.0, "d": 2.0, "dp": 1.0638, "pc": 188.0})

        snapshot = run_with(handler, lambda c: FinnhubProvider(c, "tok").fetch_stock("AAPL"))
        assert snapshot.stock.current_price == 190.0
        assert snapshot.stock.name == "Apple Inc."
        assert snapshot.chart == []
        assert snapshot.stock.daily_change.percentage == pytest.approx(1.0638)

    def test_unknown_symbol_is_all_zeros(self):
        def handler(request):
            return httpx.Response(200, json={"c": 0, "d": None, "dp": None, "pc": 0})

        with pytest.raises(DataNotFoundError):
            run_with(handler, lambda c: FinnhubProvider(c, "tok").fetch_stock("NOPE"))

    def test_missing_key_uses_demo(self):
        tokens = []

        def handler(request):
            tokens.append(request.url.params["token"])
            return httpx.Response(200, json={"c": 190.0, "d": 2.0, "dp": 1.0638, "pc": 188.0})

        snapshot = run_with(handler, lambda c: FinnhubProvider(c, None).fetch_stock("AAPL"))
        assert tokens == ["demo"]
        assert snapshot.stock.current_price == 190.0


class TestAlphaVantage:
    def test_rate_limit_note(self):
        def handler(request):
            return httpx.Response(200, json={"Note": "Thank you for using Alpha Vantage!"})

        with pytest.raises(RateLimitedError):
            run_with(handler, lambda c: AlphaVantageProvider(c).fetch_overview("IBM"))

    def test_fetch_stock_tolerates_missing_overview(self):
        def handler(request):
            function = request.url.params["function"]
            if function == "GLOBAL_QUOTE":
                return httpx.Response(200, json={"Global Quote": {
                    "05. price": "150.00", "08. previous close": "148.00",
                    "09. change": "2.00", "10. change percent": "1.3514%", "06. volume": "1000000",
                }})
            if function == "TIME_SERIES_DAILY":
                return httpx.Response(200, json={"Time Series (Daily)": {
                    "2026-03-10": {"1. open": "149", "2. high": "151", "3. low": "148",
                                   "4. close": "150", "5. volume": "1000000"},
                    "2026-03-09": {"1. open": "147", "2. high": "149", "3. low": "146",
                                   "4. close": "148", "5. volume": "900000"},
                }})
            return httpx.Response(200, json={"Information": "rate limited"})

        snapshot = run_with(handler, lambda c: AlphaVantageProvider(c, "k").fetch_stock("IBM"))
        assert snapshot.stock.current_price == 150.0
        assert snapshot.stock.exchange == "N/A"
        assert snapshot.stock.daily_change.percentage == pytest.approx(1.3514)
        assert [p.close for p in snapshot.chart] == [148.0, 150.0]

    def test_news_sentiment_labels(self):
        def handler(request):
            return httpx.Response(200, json={"feed": [
                {"title": " IBM beats ", "url": "https://x/1", "time_published": "20260310T133000",
                 "source": "Reuters", "overall_sentiment_label": "Somewhat-Bullish"},
                {"title": "IBM slips", "url": "https://x/2", "overall_sentiment_label": "Bearish"},
                {"title": "", "url": "https://x/3"},
            ]})

        articles = run_with(handler, lambda c: AlphaVantageProvider(c).fetch_news("ibm", "en"))
        assert [a.title for a in articles] == ["IBM beats", "IBM slips"]
        assert articles[0].published_at == "2026-03-10T13:30:00"
        assert [a.sentiment for a in articles] == ["positive", "negative"]
        assert articles[1].source == "Alpha Vantage"

    def test_technicals(self):
        def handler(request):
            if request.url.params["function"] == "RSI":
                return httpx.Response(200, json={"Technical Analysis: RSI": {
                    "2026-03-09": {"RSI": "50.0"}, "2026-03-10": {"RSI": "75.5"},
                }})
            return httpx.Response(200, json={"Technical Analysis: MACD": {
                "2026-03-10": {"MACD": "1.2", "MACD_Signal": "0.8", "MACD_Hist": "0.4"},
            }})

        indicators = run_with(handler, lambda c: AlphaVantageProvider(c).fetch_technicals("IBM"))
        assert indicators.rsi == 75.5
        assert indicators.rsi_signal == "Overbought"
        assert indicators.macd_trend == "Bullish"
        assert indicators.source == "alpha_vantage"


class TestKIS:
    def make_handler(self, calls):
        def handler(request):
            calls.append(request.url.path)
            if request.url.path == "/oauth2/tokenP":
                body = json.loads(request.content)
                assert body["grant_type"] == "client_credentials"
                return httpx.Response(200, json={"access_token": "tok", "expires_in": 86400})

            assert request.headers["authorization"] == "Bearer tok"
            if request.headers["tr_id"] == "FHKST01010100":
                return httpx.Response(200, json={"rt_cd": "0", "output": {
                    "stck_prpr": "75000", "prdy_vrss": "1000", "prdy_ctrt": "1.35",
                    "acml_vol": "15000000", "per": "15.5", "w52_hgpr": "86000", "w52_lwpr": "65000",
                }})
            return httpx.Response(200, json={"rt_cd": "0", "output2": [
                {"stck_bsop_date": "20260310", "stck_oprc": "74000", "stck_hgpr": "75500",
                 "stck_lwpr": "73800", "stck_clpr": "75000", "acml_vol": "15000000"},
                {"stck_bsop_date": "20260309", "stck_oprc": "73500", "stck_hgpr": "74200",
                 "stck_lwpr": "73000", "stck_clpr": "74000", "acml_vol": "12000000"},
            ]})

        return handler

    def test_domestic_quote_and_token_reuse(self, clock):
        calls = []

        async def scenario(client):
            provider = KISProvider(client, "key", "secret", token_cache=DataCache(clock=clock))
            first = await provider.fetch_stock("005930")
            await provider.fetch_stock("005930")
            return first

        snapshot = run_with(self.make_handler(calls), scenario)

        assert calls.count("/oauth2/tokenP") == 1
        assert snapshot.stock.name == "삼성전자"
        assert snapshot.stock.current_price == 75000
        assert snapshot.stock.daily_change.percentage == pytest.approx(1.35)
        assert [p.date for p in snapshot.chart] == ["2026-03-09", "2026-03-10"]

    def test_token_refreshed_after_expiry(self, clock):
        calls = []

        async def scenario(client):
            tokens = DataCache(clock=clock)
            provider = KISProvider(client, "key", "secret", token_cache=tokens)
            assert provider.token_cache is tokens
            await provider.fetch_stock("005930")
            clock.advance(86400)
            await provider.fetch_stock("005930")

        run_with(self.make_handler(calls), scenario)
        assert calls.count("/oauth2/tokenP") == 2

    def test_missing_credentials(self):
        with pytest.raises(ProviderError, match="app key"):
            run_with(lambda r: httpx.Response(200), lambda c: KISProvider(c, None, None).fetch_stock("005930"))

    def test_api_error_code(self):
        def handler(request):
            if request.url.path == "/oauth2/tokenP":
                return httpx.Response(200, json={"access_token": "tok"})
            return httpx.Response(200, json={"rt_cd": "1", "msg1": "invalid tr"})

        with pytest.raises(ProviderError, match="invalid tr"):
            run_with(handler, lambda c: KISProvider(c, "k", "s").fetch_stock("AAPL"))


class TestDunamu:
    def test_usdkrw(self):
        def handler(request):
            return httpx.Response(200, json=[{
                "basePrice": 1330.5, "openingPrice": 1328.0,
                "signedChangePrice": 2.5, "signedChangeRate": 0.00188,
            }])

        quotes = run_with(handler, lambda c: DunamuForexProvider(c).fetch_indices(["USDKRW=X"]))
        assert len(quotes) == 1
        assert quotes[0].price == 1330.5
        assert quotes[0].change == 2.5
        assert quotes[0].change_percent == 0.19
        assert quotes[0].source == "dunamu"

    def test_other_symbols_make_no_request(self):
        def handler(request):
            raise AssertionError("no request expected")

        assert run_with(handler, lambda c: DunamuForexProvider(c).fetch_indices(["^GSPC"])) == []


RSS_BODY = """<?xml version="1.0"?>
<rss version="2.0"><channel><title>Market Feed</title>
<item><title>Apple unveils new chips</title><link>https://news.example/1</link>
<description>&lt;p&gt;Apple said today&lt;/p&gt;</description>
<pubDate>Tue, 10 Mar 2026 09:00:00 GMT</pubDate></item>
<item><title>Oil prices climb</title><link>https://news.example/2</link>
<pubDate>Tue, 10 Mar 2026 08:00:00 GMT</pubDate></item>
<item><title>Pineapple harvest strong</title><link>https://news.example/3</link></item>
<item><title></title><link>https://news.example/4</link></item>
</channel></rss>"""


class TestRSS:
    def test_parse_feed(self):
        articles = parse_feed(RSS_BODY, "", "en")
        assert len(articles) == 3
        assert articles[0].source == "Market Feed"
        assert articles[0].summary == "Apple said today"
        assert articles[0].published_at.startswith("2026-03-10T09:00:00")

    def test_ticker_query_keeps_matching_entries(self):
        articles = run_with(
            lambda r: httpx.Response(200, text=RSS_BODY),
            lambda c: RSSNewsProvider(c, "marketwatch_rss", ["https://f/1"], "MarketWatch").fetch_news("AAPL", "en"),
        )
        assert [a.title for a in articles] == ["Apple unveils new chips"]
        assert articles[0].ticker == "AAPL"
        assert articles[0].source == "MarketWatch"

    def test_no_match_returns_newest_few(self):
        articles = run_with(
            lambda r: httpx.Response(200, text=RSS_BODY),
            lambda c: RSSNewsProvider(c, "rss", ["https://f/1"], "Feed", unmatched_limit=2).fetch_news("TSLA", "en"),
        )
        assert len(articles) == 2
        assert all(a.ticker is None for a in articles)

    def test_market_feed_returns_everything(self):
        articles = run_with(
            lambda r: httpx.Response(200, text=RSS_BODY),
            lambda c: RSSNewsProvider(c, "rss", ["https://f/1"], "Feed", match_query=False).fetch_news("AAPL", "en"),
        )
        assert len(articles) == 3

    def test_one_failing_feed_is_tolerated(self):
        def handler(request):
            if request.url.path == "/bad":
                return httpx.Response(503)
            return httpx.Response(200, text=RSS_BODY)

        articles = run_with(
            handler,
            lambda c: RSSNewsProvider(c, "rss", ["https://f/bad", "https://f/good"], "Feed", match_query=False).fetch_news("market", "en"),
        )
        assert len(articles) == 3

    def test_all_feeds_failing_raises(self):
        with pytest.raises(ProviderError):
            run_with(
                lambda r: httpx.Response(503),
                lambda c: RSSNewsProvider(c, "rss", ["https://f/1"], "Feed").fetch_news("AAPL", "en"),
            )


class TestFearGreedSources:
    def test_cnn(self):
        def handler(request):
            assert request.headers["referer"] == "https://edition.cnn.com/"
            return httpx.Response(200, json={"fear_and_greed": {"score": 63.4}})

        assert run_with(handler, lambda c: CNNFearGreedSource(c).fetch_value()) == 63.4

    def test_cnn_missing_score(self):
        with pytest.raises(DataNotFoundError):
            run_with(
                lambda r: httpx.Response(200, json={}),
                lambda c: CNNFearGreedSource(c).fetch_value(),
            )

    def test_alternative_me(self):
        def handler(request):
            assert request.url.params["limit"] == "1"
            return httpx.Response(200, json={"data": [{"value": "41"}]})

        assert run_with(handler, lambda c: AlternativeMeSource(c).fetch_value()) == 41.0

    def test_alternative_me_empty(self):
        with pytest.raises(ProviderError):
            run_with(
                lambda r: httpx.Response(200, json={"data": []}),
                lambda c: AlternativeMeSource(c).fetch_value(),
            )

    @pytest.mark.parametrize(
        "vix,expected",
        [(10, 85), (12, 85), (16, 60), (20, 50), (25, 40), (30, 30), (35, 20), (40, 10), (55, 15)],
    )
    def test_vix_mapping(self, vix, expected):
        assert vix_to_fear_greed(vix) == pytest.approx(expected)


class TestCleanChart:
    def test_sorts_and_drops_bad_bars(self):
        from reading_room.data.models import ChartDataPoint
        from reading_room.providers.base import clean_chart

        chart = [
            ChartDataPoint("2026-03-10", 10, 11, 9, 10.5),
            ChartDataPoint("2026-03-09", 10, 11, 9, 0.0),
            ChartDataPoint("2026-03-08", 10, 9, 11, 10.0),
            ChartDataPoint("2026-03-07", 10, 11, 9, 9.5),
        ]
        assert [p.date for p in clean_chart("fmp", "AAPL", chart)] == ["2026-03-07", "2026-03-10"]

    def test_no_usable_bars(self):
        from reading_room.core.exceptions import DataValidationError
        from reading_room.data.models import ChartDataPoint
        from reading_room.providers.base import clean_chart

        with pytest.raises(DataValidationError) as info:
            clean_chart("fmp", "AAPL", [ChartDataPoint("2026-03-10", 1, 1, 1, -1.0)])
        assert info.value.issues == ["2026-03-10: non-positive close"]
        assert clean_chart("fmp", "AAPL", []) == []
