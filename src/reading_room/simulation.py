"""
Deterministic simulation used when every real data source fails.

All generators are pure functions of their inputs and the supplied
clock value: noise comes from random.Random instances seeded with the
symbol and the timestamp, never from the global generator.
"""

import math
import random
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Optional

from reading_room.core.config import SimulationConfig
from reading_room.data.models import (
    ChartDataPoint,
    DailyChange,
    IndexQuote,
    NewsArticle,
    StockData,
    StockSnapshot,
)
from reading_room.data.pricing import calculate_daily_change
from reading_room.data.tickers import company_name, is_korean_ticker, normalize_ticker, yahoo_symbol

SIMULATION_SOURCE = "simulation"

DAY_MS = 86_400_000
HOUR_MS = 3_600_000
FIVE_MIN_MS = 300_000
MINUTE_MS = 60_000
WEEK_MS = 7 * DAY_MS


def _stock(ticker, name, exchange, price, change, pct, volume, cap, pe, high, low, div, beta):
    return StockData(
        ticker=ticker,
        name=name,
        exchange=exchange,
        current_price=price,
        daily_change=DailyChange(change, pct),
        volume=volume,
        market_cap=cap,
        pe_ratio=pe,
        fifty_two_week_high=high,
        fifty_two_week_low=low,
        dividend_yield=div,
        beta=beta,
    )


BASE_STOCKS: dict[str, StockData] = {
    "AAPL": _stock("AAPL", "Apple Inc.", "NASDAQ", 172.28, 2.53, 1.49, "54.0M", "2.66T", 26.68, 199.62, 164.08, 0.56, 1.28),
    "GOOGL": _stock("GOOGL", "Alphabet Inc.", "NASDAQ", 140.76, -0.55, -0.39, "23.1M", "1.76T", 25.18, 155.20, 115.83, None, 1.04),
    "TSLA": _stock("TSLA", "Tesla, Inc.", "NASDAQ", 177.77, -2.02, -1.13, "95.6M", "566B", 38.56, 299.29, 138.80, None, 2.35),
    "MSFT": _stock("MSFT", "Microsoft Corporation", "NASDAQ", 420.55, 3.10, 0.74, "20.5M", "3.12T", 36.57, 430.82, 309.49, 0.70, 0.89),
    "AMZN": _stock("AMZN", "Amazon.com, Inc.", "NASDAQ", 183.63, -1.21, -0.65, "35.8M", "1.91T", 51.73, 191.70, 118.35, None, 1.14),
    "NVDA": _stock("NVDA", "NVIDIA Corporation", "NASDAQ", 887.89, 12.65, 1.45, "45.1M", "2.22T", 72.54, 974.00, 260.33, 0.02, 1.70),
    "005930.KS": _stock("005930.KS", "Samsung Electronics Co., Ltd.", "KOSPI", 75000, 1000, 1.35, "15.0M", "447T", 15.5, 86000, 65000, 2.0, 0.9),
    "000660.KS": _stock("000660.KS", "SK Hynix Inc.", "KOSPI", 130000, -2000, -1.52, "4.5M", "94T", 20.1, 150000, 80000, 0.9, 1.1),
}

# Daily share volume used to size simulated chart bars.
BASE_VOLUMES = {
    "AAPL": 54_000_000,
    "GOOGL": 23_100_000,
    "TSLA": 95_600_000,
    "MSFT": 20_500_000,
    "AMZN": 35_800_000,
    "NVDA": 45_100_000,
    "005930.KS": 15_000_000,
    "000660.KS": 4_500_000,
}

HIGH_VOLATILITY = frozenset({"TSLA", "TSLL"})
ALIASES = {"TSLL": "TSLA"}

# symbol -> (base, daily, hourly, five-minute, one-minute, noise)
INDEX_PROFILES: dict[str, tuple[float, float, float, float, float, float]] = {
    "^KS11": (2485.65, 50, 25, 15, 8, 12),
    "^IXIC": (16926.58, 400, 250, 150, 80, 120),
    "^GSPC": (5447.87, 80, 50, 30, 20, 25),
    "USDKRW=X": (1328.50, 15, 8, 5, 3, 6),
}
INDEX_SYMBOLS = tuple(INDEX_PROFILES)


def _ms(now: datetime) -> float:
    return now.timestamp() * 1000


def _rng(*parts: object) -> random.Random:
    return random.Random(":".join(str(p) for p in parts))


def base_stock(ticker: str) -> tuple[str, StockData]:
    """Template for a ticker; unknown tickers borrow AAPL's numbers."""
    symbol = yahoo_symbol(ticker)
    key = ALIASES.get(symbol, symbol)
    if key in BASE_STOCKS:
        return key, BASE_STOCKS[key]
    return "AAPL", BASE_STOCKS["AAPL"]


def simulated_chart(
    ticker: str,
    last_close: float,
    end: datetime,
    days: int = 90,
    base_volume: Optional[int] = None,
) -> list[ChartDataPoint]:
    """Daily bars on weekdays ending at `end`, with the last close pinned to `last_close`."""
    rng = _rng("chart", normalize_ticker(ticker), end.date().isoformat())
    base_volume = base_volume or 10_000_000

    dates = []
    day = end.date()
    while len(dates) < days:
        if day.weekday() < 5:
            dates.append(day)
        day -= timedelta(days=1)
    dates.reverse()

    # Walk backwards from the pinned close.
    closes = [last_close]
    for _ in range(len(dates) - 1):
        daily_return = rng.gauss(0.0005, 0.015)
        closes.append(closes[-1] / (1 + daily_return))
    closes.reverse()

    decimals = 0 if is_korean_ticker(ticker) else 2
    points: list[ChartDataPoint] = []
    previous = closes[0]
    for i, (date, close) in enumerate(zip(dates, closes)):
        open_ = previous * (1 + (rng.random() - 0.5) * 0.01)
        high = max(open_, close) * (1 + rng.random() * 0.01)
        low = min(open_, close) * (1 - rng.random() * 0.01)
        move = abs(close - open_) / open_
        volume = int(base_volume * (0.6 + rng.random() * 0.8) * (1 + move * 5))

        window20 = closes[max(0, i - 19): i + 1]
        window50 = closes[max(0, i - 49): i + 1]
        points.append(
            ChartDataPoint(
                date=date.isoformat(),
                open=round(open_, decimals),
                high=round(high, decimals),
                low=round(low, decimals),
                close=round(close, decimals),
                volume=volume,
                ma20=round(sum(window20) / len(window20), 2),
                ma50=round(sum(window50) / len(window50), 2),
            )
        )
        previous = close

    return points


def fallback_stock(ticker: str, now: datetime, chart_days: int = 90) -> StockSnapshot:
    """
    Simulated quote and chart for a ticker.

    Price is the template price moved by a slow sine term plus seeded
    noise; both scale with the ticker's volatility (5% for TSLA, 2%
    otherwise).
    """
    requested = normalize_ticker(ticker)
    key, template = base_stock(requested)
    volatility = 0.05 if requested in HIGH_VOLATILITY or key in HIGH_VOLATILITY else 0.02

    ts = _ms(now)
    noise = (_rng("stock", requested, int(ts // 1000)).random() - 0.5) * volatility
    total_change = math.sin(ts / 1_000_000) * volatility + noise

    base_price = template.current_price
    decimals = 0 if is_korean_ticker(key) else 2
    new_price = round(base_price * (1 + total_change), decimals)

    stock = replace(
        template,
        current_price=new_price,
        daily_change=calculate_daily_change(new_price, base_price),
    )
    if key != yahoo_symbol(requested):
        stock = replace(stock, ticker=requested, name=company_name(requested, "en"))

    chart = simulated_chart(
        requested, new_price, now, days=chart_days, base_volume=BASE_VOLUMES.get(key)
    )
    return StockSnapshot(stock=stock, chart=chart, source=SIMULATION_SOURCE, simulated=True)


def is_market_hours(now: datetime, config: Optional[SimulationConfig] = None) -> bool:
    config = config or SimulationConfig()
    hour = now.hour + now.minute / 60
    return config.market_open_hour <= hour <= config.market_close_hour


def simulated_index(
    symbol: str, now: datetime, config: Optional[SimulationConfig] = None
) -> IndexQuote:
    """One index quote from the multi-period sine model."""
    config = config or SimulationConfig()
    base, daily, hourly, five_min, minute, noise_amp = INDEX_PROFILES[symbol]
    volatility = (
        config.market_hours_volatility if is_market_hours(now, config) else config.off_hours_volatility
    )

    ts = _ms(now)
    noise = (_rng("index", symbol, int(ts // 1000)).random() - 0.5) * noise_amp
    variation = math.sin(ts / DAY_MS) * daily + (
        math.sin(ts / HOUR_MS) * hourly
        + math.sin(ts / FIVE_MIN_MS) * five_min
        + math.sin(ts / MINUTE_MS) * minute
        + noise
    ) * volatility

    return IndexQuote(
        symbol=symbol,
        price=round(base + variation, 2),
        change=round(variation, 2),
        change_percent=round(variation / base * 100, 2),
        source=SIMULATION_SOURCE,
    )


def simulated_indices(
    now: datetime,
    config: Optional[SimulationConfig] = None,
    symbols: tuple[str, ...] = INDEX_SYMBOLS,
) -> list[IndexQuote]:
    return [simulated_index(s, now, config) for s in symbols if s in INDEX_PROFILES]


def simulated_fear_greed(now: datetime) -> float:
    ts = _ms(now)
    value = 50 + math.sin(ts / DAY_MS) * 15 + math.sin(ts / WEEK_MS) * 10
    return float(round(min(100.0, max(0.0, value))))


def _iso(now: datetime, minutes_ago: int = 0) -> str:
    return (now - timedelta(minutes=minutes_ago)).isoformat()


def fallback_market_news(language: str, now: datetime) -> list[NewsArticle]:
    if language == "kr":
        items = [
            ("국내 증시, 글로벌 경제 불확실성 속에서도 상승세 유지", "연합뉴스",
             "코스피가 외국인 매수세에 힘입어 상승 마감했습니다.", 0),
            ("미 연준 금리 정책 발표 앞두고 투자자들 관망세", "머니투데이",
             "FOMC 회의 결과에 따른 시장 변동성이 예상됩니다.", 30),
        ]
        url = "https://finance.naver.com"
    else:
        items = [
            ("Stock Market Rallies on Strong Economic Data", "Reuters",
             "Major indices posted gains following positive economic indicators.", 0),
            ("Federal Reserve Policy Decision Awaited by Investors", "Bloomberg",
             "Markets anticipate key interest rate decisions from the Fed.", 30),
        ]
        url = "https://finance.yahoo.com"

    return [
        NewsArticle(
            title=title,
            url=url,
            published_at=_iso(now, minutes),
            source=source,
            language=language,
            summary=summary,
            category="market",
            is_generated=True,
        )
        for title, source, summary, minutes in items
    ]


def fallback_stock_news(ticker: str, language: str, now: datetime) -> list[NewsArticle]:
    company = company_name(ticker, language)
    if language == "kr":
        items = [
            (f"{company}, 분기 실적 발표 앞두고 주목", "매일경제",
             f"{company}의 다음 분기 실적에 대한 시장의 기대가 높아지고 있습니다.", 0),
            (f"{company} 주가, 기관 매수세에 상승세", "서울경제",
             "외국인과 기관투자자들의 매수세가 이어지고 있습니다.", 45),
        ]
        url = "https://finance.naver.com"
    else:
        items = [
            (f"{company} Shares Rise on Strong Quarterly Outlook", "MarketWatch",
             f"{company} shows positive momentum ahead of earnings announcement.", 0),
            (f"{company} Stock Gains on Institutional Buying", "Seeking Alpha",
             "Institutional investors continue to show confidence in the company.", 45),
        ]
        url = "https://finance.yahoo.com"

    return [
        NewsArticle(
            title=title,
            url=url,
            published_at=_iso(now, minutes),
            source=source,
            language=language,
            summary=summary,
            ticker=normalize_ticker(ticker),
            is_generated=True,
        )
        for title, source, summary, minutes in items
    ]


_TICKER_NEWS_EN = [
    ("{c} Earnings Preview: What Wall Street Expects", "Yahoo Finance", "earnings"),
    ("{c} Revenue Growth Outpaces Sector Peers", "MarketWatch", "earnings"),
    ("Analyst Raises {c} Price Target After Strong Guidance", "Barron's", "analyst"),
    ("{c} Upgrade: Analysts See Further Upside", "Seeking Alpha", "analyst"),
    ("{c} Shares Active in Heavy Trading Session", "Reuters", "market"),
    ("{c} Stock Moves as Investors Weigh Macro Data", "CNBC", "market"),
    ("{c} Announces New Product Roadmap", "Bloomberg", "news"),
    ("{c} Reports Progress on Strategic Initiatives", "Business Wire", "news"),
    ("{c} Dividend Policy Under Review by Investors", "Motley Fool", "financial"),
    ("{c} Financial Position and Debt Profile Examined", "Morningstar", "financial"),
    ("What to Watch for {c} This Week", "Investopedia", "other"),
    ("{c} in Focus Among Institutional Portfolios", "Zacks", "other"),
]

_TICKER_NEWS_KR = [
    ("{c} 실적 전망, 시장 기대치 웃돌까", "한국경제", "earnings"),
    ("{c} 어닝 시즌 앞두고 투자자 관심 집중", "매일경제", "earnings"),
    ("증권가, {c} 목표주가 상향 조정", "머니투데이", "analyst"),
    ("{c} 분석 리포트: 중장기 성장성 주목", "이데일리", "analyst"),
    ("{c} 주가, 외국인 순매수에 상승", "서울경제", "market"),
    ("{c} 하락 출발 후 낙폭 축소", "연합인포맥스", "market"),
    ("{c}, 신사업 계획 발표", "연합뉴스", "news"),
    ("{c} 관련 주요 뉴스 정리", "뉴스1", "news"),
    ("{c} 배당 정책 변화에 주주 관심", "아시아경제", "financial"),
    ("{c} 재무 건전성 점검", "파이낸셜뉴스", "financial"),
    ("이번 주 {c} 체크포인트", "헤럴드경제", "other"),
    ("기관 포트폴리오 속 {c} 비중 확대", "조선비즈", "other"),
]


def generated_ticker_news(ticker: str, language: str, now: datetime) -> list[NewsArticle]:
    """Category-balanced generated headlines used to pad thin news lists."""
    company = company_name(ticker, language)
    symbol = normalize_ticker(ticker)
    templates = _TICKER_NEWS_KR if language == "kr" else _TICKER_NEWS_EN
    if language == "kr":
        url = f"https://finance.naver.com/item/news.naver?code={symbol.split('.')[0]}"
    else:
        url = f"https://finance.yahoo.com/quote/{symbol}/news"

    return [
        NewsArticle(
            title=title.format(c=company),
            url=f"{url}#{i}",
            published_at=_iso(now, 60 * (i + 1)),
            source=source,
            language=language,
            ticker=symbol,
            category=category,
            is_generated=True,
        )
        for i, (title, source, category) in enumerate(templates)
    ]
