"""
Ticker classification and naming helpers.
"""

import re
from typing import Optional

KOREAN_SUFFIXES = (".KS", ".KQ")
_SIX_DIGITS = re.compile(r"^[0-9]{6}$")
TICKER_PATTERN = re.compile(r"^[A-Z0-9]{1,10}(\.[A-Z]{1,3})?$")

# Overseas tickers KIS quotes on NASDAQ; everything else goes to NYSE.
NASDAQ_TICKERS = frozenset({"AAPL", "GOOGL", "TSLA", "MSFT", "AMZN", "NVDA"})

COMPANY_NAMES: dict[str, tuple[str, str]] = {
    "005930": ("삼성전자", "Samsung Electronics"),
    "000660": ("SK하이닉스", "SK Hynix"),
    "035420": ("NAVER", "NAVER Corporation"),
    "051910": ("LG화학", "LG Chem"),
    "006400": ("삼성SDI", "Samsung SDI"),
    "AAPL": ("애플", "Apple Inc."),
    "GOOGL": ("구글", "Alphabet Inc."),
    "TSLA": ("테슬라", "Tesla Inc."),
    "MSFT": ("마이크로소프트", "Microsoft Corporation"),
    "AMZN": ("아마존", "Amazon.com Inc."),
    "NVDA": ("엔비디아", "NVIDIA Corporation"),
    "META": ("메타", "Meta Platforms Inc."),
}


def normalize_ticker(ticker: str) -> str:
    return ticker.strip().upper()


def is_korean_ticker(ticker: str) -> bool:
    """True for KRX listings: a .KS/.KQ suffix or a bare 6-digit code."""
    ticker = normalize_ticker(ticker)
    return ticker.endswith(KOREAN_SUFFIXES) or bool(_SIX_DIGITS.match(ticker))


def base_code(ticker: str) -> str:
    """Strip the exchange suffix: '005930.KS' -> '005930'."""
    return normalize_ticker(ticker).split(".", 1)[0]


def yahoo_symbol(ticker: str) -> str:
    """Yahoo needs an exchange suffix on KRX codes."""
    ticker = normalize_ticker(ticker)
    if _SIX_DIGITS.match(ticker):
        return f"{ticker}.KS"
    return ticker


def overseas_exchange(ticker: str) -> str:
    return "NAS" if base_code(ticker) in NASDAQ_TICKERS else "NYS"


def company_name(ticker: str, language: str = "en") -> str:
    """Display name for a ticker, or the ticker itself when unknown."""
    names = COMPANY_NAMES.get(base_code(ticker))
    if names is None:
        return normalize_ticker(ticker)
    return names[0] if language == "kr" else names[1]


def looks_like_ticker(query: str) -> bool:
    return bool(TICKER_PATTERN.match(normalize_ticker(query)))


def currency_for(ticker: str) -> str:
    return "KRW" if is_korean_ticker(ticker) else "USD"


def format_price(price: Optional[float], ticker: str) -> str:
    if price is None:
        return "N/A"
    if currency_for(ticker) == "KRW":
        return f"₩{price:,.0f}"
    return f"${price:,.2f}"
