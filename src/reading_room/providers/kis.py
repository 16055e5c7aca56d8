"""
Korea Investment & Securities (KIS) Open API provider.

Covers domestic (KRX) and overseas listings. Access tokens are issued
through the OAuth client-credentials flow and cached until shortly
before they expire.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

import httpx

from reading_room.core.exceptions import DataNotFoundError, ProviderError
from reading_room.core.logging import get_logger
from reading_room.data.cache import DataCache
from reading_room.data.models import ChartDataPoint, StockSnapshot
from reading_room.data.pricing import to_float
from reading_room.data.tickers import (
    base_code,
    company_name,
    is_korean_ticker,
    normalize_ticker,
    overseas_exchange,
)
from reading_room.providers.base import StockDataProvider, build_snapshot
from reading_room.providers.http import get_json, post_json

logger = get_logger("providers.kis")

TOKEN_CACHE_KEY = "kis:access_token"
TOKEN_EXPIRY_MARGIN = 60.0

TR_DOMESTIC_PRICE = "FHKST01010100"
TR_DOMESTIC_DAILY = "FHKST03010100"
TR_OVERSEAS_PRICE = "HHDFS00000300"
TR_OVERSEAS_DAILY = "HHDFS76240000"


def _kis_date(value: str) -> str:
    return f"{value[:4]}-{value[4:6]}-{value[6:8]}"


def parse_daily_rows(
    rows: list[dict[str, Any]],
    date_key: str,
    fields: tuple[str, str, str, str, str],
) -> list[ChartDataPoint]:
    """KIS returns newest first; reverse to oldest first."""
    open_key, high_key, low_key, close_key, volume_key = fields
    chart = []
    for row in reversed(rows or []):
        close = to_float(row.get(close_key))
        date = row.get(date_key)
        if not close or not date:
            continue
        chart.append(
            ChartDataPoint(
                date=_kis_date(date),
                open=to_float(row.get(open_key)) or close,
                high=to_float(row.get(high_key)) or close,
                low=to_float(row.get(low_key)) or close,
                close=close,
                volume=int(to_float(row.get(volume_key)) or 0),
            )
        )
    return chart


class KISProvider(StockDataProvider):
    """Quotes and daily charts from the KIS Open API."""

    name = "kis"

    def __init__(
        self,
        client: httpx.AsyncClient,
        app_key: Optional[str],
        app_secret: Optional[str],
        base_url: str = "https://openapi.koreainvestment.com:9443",
        token_cache: Optional[DataCache] = None,
        today: Callable[[], datetime] = datetime.now,
    ):
        self.client = client
        self.app_key = app_key
        self.app_secret = app_secret
        self.base_url = base_url.rstrip("/")
        self.token_cache = token_cache if token_cache is not None else DataCache(max_items=4)
        self._today = today
        self._token_lock = asyncio.Lock()

    async def _access_token(self) -> str:
        if not self.app_key or not self.app_secret:
            raise ProviderError(self.name, "no app key/secret configured")

        async with self._token_lock:
            token = self.token_cache.get(TOKEN_CACHE_KEY)
            if token:
                return token

            data = await post_json(
                self.client,
                self.name,
                f"{self.base_url}/oauth2/tokenP",
                {
                    "grant_type": "client_credentials",
                    "appkey": self.app_key,
                    "appsecret": self.app_secret,
                },
            )
            token = data.get("access_token") if isinstance(data, dict) else None
            if not token:
                raise ProviderError(self.name, "token response missing access_token")

            expires_in = to_float(data.get("expires_in")) or 86400.0
            self.token_cache.set(
                TOKEN_CACHE_KEY, token, ttl_seconds=max(0.0, expires_in - TOKEN_EXPIRY_MARGIN)
            )
            logger.info(f"Issued KIS access token (expires in {expires_in:.0f}s)")
            return token

    async def _get(self, path: str, tr_id: str, params: dict[str, Any]) -> dict[str, Any]:
        token = await self._access_token()
        data = await get_json(
            self.client,
            self.name,
            f"{self.base_url}{path}",
            params,
            headers={
                "content-type": "application/json; charset=utf-8",
                "authorization": f"Bearer {token}",
                "appkey": self.app_key or "",
                "appsecret": self.app_secret or "",
                "tr_id": tr_id,
            },
        )
        if not isinstance(data, dict) or data.get("rt_cd") != "0":
            message = data.get("msg1") if isinstance(data, dict) else None
            raise ProviderError(self.name, f"{tr_id} failed: {message or 'bad response'}")
        return data

    async def fetch_stock(self, ticker: str) -> StockSnapshot:
        ticker = normalize_ticker(ticker)
        if is_korean_ticker(ticker):
            return await self._fetch_domestic(ticker)
        return await self._fetch_overseas(ticker)

    async def _fetch_domestic(self, ticker: str) -> StockSnapshot:
        code = base_code(ticker)
        end = self._today()
        start = end - timedelta(days=365)

        price_data, daily_data = await asyncio.gather(
            self._get(
                "/uapi/domestic-stock/v1/quotations/inquire-price",
                TR_DOMESTIC_PRICE,
                {"FID_COND_MRKT_DIV_CODE": "J", "FID_INPUT_ISCD": code},
            ),
            self._get(
                "/uapi/domestic-stock/v1/quotations/inquire-daily-itemchartprice",
                TR_DOMESTIC_DAILY,
                {
                    "FID_COND_MRKT_DIV_CODE": "J",
                    "FID_INPUT_ISCD": code,
                    "FID_INPUT_DATE_1": start.strftime("%Y%m%d"),
                    "FID_INPUT_DATE_2": end.strftime("%Y%m%d"),
                    "FID_PERIOD_DIV_CODE": "D",
                    "FID_ORG_ADJ_PRC": "0",
                },
            ),
        )

        output = price_data.get("output") or {}
        price = to_float(output.get("stck_prpr"))
        if not price:
            raise DataNotFoundError(ticker, "kis domestic price")

        chart = parse_daily_rows(
            daily_data.get("output2") or [],
            "stck_bsop_date",
            ("stck_oprc", "stck_hgpr", "stck_lwpr", "stck_clpr", "acml_vol"),
        )
        return build_snapshot(
            source=self.name,
            ticker=ticker,
            name=company_name(ticker, "kr"),
            exchange="KOSPI",
            price=price,
            previous_close=None,
            chart=chart,
            change=to_float(output.get("prdy_vrss")),
            change_percent=to_float(output.get("prdy_ctrt")),
            volume=to_float(output.get("acml_vol")),
            pe_ratio=to_float(output.get("per")),
            year_high=to_float(output.get("w52_hgpr")),
            year_low=to_float(output.get("w52_lwpr")),
        )

    async def _fetch_overseas(self, ticker: str) -> StockSnapshot:
        exchange = overseas_exchange(ticker)
        price_data, daily_data = await asyncio.gather(
            self._get(
                "/uapi/overseas-price/v1/quotations/price",
                TR_OVERSEAS_PRICE,
                {"AUTH": "", "EXCD": exchange, "SYMB": ticker},
            ),
            self._get(
                "/uapi/overseas-price/v1/quotations/dailyprice",
                TR_OVERSEAS_DAILY,
                {
                    "AUTH": "",
                    "EXCD": exchange,
                    "SYMB": ticker,
                    "GUBN": "0",
                    "BYMD": self._today().strftime("%Y%m%d"),
                    "MODP": "0",
                },
            ),
        )

        output = price_data.get("output") or {}
        price = to_float(output.get("last"))
        if not price:
            raise DataNotFoundError(ticker, "kis overseas price")

        chart = parse_daily_rows(
            daily_data.get("output2") or [],
            "xymd",
            ("open", "high", "low", "clos", "tvol"),
        )
        return build_snapshot(
            source=self.name,
            ticker=ticker,
            name=company_name(ticker, "en"),
            exchange=exchange,
            price=price,
            previous_close=to_float(output.get("base")),
            chart=chart,
            change=to_float(output.get("diff")),
            change_percent=to_float(output.get("rate")),
            volume=to_float(output.get("tvol")),
        )
