"""
USD/KRW rate from the Dunamu forex quotation feed.
"""

from typing import Sequence

import httpx

from reading_room.core.exceptions import DataNotFoundError
from reading_room.data.models import IndexQuote
from reading_room.data.pricing import to_float
from reading_room.providers.base import IndexQuoteProvider
from reading_room.providers.http import get_json

FOREX_URL = "https://quotation-api-cdn.dunamu.com/v1/forex/recent"
USDKRW = "USDKRW=X"


class DunamuForexProvider(IndexQuoteProvider):
    """Only knows USDKRW=X; other symbols are ignored."""

    name = "dunamu"

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def fetch_indices(self, symbols: Sequence[str]) -> list[IndexQuote]:
        if USDKRW not in symbols:
            return []

        data = await get_json(self.client, self.name, FOREX_URL, {"codes": "FRX.KRWUSD"})
        row = data[0] if isinstance(data, list) and data else {}
        price = to_float(row.get("basePrice"))
        if not price:
            raise DataNotFoundError(USDKRW, "dunamu forex")

        opening = to_float(row.get("openingPrice"))
        change = to_float(row.get("signedChangePrice"))
        if change is None:
            change = price - opening if opening else 0.0
        rate = to_float(row.get("signedChangeRate"))
        if rate is not None:
            change_percent = rate * 100
        else:
            change_percent = change / (price - change) * 100 if price != change else 0.0

        return [
            IndexQuote(
                symbol=USDKRW,
                price=round(price, 2),
                change=round(change, 2),
                change_percent=round(change_percent, 2),
                source=self.name,
            )
        ]
