"""
Shared HTTP helpers for REST providers.
"""

from typing import Any, Optional

import httpx

from reading_room.core.exceptions import ProviderError, RateLimitedError

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

DEFAULT_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "en-US,en;q=0.9,ko;q=0.8",
}


def create_client(
    timeout: float = 15.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Create the async client shared by all providers of a service."""
    return httpx.AsyncClient(
        headers=DEFAULT_HEADERS,
        timeout=httpx.Timeout(timeout),
        follow_redirects=True,
        transport=transport,
    )


async def _request(
    client: httpx.AsyncClient,
    provider: str,
    method: str,
    url: str,
    **kwargs: Any,
) -> httpx.Response:
    try:
        response = await client.request(method, url, **kwargs)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        if e.response.status_code == 429:
            raise RateLimitedError(provider, details={"url": str(e.request.url)}) from e
        raise ProviderError(
            provider,
            f"HTTP {e.response.status_code}",
            details={"url": str(e.request.url)},
        ) from e
    except httpx.HTTPError as e:
        raise ProviderError(provider, f"{type(e).__name__}: {e}") from e
    return response


async def get_json(
    client: httpx.AsyncClient,
    provider: str,
    url: str,
    params: Optional[dict[str, Any]] = None,
    headers: Optional[dict[str, str]] = None,
) -> Any:
    """GET a URL and decode JSON, mapping every failure to ProviderError."""
    response = await _request(client, provider, "GET", url, params=params, headers=headers)
    try:
        return response.json()
    except ValueError as e:
        raise ProviderError(provider, "response is not valid JSON") from e


async def post_json(
    client: httpx.AsyncClient,
    provider: str,
    url: str,
    payload: dict[str, Any],
    headers: Optional[dict[str, str]] = None,
) -> Any:
    response = await _request(client, provider, "POST", url, json=payload, headers=headers)
    try:
        return response.json()
    except ValueError as e:
        raise ProviderError(provider, "response is not valid JSON") from e


async def get_text(
    client: httpx.AsyncClient,
    provider: str,
    url: str,
    params: Optional[dict[str, Any]] = None,
) -> str:
    response = await _request(client, provider, "GET", url, params=params)
    return response.text
