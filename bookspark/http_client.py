"""Pooled httpx.AsyncClient shared by the X API provider, OAuth token calls and the LLM analyzer.

Services accept an injected client (tests pass one built on MockTransport)
and only fall back to this one when none was given.
"""

import httpx

from bookspark.constants import HTTP_CONNECT_TIMEOUT, HTTP_TOTAL_TIMEOUT, USER_AGENT

_client: httpx.AsyncClient | None = None


def _new_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=httpx.Timeout(HTTP_TOTAL_TIMEOUT, connect=HTTP_CONNECT_TIMEOUT),
        headers={"User-Agent": USER_AGENT},
    )


def get_http_client() -> httpx.AsyncClient:
    """Return the shared client, creating it on first use outside the app lifespan (worker, CLI)."""
    global _client
    if _client is None or _client.is_closed:
        _client = _new_client()
    return _client


async def init_http_client() -> None:
    global _client
    await close_http_client()
    _client = _new_client()


async def close_http_client() -> None:
    global _client
    if _client:
        await _client.aclose()
        _client = None
