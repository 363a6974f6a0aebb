"""Async HTTP client shared by the email and SMS providers."""

from typing import Any

import httpx

_USER_AGENT = "autosaaz-auth/1.0"


class HttpClient:
    """httpx.AsyncClient with one overall timeout and a capped connect timeout.

    The overall timeout bounds each notification dispatch, so a slow
    provider delays a registration response by at most that long.
    """

    def __init__(self, timeout: float = 5.0, connect_timeout: float = 3.0) -> None:
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=min(timeout, connect_timeout)),
            headers={"User-Agent": _USER_AGENT},
        )

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self._client.post(url, **kwargs)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()
