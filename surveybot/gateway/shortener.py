from typing import Optional

import httpx

from surveybot.observability.logging import log
from surveybot.settings import settings


class LinkShortener:
    """TinyURL-style shortener: GET {url}?url=<long> answers the short link as plain text."""

    def __init__(self, api_url: str = None, *, enabled: bool = None, timeout: float = None,
                 client: Optional[httpx.AsyncClient] = None):
        self.api_url = api_url or settings.SHORTENER_URL
        self.enabled = settings.SHORTENER_ENABLED if enabled is None else enabled
        self._client = client or httpx.AsyncClient(timeout=timeout or settings.HTTP_TIMEOUT_SEC)

    async def shorten(self, long_url: str) -> str:
        """Never fails: any problem hands back the long URL."""
        if not self.enabled or not long_url:
            return long_url
        try:
            resp = await self._client.get(self.api_url, params={"url": long_url})
            resp.raise_for_status()
            short = (resp.text or "").strip()
        except httpx.HTTPError as e:
            log("shortener_failed", error=f"{type(e).__name__}: {str(e)[:200]}")
            return long_url
        if not short.startswith("http"):
            log("shortener_unexpected_body", body=short[:120])
            return long_url
        return short

    async def aclose(self) -> None:
        await self._client.aclose()
