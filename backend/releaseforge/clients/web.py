"""
ReleaseForge — Source page fetcher.

Plain HTTP GET with a browser-like User-Agent; no authentication.
Non-2xx responses and transport failures raise SourceFetchError so the
retry executor can treat them as transient.
"""

from __future__ import annotations

import httpx

from releaseforge.errors import SourceFetchError
from releaseforge.utils.logging import logger

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}


class PageFetcher:
    def __init__(
        self,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout
        self.transport = transport

    async def fetch(self, url: str) -> str:
        logger.info("  Fetching: %s", url)
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self.transport,
                follow_redirects=True,
            ) as client:
                resp = await client.get(url, headers=BROWSER_HEADERS)
        except httpx.TransportError as exc:
            raise SourceFetchError(url, message=str(exc)) from exc

        if not resp.is_success:
            raise SourceFetchError(url, status=resp.status_code)
        return resp.text
