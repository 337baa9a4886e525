"""
Outbound page fetching.

``PageFetcher`` performs exactly one GET per URL and reports the outcome as a
``FetchResult``; deciding what a status means is left to the caller. There is
no retry or backoff here: a failed fetch is reported, not repeated.
"""

import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

import httpx

logger = logging.getLogger(__name__)

# Allowed domains for URL validation (SSRF prevention)
ALLOWED_DOMAINS = {"www.gaiaonline.com", "gaiaonline.com"}

# Seconds before timing out a request
REQUEST_TIMEOUT = 30.0

DEFAULT_HEADERS = {
    'User-Agent': 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36',
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
    'Accept-Language': 'en-US,en;q=0.9',
}


def validate_url(url: str, allowed_domains=ALLOWED_DOMAINS) -> bool:
    """Validate that a URL is http(s) and points to an allowed domain."""
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and parsed.hostname in allowed_domains


@dataclass(frozen=True)
class FetchResult:
    """
    Outcome of a single GET.

    Attributes:
        url: The URL that was requested
        status: HTTP status code of the final response
        ok: True for a 2xx status
        text: Decoded response body
    """
    url: str
    status: int
    ok: bool
    text: str = ""

    @property
    def not_found(self) -> bool:
        return self.status == 404


class PageFetcher:
    """
    Thin async wrapper around ``httpx.AsyncClient``.

    Usage:
        async with PageFetcher() as fetcher:
            result = await fetcher.get("https://www.gaiaonline.com/forum/t.42/")

    Args:
        client: Optional preconfigured client. When omitted the fetcher
                creates one on entry and closes it on exit.
        timeout: Request timeout in seconds for a client created here
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = REQUEST_TIMEOUT,
    ):
        self.client = client
        self.timeout = timeout
        self._own_client = client is None

    async def __aenter__(self):
        if self.client is None:
            self.client = httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                headers=DEFAULT_HEADERS,
            )
            self._own_client = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self):
        if self._own_client and self.client is not None:
            await self.client.aclose()
            self.client = None

    async def get(self, url: str) -> FetchResult:
        """
        Perform one GET request.

        Raises:
            RuntimeError: If the fetcher has no client (not entered)
            httpx.RequestError: On transport failures (DNS, connect, timeout)
        """
        if self.client is None:
            raise RuntimeError("PageFetcher used outside of its context; no HTTP client")

        logger.debug("Attempting [GET] request: %s", url)
        response = await self.client.get(url)
        logger.debug("GET %s -> HTTP %d", url, response.status_code)

        return FetchResult(
            url=url,
            status=response.status_code,
            ok=response.is_success,
            text=response.text,
        )
