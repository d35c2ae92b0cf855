"""
Plain HTTP fetcher for photo downloads.

Photos are static googleusercontent resources, so they are fetched with httpx
instead of going through the browser.
"""

from typing import Optional, Dict, Tuple
import httpx
import logging

from ..base import PhotoFetchFailure

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = 'image/jpeg'


class PhotoFetcher:
    """
    Async image downloader.

    Uses one pooled httpx client for the whole run.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        headers: Optional[Dict[str, str]] = None,
        proxy: Optional[str] = None,
    ):
        """
        Args:
            timeout: Request timeout in seconds
            headers: Custom HTTP headers
            proxy: Optional proxy URL for outgoing requests
        """
        self.timeout = timeout
        self.proxy = proxy
        self.headers = headers or {
            'User-Agent': 'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36',
            'Accept': 'image/avif,image/webp,image/apng,image/*,*/*;q=0.8',
            'Accept-Language': 'en-US,en;q=0.9',
        }
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create reusable HTTP client with connection pooling."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                follow_redirects=True,
                timeout=self.timeout,
                headers=self.headers,
                proxy=self.proxy,
                limits=httpx.Limits(
                    max_keepalive_connections=5,
                    max_connections=10,
                    keepalive_expiry=30.0
                )
            )
        return self._client

    async def fetch(self, url: str) -> Tuple[bytes, str]:
        """
        Download one image.

        Returns:
            (bytes, content type); the content type falls back to image/jpeg
            when the response does not declare an image type

        Raises:
            PhotoFetchFailure: On network error or non-2xx response
        """
        client = await self._get_client()
        try:
            response = await client.get(url)
        except httpx.HTTPError as e:
            raise PhotoFetchFailure(url, str(e)) from e

        if not response.is_success:
            raise PhotoFetchFailure(url, f"HTTP {response.status_code}")

        content_type = response.headers.get('content-type', '').split(';')[0].strip()
        if not content_type.startswith('image/'):
            content_type = DEFAULT_CONTENT_TYPE
        return response.content, content_type

    async def close(self):
        """Close the HTTP client and release resources."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
