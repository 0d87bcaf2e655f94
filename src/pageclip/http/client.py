"""Async HTTP client for downloading article images."""

from __future__ import annotations

import logging
from types import TracebackType

import aiohttp

from .protocols import HttpResponse

logger = logging.getLogger(__name__)


class ResponseTooLargeError(ValueError):
    """Raised when a response body exceeds the configured size limit."""


class AsyncHttpClient:
    """
    Async HTTP client used by the image fetcher.

    Features:
    - One pooled aiohttp session per capture
    - Content size limits to prevent memory exhaustion
    - Total-request timeout; the transfer is aborted and the
      connection released when it elapses

    There is deliberately no retry loop here: a failed image download is
    the final outcome for that image within the current capture.

    Example:
        client = AsyncHttpClient(max_content_size=10 * 1024 * 1024)

        async with client:
            response = await client.get("https://example.com/a.png", timeout=5.0)
            print(len(response.content))
    """

    CHUNK_SIZE = 64 * 1024

    def __init__(
        self,
        max_content_size: int = 20 * 1024 * 1024,
        user_agent: str | None = None,
        proxy: str | None = None,
        default_timeout: float = 5.0,
    ) -> None:
        """
        Initialize the HTTP client.

        Args:
            max_content_size: Maximum response size in bytes
            user_agent: Custom User-Agent string
            proxy: Proxy URL (http:// or socks5://)
            default_timeout: Default request timeout in seconds
        """
        self._max_content_size = max_content_size
        self._proxy = proxy
        self._default_timeout = default_timeout

        if user_agent is None:
            user_agent = "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (pageclip/1.0)"
        self._user_agent = user_agent

        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> AsyncHttpClient:
        """Enter async context and create session."""
        connector = aiohttp.TCPConnector(
            limit=20,
            limit_per_host=4,
            ttl_dns_cache=300,
        )
        self._session = aiohttp.ClientSession(
            connector=connector,
            headers={
                "User-Agent": self._user_agent,
                "Accept": "image/avif,image/webp,image/apng,image/*,*/*;q=0.8",
            },
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit async context and close session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def get(
        self,
        url: str,
        *,
        timeout: float | None = None,
        headers: dict[str, str] | None = None,
    ) -> HttpResponse:
        """
        Perform an HTTP GET request.

        Args:
            url: The URL to fetch
            timeout: Total request timeout in seconds (uses default if None)
            headers: Optional additional headers

        Returns:
            HttpResponse with status, content, and headers. Error statuses
            are returned with an empty body.

        Raises:
            aiohttp.ClientError: On transport errors
            asyncio.TimeoutError: When the timeout elapses
            ResponseTooLargeError: On content size exceeded
        """
        if self._session is None:
            raise RuntimeError("Client not initialized. Use 'async with' context manager.")

        timeout_val = timeout or self._default_timeout

        async with self._session.get(
            url,
            timeout=aiohttp.ClientTimeout(total=timeout_val),
            headers=headers,
            proxy=self._proxy,
            allow_redirects=True,
        ) as response:
            content_type = response.headers.get("Content-Type", "")

            if not 200 <= response.status < 300:
                return HttpResponse(
                    status_code=response.status,
                    content=b"",
                    content_type=content_type,
                    headers=dict(response.headers),
                    url=str(response.url),
                )

            # Check Content-Length if available
            content_length = response.headers.get("Content-Length")
            if content_length and content_length.isdigit() and int(content_length) > self._max_content_size:
                raise ResponseTooLargeError(f"Content too large: {content_length} bytes")

            # Read content with size limit
            chunks: list[bytes] = []
            received = 0
            async for chunk in response.content.iter_chunked(self.CHUNK_SIZE):
                received += len(chunk)
                if received > self._max_content_size:
                    raise ResponseTooLargeError(f"Content size limit exceeded: >{self._max_content_size} bytes")
                chunks.append(chunk)

            logger.debug(f"Downloaded {received} bytes from {response.url.host}")

            return HttpResponse(
                status_code=response.status,
                content=b"".join(chunks),
                content_type=content_type,
                headers=dict(response.headers),
                url=str(response.url),
            )
