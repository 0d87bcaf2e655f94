"""Bounded-time image downloads that report failure instead of raising."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlparse

from ..http.client import ResponseTooLargeError
from ..http.protocols import HttpClient
from ..security.url_validator import ImageUrlValidator

logger = logging.getLogger(__name__)


class FetchFailure(str, Enum):
    """Why an image download did not produce bytes."""

    TIMEOUT = "timeout"
    TRANSPORT = "transport"
    HTTP_STATUS = "http_status"
    INVALID_URL = "invalid_url"
    TOO_LARGE = "too_large"


@dataclass(frozen=True)
class FetchOutcome:
    """
    Bytes-or-failure result of one download.

    Exactly one of data and failure is set. detail carries a short
    human-readable description of the failure.
    """

    data: bytes | None = None
    content_type: str = ""
    status_code: int | None = None
    failure: FetchFailure | None = None
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None and self.data is not None

    @property
    def error_message(self) -> str | None:
        if self.ok:
            return None
        if self.detail:
            return f"Fetch failed ({self.failure.value if self.failure else 'unknown'}): {self.detail}"
        return "Fetch failed"


def _host(url: str) -> str:
    """Hostname for log messages; paths and query strings stay out of logs."""
    try:
        return urlparse(url).hostname or "unknown"
    except ValueError:
        return "unknown"


class ImageFetcher:
    """
    Downloads a single image under a hard timeout.

    fetch() never raises for network-level problems: timeouts, transport
    errors, non-2xx responses and oversized bodies all come back as a
    failed FetchOutcome. On timeout the request task is cancelled, which
    aborts the transfer and returns the connection to the pool.

    Example:
        async with AsyncHttpClient() as client:
            fetcher = ImageFetcher(client)
            outcome = await fetcher.fetch("https://example.com/a.png", timeout_ms=5000)
            if outcome.ok:
                print(len(outcome.data))
    """

    def __init__(
        self,
        http_client: HttpClient,
        url_validator: ImageUrlValidator | None = None,
    ) -> None:
        """
        Initialize the fetcher.

        Args:
            http_client: HTTP client implementing HttpClient protocol
            url_validator: Pre-flight URL checks (defaults to http(s) only)
        """
        self._client = http_client
        self._validator = url_validator or ImageUrlValidator()

    async def fetch(self, url: str, timeout_ms: int) -> FetchOutcome:
        """
        Download an image.

        Args:
            url: Absolute image URL
            timeout_ms: Whole-transfer timeout in milliseconds

        Returns:
            FetchOutcome with data on success, failure cause otherwise
        """
        validation = self._validator.validate(url)
        if not validation.is_valid:
            logger.debug(f"Not fetching image from {_host(url)}: {validation.rejection_reason}")
            return FetchOutcome(failure=FetchFailure.INVALID_URL, detail=validation.rejection_reason)

        timeout = timeout_ms / 1000
        try:
            response = await asyncio.wait_for(self._client.get(url, timeout=timeout), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Image fetch timed out after {timeout_ms}ms for domain: {_host(url)}")
            return FetchOutcome(failure=FetchFailure.TIMEOUT, detail=f"timed out after {timeout_ms}ms")
        except ResponseTooLargeError as e:
            logger.warning(f"Image too large to download from domain: {_host(url)}: {e}")
            return FetchOutcome(failure=FetchFailure.TOO_LARGE, detail=str(e))
        except Exception as e:
            logger.warning(f"Image fetch failed for domain: {_host(url)}: {e}")
            return FetchOutcome(failure=FetchFailure.TRANSPORT, detail=str(e) or type(e).__name__)

        if not response.ok:
            logger.warning(f"Image fetch returned HTTP {response.status_code} for domain: {_host(url)}")
            return FetchOutcome(
                status_code=response.status_code,
                content_type=response.content_type,
                failure=FetchFailure.HTTP_STATUS,
                detail=f"HTTP {response.status_code}",
            )

        if not response.content:
            logger.warning(f"Image fetch returned an empty body for domain: {_host(url)}")
            return FetchOutcome(
                status_code=response.status_code,
                content_type=response.content_type,
                failure=FetchFailure.TRANSPORT,
                detail="empty response body",
            )

        logger.debug(f"Fetched image from {_host(url)}: {len(response.content)} bytes")
        return FetchOutcome(
            data=response.content,
            content_type=response.content_type,
            status_code=response.status_code,
        )
