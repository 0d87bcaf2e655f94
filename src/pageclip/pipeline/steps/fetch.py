"""FetchImageStep - image download pipeline step."""

import logging
from typing import Optional

from ...images.fetcher import ImageFetcher
from ...models.events import EmbedEvent, EventType
from ..base import EventEmitter, ImageContext

logger = logging.getLogger(__name__)


class FetchImageStep:
    """
    Pipeline step that downloads the image bytes.

    Populates:
        ctx.data: Raw image bytes
        ctx.content_type: Content-Type header value
        ctx.bytes_fetched: Size of downloaded content

    Skips the image with an error when the download times out, fails at
    the transport level, or returns a non-success status.

    Example:
        fetch_step = FetchImageStep(ImageFetcher(http_client))
        ctx = await fetch_step.execute(ctx)
    """

    name = "fetch"

    def __init__(self, fetcher: ImageFetcher) -> None:
        self._fetcher = fetcher

    async def execute(
        self,
        ctx: ImageContext,
        emit: Optional[EventEmitter] = None,
    ) -> ImageContext:
        """
        Execute the fetch step.

        Args:
            ctx: Image context with the URL to download
            emit: Optional callback to emit events

        Returns:
            ImageContext with data, content_type populated
        """
        outcome = await self._fetcher.fetch(ctx.url, ctx.settings.fetch_timeout_ms)

        if not outcome.ok:
            ctx.skip("fetch failed", error=outcome.error_message)
            if emit:
                emit(
                    EmbedEvent(
                        type=EventType.IMAGE_FETCH_FAILED,
                        url=ctx.url,
                        status_code=outcome.status_code,
                        error=outcome.error_message,
                        message=f"Fetch failed: {outcome.failure.value if outcome.failure else 'unknown'}",
                    )
                )
            return ctx

        ctx.data = outcome.data
        ctx.content_type = outcome.content_type
        ctx.bytes_fetched = len(outcome.data or b"")

        if emit:
            emit(
                EmbedEvent(
                    type=EventType.IMAGE_FETCHED,
                    url=ctx.url,
                    status_code=outcome.status_code,
                    bytes_downloaded=ctx.bytes_fetched,
                    content_type=outcome.content_type,
                    message=f"Fetched {ctx.bytes_fetched} bytes",
                )
            )

        return ctx
