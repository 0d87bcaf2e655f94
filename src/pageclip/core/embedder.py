"""ImageEmbedder - decides, per image, between inline data URL and external link."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping
from types import TracebackType
from typing import Any

from ..http import AsyncHttpClient, HttpClient
from ..images.detector import detect_images
from ..images.featured import featured_url_from_metadata
from ..images.fetcher import ImageFetcher
from ..images.policy import decide
from ..images.prioritizer import prioritize_featured
from ..images.transcoder import ImageTranscoder
from ..models.config import ClipperConfig, ImageHandlingSettings
from ..models.events import EmbedEvent, EmbedStats, EventType
from ..models.images import EmbedType, ImageFormat, ImageReference, ProcessedImage
from ..pipeline.base import EmbedPipeline, EventEmitter, ImageContext
from ..pipeline.steps import EncodeStep, FetchImageStep, SizeGateStep, TranscodeStep
from ..security.url_validator import ImageUrlValidator

logger = logging.getLogger(__name__)


class ImageEmbedder:
    """
    Primary API for pageclip: image embedding for one captured article.

    Detects the article's images, moves the featured image to the front,
    then walks the list one image at a time: policy check, download,
    WebP transcode, data URL encode and size ceiling. Every detected image
    yields exactly one ProcessedImage, in prioritized order; failures only
    ever degrade a single image to an external link.

    Images are processed sequentially, so the embedded-count budget and
    the featured-first guarantee hold without locking. Separate captures
    may run concurrently on the same embedder; each run keeps its own
    budget.

    Example:
        async with ImageEmbedder(config) as embedder:
            results = await embedder.process(article_html, featured_url=og_image)
            for image in results:
                if image.embed_type == EmbedType.BASE64:
                    markdown = markdown.replace(image.original_url, image.data_url)

        print(f"Stats: {embedder.stats.to_dict()}")
    """

    def __init__(
        self,
        config: ClipperConfig | None = None,
        *,
        http_client: HttpClient | None = None,
        transcoder: ImageTranscoder | None = None,
        on_event: EventEmitter | None = None,
    ) -> None:
        """
        Initialize the embedder.

        Args:
            config: Configuration (defaults apply when omitted)
            http_client: HTTP client to download with. When omitted an
                AsyncHttpClient is created and closed with the context.
            transcoder: WebP transcoder (default deadline when omitted)
            on_event: Optional callback receiving EmbedEvents
        """
        self.config = config or ClipperConfig()
        self._http_client = http_client
        self._owns_client = http_client is None
        self._transcoder = transcoder or ImageTranscoder()
        self._on_event = on_event
        self._pipeline: EmbedPipeline | None = None
        self._stats = EmbedStats()

    @property
    def stats(self) -> EmbedStats:
        """Statistics of the most recent run."""
        return self._stats

    async def __aenter__(self) -> ImageEmbedder:
        """Enter async context and initialize components."""
        if self._http_client is None:
            network = self.config.network
            client = AsyncHttpClient(
                max_content_size=network.max_image_bytes,
                user_agent=network.user_agent,
                proxy=network.proxy,
                default_timeout=self.config.images.fetch_timeout,
            )
            await client.__aenter__()
            self._http_client = client

        fetcher = ImageFetcher(
            self._http_client,
            url_validator=ImageUrlValidator(block_private_ips=self.config.network.block_private_ips),
        )
        self._pipeline = EmbedPipeline(
            steps=[
                FetchImageStep(fetcher),
                SizeGateStep(),
                TranscodeStep(self._transcoder),
                EncodeStep(),
            ]
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit async context and cleanup resources."""
        if self._owns_client and isinstance(self._http_client, AsyncHttpClient):
            await self._http_client.__aexit__(exc_type, exc_val, exc_tb)
            self._http_client = None
        self._pipeline = None

    def _emit(self, event: EmbedEvent) -> None:
        """Deliver an event to the listener. Listener errors are logged and never change results."""
        if self._on_event is None:
            return
        try:
            self._on_event(event)
        except Exception:
            logger.warning(f"Event listener failed on {event.type.value} event", exc_info=True)

    async def process(
        self,
        html: str,
        settings: ImageHandlingSettings | None = None,
        *,
        featured_url: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> list[ProcessedImage]:
        """
        Decide the embedding of every image in an article.

        Args:
            html: Extracted article HTML
            settings: Image handling settings for this capture
                (config.images when omitted)
            featured_url: URL of the page's featured image
            metadata: Page metadata; its "image" entry is used as the
                featured URL when featured_url is not given

        Returns:
            One ProcessedImage per detected image, featured image first
        """
        if self._pipeline is None:
            raise RuntimeError("ImageEmbedder not initialized. Use 'async with' context manager.")

        settings = settings or self.config.images
        if featured_url is None:
            featured_url = featured_url_from_metadata(metadata)

        stats = EmbedStats()
        start_time = time.monotonic()

        self._emit(
            EmbedEvent(
                type=EventType.STARTED,
                message=f"Image processing started ({settings.preference.value})",
            )
        )

        references = prioritize_featured(detect_images(html), featured_url)
        stats.images_detected = len(references)

        self._emit(
            EmbedEvent(
                type=EventType.IMAGES_DETECTED,
                total=len(references),
                message=f"Detected {len(references)} images",
            )
        )

        results: list[ProcessedImage] = []
        embedded_count = 0

        for index, reference in enumerate(references, start=1):
            result = await self._process_one(reference, settings, embedded_count, index, len(references), stats)
            if result.embed_type == EmbedType.BASE64:
                embedded_count += 1
            results.append(result)

        stats.duration_seconds = time.monotonic() - start_time
        self._stats = stats

        self._emit(
            EmbedEvent(
                type=EventType.COMPLETED,
                total=len(results),
                message=(
                    f"Image processing completed: {stats.images_embedded} embedded, "
                    f"{stats.images_external} external, {stats.images_failed} failed"
                ),
            )
        )
        logger.info(
            f"Processed {len(results)} images: {stats.images_embedded} embedded, "
            f"{stats.images_external} external"
        )
        return results

    async def _process_one(
        self,
        reference: ImageReference,
        settings: ImageHandlingSettings,
        embedded_count: int,
        index: int,
        total: int,
        stats: EmbedStats,
    ) -> ProcessedImage:
        start = time.perf_counter()

        self._emit(
            EmbedEvent(
                type=EventType.IMAGE_STARTED,
                url=reference.url,
                current=index,
                total=total,
                message=f"Processing image {index}/{total}",
            )
        )

        decision = decide(settings, embedded_count)
        ctx: ImageContext | None = None
        if decision.should_fetch:
            assert self._pipeline is not None
            ctx = await self._pipeline.execute(reference, settings, emit=self._emit)
            stats.bytes_fetched += ctx.bytes_fetched
        else:
            logger.debug(f"Not embedding image {index}/{total}: {decision.reason}")

        elapsed_ms = (time.perf_counter() - start) * 1000

        if ctx is not None and ctx.data_url and ctx.transcoded is not None:
            stats.images_embedded += 1
            self._emit(
                EmbedEvent(
                    type=EventType.IMAGE_EMBEDDED,
                    url=reference.url,
                    current=index,
                    total=total,
                    message=f"Embedded as {ctx.transcoded.mime_type} ({len(ctx.data_url)} chars)",
                )
            )
            return ProcessedImage(
                original_url=reference.url,
                embed_type=EmbedType.BASE64,
                format=ctx.transcoded.format,
                data_url=ctx.data_url,
                mime_type=ctx.transcoded.mime_type,
                alt=reference.alt,
                is_featured=reference.is_featured,
                processing_time_ms=elapsed_ms,
            )

        error = ctx.error if ctx is not None else None
        reason = ctx.skip_reason if ctx is not None else decision.reason
        stats.images_external += 1
        if error:
            stats.images_failed += 1

        self._emit(
            EmbedEvent(
                type=EventType.IMAGE_EXTERNAL,
                url=reference.url,
                current=index,
                total=total,
                error=error,
                message=f"Kept external: {reason}" if reason else "Kept external",
            )
        )
        return ProcessedImage(
            original_url=reference.url,
            embed_type=EmbedType.EXTERNAL,
            format=ImageFormat.ORIGINAL,
            alt=reference.alt,
            is_featured=reference.is_featured,
            processing_time_ms=elapsed_ms,
            error=error,
        )


async def process_images(
    html: str,
    settings: ImageHandlingSettings | None = None,
    *,
    featured_url: str | None = None,
    metadata: Mapping[str, Any] | None = None,
    config: ClipperConfig | None = None,
    http_client: HttpClient | None = None,
    on_event: EventEmitter | None = None,
) -> list[ProcessedImage]:
    """
    Run one capture's image embedding with a short-lived ImageEmbedder.

    Example:
        results = await process_images(
            article_html,
            ImageHandlingSettings(preference=ImagePreference.SMART),
            featured_url="https://example.com/hero.jpg",
        )
    """
    async with ImageEmbedder(config, http_client=http_client, on_event=on_event) as embedder:
        return await embedder.process(html, settings, featured_url=featured_url, metadata=metadata)


def process_images_blocking(
    html: str,
    settings: ImageHandlingSettings | None = None,
    **kwargs: Any,
) -> list[ProcessedImage]:
    """
    Blocking wrapper around process_images() for sync callers.

    WARNING: Do not call from within an existing event loop (e.g., Jupyter,
    asyncio-based frameworks). Use the async API instead.
    """
    # Detect if we're already in an async context
    try:
        asyncio.get_running_loop()
        raise RuntimeError("process_images_blocking() called from async context. Use process_images() instead.")
    except RuntimeError as e:
        if "no running event loop" not in str(e).lower():
            raise

    return asyncio.run(process_images(html, settings, **kwargs))
