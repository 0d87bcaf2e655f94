"""TranscodeStep - lossy re-encode pipeline step."""

from typing import Optional

from ...images.transcoder import ImageTranscoder
from ...models.events import EmbedEvent, EventType
from ...models.images import ImageFormat
from ..base import EventEmitter, ImageContext


class TranscodeStep:
    """
    Pipeline step that re-encodes downloaded bytes to WebP.

    Never skips: a slow or failing conversion leaves the original bytes
    in ctx.transcoded, tagged ORIGINAL.
    """

    name = "transcode"

    def __init__(self, transcoder: ImageTranscoder) -> None:
        self._transcoder = transcoder

    async def execute(
        self,
        ctx: ImageContext,
        emit: Optional[EventEmitter] = None,
    ) -> ImageContext:
        if ctx.data is None:
            raise ValueError("no image data to transcode")

        ctx.transcoded = await self._transcoder.transcode(
            ctx.data,
            ctx.settings.quality,
            content_type=ctx.content_type,
        )

        if emit:
            converted = ctx.transcoded.format == ImageFormat.WEBP
            emit(
                EmbedEvent(
                    type=EventType.IMAGE_TRANSCODED,
                    url=ctx.url,
                    bytes_downloaded=len(ctx.transcoded.data),
                    content_type=ctx.transcoded.mime_type,
                    message="Converted to WebP" if converted else "Kept original encoding",
                )
            )

        return ctx
