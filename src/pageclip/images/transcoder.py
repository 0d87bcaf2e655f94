"""Lossy WebP re-encoding with a fixed wall-clock budget."""

from __future__ import annotations

import asyncio
import io
import logging
import time
from concurrent.futures import Executor
from dataclasses import dataclass
from typing import Callable

import filetype
from PIL import Image

from ..models.images import ImageFormat

logger = logging.getLogger(__name__)

# Independent of the per-image fetch timeout
TRANSCODE_DEADLINE_SECONDS = 2.0

WEBP_MIME = "image/webp"
FALLBACK_MIME = "application/octet-stream"

Codec = Callable[[bytes, int], bytes]


@dataclass(frozen=True)
class TranscodeResult:
    """Bytes to embed, tagged with how they were produced."""

    data: bytes
    format: ImageFormat
    mime_type: str


def detect_mime_type(data: bytes, content_type: str = "") -> str:
    """
    Determine the MIME type of raw image bytes.

    The file signature wins; the server's Content-Type is used only when it
    names an image type.
    """
    kind = filetype.guess(data)
    if kind and kind.mime.startswith("image/"):
        return kind.mime
    if content_type:
        base_type = content_type.lower().split(";")[0].strip()
        if base_type.startswith("image/"):
            return base_type
    return FALLBACK_MIME


def encode_webp(data: bytes, quality: int) -> bytes:
    """
    Decode any Pillow-readable image and re-encode it as lossy WebP.

    Animated sources keep only their first frame.

    Raises:
        PIL.UnidentifiedImageError: If the bytes are not a decodable image
        OSError: If encoding fails
    """
    with io.BytesIO(data) as buffer:
        with Image.open(buffer) as img:
            img.load()
            has_alpha = img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info)
            target_mode = "RGBA" if has_alpha else "RGB"
            frame = img if img.mode == target_mode else img.convert(target_mode)

            out_buffer = io.BytesIO()
            frame.save(out_buffer, format="WEBP", quality=quality)
            return out_buffer.getvalue()


class ImageTranscoder:
    """
    Re-encodes images to WebP, racing the codec against a deadline.

    The codec runs in an executor thread. When the deadline elapses first
    the caller stops waiting and receives the untouched input bytes tagged
    ORIGINAL; the abandoned conversion may keep running in its thread but
    its result is discarded. Decode/encode errors degrade the same way, so
    transcode() never raises for bad image data.

    Example:
        transcoder = ImageTranscoder()
        result = await transcoder.transcode(raw_bytes, quality=85)
        if result.format == ImageFormat.WEBP:
            print(f"Shrunk to {len(result.data)} bytes")
    """

    def __init__(
        self,
        deadline: float = TRANSCODE_DEADLINE_SECONDS,
        codec: Codec = encode_webp,
        executor: Executor | None = None,
    ) -> None:
        """
        Initialize the transcoder.

        Args:
            deadline: Seconds to wait for the codec before falling back
            codec: Callable (bytes, quality) -> encoded bytes
            executor: Executor for the codec (loop default if None)
        """
        self._deadline = deadline
        self._codec = codec
        self._executor = executor

    def _fallback(self, data: bytes, content_type: str) -> TranscodeResult:
        return TranscodeResult(
            data=data,
            format=ImageFormat.ORIGINAL,
            mime_type=detect_mime_type(data, content_type),
        )

    async def transcode(self, data: bytes, quality: int, content_type: str = "") -> TranscodeResult:
        """
        Re-encode image bytes within the deadline.

        Args:
            data: Raw image bytes
            quality: Lossy quality, 0-100
            content_type: Content-Type the bytes were served with

        Returns:
            WEBP result on success, the original bytes otherwise
        """
        loop = asyncio.get_running_loop()
        start = time.monotonic()
        conversion = loop.run_in_executor(self._executor, self._codec, data, quality)

        try:
            encoded = await asyncio.wait_for(conversion, timeout=self._deadline)
        except asyncio.TimeoutError:
            logger.warning(f"WebP conversion exceeded {self._deadline:.1f}s deadline, keeping original bytes")
            return self._fallback(data, content_type)
        except Exception as e:
            logger.debug(f"WebP optimization failed: {e}")
            return self._fallback(data, content_type)

        if not encoded:
            logger.debug("WebP conversion produced no output, keeping original bytes")
            return self._fallback(data, content_type)

        elapsed_ms = (time.monotonic() - start) * 1000
        logger.debug(f"Transcoded {len(data)} -> {len(encoded)} bytes in {elapsed_ms:.0f}ms")
        return TranscodeResult(data=encoded, format=ImageFormat.WEBP, mime_type=WEBP_MIME)
