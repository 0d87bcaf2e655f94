"""Data URL encoding of image bytes."""

import base64
import logging

logger = logging.getLogger(__name__)

# Multiple of 3 so chunk boundaries never introduce base64 padding
CHUNK_SIZE = 57 * 1024


def to_data_url(data: bytes, mime_type: str, chunk_size: int = CHUNK_SIZE) -> str:
    """
    Encode bytes as a ``data:<mime>;base64,<payload>`` URL.

    The input is encoded chunk by chunk and the MIME-style line breaks are
    removed from the assembled payload.

    Returns:
        The data URL, or an empty string when encoding fails. An empty
        string never stands for a zero-length image.
    """
    if chunk_size <= 0 or chunk_size % 3:
        raise ValueError(f"chunk_size must be a positive multiple of 3, got {chunk_size}")

    try:
        if not data:
            raise ValueError("no image data to encode")
        if not mime_type or "/" not in mime_type:
            raise ValueError(f"invalid MIME type: {mime_type!r}")

        view = memoryview(data)
        parts = [base64.encodebytes(view[i : i + chunk_size]) for i in range(0, len(view), chunk_size)]
        payload = b"".join(parts).replace(b"\r", b"").replace(b"\n", b"").decode("ascii")
        return f"data:{mime_type};base64,{payload}"

    except (TypeError, ValueError) as e:
        logger.error(f"Base64 conversion failed: {e}")
        return ""
