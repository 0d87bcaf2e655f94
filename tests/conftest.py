"""Shared fixtures for pageclip tests."""

import io
from typing import Callable, Optional
from unittest.mock import AsyncMock

import pytest
from PIL import Image

from pageclip.http.protocols import HttpResponse


def _png(width: int = 8, height: int = 8, color: str = "red") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


def _response(content: bytes, status_code: int = 200, content_type: str = "image/png") -> HttpResponse:
    return HttpResponse(
        status_code=status_code,
        content=content,
        content_type=content_type,
        headers={"Content-Type": content_type},
        url="https://example.com/image",
    )


@pytest.fixture
def png_factory() -> Callable[..., bytes]:
    """Factory for small real PNG images: png_factory(width, height, color)."""
    return _png


@pytest.fixture
def png_bytes() -> bytes:
    return _png()


@pytest.fixture
def http_client():
    """
    Mock HTTP client whose get() serves a per-URL table of responses or exceptions.

    Register responses with http_client.serve(url, content, ...) or put an
    exception in http_client.routes[url]. Unknown URLs get a 404.
    """
    client = AsyncMock()
    client.routes = {}

    def serve(
        url: str,
        content: Optional[bytes] = None,
        status_code: int = 200,
        content_type: str = "image/png",
    ) -> None:
        client.routes[url] = _response(_png() if content is None else content, status_code, content_type)

    async def get(url, *, timeout=None, headers=None):
        outcome = client.routes.get(url)
        if outcome is None:
            return _response(b"", status_code=404, content_type="text/html")
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    client.serve = serve
    client.get.side_effect = get
    return client
