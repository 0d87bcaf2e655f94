"""HTTP client for pageclip image downloads."""

from .client import AsyncHttpClient, ResponseTooLargeError
from .protocols import HttpClient, HttpResponse

__all__ = [
    "AsyncHttpClient",
    "HttpClient",
    "HttpResponse",
    "ResponseTooLargeError",
]
