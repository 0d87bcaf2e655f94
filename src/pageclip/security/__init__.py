"""Security checks for outbound image requests."""

from .url_validator import ImageUrlValidator, UrlValidationResult

__all__ = ["ImageUrlValidator", "UrlValidationResult"]
