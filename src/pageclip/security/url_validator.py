"""URL checks applied before an image download is attempted."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass
from urllib.parse import urlparse


@dataclass
class UrlValidationResult:
    """Result of URL validation."""

    is_valid: bool
    rejection_reason: str | None = None

    @staticmethod
    def valid() -> UrlValidationResult:
        """Create a valid result."""
        return UrlValidationResult(is_valid=True)

    @staticmethod
    def invalid(reason: str) -> UrlValidationResult:
        """Create an invalid result with reason."""
        return UrlValidationResult(is_valid=False, rejection_reason=reason)


class ImageUrlValidator:
    """
    Decides whether an image src can be downloaded at all.

    Image sources come straight from third-party HTML, so anything that is
    not an absolute http(s) URL is rejected without touching the network.
    Optionally blocks private, loopback and link-local addresses as well.

    Example:
        validator = ImageUrlValidator(block_private_ips=True)
        result = validator.validate("http://10.0.0.5/pixel.gif")
        if not result.is_valid:
            print(f"Rejected: {result.rejection_reason}")
    """

    ALLOWED_SCHEMES = frozenset({"http", "https"})
    LOCALHOST_NAMES = frozenset({"localhost", "localhost.localdomain"})

    def __init__(self, block_private_ips: bool = False) -> None:
        self.block_private_ips = block_private_ips

    def validate(self, url: str) -> UrlValidationResult:
        """
        Validate an image URL.

        Args:
            url: The src attribute to check

        Returns:
            UrlValidationResult with is_valid and optional rejection_reason
        """
        try:
            parsed = urlparse(url)
        except ValueError:
            return UrlValidationResult.invalid("Invalid URL format")

        if parsed.scheme.lower() not in self.ALLOWED_SCHEMES:
            if not parsed.scheme:
                return UrlValidationResult.invalid("Relative URL cannot be fetched")
            return UrlValidationResult.invalid(f"Scheme '{parsed.scheme}' not allowed")

        if not parsed.hostname:
            return UrlValidationResult.invalid("URL has no host")

        if self.block_private_ips:
            hostname = parsed.hostname.lower()
            if hostname in self.LOCALHOST_NAMES:
                return UrlValidationResult.invalid("Localhost URLs not allowed")
            ip_result = self._check_ip_address(hostname)
            if ip_result is not None:
                return ip_result

        return UrlValidationResult.valid()

    def _check_ip_address(self, hostname: str) -> UrlValidationResult | None:
        """Return a rejection if hostname is a non-public IP literal."""
        try:
            ip = ipaddress.ip_address(hostname)
        except ValueError:
            # Not an IP address (it's a domain name)
            return None

        if ip.is_private:
            return UrlValidationResult.invalid(f"Private IP address '{hostname}' not allowed")
        if ip.is_loopback:
            return UrlValidationResult.invalid(f"Loopback IP address '{hostname}' not allowed")
        if ip.is_link_local:
            return UrlValidationResult.invalid(f"Link-local IP address '{hostname}' not allowed")
        if ip.is_reserved:
            return UrlValidationResult.invalid(f"Reserved IP address '{hostname}' not allowed")
        return None

    def is_valid(self, url: str) -> bool:
        """Quick check if URL can be fetched."""
        return self.validate(url).is_valid
