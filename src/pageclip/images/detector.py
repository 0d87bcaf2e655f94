"""Candidate image detection in extracted article HTML."""

import logging
import re
from typing import Optional

from bs4 import BeautifulSoup, Tag

from ..models.images import ImageDimensions, ImageReference

logger = logging.getLogger(__name__)

# Leading integer of a width/height attribute ("640", "640px")
_LEADING_INT = re.compile(r"\s*\+?(\d+)")


def _parse_dimension(value: object) -> int:
    """Parse an HTML dimension attribute, returning 0 when unusable."""
    if not isinstance(value, str):
        return 0
    match = _LEADING_INT.match(value)
    return int(match.group(1)) if match else 0


def _extract_dimensions(img: Tag) -> Optional[ImageDimensions]:
    width = _parse_dimension(img.get("width"))
    height = _parse_dimension(img.get("height"))
    if width > 0 and height > 0:
        return ImageDimensions(width=width, height=height)
    return None


def detect_images(html: str) -> list[ImageReference]:
    """
    Enumerate candidate images in document order.

    Inline data: sources are skipped and repeated srcs are collapsed onto
    their first occurrence. Parse failures yield an empty list rather
    than an exception.

    Args:
        html: Article HTML

    Returns:
        ImageReference list, none of them marked featured
    """
    try:
        soup = BeautifulSoup(html, "html.parser")

        seen: set[str] = set()
        references: list[ImageReference] = []

        for img in soup.find_all("img"):
            if not isinstance(img, Tag):
                continue

            src = img.get("src")
            if not isinstance(src, str) or not src.strip():
                continue
            if src.strip().lower().startswith("data:"):
                continue
            if src in seen:
                continue
            seen.add(src)

            alt = img.get("alt")
            references.append(
                ImageReference(
                    url=src,
                    alt=alt if isinstance(alt, str) and alt else None,
                    dimensions=_extract_dimensions(img),
                )
            )

        logger.debug(f"Detected {len(references)} candidate images")
        return references

    except Exception as e:
        logger.error(f"Error extracting images: {e}")
        return []
