"""Featured image discovery from page metadata."""

import logging
from collections.abc import Mapping
from typing import Any, Optional

from bs4 import BeautifulSoup, Tag

logger = logging.getLogger(__name__)

# Social preview meta tags, most specific first
FEATURED_META_TAGS = (
    ("property", "og:image"),
    ("property", "og:image:url"),
    ("name", "twitter:image"),
    ("name", "twitter:image:src"),
)


def featured_url_from_metadata(metadata: Optional[Mapping[str, Any]]) -> Optional[str]:
    """Return the page metadata's preview image URL, if any."""
    if not metadata:
        return None
    image = metadata.get("image")
    if isinstance(image, str) and image.strip():
        return image.strip()
    return None


def _meta_content(soup: BeautifulSoup, attr: str, value: str) -> Optional[str]:
    tag = soup.find("meta", attrs={attr: value})
    if not isinstance(tag, Tag):
        # Some sites put twitter:* in property= and og:* in name=
        other = "name" if attr == "property" else "property"
        tag = soup.find("meta", attrs={other: value})
    if isinstance(tag, Tag):
        content = tag.get("content")
        if isinstance(content, str) and content.strip():
            return content.strip()
    return None


def extract_featured_url(page_html: str) -> Optional[str]:
    """
    Find the featured (social preview) image URL in full page HTML.

    Checks Open Graph and Twitter card tags, then <link rel="image_src">.

    Args:
        page_html: The page's full HTML, including <head>

    Returns:
        The image URL, or None when the page declares none
    """
    try:
        soup = BeautifulSoup(page_html, "html.parser")

        for attr, value in FEATURED_META_TAGS:
            content = _meta_content(soup, attr, value)
            if content:
                return content

        link = soup.find("link", rel="image_src")
        if isinstance(link, Tag):
            href = link.get("href")
            if isinstance(href, str) and href.strip():
                return href.strip()

    except Exception as e:
        logger.warning(f"Failed to extract featured image: {e}")

    return None
