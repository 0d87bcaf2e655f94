"""
pageclip - Capture web articles with adaptive inline image embedding.

Usage:
    from pageclip import ImageEmbedder, ImageHandlingSettings, ImagePreference

    settings = ImageHandlingSettings(preference=ImagePreference.SMART)

    async with ImageEmbedder() as embedder:
        results = await embedder.process(article_html, settings, featured_url=og_image)
        for image in results:
            print(image.original_url, image.embed_type.value)
"""

__version__ = "1.0.0"

from .core.embedder import ImageEmbedder, process_images, process_images_blocking
from .models.config import ClipperConfig, ImageHandlingSettings, ImagePreference, NetworkConfig
from .models.events import EmbedEvent, EmbedStats, EventType
from .models.images import EmbedType, ImageDimensions, ImageFormat, ImageReference, ProcessedImage

__all__ = [
    "__version__",
    # Core
    "ImageEmbedder",
    "process_images",
    "process_images_blocking",
    # Config
    "ClipperConfig",
    "ImageHandlingSettings",
    "ImagePreference",
    "NetworkConfig",
    # Images
    "EmbedType",
    "ImageDimensions",
    "ImageFormat",
    "ImageReference",
    "ProcessedImage",
    # Events
    "EmbedEvent",
    "EmbedStats",
    "EventType",
]
