"""Pageclip configuration, image and event models."""

from .config import ByteSize, ClipperConfig, ImageHandlingSettings, ImagePreference, NetworkConfig
from .events import EmbedEvent, EmbedStats, EventType
from .images import EmbedType, ImageDimensions, ImageFormat, ImageReference, ProcessedImage

__all__ = [
    # Config
    "ByteSize",
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
