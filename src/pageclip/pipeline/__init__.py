"""Pipeline architecture for per-image embedding."""

from .base import EmbedPipeline, EmbedStep, EventEmitter, ImageContext

__all__ = ["EmbedPipeline", "EmbedStep", "EventEmitter", "ImageContext"]
