"""Capture-level orchestration of image embedding."""

from .embedder import ImageEmbedder, process_images, process_images_blocking

__all__ = ["ImageEmbedder", "process_images", "process_images_blocking"]
