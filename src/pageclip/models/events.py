"""Event types emitted while embedding images for a capture."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class EventType(str, Enum):
    """Types of events emitted during an embedding run."""

    # Lifecycle events
    STARTED = "started"
    COMPLETED = "completed"

    # Detection phase
    IMAGES_DETECTED = "images_detected"

    # Per-image phase
    IMAGE_STARTED = "image_started"
    IMAGE_FETCHED = "image_fetched"
    IMAGE_FETCH_FAILED = "image_fetch_failed"
    IMAGE_TRANSCODED = "image_transcoded"
    IMAGE_EMBEDDED = "image_embedded"
    IMAGE_EXTERNAL = "image_external"


@dataclass
class EmbedEvent:
    """
    Event emitted during an embedding run.

    Example:
        def on_event(event: EmbedEvent) -> None:
            if event.type == EventType.IMAGE_STARTED:
                print(f"Image {event.current}/{event.total}: {event.url}")
            elif event.is_error:
                print(f"Error: {event.url} - {event.error}")
    """

    type: EventType

    # Timestamp (always UTC)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    # Common fields
    url: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None

    # Progress tracking
    current: Optional[int] = None
    total: Optional[int] = None

    # Typed payload fields for specific events
    bytes_downloaded: Optional[int] = None
    status_code: Optional[int] = None
    content_type: Optional[str] = None

    @property
    def progress_percent(self) -> Optional[float]:
        """Calculate progress percentage if current and total are set."""
        if self.current is not None and self.total and self.total > 0:
            return (self.current / self.total) * 100
        return None

    @property
    def is_error(self) -> bool:
        """Check if this is an error event."""
        return self.type == EventType.IMAGE_FETCH_FAILED or (
            self.type == EventType.IMAGE_EXTERNAL and self.error is not None
        )


@dataclass
class EmbedStats:
    """
    Cumulative statistics for one embedding run.

    Collected during the run and available on completion.
    """

    images_detected: int = 0
    images_embedded: int = 0
    images_external: int = 0
    images_failed: int = 0
    bytes_fetched: int = 0
    duration_seconds: float = 0.0

    @property
    def embed_rate(self) -> float:
        """Share of detected images that were inlined, as a percentage."""
        if self.images_detected == 0:
            return 0.0
        return (self.images_embedded / self.images_detected) * 100

    def to_dict(self) -> dict:
        """Convert stats to dictionary for serialization."""
        return {
            "images_detected": self.images_detected,
            "images_embedded": self.images_embedded,
            "images_external": self.images_external,
            "images_failed": self.images_failed,
            "bytes_fetched": self.bytes_fetched,
            "duration_seconds": round(self.duration_seconds, 2),
            "embed_rate": round(self.embed_rate, 1),
        }
