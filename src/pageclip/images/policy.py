"""Per-image embedding policy."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..models.config import ImageHandlingSettings, ImagePreference
from ..models.images import ImageReference

# Hard ceiling on data URL length, in characters
MAX_DATA_URL_CHARS = 2_000_000


class Decision(str, Enum):
    """Pre-fetch decision for one image."""

    EMBED = "embed"
    SKIP = "skip"


@dataclass(frozen=True)
class PolicyDecision:
    """Outcome of decide(), with the reason an image is skipped."""

    decision: Decision
    reason: Optional[str] = None

    @property
    def should_fetch(self) -> bool:
        return self.decision == Decision.EMBED


def decide(settings: ImageHandlingSettings, embedded_count: int) -> PolicyDecision:
    """
    Decide, before any download, whether to try embedding the next image.

    NEVER skips everything. ALWAYS and SMART both attempt the embed; SMART
    applies its size threshold only once the byte length is known (see
    exceeds_size_threshold). The image itself is not consulted: the count
    budget binds the featured image like any other, so the number of
    inlined images can never exceed max_embedded_images.
    """
    if settings.preference == ImagePreference.NEVER:
        return PolicyDecision(Decision.SKIP, "image embedding disabled")

    if embedded_count >= settings.max_embedded_images:
        return PolicyDecision(
            Decision.SKIP,
            f"embedded image limit reached ({settings.max_embedded_images})",
        )

    return PolicyDecision(Decision.EMBED)


def exceeds_size_threshold(
    reference: ImageReference,
    settings: ImageHandlingSettings,
    byte_length: int,
) -> bool:
    """Smart mode: True when a downloaded, non-featured image is too big to inline."""
    return (
        settings.preference == ImagePreference.SMART
        and byte_length > settings.size_threshold_bytes
        and not reference.is_featured
    )


def check_output_ceiling(data_url: str) -> Optional[str]:
    """
    Enforce the hard data URL size ceiling.

    Applies to every image, featured ones included.

    Returns:
        An error message when the data URL is too large, else None
    """
    if len(data_url) > MAX_DATA_URL_CHARS:
        return f"Image too large for inline embedding ({len(data_url)} chars, limit {MAX_DATA_URL_CHARS})"
    return None
