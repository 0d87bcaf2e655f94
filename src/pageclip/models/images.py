"""Image reference and outcome models shared across the embedding pipeline."""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Optional


class EmbedType(str, Enum):
    """Whether an image ends up inlined or stays a remote reference."""

    BASE64 = "base64"
    EXTERNAL = "external"


class ImageFormat(str, Enum):
    """Encoding of the bytes behind an embedded image."""

    WEBP = "webp"
    ORIGINAL = "original"


@dataclass(frozen=True)
class ImageDimensions:
    """Declared width/height attributes of an <img> tag."""

    width: int
    height: int


@dataclass
class ImageReference:
    """
    One candidate image found in article HTML.

    Attributes:
        url: The src attribute exactly as written in the document
        alt: Alt text, if present and non-empty
        is_featured: Set by the prioritizer for the page's featured image
        dimensions: Declared dimensions, only when both are positive
    """

    url: str
    alt: Optional[str] = None
    is_featured: bool = False
    dimensions: Optional[ImageDimensions] = None


@dataclass(frozen=True)
class ProcessedImage:
    """
    Final embedding decision for one detected image.

    data_url is set if and only if embed_type is BASE64. The markdown
    rewrite replaces original_url with data_url for inlined images and
    leaves external ones untouched.
    """

    original_url: str
    embed_type: EmbedType = EmbedType.EXTERNAL
    format: ImageFormat = ImageFormat.ORIGINAL
    data_url: Optional[str] = None
    mime_type: Optional[str] = None
    alt: Optional[str] = None
    is_featured: bool = False
    processing_time_ms: Optional[float] = None
    error: Optional[str] = None

    def __post_init__(self) -> None:
        if (self.embed_type == EmbedType.BASE64) != bool(self.data_url):
            raise ValueError("data_url must be set exactly when embed_type is base64")

    @property
    def is_embedded(self) -> bool:
        """True when the image was inlined as a data URL."""
        return self.embed_type == EmbedType.BASE64

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        data = asdict(self)
        data["embed_type"] = self.embed_type.value
        data["format"] = self.format.value
        return data
