"""Image detection, download, transcoding, encoding and policy."""

from .detector import detect_images
from .encoder import to_data_url
from .featured import extract_featured_url, featured_url_from_metadata
from .fetcher import FetchFailure, FetchOutcome, ImageFetcher
from .policy import (
    MAX_DATA_URL_CHARS,
    Decision,
    PolicyDecision,
    check_output_ceiling,
    decide,
    exceeds_size_threshold,
)
from .prioritizer import prioritize_featured
from .transcoder import (
    TRANSCODE_DEADLINE_SECONDS,
    ImageTranscoder,
    TranscodeResult,
    detect_mime_type,
    encode_webp,
)

__all__ = [
    # Detection
    "detect_images",
    "extract_featured_url",
    "featured_url_from_metadata",
    "prioritize_featured",
    # Fetch
    "FetchFailure",
    "FetchOutcome",
    "ImageFetcher",
    # Transcode / encode
    "TRANSCODE_DEADLINE_SECONDS",
    "ImageTranscoder",
    "TranscodeResult",
    "detect_mime_type",
    "encode_webp",
    "to_data_url",
    # Policy
    "MAX_DATA_URL_CHARS",
    "Decision",
    "PolicyDecision",
    "check_output_ceiling",
    "decide",
    "exceeds_size_threshold",
]
