"""Pipeline steps for per-image embedding."""

from .encode import EncodeStep
from .fetch import FetchImageStep
from .size_gate import SizeGateStep
from .transcode import TranscodeStep

__all__ = [
    "EncodeStep",
    "FetchImageStep",
    "SizeGateStep",
    "TranscodeStep",
]
