"""Pydantic configuration models for pageclip."""

from enum import Enum
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


class ImagePreference(str, Enum):
    """How eagerly images are inlined into the captured document."""

    ALWAYS = "always"
    SMART = "smart"
    NEVER = "never"


class ByteSize(int):
    """
    Custom type that parses human-readable byte sizes.

    Accepts:
        - Integers (bytes)
        - Strings like '500kb', '1mb'

    Examples:
        >>> ByteSize._parse('500kb')
        512000
        >>> ByteSize._parse('1mb')
        1048576
        >>> ByteSize._parse(512000)
        512000
    """

    @classmethod
    def __get_pydantic_core_schema__(cls, source: Any, handler: Any) -> Any:
        from pydantic_core import core_schema

        return core_schema.no_info_plain_validator_function(cls._parse)

    @classmethod
    def _parse(cls, v: Any) -> int:
        if isinstance(v, bool):
            raise ValueError(f"Invalid byte size: {v}")
        if isinstance(v, int):
            if v < 0:
                raise ValueError(f"Byte size must not be negative: {v}")
            return v
        if isinstance(v, str):
            v = v.lower().strip()
            # Order matters: check longer suffixes first
            units = [("gb", 1024**3), ("mb", 1024**2), ("kb", 1024), ("b", 1)]
            for unit, mult in units:
                if v.endswith(unit):
                    num_str = v[: -len(unit)].strip()
                    try:
                        return int(float(num_str) * mult)
                    except ValueError as err:
                        raise ValueError(f"Invalid number in byte size: {v}") from err
            # Try parsing as plain number
            try:
                return int(v)
            except ValueError:
                pass
        raise ValueError(f"Invalid byte size: {v}. Use format like '500kb', '1mb', or integer bytes.")


class ImageHandlingSettings(BaseModel):
    """
    Per-capture image embedding policy.

    Defaults mirror the settings store: smart preference, 500 KB threshold,
    at most 20 inlined images, quality 85 and a 5 second fetch timeout.
    """

    preference: ImagePreference = Field(ImagePreference.SMART, description="Embedding preference")
    size_threshold_bytes: ByteSize = Field(
        512000,
        description="Smart mode: non-featured images larger than this stay external (e.g. '500kb')",
    )
    max_embedded_images: int = Field(20, ge=0, description="Maximum images inlined per capture")
    quality: int = Field(85, ge=0, le=100, description="Lossy re-encode quality (0-100)")
    fetch_timeout_ms: int = Field(5000, ge=1, description="Per-image fetch timeout in milliseconds")

    model_config = {"extra": "forbid", "frozen": True}

    @property
    def fetch_timeout(self) -> float:
        """Fetch timeout in seconds."""
        return self.fetch_timeout_ms / 1000

    @classmethod
    def from_storage(cls, data: dict[str, Any]) -> "ImageHandlingSettings":
        """
        Build settings from the settings store's camelCase record.

        Missing keys fall back to defaults.
        """
        key_map = {
            "preference": "preference",
            "sizeThreshold": "size_threshold_bytes",
            "maxEmbeddedImages": "max_embedded_images",
            "webpQuality": "quality",
            "fetchTimeout": "fetch_timeout_ms",
        }
        values = {key_map[k]: v for k, v in data.items() if k in key_map and v is not None}
        return cls.model_validate(values)


class NetworkConfig(BaseModel):
    """Configuration for image downloads."""

    proxy: Optional[str] = Field(None, description="HTTP/HTTPS proxy URL")
    user_agent: Optional[str] = Field(None, description="Custom User-Agent header")
    max_image_bytes: ByteSize = Field(
        20 * 1024 * 1024,
        description="Abort downloads larger than this (e.g. '20mb')",
    )
    block_private_ips: bool = Field(
        False,
        description="Refuse to fetch images hosted on private or loopback addresses",
    )

    model_config = {"extra": "forbid"}


class ClipperConfig(BaseModel):
    """
    Root configuration model for pageclip.

    Example:
        config = ClipperConfig(
            images=ImageHandlingSettings(preference=ImagePreference.ALWAYS),
        )

    YAML format:
        images:
          preference: smart
          size_threshold_bytes: 500kb
          max_embedded_images: 10
        network:
          user_agent: my-clipper/1.0
        log_level: DEBUG
    """

    images: ImageHandlingSettings = Field(default_factory=ImageHandlingSettings)
    network: NetworkConfig = Field(default_factory=NetworkConfig)

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        "INFO",
        description="Logging level",
    )
    log_file: Optional[Path] = Field(None, description="Log file path")

    model_config = {"extra": "forbid"}

    def to_yaml(self) -> str:
        """Serialize config to YAML string."""
        import yaml

        return yaml.dump(self.model_dump(mode="json", exclude_none=True), default_flow_style=False)

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "ClipperConfig":
        """Load config from YAML string."""
        import yaml

        data = yaml.safe_load(yaml_str) or {}
        return cls.model_validate(data)

    @classmethod
    def from_yaml_file(cls, path: Path) -> "ClipperConfig":
        """Load config from YAML file."""
        return cls.from_yaml(path.read_text())
