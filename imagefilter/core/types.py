"""
Core data types for the image filter pipeline.

Plain dataclasses and enums; no loose dicts at the internal API boundary.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Optional, Union


class ValidationSeverity(Enum):
    """Validation issue severity."""
    ERROR = auto()
    WARNING = auto()


@dataclass
class ValidationIssue:
    """A single validation finding."""
    severity: ValidationSeverity
    code: str  # machine-readable code (e.g., "NO_FILTERS")
    message: str  # human-readable message
    context: dict[str, Any] = field(default_factory=dict)


class PngCompression(Enum):
    """PNG compression presets, numbered the way configuration files write them."""
    DEFAULT = 0
    NO_COMPRESSION = -1
    BEST_SPEED = -2
    BEST_COMPRESSION = -3

    @property
    def zlib_level(self) -> int:
        """Compression level handed to the PNG writer."""
        return {
            PngCompression.DEFAULT: 6,
            PngCompression.NO_COMPRESSION: 0,
            PngCompression.BEST_SPEED: 1,
            PngCompression.BEST_COMPRESSION: 9,
        }[self]

    @staticmethod
    def parse(value: Union[int, str, "PngCompression"]) -> "PngCompression":
        """Accept an integer level, its string form, or a preset name."""
        if isinstance(value, PngCompression):
            return value
        if isinstance(value, str):
            text = value.strip().lower()
            if text in _PNG_COMPRESSION_NAMES:
                return _PNG_COMPRESSION_NAMES[text]
            try:
                value = int(text)
            except ValueError:
                raise ValueError(f"invalid png_compression {value!r}") from None
        try:
            return PngCompression(value)
        except ValueError:
            raise ValueError("png_compression must be between -3 and 0") from None


_PNG_COMPRESSION_NAMES = {
    "default": PngCompression.DEFAULT,
    "none": PngCompression.NO_COMPRESSION,
    "no": PngCompression.NO_COMPRESSION,
    "fastest": PngCompression.BEST_SPEED,
    "best_speed": PngCompression.BEST_SPEED,
    "best": PngCompression.BEST_COMPRESSION,
    "best_compression": PngCompression.BEST_COMPRESSION,
}


DEFAULT_JPEG_QUALITY = 75


@dataclass(frozen=True)
class EncodingOptions:
    """Output encoding parameters, fixed per pipeline."""
    jpeg_quality: int = DEFAULT_JPEG_QUALITY
    png_compression: PngCompression = PngCompression.DEFAULT


@dataclass(frozen=True)
class HandlerSettings:
    """Request handling options."""
    root: str = "."  # template, expanded per request
    max_concurrent: int = 0  # 0 = unlimited
    expose_filter_errors: bool = False
    request_timeout: Optional[float] = None  # seconds


@dataclass(frozen=True)
class ServerSettings:
    """Host server options."""
    host: str = "127.0.0.1"
    port: int = 8080
    log_level: str = "INFO"
