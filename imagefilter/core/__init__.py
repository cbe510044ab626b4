"""Core types, errors, request context and validation."""

from .types import (
    ValidationSeverity,
    ValidationIssue,
    PngCompression,
    EncodingOptions,
    HandlerSettings,
    ServerSettings,
    DEFAULT_JPEG_QUALITY,
)
from .errors import (
    ImageFilterError,
    ConfigurationError,
    UnknownFilterError,
    ArgumentCountError,
    TooFewArgumentsError,
    TooManyArgumentsError,
    DuplicateFilterError,
    FilterError,
    EncodingError,
    RequestCancelled,
    AdmissionCancelled,
    RequestError,
    SourceNotFoundError,
    UnsupportedMediaError,
)
from .context import CancelToken, Replacer, RunContext
from .validation import ValidationEngine, MAX_FILTERS

__all__ = [
    "ValidationSeverity",
    "ValidationIssue",
    "PngCompression",
    "EncodingOptions",
    "HandlerSettings",
    "ServerSettings",
    "DEFAULT_JPEG_QUALITY",
    "ImageFilterError",
    "ConfigurationError",
    "UnknownFilterError",
    "ArgumentCountError",
    "TooFewArgumentsError",
    "TooManyArgumentsError",
    "DuplicateFilterError",
    "FilterError",
    "EncodingError",
    "RequestCancelled",
    "AdmissionCancelled",
    "RequestError",
    "SourceNotFoundError",
    "UnsupportedMediaError",
    "CancelToken",
    "Replacer",
    "RunContext",
    "ValidationEngine",
    "MAX_FILTERS",
]
