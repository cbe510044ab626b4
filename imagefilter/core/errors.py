"""
Error taxonomy for the image filter pipeline.

Setup errors stop a pipeline from becoming servable. Filter errors are
recoverable and contained by the executor. Request errors end a single
request with a client-facing status. Cancellation is neither.
"""

from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .types import ValidationIssue


class ImageFilterError(Exception):
    """Base class for all image filter errors."""


# ============================================================================
# SETUP ERRORS
# ============================================================================

class ConfigurationError(ImageFilterError):
    """Configuration could not be turned into a servable pipeline."""

    def __init__(self, message: str, issues: Optional[List["ValidationIssue"]] = None):
        super().__init__(message)
        self.issues = list(issues or [])


class UnknownFilterError(ConfigurationError):
    """No filter is registered under the requested name."""

    def __init__(self, name: str):
        super().__init__(f"unrecognized image filter '{name}'")
        self.name = name


class ArgumentCountError(ConfigurationError):
    """Positional arguments do not match the filter's arity."""


class TooFewArgumentsError(ArgumentCountError):
    def __init__(self, filter_id: str, minimum: int, given: int):
        super().__init__(
            f"too few arguments for '{filter_id}': expected at least {minimum}, got {given}"
        )


class TooManyArgumentsError(ArgumentCountError):
    def __init__(self, filter_id: str, maximum: int, given: int):
        super().__init__(
            f"too many arguments for '{filter_id}': expected at most {maximum}, got {given}"
        )


class DuplicateFilterError(ImageFilterError):
    """
    A filter name was registered twice.

    This is a programming error in how filters are bundled. Nothing in the
    package catches it, so it aborts start-up.
    """

    def __init__(self, name: str):
        super().__init__(f"image filter '{name}' is already registered")
        self.name = name


# ============================================================================
# REQUEST-TIME ERRORS
# ============================================================================

class FilterError(ImageFilterError):
    """A single filter could not be applied. The pipeline skips it."""

    def __init__(self, message: str, raw: Optional[str] = None, expanded: Optional[str] = None):
        if raw is not None:
            message = f"{message} (raw {raw!r}, expanded {expanded!r})"
        super().__init__(message)
        self.raw = raw
        self.expanded = expanded


class EncodingError(ImageFilterError):
    """The filtered image could not be written in the chosen format."""


class RequestCancelled(ImageFilterError):
    """The request was cancelled before the pipeline finished."""


class AdmissionCancelled(RequestCancelled):
    """The request was cancelled while waiting for a pipeline slot."""


class RequestError(ImageFilterError):
    """A request failed with a client-facing status."""

    status = 500

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        if status is not None:
            self.status = status


class SourceNotFoundError(RequestError):
    status = 404


class UnsupportedMediaError(RequestError):
    status = 415
