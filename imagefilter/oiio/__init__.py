"""OpenImageIO integration: image helpers and the codec boundary."""

from .adapter import OiioAdapter
from .codec import ImageCodec, DecodedImage, OutputFormat, FALLBACK_FORMAT

__all__ = ["OiioAdapter", "ImageCodec", "DecodedImage", "OutputFormat", "FALLBACK_FORMAT"]
