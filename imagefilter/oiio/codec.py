"""
Codec boundary: source bytes in, ImageBuf out, and back again.

Decoding failures surface as unsupported media. Encoding re-uses the source
format when OpenImageIO can write it and falls back to PNG otherwise.
"""

import logging
import mimetypes
import os
import tempfile
import threading
from dataclasses import dataclass
from typing import Dict, Optional

import OpenImageIO as oiio

from ..core import (
    EncodingError,
    EncodingOptions,
    UnsupportedMediaError,
)
from .adapter import OiioAdapter

logger = logging.getLogger(__name__)

# OIIO format name -> file extension (used to find a writer and a MIME type)
FORMAT_EXTENSIONS = {
    "jpeg": "jpg",
    "png": "png",
    "gif": "gif",
    "bmp": "bmp",
    "tiff": "tif",
    "webp": "webp",
    "openexr": "exr",
    "targa": "tga",
    "hdr": "hdr",
    "ico": "ico",
    "pnm": "pnm",
    "jpeg2000": "jp2",
    "heif": "heic",
    "dpx": "dpx",
    "sgi": "sgi",
    "psd": "psd",
    "dds": "dds",
}

FALLBACK_FORMAT = "png"

# Formats written with the image's own pixel type instead of 8 bits
FLOAT_FORMATS = {"openexr", "hdr"}

JPEG_EXTENSIONS = {"jpg", "jpeg"}


@dataclass
class DecodedImage:
    """An in-memory image and the format it was decoded from."""
    image: oiio.ImageBuf
    format_name: str


@dataclass(frozen=True)
class OutputFormat:
    """The format a response will be encoded in."""
    format_name: str
    extension: str
    content_type: Optional[str]  # None = do not send a Content-Type
    fallback: bool = False


class ImageCodec:
    """Decodes request sources and encodes filtered results."""

    def __init__(self, encoding: Optional[EncodingOptions] = None):
        self.encoding = encoding or EncodingOptions()
        self._writers: Dict[str, bool] = {}
        self._writers_lock = threading.Lock()

    # ========== Decoding ==========

    def decode(self, data: bytes, name_hint: str = "") -> DecodedImage:
        """
        Decode source bytes into a float ImageBuf held in memory.

        Args:
            data: Encoded image bytes
            name_hint: Source file name; its extension helps format detection

        Raises:
            UnsupportedMediaError: if no reader can decode the data
        """
        suffix = os.path.splitext(name_hint)[1]
        with tempfile.TemporaryDirectory(prefix="imagefilter-") as tmp:
            path = os.path.join(tmp, "source" + suffix)
            with open(path, "wb") as f:
                f.write(data)

            inp = oiio.ImageInput.open(path)
            if not inp:
                raise UnsupportedMediaError(f"decoding of image failed: {oiio.geterror()}")
            try:
                spec = inp.spec()
                format_name = inp.format_name()
                pixels = inp.read_image(oiio.FLOAT)
                error = inp.geterror() if pixels is None else ""
            finally:
                inp.close()

        if pixels is None:
            raise UnsupportedMediaError(f"decoding of image failed: {error}")
        if spec.width <= 0 or spec.height <= 0:
            raise UnsupportedMediaError(
                f"decoded image has no pixels ({spec.width}x{spec.height})"
            )

        image_spec = oiio.ImageSpec(spec.width, spec.height, spec.nchannels, oiio.FLOAT)
        image_spec.channelnames = tuple(spec.channelnames)
        image_spec.alpha_channel = spec.alpha_channel
        image = oiio.ImageBuf(image_spec)
        if not image.set_pixels(image.roi, pixels):
            raise UnsupportedMediaError(f"decoding of image failed: {image.geterror()}")

        return DecodedImage(image=image, format_name=format_name)

    # ========== Format negotiation ==========

    def can_encode(self, extension: str) -> bool:
        """Whether OIIO has a writer for files with this extension."""
        with self._writers_lock:
            if extension not in self._writers:
                out = oiio.ImageOutput.create("image." + extension)
                if out is None:
                    # Clear the pending global error
                    logger.debug("no writer for %r: %s", extension, oiio.geterror())
                self._writers[extension] = out is not None
            return self._writers[extension]

    def output_format(self, format_name: str) -> OutputFormat:
        """
        Choose the output format for an image decoded from format_name.

        Never fails: formats without a writer fall back to PNG.
        """
        name = (format_name or "").lower()
        extension = FORMAT_EXTENSIONS.get(name, name)
        fallback = False

        if not extension or not self.can_encode(extension):
            logger.info("not supported format %r, falling back to %s", format_name, FALLBACK_FORMAT)
            name = FALLBACK_FORMAT
            extension = FORMAT_EXTENSIONS[FALLBACK_FORMAT]
            fallback = True

        # Host mime database, quirks included; unmapped extensions (tga on
        # most hosts) give None and no Content-Type is sent
        content_type, _ = mimetypes.guess_type("image." + extension)
        return OutputFormat(
            format_name=name,
            extension=extension,
            content_type=content_type,
            fallback=fallback,
        )

    # ========== Encoding ==========

    def encode(self, image: oiio.ImageBuf, output: OutputFormat) -> bytes:
        """
        Encode an image in the chosen output format.

        Raises:
            EncodingError: if the writer rejects the image
        """
        with tempfile.TemporaryDirectory(prefix="imagefilter-") as tmp:
            path = os.path.join(tmp, "output." + output.extension)
            out = oiio.ImageOutput.create(path)
            if not out:
                raise EncodingError(f"no writer for '{output.extension}': {oiio.geterror()}")

            try:
                if image.spec().alpha_channel >= 0 and not out.supports("alpha"):
                    image, _ = OiioAdapter.split_alpha(image)

                src_spec = image.spec()
                pixel_type = src_spec.format if output.format_name in FLOAT_FORMATS else oiio.UINT8
                out_spec = oiio.ImageSpec(
                    src_spec.width, src_spec.height, src_spec.nchannels, pixel_type
                )
                out_spec.channelnames = tuple(src_spec.channelnames)
                out_spec.alpha_channel = src_spec.alpha_channel
                self._apply_encoding_options(out_spec, output)

                if not out.open(path, out_spec):
                    raise EncodingError(f"opening output failed: {out.geterror()}")
                if not out.write_image(image.get_pixels(pixel_type)):
                    raise EncodingError(f"writing image failed: {out.geterror()}")
            finally:
                out.close()

            with open(path, "rb") as f:
                return f.read()

    def _apply_encoding_options(self, spec: oiio.ImageSpec, output: OutputFormat) -> None:
        """Set quality/compression attributes understood by the writers."""
        if output.extension in JPEG_EXTENSIONS:
            spec.attribute("compression", f"jpeg:{self.encoding.jpeg_quality}")
        elif output.extension == "png":
            spec.attribute("png:compressionLevel", self.encoding.png_compression.zlib_level)
