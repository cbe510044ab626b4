"""
OpenImageIO adapter for robust interaction with ImageBuf results.

Normalizes origin, alpha handling and error checking so filters can treat
every ImageBuf the same way.
"""

from typing import Optional, Tuple
import OpenImageIO as oiio

from ..core import FilterError


class OiioAdapter:
    """Thin wrapper for robust OIIO bindings."""

    @staticmethod
    def image_size(buf: oiio.ImageBuf) -> Tuple[int, int]:
        """Return (width, height) of the image's data window."""
        spec = buf.spec()
        return spec.width, spec.height

    @staticmethod
    def checked(result: Optional[oiio.ImageBuf], operation: str) -> oiio.ImageBuf:
        """Raise FilterError if an ImageBufAlgo call failed."""
        if result is None:
            raise FilterError(f"{operation} failed")
        if result.has_error:
            raise FilterError(f"{operation} failed: {result.geterror()}")
        return result

    @staticmethod
    def reset_origin(buf: oiio.ImageBuf) -> oiio.ImageBuf:
        """Move the data window to (0, 0) if an operation shifted it."""
        roi = buf.roi
        if roi.xbegin == 0 and roi.ybegin == 0:
            return buf
        return OiioAdapter.checked(oiio.ImageBufAlgo.cut(buf, roi), "cut")

    @staticmethod
    def split_alpha(buf: oiio.ImageBuf) -> Tuple[oiio.ImageBuf, Optional[oiio.ImageBuf]]:
        """Separate colour channels from the alpha channel (None if there is none)."""
        spec = buf.spec()
        alpha = spec.alpha_channel
        if alpha < 0:
            return buf, None

        color_channels = tuple(c for c in range(spec.nchannels) if c != alpha)
        color = OiioAdapter.checked(
            oiio.ImageBufAlgo.channels(buf, color_channels), "channels"
        )
        alpha_buf = OiioAdapter.checked(
            oiio.ImageBufAlgo.channels(buf, (alpha,)), "channels"
        )
        return color, alpha_buf

    @staticmethod
    def merge_alpha(color: oiio.ImageBuf, alpha: Optional[oiio.ImageBuf]) -> oiio.ImageBuf:
        """Inverse of split_alpha()."""
        if alpha is None:
            return color
        return OiioAdapter.checked(
            oiio.ImageBufAlgo.channel_append(color, alpha), "channel_append"
        )

    @staticmethod
    def ensure_rgba(buf: oiio.ImageBuf) -> oiio.ImageBuf:
        """Return an RGBA copy; missing alpha becomes fully opaque."""
        spec = buf.spec()
        nchannels = spec.nchannels
        alpha = spec.alpha_channel

        if nchannels < 3:
            # Gray (optionally with alpha)
            order = (0, 0, 0, alpha if alpha >= 0 else 1.0)
        elif alpha >= 0:
            color = [c for c in range(nchannels) if c != alpha][:3]
            order = (color[0], color[1], color[2], alpha)
        else:
            order = (0, 1, 2, 1.0)

        result = oiio.ImageBufAlgo.channels(
            buf, order, newchannelnames=("R", "G", "B", "A")
        )
        result = OiioAdapter.checked(result, "channels")
        result.specmod().alpha_channel = 3
        return result

    @staticmethod
    def get_oiio_version() -> str:
        """Return OIIO version string."""
        if hasattr(oiio, '__version__'):
            return str(oiio.__version__)
        return "unknown"
