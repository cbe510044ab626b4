"""Shared pytest fixtures."""

import numpy as np
import OpenImageIO as oiio
import pytest

from imagefilter.core import RunContext
from imagefilter.processing import create_registry


def make_image(width, height, nchannels=3, pixels=None):
    """Float ImageBuf filled with a deterministic gradient (or the given pixels)."""
    spec = oiio.ImageSpec(width, height, nchannels, oiio.FLOAT)
    if nchannels == 4:
        spec.alpha_channel = 3
    buf = oiio.ImageBuf(spec)
    if pixels is None:
        ys, xs = np.mgrid[0:height, 0:width].astype(np.float32)
        planes = [
            xs / max(1, width - 1),
            ys / max(1, height - 1),
            np.full_like(xs, 0.25),
            np.full_like(xs, 0.5),
        ]
        pixels = np.stack(planes[:nchannels], axis=-1)
    assert buf.set_pixels(buf.roi, np.ascontiguousarray(pixels, dtype=np.float32))
    return buf


def pixels_of(buf):
    """H x W x C float array of an ImageBuf."""
    return np.asarray(buf.get_pixels(oiio.FLOAT)).reshape(
        buf.spec().height, buf.spec().width, buf.spec().nchannels
    )


def write_image(path, buf, pixel_type=oiio.UINT8):
    """Write buf to path, format chosen by extension."""
    assert buf.write(str(path), pixel_type), buf.geterror()
    return path


def read_image(data, suffix=".png"):
    """Decode encoded bytes with OIIO via a temporary file."""
    import os
    import tempfile

    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "image" + suffix)
        with open(path, "wb") as f:
            f.write(data)
        buf = oiio.ImageBuf(path)
        buf.read(force=True)
        assert not buf.has_error, buf.geterror()
        return buf


@pytest.fixture
def context():
    """Run context with identity expansion and no cancellation."""
    return RunContext.create()


@pytest.fixture
def registry():
    return create_registry("all")


@pytest.fixture
def photo():
    """A 400 x 300 RGB image."""
    return make_image(400, 300)


@pytest.fixture
def image_root(tmp_path, photo):
    """Directory holding photo.png (400 x 300) and a corrupt bad.png."""
    write_image(tmp_path / "photo.png", photo)
    (tmp_path / "bad.png").write_bytes(b"this is not an image")
    return tmp_path
