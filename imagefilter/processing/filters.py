"""
Filter definitions for the processing pipeline.

Each filter is a named, parameterized image operation. Parameters are kept
as unexpanded strings (they may contain request placeholders) and are
resolved against the request context only when the filter is applied. Pixel
work is delegated to OpenImageIO's ImageBufAlgo functions.

A filter never mutates the ImageBuf it receives: it returns either that
same buffer (no-op) or a new one.
"""

import json
import math
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Callable, ClassVar, Dict, Mapping, Optional, Tuple, Union

import OpenImageIO as oiio

from ..core import (
    ConfigurationError,
    FilterError,
    RunContext,
    TooFewArgumentsError,
    TooManyArgumentsError,
)
from ..oiio import OiioAdapter
from .colors import parse_color
from .smartcrop import find_best_crop


class ParameterType(Enum):
    """Type of filter parameter."""
    FLOAT = auto()
    INT = auto()
    CHOICE = auto()
    COLOR = auto()


@dataclass(frozen=True)
class FilterParameter:
    """A single parameter of a filter."""
    name: str
    param_type: ParameterType
    default: Optional[str] = None  # used when the expanded value is empty
    options: Optional[Tuple[str, ...]] = None
    description: str = ""

    def resolve(self, raw: str, expand: Callable[[str], str]) -> Any:
        """
        Expand and parse a raw parameter value.

        Raises:
            FilterError: tagged with the raw and expanded value on failure
        """
        expanded = expand(raw) if raw else ""
        value = expanded if expanded != "" else self.default
        if value is None:
            raise FilterError(f"missing {self.name}", raw, expanded)
        try:
            return self._parse(value)
        except ValueError as e:
            raise FilterError(f"invalid {self.name}: {e}", raw, expanded) from None

    def _parse(self, value: str) -> Any:
        if self.param_type == ParameterType.FLOAT:
            result = float(value)
            if not math.isfinite(result):
                raise ValueError(f"{value!r} is not a finite number")
            return result

        elif self.param_type == ParameterType.INT:
            return int(value)

        elif self.param_type == ParameterType.CHOICE:
            if self.options and value not in self.options:
                raise ValueError(f"{value!r} is not one of {', '.join(self.options)}")
            return value

        elif self.param_type == ParameterType.COLOR:
            return parse_color(value)

        raise ValueError(f"unsupported parameter type {self.param_type}")


@dataclass(frozen=True)
class ProcessingFilter:
    """
    Base class for all processing filters.

    Instances are immutable and hold one raw string per parameter, in the
    order of `parameters`. Both construction paths (positional arguments
    and structured parameters) produce the same instance for the same input.
    """
    filter_id: ClassVar[str] = ""
    description: ClassVar[str] = ""
    parameters: ClassVar[Tuple[FilterParameter, ...]] = ()
    min_args: ClassVar[int] = 0
    max_args: ClassVar[int] = 0

    values: Tuple[str, ...] = ()

    def __post_init__(self):
        if len(self.values) != len(self.parameters):
            # Normalize to one raw value per parameter
            padded = tuple(self.values[:len(self.parameters)])
            padded += ("",) * (len(self.parameters) - len(padded))
            object.__setattr__(self, "values", padded)

    @classmethod
    def from_args(cls, *args: str) -> "ProcessingFilter":
        """Create an instance from positional configuration arguments."""
        if len(args) < cls.min_args:
            raise TooFewArgumentsError(cls.filter_id, cls.min_args, len(args))
        if len(args) > cls.max_args:
            raise TooManyArgumentsError(cls.filter_id, cls.max_args, len(args))
        return cls(values=tuple(str(arg) for arg in args))

    @classmethod
    def from_dict(cls, data: Union[Mapping[str, Any], str, bytes, None]) -> "ProcessingFilter":
        """
        Create an instance from structured parameters.

        Accepts a mapping or its JSON encoding. Missing keys and nulls
        become empty values, unknown keys are ignored.
        """
        if isinstance(data, (str, bytes, bytearray)):
            try:
                data = json.loads(data) if data.strip() else {}
            except ValueError as e:
                raise ConfigurationError(
                    f"invalid parameters for '{cls.filter_id}': {e}"
                ) from None
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise ConfigurationError(
                f"parameters for '{cls.filter_id}' must be an object, got {type(data).__name__}"
            )
        return cls(values=tuple(cls._coerce(p.name, data.get(p.name)) for p in cls.parameters))

    @classmethod
    def _coerce(cls, key: str, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, str):
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        raise ConfigurationError(
            f"parameter '{key}' of '{cls.filter_id}' must be a string or number"
        )

    def get_parameter(self, name: str) -> FilterParameter:
        """Get a parameter definition by name."""
        for param in self.parameters:
            if param.name == name:
                return param
        raise KeyError(name)

    def raw(self, name: str) -> str:
        """Unexpanded value of a parameter."""
        return self.values[self.parameters.index(self.get_parameter(name))]

    def resolve(self, context: RunContext, name: str) -> Any:
        """Expanded and parsed value of a parameter."""
        return self.get_parameter(name).resolve(self.raw(name), context.expand)

    def to_dict(self) -> Dict[str, str]:
        """Structured form; round-trips through from_dict()."""
        return {p.name: v for p, v in zip(self.parameters, self.values) if v != ""}

    def apply(self, context: RunContext, image: oiio.ImageBuf) -> oiio.ImageBuf:
        """Apply the filter and return the resulting image."""
        raise NotImplementedError


# ============================================================================
# HELPERS
# ============================================================================

def _gaussian_width(sigma: float) -> float:
    """Kernel width covering three standard deviations on each side."""
    return max(1.0, 6.0 * sigma)


def _resize(image: oiio.ImageBuf, width: int, height: int) -> oiio.ImageBuf:
    roi = oiio.ROI(0, width, 0, height, 0, 1, 0, image.spec().nchannels)
    return OiioAdapter.checked(
        oiio.ImageBufAlgo.resize(image, filtername="triangle", roi=roi), "resize"
    )


def _cut(image: oiio.ImageBuf, x: int, y: int, width: int, height: int) -> oiio.ImageBuf:
    roi = oiio.ROI(x, x + width, y, y + height, 0, 1, 0, image.spec().nchannels)
    return OiioAdapter.checked(oiio.ImageBufAlgo.cut(image, roi), "cut")


def _positive(value: int, name: str) -> int:
    if value <= 0:
        raise FilterError(f"invalid {name} {value}")
    return value


def _sigma_parameter() -> FilterParameter:
    return FilterParameter(
        name="sigma",
        param_type=ParameterType.FLOAT,
        default="1",
        description="Positive standard deviation of the gaussian (default 1)",
    )


def _size_parameters(default: Optional[str] = None) -> Tuple[FilterParameter, ...]:
    return (
        FilterParameter(name="width", param_type=ParameterType.INT, default=default,
                        description="Target width in pixels"),
        FilterParameter(name="height", param_type=ParameterType.INT, default=default,
                        description="Target height in pixels"),
    )


# Anchor name -> fraction of the spare space left of / above the crop
ANCHORS = {
    "center": (0.5, 0.5),
    "topleft": (0.0, 0.0),
    "top": (0.5, 0.0),
    "topright": (1.0, 0.0),
    "left": (0.0, 0.5),
    "right": (1.0, 0.5),
    "bottomleft": (0.0, 1.0),
    "bottom": (0.5, 1.0),
    "bottomright": (1.0, 1.0),
}


# ============================================================================
# FILTER IMPLEMENTATIONS
# ============================================================================

class BlurFilter(ProcessingFilter):
    """Gaussian blur."""

    filter_id = "blur"
    description = "Blurs the image; sigma controls the strength"
    parameters = (_sigma_parameter(),)
    min_args = 0
    max_args = 1

    def apply(self, context, image):
        sigma = self.resolve(context, "sigma")
        if sigma <= 0:
            raise FilterError("invalid sigma: cannot be less or equal 0")

        width = _gaussian_width(sigma)
        kernel = OiioAdapter.checked(
            oiio.ImageBufAlgo.make_kernel("gaussian", width, width), "make_kernel"
        )
        return OiioAdapter.checked(oiio.ImageBufAlgo.convolve(image, kernel), "convolve")


class SharpenFilter(ProcessingFilter):
    """Unsharp mask sharpening."""

    filter_id = "sharpen"
    description = "Sharpens the image; sigma controls the strength"
    parameters = (_sigma_parameter(),)
    min_args = 0
    max_args = 1

    def apply(self, context, image):
        sigma = self.resolve(context, "sigma")
        if sigma <= 0:
            raise FilterError("invalid sigma: cannot be less or equal 0")

        result = oiio.ImageBufAlgo.unsharp_mask(
            image, "gaussian", _gaussian_width(sigma), 1.0, 0.0
        )
        return OiioAdapter.checked(result, "unsharp_mask")


class CropFilter(ProcessingFilter):
    """
    Crop a rectangle positioned by an anchor.

    The rectangle is clamped to the image bounds, so asking for more than
    the image holds yields the overlapping part instead of an error.
    """

    filter_id = "crop"
    description = "Crops the image to width x height around an anchor"
    parameters = _size_parameters() + (
        FilterParameter(
            name="anchor",
            param_type=ParameterType.CHOICE,
            default="center",
            options=tuple(ANCHORS),
            description="Which part of the image to keep (default center)",
        ),
    )
    min_args = 2
    max_args = 3

    def apply(self, context, image):
        width = _positive(self.resolve(context, "width"), "width")
        height = _positive(self.resolve(context, "height"), "height")
        fx, fy = ANCHORS[self.resolve(context, "anchor")]

        src_w, src_h = OiioAdapter.image_size(image)
        # int() truncates towards zero, so oversized crops stay centred
        x = int((src_w - width) * fx)
        y = int((src_h - height) * fy)

        x0, y0 = max(0, x), max(0, y)
        x1, y1 = min(src_w, x + width), min(src_h, y + height)
        if (x0, y0, x1, y1) == (0, 0, src_w, src_h):
            return image
        return _cut(image, x0, y0, x1 - x0, y1 - y0)


class FitFilter(ProcessingFilter):
    """Scale down to fit a box, preserving the aspect ratio."""

    filter_id = "fit"
    description = "Scales the image down to fit into width x height"
    parameters = _size_parameters(default="0")
    min_args = 2
    max_args = 2

    def apply(self, context, image):
        width = self.resolve(context, "width")
        height = self.resolve(context, "height")
        if width <= 0 or height <= 0:
            raise FilterError(f"invalid width height combination {width} {height}")

        src_w, src_h = OiioAdapter.image_size(image)
        if src_w <= width and src_h <= height:
            return image

        if src_w / src_h > width / height:
            new_w, new_h = width, max(1, int(src_h * width / src_w + 0.5))
        else:
            new_w, new_h = max(1, int(src_w * height / src_h + 0.5)), height
        return _resize(image, new_w, new_h)


class FlipFilter(ProcessingFilter):
    """Mirror horizontally ("h") or vertically ("v")."""

    filter_id = "flip"
    description = "Flips the image horizontally (h) or vertically (v)"
    parameters = (
        FilterParameter(
            name="direction",
            param_type=ParameterType.CHOICE,
            options=("h", "v"),
            description="h mirrors left/right, v mirrors top/bottom",
        ),
    )
    min_args = 1
    max_args = 1

    def apply(self, context, image):
        direction = self.resolve(context, "direction")
        if direction == "h":
            return OiioAdapter.checked(oiio.ImageBufAlgo.flop(image), "flop")
        return OiioAdapter.checked(oiio.ImageBufAlgo.flip(image), "flip")


class GrayscaleFilter(ProcessingFilter):
    """Replace colour channels by their luma; alpha is kept."""

    filter_id = "grayscale"
    description = "Converts the image to grayscale"

    LUMA_WEIGHTS = (0.299, 0.587, 0.114)

    def apply(self, context, image):
        color, alpha = OiioAdapter.split_alpha(image)
        color_spec = color.spec()
        nchannels = color_spec.nchannels
        if nchannels < 3:
            # Already gray
            return image

        weights = self.LUMA_WEIGHTS + (0.0,) * (nchannels - 3)
        luma = OiioAdapter.checked(
            oiio.ImageBufAlgo.channel_sum(color, weights), "channel_sum"
        )
        gray = OiioAdapter.checked(
            oiio.ImageBufAlgo.channels(
                luma, (0,) * nchannels, newchannelnames=tuple(color_spec.channelnames)
            ),
            "channels",
        )
        return OiioAdapter.merge_alpha(gray, alpha)


class InvertFilter(ProcessingFilter):
    """Invert colour channels (1 - value); alpha is kept."""

    filter_id = "invert"
    description = "Inverts the colors of the image"

    def apply(self, context, image):
        color, alpha = OiioAdapter.split_alpha(image)
        inverted = OiioAdapter.checked(oiio.ImageBufAlgo.invert(color), "invert")
        return OiioAdapter.merge_alpha(inverted, alpha)


class ResizeFilter(ProcessingFilter):
    """
    Resize to width x height; a zero dimension keeps the aspect ratio.

    Never upscales: a target at least as large as the image is a no-op.
    """

    filter_id = "resize"
    description = "Resizes the image; 0 for one side preserves the aspect ratio"
    parameters = _size_parameters(default="0")
    min_args = 2
    max_args = 2

    def apply(self, context, image):
        width = self.resolve(context, "width")
        height = self.resolve(context, "height")
        if width < 0 or height < 0 or (width == 0 and height == 0):
            raise FilterError(f"invalid width height combination {width} {height}")

        src_w, src_h = OiioAdapter.image_size(image)
        if (height == 0 and src_w <= width) or \
                (width == 0 and src_h <= height) or \
                (src_w <= width and src_h <= height):
            return image

        if width == 0:
            width = max(1, int(src_w * height / src_h + 0.5))
        if height == 0:
            height = max(1, int(src_h * width / src_w + 0.5))
        return _resize(image, width, height)


class RotateFilter(ProcessingFilter):
    """Rotate counter-clockwise by a multiple of 90 degrees."""

    filter_id = "rotate"
    description = "Rotates the image by 0, 90, 180 or 270 degrees counter-clockwise"
    parameters = (
        FilterParameter(
            name="angle",
            param_type=ParameterType.INT,
            description="One of 0, 90, 180, 270",
        ),
    )
    min_args = 1
    max_args = 1

    # OIIO's rotate90/rotate270 turn clockwise
    OPERATIONS = {
        90: oiio.ImageBufAlgo.rotate270,
        180: oiio.ImageBufAlgo.rotate180,
        270: oiio.ImageBufAlgo.rotate90,
    }

    def apply(self, context, image):
        angle = self.resolve(context, "angle")
        if angle == 0:
            return image
        if angle not in self.OPERATIONS:
            raise FilterError("invalid angle (only 0, 90, 180, 270 allowed)")

        result = OiioAdapter.checked(self.OPERATIONS[angle](image), f"rotate {angle}")
        return OiioAdapter.reset_origin(result)


class RotateAnyFilter(ProcessingFilter):
    """
    Rotate counter-clockwise by any angle.

    The canvas grows to hold the whole rotated image; uncovered areas are
    filled with the given colour.
    """

    filter_id = "rotate_any"
    description = "Rotates the image by any angle, filling uncovered areas with a color"
    parameters = (
        FilterParameter(
            name="angle",
            param_type=ParameterType.FLOAT,
            description="Angle in degrees, counter-clockwise",
        ),
        FilterParameter(
            name="color",
            param_type=ParameterType.COLOR,
            description="Fill color: hex, rgb(), rgba(), a color name or transparent",
        ),
    )
    min_args = 2
    max_args = 2

    def apply(self, context, image):
        angle = self.resolve(context, "angle")
        color = self.resolve(context, "color")

        rgba = OiioAdapter.ensure_rgba(image)
        # OIIO rotates clockwise for positive angles
        rotated = oiio.ImageBufAlgo.rotate(rgba, math.radians(-angle), recompute_roi=True)
        rotated = OiioAdapter.reset_origin(OiioAdapter.checked(rotated, "rotate"))

        width, height = OiioAdapter.image_size(rotated)
        background = OiioAdapter.checked(
            oiio.ImageBufAlgo.fill(color, roi=oiio.ROI(0, width, 0, height, 0, 1, 0, 4)),
            "fill",
        )
        result = OiioAdapter.checked(oiio.ImageBufAlgo.over(rotated, background), "over")

        if image.spec().alpha_channel < 0 and color[3] >= 1.0:
            result = OiioAdapter.checked(oiio.ImageBufAlgo.channels(result, (0, 1, 2)), "channels")
        return result


class SmartcropFilter(ProcessingFilter):
    """
    Crop the most interesting region, then scale it to exactly width x height.

    The output always has the requested size, upscaling if the image is
    smaller than the target.
    """

    filter_id = "smartcrop"
    description = "Crops to the most interesting part of the image with the given size"
    parameters = _size_parameters()
    min_args = 2
    max_args = 2

    def apply(self, context, image):
        width = _positive(self.resolve(context, "width"), "width")
        height = _positive(self.resolve(context, "height"), "height")

        try:
            x, y, crop_w, crop_h = find_best_crop(image.get_pixels(oiio.FLOAT), width, height)
        except ValueError as e:
            raise FilterError(f"determining smartcrop: {e}") from None

        src_w, src_h = OiioAdapter.image_size(image)
        cropped = image
        if (x, y, crop_w, crop_h) != (0, 0, src_w, src_h):
            cropped = _cut(image, x, y, crop_w, crop_h)
        if (crop_w, crop_h) == (width, height):
            return cropped
        return _resize(cropped, width, height)


# Every filter shipped with the package
ALL_FILTERS = (
    BlurFilter,
    CropFilter,
    FitFilter,
    FlipFilter,
    GrayscaleFilter,
    InvertFilter,
    ResizeFilter,
    RotateFilter,
    RotateAnyFilter,
    SharpenFilter,
    SmartcropFilter,
)

# The commonly used subset
DEFAULT_FILTERS = (
    CropFilter,
    FitFilter,
    FlipFilter,
    ResizeFilter,
    RotateFilter,
    SharpenFilter,
)
