"""Unit tests for the individual image filters."""

from unittest.mock import patch

import numpy as np
import pytest

from conftest import make_image, pixels_of
from imagefilter.core import (
    ConfigurationError,
    FilterError,
    Replacer,
    RunContext,
    TooFewArgumentsError,
    TooManyArgumentsError,
)
from imagefilter.oiio import OiioAdapter
from imagefilter.processing import (
    BlurFilter,
    CropFilter,
    FitFilter,
    FlipFilter,
    GrayscaleFilter,
    InvertFilter,
    ResizeFilter,
    RotateAnyFilter,
    RotateFilter,
    SharpenFilter,
    SmartcropFilter,
)


class TestConstruction:
    """Tests for positional and structured construction."""

    def test_too_few_arguments(self):
        with pytest.raises(TooFewArgumentsError):
            CropFilter.from_args("10")

    def test_too_many_arguments(self):
        with pytest.raises(TooManyArgumentsError):
            BlurFilter.from_args("1", "2")

    def test_filter_without_parameters_rejects_arguments(self):
        with pytest.raises(TooManyArgumentsError):
            GrayscaleFilter.from_args("1")

    def test_argument_errors_are_configuration_errors(self):
        with pytest.raises(ConfigurationError):
            RotateFilter.from_args()

    def test_missing_optional_arguments_are_padded(self):
        f = CropFilter.from_args("10", "20")
        assert f.values == ("10", "20", "")

    def test_structured_matches_positional(self):
        """Both construction paths should produce equal instances."""
        structured = CropFilter.from_dict({"width": 10, "height": "20"})
        assert structured == CropFilter.from_args("10", "20")

    def test_structured_from_json(self):
        f = RotateAnyFilter.from_dict('{"angle": 45.5, "color": "red", "extra": 1}')
        assert f.raw("angle") == "45.5"
        assert f.raw("color") == "red"

    def test_structured_null_is_empty(self):
        assert BlurFilter.from_dict({"sigma": None}).raw("sigma") == ""

    def test_structured_empty_blob(self):
        assert BlurFilter.from_dict("").values == ("",)
        assert BlurFilter.from_dict(None).values == ("",)

    def test_structured_rejects_nested_values(self):
        with pytest.raises(ConfigurationError):
            CropFilter.from_dict({"width": {"px": 10}, "height": 10})

    def test_structured_rejects_invalid_json(self):
        with pytest.raises(ConfigurationError):
            CropFilter.from_dict("{width: 10")

    def test_to_dict_drops_empty_values(self):
        assert CropFilter.from_args("10", "20").to_dict() == {"width": "10", "height": "20"}

    def test_instances_of_different_filters_differ(self):
        assert BlurFilter.from_args("2") != SharpenFilter.from_args("2")


class TestParameterResolution:
    """Tests for placeholder expansion and parsing of parameters."""

    def test_placeholders_are_expanded(self):
        replacer = Replacer({"query.w": "100"})
        context = RunContext.create(expand=replacer.expand)
        f = ResizeFilter.from_args("{query.w}", "0")

        result = f.apply(context, make_image(400, 300))

        assert OiioAdapter.image_size(result) == (100, 75)

    def test_unparsable_value_reports_raw_and_expanded(self):
        context = RunContext.create(expand=Replacer({"query.w": "abc"}).expand)
        with pytest.raises(FilterError) as excinfo:
            ResizeFilter.from_args("{query.w}", "0").apply(context, make_image(4, 4))
        assert excinfo.value.raw == "{query.w}"
        assert excinfo.value.expanded == "abc"

    def test_missing_required_value(self, context):
        with pytest.raises(FilterError):
            CropFilter.from_dict({"height": 5}).apply(context, make_image(10, 10))


class TestBlurAndSharpen:
    """Tests for blur and sharpen."""

    def test_blur_default_sigma_equals_explicit_one(self, context):
        image = make_image(16, 16)
        implicit = BlurFilter.from_args().apply(context, image)
        explicit = BlurFilter.from_args("1").apply(context, image)
        assert np.array_equal(pixels_of(implicit), pixels_of(explicit))

    def test_blur_empty_sigma_equals_explicit_one(self, context):
        image = make_image(16, 16)
        empty = BlurFilter.from_args("").apply(context, image)
        explicit = BlurFilter.from_args("1").apply(context, image)
        assert np.array_equal(pixels_of(empty), pixels_of(explicit))

    @pytest.mark.parametrize("sigma", ["0", "-1"])
    def test_blur_rejects_non_positive_sigma(self, context, sigma):
        with pytest.raises(FilterError):
            BlurFilter.from_args(sigma).apply(context, make_image(8, 8))

    def test_blur_keeps_size(self, context):
        result = BlurFilter.from_args("2").apply(context, make_image(20, 10))
        assert OiioAdapter.image_size(result) == (20, 10)

    def test_sharpen_default_sigma_equals_explicit_one(self, context):
        image = make_image(16, 16)
        implicit = SharpenFilter.from_args().apply(context, image)
        explicit = SharpenFilter.from_args("1").apply(context, image)
        assert np.array_equal(pixels_of(implicit), pixels_of(explicit))

    def test_sharpen_rejects_zero_sigma(self, context):
        with pytest.raises(FilterError):
            SharpenFilter.from_args("0").apply(context, make_image(8, 8))

    def test_input_is_not_modified(self, context):
        image = make_image(16, 16)
        before = pixels_of(image).copy()
        BlurFilter.from_args("3").apply(context, image)
        assert np.array_equal(pixels_of(image), before)


class TestCrop:
    """Tests for the anchored crop."""

    def test_crop_larger_than_source_is_clamped(self, context):
        image = make_image(10, 10)
        result = CropFilter.from_args("50", "50", "topleft").apply(context, image)
        assert OiioAdapter.image_size(result) == (10, 10)
        assert np.array_equal(pixels_of(result), pixels_of(image))

    def test_crop_topleft(self, context):
        image = make_image(10, 10)
        result = CropFilter.from_args("4", "3", "topleft").apply(context, image)
        assert np.array_equal(pixels_of(result), pixels_of(image)[0:3, 0:4])

    def test_crop_bottomright(self, context):
        image = make_image(10, 10)
        result = CropFilter.from_args("4", "4", "bottomright").apply(context, image)
        assert np.array_equal(pixels_of(result), pixels_of(image)[6:10, 6:10])

    def test_crop_defaults_to_center(self, context):
        image = make_image(10, 10)
        result = CropFilter.from_args("3", "3").apply(context, image)
        assert np.array_equal(pixels_of(result), pixels_of(image)[3:6, 3:6])

    def test_crop_result_starts_at_origin(self, context):
        result = CropFilter.from_args("3", "3", "bottom").apply(context, make_image(10, 10))
        assert (result.roi.xbegin, result.roi.ybegin) == (0, 0)

    def test_crop_wider_than_source_keeps_height_window(self, context):
        image = make_image(10, 10)
        result = CropFilter.from_args("20", "4", "top").apply(context, image)
        assert OiioAdapter.image_size(result) == (10, 4)

    def test_crop_unknown_anchor(self, context):
        with pytest.raises(FilterError):
            CropFilter.from_args("3", "3", "middle").apply(context, make_image(10, 10))

    def test_crop_rejects_zero_width(self, context):
        with pytest.raises(FilterError):
            CropFilter.from_args("0", "3").apply(context, make_image(10, 10))


class TestResizeAndFit:
    """Tests for resize and fit."""

    def test_resize_keeps_aspect_ratio(self, context, photo):
        result = ResizeFilter.from_args("100", "0").apply(context, photo)
        assert OiioAdapter.image_size(result) == (100, 75)

    def test_resize_by_height(self, context, photo):
        result = ResizeFilter.from_args("0", "150").apply(context, photo)
        assert OiioAdapter.image_size(result) == (200, 150)

    def test_resize_both_dimensions(self, context, photo):
        result = ResizeFilter.from_args("50", "50").apply(context, photo)
        assert OiioAdapter.image_size(result) == (50, 50)

    def test_resize_does_not_upscale(self, context, photo):
        assert ResizeFilter.from_args("800", "0").apply(context, photo) is photo
        assert ResizeFilter.from_args("400", "300").apply(context, photo) is photo

    @pytest.mark.parametrize("width,height", [("0", "0"), ("-1", "10"), ("10", "-5")])
    def test_resize_invalid_combination(self, context, photo, width, height):
        with pytest.raises(FilterError):
            ResizeFilter.from_args(width, height).apply(context, photo)

    def test_fit_landscape_into_square(self, context, photo):
        result = FitFilter.from_args("100", "100").apply(context, photo)
        assert OiioAdapter.image_size(result) == (100, 75)

    def test_fit_portrait_into_square(self, context):
        result = FitFilter.from_args("100", "100").apply(context, make_image(300, 400))
        assert OiioAdapter.image_size(result) == (75, 100)

    def test_fit_already_inside(self, context, photo):
        assert FitFilter.from_args("500", "500").apply(context, photo) is photo

    def test_fit_requires_both_dimensions(self, context, photo):
        with pytest.raises(FilterError):
            FitFilter.from_args("0", "100").apply(context, photo)


class TestFlipAndRotate:
    """Tests for flip, rotate and rotate_any."""

    def test_flip_horizontal(self, context):
        image = make_image(6, 4)
        result = FlipFilter.from_args("h").apply(context, image)
        assert np.array_equal(pixels_of(result), pixels_of(image)[:, ::-1])

    def test_flip_vertical(self, context):
        image = make_image(6, 4)
        result = FlipFilter.from_args("v").apply(context, image)
        assert np.array_equal(pixels_of(result), pixels_of(image)[::-1])

    def test_flip_unknown_direction(self, context):
        with pytest.raises(FilterError):
            FlipFilter.from_args("x").apply(context, make_image(6, 4))

    def test_rotate_90_is_counter_clockwise(self, context):
        image = make_image(6, 4)
        result = RotateFilter.from_args("90").apply(context, image)
        assert OiioAdapter.image_size(result) == (4, 6)
        assert np.array_equal(pixels_of(result), np.rot90(pixels_of(image), 1))

    def test_rotate_180(self, context):
        image = make_image(6, 4)
        result = RotateFilter.from_args("180").apply(context, image)
        assert np.array_equal(pixels_of(result), np.rot90(pixels_of(image), 2))

    def test_rotate_270(self, context):
        image = make_image(6, 4)
        result = RotateFilter.from_args("270").apply(context, image)
        assert np.array_equal(pixels_of(result), np.rot90(pixels_of(image), 3))
        assert (result.roi.xbegin, result.roi.ybegin) == (0, 0)

    def test_rotate_zero_is_unchanged(self, context):
        image = make_image(6, 4)
        assert RotateFilter.from_args("0").apply(context, image) is image

    def test_rotate_rejects_other_angles(self, context):
        with pytest.raises(FilterError):
            RotateFilter.from_args("45").apply(context, make_image(6, 4))

    def test_rotate_any_grows_canvas(self, context):
        result = RotateAnyFilter.from_args("45", "white").apply(context, make_image(20, 20))
        width, height = OiioAdapter.image_size(result)
        assert width > 20 and height > 20
        assert (result.roi.xbegin, result.roi.ybegin) == (0, 0)

    def test_rotate_any_opaque_color_keeps_rgb(self, context):
        result = RotateAnyFilter.from_args("30", "#000").apply(context, make_image(20, 10))
        assert result.spec().nchannels == 3

    def test_rotate_any_transparent_adds_alpha(self, context):
        result = RotateAnyFilter.from_args("30", "transparent").apply(context, make_image(20, 10))
        assert result.spec().nchannels == 4
        # Corners are uncovered and therefore transparent
        assert pixels_of(result)[0, 0, 3] == pytest.approx(0.0, abs=1e-3)

    def test_rotate_any_unknown_color(self, context):
        with pytest.raises(FilterError):
            RotateAnyFilter.from_args("30", "notacolor").apply(context, make_image(20, 10))


class TestColorFilters:
    """Tests for grayscale and invert."""

    def test_grayscale_equalizes_channels(self, context):
        result = GrayscaleFilter.from_args().apply(context, make_image(8, 8))
        pixels = pixels_of(result)
        assert np.allclose(pixels[..., 0], pixels[..., 1])
        assert np.allclose(pixels[..., 1], pixels[..., 2])

    def test_grayscale_uses_luma_weights(self, context):
        image = make_image(1, 1, pixels=np.array([[[1.0, 0.0, 0.0]]]))
        result = GrayscaleFilter.from_args().apply(context, image)
        assert pixels_of(result)[0, 0, 0] == pytest.approx(0.299, abs=1e-5)

    def test_grayscale_keeps_alpha(self, context):
        image = make_image(8, 8, nchannels=4)
        result = GrayscaleFilter.from_args().apply(context, image)
        assert result.spec().nchannels == 4
        assert np.allclose(pixels_of(result)[..., 3], 0.5)

    def test_grayscale_of_single_channel_is_unchanged(self, context):
        image = make_image(8, 8, nchannels=1)
        assert GrayscaleFilter.from_args().apply(context, image) is image

    def test_invert(self, context):
        image = make_image(8, 8)
        result = InvertFilter.from_args().apply(context, image)
        assert np.allclose(pixels_of(result), 1.0 - pixels_of(image))

    def test_invert_keeps_alpha(self, context):
        image = make_image(8, 8, nchannels=4)
        pixels = pixels_of(InvertFilter.from_args().apply(context, image))
        assert np.allclose(pixels[..., :3], 1.0 - pixels_of(image)[..., :3])
        assert np.allclose(pixels[..., 3], 0.5)


class TestSmartcrop:
    """Tests for smartcrop."""

    def test_output_has_requested_size(self, context, photo):
        result = SmartcropFilter.from_args("50", "80").apply(context, photo)
        assert OiioAdapter.image_size(result) == (50, 80)

    def test_small_image_is_upscaled_to_target(self, context):
        result = SmartcropFilter.from_args("40", "40").apply(context, make_image(10, 10))
        assert OiioAdapter.image_size(result) == (40, 40)

    def test_rejects_zero_size(self, context, photo):
        with pytest.raises(FilterError):
            SmartcropFilter.from_args("0", "10").apply(context, photo)

    def test_cuts_the_chosen_window(self, context, photo):
        with patch("imagefilter.processing.filters.find_best_crop", return_value=(10, 20, 50, 80)):
            result = SmartcropFilter.from_args("50", "80").apply(context, photo)
        assert OiioAdapter.image_size(result) == (50, 80)
        np.testing.assert_allclose(pixels_of(result), pixels_of(photo)[20:100, 10:60])

    def test_analysis_failure_is_filter_error(self, context, photo):
        with patch("imagefilter.processing.filters.find_best_crop", side_effect=ValueError("bad")):
            with pytest.raises(FilterError, match="determining smartcrop"):
                SmartcropFilter.from_args("50", "80").apply(context, photo)
