"""Tests for the preview module.

This module tests the preview/display and preview/export functionality including:
- Tone mapping functions (Reinhard, exposure)
- sRGB and power-law display encoding
- PNG export through the ImageWriter protocol
- RMSE computation
"""

import numpy as np
import pytest
from PIL import Image as PILImage

from prismatic.core.color import linear_to_srgb
from prismatic.core.renderer import RenderResult
from prismatic.preview import (
    ImageWriter,
    PngWriter,
    apply_gamma,
    compute_rmse,
    image_to_uint8,
    process_image_for_display,
    result_to_display,
    save_png_from_array,
    tone_map_exposure,
    tone_map_reinhard,
)


class TestToneMapReinhard:
    """Test Reinhard tone mapping."""

    def test_reinhard_preserves_black(self):
        """Test that Reinhard preserves black (0 -> 0)."""
        result = tone_map_reinhard(np.zeros((10, 10, 3), dtype=np.float32))
        assert np.allclose(result, 0.0)

    def test_reinhard_formula(self):
        """Test L / (1 + L) and the compression of HDR values."""
        image = np.array([[[0.5, 1.0, 10.0]]], dtype=np.float32)
        result = tone_map_reinhard(image)
        np.testing.assert_allclose(result, [[[1.0 / 3.0, 0.5, 10.0 / 11.0]]], rtol=1e-6)
        assert result.max() < 1.0

    def test_reinhard_handles_negative_input(self):
        """Test that negative values are clamped to black."""
        result = tone_map_reinhard(np.full((2, 2, 3), -1.0))
        assert np.all(result == 0.0)


class TestToneMapExposure:
    """Test exposure tone mapping."""

    def test_exposure_formula(self):
        """Test 1 - exp(-L * exposure)."""
        image = np.full((1, 1, 3), 0.5, dtype=np.float32)
        result = tone_map_exposure(image, exposure=2.0)
        np.testing.assert_allclose(result, 1.0 - np.exp(-1.0), rtol=1e-6)

    def test_exposure_higher_value_brighter(self):
        """Test that higher exposure brightens the image."""
        image = np.full((4, 4, 3), 0.3, dtype=np.float32)
        assert tone_map_exposure(image, 2.0).mean() > tone_map_exposure(image, 0.5).mean()


class TestApplyGamma:
    """Test display encoding."""

    def test_default_is_srgb_curve(self):
        """Test that no gamma applies the piecewise sRGB transfer curve."""
        image = np.linspace(0.0, 1.0, 30).reshape(10, 1, 3)
        np.testing.assert_allclose(apply_gamma(image), linear_to_srgb(image), rtol=1e-6)

    def test_gamma_1_no_change(self):
        """Test that gamma 1.0 leaves values linear."""
        image = np.full((2, 2, 3), 0.25, dtype=np.float32)
        np.testing.assert_array_equal(apply_gamma(image, 1.0), image)

    def test_gamma_brightens_midtones(self):
        """Test a power-law gamma of 2.2."""
        image = np.full((1, 1, 3), 0.5, dtype=np.float32)
        np.testing.assert_allclose(apply_gamma(image, 2.2), 0.5 ** (1.0 / 2.2), rtol=1e-6)

    def test_gamma_clamps_out_of_range(self):
        """Test that values are clamped to [0, 1] before encoding."""
        image = np.array([[[-0.5, 0.0, 3.0]]])
        np.testing.assert_allclose(apply_gamma(image, 2.2), [[[0.0, 0.0, 1.0]]])

    def test_invalid_gamma_raises(self):
        """Test that a non-positive gamma is rejected."""
        with pytest.raises(ValueError, match="Gamma must be > 0"):
            apply_gamma(np.zeros((1, 1, 3)), 0.0)


class TestProcessImageForDisplay:
    """Test the full display pipeline."""

    def test_output_always_valid(self):
        """Test that HDR input ends up in [0, 1]."""
        image = np.random.default_rng(0).uniform(-1.0, 50.0, size=(8, 8, 3))
        for tone_map in ("none", "reinhard", "exposure"):
            result = process_image_for_display(image, tone_map=tone_map)
            assert result.dtype == np.float32
            assert result.min() >= 0.0
            assert result.max() <= 1.0

    def test_non_finite_pixels_become_black(self):
        """Test that NaN and inf are replaced before encoding."""
        image = np.array([[[np.nan, np.inf, 0.5]]])
        result = process_image_for_display(image, gamma=1.0)
        np.testing.assert_allclose(result, [[[0.0, 0.0, 0.5]]])

    def test_invalid_tone_map_raises(self):
        """Test that an unknown tone mapping method raises."""
        with pytest.raises(ValueError, match="Unknown tone mapping method"):
            process_image_for_display(np.zeros((1, 1, 3)), tone_map="filmic")

    def test_result_to_display(self):
        """Test that a render result is displayed from its RGB buffer."""
        rgb = np.full((2, 3, 3), 0.25)
        result = RenderResult(3, 2, np.zeros((2, 3, 4)), np.zeros((2, 3, 3)), rgb)
        np.testing.assert_allclose(result_to_display(result, gamma=1.0), 0.25)


class TestImageToUint8:
    """Test 8-bit conversion."""

    def test_black_and_white(self):
        """Test that 0 and 1 map to 0 and 255."""
        image = np.array([[[0.0, 0.0, 0.0], [1.0, 1.0, 1.0]]])
        result = image_to_uint8(image)
        assert result.dtype == np.uint8
        np.testing.assert_array_equal(result, [[[0, 0, 0], [255, 255, 255]]])

    def test_rounds_to_nearest(self):
        """Test that linear values are rounded, not truncated."""
        result = image_to_uint8(np.full((1, 1, 3), 0.5), gamma=1.0)
        np.testing.assert_array_equal(result, 128)


class TestPngWriter:
    """Test PNG export."""

    def test_is_image_writer(self, tmp_path):
        """Test that PngWriter satisfies the ImageWriter protocol."""
        assert isinstance(PngWriter(tmp_path / "out.png"), ImageWriter)

    def test_write_creates_png(self, tmp_path):
        """Test that the written file has the right size and pixel values."""
        path = tmp_path / "out.png"
        colors = np.zeros((3, 5, 3))
        colors[0, 0] = [1.0, 0.0, 0.0]
        PngWriter(path).write(colors, 5, 3)

        with PILImage.open(path) as image:
            assert image.size == (5, 3)
            assert image.mode == "RGB"
            assert image.getpixel((0, 0)) == (255, 0, 0)
            assert image.getpixel((4, 2)) == (0, 0, 0)

    def test_write_accepts_flat_colors(self, tmp_path):
        """Test that row-major flat (W*H, 3) input is reshaped."""
        path = tmp_path / "flat.png"
        colors = np.zeros((6, 3))
        colors[4] = [0.0, 0.0, 1.0]
        PngWriter(path).write(colors, 3, 2)

        with PILImage.open(path) as image:
            assert image.getpixel((1, 1)) == (0, 0, 255)

    def test_write_size_mismatch_raises(self, tmp_path):
        """Test that a buffer of the wrong size is rejected."""
        with pytest.raises(ValueError, match="Expected 4x4 RGB values"):
            PngWriter(tmp_path / "bad.png").write(np.zeros((3, 3, 3)), 4, 4)

    def test_save_png_with_tone_mapping(self, tmp_path):
        """Test that tone mapping keeps HDR input from saturating."""
        path = tmp_path / "hdr.png"
        save_png_from_array(np.full((2, 2, 3), 1.0), path, tone_map="reinhard", gamma=1.0)

        with PILImage.open(path) as image:
            assert image.getpixel((0, 0)) == (128, 128, 128)

    def test_repr(self):
        """Test the writer repr."""
        writer = PngWriter("out.png", tone_map="reinhard")
        assert repr(writer) == "PngWriter('out.png', tone_map='reinhard')"


class TestComputeRmse:
    """Test RMSE computation."""

    def test_rmse_identical_images(self):
        """Test that identical images have zero RMSE."""
        image = np.random.default_rng(1).random((4, 4, 3))
        assert compute_rmse(image, image) == 0.0

    def test_rmse_different_images(self):
        """Test RMSE of a constant offset."""
        a = np.zeros((4, 4, 3))
        b = np.full((4, 4, 3), 0.5)
        assert compute_rmse(a, b) == pytest.approx(0.5)

    def test_rmse_shape_mismatch_raises(self):
        """Test that mismatched shapes raise."""
        with pytest.raises(ValueError, match="Image shapes must match"):
            compute_rmse(np.zeros((2, 2, 3)), np.zeros((3, 2, 3)))
