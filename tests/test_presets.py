"""End-to-end renders of the preset scenes through the Taichi surface."""

import numpy as np
import pytest

from prismatic.core.config import RenderConfig
from prismatic.core.ray import Ray
from prismatic.core.renderer import render_scene
from prismatic.scene import PrismSceneParams, emitter_wall_scene, mirror_box_scene, prism_scene


class TestEmitterWall:
    """Tests for the direct-emission preset."""

    def test_every_bin_equals_emitter(self):
        """Test that each pixel reproduces the emitter spectrum exactly."""
        scene = emitter_wall_scene(width=8, height=8, radiance=1.0)
        result = render_scene(scene, RenderConfig(pixel_samples=2, spectrum_bins=10, tile_size=4, workers=2))

        np.testing.assert_array_equal(result.spectral, 1.0)
        assert result.stats.nan_samples == 0

    def test_radiance_scales(self):
        """Test that the emitter radiance is carried through unchanged."""
        scene = emitter_wall_scene(width=4, height=4, radiance=2.5)
        result = render_scene(scene, RenderConfig(pixel_samples=1, spectrum_bins=4))
        np.testing.assert_allclose(result.spectral, 2.5)


class TestMirrorBox:
    """Tests for the closed mirror box."""

    def test_brightens_with_bounces(self):
        """Test that the mean radiance never decreases as the budget grows."""
        scene = mirror_box_scene(width=8, height=8)
        means = []
        for bounces in (1, 2, 4, 8):
            config = RenderConfig(pixel_samples=2, spectrum_bins=4, bounces=bounces, tile_size=8, seed=5)
            means.append(render_scene(scene, config).spectral.mean())

        assert all(a <= b for a, b in zip(means, means[1:]))
        assert means[-1] > means[0]

    def test_bounded_by_emitter(self):
        """Test that no pixel is brighter than the emitter itself."""
        scene = mirror_box_scene(width=6, height=6, reflectance=0.9)
        result = render_scene(scene, RenderConfig(pixel_samples=1, spectrum_bins=4, bounces=16))
        assert result.spectral.max() <= 1.0
        assert result.spectral.min() >= 0.0


class TestPrismScene:
    """Smoke tests for the dispersive prism scene."""

    def test_contents(self):
        """Test the materials and objects of the scene."""
        scene = prism_scene(width=16, height=10)
        assert scene.materials.names == ["diamond", "flint", "plexi", "light_left", "light_right"]
        # floor, prism, two spheres, two lamps
        assert len(scene.objects) == 6
        assert scene.camera.params.aperture == pytest.approx(0.02)
        assert scene.surface.num_triangles == 8

    def test_lamp_intensities(self):
        """Test that the right lamp is twice as bright by default."""
        scene = prism_scene(width=4, height=4)
        assert scene.materials["light_left"].intensity == 1.0
        assert scene.materials["light_right"].intensity == 2.0

        custom = prism_scene(width=4, height=4, params=PrismSceneParams(light_left=0.5, aperture=0.0))
        assert custom.materials["light_left"].intensity == 0.5
        assert custom.camera.params.aperture == 0.0

    def test_prism_bottom_is_not_hidden_by_floor(self):
        """Test that a ray leaving the prism downward hits its own bottom cap first."""
        scene = prism_scene(width=4, height=4)
        hit = scene.surface.intersect(Ray(np.array([0.6, 0.4, 0.6]), np.array([0.0, 0.0, -1.0])))

        assert hit is not None
        assert hit.material == scene.materials.id_of("flint")
        np.testing.assert_allclose(hit.normal, [0.0, 0.0, -1.0], atol=1e-6)
        assert 0.0 < hit.point[2] < 0.01

    def test_small_render_is_finite(self):
        """Test that a tiny render produces finite, non-negative radiance."""
        scene = prism_scene(width=6, height=4)
        result = render_scene(scene, RenderConfig(pixel_samples=1, spectrum_bins=4, bounces=6, tile_size=3, workers=2))

        assert result.spectral.shape == (4, 6, 4)
        assert np.all(np.isfinite(result.spectral))
        assert np.all(result.spectral >= 0.0)
        assert np.all(np.isfinite(result.rgb))
