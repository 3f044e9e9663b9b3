"""Unit tests for the ray module.

Tests cover:
- Ray evaluation
- Batched normalize, reflect and refract (Snell's law, TIR)
- Schlick Fresnel reflectance
- Normal resolution and origin offsetting
"""

import math

import numpy as np
import pytest

from prismatic.core.ray import (
    RAY_EPSILON,
    Ray,
    dot,
    normalize,
    offset_ray_origin,
    reflect,
    refract,
    resolve_normals,
    schlick_fresnel,
)

UP = np.array([[0.0, 1.0, 0.0]])


class TestRay:
    """Tests for the Ray dataclass."""

    def test_at(self):
        """Test that at(t) walks along the direction."""
        ray = Ray(origin=np.array([1.0, 2.0, 3.0]), direction=np.array([0.0, 0.0, 1.0]))
        np.testing.assert_allclose(ray.at(2.5), [1.0, 2.0, 5.5])


class TestNormalize:
    """Tests for batched normalization."""

    def test_unit_length(self):
        """Test that rows come out with unit length."""
        v = np.array([[3.0, 4.0, 0.0], [0.0, 0.0, -2.0]])
        np.testing.assert_allclose(np.linalg.norm(normalize(v), axis=1), 1.0)

    def test_degenerate_rows_become_zero(self):
        """Test that zero and non-finite rows become zero vectors, not NaN."""
        v = np.array([[0.0, 0.0, 0.0], [np.nan, 1.0, 0.0], [np.inf, 0.0, 0.0]])
        np.testing.assert_array_equal(normalize(v), 0.0)


class TestReflect:
    """Tests for mirror reflection."""

    def test_reflect_45_degrees(self):
        """Test reflection of a 45 degree incident ray."""
        d = normalize(np.array([[1.0, -1.0, 0.0]]))
        r = reflect(d, UP)
        np.testing.assert_allclose(r, normalize(np.array([[1.0, 1.0, 0.0]])))

    def test_reflect_preserves_length(self):
        """Test that reflection keeps unit vectors unit length."""
        rng = np.random.default_rng(1)
        d = normalize(rng.normal(size=(100, 3)))
        n = normalize(rng.normal(size=(100, 3)))
        np.testing.assert_allclose(np.linalg.norm(reflect(d, n), axis=1), 1.0)


class TestRefract:
    """Tests for refraction (Snell's law)."""

    def test_normal_incidence_passes_straight(self):
        """Test that a ray hitting head-on is not bent."""
        d = np.array([[0.0, -1.0, 0.0]])
        refracted, tir = refract(d, UP, np.array([1.0 / 1.5]))
        np.testing.assert_allclose(refracted, d, atol=1e-12)
        assert not tir[0]

    def test_snells_law(self):
        """Test sin(theta1) / sin(theta2) = n2 / n1 for air to glass."""
        d = normalize(np.array([[1.0, -1.0, 0.0]]))
        refracted, _ = refract(d, UP, np.array([1.0 / 1.5]))
        sin_theta1 = 1.0 / math.sqrt(2.0)
        sin_theta2 = refracted[0, 0]
        assert sin_theta1 / sin_theta2 == pytest.approx(1.5)
        assert np.linalg.norm(refracted[0]) == pytest.approx(1.0)

    def test_total_internal_reflection(self):
        """Test that grazing rays leaving glass are flagged and reflected."""
        d = normalize(np.array([[1.0, -0.2, 0.0]]))
        refracted, tir = refract(d, UP, np.array([1.5]))
        assert tir[0]
        np.testing.assert_allclose(refracted, reflect(d, UP))


class TestSchlick:
    """Tests for Schlick's Fresnel approximation."""

    def test_normal_incidence_glass(self):
        """Test that glass reflects 4% at normal incidence."""
        assert schlick_fresnel(np.array([1.0]), 1.0, 1.5)[0] == pytest.approx(0.04)

    def test_grazing_incidence(self):
        """Test that reflectance approaches 1 at grazing angles."""
        assert schlick_fresnel(np.array([0.0]), 1.0, 1.5)[0] == pytest.approx(1.0)

    def test_beyond_critical_angle(self):
        """Test that reflectance is 1 past the critical angle inside glass."""
        assert schlick_fresnel(np.array([0.1]), 1.5, 1.0)[0] == 1.0

    def test_range_and_nan(self):
        """Test that the result is always in [0, 1], even for NaN cosines."""
        cos = np.array([np.nan, -0.5, 0.3, 2.0])
        result = schlick_fresnel(cos, 1.0, 2.4)
        assert np.all(np.isfinite(result))
        assert np.all((result >= 0.0) & (result <= 1.0))


class TestNormalsAndOffsets:
    """Tests for normal resolution and self-intersection offsets."""

    def test_degenerate_normal_faces_ray(self):
        """Test that a zero normal is replaced by the reversed direction."""
        d = np.array([[0.0, 0.0, 1.0]])
        resolved = resolve_normals(np.zeros((1, 3)), d)
        np.testing.assert_array_equal(resolved, -d)

    def test_normals_normalized(self):
        """Test that non-unit normals are normalized."""
        resolved = resolve_normals(np.array([[0.0, 5.0, 0.0]]), np.array([[0.0, -1.0, 0.0]]))
        np.testing.assert_allclose(resolved, UP)

    def test_offset_follows_new_direction(self):
        """Test that the origin moves to the side the new ray travels to."""
        points = np.zeros((2, 3))
        normals = np.vstack([UP, UP])
        directions = np.array([[0.0, 1.0, 0.0], [0.0, -1.0, 0.0]])
        offset = offset_ray_origin(points, normals, directions)
        assert offset[0, 1] == pytest.approx(RAY_EPSILON)
        assert offset[1, 1] == pytest.approx(-RAY_EPSILON)

    def test_dot_rowwise(self):
        """Test the row-wise dot product."""
        a = np.array([[1.0, 2.0, 3.0], [0.0, 1.0, 0.0]])
        b = np.array([[1.0, 1.0, 1.0], [0.0, -1.0, 0.0]])
        np.testing.assert_allclose(dot(a, b), [6.0, -1.0])
