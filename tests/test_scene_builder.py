"""Tests for scene objects, the scene builder and the prism mesh helper."""

import logging

import numpy as np
import pytest

from prismatic.camera import CameraParams
from prismatic.core.spectrum import ConstantSpectrum, d65
from prismatic.errors import ConfigurationError
from prismatic.materials import Emission, Mirror, Refractive
from prismatic.scene import (
    MeshGeometry,
    PrimitiveSurface,
    QuadGeometry,
    SceneBuilder,
    SceneObject,
    SphereGeometry,
    triangular_prism,
)

CAMERA = CameraParams(eye=(0.0, -5.0, 1.0), target=(0.0, 0.0, 1.0), up=(0.0, 0.0, 1.0))


class RecordingFactory:
    """Surface factory that records what it was built from."""

    def __init__(self, surface):
        self.surface = surface
        self.calls = []

    def __call__(self, objects, materials):
        self.calls.append((objects, materials))
        return self.surface


@pytest.fixture
def builder():
    builder = SceneBuilder()
    builder.add_material("glass", Refractive(base_ior=1.5, dispersion=0.02))
    builder.add_material("lamp", Emission(d65()))
    builder.set_camera(CAMERA)
    return builder


class TestGeometry:
    """Tests for geometry validation."""

    def test_sphere_radius_positive(self):
        """Test that spheres need a positive radius."""
        with pytest.raises(ConfigurationError, match="radius"):
            SphereGeometry(center=(0.0, 0.0, 0.0), radius=0.0)

    def test_sphere_center_finite(self):
        """Test that sphere centers must be finite 3-vectors."""
        with pytest.raises(ConfigurationError, match="center"):
            SphereGeometry(center=(0.0, float("nan"), 0.0), radius=1.0)

    def test_quad_edges_not_parallel(self):
        """Test that degenerate quads are rejected."""
        with pytest.raises(ConfigurationError, match="parallel"):
            QuadGeometry(corner=(0.0, 0.0, 0.0), u=(1.0, 0.0, 0.0), v=(2.0, 0.0, 0.0))

    def test_mesh_shape_checked(self):
        """Test that mesh groups must be (T, 3, 3) arrays."""
        with pytest.raises(ConfigurationError, match=r"\(T, 3, 3\)"):
            MeshGeometry({"faces": np.zeros((2, 3))})

    def test_mesh_needs_groups(self):
        """Test that an empty mesh is rejected."""
        with pytest.raises(ConfigurationError, match="at least one"):
            MeshGeometry({})

    def test_mesh_from_indexed(self):
        """Test building a mesh from shared vertices and face indices."""
        vertices = [(0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (0.0, 1.0, 0.0), (0.0, 0.0, 1.0)]
        mesh = MeshGeometry.from_indexed(vertices, {"base": [(0, 2, 1)], "walls": [(0, 1, 3), (0, 3, 2)]})

        assert mesh.groups == ("base", "walls")
        assert mesh.triangle_count == 3
        np.testing.assert_array_equal(mesh.groups_triangles["walls"][1], [vertices[0], vertices[3], vertices[2]])

    def test_mesh_from_indexed_bad_index(self):
        """Test that out-of-range face indices are rejected."""
        with pytest.raises(ConfigurationError, match="missing vertices"):
            MeshGeometry.from_indexed([(0.0, 0.0, 0.0)], {"g": [(0, 1, 2)]})


class TestSceneObject:
    """Tests for surface group binding."""

    def test_unbound_group(self):
        """Test that every surface group needs a material."""
        mesh = MeshGeometry({"crown": np.zeros((1, 3, 3)), "pavilion": np.zeros((1, 3, 3))})
        with pytest.raises(ConfigurationError, match="without a material: pavilion"):
            SceneObject(mesh, {"crown": "diamond"})

    def test_unknown_group(self):
        """Test that bindings must name existing groups."""
        with pytest.raises(ConfigurationError, match="unknown surface groups: crown"):
            SceneObject(SphereGeometry((0.0, 0.0, 0.0), 1.0), {"surface": "glass", "crown": "glass"})


class TestSceneBuilder:
    """Tests for SceneBuilder validation and assembly."""

    def test_build_with_custom_surface(self, builder, empty_surface):
        """Test that the surface factory receives the objects and table."""
        builder.add_sphere((0.0, 0.0, 1.0), 1.0, "glass")
        builder.add_quad((-1.0, -1.0, 4.0), (2.0, 0.0, 0.0), (0.0, 2.0, 0.0), "lamp")
        factory = RecordingFactory(empty_surface)

        scene = builder.build(32, 24, surface_factory=factory)

        assert scene.surface is empty_surface
        assert len(scene.objects) == 2
        assert factory.calls[0][0] == scene.objects
        assert factory.calls[0][1] is scene.materials
        assert (scene.camera.width, scene.camera.height) == (32, 24)
        assert scene.background is None

    def test_missing_camera(self, empty_surface):
        """Test that a scene needs a camera."""
        with pytest.raises(ConfigurationError, match="no camera"):
            SceneBuilder().build(8, 8, surface_factory=RecordingFactory(empty_surface))

    def test_unknown_material(self, builder, empty_surface):
        """Test that binding an undefined material is reported at build time."""
        builder.add_sphere((0.0, 0.0, 1.0), 1.0, "gold")
        with pytest.raises(ConfigurationError, match="unknown material 'gold'"):
            builder.build(8, 8, surface_factory=RecordingFactory(empty_surface))

    def test_duplicate_material(self, builder):
        """Test that material names are unique."""
        with pytest.raises(ConfigurationError, match="already defined"):
            builder.add_material("glass", Mirror())

    def test_invalid_camera_basis(self, empty_surface):
        """Test that a degenerate camera is rejected before rendering."""
        builder = SceneBuilder()
        builder.set_camera(CameraParams(eye=(0.0, 0.0, 0.0), target=(0.0, 0.0, 0.0)))
        with pytest.raises(ConfigurationError, match="distinct"):
            builder.build(8, 8, surface_factory=RecordingFactory(empty_surface))

    def test_box_faces_point_outward(self, builder):
        """Test that add_box adds six quads with outward normals."""
        faces = builder.add_box((-1.0, -2.0, -3.0), (1.0, 2.0, 3.0), "glass")
        assert len(faces) == 6

        for face in faces:
            quad = face.geometry
            normal = np.cross(quad.u, quad.v)
            center = np.asarray(quad.corner) + 0.5 * (np.asarray(quad.u) + np.asarray(quad.v))
            assert np.dot(normal, center) > 0.0

    def test_box_needs_extent(self, builder):
        """Test that inverted boxes are rejected."""
        with pytest.raises(ConfigurationError, match="must exceed"):
            builder.add_box((0.0, 0.0, 0.0), (1.0, 0.0, 1.0), "glass")

    def test_background(self, builder, empty_surface):
        """Test that the background spectrum is carried into the scene."""
        sky = ConstantSpectrum(0.3)
        builder.set_background(sky)
        scene = builder.build(4, 4, surface_factory=RecordingFactory(empty_surface))
        assert scene.background is sky

        with pytest.raises(ConfigurationError, match="Spectrum"):
            builder.set_background(0.3)

    def test_default_surface_is_primitive_surface(self, builder):
        """Test that the Taichi surface is used when no factory is given."""
        builder.add_sphere((0.0, 0.0, 1.0), 1.0, "glass")
        scene = builder.build(4, 4)
        assert isinstance(scene.surface, PrimitiveSurface)
        assert scene.surface.num_spheres == 1

    def test_build_logs(self, builder, empty_surface, caplog):
        """Test that building logs a summary."""
        with caplog.at_level(logging.INFO, logger="prismatic.scene.builder"):
            builder.build(4, 4, surface_factory=RecordingFactory(empty_surface))
        assert "Built scene: 0 objects, 2 materials" in caplog.text


class TestTriangularPrism:
    """Tests for the prism mesh helper."""

    def test_closed_with_outward_normals(self):
        """Test 6 side and 2 cap triangles, all facing away from the center."""
        mesh = triangular_prism(center=(0.6, 0.4), side=0.9, height=1.2, rotation=15.0)
        assert len(mesh.groups_triangles["sides"]) == 6
        assert len(mesh.groups_triangles["caps"]) == 2

        center = np.array([0.6, 0.4, 0.6])
        for triangles in mesh.groups_triangles.values():
            v0, v1, v2 = triangles[:, 0], triangles[:, 1], triangles[:, 2]
            normals = np.cross(v1 - v0, v2 - v0)
            outward = np.einsum("ij,ij->i", normals, triangles.mean(axis=1) - center)
            assert np.all(outward > 0.0)

    def test_cross_section(self):
        """Test the circumradius and the vertical extent."""
        mesh = triangular_prism(center=(0.0, 0.0), side=np.sqrt(3.0), height=2.0)
        vertices = np.concatenate([t.reshape(-1, 3) for t in mesh.groups_triangles.values()])
        np.testing.assert_allclose(np.linalg.norm(vertices[:, :2], axis=1), 1.0)
        assert vertices[:, 2].min() == 0.0
        assert vertices[:, 2].max() == 2.0

    def test_base_lifts_the_prism(self):
        """Test that the bottom cap sits on the base plane."""
        mesh = triangular_prism(center=(0.0, 0.0), side=1.0, height=2.0, base=0.5)
        vertices = np.concatenate([t.reshape(-1, 3) for t in mesh.groups_triangles.values()])
        assert vertices[:, 2].min() == 0.5
        assert vertices[:, 2].max() == 2.5
