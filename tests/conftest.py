"""Pytest configuration for renderer tests.

This module provides shared fixtures for all test modules:

- Taichi initialization, which must happen once per session
- Analytic numpy scene surfaces (planes and boxes) so integrator and
  scheduler tests do not depend on the Taichi kernels
- A factory assembling small scenes from those surfaces
"""

from __future__ import annotations

import numpy as np
import pytest
import taichi as ti

from prismatic.camera.thin_lens import CameraParams, ThinLensCamera
from prismatic.core.ray import Ray
from prismatic.materials import MaterialTable
from prismatic.scene.builder import Scene
from prismatic.scene.surface import NO_HIT, HitBatch

T_MIN = 1e-6


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


# =============================================================================
# Analytic surfaces
# =============================================================================


class PlanesSurface:
    """Nearest hit over a set of infinite planes, each with one material."""

    def __init__(self, planes):
        # planes: list of (point, normal, material_id)
        self.planes = [
            (np.asarray(p, dtype=np.float64), np.asarray(n, dtype=np.float64), m)
            for p, n, m in planes
        ]

    def intersect_batch(self, origins, directions):
        count = len(origins)
        best_t = np.full(count, np.inf)
        normals = np.zeros((count, 3))
        materials = np.full(count, NO_HIT, dtype=np.int32)

        for point, normal, material_id in self.planes:
            denom = directions @ normal
            with np.errstate(divide="ignore", invalid="ignore"):
                t = ((point - origins) @ normal) / denom
            closer = np.isfinite(t) & (t > T_MIN) & (t < best_t)
            best_t[closer] = t[closer]
            normals[closer] = normal
            materials[closer] = material_id

        hit = materials != NO_HIT
        points = np.where(hit[:, None], origins + np.where(hit, best_t, 0.0)[:, None] * directions, 0.0)
        return HitBatch(hit=hit, distances=best_t, points=points, normals=normals, materials=materials)

    def intersect(self, ray: Ray):
        return self.intersect_batch(ray.origin[None, :], ray.direction[None, :]).first()


class BoxSurface:
    """Inside of an axis-aligned box centered at the origin.

    Args:
        half: Half edge length.
        face_materials: Material id per face, keyed "-x", "+x", "-y", "+y",
            "-z", "+z". Normals point out of the box.
    """

    AXES = {"-x": (0, -1.0), "+x": (0, 1.0), "-y": (1, -1.0), "+y": (1, 1.0), "-z": (2, -1.0), "+z": (2, 1.0)}

    def __init__(self, half, face_materials):
        planes = []
        for face, material_id in face_materials.items():
            axis, sign = self.AXES[face]
            normal = np.zeros(3)
            normal[axis] = sign
            planes.append((normal * half, normal, material_id))
        self._planes = PlanesSurface(planes)

    def intersect_batch(self, origins, directions):
        return self._planes.intersect_batch(origins, directions)

    def intersect(self, ray: Ray):
        return self._planes.intersect(ray)


class EmptySurface:
    """A scene with nothing in it."""

    def intersect_batch(self, origins, directions):
        return HitBatch.empty(len(origins))

    def intersect(self, ray: Ray):
        return None


@pytest.fixture
def planes_surface():
    return PlanesSurface


@pytest.fixture
def box_surface():
    return BoxSurface


@pytest.fixture
def empty_surface():
    return EmptySurface()


@pytest.fixture
def make_scene():
    """Factory for small scenes built directly from a surface and materials."""

    def _make(
        surface,
        materials: MaterialTable,
        width: int = 8,
        height: int = 6,
        camera: CameraParams | None = None,
        background=None,
    ) -> Scene:
        if camera is None:
            camera = CameraParams(eye=(0.0, 0.0, 5.0), target=(0.0, 0.0, 0.0), fov=40.0)
        return Scene(
            objects=(),
            materials=materials,
            camera=ThinLensCamera(camera, width, height),
            surface=surface,
            background=background,
        )

    return _make
