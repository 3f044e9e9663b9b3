"""Taichi-backed nearest-hit queries over spheres, quads and triangles.

PrimitiveSurface packs the scene geometry into flat float32 arrays once, at
build time, and answers batched ray queries with a single parallel Taichi
kernel. Each ray walks every primitive and keeps the closest hit; there is no
acceleration structure, which is fine for the small analytic scenes this
renderer is used with.

Kernel launches are serialized with a lock, so one surface can be shared by
all tile workers. The output buffers are allocated per call, so concurrent
callers never see each other's results.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> surface = PrimitiveSurface(objects, materials)
    >>> hits = surface.intersect_batch(origins, directions)
"""

import logging
import threading
from typing import Optional, Sequence

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from prismatic.core.ray import Ray
from prismatic.geometry.quad import Quad, hit_quad
from prismatic.geometry.sphere import Sphere, hit_sphere
from prismatic.geometry.triangle import Triangle, hit_triangle
from prismatic.materials import MaterialTable

from .objects import DEFAULT_GROUP, MeshGeometry, QuadGeometry, SceneObject, SphereGeometry
from .surface import NO_HIT, Hit, HitBatch

logger = logging.getLogger(__name__)

vec3 = tm.vec3

# Intersection interval
T_MIN = 1e-4
T_MAX = 1e10


@ti.kernel
def _nearest_hits(
    origins: ti.types.ndarray(dtype=ti.f32, ndim=2),
    directions: ti.types.ndarray(dtype=ti.f32, ndim=2),
    num_rays: ti.i32,
    spheres: ti.types.ndarray(dtype=ti.f32, ndim=2),
    sphere_materials: ti.types.ndarray(dtype=ti.i32, ndim=1),
    num_spheres: ti.i32,
    quads: ti.types.ndarray(dtype=ti.f32, ndim=2),
    quad_materials: ti.types.ndarray(dtype=ti.i32, ndim=1),
    num_quads: ti.i32,
    triangles: ti.types.ndarray(dtype=ti.f32, ndim=2),
    triangle_materials: ti.types.ndarray(dtype=ti.i32, ndim=1),
    num_triangles: ti.i32,
    t_min: ti.f32,
    t_max: ti.f32,
    out_t: ti.types.ndarray(dtype=ti.f32, ndim=1),
    out_normals: ti.types.ndarray(dtype=ti.f32, ndim=2),
    out_materials: ti.types.ndarray(dtype=ti.i32, ndim=1),
):
    for i in range(num_rays):
        origin = vec3(origins[i, 0], origins[i, 1], origins[i, 2])
        direction = vec3(directions[i, 0], directions[i, 1], directions[i, 2])

        closest = t_max
        normal = vec3(0.0, 0.0, 0.0)
        material = -1

        for s in range(num_spheres):
            sphere = Sphere(
                center=vec3(spheres[s, 0], spheres[s, 1], spheres[s, 2]),
                radius=spheres[s, 3],
            )
            rec = hit_sphere(origin, direction, sphere, t_min, closest)
            if rec.hit == 1:
                closest = rec.t
                normal = rec.normal
                material = sphere_materials[s]

        for q in range(num_quads):
            quad = Quad(
                Q=vec3(quads[q, 0], quads[q, 1], quads[q, 2]),
                u=vec3(quads[q, 3], quads[q, 4], quads[q, 5]),
                v=vec3(quads[q, 6], quads[q, 7], quads[q, 8]),
            )
            rec = hit_quad(origin, direction, quad, t_min, closest)
            if rec.hit == 1:
                closest = rec.t
                normal = rec.normal
                material = quad_materials[q]

        for k in range(num_triangles):
            triangle = Triangle(
                v0=vec3(triangles[k, 0], triangles[k, 1], triangles[k, 2]),
                v1=vec3(triangles[k, 3], triangles[k, 4], triangles[k, 5]),
                v2=vec3(triangles[k, 6], triangles[k, 7], triangles[k, 8]),
            )
            rec = hit_triangle(origin, direction, triangle, t_min, closest)
            if rec.hit == 1:
                closest = rec.t
                normal = rec.normal
                material = triangle_materials[k]

        out_t[i] = closest
        out_normals[i, 0] = normal[0]
        out_normals[i, 1] = normal[1]
        out_normals[i, 2] = normal[2]
        out_materials[i] = material


def _packed(rows: list[list[float]], width: int) -> tuple[npt.NDArray[np.float32], int]:
    """Stack primitive rows, padding empty lists with one unused row."""
    count = len(rows)
    if count == 0:
        return np.zeros((1, width), dtype=np.float32), 0
    return np.ascontiguousarray(rows, dtype=np.float32), count


def _packed_ids(ids: list[int]) -> npt.NDArray[np.int32]:
    if not ids:
        return np.full(1, NO_HIT, dtype=np.int32)
    return np.ascontiguousarray(ids, dtype=np.int32)


class PrimitiveSurface:
    """Nearest-hit queries over the primitives of a set of scene objects.

    Args:
        objects: Scene objects whose surface groups are bound to materials.
        materials: Table resolving material names to ids.
        t_min: Smallest accepted ray parameter.
        t_max: Largest accepted ray parameter.

    Raises:
        ConfigurationError: If an object references an unknown material.
    """

    def __init__(
        self,
        objects: Sequence[SceneObject],
        materials: MaterialTable,
        t_min: float = T_MIN,
        t_max: float = T_MAX,
    ) -> None:
        sphere_rows: list[list[float]] = []
        sphere_ids: list[int] = []
        quad_rows: list[list[float]] = []
        quad_ids: list[int] = []
        triangle_rows: list[list[float]] = []
        triangle_ids: list[int] = []

        for obj in objects:
            geometry = obj.geometry
            if isinstance(geometry, SphereGeometry):
                sphere_rows.append([*geometry.center, geometry.radius])
                sphere_ids.append(materials.id_of(obj.materials[DEFAULT_GROUP]))
            elif isinstance(geometry, QuadGeometry):
                quad_rows.append([*geometry.corner, *geometry.u, *geometry.v])
                quad_ids.append(materials.id_of(obj.materials[DEFAULT_GROUP]))
            elif isinstance(geometry, MeshGeometry):
                for group, triangles in geometry.groups_triangles.items():
                    material_id = materials.id_of(obj.materials[group])
                    triangle_rows.extend(triangles.reshape(-1, 9).tolist())
                    triangle_ids.extend([material_id] * len(triangles))
            else:
                raise TypeError(f"Unsupported geometry: {type(geometry).__name__}")

        self._spheres, self.num_spheres = _packed(sphere_rows, 4)
        self._sphere_materials = _packed_ids(sphere_ids)
        self._quads, self.num_quads = _packed(quad_rows, 9)
        self._quad_materials = _packed_ids(quad_ids)
        self._triangles, self.num_triangles = _packed(triangle_rows, 9)
        self._triangle_materials = _packed_ids(triangle_ids)

        self.t_min = float(t_min)
        self.t_max = float(t_max)
        self._lock = threading.Lock()

        logger.debug(
            "Packed %d spheres, %d quads, %d triangles",
            self.num_spheres,
            self.num_quads,
            self.num_triangles,
        )

    @property
    def primitive_count(self) -> int:
        return self.num_spheres + self.num_quads + self.num_triangles

    def intersect_batch(
        self,
        origins: npt.NDArray[np.float64],
        directions: npt.NDArray[np.float64],
    ) -> HitBatch:
        """Nearest hits for a batch of rays.

        Args:
            origins: Ray origins, shape (N, 3).
            directions: Ray directions, shape (N, 3).

        Returns:
            HitBatch with float64 points computed from the hit distances.
        """
        count = len(origins)
        if count == 0 or self.primitive_count == 0:
            return HitBatch.empty(count)

        origins32 = np.ascontiguousarray(origins, dtype=np.float32)
        directions32 = np.ascontiguousarray(directions, dtype=np.float32)
        out_t = np.empty(count, dtype=np.float32)
        out_normals = np.empty((count, 3), dtype=np.float32)
        out_materials = np.empty(count, dtype=np.int32)

        with self._lock:
            _nearest_hits(
                origins32,
                directions32,
                count,
                self._spheres,
                self._sphere_materials,
                self.num_spheres,
                self._quads,
                self._quad_materials,
                self.num_quads,
                self._triangles,
                self._triangle_materials,
                self.num_triangles,
                self.t_min,
                self.t_max,
                out_t,
                out_normals,
                out_materials,
            )

        hit = out_materials != NO_HIT
        distances = np.where(hit, out_t.astype(np.float64), np.inf)
        points = np.where(
            hit[:, None],
            origins + np.where(hit, distances, 0.0)[:, None] * directions,
            0.0,
        )
        return HitBatch(
            hit=hit,
            distances=distances,
            points=points,
            normals=out_normals.astype(np.float64),
            materials=out_materials,
        )

    def intersect(self, ray: Ray) -> Optional[Hit]:
        """Nearest hit of a single ray, or None."""
        batch = self.intersect_batch(ray.origin[None, :], ray.direction[None, :])
        return batch.first()

    def __repr__(self) -> str:
        return (
            f"PrimitiveSurface(spheres={self.num_spheres}, quads={self.num_quads}, "
            f"triangles={self.num_triangles})"
        )
