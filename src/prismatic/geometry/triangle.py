"""Triangle primitive using the Moller-Trumbore intersection test.

Triangles are the building block of meshes. Each mesh face belongs to a named
surface group, which the scene binds to a material.

The geometric normal is normalize(cross(v1 - v0, v2 - v0)), so counter-
clockwise winding (seen from outside) gives outward normals.
"""

import taichi as ti
import taichi.math as tm

from .sphere import HitRecord

vec3 = tm.vec3


@ti.dataclass
class Triangle:
    """A triangle defined by its three vertices."""

    v0: vec3
    v1: vec3
    v2: vec3


@ti.func
def hit_triangle(
    ray_origin: vec3,
    ray_direction: vec3,
    triangle: Triangle,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Intersection of a ray with a triangle inside (t_min, t_max).

    Both faces are hit. Degenerate (zero-area) triangles never hit.
    """
    edge1 = triangle.v1 - triangle.v0
    edge2 = triangle.v2 - triangle.v0
    pvec = tm.cross(ray_direction, edge2)
    det = tm.dot(edge1, pvec)

    did_hit = 0
    hit_t = 0.0
    hit_normal = vec3(0.0, 0.0, 0.0)

    if ti.abs(det) > 1e-12:
        inv_det = 1.0 / det
        tvec = ray_origin - triangle.v0
        u = tm.dot(tvec, pvec) * inv_det

        if u >= 0.0 and u <= 1.0:
            qvec = tm.cross(tvec, edge1)
            v = tm.dot(ray_direction, qvec) * inv_det

            if v >= 0.0 and u + v <= 1.0:
                t = tm.dot(edge2, qvec) * inv_det

                if t > t_min and t < t_max:
                    n = tm.cross(edge1, edge2)
                    n_len = tm.length(n)
                    if n_len > 0.0:
                        did_hit = 1
                        hit_t = t
                        hit_normal = n / n_len

    return HitRecord(hit=did_hit, t=hit_t, normal=hit_normal)
