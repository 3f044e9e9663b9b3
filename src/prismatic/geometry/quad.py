"""Quad (parallelogram) primitive.

A quad is a corner point Q plus two edge vectors u and v, spanning the
parallelogram Q, Q+u, Q+v, Q+u+v. Its normal is normalize(cross(u, v)).

The intersection is a plane test followed by a bounds check in the quad's
(alpha, beta) coordinates, using the helper vectors
w_u = cross(v, n) / |n|^2 and w_v = cross(n, u) / |n|^2 with n = cross(u, v).

Example:
    >>> # Floor at z=0 spanning x=[0,1] and y=[0,1], normal +z
    >>> quad = Quad(Q=vec3(0, 0, 0), u=vec3(1, 0, 0), v=vec3(0, 1, 0))
"""

import taichi as ti
import taichi.math as tm

from .sphere import HitRecord

vec3 = tm.vec3


@ti.dataclass
class Quad:
    """A parallelogram defined by a corner point and two edge vectors."""

    Q: vec3
    u: vec3
    v: vec3


@ti.func
def hit_quad(
    ray_origin: vec3,
    ray_direction: vec3,
    quad: Quad,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Intersection of a ray with a quad inside (t_min, t_max).

    Degenerate quads (parallel edges) and rays parallel to the plane never
    hit. The returned normal is the quad's geometric normal.
    """
    n = tm.cross(quad.u, quad.v)
    n_dot_n = tm.dot(n, n)

    did_hit = 0
    hit_t = 0.0
    hit_normal = vec3(0.0, 0.0, 0.0)

    if n_dot_n > 1e-12:
        normal = n / ti.sqrt(n_dot_n)
        denom = tm.dot(normal, ray_direction)

        if ti.abs(denom) > 1e-8:
            t = (tm.dot(normal, quad.Q) - tm.dot(normal, ray_origin)) / denom

            if t > t_min and t < t_max:
                offset = ray_origin + t * ray_direction - quad.Q
                alpha = tm.dot(tm.cross(quad.v, n) / n_dot_n, offset)
                beta = tm.dot(tm.cross(n, quad.u) / n_dot_n, offset)

                if alpha >= 0.0 and alpha <= 1.0 and beta >= 0.0 and beta <= 1.0:
                    did_hit = 1
                    hit_t = t
                    hit_normal = normal

    return HitRecord(hit=did_hit, t=hit_t, normal=hit_normal)
