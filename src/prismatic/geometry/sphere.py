"""Sphere primitive with robust ray-sphere intersection.

The intersection solves the quadratic with the cancellation-free formulation
from Ray Tracing Gems (chapter 7), which keeps grazing hits stable in f32.

Normals are reported outward (away from the center) regardless of which side
the ray arrives from; materials decide front/back facing themselves.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from prismatic.geometry.sphere import Sphere, hit_sphere
    >>> # Use hit_sphere within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

vec3 = tm.vec3


@ti.dataclass
class Sphere:
    """A sphere defined by center point and radius."""

    center: vec3
    radius: ti.f32


@ti.dataclass
class HitRecord:
    """Record of a ray-primitive intersection.

    Attributes:
        hit: 1 if the ray hit the primitive, 0 otherwise.
        t: Ray parameter of the hit. Only valid if hit == 1.
        normal: Unit outward geometric normal. Only valid if hit == 1.
    """

    hit: ti.i32
    t: ti.f32
    normal: vec3


@ti.func
def _solve_quadratic_robust(h: ti.f32, a: ti.f32, c: ti.f32, sqrt_d: ti.f32):
    """Roots of a*t^2 + 2*h*t + c = 0 as (t0, t1) with t0 <= t1."""
    sign_h = ti.select(h < 0.0, -1.0, 1.0)
    q = -(h + sign_h * sqrt_d)

    t0 = 0.0
    t1 = 0.0
    if ti.abs(q) < 1e-10:
        t0 = (-h - sqrt_d) / a
        t1 = (-h + sqrt_d) / a
    else:
        t0 = q / a
        t1 = c / q

    if t0 > t1:
        temp = t0
        t0 = t1
        t1 = temp

    return t0, t1


@ti.func
def hit_sphere(
    ray_origin: vec3,
    ray_direction: vec3,
    sphere: Sphere,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Nearest intersection of a ray with a sphere inside (t_min, t_max).

    Rays starting inside the sphere hit the far side.
    """
    oc = ray_origin - sphere.center
    a = tm.dot(ray_direction, ray_direction)
    h = tm.dot(ray_direction, oc)
    c = tm.dot(oc, oc) - sphere.radius * sphere.radius
    discriminant = h * h - a * c

    did_hit = 0
    hit_t = 0.0
    hit_normal = vec3(0.0, 0.0, 0.0)

    if discriminant >= 0.0 and sphere.radius > 0.0:
        t0, t1 = _solve_quadratic_robust(h, a, c, ti.sqrt(discriminant))

        t = t0
        valid = t > t_min and t < t_max
        if not valid:
            t = t1
            valid = t > t_min and t < t_max

        if valid:
            did_hit = 1
            hit_t = t
            hit_normal = (ray_origin + t * ray_direction - sphere.center) / sphere.radius

    return HitRecord(hit=did_hit, t=hit_t, normal=hit_normal)
