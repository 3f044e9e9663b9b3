"""Geometric primitives and their Taichi intersection routines.

Components:
    sphere: Sphere with robust quadratic intersection
    quad: Parallelogram with plane-and-bounds intersection
    triangle: Triangle with Moller-Trumbore intersection (mesh faces)

All intersection routines are Taichi functions returning a HitRecord with
the ray parameter and the outward geometric normal. They are called from the
batched nearest-hit kernel in prismatic.scene.intersection.
"""

from .quad import Quad, hit_quad
from .sphere import HitRecord, Sphere, hit_sphere
from .triangle import Triangle, hit_triangle

__all__ = [
    "HitRecord",
    "Sphere",
    "hit_sphere",
    "Quad",
    "hit_quad",
    "Triangle",
    "hit_triangle",
]
