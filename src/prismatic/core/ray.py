"""Ray data structure and batched vector utilities.

Paths are traced in batches, so most helpers here take arrays of shape
(N, 3) and operate row-wise. A single :class:`Ray` is used at the collaborator
boundary (camera ray generation and single-ray scene queries).

The specular helpers (reflect, refract, schlick_fresnel) never produce NaN:
cosines are clamped and total internal reflection is reported through a mask
instead of a zero direction.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

# Offset applied to new ray origins to avoid self-intersection
RAY_EPSILON = 1e-4

# Vectors shorter than this are treated as degenerate
DEGENERATE_LENGTH = 1e-12

Vec3Array = npt.NDArray[np.float64]


@dataclass(frozen=True)
class Ray:
    """A ray with origin and direction.

    Attributes:
        origin: Starting point, shape (3,).
        direction: Unit direction, shape (3,).
    """

    origin: npt.NDArray[np.float64]
    direction: npt.NDArray[np.float64]

    def at(self, t: float) -> npt.NDArray[np.float64]:
        """Point along the ray at parameter t."""
        return self.origin + t * self.direction


def dot(a: Vec3Array, b: Vec3Array) -> npt.NDArray[np.float64]:
    """Row-wise dot product of two (N, 3) arrays."""
    return np.einsum("...i,...i->...", a, b)


def length(v: Vec3Array) -> npt.NDArray[np.float64]:
    return np.sqrt(dot(v, v))


def normalize(v: Vec3Array) -> Vec3Array:
    """Normalize rows; degenerate or non-finite rows become zero vectors."""
    v = np.asarray(v, dtype=np.float64)
    lengths = length(v)[..., None]
    with np.errstate(invalid="ignore", divide="ignore"):
        result = v / lengths
    ok = (lengths > DEGENERATE_LENGTH) & np.all(np.isfinite(result), axis=-1, keepdims=True)
    return np.where(ok, result, 0.0)


def reflect(directions: Vec3Array, normals: Vec3Array) -> Vec3Array:
    """Mirror reflection of directions about normals: d - 2(d.n)n."""
    return directions - 2.0 * dot(directions, normals)[..., None] * normals


def refract(
    directions: Vec3Array,
    normals: Vec3Array,
    eta_ratio: npt.NDArray[np.float64],
) -> tuple[Vec3Array, npt.NDArray[np.bool_]]:
    """Refract directions through an interface using Snell's law.

    Args:
        directions: Unit incident directions, shape (N, 3).
        normals: Unit normals facing against the incident directions.
        eta_ratio: n1 / n2 for each ray, shape (N,).

    Returns:
        Tuple of (refracted, tir). Rows where ``tir`` is True have no real
        solution (total internal reflection); their refracted direction is the
        mirror reflection so the result is always a valid unit vector.
    """
    cos_i = np.clip(-dot(directions, normals), 0.0, 1.0)
    sin2_t = eta_ratio**2 * (1.0 - cos_i**2)
    tir = sin2_t > 1.0
    cos_t = np.sqrt(np.maximum(1.0 - sin2_t, 0.0))

    refracted = eta_ratio[..., None] * directions + (eta_ratio * cos_i - cos_t)[..., None] * normals
    refracted = np.where(tir[..., None], reflect(directions, normals), refracted)
    return normalize(refracted), tir


def schlick_fresnel(
    cos_i: npt.NDArray[np.float64],
    n1: npt.ArrayLike,
    n2: npt.ArrayLike,
) -> npt.NDArray[np.float64]:
    """Schlick's approximation of Fresnel reflectance.

    When light travels into a less dense medium (n1 > n2) the transmitted
    cosine is used instead of the incident one, and the reflectance is 1 past
    the critical angle.

    Args:
        cos_i: Cosine of the incidence angle, clamped to [0, 1].
        n1: Index of refraction on the incident side.
        n2: Index of refraction on the transmitted side.

    Returns:
        Reflectance in [0, 1].
    """
    cos_i = np.clip(np.nan_to_num(np.asarray(cos_i, dtype=np.float64), nan=0.0), 0.0, 1.0)
    n1 = np.asarray(n1, dtype=np.float64)
    n2 = np.asarray(n2, dtype=np.float64)

    r0 = ((n1 - n2) / (n1 + n2)) ** 2

    sin2_t = (n1 / n2) ** 2 * (1.0 - cos_i**2)
    denser = n1 > n2
    tir = denser & (sin2_t > 1.0)
    cos = np.where(denser, np.sqrt(np.maximum(1.0 - sin2_t, 0.0)), cos_i)

    reflectance = r0 + (1.0 - r0) * (1.0 - cos) ** 5
    return np.clip(np.where(tir, 1.0, reflectance), 0.0, 1.0)


def resolve_normals(normals: Vec3Array, directions: Vec3Array) -> Vec3Array:
    """Normalize hit normals, replacing degenerate ones.

    A zero-length or non-finite normal is replaced by the reversed incident
    direction, which turns the hit into a head-on interaction instead of a
    NaN.
    """
    unit = normalize(normals)
    degenerate = np.all(unit == 0.0, axis=-1, keepdims=True)
    return np.where(degenerate, -directions, unit)


def offset_ray_origin(
    points: Vec3Array,
    normals: Vec3Array,
    directions: Vec3Array,
    epsilon: float = RAY_EPSILON,
) -> Vec3Array:
    """Push hit points off the surface on the side the new ray travels to."""
    side = np.where(dot(directions, normals) >= 0.0, 1.0, -1.0)
    return points + (epsilon * side)[..., None] * normals
