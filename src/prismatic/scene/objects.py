"""Scene objects: geometry plus named surface groups bound to materials.

Every geometry exposes the names of its surface groups. Spheres and quads
have a single group, ``"surface"``; meshes have one group per named set of
faces (for example a gem with separate ``"crown"`` and ``"pavilion"``
facets). A SceneObject maps each group name to a material name, which the
scene builder resolves through the MaterialTable.

Example:
    >>> gem = SceneObject(
    ...     SphereGeometry(center=(0.0, 0.0, 1.0), radius=1.0),
    ...     {"surface": "diamond"},
    ... )
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Mapping, Union

import numpy as np
import numpy.typing as npt

from prismatic.errors import ConfigurationError

DEFAULT_GROUP = "surface"


def _vec3(name: str, value: tuple[float, float, float]) -> tuple[float, float, float]:
    values = tuple(float(v) for v in value)
    if len(values) != 3 or not all(math.isfinite(v) for v in values):
        raise ConfigurationError(f"{name} must be three finite numbers, got {value}")
    return values  # type: ignore[return-value]


@dataclass(frozen=True)
class SphereGeometry:
    """A sphere given by center and radius."""

    center: tuple[float, float, float]
    radius: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "center", _vec3("Sphere center", self.center))
        radius = float(self.radius)
        if not math.isfinite(radius) or radius <= 0.0:
            raise ConfigurationError(f"Sphere radius must be > 0, got {radius}")
        object.__setattr__(self, "radius", radius)

    @property
    def groups(self) -> tuple[str, ...]:
        return (DEFAULT_GROUP,)


@dataclass(frozen=True)
class QuadGeometry:
    """A parallelogram given by a corner and two edge vectors.

    The normal is normalize(cross(u, v)).
    """

    corner: tuple[float, float, float]
    u: tuple[float, float, float]
    v: tuple[float, float, float]

    def __post_init__(self) -> None:
        object.__setattr__(self, "corner", _vec3("Quad corner", self.corner))
        object.__setattr__(self, "u", _vec3("Quad edge u", self.u))
        object.__setattr__(self, "v", _vec3("Quad edge v", self.v))
        if np.linalg.norm(np.cross(self.u, self.v)) == 0.0:
            raise ConfigurationError("Quad edges must not be parallel")

    @property
    def groups(self) -> tuple[str, ...]:
        return (DEFAULT_GROUP,)


@dataclass(frozen=True, eq=False)
class MeshGeometry:
    """A triangle mesh split into named surface groups.

    Attributes:
        groups_triangles: Mapping of group name to an array of shape (T, 3, 3)
            holding the three vertices of each triangle.
    """

    groups_triangles: Mapping[str, npt.NDArray[np.float64]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.groups_triangles:
            raise ConfigurationError("Mesh must have at least one surface group")

        checked = {}
        for name, triangles in self.groups_triangles.items():
            array = np.asarray(triangles, dtype=np.float64)
            if array.ndim != 3 or array.shape[1:] != (3, 3):
                raise ConfigurationError(
                    f"Mesh group '{name}' must have shape (T, 3, 3), got {array.shape}"
                )
            if not np.all(np.isfinite(array)):
                raise ConfigurationError(f"Mesh group '{name}' has non-finite vertices")
            array.setflags(write=False)
            checked[name] = array
        object.__setattr__(self, "groups_triangles", checked)

    @classmethod
    def from_indexed(
        cls,
        vertices: npt.ArrayLike,
        faces: Mapping[str, npt.ArrayLike],
    ) -> MeshGeometry:
        """Build a mesh from a shared vertex array and per-group face indices.

        Args:
            vertices: Array of shape (V, 3).
            faces: Mapping of group name to an integer array of shape (T, 3).
        """
        vertices = np.asarray(vertices, dtype=np.float64)
        groups = {}
        for name, indices in faces.items():
            indices = np.asarray(indices, dtype=np.int64)
            if indices.size and (indices.min() < 0 or indices.max() >= len(vertices)):
                raise ConfigurationError(f"Mesh group '{name}' references missing vertices")
            groups[name] = vertices[indices]
        return cls(groups)

    @property
    def groups(self) -> tuple[str, ...]:
        return tuple(self.groups_triangles)

    @property
    def triangle_count(self) -> int:
        return sum(len(t) for t in self.groups_triangles.values())


Geometry = Union[SphereGeometry, QuadGeometry, MeshGeometry]


@dataclass(frozen=True, eq=False)
class SceneObject:
    """Geometry with its surface groups bound to material names.

    Attributes:
        geometry: The object's shape.
        materials: Mapping of surface group name to material name. Every
            group of the geometry must be bound.
    """

    geometry: Geometry
    materials: Mapping[str, str]

    def __post_init__(self) -> None:
        missing = [g for g in self.geometry.groups if g not in self.materials]
        if missing:
            raise ConfigurationError(f"Surface groups without a material: {', '.join(missing)}")
        unknown = [g for g in self.materials if g not in self.geometry.groups]
        if unknown:
            raise ConfigurationError(f"Materials bound to unknown surface groups: {', '.join(unknown)}")
        object.__setattr__(self, "materials", dict(self.materials))
