"""Nearest-hit query interface between the integrator and the scene.

The integrator only needs one question answered: where does this ray first
hit the scene, and which material is bound there. Any object implementing
:class:`SceneSurface` can answer it. Implementations must be safe to query
from several worker threads at once, since the scene is shared read-only by
all tiles.

``intersect`` answers a single ray; ``intersect_batch`` answers many at once
and is what the path integrator calls each bounce.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple, Optional, Protocol, runtime_checkable

import numpy as np
import numpy.typing as npt

from prismatic.core.ray import Ray

# Marker stored in HitBatch.materials for rays that hit nothing
NO_HIT = -1


@dataclass(frozen=True)
class Hit:
    """Nearest intersection of a single ray.

    Attributes:
        point: World-space hit point, shape (3,).
        normal: Outward geometric normal, shape (3,).
        material: Id of the bound material in the scene's MaterialTable.
        distance: Ray parameter of the hit.
    """

    point: npt.NDArray[np.float64]
    normal: npt.NDArray[np.float64]
    material: int
    distance: float


class HitBatch(NamedTuple):
    """Nearest intersections of a batch of N rays.

    Attributes:
        hit: True where the ray hit something, shape (N,).
        distances: Ray parameter of each hit (undefined where missed).
        points: Hit points, shape (N, 3).
        normals: Outward geometric normals, shape (N, 3).
        materials: Material ids, NO_HIT where missed, shape (N,).
    """

    hit: npt.NDArray[np.bool_]
    distances: npt.NDArray[np.float64]
    points: npt.NDArray[np.float64]
    normals: npt.NDArray[np.float64]
    materials: npt.NDArray[np.int32]

    @classmethod
    def empty(cls, count: int) -> HitBatch:
        """A batch where every ray missed."""
        return cls(
            hit=np.zeros(count, dtype=bool),
            distances=np.full(count, np.inf),
            points=np.zeros((count, 3)),
            normals=np.zeros((count, 3)),
            materials=np.full(count, NO_HIT, dtype=np.int32),
        )

    def first(self) -> Optional[Hit]:
        """The first entry as a single Hit, or None if it missed."""
        if not self.hit[0]:
            return None
        return Hit(
            point=self.points[0],
            normal=self.normals[0],
            material=int(self.materials[0]),
            distance=float(self.distances[0]),
        )


@runtime_checkable
class SceneSurface(Protocol):
    """Thread-safe nearest-hit query over a read-only scene."""

    def intersect(self, ray: Ray) -> Optional[Hit]:
        """Nearest hit of one ray, or None on a miss."""
        ...

    def intersect_batch(
        self,
        origins: npt.NDArray[np.float64],
        directions: npt.NDArray[np.float64],
    ) -> HitBatch:
        """Nearest hits of a batch of rays with shape (N, 3) inputs."""
        ...
