"""Material table and the scatter-or-emit dispatch.

Surfaces reference materials by integer id. The :class:`MaterialTable` binds
names to ids at scene-build time, and :func:`scatter_or_emit` resolves a batch
of hits against the table, grouping rays by material and calling the
matching variant:

- Emission: adds radiance and terminates the path
- Refractive: Fresnel-sampled reflection or refraction
- Mirror: deterministic reflection with blended reflectance

All outputs are clamped so degenerate geometry never leaks NaN into a path's
throughput.
"""

from __future__ import annotations

from typing import Iterator, NamedTuple, Union

import numpy as np
import numpy.typing as npt

from prismatic.core.ray import resolve_normals
from prismatic.errors import ConfigurationError

from .base import MaterialKind, clamp_weights
from .emission import Emission
from .mirror import Mirror, scatter_mirror
from .refractive import Refractive, scatter_refractive

Material = Union[Refractive, Mirror, Emission]

# Material ids are stored as int32 in hit buffers
MAX_MATERIALS = 256


class Interaction(NamedTuple):
    """Result of resolving a batch of hits against their materials.

    Attributes:
        directions: New ray directions, shape (N, 3). Unchanged for
            terminated paths.
        weights: Throughput multipliers in [0, 1], shape (N,).
        emitted: Emitted radiance picked up at the hit, shape (N,).
        terminated: True where the hit ends the path (emitters).
        reflected: True where the path was reflected (mirror reflection,
            Fresnel reflection, or total internal reflection).
        normals: Resolved unit geometric normals used for the interaction.
    """

    directions: npt.NDArray[np.float64]
    weights: npt.NDArray[np.float64]
    emitted: npt.NDArray[np.float64]
    terminated: npt.NDArray[np.bool_]
    reflected: npt.NDArray[np.bool_]
    normals: npt.NDArray[np.float64]


class MaterialTable:
    """Name-to-material binding table.

    Materials are immutable and may be shared by many surfaces. The table
    assigns each name a stable integer id in insertion order.

    Example:
        >>> table = MaterialTable()
        >>> glass_id = table.add("glass", Refractive(base_ior=1.5))
        >>> table["glass"] is table[glass_id]
        True
    """

    def __init__(self) -> None:
        self._materials: list[Material] = []
        self._ids: dict[str, int] = {}

    def add(self, name: str, material: Material) -> int:
        """Register a material under a unique name and return its id.

        Raises:
            ConfigurationError: If the name is taken, the object is not a
                material, or the table is full.
        """
        if name in self._ids:
            raise ConfigurationError(f"Material '{name}' is already defined")
        if not isinstance(material, (Refractive, Mirror, Emission)):
            raise ConfigurationError(
                f"Material '{name}' must be Refractive, Mirror or Emission, "
                f"got {type(material).__name__}"
            )
        if len(self._materials) >= MAX_MATERIALS:
            raise ConfigurationError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

        self._ids[name] = len(self._materials)
        self._materials.append(material)
        return self._ids[name]

    def id_of(self, name: str) -> int:
        """Id bound to a material name."""
        try:
            return self._ids[name]
        except KeyError:
            raise ConfigurationError(f"Unknown material '{name}'") from None

    @property
    def names(self) -> list[str]:
        return list(self._ids)

    def __getitem__(self, key: Union[int, str]) -> Material:
        if isinstance(key, str):
            return self._materials[self.id_of(key)]
        return self._materials[key]

    def __contains__(self, name: object) -> bool:
        return name in self._ids

    def __len__(self) -> int:
        return len(self._materials)

    def __iter__(self) -> Iterator[Material]:
        return iter(self._materials)

    def __repr__(self) -> str:
        return f"MaterialTable({', '.join(self._ids)})"


def scatter_or_emit(
    materials: MaterialTable,
    material_ids: npt.NDArray[np.integer],
    directions: npt.NDArray[np.float64],
    normals: npt.NDArray[np.float64],
    wavelengths: npt.NDArray[np.float64],
    u: npt.NDArray[np.float64],
) -> Interaction:
    """Resolve a batch of hits against their materials.

    Args:
        materials: Table the ids refer to.
        material_ids: Material id of each hit, shape (N,).
        directions: Unit incident directions, shape (N, 3).
        normals: Geometric normals as reported by the surface, shape (N, 3).
            They need not be unit length and may face either side.
        wavelengths: Wavelength of each path in nm, shape (N,).
        u: Uniform random numbers in [0, 1), shape (N,).

    Returns:
        The combined Interaction for the batch.
    """
    count = material_ids.shape[0]
    normals = resolve_normals(normals, directions)

    new_directions = directions.copy()
    weights = np.zeros(count)
    emitted = np.zeros(count)
    terminated = np.zeros(count, dtype=bool)
    reflected = np.zeros(count, dtype=bool)

    for material_id in np.unique(material_ids):
        mask = material_ids == material_id
        material = materials[int(material_id)]

        if material.kind == MaterialKind.EMISSION:
            emitted[mask] = material.emitted(wavelengths[mask])
            terminated[mask] = True
        elif material.kind == MaterialKind.REFRACTIVE:
            dirs, w, refl = scatter_refractive(
                material, directions[mask], normals[mask], wavelengths[mask], u[mask]
            )
            new_directions[mask] = dirs
            weights[mask] = w
            reflected[mask] = refl
        elif material.kind == MaterialKind.MIRROR:
            dirs, w = scatter_mirror(material, directions[mask], normals[mask], wavelengths[mask])
            new_directions[mask] = dirs
            weights[mask] = w
            reflected[mask] = True

    # A zero direction carries no light
    weights[np.all(new_directions == 0.0, axis=1) & ~terminated] = 0.0

    emitted = np.nan_to_num(np.maximum(emitted, 0.0), nan=0.0, posinf=0.0)
    return Interaction(
        directions=new_directions,
        weights=clamp_weights(weights),
        emitted=emitted,
        terminated=terminated,
        reflected=reflected,
        normals=normals,
    )
