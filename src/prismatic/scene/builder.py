"""Programmatic scene construction.

SceneBuilder collects materials, objects, a camera and an optional
background, and validates everything when :meth:`SceneBuilder.build` is
called: unknown material names, unbound surface groups and invalid camera
bases are reported as ConfigurationError before any rendering starts. The
resulting :class:`Scene` is immutable and shared read-only by all workers.

Example:
    >>> from prismatic.core.spectrum import d65
    >>> from prismatic.materials import Emission, Refractive
    >>> builder = SceneBuilder()
    >>> builder.add_material("glass", Refractive(base_ior=1.5, dispersion=0.02))
    >>> builder.add_material("lamp", Emission(d65()))
    >>> builder.add_sphere((0.0, 0.0, 1.0), 1.0, "glass")
    >>> builder.add_quad((-1.0, -1.0, 4.0), (2.0, 0.0, 0.0), (0.0, 2.0, 0.0), "lamp")
    >>> builder.set_camera(CameraParams(eye=(0.0, -8.0, 1.0), target=(0.0, 0.0, 1.0), up=(0.0, 0.0, 1.0)))
    >>> scene = builder.build(width=320, height=240)
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Optional

from prismatic.camera.thin_lens import CameraParams, ThinLensCamera
from prismatic.core.spectrum import Spectrum
from prismatic.errors import ConfigurationError
from prismatic.materials import Material, MaterialTable

from .objects import DEFAULT_GROUP, MeshGeometry, QuadGeometry, SceneObject, SphereGeometry
from .surface import SceneSurface

logger = logging.getLogger(__name__)

# Builds the nearest-hit query for a finished object list
SurfaceFactory = Callable[[Sequence[SceneObject], MaterialTable], SceneSurface]

__all__ = ["Scene", "SceneBuilder", "SurfaceFactory"]


@dataclass(frozen=True, eq=False)
class Scene:
    """Immutable scene shared by all render workers.

    Attributes:
        objects: Scene objects in insertion order.
        materials: Name-to-material table the objects are bound through.
        camera: Camera producing primary rays; defines the image size.
        surface: Nearest-hit query over the objects.
        background: Radiance of rays leaving the scene. None is black.
    """

    objects: tuple[SceneObject, ...]
    materials: MaterialTable
    camera: ThinLensCamera
    surface: SceneSurface
    background: Optional[Spectrum] = None


def _default_surface(objects: Sequence[SceneObject], materials: MaterialTable) -> SceneSurface:
    from .intersection import PrimitiveSurface

    return PrimitiveSurface(objects, materials)


class SceneBuilder:
    """Collects scene contents and builds an immutable Scene."""

    def __init__(self) -> None:
        self.materials = MaterialTable()
        self.objects: list[SceneObject] = []
        self.camera_params: Optional[CameraParams] = None
        self.background: Optional[Spectrum] = None

    def add_material(self, name: str, material: Material) -> int:
        """Register a named material and return its id."""
        return self.materials.add(name, material)

    def add_object(self, obj: SceneObject) -> SceneObject:
        self.objects.append(obj)
        return obj

    def add_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        material: str,
    ) -> SceneObject:
        """Add a sphere bound to a named material."""
        return self.add_object(SceneObject(SphereGeometry(center, radius), {DEFAULT_GROUP: material}))

    def add_quad(
        self,
        corner: tuple[float, float, float],
        u: tuple[float, float, float],
        v: tuple[float, float, float],
        material: str,
    ) -> SceneObject:
        """Add a quad (corner plus two edges) bound to a named material."""
        return self.add_object(SceneObject(QuadGeometry(corner, u, v), {DEFAULT_GROUP: material}))

    def add_mesh(self, mesh: MeshGeometry, materials: Mapping[str, str]) -> SceneObject:
        """Add a mesh whose surface groups are bound to named materials."""
        return self.add_object(SceneObject(mesh, materials))

    def add_box(
        self,
        minimum: tuple[float, float, float],
        maximum: tuple[float, float, float],
        material: str,
    ) -> list[SceneObject]:
        """Add the six faces of an axis-aligned box, normals pointing out."""
        x0, y0, z0 = minimum
        x1, y1, z1 = maximum
        dx, dy, dz = x1 - x0, y1 - y0, z1 - z0
        if dx <= 0.0 or dy <= 0.0 or dz <= 0.0:
            raise ConfigurationError(f"Box maximum {maximum} must exceed minimum {minimum}")

        faces = [
            ((x0, y0, z0), (0.0, dy, 0.0), (dx, 0.0, 0.0)),  # bottom (-z)
            ((x0, y0, z1), (dx, 0.0, 0.0), (0.0, dy, 0.0)),  # top (+z)
            ((x0, y0, z0), (dx, 0.0, 0.0), (0.0, 0.0, dz)),  # front (-y)
            ((x0, y1, z0), (0.0, 0.0, dz), (dx, 0.0, 0.0)),  # back (+y)
            ((x0, y0, z0), (0.0, 0.0, dz), (0.0, dy, 0.0)),  # left (-x)
            ((x1, y0, z0), (0.0, dy, 0.0), (0.0, 0.0, dz)),  # right (+x)
        ]
        return [self.add_quad(corner, u, v, material) for corner, u, v in faces]

    def set_camera(self, params: CameraParams) -> None:
        self.camera_params = params

    def set_background(self, spectrum: Optional[Spectrum]) -> None:
        """Radiance seen by rays that leave the scene (None for black)."""
        if spectrum is not None and not isinstance(spectrum, Spectrum):
            raise ConfigurationError(f"Background must be a Spectrum, got {type(spectrum).__name__}")
        self.background = spectrum

    def build(
        self,
        width: int,
        height: int,
        surface_factory: Optional[SurfaceFactory] = None,
    ) -> Scene:
        """Validate the collected contents and build the Scene.

        Args:
            width: Image width in pixels.
            height: Image height in pixels.
            surface_factory: Builds the nearest-hit query. Defaults to the
                Taichi-backed PrimitiveSurface.

        Raises:
            ConfigurationError: On a missing camera, an invalid camera basis,
                or a surface group bound to an unknown material.
        """
        if self.camera_params is None:
            raise ConfigurationError("Scene has no camera")
        camera = ThinLensCamera(self.camera_params, width, height)

        for index, obj in enumerate(self.objects):
            for group, name in obj.materials.items():
                if name not in self.materials:
                    raise ConfigurationError(
                        f"Object {index} binds surface group '{group}' to unknown material '{name}'"
                    )

        objects = tuple(self.objects)
        factory = surface_factory if surface_factory is not None else _default_surface
        surface = factory(objects, self.materials)

        logger.info(
            "Built scene: %d objects, %d materials, camera %r",
            len(objects),
            len(self.materials),
            camera,
        )
        return Scene(
            objects=objects,
            materials=self.materials,
            camera=camera,
            surface=surface,
            background=self.background,
        )
