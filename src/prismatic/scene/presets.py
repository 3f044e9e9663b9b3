"""Ready-made scenes.

Three factories are provided:

- :func:`emitter_wall_scene`: the camera looks straight at an emitter that
  fills the view. Every path hits it directly, so each pixel's spectral
  estimate equals the emitter spectrum exactly.
- :func:`mirror_box_scene`: a closed box of mirrors around a small emitter.
  Light bounces between the walls, so the image brightens monotonically as
  the bounce budget grows.
- :func:`prism_scene`: a dispersive glass prism and two diamond spheres on a
  dark plastic floor, lit by two D65 lamps (the right one twice as bright).

Example:
    >>> from prismatic.core.backend import init_taichi
    >>> init_taichi("cpu")
    >>> scene = prism_scene(width=512, height=300)
    >>> scene.camera
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from prismatic.camera.thin_lens import CameraParams
from prismatic.core.spectrum import ConstantSpectrum, d65
from prismatic.materials import Emission, Mirror, Refractive

from .builder import Scene, SceneBuilder, SurfaceFactory
from .objects import MeshGeometry

# =============================================================================
# Material Constants
# =============================================================================

# Diamond: high index with strong dispersion ("fire")
DIAMOND_IOR = 2.37782
DIAMOND_DISPERSION = 0.01371

# Flint glass prism
PRISM_IOR = 1.62
PRISM_DISPERSION = 0.0105

# Dark plastic floor that only reflects at grazing angles
PLEXI_COLOR = 0.0
PLEXI_FRESNEL_COLOR = 0.2
PLEXI_FRESNEL_IOR = 1.1

# Gap between the prism's bottom cap and the floor, so the two never tie
PRISM_LIFT = 1e-3


@dataclass
class PrismSceneParams:
    """Parameters of :func:`prism_scene`.

    Attributes:
        light_left: Intensity multiplier of the left D65 lamp.
        light_right: Intensity multiplier of the right D65 lamp.
        prism_dispersion: Cauchy dispersion coefficient of the prism.
        aperture: Lens radius of the camera (0 for a pinhole).
    """

    light_left: float = 1.0
    light_right: float = 2.0
    prism_dispersion: float = PRISM_DISPERSION
    aperture: float = 0.02


# =============================================================================
# Geometry Helpers
# =============================================================================


def _orient_outward(triangles: npt.NDArray[np.float64], center: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
    """Flip triangles of a convex solid so their normals face away from center."""
    v0, v1, v2 = triangles[:, 0], triangles[:, 1], triangles[:, 2]
    normals = np.cross(v1 - v0, v2 - v0)
    centroids = triangles.mean(axis=1)
    inward = np.einsum("ij,ij->i", normals, centroids - center) < 0.0
    flipped = triangles.copy()
    flipped[inward, 1], flipped[inward, 2] = triangles[inward, 2], triangles[inward, 1]
    return flipped


def triangular_prism(
    center: tuple[float, float],
    side: float,
    height: float,
    rotation: float = 0.0,
    base: float = 0.0,
) -> MeshGeometry:
    """A prism with an equilateral cross-section standing on the z = base plane.

    Args:
        center: (x, y) of the cross-section's centroid.
        side: Edge length of the triangular cross-section.
        height: Extent along +z.
        rotation: Rotation about the z axis in degrees.
        base: z of the bottom cap.

    Returns:
        A closed mesh with groups ``"sides"`` and ``"caps"``.
    """
    circumradius = side / np.sqrt(3.0)
    angles = np.radians(rotation + np.array([90.0, 210.0, 330.0]))
    xs = center[0] + circumradius * np.cos(angles)
    ys = center[1] + circumradius * np.sin(angles)

    bottom = np.column_stack([xs, ys, np.full(3, base)])
    top = np.column_stack([xs, ys, np.full(3, base + height)])

    sides = []
    for i in range(3):
        j = (i + 1) % 3
        sides.append([bottom[i], bottom[j], top[j]])
        sides.append([bottom[i], top[j], top[i]])
    caps = [bottom, top]

    solid_center = np.array([center[0], center[1], base + height / 2.0])
    return MeshGeometry(
        {
            "sides": _orient_outward(np.asarray(sides), solid_center),
            "caps": _orient_outward(np.asarray(caps), solid_center),
        }
    )


# =============================================================================
# Scene Factories
# =============================================================================


def emitter_wall_scene(
    width: int = 64,
    height: int = 64,
    radiance: float = 1.0,
    surface_factory: SurfaceFactory | None = None,
) -> Scene:
    """A camera facing an emitter that covers the whole view.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.
        radiance: Constant spectral radiance of the emitter.
        surface_factory: Optional replacement for the Taichi surface.
    """
    builder = SceneBuilder()
    builder.add_material("wall", Emission(ConstantSpectrum(radiance)))

    # Far larger than the view frustum at this distance
    builder.add_quad((-100.0, -100.0, 0.0), (200.0, 0.0, 0.0), (0.0, 200.0, 0.0), "wall")

    builder.set_camera(CameraParams(eye=(0.0, 0.0, 5.0), target=(0.0, 0.0, 0.0), fov=40.0))
    return builder.build(width, height, surface_factory)


def mirror_box_scene(
    width: int = 32,
    height: int = 32,
    reflectance: float = 0.9,
    light_radius: float = 0.25,
    surface_factory: SurfaceFactory | None = None,
) -> Scene:
    """A closed mirror box with a spherical emitter inside.

    The box spans [-1, 1] on every axis. The camera sits inside, near the
    front wall, looking at the back wall. No ray can leave the box.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.
        reflectance: Constant reflectance of the walls.
        light_radius: Radius of the emitter at the box center.
        surface_factory: Optional replacement for the Taichi surface.
    """
    builder = SceneBuilder()
    builder.add_material("mirror", Mirror(color=ConstantSpectrum(reflectance)))
    builder.add_material("light", Emission(ConstantSpectrum(1.0)))

    builder.add_box((-1.0, -1.0, -1.0), (1.0, 1.0, 1.0), "mirror")
    builder.add_sphere((0.3, 0.2, 0.1), light_radius, "light")

    builder.set_camera(
        CameraParams(eye=(0.0, -0.8, 0.0), target=(0.0, 1.0, 0.0), up=(0.0, 0.0, 1.0), fov=70.0)
    )
    return builder.build(width, height, surface_factory)


def prism_scene(
    width: int = 512,
    height: int = 300,
    params: PrismSceneParams | None = None,
    surface_factory: SurfaceFactory | None = None,
) -> Scene:
    """A dispersive prism and diamond spheres lit by two D65 lamps.

    The coordinate system is z-up with the plastic floor at z = 0. The camera
    looks down at the gems from the front left through a narrow lens.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.
        params: Optional PrismSceneParams. Defaults to PrismSceneParams().
        surface_factory: Optional replacement for the Taichi surface.
    """
    if params is None:
        params = PrismSceneParams()

    builder = SceneBuilder()

    # =========================================================================
    # Materials
    # =========================================================================

    builder.add_material(
        "diamond",
        Refractive(base_ior=DIAMOND_IOR, dispersion=DIAMOND_DISPERSION, color=ConstantSpectrum(1.0)),
    )
    builder.add_material(
        "flint",
        Refractive(base_ior=PRISM_IOR, dispersion=params.prism_dispersion, color=ConstantSpectrum(1.0)),
    )
    builder.add_material(
        "plexi",
        Mirror(
            color=ConstantSpectrum(PLEXI_COLOR),
            fresnel_color=ConstantSpectrum(PLEXI_FRESNEL_COLOR),
            fresnel_ior=PLEXI_FRESNEL_IOR,
        ),
    )
    builder.add_material("light_left", Emission(d65(), intensity=params.light_left))
    builder.add_material("light_right", Emission(d65(), intensity=params.light_right))

    # =========================================================================
    # Geometry
    # =========================================================================

    builder.add_quad((-20.0, -20.0, 0.0), (40.0, 0.0, 0.0), (0.0, 40.0, 0.0), "plexi")

    builder.add_mesh(
        triangular_prism(center=(0.6, 0.4), side=0.9, height=1.2, rotation=15.0, base=PRISM_LIFT),
        {"sides": "flint", "caps": "flint"},
    )
    builder.add_sphere((-0.7, 0.2, 0.45), 0.45, "diamond")
    builder.add_sphere((-0.1, -0.9, 0.3), 0.3, "diamond")

    # Lamps behind the gems, facing the camera
    builder.add_quad((-4.0, 3.0, 0.5), (0.0, 0.0, 3.0), (2.5, -0.5, 0.0), "light_left")
    builder.add_quad((1.5, 3.5, 0.5), (0.0, 0.0, 3.0), (2.5, 0.5, 0.0), "light_right")

    # =========================================================================
    # Camera
    # =========================================================================

    builder.set_camera(
        CameraParams(
            eye=(-6.55068, -8.55076, 4.0),
            target=(0.1, 0.0, 0.1),
            up=(0.0, 0.0, 1.0),
            fov=12.5,
            focus_distance=11.08,
            aperture=params.aperture,
        )
    )
    return builder.build(width, height, surface_factory)
