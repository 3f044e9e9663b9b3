"""Thin-lens camera model for primary ray generation.

The camera supports:
- Look-at positioning (eye, target, up)
- Vertical field of view specification
- Depth of field through a finite aperture and a focus distance

The orthonormal basis (right, up, forward) is resolved once when the camera
is built. A forward vector parallel to the up vector has no valid basis and is
rejected at construction time.

Ray generation follows the thin-lens model: a pinhole ray is aimed through the
(jittered) pixel position, its focus point is taken at ``focus_distance``
along it, and the origin is then moved to a point on the lens disk of radius
``aperture`` and re-aimed at the focus point. With ``aperture == 0`` the
camera is exactly a pinhole: every lens sample returns the eye point and the
unperturbed direction.

Pixel coordinates are continuous, with (0, 0) at the top-left corner of the
image and (width, height) at the bottom-right.

Example:
    >>> params = CameraParams(
    ...     eye=(0.0, -10.0, 2.0),
    ...     target=(0.0, 0.0, 0.0),
    ...     up=(0.0, 0.0, 1.0),
    ...     fov=30.0,
    ...     aperture=0.05,
    ... )
    >>> camera = ThinLensCamera(params, width=320, height=240)
    >>> ray = camera.generate_ray(160.0, 120.0, 0.5, 0.5)
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np
import numpy.typing as npt

from prismatic.core.ray import Ray
from prismatic.core.sampling import concentric_disk
from prismatic.errors import ConfigurationError

# Minimum |forward x up| before the basis is considered degenerate
PARALLEL_TOLERANCE = 1e-9


@dataclass(frozen=True)
class CameraParams:
    """Configuration for a thin-lens (perspective) camera.

    Attributes:
        eye: Camera position in world space (x, y, z).
        target: Point the camera looks at.
        up: Up direction for camera orientation.
        fov: Vertical field of view in degrees, in (0, 180).
        focus_distance: Distance from the eye to the plane in focus. None
            focuses on the target.
        aperture: Lens radius. Zero gives a pinhole camera.
    """

    eye: tuple[float, float, float]
    target: tuple[float, float, float]
    up: tuple[float, float, float] = (0.0, 1.0, 0.0)
    fov: float = 40.0
    focus_distance: Optional[float] = None
    aperture: float = 0.0


def build_basis(
    eye: npt.ArrayLike,
    target: npt.ArrayLike,
    up: npt.ArrayLike,
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """Build the (right, up, forward) orthonormal basis of a look-at transform.

    Raises:
        ConfigurationError: If eye == target, up is zero, or forward is
            parallel to up.
    """
    eye = np.asarray(eye, dtype=np.float64)
    forward = np.asarray(target, dtype=np.float64) - eye
    up = np.asarray(up, dtype=np.float64)

    forward_length = np.linalg.norm(forward)
    if not np.isfinite(forward_length) or forward_length == 0.0:
        raise ConfigurationError("Camera eye and target must be distinct points")
    if not np.isfinite(np.linalg.norm(up)) or np.linalg.norm(up) == 0.0:
        raise ConfigurationError("Camera up vector must be non-zero")
    forward = forward / forward_length

    right = np.cross(forward, up)
    right_length = np.linalg.norm(right)
    if right_length < PARALLEL_TOLERANCE * np.linalg.norm(up):
        raise ConfigurationError(
            f"Camera forward {tuple(forward)} is parallel to up {tuple(up)}; "
            "no orientation can be derived"
        )
    right = right / right_length
    true_up = np.cross(right, forward)

    return right, true_up, forward


class ThinLensCamera:
    """Camera generating primary rays with thin-lens depth of field.

    Args:
        params: Camera configuration.
        width: Image width in pixels.
        height: Image height in pixels.

    Raises:
        ConfigurationError: On an invalid basis or out-of-domain parameter.
    """

    def __init__(self, params: CameraParams, width: int, height: int) -> None:
        if width < 1 or height < 1:
            raise ConfigurationError(f"Image size must be at least 1x1, got {width}x{height}")
        if not 0.0 < params.fov < 180.0:
            raise ConfigurationError(f"Field of view must be in (0, 180) degrees, got {params.fov}")
        if not math.isfinite(params.aperture) or params.aperture < 0.0:
            raise ConfigurationError(f"Aperture must be >= 0, got {params.aperture}")

        self.params = params
        self.width = int(width)
        self.height = int(height)
        self.eye = np.asarray(params.eye, dtype=np.float64)
        self.right, self.up, self.forward = build_basis(params.eye, params.target, params.up)

        if params.focus_distance is None:
            focus_distance = float(np.linalg.norm(np.asarray(params.target) - self.eye))
        else:
            focus_distance = float(params.focus_distance)
        if not math.isfinite(focus_distance) or focus_distance <= 0.0:
            raise ConfigurationError(f"Focus distance must be > 0, got {focus_distance}")
        self.focus_distance = focus_distance
        self.aperture = float(params.aperture)

        viewport_height = 2.0 * math.tan(math.radians(params.fov) / 2.0)
        self.viewport_height = viewport_height
        self.viewport_width = viewport_height * self.width / self.height

    @classmethod
    def look_at(
        cls,
        eye: tuple[float, float, float],
        target: tuple[float, float, float],
        up: tuple[float, float, float],
        fov: float,
        width: int,
        height: int,
        focus_distance: Optional[float] = None,
        aperture: float = 0.0,
    ) -> ThinLensCamera:
        """Build a camera directly from look-at parameters."""
        params = CameraParams(
            eye=eye,
            target=target,
            up=up,
            fov=fov,
            focus_distance=focus_distance,
            aperture=aperture,
        )
        return cls(params, width, height)

    def pinhole_directions(
        self,
        pixel_x: npt.ArrayLike,
        pixel_y: npt.ArrayLike,
    ) -> npt.NDArray[np.float64]:
        """Unit directions from the eye through image-plane positions."""
        px = np.asarray(pixel_x, dtype=np.float64)
        py = np.asarray(pixel_y, dtype=np.float64)

        x = (px / self.width - 0.5) * self.viewport_width
        y = (0.5 - py / self.height) * self.viewport_height

        directions = (
            self.forward
            + x[..., None] * self.right
            + y[..., None] * self.up
        )
        return directions / np.linalg.norm(directions, axis=-1, keepdims=True)

    def generate_rays(
        self,
        pixel_x: npt.ArrayLike,
        pixel_y: npt.ArrayLike,
        lens_u: npt.ArrayLike,
        lens_v: npt.ArrayLike,
    ) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        """Generate a batch of primary rays.

        Args:
            pixel_x: Continuous pixel columns (already jittered), shape (N,).
            pixel_y: Continuous pixel rows (already jittered), shape (N,).
            lens_u: Lens samples in [0, 1), shape (N,).
            lens_v: Lens samples in [0, 1), shape (N,).

        Returns:
            Tuple of (origins, directions), each of shape (N, 3).
        """
        directions = self.pinhole_directions(pixel_x, pixel_y)
        origins = np.broadcast_to(self.eye, directions.shape).copy()

        if self.aperture == 0.0:
            return origins, directions

        disk_x, disk_y = concentric_disk(lens_u, lens_v)
        offsets = (
            (self.aperture * disk_x)[..., None] * self.right
            + (self.aperture * disk_y)[..., None] * self.up
        )
        focus_points = self.eye + directions * self.focus_distance
        origins = origins + offsets
        directions = focus_points - origins
        directions = directions / np.linalg.norm(directions, axis=-1, keepdims=True)
        return origins, directions

    def generate_ray(
        self,
        pixel_x: float,
        pixel_y: float,
        lens_u: float,
        lens_v: float,
    ) -> Ray:
        """Generate one primary ray. See :meth:`generate_rays`."""
        origins, directions = self.generate_rays(
            np.array([pixel_x]), np.array([pixel_y]), np.array([lens_u]), np.array([lens_v])
        )
        return Ray(origin=origins[0], direction=directions[0])

    def __repr__(self) -> str:
        return (
            f"ThinLensCamera(eye={tuple(self.eye)}, fov={self.params.fov}, "
            f"{self.width}x{self.height}, focus_distance={self.focus_distance:.4g}, "
            f"aperture={self.aperture})"
        )
