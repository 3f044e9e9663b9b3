"""Camera models for primary ray generation.

Components:
    thin_lens: Look-at perspective camera with thin-lens depth of field.
        Aperture zero gives an exact pinhole camera.
"""

from .thin_lens import CameraParams, ThinLensCamera, build_basis

__all__ = [
    "CameraParams",
    "ThinLensCamera",
    "build_basis",
]
