"""Mirror (Fresnel-weighted specular) material.

A Mirror reflects every ray about the surface normal. Its reflectance is a
blend between a base color and a Fresnel color:

    reflectance = mix(color, fresnel_color, F)

where F is Schlick's Fresnel reflectance for ``fresnel_ior``. F is evaluated
at the actual angle of incidence, or at a fixed ``reference_cos`` when one is
configured. Without a Fresnel color the reflectance is the base color alone.

Example:
    >>> from prismatic.core.spectrum import ConstantSpectrum
    >>> # Dark plastic that only shines at grazing angles
    >>> floor = Mirror(
    ...     color=ConstantSpectrum(0.0),
    ...     fresnel_color=ConstantSpectrum(0.2),
    ...     fresnel_ior=1.1,
    ... )
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import ClassVar, Optional

import numpy as np
import numpy.typing as npt

from prismatic.core.ray import dot, normalize, reflect, schlick_fresnel
from prismatic.core.spectrum import ConstantSpectrum, Spectrum, mix_values
from prismatic.errors import ConfigurationError

from .base import MaterialKind, check_reflectance, clamp_weights


@dataclass(frozen=True)
class Mirror:
    """Specular reflector.

    Attributes:
        color: Base reflectance spectrum (<= 1.0).
        fresnel_color: Reflectance reached as the Fresnel term goes to 1.
            None disables the Fresnel blend.
        fresnel_ior: Index of refraction used for the Fresnel term (>= 1.0).
        reference_cos: Fixed incidence cosine for the Fresnel term, in
            [0, 1]. None uses the actual incidence angle of each ray.
    """

    color: Spectrum = field(default_factory=lambda: ConstantSpectrum(1.0))
    fresnel_color: Optional[Spectrum] = None
    fresnel_ior: float = 1.5
    reference_cos: Optional[float] = None

    kind: ClassVar[MaterialKind] = MaterialKind.MIRROR

    def __post_init__(self) -> None:
        check_reflectance("Mirror color", self.color)
        if self.fresnel_color is not None:
            check_reflectance("Mirror fresnel_color", self.fresnel_color)

        fresnel_ior = float(self.fresnel_ior)
        if not math.isfinite(fresnel_ior) or fresnel_ior < 1.0:
            raise ConfigurationError(f"Fresnel IOR must be >= 1.0, got {fresnel_ior}")
        object.__setattr__(self, "fresnel_ior", fresnel_ior)

        if self.reference_cos is not None:
            reference_cos = float(self.reference_cos)
            if not 0.0 <= reference_cos <= 1.0:
                raise ConfigurationError(
                    f"Reference cosine must be in [0, 1], got {reference_cos}"
                )
            object.__setattr__(self, "reference_cos", reference_cos)

    def reflectance(
        self,
        wavelengths: npt.NDArray[np.float64],
        cos_i: npt.NDArray[np.float64],
    ) -> npt.NDArray[np.float64]:
        """Reflectance at each wavelength for the given incidence cosines."""
        base = np.asarray(self.color.evaluate(wavelengths))
        if self.fresnel_color is None:
            return clamp_weights(base)

        if self.reference_cos is not None:
            cos_i = np.full(np.shape(wavelengths), self.reference_cos)
        fresnel = schlick_fresnel(cos_i, 1.0, self.fresnel_ior)
        tinted = np.asarray(self.fresnel_color.evaluate(wavelengths))
        return clamp_weights(mix_values(base, tinted, fresnel))


def scatter_mirror(
    material: Mirror,
    directions: npt.NDArray[np.float64],
    normals: npt.NDArray[np.float64],
    wavelengths: npt.NDArray[np.float64],
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """Reflect a batch of rays off a Mirror surface.

    Returns:
        Tuple of (new_directions, weights).
    """
    cos_i = np.clip(np.abs(dot(directions, normals)), 0.0, 1.0)
    new_directions = normalize(reflect(directions, normals))
    return new_directions, material.reflectance(wavelengths, cos_i)
