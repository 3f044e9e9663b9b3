"""Refractive (dispersive dielectric) material.

Models transparent materials such as glass or diamond whose index of
refraction varies with wavelength. The index follows Cauchy's equation:

    ior(lambda) = base_ior + dispersion / lambda_um^2

where lambda_um is the wavelength in micrometers. The curve decreases
monotonically with wavelength, so blue light bends more than red light and a
prism splits white light into a spectrum.

At each hit the material picks reflection with probability equal to the
Fresnel reflectance (Schlick's approximation) and refraction otherwise. Since
the choice is importance sampled, the throughput weight is just the
material's color. Total internal reflection always reflects.

Example:
    >>> diamond = Refractive(base_ior=2.37782, dispersion=0.01371)
    >>> round(float(diamond.ior(550.0)), 4)
    2.4231
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import ClassVar

import numpy as np
import numpy.typing as npt

from prismatic.core.ray import dot, normalize, reflect, refract, schlick_fresnel
from prismatic.core.spectrum import ConstantSpectrum, Spectrum
from prismatic.errors import ConfigurationError

from .base import MaterialKind, check_reflectance, clamp_weights


def cauchy_term(wavelengths: npt.ArrayLike) -> npt.NDArray[np.float64]:
    """Dispersion curve g(lambda) = 1 / lambda_um^2 for wavelengths in nm."""
    wavelengths_um = np.asarray(wavelengths, dtype=np.float64) / 1000.0
    return 1.0 / np.maximum(wavelengths_um, 1e-3) ** 2


@dataclass(frozen=True)
class Refractive:
    """Dispersive dielectric material.

    Attributes:
        base_ior: Wavelength-independent part of the index (>= 1.0).
            Common values: water 1.33, glass 1.5, diamond 2.38.
        dispersion: Cauchy coefficient in um^2 (>= 0). Zero disables
            dispersion.
        color: Transmission/reflection tint, at most 1.0 everywhere.
        env_ior: Index of the surrounding medium (>= 1.0).
    """

    base_ior: float = 1.5
    dispersion: float = 0.0
    color: Spectrum = field(default_factory=lambda: ConstantSpectrum(1.0))
    env_ior: float = 1.0

    kind: ClassVar[MaterialKind] = MaterialKind.REFRACTIVE

    def __post_init__(self) -> None:
        base_ior = float(self.base_ior)
        if not math.isfinite(base_ior) or base_ior < 1.0:
            raise ConfigurationError(f"IOR must be >= 1.0, got {base_ior}")

        dispersion = float(self.dispersion)
        if not math.isfinite(dispersion) or dispersion < 0.0:
            raise ConfigurationError(f"Dispersion must be >= 0, got {dispersion}")

        env_ior = float(self.env_ior)
        if not math.isfinite(env_ior) or env_ior < 1.0:
            raise ConfigurationError(f"Environment IOR must be >= 1.0, got {env_ior}")

        check_reflectance("Refractive color", self.color)

        object.__setattr__(self, "base_ior", base_ior)
        object.__setattr__(self, "dispersion", dispersion)
        object.__setattr__(self, "env_ior", env_ior)

    def ior(self, wavelengths: npt.ArrayLike) -> npt.NDArray[np.float64]:
        """Index of refraction at each wavelength (nm)."""
        return self.base_ior + self.dispersion * cauchy_term(wavelengths)


def fresnel_reflectance(
    material: Refractive,
    cos_i: npt.ArrayLike,
    wavelengths: npt.ArrayLike,
    entering: npt.ArrayLike = True,
) -> npt.NDArray[np.float64]:
    """Probability of reflection at a Refractive surface.

    Args:
        material: The material being hit.
        cos_i: Cosine between the incident ray and the facing normal.
        wavelengths: Wavelengths in nm.
        entering: True where the ray enters the material from outside.

    Returns:
        Fresnel reflectance in [0, 1].
    """
    ior = material.ior(wavelengths)
    entering = np.asarray(entering, dtype=bool)
    n1 = np.where(entering, material.env_ior, ior)
    n2 = np.where(entering, ior, material.env_ior)
    return schlick_fresnel(cos_i, n1, n2)


def scatter_refractive(
    material: Refractive,
    directions: npt.NDArray[np.float64],
    normals: npt.NDArray[np.float64],
    wavelengths: npt.NDArray[np.float64],
    u: npt.NDArray[np.float64],
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64], npt.NDArray[np.bool_]]:
    """Scatter a batch of rays off a Refractive surface.

    Args:
        material: The material being hit.
        directions: Unit incident directions, shape (N, 3).
        normals: Unit geometric (outward) normals, shape (N, 3).
        wavelengths: Wavelength of each path in nm, shape (N,).
        u: Uniform random numbers in [0, 1) used for the reflect/refract
            choice, shape (N,).

    Returns:
        Tuple of (new_directions, weights, reflected).
    """
    entering = dot(directions, normals) < 0.0
    facing = np.where(entering[:, None], normals, -normals)
    cos_i = np.clip(-dot(directions, facing), 0.0, 1.0)

    ior = material.ior(wavelengths)
    n1 = np.where(entering, material.env_ior, ior)
    n2 = np.where(entering, ior, material.env_ior)

    reflectance = schlick_fresnel(cos_i, n1, n2)
    refracted, tir = refract(directions, facing, n1 / n2)

    reflected = (u < reflectance) | tir
    new_directions = np.where(reflected[:, None], reflect(directions, facing), refracted)

    weights = clamp_weights(np.asarray(material.color.evaluate(wavelengths)))
    return normalize(new_directions), weights, reflected
