"""Emissive (light source) material.

An Emission surface ends the path that hits it. The radiance it adds is its
spectrum at the path's wavelength times an intensity multiplier, so two lamps
can share one base spectrum at different strengths:

Example:
    >>> from prismatic.core.spectrum import d65
    >>> light_left = Emission(d65())
    >>> light_right = Emission(d65(), intensity=2.0)
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import ClassVar

import numpy as np
import numpy.typing as npt

from prismatic.core.spectrum import Spectrum
from prismatic.errors import ConfigurationError

from .base import MaterialKind


@dataclass(frozen=True)
class Emission:
    """Light-emitting surface.

    Attributes:
        spectrum: Emitted radiance spectrum.
        intensity: Multiplier applied to the spectrum (>= 0).
    """

    spectrum: Spectrum
    intensity: float = 1.0

    kind: ClassVar[MaterialKind] = MaterialKind.EMISSION

    def __post_init__(self) -> None:
        if not isinstance(self.spectrum, Spectrum):
            raise ConfigurationError(
                f"Emission spectrum must be a Spectrum, got {type(self.spectrum).__name__}"
            )
        intensity = float(self.intensity)
        if not math.isfinite(intensity) or intensity < 0.0:
            raise ConfigurationError(f"Emission intensity must be >= 0, got {intensity}")
        object.__setattr__(self, "intensity", intensity)

    def emitted(self, wavelengths: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        """Emitted radiance at each wavelength."""
        return np.asarray(self.spectrum.evaluate(wavelengths)) * self.intensity
