"""Shared material definitions: the kind tag and scatter weight helpers."""

from __future__ import annotations

from enum import IntEnum

import numpy as np
import numpy.typing as npt

from prismatic.core.spectrum import Spectrum
from prismatic.errors import ConfigurationError


class MaterialKind(IntEnum):
    """Closed set of material variants. Stored per hit as an int tag."""

    REFRACTIVE = 0
    MIRROR = 1
    EMISSION = 2


def clamp_weights(weights: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
    """Force scatter weights into [0, 1]; NaN and inf become 0."""
    weights = np.nan_to_num(weights, nan=0.0, posinf=0.0, neginf=0.0)
    return np.clip(weights, 0.0, 1.0)


def check_reflectance(name: str, spectrum: Spectrum) -> None:
    """Reject reflectance spectra that would amplify energy."""
    if not isinstance(spectrum, Spectrum):
        raise ConfigurationError(f"{name} must be a Spectrum, got {type(spectrum).__name__}")
    peak = spectrum.max_value()
    if peak > 1.0:
        raise ConfigurationError(f"{name} must not exceed 1.0 at any wavelength, got {peak:.4f}")
