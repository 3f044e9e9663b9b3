"""Conversion from accumulated spectral radiance to display color.

A finished pixel holds one mean radiance value per spectral bin. It is turned
into color with a fixed transform:

    bins -> CIE 1931 XYZ -> linear sRGB (-> sRGB transfer for display)

RgbSpectrum goes the other way for authoring: it lifts an RGB triple into a
spectrum through three smooth response curves, so scenes can name colors
the way image editors do while light transport stays spectral.

The bin-to-XYZ weights integrate the tabulated colour matching functions
exactly (they are piecewise linear between the 5 nm samples) over each bin,
so the result does not depend on how many bins were used internally: a flat
radiance of 1.0 always maps to Y = 1.0.

Example:
    >>> import numpy as np
    >>> from prismatic.core.color import spectral_to_xyz
    >>> xyz = spectral_to_xyz(np.ones(50))
    >>> round(float(xyz[1]), 6)
    1.0
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from functools import lru_cache

import numpy as np
import numpy.typing as npt

from prismatic.core.spectrum import VISIBLE_MAX, VISIBLE_MIN, VISIBLE_RANGE, Spectrum, d65
from prismatic.errors import ConfigurationError

# =============================================================================
# CIE 1931 2-degree Standard Observer (380-780 nm at 5 nm steps)
# =============================================================================

CIE_WAVELENGTHS = np.arange(380.0, 785.0, 5.0)

CIE_XYZ_VALUES = np.array([
    [0.0014, 0.0000, 0.0065],  # 380 nm
    [0.0022, 0.0001, 0.0105],
    [0.0042, 0.0001, 0.0201],
    [0.0076, 0.0002, 0.0362],
    [0.0143, 0.0004, 0.0679],  # 400 nm
    [0.0232, 0.0006, 0.1102],
    [0.0435, 0.0012, 0.2074],
    [0.0776, 0.0022, 0.3713],
    [0.1344, 0.0040, 0.6456],  # 420 nm
    [0.2148, 0.0073, 1.0391],
    [0.2839, 0.0116, 1.3856],
    [0.3285, 0.0168, 1.6230],
    [0.3483, 0.0230, 1.7471],  # 440 nm
    [0.3481, 0.0298, 1.7826],
    [0.3362, 0.0380, 1.7721],
    [0.3187, 0.0480, 1.7441],
    [0.2908, 0.0600, 1.6692],  # 460 nm
    [0.2511, 0.0739, 1.5281],
    [0.1954, 0.0910, 1.2876],
    [0.1421, 0.1126, 1.0419],
    [0.0956, 0.1390, 0.8130],  # 480 nm
    [0.0580, 0.1693, 0.6162],
    [0.0320, 0.2080, 0.4652],
    [0.0147, 0.2586, 0.3533],
    [0.0049, 0.3230, 0.2720],  # 500 nm
    [0.0024, 0.4073, 0.2123],
    [0.0093, 0.5030, 0.1582],
    [0.0291, 0.6082, 0.1117],
    [0.0633, 0.7100, 0.0782],  # 520 nm
    [0.1096, 0.7932, 0.0573],
    [0.1655, 0.8620, 0.0422],
    [0.2257, 0.9149, 0.0298],
    [0.2904, 0.9540, 0.0203],  # 540 nm
    [0.3597, 0.9803, 0.0134],
    [0.4334, 0.9950, 0.0087],
    [0.5121, 1.0000, 0.0057],
    [0.5945, 0.9950, 0.0039],  # 560 nm
    [0.6784, 0.9786, 0.0027],
    [0.7621, 0.9520, 0.0021],
    [0.8425, 0.9154, 0.0018],
    [0.9163, 0.8700, 0.0017],  # 580 nm
    [0.9786, 0.8163, 0.0014],
    [1.0263, 0.7570, 0.0011],
    [1.0567, 0.6949, 0.0008],
    [1.0622, 0.6310, 0.0006],  # 600 nm
    [1.0456, 0.5668, 0.0003],
    [1.0026, 0.5030, 0.0002],
    [0.9384, 0.4412, 0.0001],
    [0.8544, 0.3810, 0.0001],  # 620 nm
    [0.7514, 0.3210, 0.0000],
    [0.6424, 0.2650, 0.0000],
    [0.5419, 0.2170, 0.0000],
    [0.4479, 0.1750, 0.0000],  # 640 nm
    [0.3608, 0.1382, 0.0000],
    [0.2835, 0.1070, 0.0000],
    [0.2187, 0.0816, 0.0000],
    [0.1649, 0.0610, 0.0000],  # 660 nm
    [0.1212, 0.0446, 0.0000],
    [0.0874, 0.0320, 0.0000],
    [0.0636, 0.0232, 0.0000],
    [0.0468, 0.0170, 0.0000],  # 680 nm
    [0.0329, 0.0119, 0.0000],
    [0.0227, 0.0082, 0.0000],
    [0.0158, 0.0057, 0.0000],
    [0.0114, 0.0041, 0.0000],  # 700 nm
    [0.0081, 0.0029, 0.0000],
    [0.0058, 0.0021, 0.0000],
    [0.0041, 0.0015, 0.0000],
    [0.0029, 0.0010, 0.0000],  # 720 nm
    [0.0020, 0.0007, 0.0000],
    [0.0014, 0.0005, 0.0000],
    [0.0010, 0.0004, 0.0000],
    [0.0007, 0.0002, 0.0000],  # 740 nm
    [0.0005, 0.0002, 0.0000],
    [0.0003, 0.0001, 0.0000],
    [0.0002, 0.0001, 0.0000],
    [0.0002, 0.0001, 0.0000],  # 760 nm
    [0.0001, 0.0000, 0.0000],
    [0.0001, 0.0000, 0.0000],
    [0.0001, 0.0000, 0.0000],
    [0.0000, 0.0000, 0.0000],  # 780 nm
])

# XYZ to linear sRGB (D65 white point)
XYZ_TO_SRGB_MATRIX = np.array([
    [3.24096994, -1.53738318, -0.49861076],
    [-0.96924364, 1.8759675, 0.04155506],
    [0.05563008, -0.20397706, 1.05697151],
])

# Cumulative integral of each matching function at the table wavelengths
_CIE_CUMULATIVE = np.vstack([
    np.zeros((1, 3)),
    np.cumsum(0.5 * (CIE_XYZ_VALUES[1:] + CIE_XYZ_VALUES[:-1]) * 5.0, axis=0),
])


def cie_xyz(wavelengths: npt.ArrayLike) -> npt.NDArray[np.float64]:
    """Colour matching function values at the given wavelengths.

    Args:
        wavelengths: Wavelengths in nm (any shape).

    Returns:
        Array of shape (..., 3) with x-bar, y-bar, z-bar. Zero outside the
        tabulated range.
    """
    wl = np.asarray(wavelengths, dtype=np.float64)
    return np.stack(
        [np.interp(wl, CIE_WAVELENGTHS, CIE_XYZ_VALUES[:, i], left=0.0, right=0.0) for i in range(3)],
        axis=-1,
    )


def _cumulative_cmf(wavelength: float) -> npt.NDArray[np.float64]:
    """Exact integral of the piecewise-linear CMFs from 380 nm to ``wavelength``."""
    wl = min(max(float(wavelength), VISIBLE_MIN), VISIBLE_MAX)
    segment = min(int((wl - VISIBLE_MIN) // 5.0), len(CIE_WAVELENGTHS) - 2)
    start = CIE_WAVELENGTHS[segment]
    partial = (wl - start) * 0.5 * (CIE_XYZ_VALUES[segment] + cie_xyz(wl))
    return _CIE_CUMULATIVE[segment] + partial


@lru_cache(maxsize=32)
def bin_weights(
    bin_count: int,
    wavelength_range: tuple[float, float] = VISIBLE_RANGE,
) -> npt.NDArray[np.float64]:
    """XYZ weight of each spectral bin.

    Row ``k`` holds the integral of the matching functions over bin ``k``,
    normalized by the integral of y-bar over the whole visible range.

    Args:
        bin_count: Number of equal-width bins.
        wavelength_range: (min, max) wavelengths covered by the bins.

    Returns:
        Read-only array of shape (bin_count, 3).
    """
    if bin_count < 1:
        raise ValueError(f"bin_count must be >= 1, got {bin_count}")

    low, high = wavelength_range
    edges = np.linspace(low, high, bin_count + 1)
    cumulative = np.array([_cumulative_cmf(edge) for edge in edges])
    weights = np.diff(cumulative, axis=0)

    y_total = _cumulative_cmf(VISIBLE_MAX)[1] - _cumulative_cmf(VISIBLE_MIN)[1]
    weights = weights / y_total
    weights.setflags(write=False)
    return weights


def spectral_to_xyz(
    bins: npt.ArrayLike,
    wavelength_range: tuple[float, float] = VISIBLE_RANGE,
) -> npt.NDArray[np.float64]:
    """Convert per-bin mean radiance to CIE XYZ.

    Args:
        bins: Array of shape (..., bin_count).
        wavelength_range: Range the bins were accumulated over.

    Returns:
        Array of shape (..., 3).
    """
    values = np.asarray(bins, dtype=np.float64)
    return values @ bin_weights(values.shape[-1], tuple(wavelength_range))


def xyz_to_linear_srgb(xyz: npt.ArrayLike) -> npt.NDArray[np.float64]:
    """Convert CIE XYZ to linear sRGB. Out-of-gamut values are left as is."""
    return np.asarray(xyz, dtype=np.float64) @ XYZ_TO_SRGB_MATRIX.T


def linear_to_srgb(rgb_linear: npt.ArrayLike) -> npt.NDArray[np.float64]:
    """Apply the sRGB transfer function to linear values (negatives clamp to 0)."""
    rgb = np.maximum(np.asarray(rgb_linear, dtype=np.float64), 0.0)
    return np.where(
        rgb <= 0.0031308,
        12.92 * rgb,
        1.055 * np.power(np.maximum(rgb, 1e-12), 1.0 / 2.4) - 0.055,
    )


def spectral_to_linear_srgb(
    bins: npt.ArrayLike,
    wavelength_range: tuple[float, float] = VISIBLE_RANGE,
) -> npt.NDArray[np.float64]:
    """Convert per-bin mean radiance straight to linear sRGB."""
    return xyz_to_linear_srgb(spectral_to_xyz(bins, wavelength_range))


def srgb_to_linear(rgb: npt.ArrayLike) -> npt.NDArray[np.float64]:
    """Invert the sRGB transfer function (negatives clamp to 0)."""
    encoded = np.maximum(np.asarray(rgb, dtype=np.float64), 0.0)
    return np.where(
        encoded <= 0.04045,
        encoded / 12.92,
        np.power((encoded + 0.055) / 1.055, 2.4),
    )


# =============================================================================
# RGB to spectrum
# =============================================================================

# Centers and softness (nm) of the blue/green and green/red crossovers
BLUE_GREEN_EDGE = 490.0
GREEN_RED_EDGE = 590.0
EDGE_WIDTH = 12.0


def _smooth_step(wavelengths: npt.NDArray[np.float64], center: float) -> npt.NDArray[np.float64]:
    return 0.5 * (1.0 + np.tanh((wavelengths - center) / (2.0 * EDGE_WIDTH)))


def rgb_responses(wavelengths: npt.ArrayLike) -> npt.NDArray[np.float64]:
    """Red, green and blue response curves at the given wavelengths.

    The curves sum to D65 scaled to a peak of 1.0, so equal components give
    a neutral spectrum that is a valid reflectance.

    Returns:
        Array of shape (..., 3) in red, green, blue order.
    """
    wl = np.asarray(wavelengths, dtype=np.float64)
    red = _smooth_step(wl, GREEN_RED_EDGE)
    blue = 1.0 - _smooth_step(wl, BLUE_GREEN_EDGE)
    green = 1.0 - red - blue
    white = np.asarray(d65().evaluate(wl)) / _d65_peak()
    return np.stack([red, green, blue], axis=-1) * white[..., None]


@lru_cache(maxsize=1)
def _d65_peak() -> float:
    return d65().max_value()


@dataclass(frozen=True)
class RgbSpectrum(Spectrum):
    """A spectrum authored as a linear RGB triple.

    Attributes:
        red: Linear red component (>= 0).
        green: Linear green component (>= 0).
        blue: Linear blue component (>= 0).
    """

    red: float
    green: float
    blue: float

    def __post_init__(self) -> None:
        for name in ("red", "green", "blue"):
            value = float(getattr(self, name))
            if not math.isfinite(value) or value < 0.0:
                raise ConfigurationError(f"RGB components must be finite and >= 0, got {name}={value}")
            object.__setattr__(self, name, value)

    @classmethod
    def from_srgb(cls, red: float, green: float, blue: float) -> RgbSpectrum:
        """Build from gamma-encoded sRGB components in [0, 1]."""
        linear = srgb_to_linear([red, green, blue])
        return cls(*(float(c) for c in linear))

    def _evaluate(self, wavelengths: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        return rgb_responses(wavelengths) @ np.array([self.red, self.green, self.blue])
