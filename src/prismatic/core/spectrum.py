"""Spectral intensity and reflectance functions.

A Spectrum maps wavelength in nanometers to a non-negative intensity. Spectra
are immutable values: scaling or mixing always builds a new Spectrum that
references its inputs, so a single light spectrum can safely back several
materials (for example a right-hand lamp at twice the strength of the left one)
while tiles are rendered concurrently.

Evaluation is defined over the whole visible range. Wavelengths outside
[VISIBLE_MIN, VISIBLE_MAX] evaluate to zero, as do NaN results; negative
results are clamped to zero.

Example:
    >>> from prismatic.core.spectrum import ConstantSpectrum, d65, mix
    >>> lamp = d65()
    >>> bright_lamp = lamp * 2.0
    >>> tint = mix(ConstantSpectrum(0.0), ConstantSpectrum(0.2), 0.5)
    >>> tint.evaluate(550.0)
    0.1
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from functools import lru_cache
from typing import ClassVar, Union

import numpy as np
import numpy.typing as npt

from prismatic.errors import ConfigurationError

VISIBLE_MIN = 380.0
VISIBLE_MAX = 780.0
VISIBLE_RANGE = (VISIBLE_MIN, VISIBLE_MAX)

# Quadrature points used by Spectrum.to_bin
BIN_QUADRATURE_POINTS = 8

Wavelengths = Union[float, npt.NDArray[np.float64]]


class Spectrum:
    """Base class for all spectra.

    Subclasses implement ``_evaluate`` on a float64 array of wavelengths. The
    public ``evaluate`` wraps it with range masking and clamping so every
    spectrum honors the non-negativity and out-of-range rules.
    """

    def _evaluate(self, wavelengths: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        raise NotImplementedError

    def evaluate(self, wavelengths: Wavelengths) -> Wavelengths:
        """Evaluate the spectrum at one or more wavelengths.

        Args:
            wavelengths: A wavelength in nm, or an array of them.

        Returns:
            Intensity >= 0 with the same shape as the input. A Python float is
            returned for scalar input.
        """
        wl = np.asarray(wavelengths, dtype=np.float64)
        values = np.broadcast_to(np.asarray(self._evaluate(wl), dtype=np.float64), wl.shape)

        inside = (wl >= VISIBLE_MIN) & (wl <= VISIBLE_MAX)
        with np.errstate(invalid="ignore"):
            valid = inside & np.isfinite(values)
            result = np.where(valid, np.maximum(values, 0.0), 0.0)

        if result.ndim == 0:
            return float(result)
        return result

    def scale(self, factor: float) -> ScaledSpectrum:
        """Return a new spectrum multiplied by a non-negative factor."""
        return ScaledSpectrum(self, factor)

    def mix(self, other: Spectrum, t: float) -> MixedSpectrum:
        """Return ``self * (1 - t) + other * t`` with t clamped to [0, 1]."""
        return MixedSpectrum(self, other, t)

    def to_bin(
        self,
        bin_index: int,
        bin_count: int,
        wavelength_range: tuple[float, float] = VISIBLE_RANGE,
    ) -> float:
        """Representative intensity of one spectral bin.

        The range is split into ``bin_count`` equal bins and the mean intensity
        over bin ``bin_index`` is estimated with midpoint quadrature.

        Args:
            bin_index: Bin to evaluate, in [0, bin_count).
            bin_count: Number of bins the range is split into.
            wavelength_range: (min, max) wavelengths in nm.

        Returns:
            Mean intensity over the bin.

        Raises:
            ValueError: If bin_index is outside [0, bin_count).
        """
        if bin_count < 1:
            raise ValueError(f"bin_count must be >= 1, got {bin_count}")
        if not 0 <= bin_index < bin_count:
            raise ValueError(f"bin_index must be in [0, {bin_count}), got {bin_index}")

        low, high = wavelength_range
        width = (high - low) / bin_count
        offsets = (np.arange(BIN_QUADRATURE_POINTS) + 0.5) / BIN_QUADRATURE_POINTS
        samples = low + (bin_index + offsets) * width
        return float(np.mean(self.evaluate(samples)))

    def max_value(self, samples: int = 401) -> float:
        """Largest intensity found on a uniform grid over the visible range."""
        grid = np.linspace(VISIBLE_MIN, VISIBLE_MAX, samples)
        return float(np.max(self.evaluate(grid)))

    def __mul__(self, factor: float) -> ScaledSpectrum:
        return self.scale(factor)

    __rmul__ = __mul__


def _check_factor(name: str, value: float) -> float:
    value = float(value)
    if not math.isfinite(value) or value < 0.0:
        raise ConfigurationError(f"{name} must be a finite value >= 0, got {value}")
    return value


@dataclass(frozen=True)
class ConstantSpectrum(Spectrum):
    """The same intensity at every visible wavelength.

    Attributes:
        value: Intensity (>= 0).
    """

    value: float = 1.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", _check_factor("Spectrum value", self.value))

    def _evaluate(self, wavelengths: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        return np.full(wavelengths.shape, self.value)


@dataclass(frozen=True)
class SampledSpectrum(Spectrum):
    """Piecewise-linear spectrum through (wavelength, value) points.

    Evaluates to zero outside the first and last sample wavelengths.

    Attributes:
        wavelengths: Strictly increasing sample wavelengths in nm.
        values: Intensity (>= 0) at each sample wavelength.
    """

    wavelengths: tuple[float, ...]
    values: tuple[float, ...]

    def __post_init__(self) -> None:
        wavelengths = tuple(float(w) for w in self.wavelengths)
        values = tuple(float(v) for v in self.values)

        if len(wavelengths) == 0:
            raise ConfigurationError("SampledSpectrum needs at least one sample")
        if len(wavelengths) != len(values):
            raise ConfigurationError(
                f"SampledSpectrum has {len(wavelengths)} wavelengths "
                f"but {len(values)} values"
            )
        if any(b <= a for a, b in zip(wavelengths, wavelengths[1:])):
            raise ConfigurationError("SampledSpectrum wavelengths must be strictly increasing")
        if any(not math.isfinite(v) or v < 0.0 for v in values):
            raise ConfigurationError("SampledSpectrum values must be finite and >= 0")

        object.__setattr__(self, "wavelengths", wavelengths)
        object.__setattr__(self, "values", values)

    @classmethod
    def from_points(cls, points: dict[float, float]) -> SampledSpectrum:
        """Build a spectrum from a {wavelength: value} mapping."""
        ordered = sorted(points.items())
        return cls(tuple(w for w, _ in ordered), tuple(v for _, v in ordered))

    def _evaluate(self, wavelengths: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        return np.interp(wavelengths, self.wavelengths, self.values, left=0.0, right=0.0)


@dataclass(frozen=True)
class ScaledSpectrum(Spectrum):
    """Another spectrum multiplied by a constant factor."""

    base: Spectrum
    factor: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "factor", _check_factor("Scale factor", self.factor))

    def _evaluate(self, wavelengths: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        return np.asarray(self.base.evaluate(wavelengths)) * self.factor


@dataclass(frozen=True)
class MixedSpectrum(Spectrum):
    """Linear blend ``a * (1 - t) + b * t`` of two spectra."""

    a: Spectrum
    b: Spectrum
    t: float

    def __post_init__(self) -> None:
        t = float(self.t)
        if math.isnan(t):
            raise ConfigurationError("Mix factor must not be NaN")
        object.__setattr__(self, "t", min(max(t, 0.0), 1.0))

    def _evaluate(self, wavelengths: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        a = np.asarray(self.a.evaluate(wavelengths))
        b = np.asarray(self.b.evaluate(wavelengths))
        return a * (1.0 - self.t) + b * self.t


@dataclass(frozen=True)
class BlackbodySpectrum(Spectrum):
    """Planck radiator normalized to 1.0 at its brightest visible wavelength.

    Attributes:
        temperature: Color temperature in Kelvin.
    """

    temperature: float

    # Planck constants folded for wavelengths in nm
    _C2: ClassVar[float] = 1.4387768775e7
    _WIEN: ClassVar[float] = 2.897771955e6

    def __post_init__(self) -> None:
        temperature = float(self.temperature)
        if not math.isfinite(temperature) or temperature <= 0.0:
            raise ConfigurationError(f"Blackbody temperature must be > 0 K, got {temperature}")
        object.__setattr__(self, "temperature", temperature)

    def _planck(self, wavelengths: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        wl = np.maximum(wavelengths, 1.0)
        with np.errstate(over="ignore"):
            return 1.0 / (wl**5 * np.expm1(self._C2 / (wl * self.temperature)))

    def _evaluate(self, wavelengths: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        peak = min(max(self._WIEN / self.temperature, VISIBLE_MIN), VISIBLE_MAX)
        peak_value = self._planck(np.asarray(peak))
        if not np.isfinite(peak_value) or peak_value <= 0.0:
            return np.zeros(wavelengths.shape)
        return self._planck(wavelengths) / peak_value


def mix(a: Spectrum, b: Spectrum, t: float) -> MixedSpectrum:
    """Blend two spectra: ``a * (1 - t) + b * t``, t clamped to [0, 1]."""
    return MixedSpectrum(a, b, t)


def mix_values(
    a: npt.NDArray[np.float64],
    b: npt.NDArray[np.float64],
    t: npt.NDArray[np.float64],
) -> npt.NDArray[np.float64]:
    """Per-sample version of :func:`mix` for already evaluated spectra."""
    t = np.clip(np.nan_to_num(t, nan=0.0), 0.0, 1.0)
    return a * (1.0 - t) + b * t


# =============================================================================
# CIE Standard Illuminant D65 (CIE S 014-2, relative SPD, 380-780 nm at 5 nm steps)
# =============================================================================

D65_WAVELENGTHS = tuple(float(w) for w in range(380, 785, 5))

D65_VALUES = (
    49.9755, 52.3118, 54.6482, 68.7015, 82.7549, 87.1204, 91.4860, 92.4589, 93.4318, 90.0570,
    86.6823, 95.7736, 104.865, 110.936, 117.008, 117.410, 117.812, 116.336, 114.861, 115.392,
    115.923, 112.367, 108.811, 109.082, 109.354, 108.578, 107.802, 106.296, 104.790, 106.239,
    107.689, 106.047, 104.405, 104.225, 104.046, 102.023, 100.000, 98.1671, 96.3342, 96.0611,
    95.7880, 92.2368, 88.6856, 89.3459, 90.0062, 89.8026, 89.5991, 88.6489, 87.6987, 85.4936,
    83.2886, 83.4939, 83.6992, 81.8630, 80.0268, 80.1207, 80.2146, 81.2462, 82.2778, 80.2810,
    78.2842, 74.0027, 69.7213, 70.6652, 71.6091, 72.9790, 74.3490, 67.9765, 61.6040, 65.7448,
    69.8856, 72.4863, 75.0870, 69.3398, 63.5927, 55.0054, 46.4182, 56.6118, 66.8054, 65.0941,
    63.3828,
)


@lru_cache(maxsize=1)
def d65() -> SampledSpectrum:
    """CIE D65 daylight, normalized to 1.0 at 560 nm."""
    return SampledSpectrum(D65_WAVELENGTHS, tuple(v / 100.0 for v in D65_VALUES))
