"""Tone mapping and display encoding for rendered images.

The renderer produces linear sRGB radiance, which may exceed 1.0 near light
sources. Before it can be stored in an 8-bit image it goes through:

1. Tone mapping (optional): compress HDR values into [0, 1]
2. Display encoding: the exact sRGB transfer curve, or a plain power gamma
3. Clamping to [0, 1]

Example:
    >>> from prismatic.preview.display import process_image_for_display
    >>> display = process_image_for_display(result.rgb, tone_map="reinhard")
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal, Optional

import numpy as np
import numpy.typing as npt

from prismatic.core.color import linear_to_srgb

if TYPE_CHECKING:
    from prismatic.core.renderer import RenderResult


# Type alias for tone mapping options
ToneMapMethod = Literal["none", "reinhard", "exposure"]


def tone_map_reinhard(
    image: npt.NDArray[np.floating],
) -> npt.NDArray[np.float32]:
    """Apply Reinhard tone mapping: L / (1 + L).

    Args:
        image: Linear HDR image array of shape (H, W, 3).

    Returns:
        Tone mapped image in [0, 1] range.
    """
    image = np.maximum(image, 0.0)
    return (image / (1.0 + image)).astype(np.float32)


def tone_map_exposure(
    image: npt.NDArray[np.floating],
    exposure: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Apply exposure-based tone mapping: 1 - exp(-c * exposure).

    Args:
        image: Linear HDR image array of shape (H, W, 3).
        exposure: Exposure value. Higher values brighten the image.

    Returns:
        Tone mapped image in [0, 1] range.
    """
    image = np.maximum(image, 0.0)
    return (1.0 - np.exp(-image * exposure)).astype(np.float32)


def apply_gamma(
    image: npt.NDArray[np.floating],
    gamma: Optional[float] = None,
) -> npt.NDArray[np.float32]:
    """Encode linear values for display.

    Args:
        image: Linear image array in [0, 1] range.
        gamma: Power-law gamma. None applies the piecewise sRGB transfer
            curve instead; 1.0 leaves the values linear.

    Returns:
        Encoded image.
    """
    # Clamp first to avoid NaN from negative values
    image = np.clip(image, 0.0, 1.0)

    if gamma is None:
        return linear_to_srgb(image).astype(np.float32)
    if gamma == 1.0:
        return image.astype(np.float32)
    if gamma <= 0.0:
        raise ValueError(f"Gamma must be > 0, got {gamma}")
    return np.power(image, 1.0 / gamma).astype(np.float32)


def process_image_for_display(
    image: npt.NDArray[np.floating],
    tone_map: ToneMapMethod = "none",
    gamma: Optional[float] = None,
    exposure: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Tone map, encode and clamp a linear image.

    Args:
        image: Linear HDR image array of shape (H, W, 3).
        tone_map: Tone mapping method ("none", "reinhard", or "exposure").
        gamma: Power-law gamma, or None for the sRGB transfer curve.
        exposure: Exposure value for exposure tone mapping.

    Returns:
        Processed image ready for display, in [0, 1] range.

    Raises:
        ValueError: On an unknown tone mapping method.
    """
    result = np.array(image, dtype=np.float32)
    result = np.where(np.isfinite(result), result, 0.0)

    if tone_map == "reinhard":
        result = tone_map_reinhard(result)
    elif tone_map == "exposure":
        result = tone_map_exposure(result, exposure)
    elif tone_map != "none":
        raise ValueError(f"Unknown tone mapping method: {tone_map}")

    result = apply_gamma(result, gamma)
    return np.clip(result, 0.0, 1.0).astype(np.float32)


def result_to_display(
    result: RenderResult,
    *,
    tone_map: ToneMapMethod = "none",
    gamma: Optional[float] = None,
    exposure: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Display-ready image of a finished (or cancelled) render."""
    return process_image_for_display(result.rgb, tone_map=tone_map, gamma=gamma, exposure=exposure)
