"""Image export for rendered images.

Supported formats:
    - PNG (8-bit sRGB via Pillow)

Writers implement the small :class:`ImageWriter` protocol, so the render
driver does not care where the pixels end up.

Example:
    >>> from prismatic.preview.export import PngWriter
    >>> writer = PngWriter("prism.png", tone_map="reinhard")
    >>> writer.write(result.rgb, result.width, result.height)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol, Union, runtime_checkable

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

from prismatic.preview.display import ToneMapMethod, process_image_for_display

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@runtime_checkable
class ImageWriter(Protocol):
    """Destination for a finished image of linear sRGB colors."""

    def write(self, colors: npt.NDArray[np.floating], width: int, height: int) -> None:
        """Store an image.

        Args:
            colors: Linear sRGB values of shape (height, width, 3), or a flat
                (height * width, 3) array in row-major order.
            width: Image width in pixels.
            height: Image height in pixels.
        """
        ...


def image_to_uint8(
    image: npt.NDArray[np.floating],
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float | None = None,
    exposure: float = 1.0,
) -> npt.NDArray[np.uint8]:
    """Convert a linear image to uint8 for display/export.

    Args:
        image: Linear HDR image array of shape (H, W, 3).
        tone_map: Tone mapping method ("none", "reinhard", or "exposure").
        gamma: Power-law gamma, or None for the sRGB transfer curve.
        exposure: Exposure value for exposure tone mapping.

    Returns:
        8-bit image array of shape (H, W, 3) with dtype uint8.
    """
    processed = process_image_for_display(
        image,
        tone_map=tone_map,
        gamma=gamma,
        exposure=exposure,
    )
    return np.round(processed * 255.0).astype(np.uint8)


def save_png_from_array(
    image: npt.NDArray[np.floating],
    filepath: PathLike,
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float | None = None,
    exposure: float = 1.0,
) -> None:
    """Save a linear image array as an 8-bit sRGB PNG.

    Args:
        image: Linear HDR image array of shape (H, W, 3).
        filepath: Output file path (should end in .png).
        tone_map: Tone mapping method ("none", "reinhard", or "exposure").
        gamma: Power-law gamma, or None for the sRGB transfer curve.
        exposure: Exposure value for exposure tone mapping.
    """
    image_uint8 = image_to_uint8(image, tone_map=tone_map, gamma=gamma, exposure=exposure)
    PILImage.fromarray(image_uint8).save(filepath)
    logger.info("Saved %dx%d image to %s", image_uint8.shape[1], image_uint8.shape[0], filepath)


class PngWriter:
    """Writes images as 8-bit PNG files with tone mapping and gamma.

    Args:
        filepath: Output file path.
        tone_map: Tone mapping method applied before encoding.
        gamma: Power-law gamma, or None for the sRGB transfer curve.
        exposure: Exposure value for exposure tone mapping.
    """

    def __init__(
        self,
        filepath: PathLike,
        *,
        tone_map: ToneMapMethod = "none",
        gamma: float | None = None,
        exposure: float = 1.0,
    ) -> None:
        self.filepath = Path(filepath)
        self.tone_map = tone_map
        self.gamma = gamma
        self.exposure = exposure

    def write(self, colors: npt.NDArray[np.floating], width: int, height: int) -> None:
        colors = np.asarray(colors)
        if colors.size != width * height * 3:
            raise ValueError(
                f"Expected {width}x{height} RGB values, got array of shape {colors.shape}"
            )
        save_png_from_array(
            colors.reshape(height, width, 3),
            self.filepath,
            tone_map=self.tone_map,
            gamma=self.gamma,
            exposure=self.exposure,
        )

    def __repr__(self) -> str:
        return f"PngWriter({str(self.filepath)!r}, tone_map={self.tone_map!r})"


def compute_rmse(
    image_a: npt.NDArray[np.floating],
    image_b: npt.NDArray[np.floating],
) -> float:
    """Compute root mean squared error between two images.

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(f"Image shapes must match: {image_a.shape} vs {image_b.shape}")

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))
