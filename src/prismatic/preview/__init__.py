"""Preview module for output of rendered images.

Components:
    display: Tone mapping (Reinhard, exposure) and sRGB / gamma encoding
    export: PNG export through Pillow behind the ImageWriter protocol

Example:
    >>> from prismatic.preview import PngWriter
    >>> PngWriter("out.png", tone_map="reinhard").write(result.rgb, result.width, result.height)
"""

from prismatic.preview.display import (
    ToneMapMethod,
    apply_gamma,
    process_image_for_display,
    result_to_display,
    tone_map_exposure,
    tone_map_reinhard,
)
from prismatic.preview.export import (
    ImageWriter,
    PngWriter,
    compute_rmse,
    image_to_uint8,
    save_png_from_array,
)

__all__ = [
    # Display functions
    "tone_map_reinhard",
    "tone_map_exposure",
    "apply_gamma",
    "process_image_for_display",
    "result_to_display",
    "ToneMapMethod",
    # Export functions
    "ImageWriter",
    "PngWriter",
    "save_png_from_array",
    "image_to_uint8",
    "compute_rmse",
]
