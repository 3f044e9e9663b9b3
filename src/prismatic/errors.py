"""Exception hierarchy for the renderer.

Errors fall into two groups:

- ConfigurationError: bad scene or render parameters (malformed camera basis,
  material parameters out of domain, invalid sample counts). Raised while the
  scene is being built, before any pixel work starts.
- RenderError: failures while tiles are being rendered. A tile that fails
  twice surfaces as TileFailedError carrying the tile coordinates.

Numerical edge cases during tracing (total internal reflection, grazing
angles, degenerate normals) are never raised; they are clamped where they
occur.

Example:
    >>> from prismatic.errors import ConfigurationError
    >>> try:
    ...     Refractive(base_ior=-1.0)
    ... except ConfigurationError as e:
    ...     print(e)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from prismatic.core.tiles import Tile


class PrismaticError(Exception):
    """Base class for all renderer errors."""


class ConfigurationError(PrismaticError, ValueError):
    """Invalid scene, material, camera, or render configuration."""


class RenderError(PrismaticError, RuntimeError):
    """A failure while rendering tiles."""


class TileFailedError(RenderError):
    """A tile failed on its first attempt and again on its retry.

    Attributes:
        tile: The tile that failed.
        cause: The exception raised by the final attempt.
    """

    def __init__(self, tile: Tile, cause: BaseException) -> None:
        self.tile = tile
        self.cause = cause
        super().__init__(
            f"tile {tile.index} at x=[{tile.x0}, {tile.x1}) y=[{tile.y0}, {tile.y1}) "
            f"failed after retry: {cause!r}"
        )

    @property
    def x0(self) -> int:
        return self.tile.x0

    @property
    def y0(self) -> int:
        return self.tile.y0

    @property
    def x1(self) -> int:
        return self.tile.x1

    @property
    def y1(self) -> int:
        return self.tile.y1
