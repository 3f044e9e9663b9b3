"""Partitioning of the image into square tiles.

Tiles are the unit of parallel work. They are produced in row-major order
with edge ``tile_size``; tiles in the last row and column are truncated at
the image bounds.

Example:
    >>> [t.area for t in make_tiles(5, 3, 2)]
    [4, 4, 2, 2, 2, 1]
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from prismatic.errors import ConfigurationError


@dataclass(frozen=True)
class Tile:
    """A rectangle of pixels [x0, x1) x [y0, y1).

    Attributes:
        index: Position of the tile in row-major order.
        x0: First column.
        y0: First row.
        x1: One past the last column.
        y1: One past the last row.
    """

    index: int
    x0: int
    y0: int
    x1: int
    y1: int

    @property
    def width(self) -> int:
        return self.x1 - self.x0

    @property
    def height(self) -> int:
        return self.y1 - self.y0

    @property
    def area(self) -> int:
        return self.width * self.height

    def pixels(self) -> Iterator[tuple[int, int]]:
        """Pixel coordinates (x, y) in row-major order."""
        for y in range(self.y0, self.y1):
            for x in range(self.x0, self.x1):
                yield x, y


def make_tiles(width: int, height: int, tile_size: int) -> list[Tile]:
    """Split a width x height image into tiles of edge tile_size.

    Raises:
        ConfigurationError: If any dimension is smaller than 1.
    """
    if width < 1 or height < 1:
        raise ConfigurationError(f"Image size must be at least 1x1, got {width}x{height}")
    if tile_size < 1:
        raise ConfigurationError(f"tile_size must be >= 1, got {tile_size}")

    tiles = []
    for y0 in range(0, height, tile_size):
        for x0 in range(0, width, tile_size):
            tiles.append(
                Tile(
                    index=len(tiles),
                    x0=x0,
                    y0=y0,
                    x1=min(x0 + tile_size, width),
                    y1=min(y0 + tile_size, height),
                )
            )
    return tiles
