# fastgrid/geometry.py
"""
Tile geometry for the thumbnail grid.

Turns the viewport width, column count and spacing into a tile side in
points, and the tile side into the exact pixel size a thumbnail has to be
rendered at for the current display density and source aspect ratio.
"""
import math
from typing import NamedTuple, Optional

from .errors import GeometryInvalid


class PixelTarget(NamedTuple):
    width: int
    height: int


def _round_half_up(value):
    # halves round up (2.5 -> 3)
    return int(math.floor(value + 0.5))


def compute_tile_side(viewport_width, column_count, spacing):
    """
    Side length (points) of one square tile so that `column_count` tiles and
    `column_count - 1` spacings fit the viewport.
    Raises GeometryInvalid if no positive side fits.
    """
    if isinstance(column_count, bool) or not isinstance(column_count, int) or column_count < 1:
        raise GeometryInvalid(f"column_count must be an integer >= 1, got {column_count!r}")
    if spacing < 0:
        raise GeometryInvalid(f"spacing must be >= 0, got {spacing!r}")

    usable = viewport_width - spacing * (column_count - 1)
    if usable <= 0:
        raise GeometryInvalid(
            f"viewport {viewport_width} too narrow for {column_count} columns at spacing {spacing}"
        )

    exact = usable / column_count
    side = _round_half_up(exact)
    # rounding up may push the last column past the edge
    if side * column_count > usable:
        side = int(math.floor(exact))
    if side <= 0:
        raise GeometryInvalid(f"tile side rounds to {side} for viewport {viewport_width}")
    return side


def compute_pixel_target(tile_side, device_scale, aspect_ratio):
    """
    Pixel size of a thumbnail for a tile of `tile_side` points.
    Height follows the source aspect ratio (width / height) so crops keep
    their proportions.
    """
    if tile_side <= 0:
        raise GeometryInvalid(f"tile side must be positive, got {tile_side!r}")
    if device_scale <= 0:
        raise GeometryInvalid(f"device scale must be positive, got {device_scale!r}")
    if aspect_ratio <= 0:
        raise GeometryInvalid(f"aspect ratio must be positive, got {aspect_ratio!r}")

    width = max(1, _round_half_up(tile_side * device_scale))
    height = max(1, _round_half_up((tile_side / aspect_ratio) * device_scale))
    return PixelTarget(width, height)


class GridLayout:
    """Current grid geometry. Recomputed on every viewport-size change."""

    def __init__(self, column_count, spacing, aspect_ratio, device_scale=1.0):
        if device_scale <= 0:
            raise GeometryInvalid(f"device scale must be positive, got {device_scale!r}")
        if aspect_ratio <= 0:
            raise GeometryInvalid(f"aspect ratio must be positive, got {aspect_ratio!r}")
        self.column_count = column_count
        self.spacing = spacing
        self.aspect_ratio = aspect_ratio
        self.device_scale = device_scale
        self.viewport_width: Optional[float] = None
        self.tile_side: Optional[int] = None

    @property
    def is_ready(self) -> bool:
        return self.tile_side is not None

    def update_viewport(self, viewport_width) -> bool:
        """Recompute the tile side. Returns True if it changed."""
        side = compute_tile_side(viewport_width, self.column_count, self.spacing)
        self.viewport_width = viewport_width
        changed = side != self.tile_side
        self.tile_side = side
        return changed

    def update_scale(self, device_scale) -> bool:
        if device_scale <= 0:
            raise GeometryInvalid(f"device scale must be positive, got {device_scale!r}")
        changed = device_scale != self.device_scale
        self.device_scale = device_scale
        return changed

    def pixel_target(self) -> PixelTarget:
        if self.tile_side is None:
            raise GeometryInvalid("viewport width not known yet; call update_viewport() first")
        return compute_pixel_target(self.tile_side, self.device_scale, self.aspect_ratio)

    def tile_height(self) -> int:
        """Tile height in points; rows follow the source aspect ratio."""
        if self.tile_side is None:
            raise GeometryInvalid("viewport width not known yet; call update_viewport() first")
        return max(1, _round_half_up(self.tile_side / self.aspect_ratio))

    def rows_for(self, item_count) -> int:
        return -(-item_count // self.column_count)

    def index_at(self, row, column) -> int:
        """Flattened grid index of the cell at (row, column)."""
        if not 0 <= column < self.column_count:
            raise IndexError(f"column {column} outside 0..{self.column_count - 1}")
        return row * self.column_count + column
