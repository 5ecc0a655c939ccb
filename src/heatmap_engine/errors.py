"""Exception hierarchy for the heatmap engine.

All of these are recovered inside the Compositor; they only escape from
the lower-level building blocks when those are used directly.
"""


class HeatmapError(Exception):
    """Base class for heatmap engine errors."""

    pass


class InvalidGeometryError(HeatmapError, ValueError):
    """Zero or negative grid/surface dimensions."""

    pass


class PixelAccessError(HeatmapError):
    """The raster surface refused to yield or accept pixel data."""

    pass


class OutOfBoundsPointError(HeatmapError):
    """A point maps outside the intensity grid."""

    def __init__(self, point, grid_w: int, grid_h: int):
        super().__init__(f"Point {point} outside {grid_w}x{grid_h} grid")
        self.point = point
        self.grid_w = grid_w
        self.grid_h = grid_h
