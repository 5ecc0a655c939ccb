"""Heatmap intensity engine: normalized points → coloured RGBA overlay.

Pipeline stages (leaves first):
    - intensity: AdaptiveIntensityPolicy (global scale from point count)
    - field_builder: Gaussian kernel accumulation into an intensity grid
      (field_torch: vectorized equivalent, same results)
    - smoother: optional box-mean smoothing of nonzero cells
    - color_mapper: gradient stops → RGBA with configurable opacity policy
    - compositor: blur, resize, alpha-over, dot fallback

Invariants:
    - Grids and buffers are created fresh per render and never shared
    - Render failures are recovered inside the Compositor (dots or blank)
    - Points are normalized integers in [0, 100]²

Used by:
    - interaction.session: re-renders on every committed registry change
    - scripts/render_heatmap.py: offline rendering of a points file
"""

from .color_mapper import ColorMapper
from .compositor import Compositor, RenderMode, RenderResult
from .errors import HeatmapError, InvalidGeometryError, OutOfBoundsPointError, PixelAccessError
from .field_builder import IntensityFieldBuilder
from .intensity import AdaptiveIntensityPolicy
from .points import Point, as_points, valid_points
from .smoother import IntensitySmoother
from .surface import RasterSurface

__all__ = [
    'AdaptiveIntensityPolicy',
    'ColorMapper',
    'Compositor',
    'HeatmapError',
    'IntensityFieldBuilder',
    'IntensitySmoother',
    'InvalidGeometryError',
    'OutOfBoundsPointError',
    'PixelAccessError',
    'Point',
    'RasterSurface',
    'RenderMode',
    'RenderResult',
    'as_points',
    'valid_points',
]
