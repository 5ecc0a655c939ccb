"""Reference intensity field builder: additive Gaussian-kernel accumulation.

Each point is splatted onto a dense float64 grid with a truncated Gaussian:

    gx = floor(x / 100 × grid_w),  gy = floor(y / 100 × grid_h)
    r  = min(radius, min(grid_w, grid_h) / 4)
    σ  = r / kernel_sigma_ratio
    grid[cy, cx] += exp(−d² / (2σ²))   for every cell with d² ≤ r²

Accumulation is unbounded: overlapping points intensify. Normalization to
[0, 1] is the ColorMapper's job.

Kernel shapes:
    - circular (default): isotropic Gaussian
    - elliptical: per-point random orientation/eccentricity ("organic blob"),
      drawn from numpy.random.default_rng(kernel_seed) so renders stay
      reproducible. The footprint is still the circle d² ≤ r².

Invariants:
    - Output shape is (grid_h, grid_w), dtype float64, values ≥ 0
    - Points mapping outside the grid are skipped (logged at DEBUG)
    - Result depends only on (points, grid size, config); no state is kept
"""

import logging
import math
from typing import Sequence, Tuple

import numpy as np

from src.utils.validators import HeatmapConfigV1

from .errors import InvalidGeometryError, OutOfBoundsPointError
from .points import Point

logger = logging.getLogger(__name__)

# Elliptical kernel: minor/major axis ratio range
_ELLIPSE_RATIO_RANGE = (0.6, 1.0)


def effective_radius(radius: float, grid_w: int, grid_h: int) -> float:
    """Kernel radius capped to a quarter of the smaller grid side."""
    return min(float(radius), min(grid_w, grid_h) / 4.0)


def point_to_cell(point: Point, grid_w: int, grid_h: int) -> Tuple[int, int]:
    """Normalized point → (gx, gy) grid cell (may fall outside the grid)."""
    return (
        int(math.floor(point.x / 100.0 * grid_w)),
        int(math.floor(point.y / 100.0 * grid_h)),
    )


class IntensityFieldBuilder:
    """Rasterize normalized points into a scalar density grid.

    Attributes
    ----------
    radius : float
        Nominal kernel radius in grid pixels
    sigma_ratio : float
        σ = effective radius / sigma_ratio (2.5 reference, 2.0 steeper variant)
    kernel_shape : str
        'circular' or 'elliptical'
    seed : int
        Seed for the elliptical kernel generator
    """

    def __init__(
        self,
        radius: float = 35.0,
        sigma_ratio: float = 2.5,
        kernel_shape: str = 'circular',
        seed: int = 0
    ):
        if radius <= 0:
            raise ValueError(f"radius must be positive, got {radius}")
        if sigma_ratio <= 0:
            raise ValueError(f"sigma_ratio must be positive, got {sigma_ratio}")
        if kernel_shape not in ('circular', 'elliptical'):
            raise ValueError(f"Unknown kernel shape: {kernel_shape}")
        self.radius = radius
        self.sigma_ratio = sigma_ratio
        self.kernel_shape = kernel_shape
        self.seed = seed

    @classmethod
    def from_config(cls, cfg: HeatmapConfigV1) -> 'IntensityFieldBuilder':
        return cls(
            radius=cfg.radius,
            sigma_ratio=cfg.kernel_sigma_ratio,
            kernel_shape=cfg.kernel_shape,
            seed=cfg.kernel_seed,
        )

    def build(self, points: Sequence[Point], grid_w: int, grid_h: int) -> np.ndarray:
        """Accumulate all points into a fresh (grid_h, grid_w) grid.

        Parameters
        ----------
        points : Sequence[Point]
            Normalized points, insertion order (matters only for the
            elliptical kernel's random draws)
        grid_w, grid_h : int
            Grid size in cells

        Returns
        -------
        np.ndarray
            Intensity grid, float64, non-negative, no upper bound

        Raises
        ------
        InvalidGeometryError
            If either grid dimension is not positive
        """
        if grid_w <= 0 or grid_h <= 0:
            raise InvalidGeometryError(f"Grid dimensions must be positive, got {grid_w}x{grid_h}")

        grid = np.zeros((grid_h, grid_w), dtype=np.float64)
        radius = effective_radius(self.radius, grid_w, grid_h)
        sigma = radius / self.sigma_ratio
        rng = np.random.default_rng(self.seed) if self.kernel_shape == 'elliptical' else None

        skipped = 0
        for point in points:
            gx, gy = point_to_cell(point, grid_w, grid_h)
            if not (0 <= gx < grid_w and 0 <= gy < grid_h):
                logger.debug(f"{OutOfBoundsPointError(point, grid_w, grid_h)}; skipping")
                skipped += 1
                continue
            self._splat(grid, gx, gy, radius, sigma, rng)

        if skipped:
            logger.debug(f"Skipped {skipped}/{len(points)} out-of-grid points")

        return grid

    def _splat(
        self,
        grid: np.ndarray,
        gx: int,
        gy: int,
        radius: float,
        sigma: float,
        rng
    ) -> None:
        """Add one truncated kernel centred on (gx, gy), clipped to the grid."""
        grid_h, grid_w = grid.shape
        r = int(math.floor(radius))

        x0, x1 = max(0, gx - r), min(grid_w - 1, gx + r)
        y0, y1 = max(0, gy - r), min(grid_h - 1, gy + r)

        dx = np.arange(x0, x1 + 1, dtype=np.float64) - gx
        dy = np.arange(y0, y1 + 1, dtype=np.float64) - gy
        d2 = dy[:, None] ** 2 + dx[None, :] ** 2
        inside = d2 <= radius * radius

        if rng is None:
            d2_kernel = d2
        else:
            theta = rng.uniform(0.0, math.pi)
            ratio = rng.uniform(*_ELLIPSE_RATIO_RANGE)
            c, s = math.cos(theta), math.sin(theta)
            u = dx[None, :] * c + dy[:, None] * s
            v = -dx[None, :] * s + dy[:, None] * c
            d2_kernel = u ** 2 + (v / ratio) ** 2

        weights = np.exp(-d2_kernel / (2.0 * sigma * sigma))
        grid[y0:y1 + 1, x0:x1 + 1] += np.where(inside, weights, 0.0)
