"""Vectorized intensity field builder on torch (CPU).

Produces the same grid as IntensityFieldBuilder (within float64 rounding)
by separating the work into two tensor ops instead of a per-point loop:

    1. Scatter-add point multiplicities into a count grid at (gy, gx)
    2. Cross-correlate the count grid with the truncated Gaussian stamp
       (zero padding ≡ clipping the stamp at the grid border)

The stamp is symmetric, so correlation equals convolution, and the sum of
stamps is exactly the per-point accumulation. This pays off for large point
sets where the reference loop dominates render time.

Limitations:
    - Circular kernel only; elliptical kernels draw per-point shapes and
      are delegated to the reference builder.
    - CPU tensors only.
"""

import logging
import math
from typing import Sequence

import numpy as np
import torch
import torch.nn.functional as F

from src.utils.validators import HeatmapConfigV1

from .errors import InvalidGeometryError
from .field_builder import IntensityFieldBuilder, effective_radius, point_to_cell
from .points import Point

logger = logging.getLogger(__name__)


def gaussian_stamp(radius: float, sigma: float, dtype=torch.float64) -> torch.Tensor:
    """Truncated Gaussian stamp of shape (2r+1, 2r+1), r = floor(radius).

    Cells with d² > radius² are zero.
    """
    r = int(math.floor(radius))
    offsets = torch.arange(-r, r + 1, dtype=dtype)
    d2 = offsets[:, None] ** 2 + offsets[None, :] ** 2
    stamp = torch.exp(-d2 / (2.0 * sigma * sigma))
    return torch.where(d2 <= radius * radius, stamp, torch.zeros_like(stamp))


class TorchFieldBuilder:
    """Drop-in replacement for IntensityFieldBuilder.build() using torch ops."""

    def __init__(
        self,
        radius: float = 35.0,
        sigma_ratio: float = 2.5,
        kernel_shape: str = 'circular',
        seed: int = 0
    ):
        self.reference = IntensityFieldBuilder(radius, sigma_ratio, kernel_shape, seed)
        self.radius = radius
        self.sigma_ratio = sigma_ratio
        self.kernel_shape = kernel_shape

    @classmethod
    def from_config(cls, cfg: HeatmapConfigV1) -> 'TorchFieldBuilder':
        return cls(
            radius=cfg.radius,
            sigma_ratio=cfg.kernel_sigma_ratio,
            kernel_shape=cfg.kernel_shape,
            seed=cfg.kernel_seed,
        )

    @torch.no_grad()
    def build(self, points: Sequence[Point], grid_w: int, grid_h: int) -> np.ndarray:
        """Accumulate points; same contract as IntensityFieldBuilder.build().

        Returns
        -------
        np.ndarray
            (grid_h, grid_w) float64 grid
        """
        if grid_w <= 0 or grid_h <= 0:
            raise InvalidGeometryError(f"Grid dimensions must be positive, got {grid_w}x{grid_h}")

        if self.kernel_shape != 'circular':
            logger.debug("Elliptical kernel requested; using reference builder")
            return self.reference.build(points, grid_w, grid_h)

        counts = torch.zeros(grid_h * grid_w, dtype=torch.float64)
        cells = [point_to_cell(p, grid_w, grid_h) for p in points]
        flat = [gy * grid_w + gx for gx, gy in cells if 0 <= gx < grid_w and 0 <= gy < grid_h]

        skipped = len(cells) - len(flat)
        if skipped:
            logger.debug(f"Skipped {skipped}/{len(cells)} out-of-grid points")
        if not flat:
            return np.zeros((grid_h, grid_w), dtype=np.float64)

        idx = torch.tensor(flat, dtype=torch.long)
        counts.index_add_(0, idx, torch.ones(len(flat), dtype=torch.float64))

        radius = effective_radius(self.radius, grid_w, grid_h)
        stamp = gaussian_stamp(radius, radius / self.sigma_ratio)
        pad = stamp.shape[0] // 2

        field = F.conv2d(
            counts.view(1, 1, grid_h, grid_w),
            stamp.view(1, 1, *stamp.shape),
            padding=pad,
        )
        return field[0, 0].numpy().copy()
