"""Adaptive intensity policy: global down-scaling as point count grows.

Without it a dense click map saturates to the top gradient stop everywhere.

Modes:
    - log (default):  1.0 for n ≤ 10, else max(0.3, 1.0 − log10(n/10) × 0.3)
    - linear:         1.0 for n ≤ 10, else max(0.3, 1.0 − (n − 10) × 0.05)

Both are non-increasing in n with a floor of 0.3. A disabled policy always
returns 1.0.
"""

import math

from src.utils.validators import HeatmapConfigV1


class AdaptiveIntensityPolicy:
    """Point-count → intensity scale factor in [floor, 1.0]."""

    def __init__(
        self,
        enabled: bool = True,
        mode: str = 'log',
        min_points: int = 10,
        floor: float = 0.3,
        log_slope: float = 0.3,
        linear_step: float = 0.05
    ):
        if mode not in ('log', 'linear'):
            raise ValueError(f"Unknown adaptive mode: {mode}. Use 'log' or 'linear'.")
        if not 0.0 <= floor <= 1.0:
            raise ValueError(f"floor must be in [0, 1], got {floor}")
        self.enabled = enabled
        self.mode = mode
        self.min_points = min_points
        self.floor = floor
        self.log_slope = log_slope
        self.linear_step = linear_step

    @classmethod
    def from_config(cls, cfg: HeatmapConfigV1) -> 'AdaptiveIntensityPolicy':
        return cls(enabled=cfg.adaptive_intensity, mode=cfg.adaptive_mode)

    def factor(self, point_count: int) -> float:
        """Scale factor for `point_count` committed points.

        Examples
        --------
        >>> AdaptiveIntensityPolicy().factor(5)
        1.0
        >>> round(AdaptiveIntensityPolicy().factor(15), 3)
        0.947
        """
        if not self.enabled or point_count <= self.min_points:
            return 1.0

        if self.mode == 'log':
            raw = 1.0 - math.log10(point_count / self.min_points) * self.log_slope
        else:
            raw = 1.0 - (point_count - self.min_points) * self.linear_step

        return max(self.floor, raw)

    def __repr__(self) -> str:
        return (
            f"AdaptiveIntensityPolicy(enabled={self.enabled}, mode={self.mode!r}, "
            f"min_points={self.min_points}, floor={self.floor})"
        )
