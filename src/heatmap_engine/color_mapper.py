"""Map normalized intensity to RGBA through a piecewise-linear gradient.

Per cell:
    n = clamp(cell / max_intensity × adaptive_factor, 0, 1)
    n ≤ activation_threshold  → (0, 0, 0, 0)
    otherwise                  → RGB interpolated between the two stops that
                                 bracket n; alpha from the opacity policy,
                                 times the interpolated stop alpha

Opacity policies:
    linear:    a = min_opacity + (max_opacity − min_opacity) × n
    weighted:  a = min(max_opacity, linear(n) + alpha_weight × n)

Below the first stop the first colour is held; above the last stop the last
colour is held. Any stop list works; the named schemes live in
src.utils.color.GRADIENT_PRESETS.

Output buffers are float32 RGBA in [0, 1], straight (non-premultiplied) alpha.
"""

from typing import Optional, Sequence

import numpy as np

from src.utils.color import GradientStop, stops_to_arrays
from src.utils.validators import HeatmapConfigV1


def max_intensity_of(grid: np.ndarray) -> float:
    """Grid maximum, or 1.0 for an empty/all-zero grid (no divide-by-zero)."""
    if grid.size == 0:
        return 1.0
    peak = float(grid.max())
    return peak if peak > 0 else 1.0


class ColorMapper:
    """Gradient colour mapping with configurable opacity policy."""

    def __init__(
        self,
        stops: Sequence[GradientStop],
        min_opacity: float = 0.05,
        max_opacity: float = 0.8,
        activation_threshold: float = 0.01,
        alpha_policy: str = 'linear',
        alpha_weight: float = 0.2
    ):
        if alpha_policy not in ('linear', 'weighted'):
            raise ValueError(f"Unknown alpha policy: {alpha_policy}. Use 'linear' or 'weighted'.")
        if min_opacity > max_opacity:
            raise ValueError(f"min_opacity {min_opacity} > max_opacity {max_opacity}")
        self.thresholds, self.rgb, self.stop_alpha = stops_to_arrays(stops)
        self.min_opacity = min_opacity
        self.max_opacity = max_opacity
        self.activation_threshold = activation_threshold
        self.alpha_policy = alpha_policy
        self.alpha_weight = alpha_weight

    @classmethod
    def from_config(cls, cfg: HeatmapConfigV1) -> 'ColorMapper':
        return cls(
            stops=cfg.resolved_stops(),
            min_opacity=cfg.min_opacity,
            max_opacity=cfg.max_opacity,
            activation_threshold=cfg.activation_threshold,
            alpha_policy=cfg.alpha_policy,
            alpha_weight=cfg.alpha_weight,
        )

    def normalize(
        self,
        grid: np.ndarray,
        max_intensity: Optional[float] = None,
        adaptive_factor: float = 1.0
    ) -> np.ndarray:
        """Scale a grid to [0, 1]: cell / max_intensity × adaptive_factor, clamped."""
        if max_intensity is None or max_intensity <= 0:
            max_intensity = max_intensity_of(grid)
        return np.clip(grid / max_intensity * adaptive_factor, 0.0, 1.0)

    def opacity(self, normalized: np.ndarray) -> np.ndarray:
        """Alpha for normalized values according to the opacity policy."""
        span = self.max_opacity - self.min_opacity
        alpha = self.min_opacity + span * normalized
        if self.alpha_policy == 'weighted':
            alpha = np.minimum(self.max_opacity, alpha + self.alpha_weight * normalized)
        return alpha

    def color_at(self, normalized: np.ndarray) -> np.ndarray:
        """RGB in [0, 255] interpolated between bracketing stops, shape (..., 3)."""
        channels = [
            np.interp(normalized, self.thresholds, self.rgb[:, c]) for c in range(3)
        ]
        return np.stack(channels, axis=-1)

    def colorize(
        self,
        grid: np.ndarray,
        max_intensity: Optional[float] = None,
        adaptive_factor: float = 1.0
    ) -> np.ndarray:
        """Colour an intensity grid.

        Parameters
        ----------
        grid : np.ndarray
            (H, W) non-negative intensities
        max_intensity : float, optional
            Normalization divisor; None → grid maximum (1.0 if all zero)
        adaptive_factor : float
            Global scale from AdaptiveIntensityPolicy

        Returns
        -------
        np.ndarray
            (H, W, 4) float32 RGBA in [0, 1], straight alpha
        """
        n = self.normalize(grid, max_intensity, adaptive_factor)
        active = n > self.activation_threshold

        rgba = np.zeros(grid.shape + (4,), dtype=np.float32)
        if not active.any():
            return rgba

        values = n[active]
        rgba[active, :3] = self.color_at(values) / 255.0
        stop_alpha = np.interp(values, self.thresholds, self.stop_alpha)
        rgba[active, 3] = self.opacity(values) * stop_alpha
        return rgba
