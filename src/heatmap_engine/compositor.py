"""Compositor: full render pipeline from points to an RGBA overlay.

Pipeline (heatmap mode):
    1. Grid size = surface × scale (0.5 above 100 points, else 1.0)
    2. IntensityFieldBuilder → IntensitySmoother (optional) → ColorMapper
    3. min(3, ceil(n / 40)) Gaussian blur passes of radius blur_amount × 4
    4. Bilinear resize to the surface resolution
    5. Alpha-over onto the background image (when one is supplied)

Simple mode bypasses 1–5 and draws solid translucent red dots (25 px radius)
at each point's device position. The same dots are the failure fallback:
any exception inside 1–5 is logged and converted into a dot render, so the
caller always gets a buffer back (heatmap, dots, or blank).

Usage:
    from src.heatmap_engine.compositor import Compositor
    from src.utils import validators

    compositor = Compositor(validators.load_heatmap_config())
    result = compositor.render(points, 800, 600, background=bg_rgb)
    overlay = result.overlay          # (600, 800, 4) uint8
    composite = result.composite      # (600, 800, 3) uint8 or None
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple

import cv2
import numpy as np

from src.utils import compute, profiler
from src.utils.color import parse_color, premultiply, unpremultiply
from src.utils.validators import HeatmapConfigV1

from .color_mapper import ColorMapper, max_intensity_of
from .errors import InvalidGeometryError, PixelAccessError
from .field_builder import IntensityFieldBuilder
from .intensity import AdaptiveIntensityPolicy
from .points import Point, PointLike, valid_points
from .smoother import IntensitySmoother
from .surface import RasterSurface, as_rgb8

logger = logging.getLogger(__name__)


class RenderMode(str, Enum):
    HEATMAP = "heatmap"
    SIMPLE = "simple"
    FALLBACK = "fallback"
    BLANK = "blank"


@dataclass
class RenderResult:
    """Output of one render call. Buffers are owned by the caller."""
    overlay: np.ndarray
    composite: Optional[np.ndarray]
    mode: RenderMode
    point_count: int = 0
    grid_size: Tuple[int, int] = (0, 0)
    blur_passes: int = 0
    adaptive_factor: float = 1.0
    max_intensity: float = 1.0
    error: Optional[str] = None


def to_rgba8(rgba: np.ndarray) -> np.ndarray:
    """Float RGBA in [0, 1] → uint8."""
    return (np.clip(rgba, 0.0, 1.0) * 255.0 + 0.5).astype(np.uint8)


def alpha_over(background: np.ndarray, overlay: np.ndarray) -> np.ndarray:
    """Composite a (H, W, 4) uint8 overlay onto a (H, W, 3) uint8 background."""
    bg = background.astype(np.float32)
    fg = overlay[:, :, :3].astype(np.float32)
    a = overlay[:, :, 3:4].astype(np.float32) / 255.0
    out = fg * a + bg * (1.0 - a)
    return (np.clip(out, 0.0, 255.0) + 0.5).astype(np.uint8)


def blur_rgba(rgba: np.ndarray, radius: float, passes: int) -> np.ndarray:
    """Apply `passes` full Gaussian blurs (sigma = radius) to float RGBA.

    Blurring runs on premultiplied colour so transparent cells don't darken
    the edges of the heat blobs.
    """
    if passes <= 0 or radius <= 0:
        return rgba
    buf = premultiply(rgba).astype(np.float32)
    for _ in range(passes):
        buf = cv2.GaussianBlur(buf, (0, 0), sigmaX=float(radius), sigmaY=float(radius))
    return unpremultiply(buf).astype(np.float32)


class Compositor:
    """Owns the pipeline stages for one configuration.

    The configuration is immutable; use with_config() to obtain a compositor
    for a changed config (e.g. simple-mode toggle). No grid or buffer
    survives a render call.
    """

    def __init__(self, config: Optional[HeatmapConfigV1] = None):
        self.config = config or HeatmapConfigV1()
        self.policy = AdaptiveIntensityPolicy.from_config(self.config)
        self.builder = self._make_builder(self.config)
        self.smoother = IntensitySmoother.from_config(self.config) if self.config.smoothing else None
        self.mapper = ColorMapper.from_config(self.config)
        self.dot_rgba = parse_color(self.config.dot_color).as_rgba8()
        self._timing_sink = profiler.log_sink(logger)

    @staticmethod
    def _make_builder(cfg: HeatmapConfigV1):
        if cfg.field_backend == 'torch':
            from .field_torch import TorchFieldBuilder
            return TorchFieldBuilder.from_config(cfg)
        return IntensityFieldBuilder.from_config(cfg)

    def with_config(self, config: HeatmapConfigV1) -> 'Compositor':
        return Compositor(config)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def render(
        self,
        points: Sequence[PointLike],
        width: int,
        height: int,
        background: Optional[np.ndarray] = None,
        preview: Optional[Tuple[float, float]] = None
    ) -> RenderResult:
        """Render points onto a transparent (height, width, 4) overlay.

        Parameters
        ----------
        points : Sequence[PointLike]
            Committed normalized points; items outside [0,100]² are skipped
            and logged at DEBUG
        width, height : int
            Target surface size in device pixels
        background : np.ndarray, optional
            Background image (any size); fitted and composited under the overlay
        preview : (x, y), optional
            Transient device-space preview marker, drawn as a translucent dot.
            Never contributes intensity.

        Returns
        -------
        RenderResult
            Never raises for render failures; mode tells which path ran.
        """
        if width <= 0 or height <= 0:
            logger.warning(f"{InvalidGeometryError(f'{width}x{height} surface')}; blank output")
            return RenderResult(
                overlay=np.zeros((max(height, 0), max(width, 0), 4), dtype=np.uint8),
                composite=None,
                mode=RenderMode.BLANK,
                error="invalid geometry",
            )

        pts = valid_points(points)

        if self.config.simple_mode:
            result = self._render_dots(pts, width, height, background, RenderMode.SIMPLE)
        elif not pts:
            result = self._blank(width, height, background)
        else:
            try:
                result = self._render_heatmap(pts, width, height, background)
            except Exception as e:
                logger.warning(f"Heatmap render failed ({e!r}); falling back to dots", exc_info=True)
                result = self._render_dots(pts, width, height, background, RenderMode.FALLBACK)
                result.error = repr(e)

        if preview is not None:
            self.draw_preview(result, preview, background)
        return result

    def render_to(
        self,
        surface: RasterSurface,
        points: Sequence[PointLike],
        preview: Optional[Tuple[float, float]] = None
    ) -> RenderResult:
        """Render for a RasterSurface and present the result on it.

        Background read failures and present failures (PixelAccessError)
        degrade to dots; if even dots cannot be presented the result is
        returned unpresented.
        """
        pts = valid_points(points)
        try:
            background = surface.read_background()
        except PixelAccessError as e:
            logger.warning(f"Background unavailable ({e}); rendering without it")
            background = None

        result = self.render(pts, surface.width, surface.height, background, preview)
        try:
            surface.present(result.overlay, result.composite)
        except PixelAccessError as e:
            logger.warning(f"Surface rejected {result.mode.value} frame ({e}); presenting dots")
            result = self._render_dots(pts, surface.width, surface.height, background, RenderMode.FALLBACK)
            result.error = repr(e)
            try:
                surface.present(result.overlay, result.composite)
            except PixelAccessError as e2:
                logger.error(f"Surface rejected fallback frame: {e2}")
        return result

    def draw_preview(
        self,
        result: RenderResult,
        preview: Tuple[float, float],
        background: Optional[np.ndarray] = None
    ) -> RenderResult:
        """Draw the translucent preview dot onto an existing result in place."""
        overlay = result.overlay
        if overlay.size == 0:
            return result
        r, g, b, a = self.dot_rgba
        color = (r, g, b, int(round(a * self.config.preview_alpha)))
        marker = np.zeros_like(overlay)
        self._draw_dot(marker, preview, color)
        touched = marker[..., 3:4] > 0
        result.overlay = np.where(touched, self._over_rgba(overlay, marker), overlay)
        if background is not None:
            try:
                bg = self._fit_background(background, overlay.shape[1], overlay.shape[0])
                result.composite = alpha_over(bg, result.overlay)
            except (ValueError, cv2.error) as e:
                logger.warning(f"Background composite failed for preview: {e}")
        return result

    # ------------------------------------------------------------------
    # Pipeline stages
    # ------------------------------------------------------------------

    def _render_heatmap(
        self,
        points: Tuple[Point, ...],
        width: int,
        height: int,
        background: Optional[np.ndarray]
    ) -> RenderResult:
        cfg = self.config
        n = len(points)

        scale = compute.grid_scale(n, cfg.downscale_point_threshold, cfg.downscale_factor)
        grid_w, grid_h = compute.grid_dims(width, height, scale)
        if grid_w <= 0 or grid_h <= 0:
            raise InvalidGeometryError(f"Zero-sized grid {grid_w}x{grid_h} for {width}x{height} surface")

        with profiler.timer("field", self._timing_sink):
            grid = self.builder.build(points, grid_w, grid_h)

        if self.smoother is not None:
            with profiler.timer("smooth", self._timing_sink):
                grid = self.smoother.smooth(grid)

        factor = self.policy.factor(n)
        max_intensity = cfg.intensity_divisor or max_intensity_of(grid)

        with profiler.timer("colorize", self._timing_sink):
            rgba = self.mapper.colorize(grid, max_intensity, factor)

        passes = compute.blur_pass_count(n, cfg.points_per_blur_pass, cfg.max_blur_passes)
        with profiler.timer("blur", self._timing_sink):
            rgba = blur_rgba(rgba, cfg.blur_amount * 4.0, passes)

        if (grid_w, grid_h) != (width, height):
            rgba = cv2.resize(rgba, (width, height), interpolation=cv2.INTER_LINEAR)

        overlay = to_rgba8(rgba)
        composite = None
        if background is not None:
            composite = alpha_over(self._fit_background(background, width, height), overlay)

        logger.debug(
            f"Rendered {n} points: grid={grid_w}x{grid_h} factor={factor:.3f} "
            f"max={max_intensity:.3f} blur_passes={passes}"
        )
        return RenderResult(
            overlay=overlay,
            composite=composite,
            mode=RenderMode.HEATMAP,
            point_count=n,
            grid_size=(grid_w, grid_h),
            blur_passes=passes,
            adaptive_factor=factor,
            max_intensity=float(max_intensity),
        )

    def _render_dots(
        self,
        points: Tuple[Point, ...],
        width: int,
        height: int,
        background: Optional[np.ndarray],
        mode: RenderMode
    ) -> RenderResult:
        overlay = np.zeros((height, width, 4), dtype=np.uint8)
        for p in points:
            self._draw_dot(overlay, compute.to_device(p.x, p.y, width, height), self.dot_rgba)

        composite = None
        if background is not None:
            try:
                composite = alpha_over(self._fit_background(background, width, height), overlay)
            except (ValueError, cv2.error) as e:
                logger.warning(f"Background composite failed in dot mode: {e}")
        return RenderResult(overlay=overlay, composite=composite, mode=mode, point_count=len(points))

    def _blank(self, width: int, height: int, background: Optional[np.ndarray]) -> RenderResult:
        overlay = np.zeros((height, width, 4), dtype=np.uint8)
        composite = None
        if background is not None:
            try:
                composite = self._fit_background(background, width, height).copy()
            except (ValueError, cv2.error) as e:
                logger.warning(f"Background unusable: {e}")
        return RenderResult(overlay=overlay, composite=composite, mode=RenderMode.BLANK)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _draw_dot(self, buf: np.ndarray, center: Tuple[float, float], rgba8) -> None:
        cx, cy = center
        cv2.circle(
            buf,
            (compute.round_half_up(cx), compute.round_half_up(cy)),
            compute.round_half_up(self.config.dot_radius_px),
            tuple(int(c) for c in rgba8),
            thickness=-1,
            lineType=cv2.LINE_AA,
        )

    @staticmethod
    def _over_rgba(base: np.ndarray, top: np.ndarray) -> np.ndarray:
        """Porter-Duff over for two uint8 RGBA buffers."""
        b = base.astype(np.float32) / 255.0
        t = top.astype(np.float32) / 255.0
        ta, ba = t[..., 3:4], b[..., 3:4]
        out_a = ta + ba * (1.0 - ta)
        out_rgb = t[..., :3] * ta + b[..., :3] * ba * (1.0 - ta)
        np.divide(out_rgb, out_a, out=out_rgb, where=out_a > 0)
        return to_rgba8(np.concatenate([out_rgb, out_a], axis=-1))

    @staticmethod
    def _fit_background(background: np.ndarray, width: int, height: int) -> np.ndarray:
        bg = as_rgb8(np.asarray(background, dtype=np.uint8))
        if bg.shape[:2] != (height, width):
            bg = cv2.resize(bg, (width, height), interpolation=cv2.INTER_LINEAR)
        return bg
