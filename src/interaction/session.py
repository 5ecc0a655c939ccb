"""HeatOverlaySession: one interactive heat overlay bound to one surface.

Owns the explicit state that a UI host would otherwise keep implicitly:

    registry    committed points + preview          (PointRegistry)
    tracker     in-flight pointer gesture           (GestureTracker)
    config      immutable render configuration      (HeatmapConfigV1)
    compositor  pipeline for the current config     (Compositor)
    surface     size, background, presented frame   (RasterSurface)

Render triggers: committed registry changes, resize, config change/toggle.
Pointer moves that only move the preview redraw the marker over the last
full frame; the pipeline is not re-run.

Frame subscribers receive every RenderResult that reaches the surface.

Usage:
    session = HeatOverlaySession(cfg, 800, 600, background=img)
    session.on_frame(lambda result: show(result.composite))
    session.click(100, 100)                   # add point (13, 17)
    session.handle_event(PointerEvent(x, y, Phase.START, t))
"""

import copy
import logging
from typing import Callable, Iterable, List, Optional

import numpy as np

from src.heatmap_engine.compositor import Compositor, RenderResult
from src.heatmap_engine.errors import InvalidGeometryError, PixelAccessError
from src.heatmap_engine.points import PointLike
from src.heatmap_engine.surface import RasterSurface
from src.utils.validators import HeatmapConfigV1

from .gestures import GestureOutcome, GestureTracker, PointerEvent
from .registry import ChangeKind, PointRegistry

logger = logging.getLogger(__name__)

FrameListener = Callable[[RenderResult], None]


class HeatOverlaySession:
    """Interactive point placement plus heat overlay rendering.

    Parameters
    ----------
    config : HeatmapConfigV1, optional
        Render/interaction configuration (defaults when None)
    width, height : int
        Surface size in device pixels
    background : np.ndarray, optional
        Background image composited under the overlay
    """

    def __init__(
        self,
        config: Optional[HeatmapConfigV1] = None,
        width: int = 800,
        height: int = 600,
        background: Optional[np.ndarray] = None
    ):
        self.config = config or HeatmapConfigV1()
        self.registry = PointRegistry.from_config(self.config)
        self.tracker = GestureTracker(self.config.tap_threshold_px, self.config.tap_max_ms)
        self.compositor = Compositor(self.config)
        self.surface = RasterSurface(width, height, background)

        self.last_result: Optional[RenderResult] = None
        self.render_count = 0
        self._base: Optional[RenderResult] = None
        self._frame_listeners: List[FrameListener] = []
        self._unsubscribe = self.registry.subscribe(self._on_points_changed)

        logger.info(
            f"Session started: {width}x{height}, "
            f"{'simple' if self.config.simple_mode else 'heatmap'} mode"
        )
        self.render()

    # ------------------------------------------------------------------
    # State accessors
    # ------------------------------------------------------------------

    @property
    def points(self):
        return self.registry.points

    @property
    def preview(self):
        return self.registry.preview

    @property
    def size(self):
        return self.surface.size

    def on_frame(self, listener: FrameListener) -> Callable[[], None]:
        """Register a frame listener; returns an unsubscribe callable."""
        self._frame_listeners.append(listener)

        def unsubscribe():
            if listener in self._frame_listeners:
                self._frame_listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def click(self, device_x: float, device_y: float) -> ChangeKind:
        """Plain click: commits immediately, no gesture discrimination."""
        w, h = self.surface.size
        _, kind = self.registry.commit(device_x, device_y, w, h)
        return kind

    def handle_event(self, event: PointerEvent) -> GestureOutcome:
        """Feed one pointer event (touch-like input)."""
        w, h = self.surface.size
        outcome = self.tracker.handle(event, w, h)

        if outcome.preview is not None:
            self.registry.set_preview(*outcome.preview)
        else:
            self.registry.clear_preview()

        rendered_before = self.render_count
        if outcome.commit is not None:
            self.registry.commit(outcome.commit[0], outcome.commit[1], w, h)

        if outcome.preview_changed and self.render_count == rendered_before:
            self._redraw_preview()
        return outcome

    # ------------------------------------------------------------------
    # State changes that trigger a full render
    # ------------------------------------------------------------------

    def clear(self) -> None:
        self.tracker.reset()
        self.registry.clear()

    def load_points(self, points: Iterable[PointLike]) -> None:
        """Replace the committed set (e.g. from a points file)."""
        self.registry.replace(points)

    def resize(self, width: int, height: int) -> RenderResult:
        """Change the surface size; an in-flight gesture is cancelled."""
        self.tracker.reset()
        self.registry.clear_preview()
        try:
            self.surface.resize(width, height)
        except InvalidGeometryError as e:
            logger.warning(f"Resize rejected ({e}); presenting blank frame")
            result = self.compositor.render((), width, height)
            self._publish(result)
            return result
        logger.debug(f"Surface resized to {width}x{height}")
        return self.render()

    def set_background(self, background: Optional[np.ndarray]) -> RenderResult:
        self.surface.background = background
        return self.render()

    def set_config(self, config: HeatmapConfigV1) -> RenderResult:
        """Swap the configuration; points survive, gesture state is reset."""
        self.config = config
        self.compositor = self.compositor.with_config(config)
        self.registry.hit_radius = config.hit_radius
        self.registry.dedup_distance = config.dedup_distance
        self.registry.max_points = config.max_points
        self.tracker.tap_threshold_px = config.tap_threshold_px
        self.tracker.tap_max_ms = config.tap_max_ms
        return self.render()

    def toggle_simple_mode(self) -> RenderResult:
        enabled = not self.config.simple_mode
        logger.info(f"Simple mode {'on' if enabled else 'off'}")
        return self.set_config(self.config.model_copy(update={'simple_mode': enabled}))

    def render(self) -> RenderResult:
        """Run the full pipeline for the current points and present it."""
        base = self.compositor.render_to(self.surface, self.registry.points)
        self._base = base
        self.render_count += 1
        if self.registry.preview is not None:
            self._redraw_preview()
        else:
            self._publish(base)
        return self.last_result

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _on_points_changed(self, points: tuple, kind: ChangeKind) -> None:
        logger.debug(f"Points {kind.value}: {len(points)} committed")
        self.render()

    def _redraw_preview(self) -> None:
        """Cheap path: preview marker over the last full frame."""
        if self._base is None:
            return
        result = copy.copy(self._base)
        preview = self.registry.preview
        if preview is not None:
            try:
                background = self.surface.read_background()
            except PixelAccessError as e:
                logger.debug(f"Preview drawn without background: {e}")
                background = None
            result.overlay = self._base.overlay.copy()
            self.compositor.draw_preview(result, preview, background)
            try:
                self.surface.present(result.overlay, result.composite)
            except PixelAccessError as e:
                logger.warning(f"Surface rejected preview frame: {e}")
        else:
            try:
                self.surface.present(result.overlay, result.composite)
            except PixelAccessError as e:
                logger.warning(f"Surface rejected frame: {e}")
        self._publish(result)

    def _publish(self, result: RenderResult) -> None:
        self.last_result = result
        for listener in list(self._frame_listeners):
            try:
                listener(result)
            except Exception as exc:  # noqa: BLE001
                logger.error("Frame listener error: %s", exc)

    def close(self) -> None:
        self._unsubscribe()
        self._frame_listeners.clear()
        logger.info(f"Session closed after {self.render_count} renders")
