"""Pointer gesture discrimination: taps, drags, and the preview point.

Input is a stream of PointerEvent(x, y, phase, timestamp_ms) in surface
pixels. A gesture runs from START to END:

    tap   movement < tap_threshold_px and duration < tap_max_ms
          → commit at the release position
    drag  movement exceeded the threshold at some MOVE
          → preview follows the pointer; commit once at release
    other a long press that never moved → nothing is committed

A MOVE outside the surface hides the preview; an END outside the surface
cancels the gesture. Plain mouse clicks bypass the tracker and commit
directly.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class Phase(str, Enum):
    START = "start"
    MOVE = "move"
    END = "end"


@dataclass(frozen=True)
class PointerEvent:
    x: float
    y: float
    phase: Phase
    timestamp_ms: float


class GestureKind(str, Enum):
    NONE = "none"
    PREVIEW = "preview"
    TAP = "tap"
    DRAG = "drag"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class GestureOutcome:
    """What a single event means for the registry.

    commit : (x, y) to pass to PointRegistry.commit, or None
    preview : current preview position, or None when hidden
    preview_changed : whether the preview moved/appeared/disappeared
    """
    kind: GestureKind
    commit: Optional[Tuple[float, float]] = None
    preview: Optional[Tuple[float, float]] = None
    preview_changed: bool = False


@dataclass
class _GestureStart:
    x: float
    y: float
    t: float


def _inside(x: float, y: float, w: float, h: float) -> bool:
    return 0 <= x <= w and 0 <= y <= h


class GestureTracker:
    """Per-pointer state machine. Cheap: never renders anything itself."""

    def __init__(self, tap_threshold_px: float = 10.0, tap_max_ms: float = 300.0):
        self.tap_threshold_px = tap_threshold_px
        self.tap_max_ms = tap_max_ms
        self._start: Optional[_GestureStart] = None
        self._preview: Optional[Tuple[float, float]] = None

    @property
    def active(self) -> bool:
        return self._start is not None

    @property
    def preview(self) -> Optional[Tuple[float, float]]:
        return self._preview

    def reset(self) -> GestureOutcome:
        had_preview = self._preview is not None
        self._start = None
        self._preview = None
        return GestureOutcome(GestureKind.CANCELLED, preview_changed=had_preview)

    def handle(self, event: PointerEvent, surface_w: float, surface_h: float) -> GestureOutcome:
        """Advance the state machine with one pointer event."""
        if event.phase == Phase.START:
            return self._on_start(event, surface_w, surface_h)
        if event.phase == Phase.MOVE:
            return self._on_move(event, surface_w, surface_h)
        return self._on_end(event, surface_w, surface_h)

    def _on_start(self, event: PointerEvent, w: float, h: float) -> GestureOutcome:
        if w <= 0 or h <= 0:
            return GestureOutcome(GestureKind.NONE)
        had_preview = self._preview is not None
        self._start = _GestureStart(event.x, event.y, event.timestamp_ms)
        self._preview = None
        return GestureOutcome(GestureKind.NONE, preview_changed=had_preview)

    def _on_move(self, event: PointerEvent, w: float, h: float) -> GestureOutcome:
        if self._start is None:
            return GestureOutcome(GestureKind.NONE)

        if not _inside(event.x, event.y, w, h):
            changed = self._preview is not None
            self._preview = None
            return GestureOutcome(GestureKind.PREVIEW, preview=None, preview_changed=changed)

        moved = math.hypot(event.x - self._start.x, event.y - self._start.y)
        if moved > self.tap_threshold_px:
            self._preview = (event.x, event.y)
            return GestureOutcome(GestureKind.PREVIEW, preview=self._preview, preview_changed=True)
        return GestureOutcome(GestureKind.NONE, preview=self._preview)

    def _on_end(self, event: PointerEvent, w: float, h: float) -> GestureOutcome:
        start = self._start
        if start is None:
            return GestureOutcome(GestureKind.NONE)

        if w <= 0 or h <= 0 or not _inside(event.x, event.y, w, h):
            return self.reset()

        moved = math.hypot(event.x - start.x, event.y - start.y)
        duration = event.timestamp_ms - start.t
        had_preview = self._preview is not None
        self._start = None
        self._preview = None

        if moved < self.tap_threshold_px and duration < self.tap_max_ms:
            return GestureOutcome(GestureKind.TAP, commit=(event.x, event.y), preview_changed=had_preview)
        if had_preview:
            return GestureOutcome(GestureKind.DRAG, commit=(event.x, event.y), preview_changed=True)
        return GestureOutcome(GestureKind.NONE)
