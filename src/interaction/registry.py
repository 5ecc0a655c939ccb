"""Point registry: owns the committed point set and resolves each commit.

Commit resolution for a device position (x, y) on a w×h surface:
    1. Outside [0, w] × [0, h]                        → IGNORED
    2. Within hit_radius px of an existing point      → REMOVED (first match
       in insertion order; scanning stops there)
    3. Within dedup_distance (normalized) of a point  → IGNORED
    4. max_points reached                             → IGNORED
    5. Same id as an existing point                   → IGNORED (no-op add)
    6. Otherwise append Point(x', y')                 → ADDED

The point set is an immutable tuple replaced wholesale on every change.
Subscribers are notified synchronously after each ADDED/REMOVED commit and
after clear()/replace(); they receive the new tuple and the change kind.

The transient preview point is tracked here as well but never enters the
committed set and never triggers notifications.
"""

import logging
import math
from enum import Enum
from typing import Callable, Iterable, List, Optional, Tuple

from src.heatmap_engine.points import Point, PointLike, as_points
from src.utils import compute
from src.utils.validators import HeatmapConfigV1

logger = logging.getLogger(__name__)


class ChangeKind(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    IGNORED = "ignored"
    CLEARED = "cleared"


Listener = Callable[[Tuple[Point, ...], ChangeKind], None]


class PointRegistry:
    """Ordered set of committed points with add/remove/ignore resolution.

    Parameters
    ----------
    hit_radius : float
        Device-pixel tolerance for selecting (removing) an existing point
    dedup_distance : float
        Minimum normalized separation between committed points
    max_points : int, optional
        Cap on the number of committed points
    """

    def __init__(
        self,
        hit_radius: float = 30.0,
        dedup_distance: float = 5.0,
        max_points: Optional[int] = None
    ):
        self.hit_radius = hit_radius
        self.dedup_distance = dedup_distance
        self.max_points = max_points
        self._points: Tuple[Point, ...] = ()
        self._preview: Optional[Tuple[float, float]] = None
        self._listeners: List[Listener] = []

    @classmethod
    def from_config(cls, cfg: HeatmapConfigV1) -> 'PointRegistry':
        return cls(
            hit_radius=cfg.hit_radius,
            dedup_distance=cfg.dedup_distance,
            max_points=cfg.max_points,
        )

    @property
    def points(self) -> Tuple[Point, ...]:
        return self._points

    @property
    def preview(self) -> Optional[Tuple[float, float]]:
        """Transient device-space preview position (drag in progress)."""
        return self._preview

    def __len__(self) -> int:
        return len(self._points)

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, kind: ChangeKind) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._points, kind)
            except Exception as exc:  # noqa: BLE001
                logger.error("Point listener error: %s", exc)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def hit_test(
        self,
        device_x: float,
        device_y: float,
        surface_w: float,
        surface_h: float
    ) -> Optional[int]:
        """Index of the first point within hit_radius of (x, y), or None."""
        for i, p in enumerate(self._points):
            px, py = compute.to_device(p.x, p.y, surface_w, surface_h)
            if math.hypot(device_x - px, device_y - py) <= self.hit_radius:
                return i
        return None

    def is_near_existing(self, norm_x: int, norm_y: int) -> bool:
        """True if any committed point is closer than dedup_distance."""
        return any(
            math.hypot(p.x - norm_x, p.y - norm_y) < self.dedup_distance
            for p in self._points
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def commit(
        self,
        device_x: float,
        device_y: float,
        surface_w: float,
        surface_h: float
    ) -> Tuple[Tuple[Point, ...], ChangeKind]:
        """Resolve a committed tap/click into add, remove, or ignore.

        Returns
        -------
        (points, kind)
            The (possibly new) point tuple and what happened
        """
        if surface_w <= 0 or surface_h <= 0:
            logger.debug(f"Commit ignored: invalid surface {surface_w}x{surface_h}")
            return self._points, ChangeKind.IGNORED

        if not (0 <= device_x <= surface_w and 0 <= device_y <= surface_h):
            logger.debug(f"Commit ignored: ({device_x}, {device_y}) outside surface")
            return self._points, ChangeKind.IGNORED

        hit = self.hit_test(device_x, device_y, surface_w, surface_h)
        if hit is not None:
            removed = self._points[hit]
            self._points = self._points[:hit] + self._points[hit + 1:]
            logger.debug(f"Removed point {removed.id} ({len(self._points)} left)")
            self._notify(ChangeKind.REMOVED)
            return self._points, ChangeKind.REMOVED

        nx, ny = compute.to_normalized(device_x, device_y, surface_w, surface_h)
        if self.is_near_existing(nx, ny):
            logger.debug(f"Commit ignored: ({nx}, {ny}) within dedup distance")
            return self._points, ChangeKind.IGNORED

        if self.max_points is not None and len(self._points) >= self.max_points:
            logger.debug(f"Commit ignored: max_points={self.max_points} reached")
            return self._points, ChangeKind.IGNORED

        point = Point(nx, ny)
        if any(p.id == point.id for p in self._points):
            return self._points, ChangeKind.IGNORED

        self._points = self._points + (point,)
        logger.debug(f"Added point {point.id} ({len(self._points)} total)")
        self._notify(ChangeKind.ADDED)
        return self._points, ChangeKind.ADDED

    def replace(self, points: Iterable[PointLike]) -> Tuple[Point, ...]:
        """Replace the whole set (duplicates by id are dropped, first kept)."""
        seen = set()
        kept = []
        for p in as_points(points):
            if p.id in seen:
                continue
            seen.add(p.id)
            kept.append(p)
        if self.max_points is not None:
            kept = kept[:self.max_points]
        self._points = tuple(kept)
        self._notify(ChangeKind.ADDED)
        return self._points

    def clear(self) -> None:
        """Remove all points and the preview."""
        self._points = ()
        self._preview = None
        self._notify(ChangeKind.CLEARED)

    def set_preview(self, device_x: float, device_y: float) -> None:
        self._preview = (device_x, device_y)

    def clear_preview(self) -> None:
        self._preview = None
