"""Interactive point placement on top of the heatmap engine.

Modules:
    - registry: committed point set, add/remove/ignore resolution
    - gestures: tap vs drag discrimination, preview tracking
    - session: wires registry + gestures + compositor to one surface

Only committed registry changes, resizes and config changes trigger a full
render; pointer moves only redraw the preview marker.
"""

from .gestures import GestureKind, GestureOutcome, GestureTracker, Phase, PointerEvent
from .registry import ChangeKind, PointRegistry
from .session import HeatOverlaySession

__all__ = [
    'ChangeKind',
    'GestureKind',
    'GestureOutcome',
    'GestureTracker',
    'HeatOverlaySession',
    'Phase',
    'PointRegistry',
    'PointerEvent',
]
