"""Colour primitives and gradient presets for heat overlays.

Provides:
    - Color: RGBA colour (r, g, b in 0..255, a in 0..1)
    - GradientStop: (threshold, Color) pair of a piecewise-linear ramp
    - parse_color(): "#rrggbb", "#rrggbbaa", "rgba(r,g,b,a)", or sequences
    - GRADIENT_PRESETS / get_preset(): named stop lists
    - stops_to_arrays(): stop list → (thresholds, rgb, alpha) numpy arrays
    - premultiply() / unpremultiply(): float RGBA alpha conversions

Presets:
    - classic:  blue → cyan → green → yellow → red (5 stops)
    - deckgl:   transparent → blue → red → yellow (4 stops)
    - fire:     red → yellow (2 stops)
    - spectral: blue → green → red at uneven thresholds (4 stops)

Invariants:
    - Stops are sorted by threshold, thresholds in [0, 1]
    - Colour buffers handled here are float RGBA, channels last
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple, Union

import numpy as np


@dataclass(frozen=True)
class Color:
    """RGBA colour: r, g, b in [0, 255], a in [0, 1]."""
    r: int
    g: int
    b: int
    a: float = 1.0

    def __post_init__(self):
        for name in ('r', 'g', 'b'):
            v = getattr(self, name)
            if not 0 <= v <= 255:
                raise ValueError(f"Color.{name} must be in [0, 255], got {v}")
        if not 0.0 <= self.a <= 1.0:
            raise ValueError(f"Color.a must be in [0, 1], got {self.a}")

    def as_rgba8(self) -> Tuple[int, int, int, int]:
        """(r, g, b, a) with alpha scaled to 0..255."""
        return (self.r, self.g, self.b, int(round(self.a * 255)))


@dataclass(frozen=True)
class GradientStop:
    threshold: float
    color: Color


_HEX_RE = re.compile(r'^#?([0-9a-fA-F]{6})([0-9a-fA-F]{2})?$')
_RGBA_RE = re.compile(
    r'^rgba?\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*(?:,\s*([0-9.]+)\s*)?\)$'
)

ColorLike = Union[Color, str, Sequence[float]]


def parse_color(value: ColorLike) -> Color:
    """Parse a colour from common notations.

    Parameters
    ----------
    value : Color, str or sequence
        - Color instance (returned unchanged)
        - "#rrggbb" / "#rrggbbaa"
        - "rgb(r, g, b)" / "rgba(r, g, b, a)" with a in [0, 1]
        - [r, g, b] or [r, g, b, a] with a in [0, 1]

    Returns
    -------
    Color

    Raises
    ------
    ValueError
        If the notation is not recognised or values are out of range
    """
    if isinstance(value, Color):
        return value

    if isinstance(value, str):
        s = value.strip()
        m = _HEX_RE.match(s)
        if m:
            rgb = m.group(1)
            a = int(m.group(2), 16) / 255.0 if m.group(2) else 1.0
            return Color(int(rgb[0:2], 16), int(rgb[2:4], 16), int(rgb[4:6], 16), a)
        m = _RGBA_RE.match(s)
        if m:
            a = float(m.group(4)) if m.group(4) is not None else 1.0
            return Color(int(m.group(1)), int(m.group(2)), int(m.group(3)), a)
        raise ValueError(f"Unrecognised colour string: {value!r}")

    seq = list(value)
    if len(seq) not in (3, 4):
        raise ValueError(f"Colour sequence must have 3 or 4 items, got {len(seq)}")
    a = float(seq[3]) if len(seq) == 4 else 1.0
    return Color(int(seq[0]), int(seq[1]), int(seq[2]), a)


def _stops(*pairs: Tuple[float, str]) -> List[GradientStop]:
    return [GradientStop(t, parse_color(c)) for t, c in pairs]


GRADIENT_PRESETS: Dict[str, List[GradientStop]] = {
    'classic': _stops(
        (0.0, '#0000ff'),
        (0.25, '#00ffff'),
        (0.5, '#00ff00'),
        (0.75, '#ffff00'),
        (1.0, '#ff0000'),
    ),
    'deckgl': _stops(
        (0.0, 'rgba(0, 0, 0, 0)'),
        (1 / 3, '#0000ff'),
        (2 / 3, '#ff0000'),
        (1.0, '#ffff00'),
    ),
    'fire': _stops(
        (0.0, '#ff0000'),
        (1.0, '#ffff00'),
    ),
    'spectral': _stops(
        (0.0, '#0000ff'),
        (0.4, '#00ff00'),
        (0.65, '#ffff00'),
        (1.0, '#ff0000'),
    ),
}


def get_preset(name: str) -> List[GradientStop]:
    """Return a copy of a named gradient preset."""
    try:
        return list(GRADIENT_PRESETS[name])
    except KeyError:
        raise ValueError(
            f"Unknown gradient preset '{name}'. Available: {sorted(GRADIENT_PRESETS)}"
        ) from None


def stops_to_arrays(
    stops: Sequence[GradientStop]
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Split a stop list into arrays for vectorized interpolation.

    Returns
    -------
    thresholds : np.ndarray
        Shape (N,), sorted ascending
    rgb : np.ndarray
        Shape (N, 3), float64 in [0, 255]
    alpha : np.ndarray
        Shape (N,), float64 in [0, 1]

    Raises
    ------
    ValueError
        If the list is empty
    """
    if not stops:
        raise ValueError("Gradient needs at least one stop")
    ordered = sorted(stops, key=lambda s: s.threshold)
    thresholds = np.array([s.threshold for s in ordered], dtype=np.float64)
    rgb = np.array([[s.color.r, s.color.g, s.color.b] for s in ordered], dtype=np.float64)
    alpha = np.array([s.color.a for s in ordered], dtype=np.float64)
    return thresholds, rgb, alpha


def premultiply(rgba: np.ndarray) -> np.ndarray:
    """Float RGBA (H, W, 4) straight alpha → premultiplied (new array)."""
    out = rgba.copy()
    out[..., :3] *= out[..., 3:4]
    return out


def unpremultiply(rgba: np.ndarray, eps: float = 1e-8) -> np.ndarray:
    """Float RGBA (H, W, 4) premultiplied → straight alpha (new array)."""
    out = rgba.copy()
    a = out[..., 3:4]
    np.divide(out[..., :3], a, out=out[..., :3], where=a > eps)
    out[..., :3][np.broadcast_to(a <= eps, out[..., :3].shape)] = 0.0
    return out
