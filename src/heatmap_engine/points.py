"""Normalized point type shared by the engine and the interaction layer."""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Tuple, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Point:
    """Committed point in normalized [0,100]² space.

    ``id`` is derived from the coordinates ("{x}-{y}"), so two points at the
    same normalized position always collide.
    """
    x: int
    y: int
    id: str = field(init=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, 'id', f"{self.x}-{self.y}")
        if not (0 <= self.x <= 100 and 0 <= self.y <= 100):
            raise ValueError(f"Point ({self.x}, {self.y}) outside [0,100]²")


PointLike = Union[Point, Tuple[int, int]]


def _coerce(p) -> Point:
    if isinstance(p, Point):
        return p
    if hasattr(p, 'x') and hasattr(p, 'y'):
        return Point(int(p.x), int(p.y))
    x, y = p
    return Point(int(x), int(y))


def as_points(items: Iterable[PointLike]) -> Tuple[Point, ...]:
    """Coerce Points, (x, y) tuples or objects with .x/.y into Points, order kept.

    Raises
    ------
    ValueError
        If any item lies outside [0,100]²
    """
    return tuple(_coerce(p) for p in items)


def valid_points(items: Iterable[PointLike]) -> Tuple[Point, ...]:
    """Like as_points(), but unusable items are skipped and logged at DEBUG."""
    kept = []
    for p in items:
        try:
            kept.append(_coerce(p))
        except (TypeError, ValueError) as e:
            logger.debug(f"Skipping point {p!r}: {e}")
    return tuple(kept)
