"""Coordinate conversions and render-geometry helpers.

Provides:
    - to_normalized(): device px → normalized [0,100] integer coordinates
    - to_device(): normalized → device px (inverse scale, unclamped)
    - round_half_up(): browser-style rounding used by the normalizer
    - grid_scale() / grid_dims(): render-grid resolution for a point count
    - blur_pass_count(): number of blur passes for a point count
    - fit_to_container(): aspect-ratio-preserving surface sizing

Coordinate frames:
    - device: pixels of the target surface, origin top-left, +Y down
    - normalized: resolution-independent [0,100]², origin top-left, +Y down
    - grid: cells of the (possibly downscaled) intensity grid

The normalized round trip is lossy (integer rounding). That is accepted:
points are stored normalized and re-projected onto whatever surface size
is current when rendering or hit-testing.

Usage:
    from src.utils import compute
    x, y = compute.to_normalized(100, 100, 800, 600)   # (13, 17)
    dx, dy = compute.to_device(x, y, 800, 600)
"""

import math
from typing import Tuple

MAX_COORDINATE = 100


def round_half_up(value: float) -> int:
    """Round to nearest integer, halves toward +inf (12.5 → 13).

    Python's built-in round() uses banker's rounding (12.5 → 12), which
    would shift normalized points relative to the reference behaviour.
    """
    return int(math.floor(value + 0.5))


def _check_surface(surface_w: float, surface_h: float) -> None:
    if surface_w <= 0 or surface_h <= 0:
        raise ValueError(
            f"Surface dimensions must be positive, got {surface_w}x{surface_h}"
        )


def to_normalized(
    device_x: float,
    device_y: float,
    surface_w: float,
    surface_h: float
) -> Tuple[int, int]:
    """Convert device pixel coordinates to normalized [0,100] coordinates.

    Parameters
    ----------
    device_x, device_y : float
        Position in surface pixels (top-left origin)
    surface_w, surface_h : float
        Surface size in pixels (must be positive)

    Returns
    -------
    Tuple[int, int]
        Integer (x, y), each clamped to [0, 100]

    Raises
    ------
    ValueError
        If the surface has a non-positive dimension
    """
    _check_surface(surface_w, surface_h)
    nx = round_half_up(device_x / surface_w * MAX_COORDINATE)
    ny = round_half_up(device_y / surface_h * MAX_COORDINATE)
    return (
        min(max(nx, 0), MAX_COORDINATE),
        min(max(ny, 0), MAX_COORDINATE),
    )


def to_device(
    norm_x: float,
    norm_y: float,
    surface_w: float,
    surface_h: float
) -> Tuple[float, float]:
    """Convert normalized coordinates back to device pixels.

    No clamping: if the surface was resized the caller decides what to do
    with positions that fall outside it.
    """
    return (
        norm_x / MAX_COORDINATE * surface_w,
        norm_y / MAX_COORDINATE * surface_h,
    )


def grid_scale(
    point_count: int,
    threshold: int = 100,
    factor: float = 0.5
) -> float:
    """Grid downscale factor: `factor` above `threshold` points, else 1.0."""
    return factor if point_count > threshold else 1.0


def grid_dims(
    surface_w: int,
    surface_h: int,
    scale: float
) -> Tuple[int, int]:
    """Intensity-grid size (grid_w, grid_h) for a surface and scale factor.

    Returns
    -------
    Tuple[int, int]
        Truncated scaled dimensions; either may be 0 for tiny surfaces,
        which callers treat as invalid geometry.
    """
    return int(surface_w * scale), int(surface_h * scale)


def blur_pass_count(
    point_count: int,
    points_per_pass: int = 40,
    max_passes: int = 3
) -> int:
    """Number of blur passes: min(max_passes, ceil(point_count / points_per_pass)).

    Examples
    --------
    >>> blur_pass_count(39)
    1
    >>> blur_pass_count(81)
    3
    """
    if point_count <= 0:
        return 0
    return min(max_passes, math.ceil(point_count / points_per_pass))


def fit_to_container(
    container_w: float,
    container_h: float,
    aspect_ratio: float = 1.0
) -> Tuple[float, float]:
    """Largest (width, height) with the given aspect ratio inside a container.

    Parameters
    ----------
    container_w, container_h : float
        Available container size in pixels
    aspect_ratio : float
        Image width / height, default 1.0 (square)

    Returns
    -------
    Tuple[float, float]
        Surface size. Landscape images fill the container width first,
        portrait images fill the height first; each is shrunk if the other
        axis overflows.

    Raises
    ------
    ValueError
        If aspect_ratio is not positive
    """
    if aspect_ratio <= 0:
        raise ValueError(f"aspect_ratio must be positive, got {aspect_ratio}")

    if aspect_ratio >= 1:
        width = container_w
        height = container_w / aspect_ratio
        if height > container_h:
            height = container_h
            width = container_h * aspect_ratio
    else:
        height = container_h
        width = container_h * aspect_ratio
        if width > container_w:
            width = container_w
            height = container_w / aspect_ratio

    return width, height
