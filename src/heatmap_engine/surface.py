"""In-memory raster surface: the render target the compositor draws into.

A host application (window, canvas, image writer) owns one RasterSurface per
view. The surface knows its pixel size, holds the background image and keeps
the last presented frame.

Pixel access failures (size mismatch, locked surface, unreadable background)
raise PixelAccessError so the compositor can fall back to dot rendering.
"""

import logging
from typing import Optional

import cv2
import numpy as np

from .errors import InvalidGeometryError, PixelAccessError

logger = logging.getLogger(__name__)


def as_rgb8(image: np.ndarray) -> np.ndarray:
    """Coerce (H, W), (H, W, 3) or (H, W, 4) uint8 images to (H, W, 3) uint8."""
    if image.ndim == 2:
        return np.repeat(image[:, :, None], 3, axis=2)
    if image.ndim == 3 and image.shape[2] == 4:
        return image[:, :, :3]
    if image.ndim == 3 and image.shape[2] == 3:
        return image
    raise ValueError(f"Unsupported image shape {image.shape}")


class RasterSurface:
    """Fixed-size RGBA target with an optional background image.

    Attributes
    ----------
    width, height : int
        Surface size in device pixels
    background : np.ndarray or None
        Background as supplied (any size); fitted to the surface on read
    overlay : np.ndarray or None
        Last presented (H, W, 4) uint8 overlay
    frame : np.ndarray or None
        Last presented (H, W, 3) uint8 composite (None without background)
    locked : bool
        When True every pixel read/write raises PixelAccessError
    """

    def __init__(self, width: int, height: int, background: Optional[np.ndarray] = None):
        self.width = 0
        self.height = 0
        self.resize(width, height)
        self.background = background
        self.overlay: Optional[np.ndarray] = None
        self.frame: Optional[np.ndarray] = None
        self.locked = False

    def resize(self, width: int, height: int) -> None:
        """Change the surface size; the previous frame is dropped."""
        if width <= 0 or height <= 0:
            raise InvalidGeometryError(f"Surface dimensions must be positive, got {width}x{height}")
        self.width = int(width)
        self.height = int(height)
        self.overlay = None
        self.frame = None

    @property
    def size(self):
        return self.width, self.height

    def read_background(self) -> Optional[np.ndarray]:
        """Background fitted to the surface as (H, W, 3) uint8, or None."""
        if self.locked:
            raise PixelAccessError("Surface is locked; background unavailable")
        if self.background is None:
            return None
        try:
            bg = as_rgb8(np.asarray(self.background, dtype=np.uint8))
        except ValueError as e:
            raise PixelAccessError(f"Unreadable background: {e}") from e
        if bg.shape[:2] != (self.height, self.width):
            bg = cv2.resize(bg, (self.width, self.height), interpolation=cv2.INTER_LINEAR)
        return bg

    def present(self, overlay: np.ndarray, frame: Optional[np.ndarray] = None) -> None:
        """Accept a rendered overlay (and composite) for display.

        Raises
        ------
        PixelAccessError
            If the surface is locked or the buffers don't match its size
        """
        if self.locked:
            raise PixelAccessError("Surface is locked; cannot accept pixels")
        expected = (self.height, self.width)
        if overlay.shape[:2] != expected or overlay.ndim != 3 or overlay.shape[2] != 4:
            raise PixelAccessError(
                f"Overlay shape {overlay.shape} does not match surface {self.width}x{self.height}"
            )
        if frame is not None and frame.shape[:2] != expected:
            raise PixelAccessError(
                f"Frame shape {frame.shape} does not match surface {self.width}x{self.height}"
            )
        self.overlay = overlay
        self.frame = frame
