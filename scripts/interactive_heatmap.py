#!/usr/bin/env python3
"""Interactive heat overlay in an OpenCV window.

Left button behaves like touch input (tap to add/remove, drag to preview and
commit at release); right click is a plain click that commits immediately.

Keys:
    s   toggle simple (dot) mode
    c   clear all points
    l   load the demo points
    d   toggle debug logging
    q   quit (Esc works too)

Usage:
    python scripts/interactive_heatmap.py
    python scripts/interactive_heatmap.py --background photo.jpg --container 1280 720
"""

import argparse
import sys
import time
from pathlib import Path

import cv2
import numpy as np

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.interaction.gestures import Phase, PointerEvent
from src.interaction.session import HeatOverlaySession
from src.utils import compute, fs, logging_config, validators
from src.utils.logging_config import get_logger, install_excepthook, push_context, setup_logging

WINDOW = "heat overlay"
DEFAULT_POINTS = validators.PROJECT_ROOT / "configs" / "sample_points.yaml"
CANVAS_GRAY = 40

logger = get_logger(__name__)


def parse_args():
    parser = argparse.ArgumentParser(
        description="Place points interactively and watch the heat overlay",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument('--config', type=Path, default=None, help='heatmap.v1 YAML file')
    parser.add_argument('--background', type=Path, default=None, help='Background image')
    parser.add_argument('--container', type=int, nargs=2, default=(800, 600), metavar=('W', 'H'),
                        help='Window content area; the surface keeps the background aspect ratio')
    parser.add_argument('--demo', action='store_true', help='Start with the demo points')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging')
    return parser.parse_args()


def to_display(session: HeatOverlaySession) -> np.ndarray:
    """BGR frame for cv2.imshow from the session's last result."""
    result = session.last_result
    w, h = session.size
    if result is None or result.overlay.shape[:2] != (h, w):
        return np.full((h, w, 3), CANVAS_GRAY, dtype=np.uint8)
    if result.composite is not None:
        rgb = result.composite
    else:
        canvas = np.full((h, w, 3), CANVAS_GRAY, dtype=np.float32)
        a = result.overlay[:, :, 3:4].astype(np.float32) / 255.0
        rgb = (result.overlay[:, :, :3] * a + canvas * (1.0 - a)).astype(np.uint8)
    return cv2.cvtColor(rgb, cv2.COLOR_RGB2BGR)


def main() -> int:
    args = parse_args()
    setup_logging(log_level="DEBUG" if args.verbose else "INFO", context={"app": "interactive"})
    install_excepthook()

    try:
        cfg = validators.load_heatmap_config(args.config)
        background = fs.load_image(args.background) if args.background else None
    except (FileNotFoundError, OSError, ValueError) as e:
        logger.error(str(e))
        return 1

    aspect = background.shape[1] / background.shape[0] if background is not None else 4 / 3
    w, h = compute.fit_to_container(args.container[0], args.container[1], aspect)

    session = HeatOverlaySession(cfg, int(w), int(h), background=background)
    push_context(surface=f"{int(w)}x{int(h)}")
    if args.demo:
        session.load_points((p.x, p.y) for p in validators.load_points_file(DEFAULT_POINTS).points)

    debug = args.verbose
    t0 = time.monotonic()

    def now_ms() -> float:
        return (time.monotonic() - t0) * 1000.0

    def on_mouse(event, x, y, flags, _param):
        if event == cv2.EVENT_LBUTTONDOWN:
            session.handle_event(PointerEvent(x, y, Phase.START, now_ms()))
        elif event == cv2.EVENT_MOUSEMOVE and flags & cv2.EVENT_FLAG_LBUTTON:
            session.handle_event(PointerEvent(x, y, Phase.MOVE, now_ms()))
        elif event == cv2.EVENT_LBUTTONUP:
            session.handle_event(PointerEvent(x, y, Phase.END, now_ms()))
        elif event == cv2.EVENT_RBUTTONDOWN:
            kind = session.click(x, y)
            logger.info(f"Click ({x}, {y}): {kind.value}, {len(session.points)} points")

    cv2.namedWindow(WINDOW, cv2.WINDOW_AUTOSIZE)
    cv2.setMouseCallback(WINDOW, on_mouse)

    try:
        while True:
            cv2.imshow(WINDOW, to_display(session))
            key = cv2.waitKey(16) & 0xFF
            if key in (ord('q'), 27):
                break
            if key == ord('s'):
                session.toggle_simple_mode()
            elif key == ord('c'):
                session.clear()
            elif key == ord('l'):
                session.load_points((p.x, p.y) for p in validators.load_points_file(DEFAULT_POINTS).points)
            elif key == ord('d'):
                debug = not debug
                logging_config.set_level("DEBUG" if debug else "INFO")
    finally:
        session.close()
        cv2.destroyAllWindows()
        logging_config.shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main())
