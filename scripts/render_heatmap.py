#!/usr/bin/env python3
"""Render a heat overlay for a points file, optionally over a background image.

Usage:
    # Demo points on a blank 800x600 surface
    python scripts/render_heatmap.py --output_dir outputs/heatmap

    # Custom points over a photo, fire gradient, simple dots for comparison
    python scripts/render_heatmap.py \
        --points my_points.yaml --background photo.jpg \
        --preset fire --output_dir outputs/photo
    python scripts/render_heatmap.py --points my_points.yaml --simple

    # Fit the surface inside a container (keeps the background aspect ratio)
    python scripts/render_heatmap.py --background photo.jpg --container 1024 768

Outputs:
    - overlay.png: RGBA heat overlay at surface resolution
    - composite.png: overlay alpha-composited on the background (if given)
    - metadata.yaml: render mode, grid size, blur passes, timings
"""

import argparse
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.heatmap_engine.compositor import Compositor
from src.utils import compute, fs, validators
from src.utils.logging_config import get_logger, log_context, setup_logging

DEFAULT_POINTS = validators.PROJECT_ROOT / "configs" / "sample_points.yaml"

logger = get_logger(__name__)


def parse_args():
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render a heat overlay from normalized points",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    parser.add_argument('--points', type=Path, default=DEFAULT_POINTS,
                        help='points.v1 YAML file (default: demo points)')
    parser.add_argument('--config', type=Path, default=None,
                        help='heatmap.v1 YAML file (default: configs/heatmap.v1.yaml)')
    parser.add_argument('--background', type=Path, default=None,
                        help='Background image to composite under the overlay')
    parser.add_argument('--output_dir', type=Path, default=Path("outputs/heatmap"),
                        help='Directory for overlay.png / composite.png / metadata.yaml')

    size = parser.add_mutually_exclusive_group()
    size.add_argument('--size', type=int, nargs=2, metavar=('W', 'H'),
                      help='Surface size in pixels (default: background size or 800x600)')
    size.add_argument('--container', type=int, nargs=2, metavar=('W', 'H'),
                      help='Fit the surface inside this container, keeping aspect ratio')

    # Config overrides
    parser.add_argument('--simple', action='store_true', help='Render solid dots instead of heat')
    parser.add_argument('--preset', type=str, default=None,
                        help='Gradient preset override (classic, deckgl, fire, spectral)')
    parser.add_argument('--backend', choices=['numpy', 'torch'], default=None,
                        help='Intensity field backend override')

    # Logging
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging')
    parser.add_argument('--log_file', type=str, default=None, help='Also log to this file')

    return parser.parse_args()


def main() -> int:
    """CLI entrypoint."""
    args = parse_args()
    setup_logging(
        log_level="DEBUG" if args.verbose else "INFO",
        log_file=args.log_file,
        context={"app": "render"},
    )

    try:
        cfg = validators.load_heatmap_config(args.config)
        points_file = validators.load_points_file(args.points)
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        return 1

    overrides = {}
    if args.simple:
        overrides['simple_mode'] = True
    if args.preset:
        overrides['gradient_preset'] = args.preset
    if args.backend:
        overrides['field_backend'] = args.backend
    if overrides:
        try:
            cfg = validators.HeatmapConfigV1(**{**cfg.model_dump(), **overrides})
        except ValueError as e:
            logger.error(f"Invalid override: {e}")
            return 1

    background = None
    if args.background is not None:
        try:
            background = fs.load_image(args.background, mode="RGB")
        except (FileNotFoundError, OSError) as e:
            logger.error(f"Cannot load background: {e}")
            return 1

    if args.size:
        width, height = args.size
    elif args.container:
        aspect = background.shape[1] / background.shape[0] if background is not None else 1.0
        w, h = compute.fit_to_container(args.container[0], args.container[1], aspect)
        width, height = int(w), int(h)
    elif background is not None:
        height, width = background.shape[:2]
    else:
        width, height = 800, 600

    if width <= 0 or height <= 0:
        logger.error(f"Surface size must be positive, got {width}x{height}")
        return 1

    points = [(p.x, p.y) for p in points_file.points]
    logger.info(f"Rendering {len(points)} points on {width}x{height} surface")

    with log_context(surface=f"{width}x{height}"):
        t0 = time.perf_counter()
        result = Compositor(cfg).render(points, width, height, background=background)
        elapsed_ms = (time.perf_counter() - t0) * 1000.0

        out_dir = fs.ensure_dir(args.output_dir)
        fs.atomic_save_image(result.overlay, out_dir / "overlay.png")
        if result.composite is not None:
            fs.atomic_save_image(result.composite, out_dir / "composite.png")

        fs.atomic_yaml_dump({
            'mode': result.mode.value,
            'surface': [width, height],
            'point_count': result.point_count,
            'grid_size': list(result.grid_size),
            'blur_passes': result.blur_passes,
            'adaptive_factor': round(float(result.adaptive_factor), 6),
            'max_intensity': round(float(result.max_intensity), 6),
            'render_ms': round(elapsed_ms, 2),
            'error': result.error,
            'points_file': str(args.points),
            'background': str(args.background) if args.background else None,
        }, out_dir / "metadata.yaml")

        logger.info(f"Wrote {result.mode.value} render to {out_dir} ({elapsed_ms:.1f} ms)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
