"""Lightweight wall-clock profiling for render stages.

Provides:
    - timer(): context manager reporting elapsed seconds to a sink
    - log_sink(): sink factory that writes timings to a logger at DEBUG

Used to measure:
    - Intensity field accumulation
    - Smoothing and colour mapping
    - Blur passes, upscaling and background compositing

No heavy dependencies (no cProfile overhead on the interactive path).
"""

import logging
import time
from contextlib import contextmanager
from typing import Callable, Optional


@contextmanager
def timer(name: str, sink: Optional[Callable[[str, float], None]] = None):
    """Context manager for wall-clock timing.

    Parameters
    ----------
    name : str
        Timer name (for logging/display)
    sink : Optional[Callable[[str, float], None]]
        Optional callback(name, elapsed_seconds). If None, prints to stdout.

    Examples
    --------
    >>> with timer("field"):
    ...     grid = builder.build(points, 600, 600)
    field: 0.012 s
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        if sink is not None:
            sink(name, elapsed)
        else:
            print(f"{name}: {elapsed:.3f} s")


def log_sink(logger: logging.Logger, level: int = logging.DEBUG) -> Callable[[str, float], None]:
    """Sink that logs "<name>: <ms> ms" on `logger`."""
    def _sink(name: str, elapsed: float) -> None:
        logger.log(level, "%s: %.2f ms", name, elapsed * 1000.0)
    return _sink
