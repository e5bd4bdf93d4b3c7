# -*- coding: utf-8 -*-
"""
Tessera: Raster kernels for multi-channel images
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: tessera_parallel.py — Per-pixel and per-channel work distribution.

``pixels`` calls ``action(x, y)`` once for every pixel of an image and
``channels`` calls ``action(c)`` once for every channel.  Order is not
guaranteed.  Images with fewer than ``get_min_size()`` pixels, or a pool
width of one, run serially on the calling thread; larger images are split
into row bands handed to a thread pool.  NumPy and the compiled kernels
release the GIL, so bands overlap in practice.

An exception raised by ``action`` propagates to the caller once all
submitted bands have finished.
"""

import logging
import os
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TYPE_CHECKING, Callable, Final, List

from tessera_core import InvalidValueError

if TYPE_CHECKING:
    from tessera_image import Image

__all__ = [
    "DEFAULT_MIN_SIZE",
    "set_num_workers",
    "get_num_workers",
    "set_min_size",
    "get_min_size",
    "pixels",
    "channels",
]

_logger = logging.getLogger(__name__)

DEFAULT_MIN_SIZE: Final[int] = 100 * 100


# --- Runtime Configuration ---
# Pool width and the pixel count below which work stays on the calling
# thread.  Toggle at runtime via:
#     import tessera_parallel as tp
#     tp.set_num_workers(1)     # force serial execution
#     tp.set_min_size(0)        # parallelise every image
_NUM_WORKERS: int = max(1, os.cpu_count() or 1)
_MIN_SIZE: int = DEFAULT_MIN_SIZE


def set_num_workers(workers: int) -> None:
    """
    Set the thread-pool width used by ``pixels`` and ``channels``.

    Args:
        workers: Number of threads (>= 1).  One disables threading.
    """
    global _NUM_WORKERS
    if workers < 1:
        raise InvalidValueError(f"Worker count must be >= 1, got {workers}")
    _NUM_WORKERS = int(workers)


def get_num_workers() -> int:
    return _NUM_WORKERS


def set_min_size(pixel_count: int) -> None:
    """Set the pixel count below which ``pixels`` runs serially."""
    global _MIN_SIZE
    if pixel_count < 0:
        raise InvalidValueError(f"Minimum size must be >= 0, got {pixel_count}")
    _MIN_SIZE = int(pixel_count)


def get_min_size() -> int:
    return _MIN_SIZE


def _run_bands(count: int, work: Callable[[int, int], None]) -> None:
    """Split ``range(count)`` into contiguous bands and run ``work(lo, hi)`` on each."""
    workers = min(_NUM_WORKERS, count)
    chunk = (count + workers - 1) // workers
    ranges = [(lo, min(lo + chunk, count)) for lo in range(0, count, chunk)]
    _logger.debug("Dispatching %d bands over %d workers", len(ranges), workers)
    with ThreadPoolExecutor(max_workers=len(ranges)) as pool:
        futures: List[Future[None]] = [pool.submit(work, lo, hi) for lo, hi in ranges]
        for fut in futures:
            fut.result()


def pixels(image: "Image", action: Callable[[int, int], None]) -> None:
    """Call ``action(x, y)`` for every pixel of ``image``."""
    width = image.width
    height = image.height

    def _band(lo: int, hi: int) -> None:
        for y in range(lo, hi):
            for x in range(width):
                action(x, y)

    if _NUM_WORKERS == 1 or width * height < _MIN_SIZE or height == 1:
        _band(0, height)
        return
    _run_bands(height, _band)


def channels(image: "Image", action: Callable[[int], None]) -> None:
    """Call ``action(c)`` for every channel of ``image``."""
    count = image.num_channels

    def _band(lo: int, hi: int) -> None:
        for c in range(lo, hi):
            action(c)

    if _NUM_WORKERS == 1 or count == 1 or image.width * image.height < _MIN_SIZE:
        _band(0, count)
        return
    _run_bands(count, _band)
