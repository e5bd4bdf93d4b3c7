# -*- coding: utf-8 -*-
"""
Tessera: Raster kernels for multi-channel images
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: tessera_engine.py — Sliding-window transform engine.

One pass of the engine:

1. Pad the input to ``(W + kw - 1) x (H + kh - 1)``: padded sample
   ``(x, y)`` is the input read at ``(x - ax, y - ay)`` through the
   extrapolation policy, ``(ax, ay)`` being the anchor inside the window.
2. For every output pixel ``(x, y)`` hand the ``kw x kh`` block of the
   padded buffer at ``(x, y)`` to the operator and write the returned
   colour into the result.

Every pass reads only its own padded snapshot, so output pixels are
independent and may be computed in any order.  Passes repeat
``iterations`` times; each reads the output of the one before.

Operators:
    Anything callable as ``operator(aperture: Image) -> Color`` works and
    runs through the per-pixel driver in ``tessera_parallel``.
    ``operators.KernelOperator`` subclasses additionally run as one compiled
    Numba call per pass; ``set_compiled_kernels(False)`` forces them through
    the per-pixel path as well.  Both paths give identical samples.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Tuple, Union, runtime_checkable

import numpy as np

import tessera_parallel
from operators.base import KernelOperator
from tessera_color import Color
from tessera_core import (
    BoundsError,
    InvalidValueError,
    Point,
    Rect,
    ShapeMismatchError,
    Size,
    resolve_mode,
)
from tessera_image import Image
from tessera_sampling import Extrapolation, axis_lookup

__all__ = [
    "WindowOperator",
    "TransformDescriptor",
    "set_compiled_kernels",
    "compiled_kernels_enabled",
    "pad_samples",
    "run_transform",
    "sliding_window",
]

_logger = logging.getLogger(__name__)


# --- Runtime Configuration ---
# When False, KernelOperator instances are evaluated one aperture at a time
# like any other callable.  Toggle at runtime via:
#     import tessera_engine as te
#     te.set_compiled_kernels(False)
_COMPILED_KERNELS: bool = True


def set_compiled_kernels(enabled: bool = True) -> None:
    """
    Toggle the compiled whole-image path for ``KernelOperator`` instances.

    Args:
        enabled: If False, every operator is called once per aperture.
    """
    global _COMPILED_KERNELS
    _COMPILED_KERNELS = bool(enabled)


def compiled_kernels_enabled() -> bool:
    return _COMPILED_KERNELS


@runtime_checkable
class WindowOperator(Protocol):
    """Callable mapping one aperture view to the colour of its output pixel."""

    def __call__(self, aperture: Image) -> Color:
        ...


SizeLike = Union[Size, Tuple[int, int]]
PointLike = Union[Point, Tuple[int, int]]


def _as_size(value: SizeLike) -> Size:
    return value if isinstance(value, Size) else Size(*value)


def _as_point(value: PointLike) -> Point:
    return value if isinstance(value, Point) else Point(*value)


@dataclass(frozen=True)
class TransformDescriptor:
    """
    Everything one engine run needs besides the images.

    Attributes:
        window: Window size ``(kw, kh)``.
        anchor: Position inside the window that lines up with the output
            pixel.  Defaults to ``window.center``.
        iterations: Number of passes (>= 0).
        extrapolation: Border policy used to build each padded buffer.
        operator: Per-window callable.
    """
    window: Size
    operator: WindowOperator
    anchor: Optional[Point] = None
    iterations: int = 1
    extrapolation: Extrapolation = Extrapolation.REPLICATE

    def __post_init__(self) -> None:
        object.__setattr__(self, "window", _as_size(self.window))
        anchor = self.window.center if self.anchor is None else _as_point(self.anchor)
        object.__setattr__(self, "anchor", anchor)
        object.__setattr__(self, "extrapolation", resolve_mode(Extrapolation, self.extrapolation))

        if not Rect.from_size(self.window).contains_point(anchor):
            raise BoundsError(
                f"Anchor ({anchor.x}, {anchor.y}) lies outside the "
                f"{self.window.width}x{self.window.height} window"
            )
        if int(self.iterations) != self.iterations or self.iterations < 0:
            raise InvalidValueError(f"Iterations must be a non-negative integer, got {self.iterations}")
        if self.operator is None or not callable(self.operator):
            raise InvalidValueError(f"Operator must be callable, got {self.operator!r}")

    def validate(self, source: Image) -> None:
        """Check the window against ``source``; raises before any pixel is touched."""
        if not self.window.fits_in(source.size):
            raise InvalidValueError(
                f"{self.window.width}x{self.window.height} window does not fit the "
                f"{source.width}x{source.height} image"
            )


def pad_samples(source: Image, window: Size, anchor: Point,
                mode: Extrapolation) -> np.ndarray:
    """
    Padded float64 copy of ``source`` for one engine pass.

    Returns:
        Array of shape ``(H + kh - 1, W + kw - 1, channels)``.
    """
    xs = axis_lookup(source.width + window.width - 1, anchor.x, source.width, int(mode))
    ys = axis_lookup(source.height + window.height - 1, anchor.y, source.height, int(mode))

    samples = source.to_array()
    padded = samples[np.maximum(ys, 0)][:, np.maximum(xs, 0)]
    if mode == Extrapolation.ZERO:
        padded[ys < 0] = 0.0
        padded[:, xs < 0] = 0.0
    return padded


def _apply_per_pixel(padded: Image, result: Image, descriptor: TransformDescriptor) -> None:
    kw = descriptor.window.width
    kh = descriptor.window.height
    channels = result.num_channels
    operator = descriptor.operator

    def _visit(x: int, y: int) -> None:
        color = operator(padded.subimage(Rect(x, y, kw, kh)))
        if not isinstance(color, Color) or color.num_channels != channels:
            raise ShapeMismatchError(
                f"Operator must return a {channels}-channel Color, got {color!r}"
            )
        result.set_pixel(x, y, color)

    tessera_parallel.pixels(result, _visit)


def run_transform(source: Image, descriptor: TransformDescriptor,
                  result: Optional[Image] = None) -> Image:
    """
    Apply ``descriptor`` to ``source``.

    Args:
        source: Input image; never modified unless it is also ``result``.
        descriptor: Window, anchor, iterations, extrapolation and operator.
        result: Optional output of the same size and channel count.  A new
            image of the source's kind is allocated when omitted.

    Returns:
        The result image.  With zero iterations it holds a copy of ``source``.
    """
    descriptor.validate(source)
    if result is None:
        result = source.same()
    else:
        source.verify_same_size(result)
        source.verify_same_channels(result)

    if descriptor.iterations == 0:
        if result is not source:
            source.copy_to(result)
        return result

    operator = descriptor.operator
    compiled = _COMPILED_KERNELS and isinstance(operator, KernelOperator)
    if isinstance(operator, KernelOperator):
        operator.check_window(descriptor.window)

    current = source
    for i in range(descriptor.iterations):
        _logger.debug(
            "Pass %d/%d: %dx%d window at (%d, %d) over %dx%d image, %s, %s path",
            i + 1, descriptor.iterations,
            descriptor.window.width, descriptor.window.height,
            descriptor.anchor.x, descriptor.anchor.y,
            source.width, source.height,
            descriptor.extrapolation.name,
            "compiled" if compiled else "per-pixel",
        )
        padded = pad_samples(current, descriptor.window, descriptor.anchor,
                             descriptor.extrapolation)
        if compiled:
            result.write_array(
                operator.evaluate_padded(padded, descriptor.window, source.width, source.height)
            )
        else:
            _apply_per_pixel(Image.from_array(padded, current.kind), result, descriptor)
        current = result
    return result


def sliding_window(
    source: Image,
    operator: WindowOperator,
    window: SizeLike,
    anchor: Optional[PointLike] = None,
    iterations: int = 1,
    extrapolation: Union[Extrapolation, int, str] = Extrapolation.REPLICATE,
    result: Optional[Image] = None,
) -> Image:
    """
    Run ``operator`` over every ``window``-sized neighbourhood of ``source``.

    Examples:
        # 3x3 per-channel maximum, twice
        out = sliding_window(img, DilateOperator(), (3, 3), iterations=2)

        # any callable works
        out = sliding_window(img, lambda ap: ap.get_pixel(0, 0), (2, 2),
                             anchor=(1, 1), extrapolation="zero")
    """
    descriptor = TransformDescriptor(
        window=_as_size(window),
        operator=operator,
        anchor=None if anchor is None else _as_point(anchor),
        iterations=iterations,
        extrapolation=extrapolation,
    )
    return run_transform(source, descriptor, result)
