# -*- coding: utf-8 -*-
"""
Tessera: Raster kernels for multi-channel images
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: linear.py — Correlation and gradient-magnitude operators.

Kernels are applied without flipping (correlation): output sample ``c`` is
``sum(window[y, x, c] * kernel[y, x]) / div + offset``.  For the symmetric
and antisymmetric kernels the catalog uses, this only changes the sign of
the antisymmetric responses, which the gradient magnitude discards.
"""

import math

import numpy as np
from numba import njit, prange

from tessera_core import InvalidValueError, ShapeMismatchError, Size, verify_odd_size

from .base import KernelOperator

__all__ = [
    "correlate_window",
    "gradient_window",
    "ConvolutionOperator",
    "GradientOperator",
]


def _as_kernel(kernel: np.ndarray, what: str) -> np.ndarray:
    arr = np.ascontiguousarray(np.atleast_2d(np.asarray(kernel, dtype=np.float64)))
    if arr.ndim != 2:
        raise ShapeMismatchError(f"{what} must be 2-D, got shape {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise InvalidValueError(f"{what} contains non-finite values:\n{arr}")
    verify_odd_size(Size(arr.shape[1], arr.shape[0]), what)
    return arr


# =============================================================================
# KERNELS
# =============================================================================

@njit(cache=True)
def correlate_window(window: np.ndarray, kernel: np.ndarray, div: float,
                     offset: float, out: np.ndarray) -> None:
    """Weighted sum of one window; columns outer, rows inner."""
    kh = kernel.shape[0]
    kw = kernel.shape[1]
    for c in range(window.shape[2]):
        acc = 0.0
        for x in range(kw):
            for y in range(kh):
                acc += window[y, x, c] * kernel[y, x]
        out[c] = acc / div + offset


@njit(cache=True, parallel=True)
def _correlate_padded(padded: np.ndarray, kernel: np.ndarray, div: float,
                      offset: float, width: int, height: int) -> np.ndarray:
    kh = kernel.shape[0]
    kw = kernel.shape[1]
    out = np.empty((height, width, padded.shape[2]), dtype=np.float64)
    for y in prange(height):
        for x in range(width):
            correlate_window(padded[y:y + kh, x:x + kw, :], kernel, div, offset, out[y, x])
    return out


@njit(cache=True)
def gradient_window(window: np.ndarray, kernel_x: np.ndarray, kernel_y: np.ndarray,
                    scale: float, out: np.ndarray) -> None:
    """``scale * sqrt(gx^2 + gy^2)`` of one window."""
    kh = kernel_x.shape[0]
    kw = kernel_x.shape[1]
    for c in range(window.shape[2]):
        gx = 0.0
        gy = 0.0
        for x in range(kw):
            for y in range(kh):
                v = window[y, x, c]
                gx += v * kernel_x[y, x]
                gy += v * kernel_y[y, x]
        out[c] = scale * math.sqrt(gx * gx + gy * gy)


@njit(cache=True, parallel=True)
def _gradient_padded(padded: np.ndarray, kernel_x: np.ndarray, kernel_y: np.ndarray,
                     scale: float, width: int, height: int) -> np.ndarray:
    kh = kernel_x.shape[0]
    kw = kernel_x.shape[1]
    out = np.empty((height, width, padded.shape[2]), dtype=np.float64)
    for y in prange(height):
        for x in range(width):
            gradient_window(padded[y:y + kh, x:x + kw, :], kernel_x, kernel_y, scale, out[y, x])
    return out


# =============================================================================
# OPERATORS
# =============================================================================

class ConvolutionOperator(KernelOperator):
    """
    Correlate each window with a fixed odd-sized kernel.

    Parameters:
        kernel: 2-D weights, rows = height, columns = width.
        div: Divisor applied to the weighted sum (non-zero).
        offset: Added after division.
    """

    __slots__ = ("kernel", "div", "offset")

    def __init__(self, kernel: np.ndarray, div: float = 1.0, offset: float = 0.0):
        self.kernel = _as_kernel(kernel, "Kernel")
        if div == 0 or not math.isfinite(div):
            raise InvalidValueError(f"Divisor must be finite and non-zero, got {div}")
        if not math.isfinite(offset):
            raise InvalidValueError(f"Offset must be finite, got {offset}")
        self.div = float(div)
        self.offset = float(offset)

    @property
    def window_size(self) -> Size:
        return Size(self.kernel.shape[1], self.kernel.shape[0])

    def evaluate(self, window: np.ndarray, out: np.ndarray) -> None:
        correlate_window(window, self.kernel, self.div, self.offset, out)

    def evaluate_padded(self, padded: np.ndarray, window: Size, width: int,
                        height: int) -> np.ndarray:
        self.check_window(window)
        return _correlate_padded(padded, self.kernel, self.div, self.offset, width, height)


class GradientOperator(KernelOperator):
    """Gradient magnitude from a pair of directional kernels of equal shape."""

    __slots__ = ("kernel_x", "kernel_y", "scale")

    def __init__(self, kernel_x: np.ndarray, kernel_y: np.ndarray, scale: float = 1.0):
        self.kernel_x = _as_kernel(kernel_x, "X kernel")
        self.kernel_y = _as_kernel(kernel_y, "Y kernel")
        if self.kernel_x.shape != self.kernel_y.shape:
            raise ShapeMismatchError(
                f"Gradient kernels differ in shape: {self.kernel_x.shape} vs {self.kernel_y.shape}"
            )
        if not math.isfinite(scale):
            raise InvalidValueError(f"Scale must be finite, got {scale}")
        self.scale = float(scale)

    @property
    def window_size(self) -> Size:
        return Size(self.kernel_x.shape[1], self.kernel_x.shape[0])

    def evaluate(self, window: np.ndarray, out: np.ndarray) -> None:
        gradient_window(window, self.kernel_x, self.kernel_y, self.scale, out)

    def evaluate_padded(self, padded: np.ndarray, window: Size, width: int,
                        height: int) -> np.ndarray:
        self.check_window(window)
        return _gradient_padded(padded, self.kernel_x, self.kernel_y, self.scale, width, height)
