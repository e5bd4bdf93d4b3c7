# -*- coding: utf-8 -*-
"""
Tessera: Raster kernels for multi-channel images
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: tessera_sampling.py — Border extrapolation and sub-pixel
interpolation kernels.

The kernels operate on raw sample arrays of shape ``(height, width,
channels)`` in either storage dtype (``uint8`` or ``float64``); Numba
compiles one specialisation per dtype and memory layout, so strided views
are read in place without a copy.

Extrapolation (per axis, ``extent`` = width or height):

    ZERO       out-of-range reads return 0.0
    REPLICATE  clamp to the nearest edge sample
    REFLECT    mirror about the edge, edge sample repeated
               (-1 -> 0, -2 -> 1, extent -> extent-1)
    WRAP       periodic continuation (-1 -> extent-1, extent -> 0)

Interpolation:

    NEAREST_NEIGHBOR  round half-up on each axis
    BILINEAR          four lattice neighbours weighted by fractional distance
    BICUBIC           separable cubic convolution (a = -0.5) over a 4x4
                      neighbourhood

Bilinear and bicubic read their lattice neighbours through REFLECT, so a
sample on the last row or column never leaves the buffer.

None of the kernels use ``fastmath``: the same call must give the same bits
on the compiled whole-image path and on the single-sample path.
"""

import math
from enum import IntEnum
from typing import Final

import numpy as np
from numba import njit, prange

from tessera_core import PRECISION_MAX, BoundsError

__all__ = [
    "Extrapolation",
    "Interpolation",
    "translate_coordinate",
    "axis_lookup",
    "cubic_interpolation",
    "sample_point",
    "warp_samples",
    "verify_extrapolation_range",
    "verify_interpolation_range",
]


class Extrapolation(IntEnum):
    """How reads outside the image are resolved."""
    ZERO = 0
    REPLICATE = 1
    REFLECT = 2
    WRAP = 4


class Interpolation(IntEnum):
    """How fractional coordinates are resolved."""
    NEAREST_NEIGHBOR = 0
    BILINEAR = 1
    BICUBIC = 2


# Plain-int mirrors of the enum values; Numba freezes module globals as
# compile-time constants.
_ZERO: Final[int] = 0
_REPLICATE: Final[int] = 1
_REFLECT: Final[int] = 2
_WRAP: Final[int] = 4

_NEAREST: Final[int] = 0
_BILINEAR: Final[int] = 1
_BICUBIC: Final[int] = 2

_WEIGHT_EPS: Final[float] = PRECISION_MAX

# Sampling coordinates this close to the border snap back onto it.
_BORDER_EPS: Final[float] = 1e-9


# =============================================================================
# 1. EXTRAPOLATION
# =============================================================================

@njit(cache=True)
def translate_coordinate(xy: int, extent: int, mode: int) -> int:
    """
    Map a possibly out-of-range coordinate onto ``[0, extent)``.

    Returns -1 for an out-of-range coordinate under ZERO; callers read 0.0
    for it.  In-range coordinates are returned unchanged under every mode.
    """
    if 0 <= xy < extent:
        return xy
    if mode == _REPLICATE:
        if xy < 0:
            return 0
        return extent - 1
    if mode == _REFLECT:
        period = 2 * extent
        m = xy % period
        if m < extent:
            return m
        return period - 1 - m
    if mode == _WRAP:
        return xy % extent
    return -1


@njit(cache=True)
def axis_lookup(length: int, offset: int, extent: int, mode: int) -> np.ndarray:
    """Source index for each of ``length`` padded positions starting at ``-offset``."""
    out = np.empty(length, dtype=np.int64)
    for i in range(length):
        out[i] = translate_coordinate(i - offset, extent, mode)
    return out


def verify_extrapolation_range(xy: int, extent: int, axis: str) -> None:
    """Extrapolated reads may reach at most one extent past either border."""
    if not -2 * extent <= xy <= 2 * extent - 1:
        raise BoundsError(
            f"{axis}={xy} is outside the extrapolation range "
            f"[{-2 * extent}, {2 * extent - 1}]"
        )


# =============================================================================
# 2. INTERPOLATION
# =============================================================================

@njit(cache=True)
def _read_reflect(src: np.ndarray, x: int, y: int, c: int) -> float:
    ty = translate_coordinate(y, src.shape[0], _REFLECT)
    tx = translate_coordinate(x, src.shape[1], _REFLECT)
    return float(src[ty, tx, c])


@njit(cache=True)
def cubic_interpolation(p0: float, p1: float, p2: float, p3: float, t: float) -> float:
    """Catmull-Rom style cubic through ``p1`` (t=0) and ``p2`` (t=1)."""
    return p1 + 0.5 * t * (
        p2 - p0 + t * (
            2.0 * p0 - 5.0 * p1 + 4.0 * p2 - p3 + t * (3.0 * (p1 - p2) + p3 - p0)
        )
    )


@njit(cache=True)
def _sample_nearest(src: np.ndarray, x: float, y: float, c: int) -> float:
    ix = int(math.floor(x + 0.5))
    iy = int(math.floor(y + 0.5))
    return float(src[iy, ix, c])


@njit(cache=True)
def _sample_bilinear(src: np.ndarray, x: float, y: float, c: int) -> float:
    x0 = math.floor(x)
    x1 = math.ceil(x)
    y0 = math.floor(y)
    y1 = math.ceil(y)

    wx0 = x1 - x
    wx1 = x - x0
    if abs(wx0 - wx1) <= _WEIGHT_EPS:
        wx0 = 0.5
        wx1 = 0.5
    wy0 = y1 - y
    wy1 = y - y0
    if abs(wy0 - wy1) <= _WEIGHT_EPS:
        wy0 = 0.5
        wy1 = 0.5

    ix0 = int(x0)
    ix1 = int(x1)
    iy0 = int(y0)
    iy1 = int(y1)
    top = wx0 * _read_reflect(src, ix0, iy0, c) + wx1 * _read_reflect(src, ix1, iy0, c)
    bottom = wx0 * _read_reflect(src, ix0, iy1, c) + wx1 * _read_reflect(src, ix1, iy1, c)
    return wy0 * top + wy1 * bottom


@njit(cache=True)
def _sample_bicubic(src: np.ndarray, x: float, y: float, c: int) -> float:
    bx = int(math.floor(x))
    by = int(math.floor(y))
    tx = x - bx
    ty = y - by

    col = np.empty(4, dtype=np.float64)
    for j in range(4):
        yy = by - 1 + j
        col[j] = cubic_interpolation(
            _read_reflect(src, bx - 1, yy, c),
            _read_reflect(src, bx, yy, c),
            _read_reflect(src, bx + 1, yy, c),
            _read_reflect(src, bx + 2, yy, c),
            tx,
        )
    return cubic_interpolation(col[0], col[1], col[2], col[3], ty)


@njit(cache=True)
def sample_point(src: np.ndarray, x: float, y: float, c: int, mode: int) -> float:
    """
    Interpolate channel ``c`` of ``src`` at ``(x, y)``.

    The coordinate must already lie within ``[0, w-1] x [0, h-1]``.  The
    result is not clamped.
    """
    if mode == _NEAREST:
        return _sample_nearest(src, x, y, c)
    if mode == _BILINEAR:
        return _sample_bilinear(src, x, y, c)
    return _sample_bicubic(src, x, y, c)


def verify_interpolation_range(x: float, y: float, width: int, height: int) -> None:
    if math.isnan(x) or math.isnan(y):
        raise BoundsError(f"Cannot interpolate at a NaN coordinate ({x}, {y})")
    if not (0.0 <= x <= width - 1 and 0.0 <= y <= height - 1):
        raise BoundsError(
            f"Point ({x}, {y}) is outside [0, {width - 1}] x [0, {height - 1}]"
        )


# =============================================================================
# 3. WARP
# =============================================================================

@njit(cache=True, parallel=True)
def warp_samples(src: np.ndarray, inverse: np.ndarray, out_w: int, out_h: int,
                 mode: int, fill: np.ndarray):
    """
    Resample ``src`` through an inverse homography.

    Output pixel ``(x, y)`` reads source point ``(u/t, v/t)`` where
    ``(u, v, t) = inverse @ (x, y, 1)``.  Points outside the source, and
    points with ``t == 0``, take ``fill``.

    Returns:
        (samples, at_infinity): ``(out_h, out_w, channels)`` float64 samples,
        and per output row the number of pixels whose ``t`` was zero.
    """
    h = src.shape[0]
    w = src.shape[1]
    channels = src.shape[2]
    x_max = w - 1.0
    y_max = h - 1.0

    out = np.empty((out_h, out_w, channels), dtype=np.float64)
    at_infinity = np.zeros(out_h, dtype=np.int64)

    for oy in prange(out_h):
        for ox in range(out_w):
            t = inverse[2, 0] * ox + inverse[2, 1] * oy + inverse[2, 2]
            if t == 0.0:
                at_infinity[oy] += 1
                for c in range(channels):
                    out[oy, ox, c] = fill[c]
                continue

            sx = (inverse[0, 0] * ox + inverse[0, 1] * oy + inverse[0, 2]) / t
            sy = (inverse[1, 0] * ox + inverse[1, 1] * oy + inverse[1, 2]) / t
            if (sx < -_BORDER_EPS or sx > x_max + _BORDER_EPS
                    or sy < -_BORDER_EPS or sy > y_max + _BORDER_EPS
                    or sx != sx or sy != sy):
                for c in range(channels):
                    out[oy, ox, c] = fill[c]
                continue

            sx = min(max(sx, 0.0), x_max)
            sy = min(max(sy, 0.0), y_max)
            for c in range(channels):
                out[oy, ox, c] = sample_point(src, sx, sy, c, mode)

    return out, at_infinity
