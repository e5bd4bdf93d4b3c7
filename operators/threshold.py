# -*- coding: utf-8 -*-
"""
Tessera: Raster kernels for multi-channel images
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: threshold.py — Global and adaptive threshold operators.

Rules, for a sample ``v`` against threshold ``t`` and maximum ``m``:

    ============  ==========  =========
    type          v <= t      v > t
    ============  ==========  =========
    BINARY        0           m
    BINARY_INV    m           0
    TRUNC         v           t
    TO_ZERO       0           v
    TO_ZERO_INV   v           0
    ============  ==========  =========

The adaptive variant computes ``t`` per pixel as the weighted mean of the
surrounding window minus a constant, then applies BINARY or BINARY_INV to
the window centre.
"""

import math
from enum import IntEnum
from typing import Final, Union

import numpy as np
from numba import njit, prange

from tessera_core import COLOR_MAX, COLOR_MIN, InvalidValueError, Size, resolve_mode, verify_odd_size

from .base import KernelOperator

__all__ = [
    "ThresholdType",
    "apply_threshold",
    "ThresholdOperator",
    "AdaptiveThresholdOperator",
]


class ThresholdType(IntEnum):
    BINARY = 0
    BINARY_INV = 1
    TRUNC = 2
    TO_ZERO = 3
    TO_ZERO_INV = 4


_BINARY: Final[int] = 0
_BINARY_INV: Final[int] = 1
_TRUNC: Final[int] = 2
_TO_ZERO: Final[int] = 3

_LOW: Final[float] = COLOR_MIN
_HIGH: Final[float] = COLOR_MAX


def _verify_level(value: float, name: str) -> float:
    if math.isnan(value) or not COLOR_MIN <= value <= COLOR_MAX:
        raise InvalidValueError(
            f"{name} must lie in [{COLOR_MIN:g}, {COLOR_MAX:g}], got {value}"
        )
    return float(value)


@njit(cache=True)
def apply_threshold(value: float, threshold: float, max_val: float, ttype: int) -> float:
    if value <= threshold:
        if ttype == _BINARY or ttype == _TO_ZERO:
            return 0.0
        if ttype == _BINARY_INV:
            return max_val
        return value
    if ttype == _BINARY:
        return max_val
    if ttype == _TRUNC:
        return threshold
    if ttype == _TO_ZERO:
        return value
    return 0.0


@njit(cache=True)
def threshold_window(window: np.ndarray, threshold: float, max_val: float,
                     ttype: int, out: np.ndarray) -> None:
    for c in range(window.shape[2]):
        out[c] = apply_threshold(window[0, 0, c], threshold, max_val, ttype)


@njit(cache=True, parallel=True)
def _threshold_padded(padded: np.ndarray, threshold: float, max_val: float,
                      ttype: int, width: int, height: int) -> np.ndarray:
    out = np.empty((height, width, padded.shape[2]), dtype=np.float64)
    for y in prange(height):
        for x in range(width):
            threshold_window(padded[y:y + 1, x:x + 1, :], threshold, max_val, ttype, out[y, x])
    return out


@njit(cache=True)
def adaptive_window(window: np.ndarray, weights: np.ndarray, c_const: float,
                    max_val: float, ttype: int, out: np.ndarray) -> None:
    kh = weights.shape[0]
    kw = weights.shape[1]
    cy = kh // 2
    cx = kw // 2
    for c in range(window.shape[2]):
        acc = 0.0
        for x in range(kw):
            for y in range(kh):
                acc += window[y, x, c] * weights[y, x]
        local = min(max(acc - c_const, _LOW), _HIGH)
        out[c] = apply_threshold(window[cy, cx, c], local, max_val, ttype)


@njit(cache=True, parallel=True)
def _adaptive_padded(padded: np.ndarray, weights: np.ndarray, c_const: float,
                     max_val: float, ttype: int, width: int, height: int) -> np.ndarray:
    kh = weights.shape[0]
    kw = weights.shape[1]
    out = np.empty((height, width, padded.shape[2]), dtype=np.float64)
    for y in prange(height):
        for x in range(width):
            adaptive_window(padded[y:y + kh, x:x + kw, :], weights, c_const, max_val,
                            ttype, out[y, x])
    return out


class ThresholdOperator(KernelOperator):
    """Pointwise threshold on a 1x1 window."""

    __slots__ = ("threshold", "max_val", "threshold_type")

    def __init__(self, threshold: float, threshold_type: Union[ThresholdType, int, str],
                 max_val: float = COLOR_MAX):
        self.threshold = _verify_level(threshold, "Threshold")
        self.max_val = _verify_level(max_val, "Maximum value")
        self.threshold_type = resolve_mode(ThresholdType, threshold_type)

    @property
    def window_size(self) -> Size:
        return Size(1, 1)

    def evaluate(self, window: np.ndarray, out: np.ndarray) -> None:
        threshold_window(window, self.threshold, self.max_val, int(self.threshold_type), out)

    def evaluate_padded(self, padded: np.ndarray, window: Size, width: int,
                        height: int) -> np.ndarray:
        self.check_window(window)
        return _threshold_padded(padded, self.threshold, self.max_val,
                                 int(self.threshold_type), width, height)


class AdaptiveThresholdOperator(KernelOperator):
    """
    Local-mean threshold.

    Parameters:
        weights: Odd-sized 2-D weights summing to one (box or Gaussian).
        c: Constant subtracted from the local mean, in [0, 255].
        inverse: Use BINARY_INV instead of BINARY.
        max_val: Output for pixels passing the rule.
    """

    __slots__ = ("weights", "c", "max_val", "threshold_type")

    def __init__(self, weights: np.ndarray, c: float, inverse: bool = False,
                 max_val: float = COLOR_MAX):
        weights = np.ascontiguousarray(np.asarray(weights, dtype=np.float64))
        if weights.ndim != 2:
            raise InvalidValueError(f"Weights must be 2-D, got shape {weights.shape}")
        verify_odd_size(Size(weights.shape[1], weights.shape[0]), "Block")
        self.weights = weights
        self.c = _verify_level(c, "Constant C")
        self.max_val = _verify_level(max_val, "Maximum value")
        self.threshold_type = ThresholdType.BINARY_INV if inverse else ThresholdType.BINARY

    @property
    def window_size(self) -> Size:
        return Size(self.weights.shape[1], self.weights.shape[0])

    def evaluate(self, window: np.ndarray, out: np.ndarray) -> None:
        adaptive_window(window, self.weights, self.c, self.max_val,
                        int(self.threshold_type), out)

    def evaluate_padded(self, padded: np.ndarray, window: Size, width: int,
                        height: int) -> np.ndarray:
        self.check_window(window)
        return _adaptive_padded(padded, self.weights, self.c, self.max_val,
                                int(self.threshold_type), width, height)
