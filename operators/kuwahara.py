# -*- coding: utf-8 -*-
"""
Tessera: Raster kernels for multi-channel images
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: kuwahara.py — Edge-preserving Kuwahara smoothing.

A square ``k x k`` window (``k`` odd) with centre ``r = k // 2`` is split
into four ``r x r`` quadrants anchored at ``(0, 0)``, ``(r+1, 0)``,
``(0, r+1)`` and ``(r+1, r+1)``; the centre row and column belong to none
of them.  Per channel, the output is the mean of the quadrant with the
smallest sum of squared deviations (first quadrant wins ties).
"""

import numpy as np
from numba import njit, prange

from tessera_core import InvalidValueError, Size

from .base import KernelOperator

__all__ = ["kuwahara_window", "KuwaharaOperator"]


@njit(cache=True)
def kuwahara_window(window: np.ndarray, out: np.ndarray) -> None:
    r = window.shape[0] // 2
    n = r * r
    for c in range(window.shape[2]):
        best_mean = 0.0
        best_var = np.inf
        for q in range(4):
            qx = (q % 2) * (r + 1)
            qy = (q // 2) * (r + 1)
            total = 0.0
            for x in range(qx, qx + r):
                for y in range(qy, qy + r):
                    total += window[y, x, c]
            mean = total / n
            var = 0.0
            for x in range(qx, qx + r):
                for y in range(qy, qy + r):
                    d = window[y, x, c] - mean
                    var += d * d
            if var < best_var:
                best_var = var
                best_mean = mean
        out[c] = best_mean


@njit(cache=True, parallel=True)
def _kuwahara_padded(padded: np.ndarray, k: int, width: int, height: int) -> np.ndarray:
    out = np.empty((height, width, padded.shape[2]), dtype=np.float64)
    for y in prange(height):
        for x in range(width):
            kuwahara_window(padded[y:y + k, x:x + k, :], out[y, x])
    return out


class KuwaharaOperator(KernelOperator):
    """Kuwahara filter over a square odd window of side >= 3."""

    __slots__ = ("side",)

    def __init__(self, side: int):
        if side < 3 or side % 2 == 0:
            raise InvalidValueError(f"Kuwahara window side must be odd and >= 3, got {side}")
        self.side = int(side)

    @property
    def window_size(self) -> Size:
        return Size(self.side, self.side)

    def evaluate(self, window: np.ndarray, out: np.ndarray) -> None:
        kuwahara_window(window, out)

    def evaluate_padded(self, padded: np.ndarray, window: Size, width: int,
                        height: int) -> np.ndarray:
        self.check_window(window)
        return _kuwahara_padded(padded, self.side, width, height)
