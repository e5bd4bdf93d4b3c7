# -*- coding: utf-8 -*-
"""
Tessera: Raster kernels for multi-channel images
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: rank.py — Order-statistic operators (max, min, median).

Each channel is ranked independently; the output pixel need not be one of
the input pixels.
"""

from enum import IntEnum
from typing import Final, Union

import numpy as np
from numba import njit, prange

from tessera_core import Size

from .base import KernelOperator

__all__ = [
    "Rank",
    "rank_window",
    "RankOperator",
    "DilateOperator",
    "ErodeOperator",
    "MedianOperator",
]


class Rank(IntEnum):
    MAX = 0
    MIN = 1
    MEDIAN = 2


_MAX: Final[int] = 0
_MIN: Final[int] = 1


@njit(cache=True)
def rank_window(window: np.ndarray, rank: int, out: np.ndarray) -> None:
    kh = window.shape[0]
    kw = window.shape[1]
    n = kh * kw
    values = np.empty(n, dtype=np.float64)
    for c in range(window.shape[2]):
        i = 0
        for x in range(kw):
            for y in range(kh):
                values[i] = window[y, x, c]
                i += 1
        if rank == _MAX:
            out[c] = values.max()
        elif rank == _MIN:
            out[c] = values.min()
        else:
            values.sort()
            out[c] = values[(n - 1) // 2]


@njit(cache=True, parallel=True)
def _rank_padded(padded: np.ndarray, kw: int, kh: int, rank: int,
                 width: int, height: int) -> np.ndarray:
    out = np.empty((height, width, padded.shape[2]), dtype=np.float64)
    for y in prange(height):
        for x in range(width):
            rank_window(padded[y:y + kh, x:x + kw, :], rank, out[y, x])
    return out


class RankOperator(KernelOperator):
    """
    Per-channel order statistic over a window of any shape.

    For an even sample count the median is the lower of the two middle
    values.
    """

    __slots__ = ("rank",)

    def __init__(self, rank: Union[Rank, int]):
        self.rank = Rank(rank)

    def evaluate(self, window: np.ndarray, out: np.ndarray) -> None:
        rank_window(window, int(self.rank), out)

    def evaluate_padded(self, padded: np.ndarray, window: Size, width: int,
                        height: int) -> np.ndarray:
        return _rank_padded(padded, window.width, window.height, int(self.rank), width, height)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(rank={self.rank.name})"


class DilateOperator(RankOperator):
    """Per-channel maximum."""

    __slots__ = ()

    def __init__(self):
        super().__init__(Rank.MAX)


class ErodeOperator(RankOperator):
    """Per-channel minimum."""

    __slots__ = ()

    def __init__(self):
        super().__init__(Rank.MIN)


class MedianOperator(RankOperator):
    __slots__ = ()

    def __init__(self):
        super().__init__(Rank.MEDIAN)
