# -*- coding: utf-8 -*-
"""
Tessera: Raster kernels for multi-channel images
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: base.py — Base class for operators with a compiled image path.

A ``KernelOperator`` can be used two ways by the engine:

* generic: called once per window position with the aperture ``Image``,
  returning a ``Color``;
* compiled: ``evaluate_padded`` receives the whole padded float64 sample
  array and returns every output sample in one Numba call.

Subclasses route both through the same ``@njit`` per-window function, so
the two paths agree bit for bit.
"""

from typing import Optional

import numpy as np

from tessera_core import ShapeMismatchError, Size
from tessera_color import Color
from tessera_image import Image

__all__ = ["KernelOperator"]


class KernelOperator:
    """
    Window operator with a compiled whole-image path.

    Subclasses implement:
        evaluate(window, out): fill ``out[c]`` from one ``(kh, kw, c)`` window.
        evaluate_padded(padded, window, width, height): return the
            ``(height, width, c)`` output for a padded ``(height+kh-1,
            width+kw-1, c)`` sample array.
    """

    __slots__ = ()

    @property
    def window_size(self) -> Optional[Size]:
        """Fixed window shape required by the operator, or None if any shape works."""
        return None

    def __call__(self, aperture: Image) -> Color:
        window = aperture.to_array()
        self.check_window(Size(aperture.width, aperture.height))
        out = np.empty(aperture.num_channels, dtype=np.float64)
        self.evaluate(window, out)
        return Color(out)

    def check_window(self, window: Size) -> None:
        required = self.window_size
        if required is not None and required != window:
            raise ShapeMismatchError(
                f"{type(self).__name__} needs a {required.width}x{required.height} "
                f"window, got {window.width}x{window.height}"
            )

    def evaluate(self, window: np.ndarray, out: np.ndarray) -> None:
        raise NotImplementedError

    def evaluate_padded(
        self, padded: np.ndarray, window: Size, width: int, height: int
    ) -> np.ndarray:
        raise NotImplementedError
