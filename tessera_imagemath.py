# -*- coding: utf-8 -*-
"""
Tessera: Raster kernels for multi-channel images
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: tessera_imagemath.py — Pixel-wise image arithmetic.

Binary operations require images of equal size and channel count and return
a new image of the first operand's storage kind.  Results are clamped into
``[0, 255]`` (and rounded for 8-bit storage) on write, so ``subtract`` is a
saturating difference.

``integral_image`` returns normalised running sums for O(1) box sums, and
``inject_image`` alpha-composites one colour image onto a copy of another.
"""

import math
from typing import Final, Tuple, Union

import numpy as np

from tessera_color import Color
from tessera_core import (
    COLOR_MAX,
    BoundsError,
    InvalidValueError,
    Point,
    Rect,
    ShapeMismatchError,
)
from tessera_image import Image, StorageKind

__all__ = [
    "add",
    "subtract",
    "abs_diff",
    "multiply",
    "mean",
    "correlate",
    "integral_image",
    "inject_image",
]

# Colour images carry three colour channels and an optional alpha channel.
_COLOR_CHANNELS: Final[int] = 3
_ALPHA_CHANNEL: Final[int] = 3


def _verify_pair(a: Image, b: Image) -> None:
    a.verify_same_size(b)
    a.verify_same_channels(b)


def _result(template: Image, values: np.ndarray) -> Image:
    out = template.same()
    out.write_array(values)
    return out


def add(a: Image, b: Image) -> Image:
    """Saturating sum ``a + b``."""
    _verify_pair(a, b)
    return _result(a, a.to_array() + b.to_array())


def subtract(a: Image, b: Image) -> Image:
    """Saturating difference ``max(a - b, 0)``."""
    _verify_pair(a, b)
    return _result(a, a.to_array() - b.to_array())


def abs_diff(a: Image, b: Image) -> Image:
    """``|a - b|``."""
    _verify_pair(a, b)
    return _result(a, np.abs(a.to_array() - b.to_array()))


def multiply(image: Image, factor: float) -> Image:
    """Scale every sample by a non-negative ``factor``."""
    if math.isnan(factor) or factor < 0:
        raise InvalidValueError(f"Multiplier must be >= 0, got {factor}")
    return _result(image, image.to_array() * factor)


def mean(image: Image) -> Color:
    """Per-channel mean over every pixel."""
    return Color(image.to_array().mean(axis=(0, 1)))


def correlate(aperture: Image, kernel: np.ndarray) -> np.ndarray:
    """
    Per-channel weighted sum of an aperture with an equally sized kernel.

    Returns:
        Unclamped float64 array of length ``aperture.num_channels``.
    """
    kernel = np.asarray(kernel, dtype=np.float64)
    if kernel.shape != (aperture.height, aperture.width):
        raise ShapeMismatchError(
            f"Kernel shape {kernel.shape} does not match the "
            f"{aperture.width}x{aperture.height} aperture"
        )
    return np.einsum("yxc,yx->c", aperture.to_array(), kernel)


def integral_image(image: Image) -> Image:
    """
    Summed-area table, divided by the pixel count so samples stay in range.

    Sample ``(x, y)`` holds the sum of every input sample in
    ``[0, x] x [0, y]`` divided by ``image.n``.  The sum over any rectangle is
    therefore four lookups times ``image.n``.

    Returns:
        Float image with the input's size and channel count.
    """
    sums = np.cumsum(np.cumsum(image.to_array(), axis=0), axis=1) / image.size.n
    return Image.from_array(sums, StorageKind.FLOAT64)


def _verify_color_image(image: Image, name: str) -> None:
    if image.num_channels not in (_COLOR_CHANNELS, _COLOR_CHANNELS + 1):
        raise ShapeMismatchError(
            f"{name} must have 3 or 4 channels, got {image.num_channels}"
        )


def _alpha(samples: np.ndarray) -> Union[np.ndarray, float]:
    if samples.shape[2] > _ALPHA_CHANNEL:
        return samples[:, :, _ALPHA_CHANNEL:_ALPHA_CHANNEL + 1] / COLOR_MAX
    return 1.0


def inject_image(base: Image, position: Union[Point, Tuple[int, int]], image: Image) -> Image:
    """
    Alpha-composite ``image`` onto a copy of ``base`` with its top-left
    corner at ``position``.

    Both images need 3 colour channels plus an optional alpha channel; a
    missing alpha counts as fully opaque.  The part of ``image`` that falls
    outside ``base`` is dropped.  Colour channels become
    ``a1 * inject + a2 * base * (1 - a1)``; the base alpha is left as is.

    Returns:
        New image with the size, channels and kind of ``base``.
    """
    _verify_color_image(base, "Base image")
    _verify_color_image(image, "Injected image")
    if not isinstance(position, Point):
        position = Point(*position)
    if position.x >= base.width or position.y >= base.height:
        raise BoundsError(
            f"Position ({position.x}, {position.y}) is outside the "
            f"{base.width}x{base.height} base image"
        )

    result = base.copy()
    width = min(image.width, base.width - position.x)
    height = min(image.height, base.height - position.y)
    target = result.subimage(Rect(position.x, position.y, width, height))
    source = image.subimage(Rect(0, 0, width, height))

    top = source.to_array()
    bottom = target.to_array()
    a1 = _alpha(top)
    a2 = _alpha(bottom)
    bottom[:, :, :_COLOR_CHANNELS] = (
        a1 * top[:, :, :_COLOR_CHANNELS] + a2 * bottom[:, :, :_COLOR_CHANNELS] * (1.0 - a1)
    )
    target.write_array(bottom)
    return result
