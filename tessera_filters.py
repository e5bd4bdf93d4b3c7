# -*- coding: utf-8 -*-
"""
Tessera: Raster kernels for multi-channel images
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: tessera_filters.py — Filter catalog on top of the sliding-window
engine.

Every filter here is the engine configured with a fixed operator, window,
anchor and extrapolation policy, or a composition of such runs:

    linear_filter / separable_filter     correlation with a kernel
    threshold / adaptive_threshold       pointwise and local-mean thresholds
    blur / gaussian_blur                 box, Gaussian, median, Kuwahara
    edge_detection / gradient_filter     Roberts, Prewitt, Sobel, Scharr
    laplacian / sharpen / invert         fixed 3x3 and 1x1 kernels
    morphology                           dilate, erode and their compositions

Kernels are given as 2-D arrays with ``rows = height`` and
``columns = width`` and must be odd in both dimensions.  Every filter
returns a new image of the input's size, channel count and storage kind.

Gaussian kernels:
    ``G(i) = exp(-i^2 / (2 sigma^2))`` for ``i`` in ``[-(n-1)/2, (n-1)/2]``,
    normalised to sum 1.  The default ``sigma`` for a size ``n`` is ``n / 6``
    and the default size for a ``sigma`` is ``floor(6 sigma)`` made odd.
"""

import logging
import math
import warnings
from enum import IntEnum
from typing import Final, Optional, Tuple, Union

import numpy as np

import tessera_imagemath as imagemath
from operators import (
    AdaptiveThresholdOperator,
    ConvolutionOperator,
    DilateOperator,
    ErodeOperator,
    GradientOperator,
    KuwaharaOperator,
    MedianOperator,
    ThresholdOperator,
    ThresholdType,
)
from tessera_core import COLOR_MAX, InvalidValueError, Point, Size, resolve_mode
from tessera_engine import TransformDescriptor, run_transform
from tessera_image import Image
from tessera_sampling import Extrapolation

__all__ = [
    # --- Selectors ---
    "ThresholdType",
    "AdaptiveType",
    "BlurType",
    "EdgeDetector",
    "SharpenType",
    "MorphologyType",

    # --- Kernels ---
    "EDGE_KERNELS",
    "LAPLACIAN_KERNEL",
    "MODERN_SHARPEN_KERNEL",
    "gaussian_kernel",
    "kernel_size_for_sigma",
    "sigma_for_kernel_size",

    # --- Filters ---
    "linear_filter",
    "separable_filter",
    "threshold",
    "adaptive_threshold",
    "gradient_filter",
    "edge_detection",
    "laplacian",
    "invert",
    "sharpen",
    "gaussian_blur",
    "blur",
    "morphology",
]

_logger = logging.getLogger(__name__)

ModeLike = Union[IntEnum, int, str]
SizeLike = Union[Size, Tuple[int, int]]

_SIGMA_SIZE_COEFF: Final[float] = 6.0

# Kuwahara windows with this many samples or fewer leave the image unchanged.
_KUWAHARA_MIN_SAMPLES: Final[int] = 9


class AdaptiveType(IntEnum):
    MEAN = 0
    MEAN_INV = 1
    GAUSSIAN = 2
    GAUSSIAN_INV = 3


class BlurType(IntEnum):
    BOX = 0
    GAUSSIAN = 1
    MEDIAN = 2
    KUWAHARA = 3


class EdgeDetector(IntEnum):
    ROBERTS = 0
    PREWITT = 1
    SOBEL = 2
    SCHARR = 3


class SharpenType(IntEnum):
    LAPLACIAN = 0
    MODERN = 1


class MorphologyType(IntEnum):
    DILATE = 0
    ERODE = 1
    OPEN = 2
    CLOSE = 3
    GRADIENT = 4
    WHITE_TOP_HAT = 5
    BLACK_TOP_HAT = 6


# --- Fixed kernels ---
# (x-derivative, y-derivative) pairs.
EDGE_KERNELS: Final[dict] = {
    EdgeDetector.ROBERTS: (
        np.array([[1.0, 0.0, 0.0],
                  [0.0, -1.0, 0.0],
                  [0.0, 0.0, 0.0]]),
        np.array([[0.0, 0.0, 0.0],
                  [0.0, 0.0, -1.0],
                  [0.0, 1.0, 0.0]]),
    ),
    EdgeDetector.PREWITT: (
        np.array([[-1.0, 0.0, 1.0],
                  [-1.0, 0.0, 1.0],
                  [-1.0, 0.0, 1.0]]),
        np.array([[1.0, 1.0, 1.0],
                  [0.0, 0.0, 0.0],
                  [-1.0, -1.0, -1.0]]),
    ),
    EdgeDetector.SOBEL: (
        np.array([[-1.0, 0.0, 1.0],
                  [-2.0, 0.0, 2.0],
                  [-1.0, 0.0, 1.0]]),
        np.array([[-1.0, -2.0, -1.0],
                  [0.0, 0.0, 0.0],
                  [1.0, 2.0, 1.0]]),
    ),
    EdgeDetector.SCHARR: (
        np.array([[3.0, 0.0, -3.0],
                  [10.0, 0.0, -10.0],
                  [3.0, 0.0, -3.0]]),
        np.array([[3.0, 10.0, 3.0],
                  [0.0, 0.0, 0.0],
                  [-3.0, -10.0, -3.0]]),
    ),
}

LAPLACIAN_KERNEL: Final[np.ndarray] = np.array([[0.0, 1.0, 0.0],
                                                [1.0, -4.0, 1.0],
                                                [0.0, 1.0, 0.0]])

MODERN_SHARPEN_KERNEL: Final[np.ndarray] = np.array([[0.0, -1.0, 0.0],
                                                     [-1.0, 5.0, -1.0],
                                                     [0.0, -1.0, 0.0]])

_INVERT_KERNEL: Final[np.ndarray] = np.array([[-1.0]])


def _as_size(value: SizeLike) -> Size:
    if isinstance(value, Size):
        return value
    if isinstance(value, (int, np.integer)):
        return Size(int(value), int(value))
    return Size(*value)


# =============================================================================
# 1. GAUSSIAN KERNELS
# =============================================================================

def sigma_for_kernel_size(size: int) -> float:
    """Default Gaussian ``sigma`` for a kernel of ``size`` samples."""
    return size / _SIGMA_SIZE_COEFF


def kernel_size_for_sigma(sigma: float) -> int:
    """Odd kernel size covering ``+-3 sigma``."""
    if not sigma > 0:
        raise InvalidValueError(f"Sigma must be > 0, got {sigma}")
    size = int(math.floor(_SIGMA_SIZE_COEFF * sigma))
    if size % 2 == 0:
        size += 1
    return size


def gaussian_kernel(size: int, sigma: Optional[float] = None) -> np.ndarray:
    """
    1-D normalised Gaussian kernel.

    Args:
        size: Number of taps; odd and >= 1.
        sigma: Standard deviation; defaults to ``size / 6``.

    Returns:
        float64 array of length ``size`` summing to 1.
    """
    if size < 1 or size % 2 == 0:
        raise InvalidValueError(f"Gaussian kernel size must be odd and >= 1, got {size}")
    if sigma is None:
        sigma = sigma_for_kernel_size(size)
    if not sigma > 0:
        raise InvalidValueError(f"Sigma must be > 0, got {sigma}")

    half = (size - 1) // 2
    i = np.arange(-half, half + 1, dtype=np.float64)
    kernel = np.exp(-(i * i) / (2.0 * sigma * sigma))
    return kernel / kernel.sum()


# =============================================================================
# 2. LINEAR FILTERS
# =============================================================================

def linear_filter(
    image: Image,
    kernel: np.ndarray,
    div: float = 1.0,
    offset: float = 0.0,
    extrapolation: ModeLike = Extrapolation.REPLICATE,
) -> Image:
    """
    Correlate ``image`` with ``kernel``: ``sum(aperture * kernel) / div + offset``.

    The kernel is centred on each pixel; it is not flipped.
    """
    operator = ConvolutionOperator(kernel, div, offset)
    window = operator.window_size
    return run_transform(
        image,
        TransformDescriptor(window, operator, window.center, 1, extrapolation),
    )


def separable_filter(
    image: Image,
    kernel_first: np.ndarray,
    kernel_second: np.ndarray,
    div: float = 1.0,
    offset: float = 0.0,
    extrapolation: ModeLike = Extrapolation.REPLICATE,
) -> Image:
    """
    Two linear passes, ``kernel_first`` then ``kernel_second``.

    1-D kernels are taken as rows; pass ``kernel.reshape(-1, 1)`` for a
    column.
    """
    first = linear_filter(image, kernel_first, div, offset, extrapolation)
    return linear_filter(first, kernel_second, div, offset, extrapolation)


# =============================================================================
# 3. THRESHOLDS
# =============================================================================

def threshold(
    image: Image,
    threshold: float,
    threshold_type: ModeLike = ThresholdType.BINARY,
    max_val: float = COLOR_MAX,
) -> Image:
    """Apply a pointwise threshold rule to every sample."""
    operator = ThresholdOperator(threshold, threshold_type, max_val)
    return run_transform(image, TransformDescriptor(Size(1, 1), operator, Point(0, 0)))


def adaptive_threshold(
    image: Image,
    block_size: int,
    adaptive_type: ModeLike = AdaptiveType.MEAN,
    c: float = 0.0,
    max_val: float = COLOR_MAX,
) -> Image:
    """
    Threshold each pixel against the weighted mean of its
    ``block_size x block_size`` neighbourhood minus ``c``.

    MEAN uses uniform weights, GAUSSIAN the outer product of
    ``gaussian_kernel(block_size)``.  The ``*_INV`` variants output
    ``max_val`` for pixels at or below the local threshold.
    """
    adaptive_type = resolve_mode(AdaptiveType, adaptive_type)
    if block_size < 1 or block_size % 2 == 0:
        raise InvalidValueError(f"Block size must be odd and >= 1, got {block_size}")

    if adaptive_type in (AdaptiveType.MEAN, AdaptiveType.MEAN_INV):
        weights = np.full((block_size, block_size), 1.0 / (block_size * block_size))
    else:
        g = gaussian_kernel(block_size)
        weights = np.outer(g, g)
    inverse = adaptive_type in (AdaptiveType.MEAN_INV, AdaptiveType.GAUSSIAN_INV)

    operator = AdaptiveThresholdOperator(weights, c, inverse, max_val)
    window = operator.window_size
    return run_transform(
        image,
        TransformDescriptor(window, operator, window.center, 1, Extrapolation.REPLICATE),
    )


# =============================================================================
# 4. EDGES AND SHARPENING
# =============================================================================

def gradient_filter(
    image: Image,
    kernel_x: np.ndarray,
    kernel_y: np.ndarray,
    scale: float = 1.0,
    extrapolation: ModeLike = Extrapolation.REFLECT,
) -> Image:
    """Gradient magnitude ``scale * sqrt(Gx^2 + Gy^2)``."""
    operator = GradientOperator(kernel_x, kernel_y, scale)
    window = operator.window_size
    return run_transform(
        image,
        TransformDescriptor(window, operator, window.center, 1, extrapolation),
    )


def edge_detection(
    image: Image,
    detector: ModeLike = EdgeDetector.SOBEL,
    scale: float = 1.0,
    extrapolation: ModeLike = Extrapolation.REFLECT,
) -> Image:
    detector = resolve_mode(EdgeDetector, detector)
    kernel_x, kernel_y = EDGE_KERNELS[detector]
    return gradient_filter(image, kernel_x, kernel_y, scale, extrapolation)


def laplacian(image: Image, extrapolation: ModeLike = Extrapolation.REPLICATE) -> Image:
    """Negated discrete Laplacian; negative responses clamp to zero."""
    return linear_filter(image, LAPLACIAN_KERNEL, -1.0, 0.0, extrapolation)


def invert(image: Image) -> Image:
    """``255 - v`` for every sample."""
    return linear_filter(image, _INVERT_KERNEL, 1.0, COLOR_MAX)


def sharpen(
    image: Image,
    sharpen_type: ModeLike = SharpenType.MODERN,
    extrapolation: ModeLike = Extrapolation.REFLECT,
) -> Image:
    """
    LAPLACIAN adds ``laplacian(image)`` to the image; MODERN correlates with
    the 5/-1 cross kernel.
    """
    sharpen_type = resolve_mode(SharpenType, sharpen_type)
    if sharpen_type == SharpenType.LAPLACIAN:
        return imagemath.add(laplacian(image, extrapolation), image)
    return linear_filter(image, MODERN_SHARPEN_KERNEL, 1.0, 0.0, extrapolation)


# =============================================================================
# 5. BLUR
# =============================================================================

def gaussian_blur(
    image: Image,
    kernel_size: SizeLike,
    sigma_x: Optional[float] = None,
    sigma_y: Optional[float] = None,
    extrapolation: ModeLike = Extrapolation.REPLICATE,
) -> Image:
    """Separable Gaussian blur; sigmas default to ``size / 6`` per axis."""
    kernel_size = _as_size(kernel_size)
    row = gaussian_kernel(kernel_size.width, sigma_x)
    column = gaussian_kernel(kernel_size.height, sigma_y).reshape(-1, 1)
    return separable_filter(image, row, column, 1.0, 0.0, extrapolation)


def _box_blur(image: Image, kernel_size: Size, extrapolation: ModeLike) -> Image:
    row = np.full(kernel_size.width, 1.0 / kernel_size.width)
    column = np.full((kernel_size.height, 1), 1.0 / kernel_size.height)
    return separable_filter(image, row, column, 1.0, 0.0, extrapolation)


def _kuwahara_blur(image: Image, kernel_size: Size, extrapolation: ModeLike) -> Image:
    if kernel_size.width != kernel_size.height or kernel_size.width % 2 == 0:
        raise InvalidValueError(
            f"Kuwahara kernel must be square and odd, got {kernel_size.width}x{kernel_size.height}"
        )
    if kernel_size.n <= _KUWAHARA_MIN_SAMPLES:
        warnings.warn(
            f"Kuwahara window {kernel_size.width}x{kernel_size.height} is too small to "
            f"have any effect; returning a copy of the image.",
            stacklevel=3,
        )
        return image.copy()

    operator = KuwaharaOperator(kernel_size.width)
    return run_transform(
        image,
        TransformDescriptor(kernel_size, operator, kernel_size.center, 1, extrapolation),
    )


def blur(
    image: Image,
    kernel_size: SizeLike,
    blur_type: ModeLike = BlurType.GAUSSIAN,
    extrapolation: ModeLike = Extrapolation.REPLICATE,
) -> Image:
    """
    Smooth ``image`` over a ``kernel_size`` neighbourhood.

    Args:
        image: Input image.
        kernel_size: ``Size``, ``(width, height)`` or a single odd int.
        blur_type: BOX, GAUSSIAN, MEDIAN or KUWAHARA.
        extrapolation: Border policy.

    Returns:
        New image of the input's size, channels and kind.
    """
    kernel_size = _as_size(kernel_size)
    blur_type = resolve_mode(BlurType, blur_type)
    if not kernel_size.is_odd:
        raise InvalidValueError(
            f"Blur kernel must be odd in both dimensions, got "
            f"{kernel_size.width}x{kernel_size.height}"
        )
    _logger.debug("%s blur, %dx%d kernel", blur_type.name, kernel_size.width, kernel_size.height)

    if blur_type == BlurType.BOX:
        return _box_blur(image, kernel_size, extrapolation)
    if blur_type == BlurType.GAUSSIAN:
        return gaussian_blur(image, kernel_size, extrapolation=extrapolation)
    if blur_type == BlurType.MEDIAN:
        return run_transform(
            image,
            TransformDescriptor(kernel_size, MedianOperator(), kernel_size.center, 1, extrapolation),
        )
    return _kuwahara_blur(image, kernel_size, extrapolation)


# =============================================================================
# 6. MORPHOLOGY
# =============================================================================

def _dilate(image: Image, kernel_size: Size, iterations: int, extrapolation: ModeLike) -> Image:
    return run_transform(
        image,
        TransformDescriptor(kernel_size, DilateOperator(), kernel_size.center, iterations, extrapolation),
    )


def _erode(image: Image, kernel_size: Size, iterations: int, extrapolation: ModeLike) -> Image:
    return run_transform(
        image,
        TransformDescriptor(kernel_size, ErodeOperator(), kernel_size.center, iterations, extrapolation),
    )


def morphology(
    image: Image,
    kernel_size: SizeLike,
    morphology_type: ModeLike = MorphologyType.DILATE,
    iterations: int = 1,
    extrapolation: ModeLike = Extrapolation.REPLICATE,
) -> Image:
    """
    Grey-level morphology with a rectangular structuring element.

    DILATE and ERODE are per-channel max and min repeated ``iterations``
    times.  The compositions are built from them:

        OPEN           dilate(erode(x))
        CLOSE          erode(dilate(x))
        GRADIENT       dilate(x) - erode(x)
        WHITE_TOP_HAT  x - open(x)
        BLACK_TOP_HAT  close(x) - x
    """
    kernel_size = _as_size(kernel_size)
    morphology_type = resolve_mode(MorphologyType, morphology_type)
    extrapolation = resolve_mode(Extrapolation, extrapolation)

    if morphology_type == MorphologyType.DILATE:
        return _dilate(image, kernel_size, iterations, extrapolation)
    if morphology_type == MorphologyType.ERODE:
        return _erode(image, kernel_size, iterations, extrapolation)
    if morphology_type == MorphologyType.OPEN:
        return _dilate(_erode(image, kernel_size, iterations, extrapolation),
                       kernel_size, iterations, extrapolation)
    if morphology_type == MorphologyType.CLOSE:
        return _erode(_dilate(image, kernel_size, iterations, extrapolation),
                      kernel_size, iterations, extrapolation)
    if morphology_type == MorphologyType.GRADIENT:
        return imagemath.abs_diff(_dilate(image, kernel_size, iterations, extrapolation),
                                  _erode(image, kernel_size, iterations, extrapolation))
    if morphology_type == MorphologyType.WHITE_TOP_HAT:
        opened = morphology(image, kernel_size, MorphologyType.OPEN, iterations, extrapolation)
        return imagemath.subtract(image, opened)
    closed = morphology(image, kernel_size, MorphologyType.CLOSE, iterations, extrapolation)
    return imagemath.subtract(closed, image)
