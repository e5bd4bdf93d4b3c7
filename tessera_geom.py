# -*- coding: utf-8 -*-
"""
Tessera: Raster kernels for multi-channel images
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: tessera_geom.py — Geometric warps and the operations built on them.

A transform matrix ``P`` (3x3, or 2x3 for affine maps) sends source pixel
coordinates to output coordinates.  The warp engine inverts it once and,
for every output pixel ``(x, y)``, samples the source at

    (u, v, t) = P^-1 @ (x, y, 1),    source point = (u / t, v / t)

through the chosen interpolation.  Points outside ``[0, w-1] x [0, h-1]``
take the fill colour (black unless given).

Derived operations:
    reflect   mirror about the vertical, horizontal or both axes
    resize    diagonal scale to an explicit size
    scale     uniform scale by a factor
    rotate    rotation about the origin, shifted so the result starts at (0, 0)
    build_pyramid  repeated half scaling
"""

import logging
import math
import warnings
from enum import IntEnum
from typing import Final, List, Sequence, Tuple, Union

import numpy as np
import scipy.linalg

from tessera_color import as_color
from tessera_core import (
    InvalidValueError,
    ShapeMismatchError,
    Size,
    resolve_mode,
    round_half_up,
)
from tessera_image import ColorLike, Image
from tessera_sampling import Interpolation, warp_samples

__all__ = [
    "ReflectType",
    "get_affine_transform",
    "get_perspective_transform",
    "warp_perspective",
    "warp_affine",
    "reflect",
    "resize",
    "scale",
    "rotate",
    "build_pyramid",
]

_logger = logging.getLogger(__name__)

ModeLike = Union[IntEnum, int, str]
SizeLike = Union[Size, Tuple[int, int]]
PointSeq = Sequence[Tuple[float, float]]

# Matrices with a larger condition number are treated as singular.
_MAX_CONDITION: Final[float] = 1.0 / np.finfo(np.float64).eps

# Twice the triangle area below which three points count as collinear.
_COLLINEAR_EPS: Final[float] = 1e-9

# Slack on the rotated bounding box before rounding up to whole pixels.
_EXTENT_EPS: Final[float] = 1e-9


class ReflectType(IntEnum):
    HORIZONTAL = 0
    VERTICAL = 1
    DIAGONAL = 2


def _as_size(value: SizeLike) -> Size:
    return value if isinstance(value, Size) else Size(*value)


def _as_matrix(matrix: np.ndarray) -> np.ndarray:
    arr = np.asarray(matrix, dtype=np.float64)
    if arr.shape == (2, 3):
        arr = np.vstack([arr, [0.0, 0.0, 1.0]])
    elif arr.shape != (3, 3):
        raise ShapeMismatchError(f"Transform matrix must be 2x3 or 3x3, got shape {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise InvalidValueError(f"Transform matrix contains non-finite values:\n{arr}")
    return np.ascontiguousarray(arr)


def _invert(matrix: np.ndarray) -> np.ndarray:
    # the condition number does not change when a homography is rescaled
    if not np.linalg.cond(matrix) < _MAX_CONDITION:
        raise InvalidValueError(f"Transform matrix is singular:\n{matrix}")
    try:
        inverse = scipy.linalg.inv(matrix)
    except scipy.linalg.LinAlgError as exc:
        raise InvalidValueError(f"Transform matrix is singular:\n{matrix}") from exc
    if not np.all(np.isfinite(inverse)):
        raise InvalidValueError(f"Transform matrix has no finite inverse:\n{matrix}")
    return np.ascontiguousarray(inverse)


# =============================================================================
# 1. POINT CORRESPONDENCES
# =============================================================================

def _as_points(points: PointSeq, count: int, name: str) -> np.ndarray:
    arr = np.asarray(points, dtype=np.float64)
    if arr.shape != (count, 2):
        raise ShapeMismatchError(f"{name} must be {count} (x, y) points, got shape {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise InvalidValueError(f"{name} contains non-finite coordinates:\n{arr}")
    return arr


def _verify_not_collinear(points: np.ndarray, name: str) -> None:
    n = points.shape[0]
    for i in range(n):
        for j in range(i + 1, n):
            for k in range(j + 1, n):
                a, b, c = points[i], points[j], points[k]
                cross = (b[0] - a[0]) * (c[1] - a[1]) - (b[1] - a[1]) * (c[0] - a[0])
                if abs(cross) < _COLLINEAR_EPS:
                    raise InvalidValueError(
                        f"{name} points {a.tolist()}, {b.tolist()}, {c.tolist()} are collinear"
                    )


def get_affine_transform(src: PointSeq, dst: PointSeq) -> np.ndarray:
    """
    2x3 affine matrix mapping three source points onto three destination
    points.
    """
    src_arr = _as_points(src, 3, "Source")
    dst_arr = _as_points(dst, 3, "Destination")
    _verify_not_collinear(src_arr, "Source")
    _verify_not_collinear(dst_arr, "Destination")

    a = np.hstack([src_arr, np.ones((3, 1))])
    try:
        solution = scipy.linalg.solve(a, dst_arr)
    except scipy.linalg.LinAlgError as exc:
        raise InvalidValueError(f"Cannot solve affine transform for points:\n{src_arr}") from exc
    return solution.T


def get_perspective_transform(src: PointSeq, dst: PointSeq) -> np.ndarray:
    """
    3x3 homography mapping four source points onto four destination points.

    No three points of either set may be collinear.  The result is
    normalised so that ``H[2, 2] == 1``.
    """
    src_arr = _as_points(src, 4, "Source")
    dst_arr = _as_points(dst, 4, "Destination")
    _verify_not_collinear(src_arr, "Source")
    _verify_not_collinear(dst_arr, "Destination")

    a = np.zeros((8, 8), dtype=np.float64)
    b = np.zeros(8, dtype=np.float64)
    for i in range(4):
        x, y = src_arr[i]
        u, v = dst_arr[i]
        a[2 * i] = [x, y, 1.0, 0.0, 0.0, 0.0, -u * x, -u * y]
        a[2 * i + 1] = [0.0, 0.0, 0.0, x, y, 1.0, -v * x, -v * y]
        b[2 * i] = u
        b[2 * i + 1] = v
    try:
        h = scipy.linalg.solve(a, b)
    except scipy.linalg.LinAlgError as exc:
        raise InvalidValueError(f"Cannot solve perspective transform for points:\n{src_arr}") from exc
    return np.append(h, 1.0).reshape(3, 3)


# =============================================================================
# 2. WARP ENGINE
# =============================================================================

def warp_perspective(
    image: Image,
    matrix: np.ndarray,
    new_size: SizeLike,
    interpolation: ModeLike = Interpolation.BILINEAR,
    fill_color: ColorLike = None,
) -> Image:
    """
    Resample ``image`` through the homography ``matrix``.

    Args:
        image: Source image.
        matrix: 3x3 (or 2x3) map from source to output coordinates.
        new_size: Output ``Size`` or ``(width, height)``.
        interpolation: NEAREST_NEIGHBOR, BILINEAR or BICUBIC.
        fill_color: Colour for output pixels with no source point.

    Returns:
        New image of ``new_size`` with the source's channels and kind.

    Raises:
        InvalidValueError: If ``matrix`` is singular or non-finite.
    """
    matrix = _as_matrix(matrix)
    new_size = _as_size(new_size)
    mode = resolve_mode(Interpolation, interpolation)
    fill = as_color(fill_color, image.num_channels).to_array()
    inverse = _invert(matrix)

    _logger.debug(
        "Warping %dx%d -> %dx%d (%s)",
        image.width, image.height, new_size.width, new_size.height, mode.name,
    )
    samples, at_infinity = warp_samples(
        image.samples, inverse, new_size.width, new_size.height, int(mode), fill
    )
    n_infinite = int(at_infinity.sum())
    if n_infinite:
        warnings.warn(
            f"{n_infinite} output pixels map to points at infinity and were filled.",
            stacklevel=2,
        )

    result = Image(new_size.width, new_size.height, image.num_channels, image.kind)
    result.write_array(samples)
    return result


def warp_affine(
    image: Image,
    matrix: np.ndarray,
    new_size: SizeLike,
    interpolation: ModeLike = Interpolation.BILINEAR,
    fill_color: ColorLike = None,
) -> Image:
    """``warp_perspective`` for a 2x3 affine matrix."""
    arr = np.asarray(matrix, dtype=np.float64)
    if arr.shape != (2, 3):
        raise ShapeMismatchError(f"Affine matrix must be 2x3, got shape {arr.shape}")
    return warp_perspective(image, arr, new_size, interpolation, fill_color)


# =============================================================================
# 3. DERIVED OPERATIONS
# =============================================================================

def reflect(image: Image, reflect_type: ModeLike = ReflectType.HORIZONTAL) -> Image:
    """
    Mirror the image.

    HORIZONTAL flips left-right, VERTICAL flips top-bottom, DIAGONAL does
    both.
    """
    reflect_type = resolve_mode(ReflectType, reflect_type)
    w = image.width - 1.0
    h = image.height - 1.0
    if reflect_type == ReflectType.HORIZONTAL:
        matrix = [[-1.0, 0.0, w], [0.0, 1.0, 0.0]]
    elif reflect_type == ReflectType.VERTICAL:
        matrix = [[1.0, 0.0, 0.0], [0.0, -1.0, h]]
    else:
        matrix = [[-1.0, 0.0, w], [0.0, -1.0, h]]
    return warp_affine(image, matrix, image.size, Interpolation.NEAREST_NEIGHBOR)


def resize(
    image: Image,
    new_size: SizeLike,
    interpolation: ModeLike = Interpolation.BILINEAR,
    fill_color: ColorLike = None,
) -> Image:
    """Stretch ``image`` to ``new_size`` with the matrix ``diag(new_w/w, new_h/h)``."""
    new_size = _as_size(new_size)
    matrix = [
        [new_size.width / image.width, 0.0, 0.0],
        [0.0, new_size.height / image.height, 0.0],
    ]
    return warp_affine(image, matrix, new_size, interpolation, fill_color)


def scale(
    image: Image,
    factor: float,
    interpolation: ModeLike = Interpolation.BILINEAR,
    fill_color: ColorLike = None,
) -> Image:
    """
    Scale both axes by ``factor``; the output is ``round(w * factor) x
    round(h * factor)``.
    """
    if math.isnan(factor) or factor <= 0:
        raise InvalidValueError(f"Scale factor must be > 0, got {factor}")
    new_w = round_half_up(image.width * factor)
    new_h = round_half_up(image.height * factor)
    if new_w < 1 or new_h < 1:
        raise InvalidValueError(
            f"Scaling {image.width}x{image.height} by {factor} gives an empty "
            f"{new_w}x{new_h} image"
        )
    return resize(image, Size(new_w, new_h), interpolation, fill_color)


def _snap(value: float) -> float:
    return 0.0 if abs(value) < 1e-15 else value


def rotate(
    image: Image,
    angle: float,
    interpolation: ModeLike = Interpolation.BILINEAR,
    fill_color: ColorLike = None,
) -> Image:
    """
    Rotate by ``angle`` degrees (counter-clockwise in a y-up frame,
    clockwise on screen).

    The output is just large enough to hold the rotated centres of the four
    corner pixels; the area outside the rotated source takes ``fill_color``.
    """
    theta = math.radians(angle)
    cos_t = _snap(math.cos(theta))
    sin_t = _snap(math.sin(theta))

    corners = np.array([
        [0.0, 0.0],
        [image.width - 1.0, 0.0],
        [0.0, image.height - 1.0],
        [image.width - 1.0, image.height - 1.0],
    ])
    xs = cos_t * corners[:, 0] - sin_t * corners[:, 1]
    ys = sin_t * corners[:, 0] + cos_t * corners[:, 1]
    min_x, min_y = xs.min(), ys.min()
    new_w = int(math.ceil(xs.max() - min_x - _EXTENT_EPS)) + 1
    new_h = int(math.ceil(ys.max() - min_y - _EXTENT_EPS)) + 1

    matrix = [
        [cos_t, -sin_t, -min_x],
        [sin_t, cos_t, -min_y],
    ]
    return warp_affine(image, matrix, Size(max(new_w, 1), max(new_h, 1)),
                       interpolation, fill_color)


def build_pyramid(image: Image, min_size: SizeLike = Size(8, 8)) -> List[Image]:
    """
    Successive half-scale copies of ``image``.

    Halving continues while either dimension of the latest level exceeds
    ``min_size``.  The input image itself is not included.
    """
    min_size = _as_size(min_size)
    levels: List[Image] = []
    current = image
    while current.width > min_size.width or current.height > min_size.height:
        current = scale(current, 0.5)
        levels.append(current)
    return levels
