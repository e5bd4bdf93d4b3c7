# -*- coding: utf-8 -*-
"""Tests for geometric warps and their derived operations."""

import numpy as np
import pytest

from conftest import raster
from tessera_core import InvalidValueError, ShapeMismatchError, Size
from tessera_geom import (
    ReflectType,
    build_pyramid,
    get_affine_transform,
    get_perspective_transform,
    reflect,
    resize,
    rotate,
    scale,
    warp_affine,
    warp_perspective,
)
from tessera_image import Image

SQUARE = [(0.0, 0.0), (10.0, 0.0), (10.0, 10.0), (0.0, 10.0)]


def _apply(matrix, point):
    m = np.asarray(matrix, dtype=np.float64)
    if m.shape == (2, 3):
        m = np.vstack([m, [0.0, 0.0, 1.0]])
    u, v, t = m @ np.array([point[0], point[1], 1.0])
    return u / t, v / t


# -- reflect ---------------------------------------------------------------

@pytest.mark.parametrize("reflect_type, flip", [
    (ReflectType.HORIZONTAL, lambda a: a[:, ::-1]),
    (ReflectType.VERTICAL, lambda a: a[::-1, :]),
    (ReflectType.DIAGONAL, lambda a: a[::-1, ::-1]),
], ids=["horizontal", "vertical", "diagonal"])
def test_reflect(raster_5x3, reflect_type, flip):
    out = reflect(raster_5x3, reflect_type)
    assert out.size == raster_5x3.size
    assert out.kind == raster_5x3.kind
    assert np.array_equal(out.to_array(), flip(raster_5x3.to_array()))


def test_reflect_twice_is_identity(noisy_rgb):
    assert reflect(reflect(noisy_rgb, "vertical"), "vertical") == noisy_rgb


# -- resize / scale --------------------------------------------------------

def test_resize_to_same_size_is_identity(raster_5x3):
    assert resize(raster_5x3, raster_5x3.size, "nearest_neighbor") == raster_5x3


def test_resize_down_samples_every_other_pixel():
    out = resize(raster(4, 4), (2, 2), "nearest_neighbor")
    assert out.to_array()[:, :, 0].tolist() == [[1.0, 3.0], [9.0, 11.0]]


@pytest.mark.parametrize("factor, expected", [(2.0, Size(10, 6)), (0.5, Size(3, 2)), (1.0, Size(5, 3))])
def test_scale_size(raster_5x3, factor, expected):
    out = scale(raster_5x3, factor)
    assert out.size == expected
    assert out.num_channels == raster_5x3.num_channels


@pytest.mark.parametrize("factor", [0.0, -1.0, float("nan"), 0.01])
def test_scale_rejects_bad_factors(raster_5x3, factor):
    with pytest.raises(InvalidValueError):
        scale(raster_5x3, factor)


def test_upscale_fills_beyond_last_pixel():
    out = scale(raster(2, 2), 2.0, "nearest_neighbor", fill_color=7.0)
    # column 3 maps to source x = 1.5, past the last pixel centre
    assert out.to_array()[:, 3, 0].tolist() == [7.0, 7.0, 7.0, 7.0]
    assert out.get(0, 0, 0) == 1.0


# -- rotate ----------------------------------------------------------------

def test_rotate_quarter_turn(kind):
    img = raster(5, 3, kind)
    out = rotate(img, 90.0, "nearest_neighbor")
    assert out.size == Size(3, 5)
    # output (x, y) holds source (y, 2 - x)
    expected = np.rot90(img.to_array(), k=-1)
    assert np.array_equal(out.to_array(), expected)


@pytest.mark.parametrize("angle", [90.0, -90.0, 180.0, 270.0])
def test_rotate_round_trip(noisy_rgb, angle):
    turned = rotate(noisy_rgb, angle, "nearest_neighbor")
    assert rotate(turned, -angle, "nearest_neighbor") == noisy_rgb


def test_rotate_half_turn_matches_diagonal_reflect(raster_5x3):
    assert rotate(raster_5x3, 180.0, "nearest_neighbor") == reflect(raster_5x3, "diagonal")


def test_rotate_zero_keeps_image(raster_5x3):
    assert rotate(raster_5x3, 0.0) == raster_5x3


def test_rotate_45_grows_and_fills_corners():
    img = Image(9, 9, 1, "uint8", fill=100.0)
    out = rotate(img, 45.0, fill_color=3.0)
    assert out.width > 9 and out.height > 9
    assert out.get(0, 0, 0) == 3.0
    assert out.get(out.width // 2, out.height // 2, 0) == 100.0


# -- warp engine -----------------------------------------------------------

def test_warp_translation_uses_fill_colour(kind):
    img = raster(5, 3, kind)
    out = warp_affine(img, [[1.0, 0.0, 2.0], [0.0, 1.0, 0.0]], img.size,
                      "nearest_neighbor", fill_color=9.0)
    values = out.to_array()[:, :, 0]
    assert np.all(values[:, :2] == 9.0)
    assert np.array_equal(values[:, 2:], img.to_array()[:, :3, 0])


def test_warp_output_size_and_channels(noisy_rgb):
    out = warp_perspective(noisy_rgb, np.eye(3), (4, 6))
    assert out.size == Size(4, 6)
    assert out.num_channels == 3
    assert out.kind == noisy_rgb.kind
    assert np.array_equal(out.to_array(), noisy_rgb.to_array()[:6, :4])


def test_warp_rejects_singular_matrix(raster_5x3):
    singular = [[1.0, 2.0, 0.0], [2.0, 4.0, 0.0], [0.0, 0.0, 1.0]]
    with pytest.raises(InvalidValueError, match="singular"):
        warp_perspective(raster_5x3, singular, raster_5x3.size)


@pytest.mark.parametrize("factor", [1e-5, 1e5])
def test_warp_ignores_homography_scale(raster_5x3, factor):
    expected = warp_perspective(raster_5x3, np.eye(3), raster_5x3.size)
    assert warp_perspective(raster_5x3, np.eye(3) * factor, raster_5x3.size) == expected


def test_warp_accepts_tiny_affine_scale():
    img = Image(3, 3, fill=60.0)
    out = warp_perspective(img, np.diag([1e-7, 1e-7, 1.0]), (2, 2))
    # only the origin maps back inside the source
    assert out.to_array()[:, :, 0].tolist() == [[60.0, 0.0], [0.0, 0.0]]


@pytest.mark.parametrize("matrix, error", [
    (np.eye(2), ShapeMismatchError),
    (np.full((3, 3), np.nan), InvalidValueError),
    ([[1.0, 0.0, np.inf], [0.0, 1.0, 0.0]], InvalidValueError),
])
def test_warp_rejects_malformed_matrix(raster_5x3, matrix, error):
    with pytest.raises(error):
        warp_perspective(raster_5x3, matrix, raster_5x3.size)


def test_warp_affine_requires_2x3(raster_5x3):
    with pytest.raises(ShapeMismatchError):
        warp_affine(raster_5x3, np.eye(3), raster_5x3.size)


def test_points_at_infinity_warn_and_fill(raster_5x3):
    # the inverse maps output column 1 onto the line at infinity
    matrix = [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [1.0, 0.0, -1.0]]
    with pytest.warns(UserWarning, match="infinity"):
        out = warp_perspective(raster_5x3, matrix, raster_5x3.size, fill_color=5.0)
    assert out.to_array()[:, 1, 0].tolist() == [5.0, 5.0, 5.0]


# -- point correspondences -------------------------------------------------

def test_affine_transform_from_points():
    src = [(0.0, 0.0), (1.0, 0.0), (0.0, 1.0)]
    dst = [(2.0, 3.0), (4.0, 3.0), (2.0, 6.0)]
    matrix = get_affine_transform(src, dst)
    assert matrix.shape == (2, 3)
    assert np.allclose(matrix, [[2.0, 0.0, 2.0], [0.0, 3.0, 3.0]])


def test_perspective_transform_maps_corners():
    dst = [(1.0, 2.0), (12.0, 1.0), (11.0, 13.0), (0.0, 9.0)]
    matrix = get_perspective_transform(SQUARE, dst)
    assert matrix.shape == (3, 3)
    assert matrix[2, 2] == 1.0
    for p, q in zip(SQUARE, dst):
        assert _apply(matrix, p) == pytest.approx(q, abs=1e-9)


def test_perspective_transform_of_same_points_is_identity():
    assert np.allclose(get_perspective_transform(SQUARE, SQUARE), np.eye(3), atol=1e-12)


def test_collinear_points_are_rejected():
    with pytest.raises(InvalidValueError, match="collinear"):
        get_perspective_transform([(0, 0), (1, 1), (2, 2), (0, 5)], SQUARE)
    with pytest.raises(InvalidValueError, match="collinear"):
        get_affine_transform([(0, 0), (1, 0), (0, 1)], [(0, 0), (1, 0), (2, 0)])


def test_wrong_point_count():
    with pytest.raises(ShapeMismatchError):
        get_affine_transform(SQUARE, SQUARE)


# -- pyramid ---------------------------------------------------------------

def test_build_pyramid_sizes():
    levels = build_pyramid(Image(40, 20))
    assert [lvl.size for lvl in levels] == [Size(20, 10), Size(10, 5), Size(5, 3)]


def test_build_pyramid_of_small_image_is_empty():
    assert build_pyramid(Image(8, 8)) == []
    assert len(build_pyramid(Image(16, 4), (4, 4))) == 2
