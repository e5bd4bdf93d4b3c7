# -*- coding: utf-8 -*-
"""Tests for the derived filter catalog."""

import numpy as np
import pytest

import tessera_imagemath as imagemath
from conftest import raster
from tessera_core import InvalidValueError, UnknownModeError
from tessera_filters import (
    AdaptiveType,
    BlurType,
    EdgeDetector,
    MorphologyType,
    SharpenType,
    ThresholdType,
    adaptive_threshold,
    blur,
    edge_detection,
    gaussian_blur,
    gaussian_kernel,
    invert,
    kernel_size_for_sigma,
    laplacian,
    linear_filter,
    morphology,
    separable_filter,
    sharpen,
    sigma_for_kernel_size,
    threshold,
)
from tessera_image import Image


@pytest.fixture
def constant_rgb(kind) -> Image:
    return Image(7, 6, 3, kind, fill=(40.0, 120.0, 200.0))


@pytest.fixture
def step_edge() -> Image:
    """5x5 float image: columns 0-1 are 0, columns 2-4 are 100."""
    values = np.zeros((5, 5))
    values[:, 2:] = 100.0
    return Image.from_array(values)


# -- Gaussian kernels ------------------------------------------------------

def test_gaussian_kernel_values():
    expected = [0.05448868454964433, 0.24420134200323346, 0.40261994689424435,
                0.24420134200323346, 0.05448868454964433]
    assert gaussian_kernel(5, 1.0) == pytest.approx(expected, abs=1e-12)


@pytest.mark.parametrize("size", range(1, 22, 2))
def test_gaussian_kernel_sums_to_one(size):
    kernel = gaussian_kernel(size)
    assert kernel.shape == (size,)
    assert kernel.sum() == pytest.approx(1.0, abs=1e-12)
    assert np.allclose(kernel, kernel[::-1])


@pytest.mark.parametrize("size", [0, 2, 4, -3])
def test_gaussian_kernel_rejects_even_or_empty(size):
    with pytest.raises(InvalidValueError):
        gaussian_kernel(size)


def test_kernel_size_and_sigma():
    assert kernel_size_for_sigma(1.5) == 9
    assert kernel_size_for_sigma(1.0) == 7
    assert sigma_for_kernel_size(6) == 1.0
    with pytest.raises(InvalidValueError):
        kernel_size_for_sigma(0.0)


# -- linear filters --------------------------------------------------------

def test_linear_filter_offset_kernel():
    img = Image(5, 5)
    img.set(2, 2, 0, 0.1)
    kernel = np.zeros((5, 3))
    kernel[0, 0] = 1.0
    out = linear_filter(img, kernel, div=0.5, offset=0.3, extrapolation="zero")

    expected = np.full((5, 5), 0.3)
    expected[4, 3] = 0.5
    assert np.allclose(out.to_array()[:, :, 0], expected, atol=1e-13)


def test_linear_filter_is_correlation():
    img = Image(3, 1)
    img.set(1, 0, 0, 10.0)
    out = linear_filter(img, np.array([[1.0, 2.0, 3.0]]), extrapolation="zero")
    # unflipped: out(x) = 1*in(x-1) + 2*in(x) + 3*in(x+1)
    assert out.to_array()[0, :, 0].tolist() == [30.0, 20.0, 10.0]


@pytest.mark.parametrize("kernel", [np.ones((2, 3)), np.ones((3, 4)), np.ones((3, 3)) * np.nan])
def test_linear_filter_rejects_bad_kernel(kernel):
    with pytest.raises(InvalidValueError):
        linear_filter(raster(5, 5), kernel)


def test_linear_filter_rejects_zero_divisor():
    with pytest.raises(InvalidValueError):
        linear_filter(raster(5, 5), np.ones((3, 3)), div=0.0)


def test_separable_matches_full_kernel():
    img = raster(9, 7)
    row = np.array([1.0, 2.0, 1.0]) / 4.0
    col = np.array([1.0, 4.0, 6.0, 4.0, 1.0]) / 16.0
    sep = separable_filter(img, row, col.reshape(-1, 1))
    full = linear_filter(img, np.outer(col, row))
    assert np.allclose(sep.to_array(), full.to_array(), atol=1e-12)


def test_separable_applies_div_and_offset_per_pass():
    img = Image(3, 3, fill=10.0)
    out = separable_filter(img, np.array([1.0]), np.array([[1.0]]), div=2.0, offset=1.0)
    # (10 / 2 + 1) / 2 + 1
    assert out.get(1, 1, 0) == 4.0


# -- thresholds ------------------------------------------------------------

@pytest.mark.parametrize("ttype, expected", [
    (ThresholdType.BINARY, [0, 0, 200, 200]),
    (ThresholdType.BINARY_INV, [200, 200, 0, 0]),
    (ThresholdType.TRUNC, [5, 8, 8, 8]),
    (ThresholdType.TO_ZERO, [0, 0, 9, 250]),
    (ThresholdType.TO_ZERO_INV, [5, 8, 0, 0]),
])
def test_threshold_rules(kind, ttype, expected):
    img = Image.from_array(np.array([[5.0, 8.0, 9.0, 250.0]]), kind)
    out = threshold(img, 8.0, ttype, max_val=200.0)
    assert out.to_array()[0, :, 0].tolist() == [float(v) for v in expected]
    assert out.kind == kind


def test_binary_threshold_is_idempotent(noisy_rgb):
    once = threshold(noisy_rgb, 100.0, "binary")
    twice = threshold(once, 100.0, "binary")
    assert once == twice
    assert set(np.unique(once.to_array())) <= {0.0, 255.0}


@pytest.mark.parametrize("thr, max_val", [(-1.0, 255.0), (256.0, 255.0), (10.0, 300.0)])
def test_threshold_levels_must_be_in_range(thr, max_val):
    with pytest.raises(InvalidValueError):
        threshold(raster(3, 3), thr, "binary", max_val)


def test_threshold_unknown_type():
    with pytest.raises(UnknownModeError):
        threshold(raster(3, 3), 10.0, "otsu")


@pytest.fixture
def bright_dot() -> Image:
    img = Image(5, 5, 1, "uint8", fill=50.0)
    img.set(2, 2, 0, 200.0)
    return img


@pytest.mark.parametrize("atype", [AdaptiveType.MEAN, AdaptiveType.GAUSSIAN])
def test_adaptive_threshold(bright_dot, atype):
    out = adaptive_threshold(bright_dot, 3, atype, c=5.0)
    assert out.get(2, 2, 0) == 255.0
    assert out.get(1, 2, 0) == 0.0
    assert out.get(4, 4, 0) == 255.0


def test_adaptive_threshold_inverse(bright_dot):
    out = adaptive_threshold(bright_dot, 3, "mean_inv", c=5.0, max_val=100.0)
    assert out.get(2, 2, 0) == 0.0
    assert out.get(1, 2, 0) == 100.0


@pytest.mark.parametrize("block, c", [(4, 5.0), (0, 5.0), (3, -1.0), (3, 256.0)])
def test_adaptive_threshold_validation(bright_dot, block, c):
    with pytest.raises(InvalidValueError):
        adaptive_threshold(bright_dot, block, "mean", c=c)


# -- edges and sharpening --------------------------------------------------

@pytest.mark.parametrize("detector", list(EdgeDetector), ids=lambda d: d.name)
def test_edge_detection_on_flat_image_is_zero(constant_rgb, detector):
    out = edge_detection(constant_rgb, detector)
    assert np.all(out.to_array() == 0.0)


def test_sobel_on_vertical_step(step_edge):
    out = edge_detection(step_edge, "sobel", scale=0.1)
    row = out.to_array()[2, :, 0]
    assert row.tolist() == pytest.approx([0.0, 40.0, 40.0, 0.0, 0.0])
    # the response does not depend on the row
    assert np.array_equal(out.to_array()[0], out.to_array()[4])


def test_edge_detection_unknown_detector(step_edge):
    with pytest.raises(UnknownModeError):
        edge_detection(step_edge, "canny")


def test_laplacian_and_sharpen_keep_flat_images(constant_rgb):
    assert np.all(laplacian(constant_rgb).to_array() == 0.0)
    assert sharpen(constant_rgb, SharpenType.MODERN) == constant_rgb
    assert sharpen(constant_rgb, SharpenType.LAPLACIAN) == constant_rgb


def test_sharpen_boosts_a_peak():
    img = Image(3, 3, fill=100.0)
    img.set(1, 1, 0, 110.0)
    # 5 * 110 - 4 * 100
    assert sharpen(img, "modern").get(1, 1, 0) == 150.0
    # 110 + (4 * 110 - 4 * 100)
    assert sharpen(img, "laplacian").get(1, 1, 0) == 150.0


def test_laplacian_clamps_dips_to_zero():
    img = Image(3, 3, fill=100.0)
    img.set(1, 1, 0, 50.0)
    assert laplacian(img).get(1, 1, 0) == 0.0


def test_invert(raster_5x3):
    out = invert(raster_5x3)
    assert np.array_equal(out.to_array(), 255.0 - raster_5x3.to_array())


# -- blur ------------------------------------------------------------------

@pytest.mark.parametrize("blur_type", [BlurType.BOX, BlurType.GAUSSIAN, BlurType.MEDIAN, BlurType.KUWAHARA],
                         ids=lambda b: b.name)
def test_blur_keeps_flat_images(constant_rgb, blur_type):
    out = blur(constant_rgb, 5, blur_type)
    assert out.size == constant_rgb.size
    assert out.kind == constant_rgb.kind
    assert np.allclose(out.to_array(), constant_rgb.to_array(), atol=1e-9)


def test_median_removes_impulse():
    img = Image(5, 5, 1, "uint8", fill=10.0)
    img.set(2, 2, 0, 255.0)
    out = blur(img, (3, 3), "median")
    assert np.all(out.to_array() == 10.0)


def test_median_picks_middle_value():
    img = Image.from_array(np.array([[9.0, 1.0, 5.0]]))
    out = blur(img, (3, 1), "median", extrapolation="zero")
    # windows: [0, 9, 1], [9, 1, 5], [1, 5, 0]
    assert out.to_array()[0, :, 0].tolist() == [1.0, 5.0, 1.0]


def test_box_blur_averages():
    img = Image(3, 3)
    img.set(1, 1, 0, 90.0)
    out = blur(img, 3, "box", extrapolation="zero")
    assert np.allclose(out.to_array(), 10.0)


def test_gaussian_blur_spreads_symmetrically():
    img = Image(7, 7)
    img.set(3, 3, 0, 255.0)
    out = gaussian_blur(img, (5, 5), 1.0, 1.0).to_array()[:, :, 0]
    assert np.allclose(out, out.T)
    assert np.allclose(out, out[::-1, ::-1])
    assert out[3, 3] == out.max()
    assert out.sum() == pytest.approx(255.0)


def test_kuwahara_preserves_edges():
    values = np.zeros((9, 9))
    values[:, 4:] = 200.0
    out = blur(Image.from_array(values), 5, "kuwahara")
    assert set(np.unique(out.to_array())) <= {0.0, 200.0}
    assert out.get(2, 4, 0) == 0.0
    assert out.get(5, 4, 0) == 200.0


def test_small_kuwahara_is_a_noop(raster_5x3):
    with pytest.warns(UserWarning, match="too small"):
        out = blur(raster_5x3, 3, "kuwahara")
    assert out == raster_5x3
    assert not out.shares_storage(raster_5x3)


@pytest.mark.parametrize("size", [(4, 3), (3, 2), 2])
def test_blur_rejects_even_kernels(size):
    with pytest.raises(InvalidValueError):
        blur(raster(7, 7), size)


def test_kuwahara_needs_square_kernel():
    with pytest.raises(InvalidValueError):
        blur(raster(9, 9), (5, 3), "kuwahara")


# -- morphology ------------------------------------------------------------

def test_dilate_single_pixel_grows_square():
    img = Image(5, 5, 1, "uint8")
    img.set(2, 2, 0, 255.0)
    out = morphology(img, 3, "dilate").to_array()[:, :, 0]
    expected = np.zeros((5, 5))
    expected[1:4, 1:4] = 255.0
    assert np.array_equal(out, expected)
    twice = morphology(img, 3, "dilate", iterations=2)
    assert np.all(twice.to_array() == 255.0)


def test_dilate_and_erode_bracket_the_image(noisy_rgb):
    src = noisy_rgb.to_array()
    assert np.all(morphology(noisy_rgb, 3, "dilate").to_array() >= src)
    assert np.all(morphology(noisy_rgb, 3, "erode").to_array() <= src)


@pytest.mark.parametrize("iterations", [1, 2])
def test_morphology_compositions(noisy_rgb, iterations):
    k = (3, 5)

    def run(img, mtype):
        return morphology(img, k, mtype, iterations)

    dilated = run(noisy_rgb, MorphologyType.DILATE)
    eroded = run(noisy_rgb, MorphologyType.ERODE)
    opened = run(noisy_rgb, MorphologyType.OPEN)
    closed = run(noisy_rgb, MorphologyType.CLOSE)

    assert opened == run(eroded, MorphologyType.DILATE)
    assert closed == run(dilated, MorphologyType.ERODE)
    assert run(noisy_rgb, MorphologyType.GRADIENT) == imagemath.subtract(dilated, eroded)
    assert run(noisy_rgb, MorphologyType.WHITE_TOP_HAT) == imagemath.subtract(noisy_rgb, opened)
    assert run(noisy_rgb, MorphologyType.BLACK_TOP_HAT) == imagemath.subtract(closed, noisy_rgb)


def test_open_removes_bright_speck():
    img = Image(7, 7, 1, "uint8", fill=20.0)
    img.set(3, 3, 0, 250.0)
    assert np.all(morphology(img, 3, "open").to_array() == 20.0)
    assert np.all(morphology(img, 3, "close").to_array()[3, 3] == 250.0)


def test_morphology_unknown_type(noisy_rgb):
    with pytest.raises(UnknownModeError):
        morphology(noisy_rgb, 3, "skeleton")
