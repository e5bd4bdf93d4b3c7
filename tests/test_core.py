# -*- coding: utf-8 -*-
"""Tests for rounding rules, geometry primitives and mode resolution."""

import pytest

from tessera_core import (
    BoundsError,
    InvalidValueError,
    Point,
    Rect,
    Size,
    TesseraError,
    UnknownModeError,
    clamp,
    equal_values,
    resolve_mode,
    round_down,
    round_half_up,
    round_up,
    verify_odd_size,
)
from tessera_sampling import Extrapolation


@pytest.mark.parametrize("value, expected", [
    (2.5, 3), (2.4999, 2), (-0.5, 0), (-1.5, -1), (0.0, 0), (254.5, 255),
])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


def test_round_up_and_down():
    assert round_up(1.1) == 2
    assert round_down(1.9) == 1
    assert round_up(-1.1) == -1
    assert round_down(-1.1) == -2


def test_clamp_and_equal_values():
    assert clamp(-3.0) == 0.0
    assert clamp(300.0) == 255.0
    assert clamp(12.5) == 12.5
    assert equal_values(1.0, 1.0 + 1e-14)
    assert not equal_values(1.0, 1.0 + 1e-12)
    assert equal_values(3.0, 3.9, precision=1.0)


@pytest.mark.parametrize("size, center", [
    (Size(3, 3), Point(1, 1)),
    (Size(5, 4), Point(2, 1)),
    (Size(1, 1), Point(0, 0)),
    (Size(2, 6), Point(0, 2)),
])
def test_size_center(size, center):
    assert size.center == center


def test_size_rejects_non_positive():
    with pytest.raises(InvalidValueError):
        Size(0, 3)
    with pytest.raises(InvalidValueError):
        Size(3, -1)


def test_point_rejects_negative():
    with pytest.raises(BoundsError):
        Point(-1, 0)


def test_rect_containment():
    outer = Rect(0, 0, 10, 5)
    assert outer.contains_rect(Rect(2, 1, 8, 4))
    assert not outer.contains_rect(Rect(2, 1, 9, 4))
    assert outer.contains_point(Point(9, 4))
    assert not outer.contains_point(Point(10, 4))
    assert Rect(1, 2, 3, 4).size == Size(3, 4)


def test_verify_odd_size():
    verify_odd_size(Size(3, 5))
    with pytest.raises(InvalidValueError, match="odd"):
        verify_odd_size(Size(3, 4))


def test_resolve_mode_accepts_member_value_and_name():
    assert resolve_mode(Extrapolation, Extrapolation.WRAP) is Extrapolation.WRAP
    assert resolve_mode(Extrapolation, 2) is Extrapolation.REFLECT
    assert resolve_mode(Extrapolation, "replicate") is Extrapolation.REPLICATE


@pytest.mark.parametrize("bad", [3, "mirror", 1.5, None, True])
def test_resolve_mode_rejects_unknown(bad):
    with pytest.raises(UnknownModeError):
        resolve_mode(Extrapolation, bad)


def test_errors_are_value_errors():
    assert issubclass(TesseraError, ValueError)
    for cls in (BoundsError, InvalidValueError, UnknownModeError):
        assert issubclass(cls, TesseraError)


def test_metadata_summary():
    import __about__

    summary = __about__.metadata_summary()
    assert summary["title"] == "Tessera"
    assert summary["version"] == __about__.__version__
    assert summary["license"] == "LGPL-3.0-or-later"
