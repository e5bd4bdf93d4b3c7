# -*- coding: utf-8 -*-
"""
Tessera: Raster kernels for multi-channel images
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: tessera_core.py — Shared constants, rounding rules, geometry
primitives and the error taxonomy.

Every other module imports from here; nothing here imports from the rest of
the package.

Rounding:
    All integer conversions round half-up (``floor(v + 0.5)``), not to the
    nearest even value.  ``2.5`` becomes ``3`` and ``-0.5`` becomes ``0``.
    The same rule is used by the 8-bit store, by ``Image.get_int`` and by
    the nearest-neighbour sampler, so results agree across storage kinds.

Errors:
    All failures raise a ``TesseraError`` subclass.  ``TesseraError`` derives
    from ``ValueError`` so existing ``except ValueError`` handlers keep
    working.
"""

import math
from dataclasses import dataclass
from enum import IntEnum
from typing import Final, Type, TypeVar, Union

__all__ = [
    # --- Constants ---
    "COLOR_MIN",
    "COLOR_MAX",
    "PRECISION_MAX",
    "PRECISION_MIN",

    # --- Errors ---
    "TesseraError",
    "BoundsError",
    "ShapeMismatchError",
    "InvalidValueError",
    "UnknownModeError",

    # --- Rounding ---
    "round_half_up",
    "round_up",
    "round_down",
    "clamp",
    "equal_values",

    # --- Geometry ---
    "Point",
    "Size",
    "Rect",

    # --- Helpers ---
    "resolve_mode",
    "verify_odd_size",
]

# --- Constants ---
COLOR_MIN: Final[float] = 0.0
COLOR_MAX: Final[float] = 255.0

# Tolerance used for float-store comparisons.
PRECISION_MAX: Final[float] = 1e-13
# Tolerance used for 8-bit-store comparisons (one quantisation step).
PRECISION_MIN: Final[float] = 1.0


# =============================================================================
# ERRORS
# =============================================================================

class TesseraError(ValueError):
    """Base class of every error raised by Tessera."""


class BoundsError(TesseraError):
    """A coordinate, channel or sub-region lies outside its valid range."""


class ShapeMismatchError(TesseraError):
    """Two operands disagree in size, channel count or storage kind."""


class InvalidValueError(TesseraError):
    """A parameter or sample value is NaN, out of range or otherwise unusable."""


class UnknownModeError(TesseraError):
    """A mode selector is not a member of its enumeration."""


# =============================================================================
# ROUNDING
# =============================================================================

def round_half_up(value: float) -> int:
    """Round to the nearest integer, ties towards +inf."""
    return int(math.floor(value + 0.5))


def round_up(value: float) -> int:
    return int(math.ceil(value))


def round_down(value: float) -> int:
    return int(math.floor(value))


def clamp(value: float, low: float = COLOR_MIN, high: float = COLOR_MAX) -> float:
    """Clamp ``value`` into ``[low, high]``."""
    if value < low:
        return low
    if value > high:
        return high
    return value


def equal_values(a: float, b: float, precision: float = PRECISION_MAX) -> bool:
    """True when ``|a - b| <= precision``."""
    return abs(a - b) <= precision


# =============================================================================
# GEOMETRY PRIMITIVES
# =============================================================================

@dataclass(frozen=True)
class Point:
    """Integer pixel coordinate; both components are non-negative."""
    x: int
    y: int

    def __post_init__(self) -> None:
        if self.x < 0 or self.y < 0:
            raise BoundsError(f"Point coordinates must be >= 0, got ({self.x}, {self.y})")


@dataclass(frozen=True)
class Size:
    """Width/height pair; both components are positive."""
    width: int
    height: int

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise InvalidValueError(
                f"Size must be positive, got {self.width}x{self.height}"
            )

    @property
    def n(self) -> int:
        """Number of pixels covered."""
        return self.width * self.height

    @property
    def center(self) -> Point:
        """
        Anchor of a window of this size.

        For odd extents this is the middle sample; for even extents it is the
        last sample of the first half (``w // 2 - 1``).
        """
        cx = self.width // 2 - (1 if self.width % 2 == 0 else 0)
        cy = self.height // 2 - (1 if self.height % 2 == 0 else 0)
        return Point(cx, cy)

    @property
    def is_odd(self) -> bool:
        return self.width % 2 == 1 and self.height % 2 == 1

    def fits_in(self, other: "Size") -> bool:
        """True when this size is no larger than ``other`` on either axis."""
        return self.width <= other.width and self.height <= other.height


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle anchored at ``(x, y)``."""
    x: int
    y: int
    width: int
    height: int

    def __post_init__(self) -> None:
        if self.x < 0 or self.y < 0:
            raise BoundsError(f"Rect origin must be >= 0, got ({self.x}, {self.y})")
        if self.width <= 0 or self.height <= 0:
            raise InvalidValueError(
                f"Rect size must be positive, got {self.width}x{self.height}"
            )

    @classmethod
    def from_size(cls, size: Size, origin: Point = Point(0, 0)) -> "Rect":
        return cls(origin.x, origin.y, size.width, size.height)

    @property
    def origin(self) -> Point:
        return Point(self.x, self.y)

    @property
    def size(self) -> Size:
        return Size(self.width, self.height)

    @property
    def x_end(self) -> int:
        """First column past the rectangle."""
        return self.x + self.width

    @property
    def y_end(self) -> int:
        """First row past the rectangle."""
        return self.y + self.height

    def contains_point(self, point: Point) -> bool:
        return self.x <= point.x < self.x_end and self.y <= point.y < self.y_end

    def contains_rect(self, other: "Rect") -> bool:
        return (
            self.x <= other.x
            and self.y <= other.y
            and other.x_end <= self.x_end
            and other.y_end <= self.y_end
        )


# =============================================================================
# HELPERS
# =============================================================================

E = TypeVar("E", bound=IntEnum)


def resolve_mode(enum_cls: Type[E], value: Union[E, int, str]) -> E:
    """
    Coerce a selector into a member of ``enum_cls``.

    Accepts a member, its integer value, or its name (case-insensitive).

    Raises:
        UnknownModeError: If ``value`` names no member.
    """
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls[value.strip().upper()]
        except KeyError:
            pass
    elif isinstance(value, int) and not isinstance(value, bool):
        try:
            return enum_cls(value)
        except ValueError:
            pass
    valid = ", ".join(m.name for m in enum_cls)
    raise UnknownModeError(f"Unknown {enum_cls.__name__} {value!r}; expected one of: {valid}")


def verify_odd_size(size: Size, what: str = "Kernel") -> None:
    """Raise ``InvalidValueError`` unless both extents of ``size`` are odd."""
    if not size.is_odd:
        raise InvalidValueError(
            f"{what} size must be odd in both dimensions, got {size.width}x{size.height}"
        )
