# -*- coding: utf-8 -*-
"""
Tessera: Raster kernels for multi-channel images
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: tessera_color.py — Fixed-length colour vector.

A ``Color`` is the value of one pixel: an ordered tuple of channel values,
each clamped into ``[COLOR_MIN, COLOR_MAX]`` on construction and on every
write.  NaN is rejected.
"""

import math
from typing import Iterable, Iterator, Sequence, Union

import numpy as np

from tessera_core import (
    COLOR_MAX,
    COLOR_MIN,
    PRECISION_MAX,
    BoundsError,
    InvalidValueError,
    ShapeMismatchError,
    clamp,
    equal_values,
    round_half_up,
)

__all__ = ["Color", "as_color"]


class Color:
    """
    Multi-channel colour value with clamped float channels.

    Parameters:
        values: Channel values, or a single int giving the channel count of
            an all-zero colour.

    Examples:
        c = Color([10.0, 300.0, -4.0])   # -> Color(10.0, 255.0, 0.0)
        black = Color(3)                 # -> Color(0.0, 0.0, 0.0)
    """

    __slots__ = ("_values",)

    def __init__(self, values: Union[int, Iterable[float], np.ndarray]):
        if isinstance(values, (int, np.integer)) and not isinstance(values, bool):
            if values <= 0:
                raise InvalidValueError(f"Color needs at least one channel, got {values}")
            self._values = np.zeros(int(values), dtype=np.float64)
            return

        arr = np.array(values, dtype=np.float64).ravel()
        if arr.size == 0:
            raise InvalidValueError("Color needs at least one channel, got 0")
        if np.isnan(arr).any():
            raise InvalidValueError(f"Color channels must not be NaN, got {arr.tolist()}")
        np.clip(arr, COLOR_MIN, COLOR_MAX, out=arr)
        self._values = arr

    @classmethod
    def filled(cls, channels: int, value: float) -> "Color":
        """Colour with every channel set to ``value`` (clamped)."""
        return cls(np.full(channels, value, dtype=np.float64))

    # -- channel access ----------------------------------------------------

    @property
    def num_channels(self) -> int:
        return self._values.shape[0]

    def get(self, channel: int) -> float:
        self._verify_channel(channel)
        return float(self._values[channel])

    def get_int(self, channel: int) -> int:
        """Channel value rounded half-up."""
        return round_half_up(self.get(channel))

    def set(self, channel: int, value: float) -> None:
        self._verify_channel(channel)
        if math.isnan(value):
            raise InvalidValueError(f"Cannot set channel {channel} to NaN")
        self._values[channel] = clamp(float(value))

    def to_array(self) -> np.ndarray:
        """Copy of the channel values as a float64 array."""
        return self._values.copy()

    def copy(self) -> "Color":
        return Color(self._values)

    def _verify_channel(self, channel: int) -> None:
        if not 0 <= channel < self.num_channels:
            raise BoundsError(
                f"Channel {channel} out of range for a {self.num_channels}-channel color"
            )

    # -- comparison --------------------------------------------------------

    def euclid_dist(self, other: "Color") -> float:
        """
        Normalised Euclidean distance ``sqrt(sum((a-b)^2)) / sqrt(n)``.

        Raises:
            ShapeMismatchError: If the channel counts differ.
        """
        if other.num_channels != self.num_channels:
            raise ShapeMismatchError(
                f"Cannot compare a {self.num_channels}-channel color with a "
                f"{other.num_channels}-channel color"
            )
        diff = self._values - other._values
        return float(np.sqrt(np.sum(diff * diff)) / np.sqrt(self.num_channels))

    def equals(self, other: "Color", precision: float = PRECISION_MAX) -> bool:
        """Channel-wise equality within ``precision``; False on length mismatch."""
        if other.num_channels != self.num_channels:
            return False
        return all(
            equal_values(a, b, precision) for a, b in zip(self._values, other._values)
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Color):
            return NotImplemented
        return self.equals(other)

    __hash__ = None  # type: ignore[assignment]

    # -- sequence protocol -------------------------------------------------

    def __len__(self) -> int:
        return self.num_channels

    def __iter__(self) -> Iterator[float]:
        return (float(v) for v in self._values)

    def __getitem__(self, channel: int) -> float:
        return self.get(channel)

    def __repr__(self) -> str:
        body = ", ".join(f"{v:g}" for v in self._values)
        return f"Color({body})"


def as_color(value: Union["Color", Sequence[float], float, None], channels: int) -> Color:
    """
    Normalise a fill argument into a ``Color`` with ``channels`` channels.

    ``None`` gives black; a scalar is broadcast to every channel.
    """
    if value is None:
        return Color(channels)
    if isinstance(value, Color):
        color = value
    elif isinstance(value, (int, float, np.integer, np.floating)):
        color = Color.filled(channels, float(value))
    else:
        color = Color(value)
    if color.num_channels != channels:
        raise ShapeMismatchError(
            f"Expected a {channels}-channel color, got {color.num_channels} channels"
        )
    return color
