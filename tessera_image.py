# -*- coding: utf-8 -*-
"""
Tessera: Raster kernels for multi-channel images
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: tessera_image.py — Pixel buffers, backing stores and views.

Storage layout:
    A ``BackingStore`` owns one C-contiguous numpy array of shape
    ``(height, width, channels)``.  ``Store8I`` keeps ``uint8`` samples and
    rounds half-up on every write; ``Store64F`` keeps ``float64`` samples at
    full precision and rounds only when an integer is requested.  Every
    stored sample lies in ``[0, 255]``.

Views:
    An ``Image`` is a rectangle plus a channel window over a store.  Views
    produced by ``subimage``, ``layer`` and ``channel`` share the store, so a
    write through one is visible through all of them.  ``copy`` is the only
    way to get an independent buffer.

Argument order is ``(width, height)`` / ``(x, y)`` everywhere; only the raw
numpy arrays are indexed ``[y, x, channel]``.
"""

import math
from enum import IntEnum
from typing import Sequence, Union

import numpy as np

from tessera_core import (
    COLOR_MAX,
    COLOR_MIN,
    PRECISION_MAX,
    BoundsError,
    InvalidValueError,
    Rect,
    ShapeMismatchError,
    Size,
    clamp,
    resolve_mode,
    round_half_up,
)
from tessera_color import Color, as_color
from tessera_sampling import (
    Extrapolation,
    Interpolation,
    sample_point,
    translate_coordinate,
    verify_extrapolation_range,
    verify_interpolation_range,
)

__all__ = [
    "StorageKind",
    "BackingStore",
    "Store8I",
    "Store64F",
    "Image",
    "ColorLike",
]

ColorLike = Union[Color, Sequence[float], float, None]


def _is_index(value) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool)


class StorageKind(IntEnum):
    UINT8 = 8
    FLOAT64 = 64


# =============================================================================
# BACKING STORES
# =============================================================================

class BackingStore:
    """
    Owner of the sample array shared by every view over it.

    Subclasses fix the storage dtype and how clamped float samples are
    encoded into it.
    """

    kind: StorageKind
    dtype: type

    __slots__ = ("width", "height", "channels", "data")

    def __init__(self, width: int, height: int, channels: int):
        for name, value in (("width", width), ("height", height), ("channels", channels)):
            if int(value) != value or value <= 0:
                raise InvalidValueError(f"Image {name} must be a positive integer, got {value}")
        self.width = int(width)
        self.height = int(height)
        self.channels = int(channels)
        self.data = np.zeros((self.height, self.width, self.channels), dtype=self.dtype)

    @staticmethod
    def create(kind: StorageKind, width: int, height: int, channels: int) -> "BackingStore":
        if kind == StorageKind.UINT8:
            return Store8I(width, height, channels)
        return Store64F(width, height, channels)

    def encode(self, values: np.ndarray) -> np.ndarray:
        """Convert clamped float64 samples to the storage dtype."""
        raise NotImplementedError

    def encode_scalar(self, value: float) -> Union[int, float]:
        raise NotImplementedError

    def to_int(self, sample: Union[int, float]) -> int:
        """Integer reading of a stored sample."""
        raise NotImplementedError


class Store8I(BackingStore):
    """8-bit unsigned samples; float writes round half-up."""

    kind = StorageKind.UINT8
    dtype = np.uint8

    __slots__ = ()

    def encode(self, values: np.ndarray) -> np.ndarray:
        return np.floor(values + 0.5).astype(np.uint8)

    def encode_scalar(self, value: float) -> int:
        return round_half_up(value)

    def to_int(self, sample: Union[int, float]) -> int:
        return int(sample)


class Store64F(BackingStore):
    """64-bit float samples; integer reads round half-up."""

    kind = StorageKind.FLOAT64
    dtype = np.float64

    __slots__ = ()

    def encode(self, values: np.ndarray) -> np.ndarray:
        return values

    def encode_scalar(self, value: float) -> float:
        return value

    def to_int(self, sample: Union[int, float]) -> int:
        return round_half_up(float(sample))


# =============================================================================
# IMAGE (VIEW)
# =============================================================================

class Image:
    """
    A multi-channel raster: a rectangular, channel-windowed view of a
    ``BackingStore``.

    Parameters:
        width, height: Pixel dimensions (positive).
        channels: Number of channels (positive).
        kind: ``StorageKind`` member, its value, or its name.
        fill: Optional initial colour (``Color``, sequence or scalar).

    Examples:
        img = Image(640, 480, 3, kind="uint8")
        roi = img.subimage(Rect(10, 10, 32, 32))   # shares storage
        red = img.channel(0)                        # shares storage
        roi.set(0, 0, 0, 200.0)                     # visible in img and red
    """

    __slots__ = ("_store", "_rect", "_c0", "_nc")

    def __init__(
        self,
        width: int,
        height: int,
        channels: int = 1,
        kind: Union[StorageKind, int, str] = StorageKind.FLOAT64,
        fill: ColorLike = None,
    ):
        kind = resolve_mode(StorageKind, kind)
        self._store = BackingStore.create(kind, width, height, channels)
        self._rect = Rect(0, 0, self._store.width, self._store.height)
        self._c0 = 0
        self._nc = self._store.channels
        if fill is not None:
            self.fill(fill)

    @classmethod
    def _view(cls, store: BackingStore, rect: Rect, c0: int, nc: int) -> "Image":
        view = cls.__new__(cls)
        view._store = store
        view._rect = rect
        view._c0 = c0
        view._nc = nc
        return view

    @classmethod
    def from_array(
        cls,
        values: np.ndarray,
        kind: Union[StorageKind, int, str, None] = None,
    ) -> "Image":
        """
        Build an image from an ``(h, w)`` or ``(h, w, c)`` array.

        Samples are clamped and, for 8-bit storage, rounded.  Without an
        explicit ``kind``, ``uint8`` input gives 8-bit storage and anything
        else gives float storage.
        """
        arr = np.asarray(values)
        if arr.ndim == 2:
            arr = arr[:, :, np.newaxis]
        if arr.ndim != 3:
            raise ShapeMismatchError(f"Expected an (h, w) or (h, w, c) array, got shape {arr.shape}")
        if kind is None:
            kind = StorageKind.UINT8 if arr.dtype == np.uint8 else StorageKind.FLOAT64
        h, w, c = arr.shape
        image = cls(w, h, c, kind)
        image.write_array(arr)
        return image

    # -- geometry ----------------------------------------------------------

    @property
    def width(self) -> int:
        return self._rect.width

    @property
    def height(self) -> int:
        return self._rect.height

    @property
    def size(self) -> Size:
        return self._rect.size

    @property
    def num_channels(self) -> int:
        return self._nc

    @property
    def n(self) -> int:
        """Total number of samples in the view."""
        return self.width * self.height * self._nc

    @property
    def kind(self) -> StorageKind:
        return self._store.kind

    @property
    def rect(self) -> Rect:
        """Region of the backing store covered by this view."""
        return self._rect

    @property
    def start_channel(self) -> int:
        return self._c0

    @property
    def store(self) -> BackingStore:
        return self._store

    @property
    def samples(self) -> np.ndarray:
        """
        Live numpy view ``[y, x, channel]`` of this image's samples.

        Writing through it bypasses clamping and rounding.
        """
        r = self._rect
        return self._store.data[r.y:r.y_end, r.x:r.x_end, self._c0:self._c0 + self._nc]

    def shares_storage(self, other: "Image") -> bool:
        return self._store is other._store

    # -- verification ------------------------------------------------------

    def _verify_point(self, x: int, y: int) -> None:
        if not (_is_index(x) and _is_index(y)):
            raise BoundsError(f"Point ({x!r}, {y!r}) must have integer coordinates")
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise BoundsError(
                f"Point ({x}, {y}) is outside the {self.width}x{self.height} image"
            )

    def _verify_channel(self, channel: int) -> None:
        if not _is_index(channel):
            raise BoundsError(f"Channel index must be an integer, got {channel!r}")
        if not 0 <= channel < self._nc:
            raise BoundsError(
                f"Channel {channel} is out of range for a {self._nc}-channel image"
            )

    def verify_same_size(self, other: "Image") -> None:
        if self.size != other.size:
            raise ShapeMismatchError(
                f"Image sizes differ: {self.width}x{self.height} vs {other.width}x{other.height}"
            )

    def verify_same_channels(self, other: "Image") -> None:
        if self._nc != other._nc:
            raise ShapeMismatchError(
                f"Channel counts differ: {self._nc} vs {other._nc}"
            )

    # -- scalar access -----------------------------------------------------

    def get(self, x: int, y: int, channel: int) -> float:
        self._verify_point(x, y)
        self._verify_channel(channel)
        return float(self._store.data[self._rect.y + y, self._rect.x + x, self._c0 + channel])

    def get_int(self, x: int, y: int, channel: int) -> int:
        """Sample rounded half-up to an integer."""
        self._verify_point(x, y)
        self._verify_channel(channel)
        sample = self._store.data[self._rect.y + y, self._rect.x + x, self._c0 + channel]
        return self._store.to_int(sample)

    def set(self, x: int, y: int, channel: int, value: float) -> None:
        self._verify_point(x, y)
        self._verify_channel(channel)
        value = float(value)
        if math.isnan(value):
            raise InvalidValueError(f"Cannot write NaN at ({x}, {y}, {channel})")
        self._store.data[self._rect.y + y, self._rect.x + x, self._c0 + channel] = (
            self._store.encode_scalar(clamp(value))
        )

    def set_int(self, x: int, y: int, channel: int, value: int) -> None:
        self._verify_point(x, y)
        self._verify_channel(channel)
        if math.isnan(value):
            raise InvalidValueError(f"Cannot write NaN at ({x}, {y}, {channel})")
        value = int(min(max(value, COLOR_MIN), COLOR_MAX))
        self._store.data[self._rect.y + y, self._rect.x + x, self._c0 + channel] = value

    # -- pixel access ------------------------------------------------------

    def get_pixel(self, x: int, y: int) -> Color:
        self._verify_point(x, y)
        return Color(self.samples[y, x].astype(np.float64))

    def set_pixel(self, x: int, y: int, color: Color) -> None:
        self._verify_point(x, y)
        if color.num_channels != self._nc:
            raise ShapeMismatchError(
                f"Cannot write a {color.num_channels}-channel color into a "
                f"{self._nc}-channel image"
            )
        self.samples[y, x] = self._store.encode(color.to_array())

    def fill(self, color: ColorLike) -> None:
        """Set every pixel of the view to ``color``."""
        color = as_color(color, self._nc)
        self.samples[...] = self._store.encode(color.to_array())

    # -- bulk access -------------------------------------------------------

    def to_array(self) -> np.ndarray:
        """Independent float64 copy of the samples, shaped ``(h, w, c)``."""
        return self.samples.astype(np.float64)

    def write_array(self, values: np.ndarray) -> None:
        """
        Overwrite every sample from an ``(h, w, c)`` (or ``(h, w)`` for a
        single channel) array, clamping and rounding as ``set`` does.
        """
        arr = np.asarray(values, dtype=np.float64)
        if arr.ndim == 2 and self._nc == 1:
            arr = arr[:, :, np.newaxis]
        expected = (self.height, self.width, self._nc)
        if arr.shape != expected:
            raise ShapeMismatchError(f"Expected array of shape {expected}, got {arr.shape}")
        if np.isnan(arr).any():
            raise InvalidValueError("Cannot write NaN samples")
        self.samples[...] = self._store.encode(np.clip(arr, COLOR_MIN, COLOR_MAX))

    # -- views -------------------------------------------------------------

    def subimage(self, rect: Rect) -> "Image":
        """View of ``rect`` (in this view's coordinates); shares storage."""
        if not Rect(0, 0, self.width, self.height).contains_rect(rect):
            raise BoundsError(
                f"{rect} does not fit inside the {self.width}x{self.height} image"
            )
        absolute = Rect(self._rect.x + rect.x, self._rect.y + rect.y, rect.width, rect.height)
        return Image._view(self._store, absolute, self._c0, self._nc)

    def layer(self, start_channel: int, count: int) -> "Image":
        """View of ``count`` consecutive channels from ``start_channel``."""
        if start_channel < 0 or count < 1 or start_channel + count > self._nc:
            raise BoundsError(
                f"Channels [{start_channel}, {start_channel + count}) are out of range "
                f"for a {self._nc}-channel image"
            )
        return Image._view(self._store, self._rect, self._c0 + start_channel, count)

    def channel(self, index: int) -> "Image":
        return self.layer(index, 1)

    # -- copies ------------------------------------------------------------

    def copy(self) -> "Image":
        """Deep copy into a fresh store of the same kind."""
        image = Image(self.width, self.height, self._nc, self.kind)
        image._store.data[...] = self.samples
        return image

    def copy_to(self, target: "Image") -> None:
        """Write every sample of this view into ``target`` (same size and channels)."""
        self.verify_same_size(target)
        self.verify_same_channels(target)
        if target.kind == self.kind:
            target.samples[...] = self.samples
        else:
            target.write_array(self.to_array())

    def same(self) -> "Image":
        """Zero-filled image with this image's size, channels and kind."""
        return Image(self.width, self.height, self._nc, self.kind)

    # -- border and sub-pixel reads ----------------------------------------

    def extrapolate(
        self,
        x: int,
        y: int,
        channel: int,
        mode: Union[Extrapolation, int, str] = Extrapolation.REPLICATE,
    ) -> float:
        """
        Read ``(x, y)``, resolving out-of-range coordinates with ``mode``.

        Coordinates may reach one full extent past either border.
        """
        mode = resolve_mode(Extrapolation, mode)
        self._verify_channel(channel)
        verify_extrapolation_range(x, self.width, "x")
        verify_extrapolation_range(y, self.height, "y")
        tx = translate_coordinate(x, self.width, int(mode))
        ty = translate_coordinate(y, self.height, int(mode))
        if tx < 0 or ty < 0:
            return 0.0
        return self.get(tx, ty, channel)

    def interpolate(
        self,
        x: float,
        y: float,
        channel: int,
        mode: Union[Interpolation, int, str] = Interpolation.BILINEAR,
    ) -> float:
        """Sample ``channel`` at fractional ``(x, y)`` inside the image."""
        mode = resolve_mode(Interpolation, mode)
        self._verify_channel(channel)
        verify_interpolation_range(x, y, self.width, self.height)
        value = sample_point(self.samples, float(x), float(y), channel, int(mode))
        return clamp(value)

    # -- comparison --------------------------------------------------------

    def equals(self, other: "Image", precision: float = PRECISION_MAX) -> bool:
        """Same size and channel count, every sample within ``precision``."""
        if self.size != other.size or self._nc != other._nc:
            return False
        return bool(np.all(np.abs(self.to_array() - other.to_array()) <= precision))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Image):
            return NotImplemented
        return self.equals(other)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"Image({self.width}x{self.height}, channels={self._nc}, "
            f"kind={self.kind.name}, rect={self._rect}, start_channel={self._c0})"
        )
