# -*- coding: utf-8 -*-
"""
Tessera: Raster kernels for multi-channel images
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Shared fixtures for the Tessera test suite.
"""

import numpy as np
import pytest

import tessera_engine
import tessera_parallel
from tessera_image import Image, StorageKind


def raster(width: int, height: int, kind: StorageKind = StorageKind.FLOAT64,
           channels: int = 1) -> Image:
    """Image whose channel-0 samples are 1, 2, 3, ... in row-major order."""
    values = np.arange(1, width * height + 1, dtype=np.float64).reshape(height, width)
    stacked = np.repeat(values[:, :, np.newaxis], channels, axis=2)
    return Image.from_array(stacked, kind)


@pytest.fixture(params=[StorageKind.FLOAT64, StorageKind.UINT8], ids=["float64", "uint8"])
def kind(request) -> StorageKind:
    return request.param


@pytest.fixture
def raster_5x3(kind) -> Image:
    """The 5x3 image holding 1..15, in both storage kinds."""
    return raster(5, 3, kind)


@pytest.fixture
def noisy_rgb() -> Image:
    """Deterministic 3-channel 8-bit image with values across the full range."""
    rng = np.random.default_rng(1234)
    return Image.from_array(rng.integers(0, 256, size=(9, 11, 3)).astype(np.uint8))


@pytest.fixture(params=[True, False], ids=["compiled", "per-pixel"])
def engine_path(request):
    """Run a test once with compiled kernels and once through the per-pixel path."""
    tessera_engine.set_compiled_kernels(request.param)
    yield request.param
    tessera_engine.set_compiled_kernels(True)


@pytest.fixture(autouse=True)
def _restore_parallel_config():
    workers = tessera_parallel.get_num_workers()
    min_size = tessera_parallel.get_min_size()
    yield
    tessera_parallel.set_num_workers(workers)
    tessera_parallel.set_min_size(min_size)
