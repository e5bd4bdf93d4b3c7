# -*- coding: utf-8 -*-
"""Tests for the per-pixel and per-channel work drivers."""

import threading
import typing
from collections import Counter

import pytest

import tessera_parallel
from tessera_core import InvalidValueError
from tessera_image import Image


@pytest.fixture(params=[1, 4], ids=["serial", "threaded"])
def workers(request):
    tessera_parallel.set_num_workers(request.param)
    tessera_parallel.set_min_size(0)
    return request.param


def test_pixels_visits_every_pixel_once(workers):
    img = Image(13, 7)
    seen = Counter()
    lock = threading.Lock()

    def visit(x, y):
        with lock:
            seen[(x, y)] += 1

    tessera_parallel.pixels(img, visit)
    assert len(seen) == 13 * 7
    assert set(seen.values()) == {1}


def test_pixels_uses_threads_for_large_images():
    tessera_parallel.set_num_workers(3)
    tessera_parallel.set_min_size(0)
    names = set()
    lock = threading.Lock()

    def visit(x, y):
        with lock:
            names.add(threading.current_thread().name)

    tessera_parallel.pixels(Image(4, 30), visit)
    assert threading.current_thread().name not in names


def test_small_images_stay_on_calling_thread():
    tessera_parallel.set_num_workers(4)
    tessera_parallel.set_min_size(1000)
    names = set()
    tessera_parallel.pixels(Image(10, 10), lambda x, y: names.add(threading.current_thread().name))
    assert names == {threading.current_thread().name}


def test_pixels_propagates_errors(workers):
    def visit(x, y):
        if (x, y) == (2, 5):
            raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        tessera_parallel.pixels(Image(6, 8), visit)


def test_channels_visits_every_channel_once(workers):
    seen = []
    lock = threading.Lock()

    def visit(c):
        with lock:
            seen.append(c)

    tessera_parallel.channels(Image(3, 3, 5), visit)
    assert sorted(seen) == [0, 1, 2, 3, 4]


def test_config_round_trip():
    tessera_parallel.set_num_workers(2)
    tessera_parallel.set_min_size(17)
    assert tessera_parallel.get_num_workers() == 2
    assert tessera_parallel.get_min_size() == 17


@pytest.mark.parametrize("setter, value", [
    (tessera_parallel.set_num_workers, 0),
    (tessera_parallel.set_min_size, -1),
])
def test_config_validation(setter, value):
    with pytest.raises(InvalidValueError):
        setter(value)


@pytest.mark.parametrize("func", [tessera_parallel.pixels, tessera_parallel.channels])
def test_drivers_take_images(func):
    hints = typing.get_type_hints(func, localns={"Image": Image})
    assert hints["image"] is Image
