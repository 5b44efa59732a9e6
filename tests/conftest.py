"""Shared fixtures: in-memory image payloads built with Pillow."""

import io
import random
from collections.abc import Callable

import pytest
from PIL import Image


def _noise_image(size: tuple[int, int], seed: int) -> Image.Image:
    rng = random.Random(seed)
    width, height = size
    return Image.frombytes("RGB", size, bytes(rng.getrandbits(8) for _ in range(width * height * 3)))


def make_jpeg(size: tuple[int, int] = (64, 48), *, quality: int = 95, seed: int = 0) -> bytes:
    buf = io.BytesIO()
    _noise_image(size, seed).save(buf, format="JPEG", quality=quality)
    return buf.getvalue()


def make_png(size: tuple[int, int] = (32, 32), *, seed: int = 0) -> bytes:
    buf = io.BytesIO()
    _noise_image(size, seed).save(buf, format="PNG", compress_level=0)
    return buf.getvalue()


@pytest.fixture
def jpeg_factory() -> Callable[..., bytes]:
    return make_jpeg


@pytest.fixture
def png_factory() -> Callable[..., bytes]:
    return make_png
