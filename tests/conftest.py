from __future__ import annotations

import numpy as np
import pytest

from propellertof.model.bitmap import Bitmap
from propellertof.model.parameters import Resolution, SimulationParameters


def blank_rgba(width: int, height: int, value: int = 255, alpha: int = 255) -> np.ndarray:
    pixels = np.full((height, width, 4), value, dtype=np.uint8)
    pixels[..., 3] = alpha
    return pixels


def bar_bitmap(width: int = 40, height: int = 40, thickness: int = 4) -> Bitmap:
    """White image with a black horizontal bar through the center (a two-blade propeller)."""
    pixels = blank_rgba(width, height)
    top = height // 2 - thickness // 2
    pixels[top:top + thickness, 4:width - 4, :3] = 0
    return Bitmap(pixels=pixels)


def dot_bitmap(width: int = 4, height: int = 4, x: int = 2, y: int = 2) -> Bitmap:
    """White image with a single black pixel."""
    pixels = blank_rgba(width, height)
    pixels[y, x, :3] = 0
    return Bitmap(pixels=pixels)


def make_parameters(**overrides) -> SimulationParameters:
    values = dict(
        rpm=3000.0,
        frame_count=200,
        resolution=Resolution(width=32, height=32),
        photons_per_frame_mean=5.0,
        noise_ratio=1.0,
        field_of_view_degrees=20.0,
        short_term_frame_window=20,
        distance_meters=5.0,
    )
    values.update(overrides)
    return SimulationParameters(**values)


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(12345)


@pytest.fixture
def parameters() -> SimulationParameters:
    return make_parameters()
