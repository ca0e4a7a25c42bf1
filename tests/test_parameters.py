from __future__ import annotations

import math

import pytest

from propellertof.model.errors import InvalidParametersError
from propellertof.model.parameters import Resolution, SimulationParameters

from conftest import make_parameters


def test_defaults_match_the_ui_defaults() -> None:
    p = SimulationParameters()
    assert p.rpm == 3000.0
    assert p.frame_count == 50000
    assert (p.width, p.height) == (128, 128)
    assert p.photons_per_frame_mean == 10.0
    assert p.noise_ratio == 1.0
    assert p.field_of_view_degrees == 20.0
    assert p.short_term_frame_window == 100
    assert p.distance_meters == 5.0


def test_derived_quantities() -> None:
    p = make_parameters(frame_count=10, resolution=Resolution(width=64, height=32), short_term_frame_window=10)
    assert p.dataset_length == 10 * 64 * 32
    assert p.estimated_memory_mb == pytest.approx(10 * 64 * 32 * 2 / (1024 * 1024))
    assert p.focal_length_pixels == pytest.approx(32 / math.tan(math.radians(10.0)))
    assert p.angular_velocity == pytest.approx(2 * math.pi * 3000 / 60)


def test_zero_rpm_is_a_valid_static_run() -> None:
    assert make_parameters(rpm=0.0).angular_velocity == 0.0


@pytest.mark.parametrize(
    "overrides",
    [
        dict(rpm=-1.0),
        dict(frame_count=0),
        dict(frame_count=2.5),
        dict(photons_per_frame_mean=-0.1),
        dict(noise_ratio=-1.0),
        dict(field_of_view_degrees=0.0),
        dict(field_of_view_degrees=180.0),
        dict(field_of_view_degrees=float("nan")),
        dict(distance_meters=0.0),
        dict(short_term_frame_window=-1),
        dict(short_term_frame_window=201),
        dict(resolution=(32, 32)),
    ],
)
def test_invalid_parameters_are_rejected(overrides) -> None:
    with pytest.raises(InvalidParametersError):
        make_parameters(**overrides)


@pytest.mark.parametrize("width,height", [(0, 10), (10, -1), (True, 4)])
def test_invalid_resolution_is_rejected(width, height) -> None:
    with pytest.raises(InvalidParametersError):
        Resolution(width=width, height=height)


def test_invalid_parameters_error_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        make_parameters(frame_count=-5)


def test_replace_returns_a_new_validated_record() -> None:
    p = make_parameters()
    q = p.replace(distance_meters=2.5)
    assert q.distance_meters == 2.5
    assert p.distance_meters == 5.0

    with pytest.raises(InvalidParametersError):
        p.replace(distance_meters=-2.5)


def test_parameters_are_immutable() -> None:
    p = make_parameters()
    with pytest.raises(AttributeError):
        p.rpm = 10.0


def test_dict_round_trip() -> None:
    p = make_parameters(resolution=Resolution(width=48, height=24))
    data = p.to_dict()
    assert data["width"] == 48
    assert data["height"] == 24
    assert SimulationParameters.from_dict(data) == p
