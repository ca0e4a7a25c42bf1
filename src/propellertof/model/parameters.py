"""
Simulation Parameters (Data Model)
==================================
This module defines the immutable parameter record of one simulation run.

Why is this file needed?
------------------------
1. Validation: The record is checked once at construction, so the simulator
   never has to defend against a zero FOV tangent or an empty sensor.
2. Immutability: A run reads one frozen record from start to finish. The UI's
   keyed updates become ``replace(...)``, which builds and validates a new one.

Classes:
    Resolution: Sensor pixel grid.
    SimulationParameters: The full parameter record.
"""
from __future__ import annotations

import dataclasses
import math
import numbers
from dataclasses import dataclass, field
from typing import Any

from propellertof.model.errors import InvalidParametersError


BYTES_PER_SAMPLE = 2


def _is_int(value: Any) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def _require_finite(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidParametersError(f"{name} must be a number, got {value!r}.")
    if not math.isfinite(value):
        raise InvalidParametersError(f"{name} must be finite, got {value!r}.")
    return float(value)


@dataclass(frozen=True)
class Resolution:
    width: int = 128
    height: int = 128

    def __post_init__(self) -> None:
        for name in ("width", "height"):
            value = getattr(self, name)
            if not _is_int(value) or value <= 0:
                raise InvalidParametersError(f"Resolution {name} must be a positive integer, got {value!r}.")

    @property
    def pixel_count(self) -> int:
        return self.width * self.height


@dataclass(frozen=True)
class SimulationParameters:
    """
    Parameters of one simulation run.

    Attributes:
        rpm: Rotation speed in revolutions per minute. Zero keeps the object static.
        frame_count: Number of 20 µs frames to simulate.
        resolution: Sensor pixel grid.
        photons_per_frame_mean: Poisson mean of emitted photons per frame.
        noise_ratio: Background events injected per accepted signal event.
        field_of_view_degrees: Horizontal field of view of the pinhole camera.
        short_term_frame_window: Number of leading frames in the short-term image.
        distance_meters: Object-to-sensor distance along the optical axis.
    """
    rpm: float = 3000.0
    frame_count: int = 50000
    resolution: Resolution = field(default_factory=Resolution)
    photons_per_frame_mean: float = 10.0
    noise_ratio: float = 1.0
    field_of_view_degrees: float = 20.0
    short_term_frame_window: int = 100
    distance_meters: float = 5.0

    def __post_init__(self) -> None:
        if not isinstance(self.resolution, Resolution):
            raise InvalidParametersError(f"resolution must be a Resolution, got {self.resolution!r}.")

        if not _is_int(self.frame_count) or self.frame_count <= 0:
            raise InvalidParametersError(f"frame_count must be a positive integer, got {self.frame_count!r}.")

        if _require_finite("rpm", self.rpm) < 0.0:
            raise InvalidParametersError(f"rpm must not be negative, got {self.rpm!r}.")

        if _require_finite("photons_per_frame_mean", self.photons_per_frame_mean) < 0.0:
            raise InvalidParametersError(
                f"photons_per_frame_mean must not be negative, got {self.photons_per_frame_mean!r}."
            )

        if _require_finite("noise_ratio", self.noise_ratio) < 0.0:
            raise InvalidParametersError(f"noise_ratio must not be negative, got {self.noise_ratio!r}.")

        # tan(fov/2) has to be finite and positive
        fov = _require_finite("field_of_view_degrees", self.field_of_view_degrees)
        if not 0.0 < fov < 180.0:
            raise InvalidParametersError(
                f"field_of_view_degrees must lie in (0, 180), got {self.field_of_view_degrees!r}."
            )

        if _require_finite("distance_meters", self.distance_meters) <= 0.0:
            raise InvalidParametersError(f"distance_meters must be positive, got {self.distance_meters!r}.")

        window = self.short_term_frame_window
        if not _is_int(window) or not 0 <= window <= self.frame_count:
            raise InvalidParametersError(
                f"short_term_frame_window must be an integer in [0, {self.frame_count}], got {window!r}."
            )

    @property
    def width(self) -> int:
        return self.resolution.width

    @property
    def height(self) -> int:
        return self.resolution.height

    @property
    def dataset_length(self) -> int:
        """Number of uint16 samples in the dense dataset."""
        return self.frame_count * self.resolution.pixel_count

    @property
    def estimated_memory_mb(self) -> float:
        return self.dataset_length * BYTES_PER_SAMPLE / (1024 * 1024)

    @property
    def focal_length_pixels(self) -> float:
        return (self.width / 2) / math.tan(self.field_of_view_degrees * math.pi / 360)

    @property
    def angular_velocity(self) -> float:
        """Rotation speed in rad/s."""
        return 2 * math.pi * self.rpm / 60.0

    def replace(self, **changes: Any) -> SimulationParameters:
        """Return a new, validated record with the given fields changed."""
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        data = dataclasses.asdict(self)
        resolution = data.pop("resolution")
        data["width"] = resolution["width"]
        data["height"] = resolution["height"]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SimulationParameters:
        values = dict(data)
        resolution = Resolution(width=int(values.pop("width")), height=int(values.pop("height")))
        return cls(
            rpm=float(values["rpm"]),
            frame_count=int(values["frame_count"]),
            resolution=resolution,
            photons_per_frame_mean=float(values["photons_per_frame_mean"]),
            noise_ratio=float(values["noise_ratio"]),
            field_of_view_degrees=float(values["field_of_view_degrees"]),
            short_term_frame_window=int(values["short_term_frame_window"]),
            distance_meters=float(values["distance_meters"]),
        )
