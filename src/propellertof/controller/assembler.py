"""
Dataset Assembly
================
This module lays accepted signal events into the dense frame x pixel dataset
and adds background noise.

Why is this file needed?
------------------------
1. Layout: The dataset is the raw artifact consumed downstream (uint16,
   row-major within a frame, frames in time order, sentinel 8001 = empty).
2. Noise: Background events are drawn uniformly over frames, pixels and codes,
   and may only land in slots that are still empty, so true signal survives
   any noise density.
"""
from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Optional

import numpy as np

from propellertof.config import MAX_DATASET_MB, NO_DETECTION, NOISE_TOF_MAX, NOISE_TOF_MIN
from propellertof.controller.kernels import write_events, write_noise
from propellertof.model.errors import DatasetSizeExceededError

if TYPE_CHECKING:
    import numpy.typing as npt

    from propellertof.model.parameters import SimulationParameters
    from propellertof.model.results import SignalEvents

logger = logging.getLogger(__name__)


def check_dataset_size(parameters: SimulationParameters, max_dataset_mb: float = MAX_DATASET_MB) -> None:
    """
    Refuse datasets larger than the memory limit before anything is allocated.

    Raises:
        DatasetSizeExceededError: frame_count * width * height * 2 bytes exceeds the limit.
    """
    required = parameters.estimated_memory_mb
    if required > max_dataset_mb:
        logger.error(f"Dataset of {required:.1f} MB exceeds limit of {max_dataset_mb:.1f} MB")
        raise DatasetSizeExceededError(required_mb=required, limit_mb=max_dataset_mb)


def allocate_dataset(
    parameters: SimulationParameters,
    max_dataset_mb: float = MAX_DATASET_MB,
) -> npt.NDArray[np.uint16]:
    """Allocate the flat dataset with every slot set to the sentinel."""
    check_dataset_size(parameters, max_dataset_mb)
    return np.full(parameters.dataset_length, NO_DETECTION, dtype=np.uint16)


def write_signal(
    dataset: npt.NDArray[np.uint16],
    events: SignalEvents,
    parameters: SimulationParameters,
) -> None:
    """Write every event's code into its slot; for colliding events the later one wins."""
    if len(events) == 0:
        return
    write_events(
        dataset,
        events.frame_index,
        events.row,
        events.col,
        events.tof_code,
        parameters.width,
        parameters.height,
    )


def inject_noise(
    dataset: npt.NDArray[np.uint16],
    signal_event_count: int,
    parameters: SimulationParameters,
    rng: np.random.Generator,
) -> int:
    """
    Scatter floor(signal_event_count * noise_ratio) background events.

    Each event gets a uniform frame, row, column and a code in [1, 7999]. It is
    written only if its slot still holds the sentinel at that moment.

    Returns:
        Number of noise samples that made it into the dataset.
    """
    total = math.floor(signal_event_count * parameters.noise_ratio)
    if total <= 0:
        return 0

    frames = rng.integers(0, parameters.frame_count, size=total, dtype=np.int64)
    rows = rng.integers(0, parameters.height, size=total, dtype=np.int64)
    cols = rng.integers(0, parameters.width, size=total, dtype=np.int64)
    codes = rng.integers(NOISE_TOF_MIN, NOISE_TOF_MAX + 1, size=total).astype(np.uint16)

    indices = frames * (parameters.width * parameters.height) + rows * parameters.width + cols
    written = int(write_noise(dataset, indices, codes))
    logger.info(f"Noise: {total} events drawn, {written} written into empty slots")
    return written


def assemble_dataset(
    events: SignalEvents,
    parameters: SimulationParameters,
    rng: Optional[np.random.Generator] = None,
    max_dataset_mb: float = MAX_DATASET_MB,
) -> tuple[npt.NDArray[np.uint16], int]:
    """
    Build the complete dataset: sentinel fill, signal, then noise.

    Returns:
        dataset: Flat uint16 array of length frame_count * width * height.
        noise_written: Number of noise samples written.
    """
    rng = rng if rng is not None else np.random.default_rng()
    dataset = allocate_dataset(parameters, max_dataset_mb)
    write_signal(dataset, events, parameters)
    noise_written = inject_noise(dataset, len(events), parameters, rng)
    return dataset, noise_written
