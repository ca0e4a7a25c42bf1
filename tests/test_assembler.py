from __future__ import annotations

import numpy as np
import pytest

from propellertof.config import NO_DETECTION
from propellertof.controller.assembler import (
    allocate_dataset,
    assemble_dataset,
    check_dataset_size,
    inject_noise,
    write_signal,
)
from propellertof.controller.simulator import FrameSimulator
from propellertof.model.errors import DatasetSizeExceededError
from propellertof.model.parameters import Resolution
from propellertof.model.results import SignalEvents

from conftest import make_parameters


def _events(*rows) -> SignalEvents:
    """Build events from (frame, row, col, code) tuples."""
    frames, r, c, codes = zip(*rows) if rows else ((), (), (), ())
    return SignalEvents(
        frame_index=np.asarray(frames, dtype=np.int64),
        row=np.asarray(r, dtype=np.int64),
        col=np.asarray(c, dtype=np.int64),
        tof_code=np.asarray(codes, dtype=np.uint16),
    )


def _valid(dataset: np.ndarray) -> bool:
    return bool(np.all((dataset == NO_DETECTION) | ((dataset >= 1) & (dataset <= 7999))))


def test_allocated_dataset_is_all_sentinel() -> None:
    params = make_parameters(frame_count=3, resolution=Resolution(width=5, height=2), short_term_frame_window=1)
    dataset = allocate_dataset(params)
    assert dataset.dtype == np.uint16
    assert dataset.size == 3 * 5 * 2
    assert np.all(dataset == NO_DETECTION)


def test_signal_lands_in_row_major_frame_order() -> None:
    params = make_parameters(frame_count=3, resolution=Resolution(width=5, height=2), short_term_frame_window=1)
    dataset = allocate_dataset(params)
    write_signal(dataset, _events((2, 1, 3, 777)), params)
    assert dataset[2 * 10 + 1 * 5 + 3] == 777
    assert np.count_nonzero(dataset != NO_DETECTION) == 1


def test_signal_collisions_last_write_wins() -> None:
    params = make_parameters(frame_count=1, resolution=Resolution(width=2, height=2), short_term_frame_window=1)
    dataset = allocate_dataset(params)
    write_signal(dataset, _events((0, 1, 1, 100), (0, 1, 1, 200)), params)
    assert dataset[3] == 200


def test_noise_count_is_floor_of_signal_times_ratio(rng) -> None:
    params = make_parameters(frame_count=50, noise_ratio=0.75)
    dataset = allocate_dataset(params)
    written = inject_noise(dataset, 9, params, rng)
    # floor(9 * 0.75) = 6 draws into a nearly empty dataset
    assert 1 <= written <= 6
    assert np.count_nonzero(dataset != NO_DETECTION) == written


def test_zero_noise_ratio_injects_nothing(rng) -> None:
    params = make_parameters(noise_ratio=0.0)
    dataset = allocate_dataset(params)
    assert inject_noise(dataset, 1000, params, rng) == 0
    assert np.all(dataset == NO_DETECTION)


def test_noise_never_overwrites_signal(rng) -> None:
    params = make_parameters(frame_count=4, resolution=Resolution(width=8, height=8), noise_ratio=50.0,
                             short_term_frame_window=4)
    dataset = allocate_dataset(params)

    # Every other slot carries the same synthetic code
    signal_slots = np.arange(0, dataset.size, 2)
    frames = signal_slots // 64
    rows = (signal_slots % 64) // 8
    cols = signal_slots % 8
    events = SignalEvents(
        frame_index=frames.astype(np.int64),
        row=rows.astype(np.int64),
        col=cols.astype(np.int64),
        tof_code=np.full(signal_slots.size, 4242, dtype=np.uint16),
    )
    write_signal(dataset, events, params)
    inject_noise(dataset, len(events), params, rng)

    assert np.all(dataset[signal_slots] == 4242)
    noise_slots = dataset[1::2]
    assert np.any(noise_slots != NO_DETECTION)
    assert _valid(dataset)


def test_noise_cannot_enter_a_full_dataset(rng) -> None:
    params = make_parameters(frame_count=1, resolution=Resolution(width=3, height=3), noise_ratio=10.0,
                             short_term_frame_window=1)
    slots = np.arange(9)
    events = SignalEvents(
        frame_index=np.zeros(9, dtype=np.int64),
        row=slots // 3,
        col=slots % 3,
        tof_code=np.full(9, 55, dtype=np.uint16),
    )
    dataset, noise_written = assemble_dataset(events, params, rng=rng)
    assert noise_written == 0
    assert np.all(dataset == 55)


def test_assembled_dataset_values_are_valid(rng) -> None:
    params = make_parameters(frame_count=10, noise_ratio=3.0, short_term_frame_window=5)
    events = _events((0, 0, 0, 1), (3, 10, 10, 7999), (9, 31, 31, 4000))
    dataset, noise_written = assemble_dataset(events, params, rng=rng)
    assert dataset.size == params.dataset_length
    assert noise_written <= 9
    assert _valid(dataset)


def test_size_limit_is_checked_before_allocation() -> None:
    params = make_parameters(frame_count=1000, resolution=Resolution(width=128, height=128),
                             short_term_frame_window=10)
    # 1000 * 128 * 128 * 2 bytes = 31.25 MB
    with pytest.raises(DatasetSizeExceededError) as excinfo:
        check_dataset_size(params, max_dataset_mb=16.0)
    assert excinfo.value.required_mb == pytest.approx(31.25)

    with pytest.raises(DatasetSizeExceededError):
        allocate_dataset(params, max_dataset_mb=16.0)

    check_dataset_size(params, max_dataset_mb=32.0)


def test_simulated_events_write_without_conversion(rng) -> None:
    params = make_parameters(frame_count=30, short_term_frame_window=5)
    events = FrameSimulator(np.array([[0.1, 0.2], [-0.3, 0.0]]), params, rng=rng).run()
    assert events.tof_code.dtype == np.uint16
    assert len(events) > 0

    dataset = allocate_dataset(params)
    write_signal(dataset, events, params)
    last = events.frame_index[-1] * 32 * 32 + events.row[-1] * 32 + events.col[-1]
    assert dataset[last] == events.tof_code[-1]
