from __future__ import annotations

import os

import matplotlib
matplotlib.use("Agg")

import matplotlib.image as mpimg
import numpy as np
import pytest

from propellertof.config import NO_DETECTION
from propellertof.controller.pipeline import run_simulation
from propellertof.model.io import IOManager
from propellertof.model.parameters import Resolution

from conftest import bar_bitmap, make_parameters


@pytest.fixture
def small_output(rng):
    params = make_parameters(frame_count=50, resolution=Resolution(width=16, height=12), short_term_frame_window=5)
    return run_simulation(bar_bitmap(), params, rng=rng)


def test_dataset_is_raw_little_endian_uint16(tmp_path) -> None:
    dataset = np.array([NO_DETECTION, 1, 7999, 0x0102], dtype=np.uint16)
    path = tmp_path / "data.bin"
    IOManager.save_dataset(dataset, str(path))

    raw = path.read_bytes()
    assert len(raw) == 8
    assert raw[:2] == (8001).to_bytes(2, "little")
    assert raw[6:] == bytes([0x02, 0x01])


def test_dataset_round_trip_checks_length(tmp_path, small_output) -> None:
    path = str(tmp_path / "data.bin")
    IOManager.save_dataset(small_output.dataset, path)
    assert os.path.getsize(path) == small_output.parameters.dataset_length * 2

    loaded = IOManager.load_dataset(path, small_output.parameters)
    np.testing.assert_array_equal(loaded, small_output.dataset)

    with pytest.raises(ValueError):
        IOManager.load_dataset(path, small_output.parameters.replace(frame_count=51))


def test_save_output_writes_artifact_and_images(tmp_path, small_output) -> None:
    path = IOManager.save_output(small_output, str(tmp_path / "out"))
    assert os.path.basename(path) == "drone_propeller_tof.bin"
    for name in ("accumulated", "ground_truth", "short_term"):
        image = mpimg.imread(str(tmp_path / "out" / f"{name}.png"))
        assert image.shape[:2] == (12, 16)


def test_result_archive_round_trip(tmp_path, small_output) -> None:
    path = str(tmp_path / "result.h5")
    IOManager.save_result(small_output, path)
    loaded = IOManager.load_result(path)

    assert loaded.parameters == small_output.parameters
    np.testing.assert_array_equal(loaded.dataset, small_output.dataset)
    np.testing.assert_array_equal(loaded.histograms.ground_truth, small_output.histograms.ground_truth)
    np.testing.assert_array_equal(loaded.images.accumulated, small_output.images.accumulated)
    assert loaded.signal_event_count == small_output.signal_event_count


def test_load_result_rejects_non_hdf5(tmp_path) -> None:
    path = tmp_path / "not.h5"
    path.write_bytes(b"plain bytes")
    with pytest.raises(ValueError):
        IOManager.load_result(str(path))


def test_load_bitmap_from_png(tmp_path) -> None:
    bitmap = bar_bitmap(20, 10, thickness=2)
    path = str(tmp_path / "propeller.png")
    IOManager.save_bitmap(bitmap, path)

    loaded = IOManager.load_bitmap(path)
    np.testing.assert_array_equal(loaded.pixels, bitmap.pixels)


def test_load_bitmap_missing_file(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        IOManager.load_bitmap(str(tmp_path / "missing.png"))
