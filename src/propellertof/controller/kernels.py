# kernels.py
from __future__ import annotations

import numpy as np
import numpy.typing as npt
import numba as nb

from propellertof.config import NO_DETECTION, SPEED_OF_LIGHT, TOF_CODE_MAX, TOF_UNIT_NS

# ---- JIT’d per-photon and per-sample kernels ----

@nb.njit(cache=True)
def tof_code_from_distance(dist: float) -> float:
    """Round-trip time of a distance (m) quantized to 0.256 ns steps (floored)."""
    tof_ns = 2.0 * dist / SPEED_OF_LIGHT * 1e9
    return np.floor(tof_ns / TOF_UNIT_NS)


@nb.njit(cache=True)
def project_photons(
    px: npt.NDArray[np.float64],
    py: npt.NDArray[np.float64],
    z_local: npt.NDArray[np.float64],
    frames: npt.NDArray[np.int64],
    row_jitter: npt.NDArray[np.float64],
    col_jitter: npt.NDArray[np.float64],
    angle_step: float,
    distance: float,
    f_pixel: float,
    width: int,
    height: int,
) -> tuple[npt.NDArray[np.int64], npt.NDArray[np.int64], npt.NDArray[np.int64], npt.NDArray[np.bool_]]:
    """
    Rotate, project and time a batch of photons.

    Args:
        px, py:      Sampled object-space point per photon (m).
        z_local:     Out-of-plane offset per photon (m).
        frames:      Frame index per photon.
        row_jitter:  Sub-pixel offset added to the projected row.
        col_jitter:  Sub-pixel offset added to the projected column.
        angle_step:  Rotation angle per frame (rad).
        distance:    Object-to-sensor distance along the optical axis (m).
        f_pixel:     Focal length in pixels.
        width:       Sensor width in pixels.
        height:      Sensor height in pixels.

    Returns:
        rows, cols, codes: Rounded pixel and ToF code per photon.
        accepted:          True where the pixel lies on the sensor and
                           0 < code < 8000. Other entries are undefined.
    """
    n = px.size
    rows = np.zeros(n, np.int64)
    cols = np.zeros(n, np.int64)
    codes = np.zeros(n, np.int64)
    accepted = np.zeros(n, np.bool_)

    center_row = height / 2.0
    center_col = width / 2.0

    for k in range(n):
        theta = angle_step * frames[k]
        cos_t = np.cos(theta)
        sin_t = np.sin(theta)

        x_rot = px[k] * cos_t - py[k] * sin_t
        y_rot = px[k] * sin_t + py[k] * cos_t
        z_rot = z_local[k] + distance
        if z_rot <= 0.0:
            continue  # behind the pinhole

        row = center_row - f_pixel * (y_rot / z_rot)
        col = center_col + f_pixel * (x_rot / z_rot)

        # round half up
        r = np.floor(row + row_jitter[k] + 0.5)
        c = np.floor(col + col_jitter[k] + 0.5)
        if r < 0.0 or r >= height or c < 0.0 or c >= width:
            continue

        code = tof_code_from_distance(np.sqrt(x_rot * x_rot + y_rot * y_rot + z_rot * z_rot))
        if code <= 0.0 or code >= TOF_CODE_MAX:
            continue

        rows[k] = np.int64(r)
        cols[k] = np.int64(c)
        codes[k] = np.int64(code)
        accepted[k] = True

    return rows, cols, codes, accepted


@nb.njit(cache=True)
def write_events(
    dataset: npt.NDArray[np.uint16],
    frames: npt.NDArray[np.int64],
    rows: npt.NDArray[np.int64],
    cols: npt.NDArray[np.int64],
    codes: npt.NDArray[np.uint16],
    width: int,
    height: int,
) -> None:
    """Write events into the flat dataset in order (later events win)."""
    frame_size = width * height
    for k in range(frames.size):
        dataset[frames[k] * frame_size + rows[k] * width + cols[k]] = codes[k]


@nb.njit(cache=True)
def write_noise(
    dataset: npt.NDArray[np.uint16],
    indices: npt.NDArray[np.int64],
    codes: npt.NDArray[np.uint16],
) -> int:
    """
    Write noise samples into slots that still hold the sentinel.

    Returns the number of samples actually written.
    """
    written = 0
    for k in range(indices.size):
        idx = indices[k]
        if dataset[idx] == NO_DETECTION:
            dataset[idx] = codes[k]
            written += 1
    return written


@nb.njit(cache=True)
def accumulate_hits(
    dataset: npt.NDArray[np.uint16],
    frame_count: int,
    pixel_count: int,
    short_term_window: int,
) -> tuple[npt.NDArray[np.uint32], npt.NDArray[np.uint32]]:
    """
    Count non-sentinel samples per pixel over all frames and over the leading window.

    Returns:
        accumulated, short_term: Flat per-pixel counts, shape (pixel_count,).
    """
    accumulated = np.zeros(pixel_count, np.uint32)
    short_term = np.zeros(pixel_count, np.uint32)
    for f in range(frame_count):
        base = f * pixel_count
        in_window = f < short_term_window
        for p in range(pixel_count):
            if dataset[base + p] != NO_DETECTION:
                accumulated[p] += 1
                if in_window:
                    short_term[p] += 1
    return accumulated, short_term
