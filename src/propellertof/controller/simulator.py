from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Optional

import numpy as np

from propellertof.config import FRAME_PERIOD_S, PIXEL_JITTER, Z_JITTER_M
from propellertof.controller.kernels import project_photons
from propellertof.model.errors import EmptySilhouetteError
from propellertof.model.results import SignalEvents

if TYPE_CHECKING:
    import numpy.typing as npt

    from propellertof.model.parameters import SimulationParameters

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]


def progress_interval(frame_count: int) -> int:
    """Frames between two progress notifications (1% of the run, at least one frame)."""
    return max(1, frame_count // 100)


class FrameSimulator:
    """
    Time-stepped photon simulator.

    Rotates the normalized point cloud frame by frame, draws a Poisson number of
    photons per frame, and keeps the photons that land on the sensor within the
    encodable time-of-flight range.
    """

    def __init__(
        self,
        points: npt.NDArray[np.float64],
        parameters: SimulationParameters,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        """
        Initialize the simulator.

        Args:
            points: Normalized object-space points, shape (n, 2), in meters.
            parameters: Run parameters.
            rng: Random source. A fresh, unseeded generator is used when omitted.
        """
        points = np.asarray(points, dtype=np.float64)
        if points.ndim != 2 or points.shape[1] != 2:
            raise ValueError(f"points must have shape (n, 2), got {points.shape}.")
        if points.shape[0] == 0:
            raise EmptySilhouetteError()

        self.points = points
        self.parameters = parameters
        self.rng = rng if rng is not None else np.random.default_rng()

        # Point coordinates as contiguous columns for the kernel
        self._xs = np.ascontiguousarray(points[:, 0])
        self._ys = np.ascontiguousarray(points[:, 1])

    @property
    def angle_step(self) -> float:
        """Rotation per frame in radians."""
        return self.parameters.angular_velocity * FRAME_PERIOD_S

    def theta(self, frame_index: int) -> float:
        return self.angle_step * frame_index

    def simulate_frames(self, start: int, stop: int) -> SignalEvents:
        """
        Simulate frames [start, stop) and return their accepted events.

        Events come out grouped by frame, in the order photons were drawn.
        """
        p = self.parameters
        rng = self.rng

        counts = rng.poisson(p.photons_per_frame_mean, size=stop - start)
        frames = np.repeat(np.arange(start, stop, dtype=np.int64), counts)
        n = frames.size
        if n == 0:
            return SignalEvents()

        picks = rng.integers(0, self.points.shape[0], size=n)
        z_local = rng.uniform(-Z_JITTER_M, Z_JITTER_M, size=n)
        row_jitter = rng.uniform(-PIXEL_JITTER, PIXEL_JITTER, size=n)
        col_jitter = rng.uniform(-PIXEL_JITTER, PIXEL_JITTER, size=n)

        rows, cols, codes, accepted = project_photons(
            self._xs[picks],
            self._ys[picks],
            z_local,
            frames,
            row_jitter,
            col_jitter,
            self.angle_step,
            float(p.distance_meters),
            p.focal_length_pixels,
            p.width,
            p.height,
        )

        logger.debug(f"Frames {start}-{stop}: {n} photons emitted, {int(accepted.sum())} accepted")
        return SignalEvents(
            frame_index=frames[accepted],
            row=rows[accepted],
            col=cols[accepted],
            tof_code=codes[accepted].astype(np.uint16),
        )

    def run(self, callback: Optional[ProgressCallback] = None) -> SignalEvents:
        """
        Simulate every frame of the run.

        Args:
            callback: Called with an integer percentage at every 1% of frames,
                      then once with 100 when all frames are done.

        Returns:
            All accepted events in frame order.
        """
        p = self.parameters
        step = progress_interval(p.frame_count)
        logger.info(
            f"Simulating {p.frame_count} frames at {p.rpm:.1f} RPM, "
            f"{p.photons_per_frame_mean} photons/frame, {len(self.points)} silhouette points"
        )

        parts: list[SignalEvents] = []
        for start in range(0, p.frame_count, step):
            if callback is not None:
                callback((start * 100) // p.frame_count)
            parts.append(self.simulate_frames(start, min(start + step, p.frame_count)))

        if callback is not None:
            callback(100)

        events = SignalEvents.concatenate(parts)
        logger.info(f"Simulation produced {len(events)} signal events.")
        return events
