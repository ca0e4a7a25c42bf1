"""
Simulation Results (Data Model)
===============================
This module defines the containers that flow out of a simulation run.

Classes:
    SignalEvents: Accepted photon hits, stored column-wise.
    HitHistograms: Per-pixel hit counts (accumulated, ground truth, short-term).
    VisualizationImages: Colorized RGBA images of the histograms.
    SimulationOutput: The terminal success result handed to the caller.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np
import matplotlib.pyplot as plt

from propellertof.model.parameters import SimulationParameters

if TYPE_CHECKING:
    import numpy.typing as npt


@dataclass
class SignalEvents:
    """
    Accepted photon hits in emission order.

    One entry per event across the four arrays; within a frame the order is the
    order in which photons were drawn.
    """
    frame_index: npt.NDArray[np.int64] = field(default_factory=lambda: np.empty(0, dtype=np.int64))
    row: npt.NDArray[np.int64] = field(default_factory=lambda: np.empty(0, dtype=np.int64))
    col: npt.NDArray[np.int64] = field(default_factory=lambda: np.empty(0, dtype=np.int64))
    tof_code: npt.NDArray[np.uint16] = field(default_factory=lambda: np.empty(0, dtype=np.uint16))

    def __len__(self) -> int:
        return int(self.frame_index.size)

    @classmethod
    def concatenate(cls, parts: list[SignalEvents]) -> SignalEvents:
        if not parts:
            return cls()
        return cls(
            frame_index=np.concatenate([p.frame_index for p in parts]),
            row=np.concatenate([p.row for p in parts]),
            col=np.concatenate([p.col for p in parts]),
            tof_code=np.concatenate([p.tof_code for p in parts]),
        )


@dataclass
class HitHistograms:
    """Three (height, width) count arrays over the sensor grid."""
    accumulated: npt.NDArray[np.uint32]
    ground_truth: npt.NDArray[np.uint32]
    short_term: npt.NDArray[np.uint32]

    def as_dict(self) -> dict[str, npt.NDArray[np.uint32]]:
        return {
            "accumulated": self.accumulated,
            "ground_truth": self.ground_truth,
            "short_term": self.short_term,
        }


@dataclass
class VisualizationImages:
    """Three (height, width, 4) uint8 RGBA images."""
    accumulated: npt.NDArray[np.uint8]
    ground_truth: npt.NDArray[np.uint8]
    short_term: npt.NDArray[np.uint8]

    def as_dict(self) -> dict[str, npt.NDArray[np.uint8]]:
        return {
            "accumulated": self.accumulated,
            "ground_truth": self.ground_truth,
            "short_term": self.short_term,
        }


@dataclass
class SimulationOutput:
    """
    Terminal result of a successful run.

    ``dataset`` is the flat uint16 array of length frame_count * width * height,
    row-major within a frame, frames in ascending time order.
    """
    parameters: SimulationParameters
    dataset: npt.NDArray[np.uint16]
    histograms: HitHistograms
    images: VisualizationImages
    signal_event_count: int = 0
    noise_event_count: int = 0

    def frames(self) -> npt.NDArray[np.uint16]:
        """Dataset viewed as (frame_count, height, width)."""
        p = self.parameters
        return self.dataset.reshape(p.frame_count, p.height, p.width)

    def plot(self) -> None:
        """
        Show the three visualization images side by side.
        """
        plt.rcParams["figure.constrained_layout.use"] = True
        fig, axes = plt.subplots(1, 3, figsize=(12, 4.5))

        titles = {
            "accumulated": "Accumulated (signal + noise)",
            "ground_truth": "Ground truth (signal)",
            "short_term": f"Short-term ({self.parameters.short_term_frame_window} frames)",
        }
        for ax, (key, image) in zip(axes, self.images.as_dict().items()):
            ax.imshow(image, interpolation="nearest")
            ax.set_title(titles[key])
            ax.set_axis_off()

        fig.suptitle(f"{self.parameters.rpm:.0f} RPM, {self.parameters.frame_count} frames")
        plt.show()
