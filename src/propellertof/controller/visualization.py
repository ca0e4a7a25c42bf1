from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np

from propellertof.controller.kernels import accumulate_hits
from propellertof.model.results import HitHistograms, VisualizationImages

if TYPE_CHECKING:
    import numpy.typing as npt

    from propellertof.model.parameters import SimulationParameters
    from propellertof.model.results import SignalEvents

logger = logging.getLogger(__name__)

# Jet ramp: dark blue -> blue -> cyan -> yellow -> red -> fading red
JET_BREAKPOINTS = (0.0, 0.125, 0.375, 0.625, 0.875, 1.0)
JET_RED = (0.0, 0.0, 0.0, 1.0, 1.0, 0.75)
JET_GREEN = (0.0, 0.0, 1.0, 1.0, 0.0, 0.0)
JET_BLUE = (0.5, 1.0, 1.0, 0.0, 0.0, 0.0)


def build_histograms(
    dataset: npt.NDArray[np.uint16],
    events: SignalEvents,
    parameters: SimulationParameters,
) -> HitHistograms:
    """
    Count hits per sensor pixel.

    accumulated:  non-sentinel slots over all frames (signal + noise).
    ground_truth: one count per emitted signal event, collisions included.
    short_term:   like accumulated, limited to the first short_term_frame_window frames.
    """
    p = parameters
    pixel_count = p.width * p.height

    accumulated, short_term = accumulate_hits(dataset, p.frame_count, pixel_count, p.short_term_frame_window)

    ground_truth = np.bincount(
        events.row * p.width + events.col,
        minlength=pixel_count,
    ).astype(np.uint32)

    shape = (p.height, p.width)
    return HitHistograms(
        accumulated=accumulated.reshape(shape),
        ground_truth=ground_truth.reshape(shape),
        short_term=short_term.reshape(shape),
    )


def jet(t: npt.ArrayLike) -> npt.NDArray[np.float64]:
    """
    Map t in [0, 1] (clamped) to RGB in [0, 1].

    Returns:
        Array of shape t.shape + (3,).
    """
    t = np.clip(np.asarray(t, dtype=np.float64), 0.0, 1.0)
    return np.stack(
        [
            np.interp(t, JET_BREAKPOINTS, JET_RED),
            np.interp(t, JET_BREAKPOINTS, JET_GREEN),
            np.interp(t, JET_BREAKPOINTS, JET_BLUE),
        ],
        axis=-1,
    )


def colorize(histogram: npt.NDArray) -> npt.NDArray[np.uint8]:
    """
    Colorize a count histogram with square-root compression and the jet ramp.

    Returns:
        RGBA uint8 image with the histogram's shape, fully opaque.
    """
    counts = np.asarray(histogram, dtype=np.float64)
    max_count = counts.max() if counts.size else 0.0
    if max_count == 0:
        max_count = 1.0

    rgb = jet(np.sqrt(counts / max_count))
    image = np.empty(counts.shape + (4,), dtype=np.uint8)
    image[..., :3] = np.clip(np.rint(rgb * 255.0), 0, 255).astype(np.uint8)
    image[..., 3] = 255
    return image


def render_images(histograms: HitHistograms) -> VisualizationImages:
    return VisualizationImages(
        accumulated=colorize(histograms.accumulated),
        ground_truth=colorize(histograms.ground_truth),
        short_term=colorize(histograms.short_term),
    )
