"""
Simulation Pipeline
===================
This module chains the components of one run into a single synchronous call.

Why is this file needed?
------------------------
1. Ownership: Every buffer of a run (points, events, dataset, histograms) is
   created and owned here; nothing is shared between runs.
2. Threading: The function has no Qt dependency, so it can run inline (CLI,
   tests) or inside a ``SimulationWorker`` thread.
"""
from __future__ import annotations

import logging
import time
from typing import Optional

import numpy as np

from propellertof.config import MAX_DATASET_MB
from propellertof.controller.assembler import assemble_dataset, check_dataset_size
from propellertof.controller.silhouette import extract_silhouette, normalize_points
from propellertof.controller.simulator import FrameSimulator, ProgressCallback
from propellertof.controller.visualization import build_histograms, render_images
from propellertof.model.bitmap import Bitmap
from propellertof.model.parameters import SimulationParameters
from propellertof.model.results import SimulationOutput

logger = logging.getLogger(__name__)


def run_simulation(
    bitmap: Bitmap,
    parameters: SimulationParameters,
    progress_callback: Optional[ProgressCallback] = None,
    rng: Optional[np.random.Generator] = None,
    max_dataset_mb: float = MAX_DATASET_MB,
) -> SimulationOutput:
    """
    Run one complete simulation.

    Args:
        bitmap: Decoded RGBA source image.
        parameters: Validated run parameters.
        progress_callback: Receives integer percentages 0..100, ending with 100
                           once the dataset and images are complete.
        rng: Random source; a fresh unseeded generator when omitted.
        max_dataset_mb: Memory limit for the dense dataset.

    Returns:
        The dataset, histograms and visualization images.

    Raises:
        EmptySilhouetteError: The image has no foreground pixels.
        DatasetSizeExceededError: The dataset would exceed ``max_dataset_mb``.
    """
    started = time.perf_counter()
    rng = rng if rng is not None else np.random.default_rng()

    # 1. Fail fast before any frame is simulated
    check_dataset_size(parameters, max_dataset_mb)
    silhouette = extract_silhouette(bitmap)
    points = normalize_points(silhouette)

    # 2. Signal
    def frame_progress(percentage: int) -> None:
        # 100 is sent once the images exist
        if progress_callback is not None and percentage < 100:
            progress_callback(percentage)

    simulator = FrameSimulator(points, parameters, rng=rng)
    events = simulator.run(callback=frame_progress)

    # 3. Dataset + noise
    dataset, noise_written = assemble_dataset(events, parameters, rng=rng, max_dataset_mb=max_dataset_mb)

    # 4. Images
    histograms = build_histograms(dataset, events, parameters)
    images = render_images(histograms)
    if progress_callback is not None:
        progress_callback(100)

    logger.info(
        f"Run finished in {time.perf_counter() - started:.2f} s: "
        f"{len(events)} signal events, {noise_written} noise samples, {dataset.size} dataset samples"
    )
    return SimulationOutput(
        parameters=parameters,
        dataset=dataset,
        histograms=histograms,
        images=images,
        signal_event_count=len(events),
        noise_event_count=noise_written,
    )
