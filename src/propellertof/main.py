"""
Command-Line Caller
===================
Decodes a propeller image, runs one simulation and writes the results.

Why is this file needed?
------------------------
The simulation core has no user interface of its own. This module plays the
caller's part: it builds the parameter record from flags, reports progress
through the log and persists the binary artifact and images.

Usage:
    $ propellertof propeller.png --out-dir out --frames 5000 --rpm 3000
"""
import argparse
import logging
import os
import sys
from typing import Optional, Sequence

import numpy as np

from propellertof.config import MAX_DATASET_MB
from propellertof.controller.pipeline import run_simulation
from propellertof.controller.silhouette import binarize_preview
from propellertof.logging_config import setup_logging
from propellertof.model.errors import SimulationError
from propellertof.model.io import IOManager
from propellertof.model.parameters import Resolution, SimulationParameters

logger = logging.getLogger(__name__)

DEFAULTS = SimulationParameters()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="propellertof",
        description="Synthesize a raw time-of-flight dataset of a spinning propeller silhouette.",
    )
    parser.add_argument("image", help="Propeller image (dark shape on a light or transparent background)")
    parser.add_argument("--out-dir", default="out", help="Output directory")
    parser.add_argument("--rpm", type=float, default=DEFAULTS.rpm)
    parser.add_argument("--frames", type=int, default=DEFAULTS.frame_count, help="Number of 20 us frames")
    parser.add_argument("--resolution", type=int, default=DEFAULTS.width, help="Sensor width in pixels")
    parser.add_argument("--height", type=int, default=None, help="Sensor height (defaults to the width)")
    parser.add_argument("--photons", type=float, default=DEFAULTS.photons_per_frame_mean,
                        help="Mean photons per frame")
    parser.add_argument("--noise-ratio", type=float, default=DEFAULTS.noise_ratio)
    parser.add_argument("--fov", type=float, default=DEFAULTS.field_of_view_degrees,
                        help="Horizontal field of view in degrees")
    parser.add_argument("--short-term", type=int, default=None,
                        help=f"Frames in the short-term image (default: {DEFAULTS.short_term_frame_window}, "
                             "at most the frame count)")
    parser.add_argument("--distance", type=float, default=DEFAULTS.distance_meters, help="Distance in meters")
    parser.add_argument("--seed", type=int, default=None, help="Seed for a reproducible run")
    parser.add_argument("--max-memory-mb", type=float, default=MAX_DATASET_MB)
    parser.add_argument("--hdf5", action="store_true", help="Also write result.h5")
    parser.add_argument("--preview", action="store_true", help="Also write the binarized silhouette")
    parser.add_argument("--show", action="store_true", help="Show the images when done")
    parser.add_argument("--log-file", default=None)
    parser.add_argument("--verbose", action="store_true")
    return parser


def parameters_from_args(args: argparse.Namespace) -> SimulationParameters:
    height = args.height if args.height is not None else args.resolution
    short_term = args.short_term
    if short_term is None:
        short_term = min(DEFAULTS.short_term_frame_window, args.frames)
    return SimulationParameters(
        rpm=args.rpm,
        frame_count=args.frames,
        resolution=Resolution(width=args.resolution, height=height),
        photons_per_frame_mean=args.photons,
        noise_ratio=args.noise_ratio,
        field_of_view_degrees=args.fov,
        short_term_frame_window=short_term,
        distance_meters=args.distance,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(level=logging.DEBUG if args.verbose else logging.INFO, log_file=args.log_file)

    last_decile = [-1]

    def report(percentage: int) -> None:
        # The core reports every 1%, the log every 10%
        decile = percentage // 10
        if decile > last_decile[0]:
            last_decile[0] = decile
            logger.info(f"Progress: {percentage} %")

    try:
        parameters = parameters_from_args(args)
        logger.info(f"Estimated dataset size: {parameters.estimated_memory_mb:.1f} MB")
        bitmap = IOManager.load_bitmap(args.image)

        if args.preview:
            os.makedirs(args.out_dir, exist_ok=True)
            IOManager.save_bitmap(binarize_preview(bitmap), os.path.join(args.out_dir, "silhouette.png"))

        output = run_simulation(
            bitmap,
            parameters,
            progress_callback=report,
            rng=np.random.default_rng(args.seed),
            max_dataset_mb=args.max_memory_mb,
        )
    except (SimulationError, OSError) as e:
        logger.error(f"Simulation failed: {e}")
        return 1

    path = IOManager.save_output(output, args.out_dir)
    logger.info(f"Binary artifact: {path}")
    if args.hdf5:
        IOManager.save_result(output, os.path.join(args.out_dir, "result.h5"))

    if args.show:
        output.plot()
    return 0


if __name__ == "__main__":
    sys.exit(main())
