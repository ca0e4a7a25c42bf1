"""
Silhouette Extraction
=====================
This module turns a decoded bitmap into the point set of the simulated object.

Why is this file needed?
------------------------
1. Classification: A pixel belongs to the propeller when it is mostly opaque
   and dark. The same mask drives both the simulation and the binarized
   preview shown to the user, so the two can never disagree.
2. Normalization: The pixel coordinates are re-centered on the centroid and
   rescaled to a virtual object radius in meters.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from propellertof.config import (
    ALPHA_THRESHOLD,
    LUMINANCE_THRESHOLD,
    LUMINANCE_WEIGHTS,
    OBJECT_RADIUS_M,
)
from propellertof.model.bitmap import Bitmap
from propellertof.model.errors import EmptySilhouetteError

if TYPE_CHECKING:
    import numpy.typing as npt

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Silhouette:
    """Foreground pixel coordinates (x, y) in source pixel space, and their centroid."""
    points: npt.NDArray[np.float64]
    centroid: tuple[float, float]
    image_width: int
    image_height: int

    def __len__(self) -> int:
        return int(self.points.shape[0])


def foreground_mask(bitmap: Bitmap) -> npt.NDArray[np.bool_]:
    """
    Classify every pixel as foreground (True) or background (False).

    Foreground iff alpha > 128 and 0.299 R + 0.587 G + 0.114 B < 128.
    """
    rgba = bitmap.pixels
    wr, wg, wb = LUMINANCE_WEIGHTS
    luminance = (
        wr * rgba[..., 0].astype(np.float64)
        + wg * rgba[..., 1].astype(np.float64)
        + wb * rgba[..., 2].astype(np.float64)
    )
    return (rgba[..., 3] > ALPHA_THRESHOLD) & (luminance < LUMINANCE_THRESHOLD)


def binarize_preview(bitmap: Bitmap) -> Bitmap:
    """Recolor foreground to opaque black and background to opaque white."""
    mask = foreground_mask(bitmap)
    out = np.full(bitmap.pixels.shape, 255, dtype=np.uint8)
    out[mask, :3] = 0
    return Bitmap(pixels=out)


def extract_silhouette(bitmap: Bitmap) -> Silhouette:
    """
    Collect the foreground pixels of the bitmap.

    Points are ordered row by row (y, then x), like a raster scan.

    Raises:
        EmptySilhouetteError: No pixel passed the foreground test.
    """
    mask = foreground_mask(bitmap)
    ys, xs = np.nonzero(mask)
    if xs.size == 0:
        logger.error("Silhouette extraction found no foreground pixels.")
        raise EmptySilhouetteError()

    points = np.column_stack([xs, ys]).astype(np.float64)
    centroid = (float(points[:, 0].mean()), float(points[:, 1].mean()))
    logger.info(
        f"Silhouette: {xs.size} foreground pixels of {bitmap.width}x{bitmap.height}, "
        f"centroid=({centroid[0]:.2f}, {centroid[1]:.2f})"
    )
    return Silhouette(
        points=points,
        centroid=centroid,
        image_width=bitmap.width,
        image_height=bitmap.height,
    )


def normalize_points(silhouette: Silhouette) -> npt.NDArray[np.float64]:
    """
    Re-center the silhouette on its centroid and scale it to object space.

    The larger image side maps to twice the virtual object radius, so every
    point ends up within roughly 0.8 m of the rotation axis.

    Returns:
        Array of shape (n, 2) with (x, y) offsets in meters.
    """
    radius = max(silhouette.image_width, silhouette.image_height) / 2
    scale = OBJECT_RADIUS_M / radius
    centered = silhouette.points - np.asarray(silhouette.centroid, dtype=np.float64)
    return centered * scale
