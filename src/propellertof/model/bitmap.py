from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from propellertof.model.errors import InvalidParametersError

if TYPE_CHECKING:
    import numpy.typing as npt


@dataclass(frozen=True, eq=False)
class Bitmap:
    """
    Decoded RGBA source image.

    ``pixels`` has shape (height, width, 4) and dtype uint8; the simulator only
    reads it.
    """
    pixels: npt.NDArray[np.uint8]

    def __post_init__(self) -> None:
        pixels = self.pixels
        if not isinstance(pixels, np.ndarray) or pixels.dtype != np.uint8:
            raise InvalidParametersError("Bitmap pixels must be a uint8 numpy array.")
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise InvalidParametersError(f"Bitmap pixels must have shape (height, width, 4), got {pixels.shape}.")
        if pixels.shape[0] == 0 or pixels.shape[1] == 0:
            raise InvalidParametersError("Bitmap must not be empty.")

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @classmethod
    def from_rgba_bytes(cls, width: int, height: int, data: bytes) -> Bitmap:
        """Wrap a flat RGBA buffer (row-major, 4 bytes per pixel)."""
        if width <= 0 or height <= 0:
            raise InvalidParametersError(f"Bitmap size must be positive, got {width}x{height}.")
        expected = width * height * 4
        if len(data) != expected:
            raise InvalidParametersError(f"Expected {expected} RGBA bytes for {width}x{height}, got {len(data)}.")
        pixels = np.frombuffer(data, dtype=np.uint8).reshape(height, width, 4).copy()
        return cls(pixels=pixels)

    @classmethod
    def from_array(cls, image: npt.NDArray) -> Bitmap:
        """
        Convert a decoded image array into RGBA uint8.

        Accepts grayscale (H, W), RGB (H, W, 3) or RGBA (H, W, 4) arrays, either
        uint8 or float in [0, 1] as returned by ``matplotlib.image.imread``.
        """
        image = np.asarray(image)
        if np.issubdtype(image.dtype, np.floating):
            image = np.clip(np.rint(image * 255.0), 0, 255).astype(np.uint8)
        elif image.dtype != np.uint8:
            raise InvalidParametersError(f"Unsupported image dtype {image.dtype}.")

        if image.ndim == 2:
            image = np.stack([image, image, image], axis=-1)
        if image.ndim != 3 or image.shape[2] not in (3, 4):
            raise InvalidParametersError(f"Unsupported image shape {image.shape}.")
        if image.shape[2] == 3:
            alpha = np.full(image.shape[:2] + (1,), 255, dtype=np.uint8)
            image = np.concatenate([image, alpha], axis=-1)

        return cls(pixels=np.ascontiguousarray(image))
