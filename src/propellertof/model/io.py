"""
Input/Output Manager
Decodes source images and persists simulation results: the raw ToF artifact,
the visualization PNGs and an HDF5 archive of a complete run.
"""
import logging
import os
from importlib.metadata import version, PackageNotFoundError

import h5py
import numpy as np
import matplotlib.image as mpimg

from propellertof.config import DATASET_DTYPE, DEFAULT_DATASET_FILENAME
from propellertof.controller.visualization import render_images
from propellertof.model.bitmap import Bitmap
from propellertof.model.parameters import SimulationParameters
from propellertof.model.results import HitHistograms, SimulationOutput

# Get module logger
logger = logging.getLogger(__name__)

try:
    APP_VERSION = version("propellertof")
except PackageNotFoundError:
    APP_VERSION = "0.0.0-dev"


class IOManager:

    @staticmethod
    def load_bitmap(filepath: str) -> Bitmap:
        """Decode an image file (PNG natively, other formats through Pillow) into RGBA."""
        logger.info(f"Loading source image: {filepath}")
        if not os.path.exists(filepath):
            raise FileNotFoundError(f"Image '{filepath}' does not exist.")
        image = mpimg.imread(filepath)
        bitmap = Bitmap.from_array(image)
        logger.debug(f"Decoded {bitmap.width}x{bitmap.height} image")
        return bitmap

    @staticmethod
    def save_bitmap(bitmap: Bitmap, filepath: str) -> None:
        mpimg.imsave(filepath, bitmap.pixels)
        logger.info(f"Image saved to: {filepath}")

    @staticmethod
    def save_dataset(dataset: np.ndarray, filepath: str) -> None:
        """
        Write the dataset as raw little-endian uint16 samples without a header.
        """
        data = np.asarray(dataset).astype(DATASET_DTYPE, copy=False)
        data.tofile(filepath)
        logger.info(f"Dataset ({data.size} samples, {data.nbytes / (1024 * 1024):.1f} MB) saved to: {filepath}")

    @staticmethod
    def load_dataset(filepath: str, parameters: SimulationParameters) -> np.ndarray:
        """
        Read a raw artifact back as native uint16.

        Raises:
            ValueError: The file length does not match frame_count * width * height samples.
        """
        data = np.fromfile(filepath, dtype=DATASET_DTYPE)
        if data.size != parameters.dataset_length:
            msg = (f"File '{filepath}' holds {data.size} samples, "
                   f"expected {parameters.dataset_length} for the given parameters.")
            logger.error(msg)
            raise ValueError(msg)
        return data.astype(np.uint16)

    @staticmethod
    def save_images(output: SimulationOutput, directory: str) -> dict[str, str]:
        """
        Save the three visualization images as PNG files.

        Returns:
            Mapping of image name to written path.
        """
        os.makedirs(directory, exist_ok=True)
        paths = {}
        for name, image in output.images.as_dict().items():
            path = os.path.join(directory, f"{name}.png")
            mpimg.imsave(path, image)
            paths[name] = path
        logger.info(f"Visualization images saved to: {directory}")
        return paths

    @staticmethod
    def save_output(output: SimulationOutput, directory: str, filename: str = DEFAULT_DATASET_FILENAME) -> str:
        """Save the raw artifact and the images into one directory; returns the artifact path."""
        os.makedirs(directory, exist_ok=True)
        path = os.path.join(directory, filename)
        IOManager.save_dataset(output.dataset, path)
        IOManager.save_images(output, directory)
        return path

    @staticmethod
    def save_result(output: SimulationOutput, filepath: str) -> None:
        logger.info(f"Saving result archive to: {filepath}")
        try:
            with h5py.File(filepath, "w") as f:
                f.attrs["version"] = APP_VERSION
                f.attrs["signal_event_count"] = output.signal_event_count
                f.attrs["noise_event_count"] = output.noise_event_count

                # --- 1. PARAMETERS ---
                grp_params = f.create_group("parameters")
                for key, val in output.parameters.to_dict().items():
                    grp_params.attrs[key] = val

                # --- 2. DATASET ---
                p = output.parameters
                f.create_dataset(
                    "dataset",
                    data=output.dataset.reshape(p.frame_count, p.height, p.width),
                    compression="gzip",
                )

                # --- 3. HISTOGRAMS ---
                grp_hist = f.create_group("histograms")
                for name, hist in output.histograms.as_dict().items():
                    grp_hist.create_dataset(name, data=hist)

        except Exception as e:
            logger.exception(f"Failed to save result archive: {e}")
            raise

        logger.info(f"Result archive saved to: {filepath}")

    @staticmethod
    def load_result(filepath: str) -> SimulationOutput:
        logger.info(f"Loading result archive from: {filepath}")
        if not h5py.is_hdf5(filepath):
            msg = f"File '{filepath}' is not a valid HDF5 file."
            logger.error(msg)
            raise ValueError(msg)

        with h5py.File(filepath, "r") as f:
            values = {}
            for key, val in f["parameters"].attrs.items():
                # HDF5 returns numpy scalars, convert to native python
                values[key] = val.item() if hasattr(val, "item") else val
            parameters = SimulationParameters.from_dict(values)

            dataset = f["dataset"][:].reshape(-1).astype(np.uint16)
            grp_hist = f["histograms"]
            histograms = HitHistograms(
                accumulated=grp_hist["accumulated"][:],
                ground_truth=grp_hist["ground_truth"][:],
                short_term=grp_hist["short_term"][:],
            )
            signal_count = int(f.attrs.get("signal_event_count", 0))
            noise_count = int(f.attrs.get("noise_event_count", 0))

        return SimulationOutput(
            parameters=parameters,
            dataset=dataset,
            histograms=histograms,
            images=render_images(histograms),
            signal_event_count=signal_count,
            noise_event_count=noise_count,
        )
