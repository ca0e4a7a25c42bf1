"""
Configuration & Constants
=========================
This module serves as the central registry for the fixed constants of the
simulated sensor.

Why is this file needed?
------------------------
1. Single source: The frame period, timing quantum, code range and sentinel
   are shared by the simulator, the assembler, the renderer and the I/O
   layer. They must never drift apart.
2. JIT kernels: numba freezes module-level floats at compile time, so the
   kernels read their constants from here instead of taking them as
   arguments.

Exports:
    FRAME_PERIOD_S (float): Capture period of one frame (50 kHz).
    NO_DETECTION (int): Dataset sentinel for an empty frame-pixel slot.
    MAX_DATASET_MB (float): Default memory limit for the dense dataset.
"""

# --- Sensor timing ---
FRAME_PERIOD_S: float = 20e-6
SPEED_OF_LIGHT: float = 3e8  # m/s
TOF_UNIT_NS: float = 0.256  # one code step in nanoseconds

# --- Dataset encoding ---
TOF_CODE_MAX: int = 8000  # valid codes are strictly below this
NO_DETECTION: int = 8001
NOISE_TOF_MIN: int = 1
NOISE_TOF_MAX: int = 7999
DATASET_DTYPE: str = "<u2"  # little-endian uint16, no header

# --- Object geometry ---
OBJECT_RADIUS_M: float = 0.8
Z_JITTER_M: float = 0.025
PIXEL_JITTER: float = 0.4

# --- Silhouette classification ---
ALPHA_THRESHOLD: int = 128  # foreground needs alpha above this
LUMINANCE_THRESHOLD: int = 128  # and luminance below this
LUMINANCE_WEIGHTS: tuple[float, float, float] = (0.299, 0.587, 0.114)

# --- Resources ---
MAX_DATASET_MB: float = 1024.0
DEFAULT_DATASET_FILENAME: str = "drone_propeller_tof.bin"
