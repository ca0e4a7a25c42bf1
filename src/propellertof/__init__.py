"""Time-of-flight dataset synthesis for a spinning propeller silhouette."""
from propellertof.controller.pipeline import run_simulation
from propellertof.model.bitmap import Bitmap
from propellertof.model.errors import (
    DatasetSizeExceededError,
    EmptySilhouetteError,
    InvalidParametersError,
    SimulationCancelledError,
    SimulationError,
)
from propellertof.model.parameters import Resolution, SimulationParameters
from propellertof.model.results import SimulationOutput

__all__ = [
    "Bitmap",
    "DatasetSizeExceededError",
    "EmptySilhouetteError",
    "InvalidParametersError",
    "Resolution",
    "SimulationCancelledError",
    "SimulationError",
    "SimulationOutput",
    "SimulationParameters",
    "run_simulation",
]
