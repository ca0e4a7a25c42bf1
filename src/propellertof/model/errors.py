"""
Error Kinds
===========
Every failure of a simulation run is terminal for that run. The worker turns
these into a single human-readable failure message for the caller.
"""


class SimulationError(Exception):
    """Base class for all failures of a simulation run."""


class EmptySilhouetteError(SimulationError):
    """The source image has no dark, mostly-opaque pixels."""

    def __init__(self, message: str = "No points found in image. Please use an image with a clear propeller shape.") -> None:
        super().__init__(message)


class InvalidParametersError(SimulationError, ValueError):
    """A parameter record or bitmap would produce nonsensical geometry."""


class DatasetSizeExceededError(SimulationError):
    """The dense dataset would not fit into the configured memory limit."""

    def __init__(self, required_mb: float, limit_mb: float) -> None:
        self.required_mb = required_mb
        self.limit_mb = limit_mb
        super().__init__(
            f"Dataset needs {required_mb:.1f} MB which exceeds the limit of {limit_mb:.1f} MB. "
            f"Reduce the frame count or the resolution."
        )


class SimulationCancelledError(SimulationError):
    """Raised from the progress hook of a worker that has been stopped."""
