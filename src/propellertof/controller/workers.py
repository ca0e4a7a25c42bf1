"""
Background Workers (Threading)
==============================
This module runs simulations on a QThread so the caller's event loop stays
responsive.

Why is this file needed?
------------------------
1. Responsiveness: A run can take tens of millions of photon tests. On the
   main thread the GUI would freeze.
2. Signals: Progress and the terminal result travel back through Qt Signals,
   which are safe to emit from the background thread.
3. Single run: ``SimulationService`` owns at most one worker. Starting a new
   run detaches and stops the previous one without waiting for it.

Classes:
    SimulationWorker: Runs one simulation.
    SimulationService: Owns the current worker of a UI session.
"""
from __future__ import annotations

import logging
from typing import Optional

import numpy as np
from PySide6.QtCore import QObject, QThread, Signal, Slot

from propellertof.config import MAX_DATASET_MB
from propellertof.controller.pipeline import run_simulation
from propellertof.model.bitmap import Bitmap
from propellertof.model.errors import SimulationCancelledError, SimulationError
from propellertof.model.parameters import SimulationParameters
from propellertof.model.results import SimulationOutput

logger = logging.getLogger(__name__)


class SimulationWorker(QThread):
    # Signals to update the UI from the background
    progress_updated = Signal(int, str)  # e.g., (42, "Simulating... 42%")
    result_ready = Signal(object)  # SimulationOutput
    error_occurred = Signal(str)

    def __init__(
        self,
        bitmap: Bitmap,
        parameters: SimulationParameters,
        seed: Optional[int] = None,
        max_dataset_mb: float = MAX_DATASET_MB,
    ) -> None:
        super().__init__()
        self.bitmap = bitmap
        self.parameters = parameters
        self.seed = seed
        self.max_dataset_mb = max_dataset_mb
        self.is_running = True
        self.output: Optional[SimulationOutput] = None
        self.error: Optional[str] = None

    def _on_progress(self, percentage: int) -> None:
        if not self.is_running:
            raise SimulationCancelledError("Simulation was cancelled.")
        self.progress_updated.emit(percentage, f"Simulating... {percentage}%")

    def run(self) -> None:
        try:
            logger.info("Starting simulation in background thread...")
            output = run_simulation(
                self.bitmap,
                self.parameters,
                progress_callback=self._on_progress,
                rng=np.random.default_rng(self.seed),
                max_dataset_mb=self.max_dataset_mb,
            )
        except SimulationCancelledError:
            logger.info("Simulation cancelled; discarding partial run.")
            return
        except SimulationError as e:
            logger.error(f"Simulation failed: {e}")
            self.error = str(e)
            self.error_occurred.emit(self.error)
            return
        except Exception as e:
            logger.exception("Unexpected error in SimulationWorker")
            self.error = f"An error occurred during the simulation: {e}"
            self.error_occurred.emit(self.error)
            return

        # stop() may arrive after the last progress notification
        if not self.is_running:
            logger.info("Simulation cancelled after completion; discarding result.")
            return

        self.output = output
        self.result_ready.emit(self.output)

    def stop(self) -> None:
        """Ask the run to stop at the next progress boundary."""
        self.is_running = False


class SimulationService(QObject):
    """
    Starts simulations for one UI session, at most one at a time.

    The service re-emits the current worker's signals, so a view connects once.
    """
    progress_updated = Signal(int, str)
    result_ready = Signal(object)
    error_occurred = Signal(str)

    def __init__(self, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self.worker: Optional[SimulationWorker] = None
        # Cancelled workers still winding down; Qt aborts if a running QThread is collected
        self._stragglers: list[SimulationWorker] = []

    def run_simulation(
        self,
        bitmap: Bitmap,
        parameters: SimulationParameters,
        seed: Optional[int] = None,
        max_dataset_mb: float = MAX_DATASET_MB,
    ) -> SimulationWorker:
        self.cancel()

        worker = SimulationWorker(bitmap, parameters, seed=seed, max_dataset_mb=max_dataset_mb)
        worker.progress_updated.connect(self.progress_updated)
        worker.result_ready.connect(self.result_ready)
        worker.error_occurred.connect(self.error_occurred)
        self.worker = worker
        worker.start()
        return worker

    def cancel(self) -> None:
        """
        Abandon the current worker, if any, without blocking the caller.

        The worker's signals are detached at once; its thread keeps running until
        the next progress boundary and is released when it finishes.
        """
        self._stragglers = [w for w in self._stragglers if not w.isFinished()]

        worker = self.worker
        if worker is None:
            return
        self.worker = None

        for signal in (worker.progress_updated, worker.result_ready, worker.error_occurred):
            signal.disconnect()

        if worker.isRunning():
            logger.info("Cancelling running simulation.")
            worker.stop()
            worker.finished.connect(self._release_straggler)
            self._stragglers.append(worker)

    def wait_for_stragglers(self, timeout_ms: int = 30000) -> bool:
        """Block until every cancelled worker has exited (e.g. on application shutdown)."""
        done = all([w.wait(timeout_ms) for w in self._stragglers])
        self._stragglers = [w for w in self._stragglers if not w.isFinished()]
        return done

    @Slot()
    def _release_straggler(self) -> None:
        worker = self.sender()
        if worker in self._stragglers:
            # finished is emitted just before the thread exits
            worker.wait()
            self._stragglers.remove(worker)
            logger.debug("Cancelled simulation thread released.")
