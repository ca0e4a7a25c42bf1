"""
Logging Configuration
Sets up the 'propellertof' logger for the command-line caller and worker threads.
"""
import logging
import sys
from typing import Optional

# Third-party loggers that flood DEBUG output (JIT compilation passes, font cache)
NOISY_LOGGERS = ("numba", "matplotlib", "h5py")


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> None:
    """
    Configures the logger for the 'propellertof' namespace.

    Args:
        level: Logging level (e.g. logging.DEBUG, logging.INFO)
        log_file: Optional path to save logs to a file.
    """
    logger = logging.getLogger("propellertof")
    logger.setLevel(level)

    # Repeated CLI runs in one process (tests) must not stack handlers
    if logger.hasHandlers():
        logger.handlers.clear()

    # Format: Time - Thread - Module - Level - Message
    formatter = logging.Formatter(
        '%(asctime)s - %(threadName)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    logger.info("Logging initialized.")
