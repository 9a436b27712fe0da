import json
import logging
import threading
import time
from datetime import datetime

import numpy as np

ROOT_LOGGER = 'cce_initial_data'
COMPONENTS = ['config', 'swsh', 'gauge', 'conformal_factor', 'psi0', 'worldtube', 'inverse_cubic',
              'hypersurface']


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "thread": threading.current_thread().name,
            "thread_id": threading.get_ident(),
        }

        # Add extra fields if present
        if hasattr(record, 'extra_data'):
            log_entry.update(record.extra_data)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=_json_default)


def _json_default(value):
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, complex):
        return [value.real, value.imag]
    return str(value)


def setup_logging(level=logging.INFO, log_file=None):
    """Setup structured JSON logging for the initial data components."""
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)

    # Remove existing handlers
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    formatter = JSONFormatter()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.setLevel(level)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        file_handler.setLevel(level)
        logger.addHandler(file_handler)

    # Child loggers for components
    for comp in COMPONENTS:
        comp_logger = logging.getLogger(f'{ROOT_LOGGER}.{comp}')
        comp_logger.setLevel(level)
        comp_logger.propagate = True

    return logger


class Timer:
    def __init__(self, name=""):
        self.name = name
        self.start_time = None
        self.end_time = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        self.end_time = None
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.end_time = time.perf_counter()

    def elapsed_ms(self):
        if self.start_time is None:
            return 0.0
        end = self.end_time if self.end_time is not None else time.perf_counter()
        return (end - self.start_time) * 1000


def array_stats(arr, name=""):
    """Compute min, max, mean of |arr| for logging."""
    if arr is None or np.size(arr) == 0:
        return {"name": name, "min": None, "max": None, "mean": None, "shape": None}

    magnitude = np.abs(np.asarray(arr)).ravel()
    return {
        "name": name,
        "min": float(np.min(magnitude)),
        "max": float(np.max(magnitude)),
        "mean": float(np.mean(magnitude)),
        "shape": list(np.shape(arr)),
    }
