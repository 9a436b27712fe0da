from .logging_config import JSONFormatter, Timer, array_stats, setup_logging
from .config import AngularSolveConfig, InitialDataConfig, WorldtubeConfig

__all__ = [
    "JSONFormatter", "Timer", "array_stats", "setup_logging",
    "AngularSolveConfig", "InitialDataConfig", "WorldtubeConfig",
]
