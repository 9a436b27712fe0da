"""
Error classes for first-hypersurface initial data construction
"""


class CceInitializationError(Exception):
    """Unrecoverable failure while building initial data."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class DivergenceError(CceInitializationError):
    """Angular gauge solve exceeded the divergence bound."""

    def __init__(self, max_error: float, number_of_steps: int, bound: float = 2.0):
        self.max_error = max_error
        self.number_of_steps = number_of_steps
        self.bound = bound
        super().__init__(
            f"Angular coordinate solve diverged after {number_of_steps} steps: "
            f"max error {max_error} exceeds {bound}; choose a different initial data strategy"
        )


class BracketingError(CceInitializationError):
    """Radial integrator failed to bracket a requested collocation point."""

    def __init__(self, y_target: float, step_range=None, reason: str = ""):
        self.y_target = y_target
        self.step_range = step_range
        detail = f" ({reason})" if reason else ""
        super().__init__(
            f"Radial integration failed to bracket y = {y_target}, "
            f"accepted step covers {step_range}{detail}"
        )


class MissingArchiveError(CceInitializationError):
    """A worldtube archive cannot supply data at the requested time."""

    def __init__(self, time: float, time_range=None, archive=None):
        self.time = time
        self.time_range = time_range
        self.archive = archive
        super().__init__(
            f"Worldtube archive {archive!r} has no data at time {time} (recorded range {time_range})"
        )


class NonConvergenceWarning(RuntimeWarning):
    """Angular gauge solve stopped at the step limit above tolerance."""
