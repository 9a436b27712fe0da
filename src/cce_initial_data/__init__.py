"""Initial data on the first hypersurface of a characteristic evolution."""

__version__ = "0.1.0"

from .framework import InitialDataConfig, setup_logging
from .solvers.cce import (
    BoundaryData,
    CceState,
    ConformalFactor,
    GeneratePsi0,
    InverseCubic,
    adjust_angular_coordinates_for_omega,
    initialize_first_hypersurface,
    make_strategy,
    radial_evolve_psi0_condition,
    read_in_worldtube_data,
)
