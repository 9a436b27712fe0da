"""
First-hypersurface assembly.

Selects an initial data strategy, runs it against the worldtube boundary
data and commits J and the angular coordinate map into the evolution state.
"""

import logging
from typing import Callable, Dict, Protocol, runtime_checkable

import numpy as np

from ...framework.config import InitialDataConfig
from ...framework.logging_config import Timer, array_stats
from ...numerics.radial import resample_radial
from ...numerics.swsh import resample
from .conformal_factor import ConformalFactor
from .gauge import AngularCoordinates
from .inverse_cubic import InverseCubic
from .psi0 import GeneratePsi0
from .state import BoundaryData, CceState, InitialHypersurface
from .worldtube import TabulatedWorldtubeArchive

logger = logging.getLogger('cce_initial_data.hypersurface')


@runtime_checkable
class InitialDataStrategy(Protocol):
    def generate(self, boundary: BoundaryData, l_max: int,
                 number_of_radial_points: int) -> InitialHypersurface:
        ...


def _inverse_cubic(config: InitialDataConfig) -> InverseCubic:
    return InverseCubic()


def _conformal_factor(config: InitialDataConfig) -> ConformalFactor:
    angular = config.angular_solve
    return ConformalFactor(tolerance=angular.tolerance, max_steps=angular.max_steps,
                           adjust_volume_gauge=angular.adjust_volume_gauge)


def _generate_psi0(config: InitialDataConfig) -> GeneratePsi0:
    worldtube = config.worldtube
    archives = [
        TabulatedWorldtubeArchive.from_npz(path,
                                           interpolation_points=worldtube.interpolation_points,
                                           interpolation_order=worldtube.interpolation_order)
        for path in worldtube.files
    ]
    return GeneratePsi0(archives, worldtube.target_index, worldtube.target_time)


INITIAL_DATA_STRATEGIES: Dict[str, Callable[[InitialDataConfig], InitialDataStrategy]] = {
    "inverse_cubic": _inverse_cubic,
    "conformal_factor": _conformal_factor,
    "generate_psi0": _generate_psi0,
}


def make_strategy(config: InitialDataConfig) -> InitialDataStrategy:
    """Build the strategy named by `config.strategy`."""
    config.validate()
    try:
        factory = INITIAL_DATA_STRATEGIES[config.strategy]
    except KeyError:
        raise ValueError(f"Unknown initial data strategy: {config.strategy!r}")
    return factory(config)


def initialize_first_hypersurface(state: CceState, strategy: InitialDataStrategy,
                                  boundary: BoundaryData) -> InitialHypersurface:
    """Run `strategy` and write its J and coordinates into `state`."""
    name = getattr(strategy, "name", type(strategy).__name__)
    logger.info("Initializing first hypersurface", extra={"extra_data": {
        "strategy": name, "l_max": state.l_max,
        "radial_points": state.number_of_radial_points,
    }})
    with Timer("initialize_first_hypersurface") as timer:
        hypersurface = strategy.generate(boundary, state.l_max, state.number_of_radial_points)
        resample_initial_hypersurface(state, hypersurface)

    extra = {"strategy": name, "elapsed_ms": timer.elapsed_ms(),
             "bondi_j": array_stats(state.bondi_j, "bondi_j")}
    if hypersurface.convergence is not None:
        extra["angular_solve"] = {
            "max_error": hypersurface.convergence.max_error,
            "steps": hypersurface.convergence.number_of_steps,
            "converged": hypersurface.convergence.converged,
        }
        if not hypersurface.convergence.converged:
            logger.warning("Proceeding with a partially converged angular solve",
                           extra={"extra_data": extra})
    logger.info("First hypersurface initialized", extra={"extra_data": extra})
    return hypersurface


def resample_initial_hypersurface(state: CceState, hypersurface: InitialHypersurface) -> None:
    """Commit a hypersurface computed at another resolution into `state`.

    Each shell is resampled in angle to the state's l_max, then the volume
    is interpolated radially to its point count. The Cartesian coordinates
    are resampled and the angular pair re-derived from them.
    """
    shells = resample(hypersurface.bondi_j, 2, state.l_max, hypersurface.l_max)
    resample_radial(shells, state.number_of_radial_points, out=state.bondi_j)

    if hypersurface.l_max == state.l_max:
        state.coordinates = hypersurface.coordinates.copy()
        return
    cartesian = resample(hypersurface.coordinates.cartesian(), 0, state.l_max, hypersurface.l_max)
    coordinates = AngularCoordinates()
    coordinates.x, coordinates.y, coordinates.z = np.real(cartesian)
    coordinates.update_angular_from_cartesian()
    state.coordinates = coordinates
