"""
Angular gauge solve for a prescribed conformal factor.

The angular coordinates of the first hypersurface are adjusted until the
conformal factor Omega of the coordinate map matches a target field. Each
fixed-point iteration integrates (target Omega)^2 along the polar direction
to obtain new polar angles, then recomputes the gauge Jacobians and
compares Omega with the target interpolated to the new directions.
"""

import logging
import warnings

import numpy as np

from ...framework.logging_config import Timer
from ...numerics.radial import gauss_lobatto_points
from ...numerics.swsh import SwshInterpolator, cached_angular_grid, indefinite_integral
from .errors import DivergenceError, NonConvergenceWarning
from .gauge import AngularCoordinates, conformal_factor, gauge_adjust_j, gauge_jacobians
from .state import ConvergenceRecord, InitialHypersurface

logger = logging.getLogger('cce_initial_data.conformal_factor')

DIVERGENCE_BOUND = 2.0


def adjust_angular_coordinates_for_omega(volume_j: np.ndarray,
                                         coordinates: AngularCoordinates,
                                         target_omega,
                                         l_max: int,
                                         tolerance: float = 1.0e-10,
                                         max_steps: int = 100,
                                         adjust_volume_gauge: bool = True) -> ConvergenceRecord:
    """Solve for the angular coordinate map whose conformal factor is `target_omega`.

    Args:
        volume_j: J on the native grid, either one angular slice or a
            (n_radial, n_angular) volume. Gauge transformed in place.
        coordinates: Overwritten with the final coordinate map.
        target_omega: Target conformal factor on the native grid.
        l_max: Angular band-limit.
        tolerance: Convergence threshold on max |Omega - target|.
        max_steps: Iteration cap; exceeding it issues NonConvergenceWarning.
        adjust_volume_gauge: Transform every shell of `volume_j`; otherwise
            only the first (worldtube) shell.

    Raises:
        DivergenceError: If the error exceeds DIVERGENCE_BOUND or is not finite.
    """
    grid = cached_angular_grid(l_max)
    target_omega = np.asarray(target_omega, dtype=np.complex128)
    if target_omega.shape != (grid.size,):
        raise ValueError(f"target_omega must have {grid.size} points, got shape {target_omega.shape}")

    logger.info("Starting angular coordinate solve", extra={"extra_data": {
        "l_max": l_max, "tolerance": tolerance, "max_steps": max_steps,
    }})

    coordinates.set_angular(grid.theta, grid.phi)
    coordinates.update_angular_from_cartesian()
    interpolated_target = target_omega.copy()

    max_error = 1.0
    number_of_steps = 0
    converged = False
    with Timer("angular_solve") as timer:
        while True:
            # no sin(theta) weight: absorbed by integrating in cos(theta)
            integrand = interpolated_target ** 2
            integral = indefinite_integral(integrand, grid.extents, 1)

            theta = np.arccos(np.clip(1.0 - integral.real, -1.0, 1.0))
            coordinates.set_angular(theta, coordinates.phi)
            coordinates.update_angular_from_cartesian()

            gauge_c, gauge_d = gauge_jacobians(coordinates, l_max)
            omega = conformal_factor(gauge_c, gauge_d)

            interpolator = SwshInterpolator(coordinates.theta, coordinates.phi, l_max)
            interpolated_target = interpolator.interpolate(target_omega, spin=0)

            max_error = float(np.max(np.abs(omega - interpolated_target)))
            number_of_steps += 1
            logger.debug("Angular solve iteration", extra={"extra_data": {
                "step": number_of_steps, "max_error": max_error,
            }})

            if not np.isfinite(max_error) or max_error > DIVERGENCE_BOUND:
                logger.error("Angular coordinate solve diverged", extra={"extra_data": {
                    "step": number_of_steps, "max_error": max_error,
                }})
                raise DivergenceError(max_error, number_of_steps, DIVERGENCE_BOUND)
            if max_error < tolerance:
                converged = True
                break
            if number_of_steps > max_steps:
                warnings.warn(
                    f"Angular coordinate solve stopped after {number_of_steps} steps "
                    f"with max error {max_error:.3e} above tolerance {tolerance:.3e}",
                    NonConvergenceWarning,
                    stacklevel=2,
                )
                break

    if adjust_volume_gauge or np.ndim(volume_j) == 1:
        gauge_adjust_j(volume_j, gauge_c, gauge_d, omega, coordinates, l_max)
    else:
        gauge_adjust_j(volume_j[0], gauge_c, gauge_d, omega, coordinates, l_max)

    logger.info("Angular coordinate solve finished", extra={"extra_data": {
        "steps": number_of_steps, "max_error": max_error, "converged": converged,
        "elapsed_ms": timer.elapsed_ms(),
    }})
    return ConvergenceRecord(max_error=max_error, number_of_steps=number_of_steps, converged=converged)


class ConformalFactor:
    """Initial data with Omega = exp(2 beta) and J linear in (1 - y)."""

    name = "conformal_factor"

    def __init__(self, tolerance: float = 1.0e-10, max_steps: int = 100,
                 adjust_volume_gauge: bool = True):
        self.tolerance = tolerance
        self.max_steps = max_steps
        self.adjust_volume_gauge = adjust_volume_gauge

    def generate(self, boundary, l_max: int, number_of_radial_points: int) -> InitialHypersurface:
        coordinates = AngularCoordinates.native(l_max)
        boundary_j = np.array(boundary.j, dtype=np.complex128)
        record = adjust_angular_coordinates_for_omega(
            boundary_j, coordinates, np.exp(2.0 * np.asarray(boundary.beta)), l_max,
            tolerance=self.tolerance, max_steps=self.max_steps,
            adjust_volume_gauge=self.adjust_volume_gauge,
        )
        one_minus_y = 1.0 - gauss_lobatto_points(number_of_radial_points)
        volume_j = np.outer(one_minus_y, 0.5 * boundary_j)
        return InitialHypersurface(bondi_j=volume_j, coordinates=coordinates,
                                   l_max=l_max, convergence=record)
