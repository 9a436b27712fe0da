"""
Initial data from a prescribed Weyl scalar Psi0.

J is reconstructed on the first hypersurface by integrating, in the
compactified coordinate y, the second-order radial condition that holds
Psi0 fixed at its worldtube value, starting from J and dy J at y = -1.
The worldtube Psi0 needs dy dy J, which is estimated by differentiating dr J
across several worldtube archives at different extraction radii.
"""

import logging
from typing import Optional, Sequence

import numpy as np
from scipy.integrate import RK45

from ...framework.logging_config import Timer, array_stats
from ...numerics.finite_difference import barycentric_rational_interpolant, finite_difference_derivative
from ...numerics.radial import gauss_lobatto_points
from ...numerics.swsh import number_of_swsh_collocation_points
from .errors import BracketingError
from .gauge import AngularCoordinates
from .state import InitialHypersurface
from .weyl import weyl_psi0
from .worldtube import BoundaryDataSource, ResolutionAdapter, read_in_worldtube_data

logger = logging.getLogger('cce_initial_data.psi0')

ABSOLUTE_TOLERANCE = 1.0e-14
RELATIVE_TOLERANCE = 100.0 * np.finfo(float).eps
DEFAULT_INITIAL_STEP = 1.0e-6
MIN_INITIAL_STEP = 1.0e-12
MAX_INITIAL_STEP = 2.0


def psi0_condition_rhs(y: float, bondi_j, bondi_i, psi_0):
    """(dy J, dy I) for the constant-Psi0 radial condition, with I = dy J."""
    j_j_bar = bondi_j * np.conj(bondi_j)
    dy_i = (
        0.5 * (np.conj(psi_0) * bondi_j ** 2 / (2.0 + j_j_bar + 2.0 * np.sqrt(1.0 + j_j_bar)) + psi_0)
        - 0.0625
        * ((np.conj(bondi_i) * bondi_j) ** 2 + (np.conj(bondi_j) * bondi_i) ** 2
           - 2.0 * bondi_i * np.conj(bondi_i) * (2.0 + j_j_bar))
        * (4.0 * bondi_j + bondi_i * (1.0 - y))
        / (1.0 + j_j_bar)
    )
    return bondi_i, dy_i


def initial_radial_step(boundary_j, boundary_dy_j) -> float:
    """Starting step from the ratio of field scale to derivative scale."""
    j_scale = np.max(np.abs(boundary_j))
    dy_j_scale = np.max(np.abs(boundary_dy_j))
    step = DEFAULT_INITIAL_STEP
    if j_scale > 1.0e-5 and dy_j_scale > 1.0e-5:
        step = 0.01 * j_scale / dy_j_scale
    return float(np.clip(step, MIN_INITIAL_STEP, MAX_INITIAL_STEP))


def radial_evolve_psi0_condition(out: np.ndarray, boundary_j, boundary_dy_j, boundary_psi0,
                                 number_of_radial_points: int) -> np.ndarray:
    """Integrate J from y = -1 to y = 1 and fill `out[i] = J(y_i)` on Gauss-Lobatto points.

    Raises:
        BracketingError: If the boundary data are not finite, an accepted
            step fails to cover the next collocation point, or the
            integrator stops before reaching it
    """
    boundary_j = np.asarray(boundary_j, dtype=np.complex128)
    boundary_dy_j = np.asarray(boundary_dy_j, dtype=np.complex128)
    psi_0 = np.asarray(boundary_psi0, dtype=np.complex128)
    n_angular = boundary_j.size
    if out.shape != (number_of_radial_points, n_angular):
        raise ValueError(
            f"out must have shape {(number_of_radial_points, n_angular)}, got {out.shape}"
        )
    for label, values in (("J", boundary_j), ("dy J", boundary_dy_j), ("Psi0", psi_0)):
        if not np.all(np.isfinite(values)):
            raise BracketingError(-1.0, (-1.0, -1.0), reason=f"non-finite boundary {label}")

    def system(y, state):
        dy_j, dy_i = psi0_condition_rhs(y, state[:n_angular], state[n_angular:], psi_0)
        return np.concatenate([dy_j, dy_i])

    first_step = initial_radial_step(boundary_j, boundary_dy_j)
    solver = RK45(system, -1.0, np.concatenate([boundary_j, boundary_dy_j]), 1.0,
                  first_step=first_step, rtol=RELATIVE_TOLERANCE, atol=ABSOLUTE_TOLERANCE)

    y_collocation = gauss_lobatto_points(number_of_radial_points)
    with Timer("radial_evolve") as timer:
        message = solver.step()
        for i, y_target in enumerate(y_collocation):
            while message is None and solver.status == 'running' and solver.t < y_target:
                message = solver.step()
            if solver.status == 'failed' or message is not None:
                raise BracketingError(y_target, (solver.t_old, solver.t), reason=str(message))
            if not solver.t_old <= y_target <= solver.t:
                raise BracketingError(y_target, (solver.t_old, solver.t))
            out[i] = solver.dense_output()(y_target)[:n_angular]

    logger.debug("Radial Psi0 evolution finished", extra={"extra_data": {
        "radial_points": number_of_radial_points,
        "first_step": first_step,
        "elapsed_ms": timer.elapsed_ms(),
        "j_scri": array_stats(out[-1], "j_scri"),
    }})
    return out


def second_derivative_of_j_from_worldtubes(out: Optional[np.ndarray], dr_j, r,
                                           target_index: int) -> np.ndarray:
    """dr dr J at the radius of archive `target_index`, per angular point.

    `dr_j` and `r` have shape (n_archives, n_angular). The radial profile of
    dr J through the archive radii is fit with a barycentric rational
    interpolant and differentiated with a sixth-order finite difference,
    real and imaginary parts separately.
    """
    dr_j = np.asarray(dr_j, dtype=np.complex128)
    radii = np.asarray(r).real
    if dr_j.shape != radii.shape or dr_j.ndim != 2:
        raise ValueError(f"dr_j and r must be matching (n_archives, n_angular) arrays, got "
                         f"{dr_j.shape} and {radii.shape}")
    n_archives, n_angular = dr_j.shape
    if n_archives < 2:
        raise ValueError("a radial derivative needs at least two worldtube archives")
    if not 0 <= target_index < n_archives:
        raise ValueError(f"target_index {target_index} out of range for {n_archives} archives")
    if out is None:
        out = np.empty(n_angular, dtype=np.complex128)

    for i in range(n_angular):
        radius = radii[target_index, i]
        real_part = barycentric_rational_interpolant(radii[:, i], dr_j[:, i].real, order=3)
        imag_part = barycentric_rational_interpolant(radii[:, i], dr_j[:, i].imag, order=3)
        out[i] = complex(finite_difference_derivative(real_part, radius),
                         finite_difference_derivative(imag_part, radius))
    return out


class GeneratePsi0:
    """Initial data whose Psi0 along the first hypersurface equals its worldtube value."""

    name = "generate_psi0"

    def __init__(self, archives: Sequence[BoundaryDataSource], target_index: int, target_time: float):
        if len(archives) < 2:
            raise ValueError("GeneratePsi0 needs at least two worldtube archives")
        if not 0 <= target_index < len(archives):
            raise ValueError(f"target_index {target_index} out of range for {len(archives)} archives")
        self.archives = list(archives)
        self.target_index = target_index
        self.target_time = target_time

    def generate(self, boundary, l_max: int, number_of_radial_points: int) -> InitialHypersurface:
        n_angular = number_of_swsh_collocation_points(l_max)
        shape = (len(self.archives), n_angular)
        snapshot = read_in_worldtube_data(
            np.empty(shape, dtype=np.complex128),
            np.empty(shape, dtype=np.complex128),
            np.empty(shape, dtype=np.complex128),
            [ResolutionAdapter(archive, l_max) for archive in self.archives],
            self.target_index, self.target_time,
        )

        dr_dr_j = second_derivative_of_j_from_worldtubes(None, snapshot.dr_j, snapshot.r, self.target_index)
        j = snapshot.j[self.target_index]
        dr_j = snapshot.dr_j[self.target_index]
        bondi_r = snapshot.r[self.target_index].real

        # r = 2R/(1 - y), evaluated at the worldtube y = -1
        dy_j = 0.5 * bondi_r * dr_j
        dy_dy_j = 0.25 * bondi_r ** 2 * dr_dr_j + 0.5 * bondi_r * dr_j
        bondi_k = np.sqrt(1.0 + j * np.conj(j))
        psi_0 = weyl_psi0(j, dy_j, dy_dy_j, bondi_k, bondi_r, np.full(n_angular, 2.0))
        logger.info("Worldtube Psi0 computed", extra={"extra_data": array_stats(psi_0, "psi_0")})

        volume_j = np.empty((number_of_radial_points, n_angular), dtype=np.complex128)
        radial_evolve_psi0_condition(volume_j, j, dy_j, psi_0, number_of_radial_points)
        return InitialHypersurface(bondi_j=volume_j, coordinates=AngularCoordinates.native(l_max),
                                   l_max=l_max)
