"""Inverse-cubic initial data: J = A (1 - y) + B (1 - y)^3 on the native grid."""

import logging

import numpy as np

from ...numerics.radial import gauss_lobatto_points
from .gauge import AngularCoordinates
from .state import InitialHypersurface

logger = logging.getLogger('cce_initial_data.inverse_cubic')


def inverse_cubic_coefficients(boundary_j, beta):
    """(A, B) matching J at the worldtube, with A chosen for vanishing asymptotic beta."""
    boundary_j = np.asarray(boundary_j, dtype=np.complex128)
    beta = np.asarray(beta, dtype=np.complex128)
    j_j_bar = (boundary_j * np.conj(boundary_j)).real
    linear = np.zeros_like(boundary_j)
    nonzero = j_j_bar > 0.0
    linear[nonzero] = boundary_j[nonzero] * np.sqrt(-4.0 * beta[nonzero] / j_j_bar[nonzero])
    cubic = 0.125 * (boundary_j - 2.0 * linear)
    return linear, cubic


class InverseCubic:
    """J with (1 - y) and (1 - y)^3 falloff, coordinates left at the collocation grid."""

    name = "inverse_cubic"

    def generate(self, boundary, l_max: int, number_of_radial_points: int) -> InitialHypersurface:
        linear, cubic = inverse_cubic_coefficients(boundary.j, boundary.beta)
        one_minus_y = (1.0 - gauss_lobatto_points(number_of_radial_points))[:, np.newaxis]
        volume_j = one_minus_y * linear + one_minus_y ** 3 * cubic
        logger.debug("Inverse cubic initial data", extra={"extra_data": {
            "radial_points": number_of_radial_points, "l_max": l_max,
        }})
        return InitialHypersurface(bondi_j=volume_j, coordinates=AngularCoordinates.native(l_max),
                                   l_max=l_max)
