"""
Angular coordinate maps and the gauge transformation of Bondi J.

A coordinate map assigns to every evolution-grid collocation point the
physical direction (theta_hat, phi_hat) it represents. The map determines
the gauge Jacobians

    C = q_hat . (d_theta n + i / sin(theta) d_phi n)      (spin 2)
    D = q_hat . (d_theta n - i / sin(theta) d_phi n)      (spin 0)

with n the Cartesian unit vector of the map and q_hat = e_theta_hat + i e_phi_hat
the dyad at the mapped point, and the conformal factor
Omega = 1/2 sqrt(D Dbar - C Cbar). For the identity map C = 0, D = 2, Omega = 1.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np

from ...numerics.swsh import SwshInterpolator, angular_partials, cached_angular_grid

logger = logging.getLogger('cce_initial_data.gauge')


def normalize_phi(phi) -> np.ndarray:
    """Map azimuth into (-pi, pi]."""
    return np.pi - np.mod(np.pi - np.asarray(phi, dtype=float), 2.0 * np.pi)


@dataclass
class AngularCoordinates:
    """Angular coordinate map with its Cartesian unit vectors kept in sync."""
    theta: np.ndarray = field(default_factory=lambda: np.empty(0))
    phi: np.ndarray = field(default_factory=lambda: np.empty(0))
    x: np.ndarray = field(default_factory=lambda: np.empty(0))
    y: np.ndarray = field(default_factory=lambda: np.empty(0))
    z: np.ndarray = field(default_factory=lambda: np.empty(0))

    @classmethod
    def native(cls, l_max: int) -> 'AngularCoordinates':
        """The identity map on the l_max collocation grid."""
        grid = cached_angular_grid(l_max)
        coordinates = cls()
        coordinates.set_angular(grid.theta, grid.phi)
        return coordinates

    @property
    def size(self) -> int:
        return self.theta.size

    def set_angular(self, theta, phi) -> None:
        self.theta = np.array(theta, dtype=float)
        self.phi = normalize_phi(phi)
        self._update_cartesian()

    def update_angular_from_cartesian(self) -> None:
        """Re-derive (theta, phi) from the Cartesian triple, renormalizing it first."""
        norm = np.sqrt(self.x ** 2 + self.y ** 2 + self.z ** 2)
        self.theta = np.arccos(np.clip(self.z / norm, -1.0, 1.0))
        self.phi = normalize_phi(np.arctan2(self.y, self.x))
        self._update_cartesian()

    def cartesian(self) -> np.ndarray:
        return np.stack([self.x, self.y, self.z])

    def copy(self) -> 'AngularCoordinates':
        return AngularCoordinates(self.theta.copy(), self.phi.copy(),
                                  self.x.copy(), self.y.copy(), self.z.copy())

    def _update_cartesian(self) -> None:
        sin_theta = np.sin(self.theta)
        self.x = sin_theta * np.cos(self.phi)
        self.y = sin_theta * np.sin(self.phi)
        self.z = np.cos(self.theta)


def gauge_jacobians(coordinates: AngularCoordinates, l_max: int) -> Tuple[np.ndarray, np.ndarray]:
    """Spin-2 C and spin-0 D of a coordinate map defined on the l_max grid."""
    d_theta, d_phi = angular_partials(coordinates.cartesian(), l_max)

    sin_theta_hat = np.sin(coordinates.theta)
    cos_theta_hat = np.cos(coordinates.theta)
    sin_phi_hat = np.sin(coordinates.phi)
    cos_phi_hat = np.cos(coordinates.phi)
    e_theta_hat = np.stack([cos_theta_hat * cos_phi_hat, cos_theta_hat * sin_phi_hat, -sin_theta_hat])
    e_phi_hat = np.stack([-sin_phi_hat, cos_phi_hat, np.zeros_like(sin_phi_hat)])
    q_hat = e_theta_hat + 1j * e_phi_hat

    gauge_c = np.sum(q_hat * (d_theta + 1j * d_phi), axis=0)
    gauge_d = np.sum(q_hat * (d_theta - 1j * d_phi), axis=0)
    return gauge_c, gauge_d


def conformal_factor(gauge_c, gauge_d) -> np.ndarray:
    """Omega = 1/2 sqrt(D Dbar - C Cbar), as a complex spin-0 field."""
    gauge_c = np.asarray(gauge_c)
    gauge_d = np.asarray(gauge_d)
    return 0.5 * np.sqrt((gauge_d * np.conj(gauge_d) - gauge_c * np.conj(gauge_c)).astype(np.complex128))


def inverse_gauge_jacobians(gauge_c, gauge_d, omega) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """(C, D, Omega) of the inverse map, evaluated at the same points."""
    omega_squared = omega * omega
    return -gauge_c / omega_squared, np.conj(gauge_d) / omega_squared, 1.0 / omega


def gauge_transform_j(j, gauge_c, gauge_d, omega) -> np.ndarray:
    """Pointwise gauge transformation of spin-2 J already evaluated at the mapped points."""
    j = np.asarray(j)
    d_bar = np.conj(gauge_d)
    return 0.25 * (
        d_bar * d_bar * j
        + gauge_c * gauge_c * np.conj(j)
        + 2.0 * gauge_c * d_bar * np.sqrt(1.0 + j * np.conj(j))
    ) / (omega * omega)


def gauge_adjust_j(volume_j: np.ndarray, gauge_c, gauge_d, omega,
                   coordinates: AngularCoordinates, l_max: int,
                   out: Optional[np.ndarray] = None) -> np.ndarray:
    """Interpolate J to the mapped directions and gauge transform it.

    `volume_j` is one angular slice (n_angular,) or a volume
    (n_radial, n_angular); every shell is treated independently. Writes
    into `out` (default: `volume_j` itself).
    """
    if out is None:
        out = volume_j
    interpolator = SwshInterpolator(coordinates.theta, coordinates.phi, l_max)
    shells = np.atleast_2d(volume_j)
    result = np.atleast_2d(out)
    for i, shell in enumerate(shells):
        interpolated = interpolator.interpolate(shell, spin=2)
        result[i] = gauge_transform_j(interpolated, gauge_c, gauge_d, omega)
    return out
