"""
Spin-weighted spherical harmonic grid services.

Collocation grid, forward/inverse transforms, interpolation to arbitrary
angular points, resampling between band-limits, angular partial
derivatives and the Legendre-Gauss indefinite integral used by the
angular gauge solver.

Grid conventions:
- theta on Gauss-Legendre nodes x_k of -cos(theta), so theta increases
  with the theta index (l_max + 1 points)
- phi equally spaced on [0, 2pi) (2 l_max + 1 points)
- flattened offset = phi_index + theta_index * n_phi (phi fastest)

Harmonics are sYlm(theta, phi) = sqrt((2l+1)/4pi) d^l_{m,-s}(theta) e^{i m phi},
with the Wigner small-d evaluated through Jacobi polynomials.
"""

import logging
from functools import lru_cache
from typing import Iterator, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np
from numpy.polynomial import legendre
from scipy.special import binom, eval_jacobi

logger = logging.getLogger('cce_initial_data.swsh')


def number_of_swsh_theta_collocation_points(l_max: int) -> int:
    return l_max + 1


def number_of_swsh_phi_collocation_points(l_max: int) -> int:
    return 2 * l_max + 1


def number_of_swsh_collocation_points(l_max: int) -> int:
    return number_of_swsh_theta_collocation_points(l_max) * number_of_swsh_phi_collocation_points(l_max)


def swsh_modes(spin: int, l_max: int) -> List[Tuple[int, int]]:
    """(l, m) pairs spanning band-limited spin-s fields, l-major."""
    if abs(spin) > l_max:
        raise ValueError(f"spin {spin} is not representable with l_max {l_max}")
    return [(l, m) for l in range(abs(spin), l_max + 1) for m in range(-l, l + 1)]


def _jacobi_parameters(l: int, m_prime: int, m: int) -> Tuple[float, int, int, int]:
    # d^l_{m'm} = coefficient * sin^a(t/2) cos^b(t/2) P_k^{(a,b)}(cos t)
    k = min(l + m, l - m, l + m_prime, l - m_prime)
    if k == l + m:
        a, lam = m_prime - m, m_prime - m
    elif k == l - m:
        a, lam = m - m_prime, 0
    elif k == l + m_prime:
        a, lam = m - m_prime, 0
    else:
        a, lam = m_prime - m, m_prime - m
    b = 2 * l - 2 * k - a
    coefficient = (-1.0) ** lam * np.sqrt(binom(2 * l - k, k + a) / binom(k + b, b))
    return coefficient, k, a, b


def wigner_small_d(l: int, m_prime: int, m: int, theta) -> np.ndarray:
    """Wigner small-d function d^l_{m'm}(theta)."""
    coefficient, k, a, b = _jacobi_parameters(l, m_prime, m)
    theta = np.asarray(theta, dtype=float)
    half = 0.5 * theta
    return coefficient * np.sin(half) ** a * np.cos(half) ** b * eval_jacobi(k, a, b, np.cos(theta))


def wigner_small_d_derivative(l: int, m_prime: int, m: int, theta) -> np.ndarray:
    """d/dtheta of d^l_{m'm}(theta). Not valid exactly at the poles."""
    coefficient, k, a, b = _jacobi_parameters(l, m_prime, m)
    theta = np.asarray(theta, dtype=float)
    s = np.sin(0.5 * theta)
    c = np.cos(0.5 * theta)
    x = np.cos(theta)
    p = eval_jacobi(k, a, b, x)
    if k > 0:
        dp = 0.5 * (k + a + b + 1) * eval_jacobi(k - 1, a + 1, b + 1, x)
    else:
        dp = np.zeros_like(x)
    return coefficient * (
        0.5 * (a * c * c - b * s * s) * s ** (a - 1) * c ** (b - 1) * p
        - 2.0 * s ** (a + 1) * c ** (b + 1) * dp
    )


def spin_weighted_harmonics(spin: int, l_max: int, theta, phi) -> np.ndarray:
    """Matrix of sYlm at the given points, shape (n_points, n_modes)."""
    theta = np.asarray(theta, dtype=float).ravel()
    phi = np.asarray(phi, dtype=float).ravel()
    modes = swsh_modes(spin, l_max)
    harmonics = np.empty((theta.size, len(modes)), dtype=np.complex128)
    for column, (l, m) in enumerate(modes):
        norm = np.sqrt((2 * l + 1) / (4.0 * np.pi))
        harmonics[:, column] = norm * wigner_small_d(l, m, -spin, theta) * np.exp(1j * m * phi)
    return harmonics


class CollocationPoint(NamedTuple):
    offset: int
    theta: float
    phi: float


class AngularGrid:
    """Collocation points, quadrature and cached operators for one l_max."""

    def __init__(self, l_max: int):
        if l_max < 1:
            raise ValueError(f"l_max must be >= 1, got {l_max}")
        self.l_max = l_max
        self.n_theta = number_of_swsh_theta_collocation_points(l_max)
        self.n_phi = number_of_swsh_phi_collocation_points(l_max)

        nodes, weights = legendre.leggauss(self.n_theta)
        self.theta_nodes = np.arccos(-nodes)
        self.phi_nodes = 2.0 * np.pi * np.arange(self.n_phi) / self.n_phi

        self.theta = np.repeat(self.theta_nodes, self.n_phi)
        self.phi = np.tile(self.phi_nodes, self.n_theta)
        self.weights = np.repeat(weights, self.n_phi) * (2.0 * np.pi / self.n_phi)
        for array in (self.theta_nodes, self.phi_nodes, self.theta, self.phi, self.weights):
            array.flags.writeable = False

        self._basis = {}
        self._partials = None

    @property
    def size(self) -> int:
        return self.n_theta * self.n_phi

    @property
    def extents(self) -> Tuple[int, int]:
        """Mesh extents, fastest dimension first."""
        return (self.n_phi, self.n_theta)

    def collocation(self) -> Iterator[CollocationPoint]:
        for offset in range(self.size):
            yield CollocationPoint(offset, float(self.theta[offset]), float(self.phi[offset]))

    def basis(self, spin: int) -> np.ndarray:
        if spin not in self._basis:
            self._basis[spin] = spin_weighted_harmonics(spin, self.l_max, self.theta, self.phi)
        return self._basis[spin]

    def transform(self, field, spin: int) -> np.ndarray:
        """Forward transform along the last axis: field (..., n) -> coefficients (..., n_modes)."""
        field = np.asarray(field)
        self._check_size(field)
        return (field * self.weights) @ self.basis(spin).conj()

    def inverse_transform(self, coefficients, spin: int) -> np.ndarray:
        return np.asarray(coefficients) @ self.basis(spin).T

    def angular_partials(self, field) -> Tuple[np.ndarray, np.ndarray]:
        """(d/dtheta f, 1/sin(theta) d/dphi f) for a spin-0 field on the grid.

        Operates along the last axis. Real input gives real output.
        """
        field = np.asarray(field)
        self._check_size(field)
        if self._partials is None:
            self._partials = self._build_partials()
        d_theta, d_phi = self._partials
        result_theta = field @ d_theta.T
        result_phi = field @ d_phi.T
        if not np.iscomplexobj(field):
            return result_theta.real, result_phi.real
        return result_theta, result_phi

    def _build_partials(self):
        modes = swsh_modes(0, self.l_max)
        theta_basis = np.empty((self.size, len(modes)), dtype=np.complex128)
        phi_basis = np.empty((self.size, len(modes)), dtype=np.complex128)
        sin_theta = np.sin(self.theta)
        for column, (l, m) in enumerate(modes):
            norm = np.sqrt((2 * l + 1) / (4.0 * np.pi))
            azimuthal = np.exp(1j * m * self.phi)
            theta_basis[:, column] = norm * wigner_small_d_derivative(l, m, 0, self.theta) * azimuthal
            phi_basis[:, column] = (
                norm * wigner_small_d(l, m, 0, self.theta) * 1j * m * azimuthal / sin_theta
            )
        # grid values -> coefficients -> derivative values
        projection = self.basis(0).conj().T * self.weights
        return theta_basis @ projection, phi_basis @ projection

    def _check_size(self, field: np.ndarray) -> None:
        if field.shape[-1] != self.size:
            raise ValueError(
                f"field has {field.shape[-1]} angular points, expected {self.size} for l_max {self.l_max}"
            )


@lru_cache(maxsize=None)
def cached_angular_grid(l_max: int) -> AngularGrid:
    return AngularGrid(l_max)


def swsh_transform(field, spin: int, l_max: int) -> np.ndarray:
    return cached_angular_grid(l_max).transform(field, spin)


def inverse_swsh_transform(coefficients, spin: int, l_max: int) -> np.ndarray:
    return cached_angular_grid(l_max).inverse_transform(coefficients, spin)


def _write(result: np.ndarray, out: Optional[np.ndarray]) -> np.ndarray:
    if out is None:
        return result
    out[...] = result
    return out


class SwshInterpolator:
    """Evaluate band-limited spin-weighted fields at arbitrary (theta, phi)."""

    def __init__(self, theta, phi, l_max: int):
        self.theta = np.array(theta, dtype=float).ravel()
        self.phi = np.array(phi, dtype=float).ravel()
        if self.theta.shape != self.phi.shape:
            raise ValueError("theta and phi must have the same number of points")
        self.l_max = l_max
        self._grid = cached_angular_grid(l_max)
        self._evaluation = {}

    def interpolate(self, field, spin: int = 0, out: Optional[np.ndarray] = None) -> np.ndarray:
        if spin not in self._evaluation:
            self._evaluation[spin] = spin_weighted_harmonics(spin, self.l_max, self.theta, self.phi)
        coefficients = self._grid.transform(field, spin)
        return _write(coefficients @ self._evaluation[spin].T, out)


def resample(field, spin: int, l_max_target: int, l_max_source: int,
             out: Optional[np.ndarray] = None) -> np.ndarray:
    """Map a spin-s field between band-limits (truncating or zero-padding modes)."""
    if l_max_target == l_max_source:
        return _write(np.array(field, dtype=np.complex128), out)
    source = cached_angular_grid(l_max_source)
    target = cached_angular_grid(l_max_target)
    source_coefficients = source.transform(field, spin)
    source_index = {mode: i for i, mode in enumerate(swsh_modes(spin, l_max_source))}
    target_modes = swsh_modes(spin, l_max_target)
    target_coefficients = np.zeros(source_coefficients.shape[:-1] + (len(target_modes),),
                                   dtype=np.complex128)
    for i, mode in enumerate(target_modes):
        if mode in source_index:
            target_coefficients[..., i] = source_coefficients[..., source_index[mode]]
    return _write(target.inverse_transform(target_coefficients, spin), out)


@lru_cache(maxsize=None)
def _indefinite_integral_matrix(n: int) -> np.ndarray:
    nodes, _ = legendre.leggauss(n)
    to_coefficients = np.linalg.inv(legendre.legvander(nodes, n - 1))
    integrated = np.stack([legendre.legint(column, lbnd=-1) for column in np.eye(n)], axis=1)
    matrix = legendre.legvander(nodes, n) @ integrated @ to_coefficients
    matrix.flags.writeable = False
    return matrix


def indefinite_integral(field, extents: Sequence[int], dim: int,
                        out: Optional[np.ndarray] = None) -> np.ndarray:
    """Indefinite integral from the logical boundary -1 along mesh dimension `dim`.

    `extents` lists mesh sizes fastest dimension first; every dimension is
    taken to be Legendre-Gauss.
    """
    extents = tuple(int(e) for e in extents)
    data = np.asarray(field).reshape(extents[::-1])
    axis = len(extents) - 1 - dim
    matrix = _indefinite_integral_matrix(extents[dim])
    integrated = np.tensordot(matrix, np.moveaxis(data, axis, 0), axes=1)
    return _write(np.moveaxis(integrated, 0, axis).reshape(-1), out)


def angular_partials(field, l_max: int) -> Tuple[np.ndarray, np.ndarray]:
    """(d/dtheta f, 1/sin(theta) d/dphi f) of a spin-0 field on the l_max grid."""
    return cached_angular_grid(l_max).angular_partials(field)
