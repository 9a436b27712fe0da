"""
Tests for the spin-weighted spherical harmonic grid services.
"""

import numpy as np
import pytest
from numpy.polynomial import legendre

from cce_test_utils import band_limited_field

from cce_initial_data.numerics.swsh import (
    AngularGrid,
    SwshInterpolator,
    angular_partials,
    cached_angular_grid,
    indefinite_integral,
    inverse_swsh_transform,
    number_of_swsh_collocation_points,
    number_of_swsh_phi_collocation_points,
    number_of_swsh_theta_collocation_points,
    resample,
    spin_weighted_harmonics,
    swsh_modes,
    swsh_transform,
    wigner_small_d,
    wigner_small_d_derivative,
)


class TestCollocationGrid:
    """Collocation point tables and quadrature."""

    def test_point_counts(self):
        assert number_of_swsh_theta_collocation_points(8) == 9
        assert number_of_swsh_phi_collocation_points(8) == 17
        assert number_of_swsh_collocation_points(8) == 9 * 17

    def test_theta_ascending_and_phi_fastest(self):
        grid = AngularGrid(4)
        assert np.all(np.diff(grid.theta_nodes) > 0)
        assert np.all((grid.theta_nodes > 0) & (grid.theta_nodes < np.pi))
        # offset = phi_index + theta_index * n_phi
        assert grid.theta[grid.n_phi] == grid.theta_nodes[1]
        assert grid.phi[1] == grid.phi_nodes[1]
        assert grid.phi_nodes[0] == 0.0
        assert grid.phi_nodes[-1] < 2.0 * np.pi

    def test_weights_integrate_sphere_area(self):
        grid = AngularGrid(6)
        assert np.isclose(np.sum(grid.weights), 4.0 * np.pi, rtol=1e-13)

    def test_collocation_iterator(self):
        grid = cached_angular_grid(3)
        points = list(grid.collocation())
        assert len(points) == grid.size
        offset, theta, phi = points[5]
        assert offset == 5
        assert theta == grid.theta[5]
        assert phi == grid.phi[5]

    def test_cached_grid_is_shared(self):
        assert cached_angular_grid(5) is cached_angular_grid(5)

    def test_l_max_below_one_rejected(self):
        with pytest.raises(ValueError):
            AngularGrid(0)


class TestWignerFunctions:
    """Wigner small-d evaluation through Jacobi polynomials."""

    def test_low_order_closed_forms(self):
        theta = np.linspace(0.1, 3.0, 7)
        np.testing.assert_allclose(wigner_small_d(1, 0, 0, theta), np.cos(theta), atol=1e-14)
        np.testing.assert_allclose(wigner_small_d(1, 1, 0, theta), -np.sin(theta) / np.sqrt(2.0), atol=1e-14)
        np.testing.assert_allclose(wigner_small_d(1, 0, 1, theta), np.sin(theta) / np.sqrt(2.0), atol=1e-14)
        np.testing.assert_allclose(wigner_small_d(1, 1, 1, theta), 0.5 * (1.0 + np.cos(theta)), atol=1e-14)

    def test_columns_are_unit_vectors(self):
        theta = 0.83
        for l, m in [(3, 1), (4, -2), (6, 0)]:
            column = np.array([wigner_small_d(l, m_prime, m, theta) for m_prime in range(-l, l + 1)])
            assert np.isclose(np.sum(column ** 2), 1.0, atol=1e-13)

    def test_derivative_matches_finite_difference(self):
        theta, h = 0.7, 1.0e-6
        for l, m_prime, m in [(1, 0, 0), (2, 1, -2), (4, -3, 2), (5, 2, 0)]:
            expected = (wigner_small_d(l, m_prime, m, theta + h)
                        - wigner_small_d(l, m_prime, m, theta - h)) / (2.0 * h)
            assert np.isclose(wigner_small_d_derivative(l, m_prime, m, theta), expected, atol=1e-8)

    def test_spin_zero_harmonics(self):
        grid = cached_angular_grid(4)
        basis = spin_weighted_harmonics(0, 4, grid.theta, grid.phi)
        modes = swsh_modes(0, 4)
        np.testing.assert_allclose(basis[:, modes.index((0, 0))], 1.0 / np.sqrt(4.0 * np.pi), atol=1e-14)
        np.testing.assert_allclose(basis[:, modes.index((1, 0))],
                                   np.sqrt(3.0 / (4.0 * np.pi)) * np.cos(grid.theta), atol=1e-14)

    def test_modes_require_representable_spin(self):
        assert swsh_modes(2, 3)[0] == (2, -2)
        with pytest.raises(ValueError):
            swsh_modes(3, 2)


class TestTransforms:
    """Forward/inverse transforms and interpolation."""

    @pytest.mark.parametrize("spin", [0, 1, 2, -2])
    def test_basis_is_orthonormal_under_quadrature(self, spin):
        grid = cached_angular_grid(5)
        basis = grid.basis(spin)
        gram = basis.conj().T @ (basis * grid.weights[:, np.newaxis])
        np.testing.assert_allclose(gram, np.eye(basis.shape[1]), atol=1e-12)

    def test_inverse_then_forward_recovers_coefficients(self):
        rng = np.random.default_rng(3)
        n_modes = len(swsh_modes(2, 6))
        coefficients = rng.normal(size=n_modes) + 1j * rng.normal(size=n_modes)
        field = inverse_swsh_transform(coefficients, 2, 6)
        np.testing.assert_allclose(swsh_transform(field, 2, 6), coefficients, atol=1e-12)

    def test_transform_rejects_wrong_size(self):
        with pytest.raises(ValueError):
            swsh_transform(np.zeros(10), 0, 4)

    def test_interpolation_of_spin_zero_field(self):
        grid = cached_angular_grid(4)
        x = np.sin(grid.theta) * np.cos(grid.phi)
        y = np.sin(grid.theta) * np.sin(grid.phi)
        z = np.cos(grid.theta)
        field = z + 0.5 * x * y
        rng = np.random.default_rng(7)
        theta = rng.uniform(0.0, np.pi, 20)
        phi = rng.uniform(-np.pi, np.pi, 20)
        interpolator = SwshInterpolator(theta, phi, 4)
        expected = np.cos(theta) + 0.5 * np.sin(theta) ** 2 * np.cos(phi) * np.sin(phi)
        np.testing.assert_allclose(interpolator.interpolate(field), expected, atol=1e-12)

    def test_interpolation_at_grid_points_is_identity(self):
        grid = cached_angular_grid(5)
        field = band_limited_field(2, 5, seed=11)
        out = np.empty(grid.size, dtype=np.complex128)
        result = SwshInterpolator(grid.theta, grid.phi, 5).interpolate(field, spin=2, out=out)
        assert result is out
        np.testing.assert_allclose(out, field, atol=1e-12)

    def test_interpolator_rejects_mismatched_points(self):
        with pytest.raises(ValueError):
            SwshInterpolator(np.zeros(3), np.zeros(4), 4)


class TestResample:
    """Resampling between band-limits."""

    def test_upsample_then_downsample(self):
        field = band_limited_field(2, 4, seed=5)
        upsampled = resample(field, 2, 7, 4)
        assert upsampled.shape == (number_of_swsh_collocation_points(7),)
        np.testing.assert_allclose(resample(upsampled, 2, 4, 7), field, atol=1e-12)

    def test_upsampled_values_match_function(self):
        fine = cached_angular_grid(6)
        coarse = cached_angular_grid(3)
        values = np.cos(coarse.theta) ** 2
        np.testing.assert_allclose(resample(values, 0, 6, 3), np.cos(fine.theta) ** 2, atol=1e-12)

    def test_downsample_truncates_high_modes(self):
        field = band_limited_field(0, 6, seed=1, l_limit=3)
        coarse = resample(field, 0, 3, 6)
        np.testing.assert_allclose(resample(coarse, 0, 6, 3), field, atol=1e-12)

    def test_resample_volume_rows(self):
        volume = np.stack([band_limited_field(2, 3, seed=s) for s in range(3)])
        out = np.empty((3, number_of_swsh_collocation_points(5)), dtype=np.complex128)
        resample(volume, 2, 5, 3, out=out)
        np.testing.assert_allclose(out[1], resample(volume[1], 2, 5, 3), atol=1e-13)


class TestAngularPartials:
    """Angular derivatives of spin-0 fields."""

    def test_partials_of_cartesian_coordinates(self):
        grid = cached_angular_grid(5)
        x = np.sin(grid.theta) * np.cos(grid.phi)
        z = np.cos(grid.theta)
        d_theta, d_phi = angular_partials(np.stack([x, z]), 5)
        np.testing.assert_allclose(d_theta[0], np.cos(grid.theta) * np.cos(grid.phi), atol=1e-12)
        np.testing.assert_allclose(d_phi[0], -np.sin(grid.phi), atol=1e-12)
        np.testing.assert_allclose(d_theta[1], -np.sin(grid.theta), atol=1e-12)
        np.testing.assert_allclose(d_phi[1], 0.0, atol=1e-12)

    def test_real_input_gives_real_output(self):
        grid = cached_angular_grid(3)
        d_theta, d_phi = angular_partials(np.cos(grid.theta), 3)
        assert not np.iscomplexobj(d_theta)
        assert not np.iscomplexobj(d_phi)


class TestIndefiniteIntegral:
    """Legendre-Gauss indefinite integral on a 2-D mesh."""

    def test_constant_along_theta(self):
        grid = cached_angular_grid(6)
        result = indefinite_integral(np.ones(grid.size), grid.extents, 1)
        np.testing.assert_allclose(result, 1.0 - np.cos(grid.theta), atol=1e-13)

    def test_polynomial_along_fastest_dimension(self):
        extents = (5, 4)
        nodes, _ = legendre.leggauss(5)
        field = np.tile(nodes ** 2, 4)
        out = np.empty(field.size)
        indefinite_integral(field, extents, 0, out=out)
        np.testing.assert_allclose(out, np.tile((nodes ** 3 + 1.0) / 3.0, 4), atol=1e-13)

    def test_complex_input(self):
        grid = cached_angular_grid(4)
        field = (1.0 + 2.0j) * np.ones(grid.size)
        result = indefinite_integral(field, grid.extents, 1)
        np.testing.assert_allclose(result, (1.0 + 2.0j) * (1.0 - np.cos(grid.theta)), atol=1e-13)
