"""
Tests for the angular coordinate solve and the ConformalFactor strategy.
"""

import logging

import numpy as np
import pytest

from cce_test_utils import band_limited_field, max_abs

from cce_initial_data.numerics.radial import gauss_lobatto_points
from cce_initial_data.numerics.swsh import cached_angular_grid
from cce_initial_data.solvers.cce.conformal_factor import (
    DIVERGENCE_BOUND,
    ConformalFactor,
    adjust_angular_coordinates_for_omega,
)
from cce_initial_data.solvers.cce.errors import DivergenceError, NonConvergenceWarning
from cce_initial_data.solvers.cce.gauge import (
    AngularCoordinates,
    conformal_factor,
    gauge_jacobians,
    normalize_phi,
)
from cce_initial_data.solvers.cce.state import BoundaryData, ConvergenceRecord


L_MAX = 6


def boosted_coordinates(l_max, velocity):
    """Polar aberration map cos(theta_hat) = (cos(theta) + v) / (1 + v cos(theta))."""
    grid = cached_angular_grid(l_max)
    cos_theta = np.cos(grid.theta)
    coordinates = AngularCoordinates()
    coordinates.set_angular(np.arccos((cos_theta + velocity) / (1.0 + velocity * cos_theta)), grid.phi)
    return coordinates


class TestAngularCoordinateSolve:
    """Fixed-point iteration for a target conformal factor."""

    def test_flat_target_converges_on_native_grid(self):
        grid = cached_angular_grid(L_MAX)
        volume_j = np.stack([band_limited_field(2, L_MAX, amplitude=0.05, seed=s) for s in range(3)])
        original = volume_j.copy()
        coordinates = AngularCoordinates()

        record = adjust_angular_coordinates_for_omega(volume_j, coordinates, np.ones(grid.size), L_MAX)

        assert isinstance(record, ConvergenceRecord)
        assert record.converged
        assert record.number_of_steps <= 2
        assert record.max_error < 1e-10
        np.testing.assert_allclose(coordinates.theta, grid.theta, atol=1e-12)
        np.testing.assert_allclose(np.exp(1j * coordinates.phi), np.exp(1j * grid.phi), atol=1e-12)
        np.testing.assert_allclose(coordinates.z, np.cos(grid.theta), atol=1e-12)
        np.testing.assert_allclose(volume_j, original, atol=1e-10)

    @pytest.mark.parametrize("velocity", [0.01, -0.01, 0.05])
    def test_recovers_boost_map(self, velocity):
        l_max = 8
        grid = cached_angular_grid(l_max)
        inverse = boosted_coordinates(l_max, -velocity)
        target = 1.0 / conformal_factor(*gauge_jacobians(inverse, l_max))
        coordinates = AngularCoordinates()

        record = adjust_angular_coordinates_for_omega(np.zeros(grid.size, dtype=complex), coordinates,
                                                      target, l_max, tolerance=1e-9)

        assert record.converged
        assert 1 < record.number_of_steps < 20
        expected = boosted_coordinates(l_max, velocity)
        np.testing.assert_allclose(coordinates.theta, expected.theta, atol=1e-9)
        np.testing.assert_allclose(np.exp(1j * coordinates.phi), np.exp(1j * expected.phi), atol=1e-9)

    def test_phi_normalized(self):
        grid = cached_angular_grid(L_MAX)
        coordinates = AngularCoordinates()
        adjust_angular_coordinates_for_omega(np.zeros(grid.size, dtype=complex), coordinates,
                                             np.ones(grid.size), L_MAX)
        assert np.all(coordinates.phi > -np.pi)
        assert np.all(coordinates.phi <= np.pi)
        np.testing.assert_allclose(coordinates.phi, normalize_phi(grid.phi), atol=1e-12)

    def test_discontinuous_target_diverges(self):
        grid = cached_angular_grid(L_MAX)
        target = np.where(grid.theta < 0.5 * np.pi, 1.0, 10.0)
        with pytest.raises(DivergenceError) as excinfo:
            adjust_angular_coordinates_for_omega(np.zeros(grid.size, dtype=complex), AngularCoordinates(),
                                                 target, L_MAX, max_steps=100)
        error = excinfo.value
        assert not error.max_error <= DIVERGENCE_BOUND
        assert 1 <= error.number_of_steps <= 100

    def test_step_limit_warns_and_reports(self):
        grid = cached_angular_grid(L_MAX)
        target = 1.0 + 0.01 * np.cos(grid.theta)
        with pytest.warns(NonConvergenceWarning):
            record = adjust_angular_coordinates_for_omega(np.zeros(grid.size, dtype=complex),
                                                          AngularCoordinates(), target, L_MAX,
                                                          max_steps=0)
        assert not record.converged
        assert record.number_of_steps == 1
        assert 1e-10 < record.max_error < DIVERGENCE_BOUND

    def test_only_first_shell_adjusted_without_volume_gauge(self):
        grid = cached_angular_grid(L_MAX)
        target = 1.0 + 0.01 * np.cos(grid.theta)
        volume_j = np.stack([band_limited_field(2, L_MAX, amplitude=0.05, seed=s) for s in range(2)])
        original = volume_j.copy()
        with pytest.warns(NonConvergenceWarning):
            adjust_angular_coordinates_for_omega(volume_j, AngularCoordinates(), target, L_MAX,
                                                 max_steps=0, adjust_volume_gauge=False)
        np.testing.assert_array_equal(volume_j[1], original[1])
        assert max_abs(volume_j[0] - original[0]) > 0.0

    def test_rejects_wrong_target_size(self):
        with pytest.raises(ValueError):
            adjust_angular_coordinates_for_omega(np.zeros(5, dtype=complex), AngularCoordinates(),
                                                 np.ones(5), L_MAX)

    def test_logs_solve(self, caplog):
        grid = cached_angular_grid(L_MAX)
        with caplog.at_level(logging.INFO, logger='cce_initial_data.conformal_factor'):
            adjust_angular_coordinates_for_omega(np.zeros(grid.size, dtype=complex), AngularCoordinates(),
                                                 np.ones(grid.size), L_MAX)
        messages = [record.getMessage() for record in caplog.records]
        assert "Angular coordinate solve finished" in messages
        finished = [r for r in caplog.records if r.getMessage() == "Angular coordinate solve finished"][0]
        assert finished.extra_data["converged"] is True


class TestConformalFactorStrategy:

    def test_flat_beta_gives_linear_falloff(self):
        grid = cached_angular_grid(L_MAX)
        boundary_j = band_limited_field(2, L_MAX, amplitude=0.05, seed=2)
        boundary = BoundaryData(j=boundary_j, dr_j=np.zeros(grid.size), r=100.0 * np.ones(grid.size),
                                beta=np.zeros(grid.size))

        hypersurface = ConformalFactor().generate(boundary, L_MAX, 5)

        one_minus_y = 1.0 - gauss_lobatto_points(5)
        assert hypersurface.bondi_j.shape == (5, grid.size)
        np.testing.assert_allclose(hypersurface.bondi_j[0], boundary_j, atol=1e-10)
        np.testing.assert_allclose(hypersurface.bondi_j, np.outer(one_minus_y, 0.5 * boundary_j), atol=1e-10)
        np.testing.assert_allclose(hypersurface.bondi_j[-1], 0.0, atol=1e-15)
        assert hypersurface.convergence.converged
        np.testing.assert_allclose(hypersurface.coordinates.theta, grid.theta, atol=1e-12)

    def test_boundary_data_not_mutated(self):
        grid = cached_angular_grid(L_MAX)
        boundary_j = band_limited_field(2, L_MAX, amplitude=0.05, seed=3)
        boundary = BoundaryData(j=boundary_j, dr_j=np.zeros(grid.size), r=np.ones(grid.size),
                                beta=np.zeros(grid.size))
        before = boundary.j.copy()
        ConformalFactor().generate(boundary, L_MAX, 3)
        np.testing.assert_array_equal(boundary.j, before)
