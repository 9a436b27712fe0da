from .swsh import (
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
    swsh_transform,
)
from .radial import gauss_lobatto_points, interpolation_matrix, resample_radial
from .finite_difference import barycentric_rational_interpolant, finite_difference_derivative
