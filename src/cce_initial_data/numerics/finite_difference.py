"""Barycentric rational interpolation and a sixth-order finite-difference derivative.

Used to differentiate the worldtube radial derivative across archive radii,
where only a handful of irregularly spaced samples are available.
"""

from typing import Callable

import numpy as np
from scipy.interpolate import FloaterHormannInterpolator

# sixth-order central stencil; the centre point has zero weight and is never sampled
CENTRAL_STENCIL = np.array([-1.0, 9.0, -45.0, 45.0, -9.0, 1.0]) / 60.0
STENCIL_OFFSETS = np.array([-3, -2, -1, 1, 2, 3])


def barycentric_rational_interpolant(x, values, order: int = 3) -> Callable[[float], float]:
    """Floater-Hormann interpolant through (x, values).

    `order` is clamped to len(x) - 1. Points need not be sorted but must be
    distinct.
    """
    x = np.asarray(x, dtype=float)
    values = np.asarray(values, dtype=float)
    if x.shape != values.shape:
        raise ValueError(f"x and values shapes differ: {x.shape} vs {values.shape}")
    if x.size < 2:
        raise ValueError("barycentric rational interpolation needs at least 2 points")
    if np.unique(x).size != x.size:
        raise ValueError("interpolation points must be distinct")
    ordering = np.argsort(x)
    d = max(0, min(order, x.size - 1))
    return FloaterHormannInterpolator(x[ordering], values[ordering], d=d)


def finite_difference_derivative(f: Callable, x: float, step: float = None) -> float:
    """First derivative of `f` at `x` from a sixth-order central difference."""
    if step is None:
        step = np.finfo(float).eps ** (1.0 / 7.0) * max(1.0, abs(x))
    # make x + step exactly representable
    step = (x + step) - x
    samples = np.array([f(x + k * step) for k in STENCIL_OFFSETS], dtype=float)
    return float(CENTRAL_STENCIL @ samples) / step
