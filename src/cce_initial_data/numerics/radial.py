"""Legendre Gauss-Lobatto radial grid services.

Radial profiles are ordered by increasing compactified coordinate y, with
y = -1 at the worldtube and y = 1 at scri.
"""

from functools import lru_cache
from typing import Optional

import numpy as np
from numpy.polynomial import legendre


@lru_cache(maxsize=None)
def _lobatto_nodes(n: int) -> np.ndarray:
    interior = legendre.legroots(legendre.legder(np.eye(n)[n - 1])) if n > 2 else np.empty(0)
    nodes = np.concatenate(([-1.0], np.sort(np.real(interior)), [1.0]))
    nodes.flags.writeable = False
    return nodes


def gauss_lobatto_points(n: int) -> np.ndarray:
    """Ascending Legendre Gauss-Lobatto points on [-1, 1], endpoints included."""
    if n < 2:
        raise ValueError(f"Gauss-Lobatto grid needs at least 2 points, got {n}")
    return _lobatto_nodes(n).copy()


def interpolation_matrix(n_source: int, target_points) -> np.ndarray:
    """Matrix mapping values on an n_source Lobatto grid to `target_points`."""
    nodes = gauss_lobatto_points(n_source)
    target = np.asarray(target_points, dtype=float)
    return legendre.legvander(target, n_source - 1) @ np.linalg.inv(
        legendre.legvander(nodes, n_source - 1)
    )


def resample_radial(volume, n_target: int, out: Optional[np.ndarray] = None) -> np.ndarray:
    """Interpolate a (n_radial, n_angular) volume to n_target Lobatto points."""
    volume = np.asarray(volume)
    n_source = volume.shape[0]
    if n_source == n_target:
        result = volume.copy()
    else:
        result = interpolation_matrix(n_source, gauss_lobatto_points(n_target)) @ volume
    if out is None:
        return result
    out[...] = result
    return out
