"""Data containers shared by the initial data strategies and the assembler."""

from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from ...numerics.swsh import number_of_swsh_collocation_points
from .gauge import AngularCoordinates


@dataclass(frozen=True)
class ConvergenceRecord:
    """Outcome of an iterative angular solve."""
    max_error: float
    number_of_steps: int
    converged: bool


@dataclass
class BoundaryData:
    """Worldtube values on the native angular grid.

    j and dr_j are spin 2, r and beta spin 0; all have one sample per
    angular collocation point.
    """
    j: np.ndarray
    dr_j: np.ndarray
    r: np.ndarray
    beta: np.ndarray

    def __post_init__(self):
        self.j = np.asarray(self.j, dtype=np.complex128)
        self.dr_j = np.asarray(self.dr_j, dtype=np.complex128)
        self.r = np.asarray(self.r, dtype=np.complex128)
        self.beta = np.asarray(self.beta, dtype=np.complex128)
        sizes = {self.j.shape, self.dr_j.shape, self.r.shape, self.beta.shape}
        if len(sizes) != 1:
            raise ValueError(f"boundary fields have mismatched shapes: {sorted(sizes)}")


@dataclass
class InitialHypersurface:
    """J on every radial shell plus the angular coordinate map it is expressed in."""
    bondi_j: np.ndarray
    coordinates: AngularCoordinates
    l_max: int
    convergence: Optional[ConvergenceRecord] = None

    @property
    def number_of_radial_points(self) -> int:
        return self.bondi_j.shape[0]


@dataclass
class CceState:
    """Caller-owned evolution state the first hypersurface is written into."""
    l_max: int
    number_of_radial_points: int
    bondi_j: np.ndarray = None
    coordinates: AngularCoordinates = field(default_factory=AngularCoordinates)

    def __post_init__(self):
        n_angular = number_of_swsh_collocation_points(self.l_max)
        if self.bondi_j is None:
            self.bondi_j = np.zeros((self.number_of_radial_points, n_angular), dtype=np.complex128)
        if self.bondi_j.shape != (self.number_of_radial_points, n_angular):
            raise ValueError(
                f"bondi_j must have shape {(self.number_of_radial_points, n_angular)}, "
                f"got {self.bondi_j.shape}"
            )
