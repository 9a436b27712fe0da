"""
Worldtube boundary archives and the multi-archive resampler.

Each archive records J, dr J and the Bondi radius R on one extraction
worldtube. Archives at different radii are aligned in retarded time by
querying archive i at target_time + (R_i - R_target).
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Protocol, Sequence, runtime_checkable

import numpy as np

from ...numerics.finite_difference import barycentric_rational_interpolant
from ...numerics.swsh import resample
from .errors import MissingArchiveError

logger = logging.getLogger('cce_initial_data.worldtube')


@dataclass(frozen=True)
class BoundarySnapshot:
    """Worldtube field triple at one time, on the archive's own angular grid."""
    extraction_radius: float
    j: np.ndarray
    dr_j: np.ndarray
    r: np.ndarray
    l_max: int
    time: float

    @property
    def number_of_angular_points(self) -> int:
        return self.j.shape[-1]


@runtime_checkable
class BoundaryDataSource(Protocol):
    def get_extraction_radius(self) -> float:
        ...

    def populate_hypersurface_boundary_data(self, time: float) -> BoundarySnapshot:
        ...


class TabulatedWorldtubeArchive:
    """In-memory worldtube time series interpolated in time.

    Data are interpolated with a Floater-Hormann barycentric rational
    interpolant over the `interpolation_points` samples nearest the
    requested time.
    """

    def __init__(self, times, j, dr_j, r, extraction_radius: float, l_max: int,
                 interpolation_points: int = 10, interpolation_order: int = 3,
                 name: Optional[str] = None):
        self.times = np.asarray(times, dtype=float)
        self.j = np.asarray(j, dtype=np.complex128)
        self.dr_j = np.asarray(dr_j, dtype=np.complex128)
        self.r = np.asarray(r, dtype=np.complex128)
        self.extraction_radius = float(extraction_radius)
        self.l_max = int(l_max)
        self.interpolation_points = interpolation_points
        self.interpolation_order = interpolation_order
        self.name = name or f"worldtube(R={self.extraction_radius:g})"

        if self.times.ndim != 1 or self.times.size == 0:
            raise ValueError("times must be a non-empty 1-D array")
        if np.any(np.diff(self.times) <= 0):
            raise ValueError("times must be strictly increasing")
        for label, table in (("j", self.j), ("dr_j", self.dr_j), ("r", self.r)):
            if table.ndim != 2 or table.shape[0] != self.times.size:
                raise ValueError(
                    f"{label} must have shape (n_times, n_angular) with n_times={self.times.size}, "
                    f"got {table.shape}"
                )

    @classmethod
    def from_npz(cls, path, **kwargs) -> 'TabulatedWorldtubeArchive':
        """Load an archive saved with keys times, j, dr_j, r, extraction_radius, l_max."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Worldtube archive not found: {path}")
        with np.load(path) as data:
            archive = cls(data["times"], data["j"], data["dr_j"], data["r"],
                          float(data["extraction_radius"]), int(data["l_max"]),
                          name=kwargs.pop("name", str(path)), **kwargs)
        logger.info(f"Loaded worldtube archive from {path}", extra={"extra_data": {
            "extraction_radius": archive.extraction_radius,
            "time_range": archive.time_range,
            "l_max": archive.l_max,
        }})
        return archive

    @property
    def time_range(self):
        return (float(self.times[0]), float(self.times[-1]))

    def get_extraction_radius(self) -> float:
        return self.extraction_radius

    def populate_hypersurface_boundary_data(self, time: float) -> BoundarySnapshot:
        weights, window = self._time_weights(time)
        return BoundarySnapshot(
            extraction_radius=self.extraction_radius,
            j=weights @ self.j[window],
            dr_j=weights @ self.dr_j[window],
            r=weights @ self.r[window],
            l_max=self.l_max,
            time=float(time),
        )

    def _time_weights(self, time: float):
        start_time, end_time = self.time_range
        if not start_time <= time <= end_time:
            raise MissingArchiveError(time, self.time_range, self.name)

        exact = np.flatnonzero(self.times == time)
        if exact.size:
            return np.ones(1), slice(exact[0], exact[0] + 1)

        n_window = min(self.interpolation_points, self.times.size)
        index = int(np.searchsorted(self.times, time))
        start = min(max(index - n_window // 2, 0), self.times.size - n_window)
        window = slice(start, start + n_window)
        window_times = self.times[window]
        # the interpolant is linear in its values: weights are the images of unit vectors
        weights = np.array([
            barycentric_rational_interpolant(window_times, unit, self.interpolation_order)(time)
            for unit in np.eye(n_window)
        ], dtype=float)
        return weights, window


class ResolutionAdapter:
    """Present an archive at a different angular resolution."""

    def __init__(self, archive: BoundaryDataSource, l_max: int):
        self.archive = archive
        self.l_max = l_max

    def get_extraction_radius(self) -> float:
        return self.archive.get_extraction_radius()

    def populate_hypersurface_boundary_data(self, time: float) -> BoundarySnapshot:
        snapshot = self.archive.populate_hypersurface_boundary_data(time)
        if snapshot.l_max == self.l_max:
            return snapshot
        return BoundarySnapshot(
            extraction_radius=snapshot.extraction_radius,
            j=resample(snapshot.j, 2, self.l_max, snapshot.l_max),
            dr_j=resample(snapshot.dr_j, 2, self.l_max, snapshot.l_max),
            r=resample(snapshot.r, 0, self.l_max, snapshot.l_max),
            l_max=self.l_max,
            time=snapshot.time,
        )


@dataclass
class MultiArchiveSnapshot:
    """Time-aligned worldtube data, one row per archive in archive order."""
    j: np.ndarray
    dr_j: np.ndarray
    r: np.ndarray
    extraction_radii: np.ndarray
    times: np.ndarray
    target_index: int

    @property
    def number_of_archives(self) -> int:
        return self.j.shape[0]


def read_in_worldtube_data(j_out: Optional[np.ndarray], dr_j_out: Optional[np.ndarray],
                           r_out: Optional[np.ndarray], archives: Sequence[BoundaryDataSource],
                           target_index: int, target_time: float) -> MultiArchiveSnapshot:
    """Sample every archive at its light-travel-time corrected time.

    Output buffers have shape (n_archives, n_angular); pass None to allocate.
    Nothing is written unless every archive supplies its sample.

    Raises:
        MissingArchiveError: If any archive has no data at its corrected time
        ValueError: If archives disagree on angular size or buffers are mis-sized
    """
    if len(archives) == 0:
        raise ValueError("at least one worldtube archive is required")
    if not 0 <= target_index < len(archives):
        raise ValueError(f"target_index {target_index} out of range for {len(archives)} archives")

    target_radius = archives[target_index].get_extraction_radius()
    snapshots: List[BoundarySnapshot] = []
    for archive in archives:
        corrected_time = target_time + (archive.get_extraction_radius() - target_radius)
        snapshots.append(archive.populate_hypersurface_boundary_data(corrected_time))

    n_angular = snapshots[0].number_of_angular_points
    for i, snapshot in enumerate(snapshots):
        if snapshot.number_of_angular_points != n_angular:
            raise ValueError(
                f"archive {i} has {snapshot.number_of_angular_points} angular points, expected "
                f"{n_angular}; equalize resolutions with ResolutionAdapter"
            )

    shape = (len(archives), n_angular)
    buffers = []
    for label, out in (("j_out", j_out), ("dr_j_out", dr_j_out), ("r_out", r_out)):
        if out is None:
            out = np.empty(shape, dtype=np.complex128)
        elif out.shape != shape:
            raise ValueError(f"{label} must have shape {shape}, got {out.shape}")
        buffers.append(out)
    j_out, dr_j_out, r_out = buffers

    for i, snapshot in enumerate(snapshots):
        j_out[i] = snapshot.j
        dr_j_out[i] = snapshot.dr_j
        r_out[i] = snapshot.r

    logger.debug("Read worldtube data", extra={"extra_data": {
        "archives": len(archives), "target_index": target_index, "target_time": target_time,
    }})
    return MultiArchiveSnapshot(
        j=j_out, dr_j=dr_j_out, r=r_out,
        extraction_radii=np.array([s.extraction_radius for s in snapshots]),
        times=np.array([s.time for s in snapshots]),
        target_index=target_index,
    )
