"""Step-wise incremental Delaunay triangulation controller.

Typical use::

    tri = Triangulator()
    tri.initial_triangulation(points)
    while tri.do_step():
        pass
    triangles = tri.get_triangles()

or simply ``triangulate(points)``.
"""
from __future__ import annotations

import enum
import time
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from .config import TriangulationConfig
from .errors import DegenerateInput, DuplicatePoint, InsufficientPoints, InvalidCoordinate
from .geometry import coordinate_extent, coordinate_scale
from .logging_utils import configure_logging, get_logger
from .mesh import Mesh, Triangle
from .operations import op_insert_point
from .predicates import orient2d
from .stats import format_stats_table, stats_to_dict
from .constants import GHOST_VERTEX

__all__ = ['TriangulationState', 'StepResult', 'Triangulator', 'triangulate', 'as_points', 'select_seed']


class TriangulationState(enum.Enum):
    UNINITIALIZED = 'uninitialized'
    SEEDED = 'seeded'
    IN_PROGRESS = 'in_progress'
    COMPLETE = 'complete'


@dataclass
class StepResult:
    index: int
    inserted: bool
    flips: int = 0
    live_triangles: int = 0
    duplicate: Optional[DuplicatePoint] = None
    elapsed: float = 0.0


def as_points(points) -> np.ndarray:
    """Validate input coordinates and return a read-only ``(N, 2)`` float64 copy.

    Raises InsufficientPoints for fewer than 3 points and InvalidCoordinate
    for the first NaN or infinite coordinate.
    """
    arr = np.array(points, dtype=np.float64, copy=True)
    if arr.ndim == 1 and arr.size == 0:
        arr = arr.reshape(0, 2)
    if arr.ndim != 2 or arr.shape[1] != 2:
        raise ValueError(f"points must have shape (N, 2), got {arr.shape}")
    if len(arr) < 3:
        raise InsufficientPoints(len(arr))
    bad = ~np.isfinite(arr).all(axis=1)
    if np.any(bad):
        i = int(np.argmax(bad))
        raise InvalidCoordinate(i, tuple(float(v) for v in arr[i]))
    arr.setflags(write=False)
    return arr


def select_seed(points: np.ndarray, tolerance: float, area_tolerance: float = 0.0):
    """Pick three input indices spanning a non-degenerate counter-clockwise triangle.

    The first point is always index 0; the second is the first point farther
    than ``tolerance`` from it; the third is the first remaining point that is
    not within ``tolerance`` of either and whose ``orient2d`` value against
    the first two exceeds ``area_tolerance`` in magnitude. With an area
    tolerance of 0 only exactly collinear points are skipped.
    Raises DegenerateInput when no such triple exists.
    """
    n = len(points)
    p0 = points[0]
    i1 = next((j for j in range(1, n) if float(np.hypot(*(points[j] - p0))) > tolerance), None)
    if i1 is None:
        raise DegenerateInput(f"all {n} points coincide")
    p1 = points[i1]
    i2 = None
    for k in range(1, n):
        if k == i1:
            continue
        pk = points[k]
        if float(np.hypot(*(pk - p0))) <= tolerance or float(np.hypot(*(pk - p1))) <= tolerance:
            continue
        if abs(orient2d(p0, p1, pk)) > area_tolerance:
            i2 = k
            break
    if i2 is None:
        raise DegenerateInput(f"all {n} points are collinear (orientation tolerance {area_tolerance:.3e})")
    if orient2d(p0, p1, points[i2]) < 0.0:
        return 0, i2, i1
    return 0, i1, i2


class Triangulator:
    """Incremental Delaunay triangulator that can be advanced one point at a time.

    The controller owns a ``Mesh`` whose triangles index the input point
    array. Points are inserted in input order (the three seed points first).
    Between steps the real triangles always form a valid Delaunay
    triangulation of the points inserted so far.
    """

    def __init__(self, config: Optional[TriangulationConfig] = None):
        self.config = config or TriangulationConfig()
        if self.config.log_level is not None:
            configure_logging(self.config.log_level)
        self.logger = get_logger('deltri.triangulator')
        self._reset()

    def _reset(self):
        self.points: Optional[np.ndarray] = None
        self.mesh: Optional[Mesh] = None
        self.state = TriangulationState.UNINITIALIZED
        self.seed = None
        self.tolerance = 0.0
        self._order: List[int] = []
        self._cursor = 0
        self.diagnostics: List[DuplicatePoint] = []
        self.last_step: Optional[StepResult] = None

    # ------------------------------------------------------------------
    @property
    def next_index(self) -> Optional[int]:
        """Input index of the point the next ``do_step`` will insert."""
        if self._cursor < len(self._order):
            return self._order[self._cursor]
        return None

    @property
    def remaining(self) -> int:
        return len(self._order) - self._cursor

    @property
    def pending(self) -> List[int]:
        """Input indices still queued for insertion, in insertion order."""
        return self._order[self._cursor:]

    @property
    def steps_done(self) -> int:
        return self._cursor

    @property
    def inserted_count(self) -> int:
        if self.seed is None:
            return 0
        return 3 + self._cursor - len(self.diagnostics)

    @property
    def stats(self):
        return {} if self.mesh is None else self.mesh.stats

    def _require_mesh(self):
        if self.mesh is None:
            raise RuntimeError("initial_triangulation() has not been called")

    # ------------------------------------------------------------------
    def initial_triangulation(self, points) -> List[Triangle]:
        """Validate ``points``, build the seed triangle and queue the rest.

        Any previous state is discarded. Returns the seed triangle as a
        one-element list. Raises InsufficientPoints, InvalidCoordinate or
        DegenerateInput, leaving the controller uninitialized.
        """
        self._reset()
        pts = as_points(points)
        rel = self.config.duplicate_tolerance_rel
        tolerance = rel * coordinate_scale(pts)
        a, b, c = select_seed(pts, tolerance, rel * coordinate_extent(pts) ** 2)
        g = GHOST_VERTEX
        mesh = Mesh.from_triangles(pts, [(a, b, c), (c, b, g), (a, c, g), (b, a, g)])
        if self.config.validate_each_step:
            mesh.assert_valid()
        self.points = pts
        self.mesh = mesh
        self.tolerance = tolerance
        self.seed = (a, b, c)
        seed = set(self.seed)
        self._order = [i for i in range(len(pts)) if i not in seed]
        self.state = TriangulationState.SEEDED if self._order else TriangulationState.COMPLETE
        self.logger.info("Seed triangle %s; %d points queued (duplicate tolerance %.3e)", self.seed, len(self._order), tolerance)
        return mesh.live_triangles()

    def do_step(self, points=None) -> bool:
        """Insert the next queued point. Returns False once every point is processed.

        ``points`` may be passed again for call-site symmetry; it must hold the
        same coordinates given to ``initial_triangulation``.
        """
        self._require_mesh()
        if points is not None:
            arr = np.asarray(points, dtype=np.float64)
            if arr.shape != self.points.shape or not np.array_equal(arr, self.points):
                raise ValueError("do_step() received a point set different from initial_triangulation()")
        if self.state == TriangulationState.COMPLETE:
            return False
        t0 = time.perf_counter()
        index = self._order[self._cursor]
        res = op_insert_point(self.mesh, index, self.tolerance, self.config.max_walk_steps)
        self._cursor += 1
        if res.duplicate is not None:
            self.diagnostics.append(res.duplicate)
        if self.config.validate_each_step:
            self.mesh.assert_valid()
        self.state = TriangulationState.COMPLETE if self._cursor >= len(self._order) else TriangulationState.IN_PROGRESS
        self.last_step = StepResult(index, res.inserted, res.flips, self.mesh.real_count,
                                    res.duplicate, time.perf_counter() - t0)
        if self.state == TriangulationState.COMPLETE:
            self.logger.info("Triangulation complete: %d vertices, %d triangles, %d duplicates skipped",
                             self.inserted_count, self.last_step.live_triangles, len(self.diagnostics))
            if self.config.record_stats:
                self.logger.debug("Operation stats:\n%s", format_stats_table(stats_to_dict(self.mesh.stats)))
        return True

    def run(self, max_steps: Optional[int] = None) -> int:
        """Call ``do_step`` until completion (or ``max_steps``); returns the steps taken."""
        steps = 0
        while (max_steps is None or steps < max_steps) and self.do_step():
            steps += 1
        return steps

    # ------------------------------------------------------------------
    def get_triangles(self) -> List[Triangle]:
        """Live triangles of the current triangulation, with hull sides as NO_NEIGHBOR."""
        self._require_mesh()
        return self.mesh.live_triangles()

    def triangle_indices(self) -> np.ndarray:
        """``(M, 3)`` int32 array of counter-clockwise triangle vertex indices."""
        self._require_mesh()
        return self.mesh.triangles_array()

    def hull(self) -> List[int]:
        """Convex-hull vertex indices of the inserted points, counter-clockwise."""
        self._require_mesh()
        return self.mesh.hull_vertices()

    def validate(self):
        self._require_mesh()
        return self.mesh.validate()


def triangulate(points, config: Optional[TriangulationConfig] = None) -> List[Triangle]:
    """Delaunay triangulation of ``points`` in one call."""
    tri = Triangulator(config)
    tri.initial_triangulation(points)
    tri.run()
    return tri.get_triangles()
