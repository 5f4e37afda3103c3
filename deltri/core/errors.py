"""Exception taxonomy and non-fatal diagnostics.

Seeding-time input problems (too few points, collinear input, NaN) raise and
leave no state behind. Per-point problems (duplicates) are reported as
``DuplicatePoint`` diagnostics and the run continues. ``MeshConsistencyError``
signals a defect in the engine itself; it is never raised for bad input.
"""
from __future__ import annotations

from dataclasses import dataclass


class TriangulationError(Exception):
    """Base class for every error raised by deltri."""


class InsufficientPoints(TriangulationError, ValueError):
    def __init__(self, count: int):
        super().__init__(f"At least 3 points are required, got {count}")
        self.count = count


class DegenerateInput(TriangulationError, ValueError):
    """All input points are collinear (or coincide); no triangle exists."""


class InvalidCoordinate(TriangulationError, ValueError):
    def __init__(self, index: int, value=None):
        super().__init__(f"Non-finite coordinate at index {index}: {value!r}")
        self.index = index
        self.value = value


class PointOutsideBounds(TriangulationError):
    """Point location walked off the mesh (bounding structure is broken)."""


class MeshConsistencyError(TriangulationError, RuntimeError):
    """An internal invariant of the mesh does not hold."""


class NonConvexFlip(MeshConsistencyError):
    """A flip was requested on an edge whose quadrilateral is not strictly convex."""


@dataclass(frozen=True)
class DuplicatePoint:
    """Diagnostic: input point ``index`` coincides with vertex ``existing`` and was skipped."""
    index: int
    existing: int
    distance: float = 0.0

    def __str__(self):
        return f"point {self.index} duplicates vertex {self.existing} (distance {self.distance:.3e}); skipped"


__all__ = [
    'TriangulationError', 'InsufficientPoints', 'DegenerateInput', 'InvalidCoordinate',
    'PointOutsideBounds', 'MeshConsistencyError', 'NonConvexFlip', 'DuplicatePoint',
]
