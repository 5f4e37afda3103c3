"""Configuration objects for incremental Delaunay triangulation."""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Union

from .constants import EPS_DUPLICATE_REL


@dataclass
class TriangulationConfig:
    """Knobs for a single triangulation run.

    Attributes
    ----------
    duplicate_tolerance_rel : float
        Two points closer than ``duplicate_tolerance_rel * scale`` are treated
        as the same vertex, where ``scale`` is the largest absolute input
        coordinate (1.0 for an all-zero input). Exactly equal points are always
        duplicates, even with a tolerance of 0. The seed triangle must also
        have ``|orient2d|`` above ``duplicate_tolerance_rel * extent**2``
        (``extent`` is the largest bounding-box side), so nearly collinear
        input is rejected as degenerate.
    validate_each_step : bool
        Run the full structural check of the mesh after every step and raise
        ``MeshConsistencyError`` on the first violation. Quadratic overall;
        meant for debugging and tests.
    max_walk_steps : int, optional
        Upper bound on triangles visited by one point-location walk. ``None``
        uses four times the number of live triangles.
    record_stats : bool
        Log the per-operation counters and timings (see ``stats.OpStats``)
        at DEBUG level when a run completes.
    log_level : str or int, optional
        If set, applied to the ``deltri`` logger family when a run starts.
    """
    duplicate_tolerance_rel: float = EPS_DUPLICATE_REL
    validate_each_step: bool = False
    max_walk_steps: Optional[int] = None
    record_stats: bool = True
    log_level: Optional[Union[str, int]] = None

    def __post_init__(self):
        if self.duplicate_tolerance_rel < 0.0:
            raise ValueError(f"duplicate_tolerance_rel must be >= 0, got {self.duplicate_tolerance_rel}")
        if self.max_walk_steps is not None and self.max_walk_steps < 1:
            raise ValueError(f"max_walk_steps must be positive, got {self.max_walk_steps}")

    def with_overrides(self, **overrides) -> 'TriangulationConfig':
        return replace(self, **overrides)


__all__ = ['TriangulationConfig']
