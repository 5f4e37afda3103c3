"""Insertion and legalization operations on a ``Mesh``.

Operations follow the ``op_*(mesh, ...)`` convention: they take the mesh as
first argument, mutate it, update ``mesh.stats`` and report their outcome.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

import numpy as np

from .constants import GHOST_VERTEX, NO_NEIGHBOR
from .errors import DuplicatePoint, NonConvexFlip
from .logging_utils import get_logger
from .mesh import Location, LocationKind, Mesh
from .predicates import in_circumcircle, in_ghost_circumcircle

__all__ = ['InsertionResult', 'op_insert_point', 'legalize', 'is_illegal_edge', 'find_duplicate']

logger = get_logger('deltri.operations')


@dataclass
class InsertionResult:
    index: int
    inserted: bool
    location: Optional[LocationKind] = None
    created: List[int] = field(default_factory=list)
    flips: int = 0
    duplicate: Optional[DuplicatePoint] = None


def _segment_distance(p, a, b) -> float:
    ab = b - a
    denom = float(np.dot(ab, ab))
    t = 0.0 if denom == 0.0 else min(1.0, max(0.0, float(np.dot(p - a, ab)) / denom))
    return float(np.hypot(*(a + t * ab - p)))


def find_duplicate(mesh: Mesh, index: int, loc: Location, tolerance: float) -> Optional[DuplicatePoint]:
    """Closest existing vertex within ``tolerance`` of point ``index``.

    Candidates are the vertices of every triangle reachable from the located
    one through edges that pass within ``tolerance`` of the point, so a
    vertex hidden behind a thin neighbouring triangle is still found.
    ``ON_VERTEX`` locations are exact duplicates regardless of the tolerance.
    """
    if loc.kind == LocationKind.ON_VERTEX:
        return DuplicatePoint(index, int(loc.vertex), 0.0)
    p = mesh.points[index]
    pts = mesh.points
    start = [loc.triangle]
    if loc.kind == LocationKind.ON_EDGE:
        other = mesh.neighbor(loc.triangle, loc.edge)
        if other != NO_NEIGHBOR:
            start.append(other)
    seen = set(start)
    stack = list(start)
    candidates = set()
    while stack:
        t = stack.pop()
        candidates.update(mesh.vertices(t))
        for i in range(3):
            n = mesh.neighbor(t, i)
            if n == NO_NEIGHBOR or n in seen:
                continue
            u, w = mesh.edge_vertices(t, i)
            if GHOST_VERTEX in (u, w):
                continue
            if _segment_distance(p, pts[u], pts[w]) <= tolerance:
                seen.add(n)
                stack.append(n)
    candidates.discard(GHOST_VERTEX)
    best = None
    for v in sorted(candidates):
        d = float(np.hypot(*(mesh.points[v] - p)))
        if best is None or d < best[1]:
            best = (v, d)
    if best is not None and best[1] <= tolerance:
        return DuplicatePoint(index, best[0], best[1])
    return None


def is_illegal_edge(mesh: Mesh, tid: int, edge: int) -> bool:
    """True when the vertex across ``edge`` lies strictly inside the circumcircle of ``tid``.

    Ghost triangles use the half-plane rule of ``in_ghost_circumcircle``; the
    ghost vertex is never inside any circle.
    """
    s = mesh.neighbor(tid, edge)
    if s == NO_NEIGHBOR:
        return False
    far = mesh.vertices(s)[mesh.neighbor_index(s, tid)]
    if far == GHOST_VERTEX:
        return False
    pts = mesh.points
    if mesh.is_ghost(tid):
        u, v = mesh.ghost_edge(tid)
        return in_ghost_circumcircle(pts[u], pts[v], pts[far])
    a, b, c = mesh.vertices(tid)
    return in_circumcircle(pts[a], pts[b], pts[c], pts[far])


def legalize(mesh: Mesh, vertex: int, triangles: Iterable[int]) -> int:
    """Restore the Delaunay property around a freshly inserted ``vertex``.

    Processes a stack of triangles incident to ``vertex``; for each, the edge
    opposite ``vertex`` is flipped when the opposite vertex lies inside the
    circumcircle. Flips only create edges incident to ``vertex``, so both
    rewritten triangles are pushed back. Returns the number of flips
    performed. Raises ``NonConvexFlip`` when an illegal edge has a
    quadrilateral that is not strictly convex (the mesh is corrupted).
    """
    stats = mesh._get_op_stats('insert')
    stack = list(triangles)
    flips = 0
    while stack:
        t = stack.pop()
        if not mesh.is_live(t):
            continue
        verts = mesh.vertices(t)
        if vertex not in verts:
            continue
        i = verts.index(vertex)
        s = mesh.neighbor(t, i)
        if s == NO_NEIGHBOR:
            continue
        if not mesh.is_flippable(t, i):
            if is_illegal_edge(mesh, t, i):
                # inside the circumcircle implies a convex quad on a valid mesh
                stats.fail += 1
                logger.error("Illegal edge %s around vertex %d cannot be flipped", mesh.edge_vertices(t, i), vertex)
                raise NonConvexFlip(
                    f"illegal edge {mesh.edge_vertices(t, i)} of triangle {t} {verts} has a non-convex quadrilateral")
            continue
        if not is_illegal_edge(mesh, t, i):
            continue
        mesh.flip_edge(t, i)
        flips += 1
        stack.append(t)
        stack.append(s)
    return flips


def op_insert_point(mesh: Mesh, index: int, tolerance: float = 0.0, max_walk_steps: Optional[int] = None) -> InsertionResult:
    """Insert input point ``index`` into ``mesh`` and legalize around it.

    Returns an ``InsertionResult``. A point within ``tolerance`` of an
    existing vertex is skipped and reported as a ``DuplicatePoint``; the mesh
    is then left unchanged.
    """
    t0 = time.perf_counter()
    stats = mesh._get_op_stats('insert')
    stats.attempts += 1
    p = mesh.points[index]
    loc = mesh.locate(p, max_steps=max_walk_steps)
    dup = find_duplicate(mesh, index, loc, tolerance)
    if dup is not None:
        stats.duplicates += 1
        logger.warning("Duplicate point skipped: %s", dup)
        mesh._record_time('insert', time.perf_counter() - t0)
        return InsertionResult(index, False, loc.kind, duplicate=dup)
    if loc.kind == LocationKind.ON_EDGE:
        created = mesh.split_on_edge(loc.triangle, loc.edge, index)
    else:
        created = mesh.split_triangle(loc.triangle, index)
    flips = legalize(mesh, index, created)
    stats.success += 1
    stats.flips += flips
    mesh._record_time('insert', time.perf_counter() - t0)
    logger.debug("Inserted point %d (%s): %d triangles created, %d flips", index, loc.kind.value, len(created), flips)
    return InsertionResult(index, True, loc.kind, created, flips)
