"""Triangle mesh with symmetric adjacency, stored as an index arena.

Triangles live in growable lists addressed by integer id; neighbor slots hold
ids (or ``NO_NEIGHBOR``), never object references. Killed ids are not reused,
except that ``flip_edge`` rewrites its two triangles in place with their
adjacency fully rewired.

Conventions
-----------
- Vertices are stored counter-clockwise.
- Edge ``i`` of a triangle is the edge opposite ``vertices[i]``, i.e.
  ``(vertices[i+1], vertices[i+2])`` in counter-clockwise order, and
  ``neighbors[i]`` is the triangle across it.
- The synthetic vertex ``GHOST_VERTEX`` sits at infinity. Each convex-hull
  edge ``u -> v`` (interior on its right) is closed by a ghost triangle with
  vertices ``(u, v, GHOST_VERTEX)`` up to rotation, so the fan around every
  vertex is closed and every point of the plane lies in some triangle.
"""
from __future__ import annotations

import enum
import random
import time
from dataclasses import dataclass
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from .constants import GHOST_VERTEX, NO_NEIGHBOR
from .errors import MeshConsistencyError, NonConvexFlip, PointOutsideBounds
from .geometry import normalize_edge
from .logging_utils import get_logger
from .predicates import orient2d, strictly_between
from .stats import OpStats

__all__ = ['Triangle', 'Mesh', 'Location', 'LocationKind']

logger = get_logger('deltri.mesh')


@dataclass(frozen=True)
class Triangle:
    """Reported triangle: input vertex indices plus neighbor ids.

    ``neighbors[i]`` is the id of the triangle across the edge opposite
    ``vertices[i]``, or ``NO_NEIGHBOR`` on the convex hull.
    """
    vertices: Tuple[int, int, int]
    neighbors: Tuple[int, int, int] = (NO_NEIGHBOR, NO_NEIGHBOR, NO_NEIGHBOR)
    id: int = -1

    def __iter__(self):
        return iter(self.vertices)

    def __getitem__(self, i):
        return self.vertices[i]

    def __len__(self):
        return 3

    @property
    def key(self) -> Tuple[int, int, int]:
        """Order-free identity of the triangle (sorted vertex indices)."""
        return tuple(sorted(self.vertices))

    def equivalent(self, other) -> bool:
        """True when both triangles index the same three points, in any order."""
        return self.key == tuple(sorted(other))

    def edges(self) -> List[Tuple[int, int]]:
        a, b, c = self.vertices
        return [(b, c), (c, a), (a, b)]


class LocationKind(enum.Enum):
    INSIDE = 'inside'
    ON_EDGE = 'on_edge'
    ON_VERTEX = 'on_vertex'
    OUTSIDE = 'outside'   # beyond the hull: ``triangle`` is a ghost whose hull edge sees the point


class Location(NamedTuple):
    kind: LocationKind
    triangle: int
    edge: Optional[int] = None
    vertex: Optional[int] = None


class Mesh:
    """Arena of counter-clockwise triangles over a caller-owned point array."""

    def __init__(self, points, seed: int = 0):
        self.points = np.asarray(points, dtype=np.float64)
        # random edge order per walk step (remembering stochastic walk)
        self._rng = random.Random(seed)
        self._verts: List[List[int]] = []
        self._nbrs: List[List[int]] = []
        self._alive: List[bool] = []
        self._n_live = 0
        self._n_real = 0
        self._vertex_hint: Dict[int, int] = {}
        self._last_real = NO_NEIGHBOR
        self.stats: Dict[str, OpStats] = {}

    @classmethod
    def from_triangles(cls, points, triangles: Iterable[Sequence[int]]) -> 'Mesh':
        """Build a mesh from counter-clockwise vertex triples, deriving adjacency from shared edges.

        Raises MeshConsistencyError for non-manifold or inconsistently oriented input.
        """
        mesh = cls(points)
        ids = [mesh.add_triangle(tuple(int(v) for v in tri)) for tri in triangles]
        directed: Dict[Tuple[int, int], Tuple[int, int]] = {}
        for tid in ids:
            v = mesh._verts[tid]
            for i in range(3):
                e = (v[(i + 1) % 3], v[(i + 2) % 3])
                if e in directed:
                    raise MeshConsistencyError(f"directed edge {e} used twice (triangles {directed[e][0]} and {tid})")
                directed[e] = (tid, i)
        for (a, b), (tid, i) in directed.items():
            other = directed.get((b, a))
            if other is not None:
                mesh._nbrs[tid][i] = other[0]
        return mesh

    # ------------------------------------------------------------------
    # arena bookkeeping
    # ------------------------------------------------------------------
    def _get_op_stats(self, name: str) -> OpStats:
        return self.stats.setdefault(name, OpStats())

    def _record_time(self, name: str, duration: float):
        self._get_op_stats(name).record_time(duration)

    def add_triangle(self, vertices, neighbors=(NO_NEIGHBOR, NO_NEIGHBOR, NO_NEIGHBOR)) -> int:
        tid = len(self._verts)
        self._verts.append([int(v) for v in vertices])
        self._nbrs.append([int(n) for n in neighbors])
        self._alive.append(True)
        self._n_live += 1
        if GHOST_VERTEX not in self._verts[tid]:
            self._n_real += 1
        self._touch(tid)
        return tid

    def kill_triangle(self, tid: int):
        if not self._alive[tid]:
            raise MeshConsistencyError(f"triangle {tid} killed twice")
        self._alive[tid] = False
        self._n_live -= 1
        if GHOST_VERTEX not in self._verts[tid]:
            self._n_real -= 1

    def _touch(self, tid: int):
        for v in self._verts[tid]:
            self._vertex_hint[v] = tid
        if GHOST_VERTEX not in self._verts[tid]:
            self._last_real = tid

    def _replace_neighbor(self, tid: int, old: int, new: int):
        if tid == NO_NEIGHBOR:
            return
        nb = self._nbrs[tid]
        for i in range(3):
            if nb[i] == old:
                nb[i] = new
                return
        raise MeshConsistencyError(f"triangle {tid} does not list {old} as a neighbor")

    def __len__(self):
        return self._n_live

    @property
    def real_count(self) -> int:
        return self._n_real

    def is_live(self, tid: int) -> bool:
        return 0 <= tid < len(self._alive) and self._alive[tid]

    def is_ghost(self, tid: int) -> bool:
        return GHOST_VERTEX in self._verts[tid]

    def triangle(self, tid: int) -> Triangle:
        """Raw record of ``tid`` (ghost neighbors are not masked)."""
        return Triangle(tuple(self._verts[tid]), tuple(self._nbrs[tid]), tid)

    def vertices(self, tid: int) -> Tuple[int, int, int]:
        return tuple(self._verts[tid])

    def neighbors(self, tid: int) -> Tuple[int, int, int]:
        return tuple(self._nbrs[tid])

    def neighbor(self, tid: int, i: int) -> int:
        return self._nbrs[tid][i]

    def live_ids(self) -> List[int]:
        return [t for t, alive in enumerate(self._alive) if alive]

    def real_ids(self) -> List[int]:
        return [t for t in self.live_ids() if GHOST_VERTEX not in self._verts[t]]

    def ghost_ids(self) -> List[int]:
        return [t for t in self.live_ids() if GHOST_VERTEX in self._verts[t]]

    def edge_index(self, tid: int, u: int, v: int) -> int:
        """Local index of the edge {u, v} in triangle ``tid``."""
        verts = self._verts[tid]
        for i in range(3):
            if {verts[(i + 1) % 3], verts[(i + 2) % 3]} == {u, v}:
                return i
        raise KeyError(f"edge {(u, v)} is not an edge of triangle {tid}")

    def neighbor_index(self, tid: int, other: int) -> int:
        """Local index of the edge of ``tid`` shared with ``other``."""
        try:
            return self._nbrs[tid].index(other)
        except ValueError:
            raise KeyError(f"triangle {other} is not adjacent to {tid}") from None

    def edge_vertices(self, tid: int, i: int) -> Tuple[int, int]:
        verts = self._verts[tid]
        return verts[(i + 1) % 3], verts[(i + 2) % 3]

    def ghost_edge(self, tid: int) -> Tuple[int, int]:
        """Hull edge (u, v) closed by ghost triangle ``tid``; the ghost side is left of u -> v."""
        return self.edge_vertices(tid, self._verts[tid].index(GHOST_VERTEX))

    def vertex_triangles(self, v: int) -> List[int]:
        """Live triangles incident to ``v`` in counter-clockwise fan order."""
        start = self._vertex_hint.get(v)
        if start is None:
            return []
        if not self._alive[start] or v not in self._verts[start]:
            raise MeshConsistencyError(f"stale incidence hint for vertex {v}: triangle {start}")
        fan = [start]
        t = start
        while True:
            i = self._verts[t].index(v)
            t = self._nbrs[t][(i + 1) % 3]
            if t == start:
                return fan
            if t == NO_NEIGHBOR:
                break
            fan.append(t)
            if len(fan) > self._n_live:
                raise MeshConsistencyError(f"fan around vertex {v} does not close")
        # open fan (no ghost closure): collect the clockwise side too
        t = start
        back = []
        while True:
            i = self._verts[t].index(v)
            t = self._nbrs[t][(i + 2) % 3]
            if t == NO_NEIGHBOR:
                break
            back.append(t)
            if len(back) > self._n_live:
                raise MeshConsistencyError(f"fan around vertex {v} does not close")
        return back[::-1] + fan

    def vertex_ids(self) -> List[int]:
        """Real vertices currently in the mesh."""
        return sorted(v for v in self._vertex_hint if v != GHOST_VERTEX)

    def _xy(self, v: int):
        return self.points[v]

    # ------------------------------------------------------------------
    # point location
    # ------------------------------------------------------------------
    def locate(self, point, start: Optional[int] = None, max_steps: Optional[int] = None) -> Location:
        """Find the triangle containing ``point`` by a visibility walk.

        Starting at ``start`` (default: the most recently created real
        triangle), repeatedly step across an edge that has the point strictly
        on its far side, testing the edges in a random rotation. Exceeding
        ``max_steps`` (default: four times the live triangle count) raises
        PointOutsideBounds. The walk ends in a real triangle whose closure holds
        the point (``INSIDE``, ``ON_EDGE`` or ``ON_VERTEX``), or in a ghost
        triangle whose hull edge strictly sees it (``OUTSIDE``).
        """
        t0 = time.perf_counter()
        stats = self._get_op_stats('locate')
        stats.attempts += 1
        t = self._last_real if start is None else start
        if t == NO_NEIGHBOR or not self.is_live(t):
            reals = self.real_ids()
            if not reals:
                stats.fail += 1
                raise PointOutsideBounds("mesh has no real triangle to start a walk from")
            t = reals[-1]
        if self.is_ghost(t):
            t = self._nbrs[t][self._verts[t].index(GHOST_VERTEX)]
        limit = max_steps if max_steps is not None else 4 * self._n_live + 4
        came_from = NO_NEIGHBOR
        steps = 0
        while True:
            steps += 1
            if steps > limit:
                stats.fail += 1
                raise PointOutsideBounds(f"point location did not terminate within {limit} steps for {tuple(point)}")
            if self.is_ghost(t):
                loc = Location(LocationKind.OUTSIDE, t)
                break
            verts = self._verts[t]
            nbrs = self._nbrs[t]
            zero_edges = []
            moved = False
            offset = self._rng.randrange(3)
            for k in range(3):
                i = (k + offset) % 3
                if nbrs[i] == came_from and came_from != NO_NEIGHBOR:
                    continue
                o = orient2d(self._xy(verts[(i + 1) % 3]), self._xy(verts[(i + 2) % 3]), point)
                if o < 0.0:
                    if nbrs[i] == NO_NEIGHBOR:
                        stats.fail += 1
                        raise PointOutsideBounds(f"point {tuple(point)} lies beyond an unclosed boundary edge of triangle {t}")
                    came_from, t = t, nbrs[i]
                    moved = True
                    break
                if o == 0.0:
                    zero_edges.append(i)
            if moved:
                continue
            if not zero_edges:
                loc = Location(LocationKind.INSIDE, t)
            elif len(zero_edges) == 1:
                loc = Location(LocationKind.ON_EDGE, t, edge=zero_edges[0])
            else:
                corner = 3 - zero_edges[0] - zero_edges[1]
                loc = Location(LocationKind.ON_VERTEX, t, vertex=verts[corner])
            break
        stats.success += 1
        stats.walk_steps += steps
        self._record_time('locate', time.perf_counter() - t0)
        return loc

    # ------------------------------------------------------------------
    # topological operations
    # ------------------------------------------------------------------
    def split_triangle(self, tid: int, p: int) -> List[int]:
        """Replace triangle ``tid`` by three triangles fanning around vertex ``p``.

        ``p`` must lie strictly inside a real triangle, or strictly on the
        ghost side of a ghost triangle's hull edge (which yields one real and
        two ghost triangles). Returns the new ids; in the i-th new triangle
        ``p`` sits at local index i.
        """
        t0 = time.perf_counter()
        stats = self._get_op_stats('split')
        stats.attempts += 1
        if not self.is_live(tid):
            stats.fail += 1
            raise MeshConsistencyError(f"split of dead triangle {tid}")
        a, b, c = self._verts[tid]
        na, nb, nc = self._nbrs[tid]
        pp = self._xy(p)
        if self.is_ghost(tid):
            u, v = self.ghost_edge(tid)
            inside = orient2d(self._xy(u), self._xy(v), pp) > 0.0
        else:
            pa, pb, pc = self._xy(a), self._xy(b), self._xy(c)
            inside = orient2d(pb, pc, pp) > 0.0 and orient2d(pc, pa, pp) > 0.0 and orient2d(pa, pb, pp) > 0.0
        if not inside:
            stats.fail += 1
            raise ValueError(f"vertex {p} is not strictly inside triangle {tid}")
        ta = self.add_triangle((p, b, c))
        tb = self.add_triangle((a, p, c))
        tc = self.add_triangle((a, b, p))
        self._nbrs[ta] = [na, tb, tc]
        self._nbrs[tb] = [ta, nb, tc]
        self._nbrs[tc] = [ta, tb, nc]
        self._replace_neighbor(na, tid, ta)
        self._replace_neighbor(nb, tid, tb)
        self._replace_neighbor(nc, tid, tc)
        self.kill_triangle(tid)
        self._last_real = next(t for t in (tc, tb, ta) if not self.is_ghost(t))
        stats.success += 1
        self._record_time('split', time.perf_counter() - t0)
        return [ta, tb, tc]

    def split_on_edge(self, tid: int, edge: int, p: int) -> List[int]:
        """Split edge ``edge`` of ``tid`` at vertex ``p`` (2 triangles -> 4).

        ``p`` must lie strictly inside the segment. The triangle across the
        edge (real or ghost) is split as well. Returns the new ids.
        """
        t0 = time.perf_counter()
        stats = self._get_op_stats('split_edge')
        stats.attempts += 1
        verts = self._verts[tid]
        nbrs = self._nbrs[tid]
        x, u, w = verts[edge], verts[(edge + 1) % 3], verts[(edge + 2) % 3]
        if GHOST_VERTEX in (u, w):
            stats.fail += 1
            raise ValueError(f"cannot split edge {(u, w)} incident to the ghost vertex")
        pu, pw, pp = self._xy(u), self._xy(w), self._xy(p)
        if orient2d(pu, pw, pp) != 0.0 or not strictly_between(pu, pw, pp):
            stats.fail += 1
            raise ValueError(f"vertex {p} is not strictly inside edge {(u, w)} of triangle {tid}")
        n_xu = nbrs[(edge + 2) % 3]
        n_wx = nbrs[(edge + 1) % 3]
        s = nbrs[edge]
        t1 = self.add_triangle((x, u, p))
        t2 = self.add_triangle((x, p, w))
        created = [t1, t2]
        if s == NO_NEIGHBOR:
            self._nbrs[t1] = [NO_NEIGHBOR, t2, n_xu]
            self._nbrs[t2] = [NO_NEIGHBOR, n_wx, t1]
        else:
            j = self.neighbor_index(s, tid)
            sv = self._verts[s]
            sn = self._nbrs[s]
            y = sv[j]
            m_uy = sn[(j + 1) % 3]
            m_yw = sn[(j + 2) % 3]
            s1 = self.add_triangle((y, w, p))
            s2 = self.add_triangle((y, p, u))
            created += [s1, s2]
            self._nbrs[t1] = [s2, t2, n_xu]
            self._nbrs[t2] = [s1, n_wx, t1]
            self._nbrs[s1] = [t2, s2, m_yw]
            self._nbrs[s2] = [t1, m_uy, s1]
            self._replace_neighbor(m_yw, s, s1)
            self._replace_neighbor(m_uy, s, s2)
            self.kill_triangle(s)
        self._replace_neighbor(n_xu, tid, t1)
        self._replace_neighbor(n_wx, tid, t2)
        self.kill_triangle(tid)
        self._touch(t1)
        stats.success += 1
        self._record_time('split_edge', time.perf_counter() - t0)
        return created

    def is_flippable(self, tid: int, edge: int) -> bool:
        """True when edge ``edge`` of ``tid`` is interior and its quadrilateral is strictly convex.

        Flips that would connect the ghost vertex to a real vertex by the new
        diagonal are never allowed; the hull is closed by ghosts only along
        hull edges.
        """
        s = self._nbrs[tid][edge]
        if s == NO_NEIGHBOR:
            return False
        verts = self._verts[tid]
        x, u, w = verts[edge], verts[(edge + 1) % 3], verts[(edge + 2) % 3]
        y = self._verts[s][self.neighbor_index(s, tid)]
        if GHOST_VERTEX in (x, y):
            return False
        for tri in ((x, u, y), (y, w, x)):
            if GHOST_VERTEX in tri:
                continue
            if orient2d(self._xy(tri[0]), self._xy(tri[1]), self._xy(tri[2])) <= 0.0:
                return False
        return True

    def flip_edge(self, tid: int, edge: int) -> Tuple[int, int]:
        """Swap the diagonal shared by ``tid`` and its neighbor across ``edge``.

        For ``tid = (x, u, w)`` with ``x`` opposite the edge and neighbor
        ``(y, w, u)``, the two triangles become ``(x, u, y)`` and
        ``(y, w, x)``; both ids are rewritten in place. Raises NonConvexFlip
        when the quadrilateral is not strictly convex.
        """
        t0 = time.perf_counter()
        stats = self._get_op_stats('flip')
        stats.attempts += 1
        if not self.is_flippable(tid, edge):
            stats.fail += 1
            raise NonConvexFlip(f"edge {edge} of triangle {tid} {self.vertices(tid)} is not flippable")
        verts = self._verts[tid]
        nbrs = self._nbrs[tid]
        s = nbrs[edge]
        j = self.neighbor_index(s, tid)
        x, u, w = verts[edge], verts[(edge + 1) % 3], verts[(edge + 2) % 3]
        n_xu = nbrs[(edge + 2) % 3]
        n_wx = nbrs[(edge + 1) % 3]
        sv = self._verts[s]
        sn = self._nbrs[s]
        y = sv[j]
        m_uy = sn[(j + 1) % 3]
        m_yw = sn[(j + 2) % 3]
        real_before = (GHOST_VERTEX not in verts) + (GHOST_VERTEX not in sv)
        self._verts[tid] = [x, u, y]
        self._nbrs[tid] = [m_uy, s, n_xu]
        self._verts[s] = [y, w, x]
        self._nbrs[s] = [n_wx, tid, m_yw]
        self._n_real += (GHOST_VERTEX not in self._verts[tid]) + (GHOST_VERTEX not in self._verts[s]) - real_before
        self._replace_neighbor(m_uy, s, tid)
        self._replace_neighbor(n_wx, tid, s)
        self._touch(tid)
        self._touch(s)
        stats.success += 1
        self._record_time('flip', time.perf_counter() - t0)
        return tid, s

    # ------------------------------------------------------------------
    # reporting
    # ------------------------------------------------------------------
    def live_triangles(self) -> List[Triangle]:
        """Real triangles; adjacency to ghost triangles is reported as NO_NEIGHBOR."""
        out = []
        for tid in self.real_ids():
            nbrs = tuple(
                NO_NEIGHBOR if (n == NO_NEIGHBOR or GHOST_VERTEX in self._verts[n]) else n
                for n in self._nbrs[tid]
            )
            out.append(Triangle(tuple(self._verts[tid]), nbrs, tid))
        return out

    def triangles_array(self) -> np.ndarray:
        """(M, 3) int32 array of the real triangles' vertex indices."""
        rows = [self._verts[t] for t in self.real_ids()]
        if not rows:
            return np.empty((0, 3), dtype=np.int32)
        return np.asarray(rows, dtype=np.int32)

    def hull_edges(self) -> List[Tuple[int, int]]:
        """Directed convex-hull edges ``(v, u)`` in counter-clockwise order of the real region."""
        return [tuple(reversed(self.ghost_edge(t))) for t in self.ghost_ids()]

    def hull_vertices(self) -> List[int]:
        """Convex-hull vertices in counter-clockwise order."""
        succ = dict(self.hull_edges())
        if not succ:
            return []
        start = min(succ)
        loop = [start]
        v = succ[start]
        while v != start:
            loop.append(v)
            v = succ[v]
            if len(loop) > len(succ):
                raise MeshConsistencyError("hull edges do not form a single loop")
        return loop

    # ------------------------------------------------------------------
    # validation
    # ------------------------------------------------------------------
    def validate(self, check_fans: bool = True) -> Tuple[bool, List[str]]:
        """Check the structural invariants; returns ``(ok, messages)``.

        - every neighbor slot names a live triangle listing this one back across the same edge;
        - real triangles are strictly counter-clockwise;
        - a ghost triangle is adjacent to a real triangle across its hull edge;
        - the fan around every vertex closes (``check_fans``).
        """
        msgs = []
        edge_owner: Dict[Tuple[int, int], int] = {}
        for tid in self.live_ids():
            verts = self._verts[tid]
            if len(set(verts)) != 3:
                msgs.append(f"triangle {tid} repeats a vertex: {verts}")
                continue
            ghost = GHOST_VERTEX in verts
            if not ghost:
                o = orient2d(self._xy(verts[0]), self._xy(verts[1]), self._xy(verts[2]))
                if o <= 0.0:
                    msgs.append(f"triangle {tid} {verts} is not counter-clockwise (orient={o:.3e})")
            for i in range(3):
                u, w = verts[(i + 1) % 3], verts[(i + 2) % 3]
                if (u, w) in edge_owner:
                    msgs.append(f"directed edge {(u, w)} owned by triangles {edge_owner[(u, w)]} and {tid}")
                edge_owner[(u, w)] = tid
                n = self._nbrs[tid][i]
                if n == NO_NEIGHBOR:
                    continue
                if not self.is_live(n):
                    msgs.append(f"triangle {tid} edge {i} points at dead triangle {n}")
                    continue
                back = [k for k in range(3) if self._nbrs[n][k] == tid]
                if len(back) != 1:
                    msgs.append(f"adjacency asymmetry: {tid} -> {n} but {n} lists {tid} {len(back)} times")
                    continue
                k = back[0]
                nu, nw = self._verts[n][(k + 1) % 3], self._verts[n][(k + 2) % 3]
                if (nu, nw) != (w, u):
                    msgs.append(f"triangles {tid} and {n} disagree on shared edge: {(u, w)} vs {(nu, nw)}")
            if ghost:
                g = verts.index(GHOST_VERTEX)
                n = self._nbrs[tid][g]
                if n == NO_NEIGHBOR or (self.is_live(n) and self.is_ghost(n)):
                    msgs.append(f"ghost triangle {tid} is not attached to a real triangle")
        if check_fans and not msgs:
            for v in list(self._vertex_hint):
                try:
                    self.vertex_triangles(v)
                except MeshConsistencyError as exc:
                    msgs.append(str(exc))
        return (len(msgs) == 0), msgs

    def assert_valid(self, check_fans: bool = True):
        ok, msgs = self.validate(check_fans=check_fans)
        if not ok:
            for m in msgs[:20]:
                logger.error("Mesh invariant violated: %s", m)
            raise MeshConsistencyError("; ".join(msgs[:5]) + (f" (+{len(msgs) - 5} more)" if len(msgs) > 5 else ""))

    def edges(self) -> List[Tuple[int, int]]:
        """Undirected edges between real vertices."""
        out = set()
        for tid in self.real_ids():
            a, b, c = self._verts[tid]
            out.update((normalize_edge(a, b), normalize_edge(b, c), normalize_edge(c, a)))
        return sorted(out)
