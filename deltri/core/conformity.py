"""Conformity, Delaunay and adjacency checks on reported triangulations.

These operate on plain ``(M, 3)`` index arrays (or lists of ``Triangle``)
so they can check any triangulation, not only one produced by ``Mesh``.
"""
from __future__ import annotations
import numpy as np
from scipy.spatial import ConvexHull
from collections import defaultdict, deque
from .constants import EPS_AREA, EPS_AREA_REL, NO_NEIGHBOR
from .geometry import triangles_signed_areas
from .predicates import in_circumcircle, orient2d

__all__ = [
	'build_edge_to_tri_map','boundary_edges_from_map','count_boundary_loops',
	'check_mesh_conformity','check_delaunay','check_adjacency','check_hull_coverage'
]


def _as_index_array(triangles):
	if isinstance(triangles, np.ndarray):
		return triangles.astype(np.int64).reshape(-1, 3)
	return np.asarray([tuple(int(v) for v in t) for t in triangles], dtype=np.int64).reshape(-1, 3)

def build_edge_to_tri_map(triangles):
	edge_map = {}
	for t_idx, tri in enumerate(triangles):
		a, b, c = (int(v) for v in tri)
		for u, v in ((a, b), (b, c), (c, a)):
			key = (u, v) if u < v else (v, u)
			edge_map.setdefault(key, set()).add(t_idx)
	return edge_map

def boundary_edges_from_map(edge_map):
	return {e for e, s in edge_map.items() if len(s) == 1}

def count_boundary_loops(boundary_edges):
	"""Number of connected components formed by the boundary edges."""
	adj = defaultdict(list)
	for a, b in boundary_edges:
		adj[int(a)].append(int(b)); adj[int(b)].append(int(a))
	visited = set(); loops = 0
	for v in list(adj.keys()):
		if v in visited: continue
		loops += 1
		dq = deque([v]); visited.add(v)
		while dq:
			u = dq.popleft()
			for w in adj.get(u, []):
				if w not in visited:
					visited.add(w); dq.append(w)
	return loops

def check_mesh_conformity(points, triangles, reject_boundary_loops=True, reject_inverted=True):
	"""Structural check of a triangle soup; returns ``(ok, messages)``.

	Flags out-of-range indices, zero-area or clockwise triangles (signs of
	near-zero float areas are settled by the exact ``orient2d``), duplicate
	triangles, edges shared by more than two triangles, and (optionally)
	boundaries made of more than one loop.
	"""
	triangles = np.ascontiguousarray(_as_index_array(triangles))
	msgs = []
	ok = True
	if triangles.size == 0:
		return False, ["No active triangles."]
	points = np.ascontiguousarray(np.asarray(points, dtype=np.float64))
	npts = len(points)
	if triangles.max() >= npts or triangles.min() < 0:
		return False, ["Triangle indices out of range."]
	areas = triangles_signed_areas(points, triangles)
	abs_areas = np.abs(areas)
	signs = np.sign(areas)
	# float areas below the threshold are re-signed with the exact predicate
	near_zero = abs_areas < EPS_AREA * max(1.0, float(np.max(abs_areas)))
	for li in np.nonzero(near_zero)[0]:
		a0, a1, a2 = triangles[li]
		signs[li] = np.sign(orient2d(points[a0], points[a1], points[a2]))
	zero_mask = signs == 0
	if np.any(zero_mask):
		for li in np.nonzero(zero_mask)[0][:50]:
			msgs.append(f"Triangle {int(li)} is degenerate (zero area).")
		ok = False
	if reject_inverted:
		inv_mask = signs < 0
		if np.any(inv_mask):
			for li in np.nonzero(inv_mask)[0][:50]:
				msgs.append(f"Triangle {int(li)} has negative signed area (inverted): {areas[li]:.3e}")
			ok = False
	sorted_tris = np.sort(triangles, axis=1)
	_, tri_counts = np.unique(sorted_tris, axis=0, return_counts=True)
	if np.any(tri_counts > 1):
		msgs.append("Duplicate triangles detected.")
		ok = False
	a = triangles[:, [0, 1]]
	b = triangles[:, [1, 2]]
	c = triangles[:, [2, 0]]
	edges = np.vstack((a, b, c)).astype(int)
	edges.sort(axis=1)
	uniq_edges, counts = np.unique(edges, axis=0, return_counts=True)
	nm_mask = counts > 2
	if np.any(nm_mask):
		for e, cnt in zip(uniq_edges[nm_mask][:10], counts[nm_mask][:10]):
			msgs.append(f"Non-manifold edge ({int(e[0])}, {int(e[1])}) shared by >2 triangles (count={int(cnt)}).")
		ok = False
	if reject_boundary_loops:
		b_mask = counts == 1
		loops = count_boundary_loops(uniq_edges[b_mask]) if np.any(b_mask) else 0
		if loops != 1:
			msgs.append(f"Expected a single boundary loop, found {loops} (boundary edges={int(np.sum(b_mask))})")
			ok = False
	return ok, msgs

def check_delaunay(points, triangles, vertices=None):
	"""Exhaustive empty-circumcircle check with the exact predicate.

	Tests every triangle against every vertex in ``vertices`` (default: all
	vertices used by ``triangles``). Quadratic; intended for tests and
	debugging. Returns ``(ok, messages)``.
	"""
	pts = np.asarray(points, dtype=np.float64)
	T = _as_index_array(triangles)
	if vertices is None:
		vertices = np.unique(T)
	msgs = []
	for t_idx, (a, b, c) in enumerate(T):
		pa, pb, pc = pts[a], pts[b], pts[c]
		for v in vertices:
			v = int(v)
			if v == a or v == b or v == c:
				continue
			if in_circumcircle(pa, pb, pc, pts[v]):
				msgs.append(f"Vertex {v} lies inside the circumcircle of triangle {t_idx} {(int(a), int(b), int(c))}")
				if len(msgs) >= 50:
					return False, msgs
	return len(msgs) == 0, msgs

def check_adjacency(triangles):
	"""Check reported neighbor slots of ``Triangle`` records.

	``triangles[k].neighbors[i]`` must name a reported triangle (by id) that
	shares the edge opposite ``vertices[i]`` and lists this triangle back;
	``NO_NEIGHBOR`` is allowed only on edges used by a single triangle.
	"""
	by_id = {t.id: t for t in triangles}
	edge_map = build_edge_to_tri_map([t.vertices for t in triangles])
	ids = [t.id for t in triangles]
	msgs = []
	for t in triangles:
		a, b, c = t.vertices
		for i, (u, v) in enumerate(((b, c), (c, a), (a, b))):
			key = (u, v) if u < v else (v, u)
			sharing = {ids[k] for k in edge_map[key]} - {t.id}
			n = t.neighbors[i]
			if n == NO_NEIGHBOR:
				if sharing:
					msgs.append(f"Triangle {t.id} edge {key} has no neighbor but is shared with {sorted(sharing)}")
				continue
			other = by_id.get(n)
			if other is None:
				msgs.append(f"Triangle {t.id} names unknown neighbor {n}")
				continue
			if n not in sharing:
				msgs.append(f"Triangle {t.id} neighbor {n} does not share edge {key}")
				continue
			if t.id not in other.neighbors:
				msgs.append(f"Adjacency asymmetry: {t.id} -> {n} but not back")
	return len(msgs) == 0, msgs

def check_hull_coverage(points, triangles, vertices=None, rel_tol=EPS_AREA_REL):
	"""Compare a triangulation's footprint with the Qhull convex hull of its vertices.

	The triangles must cover exactly the convex hull (area within ``rel_tol``)
	and every hull corner must lie on the triangulation boundary. Returns
	``(ok, messages)``.
	"""
	pts = np.asarray(points, dtype=np.float64)
	T = _as_index_array(triangles)
	if vertices is None:
		vertices = np.unique(T)
	vertices = np.asarray(vertices, dtype=np.int64)
	hull = ConvexHull(pts[vertices])
	msgs = []
	area = float(np.sum(np.abs(triangles_signed_areas(pts, T))))
	if abs(area - hull.volume) > rel_tol * max(hull.volume, 1e-300):
		msgs.append(f"Triangulated area {area:.17g} differs from convex hull area {hull.volume:.17g}")
	boundary = boundary_edges_from_map(build_edge_to_tri_map(T))
	on_boundary = {v for e in boundary for v in e}
	for corner in vertices[hull.vertices]:
		if int(corner) not in on_boundary:
			msgs.append(f"Convex hull corner {int(corner)} is not on the triangulation boundary")
	return len(msgs) == 0, msgs
