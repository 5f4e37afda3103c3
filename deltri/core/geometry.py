"""Geometry helpers: areas, convex hull, circumcircles.

These are measurement utilities used by validation, reporting and
visualization. Topological decisions inside the mesh go through
``predicates`` instead; nothing here is used to decide a flip.
"""
from __future__ import annotations
import math
from typing import NamedTuple

import numpy as np

from .predicates import orient2d

__all__ = [
	'triangle_area','triangles_signed_areas','compute_triangulation_area','polygon_area',
	'convex_hull','convex_hull_area','coordinate_scale','coordinate_extent','Circle','circumcircle','normalize_edge'
]


def triangle_area(p0, p1, p2):
	"""Signed area of (p0, p1, p2); positive for counter-clockwise input."""
	p0 = np.asarray(p0, dtype=np.float64); p1 = np.asarray(p1, dtype=np.float64); p2 = np.asarray(p2, dtype=np.float64)
	return 0.5 * float((p1[0]-p0[0])*(p2[1]-p0[1]) - (p1[1]-p0[1])*(p2[0]-p0[0]))


def triangles_signed_areas(points, tris):
	"""Vectorized signed area for a batch of triangles.

	points: (N,2) float array
	tris:   (M,3) int array
	Returns: (M,) float64 array of signed areas.
	"""
	pts = np.asarray(points, dtype=np.float64)
	T = np.asarray(tris, dtype=np.int64).reshape(-1, 3)
	if T.size == 0:
		return np.empty((0,), dtype=float)
	p0 = pts[T[:, 0]]; p1 = pts[T[:, 1]]; p2 = pts[T[:, 2]]
	d1 = p1 - p0; d2 = p2 - p0
	return 0.5 * (d1[:, 0] * d2[:, 1] - d1[:, 1] * d2[:, 0])


def compute_triangulation_area(points, triangles, indices=None):
	"""Total (absolute) area of the given triangles, or of the listed subset."""
	T = np.asarray(triangles, dtype=np.int64).reshape(-1, 3)
	if indices is not None:
		if len(indices) == 0:
			return 0.0
		T = T[np.asarray(indices, dtype=np.int64)]
	return float(np.sum(np.abs(triangles_signed_areas(points, T))))


def polygon_area(points, loop):
	"""Signed shoelace area of the polygon visiting ``loop`` vertex indices in order."""
	pts = np.asarray(points, dtype=np.float64)
	if len(loop) < 3:
		return 0.0
	P = pts[np.asarray(loop, dtype=np.int64)]
	x = P[:, 0]; y = P[:, 1]
	return 0.5 * float(np.dot(x, np.roll(y, -1)) - np.dot(y, np.roll(x, -1)))


def convex_hull(points, keep_collinear=False):
	"""Counter-clockwise convex hull vertex indices (Andrew's monotone chain).

	Turns are decided with the exact ``orient2d`` predicate. Points lying on a
	hull edge are dropped unless ``keep_collinear`` is set. Duplicate
	coordinates contribute a single index (the first occurrence).
	"""
	pts = np.asarray(points, dtype=np.float64)
	n = len(pts)
	if n == 0:
		return []
	order = sorted(range(n), key=lambda i: (pts[i, 0], pts[i, 1], i))
	uniq = []
	for i in order:
		if uniq and pts[uniq[-1], 0] == pts[i, 0] and pts[uniq[-1], 1] == pts[i, 1]:
			continue
		uniq.append(i)
	if len(uniq) < 3:
		return uniq

	def half(seq):
		chain = []
		for i in seq:
			while len(chain) >= 2:
				o = orient2d(pts[chain[-2]], pts[chain[-1]], pts[i])
				if o < 0.0 or (o == 0.0 and not keep_collinear):
					chain.pop()
				else:
					break
			chain.append(i)
		return chain

	lower = half(uniq)
	upper = half(list(reversed(uniq)))
	hull = lower[:-1] + upper[:-1]
	if keep_collinear and len(hull) != len(set(hull)):
		# every point collinear: both chains walk the same line
		return lower
	return hull


def convex_hull_area(points):
	pts = np.asarray(points, dtype=np.float64)
	return abs(polygon_area(pts, convex_hull(pts)))


def coordinate_scale(points):
	"""Largest absolute coordinate of ``points`` (1.0 when all are zero)."""
	pts = np.asarray(points, dtype=np.float64)
	if pts.size == 0:
		return 1.0
	scale = float(np.max(np.abs(pts)))
	return scale if scale > 0.0 else 1.0


def coordinate_extent(points):
	"""Largest side of the bounding box of ``points`` (1.0 when it is zero)."""
	pts = np.asarray(points, dtype=np.float64)
	if pts.size == 0:
		return 1.0
	extent = float(np.max(np.ptp(pts, axis=0)))
	return extent if extent > 0.0 else 1.0


class Circle(NamedTuple):
	center: tuple
	radius_sqr: float

	@property
	def radius(self):
		return math.sqrt(self.radius_sqr)

	def contains(self, p):
		"""Closed containment test in floating point (for display, not for decisions)."""
		dx = float(p[0]) - self.center[0]; dy = float(p[1]) - self.center[1]
		return dx*dx + dy*dy <= self.radius_sqr


def circumcircle(a, b, c):
	"""Circle through a, b, c. Raises ValueError for collinear points."""
	ax, ay = float(a[0]), float(a[1])
	bx, by = float(b[0]), float(b[1])
	cx, cy = float(c[0]), float(c[1])
	if orient2d(a, b, c) == 0.0:
		raise ValueError("circumcircle of collinear points is undefined")
	# translate to a to limit cancellation
	bx -= ax; by -= ay; cx -= ax; cy -= ay
	d = 2.0 * (bx * cy - by * cx)
	b2 = bx*bx + by*by; c2 = cx*cx + cy*cy
	ux = (cy * b2 - by * c2) / d
	uy = (bx * c2 - cx * b2) / d
	return Circle((ux + ax, uy + ay), ux*ux + uy*uy)


def normalize_edge(u, v):
	"""Return the undirected edge key ``(min, max)``."""
	return (min(u, v), max(u, v))
