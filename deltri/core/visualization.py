"""Visualization helpers for triangulations and step-by-step runs."""
from __future__ import annotations

import os as _os
import matplotlib as _mpl
# Ensure a non-interactive backend in headless environments before importing pyplot
if not _os.environ.get('MPLBACKEND'):
    _mpl.use('Agg')
import numpy as np
import matplotlib.pyplot as plt
from matplotlib.patches import Circle as _MCircle

from .config import TriangulationConfig
from .conformity import check_mesh_conformity
from .geometry import circumcircle
from .gif_capture import GifCapture
from .logging_utils import get_logger
from .triangulator import Triangulator

logger = get_logger('deltri.viz')


def plot_triangulation(
    points,
    triangles,
    outname="triangulation.png",
    pending=None,
    highlight_vertex=None,
    hull=None,
    show_circumcircles: bool = False,
    title=None,
):
    """Plot a triangulation and save it to ``outname``.

    Args:
        points: (N, 2) coordinates
        triangles: (M, 3) index array or list of ``Triangle``
        outname: output image path
        pending: optional iterable of point indices not yet inserted (drawn grey)
        highlight_vertex: optional index drawn in red (e.g. the point just inserted)
        hull: optional counter-clockwise hull vertex loop drawn as a polyline
        show_circumcircles: draw every triangle's circumcircle (small meshes only)
        title: figure title (defaults to ``outname``)
    """
    pts = np.asarray(points, dtype=np.float64)
    tris = np.asarray([tuple(t) for t in triangles], dtype=int).reshape(-1, 3)
    fig, ax = plt.subplots(figsize=(6, 6))
    if tris.size:
        ok_conf, msgs = check_mesh_conformity(pts, tris)
        if not ok_conf:
            logger.warning('Plotting triangulation that is NOT conforming: %s', msgs[:5])
        ax.triplot(pts[:, 0], pts[:, 1], tris, lw=0.6)
        used = np.unique(tris)
    else:
        used = np.arange(0)
    # scale markers by vertex count
    npts = max(1, pts.shape[0])
    s = max(0.6, min(8.0, 200.0 / float(npts)))
    if used.size:
        ax.scatter(pts[used, 0], pts[used, 1], s=s, color='black', zorder=3)
    if pending:
        pend = np.asarray(list(pending), dtype=int)
        ax.scatter(pts[pend, 0], pts[pend, 1], s=s, color=(0.6, 0.6, 0.6), zorder=2)
    if hull is not None and len(hull) >= 2:
        loop = list(hull) + [hull[0]]
        ax.plot(pts[loop, 0], pts[loop, 1], color=(0.85, 0.2, 0.2), linewidth=1.4)
    if show_circumcircles:
        for a, b, c in tris:
            circ = circumcircle(pts[a], pts[b], pts[c])
            ax.add_patch(_MCircle(circ.center, circ.radius, fill=False, lw=0.4, color=(0.2, 0.6, 0.8), alpha=0.5))
    if highlight_vertex is not None:
        p = pts[int(highlight_vertex)]
        ax.plot([p[0]], [p[1]], marker='o', markersize=5, color='crimson', zorder=4)
    ax.set_aspect('equal')
    ax.set_title(title or outname)
    fig.savefig(outname, dpi=150)
    plt.close(fig)


def _plot_state(tri, path):
    pending = tri.pending
    last = tri.last_step.index if tri.last_step is not None and tri.last_step.inserted else None
    step = tri.steps_done
    plot_triangulation(tri.points, tri.get_triangles(), outname=path, pending=pending,
                       highlight_vertex=last, hull=tri.hull(), title=f"step {step}")


def capture_steps(points, directory, outfile="steps.gif", fps: int = 4, max_frames: int = 1000,
                  config: TriangulationConfig = None):
    """Triangulate ``points`` step by step, saving one frame per step.

    Returns ``(triangles, gif_path)``; ``gif_path`` is None when fewer than
    two frames were written.
    """
    tri = Triangulator(config)
    tri.initial_triangulation(points)
    cap = GifCapture(enabled=True, directory=directory, outfile=outfile, fps=fps, max_frames=max_frames, logger=logger)
    cap.save(tri, 'seed', plot_fn=_plot_state)
    while tri.do_step():
        cap.save(tri, f'point_{tri.last_step.index}', plot_fn=_plot_state)
    return tri.get_triangles(), cap.finalize()


__all__ = ['plot_triangulation', 'capture_steps']
