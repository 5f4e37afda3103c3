"""Lightweight point and mesh file I/O for deltri.

- read_points: plain text ``x y`` (or ``x,y``) point lists
- write_vtk: Export legacy VTK format for ParaView/VisIt visualization

All functions use the canonical data format:
    points: (N, 2) float64 array
    triangles: (M, 3) int32 array
"""
from __future__ import annotations
import numpy as np
from typing import Dict, Optional
import warnings


def read_points(filepath: str) -> np.ndarray:
    """Read 2D points from a text file, one point per line.

    Coordinates are separated by whitespace and/or a comma. Blank lines and
    lines starting with ``#`` are ignored; extra columns are ignored.

    Raises
    ------
    ValueError
        If a line holds fewer than two numbers.
    """
    coords = []
    with open(filepath, 'r') as f:
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            parts = line.replace(',', ' ').split()
            if len(parts) < 2:
                raise ValueError(f"{filepath}:{lineno}: expected 'x y', got {line!r}")
            try:
                coords.append((float(parts[0]), float(parts[1])))
            except ValueError:
                raise ValueError(f"{filepath}:{lineno}: could not parse coordinates from {line!r}") from None
    return np.asarray(coords, dtype=np.float64).reshape(-1, 2)


def _write_fields(f, data_dict, expected: int, kind: str):
    for name, data in data_dict.items():
        data = np.asarray(data)
        if len(data) != expected:
            warnings.warn(f"Skipping {kind}['{name}'] with {len(data)} entries (expected {expected})")
            continue
        if data.ndim == 1:
            f.write(f"SCALARS {name} double 1\n")
            f.write("LOOKUP_TABLE default\n")
            for val in data:
                f.write(f"{float(val):.16e}\n")
        elif data.ndim == 2 and data.shape[1] in (2, 3):
            if data.shape[1] == 2:
                data = np.column_stack([data, np.zeros(len(data))])
            f.write(f"VECTORS {name} double\n")
            for vec in data:
                f.write(f"{vec[0]:.16e} {vec[1]:.16e} {vec[2]:.16e}\n")
        else:
            warnings.warn(f"Skipping {kind}['{name}'] with unsupported shape {data.shape}")


def write_vtk(filepath: str,
              points: np.ndarray,
              triangles,
              point_data: Optional[Dict[str, np.ndarray]] = None,
              cell_data: Optional[Dict[str, np.ndarray]] = None,
              title: str = "deltri triangulation") -> None:
    """Write a 2D triangulation to legacy VTK format (ASCII).

    Parameters
    ----------
    filepath : str
        Output .vtk file path
    points : (N, 2) or (N, 3) ndarray
        Vertex coordinates. If 2D, z=0 is added.
    triangles : (M, 3) array-like or list of ``Triangle``
        Triangle connectivity (0-indexed)
    point_data, cell_data : dict, optional
        Scalar ``(N,)``/``(M,)`` or vector ``(N, 2|3)``/``(M, 2|3)`` fields.
    title : str
        Dataset title line

    Examples
    --------
    >>> tris = triangulate(points)
    >>> write_vtk('out.vtk', points, tris)
    """
    points = np.asarray(points, dtype=np.float64)
    triangles = np.asarray([tuple(t) for t in triangles], dtype=np.int64).reshape(-1, 3)

    if points.ndim != 2 or points.shape[1] not in (2, 3):
        raise ValueError(f"points must be (N, 2) or (N, 3), got shape {points.shape}")
    if triangles.size and (triangles.min() < 0 or triangles.max() >= len(points)):
        raise ValueError("triangle indices out of range")

    if points.shape[1] == 2:
        points_3d = np.column_stack([points, np.zeros(len(points))])
    else:
        points_3d = points

    num_points = len(points_3d)
    num_triangles = len(triangles)

    with open(filepath, 'w') as f:
        f.write("# vtk DataFile Version 2.0\n")
        f.write(f"{title}\n")
        f.write("ASCII\n")
        f.write("DATASET UNSTRUCTURED_GRID\n")

        f.write(f"POINTS {num_points} double\n")
        for pt in points_3d:
            f.write(f"{pt[0]:.16e} {pt[1]:.16e} {pt[2]:.16e}\n")

        # numIndices v0 v1 v2
        f.write(f"\nCELLS {num_triangles} {num_triangles * 4}\n")
        for tri in triangles:
            f.write(f"3 {tri[0]} {tri[1]} {tri[2]}\n")

        # 5 = VTK_TRIANGLE
        f.write(f"\nCELL_TYPES {num_triangles}\n")
        for _ in range(num_triangles):
            f.write("5\n")

        if point_data:
            f.write(f"\nPOINT_DATA {num_points}\n")
            _write_fields(f, point_data, num_points, 'point_data')
        if cell_data:
            f.write(f"\nCELL_DATA {num_triangles}\n")
            _write_fields(f, cell_data, num_triangles, 'cell_data')


__all__ = ['read_points', 'write_vtk']
