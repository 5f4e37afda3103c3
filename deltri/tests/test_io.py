"""Tests for point and mesh file I/O (read_points, write_vtk)."""
import numpy as np
import pytest

from deltri.core.io import read_points, write_vtk
from deltri.core.triangulator import triangulate


def test_read_points_whitespace_and_commas(tmp_path):
    path = tmp_path / "pts.txt"
    path.write_text("# x y\n0 0\n1.5, 0\n\n  0.25   2e-1  7\n")
    pts = read_points(str(path))
    assert pts.shape == (3, 2)
    assert pts.dtype == np.float64
    assert pts.tolist() == [[0.0, 0.0], [1.5, 0.0], [0.25, 0.2]]


def test_read_points_empty_file(tmp_path):
    path = tmp_path / "empty.txt"
    path.write_text("# nothing here\n")
    assert read_points(str(path)).shape == (0, 2)


def test_read_points_reports_bad_line(tmp_path):
    path = tmp_path / "bad.txt"
    path.write_text("0 0\n1\n")
    with pytest.raises(ValueError, match=":2:"):
        read_points(str(path))


def test_read_points_rejects_text(tmp_path):
    path = tmp_path / "bad.txt"
    path.write_text("0 0\nfoo bar\n")
    with pytest.raises(ValueError, match="could not parse"):
        read_points(str(path))


def test_write_vtk_basic(tmp_path):
    points = np.array([[0.0, 0.0], [1.0, 0.0], [0.5, 0.8]], dtype=np.float64)
    triangles = np.array([[0, 1, 2]], dtype=np.int32)
    output_file = tmp_path / "mesh.vtk"
    write_vtk(str(output_file), points, triangles, title="Test Mesh")
    content = output_file.read_text()
    assert "# vtk DataFile Version 2.0" in content
    assert "Test Mesh" in content
    assert "DATASET UNSTRUCTURED_GRID" in content
    assert "POINTS 3 double" in content
    assert "CELLS 1 4" in content
    assert "CELL_TYPES 1" in content
    assert "3 0 1 2" in content


def test_write_vtk_from_triangle_records(tmp_path):
    points = np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0], [0.5, 0.5]])
    triangles = triangulate(points)
    output_file = tmp_path / "tri.vtk"
    write_vtk(str(output_file), points, triangles,
              point_data={'z': points[:, 0] + points[:, 1]},
              cell_data={'id': np.arange(len(triangles), dtype=float)})
    content = output_file.read_text()
    assert "CELLS 4 16" in content
    assert "POINT_DATA 5" in content
    assert "SCALARS z double 1" in content
    assert "CELL_DATA 4" in content
    assert "SCALARS id double 1" in content


def test_write_vtk_vector_field(tmp_path):
    points = np.array([[0.0, 0.0], [1.0, 0.0], [0.5, 0.8]])
    output_file = tmp_path / "vec.vtk"
    write_vtk(str(output_file), points, [[0, 1, 2]], point_data={'v': points})
    assert "VECTORS v double" in output_file.read_text()


def test_write_vtk_skips_mismatched_field(tmp_path):
    points = np.array([[0.0, 0.0], [1.0, 0.0], [0.5, 0.8]])
    output_file = tmp_path / "skip.vtk"
    with pytest.warns(UserWarning):
        write_vtk(str(output_file), points, [[0, 1, 2]], cell_data={'q': [1.0, 2.0]})
    assert "SCALARS q" not in output_file.read_text()


def test_write_vtk_rejects_bad_indices(tmp_path):
    points = np.array([[0.0, 0.0], [1.0, 0.0], [0.5, 0.8]])
    with pytest.raises(ValueError):
        write_vtk(str(tmp_path / "bad.vtk"), points, [[0, 1, 3]])
