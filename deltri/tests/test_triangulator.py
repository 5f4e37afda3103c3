import itertools
import logging

import numpy as np
import pytest
from scipy.spatial import Delaunay

from deltri.core.config import TriangulationConfig
from deltri.core.conformity import (
    check_adjacency, check_delaunay, check_hull_coverage, check_mesh_conformity,
    build_edge_to_tri_map, boundary_edges_from_map,
)
from deltri.core.errors import DegenerateInput, DuplicatePoint, InsufficientPoints, InvalidCoordinate
from deltri.core.geometry import compute_triangulation_area
from deltri.core.logging_utils import get_logger
from deltri.core.mesh import Triangle
from deltri.core.triangulator import Triangulator, TriangulationState, triangulate, as_points, select_seed


def tri_keys(triangles):
    return {frozenset(int(v) for v in t) for t in triangles}


def assert_delaunay_triangulation(points, tri):
    ok, msgs = tri.validate()
    assert ok, msgs
    T = tri.triangle_indices()
    ok, msgs = check_mesh_conformity(points, T)
    assert ok, msgs
    ok, msgs = check_delaunay(points, T)
    assert ok, msgs
    ok, msgs = check_adjacency(tri.get_triangles())
    assert ok, msgs


class TestInputValidation:

    def test_too_few_points(self):
        with pytest.raises(InsufficientPoints) as exc:
            triangulate([[0.0, 0.0], [1.0, 1.0]])
        assert exc.value.count == 2

    def test_empty_input(self):
        with pytest.raises(InsufficientPoints):
            triangulate([])

    def test_nan_reports_index(self):
        with pytest.raises(InvalidCoordinate) as exc:
            triangulate([[0.0, 0.0], [np.nan, 0.0], [0.5, 1.0]])
        assert exc.value.index == 1

    def test_infinite_coordinate(self):
        with pytest.raises(InvalidCoordinate) as exc:
            triangulate([[0.0, 0.0], [1.0, 0.0], [0.5, 1.0], [np.inf, 2.0]])
        assert exc.value.index == 3

    def test_bad_shape(self):
        with pytest.raises(ValueError):
            as_points(np.zeros((4, 3)))

    def test_all_collinear(self):
        with pytest.raises(DegenerateInput):
            triangulate([[0.0, 0.0], [1.0, 1.0], [2.0, 2.0], [3.0, 3.0]])

    def test_nearly_collinear_rejected(self):
        with pytest.raises(DegenerateInput):
            triangulate([[0.0, 0.0], [1.0, 0.0], [2.0, 1e-17]])

    def test_line_with_negligible_offset_rejected(self):
        pts = [[float(x), 0.0] for x in range(20)] + [[5.0, 1e-300]]
        tri = Triangulator()
        with pytest.raises(DegenerateInput):
            tri.initial_triangulation(pts)
        assert tri.state == TriangulationState.UNINITIALIZED

    def test_all_coincident(self):
        with pytest.raises(DegenerateInput):
            triangulate([[1.0, 1.0]] * 5)

    def test_failed_seed_leaves_controller_uninitialized(self):
        tri = Triangulator()
        with pytest.raises(DegenerateInput):
            tri.initial_triangulation([[0.0, 0.0], [1.0, 0.0], [2.0, 0.0]])
        assert tri.state == TriangulationState.UNINITIALIZED
        with pytest.raises(RuntimeError):
            tri.do_step()

    def test_input_is_copied(self):
        pts = np.array([[0.0, 0.0], [1.0, 0.0], [0.5, 1.0]])
        tri = Triangulator()
        tri.initial_triangulation(pts)
        pts[0] = [5.0, 5.0]
        assert tri.points[0].tolist() == [0.0, 0.0]


class TestSeed:

    def test_seed_is_counter_clockwise(self):
        pts = as_points([[0.0, 0.0], [0.0, 1.0], [1.0, 0.0]])
        assert select_seed(pts, 0.0) == (0, 2, 1)

    def test_seed_skips_collinear_prefix(self):
        pts = as_points([[0.0, 0.0], [1.0, 0.0], [2.0, 0.0], [3.0, 0.0], [1.0, 1.0]])
        assert select_seed(pts, 0.0) == (0, 1, 4)

    def test_seed_skips_leading_duplicates(self):
        pts = as_points([[0.0, 0.0], [0.0, 0.0], [1.0, 0.0], [0.0, 0.0], [0.0, 1.0]])
        assert select_seed(pts, 0.0) == (0, 2, 4)

    def test_seed_area_tolerance(self):
        pts = as_points([[0.0, 0.0], [1.0, 0.0], [2.0, 1e-17], [1.0, -5.0]])
        assert select_seed(pts, 0.0) == (0, 1, 2)
        assert select_seed(pts, 0.0, area_tolerance=1e-10) == (0, 3, 1)

    def test_sliver_accepted_after_seeding(self):
        # (0, 1, 2) is a valid Delaunay sliver once (1, -5) spans the seed
        pts = [[0.0, 0.0], [1.0, 0.0], [2.0, 1e-17], [1.0, -5.0]]
        tri = Triangulator()
        tri.initial_triangulation(pts)
        assert tri.seed == (0, 3, 1)
        tri.run()
        assert tri_keys(tri.get_triangles()) == {
            frozenset((0, 1, 2)), frozenset((0, 3, 1)), frozenset((1, 3, 2))}
        assert_delaunay_triangulation(np.asarray(pts), tri)


class TestStepping:

    def test_single_triangle(self):
        tri = Triangulator()
        seed = tri.initial_triangulation([[0.0, 0.0], [1.0, 0.0], [0.5, 1.0]])
        assert len(seed) == 1
        assert seed[0].equivalent((0, 1, 2))
        assert tri.state == TriangulationState.COMPLETE
        assert tri.do_step() is False
        assert len(tri.get_triangles()) == 1

    def test_three_triangles(self):
        triangles = triangulate([[0.0, 0.0], [1.0, 0.0], [0.5, 1.0], [0.5, 0.5]])
        assert len(triangles) == 3
        assert all(3 in t.vertices for t in triangles)

    def test_square_with_center(self):
        pts = [[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0], [0.5, 0.5]]
        triangles = triangulate(pts)
        assert len(triangles) == 4
        assert all(4 in t.vertices for t in triangles)
        ok, msgs = check_adjacency(triangles)
        assert ok, msgs

    def test_state_transitions(self):
        pts = [[0.0, 0.0], [1.0, 0.0], [0.0, 1.0], [1.0, 1.0], [0.3, 0.3]]
        tri = Triangulator()
        assert tri.state == TriangulationState.UNINITIALIZED
        tri.initial_triangulation(pts)
        assert tri.state == TriangulationState.SEEDED
        assert tri.next_index == 3
        assert tri.pending == [3, 4]
        assert tri.do_step() is True
        assert tri.state == TriangulationState.IN_PROGRESS
        assert tri.last_step.index == 3
        assert tri.next_index == 4
        assert tri.do_step() is True
        assert tri.state == TriangulationState.COMPLETE
        assert tri.next_index is None
        assert tri.remaining == 0
        assert tri.do_step() is False
        assert tri.steps_done == 2
        assert tri.inserted_count == 5

    def test_do_step_before_initialization(self):
        with pytest.raises(RuntimeError):
            Triangulator().do_step()

    def test_do_step_accepts_same_points_only(self):
        pts = [[0.0, 0.0], [1.0, 0.0], [0.0, 1.0], [1.0, 1.0]]
        tri = Triangulator()
        tri.initial_triangulation(pts)
        with pytest.raises(ValueError):
            tri.do_step([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0], [2.0, 2.0]])
        assert tri.do_step(pts) is True

    def test_reinitialization_discards_state(self):
        tri = Triangulator()
        tri.initial_triangulation([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0], [1.0, 1.0]])
        tri.run()
        tri.initial_triangulation([[0.0, 0.0], [2.0, 0.0], [0.0, 2.0]])
        assert tri.state == TriangulationState.COMPLETE
        assert len(tri.get_triangles()) == 1
        assert tri.diagnostics == []

    def test_every_step_is_delaunay(self):
        rng = np.random.default_rng(3)
        pts = rng.uniform(-5.0, 5.0, size=(40, 2))
        tri = Triangulator(TriangulationConfig(validate_each_step=True))
        tri.initial_triangulation(pts)
        while tri.do_step():
            inserted = tri.mesh.vertex_ids()
            ok, msgs = check_delaunay(pts, tri.triangle_indices(), vertices=inserted)
            assert ok, msgs
            ok, msgs = check_hull_coverage(pts, tri.triangle_indices(), vertices=inserted)
            assert ok, msgs
        assert_delaunay_triangulation(pts, tri)

    @pytest.mark.parametrize('layout', ['random', 'grid'])
    def test_stepping_matches_one_shot(self, layout):
        if layout == 'random':
            pts = np.random.default_rng(11).uniform(-1.0, 1.0, size=(50, 2))
        else:
            xs, ys = np.meshgrid(np.arange(6.0), np.arange(6.0))
            pts = np.column_stack([xs.ravel(), ys.ravel()])
        tri = Triangulator()
        tri.initial_triangulation(pts)
        while tri.do_step(pts):
            pass
        assert tri.state == TriangulationState.COMPLETE
        assert tri_keys(tri.get_triangles()) == tri_keys(triangulate(pts))

    def test_run_with_step_limit(self):
        rng = np.random.default_rng(5)
        pts = rng.random((10, 2))
        tri = Triangulator()
        tri.initial_triangulation(pts)
        assert tri.run(max_steps=3) == 3
        assert tri.remaining == 4
        assert tri.run() == 4
        assert tri.state == TriangulationState.COMPLETE


class TestDuplicates:

    def test_exact_duplicate_reported(self):
        tri = Triangulator()
        tri.initial_triangulation([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0], [1.0, 0.0]])
        tri.run()
        assert len(tri.get_triangles()) == 1
        assert tri.diagnostics == [DuplicatePoint(3, 1, 0.0)]
        assert tri.last_step.duplicate == DuplicatePoint(3, 1, 0.0)
        assert not tri.last_step.inserted

    def test_identical_values(self):
        pts = [[0.0, 0.0], [1.0, 0.0], [0.5, 1.0], [0.5, 0.5], [0.5, 0.5]]
        tri = Triangulator()
        tri.initial_triangulation(pts)
        tri.run()
        assert len(tri.get_triangles()) == 3
        assert [d.index for d in tri.diagnostics] == [4]
        assert tri.diagnostics[0].existing == 3

    def test_duplicate_logged_as_warning(self):
        # the deltri logger does not propagate, so listen on it directly
        records = []

        class _Collect(logging.Handler):
            def emit(self, record):
                records.append(record)

        handler = _Collect(level=logging.WARNING)
        log = get_logger('deltri')
        log.addHandler(handler)
        try:
            triangulate([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0], [0.0, 1.0]])
        finally:
            log.removeHandler(handler)
        assert any('duplicates vertex 2' in r.getMessage() for r in records)

    def test_zero_tolerance_still_merges_exact_copies(self):
        cfg = TriangulationConfig(duplicate_tolerance_rel=0.0)
        tri = Triangulator(cfg)
        tri.initial_triangulation([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0], [0.25, 0.25], [0.25, 0.25]])
        tri.run()
        assert len(tri.diagnostics) == 1
        assert len(tri.get_triangles()) == 3


class TestConfigurations:

    def test_avoids_obtuse_triangles(self):
        pts = [[0.0, 0.0], [0.0, 4.0], [-1.0, 2.0], [1.0, 2.0]]
        triangles = triangulate(pts)
        assert tri_keys(triangles) == {frozenset((0, 3, 2)), frozenset((1, 2, 3))}

    def test_avoids_obtuse_triangles_sideways(self):
        pts = [[0.0, 0.0], [4.0, 0.0], [2.0, -1.0], [2.0, 1.0]]
        triangles = triangulate(pts)
        assert tri_keys(triangles) == {frozenset((1, 2, 3)), frozenset((0, 2, 3))}

    def test_offending_points_in_every_order(self):
        base = [(22.0, 20.0), (141.0, 20.0), (245.0, 169.0), (268.0, 134.0), (314.0, 133.0), (69.0, 20.0)]
        reference = None
        for perm in itertools.permutations(range(len(base))):
            pts = np.array([base[i] for i in perm])
            tri = Triangulator()
            tri.initial_triangulation(pts)
            tri.run()
            ok, msgs = tri.validate()
            assert ok, msgs
            T = tri.triangle_indices()
            ok, msgs = check_delaunay(pts, T)
            assert ok, msgs
            ok, msgs = check_hull_coverage(pts, T)
            assert ok, msgs
            keys = {frozenset(perm[v] for v in t) for t in T}
            if reference is None:
                reference = keys
            assert len(keys) == len(reference)

    def test_grid_with_cocircular_points(self):
        xs, ys = np.meshgrid(np.arange(6.0), np.arange(6.0))
        pts = np.column_stack([xs.ravel(), ys.ravel()])
        tri = Triangulator(TriangulationConfig(validate_each_step=True))
        tri.initial_triangulation(pts)
        tri.run()
        assert_delaunay_triangulation(pts, tri)
        T = tri.triangle_indices()
        # 2n - h - 2 with all 20 boundary points on the hull
        assert len(T) == 50
        assert compute_triangulation_area(pts, T) == pytest.approx(25.0)
        boundary = boundary_edges_from_map(build_edge_to_tri_map(T))
        assert len(boundary) == 20
        assert len(tri.hull()) == 20

    def test_points_along_hull_edges(self):
        pts = [[0.0, 0.0], [4.0, 0.0], [0.0, 4.0], [1.0, 0.0], [3.0, 0.0], [2.0, 0.0], [0.0, 2.0], [2.0, 2.0]]
        tri = Triangulator(TriangulationConfig(validate_each_step=True))
        tri.initial_triangulation(pts)
        tri.run()
        assert_delaunay_triangulation(pts, tri)
        assert sorted(tri.hull()) == list(range(8))

    def test_points_outside_collinear_with_hull(self):
        pts = [[0.0, 0.0], [1.0, 0.0], [0.0, 1.0], [2.0, 0.0], [-1.0, 0.0], [0.0, -3.0], [0.0, 2.0]]
        tri = Triangulator(TriangulationConfig(validate_each_step=True))
        tri.initial_triangulation(pts)
        tri.run()
        assert_delaunay_triangulation(pts, tri)
        ok, msgs = check_hull_coverage(pts, tri.triangle_indices())
        assert ok, msgs

    def test_matches_scipy_delaunay(self):
        rng = np.random.default_rng(11)
        pts = rng.random((300, 2))
        ours = tri_keys(tri.vertices for tri in triangulate(pts))
        ref = tri_keys(Delaunay(pts).simplices)
        assert ours == ref

    def test_insertion_order_does_not_matter(self):
        rng = np.random.default_rng(12)
        pts = rng.normal(size=(120, 2))
        perm = rng.permutation(len(pts))
        base = tri_keys(t.vertices for t in triangulate(pts))
        shuffled = triangulate(pts[perm])
        remapped = {frozenset(int(perm[v]) for v in t.vertices) for t in shuffled}
        assert remapped == base

    def test_large_coordinates(self):
        rng = np.random.default_rng(4)
        pts = 1e12 + rng.random((60, 2)) * 1e3
        tri = Triangulator()
        tri.initial_triangulation(pts)
        tri.run()
        assert_delaunay_triangulation(pts, tri)

    def test_reported_triangles_are_records(self):
        triangles = triangulate([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]])
        assert all(isinstance(t, Triangle) for t in triangles)
        ids = {t.id for t in triangles}
        for t in triangles:
            assert set(t.neighbors) - {-1} <= ids


def test_stats_are_recorded():
    rng = np.random.default_rng(8)
    tri = Triangulator()
    tri.initial_triangulation(rng.random((25, 2)))
    tri.run()
    stats = tri.stats
    assert stats['insert'].attempts == 22
    assert stats['insert'].success == 22
    assert stats['locate'].attempts == 22


def test_config_validation_and_overrides():
    with pytest.raises(ValueError):
        TriangulationConfig(duplicate_tolerance_rel=-1.0)
    with pytest.raises(ValueError):
        TriangulationConfig(max_walk_steps=0)
    base = TriangulationConfig()
    strict = base.with_overrides(validate_each_step=True)
    assert strict.validate_each_step and not base.validate_each_step
    assert strict.duplicate_tolerance_rel == base.duplicate_tolerance_rel
