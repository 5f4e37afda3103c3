"""Smoke test to ensure top-level package import works without triggering
circular import errors. This guards against regressions in the flat API
layer (`deltri/__init__.py`).
"""

def test_import_deltri_smoke():
    import deltri  # noqa: F401
    for name in deltri.__all__:
        assert hasattr(deltri, name), name
    triangles = deltri.triangulate([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]])
    assert len(triangles) == 1
    assert callable(deltri.plot_triangulation)  # lazy proxy
