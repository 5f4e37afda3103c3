"""Public package API for deltri, an incremental 2D Delaunay triangulator.

This facade provides a flat import surface on top of the implementation
modules in ``deltri.core``. Plotting helpers (matplotlib) are loaded on
first use so ``import deltri`` stays light.

Example
-------
    from deltri import Triangulator, triangulate

    tri = Triangulator()
    tri.initial_triangulation(points)
    while tri.do_step():
        ...
    triangles = tri.get_triangles()
"""
from importlib import import_module as _imp
import logging as _logging

try:  # Python 3.8+ runtime version export
    from importlib.metadata import version as _pkg_version
    __version__ = _pkg_version("deltri")  # populated when installed
except Exception:  # pragma: no cover - editable / unknown state
    __version__ = "0.0.0+dev"

_logging.getLogger(__name__).addHandler(_logging.NullHandler())

_const = _imp('deltri.core.constants')
_pred = _imp('deltri.core.predicates')
_geom = _imp('deltri.core.geometry')
_errors = _imp('deltri.core.errors')
_config = _imp('deltri.core.config')
_mesh = _imp('deltri.core.mesh')
_ops = _imp('deltri.core.operations')
_tri = _imp('deltri.core.triangulator')
_conf = _imp('deltri.core.conformity')
_stats = _imp('deltri.core.stats')
_io = _imp('deltri.core.io')
_log = _imp('deltri.core.logging_utils')

def _lazy_attr(mod_name, name):
    def _wrapper(*args, **kwargs):
        return getattr(_imp(mod_name), name)(*args, **kwargs)
    _wrapper.__name__ = name
    return _wrapper

# Core API
Triangulator = _tri.Triangulator
TriangulationState = _tri.TriangulationState
StepResult = _tri.StepResult
triangulate = _tri.triangulate
TriangulationConfig = _config.TriangulationConfig
Mesh = _mesh.Mesh
Triangle = _mesh.Triangle
Location = _mesh.Location
LocationKind = _mesh.LocationKind

# Predicates
Orientation = _pred.Orientation
orientation = _pred.orientation
in_circumcircle = _pred.in_circumcircle

# Errors and diagnostics
TriangulationError = _errors.TriangulationError
InsufficientPoints = _errors.InsufficientPoints
DegenerateInput = _errors.DegenerateInput
InvalidCoordinate = _errors.InvalidCoordinate
PointOutsideBounds = _errors.PointOutsideBounds
MeshConsistencyError = _errors.MeshConsistencyError
NonConvexFlip = _errors.NonConvexFlip
DuplicatePoint = _errors.DuplicatePoint

# Sentinels
GHOST_VERTEX = _const.GHOST_VERTEX
NO_NEIGHBOR = _const.NO_NEIGHBOR

# Checks, I/O, logging
check_mesh_conformity = _conf.check_mesh_conformity
check_delaunay = _conf.check_delaunay
read_points = _io.read_points
write_vtk = _io.write_vtk
configure_logging = _log.configure_logging

# matplotlib-backed helpers, imported on first call
plot_triangulation = _lazy_attr('deltri.core.visualization', 'plot_triangulation')
capture_steps = _lazy_attr('deltri.core.visualization', 'capture_steps')

# Namespace submodules for exploratory users
predicates = _pred
geometry = _geom
mesh = _mesh
operations = _ops
conformity = _conf
stats = _stats
constants = _const
io = _io

__all__ = [
    '__version__',
    # core
    'Triangulator','TriangulationState','StepResult','triangulate','TriangulationConfig',
    'Mesh','Triangle','Location','LocationKind',
    # predicates
    'Orientation','orientation','in_circumcircle',
    # errors
    'TriangulationError','InsufficientPoints','DegenerateInput','InvalidCoordinate',
    'PointOutsideBounds','MeshConsistencyError','NonConvexFlip','DuplicatePoint',
    'GHOST_VERTEX','NO_NEIGHBOR',
    # checks / io / viz
    'check_mesh_conformity','check_delaunay','read_points','write_vtk','configure_logging',
    'plot_triangulation','capture_steps',
    # submodules
    'predicates','geometry','mesh','operations','conformity','stats','constants','io'
]
