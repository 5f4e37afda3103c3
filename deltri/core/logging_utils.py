"""Loggers for the triangulator, mesh operations and plotting helpers.

Everything logs under the ``deltri`` name. Seeding and completion are
reported at INFO, skipped duplicate points at WARNING, and per-insertion
flip counts at DEBUG. Records go to stdout and never reach the host
application's root logger.
"""
from __future__ import annotations

import logging
import sys
from typing import Optional, Union

_FORMAT = logging.Formatter('%(levelname)s %(name)s: %(message)s')
_ROOT = 'deltri'


def _ensure_root() -> logging.Logger:
    """Attach the stdout handler to the ``deltri`` logger once and detach it from root."""
    root = logging.getLogger(_ROOT)
    # Only NullHandlers (added by the package __init__) count as "no handler"
    has_non_null = any(not isinstance(h, logging.NullHandler) for h in root.handlers)
    if not has_non_null:
        for h in list(root.handlers):
            if isinstance(h, logging.NullHandler):
                root.removeHandler(h)
        handler = logging.StreamHandler(stream=sys.stdout)
        handler.setFormatter(_FORMAT)
        root.addHandler(handler)
        if root.level == logging.NOTSET:
            root.setLevel(logging.WARNING)
    root.propagate = False
    return root


def _to_level(level: Union[str, int, None], default: int = logging.INFO) -> int:
    if level is None:
        return default
    if isinstance(level, int):
        return level
    lvl = getattr(logging, str(level).upper(), None)
    return lvl if isinstance(lvl, int) else default


def configure_logging(level: Union[str, int] = 'INFO', mute_external: bool = True) -> None:
    """Set the verbosity of a triangulation run.

    ``TriangulationConfig.log_level`` ends up here. At DEBUG every insertion
    and the final operation-stats table are logged; ``mute_external`` keeps
    the matplotlib and PIL loggers at INFO.
    """
    root = _ensure_root()
    lvl = _to_level(level)
    root.setLevel(lvl)
    # matplotlib is chatty at DEBUG (font cache scans)
    if mute_external and lvl <= logging.DEBUG:
        for noisy in ('matplotlib', 'matplotlib.font_manager', 'PIL'):
            logging.getLogger(noisy).setLevel(logging.INFO)


def get_logger(name: str, level: Optional[Union[str, int]] = None) -> logging.Logger:
    """Logger for a deltri module, e.g. ``get_logger('deltri.operations')``.

    Bare names are prefixed with ``deltri.``. Without ``level`` the logger
    follows whatever ``configure_logging`` set on the package logger.
    """
    _ensure_root()
    if name != _ROOT and not name.startswith(_ROOT + '.'):
        name = f'{_ROOT}.{name}'
    log = logging.getLogger(name)
    if level is not None:
        log.setLevel(_to_level(level))
    else:
        log.setLevel(logging.NOTSET)
    return log


__all__ = ['get_logger', 'configure_logging']
