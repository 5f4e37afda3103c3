"""Central sentinels and numerical tolerances.

Small thresholds used across the package live here so they can be tuned
consistently and referenced without scattering literals.
"""
from __future__ import annotations

# Sentinels
GHOST_VERTEX: int = -1            # synthetic vertex at infinity closing hull edges
NO_NEIGHBOR: int = -1             # neighbor slot on the outer boundary

# Tolerances
EPS_DUPLICATE_REL: float = 1e-12  # duplicate-point distance, relative to coordinate scale
EPS_AREA: float = 1e-12           # near-zero triangle area, relative to the largest triangle
EPS_AREA_REL: float = 1e-9        # relative tolerance for area-conservation comparisons

__all__ = [
    'GHOST_VERTEX',
    'NO_NEIGHBOR',
    'EPS_DUPLICATE_REL',
    'EPS_AREA',
    'EPS_AREA_REL',
]
