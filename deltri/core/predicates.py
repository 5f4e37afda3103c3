"""Robust orientation and in-circle predicates.

Both predicates first evaluate the determinant in double precision and accept
the sign when it exceeds Shewchuk's static error bound (the ``ccwerrboundA`` /
``iccerrboundA`` filters of triangle.c). Inputs that fail the filter are
re-evaluated exactly with rational arithmetic: every finite double converts to
a ``Fraction`` without rounding, so the sign of the exact stage is always
correct. The filter succeeds for all but near-degenerate configurations, so
the exact stage is rarely reached.

Mesh code only ever asks for signs through this module; swapping in a
different exact implementation does not touch the mesh logic.
"""
from __future__ import annotations

import enum
import math
from fractions import Fraction

__all__ = [
    'Orientation', 'orient2d', 'orientation', 'incircle',
    'in_circumcircle', 'in_ghost_circumcircle', 'strictly_between',
]

_EPSILON = 2.0 ** -53  # half an ulp of 1.0 (round-to-nearest)
_RESULT_ERRBOUND = (3.0 + 8.0 * _EPSILON) * _EPSILON
_CCW_ERRBOUND_A = (3.0 + 16.0 * _EPSILON) * _EPSILON
_ICC_ERRBOUND_A = (10.0 + 96.0 * _EPSILON) * _EPSILON


class Orientation(enum.IntEnum):
    """Side of the directed line ``a -> b`` on which ``c`` lies."""
    RIGHT = -1
    COLLINEAR = 0
    LEFT = 1


def _xy(p):
    return float(p[0]), float(p[1])


def _exact_to_float(value: Fraction) -> float:
    # Keep the sign when the exact value underflows a double
    out = float(value)
    if out == 0.0 and value != 0:
        out = math.copysign(5e-324, value)
    return out


def _orient2d_exact(ax, ay, bx, by, cx, cy) -> float:
    ax, ay, bx, by, cx, cy = (Fraction(v) for v in (ax, ay, bx, by, cx, cy))
    return _exact_to_float((ax - cx) * (by - cy) - (ay - cy) * (bx - cx))


def orient2d(a, b, c) -> float:
    """Twice the signed area of triangle (a, b, c).

    Positive when (a, b, c) are counter-clockwise, negative when clockwise and
    exactly zero when collinear. Only the sign is guaranteed; the magnitude is
    the floating point estimate.
    """
    ax, ay = _xy(a); bx, by = _xy(b); cx, cy = _xy(c)
    detleft = (ax - cx) * (by - cy)
    detright = (ay - cy) * (bx - cx)
    det = detleft - detright
    if detleft > 0.0:
        if detright <= 0.0:
            return det
        detsum = detleft + detright
    elif detleft < 0.0:
        if detright >= 0.0:
            return det
        detsum = -detleft - detright
    else:
        if detright == 0.0:
            # both products exactly zero only if the differences are; the
            # differences themselves may have rounded, so confirm exactly
            return _orient2d_exact(ax, ay, bx, by, cx, cy)
        detsum = abs(detright)
    errbound = _CCW_ERRBOUND_A * detsum
    if math.isfinite(det) and (det >= errbound or -det >= errbound):
        return det
    return _orient2d_exact(ax, ay, bx, by, cx, cy)


def orientation(a, b, c) -> Orientation:
    """Classify ``c`` against the directed line ``a -> b``."""
    det = orient2d(a, b, c)
    if det > 0.0:
        return Orientation.LEFT
    if det < 0.0:
        return Orientation.RIGHT
    return Orientation.COLLINEAR


def _incircle_exact(ax, ay, bx, by, cx, cy, dx, dy) -> float:
    ax, ay, bx, by, cx, cy, dx, dy = (Fraction(v) for v in (ax, ay, bx, by, cx, cy, dx, dy))
    adx = ax - dx; ady = ay - dy
    bdx = bx - dx; bdy = by - dy
    cdx = cx - dx; cdy = cy - dy
    alift = adx * adx + ady * ady
    blift = bdx * bdx + bdy * bdy
    clift = cdx * cdx + cdy * cdy
    det = (alift * (bdx * cdy - cdx * bdy)
           + blift * (cdx * ady - adx * cdy)
           + clift * (adx * bdy - bdx * ady))
    return _exact_to_float(det)


def incircle(a, b, c, d) -> float:
    """Lifted in-circle determinant.

    For counter-clockwise (a, b, c) the result is positive when ``d`` lies
    inside their circumcircle, negative outside and zero when the four points
    are cocircular. The sign flips for clockwise input. Only the sign is
    guaranteed.
    """
    ax, ay = _xy(a); bx, by = _xy(b); cx, cy = _xy(c); dx, dy = _xy(d)
    adx = ax - dx; bdx = bx - dx; cdx = cx - dx
    ady = ay - dy; bdy = by - dy; cdy = cy - dy

    bdxcdy = bdx * cdy; cdxbdy = cdx * bdy
    alift = adx * adx + ady * ady
    cdxady = cdx * ady; adxcdy = adx * cdy
    blift = bdx * bdx + bdy * bdy
    adxbdy = adx * bdy; bdxady = bdx * ady
    clift = cdx * cdx + cdy * cdy

    det = (alift * (bdxcdy - cdxbdy)
           + blift * (cdxady - adxcdy)
           + clift * (adxbdy - bdxady))
    permanent = ((abs(bdxcdy) + abs(cdxbdy)) * alift
                 + (abs(cdxady) + abs(adxcdy)) * blift
                 + (abs(adxbdy) + abs(bdxady)) * clift)
    errbound = _ICC_ERRBOUND_A * permanent
    if math.isfinite(det) and (det > errbound or -det > errbound):
        return det
    return _incircle_exact(ax, ay, bx, by, cx, cy, dx, dy)


def in_circumcircle(a, b, c, d) -> bool:
    """True iff ``d`` lies strictly inside the circle through ``a``, ``b``, ``c``.

    The winding of (a, b, c) is taken into account, so either orientation is
    accepted. Collinear (a, b, c) have no circle and never contain ``d``;
    exactly cocircular points are not inside.
    """
    o = orient2d(a, b, c)
    if o == 0.0:
        return False
    det = incircle(a, b, c, d)
    return det > 0.0 if o > 0.0 else det < 0.0


def strictly_between(u, v, d) -> bool:
    """For collinear u, v, d: True iff ``d`` lies in the open segment ``uv``."""
    ux, uy = _xy(u); vx, vy = _xy(v); dx, dy = _xy(d)
    if ux != vx:
        return min(ux, vx) < dx < max(ux, vx)
    return min(uy, vy) < dy < max(uy, vy)


def in_ghost_circumcircle(u, v, d) -> bool:
    """In-circle test for the ghost triangle (u, v, infinity).

    A ghost triangle closes the hull edge ``u -> v``; its degenerate
    "circumcircle" is the open half-plane left of ``u -> v`` together with the
    open segment ``uv``.
    """
    o = orient2d(u, v, d)
    if o > 0.0:
        return True
    if o < 0.0:
        return False
    return strictly_between(u, v, d)
