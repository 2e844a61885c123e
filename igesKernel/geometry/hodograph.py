"""
Construction of derivative patches.

The derivative of a B-spline of degree p with control points P_i and knots
U is a B-spline of degree p-1 on the knots U[1:-1] with control points

    Q_i = p * (P_{i+1} - P_i) / (U_{i+p+1} - U_{i+1})

(Piegl & Tiller, Eq. 3.8). Applied to the homogeneous control net this
differentiates numerator and denominator of a NURBS together, which is
exactly what the quotient-rule evaluation in derivatives expects.

A direction of order 1 differentiates to a degenerate (order 0) patch.
These patches are built once per base patch, before any evaluation.
"""

import numpy as np
from typing import List, Optional, Tuple

from ..discretization.knot_vector import KnotVector
from ..errors import PreconditionError
from .nurbs import NURBSCurve, NURBSSurface


def differentiate_control_net(coefs: np.ndarray, kv: KnotVector,
                              axis: int) -> Tuple[Optional[KnotVector], Optional[np.ndarray]]:
    """
    Differentiate a control net along one axis.

    Parameters:
        coefs: Control net, control points indexed along `axis`
        kv: Knot vector of that direction
        axis: Array axis of the differentiated direction

    Returns:
        (knot_vector, coefs) of the derivative; both are None when the
        direction has order 1 and the derivative is degenerate.
    """
    p = kv.degree
    if p == 0:
        return None, None

    knots = kv.knots
    n = kv.n_basis

    # Knot differences U_{i+p+1} - U_{i+1}, i = 0..n-2
    denom = knots[p + 1:n + p] - knots[1:n]
    scale = np.zeros_like(denom)
    np.divide(p, denom, out=scale, where=denom > 0)

    shape = [1] * coefs.ndim
    shape[axis] = n - 1
    diff = np.diff(coefs, axis=axis) * scale.reshape(shape)

    return KnotVector(knots[1:-1], p - 1), diff


def curve_derivative_patches(curve: NURBSCurve) -> Tuple[NURBSCurve, NURBSCurve]:
    """
    Build the first and second derivative patches of a curve.

    Returns:
        (d1, d2) curves; either may be degenerate
    """
    if curve.is_degenerate:
        raise PreconditionError("Cannot differentiate a degenerate curve")

    kv1, coefs1 = differentiate_control_net(curve.coefs, curve.knot_vector, axis=1)
    if kv1 is None:
        return NURBSCurve.degenerate(curve.mcp), NURBSCurve.degenerate(curve.mcp)
    d1 = NURBSCurve(kv1, coefs1)

    kv2, coefs2 = differentiate_control_net(d1.coefs, kv1, axis=1)
    if kv2 is None:
        return d1, NURBSCurve.degenerate(curve.mcp)
    return d1, NURBSCurve(kv2, coefs2)


def _surface_derivative(surface: NURBSSurface, direction: int) -> NURBSSurface:
    if surface.is_degenerate:
        return NURBSSurface.degenerate(surface.mcp)

    kv_u, kv_v = surface.knot_vectors
    kv = kv_u if direction == 0 else kv_v
    new_kv, coefs = differentiate_control_net(surface.coefs, kv, axis=direction + 1)
    if new_kv is None:
        return NURBSSurface.degenerate(surface.mcp)

    if direction == 0:
        return NURBSSurface(new_kv, kv_v, coefs)
    return NURBSSurface(kv_u, new_kv, coefs)


def surface_derivative_patches(surface: NURBSSurface
                               ) -> Tuple[List[NURBSSurface], List[NURBSSurface]]:
    """
    Build the first and second derivative patches of a surface.

    Returns:
        ([d_u, d_v], [d_uu, d_uv, d_vv]); any entry may be degenerate
    """
    if surface.is_degenerate:
        raise PreconditionError("Cannot differentiate a degenerate surface")

    d_u = _surface_derivative(surface, 0)
    d_v = _surface_derivative(surface, 1)

    d_uu = _surface_derivative(d_u, 0)
    d_uv = _surface_derivative(d_u, 1)
    d_vv = _surface_derivative(d_v, 1)

    return [d_u, d_v], [d_uu, d_uv, d_vv]
