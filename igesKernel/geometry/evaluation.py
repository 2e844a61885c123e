"""
Point evaluation of B-spline and NURBS curves and surfaces.

Two families of evaluators are provided, each with a curve and a
tensor-product surface variant:

- Plain B-spline evaluation (Piegl & Tiller A3.1 / A3.5): control points
  may have any number of coordinates mcp. The result is

      C(u) = sum_i N_{i,p}(u) * P_i

- Rational NURBS evaluation (Piegl & Tiller A4.1 / A4.3): control points
  are homogeneous (w*x, w*y, w*z, w). The plain B-spline of the
  homogeneous net is evaluated and then divided by its weight coordinate.

Array layout follows the IGES toolbox conventions: coordinates are rows.
Curve control nets are (mcp, n); surface control nets are (mcp, n_u, n_v)
so that coefs[:, i, j] is control point (i, j). Results are (mcp, n_query)
for plain evaluation and (3, n_query) for rational evaluation.

Parameters at or beyond either end of the domain [knots[p], knots[n]]
evaluate to the corresponding boundary control point (row/column for
surfaces) without a span search.
"""

import numpy as np
from typing import Optional, Tuple

from ..discretization.knot_vector import find_span
from ..errors import PreconditionError
from .bspline import BasisWorkspace, basis_funs

_UNIT_BASIS = np.ones(1)
_UNIT_BASIS.setflags(write=False)


def direction_support(u: float, degree: int, n_ctrl_pts: int, knots: np.ndarray,
                      workspace: BasisWorkspace) -> Tuple[int, np.ndarray]:
    """
    Locate the control points that contribute at u along one direction.

    Returns:
        (first, N) where control points first .. first+len(N)-1 are
        weighted by the basis values N. At the domain ends this is the
        single boundary control point with weight 1.

    Degree 0 directions go through the span search like any other degree,
    so a piecewise constant net yields the value of the segment containing
    u rather than always its first control point.
    """
    if u <= knots[degree]:
        return 0, _UNIT_BASIS
    if u >= knots[n_ctrl_pts]:
        return n_ctrl_pts - 1, _UNIT_BASIS

    span = find_span(n_ctrl_pts, degree, u, knots)
    N = basis_funs(span, u, degree, knots, workspace)
    return span - degree, N


def bspline_point(degree: int, control_points: np.ndarray, knots: np.ndarray,
                  u: float, workspace: BasisWorkspace) -> np.ndarray:
    """Evaluate a B-spline curve at one parameter; no input checking."""
    n_ctrl_pts = control_points.shape[1]
    first, N = direction_support(u, degree, n_ctrl_pts, knots, workspace)
    return control_points[:, first:first + len(N)] @ N


def bspline_surface_point(degree_u: int, degree_v: int, control_grid: np.ndarray,
                          knots_u: np.ndarray, knots_v: np.ndarray,
                          u: float, v: float,
                          workspace_u: BasisWorkspace,
                          workspace_v: BasisWorkspace) -> np.ndarray:
    """Evaluate a tensor-product B-spline surface at (u, v); no input checking."""
    _, n_u, n_v = control_grid.shape
    first_u, NU = direction_support(u, degree_u, n_u, knots_u, workspace_u)
    first_v, NV = direction_support(v, degree_v, n_v, knots_v, workspace_v)

    block = control_grid[:, first_u:first_u + len(NU), first_v:first_v + len(NV)]
    return (block @ NV) @ NU


def _as_knots(knots, n_ctrl_pts: int, degree: int, label: str = "knots") -> np.ndarray:
    knots = np.asarray(knots, dtype=np.float64).ravel()
    if degree < 0:
        raise PreconditionError(f"Degree must be non-negative, got {degree}")
    if len(knots) != n_ctrl_pts + degree + 1:
        raise PreconditionError(
            f"{label} has {len(knots)} entries, expected "
            f"{n_ctrl_pts + degree + 1} for {n_ctrl_pts} control points of degree {degree}"
        )
    return knots


def _as_curve_net(control_points) -> np.ndarray:
    cp = np.asarray(control_points, dtype=np.float64)
    if cp.ndim == 1:
        cp = cp[np.newaxis, :]
    if cp.ndim != 2 or cp.shape[1] == 0:
        raise PreconditionError(
            f"Curve control points must have shape (mcp, n), got {cp.shape}"
        )
    return cp


def _as_surface_net(control_grid) -> np.ndarray:
    cp = np.asarray(control_grid, dtype=np.float64)
    if cp.ndim != 3 or cp.shape[1] == 0 or cp.shape[2] == 0:
        raise PreconditionError(
            f"Surface control points must have shape (mcp, n_u, n_v), got {cp.shape}"
        )
    return cp


def _as_uv(query_params_uv) -> np.ndarray:
    uv = np.asarray(query_params_uv, dtype=np.float64)
    if uv.ndim == 1:
        uv = uv.reshape(2, -1) if uv.size == 2 else uv
    if uv.ndim != 2 or uv.shape[0] != 2:
        raise PreconditionError(
            f"Surface parameters must have shape (2, n_query), got {uv.shape}"
        )
    return uv


def _check_homogeneous(cp: np.ndarray):
    if cp.shape[0] != 4:
        raise PreconditionError(
            f"Rational control points must have 4 rows (w*x, w*y, w*z, w), got {cp.shape[0]}"
        )


def perspective_divide(homogeneous: np.ndarray) -> np.ndarray:
    """Map homogeneous (w*x, w*y, w*z, w) rows to Euclidean (x, y, z) rows."""
    return homogeneous[:3] / homogeneous[3]


def evaluate_bspline(degree: int, control_points, knots, query_params,
                     workspace: Optional[BasisWorkspace] = None) -> np.ndarray:
    """
    Evaluate a B-spline curve at several parameter values.

    Parameters:
        degree: Polynomial degree p
        control_points: Array of shape (mcp, n), any mcp
        knots: Knot sequence of length n + p + 1
        query_params: Parameter values, shape (n_query,)
        workspace: Optional scratch storage reused across the batch

    Returns:
        Array of shape (mcp, n_query)
    """
    cp = _as_curve_net(control_points)
    mcp, n_ctrl_pts = cp.shape
    knots = _as_knots(knots, n_ctrl_pts, degree)
    us = np.atleast_1d(np.asarray(query_params, dtype=np.float64)).ravel()

    if workspace is None:
        workspace = BasisWorkspace(degree)

    ep = np.empty((mcp, len(us)))
    for jj, u in enumerate(us):
        ep[:, jj] = bspline_point(degree, cp, knots, u, workspace)
    return ep


def evaluate_bspline_surface(degree_u: int, degree_v: int, control_grid,
                             knots_u, knots_v, query_params_uv,
                             workspaces: Optional[Tuple[BasisWorkspace, BasisWorkspace]] = None
                             ) -> np.ndarray:
    """
    Evaluate a tensor-product B-spline surface at several (u, v) pairs.

    Parameters:
        degree_u, degree_v: Polynomial degrees
        control_grid: Array of shape (mcp, n_u, n_v)
        knots_u, knots_v: Knot sequences
        query_params_uv: Array of shape (2, n_query), row 0 = u, row 1 = v
        workspaces: Optional (u, v) scratch storage pair

    Returns:
        Array of shape (mcp, n_query)
    """
    cp = _as_surface_net(control_grid)
    mcp, n_u, n_v = cp.shape
    knots_u = _as_knots(knots_u, n_u, degree_u, "knots_u")
    knots_v = _as_knots(knots_v, n_v, degree_v, "knots_v")
    uv = _as_uv(query_params_uv)

    if workspaces is None:
        workspaces = (BasisWorkspace(degree_u), BasisWorkspace(degree_v))
    ws_u, ws_v = workspaces

    ep = np.empty((mcp, uv.shape[1]))
    for jj in range(uv.shape[1]):
        ep[:, jj] = bspline_surface_point(degree_u, degree_v, cp, knots_u, knots_v,
                                          uv[0, jj], uv[1, jj], ws_u, ws_v)
    return ep


def evaluate_nurbs_curve(degree: int, control_points_homogeneous, knots, query_params,
                         workspace: Optional[BasisWorkspace] = None) -> np.ndarray:
    """
    Evaluate a rational (NURBS) curve in 3D at several parameter values.

    Weights must be strictly positive; a zero weight is not guarded.

    Parameters:
        degree: Polynomial degree p
        control_points_homogeneous: Array of shape (4, n)
        knots: Knot sequence of length n + p + 1
        query_params: Parameter values, shape (n_query,)

    Returns:
        Array of shape (3, n_query)
    """
    cp = _as_curve_net(control_points_homogeneous)
    _check_homogeneous(cp)
    return perspective_divide(evaluate_bspline(degree, cp, knots, query_params, workspace))


def evaluate_nurbs_surface(degree_u: int, degree_v: int, control_grid_homogeneous,
                           knots_u, knots_v, query_params_uv,
                           workspaces: Optional[Tuple[BasisWorkspace, BasisWorkspace]] = None
                           ) -> np.ndarray:
    """
    Evaluate a rational (NURBS) surface in 3D at several (u, v) pairs.

    Parameters:
        degree_u, degree_v: Polynomial degrees
        control_grid_homogeneous: Array of shape (4, n_u, n_v)
        knots_u, knots_v: Knot sequences
        query_params_uv: Array of shape (2, n_query)

    Returns:
        Array of shape (3, n_query)
    """
    cp = _as_surface_net(control_grid_homogeneous)
    _check_homogeneous(cp)
    return perspective_divide(
        evaluate_bspline_surface(degree_u, degree_v, cp, knots_u, knots_v,
                                 query_params_uv, workspaces)
    )
