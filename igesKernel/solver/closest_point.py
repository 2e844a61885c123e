"""
Closest points between a NURBS patch and a point or a line.

For a target point r0 the solver minimizes

    f(x) = 1/2 |r0 - P(x)|^2,                x = u   or (u, v)

and for a line r(t) = r0 + t * v it minimizes

    f(x, t) = 1/2 |r0 + t * v - P(x)|^2,     x = u   or (u, v)

With the residual res = target - P and the columns D = [-P_u, (-P_v), (v)]
of d(res)/d(unknowns), the Newton system is

    H = D^T D - [P_ab . res]   (curvature correction on the patch block)
    b = -D^T res

i.e. Gauss-Newton plus the second-derivative term. The same damped Newton
routine handles all four cases (1, 2, 2 and 3 unknowns).

Every query is independent: it starts from its own initial parameter,
owns its basis workspaces, and t starts at 0. Degenerate Hessians and the
iteration cap end a query early without raising; the outcome is recorded
in ClosestPointResult.status.
"""

import logging
import numpy as np
from dataclasses import dataclass, field
from typing import List, NamedTuple, Optional, Sequence, Tuple, Union

from ..errors import PreconditionError
from ..geometry.derivatives import (
    check_curve_derivative_patches,
    check_surface_derivative_patches,
    eval_curve_derivatives,
    eval_surface_derivatives,
)
from ..geometry.nurbs import NURBSCurve, NURBSSurface, NURBSPatch
from ..io.config import SolverSettings, DEFAULT_SETTINGS
from .newton import NewtonStatus, damped_newton

logger = logging.getLogger(__name__)


class Line(NamedTuple):
    """
    Parametric line(s) r(t) = origin + t * direction.

    origin and direction are (3,), (3, 1) or (3, N) arrays of equal shape.
    """
    origin: np.ndarray
    direction: np.ndarray


@dataclass
class ClosestPointResult:
    """
    Closest points for a batch of queries.

    Attributes:
        points: Closest points on the patch, shape (3, N)
        params: Patch parameters, same shape as the initial parameters
        status: NewtonStatus per query
        iterations: Newton steps taken per query, shape (N,)
        residuals: Distance from each point to its target (the line point
                   at the final t for line targets), shape (N,)
        line_params: Final line parameter t per query, None for point targets

    Unpacks as (points, params).
    """
    points: np.ndarray
    params: np.ndarray
    status: List[NewtonStatus] = field(default_factory=list)
    iterations: np.ndarray = None
    residuals: np.ndarray = None
    line_params: Optional[np.ndarray] = None

    def __iter__(self):
        yield self.points
        yield self.params

    @property
    def converged(self) -> np.ndarray:
        """Boolean mask of queries whose iteration converged."""
        return np.array([s is NewtonStatus.CONVERGED for s in self.status], dtype=bool)


def _as_columns(array, label: str) -> np.ndarray:
    array = np.asarray(array, dtype=np.float64)
    if array.ndim == 1:
        array = array.reshape(-1, 1)
    if array.ndim != 2 or array.shape[0] != 3:
        raise PreconditionError(f"{label} must have 3 rows, got shape {array.shape}")
    return array


def _as_initial_params(initial_params, patch: NURBSPatch) -> np.ndarray:
    params = np.asarray(initial_params, dtype=np.float64)
    if params.ndim == 0:
        params = params.reshape(1, 1)
    elif params.ndim == 1:
        params = params.reshape(1, -1)
    if params.ndim != 2 or params.shape[0] not in (1, 2):
        raise PreconditionError(
            f"Initial parameters must be of dim 1xN or 2xN, got shape {params.shape}"
        )
    if params.shape[0] != patch.n_dim_parametric:
        raise PreconditionError(
            f"Initial parameters have {params.shape[0]} row(s) but the patch has "
            f"{patch.n_dim_parametric} parametric direction(s)"
        )
    return params


def _check_patches(patch: NURBSPatch, deriv_patches):
    if len(deriv_patches) != 2:
        raise PreconditionError(
            "deriv_patches must be (first derivative patch(es), second derivative patch(es))"
        )
    first, second = deriv_patches
    if isinstance(patch, NURBSCurve):
        check_curve_derivative_patches(patch, first, second)
    elif isinstance(patch, NURBSSurface):
        check_surface_derivative_patches(patch, first, second)
    else:
        raise PreconditionError(f"Unsupported patch type {type(patch).__name__}")


def _patch_evaluator(patch: NURBSPatch, deriv_patches):
    """Return a function x -> (point, first derivatives, second derivative matrix)."""
    first, second = deriv_patches

    if isinstance(patch, NURBSCurve):
        workspace = patch.make_workspaces()[0]

        def evaluate(params):
            ders = eval_curve_derivatives(patch, first, second, params[0], workspace)
            return ders.point, (ders.d_u,), ((ders.d_uu,),)

        return evaluate

    workspaces = patch.make_workspaces()

    def evaluate(params):
        ders = eval_surface_derivatives(patch, first, second, params, workspaces)
        return (ders.point, (ders.d_u, ders.d_v),
                ((ders.d_uu, ders.d_uv), (ders.d_uv, ders.d_vv)))

    return evaluate


def _make_system(evaluate, n_param: int, origin: np.ndarray,
                 direction: Optional[np.ndarray]):
    """Newton system (H, b) for one query."""

    def system(x):
        point, firsts, seconds = evaluate(x[:n_param])

        if direction is None:
            res = origin - point
            D = -np.column_stack(firsts)
        else:
            res = origin + x[n_param] * direction - point
            D = np.column_stack([-d for d in firsts] + [direction])

        H = D.T @ D
        for a in range(n_param):
            for c in range(n_param):
                H[a, c] -= seconds[a][c] @ res
        b = -(D.T @ res)
        return H, b

    return system


def closest_point(patch: NURBSPatch,
                  deriv_patches: Tuple,
                  initial_params,
                  target: Union[np.ndarray, Sequence[float], Line],
                  settings: Optional[SolverSettings] = None) -> ClosestPointResult:
    """
    Project points or lines onto a NURBS curve or surface.

    Parameters:
        patch: NURBSCurve or NURBSSurface with a homogeneous (4-row) control net
        deriv_patches: (d1, d2) from curve_derivative_patches for a curve,
                       ([d_u, d_v], [d_uu, d_uv, d_vv]) from
                       surface_derivative_patches for a surface
        initial_params: Start values, shape (N,) or (1, N) for a curve,
                        (2, N) for a surface
        target: Point(s) r0 of shape (3,), (3, 1) or (3, N), or a Line
                whose origin and direction have one of these shapes.
                One column is shared by all queries, N columns are used
                one per query.
        settings: Iteration parameters, defaults to DEFAULT_SETTINGS

    Returns:
        ClosestPointResult with points (3, N) and params of the same shape
        as initial_params
    """
    if settings is None:
        settings = DEFAULT_SETTINGS

    _check_patches(patch, deriv_patches)
    params0 = _as_initial_params(initial_params, patch)
    n_param, n_query = params0.shape

    if isinstance(target, Line):
        origins = _as_columns(target.origin, "r0")
        directions = _as_columns(target.direction, "v")
        if directions.shape != origins.shape:
            raise PreconditionError(
                f"r0 and v must be of same size, got {origins.shape} and {directions.shape}"
            )
    else:
        origins = _as_columns(target, "r0")
        directions = None

    n_targets = origins.shape[1]
    if n_targets not in (1, n_query):
        raise PreconditionError(
            f"r0 has {n_targets} columns; expected 1 (shared) or {n_query} (one per query)"
        )

    evaluate = _patch_evaluator(patch, deriv_patches)

    def clamp(x):
        x[:n_param] = patch.clamp(x[:n_param])

    points = np.empty((3, n_query))
    params = np.empty_like(params0)
    iterations = np.zeros(n_query, dtype=int)
    residuals = np.empty(n_query)
    line_params = None if directions is None else np.empty(n_query)
    status = []

    for i in range(n_query):
        k = i if n_targets > 1 else 0
        origin = origins[:, k]
        direction = None if directions is None else directions[:, k]

        x0 = params0[:, i]
        if direction is not None:
            x0 = np.append(x0, 0.0)

        system = _make_system(evaluate, n_param, origin, direction)
        result = damped_newton(system, x0, clamp, settings)

        uv = result.x[:n_param]
        point = patch.eval_point(uv[0] if n_param == 1 else uv)

        target_point = origin
        if direction is not None:
            line_params[i] = result.x[n_param]
            target_point = origin + result.x[n_param] * direction

        points[:, i] = point
        params[:, i] = uv
        iterations[i] = result.iterations
        residuals[i] = np.linalg.norm(target_point - point)
        status.append(result.status)

        if result.status is not NewtonStatus.CONVERGED:
            logger.debug("Query %d stopped (%s) after %d steps at params %s",
                         i, result.status.value, result.iterations, uv)

    logger.debug("closest_point: %d queries, %d converged",
                 n_query, sum(s is NewtonStatus.CONVERGED for s in status))

    params = params.reshape(np.shape(initial_params))
    return ClosestPointResult(points, params, status, iterations, residuals, line_params)
