"""
NURBS (Non-Uniform Rational B-Spline) patch representation.

NURBS extend B-splines by introducing weights for each control point,
enabling exact representation of conic sections (circles, ellipses, etc.).

A NURBS curve point is computed as:

    C(u) = sum_i (N_i(u) * w_i * P_i) / sum_i (N_i(u) * w_i)

Patches store their control net in homogeneous form (w*x, w*y, w*z, w),
so the numerator and the denominator are the first three and the last
coordinate of one plain B-spline. The control net is copied on
construction and marked read-only; evaluation never modifies it.

This module provides:
- NURBSPatch: Abstract base for curve and surface patches
- NURBSCurve: Curve patch, control net of shape (mcp, n)
- NURBSSurface: Tensor-product surface patch, control net of shape (mcp, n_u, n_v)

A patch may be "degenerate" (order 0 in some direction). Such patches have
no control points; they stand for derivative patches of a direction that
was already differentiated down to nothing.
"""

import numpy as np
from typing import Tuple, Optional, Sequence
from abc import ABC, abstractmethod

from ..discretization.knot_vector import KnotVector
from ..errors import PreconditionError
from .bspline import BasisWorkspace
from .evaluation import (
    bspline_point,
    bspline_surface_point,
    evaluate_nurbs_curve,
    evaluate_nurbs_surface,
)


def _frozen(array: np.ndarray) -> np.ndarray:
    array = np.array(array, dtype=np.float64)
    array.setflags(write=False)
    return array


def _homogenize(points: np.ndarray, weights: np.ndarray) -> np.ndarray:
    """Stack (d, ...) Euclidean points and (...) weights into (d+1, ...) homogeneous form."""
    return np.concatenate([points * weights, weights[np.newaxis]], axis=0)


class NURBSPatch(ABC):
    """
    Abstract base class for NURBS patches.

    Key responsibilities:
    - Hold orders, knot vectors and the homogeneous control net
    - Report and clamp to the valid parameter domain
    - Evaluate the homogeneous B-spline and the rational point
    """

    @property
    @abstractmethod
    def n_dim_parametric(self) -> int:
        """Number of parametric dimensions (1=curve, 2=surface)."""
        pass

    @property
    @abstractmethod
    def orders(self) -> Tuple[int, ...]:
        """Polynomial order per parametric direction (0 = degenerate)."""
        pass

    @property
    @abstractmethod
    def coefs(self) -> np.ndarray:
        """Read-only homogeneous control net."""
        pass

    @abstractmethod
    def clamp(self, params: np.ndarray) -> np.ndarray:
        """Clamp parameter values to the patch domain."""
        pass

    @property
    def is_degenerate(self) -> bool:
        """True if the patch has order 0 in any direction."""
        return any(order <= 0 for order in self.orders)

    @property
    def mcp(self) -> int:
        """Number of coordinates per control point (4 for rational 3D)."""
        return self.coefs.shape[0]

    @property
    def is_rational(self) -> bool:
        return self.mcp == 4

    def make_workspaces(self) -> Tuple[BasisWorkspace, ...]:
        """One basis workspace per parametric direction."""
        return tuple(BasisWorkspace(max(order - 1, 0)) for order in self.orders)


class NURBSCurve(NURBSPatch):
    """
    NURBS curve patch.

    A NURBS curve C(u) is defined by:
    - Knot vector defining the parametric domain
    - Homogeneous control points of shape (mcp, n), mcp = 4 for rational 3D
    """

    def __init__(self, knot_vector: Optional[KnotVector], coefs: np.ndarray):
        """
        Initialize a NURBS curve.

        Parameters:
            knot_vector: KnotVector defining the basis, or None for a
                         degenerate (order 0) curve
            coefs: Homogeneous control points, shape (mcp, n)
        """
        self._knot_vector = knot_vector
        coefs = np.asarray(coefs, dtype=np.float64)

        if coefs.ndim != 2:
            raise PreconditionError(
                f"Curve control net must have shape (mcp, n), got {coefs.shape}"
            )
        if knot_vector is not None and coefs.shape[1] != knot_vector.n_basis:
            raise PreconditionError(
                f"Number of control points ({coefs.shape[1]}) "
                f"must match number of basis functions ({knot_vector.n_basis})"
            )

        self._coefs = _frozen(coefs)

    @classmethod
    def from_order(cls, order: int, knots, coefs) -> "NURBSCurve":
        """Build a curve from an (order, knots, coefs) record; order 0 is degenerate."""
        if order <= 0:
            return cls.degenerate(np.asarray(coefs).shape[0] if np.size(coefs) else 4)
        return cls(KnotVector.from_order(knots, order), coefs)

    @classmethod
    def from_points(cls, knot_vector: KnotVector, points: np.ndarray,
                    weights: Optional[np.ndarray] = None) -> "NURBSCurve":
        """
        Build a rational curve from Euclidean control points.

        Parameters:
            knot_vector: KnotVector defining the basis
            points: Array of shape (n, 3)
            weights: Array of shape (n,), defaults to 1.0 (B-spline)
        """
        points = np.atleast_2d(np.asarray(points, dtype=np.float64))
        if weights is None:
            weights = np.ones(points.shape[0])
        weights = np.asarray(weights, dtype=np.float64)
        if np.any(weights <= 0):
            raise PreconditionError("All weights must be positive")
        return cls(knot_vector, _homogenize(points.T, weights))

    @classmethod
    def degenerate(cls, mcp: int = 4) -> "NURBSCurve":
        """A curve of order 0: no control points, evaluates to nothing."""
        return cls(None, np.zeros((mcp, 0)))

    @property
    def n_dim_parametric(self) -> int:
        return 1

    @property
    def knot_vector(self) -> Optional[KnotVector]:
        return self._knot_vector

    @property
    def order(self) -> int:
        return 0 if self._knot_vector is None else self._knot_vector.order

    @property
    def orders(self) -> Tuple[int]:
        return (self.order,)

    @property
    def degree(self) -> int:
        return self.order - 1

    @property
    def knots(self) -> np.ndarray:
        return np.zeros(0) if self._knot_vector is None else self._knot_vector.knots

    @property
    def coefs(self) -> np.ndarray:
        return self._coefs

    @property
    def n_control_points(self) -> int:
        return self._coefs.shape[1]

    @property
    def weights(self) -> np.ndarray:
        return self._coefs[-1].copy()

    @property
    def control_points(self) -> np.ndarray:
        """Euclidean control points as (n, mcp-1) array."""
        return (self._coefs[:-1] / self._coefs[-1]).T

    @property
    def domain(self) -> Tuple[float, float]:
        return self._knot_vector.domain

    def clamp(self, params: np.ndarray) -> np.ndarray:
        params = np.atleast_1d(np.asarray(params, dtype=np.float64))
        u_min, u_max = self.domain
        return np.clip(params, u_min, u_max)

    def eval_homogeneous(self, u: float,
                         workspace: Optional[BasisWorkspace] = None) -> np.ndarray:
        """Plain B-spline value of the control net at u, shape (mcp,)."""
        if workspace is None:
            workspace = BasisWorkspace(self.degree)
        return bspline_point(self.degree, self._coefs, self.knots, u, workspace)

    def eval_point(self, u: float,
                   workspace: Optional[BasisWorkspace] = None) -> np.ndarray:
        """
        Evaluate the rational curve at one parameter value.

        Returns:
            Point coordinates as (3,) array
        """
        Pw = self.eval_homogeneous(u, workspace)
        return Pw[:3] / Pw[3]

    def eval(self, us) -> np.ndarray:
        """Evaluate the rational curve at several parameters, shape (3, n_query)."""
        return evaluate_nurbs_curve(self.degree, self._coefs, self.knots, us)


class NURBSSurface(NURBSPatch):
    """
    NURBS surface patch.

    A NURBS surface S(u, v) is defined by:
    - Two knot vectors (u and v directions)
    - Homogeneous control points of shape (mcp, n_u, n_v), so that
      coefs[:, i, j] is control point (i, j)

    The surface point is the perspective divide of

        S^w(u, v) = sum_{i,j} N_i(u) * N_j(v) * P^w_{i,j}
    """

    def __init__(self,
                 knot_vector_u: Optional[KnotVector],
                 knot_vector_v: Optional[KnotVector],
                 coefs: np.ndarray):
        """
        Initialize a NURBS surface.

        Parameters:
            knot_vector_u: KnotVector for u direction, None if degenerate
            knot_vector_v: KnotVector for v direction, None if degenerate
            coefs: Homogeneous control points, shape (mcp, n_u, n_v)
        """
        self._kv_u = knot_vector_u
        self._kv_v = knot_vector_v
        coefs = np.asarray(coefs, dtype=np.float64)

        if coefs.ndim != 3:
            raise PreconditionError(
                f"Surface control net must have shape (mcp, n_u, n_v), got {coefs.shape}"
            )
        if not self.is_degenerate:
            expected = (knot_vector_u.n_basis, knot_vector_v.n_basis)
            if coefs.shape[1:] != expected:
                raise PreconditionError(
                    f"Control net shape {coefs.shape} doesn't match "
                    f"expected (mcp, {expected[0]}, {expected[1]})"
                )

        self._coefs = _frozen(coefs)

    @classmethod
    def from_order(cls, orders: Sequence[int], knots: Sequence, coefs) -> "NURBSSurface":
        """Build a surface from an (order, knots, coefs) record; any order 0 is degenerate."""
        order_u, order_v = orders
        if order_u <= 0 or order_v <= 0:
            return cls.degenerate(np.asarray(coefs).shape[0] if np.size(coefs) else 4)
        return cls(KnotVector.from_order(knots[0], order_u),
                   KnotVector.from_order(knots[1], order_v),
                   coefs)

    @classmethod
    def from_points(cls, knot_vector_u: KnotVector, knot_vector_v: KnotVector,
                    points: np.ndarray,
                    weights: Optional[np.ndarray] = None) -> "NURBSSurface":
        """
        Build a rational surface from a Euclidean control point grid.

        Parameters:
            knot_vector_u, knot_vector_v: Knot vectors
            points: Array of shape (n_u, n_v, 3)
            weights: Array of shape (n_u, n_v), defaults to 1.0
        """
        points = np.asarray(points, dtype=np.float64)
        if points.ndim != 3:
            raise PreconditionError(
                f"Control point grid must have shape (n_u, n_v, d), got {points.shape}"
            )
        if weights is None:
            weights = np.ones(points.shape[:2])
        weights = np.asarray(weights, dtype=np.float64).reshape(points.shape[:2])
        if np.any(weights <= 0):
            raise PreconditionError("All weights must be positive")
        return cls(knot_vector_u, knot_vector_v,
                   _homogenize(np.moveaxis(points, -1, 0), weights))

    @classmethod
    def degenerate(cls, mcp: int = 4) -> "NURBSSurface":
        """A surface of order 0: no control points, evaluates to nothing."""
        return cls(None, None, np.zeros((mcp, 0, 0)))

    @property
    def n_dim_parametric(self) -> int:
        return 2

    @property
    def knot_vectors(self) -> Tuple[Optional[KnotVector], Optional[KnotVector]]:
        return (self._kv_u, self._kv_v)

    @property
    def orders(self) -> Tuple[int, int]:
        return tuple(0 if kv is None else kv.order for kv in (self._kv_u, self._kv_v))

    @property
    def degrees(self) -> Tuple[int, int]:
        return tuple(order - 1 for order in self.orders)

    @property
    def coefs(self) -> np.ndarray:
        return self._coefs

    @property
    def n_control_points_per_dir(self) -> Tuple[int, int]:
        """Number of control points in each direction (n_u, n_v)."""
        return self._coefs.shape[1:]

    @property
    def weights_grid(self) -> np.ndarray:
        """Weights as (n_u, n_v) grid."""
        return self._coefs[-1].copy()

    @property
    def control_points_grid(self) -> np.ndarray:
        """Euclidean control points as (n_u, n_v, mcp-1) grid."""
        return np.moveaxis(self._coefs[:-1] / self._coefs[-1], 0, -1)

    @property
    def domain(self) -> Tuple[Tuple[float, float], Tuple[float, float]]:
        """Parametric domain as ((u_min, u_max), (v_min, v_max))."""
        return (self._kv_u.domain, self._kv_v.domain)

    def clamp(self, params: np.ndarray) -> np.ndarray:
        params = np.asarray(params, dtype=np.float64)
        (u_min, u_max), (v_min, v_max) = self.domain
        return np.array([min(max(params[0], u_min), u_max),
                         min(max(params[1], v_min), v_max)])

    def eval_homogeneous(self, uv: Sequence[float],
                         workspaces: Optional[Tuple[BasisWorkspace, BasisWorkspace]] = None
                         ) -> np.ndarray:
        """Plain B-spline value of the control net at (u, v), shape (mcp,)."""
        if workspaces is None:
            workspaces = self.make_workspaces()
        degree_u, degree_v = self.degrees
        return bspline_surface_point(degree_u, degree_v, self._coefs,
                                     self._kv_u.knots, self._kv_v.knots,
                                     uv[0], uv[1], workspaces[0], workspaces[1])

    def eval_point(self, uv: Sequence[float],
                   workspaces: Optional[Tuple[BasisWorkspace, BasisWorkspace]] = None
                   ) -> np.ndarray:
        """
        Evaluate the rational surface at parameter values.

        Parameters:
            uv: Parameter values (u, v)

        Returns:
            Point coordinates as (3,) array
        """
        Sw = self.eval_homogeneous(uv, workspaces)
        return Sw[:3] / Sw[3]

    def eval(self, uv) -> np.ndarray:
        """Evaluate the rational surface at (2, n_query) parameters, shape (3, n_query)."""
        degree_u, degree_v = self.degrees
        return evaluate_nurbs_surface(degree_u, degree_v, self._coefs,
                                      self._kv_u.knots, self._kv_v.knots, uv)
