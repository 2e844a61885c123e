"""
Primitive geometry factory functions.

This module provides factory functions for common NURBS patches in 3D:
- Straight lines and polylines
- Open uniform B-spline curves through given control points
- Circles and arcs (exact, rational)
- Bilinear patches and cylinder patches

They are handy as test geometry and as the input of the examples.
"""

import numpy as np
from typing import Sequence, Tuple

from .nurbs import NURBSCurve, NURBSSurface
from ..discretization.knot_vector import KnotVector, make_open_knot_vector
from ..errors import PreconditionError


def _as_point(point: Sequence[float]) -> np.ndarray:
    point = np.asarray(point, dtype=np.float64).ravel()
    if point.size == 2:
        point = np.append(point, 0.0)
    if point.size != 3:
        raise PreconditionError(f"Expected a 2D or 3D point, got {point.size} coordinates")
    return point


def make_nurbs_curve(points: Sequence[Sequence[float]], degree: int = 2,
                     weights: Sequence[float] = None) -> NURBSCurve:
    """
    Create an open uniform NURBS curve from control points.

    Parameters:
        points: Control points, (n, 2) or (n, 3)
        degree: Polynomial degree (n must be at least degree + 1)
        weights: Optional weights, default 1.0

    Returns:
        NURBSCurve on the domain [0, 1]
    """
    points = np.array([_as_point(p) for p in points])
    kv = make_open_knot_vector(len(points), degree, domain=(0.0, 1.0))
    return NURBSCurve.from_points(kv, points, weights)


def make_nurbs_line(start: Sequence[float], end: Sequence[float]) -> NURBSCurve:
    """Create a degree 1 NURBS curve from start to end on [0, 1]."""
    return make_nurbs_curve([start, end], degree=1)


def make_nurbs_polyline(points: Sequence[Sequence[float]]) -> NURBSCurve:
    """Create a degree 1 NURBS curve through the given points, uniform in parameter."""
    return make_nurbs_curve(points, degree=1)


def make_nurbs_arc(radius: float = 1.0,
                   center: Sequence[float] = (0.0, 0.0, 0.0),
                   start_angle: float = 0.0,
                   end_angle: float = np.pi / 2) -> NURBSCurve:
    """
    Create a NURBS curve representing a circular arc in the plane z = center[2].

    Uses degree 2 with 3 control points for arcs up to 90 degrees.

    Parameters:
        radius: Arc radius
        center: Center coordinates (x, y[, z])
        start_angle: Starting angle in radians
        end_angle: Ending angle in radians (must be within 90 degrees of start)

    Returns:
        NURBSCurve representing the arc, parameterized on [0, 1]
    """
    sweep = end_angle - start_angle
    if abs(sweep) > np.pi / 2 + 1e-10:
        raise ValueError("Arc sweep must be <= 90 degrees. Use make_nurbs_circle for larger arcs.")

    center = _as_point(center)
    kv = KnotVector(np.array([0, 0, 0, 1, 1, 1]), 2)

    # Weight for middle control point
    w = np.cos(sweep / 2)
    mid_angle = (start_angle + end_angle) / 2

    # Middle control point is the intersection of the end tangents
    d = radius / np.cos(sweep / 2)
    control_points = np.array([
        center + radius * np.array([np.cos(start_angle), np.sin(start_angle), 0.0]),
        center + d * np.array([np.cos(mid_angle), np.sin(mid_angle), 0.0]),
        center + radius * np.array([np.cos(end_angle), np.sin(end_angle), 0.0]),
    ])

    return NURBSCurve.from_points(kv, control_points, np.array([1.0, w, 1.0]))


def make_nurbs_circle(radius: float = 1.0,
                      center: Sequence[float] = (0.0, 0.0, 0.0)) -> NURBSCurve:
    """
    Create a NURBS curve representing a full circle in the plane z = center[2].

    Uses the standard 9-control-point representation with degree 2.
    The circle is parameterized from 0 to 1, going counterclockwise
    starting from the positive x-axis.
    """
    center = _as_point(center)
    knots = np.array([0, 0, 0, 0.25, 0.25, 0.5, 0.5, 0.75, 0.75, 1, 1, 1])
    kv = KnotVector(knots, 2)

    w = 1.0 / np.sqrt(2.0)
    angles = np.arange(9) * np.pi / 4
    weights = np.array([1, w, 1, w, 1, w, 1, w, 1])

    # 45-degree control points lie on the square circumscribing the circle
    distance = np.where(np.arange(9) % 2 == 1, radius * np.sqrt(2), radius)
    control_points = np.column_stack([
        center[0] + distance * np.cos(angles),
        center[1] + distance * np.sin(angles),
        np.full(9, center[2]),
    ])

    return NURBSCurve.from_points(kv, control_points, weights)


def make_nurbs_bilinear_patch(p00: Sequence[float], p10: Sequence[float],
                              p01: Sequence[float], p11: Sequence[float]) -> NURBSSurface:
    """
    Create a bilinear NURBS surface from four corner points.

    S(0,0) = p00, S(1,0) = p10, S(0,1) = p01, S(1,1) = p11.
    """
    kv = KnotVector(np.array([0.0, 0.0, 1.0, 1.0]), 1)
    points = np.array([
        [_as_point(p00), _as_point(p01)],
        [_as_point(p10), _as_point(p11)],
    ])
    return NURBSSurface.from_points(kv, kv, points)


def make_nurbs_cylinder_patch(radius: float = 1.0,
                              height: float = 1.0,
                              center: Sequence[float] = (0.0, 0.0, 0.0),
                              start_angle: float = 0.0,
                              end_angle: float = np.pi / 2) -> NURBSSurface:
    """
    Create a cylindrical NURBS patch around the z axis through center.

    The u direction follows the circular arc (degree 2, rational), the v
    direction runs along the axis from center[2] to center[2] + height
    (degree 1).

    Returns:
        NURBSSurface on the domain [0, 1] x [0, 1]
    """
    arc = make_nurbs_arc(radius, center, start_angle, end_angle)
    arc_points = arc.control_points
    weights_u = arc.weights

    offset = np.array([0.0, 0.0, height])
    points = np.stack([arc_points, arc_points + offset], axis=1)
    weights = np.column_stack([weights_u, weights_u])

    kv_v = KnotVector(np.array([0.0, 0.0, 1.0, 1.0]), 1)
    return NURBSSurface.from_points(arc.knot_vector, kv_v, points, weights)


def make_nurbs_surface(points: np.ndarray, degrees: Tuple[int, int] = (2, 2),
                       weights: np.ndarray = None) -> NURBSSurface:
    """
    Create an open uniform NURBS surface from a control point grid.

    Parameters:
        points: Control points, shape (n_u, n_v, 3)
        degrees: Polynomial degrees (p_u, p_v)
        weights: Optional weights, shape (n_u, n_v)
    """
    points = np.asarray(points, dtype=np.float64)
    n_u, n_v = points.shape[:2]
    kv_u = make_open_knot_vector(n_u, degrees[0], domain=(0.0, 1.0))
    kv_v = make_open_knot_vector(n_v, degrees[1], domain=(0.0, 1.0))
    return NURBSSurface.from_points(kv_u, kv_v, points, weights)
