"""
igesKernel - NURBS evaluation kernel for IGES geometry

Evaluates points, first/second derivatives and closest points on
B-spline/NURBS curves and surfaces given as homogeneous control nets,
knot vectors and orders (the data carried by IGES entities 126 and 128).

Key modules:
- discretization: Knot vectors and knot span search
- geometry: Basis functions, point evaluation, derivative evaluation,
  NURBS patches, derivative patch construction, primitives
- solver: Damped Newton closest point to a point or a line
- io: Solver configuration

Quick start:
    import numpy as np
    from igesKernel.geometry.primitives import make_nurbs_curve
    from igesKernel.geometry.hodograph import curve_derivative_patches
    from igesKernel.solver.closest_point import closest_point

    curve = make_nurbs_curve([(0, 0, 0), (1, 2, 0), (2, 0, 0)], degree=2)
    curve.eval([0.5])                      # -> [[1.], [1.], [0.]]

    derivs = curve_derivative_patches(curve)
    points, params = closest_point(curve, derivs, [0.5], np.array([1.0, 5.0, 0.0]))
"""

import logging

__version__ = "0.1.0"

# Core imports for convenience
from .errors import PreconditionError
from .discretization.knot_vector import KnotVector, find_span, make_open_knot_vector
from .geometry.bspline import BasisWorkspace, basis_funs
from .geometry.evaluation import (
    evaluate_bspline,
    evaluate_bspline_surface,
    evaluate_nurbs_curve,
    evaluate_nurbs_surface,
)
from .geometry.nurbs import NURBSCurve, NURBSSurface
from .geometry.derivatives import derivatives_curve, derivatives_surface
from .geometry.hodograph import curve_derivative_patches, surface_derivative_patches
from .solver.closest_point import closest_point, ClosestPointResult, Line
from .solver.newton import NewtonStatus
from .io.config import SolverSettings, load_solver_settings

logging.getLogger(__name__).addHandler(logging.NullHandler())
