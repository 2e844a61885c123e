"""
Geometry module for NURBS curves and surfaces.
"""

from .nurbs import NURBSCurve, NURBSSurface
from .evaluation import (
    evaluate_bspline,
    evaluate_bspline_surface,
    evaluate_nurbs_curve,
    evaluate_nurbs_surface,
)
from .derivatives import derivatives_curve, derivatives_surface
from .hodograph import curve_derivative_patches, surface_derivative_patches
from .primitives import (
    make_nurbs_curve,
    make_nurbs_surface,
    make_nurbs_line,
    make_nurbs_polyline,
    make_nurbs_arc,
    make_nurbs_circle,
    make_nurbs_bilinear_patch,
    make_nurbs_cylinder_patch,
)
