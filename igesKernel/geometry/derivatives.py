"""
First and second derivatives of rational curves and surfaces.

A NURBS point is S = A / w where A (3 coordinates) and w are the two parts
of one homogeneous B-spline. Differentiating A = w * S gives

    S_u  = (A_u  - w_u * S) / w
    S_uu = (A_uu - 2 * w_u * S_u - w_uu * S) / w
    S_uv = (A_uv - w_u * S_v - w_v * S_u - w_uv * S) / w

The homogeneous derivatives (A_u, w_u), (A_uu, w_uu), ... are obtained by
plain evaluation of "derivative patches": B-splines whose control nets are
the differentiated homogeneous control nets (see hodograph). They are
prepared once by the caller and passed in; this module only evaluates.

A degenerate second-derivative patch (order 0 in some direction) stands
for a direction whose degree was exhausted; the corresponding second
derivative is the zero vector.
"""

import numpy as np
from typing import NamedTuple, Optional, Sequence, Tuple

from ..errors import PreconditionError
from .bspline import BasisWorkspace
from .nurbs import NURBSCurve, NURBSSurface


class CurveDerivatives(NamedTuple):
    """Point and derivatives of a curve at one parameter value."""
    point: np.ndarray
    d_u: np.ndarray
    d_uu: np.ndarray


class SurfaceDerivatives(NamedTuple):
    """Point and partial derivatives of a surface at one (u, v)."""
    point: np.ndarray
    d_u: np.ndarray
    d_v: np.ndarray
    d_uu: np.ndarray
    d_uv: np.ndarray
    d_vv: np.ndarray


def check_curve_derivative_patches(patch: NURBSCurve, deriv1_patch: NURBSCurve,
                                   deriv2_patch: NURBSCurve):
    """Raise PreconditionError unless the three curves form a valid set."""
    for name, item in (("patch", patch), ("deriv1_patch", deriv1_patch),
                       ("deriv2_patch", deriv2_patch)):
        if not isinstance(item, NURBSCurve):
            raise PreconditionError(f"{name} must be a NURBSCurve, got {type(item).__name__}")
        if item.mcp != 4:
            raise PreconditionError(
                f"{name} control net must have 4 rows, got {item.mcp}"
            )
    if patch.is_degenerate:
        raise PreconditionError("Cannot differentiate a degenerate curve")


def check_surface_derivative_patches(patch: NURBSSurface,
                                     deriv1_patches: Sequence[NURBSSurface],
                                     deriv2_patches: Sequence[NURBSSurface]):
    """Raise PreconditionError unless the six surfaces form a valid set."""
    if not isinstance(deriv1_patches, (list, tuple)) or not isinstance(deriv2_patches, (list, tuple)):
        raise PreconditionError("Surface derivative patches must be given as sequences")
    if len(deriv1_patches) != 2:
        raise PreconditionError(
            f"Expected 2 first-derivative patches (u, v), got {len(deriv1_patches)}"
        )
    if len(deriv2_patches) != 3:
        raise PreconditionError(
            f"Expected 3 second-derivative patches (uu, uv, vv), got {len(deriv2_patches)}"
        )
    for item in (patch, *deriv1_patches, *deriv2_patches):
        if not isinstance(item, NURBSSurface):
            raise PreconditionError(f"Expected NURBSSurface, got {type(item).__name__}")
        if item.mcp != 4:
            raise PreconditionError(
                f"Surface control net must have 4 rows, got {item.mcp}"
            )
    if patch.is_degenerate:
        raise PreconditionError("Cannot differentiate a degenerate surface")


def _homogeneous_or_zero(patch, params, workspaces) -> np.ndarray:
    if patch.is_degenerate:
        return np.zeros(4)
    return patch.eval_homogeneous(params, workspaces)


def eval_curve_derivatives(patch: NURBSCurve, deriv1_patch: NURBSCurve,
                           deriv2_patch: NURBSCurve, u: float,
                           workspace: BasisWorkspace) -> CurveDerivatives:
    """Evaluate a curve and its derivatives at u; inputs are trusted."""
    Pw = patch.eval_homogeneous(u, workspace)
    w = Pw[3]
    point = Pw[:3] / w

    Dw = _homogeneous_or_zero(deriv1_patch, u, workspace)
    w_u = Dw[3]
    d_u = (Dw[:3] - w_u * point) / w

    if deriv2_patch.is_degenerate:
        d_uu = np.zeros(3)
    else:
        D2w = deriv2_patch.eval_homogeneous(u, workspace)
        d_uu = (D2w[:3] - 2 * w_u * d_u - D2w[3] * point) / w

    return CurveDerivatives(point, d_u, d_uu)


def eval_surface_derivatives(patch: NURBSSurface,
                             deriv1_patches: Sequence[NURBSSurface],
                             deriv2_patches: Sequence[NURBSSurface],
                             uv: Sequence[float],
                             workspaces: Tuple[BasisWorkspace, BasisWorkspace]
                             ) -> SurfaceDerivatives:
    """Evaluate a surface and its partial derivatives at (u, v); inputs are trusted."""
    Sw = patch.eval_homogeneous(uv, workspaces)
    w = Sw[3]
    point = Sw[:3] / w

    patch_u, patch_v = deriv1_patches
    Uw = _homogeneous_or_zero(patch_u, uv, workspaces)
    Vw = _homogeneous_or_zero(patch_v, uv, workspaces)
    w_u = Uw[3]
    w_v = Vw[3]
    d_u = (Uw[:3] - w_u * point) / w
    d_v = (Vw[:3] - w_v * point) / w

    patch_uu, patch_uv, patch_vv = deriv2_patches

    if patch_uu.is_degenerate:
        d_uu = np.zeros(3)
    else:
        UUw = patch_uu.eval_homogeneous(uv, workspaces)
        d_uu = (UUw[:3] - 2 * w_u * d_u - UUw[3] * point) / w

    if patch_uv.is_degenerate:
        d_uv = np.zeros(3)
    else:
        UVw = patch_uv.eval_homogeneous(uv, workspaces)
        d_uv = (UVw[:3] - w_u * d_v - w_v * d_u - UVw[3] * point) / w

    if patch_vv.is_degenerate:
        d_vv = np.zeros(3)
    else:
        VVw = patch_vv.eval_homogeneous(uv, workspaces)
        d_vv = (VVw[:3] - 2 * w_v * d_v - VVw[3] * point) / w

    return SurfaceDerivatives(point, d_u, d_v, d_uu, d_uv, d_vv)


def derivatives_curve(patch: NURBSCurve, deriv1_patch: NURBSCurve,
                      deriv2_patch: NURBSCurve, u: float,
                      workspace: Optional[BasisWorkspace] = None) -> CurveDerivatives:
    """
    Evaluate a rational curve point and its first and second derivative.

    Parameters:
        patch: Base curve (homogeneous, 4 rows)
        deriv1_patch: First derivative patch of the homogeneous control net
        deriv2_patch: Second derivative patch (may be degenerate)
        u: Parameter value
        workspace: Optional scratch storage

    Returns:
        CurveDerivatives (point, d_u, d_uu), each a (3,) array
    """
    check_curve_derivative_patches(patch, deriv1_patch, deriv2_patch)
    if workspace is None:
        workspace = BasisWorkspace(patch.degree)
    return eval_curve_derivatives(patch, deriv1_patch, deriv2_patch, float(u), workspace)


def derivatives_surface(patch: NURBSSurface,
                        deriv1_patches: Sequence[NURBSSurface],
                        deriv2_patches: Sequence[NURBSSurface],
                        uv: Sequence[float],
                        workspaces: Optional[Tuple[BasisWorkspace, BasisWorkspace]] = None
                        ) -> SurfaceDerivatives:
    """
    Evaluate a rational surface point and its first and second partials.

    Parameters:
        patch: Base surface (homogeneous, 4 rows)
        deriv1_patches: [S_u patch, S_v patch]
        deriv2_patches: [S_uu patch, S_uv patch, S_vv patch], any may be degenerate
        uv: Parameter values (u, v)
        workspaces: Optional (u, v) scratch storage pair

    Returns:
        SurfaceDerivatives (point, d_u, d_v, d_uu, d_uv, d_vv), each (3,)
    """
    check_surface_derivative_patches(patch, deriv1_patches, deriv2_patches)
    if workspaces is None:
        workspaces = patch.make_workspaces()
    uv = np.asarray(uv, dtype=np.float64).ravel()
    if uv.shape != (2,):
        raise PreconditionError(f"Surface parameter must be (u, v), got shape {uv.shape}")
    return eval_surface_derivatives(patch, deriv1_patches, deriv2_patches, uv, workspaces)
