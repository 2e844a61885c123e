"""
B-spline basis function evaluation.

B-splines are piecewise polynomial functions defined by:
1. A knot vector (non-decreasing sequence of parametric values)
2. A polynomial degree p

The i-th B-spline basis function of degree p is defined recursively:

    N_{i,0}(u) = 1 if u_i <= u < u_{i+1}, else 0

    N_{i,p}(u) = (u - u_i)/(u_{i+p} - u_i) * N_{i,p-1}(u)
               + (u_{i+p+1} - u)/(u_{i+p+1} - u_{i+1}) * N_{i+1,p-1}(u)

Properties:
- Partition of unity: sum of all basis functions = 1
- Non-negativity: N_{i,p}(u) >= 0
- Local support: N_{i,p} is non-zero only on [u_i, u_{i+p+1})

Only the p+1 non-zero functions on a span are ever computed. The scratch
arrays used by the recurrence live in a BasisWorkspace owned by the caller,
so a batch of evaluations reuses the same storage.
"""

import numpy as np
from typing import Optional


class BasisWorkspace:
    """
    Reusable scratch storage for basis_funs.

    Holds the left/right knot differences and the output array N, each
    sized for the largest degree the workspace will be used with. One
    workspace per parametric direction per worker; it must not be shared
    between concurrent evaluations.

    Attributes:
        max_degree: Largest degree this workspace supports
    """

    def __init__(self, max_degree: int):
        self._allocate(max(int(max_degree), 0))

    def _allocate(self, max_degree: int):
        self.max_degree = max_degree
        self.left = np.zeros(max_degree + 1)
        self.right = np.zeros(max_degree + 1)
        self.N = np.zeros(max_degree + 1)

    def ensure(self, degree: int) -> "BasisWorkspace":
        """Grow the buffers if degree exceeds the current capacity."""
        if degree > self.max_degree:
            self._allocate(degree)
        return self


def basis_funs(span: int, u: float, degree: int, knots: np.ndarray,
               workspace: Optional[BasisWorkspace] = None) -> np.ndarray:
    """
    Evaluate the non-zero B-spline basis functions at a parameter value.

    ALGORITHM A2.2 of Piegl & Tiller "The NURBS Book" (triangular
    Cox-de Boor scheme). The result already forms a partition of unity.

    Parameters:
        span: Knot span index containing u (see find_span)
        u: Parameter value
        degree: Polynomial degree p
        knots: Knot sequence
        workspace: Scratch storage; a temporary one is created if omitted

    Returns:
        View of shape (p+1,) containing N_{span-p,p}(u) to N_{span,p}(u).
        The view aliases workspace.N and is overwritten by the next call
        that uses the same workspace.
    """
    if workspace is None:
        workspace = BasisWorkspace(degree)
    else:
        workspace.ensure(degree)

    left = workspace.left
    right = workspace.right
    N = workspace.N

    N[0] = 1.0

    for j in range(1, degree + 1):
        left[j] = u - knots[span + 1 - j]
        right[j] = knots[span + j] - u

        saved = 0.0
        for r in range(j):
            temp = N[r] / (right[r + 1] + left[j - r])
            N[r] = saved + right[r + 1] * temp
            saved = left[j - r] * temp
        N[j] = saved

    return N[:degree + 1]
