"""
Damped Newton iteration for small symmetric systems.

Each closest-point problem (curve or surface, against a point or a line)
is a minimization over 1, 2 or 3 unknowns. One routine drives all of them:

    for each iteration:
        clamp x to the patch domain
        (H, b) = system(x)            # Hessian-like matrix, negative gradient
        stop if |det(H)| < degeneracy_tol
        s = H^{-1} b
        x += damping * s
        stop if s.s < step_tol
    clamp x

The linear solve uses the closed-form adjugate of the symmetric 1x1, 2x2
or 3x3 matrix, so the degeneracy threshold acts on the same determinant
expression in every case.
"""

import numpy as np
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple

from ..io.config import SolverSettings, DEFAULT_SETTINGS

# (H, b) for the current unknowns
NewtonSystem = Callable[[np.ndarray], Tuple[np.ndarray, np.ndarray]]


class NewtonStatus(Enum):
    """How an iteration ended."""
    CONVERGED = "converged"
    MAX_ITERATIONS = "max_iterations"
    DEGENERATE = "degenerate"


@dataclass
class NewtonResult:
    """
    Outcome of damped_newton.

    Attributes:
        x: Final unknowns, clamped
        status: Termination reason
        iterations: Number of Newton steps applied to x
    """
    x: np.ndarray
    status: NewtonStatus
    iterations: int


def symmetric_determinant(H: np.ndarray) -> float:
    """Determinant of a symmetric 1x1, 2x2 or 3x3 matrix."""
    n = H.shape[0]
    if n == 1:
        return H[0, 0]
    if n == 2:
        return H[0, 0] * H[1, 1] - H[0, 1] * H[0, 1]
    if n == 3:
        H11, H12, H13 = H[0]
        H22, H23 = H[1, 1:]
        H33 = H[2, 2]
        return (2 * H13 * H12 * H23 - H13 * H13 * H22 - H12 * H12 * H33
                + H11 * H22 * H33 - H11 * H23 * H23)
    raise ValueError(f"Unsupported system size: {n}")


def solve_symmetric(H: np.ndarray, b: np.ndarray, det: float) -> np.ndarray:
    """Solve H s = b for a symmetric 1x1, 2x2 or 3x3 H with known determinant."""
    n = H.shape[0]
    if n == 1:
        return np.array([b[0] / det])
    if n == 2:
        H11, H12, H22 = H[0, 0], H[0, 1], H[1, 1]
        return np.array([(H22 * b[0] - H12 * b[1]) / det,
                         (H11 * b[1] - H12 * b[0]) / det])
    if n == 3:
        H11, H12, H13 = H[0]
        H22, H23 = H[1, 1:]
        H33 = H[2, 2]
        # Cofactors of the symmetric matrix
        C11 = H22 * H33 - H23 * H23
        C12 = H13 * H23 - H12 * H33
        C13 = H12 * H23 - H13 * H22
        C22 = H11 * H33 - H13 * H13
        C23 = H13 * H12 - H11 * H23
        C33 = H11 * H22 - H12 * H12
        return np.array([(C11 * b[0] + C12 * b[1] + C13 * b[2]) / det,
                         (C12 * b[0] + C22 * b[1] + C23 * b[2]) / det,
                         (C13 * b[0] + C23 * b[1] + C33 * b[2]) / det])
    raise ValueError(f"Unsupported system size: {n}")


def damped_newton(system: NewtonSystem, x0: np.ndarray,
                  clamp: Callable[[np.ndarray], None],
                  settings: Optional[SolverSettings] = None) -> NewtonResult:
    """
    Run the damped Newton iteration.

    Parameters:
        system: Callable returning (H, b) at the current unknowns
        x0: Initial unknowns (1, 2 or 3 values)
        clamp: Callable clamping the unknowns in place
        settings: Iteration parameters, defaults to DEFAULT_SETTINGS

    Returns:
        NewtonResult; a degenerate or capped run still returns the last
        (clamped) estimate.
    """
    if settings is None:
        settings = DEFAULT_SETTINGS

    x = np.array(x0, dtype=np.float64).ravel()
    status = NewtonStatus.MAX_ITERATIONS
    iterations = 0

    for _ in range(settings.max_iter):
        clamp(x)
        H, b = system(x)

        det = symmetric_determinant(H)
        if abs(det) < settings.degeneracy_tol:
            status = NewtonStatus.DEGENERATE
            break

        s = solve_symmetric(H, b, det)
        x += settings.damping * s
        iterations += 1

        if s @ s < settings.step_tol:
            status = NewtonStatus.CONVERGED
            break

    clamp(x)
    return NewtonResult(x, status, iterations)
