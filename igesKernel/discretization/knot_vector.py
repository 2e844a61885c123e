"""
Knot vector utilities.

A knot vector is a non-decreasing sequence of real numbers that defines
the parametric domain and basis function support for B-splines/NURBS.

Mathematical background:
- Open knot vectors have p+1 repeated knots at each end (interpolatory at boundaries)
- The number of basis functions (control points) n = len(knots) - p - 1
- The valid parameter domain is [knots[p], knots[n]]
- A knot span i is the half-open interval [knots[i], knots[i+1])
"""

import numpy as np
from typing import Tuple
from dataclasses import dataclass


def find_span(n_ctrl_pts: int, degree: int, u: float, knots: np.ndarray) -> int:
    """
    Find the knot span index containing parameter value u.

    ALGORITHM A2.1 of Piegl & Tiller "The NURBS Book", with n_ctrl_pts
    given as a count of control points (not the last index).

    Parameters:
        n_ctrl_pts: Number of control points (basis functions)
        degree: Polynomial degree p
        u: Parameter value, expected inside [knots[p], knots[n_ctrl_pts]]
        knots: Knot sequence of length n_ctrl_pts + p + 1

    Returns:
        Span index i in [p, n_ctrl_pts - 1] with knots[i] <= u < knots[i+1].
        Values at or past knots[n_ctrl_pts - 1] map to the last span and
        values below knots[p + 1] map to the first span.
    """
    if u >= knots[n_ctrl_pts - 1]:
        return n_ctrl_pts - 1
    if u < knots[degree + 1]:
        return degree

    low = degree
    high = n_ctrl_pts
    mid = (low + high) // 2

    while u < knots[mid] or u >= knots[mid + 1]:
        if u < knots[mid]:
            high = mid
        else:
            low = mid
        mid = (low + high) // 2

    return mid


@dataclass
class KnotVector:
    """
    Represents a univariate knot vector.

    Attributes:
        knots: The knot values (non-decreasing sequence)
        degree: Polynomial degree p (order - 1)

    Properties computed:
        n_basis: Number of basis functions (= number of control points)
        domain: Valid parameter interval (knots[p], knots[n])
    """
    knots: np.ndarray
    degree: int

    def __post_init__(self):
        self.knots = np.asarray(self.knots, dtype=np.float64).ravel()
        self.degree = int(self.degree)
        self._validate()

    def _validate(self):
        """Validate knot vector properties."""
        if self.degree < 0:
            raise ValueError(f"Degree must be non-negative, got {self.degree}.")
        if len(self.knots) < 2 * (self.degree + 1):
            raise ValueError(
                f"Knot vector too short for degree {self.degree}. "
                f"Need at least {2 * (self.degree + 1)} knots, got {len(self.knots)}."
            )
        # Check non-decreasing
        if not np.all(np.diff(self.knots) >= 0):
            raise ValueError("Knot vector must be non-decreasing.")

    @classmethod
    def from_order(cls, knots, order: int) -> "KnotVector":
        """Build a knot vector from an order (degree + 1), as stored in IGES data."""
        return cls(knots, int(order) - 1)

    @property
    def order(self) -> int:
        """Polynomial order (degree + 1)."""
        return self.degree + 1

    @property
    def n_basis(self) -> int:
        """Number of basis functions."""
        return len(self.knots) - self.degree - 1

    @property
    def domain(self) -> Tuple[float, float]:
        """Parametric domain (knots[p], knots[n])."""
        return (float(self.knots[self.degree]), float(self.knots[self.n_basis]))

    def clamp(self, u: float) -> float:
        """Clamp a parameter value to the valid domain."""
        u_min, u_max = self.domain
        if u <= u_min:
            return u_min
        if u >= u_max:
            return u_max
        return u

    def find_span(self, u: float) -> int:
        """
        Find the knot span index containing parameter value u.

        See find_span for the boundary conventions.
        """
        return find_span(self.n_basis, self.degree, u, self.knots)


def make_open_knot_vector(n_basis: int, degree: int,
                           domain: Tuple[float, float] = (0.0, 1.0)) -> KnotVector:
    """
    Create an open (clamped) uniform knot vector.

    Open knot vectors have the first and last knot repeated p+1 times,
    ensuring the basis interpolates the first and last control points.

    Parameters:
        n_basis: Number of basis functions desired
        degree: Polynomial degree p
        domain: Parametric domain (start, end)

    Returns:
        KnotVector with uniform internal knots
    """
    p = degree
    n = n_basis
    n_knots = n + p + 1
    n_internal = n_knots - 2 * (p + 1)

    if n_internal < 0:
        raise ValueError(
            f"Cannot create knot vector: n_basis={n_basis} too small for degree={degree}"
        )

    a, b = domain

    # Start with p+1 repeated knots at start
    knots = [a] * (p + 1)

    # Add uniform internal knots
    if n_internal > 0:
        internal = np.linspace(a, b, n_internal + 2)[1:-1]
        knots.extend(internal)

    # End with p+1 repeated knots at end
    knots.extend([b] * (p + 1))

    return KnotVector(np.array(knots), degree)
