"""
Closest point solvers.
"""

from .newton import NewtonStatus, NewtonResult, damped_newton
from .closest_point import closest_point, ClosestPointResult, Line
