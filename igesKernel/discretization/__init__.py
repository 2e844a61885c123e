"""
Discretization module.

Provides:
- KnotVector: Knot vector representation and parameter domain
- find_span: Knot span search (span locator)
"""

from .knot_vector import KnotVector, find_span, make_open_knot_vector
