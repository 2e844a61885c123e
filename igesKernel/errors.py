"""
Exceptions raised at the boundary of the kernel.

Malformed inputs (wrong row counts, mismatched knot/control point counts,
parameter arrays that do not match the patch type) are rejected before any
computation starts. Numerical trouble inside the Newton iteration is never
raised; it is reported through NewtonStatus instead.
"""


class PreconditionError(ValueError):
    """An input array has the wrong shape or is inconsistent with its patch."""
