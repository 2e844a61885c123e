"""
Pytest configuration and shared fixtures for kernel tests.
"""

import pytest
import numpy as np
import sys
from pathlib import Path

# Add the parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from igesKernel.geometry.primitives import make_nurbs_curve, make_nurbs_surface
from igesKernel.geometry.hodograph import curve_derivative_patches, surface_derivative_patches


@pytest.fixture
def tolerance():
    """Default tolerance for floating point comparisons."""
    return 1e-12


@pytest.fixture
def loose_tolerance():
    """Looser tolerance for iterative and finite difference results."""
    return 1e-8


@pytest.fixture
def parabola():
    """Degree 2 curve through (0,0,0), apex (1,1,0), (2,0,0) on knots [0,0,0,1,1,1]."""
    return make_nurbs_curve([(0, 0, 0), (1, 2, 0), (2, 0, 0)], degree=2)


@pytest.fixture
def parabola_derivs(parabola):
    return curve_derivative_patches(parabola)


@pytest.fixture
def rational_surface():
    """Biquadratic single-span surface with non-uniform weights."""
    points = np.array([
        [[0.0, 0.0, 0.0], [0.0, 1.0, 0.5], [0.0, 2.0, 0.0]],
        [[1.0, 0.0, 0.5], [1.0, 1.0, 2.0], [1.0, 2.0, 0.3]],
        [[2.0, 0.0, 0.0], [2.0, 1.0, 0.4], [2.0, 2.0, 0.1]],
    ])
    weights = np.array([
        [1.0, 0.8, 1.0],
        [1.5, 2.0, 0.7],
        [1.0, 1.2, 1.0],
    ])
    return make_nurbs_surface(points, degrees=(2, 2), weights=weights)


@pytest.fixture
def rational_surface_derivs(rational_surface):
    return surface_derivative_patches(rational_surface)
