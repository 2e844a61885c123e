"""
Unit tests for the closest point solver.
"""

import logging

import pytest
import numpy as np
from numpy.testing import assert_almost_equal, assert_array_almost_equal, assert_allclose

from igesKernel.errors import PreconditionError
from igesKernel.geometry.evaluation import evaluate_nurbs_curve, evaluate_nurbs_surface
from igesKernel.geometry.hodograph import curve_derivative_patches, surface_derivative_patches
from igesKernel.geometry.primitives import (
    make_nurbs_arc,
    make_nurbs_bilinear_patch,
    make_nurbs_circle,
    make_nurbs_cylinder_patch,
    make_nurbs_line,
)
from igesKernel.io.config import SolverSettings
from igesKernel.solver.closest_point import ClosestPointResult, Line, closest_point
from igesKernel.solver.newton import NewtonStatus


@pytest.fixture
def cylinder():
    """Quarter cylinder of radius 1 and height 2 around the z axis."""
    surface = make_nurbs_cylinder_patch(radius=1.0, height=2.0)
    return surface, surface_derivative_patches(surface)


class TestCurveToPoint:
    """Tests for projecting points onto curves."""

    def test_parabola_apex(self, parabola, parabola_derivs):
        """Test a start at the exact answer converges at once."""
        result = closest_point(parabola, parabola_derivs, [0.5], [1.0, 5.0, 0.0])

        assert result.status == [NewtonStatus.CONVERGED]
        assert result.iterations[0] == 1
        assert_almost_equal(result.params[0], 0.5)
        assert_array_almost_equal(result.points[:, 0], [1.0, 1.0, 0.0])
        assert_almost_equal(result.residuals[0], 4.0)
        assert result.line_params is None

    def test_unpacks_as_points_and_params(self, parabola, parabola_derivs):
        """Test that the result unpacks as (points, params)."""
        points, params = closest_point(parabola, parabola_derivs, [0.3], [1.0, 5.0, 0.0])
        assert points.shape == (3, 1)
        assert params.shape == (1,)

    def test_shared_target(self, parabola, parabola_derivs):
        """Test one target shared by several start parameters."""
        result = closest_point(parabola, parabola_derivs, [0.2, 0.5, 0.8], [1.0, 5.0, 0.0])

        assert np.all(result.converged)
        assert_allclose(result.params, 0.5, atol=1e-9)
        assert_allclose(result.points, np.tile([[1.0], [1.0], [0.0]], 3), atol=1e-9)

    def test_one_target_per_query(self, parabola, parabola_derivs):
        """Test points on the curve project onto themselves."""
        us = np.array([0.1, 0.5, 0.9])
        targets = parabola.eval(us)

        result = closest_point(parabola, parabola_derivs, us + 0.05, targets)

        assert np.all(result.converged)
        assert_allclose(result.params, us, atol=1e-9)
        assert_allclose(result.points, targets, atol=1e-9)
        assert_allclose(result.residuals, 0.0, atol=1e-9)

    def test_points_lie_on_curve(self, parabola, parabola_derivs):
        """Test that returned points are the curve evaluated at returned params."""
        targets = np.array([[0.0, 2.0, 1.5],
                            [1.0, 1.5, -1.0],
                            [0.5, 0.0, 0.2]])
        result = closest_point(parabola, parabola_derivs, [0.4, 0.6, 0.5], targets)

        expected = evaluate_nurbs_curve(parabola.degree, parabola.coefs, parabola.knots,
                                        result.params)
        assert_allclose(result.points, expected, rtol=0, atol=1e-15)

    def test_line_foot_in_one_undamped_step(self):
        """Test that an undamped step lands on the foot of the perpendicular."""
        line = make_nurbs_line((0, 0, 0), (4, 2, 0))
        derivs = curve_derivative_patches(line)

        result = closest_point(line, derivs, [0.1], [1.0, 3.0, 0.0],
                               SolverSettings(damping=1.0, max_iter=1))

        assert result.iterations[0] == 1
        assert_allclose(result.params, [0.5], atol=1e-14)
        assert_allclose(result.points[:, 0], [2.0, 1.0, 0.0], atol=1e-14)

    def test_line_foot_default_settings(self):
        """Test the damped iteration on a straight line."""
        line = make_nurbs_line((0, 0, 0), (4, 2, 0))
        derivs = curve_derivative_patches(line)

        result = closest_point(line, derivs, [0.1], [1.0, 3.0, 0.0])

        assert result.converged[0]
        assert_allclose(result.params, [0.5], atol=1e-9)

    def test_circle_projection(self):
        """Test projecting a point onto a rational circle."""
        circle = make_nurbs_circle(radius=2.0)
        derivs = curve_derivative_patches(circle)

        result = closest_point(circle, derivs, [0.1], [3.0, 3.0, 0.0])

        assert result.converged[0]
        assert_allclose(result.params, [0.125], atol=1e-8)
        assert_allclose(result.points[:, 0], [np.sqrt(2), np.sqrt(2), 0.0], atol=1e-8)
        assert_allclose(result.residuals[0], 3 * np.sqrt(2) - 2.0, atol=1e-8)

    def test_clamped_at_domain_end(self, caplog):
        """Test that a minimum beyond the domain end stays clamped."""
        line = make_nurbs_line((0, 0, 0), (1, 0, 0))
        derivs = curve_derivative_patches(line)

        with caplog.at_level(logging.DEBUG, logger="igesKernel.solver.closest_point"):
            result = closest_point(line, derivs, [0.5], [-5.0, 1.0, 0.0])

        assert result.status == [NewtonStatus.MAX_ITERATIONS]
        assert result.iterations[0] == 50
        assert result.params[0] == 0.0
        assert_array_almost_equal(result.points[:, 0], [0.0, 0.0, 0.0])
        assert_almost_equal(result.residuals[0], np.sqrt(26.0))
        assert "max_iterations" in caplog.text

    def test_degenerate_at_center_of_curvature(self):
        """Test that the arc center gives a singular system and no movement."""
        arc = make_nurbs_arc(radius=1.0)
        derivs = curve_derivative_patches(arc)

        result = closest_point(arc, derivs, [0.3], [0.0, 0.0, 0.0])

        assert result.status == [NewtonStatus.DEGENERATE]
        assert result.iterations[0] == 0
        assert_almost_equal(result.params[0], 0.3)
        assert_almost_equal(result.residuals[0], 1.0)

    def test_degenerate_query_does_not_affect_batch(self):
        """Test that a singular query leaves the other queries of a batch untouched."""
        arc = make_nurbs_arc(radius=1.0)
        derivs = curve_derivative_patches(arc)
        targets = np.array([[0.0, 2.0],
                            [0.0, 2.0],
                            [0.0, 0.0]])

        result = closest_point(arc, derivs, [0.3, 0.3], targets)

        assert result.status == [NewtonStatus.DEGENERATE, NewtonStatus.CONVERGED]
        assert_allclose(result.converged, [False, True])
        assert result.iterations[0] == 0
        assert result.iterations[1] > 0
        assert_allclose(result.params, [0.3, 0.5], atol=1e-8)
        assert_allclose(result.points[:, 1], [np.sqrt(0.5), np.sqrt(0.5), 0.0], atol=1e-8)

    def test_params_keep_input_shape(self, parabola, parabola_derivs):
        """Test that params come back in the shape they were given."""
        target = [1.0, 5.0, 0.0]

        result = closest_point(parabola, parabola_derivs, np.array([[0.2, 0.4]]), target)
        assert result.params.shape == (1, 2)

        result = closest_point(parabola, parabola_derivs, 0.4, target)
        assert result.params.shape == ()
        assert result.points.shape == (3, 1)


class TestCurveToLine:
    """Tests for closest points between curves and lines."""

    def test_skew_lines(self):
        """Test a straight curve against a skew line."""
        curve = make_nurbs_line((0, 0, 0), (2, 0, 0))
        derivs = curve_derivative_patches(curve)
        target = Line(origin=np.array([1.0, -1.0, 1.0]), direction=np.array([0.0, 1.0, 0.0]))

        result = closest_point(curve, derivs, [0.2], target)

        assert result.converged[0]
        assert_allclose(result.params, [0.5], atol=1e-9)
        assert_allclose(result.line_params, [1.0], atol=1e-9)
        assert_allclose(result.points[:, 0], [1.0, 0.0, 0.0], atol=1e-9)
        assert_allclose(result.residuals, [1.0], atol=1e-9)

    def test_line_through_parabola(self, parabola, parabola_derivs):
        """Test a line crossing the curve meets it with zero distance."""
        target = Line(origin=np.array([[1.0], [1.0], [-1.0]]),
                      direction=np.array([[0.0], [0.0], [1.0]]))

        result = closest_point(parabola, parabola_derivs, [0.45], target)

        assert result.converged[0]
        assert_allclose(result.params, [0.5], atol=1e-8)
        assert_allclose(result.line_params, [1.0], atol=1e-8)
        assert result.residuals[0] < 1e-8

    def test_one_line_per_query(self):
        """Test that (3, N) origins and directions give one line per query."""
        curve = make_nurbs_line((0, 0, 0), (2, 0, 0))
        derivs = curve_derivative_patches(curve)
        target = Line(origin=np.array([[0.5, 1.5],
                                       [-1.0, -1.0],
                                       [1.0, 1.0]]),
                      direction=np.array([[0.0, 0.0],
                                          [1.0, 1.0],
                                          [0.0, 0.0]]))

        result = closest_point(curve, derivs, [0.5, 0.5], target)

        assert result.status == [NewtonStatus.CONVERGED, NewtonStatus.CONVERGED]
        assert_allclose(result.params, [0.25, 0.75], atol=1e-9)
        assert_allclose(result.line_params, [1.0, 1.0], atol=1e-9)
        assert_allclose(result.points, [[0.5, 1.5], [0.0, 0.0], [0.0, 0.0]], atol=1e-9)
        assert_allclose(result.residuals, [1.0, 1.0], atol=1e-9)

    def test_mismatched_line_arrays(self, parabola, parabola_derivs):
        """Test that origin and direction must have the same shape."""
        target = Line(origin=np.zeros(3), direction=np.ones((3, 2)))
        with pytest.raises(PreconditionError):
            closest_point(parabola, parabola_derivs, [0.2, 0.4], target)


class TestSurfaceToPoint:
    """Tests for projecting points onto surfaces."""

    def test_cylinder(self, cylinder):
        """Test projection of an outside point onto a cylinder."""
        surface, derivs = cylinder

        result = closest_point(surface, derivs, np.array([[0.3], [0.6]]), [2.0, 2.0, 1.0])

        assert result.converged[0]
        assert result.params.shape == (2, 1)
        assert_allclose(result.params[:, 0], [0.5, 0.5], atol=1e-8)
        assert_allclose(result.points[:, 0], [np.sqrt(0.5), np.sqrt(0.5), 1.0], atol=1e-8)
        assert_allclose(result.residuals[0], 2 * np.sqrt(2) - 1.0, atol=1e-8)

    def test_cylinder_batch(self, cylinder):
        """Test several targets, one per query."""
        surface, derivs = cylinder
        angles = np.array([np.pi / 8, np.pi / 4, 3 * np.pi / 8])
        heights = np.array([0.4, 1.0, 1.8])
        targets = np.vstack([3 * np.cos(angles), 3 * np.sin(angles), heights])
        initial = np.array([[0.3, 0.5, 0.6],
                            [0.3, 0.4, 0.8]])

        result = closest_point(surface, derivs, initial, targets)

        assert np.all(result.converged)
        expected = np.vstack([np.cos(angles), np.sin(angles), heights])
        assert_allclose(result.points, expected, atol=1e-8)

        on_surface = evaluate_nurbs_surface(2, 1, surface.coefs,
                                            surface.knot_vectors[0].knots,
                                            surface.knot_vectors[1].knots,
                                            result.params)
        assert_allclose(result.points, on_surface, rtol=0, atol=1e-15)

    def test_saddle_offset_point(self):
        """Test a point offset along the normal of a bilinear saddle."""
        surface = make_nurbs_bilinear_patch((0, 0, 0), (1, 0, 0), (0, 1, 0), (1, 1, 1))
        derivs = surface_derivative_patches(surface)
        normal = np.array([-0.5, -0.5, 1.0])
        target = np.array([0.5, 0.5, 0.25]) + 0.2 * normal

        result = closest_point(surface, derivs, np.array([[0.3], [0.6]]), target)

        assert result.converged[0]
        assert_allclose(result.params[:, 0], [0.5, 0.5], atol=1e-8)
        assert_allclose(result.residuals[0], 0.2 * np.linalg.norm(normal), atol=1e-8)

    def test_wrong_parameter_rows(self, cylinder, parabola, parabola_derivs):
        """Test that parameter rows must match the patch dimension."""
        surface, derivs = cylinder
        with pytest.raises(PreconditionError):
            closest_point(surface, derivs, [0.3, 0.4], [2.0, 2.0, 1.0])
        with pytest.raises(PreconditionError):
            closest_point(parabola, parabola_derivs, np.zeros((2, 3)), [1.0, 1.0, 0.0])
        with pytest.raises(PreconditionError):
            closest_point(surface, derivs, np.zeros((3, 1)), [2.0, 2.0, 1.0])

    def test_target_column_mismatch(self, cylinder):
        """Test that targets must be one column or one per query."""
        surface, derivs = cylinder
        with pytest.raises(PreconditionError):
            closest_point(surface, derivs, np.full((2, 3), 0.5), np.zeros((3, 2)))

    def test_target_rows(self, cylinder):
        """Test that targets must be 3D."""
        surface, derivs = cylinder
        with pytest.raises(PreconditionError):
            closest_point(surface, derivs, np.full((2, 1), 0.5), np.zeros((2, 1)))

    def test_mixed_patch_kinds(self, cylinder, parabola_derivs):
        """Test that curve derivative patches cannot be used with a surface."""
        surface, _ = cylinder
        with pytest.raises(PreconditionError):
            closest_point(surface, parabola_derivs, np.full((2, 1), 0.5), [1.0, 1.0, 1.0])


class TestSurfaceToLine:
    """Tests for line/surface intersection via closest points."""

    def test_line_pierces_cylinder(self, cylinder):
        """Test a horizontal line through the cylinder wall."""
        surface, derivs = cylinder
        target = Line(origin=np.array([0.5, 0.5, 1.0]), direction=np.array([1.0, 1.0, 0.0]))

        result = closest_point(surface, derivs, np.array([[0.45], [0.55]]), target)

        assert result.converged[0]
        assert_allclose(result.params[:, 0], [0.5, 0.5], atol=1e-8)
        assert_allclose(result.line_params, [np.sqrt(0.5) - 0.5], atol=1e-8)
        assert_allclose(result.points[:, 0], [np.sqrt(0.5), np.sqrt(0.5), 1.0], atol=1e-8)
        assert result.residuals[0] < 1e-8

    def test_result_type(self, cylinder):
        """Test the diagnostics carried by the result."""
        surface, derivs = cylinder
        target = Line(origin=np.array([0.5, 0.5, 1.0]), direction=np.array([1.0, 1.0, 0.0]))

        result = closest_point(surface, derivs, np.array([[0.45], [0.55]]), target)

        assert isinstance(result, ClosestPointResult)
        assert result.iterations.shape == (1,)
        assert result.residuals.shape == (1,)
        assert result.line_params.shape == (1,)
        assert len(result.status) == 1
