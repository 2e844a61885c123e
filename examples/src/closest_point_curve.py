#!/usr/bin/env python3
"""
Example: project points and a line onto a NURBS curve.

A rational cubic curve is built from a handful of control points. A ring
of target points is projected onto it with the damped Newton solver, and
the closest points between the curve and a straight line are computed.

Usage:
    ./examples/src/closest_point_curve.py [--save] [--config kernel.yaml]

Created: 2026-10-19
"""

import sys
import os
import argparse
import logging
import numpy as np

# Use Agg backend if --save is specified
if '--save' in sys.argv:
    import matplotlib
    matplotlib.use('Agg')

import matplotlib.pyplot as plt

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from igesKernel.geometry.primitives import make_nurbs_curve
from igesKernel.geometry.hodograph import curve_derivative_patches
from igesKernel.io.config import DEFAULT_SETTINGS, load_solver_settings
from igesKernel.solver.closest_point import Line, closest_point


def build_curve():
    """Rational cubic with one heavy control point."""
    points = [(0.0, 0.0, 0.0), (1.0, 2.0, 0.0), (2.5, -1.0, 0.0),
              (4.0, 1.5, 0.0), (5.0, 0.0, 0.0)]
    weights = [1.0, 1.0, 3.0, 1.0, 1.0]
    return make_nurbs_curve(points, degree=3, weights=weights)


def plot_projections(curve, targets, result, line, line_result, save_path=None):
    """
    Plot the curve, the targets and their closest points.

    Parameters:
        curve: NURBSCurve
        targets: Target points, shape (3, N)
        result: ClosestPointResult for the targets
        line: Line target
        line_result: ClosestPointResult for the line
        save_path: If provided, save figure to this path
    """
    fig, ax = plt.subplots(figsize=(10, 6))

    samples = curve.eval(np.linspace(0.0, 1.0, 400))
    ax.plot(samples[0], samples[1], 'k-', linewidth=2, label='curve')

    cp = curve.control_points
    ax.plot(cp[:, 0], cp[:, 1], 'o--', color='gray', alpha=0.6, label='control polygon')

    converged = result.converged
    for i in range(targets.shape[1]):
        color = 'tab:blue' if converged[i] else 'tab:red'
        ax.plot([targets[0, i], result.points[0, i]],
                [targets[1, i], result.points[1, i]], '-', color=color, alpha=0.7)
    ax.plot(targets[0], targets[1], '.', color='tab:blue', label='targets')

    t = np.linspace(-2.0, 2.0, 2)
    origin = np.asarray(line.origin).ravel()
    direction = np.asarray(line.direction).ravel()
    ax.plot(origin[0] + t * direction[0], origin[1] + t * direction[1],
            '-', color='tab:green', label='line')
    ax.plot(line_result.points[0], line_result.points[1], '*',
            color='tab:green', markersize=14, label='line closest point')

    ax.set_aspect('equal')
    ax.set_title('Closest points on a rational cubic')
    ax.legend(loc='upper right')
    plt.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches='tight')
        print(f"Saved: {save_path}")

    return fig


def main():
    parser = argparse.ArgumentParser(description="Closest points on a NURBS curve")
    parser.add_argument("--n-targets", type=int, default=24,
                        help="Number of target points on the ring (default: 24)")
    parser.add_argument("--config", type=str, default=None,
                        help="YAML file with a 'solver' section")
    parser.add_argument("--save", action="store_true",
                        help="Save figure to file")
    parser.add_argument("--verbose", action="store_true",
                        help="Log solver details")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(name)s %(levelname)s: %(message)s")

    settings = load_solver_settings(args.config) if args.config else DEFAULT_SETTINGS

    print("=" * 60)
    print("Closest Point on a NURBS Curve")
    print("=" * 60)

    print("\n1. Building curve and derivative patches...")
    curve = build_curve()
    derivs = curve_derivative_patches(curve)
    print(f"   Degree: {curve.degree}, control points: {curve.n_control_points}")

    print(f"\n2. Projecting {args.n_targets} points...")
    angles = np.linspace(0.0, 2 * np.pi, args.n_targets, endpoint=False)
    targets = np.vstack([2.5 + 3.0 * np.cos(angles),
                         2.0 * np.sin(angles),
                         np.zeros_like(angles)])
    # Start each query from the parameter of the nearest sample
    samples = curve.eval(np.linspace(0.0, 1.0, 50))
    nearest = np.argmin(np.linalg.norm(samples[:, :, np.newaxis] - targets[:, np.newaxis, :],
                                       axis=0), axis=0)
    initial = nearest / 49.0

    result = closest_point(curve, derivs, initial, targets, settings)
    print(f"   Converged: {np.count_nonzero(result.converged)} / {args.n_targets}")
    print(f"   Mean iterations: {result.iterations.mean():.1f}")
    print(f"   Distance range: [{result.residuals.min():.4f}, {result.residuals.max():.4f}]")

    print("\n3. Closest points between curve and a line...")
    line = Line(origin=np.array([2.0, 1.0, 1.0]), direction=np.array([1.0, -1.0, 0.0]))
    line_result = closest_point(curve, derivs, [0.5], line, settings)
    print(f"   u = {line_result.params[0]:.6f}, t = {line_result.line_params[0]:.6f}")
    print(f"   Distance: {line_result.residuals[0]:.6f}")

    save_path = "closest_point_curve.png" if args.save else None
    plot_projections(curve, targets, result, line, line_result, save_path=save_path)

    print("\n" + "=" * 60)

    if not args.save:
        plt.show()


if __name__ == "__main__":
    main()
