#!/usr/bin/env python3
"""
Example: project points onto a cylinder patch and intersect it with lines.

A quarter cylinder is represented exactly as a rational NURBS surface.
Points on a larger cylinder are projected onto it, and a fan of lines
through the axis is intersected with it by minimizing the line/surface
distance.

Usage:
    ./examples/src/closest_point_surface.py [--save] [--config kernel.yaml]

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

from igesKernel.geometry.primitives import make_nurbs_cylinder_patch
from igesKernel.geometry.hodograph import surface_derivative_patches
from igesKernel.io.config import DEFAULT_SETTINGS, load_solver_settings
from igesKernel.solver.closest_point import Line, closest_point


def plot_surface(surface, targets, result, line_result, save_path=None):
    """
    Plot the patch, projected points and line intersections in 3D.

    Parameters:
        surface: NURBSSurface
        targets: Target points, shape (3, N)
        result: ClosestPointResult for the targets
        line_result: ClosestPointResult for the lines
        save_path: If provided, save figure to this path
    """
    fig = plt.figure(figsize=(10, 8))
    ax = fig.add_subplot(111, projection='3d')

    n = 30
    u, v = np.meshgrid(np.linspace(0.0, 1.0, n), np.linspace(0.0, 1.0, n), indexing='ij')
    grid = surface.eval(np.vstack([u.ravel(), v.ravel()]))
    ax.plot_surface(grid[0].reshape(n, n), grid[1].reshape(n, n), grid[2].reshape(n, n),
                    alpha=0.4, color='lightgray', edgecolor='none')

    for i in range(targets.shape[1]):
        ax.plot([targets[0, i], result.points[0, i]],
                [targets[1, i], result.points[1, i]],
                [targets[2, i], result.points[2, i]], '-', color='tab:blue', alpha=0.7)
    ax.scatter(*targets, color='tab:blue', s=8, label='targets')
    ax.scatter(*line_result.points, color='tab:red', s=30, label='line intersections')

    ax.set_xlabel('x')
    ax.set_ylabel('y')
    ax.set_zlabel('z')
    ax.set_title('Closest points on a cylinder patch')
    ax.legend()
    plt.tight_layout()

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches='tight')
        print(f"Saved: {save_path}")

    return fig


def main():
    parser = argparse.ArgumentParser(description="Closest points on a NURBS surface")
    parser.add_argument("--radius", type=float, default=1.0,
                        help="Cylinder radius (default: 1.0)")
    parser.add_argument("--height", type=float, default=2.0,
                        help="Cylinder height (default: 2.0)")
    parser.add_argument("--n-targets", type=int, default=8,
                        help="Targets per direction (default: 8)")
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
    print("Closest Point on a NURBS Surface")
    print("=" * 60)

    print("\n1. Building cylinder patch and derivative patches...")
    surface = make_nurbs_cylinder_patch(radius=args.radius, height=args.height)
    derivs = surface_derivative_patches(surface)
    print(f"   Degrees: {surface.degrees}, control net: {surface.n_control_points_per_dir}")

    print("\n2. Projecting points from a larger cylinder...")
    m = args.n_targets
    angles, heights = np.meshgrid(np.linspace(0.05, np.pi / 2 - 0.05, m),
                                  np.linspace(0.1, 0.9, m) * args.height, indexing='ij')
    angles = angles.ravel()
    heights = heights.ravel()
    targets = np.vstack([2 * args.radius * np.cos(angles),
                         2 * args.radius * np.sin(angles),
                         heights])
    initial = np.vstack([angles / (np.pi / 2), heights / args.height])

    result = closest_point(surface, derivs, initial, targets, settings)
    radial = np.hypot(result.points[0], result.points[1])
    print(f"   Converged: {np.count_nonzero(result.converged)} / {targets.shape[1]}")
    print(f"   Max radius error: {np.abs(radial - args.radius).max():.3e}")

    print("\n3. Intersecting lines through the axis...")
    fan = np.linspace(0.2, np.pi / 2 - 0.2, 5)
    origins = np.vstack([np.zeros_like(fan), np.zeros_like(fan),
                         np.full_like(fan, 0.5 * args.height)])
    directions = np.vstack([np.cos(fan), np.sin(fan), np.full_like(fan, 0.2)])
    # Start away from the axis, where the Hessian is singular
    line_result = closest_point(surface, derivs,
                                np.vstack([fan / (np.pi / 2), np.full_like(fan, 0.5)]),
                                Line(origins + 0.5 * args.radius * directions, directions),
                                settings)
    for i in range(len(fan)):
        print(f"   line {i}: uv = ({line_result.params[0, i]:.4f}, {line_result.params[1, i]:.4f}), "
              f"distance = {line_result.residuals[i]:.2e}")

    save_path = "closest_point_surface.png" if args.save else None
    plot_surface(surface, targets, result, line_result, save_path=save_path)

    print("\n" + "=" * 60)

    if not args.save:
        plt.show()


if __name__ == "__main__":
    main()
