#!/usr/bin/env python3
"""
Example 1: Rosenbrock Valley

Minimize the 2-D Rosenbrock function from the classic starting point
with an analytic gradient and with finite-difference gradients, then
compare against the known minimum.

Math:
    f(x, y) = (1 - x)² + 100 (y - x²)²

    The minimum f = 0 sits at (1, 1) at the bottom of a long curved
    valley, which makes steepest descent crawl. BFGS builds up curvature
    information and follows the valley in a few dozen iterations.

Usage:
    python examples/01_rosenbrock.py
"""
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import numpy as np
from pyqn.builder import OptimizerBuilder
from pyqn.observer import PrintObserver, ValueObserver
from pyqn.optimizer import Minimizer


def rosenbrock(x):
    return (1.0 - x[0]) ** 2 + 100.0 * (x[1] - x[0] ** 2) ** 2


def rosenbrock_gradient(x):
    return np.array([
        -2.0 * (1.0 - x[0]) - 400.0 * x[0] * (x[1] - x[0] ** 2),
        200.0 * (x[1] - x[0] ** 2),
    ])


def main():
    print("=" * 60)
    print("  Example 1: ROSENBROCK VALLEY")
    print("  BFGS with a strong Wolfe line search")
    print("=" * 60)

    x0 = np.array([-1.2, 1.0])
    x_star = np.array([1.0, 1.0])
    print(f"\nStarting point:  {x0}")
    print(f"Initial value:   {rosenbrock(x0):.6f}")

    runs = [
        ("Analytic", OptimizerBuilder()
            .function(rosenbrock, n=2)
            .gradient(rosenbrock_gradient)
            .func_min_value(0.0)
            .tolerances(relative=1e-12, absolute=1e-12)
            .build()),
        ("Finite diff", OptimizerBuilder()
            .function(rosenbrock, n=2)
            .backend("numerical", h=1e-6)
            .func_min_value(0.0)
            .tolerances(relative=0.0, absolute=1e-9)
            .build()),
    ]

    results = []
    for name, optimizer in runs:
        print(f"\n--- {name} gradient ---")
        values = ValueObserver()
        minimizer = Minimizer(max_iterations=500, observers=[values, PrintObserver(interval=5)])
        result = minimizer.minimize(optimizer, x0)
        evals = (optimizer.function.n_value_evals, optimizer.function.n_gradient_evals)
        results.append((name, result, evals))

    # --- Comparison table ---
    print(f"\n{'='*60}")
    print(f"{'Gradient':<12} {'Iter':>5} {'f evals':>8} {'g evals':>8} {'Final f':>12} {'Conv':>6}")
    print(f"{'-'*60}")
    for name, result, (n_f, n_g) in results:
        print(f"{name:<12} {result.n_iterations:>5} {n_f:>8} {n_g:>8} "
              f"{result.final_value:>12.3e} {'Yes' if result.converged else 'No':>6}")
    print(f"{'='*60}")

    for name, result, _ in results:
        error = np.linalg.norm(result.parameters - x_star)
        if result.converged and error < 1e-3:
            print(f"[PASS] {name}: |x - x*| = {error:.2e}")
        else:
            print(f"[FAIL] {name}: {result.message}, |x - x*| = {error:.2e}")

    print("=" * 60)


if __name__ == "__main__":
    main()
