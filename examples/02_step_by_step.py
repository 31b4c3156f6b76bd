#!/usr/bin/env python3
"""
Example 2: Driving the Optimizer One Step at a Time

The optimizer never blocks. Each call to step() either computes a new
search direction or runs one line search iteration, so the caller can
watch the two phases alternate, stop early, or interleave other work.

Problem:
    A smooth least-squares fit of y = a * exp(-b * t) to noiseless data.
    The residual sum of squares has minimum 0 at (a, b) = (2.5, 1.3), so
    func_min_value = 0 bounds every line search.

Usage:
    python examples/02_step_by_step.py
"""
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import numpy as np
from pyqn.function import DifferentiableFunction
from pyqn.linesearch import LineSearchFletcher86
from pyqn.optimizer import Mode, QuasiNewtonBFGS


T = np.linspace(0.0, 4.0, 25)
A_TRUE, B_TRUE = 2.5, 1.3
Y = A_TRUE * np.exp(-B_TRUE * T)


def residual_sum(p):
    r = p[0] * np.exp(-p[1] * T) - Y
    return float(r @ r)


def residual_gradient(p):
    e = np.exp(-p[1] * T)
    r = p[0] * e - Y
    return np.array([2.0 * r @ e, -2.0 * p[0] * (r @ (T * e))])


def main():
    print("=" * 60)
    print("  Example 2: STEP-BY-STEP DRIVING")
    print("  Exponential decay fit, one phase per step() call")
    print("=" * 60)

    function = DifferentiableFunction(residual_sum, n=2, gradient_fn=residual_gradient)
    optimizer = QuasiNewtonBFGS(
        function,
        LineSearchFletcher86(ftol=1e-4, gtol=0.9),
        func_min_value=0.0,
        relative_error_tol=0.0,
        absolute_error_tol=1e-14,
    )
    optimizer.initialize(np.array([1.0, 0.5]))

    print(f"\n{'Call':>5} {'Phase':<20} {'Iter':>5} {'f':>14}  parameters")
    print(f"{'-'*60}")
    n_calls = 0
    while True:
        phase = optimizer.get_mode()
        done = optimizer.step()
        n_calls += 1
        if phase is Mode.LINE_SEARCHING and optimizer.get_mode() is Mode.COMPUTING_DIRECTION:
            p = optimizer.get_parameters()
            print(f"{n_calls:>5} {'line search done':<20} {optimizer.get_iterations():>5} "
                  f"{optimizer.get_function_value():>14.6e}  [{p[0]:.6f}, {p[1]:.6f}]")
        if done or n_calls >= 2000:
            break

    p = optimizer.get_parameters()
    print(f"{'-'*60}")
    print(f"Calls to step():  {n_calls}")
    print(f"Iterations:       {optimizer.get_iterations()}")
    print(f"Fitted (a, b):    ({p[0]:.8f}, {p[1]:.8f})")
    print(f"True (a, b):      ({A_TRUE}, {B_TRUE})")

    if optimizer.is_converged() and np.allclose(p, [A_TRUE, B_TRUE], atol=1e-5):
        print("\n[PASS] Recovered the generating parameters")
    else:
        print(f"\n[FAIL] {optimizer.get_failure_message()}")

    print("=" * 60)


if __name__ == "__main__":
    main()
