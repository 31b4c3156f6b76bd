"""
Driver loop that runs a step-wise optimizer to completion.

The optimizer itself never blocks; this module provides the caller-side
loop with iteration and wall-clock limits, observer notification and a
MinimizationResult summary.
"""
import time
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np
from numpy.typing import NDArray

from pyqn.observer import CompositeObserver, Observer

from .quasi_newton_bfgs import Mode, QuasiNewtonBFGS


@dataclass
class MinimizationResult:
    """
    Result of a minimization run.

    Attributes:
        converged: Whether the optimizer converged within tolerances.
        n_iterations: Number of outer iterations started.
        n_steps: Number of calls to step().
        initial_value: Function value at the starting point.
        final_value: Function value at the final parameters.
        parameters: Copy of the final parameters.
        value_history: Function value after each completed line search,
            starting with the initial value.
        message: Human-readable description of the outcome.
    """
    converged: bool
    n_iterations: int
    n_steps: int
    initial_value: float
    final_value: float
    parameters: NDArray[np.floating] = field(default_factory=lambda: np.zeros(0))
    value_history: List[float] = field(default_factory=list)
    message: str = ""


class Minimizer:
    """
    Runs a QuasiNewtonBFGS optimizer until it terminates or a limit is hit.

    Attributes:
        max_iterations: Maximum number of outer iterations.
        timeout: Wall-clock limit in seconds, or None for no limit.
        observers: Observers notified after each completed line search.

    Example:
        >>> minimizer = Minimizer(max_iterations=200, timeout=5.0)
        >>> result = minimizer.minimize(optimizer, np.zeros(2))
        >>> print(result.converged, result.final_value)
    """

    def __init__(
        self,
        max_iterations: int = 1000,
        timeout: Optional[float] = None,
        observers: Optional[List[Observer]] = None,
    ) -> None:
        """
        Initialize minimizer.

        Args:
            max_iterations: Maximum number of outer iterations.
            timeout: Wall-clock limit in seconds.
            observers: Observers notified with (optimizer, iteration, value).

        Raises:
            ValueError: If max_iterations or timeout is non-positive.
        """
        if max_iterations <= 0:
            raise ValueError(f"max_iterations must be positive, got {max_iterations}")
        if timeout is not None and timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout}")

        self.max_iterations = max_iterations
        self.timeout = timeout
        self.observers = list(observers) if observers else []

    def minimize(
        self,
        optimizer: QuasiNewtonBFGS,
        initial: NDArray[np.floating],
    ) -> MinimizationResult:
        """
        Minimize starting from initial.

        Process:
        1. Initialize the optimizer at the starting point
        2. Loop: step() -> record completed line searches -> check limits
        3. Finalize observers
        4. Return MinimizationResult

        Args:
            optimizer: Optimizer to drive. Re-initialized by this call.
            initial: (N,) starting parameters.

        Returns:
            MinimizationResult with convergence info and value history.
        """
        optimizer.initialize(initial)
        initial_value = optimizer.get_function_value()
        value_history = [initial_value]
        observer = CompositeObserver(self.observers)

        start = time.perf_counter()
        n_steps = 0
        timed_out = False
        terminated = False

        while True:
            mode = optimizer.get_mode()
            terminated = optimizer.step()
            n_steps += 1

            # a line search finished and moved the parameters
            if mode is Mode.LINE_SEARCHING and (
                optimizer.get_mode() is Mode.COMPUTING_DIRECTION
                or optimizer.is_converged()
            ):
                value = optimizer.get_function_value()
                value_history.append(value)
                observer.observe(optimizer, optimizer.get_iterations(), value)

            if terminated:
                break
            if (
                optimizer.get_mode() is Mode.COMPUTING_DIRECTION
                and optimizer.get_iterations() >= self.max_iterations
            ):
                break
            if self.timeout is not None and time.perf_counter() - start > self.timeout:
                timed_out = True
                break

        observer.finalize()

        n_iterations = optimizer.get_iterations()
        converged = terminated and optimizer.is_converged()
        if converged:
            message = f"Converged after {n_iterations} iterations"
        elif terminated:
            message = optimizer.get_failure_message() or "Optimization failed"
        elif timed_out:
            message = f"Timed out after {self.timeout} s ({n_iterations} iterations)"
        else:
            message = f"Did not converge after {n_iterations} iterations"

        return MinimizationResult(
            converged=converged,
            n_iterations=n_iterations,
            n_steps=n_steps,
            initial_value=initial_value,
            final_value=optimizer.get_function_value(),
            parameters=optimizer.get_parameters().copy(),
            value_history=value_history,
            message=message,
        )

    def get_name(self) -> str:
        """Get human-readable name of this minimizer."""
        return f"Minimizer(max_iterations={self.max_iterations}, timeout={self.timeout})"
