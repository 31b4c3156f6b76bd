"""
Quasi-Newton nonlinear minimization with the BFGS inverse-Hessian update.

The optimizer alternates between two phases, computing a search
direction and driving a line search along it. Each call to step()
performs one phase and returns, so callers can single-step the search,
enforce their own iteration or time limits, or interleave other work.

References:
    J. Nocedal, S. Wright, "Numerical Optimization", 2nd Ed, 2006.
"""
import math
from enum import Enum
from typing import Optional

import numpy as np
from numpy.typing import NDArray

from pyqn.core.constants import (
    DEFAULT_ABSOLUTE_ERROR_TOL,
    DEFAULT_FUNC_MIN_VALUE,
    DEFAULT_GTOL,
    DEFAULT_INITIAL_STEP,
    DEFAULT_RELATIVE_ERROR_TOL,
)
from pyqn.function import GradientLineFunction
from pyqn.linesearch import LineSearch

from .equations_bfgs import inverse_update


class Mode(Enum):
    """Phase the optimizer will run on the next call to step()."""

    COMPUTING_DIRECTION = 0
    LINE_SEARCHING = 1


class QuasiNewtonBFGS:
    """
    BFGS quasi-Newton optimizer driven one step at a time.

    Requires the function and its gradient, and a line search that meets
    the Wolfe or strong Wolfe condition; otherwise the inverse Hessian
    approximation can stop being symmetric positive definite. When that
    happens the approximation is reset to a scaled identity and the
    search continues. The method is scale invariant and converges
    super-linearly in most situations.

    Attributes:
        function: Objective being minimized.
        line_search: Line search used once per outer iteration.
        func_min_value: Theoretical minimum of the function, bounds the step.
        gtol: Slope coefficient of the Wolfe condition.
        relative_error_tol: Relative convergence tolerance.
        absolute_error_tol: Absolute convergence tolerance.
        scale_initial_inverse_hessian: Rescale the identity before the first
            update using yᵀs / yᵀy.

    Example:
        >>> optimizer = QuasiNewtonBFGS(function, LineSearchFletcher86(),
        ...                             func_min_value=0.0)
        >>> optimizer.initialize(np.array([0.0, 0.0]))
        >>> while not optimizer.step():
        ...     pass
        >>> optimizer.is_converged(), optimizer.get_parameters()
    """

    def __init__(
        self,
        function: GradientLineFunction,
        line_search: LineSearch,
        func_min_value: float = DEFAULT_FUNC_MIN_VALUE,
        gtol: float = DEFAULT_GTOL,
        relative_error_tol: float = DEFAULT_RELATIVE_ERROR_TOL,
        absolute_error_tol: float = DEFAULT_ABSOLUTE_ERROR_TOL,
        scale_initial_inverse_hessian: bool = False,
    ) -> None:
        """
        Initialize the optimizer.

        Args:
            function: Function being optimized.
            line_search: Line search that selects a step meeting the Wolfe condition.
            func_min_value: Minimum possible function value.
            gtol: Slope coefficient for the Wolfe condition. 0 < gtol <= 1
            relative_error_tol: Relative error termination condition. >= 0
            absolute_error_tol: Absolute error termination condition. >= 0
            scale_initial_inverse_hessian: Apply the yᵀs / yᵀy identity scaling
                heuristic before the first update.

        Raises:
            ValueError: If a tolerance is negative or gtol is out of range.
        """
        if relative_error_tol < 0:
            raise ValueError(
                f"relative_error_tol must be non-negative, got {relative_error_tol}"
            )
        if absolute_error_tol < 0:
            raise ValueError(
                f"absolute_error_tol must be non-negative, got {absolute_error_tol}"
            )
        if not 0 < gtol <= 1:
            raise ValueError(f"gtol must be in (0, 1], got {gtol}")

        self.function = function
        self.line_search = line_search
        self.func_min_value = func_min_value
        self.gtol = gtol
        self.relative_error_tol = relative_error_tol
        self.absolute_error_tol = absolute_error_tol
        self.scale_initial_inverse_hessian = scale_initial_inverse_hessian

        line_search.set_function(function)

        n = function.dimension()
        self._n = n

        # inverse Hessian approximation
        self._B = np.zeros((n, n))
        self._B_initial: Optional[NDArray[np.floating]] = None
        self._search_vector = np.zeros(n)
        self._g = np.zeros(n)
        # change in x and in the gradient between iterations
        self._s = np.zeros(n)
        self._y = np.zeros(n)
        self._x = np.zeros(n)
        self._fx = 0.0
        self._deriv_at_zero = 0.0

        self._temp0 = np.zeros(n)
        self._temp1 = np.zeros(n)

        self._mode = Mode.COMPUTING_DIRECTION
        self._message: Optional[str] = None
        self._converged = False
        self._terminated = False
        self._iterations = 0

    def set_initial_inverse_hessian(self, matrix: NDArray[np.floating]) -> None:
        """
        Manually specify the initial inverse Hessian approximation.

        Used by every subsequent initialize() instead of the identity.

        Args:
            matrix: (N, N) symmetric positive definite matrix.

        Raises:
            ValueError: If the shape does not match the problem dimension.
        """
        matrix = np.asarray(matrix, dtype=np.float64)
        if matrix.shape != (self._n, self._n):
            raise ValueError(
                f"Expected a ({self._n}, {self._n}) matrix, got {matrix.shape}"
            )
        self._B_initial = matrix.copy()
        self._B[:] = matrix

    def initialize(self, initial: NDArray[np.floating]) -> None:
        """
        Reset all state and start a new search from the given point.

        Args:
            initial: (N,) starting parameters.

        Raises:
            ValueError: If initial does not have length N.
        """
        initial = np.asarray(initial, dtype=np.float64)
        if initial.shape != (self._n,):
            raise ValueError(
                f"Expected {self._n} initial parameters, got shape {initial.shape}"
            )

        self._mode = Mode.COMPUTING_DIRECTION
        self._converged = False
        self._terminated = False
        self._message = None
        self._iterations = 0

        self._s.fill(0.0)
        self._y.fill(0.0)
        self._g.fill(0.0)
        if self._B_initial is None:
            self._B[:] = np.eye(self._n)
        else:
            self._B[:] = self._B_initial

        self._x[:] = initial

        self.function.set_point(self._x)
        self._fx = self.function.compute_value()

    def step(self) -> bool:
        """
        Perform one phase of the optimization.

        Returns:
            True if the optimization has stopped.
        """
        if self._terminated:
            return True

        if self._mode is Mode.COMPUTING_DIRECTION:
            return self._compute_search_direction()
        return self._perform_line_search()

    def _compute_search_direction(self) -> bool:
        """Compute the next search direction using BFGS and start the line search."""
        if self._fx <= self.func_min_value:
            return self._terminate_search(True, None)
        if not math.isfinite(self._fx):
            return self._terminate_search(
                False, f"Function value is not finite at the current parameters: {self._fx}"
            )

        # gradient at the current point, then the change in gradient
        self.function.set_point(self._x)
        self.function.compute_gradient(self._temp0)
        if not np.all(np.isfinite(self._temp0)):
            return self._terminate_search(
                False, "Gradient is not finite at the current parameters"
            )
        np.subtract(self._temp0, self._g, out=self._y)
        self._g[:] = self._temp0

        if self._iterations != 0:
            if self._iterations == 1 and self._use_scaled_identity():
                self._scale_identity()
            inverse_update(self._B, self._s, self._y, self._temp0, self._temp1)

        self._compute_direction()

        if not self._setup_line_search(
            self._fx, self._x, self._g, self._search_vector, DEFAULT_INITIAL_STEP
        ):
            # not a descent direction, so B is no longer SPD
            self._reset_matrix_b()
            self._compute_direction()
            if not self._setup_line_search(
                self._fx, self._x, self._g, self._search_vector, DEFAULT_INITIAL_STEP
            ):
                if not np.any(self._g):
                    return self._terminate_search(True, None)
                return self._terminate_search(
                    False, "Unable to find a descent direction after resetting the inverse Hessian"
                )

        self._mode = Mode.LINE_SEARCHING
        self._iterations += 1
        return False

    def _compute_direction(self) -> None:
        np.dot(self._B, self._g, out=self._search_vector)
        np.negative(self._search_vector, out=self._search_vector)

    def _use_scaled_identity(self) -> bool:
        return self.scale_initial_inverse_hessian and self._B_initial is None

    def _scale_identity(self) -> None:
        """Replace B with (yᵀs / yᵀy) I ahead of the first update."""
        yy = float(np.dot(self._y, self._y))
        ys = float(np.dot(self._y, self._s))
        if yy > 0 and ys > 0:
            self._B[:] = np.eye(self._n) * (ys / yy)

    def _reset_matrix_b(self) -> None:
        """
        Set B to a diagonal matrix holding the largest diagonal magnitude.

        The result is SPD, at the cost of discarding the curvature
        information gathered so far. Falls back to the identity when the
        diagonal is all zero or not finite.
        """
        max_diag = float(np.max(np.abs(np.diag(self._B))))
        if max_diag == 0.0 or not math.isfinite(max_diag):
            max_diag = 1.0

        self._B.fill(0.0)
        np.fill_diagonal(self._B, max_diag)

    def _setup_line_search(
        self,
        func_at_start: float,
        start_point: NDArray[np.floating],
        start_deriv: NDArray[np.floating],
        direction: NDArray[np.floating],
        initial_step: float,
    ) -> bool:
        """
        Configure the line search along direction.

        Returns:
            False if direction is not a descent direction or the step bound
            is unusable.
        """
        # derivative of the line function is the gradient dotted with the direction
        self._deriv_at_zero = float(np.dot(start_deriv, direction))

        if not (self._deriv_at_zero < 0 and math.isfinite(self._deriv_at_zero)):
            return False

        # the Wolfe condition bounds the largest useful step
        max_step = (self.func_min_value - func_at_start) / (self.gtol * self._deriv_at_zero)
        if not max_step > 0:
            return False

        self.function.set_line(start_point, direction)
        if initial_step > max_step:
            initial_step = max_step
        self.function.set_step(initial_step)
        func_at_init = self.function.compute_value()
        self.line_search.init(
            func_at_start, self._deriv_at_zero, func_at_init, initial_step, 0.0, max_step
        )
        return True

    def _perform_line_search(self) -> bool:
        """
        Perform one line search iteration along the current direction.

        Returns:
            True if the optimization has terminated.
        """
        if not self.line_search.iterate():
            return False

        if not self.line_search.is_converged():
            return self._terminate_search(False, self.line_search.get_failure_message())

        step = self.line_search.get_step()

        # new x and the change in x
        np.multiply(self._search_vector, step, out=self._s)
        self._x += self._s

        fstp = self.line_search.get_function_value()

        # actual and predicted decrease both within tolerance
        actual = abs(fstp - self._fx)
        predicted = step * abs(self._deriv_at_zero)
        if actual <= self.absolute_error_tol and predicted <= self.absolute_error_tol:
            self._fx = fstp
            return self._terminate_search(True, None)

        relative = self.relative_error_tol * abs(self._fx)
        if actual <= relative and predicted <= relative:
            self._fx = fstp
            return self._terminate_search(True, None)

        self._fx = fstp
        self._mode = Mode.COMPUTING_DIRECTION
        return False

    def _terminate_search(self, converged: bool, message: Optional[str]) -> bool:
        self._converged = converged
        self._message = message
        self._terminated = True
        return True

    def get_parameters(self) -> NDArray[np.floating]:
        """Current parameters (live reference, not a copy)."""
        return self._x

    def is_converged(self) -> bool:
        """True if the optimization converged to a solution."""
        return self._converged

    def is_terminated(self) -> bool:
        """True once step() has returned True."""
        return self._terminated

    def get_failure_message(self) -> Optional[str]:
        """Reason the optimization failed, or None."""
        return self._message

    def get_function_value(self) -> float:
        """Function value at the current parameters."""
        return self._fx

    def get_gradient(self) -> NDArray[np.floating]:
        """Gradient from the most recent direction computation (live reference)."""
        return self._g

    def get_iterations(self) -> int:
        """Number of outer iterations started."""
        return self._iterations

    def get_mode(self) -> Mode:
        """Phase that the next call to step() will run."""
        return self._mode

    def get_inverse_hessian(self) -> NDArray[np.floating]:
        """Current inverse Hessian approximation (live reference)."""
        return self._B

    def get_search_direction(self) -> NDArray[np.floating]:
        """Most recent search direction (live reference)."""
        return self._search_vector

    def get_name(self) -> str:
        """Get human-readable name."""
        return (
            f"QuasiNewtonBFGS(N={self._n}, gtol={self.gtol}, "
            f"line_search={self.line_search.get_name()})"
        )
