"""
Objective functions that can be evaluated at a point or along a line.

This module provides the GradientLineFunction ABC consumed by the
optimizer and the line search, and DifferentiableFunction, which builds
one from plain Python callables.
"""
from abc import ABC, abstractmethod
from typing import Callable, Optional

import numpy as np
from numpy.typing import NDArray

from .autodiff_backend import GradientBackend, NumericalBackend


class GradientLineFunction(ABC):
    """
    Abstract base for an objective with gradient and line parameterization.

    The function is in one of two input modes at any time:
    - point mode, entered with set_point(x)
    - line mode, entered with set_line(start, direction), where the input
      is the scalar step and the point is start + step * direction

    compute_value() and compute_gradient() always evaluate at the current
    point, whichever mode set it. compute_derivative() is the derivative
    of the 1-D line function at the current step.
    """

    @abstractmethod
    def dimension(self) -> int:
        """Number of parameters N."""
        pass

    @abstractmethod
    def set_point(self, x: NDArray[np.floating]) -> None:
        """Switch to point mode and evaluate subsequent calls at x."""
        pass

    @abstractmethod
    def set_line(
        self,
        start: NDArray[np.floating],
        direction: NDArray[np.floating],
    ) -> None:
        """Switch to line mode along start + step * direction."""
        pass

    @abstractmethod
    def set_step(self, step: float) -> None:
        """Move to start + step * direction (line mode only)."""
        pass

    @abstractmethod
    def compute_value(self) -> float:
        """Objective value at the current point."""
        pass

    @abstractmethod
    def compute_gradient(self, out: NDArray[np.floating]) -> None:
        """Write the gradient at the current point into out."""
        pass

    @abstractmethod
    def compute_derivative(self) -> float:
        """Derivative along the line direction at the current step."""
        pass


class DifferentiableFunction(GradientLineFunction):
    """
    GradientLineFunction built from a value callable and optional gradient.

    If no analytic gradient is supplied, gradients are computed by a
    GradientBackend (finite differences by default).

    Attributes:
        n_value_evals: Number of objective evaluations so far.
        n_gradient_evals: Number of gradient evaluations so far.

    Example:
        >>> def f(x):
        ...     return (x[0] - 3.0) ** 2 + (x[1] + 1.0) ** 2
        >>> def g(x):
        ...     return np.array([2 * (x[0] - 3.0), 2 * (x[1] + 1.0)])
        >>> function = DifferentiableFunction(f, n=2, gradient_fn=g)
    """

    def __init__(
        self,
        value_fn: Callable[[NDArray[np.floating]], float],
        n: int,
        gradient_fn: Optional[Callable[[NDArray[np.floating]], NDArray]] = None,
        backend: Optional[GradientBackend] = None,
    ) -> None:
        """
        Initialize the function.

        Args:
            value_fn: Objective f(x) -> float.
            n: Number of parameters.
            gradient_fn: Optional analytic gradient g(x) -> (N,) array.
            backend: Gradient backend used when gradient_fn is None.

        Raises:
            ValueError: If n is not positive, or both gradient_fn and
                backend are given.
        """
        if n <= 0:
            raise ValueError(f"n must be positive, got {n}")
        if gradient_fn is not None and backend is not None:
            raise ValueError("Specify either gradient_fn or backend, not both")

        if gradient_fn is None and backend is None:
            backend = NumericalBackend()

        self.value_fn = value_fn
        self.gradient_fn = gradient_fn
        self.backend = backend
        self._n = n

        self._point = np.zeros(n)
        self._start = np.zeros(n)
        self._direction = np.zeros(n)
        self._line_mode = False

        self.n_value_evals = 0
        self.n_gradient_evals = 0

    def dimension(self) -> int:
        return self._n

    def set_point(self, x: NDArray[np.floating]) -> None:
        self._line_mode = False
        self._point[:] = x

    def set_line(
        self,
        start: NDArray[np.floating],
        direction: NDArray[np.floating],
    ) -> None:
        self._line_mode = True
        self._start[:] = start
        self._direction[:] = direction
        self._point[:] = start

    def set_step(self, step: float) -> None:
        if not self._line_mode:
            raise RuntimeError("set_step() requires set_line() first")
        np.multiply(self._direction, step, out=self._point)
        self._point += self._start

    def compute_value(self) -> float:
        self.n_value_evals += 1
        return float(self.value_fn(self._point.copy()))

    def compute_gradient(self, out: NDArray[np.floating]) -> None:
        self.n_gradient_evals += 1
        point = self._point.copy()
        if self.gradient_fn is not None:
            out[:] = self.gradient_fn(point)
        else:
            out[:] = self.backend.compute_gradient(self.value_fn, point)

    def compute_derivative(self) -> float:
        if not self._line_mode:
            raise RuntimeError("compute_derivative() requires set_line() first")
        gradient = np.empty(self._n)
        self.compute_gradient(gradient)
        return float(np.dot(gradient, self._direction))

    def get_point(self) -> NDArray[np.floating]:
        """Copy of the point the function is currently evaluated at."""
        return self._point.copy()
