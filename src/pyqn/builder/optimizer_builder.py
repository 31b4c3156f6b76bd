"""
OptimizerBuilder for constructing quasi-Newton optimizers.

Provides the Builder pattern for wiring an objective, a gradient source,
a line search and the optimizer settings into a QuasiNewtonBFGS.
"""
from dataclasses import replace
from typing import Any, Callable, Optional, Union

import numpy as np
from numpy.typing import NDArray

from pyqn.core import LineSearchParams, OptimizerParams
from pyqn.function import (
    BackendFactory,
    DifferentiableFunction,
    GradientBackend,
    GradientLineFunction,
)
from pyqn.linesearch import LineSearch, LineSearchFletcher86
from pyqn.optimizer import QuasiNewtonBFGS


def create_line_search(params: LineSearchParams) -> LineSearch:
    """
    Create a line search from parameters.

    Args:
        params: Line search settings.

    Returns:
        Configured LineSearch instance.

    Raises:
        ValueError: If the algorithm name is unknown.
    """
    algorithm = params.algorithm.lower()
    if algorithm in ["fletcher86", "fletcher", "strong_wolfe"]:
        return LineSearchFletcher86(
            ftol=params.ftol,
            gtol=params.gtol,
            t1=params.t1,
            t2=params.t2,
            t3=params.t3,
            step_tol=params.step_tol,
            max_iterations=params.max_iterations,
        )
    raise ValueError(
        f"Unknown line search: {params.algorithm}. Choose from: fletcher86"
    )


class OptimizerBuilder:
    """
    Builder for constructing QuasiNewtonBFGS optimizers.

    Fluent interface covering:
    - Objective and gradient (analytic or via a backend)
    - Line search (instance or Fletcher parameters)
    - Tolerances, Wolfe slope and theoretical minimum
    - Initial inverse Hessian approximation

    Example:
        >>> optimizer = (OptimizerBuilder()
        ...     .function(f, n=2)
        ...     .gradient(g)
        ...     .func_min_value(0.0)
        ...     .tolerances(relative=1e-10, absolute=1e-12)
        ...     .build())
    """

    def __init__(self) -> None:
        """Initialize builder with default values."""
        self._value_fn: Optional[Callable[[NDArray], float]] = None
        self._n: Optional[int] = None
        self._gradient_fn: Optional[Callable[[NDArray], NDArray]] = None
        self._backend: Optional[GradientBackend] = None
        self._line_function: Optional[GradientLineFunction] = None
        self._line_search: Optional[LineSearch] = None
        self._line_search_params = LineSearchParams()
        self._params = OptimizerParams()
        self._initial_inverse_hessian: Optional[NDArray] = None

    def function(
        self, value_fn: Callable[[NDArray], float], n: int
    ) -> "OptimizerBuilder":
        """
        Set the objective.

        Args:
            value_fn: Objective f(x) -> float.
            n: Number of parameters.

        Returns:
            Self for chaining.
        """
        self._value_fn = value_fn
        self._n = n
        return self

    def gradient(self, gradient_fn: Callable[[NDArray], NDArray]) -> "OptimizerBuilder":
        """
        Set an analytic gradient g(x) -> (N,) array.

        Returns:
            Self for chaining.
        """
        self._gradient_fn = gradient_fn
        return self

    def backend(
        self, backend: Union[str, GradientBackend], **kwargs: Any
    ) -> "OptimizerBuilder":
        """
        Compute gradients with a backend instead of an analytic gradient.

        Args:
            backend: Backend instance or name understood by BackendFactory.
            **kwargs: Backend options when a name is given.

        Returns:
            Self for chaining.
        """
        if isinstance(backend, str):
            backend = BackendFactory.create(backend, **kwargs)
        self._backend = backend
        return self

    def line_function(self, function: GradientLineFunction) -> "OptimizerBuilder":
        """
        Use a ready-made GradientLineFunction, overriding function/gradient/backend.

        Returns:
            Self for chaining.
        """
        self._line_function = function
        return self

    def line_search(self, line_search: LineSearch) -> "OptimizerBuilder":
        """Use a custom line search instance."""
        self._line_search = line_search
        return self

    def line_search_params(self, params: LineSearchParams) -> "OptimizerBuilder":
        """Configure the default Fletcher line search."""
        self._line_search_params = replace(params)
        return self

    def params(self, params: OptimizerParams) -> "OptimizerBuilder":
        """Replace all optimizer settings at once."""
        self._params = replace(params)
        return self

    def tolerances(
        self,
        relative: Optional[float] = None,
        absolute: Optional[float] = None,
    ) -> "OptimizerBuilder":
        """
        Set convergence tolerances.

        Args:
            relative: Relative error tolerance.
            absolute: Absolute error tolerance.

        Returns:
            Self for chaining.
        """
        if relative is not None:
            self._params.relative_error_tol = relative
        if absolute is not None:
            self._params.absolute_error_tol = absolute
        return self

    def func_min_value(self, value: float) -> "OptimizerBuilder":
        """Set the theoretical minimum of the objective."""
        self._params.func_min_value = value
        return self

    def gtol(self, gtol: float) -> "OptimizerBuilder":
        """Set the Wolfe slope coefficient for optimizer and line search."""
        self._params.gtol = gtol
        self._line_search_params.gtol = gtol
        return self

    def scale_initial_inverse_hessian(self, enabled: bool = True) -> "OptimizerBuilder":
        """Enable the yᵀs / yᵀy scaling of the initial identity."""
        self._params.scale_initial_inverse_hessian = enabled
        return self

    def initial_inverse_hessian(self, matrix: NDArray) -> "OptimizerBuilder":
        """Set a custom initial inverse Hessian approximation."""
        self._initial_inverse_hessian = np.asarray(matrix, dtype=np.float64)
        return self

    def build(self) -> QuasiNewtonBFGS:
        """
        Build the optimizer.

        Returns:
            Configured QuasiNewtonBFGS, ready for initialize().

        Raises:
            ValueError: If no objective was specified.
        """
        if self._line_function is not None:
            function = self._line_function
        elif self._value_fn is not None:
            function = DifferentiableFunction(
                self._value_fn,
                n=self._n,
                gradient_fn=self._gradient_fn,
                backend=None if self._gradient_fn is not None else self._backend,
            )
        else:
            raise ValueError("No objective specified. Call function() first.")

        line_search = self._line_search
        if line_search is None:
            line_search = create_line_search(self._line_search_params)

        optimizer = QuasiNewtonBFGS(
            function,
            line_search,
            func_min_value=self._params.func_min_value,
            gtol=self._params.gtol,
            relative_error_tol=self._params.relative_error_tol,
            absolute_error_tol=self._params.absolute_error_tol,
            scale_initial_inverse_hessian=self._params.scale_initial_inverse_hessian,
        )
        if self._initial_inverse_hessian is not None:
            optimizer.set_initial_inverse_hessian(self._initial_inverse_hessian)
        return optimizer
