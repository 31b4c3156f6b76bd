"""
Abstract base class for one-dimensional line searches.

The quasi-Newton optimizer does not pick a line search; it consumes any
implementation of this contract. A line search is driven one iteration
at a time, like the optimizer itself.
"""
from abc import ABC, abstractmethod
from typing import Optional

from pyqn.function import GradientLineFunction


class LineSearch(ABC):
    """
    Abstract base for line searches (Strategy Pattern).

    The optimizer configures the function in line mode, evaluates the
    initial trial step, then calls init() followed by iterate() until it
    returns True.

    Example:
        >>> search = LineSearchFletcher86(ftol=1e-4, gtol=0.9)
        >>> search.set_function(function)
        >>> search.init(f0, g0, f_init, 1.0, 0.0, step_max)
        >>> while not search.iterate():
        ...     pass
        >>> step = search.get_step() if search.is_converged() else None
    """

    @abstractmethod
    def set_function(self, function: GradientLineFunction) -> None:
        """
        Set the function being searched.

        Args:
            function: Evaluated through set_step/compute_value/compute_derivative.
        """
        pass

    @abstractmethod
    def init(
        self,
        func_zero: float,
        deriv_zero: float,
        func_init: float,
        init_step: float,
        step_min: float,
        step_max: float,
    ) -> None:
        """
        Start a new search.

        Args:
            func_zero: Function value at step 0.
            deriv_zero: Derivative at step 0 (negative for a descent direction).
            func_init: Function value at init_step.
            init_step: First trial step.
            step_min: Smallest allowed step.
            step_max: Largest allowed step.
        """
        pass

    @abstractmethod
    def iterate(self) -> bool:
        """
        Perform one iteration.

        Returns:
            True once the search has terminated (converged or failed).
        """
        pass

    @abstractmethod
    def is_converged(self) -> bool:
        """True if the search found an acceptable step."""
        pass

    @abstractmethod
    def get_step(self) -> float:
        """Accepted step length."""
        pass

    @abstractmethod
    def get_function_value(self) -> float:
        """Function value at the accepted step."""
        pass

    @abstractmethod
    def get_failure_message(self) -> Optional[str]:
        """Reason the search failed, or None."""
        pass

    @abstractmethod
    def get_name(self) -> str:
        """Get human-readable name of this line search."""
        pass
