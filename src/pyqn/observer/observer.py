"""
Observer module for monitoring optimization progress.

Provides the Observer pattern for console progress, value history and
parameter trajectories during minimization.
"""
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, List, Optional

import numpy as np

if TYPE_CHECKING:
    from pyqn.optimizer import QuasiNewtonBFGS


class Observer(ABC):
    """
    Abstract base for optimization observers (Observer Pattern).

    Observers are notified after each completed outer iteration to record
    values, store trajectories or report progress.

    Attributes:
        interval: How often to call observe() (in iterations).

    Example:
        >>> observer = ValueObserver(interval=10)
        >>> if iteration % observer.interval == 0:
        ...     observer.observe(optimizer, iteration, value)
    """

    def __init__(self, interval: int = 1) -> None:
        """
        Initialize observer.

        Args:
            interval: Observation interval in iterations. Default=1 (every iteration).
        """
        if interval < 1:
            raise ValueError(f"Interval must be >= 1, got {interval}")
        self.interval = interval

    @abstractmethod
    def observe(
        self,
        optimizer: "QuasiNewtonBFGS",
        iteration: int,
        function_value: float,
    ) -> None:
        """
        Record observation.

        Args:
            optimizer: Optimizer after the iteration completed.
            iteration: Outer iteration number.
            function_value: Function value at the new parameters.
        """
        pass

    def finalize(self) -> None:
        """Called at end of minimization for cleanup."""
        pass

    @abstractmethod
    def get_name(self) -> str:
        """Get observer name."""
        pass


class CompositeObserver(Observer):
    """
    Composite observer that wraps multiple observers.

    Delegates to child observers based on their individual intervals.
    """

    def __init__(self, observers: List[Observer]) -> None:
        """
        Initialize with list of observers.

        Args:
            observers: List of Observer instances.
        """
        super().__init__(interval=1)  # Check every iteration
        self.observers = observers

    def observe(
        self,
        optimizer: "QuasiNewtonBFGS",
        iteration: int,
        function_value: float,
    ) -> None:
        """Delegate to child observers based on their intervals."""
        for obs in self.observers:
            if iteration % obs.interval == 0:
                obs.observe(optimizer, iteration, function_value)

    def finalize(self) -> None:
        """Finalize all child observers."""
        for obs in self.observers:
            obs.finalize()

    def get_name(self) -> str:
        """Return composite name."""
        names = [o.get_name() for o in self.observers]
        return f"Composite[{', '.join(names)}]"


class ValueObserver(Observer):
    """
    Records the function value after each observed iteration.
    """

    def __init__(self, interval: int = 1) -> None:
        """Initialize value observer."""
        super().__init__(interval)
        self.iterations: List[int] = []
        self.values: List[float] = []

    def observe(
        self,
        optimizer: "QuasiNewtonBFGS",
        iteration: int,
        function_value: float,
    ) -> None:
        """Record iteration and value."""
        self.iterations.append(iteration)
        self.values.append(function_value)

    def get_name(self) -> str:
        """Return observer name."""
        return f"ValueObserver(interval={self.interval})"

    def get_total_decrease(self) -> float:
        """
        Decrease between the first and last recorded values.

        Returns:
            values[0] - values[-1], or 0 with fewer than two records.
        """
        if len(self.values) < 2:
            return 0.0
        return self.values[0] - self.values[-1]


class TrajectoryObserver(Observer):
    """
    Records parameter vectors over the course of the minimization.
    """

    def __init__(self, interval: int = 1) -> None:
        """Initialize trajectory observer."""
        super().__init__(interval)
        self.frames: List[dict] = []

    def observe(
        self,
        optimizer: "QuasiNewtonBFGS",
        iteration: int,
        function_value: float,
    ) -> None:
        """Record frame."""
        self.frames.append({
            "iteration": iteration,
            "parameters": optimizer.get_parameters().copy(),
            "function_value": function_value,
        })

    def get_name(self) -> str:
        """Return observer name."""
        return f"TrajectoryObserver(interval={self.interval})"


class PrintObserver(Observer):
    """
    Prints minimization progress to console.
    """

    def __init__(self, interval: int = 10) -> None:
        """Initialize print observer."""
        super().__init__(interval)
        self._last_value: Optional[float] = None

    def observe(
        self,
        optimizer: "QuasiNewtonBFGS",
        iteration: int,
        function_value: float,
    ) -> None:
        """Print iteration info."""
        change = (
            function_value - self._last_value if self._last_value is not None else 0.0
        )
        self._last_value = function_value
        x_norm = float(np.linalg.norm(optimizer.get_parameters()))

        print(
            f"Iter {iteration:6d} | "
            f"f={function_value:14.6e} | "
            f"df={change:12.4e} | "
            f"|x|={x_norm:12.4e}"
        )

    def finalize(self) -> None:
        """Reset so the observer can be reused."""
        self._last_value = None

    def get_name(self) -> str:
        """Return observer name."""
        return f"PrintObserver(interval={self.interval})"
