"""
Strong Wolfe line search with bracketing and sectioning (Fletcher 1986).

The search first expands the step until an interval known to contain an
acceptable point is bracketed, then sections that interval with
safeguarded interpolation. Each call to iterate() performs at most one
new function evaluation so the search can be single-stepped.

References:
    R. Fletcher, "Practical Methods of Optimization", 2nd Ed, 1987.
    J. Nocedal, S. Wright, "Numerical Optimization", 2nd Ed, 2006,
    algorithms 3.5 and 3.6.
"""
import math
import sys
from enum import Enum
from typing import Optional

from pyqn.core.constants import (
    DEFAULT_FTOL,
    DEFAULT_GTOL,
    DEFAULT_LINE_SEARCH_ITERATIONS,
    DEFAULT_STEP_TOL,
    DEFAULT_T1,
    DEFAULT_T2,
    DEFAULT_T3,
)
from pyqn.function import GradientLineFunction

from .line_search import LineSearch

_EPS = sys.float_info.epsilon


def interpolate_cubic(
    x0: float, f0: float, g0: float, x1: float, f1: float, g1: float
) -> float:
    """
    Minimizer of the cubic matching value and slope at two points.

    Returns:
        The minimizer, or NaN if the cubic has no local minimum.
    """
    if x0 == x1:
        return math.nan
    d1 = g0 + g1 - 3.0 * (f0 - f1) / (x0 - x1)
    disc = d1 * d1 - g0 * g1
    if disc < 0:
        return math.nan
    d2 = math.copysign(math.sqrt(disc), x1 - x0)
    denom = g1 - g0 + 2.0 * d2
    if denom == 0:
        return math.nan
    return x1 - (x1 - x0) * (g1 + d2 - d1) / denom


def interpolate_quadratic(x0: float, f0: float, g0: float, x1: float, f1: float) -> float:
    """
    Minimizer of the parabola with value and slope at x0 and value at x1.

    Returns:
        The minimizer, or NaN if the parabola opens downward.
    """
    dx = x1 - x0
    denom = 2.0 * (f1 - f0 - g0 * dx)
    if not denom > 0:
        return math.nan
    return x0 - g0 * dx * dx / denom


class _Mode(Enum):
    BRACKET = 0
    SECTION = 1


class LineSearchFletcher86(LineSearch):
    """
    Line search that terminates on the strong Wolfe conditions.

        f(a) <= f(0) + ftol * a * f'(0)        (sufficient decrease)
        |f'(a)| <= gtol * |f'(0)|              (curvature)

    Attributes:
        ftol: Sufficient decrease coefficient.
        gtol: Curvature coefficient.
        t1: Bracket expansion factor (> 1).
        t2: Sectioning lower safeguard (fraction of the interval).
        t3: Sectioning upper safeguard (fraction of the interval).
        step_tol: Interval width below which sectioning stops.
        max_iterations: Iteration limit for a single search.

    Example:
        >>> search = LineSearchFletcher86(ftol=1e-4, gtol=0.9)
    """

    def __init__(
        self,
        ftol: float = DEFAULT_FTOL,
        gtol: float = DEFAULT_GTOL,
        t1: float = DEFAULT_T1,
        t2: float = DEFAULT_T2,
        t3: float = DEFAULT_T3,
        step_tol: float = DEFAULT_STEP_TOL,
        max_iterations: int = DEFAULT_LINE_SEARCH_ITERATIONS,
    ) -> None:
        """
        Initialize the line search.

        Args:
            ftol: Sufficient decrease coefficient, 0 < ftol < gtol.
            gtol: Curvature coefficient, ftol < gtol <= 1.
            t1: Bracket expansion factor, > 1.
            t2: Lower sectioning safeguard, 0 < t2 < t3.
            t3: Upper sectioning safeguard, t2 < t3 <= 0.5.
            step_tol: Smallest interval that is still sectioned, >= 0.
            max_iterations: Iteration limit, >= 1.

        Raises:
            ValueError: If any parameter is out of range.
        """
        if not 0 < ftol < gtol <= 1:
            raise ValueError(
                f"Require 0 < ftol < gtol <= 1, got ftol={ftol}, gtol={gtol}"
            )
        if t1 <= 1:
            raise ValueError(f"t1 must be greater than 1, got {t1}")
        if not 0 < t2 < t3 <= 0.5:
            raise ValueError(f"Require 0 < t2 < t3 <= 0.5, got t2={t2}, t3={t3}")
        if step_tol < 0:
            raise ValueError(f"step_tol must be non-negative, got {step_tol}")
        if max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {max_iterations}")

        self.ftol = ftol
        self.gtol = gtol
        self.t1 = t1
        self.t2 = t2
        self.t3 = t3
        self.step_tol = step_tol
        self.max_iterations = max_iterations

        self._function: Optional[GradientLineFunction] = None
        self._mode = _Mode.BRACKET

        # value and slope at step zero
        self._f0 = 0.0
        self._g0 = 0.0
        self._step_max = 0.0

        # current trial
        self._step = 0.0
        self._f_step = 0.0

        # previous trial while bracketing
        self._step_prev = 0.0
        self._f_prev = 0.0
        self._g_prev = 0.0

        # sectioning interval; lo always satisfies sufficient decrease
        self._step_lo = 0.0
        self._f_lo = 0.0
        self._g_lo = 0.0
        self._step_hi = 0.0
        self._f_hi = 0.0

        self._iterations = 0
        self._converged = False
        self._message: Optional[str] = None

    def set_function(self, function: GradientLineFunction) -> None:
        self._function = function

    def init(
        self,
        func_zero: float,
        deriv_zero: float,
        func_init: float,
        init_step: float,
        step_min: float,
        step_max: float,
    ) -> None:
        if self._function is None:
            raise RuntimeError("set_function() must be called before init()")
        if not deriv_zero < 0:
            raise ValueError(
                f"Initial derivative must be negative, got {deriv_zero}"
            )
        if not step_min <= init_step <= step_max or init_step <= 0:
            raise ValueError(
                f"Initial step {init_step} must be positive and within "
                f"[{step_min}, {step_max}]"
            )

        self._mode = _Mode.BRACKET
        self._f0 = func_zero
        self._g0 = deriv_zero
        self._step_max = step_max

        self._step = init_step
        self._f_step = _finite_or_inf(func_init)

        self._step_prev = step_min
        self._f_prev = func_zero
        self._g_prev = deriv_zero

        self._iterations = 0
        self._converged = False
        self._message = None

    def iterate(self) -> bool:
        self._iterations += 1

        if self._mode is _Mode.BRACKET:
            done = self._bracket()
        else:
            done = self._section()

        if not done and self._iterations >= self.max_iterations:
            return self._terminate(
                False,
                f"Line search did not converge within {self.max_iterations} iterations",
            )
        return done

    def _bracket(self) -> bool:
        """Check the current trial and expand the step if still descending."""
        if not self._sufficient_decrease(self._step, self._f_step) or (
            self._f_step >= self._f_prev
        ):
            self._set_interval(
                self._step_prev, self._f_prev, self._g_prev,
                self._step, self._f_step,
            )
            return self._section_trial()

        g_step = self._derivative(self._step)
        if abs(g_step) <= -self.gtol * self._g0:
            return self._terminate(True, None)

        if g_step >= 0:
            self._set_interval(
                self._step, self._f_step, g_step,
                self._step_prev, self._f_prev,
            )
            return self._section_trial()

        # still descending at the theoretical minimum bound
        if self._step >= self._step_max:
            return self._terminate(True, None)

        lower = min(self._step_max, 2.0 * self._step - self._step_prev)
        upper = min(self._step_max, self._step + self.t1 * (self._step - self._step_prev))
        if lower >= upper:
            trial = upper
        else:
            trial = interpolate_cubic(
                self._step_prev, self._f_prev, self._g_prev,
                self._step, self._f_step, g_step,
            )
            trial = _clamp(trial, lower, upper, fallback=lower)

        self._step_prev = self._step
        self._f_prev = self._f_step
        self._g_prev = g_step

        self._step = trial
        self._f_step = self._evaluate(trial)
        return False

    def _section(self) -> bool:
        """Shrink the bracketing interval using the current trial."""
        if not self._sufficient_decrease(self._step, self._f_step) or (
            self._f_step >= self._f_lo
        ):
            self._step_hi = self._step
            self._f_hi = self._f_step
        else:
            g_step = self._derivative(self._step)
            if abs(g_step) <= -self.gtol * self._g0:
                return self._terminate(True, None)

            if g_step * (self._step_hi - self._step_lo) >= 0:
                self._step_hi = self._step_lo
                self._f_hi = self._f_lo

            self._step_lo = self._step
            self._f_lo = self._f_step
            self._g_lo = g_step

        return self._section_trial()

    def _section_trial(self) -> bool:
        """Pick and evaluate the next trial inside [lo, hi]."""
        width = self._step_hi - self._step_lo
        if abs(width) <= self.step_tol * max(1.0, abs(self._step_lo)):
            if self._step_lo > 0:
                self._step = self._step_lo
                self._f_step = self._f_lo
                return self._terminate(True, None)
            # no step in [0, width] can change f0 by more than its rounding error
            if -self._g0 * abs(width) <= _EPS * abs(self._f0):
                self._step = 0.0
                self._f_step = self._f0
                return self._terminate(True, None)
            return self._terminate(
                False, "Line search interval collapsed before finding a decrease"
            )

        self._mode = _Mode.SECTION

        a = self._step_lo + self.t2 * width
        b = self._step_hi - self.t3 * width
        trial = interpolate_quadratic(
            self._step_lo, self._f_lo, self._g_lo, self._step_hi, self._f_hi
        )
        self._step = _clamp(trial, min(a, b), max(a, b), fallback=0.5 * (a + b))
        self._f_step = self._evaluate(self._step)
        return False

    def _set_interval(
        self, step_lo: float, f_lo: float, g_lo: float, step_hi: float, f_hi: float
    ) -> None:
        self._step_lo = step_lo
        self._f_lo = f_lo
        self._g_lo = g_lo
        self._step_hi = step_hi
        self._f_hi = f_hi

    def _sufficient_decrease(self, step: float, value: float) -> bool:
        return value <= self._f0 + self.ftol * step * self._g0

    def _evaluate(self, step: float) -> float:
        self._function.set_step(step)
        return _finite_or_inf(self._function.compute_value())

    def _derivative(self, step: float) -> float:
        self._function.set_step(step)
        return self._function.compute_derivative()

    def _terminate(self, converged: bool, message: Optional[str]) -> bool:
        self._converged = converged
        self._message = message
        return True

    def is_converged(self) -> bool:
        return self._converged

    def get_step(self) -> float:
        return self._step

    def get_function_value(self) -> float:
        return self._f_step

    def get_failure_message(self) -> Optional[str]:
        return self._message

    def get_iterations(self) -> int:
        """Iterations performed by the current search."""
        return self._iterations

    def get_name(self) -> str:
        """Get human-readable name."""
        return f"LineSearchFletcher86(ftol={self.ftol}, gtol={self.gtol})"


def _finite_or_inf(value: float) -> float:
    value = float(value)
    return value if math.isfinite(value) else math.inf


def _clamp(value: float, lower: float, upper: float, fallback: float) -> float:
    if not math.isfinite(value):
        return fallback
    return min(max(value, lower), upper)
