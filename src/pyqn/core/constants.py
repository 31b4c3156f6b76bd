"""
Default numerical settings for the quasi-Newton optimizer.

This module provides the default tolerances and line search coefficients
used throughout pyqn when the caller does not supply their own.
"""
from typing import Final

# Slope coefficient for the Wolfe curvature condition (0 < gtol <= 1)
DEFAULT_GTOL: Final[float] = 0.9

# Sufficient decrease (Armijo) coefficient for the line search
DEFAULT_FTOL: Final[float] = 1e-4

# Relative convergence tolerance on function value change
DEFAULT_RELATIVE_ERROR_TOL: Final[float] = 1e-12

# Absolute convergence tolerance on function value change
DEFAULT_ABSOLUTE_ERROR_TOL: Final[float] = 1e-12

# Theoretical minimum of the objective (unbounded by default)
DEFAULT_FUNC_MIN_VALUE: Final[float] = float("-inf")

# Fletcher line search: bracket expansion factor
DEFAULT_T1: Final[float] = 9.0

# Fletcher line search: sectioning safeguards (fraction of interval)
DEFAULT_T2: Final[float] = 0.1
DEFAULT_T3: Final[float] = 0.5

# Smallest step interval the line search will section
DEFAULT_STEP_TOL: Final[float] = 1e-12

# Maximum number of line search iterations per outer iteration
DEFAULT_LINE_SEARCH_ITERATIONS: Final[int] = 100

# Initial trial step for every line search
DEFAULT_INITIAL_STEP: Final[float] = 1.0

# Finite difference step for numerical gradients
DEFAULT_FD_STEP: Final[float] = 1e-6
