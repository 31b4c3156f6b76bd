"""
Core module for pyqn.

This module provides:
- Default numerical settings (tolerances, line search coefficients)
- Parameter schemas shared by the builder and the config loader
"""

from .constants import (
    DEFAULT_ABSOLUTE_ERROR_TOL,
    DEFAULT_FD_STEP,
    DEFAULT_FTOL,
    DEFAULT_FUNC_MIN_VALUE,
    DEFAULT_GTOL,
    DEFAULT_INITIAL_STEP,
    DEFAULT_LINE_SEARCH_ITERATIONS,
    DEFAULT_RELATIVE_ERROR_TOL,
    DEFAULT_STEP_TOL,
    DEFAULT_T1,
    DEFAULT_T2,
    DEFAULT_T3,
)
from .schemas import LineSearchParams, OptimizerParams, RunParams

__all__ = [
    # Constants
    "DEFAULT_ABSOLUTE_ERROR_TOL",
    "DEFAULT_FD_STEP",
    "DEFAULT_FTOL",
    "DEFAULT_FUNC_MIN_VALUE",
    "DEFAULT_GTOL",
    "DEFAULT_INITIAL_STEP",
    "DEFAULT_LINE_SEARCH_ITERATIONS",
    "DEFAULT_RELATIVE_ERROR_TOL",
    "DEFAULT_STEP_TOL",
    "DEFAULT_T1",
    "DEFAULT_T2",
    "DEFAULT_T3",
    # Schemas
    "OptimizerParams",
    "LineSearchParams",
    "RunParams",
]
