"""
Parameter schemas for the optimizer, line search and driver loop.

Defines the plain data structures that both the fluent builder and the
YAML config loader consume. Keeping them in one place prevents drift
between the two construction paths.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from .constants import (
    DEFAULT_ABSOLUTE_ERROR_TOL,
    DEFAULT_FTOL,
    DEFAULT_FUNC_MIN_VALUE,
    DEFAULT_GTOL,
    DEFAULT_LINE_SEARCH_ITERATIONS,
    DEFAULT_RELATIVE_ERROR_TOL,
    DEFAULT_STEP_TOL,
    DEFAULT_T1,
    DEFAULT_T2,
    DEFAULT_T3,
)


# ------------------------------------------------------------------ #
#  Input schemas
# ------------------------------------------------------------------ #


@dataclass
class OptimizerParams:
    """Settings for QuasiNewtonBFGS."""

    func_min_value: float = DEFAULT_FUNC_MIN_VALUE
    gtol: float = DEFAULT_GTOL
    relative_error_tol: float = DEFAULT_RELATIVE_ERROR_TOL
    absolute_error_tol: float = DEFAULT_ABSOLUTE_ERROR_TOL
    scale_initial_inverse_hessian: bool = False

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "OptimizerParams":
        return cls(
            func_min_value=float(d.get("func_min_value", DEFAULT_FUNC_MIN_VALUE)),
            gtol=float(d.get("gtol", DEFAULT_GTOL)),
            relative_error_tol=float(
                d.get("relative_error_tol", DEFAULT_RELATIVE_ERROR_TOL)
            ),
            absolute_error_tol=float(
                d.get("absolute_error_tol", DEFAULT_ABSOLUTE_ERROR_TOL)
            ),
            scale_initial_inverse_hessian=bool(
                d.get("scale_initial_inverse_hessian", False)
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "func_min_value": self.func_min_value,
            "gtol": self.gtol,
            "relative_error_tol": self.relative_error_tol,
            "absolute_error_tol": self.absolute_error_tol,
            "scale_initial_inverse_hessian": self.scale_initial_inverse_hessian,
        }


@dataclass
class LineSearchParams:
    """Settings for the line search delegate."""

    algorithm: str = "fletcher86"
    ftol: float = DEFAULT_FTOL
    gtol: float = DEFAULT_GTOL
    t1: float = DEFAULT_T1
    t2: float = DEFAULT_T2
    t3: float = DEFAULT_T3
    step_tol: float = DEFAULT_STEP_TOL
    max_iterations: int = DEFAULT_LINE_SEARCH_ITERATIONS

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LineSearchParams":
        return cls(
            algorithm=str(d.get("algorithm", "fletcher86")).lower(),
            ftol=float(d.get("ftol", DEFAULT_FTOL)),
            gtol=float(d.get("gtol", DEFAULT_GTOL)),
            t1=float(d.get("t1", DEFAULT_T1)),
            t2=float(d.get("t2", DEFAULT_T2)),
            t3=float(d.get("t3", DEFAULT_T3)),
            step_tol=float(d.get("step_tol", DEFAULT_STEP_TOL)),
            max_iterations=int(
                d.get("max_iterations", DEFAULT_LINE_SEARCH_ITERATIONS)
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "algorithm": self.algorithm,
            "ftol": self.ftol,
            "gtol": self.gtol,
            "t1": self.t1,
            "t2": self.t2,
            "t3": self.t3,
            "step_tol": self.step_tol,
            "max_iterations": self.max_iterations,
        }


@dataclass
class RunParams:
    """Parameters for driving an optimizer to completion."""

    max_iterations: int = 1000
    timeout: Optional[float] = None
    print_interval: int = 0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "RunParams":
        timeout = d.get("timeout")
        return cls(
            max_iterations=int(d.get("max_iterations", 1000)),
            timeout=float(timeout) if timeout is not None else None,
            print_interval=int(d.get("print_interval", 0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_iterations": self.max_iterations,
            "timeout": self.timeout,
            "print_interval": self.print_interval,
        }
