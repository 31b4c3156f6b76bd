"""
Optimizer module for quasi-Newton minimization.

Provides:
- QuasiNewtonBFGS: Step-wise BFGS optimizer with a delegated line search
- inverse_update: In-place BFGS inverse Hessian update
- Minimizer: Driver loop with iteration and time limits
"""

from .equations_bfgs import inverse_update
from .quasi_newton_bfgs import Mode, QuasiNewtonBFGS
from .minimizer import Minimizer, MinimizationResult

__all__ = [
    "inverse_update",
    "Mode",
    "QuasiNewtonBFGS",
    "Minimizer",
    "MinimizationResult",
]
