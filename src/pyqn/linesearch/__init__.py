"""
Line search module for quasi-Newton minimization.

Provides:
- LineSearch: Step-wise line search contract consumed by the optimizer
- LineSearchFletcher86: Strong Wolfe bracketing and sectioning search
"""

from .line_search import LineSearch
from .fletcher86 import LineSearchFletcher86, interpolate_cubic, interpolate_quadratic

__all__ = [
    "LineSearch",
    "LineSearchFletcher86",
    "interpolate_cubic",
    "interpolate_quadratic",
]
