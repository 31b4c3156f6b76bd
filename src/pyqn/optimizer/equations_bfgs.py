"""
BFGS update equations.

The inverse-Hessian update is a rank-2 correction, so it is applied in
place with two caller-owned scratch vectors and no N x N temporaries
beyond the outer products.
"""
import math

import numpy as np
from numpy.typing import NDArray


def inverse_update(
    H: NDArray[np.floating],
    s: NDArray[np.floating],
    y: NDArray[np.floating],
    temp0: NDArray[np.floating],
    temp1: NDArray[np.floating],
) -> None:
    """
    BFGS update of the inverse Hessian approximation, in place.

        H ← (I - ρ s yᵀ) H (I - ρ y sᵀ) + ρ s sᵀ,   ρ = 1 / yᵀs

    expanded as

        H ← H - ρ (H y sᵀ + s yᵀ H) + (ρ² yᵀHy + ρ) s sᵀ

    The update is skipped when yᵀs is zero or not finite.

    Args:
        H: (N, N) inverse Hessian approximation, modified in place.
        s: (N,) change in parameters.
        y: (N,) change in gradient.
        temp0: (N,) scratch storage.
        temp1: (N,) scratch storage.
    """
    alpha = float(np.dot(y, s))
    if alpha == 0.0 or not math.isfinite(alpha):
        return
    p = 1.0 / alpha

    np.dot(H, y, out=temp0)     # H y
    np.dot(y, H, out=temp1)     # yᵀ H
    beta = float(np.dot(y, temp0))

    H -= p * (np.outer(temp0, s) + np.outer(s, temp1))
    H += (p * p * beta + p) * np.outer(s, s)
