"""
Gradient backend implementations for objective functions.

This module provides the GradientBackend ABC and concrete implementations
for JAX, PyTorch, Autograd and finite-difference gradients.
"""
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

import numpy as np
from numpy.typing import NDArray

from pyqn.core.constants import DEFAULT_FD_STEP


class GradientBackend(ABC):
    """
    Abstract base for gradient backends (Strategy Pattern).

    Provides a unified interface for computing ∇f of a scalar objective
    using different autodiff libraries. Users can switch backends without
    changing how the optimizer consumes gradients.

    Example:
        >>> from pyqn.function import JAXBackend
        >>> backend = JAXBackend(use_jit=True)
        >>> gradient = backend.compute_gradient(value_fn, x)
    """

    @abstractmethod
    def compute_gradient(
        self,
        value_fn: Callable[..., float],
        x: NDArray[np.floating],
        **kwargs: Any,
    ) -> NDArray[np.floating]:
        """
        Compute the gradient ∇f(x).

        Args:
            value_fn: Function that computes the objective value.
                      Signature: value_fn(x, **kwargs) -> float
            x: (N,) parameter vector.
            **kwargs: Additional arguments passed to value_fn.

        Returns:
            (N,) gradient array.
        """
        pass

    @abstractmethod
    def get_name(self) -> str:
        """Get human-readable name of this backend."""
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this backend's dependencies are installed."""
        pass


class JAXBackend(GradientBackend):
    """
    JAX autodiff backend.

    The objective must be written with ``jax.numpy`` operations so that it
    can be traced.

    Requires:
        pip install jax jaxlib

    Example:
        >>> backend = JAXBackend(use_jit=True)
        >>> if backend.is_available():
        ...     gradient = backend.compute_gradient(value_fn, x)
    """

    def __init__(self, use_jit: bool = True, enable_x64: bool = True) -> None:
        """
        Initialize JAX backend.

        Args:
            use_jit: Whether to JIT-compile the gradient function.
            enable_x64: Switch JAX to double precision on first use.
        """
        self.use_jit = use_jit
        self.enable_x64 = enable_x64
        self._jax: Optional[Any] = None
        self._jnp: Optional[Any] = None
        self._available: Optional[bool] = None

    def _init_jax(self) -> bool:
        """Lazy initialization of JAX."""
        if self._available is not None:
            return self._available

        try:
            import jax
            import jax.numpy as jnp

            if self.enable_x64:
                jax.config.update("jax_enable_x64", True)
            self._jax = jax
            self._jnp = jnp
            self._available = True
        except ImportError:
            self._available = False

        return self._available

    def is_available(self) -> bool:
        """Check if JAX is installed."""
        return self._init_jax()

    def compute_gradient(
        self,
        value_fn: Callable[..., float],
        x: NDArray[np.floating],
        **kwargs: Any,
    ) -> NDArray[np.floating]:
        """
        Compute the gradient using JAX autodiff.

        Args:
            value_fn: Objective written with jax.numpy operations.
            x: (N,) parameter vector.
            **kwargs: Additional arguments for value_fn.

        Returns:
            (N,) gradient array.

        Raises:
            RuntimeError: If JAX is not installed.
        """
        if not self._init_jax():
            raise RuntimeError(
                "JAX is not installed. Install with: pip install jax jaxlib"
            )

        jax = self._jax
        jnp = self._jnp

        def value_wrapper(point: Any) -> Any:
            return value_fn(point, **kwargs)

        grad_fn = jax.grad(value_wrapper)
        if self.use_jit:
            grad_fn = jax.jit(grad_fn)

        gradient = grad_fn(jnp.asarray(x))
        return np.asarray(gradient, dtype=np.float64)

    def get_name(self) -> str:
        """Return backend name."""
        return f"JAX(jit={self.use_jit})"


class PyTorchBackend(GradientBackend):
    """
    PyTorch autodiff backend.

    The objective receives a ``torch.Tensor`` and must return a scalar
    tensor built from torch operations.

    Requires:
        pip install torch

    Example:
        >>> backend = PyTorchBackend(device='cpu')
        >>> if backend.is_available():
        ...     gradient = backend.compute_gradient(value_fn, x)
    """

    def __init__(self, device: str = "cpu") -> None:
        """
        Initialize PyTorch backend.

        Args:
            device: Device to use ('cpu', 'cuda', 'cuda:0', etc.).
        """
        self.device = device
        self._torch: Optional[Any] = None
        self._available: Optional[bool] = None

    def _init_torch(self) -> bool:
        """Lazy initialization of PyTorch."""
        if self._available is not None:
            return self._available

        try:
            import torch

            self._torch = torch
            self._available = True
        except ImportError:
            self._available = False

        return self._available

    def is_available(self) -> bool:
        """Check if PyTorch is installed."""
        return self._init_torch()

    def compute_gradient(
        self,
        value_fn: Callable[..., float],
        x: NDArray[np.floating],
        **kwargs: Any,
    ) -> NDArray[np.floating]:
        """
        Compute the gradient using PyTorch autograd.

        Args:
            value_fn: Objective written with torch operations.
            x: (N,) parameter vector.
            **kwargs: Additional arguments for value_fn.

        Returns:
            (N,) gradient array.

        Raises:
            RuntimeError: If PyTorch is not installed or the objective
                does not depend on its input.
        """
        if not self._init_torch():
            raise RuntimeError(
                "PyTorch is not installed. Install with: pip install torch"
            )

        torch = self._torch

        x_torch = torch.tensor(
            x,
            requires_grad=True,
            dtype=torch.float64,
            device=self.device,
        )
        value = value_fn(x_torch, **kwargs)
        value.backward()

        if x_torch.grad is None:
            raise RuntimeError(
                "Objective is not differentiable with respect to its input"
            )
        return x_torch.grad.detach().cpu().numpy().astype(np.float64)

    def get_name(self) -> str:
        """Return backend name."""
        return f"PyTorch(device={self.device})"


class AutogradBackend(GradientBackend):
    """
    Autograd backend (pure NumPy autodiff).

    The objective must be written with ``autograd.numpy``.

    Requires:
        pip install autograd

    Example:
        >>> backend = AutogradBackend()
        >>> if backend.is_available():
        ...     gradient = backend.compute_gradient(value_fn, x)
    """

    def __init__(self) -> None:
        """Initialize Autograd backend."""
        self._autograd: Optional[Any] = None
        self._available: Optional[bool] = None

    def _init_autograd(self) -> bool:
        """Lazy initialization of Autograd."""
        if self._available is not None:
            return self._available

        try:
            import autograd

            self._autograd = autograd
            self._available = True
        except ImportError:
            self._available = False

        return self._available

    def is_available(self) -> bool:
        """Check if Autograd is installed."""
        return self._init_autograd()

    def compute_gradient(
        self,
        value_fn: Callable[..., float],
        x: NDArray[np.floating],
        **kwargs: Any,
    ) -> NDArray[np.floating]:
        """
        Compute the gradient using Autograd.

        Args:
            value_fn: Objective written with autograd.numpy.
            x: (N,) parameter vector.
            **kwargs: Additional arguments for value_fn.

        Returns:
            (N,) gradient array.

        Raises:
            RuntimeError: If Autograd is not installed.
        """
        if not self._init_autograd():
            raise RuntimeError(
                "Autograd is not installed. Install with: pip install autograd"
            )

        def value_wrapper(point: NDArray) -> float:
            return value_fn(point, **kwargs)

        grad_fn = self._autograd.grad(value_wrapper)
        return np.asarray(grad_fn(np.asarray(x, dtype=np.float64)), dtype=np.float64)

    def get_name(self) -> str:
        """Return backend name."""
        return "Autograd(NumPy)"


class NumericalBackend(GradientBackend):
    """
    Numerical differentiation backend (finite differences).

    Uses central finite differences to approximate the gradient, so it
    works with any plain NumPy objective.

    Advantages:
        - No external dependencies
        - Works with any objective
        - Good for debugging/validation

    Disadvantages:
        - 2N function evaluations per gradient
        - Approximate (not exact)

    Example:
        >>> backend = NumericalBackend(h=1e-6)
        >>> gradient = backend.compute_gradient(value_fn, x)
    """

    def __init__(self, h: float = DEFAULT_FD_STEP) -> None:
        """
        Initialize numerical backend.

        Args:
            h: Step size for finite differences.

        Raises:
            ValueError: If h is non-positive.
        """
        if h <= 0:
            raise ValueError(f"h must be positive, got {h}")
        self.h = h

    def is_available(self) -> bool:
        """Always available (no dependencies)."""
        return True

    def compute_gradient(
        self,
        value_fn: Callable[..., float],
        x: NDArray[np.floating],
        **kwargs: Any,
    ) -> NDArray[np.floating]:
        """
        Compute the gradient using central finite differences.

        g_i = (f(x + h*e_i) - f(x - h*e_i)) / (2*h)

        Args:
            value_fn: Objective taking a parameter array.
            x: (N,) parameter vector.
            **kwargs: Additional arguments for value_fn.

        Returns:
            (N,) gradient array.
        """
        x = np.asarray(x, dtype=np.float64)
        gradient = np.zeros_like(x)
        h = self.h

        for i in range(len(x)):
            x_plus = x.copy()
            x_minus = x.copy()
            x_plus[i] += h
            x_minus[i] -= h

            f_plus = value_fn(x_plus, **kwargs)
            f_minus = value_fn(x_minus, **kwargs)

            gradient[i] = (f_plus - f_minus) / (2 * h)

        return gradient

    def get_name(self) -> str:
        """Return backend name."""
        return f"Numerical(h={self.h})"


class BackendFactory:
    """
    Factory for creating gradient backends by name.

    Example:
        >>> backend = BackendFactory.create('jax', use_jit=True)
        >>> BackendFactory.list_available()
        ['numerical']
    """

    @staticmethod
    def create(backend_name: str, **kwargs: Any) -> GradientBackend:
        """
        Create backend by name.

        Args:
            backend_name: One of 'jax', 'pytorch'/'torch', 'autograd', 'numerical'.
            **kwargs: Backend-specific options.

        Returns:
            Configured GradientBackend instance.

        Raises:
            ValueError: If backend name is unknown.
        """
        backend_name = backend_name.lower()

        if backend_name == "jax":
            return JAXBackend(**kwargs)
        elif backend_name in ["pytorch", "torch"]:
            return PyTorchBackend(**kwargs)
        elif backend_name == "autograd":
            return AutogradBackend()
        elif backend_name == "numerical":
            return NumericalBackend(**kwargs)
        else:
            raise ValueError(
                f"Unknown backend: {backend_name}. "
                f"Choose from: jax, pytorch, autograd, numerical"
            )

    @staticmethod
    def list_available() -> list:
        """
        List all available backends.

        Returns:
            List of available backend names.
        """
        available = ["numerical"]  # Always available

        if AutogradBackend().is_available():
            available.append("autograd")
        if PyTorchBackend().is_available():
            available.append("pytorch")
        if JAXBackend(enable_x64=False).is_available():
            available.append("jax")

        return available
