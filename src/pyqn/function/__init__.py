"""
Objective function module for quasi-Newton minimization.

This module provides:
- GradientLineFunction ABC (point and line evaluation contract)
- DifferentiableFunction built from plain callables
- GradientBackend ABC and implementations (JAX, PyTorch, Autograd, Numerical)
- BackendFactory for backend selection by name
"""

from .autodiff_backend import (
    AutogradBackend,
    BackendFactory,
    GradientBackend,
    JAXBackend,
    NumericalBackend,
    PyTorchBackend,
)
from .line_function import DifferentiableFunction, GradientLineFunction

__all__ = [
    # Backend ABC
    "GradientBackend",
    # Concrete backends
    "JAXBackend",
    "PyTorchBackend",
    "AutogradBackend",
    "NumericalBackend",
    # Factory
    "BackendFactory",
    # Functions
    "GradientLineFunction",
    "DifferentiableFunction",
]
