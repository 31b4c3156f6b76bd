"""
Builder module for quasi-Newton optimizers.

Provides:
- OptimizerBuilder: Fluent builder for creating optimizers
- Config loader: YAML-based optimizer and run configuration
"""

from .config_loader import (
    build_line_search,
    build_minimizer_from_config,
    build_optimizer_from_config,
    load_and_minimize,
    load_yaml,
)
from .optimizer_builder import OptimizerBuilder, create_line_search

__all__ = [
    "OptimizerBuilder",
    "create_line_search",
    "build_line_search",
    "build_optimizer_from_config",
    "build_minimizer_from_config",
    "load_yaml",
    "load_and_minimize",
]
