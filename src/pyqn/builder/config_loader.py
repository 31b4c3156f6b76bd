"""
Configuration loader for YAML-based optimizer setup.

Provides functions to build optimizers and minimizers from YAML files.
The configuration only covers optimizer settings; the objective is
always supplied in code.
"""
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

import numpy as np
from numpy.typing import NDArray

from pyqn.core import LineSearchParams, OptimizerParams, RunParams
from pyqn.function import BackendFactory, GradientBackend
from pyqn.linesearch import LineSearch
from pyqn.observer import PrintObserver, TrajectoryObserver, ValueObserver
from pyqn.optimizer import MinimizationResult, Minimizer, QuasiNewtonBFGS

from .optimizer_builder import OptimizerBuilder, create_line_search


def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load YAML configuration file.

    Args:
        path: Path to YAML file.

    Returns:
        Dictionary with configuration.
    """
    try:
        import yaml
    except ImportError:
        raise ImportError("PyYAML is required: pip install pyyaml")

    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def _parse_backend(config: Dict[str, Any]) -> GradientBackend:
    """Parse gradient backend from config."""
    backend_config = config.get("backend") or "numerical"
    if isinstance(backend_config, str):
        return BackendFactory.create(backend_config)

    options = dict(backend_config)
    backend_type = options.pop("type", "numerical")
    return BackendFactory.create(backend_type, **options)


def _parse_line_search_params(
    config: Dict[str, Any], optimizer_params: OptimizerParams
) -> LineSearchParams:
    """Parse line search settings, sharing the optimizer's gtol by default."""
    ls_config = dict(config.get("line_search") or {})
    ls_config.setdefault("gtol", optimizer_params.gtol)
    return LineSearchParams.from_dict(ls_config)


def build_line_search(config: Dict[str, Any]) -> LineSearch:
    """
    Build the line search described by a config dictionary.

    Args:
        config: Configuration dictionary (typically from YAML).

    Returns:
        Configured LineSearch.
    """
    optimizer_params = OptimizerParams.from_dict(config.get("optimizer") or {})
    return create_line_search(_parse_line_search_params(config, optimizer_params))


def build_optimizer_from_config(
    config: Dict[str, Any],
    value_fn: Callable[[NDArray], float],
    n: int,
    gradient_fn: Optional[Callable[[NDArray], NDArray]] = None,
) -> QuasiNewtonBFGS:
    """
    Build a QuasiNewtonBFGS from configuration dictionary.

    Args:
        config: Configuration dictionary (typically from YAML).
        value_fn: Objective f(x) -> float.
        n: Number of parameters.
        gradient_fn: Optional analytic gradient. When omitted the
            configured backend computes gradients.

    Returns:
        Configured optimizer ready for initialize().

    Example config:
        backend: numerical
        optimizer:
          func_min_value: 0.0
          gtol: 0.9
          relative_error_tol: 1.0e-12
          absolute_error_tol: 1.0e-12
        line_search:
          algorithm: fletcher86
          ftol: 1.0e-4
        run:
          max_iterations: 200
          timeout: 10.0
        observers:
          values: true
          print: true
          print_interval: 10
    """
    optimizer_params = OptimizerParams.from_dict(config.get("optimizer") or {})
    line_search_params = _parse_line_search_params(config, optimizer_params)

    builder = (
        OptimizerBuilder()
        .function(value_fn, n=n)
        .params(optimizer_params)
        .line_search_params(line_search_params)
    )
    if gradient_fn is not None:
        builder.gradient(gradient_fn)
    else:
        builder.backend(_parse_backend(config))

    initial_hessian = (config.get("optimizer") or {}).get("initial_inverse_hessian")
    if initial_hessian is not None:
        builder.initial_inverse_hessian(np.array(initial_hessian, dtype=float))

    return builder.build()


def build_minimizer_from_config(config: Dict[str, Any]) -> Minimizer:
    """
    Build the driver loop and its observers from configuration.

    Args:
        config: Configuration dictionary (typically from YAML).

    Returns:
        Configured Minimizer.
    """
    run_params = RunParams.from_dict(config.get("run") or {})

    observers = []
    obs_config = config.get("observers") or {}
    if obs_config.get("values", True):
        observers.append(ValueObserver(interval=obs_config.get("values_interval", 1)))
    if obs_config.get("print", False) or run_params.print_interval > 0:
        interval = obs_config.get("print_interval", run_params.print_interval or 10)
        observers.append(PrintObserver(interval=interval))
    if obs_config.get("trajectory", False):
        observers.append(
            TrajectoryObserver(interval=obs_config.get("trajectory_interval", 1))
        )

    return Minimizer(
        max_iterations=run_params.max_iterations,
        timeout=run_params.timeout,
        observers=observers,
    )


def load_and_minimize(
    path: Union[str, Path],
    value_fn: Callable[[NDArray], float],
    initial: NDArray,
    gradient_fn: Optional[Callable[[NDArray], NDArray]] = None,
) -> MinimizationResult:
    """
    Load configuration from YAML and minimize value_fn from initial.

    Args:
        path: Path to YAML configuration file.
        value_fn: Objective f(x) -> float.
        initial: (N,) starting parameters.
        gradient_fn: Optional analytic gradient.

    Returns:
        MinimizationResult after the run completes.
    """
    config = load_yaml(path)
    initial = np.asarray(initial, dtype=float)
    optimizer = build_optimizer_from_config(
        config, value_fn, n=len(initial), gradient_fn=gradient_fn
    )
    minimizer = build_minimizer_from_config(config)
    return minimizer.minimize(optimizer, initial)
