"""
pyqn - Quasi-Newton Minimization with a Resumable Step Driver.

A Python framework for unconstrained nonlinear minimization using the BFGS
inverse-Hessian update and a line search that meets the Wolfe conditions.
The optimizer is a two-phase state machine driven one step at a time, so
callers control pacing, timeouts and interleaving with other work.

Main features:
- BFGS inverse-Hessian update with automatic positive-definiteness repair
- Strong Wolfe line search (Fletcher) that advances one evaluation per step
- Gradient backends: JAX, PyTorch, Autograd, finite differences
- Observers for value history, trajectories and console progress
- YAML configuration for optimizer and line search settings
"""

__version__ = "0.1.0"
__author__ = "pyqn Team"
