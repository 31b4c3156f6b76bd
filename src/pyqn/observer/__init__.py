"""
Observer module for monitoring minimization progress.
"""

from .observer import (
    CompositeObserver,
    Observer,
    PrintObserver,
    TrajectoryObserver,
    ValueObserver,
)

__all__ = [
    "Observer",
    "CompositeObserver",
    "ValueObserver",
    "TrajectoryObserver",
    "PrintObserver",
]
