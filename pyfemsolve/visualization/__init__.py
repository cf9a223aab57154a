"""Visualization: convergence diagnostics."""

from pyfemsolve.visualization.convergence import plot_convergence

__all__ = [
    "plot_convergence",
]
