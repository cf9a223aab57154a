"""Plot the norm history of a nonlinear solve."""

from __future__ import annotations

from typing import Any

import numpy as np


def plot_convergence(
    solver: Any,
    ax: Any = None,
    title: str | None = None,
) -> Any:
    """Plot ``norm(u)`` and ``norm(la)`` per nonlinear iteration.

    Args:
        solver: A solved :class:`~pyfemsolve.solvers.nonlinear.Solver`.
        ax: Matplotlib axes (creates new figure if None).
        title: Plot title, defaults to the solver name.

    Returns:
        Matplotlib axes.
    """
    import matplotlib.pyplot as plt

    if ax is None:
        fig, ax = plt.subplots(1, 1, figsize=(6, 4))

    norms = np.asarray(solver.norms, dtype=float).reshape(-1, 2)
    iterations = np.arange(1, len(norms) + 1)
    # zero norms cannot be shown on a log scale
    u_norm = np.where(norms[:, 0] > 0.0, norms[:, 0], np.nan)
    la_norm = np.where(norms[:, 1] > 0.0, norms[:, 1], np.nan)

    ax.semilogy(iterations, u_norm, "o-", label="norm(u)")
    ax.semilogy(iterations, la_norm, "s--", label="norm(la)")
    ax.set_xlabel("Nonlinear iteration")
    ax.set_ylabel("Solution norm")
    ax.set_title(title or solver.name)
    ax.legend()
    ax.grid(True, which="both", alpha=0.3)
    return ax
