"""Convergence check of a nonlinear iteration.

A field problem has converged when the change of its solution norm in
the last update is below the tolerance, or when its solution is zero.
Boundary problems are only checked on request, on the relative change
of their multipliers.
"""

from __future__ import annotations

import logging
import math
from typing import Any

import numpy as np

logger = logging.getLogger(__name__)

ZERO_NORM_ATOL = 1e-12


def _is_zero(value: float) -> bool:
    return math.isclose(value, 0.0, abs_tol=ZERO_NORM_ATOL)


def field_problem_converged(problem: Any, tol: float) -> bool:
    """Convergence verdict of a single field problem."""
    assembly = problem.assembly
    norm = float(np.linalg.norm(assembly.u))
    converged = assembly.u_norm_change < tol or _is_zero(norm)
    logger.debug(
        "Problem %r: norm=%.6e, norm change=%.6e, converged=%s",
        problem.name, norm, assembly.u_norm_change, converged,
    )
    return converged


def boundary_problem_converged(problem: Any, tol: float) -> bool:
    """Convergence verdict of a single boundary problem."""
    assembly = problem.assembly
    norm = float(np.linalg.norm(assembly.la))
    change = assembly.la_norm_change
    if _is_zero(norm):
        converged = _is_zero(change)
    else:
        converged = change / norm < tol
    logger.debug(
        "Problem %r: multiplier norm=%.6e, norm change=%.6e, converged=%s",
        problem.name, norm, change, converged,
    )
    return converged


def has_converged(
    solver: Any,
    check_boundary_convergence: bool | None = None,
) -> bool:
    """Check convergence of all problems of *solver*.

    Args:
        solver: A :class:`~pyfemsolve.solvers.nonlinear.Solver`.
        check_boundary_convergence: Override of
            ``solver.config.check_boundary_convergence``.

    Returns:
        True if every evaluated problem has converged, or if the solver
        is flagged as a linear system.
    """
    config = solver.config
    if check_boundary_convergence is None:
        check_boundary_convergence = config.check_boundary_convergence
    tol = config.convergence_tolerance

    converged = True
    for problem in solver.problems:
        if problem.is_field_problem:
            converged &= field_problem_converged(problem, tol)
        elif problem.is_boundary_problem and check_boundary_convergence:
            converged &= boundary_problem_converged(problem, tol)
    return converged or config.is_linear_system
