"""Solvers: nonlinear iteration control, linear backends, convergence."""

from pyfemsolve.solvers.config import SolverConfig
from pyfemsolve.solvers.convergence import has_converged
from pyfemsolve.solvers.linear import (
    LINEAR_SOLVERS,
    DirectLinearSolver,
    IterativeLinearSolver,
    LinearSolver,
    get_linear_solver,
    register_linear_solver,
    solve_linear_system,
)
from pyfemsolve.solvers.nonlinear import Solver, SolverState

__all__ = [
    "SolverConfig",
    "has_converged",
    "LINEAR_SOLVERS",
    "DirectLinearSolver",
    "IterativeLinearSolver",
    "LinearSolver",
    "get_linear_solver",
    "register_linear_solver",
    "solve_linear_system",
    "Solver",
    "SolverState",
]
