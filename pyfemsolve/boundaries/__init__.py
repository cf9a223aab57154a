"""Boundaries: boundary and constraint problems (Lagrange multiplier coupling)."""

from pyfemsolve.boundaries.dirichlet import DirichletProblem
from pyfemsolve.boundaries.tie import TieProblem

__all__ = [
    "DirichletProblem",
    "TieProblem",
]
