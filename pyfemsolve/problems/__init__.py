"""Problems: the contract between the solver and the equations it drives."""

from pyfemsolve.problems.base import (
    BoundaryAssembly,
    BoundaryKind,
    BoundaryProblem,
    FieldAssembly,
    FieldProblem,
    Problem,
    ProblemKind,
)

__all__ = [
    "BoundaryAssembly",
    "BoundaryKind",
    "BoundaryProblem",
    "FieldAssembly",
    "FieldProblem",
    "Problem",
    "ProblemKind",
]
